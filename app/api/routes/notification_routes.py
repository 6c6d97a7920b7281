"""
Notification Routes

GET   /notifications - current user's feed, newest first
PATCH /notifications/{id} - mark one as read
"""

from fastapi import APIRouter, Depends, Query

from app.core.auth import get_current_user
from app.db.mongodb import MongoPool, get_pool
from app.services.mongo_service import NotificationService, serialize_doc, serialize_docs

router = APIRouter(prefix="/notifications", tags=["Notifications"])


@router.get("")
async def list_notifications(
    unread_only: bool = Query(False, alias="unreadOnly"),
    limit: int = Query(50, ge=1, le=100),
    user: dict = Depends(get_current_user),
    pool: MongoPool = Depends(get_pool),
):
    notifications = NotificationService(pool).list_for_user(user["user_id"], unread_only, limit)
    unread = sum(1 for n in notifications if not n.get("read"))
    return {"notifications": serialize_docs(notifications), "unreadCount": unread}


@router.patch("/{notification_id}")
async def mark_read(
    notification_id: str,
    user: dict = Depends(get_current_user),
    pool: MongoPool = Depends(get_pool),
):
    notification = NotificationService(pool).mark_read(user["user_id"], notification_id)
    return {"success": True, "notification": serialize_doc(notification)}
