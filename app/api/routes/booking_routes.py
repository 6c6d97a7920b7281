"""
Booking Routes

POST   /bookings - book an approved property (holds a room when roomType is given)
GET    /bookings - current user's bookings, newest first
GET    /bookings/{id} - one booking (booker, property owner or admin)
PATCH  /bookings/{id} - property owner or admin confirms, cancels or completes
DELETE /bookings/{id} - booker or admin cancels and removes the booking
"""

import logging

from fastapi import APIRouter, Depends

from app.core.auth import require
from app.core.errors import Forbidden
from app.core.policy import Action, authorize
from app.db.mongodb import MongoPool, get_pool
from app.services.mongo_service import BookingService, serialize_doc, serialize_docs
from app.schemas.schemas import BookingCreate, BookingStatusUpdate

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/bookings", tags=["Bookings"])


def get_booking_service(pool: MongoPool = Depends(get_pool)) -> BookingService:
    return BookingService(pool)


def _is_booker(booking: dict, user: dict) -> bool:
    return str(booking["user"]) == user["user_id"]


def _is_host(bookings: BookingService, booking: dict, user: dict) -> bool:
    return str(bookings.property_owner(booking)) == user["user_id"]


@router.post("", status_code=201)
async def create_booking(
    body: BookingCreate,
    user: dict = Depends(require(Action.book_listing)),
    bookings: BookingService = Depends(get_booking_service),
):
    kit = body.settlingInKit.model_dump() if body.settlingInKit else None
    booking = bookings.create(
        user["user_id"],
        body.propertyId,
        check_in=body.checkInDate,
        check_out=body.checkOutDate,
        room_type=body.roomType,
        guests=body.guests,
        settling_in_kit=kit,
    )
    logger.info("Booking %s created by %s for %s", booking["_id"], user["user_id"], booking["property"])
    return {"success": True, "booking": serialize_doc(booking)}


@router.get("")
async def list_bookings(
    user: dict = Depends(require(Action.book_listing)),
    bookings: BookingService = Depends(get_booking_service),
):
    mine = bookings.with_property(bookings.list_for_user(user["user_id"]))
    return {"bookings": serialize_docs(mine), "count": len(mine)}


@router.get("/{booking_id}")
async def get_booking(
    booking_id: str,
    user: dict = Depends(require(Action.book_listing)),
    bookings: BookingService = Depends(get_booking_service),
):
    booking = bookings.get(booking_id)
    if not (
        _is_booker(booking, user)
        or _is_host(bookings, booking, user)
        or authorize(user["role"], Action.manage_any_booking)
    ):
        raise Forbidden("You cannot view this booking")
    return {"booking": serialize_doc(bookings.with_property([booking])[0])}


@router.patch("/{booking_id}")
async def update_booking(
    booking_id: str,
    body: BookingStatusUpdate,
    user: dict = Depends(require(Action.book_listing)),
    bookings: BookingService = Depends(get_booking_service),
):
    booking = bookings.get(booking_id)
    if not (_is_host(bookings, booking, user) or authorize(user["role"], Action.manage_any_booking)):
        raise Forbidden("Only the property owner can update this booking")
    booking = bookings.set_status(booking_id, body.status.value)
    logger.info("Booking %s set to %s by %s", booking_id, booking["status"], user["user_id"])
    return {"success": True, "booking": serialize_doc(booking)}


@router.delete("/{booking_id}")
async def cancel_booking(
    booking_id: str,
    user: dict = Depends(require(Action.book_listing)),
    bookings: BookingService = Depends(get_booking_service),
):
    booking = bookings.get(booking_id)
    if not (_is_booker(booking, user) or authorize(user["role"], Action.manage_any_booking)):
        raise Forbidden("You cannot cancel this booking")
    bookings.delete(booking_id)
    logger.info("Booking %s cancelled by %s", booking_id, user["user_id"])
    return {"success": True, "message": "Booking cancelled successfully"}
