"""
API Routes - Combines all route modules into single router.
"""

from fastapi import APIRouter

from app.api.routes.auth_routes import router as auth_router
from app.api.routes.admin_routes import router as admin_router
from app.api.routes.ai_routes import router as ai_router
from app.api.routes.property_routes import router as property_router
from app.api.routes.mess_routes import router as mess_router
from app.api.routes.nearby_routes import router as nearby_router
from app.api.routes.notification_routes import router as notification_router
from app.api.routes.booking_routes import router as booking_router
from app.api.routes.like_routes import router as like_router
from app.api.routes.favorite_routes import router as favorite_router
from app.api.routes.review_routes import router as review_router

# Main API router
api_router = APIRouter()

# Include all sub-routers
api_router.include_router(auth_router)
api_router.include_router(admin_router)
api_router.include_router(ai_router)
api_router.include_router(property_router)
api_router.include_router(mess_router)
api_router.include_router(nearby_router)
api_router.include_router(notification_router)
api_router.include_router(booking_router)
api_router.include_router(like_router)
api_router.include_router(favorite_router)
api_router.include_router(review_router)
