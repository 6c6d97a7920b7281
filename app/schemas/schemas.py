"""
Pydantic Schemas - Request/Response Validation

All API request and response schemas in one file for simplicity.
Listing documents are returned as serialized Mongo documents (camelCase keys,
string ids), so only the request bodies and the fixed-shape responses are
modelled here.
"""

from pydantic import BaseModel, ConfigDict, EmailStr, Field
from typing import Optional, List, Any, Dict
from datetime import datetime
from enum import Enum


# ============================================================
# ENUMS
# ============================================================

class UserRole(str, Enum):
    user = "user"
    owner = "owner"
    admin = "admin"
    executive = "executive"


class PropertyType(str, Enum):
    pg = "PG"
    flat = "Flat"


class Gender(str, Enum):
    male = "Male"
    female = "Female"
    unisex = "Unisex"


class NearbyType(str, Enum):
    all = "all"
    property = "property"
    mess = "mess"
    restaurant = "restaurant"
    hospital = "hospital"
    transport = "transport"
    college = "college"


# ============================================================
# AUTH SCHEMAS
# ============================================================

class RegisterRequest(BaseModel):
    name: str = Field(..., min_length=2, max_length=100)
    email: EmailStr
    password: str = Field(..., min_length=8)
    # admin and executive accounts are provisioned, never self-registered
    role: UserRole = UserRole.user


class LoginRequest(BaseModel):
    email: EmailStr
    password: str


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user_id: str
    role: str


class UserResponse(BaseModel):
    user_id: str
    name: str
    email: str
    role: str
    created_at: Optional[datetime] = None


class AccountDeletedResponse(BaseModel):
    message: str
    removed: Dict[str, int]


# ============================================================
# LISTING SCHEMAS
# ============================================================

class GeoPoint(BaseModel):
    type: str = "Point"
    # GeoJSON order: [longitude, latitude]
    coordinates: List[float] = Field(..., min_length=2, max_length=2)


class RoomType(BaseModel):
    type: str
    price: float = Field(..., ge=0)
    available: int = Field(..., ge=0)


class PropertyCreate(BaseModel):
    model_config = ConfigDict(extra="allow")

    title: str = Field(..., min_length=3, max_length=200)
    description: str = Field(..., min_length=1)
    type: PropertyType
    gender: Gender
    address: str
    location: str
    city: Optional[str] = None
    coordinates: GeoPoint
    price: float = Field(..., ge=0)
    deposit: float = Field(..., ge=0)
    images: List[str] = []
    amenities: List[str] = []
    rules: List[str] = []
    roomTypes: List[RoomType] = []


class MessCreate(BaseModel):
    model_config = ConfigDict(extra="allow")

    name: str = Field(..., min_length=2, max_length=200)
    description: str
    address: str
    location: str
    city: str
    state: str
    pincode: str
    coordinates: GeoPoint
    monthlyPrice: float = Field(..., ge=0)
    dailyPrice: Optional[float] = Field(None, ge=0)
    mealTypes: List[str] = Field(..., min_length=1)
    dietTypes: List[str] = Field(..., min_length=1)
    cuisineTypes: List[str] = []
    amenities: List[str] = []
    images: List[str] = []
    contactName: str
    contactPhone: str
    contactEmail: EmailStr


# ============================================================
# MODERATION SCHEMAS
# ============================================================

class RejectRequest(BaseModel):
    # blank reasons are rejected by the gate with a 400
    reason: Optional[str] = None


class VerificationPaymentRequest(BaseModel):
    paymentId: Optional[str] = None
    paymentMethod: Optional[str] = None


class CompleteVerificationRequest(BaseModel):
    wifiTested: bool = False
    wifiSpeed: str = "Ultra Fast"
    rawVideoCheck: bool = False
    videoUrl: str = ""
    physicalInspection: bool = False
    notes: str = ""
    approve: bool = True

    def checks(self) -> dict:
        return self.model_dump(exclude={"approve"})


# ============================================================
# BOOKING SCHEMAS
# ============================================================

class SettlingInKit(BaseModel):
    model_config = ConfigDict(extra="allow")

    name: Optional[str] = None
    price: float = Field(0, ge=0)


class BookingCreate(BaseModel):
    propertyId: str
    checkInDate: datetime
    checkOutDate: Optional[datetime] = None
    roomType: Optional[str] = None
    guests: int = Field(1, ge=1, le=10)
    settlingInKit: Optional[SettlingInKit] = None


class BookingStatus(str, Enum):
    confirmed = "confirmed"
    cancelled = "cancelled"
    completed = "completed"


class BookingStatusUpdate(BaseModel):
    status: BookingStatus


# ============================================================
# ENGAGEMENT SCHEMAS (likes, favorites, reviews)
# ============================================================

class ItemType(str, Enum):
    property = "property"
    mess = "mess"


class LikeRequest(BaseModel):
    itemType: ItemType
    itemId: str


class FavoriteRequest(BaseModel):
    propertyId: str


class ReviewCreate(BaseModel):
    itemType: ItemType
    itemId: str
    # 1-5, checked by ReviewService
    rating: int
    comment: str = Field(..., max_length=1000)


# ============================================================
# AI SCHEMAS
# ============================================================

class VerificationAssessment(BaseModel):
    verified: bool
    needsReview: bool = False
    confidence: float = Field(0, ge=0, le=100)
    score: float = Field(0, ge=0, le=100)
    recommendation: str
    reason: str
    redFlags: List[str] = []
    analysis: Optional[Any] = None
    reviewedAt: Optional[datetime] = None
    error: Optional[str] = None


# ============================================================
# GENERIC
# ============================================================

class MessageResponse(BaseModel):
    message: str
    success: bool = True
