"""
MongoDB Service - CRUD operations for document collections.

Collections in this database:
1. properties     - PG/flat listings with moderation and verification fields
2. messes         - meal-service listings, same moderation envelope
3. users          - accounts (role drives authorization)
4. bookings       - room bookings; a pending booking holds one room
5. likes          - one per (user, item), toggled
6. favorites      - saved properties
7. reviews        - one per (user, item); drive the listing's rating/reviews
8. notifications  - in-app messages (moderation outcomes land here)
9. places         - points of interest for proximity search

User activity (4-8) is removed when the account is deleted.

Every write that changes moderation state is a single-document update, so a
transition and its audit fields land together.
"""

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple

from bson import ObjectId
from bson.errors import InvalidId
from pymongo import ReturnDocument
from pymongo.errors import DuplicateKeyError
from pymongo.collection import Collection

from app.core.errors import NotFound, ValidationError
from app.db.mongodb import MongoPool


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ============================================================
# HELPER: Convert ObjectId to string for JSON serialization
# ============================================================

def _serialize_value(value: Any) -> Any:
    if isinstance(value, ObjectId):
        return str(value)
    if isinstance(value, dict):
        return {k: _serialize_value(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_serialize_value(v) for v in value]
    return value


def serialize_doc(doc: dict) -> Optional[dict]:
    """Convert MongoDB document to JSON-serializable dict."""
    if doc is None:
        return None
    return _serialize_value(doc)


def serialize_docs(docs) -> list:
    """Convert list of MongoDB documents to JSON-serializable list."""
    return [serialize_doc(doc) for doc in docs]


def parse_object_id(value: Any, label: str = "ID") -> ObjectId:
    """Parse a path/body id, raising ValidationError for malformed ids."""
    if isinstance(value, ObjectId):
        return value
    try:
        return ObjectId(str(value))
    except (InvalidId, TypeError):
        raise ValidationError(f"Invalid {label}")


# ============================================================
# LISTINGS (properties and messes)
# ============================================================

# Listings visible to the public
PUBLIC_FILTER = {"isApproved": True, "isRejected": False}

LISTING_KINDS = ("properties", "messes")

LISTING_LABELS = {
    "properties": "Property",
    "messes": "Mess",
}


class ListingService:
    """
    Storage for one listing kind.

    New listings start pending: isApproved=False, isRejected=False and no
    verificationStatus.
    """

    def __init__(self, pool: MongoPool, kind: str = "properties"):
        if kind not in LISTING_KINDS:
            raise ValueError(f"Unknown listing kind: {kind}")
        self.kind = kind
        self.label = LISTING_LABELS[kind]
        self.collection: Collection = pool.collection(kind)

    def insert(self, owner_id: Any, data: dict, ai_review: dict = None) -> dict:
        """
        Insert a new listing owned by `owner_id`.

        Moderation fields in `data` are ignored; only the gate sets them.
        """
        doc = {k: v for k, v in data.items() if k not in MODERATION_FIELDS}
        doc.update({
            "owner": parse_object_id(owner_id, "owner ID"),
            "isApproved": False,
            "isRejected": False,
            "rating": doc.get("rating", 0),
            "reviews": doc.get("reviews", 0),
            "createdAt": utcnow(),
        })
        if ai_review is not None:
            doc["aiReview"] = ai_review
        result = self.collection.insert_one(doc)
        doc["_id"] = result.inserted_id
        return doc

    def get(self, listing_id: Any) -> dict:
        """Fetch a listing or raise NotFound."""
        doc = self.collection.find_one({"_id": parse_object_id(listing_id, f"{self.label.lower()} ID")})
        if doc is None:
            raise NotFound(f"{self.label} not found")
        return doc

    def get_public(self, listing_id: Any) -> dict:
        """Fetch an approved, non-rejected listing or raise NotFound."""
        query = {"_id": parse_object_id(listing_id, f"{self.label.lower()} ID"), **PUBLIC_FILTER}
        doc = self.collection.find_one(query)
        if doc is None:
            raise NotFound(f"{self.label} not found")
        return doc

    def find(
        self,
        query: dict,
        sort: List[Tuple[str, int]] = None,
        skip: int = 0,
        limit: int = 0,
    ) -> List[dict]:
        cursor = self.collection.find(query)
        if sort:
            cursor = cursor.sort(sort)
        if skip:
            cursor = cursor.skip(skip)
        if limit:
            cursor = cursor.limit(limit)
        return list(cursor)

    def count(self, query: dict) -> int:
        return self.collection.count_documents(query)

    def update_fields(self, listing_id: Any, fields: dict) -> dict:
        """
        Atomically $set `fields` and return the updated document.
        Raises NotFound if the listing does not exist.
        """
        doc = self.collection.find_one_and_update(
            {"_id": parse_object_id(listing_id, f"{self.label.lower()} ID")},
            {"$set": fields},
            return_document=ReturnDocument.AFTER,
        )
        if doc is None:
            raise NotFound(f"{self.label} not found")
        return doc

    def update_if(self, listing_id: Any, precondition: dict, fields: dict) -> Optional[dict]:
        """
        $set `fields` only while the listing still matches `precondition`.
        Returns the updated document, or None when the listing is gone or the
        precondition no longer holds.
        """
        query = {"_id": parse_object_id(listing_id, f"{self.label.lower()} ID"), **precondition}
        return self.collection.find_one_and_update(
            query, {"$set": fields}, return_document=ReturnDocument.AFTER
        )

    def delete_by_owner(self, owner_id: Any) -> int:
        result = self.collection.delete_many({"owner": parse_object_id(owner_id)})
        return result.deleted_count


# Fields owned by the moderation gate and the verification desk
MODERATION_FIELDS = frozenset({
    "_id",
    "owner",
    "isApproved",
    "isRejected",
    "approvedAt",
    "approvedBy",
    "rejectedAt",
    "rejectedBy",
    "rejectionReason",
    "approvalMethod",
    "aiReview",
    "verificationStatus",
    "verificationFee",
    "verificationPaymentId",
    "verificationPaidAt",
    "executiveVisit",
    "verifiedAt",
    "verifiedBy",
})


# ============================================================
# USERS
# ============================================================

class UserService:
    """Account storage. Emails are stored lower-cased."""

    def __init__(self, pool: MongoPool):
        self.collection: Collection = pool.collection("users")

    def insert(self, name: str, email: str, password_hash: str, role: str = "user") -> dict:
        doc = {
            "name": name,
            "email": email.strip().lower(),
            "password": password_hash,
            "role": role,
            "createdAt": utcnow(),
        }
        result = self.collection.insert_one(doc)
        doc["_id"] = result.inserted_id
        return doc

    def get_by_email(self, email: str) -> Optional[dict]:
        return self.collection.find_one({"email": email.strip().lower()})

    def get_by_id(self, user_id: Any) -> Optional[dict]:
        try:
            oid = parse_object_id(user_id)
        except ValidationError:
            return None
        return self.collection.find_one({"_id": oid})

    def delete(self, user_id: Any) -> bool:
        result = self.collection.delete_one({"_id": parse_object_id(user_id)})
        return result.deleted_count > 0


class AccountService:
    """
    Account deletion cascade: bookings (held rooms are returned), likes,
    favorites, reviews (ratings are recomputed), notifications, owned listings,
    then the user.
    """

    def __init__(self, pool: MongoPool):
        self.pool = pool

    def delete_account(self, user_id: Any) -> Dict[str, int]:
        oid = parse_object_id(user_id, "user ID")
        removed = {
            "bookings": BookingService(self.pool).delete_for_user(oid),
            "likes": LikeService(self.pool).delete_for_user(oid),
            "favorites": FavoriteService(self.pool).delete_for_user(oid),
            "reviews": ReviewService(self.pool).delete_for_user(oid),
            "notifications": self.pool.collection("notifications").delete_many({"user": oid}).deleted_count,
        }
        for kind in LISTING_KINDS:
            removed[kind] = ListingService(self.pool, kind).delete_by_owner(oid)
        removed["users"] = 1 if UserService(self.pool).delete(oid) else 0
        return removed


# ============================================================
# NOTIFICATIONS
# ============================================================

class NotificationService:
    """In-app notifications, newest first."""

    def __init__(self, pool: MongoPool):
        self.collection: Collection = pool.collection("notifications")

    def insert(
        self,
        user_id: Any,
        notification_type: str,
        title: str,
        message: str,
        link: str = None,
        priority: str = "medium",
        metadata: dict = None,
    ) -> str:
        doc = {
            "user": parse_object_id(user_id, "user ID"),
            "type": notification_type,
            "title": title,
            "message": message,
            "link": link,
            "read": False,
            "priority": priority,
            "metadata": metadata or {},
            "createdAt": utcnow(),
        }
        result = self.collection.insert_one(doc)
        return str(result.inserted_id)

    def list_for_user(self, user_id: Any, unread_only: bool = False, limit: int = 50) -> List[dict]:
        query = {"user": parse_object_id(user_id, "user ID")}
        if unread_only:
            query["read"] = False
        cursor = self.collection.find(query).sort([("createdAt", -1)]).limit(limit)
        return list(cursor)

    def mark_read(self, user_id: Any, notification_id: Any) -> dict:
        doc = self.collection.find_one_and_update(
            {
                "_id": parse_object_id(notification_id, "notification ID"),
                "user": parse_object_id(user_id, "user ID"),
            },
            {"$set": {"read": True, "readAt": utcnow()}},
            return_document=ReturnDocument.AFTER,
        )
        if doc is None:
            raise NotFound("Notification not found")
        return doc


# ============================================================
# PLACES (points of interest)
# ============================================================

PLACE_GROUPS = {
    "restaurants": ["restaurant"],
    "hospitals": ["hospital"],
    "transport": ["bus_stop", "metro_station"],
    "colleges": ["college"],
}


class PlaceService:
    def __init__(self, pool: MongoPool):
        self.collection: Collection = pool.collection("places")

    def find_by_types(self, types: List[str]) -> List[dict]:
        return list(self.collection.find({"type": {"$in": types}}))


# ============================================================
# BOOKINGS
# ============================================================

BOOKING_STATUSES = ("pending", "confirmed", "cancelled", "completed")
CLOSED_BOOKING_STATUSES = ("cancelled", "completed")

# Booking commission, percent of the first month's rent
DEFAULT_COMMISSION_RATE = 7.5


class BookingService:
    """
    Bookings against public properties.

    A booking for a named room type holds one room of that type (`roomHeld`)
    until it is cancelled or deleted. Taking and releasing the hold are single
    conditional $inc updates on the property.
    """

    def __init__(self, pool: MongoPool):
        self.collection: Collection = pool.collection("bookings")
        self.properties = ListingService(pool, "properties")

    def create(
        self,
        user_id: Any,
        property_id: Any,
        check_in: datetime,
        check_out: datetime = None,
        room_type: str = None,
        guests: int = 1,
        settling_in_kit: dict = None,
        commission_rate: float = DEFAULT_COMMISSION_RATE,
    ) -> dict:
        try:
            if check_out is not None and check_out <= check_in:
                raise ValidationError("Check-out must be after check-in")
        except TypeError:
            # one date carries a timezone and the other does not
            raise ValidationError("Invalid booking dates")

        listing = self.properties.get_public(property_id)
        price = listing.get("price") or 0
        if room_type:
            rooms = listing.get("roomTypes") or []
            index = next((i for i, r in enumerate(rooms) if r.get("type") == room_type), None)
            if index is None:
                raise NotFound("Room type not found")
            self._hold_room(listing["_id"], index, room_type)
            price = rooms[index].get("price", price)

        commission = round(price * commission_rate / 100)
        total = price + commission
        if settling_in_kit and settling_in_kit.get("price"):
            total += settling_in_kit["price"]

        doc = {
            "user": parse_object_id(user_id, "user ID"),
            "property": listing["_id"],
            "roomType": room_type or "Standard",
            "roomHeld": bool(room_type),
            "price": price,
            "firstMonthRent": price,
            "commissionRate": commission_rate,
            "commissionAmount": commission,
            "totalAmount": total,
            "checkInDate": check_in,
            "checkOutDate": check_out,
            "guests": guests,
            "status": "pending",
            "paymentStatus": "pending",
            "createdAt": utcnow(),
        }
        if settling_in_kit:
            doc["settlingInKit"] = settling_in_kit
        result = self.collection.insert_one(doc)
        doc["_id"] = result.inserted_id
        return doc

    def get(self, booking_id: Any) -> dict:
        doc = self.collection.find_one({"_id": parse_object_id(booking_id, "booking ID")})
        if doc is None:
            raise NotFound("Booking not found")
        return doc

    def list_for_user(self, user_id: Any) -> List[dict]:
        cursor = self.collection.find({"user": parse_object_id(user_id, "user ID")}).sort([("createdAt", -1)])
        return list(cursor)

    def with_property(self, bookings: List[dict]) -> List[dict]:
        """Replace each booking's property id with a short property summary."""
        ids = list({b["property"] for b in bookings})
        summaries = {
            doc["_id"]: doc
            for doc in self.properties.collection.find(
                {"_id": {"$in": ids}},
                {"title": 1, "location": 1, "images": 1, "price": 1, "type": 1, "owner": 1},
            )
        }
        return [{**b, "property": summaries.get(b["property"], b["property"])} for b in bookings]

    def property_owner(self, booking: dict) -> Optional[ObjectId]:
        doc = self.properties.collection.find_one({"_id": booking["property"]}, {"owner": 1})
        return doc.get("owner") if doc else None

    def set_status(self, booking_id: Any, status: str) -> dict:
        if status not in BOOKING_STATUSES:
            raise ValidationError(f"Invalid booking status: {status}")
        oid = parse_object_id(booking_id, "booking ID")
        doc = self.collection.find_one_and_update(
            {"_id": oid, "status": {"$nin": list(CLOSED_BOOKING_STATUSES)}},
            {"$set": {"status": status, "updatedAt": utcnow()}},
            return_document=ReturnDocument.AFTER,
        )
        if doc is None:
            current = self.get(oid)
            raise ValidationError(f"Booking is already {current['status']}")
        if status in CLOSED_BOOKING_STATUSES:
            self._release(doc)
        return doc

    def delete(self, booking_id: Any) -> dict:
        doc = self.collection.find_one_and_delete({"_id": parse_object_id(booking_id, "booking ID")})
        if doc is None:
            raise NotFound("Booking not found")
        if doc.get("status") not in CLOSED_BOOKING_STATUSES:
            self._release(doc)
        return doc

    def delete_for_user(self, user_id: Any) -> int:
        removed = 0
        for booking in self.list_for_user(user_id):
            self.delete(booking["_id"])
            removed += 1
        return removed

    def _hold_room(self, property_oid: ObjectId, index: int, room_type: str) -> None:
        slot = f"roomTypes.{index}"
        held = self.properties.collection.update_one(
            {"_id": property_oid, f"{slot}.type": room_type, f"{slot}.available": {"$gt": 0}},
            {"$inc": {f"{slot}.available": -1}},
        )
        if not held.modified_count:
            raise ValidationError("No rooms available for this type")

    def _release(self, booking: dict) -> None:
        """Return a held room. Callers invoke this once per closing transition."""
        if not booking.get("roomHeld"):
            return
        self.collection.update_one({"_id": booking["_id"]}, {"$set": {"roomHeld": False}})
        booking["roomHeld"] = False
        listing = self.properties.collection.find_one({"_id": booking["property"]}, {"roomTypes": 1})
        rooms = (listing or {}).get("roomTypes") or []
        index = next((i for i, r in enumerate(rooms) if r.get("type") == booking["roomType"]), None)
        if index is None:
            return
        self.properties.collection.update_one(
            {"_id": booking["property"], f"roomTypes.{index}.type": booking["roomType"]},
            {"$inc": {f"roomTypes.{index}.available": 1}},
        )


# ============================================================
# LIKES, FAVORITES, REVIEWS
# ============================================================

# itemType in requests -> listing collection
ITEM_KINDS = {
    "property": "properties",
    "mess": "messes",
}


def _item_kind(item_type: str) -> str:
    try:
        return ITEM_KINDS[item_type]
    except KeyError:
        raise ValidationError("Invalid item type")


class LikeService:
    """One like per (user, itemType, itemId); liking twice removes the like."""

    def __init__(self, pool: MongoPool):
        self.pool = pool
        self.collection: Collection = pool.collection("likes")

    def toggle(self, user_id: Any, item_type: str, item_id: Any) -> dict:
        listing = ListingService(self.pool, _item_kind(item_type)).get_public(item_id)
        key = {
            "user": parse_object_id(user_id, "user ID"),
            "itemType": item_type,
            "itemId": listing["_id"],
        }
        if self.collection.delete_one(key).deleted_count:
            liked = False
        else:
            try:
                self.collection.insert_one({**key, "createdAt": utcnow()})
            except DuplicateKeyError:
                # a concurrent toggle inserted the same like
                pass
            liked = True
        return {"liked": liked, "likeCount": self.count(item_type, listing["_id"])}

    def count(self, item_type: str, item_id: Any) -> int:
        _item_kind(item_type)
        return self.collection.count_documents({"itemType": item_type, "itemId": parse_object_id(item_id, "item ID")})

    def has_liked(self, user_id: Any, item_type: str, item_id: Any) -> bool:
        return self.collection.find_one({
            "user": parse_object_id(user_id, "user ID"),
            "itemType": item_type,
            "itemId": parse_object_id(item_id, "item ID"),
        }) is not None

    def liked_listings(self, user_id: Any) -> Dict[str, List[dict]]:
        """The user's liked listings that are still public, grouped by kind."""
        likes = list(self.collection.find({"user": parse_object_id(user_id, "user ID")}).sort([("createdAt", -1)]))
        grouped = {}
        for item_type, kind in ITEM_KINDS.items():
            ids = [like["itemId"] for like in likes if like["itemType"] == item_type]
            docs = ListingService(self.pool, kind).find({"_id": {"$in": ids}, **PUBLIC_FILTER})
            order = {oid: i for i, oid in enumerate(ids)}
            grouped[kind] = sorted(docs, key=lambda d: order[d["_id"]])
        return grouped

    def delete_for_user(self, user_id: Any) -> int:
        return self.collection.delete_many({"user": parse_object_id(user_id, "user ID")}).deleted_count


class FavoriteService:
    """Saved properties, one entry per (user, property)."""

    def __init__(self, pool: MongoPool):
        self.collection: Collection = pool.collection("favorites")
        self.properties = ListingService(pool, "properties")

    def add(self, user_id: Any, property_id: Any) -> bool:
        """Returns False when the property was already saved."""
        listing = self.properties.get_public(property_id)
        key = {"user": parse_object_id(user_id, "user ID"), "property": listing["_id"]}
        try:
            result = self.collection.update_one(key, {"$setOnInsert": {"createdAt": utcnow()}}, upsert=True)
        except DuplicateKeyError:
            return False
        return result.upserted_id is not None

    def remove(self, user_id: Any, property_id: Any) -> None:
        result = self.collection.delete_one({
            "user": parse_object_id(user_id, "user ID"),
            "property": parse_object_id(property_id, "property ID"),
        })
        if not result.deleted_count:
            raise NotFound("Favorite not found")

    def property_ids(self, user_id: Any) -> List[str]:
        cursor = self.collection.find({"user": parse_object_id(user_id, "user ID")}).sort([("createdAt", -1)])
        return [str(fav["property"]) for fav in cursor]

    def delete_for_user(self, user_id: Any) -> int:
        return self.collection.delete_many({"user": parse_object_id(user_id, "user ID")}).deleted_count


class ReviewService:
    """
    One review per (user, item); resubmitting replaces it.

    Each write recomputes the listing's `rating` (mean of all ratings) and
    `reviews` (count).
    """

    def __init__(self, pool: MongoPool):
        self.pool = pool
        self.collection: Collection = pool.collection("reviews")

    def submit(self, user_id: Any, item_type: str, item_id: Any, rating: int, comment: str) -> Tuple[dict, bool]:
        """Returns (review, created)."""
        listings = ListingService(self.pool, _item_kind(item_type))
        if not isinstance(rating, int) or not 1 <= rating <= 5:
            raise ValidationError("Rating must be between 1 and 5")
        if not comment or not comment.strip():
            raise ValidationError("Comment is required")

        listing = listings.get_public(item_id)
        key = {"user": parse_object_id(user_id, "user ID"), "itemType": item_type, "itemId": listing["_id"]}
        created = self.collection.find_one(key) is None
        now = utcnow()
        review = self.collection.find_one_and_update(
            key,
            {
                "$set": {"rating": rating, "comment": comment.strip(), "updatedAt": now},
                "$setOnInsert": {"helpfulCount": 0, "helpfulUsers": [], "createdAt": now},
            },
            upsert=True,
            return_document=ReturnDocument.AFTER,
        )
        self.refresh_rating(item_type, listing["_id"])
        return review, created

    def list_for_item(self, item_type: str, item_id: Any, page: int = 1, limit: int = 10) -> Dict[str, Any]:
        _item_kind(item_type)
        query = {"itemType": item_type, "itemId": parse_object_id(item_id, "item ID")}
        cursor = self.collection.find(query).sort([("createdAt", -1)]).skip((page - 1) * limit).limit(limit)
        return {
            "reviews": list(cursor),
            "averageRating": self._average(query),
            "total": self.collection.count_documents(query),
        }

    def refresh_rating(self, item_type: str, item_id: ObjectId) -> None:
        query = {"itemType": item_type, "itemId": item_id}
        ListingService(self.pool, _item_kind(item_type)).collection.update_one(
            {"_id": item_id},
            {"$set": {"rating": self._average(query), "reviews": self.collection.count_documents(query)}},
        )

    def delete_for_user(self, user_id: Any) -> int:
        oid = parse_object_id(user_id, "user ID")
        reviewed = list(self.collection.find({"user": oid}, {"itemType": 1, "itemId": 1}))
        removed = self.collection.delete_many({"user": oid}).deleted_count
        for review in reviewed:
            self.refresh_rating(review["itemType"], review["itemId"])
        return removed

    def _average(self, query: dict) -> float:
        ratings = [r["rating"] for r in self.collection.find(query, {"rating": 1})]
        return sum(ratings) / len(ratings) if ratings else 0
