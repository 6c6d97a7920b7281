"""
MongoDB Connection Utility

MongoDB stores every SecondHome document:
- properties and messes (listings with moderation/verification envelope)
- users, bookings, likes, favorites, reviews
- notifications
- places (points of interest for proximity search)

The process owns exactly one MongoPool. It is created at startup, handed to
request handlers through the `get_pool` dependency, and closed on shutdown.
pymongo pools sockets internally; MongoPool only guards the client handle.
"""
import logging
import threading
from typing import Optional

from pymongo import ASCENDING, DESCENDING, GEOSPHERE, MongoClient
from pymongo.collection import Collection
from pymongo.database import Database
from pymongo.errors import PyMongoError

from app.core.config import Settings, get_settings

logger = logging.getLogger(__name__)


# Collection name constants (avoid typos)
COLLECTIONS = {
    "properties": "properties",
    "messes": "messes",
    "users": "users",
    "bookings": "bookings",
    "likes": "likes",
    "favorites": "favorites",
    "reviews": "reviews",
    "notifications": "notifications",
    "places": "places",
}


class MongoPool:
    """
    Process-wide MongoDB handle.

    The client is built lazily on first use. `reconnect` drops a client that
    failed a ping and builds a new one; it does not retry or back off.
    """

    def __init__(self, settings: Settings, client: Optional[MongoClient] = None):
        self.settings = settings
        self._client = client
        self._lock = threading.Lock()

    def _build_client(self) -> MongoClient:
        return MongoClient(
            self.settings.mongodb_uri,
            maxPoolSize=self.settings.mongodb_max_pool_size,
            serverSelectionTimeoutMS=self.settings.mongodb_server_selection_timeout_ms,
        )

    @property
    def client(self) -> MongoClient:
        if self._client is None:
            with self._lock:
                if self._client is None:
                    logger.info("Creating MongoDB client for %s", self.settings.mongodb_db)
                    self._client = self._build_client()
        return self._client

    @property
    def db(self) -> Database:
        return self.client[self.settings.mongodb_db]

    def collection(self, name: str) -> Collection:
        """
        Get a specific collection by its key in COLLECTIONS.
        """
        return self.db[COLLECTIONS[name]]

    def ping(self) -> bool:
        """
        Test if MongoDB is reachable.
        Returns True if connection successful, False otherwise.
        """
        try:
            self.client.admin.command("ping")
            return True
        except PyMongoError as e:
            logger.warning("MongoDB ping failed: %s", e)
            return False

    def reconnect(self) -> bool:
        """Replace the client after a failed ping. Returns the new ping result."""
        with self._lock:
            stale, self._client = self._client, None
        if stale is not None:
            stale.close()
        return self.ping()

    def ensure_connected(self) -> bool:
        return self.ping() or self.reconnect()

    def close(self) -> None:
        with self._lock:
            if self._client is not None:
                self._client.close()
                self._client = None


_pool: Optional[MongoPool] = None
_pool_lock = threading.Lock()


def init_pool(settings: Settings = None, client: MongoClient = None) -> MongoPool:
    """Create the process pool. Called once from the app lifespan (or tests)."""
    global _pool
    with _pool_lock:
        if _pool is not None:
            _pool.close()
        _pool = MongoPool(settings or get_settings(), client=client)
    return _pool


def get_pool() -> MongoPool:
    """FastAPI dependency - the process-owned MongoPool."""
    if _pool is None:
        return init_pool()
    return _pool


def close_pool() -> None:
    global _pool
    with _pool_lock:
        if _pool is not None:
            _pool.close()
            _pool = None


def init_mongo_indexes(pool: MongoPool) -> None:
    """
    Create indexes for better query performance.
    Call this once during app startup.
    """
    # Geospatial indexes for proximity queries
    for name in ("properties", "messes", "places"):
        pool.collection(name).create_index([("coordinates", GEOSPHERE)])

    # Moderation queue lookups
    pool.collection("properties").create_index([
        ("isApproved", ASCENDING),
        ("isRejected", ASCENDING),
        ("createdAt", DESCENDING),
    ])
    pool.collection("properties").create_index("owner")
    pool.collection("messes").create_index("owner")

    pool.collection("users").create_index("email", unique=True)

    # A user can like an item only once
    pool.collection("likes").create_index(
        [("user", ASCENDING), ("itemType", ASCENDING), ("itemId", ASCENDING)],
        unique=True,
    )
    pool.collection("favorites").create_index([("user", ASCENDING), ("property", ASCENDING)], unique=True)
    pool.collection("reviews").create_index(
        [("user", ASCENDING), ("itemType", ASCENDING), ("itemId", ASCENDING)],
        unique=True,
    )
    pool.collection("reviews").create_index([("itemType", ASCENDING), ("itemId", ASCENDING), ("createdAt", DESCENDING)])
    pool.collection("bookings").create_index([("user", ASCENDING), ("createdAt", DESCENDING)])

    pool.collection("notifications").create_index([
        ("user", ASCENDING),
        ("read", ASCENDING),
        ("createdAt", DESCENDING),
    ])

    logger.info("MongoDB indexes created successfully")
