import mongomock
import pytest
from fastapi.testclient import TestClient

from app.api.deps import get_verification_advisor
from app.core.auth import create_access_token
from app.core.config import Settings
from app.db.mongodb import MongoPool, get_pool
from app.main import app
from app.services.mongo_service import ListingService, UserService
from app.services.verification_advisor import VerificationAdvisor


@pytest.fixture
def pool():
    settings = Settings(mongodb_db="secondhome_test")
    return MongoPool(settings, client=mongomock.MongoClient())


@pytest.fixture
def client(pool):
    """
    HTTP client wired to the mongomock pool and an advisor with no
    credentials (every assessment is manual review unless a test overrides it).
    """
    app.dependency_overrides[get_pool] = lambda: pool
    app.dependency_overrides[get_verification_advisor] = lambda: VerificationAdvisor(None)

    yield TestClient(app)

    app.dependency_overrides.clear()


def _make_user(pool, role, email):
    doc = UserService(pool).insert(name=f"{role.title()} User", email=email, password_hash="not-a-hash", role=role)
    user_id = str(doc["_id"])
    token = create_access_token({"sub": user_id, "role": role})
    return {
        "user_id": user_id,
        "role": role,
        "email": email,
        "headers": {"Authorization": f"Bearer {token}"},
    }


@pytest.fixture
def admin(pool):
    return _make_user(pool, "admin", "admin@secondhome.test")


@pytest.fixture
def executive(pool):
    return _make_user(pool, "executive", "exec@secondhome.test")


@pytest.fixture
def owner(pool):
    return _make_user(pool, "owner", "owner@secondhome.test")


@pytest.fixture
def student(pool):
    return _make_user(pool, "user", "student@secondhome.test")


@pytest.fixture
def make_property(pool, owner):
    """Insert a property (pending by default); extra kwargs are $set afterwards."""
    listings = ListingService(pool, "properties")

    def _make(title="Sunrise PG", coordinates=(77.5946, 12.9716), owner_id=None, **state):
        data = {
            "title": title,
            "description": "Furnished rooms near campus with meals and wifi.",
            "type": "PG",
            "gender": "Unisex",
            "address": "12 College Road",
            "location": "Koramangala",
            "city": "Bengaluru",
            "price": 8000,
            "deposit": 16000,
            "amenities": ["WiFi", "Laundry"],
        }
        if coordinates is not None:
            data["coordinates"] = {"type": "Point", "coordinates": list(coordinates)}
        doc = listings.insert(owner_id or owner["user_id"], data)
        if state:
            doc = listings.update_fields(doc["_id"], state)
        return doc

    return _make
