from bson import ObjectId


def _register(client, email="asha@example.com", role="owner", password="s3cret-pass"):
    return client.post(
        "/api/auth/register",
        json={"name": "Asha Rao", "email": email, "password": password, "role": role},
    )


def _login(client, email="asha@example.com", password="s3cret-pass"):
    return client.post("/api/auth/login", json={"email": email, "password": password})


def test_register_login_me(client):
    r = _register(client)
    assert r.status_code == 201, r.text

    r = _login(client, email="ASHA@example.com")
    assert r.status_code == 200, r.text
    token = r.json()["access_token"]
    assert r.json()["role"] == "owner"

    r = client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})
    assert r.status_code == 200
    assert r.json()["email"] == "asha@example.com"
    assert r.json()["role"] == "owner"


def test_duplicate_email(client):
    assert _register(client).status_code == 201
    r = _register(client)
    assert r.status_code == 400
    assert r.json() == {"error": "Email already registered"}


def test_privileged_roles_cannot_self_register(client):
    assert _register(client, role="admin").status_code == 403
    assert _register(client, email="e@example.com", role="executive").status_code == 403


def test_bad_credentials(client):
    _register(client)
    r = _login(client, password="wrong-password")
    assert r.status_code == 401
    assert r.json() == {"error": "Invalid email or password"}

    assert _login(client, email="nobody@example.com").status_code == 401


def test_me_requires_token(client):
    assert client.get("/api/auth/me").status_code == 401


def test_delete_account_cascades(client, pool, make_property, owner, student):
    owner_oid = ObjectId(owner["user_id"])
    make_property()
    make_property(isApproved=True)
    other = make_property(
        owner_id=student["user_id"],
        isApproved=True,
        roomTypes=[{"type": "Single", "price": 9000, "available": 2}],
    )
    pid = str(other["_id"])

    r = client.post(
        "/api/bookings",
        json={"propertyId": pid, "checkInDate": "2026-11-01T00:00:00Z", "roomType": "Single"},
        headers=owner["headers"],
    )
    assert r.status_code == 201, r.text
    r = client.post("/api/likes", json={"itemType": "property", "itemId": pid}, headers=owner["headers"])
    assert r.json()["liked"] is True
    client.post("/api/favorites", json={"propertyId": pid}, headers=owner["headers"])
    review = {"itemType": "property", "itemId": pid, "rating": 2, "comment": "Noisy street"}
    assert client.post("/api/reviews", json=review, headers=owner["headers"]).status_code == 200
    assert pool.collection("properties").find_one({"_id": other["_id"]})["roomTypes"][0]["available"] == 1

    r = client.delete("/api/auth/me", headers=owner["headers"])

    assert r.status_code == 200, r.text
    removed = r.json()["removed"]
    assert removed["properties"] == 2
    assert removed["bookings"] == 1
    assert removed["likes"] == 1
    assert removed["favorites"] == 1
    assert removed["reviews"] == 1
    assert removed["users"] == 1

    assert pool.collection("properties").count_documents({}) == 1
    remaining = pool.collection("properties").find_one({"_id": other["_id"]})
    assert remaining["roomTypes"][0]["available"] == 2
    assert remaining["rating"] == 0
    assert remaining["reviews"] == 0

    r = client.get("/api/likes", params={"itemType": "property", "itemId": pid})
    assert r.json()["likeCount"] == 0
    assert pool.collection("users").find_one({"_id": owner_oid}) is None
    assert client.get("/api/auth/me", headers=owner["headers"]).status_code == 401
