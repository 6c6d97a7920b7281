from bson import ObjectId

SINGLE_ROOMS = [{"type": "Single", "price": 9000, "available": 1}]


def _book(client, user, pid, **extra):
    body = {"propertyId": pid, "checkInDate": "2026-11-01T00:00:00Z", **extra}
    return client.post("/api/bookings", json=body, headers=user["headers"])


def _available(pool, pid):
    doc = pool.collection("properties").find_one({"_id": ObjectId(pid)})
    return doc["roomTypes"][0]["available"]


def test_create_booking(client, make_property, student):
    pid = str(make_property(isApproved=True)["_id"])

    r = _book(client, student, pid, settlingInKit={"name": "Starter", "price": 1500})

    assert r.status_code == 201, r.text
    booking = r.json()["booking"]
    assert booking["property"] == pid
    assert booking["user"] == student["user_id"]
    assert booking["status"] == "pending"
    assert booking["paymentStatus"] == "pending"
    assert booking["roomType"] == "Standard"
    assert booking["commissionAmount"] == 600
    assert booking["totalAmount"] == 8000 + 600 + 1500


def test_booking_requires_login(client, make_property):
    pid = str(make_property(isApproved=True)["_id"])
    r = client.post("/api/bookings", json={"propertyId": pid, "checkInDate": "2026-11-01T00:00:00Z"})
    assert r.status_code == 401


def test_cannot_book_unpublished_property(client, make_property, student):
    pending = str(make_property()["_id"])
    rejected = str(make_property(isRejected=True)["_id"])

    for pid in (pending, rejected):
        r = _book(client, student, pid)
        assert r.status_code == 404
        assert r.json() == {"error": "Property not found"}


def test_booking_dates_are_checked(client, make_property, student):
    pid = str(make_property(isApproved=True)["_id"])

    r = _book(client, student, pid, checkOutDate="2026-10-01T00:00:00Z")

    assert r.status_code == 400
    assert r.json() == {"error": "Check-out must be after check-in"}


def test_room_is_held_and_released(client, pool, make_property, student, admin):
    pid = str(make_property(isApproved=True, roomTypes=SINGLE_ROOMS)["_id"])

    r = _book(client, student, pid, roomType="Single")
    assert r.status_code == 201, r.text
    booking = r.json()["booking"]
    assert booking["price"] == 9000
    assert booking["roomHeld"] is True
    assert _available(pool, pid) == 0

    r = _book(client, admin, pid, roomType="Single")
    assert r.status_code == 400
    assert r.json() == {"error": "No rooms available for this type"}

    r = _book(client, admin, pid, roomType="Triple")
    assert r.status_code == 404

    r = client.delete(f"/api/bookings/{booking['_id']}", headers=student["headers"])
    assert r.status_code == 200, r.text
    assert _available(pool, pid) == 1
    assert pool.collection("bookings").count_documents({}) == 0


def test_list_my_bookings(client, make_property, student, owner):
    pid = str(make_property(isApproved=True)["_id"])
    _book(client, student, pid)
    _book(client, owner, pid)

    r = client.get("/api/bookings", headers=student["headers"])

    assert r.status_code == 200
    assert r.json()["count"] == 1
    booking = r.json()["bookings"][0]
    assert booking["user"] == student["user_id"]
    assert booking["property"]["_id"] == pid
    assert booking["property"]["title"] == "Sunrise PG"


def test_booking_visibility(client, make_property, owner, student, executive, admin):
    pid = str(make_property(isApproved=True)["_id"])
    bid = _book(client, student, pid).json()["booking"]["_id"]

    for user in (student, owner, admin):
        r = client.get(f"/api/bookings/{bid}", headers=user["headers"])
        assert r.status_code == 200, r.text

    r = client.get(f"/api/bookings/{bid}", headers=executive["headers"])
    assert r.status_code == 403

    r = client.get(f"/api/bookings/{ObjectId()}", headers=admin["headers"])
    assert r.status_code == 404
    assert r.json() == {"error": "Booking not found"}


def test_owner_updates_booking_status(client, pool, make_property, owner, student):
    pid = str(make_property(isApproved=True, roomTypes=SINGLE_ROOMS)["_id"])
    bid = _book(client, student, pid, roomType="Single").json()["booking"]["_id"]

    r = client.patch(f"/api/bookings/{bid}", json={"status": "confirmed"}, headers=student["headers"])
    assert r.status_code == 403

    r = client.patch(f"/api/bookings/{bid}", json={"status": "confirmed"}, headers=owner["headers"])
    assert r.status_code == 200, r.text
    assert r.json()["booking"]["status"] == "confirmed"
    assert _available(pool, pid) == 0

    r = client.patch(f"/api/bookings/{bid}", json={"status": "cancelled"}, headers=owner["headers"])
    assert r.json()["booking"]["status"] == "cancelled"
    assert _available(pool, pid) == 1

    r = client.patch(f"/api/bookings/{bid}", json={"status": "confirmed"}, headers=owner["headers"])
    assert r.status_code == 400
    assert r.json() == {"error": "Booking is already cancelled"}

    # deleting a cancelled booking does not return the room twice
    client.delete(f"/api/bookings/{bid}", headers=student["headers"])
    assert _available(pool, pid) == 1


def test_only_booker_or_admin_cancels(client, make_property, owner, student, admin):
    pid = str(make_property(isApproved=True)["_id"])
    first = _book(client, student, pid).json()["booking"]["_id"]
    second = _book(client, student, pid).json()["booking"]["_id"]

    assert client.delete(f"/api/bookings/{first}", headers=owner["headers"]).status_code == 403
    assert client.delete(f"/api/bookings/{first}", headers=student["headers"]).status_code == 200
    assert client.delete(f"/api/bookings/{second}", headers=admin["headers"]).status_code == 200
    assert client.get("/api/bookings", headers=student["headers"]).json()["count"] == 0
