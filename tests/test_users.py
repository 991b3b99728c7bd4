import pytest
from bson import ObjectId

import users
from errors import NotFoundError


@pytest.fixture
def menu(make_user, seed_restaurant, seed_menu_item):
    restaurant = seed_restaurant(make_user("restaurant_owner"))
    return [seed_menu_item(restaurant, name, price=8) for name in ("Samosa", "Lassi")]


def test_add_favorite_is_idempotent(make_user, menu, db):
    customer = make_user("customer")
    item_id = str(menu[0]["_id"])
    assert users.add_favorite(customer, item_id) == [item_id]
    assert users.add_favorite(customer, item_id) == [item_id]
    stored = db["user"].find_one({"_id": ObjectId(customer["id"])})
    assert stored["favorites"] == [menu[0]["_id"]]


def test_remove_favorite(make_user, menu):
    customer = make_user("customer")
    first, second = (str(m["_id"]) for m in menu)
    users.add_favorite(customer, first)
    users.add_favorite(customer, second)

    assert users.remove_favorite(customer, str(ObjectId())) == [first, second]
    assert users.remove_favorite(customer, "not-an-id") == [first, second]
    assert users.remove_favorite(customer, first) == [second]
    assert users.remove_favorite(customer, first) == [second]


def test_add_unknown_favorite(make_user):
    with pytest.raises(NotFoundError):
        users.add_favorite(make_user("customer"), str(ObjectId()))


def test_favorites_endpoints(client, make_user, menu):
    customer = make_user("customer")
    item_id = str(menu[1]["_id"])

    resp = client.post(f"/api/users/favorites/{item_id}", headers=customer["headers"])
    assert resp.status_code == 200
    assert resp.json() == [item_id]

    favorites = client.get("/api/users/favorites", headers=customer["headers"]).json()
    assert [f["name"] for f in favorites] == ["Lassi"]

    resp = client.delete(f"/api/users/favorites/{item_id}", headers=customer["headers"])
    assert resp.json() == []
    assert client.get("/api/users/favorites", headers=customer["headers"]).json() == []

    driver = make_user("delivery_driver")
    assert client.post(f"/api/users/favorites/{item_id}", headers=driver["headers"]).status_code == 403
    assert client.post(f"/api/users/favorites/{ObjectId()}", headers=customer["headers"]).status_code == 404


def test_profile(client, make_user, db):
    user = make_user("delivery_driver", "Dana")
    db["user"].update_one({"_id": ObjectId(user["id"])}, {"$set": {"passwordHash": "secret"}})

    resp = client.get("/api/users/profile", headers=user["headers"])
    assert resp.status_code == 200
    body = resp.json()
    assert body["id"] == user["id"]
    assert body["name"] == "Dana"
    assert "passwordHash" not in body

    resp = client.put("/api/users/profile", headers=user["headers"], json={"phone": "+44 20 7946 0958", "address": "3 Mill Road"})
    assert resp.status_code == 200
    body = resp.json()
    assert body["phone"] == "+44 20 7946 0958"
    assert body["address"] == "3 Mill Road"
    assert body["name"] == "Dana"
    assert "passwordHash" not in body


def test_profile_validation(client, make_user):
    user = make_user("customer")
    resp = client.put("/api/users/profile", headers=user["headers"], json={"name": "  "})
    assert resp.status_code == 400
    assert resp.json()["errors"][0]["field"] == "name"

    resp = client.put("/api/users/profile", headers=user["headers"], json={"phone": "call me"})
    assert resp.status_code == 400

    assert client.get("/api/users/profile").status_code == 401
    assert client.get("/api/users/profile", headers={"Authorization": "Bearer nonsense"}).status_code == 401
