import mongomock
import pytest
from bson import ObjectId
from fastapi.testclient import TestClient

import database
from auth import create_access_token
from main import app


@pytest.fixture(autouse=True)
def db(monkeypatch):
    mock_db = mongomock.MongoClient()["food_delivery_test"]
    monkeypatch.setattr(database, "db", mock_db)
    return mock_db


@pytest.fixture
def client():
    # used without a context manager, so the lifespan (index creation) never runs
    return TestClient(app)


@pytest.fixture
def make_user(db):
    def _make(role="customer", name="Test User"):
        doc = {"name": name, "email": f"{ObjectId()}@foodmail.io", "role": role, "favorites": []}
        db["user"].insert_one(doc)
        token = create_access_token({"sub": str(doc["_id"]), "role": role})
        return {"id": str(doc["_id"]), "role": role, "name": name, "headers": {"Authorization": f"Bearer {token}"}}
    return _make


@pytest.fixture
def seed_restaurant(db):
    def _seed(owner, managers=(), **extra):
        doc = {
            "name": "Spice Route",
            "owner": ObjectId(owner["id"]),
            "managers": [ObjectId(m["id"]) for m in managers],
            "address": "12 Curry Lane",
            "phone": "+15551234567",
            "cuisine": ["Indian"],
            "openingHours": "11:00-23:00",
            "rating": 0,
        }
        doc.update(extra)
        db["restaurant"].insert_one(doc)
        return doc
    return _seed


@pytest.fixture
def seed_menu_item(db):
    def _seed(restaurant, name="Butter Chicken", price=10.0, **extra):
        doc = {
            "restaurant": restaurant["_id"],
            "name": name,
            "price": price,
            "category": "Mains",
            "isAvailable": True,
            "averageRating": 0,
            "numberOfRatings": 0,
        }
        doc.update(extra)
        db["menuitem"].insert_one(doc)
        return doc
    return _seed
