from fastapi.testclient import TestClient
from pymongo.errors import PyMongoError

import database
import menus
from main import app


def test_register_then_login(client, db):
    resp = client.post("/api/auth/register", json={
        "name": "Ana", "email": "ana@foodmail.io", "password": "s3cret-pass", "role": "delivery_driver",
    })
    assert resp.status_code == 201
    body = resp.json()
    assert body["role"] == "delivery_driver"
    assert body["favorites"] == []
    assert "passwordHash" not in body
    assert db["user"].find_one({"email": "ana@foodmail.io"})["passwordHash"] != "s3cret-pass"

    resp = client.post("/api/auth/login", json={"email": "ana@foodmail.io", "password": "s3cret-pass"})
    assert resp.status_code == 200
    token = resp.json()["access_token"]
    assert resp.json()["user"]["name"] == "Ana"

    profile = client.get("/api/users/profile", headers={"Authorization": f"Bearer {token}"})
    assert profile.json()["email"] == "ana@foodmail.io"


def test_register_rejections(client):
    payload = {"name": "Ben", "email": "ben@foodmail.io", "password": "hunter22"}
    assert client.post("/api/auth/register", json=payload).status_code == 201
    resp = client.post("/api/auth/register", json=payload)
    assert resp.status_code == 400
    assert resp.json()["errors"][0]["field"] == "email"

    assert client.post("/api/auth/register", json={**payload, "email": "root@foodmail.io", "role": "admin"}).status_code == 400
    assert client.post("/api/auth/register", json={**payload, "email": "not-an-email"}).status_code == 400


def test_login_with_wrong_password(client, make_user):
    client.post("/api/auth/register", json={"name": "Cy", "email": "cy@foodmail.io", "password": "right-one"})
    assert client.post("/api/auth/login", json={"email": "cy@foodmail.io", "password": "wrong-one"}).status_code == 400
    assert client.post("/api/auth/login", json={"email": "nobody@foodmail.io", "password": "x"}).status_code == 400


def test_store_failure_is_generic_500(client, monkeypatch):
    def boom():
        raise PyMongoError("connection refused to 10.0.0.5:27017")

    monkeypatch.setattr(menus, "get_popular_items", boom)
    resp = client.get("/api/menus/popular")
    assert resp.status_code == 500
    assert resp.json() == {"message": "Server error"}


def test_store_error_from_helpers_is_generic_500(client, monkeypatch):
    class BrokenCursor:
        def __iter__(self):
            raise PyMongoError("cursor died")

    class BrokenCollection:
        def find(self, *args, **kwargs):
            return BrokenCursor()

    monkeypatch.setattr(database, "db", {"restaurant": BrokenCollection()})
    resp = client.get("/api/restaurants")
    assert resp.status_code == 500
    assert resp.json() == {"message": "Server error"}


def test_unexpected_error_is_generic_500(monkeypatch):
    def boom():
        raise RuntimeError("secret internals")

    monkeypatch.setattr(menus, "get_popular_items", boom)
    resp = TestClient(app, raise_server_exceptions=False).get("/api/menus/popular")
    assert resp.status_code == 500
    assert resp.json() == {"message": "Server error"}


def test_health(client):
    assert client.get("/health").json() == {"status": "ok"}
