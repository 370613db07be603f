from collections import Counter

from bson import ObjectId
from fastapi.testclient import TestClient

from main import create_app
from seed import CATEGORIES


def test_catalog_is_seeded_on_startup(client):
    foods = client.get("/api/foods").json()

    assert len(foods) == 25
    assert Counter(f["category"] for f in foods) == {c: 5 for c in CATEGORIES}


def test_seeding_does_not_repeat_on_restart(client, store, hasher):
    with TestClient(create_app(store=store, hasher=hasher)) as second:
        assert len(second.get("/api/foods").json()) == 25


def test_health(client):
    assert client.get("/api/health").json() == {"status": "ok", "database": "connected"}


class TestFoods:
    def test_create_food(self, client):
        response = client.post("/api/foods", json={"name": "Tacos", "price": 95, "image": "/img/tacos.png"})

        assert response.status_code == 201
        body = response.json()
        assert body["message"] == "Food added"
        assert body["food"]["price"] == 95
        assert body["food"]["category"] == "General"
        assert body["food"]["image"] == "/img/tacos.png"
        assert body["food"]["createdAt"]

    def test_created_food_is_listed_first(self, client):
        created = client.post("/api/foods", json={"name": "Newest", "price": 10}).json()["food"]
        assert client.get("/api/foods").json()[0]["_id"] == created["_id"]

    def test_get_food(self, client):
        created = client.post("/api/foods", json={"name": "Soup", "price": 40}).json()["food"]

        response = client.get(f"/api/foods/{created['_id']}")
        assert response.status_code == 200
        assert response.json()["name"] == "Soup"

    def test_get_food_not_found(self, client):
        response = client.get(f"/api/foods/{ObjectId()}")
        assert response.status_code == 404
        assert response.json() == {"error": "Food not found"}

    def test_get_food_invalid_id(self, client):
        response = client.get("/api/foods/not-an-id")
        assert response.status_code == 400
        assert response.json() == {"error": "Invalid ID"}

    def test_create_food_missing_fields(self, client):
        response = client.post("/api/foods", json={"name": "Nothing"})
        assert response.status_code == 400
        assert response.json() == {"error": "name and price are required"}

    def test_create_food_negative_price(self, client):
        response = client.post("/api/foods", json={"name": "Refund", "price": -3})
        assert response.status_code == 400
        assert response.json() == {"error": "price must be a non-negative number"}


class TestAccounts:
    def test_register(self, client, store):
        response = client.post("/api/register", json={"username": "bob", "password": "pw", "email": "bob@example.com"})

        assert response.status_code == 201
        body = response.json()
        assert body["message"] == "Registered"
        assert body["username"] == "bob"
        assert store.find_one("user", {"username": "bob"})["password"] != "pw"

    def test_register_duplicate(self, client, registered_user):
        response = client.post("/api/register", json={"username": "alice", "password": "x"})
        assert response.status_code == 400
        assert response.json() == {"error": "Username already exists"}

    def test_register_missing_fields(self, client):
        response = client.post("/api/register", json={"username": "bob"})
        assert response.status_code == 400
        assert response.json() == {"error": "username & password required"}

    def test_register_accepts_plain_text_email(self, client, store):
        response = client.post("/api/register", json={"username": "carol", "password": "pw", "email": "carol"})
        assert response.status_code == 201
        assert store.find_one("user", {"username": "carol"})["email"] == "carol"

    def test_register_hashing_failure(self, client, hasher, monkeypatch):
        def broken_hash(password):
            raise ValueError("backend exploded")

        monkeypatch.setattr(hasher, "hash", broken_hash)
        response = client.post("/api/register", json={"username": "dave", "password": "pw"})
        assert response.status_code == 500
        assert response.json() == {"error": "Registration failed"}

    def test_login(self, client, registered_user):
        response = client.post("/api/login", json={"username": "alice", "password": "s3cret"})

        assert response.status_code == 200
        assert response.json() == {
            "message": "Login successful",
            "userId": registered_user["userId"],
            "username": "alice",
        }

    def test_login_does_not_reveal_which_field_was_wrong(self, client, registered_user):
        wrong_password = client.post("/api/login", json={"username": "alice", "password": "bad"})
        unknown_user = client.post("/api/login", json={"username": "nobody", "password": "s3cret"})

        assert wrong_password.status_code == unknown_user.status_code == 400
        assert wrong_password.json() == unknown_user.json() == {"error": "Invalid username or password"}

    def test_malformed_body(self, client):
        response = client.post("/api/login", content="{not json", headers={"Content-Type": "application/json"})
        assert response.status_code == 400
        assert "error" in response.json()


class TestOrders:
    def test_place_order(self, client, registered_user):
        response = client.post("/api/order", json={
            "userId": registered_user["userId"],
            "items": [{"price": 50, "quantity": 2}, {"price": "bad", "quantity": 0}],
        })

        assert response.status_code == 201
        assert response.json()["message"] == "Order placed"

        orders = client.get(f"/api/users/{registered_user['userId']}/orders").json()
        assert len(orders) == 1
        assert orders[0]["_id"] == response.json()["orderId"]
        assert orders[0]["totalAmount"] == 100
        assert orders[0]["status"] == "Pending"

    def test_empty_items(self, client):
        response = client.post("/api/order", json={"userId": str(ObjectId()), "items": []})
        assert response.status_code == 400
        assert response.json() == {"error": "userId and items required"}

    def test_missing_user(self, client):
        response = client.post("/api/order", json={"items": [{"price": 1}]})
        assert response.status_code == 400

    def test_orders_listed_per_user_newest_first(self, client):
        alice, bob = str(ObjectId()), str(ObjectId())
        ids = [
            client.post("/api/order", json={"userId": user, "items": [{"name": "Pizza 1", "price": 100}]}).json()["orderId"]
            for user in (alice, bob, alice)
        ]

        orders = client.get(f"/api/users/{alice}/orders").json()
        assert [o["_id"] for o in orders] == [ids[2], ids[0]]

    def test_orders_for_malformed_user_id(self, client):
        response = client.get("/api/users/garbage/orders")
        assert response.status_code == 500
        assert response.json() == {"error": "Could not fetch orders"}


def test_static_index_is_served(client):
    response = client.get("/")
    assert response.status_code == 200
    assert "text/html" in response.headers["content-type"]


def test_order_with_oversized_quantity_fails_cleanly(client, store, monkeypatch):
    def reject(collection_name, data):
        raise OverflowError("MongoDB can only handle up to 8-byte ints")

    monkeypatch.setattr(store, "create_document", reject)
    response = client.post("/api/order", json={"userId": str(ObjectId()), "items": [{"price": 1, "quantity": 1e20}]})
    assert response.status_code == 500
    assert response.json() == {"error": "Order failed"}


def test_unexpected_error_is_logged_once(store, hasher, monkeypatch, caplog):
    def explode(*args, **kwargs):
        raise RuntimeError("boom")

    with TestClient(create_app(store=store, hasher=hasher), raise_server_exceptions=False) as test_client:
        monkeypatch.setattr(store, "get_documents", explode)
        with caplog.at_level("INFO"):
            response = test_client.get("/api/foods")

    assert response.status_code == 500
    assert response.json() == {"error": "Internal server error"}
    assert len([r for r in caplog.records if r.exc_info]) == 1
