"""
Food catalog, user account and order services.

Every operation takes its store (and hasher) from the instance, validates the
input it was given and maps failures to the errors in `errors`.
"""

import logging
import math
from typing import Any, Dict, List, Optional

import pydantic
from bson.errors import InvalidDocument
from passlib.exc import MissingBackendError
from pymongo.errors import DuplicateKeyError, PyMongoError

from database import Store, to_object_id
from errors import Conflict, InvalidId, NotFound, ServerError, Unauthorized, ValidationError
from schemas import Food, Order, OrderItem, User
from security import PasswordHasher

logger = logging.getLogger(__name__)

NEWEST_FIRST = [("createdAt", -1), ("_id", -1)]


FIELD_ERRORS = {
    "name": "name must not be empty",
    "price": "price must be a non-negative number",
    "username": "username must not be empty",
}


def _schema_message(exc: pydantic.ValidationError) -> str:
    loc = exc.errors()[0].get("loc") or ("",)
    return FIELD_ERRORS.get(str(loc[0]), f"invalid value for {loc[0]}" if loc[0] else "invalid value")


class FoodCatalog:
    def __init__(self, store: Store):
        self.store = store

    def list_foods(self) -> List[dict]:
        try:
            return self.store.get_documents("food", sort=NEWEST_FIRST)
        except PyMongoError as exc:
            logger.exception("Listing foods failed")
            raise ServerError("Could not fetch foods") from exc

    def get_food(self, food_id: str) -> dict:
        try:
            food = self.store.get_document_by_id("food", food_id)
        except PyMongoError as exc:
            logger.exception("Fetching food %s failed", food_id)
            raise ServerError("Could not fetch food") from exc
        if not food:
            raise NotFound("Food not found")
        return food

    def create_food(
        self,
        name: Optional[str],
        price: Any,
        description: Optional[str] = None,
        category: Optional[str] = None,
        image: Optional[str] = None,
    ) -> dict:
        if not name or price is None:
            raise ValidationError("name and price are required")

        fields = {"description": description, "category": category, "image": image}
        try:
            food = Food(name=name, price=price, **{k: v for k, v in fields.items() if v is not None})
        except pydantic.ValidationError as exc:
            raise ValidationError(_schema_message(exc)) from exc

        try:
            food_id = self.store.create_document("food", food)
            created = self.store.get_document_by_id("food", food_id)
        except PyMongoError as exc:
            logger.exception("Adding food %r failed", name)
            raise ServerError("Failed to add food") from exc
        logger.info("Food added: %s (%s)", food.name, food_id)
        return created


class UserAccounts:
    def __init__(self, store: Store, hasher: PasswordHasher):
        self.store = store
        self.hasher = hasher

    def register(self, username: Optional[str], password: Optional[str], email: Optional[str] = None) -> Dict[str, str]:
        if not username or not password:
            raise ValidationError("username & password required")

        username = username.strip()
        try:
            exists = self.store.find_one("user", {"username": username})
        except PyMongoError as exc:
            logger.exception("Looking up %r failed", username)
            raise ServerError("Registration failed") from exc
        if exists:
            raise Conflict("Username already exists")

        try:
            user = User(username=username, password=self.hasher.hash(password), email=email or "")
        except pydantic.ValidationError as exc:
            raise ValidationError(_schema_message(exc)) from exc
        except (MissingBackendError, ValueError) as exc:
            logger.exception("Hashing password for %r failed", username)
            raise ServerError("Registration failed") from exc

        try:
            user_id = self.store.create_document("user", user)
        except DuplicateKeyError as exc:
            raise Conflict("Username already exists") from exc
        except PyMongoError as exc:
            logger.exception("Registering %r failed", username)
            raise ServerError("Registration failed") from exc

        logger.info("User registered: %s (%s)", user.username, user_id)
        return {"id": user_id, "username": user.username}

    def login(self, username: Optional[str], password: Optional[str]) -> Dict[str, str]:
        if not username or not password:
            raise ValidationError("username & password required")

        try:
            user = self.store.find_one("user", {"username": username.strip()})
            ok = user is not None and self.hasher.verify(password, user["password"])
        except (PyMongoError, MissingBackendError, ValueError) as exc:
            logger.exception("Login for %r failed", username)
            raise ServerError("Login failed") from exc

        if not ok:
            # Same answer for unknown user and wrong password
            raise Unauthorized("Invalid username or password")
        return {"id": user["_id"], "username": user["username"]}


def _coerce_quantity(value: Any) -> int:
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 1
    if not math.isfinite(number) or number < 1:
        return 1
    return int(number)


def _coerce_price(value: Any) -> float:
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0.0
    if not math.isfinite(number) or number < 0:
        return 0.0
    return number


def coerce_item(raw: Any) -> dict:
    """Normalize one submitted line item; bad quantities become 1 and bad prices 0."""
    item = raw if isinstance(raw, dict) else {}
    name = item.get("name")
    return {
        "food_id": item.get("foodId") or None,
        "name": str(name) if name else "",
        "price": _coerce_price(item.get("price")),
        "quantity": _coerce_quantity(item.get("quantity")),
    }


def order_total(items: List[dict]) -> float:
    return sum(item["price"] * item["quantity"] for item in items)


class OrderBook:
    def __init__(self, store: Store):
        self.store = store

    def place_order(self, user_id: Any, items: Any) -> Dict[str, str]:
        if not user_id or not isinstance(items, list) or not items:
            raise ValidationError("userId and items required")

        line_items = [coerce_item(raw) for raw in items]
        total = order_total(line_items)
        try:
            order = Order(
                user_id=user_id,
                items=[OrderItem(**item) for item in line_items],
                total_amount=total,
            )
            order_id = self.store.create_document("order", order)
        except (pydantic.ValidationError, PyMongoError, InvalidDocument, OverflowError) as exc:
            logger.exception("Placing order for user %r failed", user_id)
            raise ServerError("Order failed") from exc

        logger.info("Order placed: %s (user=%s, total=%.2f)", order_id, user_id, total)
        return {"orderId": order_id}

    def list_orders_for_user(self, user_id: str) -> List[dict]:
        # A malformed id is reported as a server error, like any other failure here
        try:
            return self.store.get_documents("order", {"userId": to_object_id(user_id)}, sort=NEWEST_FIRST)
        except (InvalidId, PyMongoError) as exc:
            logger.warning("Fetching orders for user %r failed: %s", user_id, exc)
            raise ServerError("Could not fetch orders") from exc
