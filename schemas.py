"""
Database Schemas for the Food Ordering API

Each Pydantic model below corresponds to a MongoDB collection.
The collection name is the lowercase class name (e.g., Food -> "food").
Attributes are snake_case in Python and stored under their camelCase alias.
"""
from typing import Annotated, Any, List, Optional

from bson import ObjectId
from pydantic import BaseModel, BeforeValidator, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


def _to_object_id(value: Any) -> Any:
    if isinstance(value, str):
        if not ObjectId.is_valid(value):
            raise ValueError(f"'{value}' is not a valid ObjectId")
        return ObjectId(value)
    return value


PyObjectId = Annotated[ObjectId, BeforeValidator(_to_object_id)]


class MongoModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        arbitrary_types_allowed=True,
    )

    def to_document(self) -> dict:
        return self.model_dump(by_alias=True)


def _strip(value: Any) -> Any:
    return value.strip() if isinstance(value, str) else value


class Food(MongoModel):
    name: str = Field(..., min_length=1, description="Display name")
    description: str = ""
    price: float = Field(..., ge=0, allow_inf_nan=False)
    category: str = "General"
    image: str = Field("", description="Image URL")

    @field_validator("name", mode="before")
    @classmethod
    def strip_name(cls, value: Any) -> Any:
        return _strip(value)


class User(MongoModel):
    username: str = Field(..., min_length=1, description="Unique login name")
    password: str = Field(..., min_length=1, description="BCrypt password hash")
    email: str = ""

    @field_validator("username", mode="before")
    @classmethod
    def strip_username(cls, value: Any) -> Any:
        return _strip(value)


class OrderItem(MongoModel):
    food_id: Optional[PyObjectId] = Field(None, description="Reference to food _id")
    name: str = ""
    price: float = Field(0.0, ge=0, allow_inf_nan=False)
    quantity: int = Field(1, ge=1)


class Order(MongoModel):
    user_id: PyObjectId = Field(..., description="Reference to user _id")
    items: List[OrderItem]
    total_amount: float = Field(0.0, ge=0, allow_inf_nan=False)
    status: str = "Pending"
