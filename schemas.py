"""
Request and response schemas for the Food Delivery API

Documents live in MongoDB collections named after the lowercase model name:
- User -> "user"
- Restaurant -> "restaurant"
- MenuItem -> "menuitem"
- Order -> "order"
- Review -> "review"

Wire and document field names are camelCase; the models below accept
either the camelCase alias or the Python attribute name.
"""
import re
from typing import Annotated, List, Literal, Optional

from bson import ObjectId
from pydantic import AfterValidator, BaseModel, ConfigDict, EmailStr, Field, StringConstraints, field_validator
from pydantic.alias_generators import to_camel

from order_state import ORDER_STATUSES
from policy import ADMIN, ROLES

PHONE_RE = re.compile(r"^\+?[0-9][0-9\s\-()]{6,19}$")


def _check_object_id(value: str) -> str:
    if not ObjectId.is_valid(value):
        raise ValueError("must be a valid id")
    return value


def _check_phone(value: Optional[str]) -> Optional[str]:
    if value is not None and not PHONE_RE.match(value):
        raise ValueError("Please provide a valid phone number")
    return value


def _to_cents(value: float) -> float:
    value = round(value, 2)
    if value <= 0:
        raise ValueError("Price must be at least 0.01")
    return value


ObjectIdStr = Annotated[str, AfterValidator(_check_object_id)]
NonEmptyStr = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1)]
PhoneStr = Annotated[str, StringConstraints(strip_whitespace=True), AfterValidator(_check_phone)]
Price = Annotated[float, Field(gt=0, allow_inf_nan=False), AfterValidator(_to_cents)]
OrderStatus = Literal[tuple(ORDER_STATUSES)]
RegisterRole = Literal[tuple(r for r in ROLES if r != ADMIN)]


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# Auth
class RegisterRequest(CamelModel):
    name: NonEmptyStr
    email: EmailStr
    password: str = Field(..., min_length=6)
    role: RegisterRole = "customer"
    phone: Optional[PhoneStr] = None
    address: Optional[NonEmptyStr] = None


class LoginRequest(BaseModel):
    email: EmailStr
    password: str


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user: dict


# Profile
class ProfileUpdate(CamelModel):
    name: Optional[NonEmptyStr] = None
    phone: Optional[PhoneStr] = None
    address: Optional[NonEmptyStr] = None


# Restaurants
class GeoPoint(BaseModel):
    type: Literal["Point"] = "Point"
    coordinates: List[float] = Field(..., min_length=2, max_length=2, description="[longitude, latitude]")

    @field_validator("coordinates")
    @classmethod
    def _in_range(cls, value: List[float]) -> List[float]:
        longitude, latitude = value
        if not -180 <= longitude <= 180 or not -90 <= latitude <= 90:
            raise ValueError("coordinates must be [longitude, latitude] within range")
        return value


class RestaurantIn(CamelModel):
    name: NonEmptyStr
    address: NonEmptyStr
    phone: PhoneStr
    cuisine: List[str]
    opening_hours: NonEmptyStr
    managers: List[ObjectIdStr] = Field(default_factory=list)
    location: Optional[GeoPoint] = None


class RestaurantUpdate(CamelModel):
    name: Optional[NonEmptyStr] = None
    address: Optional[NonEmptyStr] = None
    phone: Optional[PhoneStr] = None
    cuisine: Optional[List[str]] = None
    opening_hours: Optional[NonEmptyStr] = None
    managers: Optional[List[ObjectIdStr]] = None
    location: Optional[GeoPoint] = None


# Menu items
class MenuItemIn(CamelModel):
    name: NonEmptyStr
    price: Price
    restaurant: ObjectIdStr
    category: NonEmptyStr
    description: Optional[str] = None
    image: Optional[str] = None
    is_available: bool = True


class MenuItemUpdate(CamelModel):
    """Staff-editable attributes; rating fields belong to the aggregator."""
    name: Optional[NonEmptyStr] = None
    price: Optional[Price] = None
    category: Optional[NonEmptyStr] = None
    description: Optional[str] = None
    image: Optional[str] = None
    is_available: Optional[bool] = None


# Orders
class OrderItemIn(CamelModel):
    menu_item: ObjectIdStr
    quantity: int = Field(..., ge=1)


class OrderIn(CamelModel):
    restaurant: ObjectIdStr
    items: List[OrderItemIn]
    delivery_address: str


class StatusUpdate(BaseModel):
    status: OrderStatus


# Reviews
class ReviewIn(CamelModel):
    menu_item: ObjectIdStr
    rating: int = Field(..., ge=1, le=5)
    comment: Optional[str] = None
    order: ObjectIdStr
