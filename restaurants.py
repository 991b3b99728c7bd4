import logging
import math
from typing import List, Optional

from bson import ObjectId
from fastapi import APIRouter, Depends, Query

import database
from auth import require
from errors import AuthorizationError, NotFoundError, ValidationError
from policy import authorized
from schemas import RestaurantIn, RestaurantUpdate

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/restaurants", tags=["restaurants"])

DEFAULT_MAX_DISTANCE = 5000  # metres


def get_restaurant_doc(restaurant_id: str) -> dict:
    restaurant = database.db["restaurant"].find_one({"_id": database.parse_id(restaurant_id, "Restaurant")})
    if not restaurant:
        raise NotFoundError("Restaurant not found")
    return restaurant


def _to_number(value: Optional[str], name: str) -> float:
    try:
        number = float(value)
    except (TypeError, ValueError):
        number = math.nan
    if not math.isfinite(number):
        raise ValidationError(f"{name} must be a number", field=name)
    return number


def parse_max_distance(value: Optional[str]) -> int:
    """Integer metres; absent, non-numeric, zero or negative falls back to the default."""
    try:
        distance = int(float(value))
    except (TypeError, ValueError, OverflowError):
        return DEFAULT_MAX_DISTANCE
    return distance if distance > 0 else DEFAULT_MAX_DISTANCE


def nearby_query(longitude: float, latitude: float, max_distance: int) -> dict:
    return {
        "location": {
            "$near": {
                "$geometry": {"type": "Point", "coordinates": [longitude, latitude]},
                "$maxDistance": max_distance,
            }
        }
    }


def find_nearby(longitude, latitude, max_distance=None) -> List[dict]:
    """Restaurants around a point, nearest first, within max_distance metres."""
    query = nearby_query(
        _to_number(longitude, "longitude"),
        _to_number(latitude, "latitude"),
        parse_max_distance(max_distance),
    )
    return database.get_documents("restaurant", query)


def _prepare(fields: dict) -> dict:
    if fields.get("managers") is not None:
        fields["managers"] = [ObjectId(m) for m in fields["managers"]]
    return fields


def create_restaurant(payload: RestaurantIn, principal: dict) -> dict:
    doc = _prepare(payload.model_dump(by_alias=True, exclude_none=True))
    doc["owner"] = ObjectId(principal["id"])
    doc["rating"] = 0
    doc = database.create_document("restaurant", doc)
    logger.info("Restaurant %s created by %s", doc["_id"], principal["id"])
    return doc


def update_restaurant(restaurant_id: str, payload: RestaurantUpdate, principal: dict) -> dict:
    restaurant = get_restaurant_doc(restaurant_id)
    if not authorized(principal, "restaurant:update", restaurant):
        raise AuthorizationError("Not authorized to update this restaurant")
    fields = _prepare(payload.model_dump(by_alias=True, exclude_none=True))
    fields["updatedAt"] = database.utcnow()
    database.db["restaurant"].update_one({"_id": restaurant["_id"]}, {"$set": fields})
    return database.db["restaurant"].find_one({"_id": restaurant["_id"]})


def delete_restaurant(restaurant_id: str, principal: dict) -> None:
    restaurant = get_restaurant_doc(restaurant_id)
    if not authorized(principal, "restaurant:delete", restaurant):
        raise AuthorizationError("Not authorized to delete this restaurant")
    database.db["restaurant"].delete_one({"_id": restaurant["_id"]})
    logger.info("Restaurant %s deleted by %s", restaurant["_id"], principal["id"])


# Routes
@router.post("", status_code=201)
def create(payload: RestaurantIn, user=Depends(require("restaurant:create"))):
    return database.serialize_doc(create_restaurant(payload, user))


@router.get("")
def list_restaurants():
    return [database.serialize_doc(r) for r in database.get_documents("restaurant")]


@router.get("/nearby")
def nearby(
    longitude: Optional[str] = Query(None),
    latitude: Optional[str] = Query(None),
    max_distance: Optional[str] = Query(None, alias="maxDistance"),
):
    return [database.serialize_doc(r) for r in find_nearby(longitude, latitude, max_distance)]


@router.get("/{restaurant_id}")
def get_restaurant(restaurant_id: str):
    return database.serialize_doc(get_restaurant_doc(restaurant_id))


@router.put("/{restaurant_id}")
def update(restaurant_id: str, payload: RestaurantUpdate, user=Depends(require("restaurant:update"))):
    return database.serialize_doc(update_restaurant(restaurant_id, payload, user))


@router.delete("/{restaurant_id}")
def delete(restaurant_id: str, user=Depends(require("restaurant:delete"))):
    delete_restaurant(restaurant_id, user)
    return {"message": "Restaurant removed"}
