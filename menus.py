import logging
from typing import List

from bson import ObjectId
from fastapi import APIRouter, Depends
from pymongo import DESCENDING

import database
from auth import require
from errors import AuthorizationError, NotFoundError
from policy import authorized
from restaurants import get_restaurant_doc
from schemas import MenuItemIn, MenuItemUpdate

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/menus", tags=["menu"])

POPULAR_LIMIT = 10


def get_menu_item_doc(menu_item_id: str) -> dict:
    item = database.db["menuitem"].find_one({"_id": database.parse_id(menu_item_id, "Menu item")})
    if not item:
        raise NotFoundError("Menu item not found")
    return item


def _check_staff(principal: dict, action: str, restaurant_id: ObjectId) -> None:
    restaurant = database.db["restaurant"].find_one({"_id": restaurant_id})
    if not restaurant or not authorized(principal, action, restaurant):
        raise AuthorizationError("Not authorized to manage this restaurant's menu")


def create_menu_item(payload: MenuItemIn, principal: dict) -> dict:
    restaurant = get_restaurant_doc(payload.restaurant)
    if not authorized(principal, "menu:create", restaurant):
        raise AuthorizationError("Not authorized to manage this restaurant's menu")
    doc = payload.model_dump(by_alias=True)
    doc["restaurant"] = restaurant["_id"]
    doc["averageRating"] = 0
    doc["numberOfRatings"] = 0
    doc = database.create_document("menuitem", doc)
    logger.info("Menu item %s added to restaurant %s", doc["_id"], restaurant["_id"])
    return doc


def update_menu_item(menu_item_id: str, payload: MenuItemUpdate, principal: dict) -> dict:
    item = get_menu_item_doc(menu_item_id)
    _check_staff(principal, "menu:update", item["restaurant"])
    fields = payload.model_dump(by_alias=True, exclude_none=True)
    fields["updatedAt"] = database.utcnow()
    # $set of attribute fields only; the rating fields are left to the aggregator
    database.db["menuitem"].update_one({"_id": item["_id"]}, {"$set": fields})
    return database.db["menuitem"].find_one({"_id": item["_id"]})


def delete_menu_item(menu_item_id: str, principal: dict) -> None:
    item = get_menu_item_doc(menu_item_id)
    _check_staff(principal, "menu:delete", item["restaurant"])
    database.db["menuitem"].delete_one({"_id": item["_id"]})
    logger.info("Menu item %s removed", item["_id"])


def get_popular_items() -> List[dict]:
    return database.get_documents("menuitem", sort=[("averageRating", DESCENDING)], limit=POPULAR_LIMIT)


# Routes
@router.post("", status_code=201)
def create(payload: MenuItemIn, user=Depends(require("menu:create"))):
    return database.serialize_doc(create_menu_item(payload, user))


@router.get("/restaurant/{restaurant_id}")
def menu_by_restaurant(restaurant_id: str):
    items = database.get_documents("menuitem", {"restaurant": database.parse_id(restaurant_id, "Restaurant")})
    return [database.serialize_doc(i) for i in items]


@router.get("/popular")
def popular():
    return [database.serialize_doc(i) for i in get_popular_items()]


@router.get("/{menu_item_id}")
def get_menu_item(menu_item_id: str):
    return database.serialize_doc(get_menu_item_doc(menu_item_id))


@router.put("/{menu_item_id}")
def update(menu_item_id: str, payload: MenuItemUpdate, user=Depends(require("menu:update"))):
    return database.serialize_doc(update_menu_item(menu_item_id, payload, user))


@router.delete("/{menu_item_id}")
def delete(menu_item_id: str, user=Depends(require("menu:delete"))):
    delete_menu_item(menu_item_id, user)
    return {"message": "Menu item removed"}
