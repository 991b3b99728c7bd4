import logging
from typing import List

from bson import ObjectId
from fastapi import APIRouter, Depends
from pymongo import ReturnDocument

import database
from auth import get_current_user, require
from errors import NotFoundError
from schemas import ProfileUpdate

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/users", tags=["users"])

PROFILE_PROJECTION = {"passwordHash": 0}


def _favorite_ids(user: dict) -> List[str]:
    return [str(f) for f in user.get("favorites") or []]


def get_profile(principal: dict) -> dict:
    user = database.db["user"].find_one({"_id": ObjectId(principal["id"])}, PROFILE_PROJECTION)
    if not user:
        raise NotFoundError("User not found")
    return user


def update_profile(principal: dict, payload: ProfileUpdate) -> dict:
    fields = payload.model_dump(by_alias=True, exclude_none=True)
    fields["updatedAt"] = database.utcnow()
    user = database.db["user"].find_one_and_update(
        {"_id": ObjectId(principal["id"])},
        {"$set": fields},
        projection=PROFILE_PROJECTION,
        return_document=ReturnDocument.AFTER,
    )
    if not user:
        raise NotFoundError("User not found")
    return user


def add_favorite(principal: dict, menu_item_id: str) -> List[str]:
    """Set-insert; adding an item already present leaves the set unchanged."""
    menu_oid = database.parse_id(menu_item_id, "Menu item")
    if database.db["menuitem"].find_one({"_id": menu_oid}, {"_id": 1}) is None:
        raise NotFoundError("Menu item not found")
    user = database.db["user"].find_one_and_update(
        {"_id": ObjectId(principal["id"])},
        {"$addToSet": {"favorites": menu_oid}},
        projection={"favorites": 1},
        return_document=ReturnDocument.AFTER,
    )
    if not user:
        raise NotFoundError("User not found")
    return _favorite_ids(user)


def remove_favorite(principal: dict, menu_item_id: str) -> List[str]:
    """Set-removal; removing an absent item is a no-op."""
    user_filter = {"_id": ObjectId(principal["id"])}
    if not ObjectId.is_valid(menu_item_id):
        user = database.db["user"].find_one(user_filter, {"favorites": 1})
    else:
        user = database.db["user"].find_one_and_update(
            user_filter,
            {"$pull": {"favorites": ObjectId(menu_item_id)}},
            projection={"favorites": 1},
            return_document=ReturnDocument.AFTER,
        )
    if not user:
        raise NotFoundError("User not found")
    return _favorite_ids(user)


def get_favorites(principal: dict) -> List[dict]:
    user = get_profile(principal)
    favorites = user.get("favorites") or []
    if not favorites:
        return []
    return database.get_documents("menuitem", {"_id": {"$in": favorites}})


# Routes
@router.get("/profile")
def profile(user=Depends(get_current_user)):
    return database.serialize_doc(get_profile(user))


@router.put("/profile")
def edit_profile(payload: ProfileUpdate, user=Depends(get_current_user)):
    return database.serialize_doc(update_profile(user, payload))


@router.get("/favorites")
def favorites(user=Depends(require("favorites:manage"))):
    return [database.serialize_doc(i) for i in get_favorites(user)]


@router.post("/favorites/{menu_item_id}")
def add(menu_item_id: str, user=Depends(require("favorites:manage"))):
    return add_favorite(user, menu_item_id)


@router.delete("/favorites/{menu_item_id}")
def remove(menu_item_id: str, user=Depends(require("favorites:manage"))):
    return remove_favorite(user, menu_item_id)
