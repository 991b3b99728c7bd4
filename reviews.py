"""
Reviews and the menu-item rating aggregate.

averageRating and numberOfRatings change together in one find_one_and_update
that only matches if the count is still the one the new mean was computed
from; a writer that loses the race re-reads and tries again.
"""
import logging
from typing import List, Optional

from bson import ObjectId
from fastapi import APIRouter, Depends
from pymongo import ReturnDocument

import database
from auth import require
from errors import NotFoundError, StoreError, ValidationError
from schemas import ReviewIn

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/reviews", tags=["reviews"])

MAX_RATING_ATTEMPTS = 100


def running_mean(average: float, count: int, rating: int) -> float:
    return (average * count + rating) / (count + 1)


def apply_rating(menu_item_id: ObjectId, rating: int) -> dict:
    """Fold one rating into the menu item's running mean; returns the updated item."""
    for _ in range(MAX_RATING_ATTEMPTS):
        item = database.db["menuitem"].find_one({"_id": menu_item_id}, {"averageRating": 1, "numberOfRatings": 1})
        if item is None:
            raise NotFoundError("Menu item not found")
        average = item.get("averageRating") or 0
        count = item.get("numberOfRatings") or 0
        updated = database.db["menuitem"].find_one_and_update(
            {"_id": menu_item_id, "numberOfRatings": item.get("numberOfRatings")},
            {"$set": {"averageRating": running_mean(average, count, rating), "numberOfRatings": count + 1}},
            return_document=ReturnDocument.AFTER,
        )
        if updated is not None:
            return updated
    raise StoreError(f"Rating update on menu item {menu_item_id} kept conflicting")


def record_review(menu_item_id: str, rating: int, comment: Optional[str], order_id: str, reviewer: dict) -> dict:
    if not isinstance(rating, int) or isinstance(rating, bool) or not 1 <= rating <= 5:
        raise ValidationError("Rating must be between 1 and 5", field="rating")
    menu_oid = database.parse_id(menu_item_id, "Menu item")
    order_oid = database.parse_id(order_id, "Order")
    if database.db["order"].find_one({"_id": order_oid}, {"_id": 1}) is None:
        raise NotFoundError("Order not found")

    item = apply_rating(menu_oid, rating)
    review = database.create_document("review", {
        "user": ObjectId(reviewer["id"]),
        "menuItem": menu_oid,
        "rating": rating,
        "comment": comment,
        "order": order_oid,
    })
    logger.info(
        "Review %s on menu item %s: rating=%d (average now %.2f over %d)",
        review["_id"], menu_oid, rating, item["averageRating"], item["numberOfRatings"],
    )
    return review


def get_reviews_for_menu_item(menu_item_id: str) -> List[dict]:
    """Reviews with the reviewer's id and name embedded under "user"."""
    reviews = database.get_documents("review", {"menuItem": database.parse_id(menu_item_id, "Menu item")})
    user_ids = list({r["user"] for r in reviews})
    users = {u["_id"]: u for u in database.db["user"].find({"_id": {"$in": user_ids}}, {"name": 1})}
    for r in reviews:
        user = users.get(r["user"])
        r["user"] = {"id": str(r["user"]), "name": user.get("name") if user else None}
    return reviews


# Routes
@router.post("", status_code=201)
def create(payload: ReviewIn, user=Depends(require("review:create"))):
    review = record_review(payload.menu_item, payload.rating, payload.comment, payload.order, user)
    return database.serialize_doc(review)


@router.get("/menuItem/{menu_item_id}")
def reviews_for_menu_item(menu_item_id: str):
    return [database.serialize_doc(r) for r in get_reviews_for_menu_item(menu_item_id)]
