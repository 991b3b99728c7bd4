"""
Order lifecycle: placement, scoped listings and status transitions.

Status changes are a single conditional write that only applies if the
order is still in the status the transition was validated against.
"""
import logging
from typing import List

from bson import ObjectId
from fastapi import APIRouter, Depends
from pymongo import DESCENDING, ReturnDocument

import database
import order_state
from auth import get_current_user, require
from errors import AuthorizationError, InvalidTransitionError, NotFoundError, ValidationError
from policy import DELIVERY_DRIVER, can_handle_order
from schemas import OrderIn, StatusUpdate

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/orders", tags=["orders"])

NEWEST_FIRST = [("createdAt", DESCENDING)]


def get_order_doc(order_id: str) -> dict:
    order = database.db["order"].find_one({"_id": database.parse_id(order_id, "Order")})
    if not order:
        raise NotFoundError("Order not found")
    return order


def create_order(customer: dict, restaurant_id: str, items: List[dict], delivery_address: str) -> dict:
    """
    Place an order for the customer.
    items: [{"menuItem": id, "quantity": int}, ...]; unit prices are taken from the menu.
    """
    restaurant = database.db["restaurant"].find_one({"_id": database.parse_id(restaurant_id, "Restaurant")})
    if not restaurant:
        raise NotFoundError("Restaurant not found")
    if not items:
        raise ValidationError("Order must contain at least one item", field="items")
    if not delivery_address or not delivery_address.strip():
        raise ValidationError("Delivery address is required", field="deliveryAddress")

    menu_ids = []
    for i, item in enumerate(items):
        menu_item_id = item.get("menuItem")
        if not menu_item_id or not ObjectId.is_valid(menu_item_id):
            raise ValidationError("Valid menu item ID is required", field=f"items.{i}.menuItem")
        quantity = item.get("quantity")
        if not isinstance(quantity, int) or isinstance(quantity, bool) or quantity < 1:
            raise ValidationError("Quantity must be at least 1", field=f"items.{i}.quantity")
        menu_ids.append(ObjectId(menu_item_id))

    menu_docs = database.db["menuitem"].find({"_id": {"$in": menu_ids}})
    menu_map = {d["_id"]: d for d in menu_docs}

    total = 0.0
    line_items = []
    for i, (menu_id, item) in enumerate(zip(menu_ids, items)):
        menu_doc = menu_map.get(menu_id)
        if menu_doc is None:
            raise ValidationError(f"Menu item {menu_id} does not exist", field=f"items.{i}.menuItem")
        if not menu_doc.get("isAvailable", True):
            raise ValidationError(f"Menu item {menu_id} is not available", field=f"items.{i}.menuItem")
        if menu_doc.get("restaurant") != restaurant["_id"]:
            raise ValidationError(f"Menu item {menu_id} is not on this restaurant's menu", field=f"items.{i}.menuItem")
        # line prices are whole cents so the total always equals the sum of the lines
        price = round(float(menu_doc["price"]), 2)
        line_items.append({"menuItem": menu_id, "quantity": item["quantity"], "price": price})
        total += price * item["quantity"]

    order = database.create_document("order", {
        "customer": ObjectId(customer["id"]),
        "restaurant": restaurant["_id"],
        "items": line_items,
        "totalAmount": round(total, 2),
        "status": order_state.PLACED,
        "deliveryDriver": None,
        "deliveryAddress": delivery_address.strip(),
        "paymentStatus": "pending",
    })
    logger.info("Order %s placed by %s (total=%.2f)", order["_id"], customer["id"], order["totalAmount"])
    return order


def update_status(order_id: str, requested_status: str, principal: dict) -> dict:
    order = get_order_doc(order_id)
    restaurant = database.db["restaurant"].find_one({"_id": order.get("restaurant")})
    if not can_handle_order(principal, order, restaurant):
        raise AuthorizationError("Not authorized to update this order's status")

    current_status = order.get("status")
    if not order_state.is_valid_transition(current_status, requested_status):
        logger.warning("Rejected transition %s -> %s on order %s", current_status, requested_status, order["_id"])
        raise InvalidTransitionError(current_status, requested_status)

    match = {"_id": order["_id"], "status": current_status}
    changes = {"status": requested_status, "updatedAt": database.utcnow()}
    if principal.get("role") == DELIVERY_DRIVER:
        # first driver to act on the order takes it
        driver_id = ObjectId(principal["id"])
        match["deliveryDriver"] = {"$in": [None, driver_id]}
        changes["deliveryDriver"] = driver_id

    updated = database.db["order"].find_one_and_update(match, {"$set": changes}, return_document=ReturnDocument.AFTER)
    if updated is None:
        # lost a race: the order moved (or was taken by another driver) since it was read
        latest = get_order_doc(order_id)
        if latest.get("status") == current_status:
            raise AuthorizationError("Order is assigned to another driver")
        raise InvalidTransitionError(latest.get("status"), requested_status)

    logger.info("Order %s: %s -> %s by %s", order["_id"], current_status, requested_status, principal["id"])
    return updated


def get_customer_orders(principal: dict) -> List[dict]:
    return database.get_documents("order", {"customer": ObjectId(principal["id"])}, sort=NEWEST_FIRST)


def get_restaurant_orders(principal: dict) -> List[dict]:
    uid = ObjectId(principal["id"])
    restaurants = database.db["restaurant"].find({"$or": [{"owner": uid}, {"managers": uid}]}, {"_id": 1})
    restaurant_ids = [r["_id"] for r in restaurants]
    if not restaurant_ids:
        return []
    return database.get_documents("order", {"restaurant": {"$in": restaurant_ids}}, sort=NEWEST_FIRST)


def get_driver_orders(principal: dict) -> List[dict]:
    return database.get_documents("order", {"deliveryDriver": ObjectId(principal["id"])}, sort=NEWEST_FIRST)


# Routes
@router.post("", status_code=201)
def create(payload: OrderIn, user=Depends(require("order:create"))):
    items = [i.model_dump(by_alias=True) for i in payload.items]
    return database.serialize_doc(create_order(user, payload.restaurant, items, payload.delivery_address))


@router.get("/customer")
def customer_orders(user=Depends(require("order:list_customer"))):
    return [database.serialize_doc(o) for o in get_customer_orders(user)]


@router.get("/restaurant")
def restaurant_orders(user=Depends(require("order:list_restaurant"))):
    return [database.serialize_doc(o) for o in get_restaurant_orders(user)]


@router.get("/driver")
def driver_orders(user=Depends(require("order:list_driver"))):
    return [database.serialize_doc(o) for o in get_driver_orders(user)]


@router.get("/{order_id}")
def get_order(order_id: str, user=Depends(get_current_user)):
    return database.serialize_doc(get_order_doc(order_id))


@router.put("/{order_id}/status")
def change_status(order_id: str, payload: StatusUpdate, user=Depends(require("order:update_status"))):
    return database.serialize_doc(update_status(order_id, payload.status, user))
