"""
Authorization policy: which roles may perform an action, plus the
ownership rules that apply once the target resource is known.
"""
from typing import Optional

from bson import ObjectId

CUSTOMER = "customer"
RESTAURANT_OWNER = "restaurant_owner"
RESTAURANT_MANAGER = "restaurant_manager"
DELIVERY_DRIVER = "delivery_driver"
ADMIN = "admin"

ROLES = [CUSTOMER, RESTAURANT_OWNER, RESTAURANT_MANAGER, DELIVERY_DRIVER, ADMIN]

STAFF = {RESTAURANT_OWNER, RESTAURANT_MANAGER}

# Action -> roles allowed to attempt it
POLICY = {
    "restaurant:create": {RESTAURANT_OWNER, ADMIN},
    "restaurant:update": {RESTAURANT_OWNER, RESTAURANT_MANAGER, ADMIN},
    "restaurant:delete": {RESTAURANT_OWNER, ADMIN},
    "menu:create": STAFF,
    "menu:update": STAFF,
    "menu:delete": STAFF,
    "order:create": {CUSTOMER},
    "order:list_customer": {CUSTOMER},
    "order:list_restaurant": STAFF,
    "order:list_driver": {DELIVERY_DRIVER},
    "order:update_status": {RESTAURANT_OWNER, RESTAURANT_MANAGER, DELIVERY_DRIVER},
    "review:create": {CUSTOMER},
    "favorites:manage": {CUSTOMER},
}


def _user_id(principal: dict) -> Optional[ObjectId]:
    uid = principal.get("id")
    return ObjectId(uid) if uid and ObjectId.is_valid(uid) else None


def is_restaurant_staff(principal: dict, restaurant: dict) -> bool:
    """Owner or one of the managers of the restaurant."""
    uid = _user_id(principal)
    if uid is None:
        return False
    return restaurant.get("owner") == uid or uid in (restaurant.get("managers") or [])


def _owns_resource(principal: dict, action: str, resource: dict) -> bool:
    role = principal.get("role")
    uid = _user_id(principal)

    if action == "restaurant:update":
        return role == ADMIN or is_restaurant_staff(principal, resource)
    if action == "restaurant:delete":
        return role == ADMIN or resource.get("owner") == uid
    if action in ("menu:create", "menu:update", "menu:delete"):
        # resource is the restaurant the menu item belongs to
        return is_restaurant_staff(principal, resource)
    if action == "order:update_status" and role == DELIVERY_DRIVER:
        # resource is the order; staff ownership needs the restaurant, see can_handle_order
        driver = resource.get("deliveryDriver")
        return driver is None or driver == uid
    return True


def authorized(principal: Optional[dict], action: str, resource: Optional[dict] = None) -> bool:
    if not principal:
        return False
    if principal.get("role") not in POLICY.get(action, set()):
        return False
    if resource is None:
        return True
    return _owns_resource(principal, action, resource)


def can_handle_order(principal: dict, order: dict, restaurant: Optional[dict]) -> bool:
    """Status changes: staff of the order's restaurant, or the (unassigned or assigned) driver."""
    if not authorized(principal, "order:update_status", order):
        return False
    if principal.get("role") in STAFF:
        return restaurant is not None and is_restaurant_staff(principal, restaurant)
    return True
