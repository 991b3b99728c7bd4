"""
Service error taxonomy.

Each error carries the HTTP status it maps to; main.py registers the
handlers that turn them into response bodies.
"""
from typing import List, Optional


class ServiceError(Exception):
    status_code = 500
    default_message = "Server error"

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(ServiceError):
    """Malformed or missing input."""
    status_code = 400
    default_message = "Invalid input"

    def __init__(self, message: Optional[str] = None, field: Optional[str] = None, errors: Optional[List[dict]] = None):
        super().__init__(message)
        if errors is None:
            errors = [{"field": field, "message": self.message}]
        self.errors = errors


class NotFoundError(ServiceError):
    status_code = 404
    default_message = "Not found"


class AuthorizationError(ServiceError):
    status_code = 403
    default_message = "Forbidden"


class InvalidTransitionError(ServiceError):
    """Order status change not allowed from the current status."""
    status_code = 400

    def __init__(self, current_status: Optional[str], requested_status: str):
        self.current_status = current_status
        self.requested_status = requested_status
        super().__init__(f"Cannot change order status from '{current_status}' to '{requested_status}'")


class StoreError(ServiceError):
    status_code = 500
