from fastapi import HTTPException, status
from typing import Any, List, Optional


class InvalidCredentials(HTTPException):
    def __init__(self):
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid email or password"
        )


class APIError(Exception):
    def __init__(self, status_code: int, message: str, errors: Optional[List[Any]] = None):
        super().__init__(message)
        self.status_code = status_code
        self.message = message
        self.errors = errors or []


class NotFoundError(APIError):
    def __init__(self, message: str = "Resource not found"):
        super().__init__(status.HTTP_404_NOT_FOUND, message)


class ConflictError(APIError):
    """A request that breaks a business rule unrelated to the order lifecycle."""

    def __init__(self, message: str):
        super().__init__(status.HTTP_400_BAD_REQUEST, message)


class EmptyCartError(APIError):
    def __init__(self):
        super().__init__(status.HTTP_400_BAD_REQUEST, "Cart is empty")


class InsufficientInventoryError(APIError):
    def __init__(self, product_id: int, available: int, title: Optional[str] = None):
        label = title or f"product {product_id}"
        super().__init__(
            status.HTTP_400_BAD_REQUEST,
            f"Insufficient quantity for {label}. Only {available} available",
            errors=[{"product_id": product_id, "available": available}],
        )
        self.product_id = product_id
        self.available = available


class SelfPurchaseError(APIError):
    def __init__(self, product_id: int):
        super().__init__(
            status.HTTP_400_BAD_REQUEST,
            "Cannot purchase your own products",
            errors=[{"product_id": product_id}],
        )
        self.product_id = product_id


class InvalidTransitionError(APIError):
    def __init__(self, current: Any, target: Any, message: Optional[str] = None):
        current_value = getattr(current, "value", current)
        target_value = getattr(target, "value", target)
        super().__init__(
            status.HTTP_400_BAD_REQUEST,
            message or f"Cannot move order from {current_value} to {target_value}",
            errors=[{"current": current_value, "target": target_value}],
        )
        self.current = current
        self.target = target


class ForbiddenError(APIError):
    def __init__(self, message: str = "Access denied"):
        super().__init__(status.HTTP_403_FORBIDDEN, message)
