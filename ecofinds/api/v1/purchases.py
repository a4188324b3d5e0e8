from typing import Optional

from fastapi import APIRouter, Body, Depends, Query, Request, status
from sqlalchemy.orm import Session

from ecofinds.api.deps import get_current_user
from ecofinds.core.rate_limiter import limiter
from ecofinds.db.session import get_db
from ecofinds.models.order import OrderStatus
from ecofinds.models.user import User
from ecofinds.schemas.order import CheckoutRequest
from ecofinds.services import order_service
from ecofinds.services.analytics_service import seller_analytics
from ecofinds.utils.response import paginated_response, success

router = APIRouter()


@router.post(
    "/checkout",
    response_model=dict,
    status_code=status.HTTP_201_CREATED,
    summary="Checkout cart",
    description="""
Turns the authenticated user's cart into an order.

Process:
1. Rejects an empty cart
2. Locks the cart's products and checks stock for every entry
3. Rejects carts containing the buyer's own listings
4. Records the order with prices as of now
5. Decrements stock, delisting products that sell out
6. Empties the cart and captures payment

Nothing is written unless every step succeeds.
""",
    responses={
        201: {"description": "Order placed"},
        400: {"description": "Empty cart, insufficient stock or own product"},
        401: {"description": "Authentication required"},
    },
)
@limiter.limit("10/minute")
def checkout(
    request: Request,
    payload: Optional[CheckoutRequest] = Body(default=None),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    shipping_address = payload.shipping_address if payload else None
    result = order_service.checkout(db, current_user.id, shipping_address)
    return success(data=result.model_dump(), message="Order placed successfully")


@router.get("/history", response_model=dict)
def purchase_history(
    status_filter: Optional[OrderStatus] = Query(None, alias="status"),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=50),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    orders, total = order_service.get_order_history(
        db, current_user.id, status=status_filter, page=page, limit=limit
    )
    return paginated_response(
        [order_service.serialize_order(order) for order in orders],
        total=total,
        page=page,
        limit=limit,
        message="Purchase history retrieved",
    )


@router.get("/seller/analytics", response_model=dict)
def get_seller_analytics(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return success(data=seller_analytics(db, current_user.id), message="Analytics retrieved")


@router.get("/{order_id}", response_model=dict)
def get_order(
    order_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    order = order_service.get_order(db, order_id, current_user.id)
    return success(
        data=order_service.serialize_order(order, detailed=True),
        message="Order retrieved",
    )


@router.put(
    "/{order_id}/cancel",
    response_model=dict,
    responses={
        200: {"description": "Order cancelled, stock restored"},
        400: {"description": "Order is not pending"},
        404: {"description": "Order not found"},
    },
)
@limiter.limit("10/minute")
def cancel_order(
    request: Request,
    order_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    result = order_service.cancel_order(db, order_id, current_user.id)
    return success(data=result.model_dump(), message="Order cancelled successfully")
