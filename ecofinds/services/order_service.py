from decimal import Decimal
from typing import List, Optional, Tuple

import structlog
from sqlalchemy.orm import Session, joinedload

from ecofinds.core.exceptions import (
    APIError,
    EmptyCartError,
    InsufficientInventoryError,
    NotFoundError,
    SelfPurchaseError,
)
from ecofinds.models.order import Order, OrderItem, OrderStatus
from ecofinds.models.product import Product
from ecofinds.schemas.order import CancelOrderResult, CheckoutResult
from ecofinds.services import inventory
from ecofinds.services.cart_service import CartService
from ecofinds.services.order_state import ensure_transition, transition
from ecofinds.services.payment_service import PaymentCapture, capture_immediately
from ecofinds.utils.money import to_money

logger = structlog.get_logger()


def checkout(
    db: Session,
    user_id: int,
    shipping_address: Optional[str] = None,
    capture: PaymentCapture = capture_immediately,
) -> CheckoutResult:
    """
    Turn the user's cart into an order in a single transaction.

    Preconditions are checked in order: cart not empty, every entry within
    available stock, no entry sold by the buyer. Any failure rolls the whole
    unit back, so either the order, its items, the stock decrements and the
    emptied cart are all committed, or nothing is.

    Args:
        db (Session): Database session
        user_id (int): Buyer
        shipping_address (str, optional): Free-form delivery address
        capture (PaymentCapture): Decides the status the pending order moves to

    Returns:
        CheckoutResult: order id, total, final status and line count
    """
    try:
        cart_items = CartService.snapshot(db, user_id)
        if not cart_items:
            raise EmptyCartError()

        products = inventory.lock_products(db, [item.product_id for item in cart_items])

        for item in cart_items:
            product = products.get(item.product_id)
            available = product.quantity if product is not None and product.is_active else 0
            if item.quantity > available:
                raise InsufficientInventoryError(
                    item.product_id,
                    available,
                    product.title if product is not None else None,
                )

        for item in cart_items:
            if products[item.product_id].seller_id == user_id:
                raise SelfPurchaseError(item.product_id)

        unit_prices = {
            product_id: to_money(product.price) for product_id, product in products.items()
        }
        total_amount = sum(
            (unit_prices[item.product_id] * item.quantity for item in cart_items),
            Decimal("0.00"),
        )

        order = Order(
            user_id=user_id,
            total_amount=total_amount,
            status=OrderStatus.PENDING,
            shipping_address=shipping_address,
        )
        db.add(order)
        db.flush()

        for item in cart_items:
            db.add(
                OrderItem(
                    order_id=order.id,
                    product_id=item.product_id,
                    quantity=item.quantity,
                    price_at_purchase=unit_prices[item.product_id],
                )
            )
            inventory.reserve(db, item.product_id, item.quantity)

        item_count = len(cart_items)
        CartService.discard(db, user_id)

        target_status = capture(db, order)
        if target_status != order.status:
            transition(order, target_status)

        db.flush()
        order_id = order.id
        final_status = order.status
        db.commit()
    except APIError as exc:
        db.rollback()
        logger.info(
            "order_checkout_rejected",
            user_id=user_id,
            reason=type(exc).__name__,
            detail=exc.message,
        )
        raise
    except Exception:
        db.rollback()
        raise

    logger.info(
        "order_checkout_completed",
        order_id=order_id,
        user_id=user_id,
        total_amount=str(total_amount),
        item_count=item_count,
        status=final_status.value,
    )
    return CheckoutResult(
        order_id=order_id,
        total_amount=float(total_amount),
        status=final_status,
        item_count=item_count,
    )


def cancel_order(db: Session, order_id: int, user_id: int) -> CancelOrderResult:
    """
    Cancel one of the user's orders and put its items back in stock.

    Raises:
        NotFoundError: order missing or owned by someone else
        InvalidTransitionError: order already completed or cancelled
    """
    try:
        order = (
            db.query(Order)
            .filter(Order.id == order_id, Order.user_id == user_id)
            .with_for_update()
            .populate_existing()
            .first()
        )
        if not order:
            raise NotFoundError("Order not found")

        ensure_transition(order.status, OrderStatus.CANCELLED)

        items = list(order.items)
        inventory.lock_products(db, [item.product_id for item in items])
        for item in items:
            inventory.release(db, item.product_id, item.quantity)

        previous_status = transition(order, OrderStatus.CANCELLED)
        db.commit()
    except APIError as exc:
        db.rollback()
        logger.info(
            "order_cancel_rejected",
            order_id=order_id,
            user_id=user_id,
            reason=type(exc).__name__,
            detail=exc.message,
        )
        raise
    except Exception:
        db.rollback()
        raise

    logger.info(
        "order_cancelled",
        order_id=order_id,
        user_id=user_id,
        previous_status=previous_status.value,
        restored_items=len(items),
    )
    return CancelOrderResult(order_id=order_id, status=OrderStatus.CANCELLED)


def get_order_history(
    db: Session,
    user_id: int,
    status: Optional[OrderStatus] = None,
    page: int = 1,
    limit: int = 10,
) -> Tuple[List[Order], int]:
    """Newest-first page of the user's orders and the total count."""
    query = db.query(Order).filter(Order.user_id == user_id)
    if status is not None:
        query = query.filter(Order.status == status)

    total = query.count()
    orders = (
        query.options(
            joinedload(Order.items).joinedload(OrderItem.product).joinedload(Product.seller),
            joinedload(Order.items).joinedload(OrderItem.product).joinedload(Product.category),
        )
        .order_by(Order.created_at.desc(), Order.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )
    return orders, total


def get_order(db: Session, order_id: int, user_id: int) -> Order:
    order = (
        db.query(Order)
        .filter(Order.id == order_id, Order.user_id == user_id)
        .first()
    )
    if not order:
        raise NotFoundError("Order not found")
    return order


def serialize_order(order: Order, detailed: bool = False) -> dict:
    items = []
    for item in order.items:
        product = item.product
        seller = product.seller if product else None
        product_data = {
            "id": item.product_id,
            "title": product.title if product else None,
            "image_url": product.image_url if product else None,
            "category": product.category_name if product else None,
            "condition": product.condition_type.value if product else None,
            "seller": {"name": seller.display_name if seller else None},
        }
        if detailed and product is not None:
            product_data["description"] = product.description
            product_data["seller"]["image"] = seller.profile_image if seller else None

        items.append({
            "id": item.id,
            "product": product_data,
            "quantity": item.quantity,
            "price_at_purchase": to_money(item.price_at_purchase),
            "line_total": to_money(item.line_total),
        })

    return {
        "id": order.id,
        "total_amount": to_money(order.total_amount),
        "status": order.status.value,
        "shipping_address": order.shipping_address,
        "created_at": order.created_at,
        "updated_at": order.updated_at,
        "items": items,
    }
