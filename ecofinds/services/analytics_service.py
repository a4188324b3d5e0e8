from sqlalchemy import case, distinct, func
from sqlalchemy.orm import Session

from ecofinds.core.exceptions import ForbiddenError
from ecofinds.models.order import Order, OrderItem, OrderStatus
from ecofinds.models.product import Product
from ecofinds.models.wishlist import Wishlist
from ecofinds.utils.money import to_money


def seller_analytics(db: Session, seller_id: int) -> dict:
    """Order counts by status and completed revenue for a seller's listings.

    Each order is counted once even when it holds several of the seller's
    products; revenue only includes the seller's own lines.
    """
    product_count = db.query(func.count(Product.id)).filter(Product.seller_id == seller_id).scalar()
    if not product_count:
        raise ForbiddenError("Access denied. You must be a seller to view analytics")

    counts = dict(
        db.query(Order.status, func.count(distinct(Order.id)))
        .join(OrderItem, OrderItem.order_id == Order.id)
        .join(Product, Product.id == OrderItem.product_id)
        .filter(Product.seller_id == seller_id)
        .group_by(Order.status)
        .all()
    )

    revenue = (
        db.query(func.sum(OrderItem.price_at_purchase * OrderItem.quantity))
        .join(Order, Order.id == OrderItem.order_id)
        .join(Product, Product.id == OrderItem.product_id)
        .filter(Product.seller_id == seller_id, Order.status == OrderStatus.COMPLETED)
        .scalar()
    )

    return {
        "total_orders": sum(counts.values()),
        "total_revenue": to_money(revenue),
        "pending_orders": counts.get(OrderStatus.PENDING, 0),
        "completed_orders": counts.get(OrderStatus.COMPLETED, 0),
        "cancelled_orders": counts.get(OrderStatus.CANCELLED, 0),
    }


def user_stats(db: Session, user_id: int) -> dict:
    total_products, active_products = (
        db.query(
            func.count(Product.id),
            func.coalesce(func.sum(case((Product.is_active == True, 1), else_=0)), 0),
        )
        .filter(Product.seller_id == user_id)
        .one()
    )

    sales_orders, items_sold, sales_revenue = (
        db.query(
            func.count(distinct(OrderItem.order_id)),
            func.sum(OrderItem.quantity),
            func.sum(OrderItem.price_at_purchase * OrderItem.quantity),
        )
        .join(Product, Product.id == OrderItem.product_id)
        .join(Order, Order.id == OrderItem.order_id)
        .filter(Product.seller_id == user_id, Order.status == OrderStatus.COMPLETED)
        .one()
    )

    purchase_orders, total_spent = (
        db.query(func.count(Order.id), func.sum(Order.total_amount))
        .filter(Order.user_id == user_id, Order.status == OrderStatus.COMPLETED)
        .one()
    )

    wishlist_count = db.query(func.count(Wishlist.id)).filter(Wishlist.user_id == user_id).scalar()

    return {
        "products": {"total": total_products or 0, "active": int(active_products or 0)},
        "sales": {
            "total_orders": sales_orders or 0,
            "total_items_sold": int(items_sold or 0),
            "total_revenue": to_money(sales_revenue),
        },
        "purchases": {
            "total_orders": purchase_orders or 0,
            "total_spent": to_money(total_spent),
        },
        "wishlist": {"total_items": wishlist_count or 0},
    }
