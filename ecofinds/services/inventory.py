"""Inventory ledger.

The only code allowed to write ``Product.quantity`` / ``Product.is_active``.
Every helper runs inside the caller's transaction and never commits.
"""
from typing import Dict, Iterable

import structlog
from sqlalchemy.orm import Session

from ecofinds.core.exceptions import InsufficientInventoryError, NotFoundError
from ecofinds.models.product import Product

logger = structlog.get_logger()


def _reload(db: Session, product_id: int) -> Product:
    product = (
        db.query(Product)
        .filter(Product.id == product_id)
        .populate_existing()
        .first()
    )
    if product is None:
        raise NotFoundError("Product not found")
    return product


def lock_products(db: Session, product_ids: Iterable[int]) -> Dict[int, Product]:
    """Lock product rows in ascending id order and return them keyed by id.

    A deterministic lock order keeps two checkouts over overlapping
    products from deadlocking each other.
    """
    ids = sorted(set(product_ids))
    if not ids:
        return {}

    products = (
        db.query(Product)
        .filter(Product.id.in_(ids))
        .order_by(Product.id)
        .with_for_update()
        .populate_existing()
        .all()
    )
    return {product.id: product for product in products}


def reserve(db: Session, product_id: int, qty: int) -> Product:
    """Take ``qty`` units out of stock, delisting the product when it runs out.

    The decrement is conditional on the stored quantity, so a concurrent
    reservation that already consumed the stock makes this one fail with
    InsufficientInventoryError instead of driving the quantity negative.
    """
    if qty <= 0:
        raise ValueError("Reservation quantity must be positive")

    matched = (
        db.query(Product)
        .filter(Product.id == product_id, Product.quantity >= qty)
        .update({Product.quantity: Product.quantity - qty}, synchronize_session=False)
    )
    if not matched:
        product = _reload(db, product_id)
        logger.warning(
            "inventory_reservation_conflict",
            product_id=product_id,
            requested=qty,
            available=product.quantity,
        )
        raise InsufficientInventoryError(product_id, product.quantity, product.title)

    (
        db.query(Product)
        .filter(Product.id == product_id, Product.quantity <= 0)
        .update({Product.is_active: False}, synchronize_session=False)
    )

    product = _reload(db, product_id)
    logger.info(
        "inventory_reserved",
        product_id=product_id,
        quantity=qty,
        remaining=product.quantity,
        is_active=product.is_active,
    )
    return product


def release(db: Session, product_id: int, qty: int) -> Product:
    """Return ``qty`` units to stock and relist the product."""
    if qty <= 0:
        raise ValueError("Release quantity must be positive")

    matched = (
        db.query(Product)
        .filter(Product.id == product_id)
        .update(
            {Product.quantity: Product.quantity + qty, Product.is_active: True},
            synchronize_session=False,
        )
    )
    if not matched:
        raise NotFoundError("Product not found")

    product = _reload(db, product_id)
    logger.info(
        "inventory_released",
        product_id=product_id,
        quantity=qty,
        remaining=product.quantity,
    )
    return product


def restock(db: Session, product_id: int, quantity: int) -> Product:
    """Set the stock level from a seller edit of their own listing."""
    if quantity < 0:
        raise ValueError("Stock quantity cannot be negative")

    product = lock_products(db, [product_id]).get(product_id)
    if product is None:
        raise NotFoundError("Product not found")

    product.quantity = quantity
    if quantity == 0:
        product.is_active = False

    logger.info("inventory_restocked", product_id=product_id, quantity=quantity)
    return product


def delist(db: Session, product_id: int) -> Product:
    """Hide a listing at the seller's request, leaving its stock untouched."""
    product = lock_products(db, [product_id]).get(product_id)
    if product is None:
        raise NotFoundError("Product not found")

    product.is_active = False
    logger.info("product_delisted", product_id=product_id, quantity=product.quantity)
    return product
