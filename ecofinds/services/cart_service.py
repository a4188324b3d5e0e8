from decimal import Decimal
from typing import List, Optional, Tuple

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, joinedload

from ecofinds.core.exceptions import ConflictError, NotFoundError
from ecofinds.models.cart import CartItem
from ecofinds.models.product import Product
from ecofinds.utils.money import to_money


class CartService:

    @staticmethod
    def snapshot(db: Session, user_id: int) -> List[CartItem]:
        """Cart entries whose product is still listed, oldest first."""
        return (
            db.query(CartItem)
            .join(Product, CartItem.product_id == Product.id)
            .options(joinedload(CartItem.product))
            .filter(CartItem.user_id == user_id, Product.is_active == True)
            .order_by(CartItem.id)
            .all()
        )

    @staticmethod
    def discard(db: Session, user_id: int) -> int:
        """Delete every cart entry of ``user_id`` without committing."""
        return (
            db.query(CartItem)
            .filter(CartItem.user_id == user_id)
            .delete(synchronize_session="fetch")
        )

    @staticmethod
    def get_cart(db: Session, user_id: int) -> dict:
        cart_items = (
            db.query(CartItem)
            .join(Product, CartItem.product_id == Product.id)
            .options(joinedload(CartItem.product).joinedload(Product.seller))
            .filter(CartItem.user_id == user_id, Product.is_active == True)
            .order_by(CartItem.created_at.desc(), CartItem.id.desc())
            .all()
        )

        items_response = []
        total_items = 0
        total_price = Decimal("0")

        for item in cart_items:
            product = item.product
            seller = product.seller
            total_items += item.quantity
            total_price += to_money(product.price) * item.quantity

            items_response.append({
                "id": item.id,
                "product": {
                    "id": product.id,
                    "title": product.title,
                    "description": product.description,
                    "price": to_money(product.price),
                    "image_url": product.image_url,
                    "category": product.category_name,
                    "condition": product.condition_type.value,
                    "available_quantity": product.quantity,
                    "seller": {
                        "name": seller.display_name if seller else None,
                        "is_verified": bool(seller.is_verified) if seller else False,
                    },
                },
                "quantity": item.quantity,
                "added_at": item.created_at,
            })

        return {
            "items": items_response,
            "summary": {
                "total_items": total_items,
                "total_price": to_money(total_price),
            },
        }

    @staticmethod
    def add_item(db: Session, user_id: int, product_id: int, quantity: int = 1) -> Tuple[CartItem, bool]:
        """Add ``quantity`` of a product, merging with an existing entry.

        Returns the cart entry and whether it was newly created.
        """
        product = db.query(Product).filter(
            Product.id == product_id,
            Product.is_active == True
        ).first()

        if not product:
            raise NotFoundError("Product not found or not available")

        if product.seller_id == user_id:
            raise ConflictError("Cannot add your own product to cart")

        if quantity > product.quantity:
            raise ConflictError(f"Only {product.quantity} items available")

        existing_item = CartService._find_entry(db, user_id, product_id)
        if existing_item:
            return CartService._merge(db, existing_item, product, quantity), False

        cart_item = CartItem(user_id=user_id, product_id=product_id, quantity=quantity)
        db.add(cart_item)
        try:
            db.commit()
        except IntegrityError:
            # A concurrent add created the entry first
            db.rollback()
            existing_item = CartService._find_entry(db, user_id, product_id)
            if existing_item is None:
                raise
            return CartService._merge(db, existing_item, product, quantity), False

        db.refresh(cart_item)
        return cart_item, True

    @staticmethod
    def _find_entry(db: Session, user_id: int, product_id: int) -> Optional[CartItem]:
        return db.query(CartItem).filter(
            CartItem.user_id == user_id,
            CartItem.product_id == product_id
        ).first()

    @staticmethod
    def _merge(db: Session, existing_item: CartItem, product: Product, quantity: int) -> CartItem:
        new_quantity = existing_item.quantity + quantity
        if new_quantity > product.quantity:
            remaining = max(product.quantity - existing_item.quantity, 0)
            raise ConflictError(
                f"Cannot add {quantity} more items. Only {remaining} more available"
            )

        existing_item.quantity = new_quantity
        db.commit()
        db.refresh(existing_item)
        return existing_item

    @staticmethod
    def update_item(db: Session, user_id: int, item_id: int, quantity: int) -> CartItem:
        cart_item = (
            db.query(CartItem)
            .join(Product, CartItem.product_id == Product.id)
            .filter(
                CartItem.id == item_id,
                CartItem.user_id == user_id,
                Product.is_active == True,
            )
            .first()
        )

        if not cart_item:
            raise NotFoundError("Cart item not found")

        if quantity > cart_item.product.quantity:
            raise ConflictError(f"Only {cart_item.product.quantity} items available")

        cart_item.quantity = quantity
        db.commit()
        db.refresh(cart_item)
        return cart_item

    @staticmethod
    def remove_item(db: Session, user_id: int, item_id: int) -> None:
        cart_item = db.query(CartItem).filter(
            CartItem.id == item_id,
            CartItem.user_id == user_id
        ).first()

        if not cart_item:
            raise NotFoundError("Cart item not found")

        db.delete(cart_item)
        db.commit()

    @staticmethod
    def clear(db: Session, user_id: int) -> int:
        removed = CartService.discard(db, user_id)
        db.commit()
        return removed
