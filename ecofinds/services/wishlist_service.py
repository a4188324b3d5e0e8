from sqlalchemy.orm import Session, joinedload
from sqlalchemy import and_
from typing import List, Tuple

from ecofinds.core.exceptions import NotFoundError
from ecofinds.models.wishlist import Wishlist
from ecofinds.models.product import Product


class WishlistService:

    @staticmethod
    def add_to_wishlist(db: Session, user_id: int, product_id: int) -> Wishlist:
        """Add a listed product to user's wishlist. Adding twice is a no-op."""
        product = db.query(Product).filter(
            Product.id == product_id,
            Product.is_active == True
        ).first()
        if not product:
            raise NotFoundError("Product not found")

        existing = db.query(Wishlist).filter(
            and_(Wishlist.user_id == user_id, Wishlist.product_id == product_id)
        ).first()
        if existing:
            return existing

        wishlist_item = Wishlist(user_id=user_id, product_id=product_id)
        db.add(wishlist_item)
        db.commit()
        db.refresh(wishlist_item)
        return wishlist_item

    @staticmethod
    def remove_from_wishlist(db: Session, user_id: int, product_id: int) -> bool:
        """Remove a product from user's wishlist. Returns whether it was there."""
        removed = db.query(Wishlist).filter(
            and_(Wishlist.user_id == user_id, Wishlist.product_id == product_id)
        ).delete(synchronize_session="fetch")
        db.commit()
        return bool(removed)

    @staticmethod
    def get_user_wishlist(db: Session, user_id: int, page: int = 1, limit: int = 12) -> Tuple[List[Wishlist], int]:
        """Wishlisted products that are still listed, most recently added first."""
        query = (
            db.query(Wishlist)
            .join(Product, Wishlist.product_id == Product.id)
            .filter(Wishlist.user_id == user_id, Product.is_active == True)
        )
        total = query.count()
        items = (
            query.options(
                joinedload(Wishlist.product).joinedload(Product.seller),
                joinedload(Wishlist.product).joinedload(Product.category),
            )
            .order_by(Wishlist.created_at.desc(), Wishlist.id.desc())
            .offset((page - 1) * limit)
            .limit(limit)
            .all()
        )
        return items, total

    @staticmethod
    def check_in_wishlist(db: Session, user_id: int, product_id: int) -> bool:
        """Check if a product is in user's wishlist."""
        return db.query(Wishlist).filter(
            and_(Wishlist.user_id == user_id, Wishlist.product_id == product_id)
        ).first() is not None
