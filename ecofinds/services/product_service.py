from typing import List, Optional, Tuple

import structlog
from sqlalchemy import func, or_
from sqlalchemy.orm import Session, joinedload

from ecofinds.core.exceptions import ConflictError, NotFoundError
from ecofinds.models.category import Category
from ecofinds.models.order import Order, OrderItem, OrderStatus
from ecofinds.models.product import Product
from ecofinds.models.wishlist import Wishlist
from ecofinds.schemas.product import ProductCreate, ProductFilters, ProductUpdate
from ecofinds.services import inventory
from ecofinds.utils.money import to_money

logger = structlog.get_logger()

ALL_CATEGORIES = "All Categories"

SORT_ORDERS = {
    "newest": (Product.created_at.desc(), Product.id.desc()),
    "oldest": (Product.created_at.asc(), Product.id.asc()),
    "price-low": (Product.price.asc(), Product.id.asc()),
    "price-high": (Product.price.desc(), Product.id.desc()),
    "sustainability": (Product.sustainability_score.desc(), Product.id.desc()),
}

# Request field -> column, for fields whose names differ
UPDATE_FIELD_MAP = {
    "condition": "condition_type",
    "year": "year_manufactured",
}


class ProductService:

    @staticmethod
    def to_summary(product: Product) -> dict:
        seller = product.seller
        return {
            "id": product.id,
            "title": product.title,
            "description": product.description,
            "price": to_money(product.price),
            "category": product.category_name,
            "condition": product.condition_type.value,
            "image_url": product.image_url,
            "seller": {
                "id": product.seller_id,
                "name": seller.display_name if seller else None,
                "is_verified": bool(seller.is_verified) if seller else False,
            },
            "year": product.year_manufactured,
            "brand": product.brand,
            "dimensions": product.dimensions,
            "weight": product.weight,
            "material": product.material,
            "has_warranty": product.has_warranty,
            "has_manual": product.has_manual,
            "quantity": product.quantity,
            "is_eco_friendly": product.is_eco_friendly,
            "sustainability_score": product.sustainability_score,
            "created_at": product.created_at,
        }

    @staticmethod
    def list_products(
        db: Session,
        filters: ProductFilters,
        page: int = 1,
        limit: int = 12,
    ) -> Tuple[List[Product], int]:
        """Active listings matching ``filters`` and the total match count."""
        query = (
            db.query(Product)
            .outerjoin(Category, Product.category_id == Category.id)
            .filter(Product.is_active == True)
        )

        if filters.category and filters.category != ALL_CATEGORIES:
            query = query.filter(Category.name == filters.category)
        if filters.condition:
            query = query.filter(Product.condition_type == filters.condition)
        if filters.min_price is not None:
            query = query.filter(Product.price >= filters.min_price)
        if filters.max_price is not None:
            query = query.filter(Product.price <= filters.max_price)
        if filters.search:
            term = f"%{filters.search.strip()}%"
            query = query.filter(
                or_(
                    Product.title.ilike(term),
                    Product.description.ilike(term),
                    Product.brand.ilike(term),
                )
            )
        if filters.is_eco_friendly:
            query = query.filter(Product.is_eco_friendly == True)

        total = query.count()
        products = (
            query.options(joinedload(Product.seller), joinedload(Product.category))
            .order_by(*SORT_ORDERS[filters.sort_by])
            .offset((page - 1) * limit)
            .limit(limit)
            .all()
        )
        return products, total

    @staticmethod
    def get_product(db: Session, product_id: int, viewer_id: Optional[int] = None) -> dict:
        product = (
            db.query(Product)
            .options(joinedload(Product.seller), joinedload(Product.category))
            .filter(Product.id == product_id, Product.is_active == True)
            .first()
        )
        if not product:
            raise NotFoundError("Product not found")

        in_wishlist = False
        if viewer_id is not None:
            in_wishlist = db.query(Wishlist.id).filter(
                Wishlist.user_id == viewer_id,
                Wishlist.product_id == product_id,
            ).first() is not None

        data = ProductService.to_summary(product)
        data["seller"]["image"] = product.seller.profile_image if product.seller else None
        data["in_wishlist"] = in_wishlist
        data["updated_at"] = product.updated_at
        return data

    @staticmethod
    def create_product(db: Session, seller_id: int, product_in: ProductCreate) -> Product:
        category = db.query(Category).filter(Category.id == product_in.category_id).first()
        if not category:
            raise ConflictError("Invalid category")

        product = Product(
            seller_id=seller_id,
            category_id=category.id,
            title=product_in.title,
            description=product_in.description,
            price=product_in.price,
            condition_type=product_in.condition,
            year_manufactured=product_in.year,
            brand=product_in.brand,
            dimensions=product_in.dimensions,
            weight=product_in.weight,
            material=product_in.material,
            has_warranty=product_in.has_warranty,
            has_manual=product_in.has_manual,
            quantity=product_in.quantity,
            is_eco_friendly=product_in.is_eco_friendly,
            sustainability_score=product_in.sustainability_score,
        )
        db.add(product)
        db.commit()
        db.refresh(product)

        logger.info("product_created", product_id=product.id, seller_id=seller_id)
        return product

    @staticmethod
    def seller_listings(
        db: Session,
        seller_id: int,
        category: Optional[str] = None,
        sort_by: str = "newest",
        page: int = 1,
        limit: int = 12,
    ) -> Tuple[List[Tuple[Product, int]], int]:
        """The seller's products (listed or not) with completed-sale counts."""
        sales = (
            db.query(OrderItem.product_id, func.count(OrderItem.id).label("total_sales"))
            .join(Order, Order.id == OrderItem.order_id)
            .filter(Order.status == OrderStatus.COMPLETED)
            .group_by(OrderItem.product_id)
            .subquery()
        )

        query = (
            db.query(Product, func.coalesce(sales.c.total_sales, 0))
            .outerjoin(sales, sales.c.product_id == Product.id)
            .outerjoin(Category, Product.category_id == Category.id)
            .filter(Product.seller_id == seller_id)
        )
        if category and category != ALL_CATEGORIES:
            query = query.filter(Category.name == category)

        total = query.count()
        rows = (
            query.order_by(*SORT_ORDERS.get(sort_by, SORT_ORDERS["newest"]))
            .offset((page - 1) * limit)
            .limit(limit)
            .all()
        )
        return [(product, int(total_sales)) for product, total_sales in rows], total

    @staticmethod
    def _owned_product(db: Session, seller_id: int, product_id: int) -> Product:
        product = db.query(Product).filter(
            Product.id == product_id,
            Product.seller_id == seller_id,
        ).first()
        if not product:
            raise NotFoundError("Product not found or not authorized")
        return product

    @staticmethod
    def update_product(db: Session, seller_id: int, product_id: int, product_in: ProductUpdate) -> Product:
        product = ProductService._owned_product(db, seller_id, product_id)

        updates = product_in.model_dump(exclude_unset=True, exclude_none=True)
        quantity = updates.pop("quantity", None)

        try:
            # restock re-reads the locked row, so it runs before field edits
            if quantity is not None:
                inventory.restock(db, product.id, quantity)
            for field, value in updates.items():
                setattr(product, UPDATE_FIELD_MAP.get(field, field), value)
            db.commit()
        except Exception:
            db.rollback()
            raise

        db.refresh(product)
        return product

    @staticmethod
    def delete_product(db: Session, seller_id: int, product_id: int) -> None:
        """Soft delete: the listing is hidden, order history keeps pointing at it."""
        product = ProductService._owned_product(db, seller_id, product_id)

        pending_orders = (
            db.query(func.count(OrderItem.id))
            .join(Order, Order.id == OrderItem.order_id)
            .filter(OrderItem.product_id == product.id, Order.status == OrderStatus.PENDING)
            .scalar()
        )
        if pending_orders:
            raise ConflictError("Cannot delete product with pending orders")

        try:
            inventory.delist(db, product.id)
            db.commit()
        except Exception:
            db.rollback()
            raise

    @staticmethod
    def list_categories(db: Session) -> List[Category]:
        return db.query(Category).order_by(Category.name.asc()).all()
