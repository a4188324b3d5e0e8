from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from ecofinds.api.deps import get_current_user, get_optional_user
from ecofinds.core.config import settings
from ecofinds.db.session import get_db
from ecofinds.models.product import ProductCondition
from ecofinds.models.user import User
from ecofinds.schemas.product import (
    CategoryResponse,
    ProductCreate,
    ProductFilters,
    ProductUpdate,
    SortOption,
)
from ecofinds.services.product_service import ProductService
from ecofinds.utils.response import paginated_response, success

router = APIRouter()


@router.get(
    "/",
    response_model=dict,
    summary="Browse listings",
    description="""
Lists active products with optional filters.

Filters:
- category: category name, "All Categories" means no filter
- condition: New, Like New or Used
- min_price / max_price: inclusive price range
- search: matches title, description and brand
- is_eco_friendly: only eco-friendly items
""",
)
def list_products(
    category: Optional[str] = None,
    condition: Optional[ProductCondition] = None,
    min_price: Optional[float] = Query(None, ge=0),
    max_price: Optional[float] = Query(None, ge=0),
    search: Optional[str] = None,
    is_eco_friendly: Optional[bool] = None,
    sort_by: SortOption = "newest",
    page: int = Query(1, ge=1),
    limit: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE),
    db: Session = Depends(get_db),
):
    filters = ProductFilters(
        category=category,
        condition=condition,
        min_price=min_price,
        max_price=max_price,
        search=search,
        is_eco_friendly=is_eco_friendly,
        sort_by=sort_by,
    )
    products, total = ProductService.list_products(db, filters, page, limit)
    return paginated_response(
        [ProductService.to_summary(product) for product in products],
        total=total,
        page=page,
        limit=limit,
        message="Products retrieved",
    )


@router.get("/meta/categories", response_model=dict)
def list_categories(db: Session = Depends(get_db)):
    categories = ProductService.list_categories(db)
    return success(
        data=[CategoryResponse.model_validate(category).model_dump() for category in categories],
        message="Categories retrieved",
    )


@router.get("/me/listings", response_model=dict)
def my_listings(
    category: Optional[str] = None,
    sort_by: SortOption = "newest",
    page: int = Query(1, ge=1),
    limit: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """The caller's own listings, including delisted ones"""
    rows, total = ProductService.seller_listings(
        db, current_user.id, category=category, sort_by=sort_by, page=page, limit=limit
    )
    items = []
    for product, total_sales in rows:
        data = ProductService.to_summary(product)
        data["is_active"] = product.is_active
        data["total_sales"] = total_sales
        items.append(data)

    return paginated_response(items, total=total, page=page, limit=limit, message="Listings retrieved")


@router.get("/{product_id}", response_model=dict)
def get_product(
    product_id: int,
    current_user: Optional[User] = Depends(get_optional_user),
    db: Session = Depends(get_db),
):
    viewer_id = current_user.id if current_user else None
    return success(
        data=ProductService.get_product(db, product_id, viewer_id),
        message="Product retrieved",
    )


@router.post(
    "/",
    response_model=dict,
    status_code=status.HTTP_201_CREATED,
    responses={
        201: {"description": "Product listed"},
        400: {"description": "Invalid category"},
        401: {"description": "Authentication required"},
    },
)
def create_product(
    product_in: ProductCreate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    product = ProductService.create_product(db, current_user.id, product_in)
    return success(
        data={"id": product.id, "title": product.title},
        message="Product created successfully",
    )


@router.put("/{product_id}", response_model=dict)
def update_product(
    product_id: int,
    product_in: ProductUpdate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    product = ProductService.update_product(db, current_user.id, product_id, product_in)
    return success(data=ProductService.to_summary(product), message="Product updated successfully")


@router.delete("/{product_id}", response_model=dict)
def delete_product(
    product_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    ProductService.delete_product(db, current_user.id, product_id)
    return success(message="Product deleted successfully")
