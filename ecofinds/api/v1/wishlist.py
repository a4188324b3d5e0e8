from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from ecofinds.api.deps import get_current_user
from ecofinds.core.config import settings
from ecofinds.core.exceptions import NotFoundError
from ecofinds.db.session import get_db
from ecofinds.models.user import User
from ecofinds.schemas.wishlist import WishlistStatus
from ecofinds.services.product_service import ProductService
from ecofinds.services.wishlist_service import WishlistService
from ecofinds.utils.response import paginated_response, success

router = APIRouter()


@router.post("/{product_id}", response_model=dict, status_code=status.HTTP_201_CREATED)
def add_to_wishlist(
    product_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Add product to wishlist; adding twice is a no-op"""
    WishlistService.add_to_wishlist(db, current_user.id, product_id)
    return success(
        data=WishlistStatus(product_id=product_id, in_wishlist=True).model_dump(),
        message="Product added to wishlist",
    )


@router.delete("/{product_id}", response_model=dict)
def remove_from_wishlist(
    product_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    if not WishlistService.remove_from_wishlist(db, current_user.id, product_id):
        raise NotFoundError("Product not in wishlist")
    return success(
        data=WishlistStatus(product_id=product_id, in_wishlist=False).model_dump(),
        message="Product removed from wishlist",
    )


@router.get("/", response_model=dict)
def get_wishlist(
    page: int = Query(1, ge=1),
    limit: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    items, total = WishlistService.get_user_wishlist(db, current_user.id, page, limit)
    data = []
    for item in items:
        product = ProductService.to_summary(item.product)
        product["added_at"] = item.created_at
        data.append(product)
    return paginated_response(data, total=total, page=page, limit=limit, message="Wishlist retrieved")


@router.get("/check/{product_id}", response_model=dict)
def check_wishlist(
    product_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    in_wishlist = WishlistService.check_in_wishlist(db, current_user.id, product_id)
    return success(
        data=WishlistStatus(product_id=product_id, in_wishlist=in_wishlist).model_dump(),
    )
