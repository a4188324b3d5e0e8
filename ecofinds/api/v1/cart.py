from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from ecofinds.api.deps import get_current_user
from ecofinds.db.session import get_db
from ecofinds.models.user import User
from ecofinds.schemas.cart import CartItemCreate, CartItemUpdate
from ecofinds.services.cart_service import CartService
from ecofinds.utils.response import success

router = APIRouter()


@router.get("/", response_model=dict)
def get_cart(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Get user's cart"""
    return success(data=CartService.get_cart(db, current_user.id), message="Cart retrieved")


@router.post("/items", status_code=status.HTTP_201_CREATED)
def add_to_cart(
    cart_item: CartItemCreate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Add item to cart, or bump the quantity of an existing entry"""
    item, created = CartService.add_item(
        db, current_user.id, cart_item.product_id, cart_item.quantity
    )
    if not created:
        return JSONResponse(
            status_code=status.HTTP_200_OK,
            content=success(
                data={"id": item.id, "quantity": item.quantity},
                message="Cart updated successfully",
            ),
        )
    return success(
        data={"id": item.id, "quantity": item.quantity},
        message="Item added to cart successfully",
    )


@router.put("/items/{item_id}", response_model=dict)
def update_cart_item(
    item_id: int,
    cart_update: CartItemUpdate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    item = CartService.update_item(db, current_user.id, item_id, cart_update.quantity)
    return success(data={"id": item.id, "quantity": item.quantity}, message="Cart item updated")


@router.delete("/items/{item_id}", response_model=dict)
def remove_cart_item(
    item_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    CartService.remove_item(db, current_user.id, item_id)
    return success(message="Item removed from cart")


@router.delete("/", response_model=dict)
def clear_cart(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    removed = CartService.clear(db, current_user.id)
    return success(data={"removed_items": removed}, message="Cart cleared successfully")
