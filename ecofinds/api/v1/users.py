from fastapi import APIRouter, Depends
from sqlalchemy import or_
from sqlalchemy.orm import Session

from ecofinds.api.deps import get_current_user
from ecofinds.core.exceptions import ConflictError
from ecofinds.core.security import hash_password, verify_password
from ecofinds.db.session import get_db
from ecofinds.models.order import Order, OrderItem, OrderStatus
from ecofinds.models.product import Product
from ecofinds.models.user import User
from ecofinds.schemas.user import AccountDelete, PasswordChange, UserResponse, UserUpdate
from ecofinds.services.analytics_service import user_stats
from ecofinds.utils.response import success

router = APIRouter()


@router.put("/profile", response_model=dict)
def update_profile(
    update_data: UserUpdate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Update display name and/or email"""
    updates = update_data.model_dump(exclude_unset=True, exclude_none=True)
    if not updates:
        raise ConflictError("No valid fields to update")

    if "email" in updates:
        updates["email"] = updates["email"].lower()
        taken = db.query(User.id).filter(
            User.email == updates["email"],
            User.id != current_user.id,
        ).first()
        if taken:
            raise ConflictError("Email already in use")

    for field, value in updates.items():
        setattr(current_user, field, value)
    db.commit()
    db.refresh(current_user)

    return success(
        data=UserResponse.model_validate(current_user).model_dump(),
        message="Profile updated successfully",
    )


@router.put("/password", response_model=dict)
def change_password(
    password_data: PasswordChange,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    if not verify_password(password_data.current_password, current_user.password_hash):
        raise ConflictError("Current password is incorrect")

    current_user.password_hash = hash_password(password_data.new_password)
    db.commit()
    return success(message="Password changed successfully")


@router.get("/stats", response_model=dict)
def get_stats(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return success(data=user_stats(db, current_user.id), message="Statistics retrieved")


@router.delete("/account", response_model=dict)
def delete_account(
    payload: AccountDelete,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Anonymize and deactivate the account; orders stay for the other party."""
    if not verify_password(payload.password, current_user.password_hash):
        raise ConflictError("Password is incorrect")

    pending_orders = (
        db.query(Order.id)
        .join(OrderItem, OrderItem.order_id == Order.id)
        .join(Product, Product.id == OrderItem.product_id)
        .filter(
            or_(Order.user_id == current_user.id, Product.seller_id == current_user.id),
            Order.status == OrderStatus.PENDING,
        )
        .first()
    )
    if pending_orders:
        raise ConflictError("Cannot delete account with pending orders")

    current_user.email = f"deleted_{current_user.id}@deleted.com"
    current_user.display_name = "Deleted User"
    current_user.is_active = False
    db.commit()

    return success(message="Account deleted successfully")
