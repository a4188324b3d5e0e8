from decimal import Decimal

from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from ecofinds.core.security import hash_password
from ecofinds.models.cart import CartItem
from ecofinds.models.category import Category
from ecofinds.models.product import Product, ProductCondition
from ecofinds.models.user import User

PASSWORD = "secret123"


def create_user(db: Session, email: str, display_name: str = "Eco User") -> User:
    user = User(
        email=email,
        display_name=display_name,
        password_hash=hash_password(PASSWORD),
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def create_category(db: Session, name: str = "Electronics") -> Category:
    category = db.query(Category).filter(Category.name == name).first()
    if category:
        return category
    category = Category(name=name, slug=name.lower().replace(" ", "-"))
    db.add(category)
    db.commit()
    db.refresh(category)
    return category


def create_product(
    db: Session,
    seller: User,
    *,
    title: str = "Vintage Film Camera",
    price: str = "10.00",
    quantity: int = 1,
    category: str = "Electronics",
    condition: ProductCondition = ProductCondition.USED,
    is_active: bool = True,
    is_eco_friendly: bool = False,
) -> Product:
    product = Product(
        seller_id=seller.id,
        category_id=create_category(db, category).id,
        title=title,
        description="A well kept second-hand item",
        price=Decimal(price),
        condition_type=condition,
        quantity=quantity,
        is_active=is_active,
        is_eco_friendly=is_eco_friendly,
    )
    db.add(product)
    db.commit()
    db.refresh(product)
    return product


def add_to_cart(db: Session, user: User, product: Product, quantity: int = 1) -> CartItem:
    item = CartItem(user_id=user.id, product_id=product.id, quantity=quantity)
    db.add(item)
    db.commit()
    db.refresh(item)
    return item


def login(client: TestClient, email: str, password: str = PASSWORD) -> None:
    response = client.post(
        "/api/v1/auth/login",
        json={"email": email, "password": password},
    )
    assert response.status_code == 200
