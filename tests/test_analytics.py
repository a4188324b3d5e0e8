from decimal import Decimal

from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from ecofinds.models.order import Order, OrderItem, OrderStatus
from tests.factories import create_product, create_user, login


def _order(db: Session, buyer, lines, status: OrderStatus) -> Order:
    total = sum((Decimal(price) * quantity for _, quantity, price in lines), Decimal("0"))
    order = Order(user_id=buyer.id, total_amount=total, status=status)
    db.add(order)
    db.flush()
    for product, quantity, price in lines:
        db.add(
            OrderItem(
                order_id=order.id,
                product_id=product.id,
                quantity=quantity,
                price_at_purchase=Decimal(price),
            )
        )
    db.commit()
    return order


def test_non_seller_cannot_view_analytics(client: TestClient, db_session: Session):
    user = create_user(db_session, "not-a-seller@example.com")
    login(client, user.email)

    response = client.get("/api/v1/purchases/seller/analytics")

    assert response.status_code == 403
    assert response.json()["message"] == "Access denied. You must be a seller to view analytics"


def test_seller_analytics_counts_orders_once(client: TestClient, db_session: Session):
    seller = create_user(db_session, "analytics-seller@example.com")
    other_seller = create_user(db_session, "analytics-other@example.com")
    buyer = create_user(db_session, "analytics-buyer@example.com")
    lamp = create_product(db_session, seller, title="Desk Lamp")
    rug = create_product(db_session, seller, title="Woven Rug")
    vase = create_product(db_session, other_seller, title="Glass Vase")

    _order(db_session, buyer, [(lamp, 1, "10.00"), (rug, 2, "5.00"), (vase, 1, "50.00")], OrderStatus.COMPLETED)
    _order(db_session, buyer, [(lamp, 1, "10.00")], OrderStatus.PENDING)
    _order(db_session, buyer, [(rug, 1, "5.00")], OrderStatus.CANCELLED)
    login(client, seller.email)

    response = client.get("/api/v1/purchases/seller/analytics")

    assert response.status_code == 200
    assert response.json()["data"] == {
        "total_orders": 3,
        "total_revenue": 20.0,
        "pending_orders": 1,
        "completed_orders": 1,
        "cancelled_orders": 1,
    }


def test_user_stats(client: TestClient, db_session: Session):
    seller = create_user(db_session, "stats-seller@example.com")
    buyer = create_user(db_session, "stats-buyer@example.com")
    chair = create_product(db_session, seller, title="Rattan Chair")
    create_product(db_session, seller, title="Hidden Stool", is_active=False)
    _order(db_session, buyer, [(chair, 2, "15.00")], OrderStatus.COMPLETED)
    login(client, seller.email)

    seller_stats = client.get("/api/v1/users/stats").json()["data"]
    assert seller_stats["products"] == {"total": 2, "active": 1}
    assert seller_stats["sales"] == {"total_orders": 1, "total_items_sold": 2, "total_revenue": 30.0}
    assert seller_stats["purchases"] == {"total_orders": 0, "total_spent": 0.0}

    login(client, buyer.email)
    buyer_stats = client.get("/api/v1/users/stats").json()["data"]
    assert buyer_stats["purchases"] == {"total_orders": 1, "total_spent": 30.0}
    assert buyer_stats["wishlist"] == {"total_items": 0}
