from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from ecofinds.models.cart import CartItem
from ecofinds.models.order import Order, OrderItem, OrderStatus
from ecofinds.services import order_service
from ecofinds.services.payment_service import defer_capture
from tests.factories import add_to_cart, create_product, create_user, login


def test_empty_cart_checkout_rejected(client: TestClient, db_session: Session):
    buyer = create_user(db_session, "empty@example.com")
    login(client, buyer.email)

    response = client.post("/api/v1/purchases/checkout", json={})

    assert response.status_code == 400
    assert response.json()["message"] == "Cart is empty"
    assert db_session.query(Order).count() == 0


def test_checkout_creates_completed_order(client: TestClient, db_session: Session):
    seller = create_user(db_session, "happy-seller@example.com")
    buyer = create_user(db_session, "happy-buyer@example.com")
    product = create_product(db_session, seller, price="10.00", quantity=3)
    add_to_cart(db_session, buyer, product, quantity=2)
    login(client, buyer.email)

    response = client.post(
        "/api/v1/purchases/checkout",
        json={"shipping_address": "12 Green Lane, Leafville"},
    )

    assert response.status_code == 201
    data = response.json()["data"]
    assert data["total_amount"] == 20.0
    assert data["status"] == "completed"
    assert data["item_count"] == 1

    db_session.refresh(product)
    assert product.quantity == 1
    assert product.is_active is True
    assert db_session.query(CartItem).filter(CartItem.user_id == buyer.id).count() == 0

    order = db_session.query(Order).filter(Order.id == data["order_id"]).one()
    assert order.shipping_address == "12 Green Lane, Leafville"
    assert [(item.product_id, item.quantity) for item in order.items] == [(product.id, 2)]


def test_checkout_without_body(client: TestClient, db_session: Session):
    seller = create_user(db_session, "nobody-seller@example.com")
    buyer = create_user(db_session, "nobody-buyer@example.com")
    add_to_cart(db_session, buyer, create_product(db_session, seller))
    login(client, buyer.email)

    response = client.post("/api/v1/purchases/checkout")

    assert response.status_code == 201


def test_checkout_sells_out_product(client: TestClient, db_session: Session):
    seller = create_user(db_session, "soldout-seller@example.com")
    buyer = create_user(db_session, "soldout-buyer@example.com")
    product = create_product(db_session, seller, quantity=1)
    add_to_cart(db_session, buyer, product)
    login(client, buyer.email)

    assert client.post("/api/v1/purchases/checkout", json={}).status_code == 201

    db_session.refresh(product)
    assert product.quantity == 0
    assert product.is_active is False
    assert client.get(f"/api/v1/products/{product.id}").status_code == 404


def test_insufficient_inventory_leaves_everything_untouched(client: TestClient, db_session: Session):
    seller = create_user(db_session, "short-seller@example.com")
    buyer = create_user(db_session, "short-buyer@example.com")
    plenty = create_product(db_session, seller, title="Plenty Item", quantity=5)
    scarce = create_product(db_session, seller, title="Scarce Item", quantity=1)
    add_to_cart(db_session, buyer, plenty, quantity=2)
    add_to_cart(db_session, buyer, scarce, quantity=2)
    login(client, buyer.email)

    response = client.post("/api/v1/purchases/checkout", json={})

    assert response.status_code == 400
    payload = response.json()
    assert payload["message"] == "Insufficient quantity for Scarce Item. Only 1 available"
    assert payload["errors"] == [{"product_id": scarce.id, "available": 1}]

    db_session.refresh(plenty)
    db_session.refresh(scarce)
    assert plenty.quantity == 5
    assert scarce.quantity == 1
    assert db_session.query(Order).count() == 0
    assert db_session.query(CartItem).filter(CartItem.user_id == buyer.id).count() == 2


def test_self_purchase_rejected(client: TestClient, db_session: Session):
    seller = create_user(db_session, "self-seller@example.com")
    other = create_user(db_session, "self-other@example.com")
    own = create_product(db_session, seller, title="Own Listing", quantity=2)
    foreign = create_product(db_session, other, title="Foreign Listing", quantity=2)
    # Entries written directly, bypassing the cart's own-product check
    add_to_cart(db_session, seller, foreign)
    add_to_cart(db_session, seller, own)
    login(client, seller.email)

    response = client.post("/api/v1/purchases/checkout", json={})

    assert response.status_code == 400
    assert response.json()["message"] == "Cannot purchase your own products"
    db_session.refresh(foreign)
    assert foreign.quantity == 2
    assert db_session.query(Order).count() == 0


def test_inactive_cart_entries_are_skipped(client: TestClient, db_session: Session):
    seller = create_user(db_session, "skip-seller@example.com")
    buyer = create_user(db_session, "skip-buyer@example.com")
    live = create_product(db_session, seller, title="Live Item", price="4.00")
    gone = create_product(db_session, seller, title="Gone Item", price="9.00")
    add_to_cart(db_session, buyer, live)
    add_to_cart(db_session, buyer, gone)
    gone.is_active = False
    db_session.commit()
    login(client, buyer.email)

    response = client.post("/api/v1/purchases/checkout", json={})

    assert response.status_code == 201
    assert response.json()["data"]["total_amount"] == 4.0
    assert response.json()["data"]["item_count"] == 1


def test_purchase_history_and_detail(client: TestClient, db_session: Session):
    seller = create_user(db_session, "history-seller@example.com", display_name="Thrift Shop")
    buyer = create_user(db_session, "history-buyer@example.com")
    product = create_product(db_session, seller, title="Retro Radio", price="30.00", quantity=2)
    add_to_cart(db_session, buyer, product)
    login(client, buyer.email)
    order_id = client.post("/api/v1/purchases/checkout", json={}).json()["data"]["order_id"]

    history = client.get("/api/v1/purchases/history")
    assert history.status_code == 200
    orders = history.json()["data"]
    assert [order["id"] for order in orders] == [order_id]
    assert orders[0]["items"][0]["product"]["title"] == "Retro Radio"
    assert orders[0]["items"][0]["product"]["seller"]["name"] == "Thrift Shop"
    assert orders[0]["items"][0]["price_at_purchase"] == 30.0
    assert orders[0]["items"][0]["line_total"] == 30.0

    filtered = client.get("/api/v1/purchases/history", params={"status": "cancelled"})
    assert filtered.json()["data"] == []

    detail = client.get(f"/api/v1/purchases/{order_id}")
    assert detail.status_code == 200
    assert detail.json()["data"]["status"] == "completed"
    assert "description" in detail.json()["data"]["items"][0]["product"]


def test_order_of_another_user_is_not_found(client: TestClient, db_session: Session):
    owner = create_user(db_session, "order-owner@example.com")
    stranger = create_user(db_session, "order-stranger@example.com")
    order = Order(user_id=owner.id, total_amount=0, status=OrderStatus.PENDING)
    db_session.add(order)
    db_session.commit()
    login(client, stranger.email)

    assert client.get(f"/api/v1/purchases/{order.id}").status_code == 404
    response = client.put(f"/api/v1/purchases/{order.id}/cancel")
    assert response.status_code == 404
    assert response.json()["message"] == "Order not found"


def test_cancel_pending_order_restores_stock(client: TestClient, db_session: Session):
    seller = create_user(db_session, "cancel-seller@example.com")
    buyer = create_user(db_session, "cancel-buyer@example.com")
    product = create_product(db_session, seller, quantity=1)
    add_to_cart(db_session, buyer, product)
    result = order_service.checkout(db_session, buyer.id, capture=defer_capture)
    assert result.status == OrderStatus.PENDING
    db_session.refresh(product)
    assert product.is_active is False
    login(client, buyer.email)

    response = client.put(f"/api/v1/purchases/{result.order_id}/cancel")

    assert response.status_code == 200
    assert response.json()["data"] == {"order_id": result.order_id, "status": "cancelled"}
    db_session.refresh(product)
    assert product.quantity == 1
    assert product.is_active is True

    again = client.put(f"/api/v1/purchases/{result.order_id}/cancel")
    assert again.status_code == 400
    assert again.json()["message"] == "Order is already cancelled"
    db_session.refresh(product)
    assert product.quantity == 1


def test_cancel_completed_order_rejected(client: TestClient, db_session: Session):
    seller = create_user(db_session, "done-seller@example.com")
    buyer = create_user(db_session, "done-buyer@example.com")
    product = create_product(db_session, seller, quantity=2)
    add_to_cart(db_session, buyer, product)
    login(client, buyer.email)
    order_id = client.post("/api/v1/purchases/checkout", json={}).json()["data"]["order_id"]

    response = client.put(f"/api/v1/purchases/{order_id}/cancel")

    assert response.status_code == 400
    assert response.json()["message"] == "Cannot cancel a completed order"
    db_session.refresh(product)
    assert product.quantity == 1
    assert db_session.query(OrderItem).filter(OrderItem.order_id == order_id).count() == 1


def test_checkout_requires_authentication(client: TestClient):
    response = client.post("/api/v1/purchases/checkout", json={})

    assert response.status_code == 401
