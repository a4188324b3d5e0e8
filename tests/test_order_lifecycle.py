import threading
from decimal import Decimal

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker

from ecofinds.core.exceptions import (
    EmptyCartError,
    InsufficientInventoryError,
    InvalidTransitionError,
    NotFoundError,
)
from ecofinds.models.cart import CartItem
from ecofinds.models.order import Order, OrderItem, OrderStatus
from ecofinds.models.product import Product
from ecofinds.services import order_service
from ecofinds.services.order_state import can_transition, ensure_transition, transition
from ecofinds.services.payment_service import defer_capture
from tests.factories import add_to_cart, create_product, create_user


@pytest.mark.parametrize(
    "current,target,allowed",
    [
        (OrderStatus.PENDING, OrderStatus.COMPLETED, True),
        (OrderStatus.PENDING, OrderStatus.CANCELLED, True),
        (OrderStatus.COMPLETED, OrderStatus.CANCELLED, False),
        (OrderStatus.COMPLETED, OrderStatus.PENDING, False),
        (OrderStatus.CANCELLED, OrderStatus.CANCELLED, False),
        (OrderStatus.CANCELLED, OrderStatus.COMPLETED, False),
        (OrderStatus.CANCELLED, OrderStatus.PENDING, False),
    ],
)
def test_transition_table(current, target, allowed):
    assert can_transition(current, target) is allowed


def test_ensure_transition_reports_states():
    with pytest.raises(InvalidTransitionError) as exc_info:
        ensure_transition(OrderStatus.COMPLETED, OrderStatus.PENDING)

    assert exc_info.value.current == OrderStatus.COMPLETED
    assert exc_info.value.target == OrderStatus.PENDING
    assert exc_info.value.message == "Cannot move order from completed to pending"


def test_transition_returns_previous_status():
    order = Order(status=OrderStatus.PENDING)

    assert transition(order, OrderStatus.COMPLETED) == OrderStatus.PENDING
    assert order.status == OrderStatus.COMPLETED


def test_checkout_snapshots_prices(db_session: Session):
    seller = create_user(db_session, "price-seller@example.com")
    buyer = create_user(db_session, "price-buyer@example.com")
    product = create_product(db_session, seller, price="19.99", quantity=5)
    add_to_cart(db_session, buyer, product, quantity=3)

    result = order_service.checkout(db_session, buyer.id)

    product.price = Decimal("99.00")
    db_session.commit()

    order = order_service.get_order(db_session, result.order_id, buyer.id)
    assert order.total_amount == Decimal("59.97")
    assert order.items[0].price_at_purchase == Decimal("19.99")
    assert result.total_amount == 59.97


def test_empty_cart_raises(db_session: Session):
    buyer = create_user(db_session, "empty-service@example.com")

    with pytest.raises(EmptyCartError):
        order_service.checkout(db_session, buyer.id)


def test_failed_checkout_rolls_back_every_line(db_session: Session):
    seller = create_user(db_session, "atomic-seller@example.com")
    buyer = create_user(db_session, "atomic-buyer@example.com")
    first = create_product(db_session, seller, title="First Atomic", quantity=3)
    second = create_product(db_session, seller, title="Second Atomic", quantity=3)
    add_to_cart(db_session, buyer, first, quantity=2)
    add_to_cart(db_session, buyer, second, quantity=2)

    # Another buyer drains the second product after this cart was built.
    second.quantity = 1
    db_session.commit()

    with pytest.raises(InsufficientInventoryError) as exc_info:
        order_service.checkout(db_session, buyer.id)

    assert exc_info.value.product_id == second.id
    db_session.refresh(first)
    db_session.refresh(second)
    assert first.quantity == 3
    assert second.quantity == 1
    assert db_session.query(Order).count() == 0
    assert db_session.query(CartItem).filter(CartItem.user_id == buyer.id).count() == 2


def test_deferred_capture_leaves_order_pending(db_session: Session):
    seller = create_user(db_session, "deferred-seller@example.com")
    buyer = create_user(db_session, "deferred-buyer@example.com")
    product = create_product(db_session, seller, quantity=2)
    add_to_cart(db_session, buyer, product)

    result = order_service.checkout(db_session, buyer.id, capture=defer_capture)

    assert result.status == OrderStatus.PENDING
    db_session.refresh(product)
    assert product.quantity == 1


def test_cancel_restores_every_item(db_session: Session):
    seller = create_user(db_session, "restore-seller@example.com")
    buyer = create_user(db_session, "restore-buyer@example.com")
    first = create_product(db_session, seller, title="Restore One", quantity=2)
    second = create_product(db_session, seller, title="Restore Two", quantity=1)
    add_to_cart(db_session, buyer, first, quantity=2)
    add_to_cart(db_session, buyer, second, quantity=1)
    result = order_service.checkout(db_session, buyer.id, capture=defer_capture)

    cancelled = order_service.cancel_order(db_session, result.order_id, buyer.id)

    assert cancelled.status == OrderStatus.CANCELLED
    for product, quantity in ((first, 2), (second, 1)):
        db_session.refresh(product)
        assert product.quantity == quantity
        assert product.is_active is True


def test_cancel_twice_does_not_restore_twice(db_session: Session):
    seller = create_user(db_session, "twice-seller@example.com")
    buyer = create_user(db_session, "twice-buyer@example.com")
    product = create_product(db_session, seller, quantity=3)
    add_to_cart(db_session, buyer, product, quantity=2)
    result = order_service.checkout(db_session, buyer.id, capture=defer_capture)
    order_service.cancel_order(db_session, result.order_id, buyer.id)

    with pytest.raises(InvalidTransitionError):
        order_service.cancel_order(db_session, result.order_id, buyer.id)

    db_session.refresh(product)
    assert product.quantity == 3


def test_cancel_completed_order_keeps_stock(db_session: Session):
    seller = create_user(db_session, "kept-seller@example.com")
    buyer = create_user(db_session, "kept-buyer@example.com")
    product = create_product(db_session, seller, quantity=3)
    add_to_cart(db_session, buyer, product)
    result = order_service.checkout(db_session, buyer.id)

    with pytest.raises(InvalidTransitionError) as exc_info:
        order_service.cancel_order(db_session, result.order_id, buyer.id)

    assert exc_info.value.message == "Cannot cancel a completed order"
    db_session.refresh(product)
    assert product.quantity == 2
    stored = db_session.query(Order).filter(Order.id == result.order_id).one()
    assert stored.status == OrderStatus.COMPLETED


def test_cancel_unknown_order(db_session: Session):
    buyer = create_user(db_session, "unknown-order@example.com")

    with pytest.raises(NotFoundError):
        order_service.cancel_order(db_session, 4242, buyer.id)


def test_failure_after_writes_rolls_back(db_session: Session):
    seller = create_user(db_session, "midway-seller@example.com")
    buyer = create_user(db_session, "midway-buyer@example.com")
    product = create_product(db_session, seller, quantity=2)
    add_to_cart(db_session, buyer, product, quantity=2)

    def failing_capture(db, order):
        raise RuntimeError("payment gateway unavailable")

    with pytest.raises(RuntimeError):
        order_service.checkout(db_session, buyer.id, capture=failing_capture)

    db_session.refresh(product)
    assert product.quantity == 2
    assert product.is_active is True
    assert db_session.query(Order).count() == 0
    assert db_session.query(OrderItem).count() == 0
    assert db_session.query(CartItem).filter(CartItem.user_id == buyer.id).count() == 1


def _checkout_in_thread(session_factory, user_id, barrier, results):
    session = session_factory()
    try:
        barrier.wait()
        order_service.checkout(session, user_id)
        results.append("ok")
    except InsufficientInventoryError:
        results.append("insufficient")
    finally:
        session.close()


def test_concurrent_checkouts_cannot_oversell(db_session: Session):
    seller = create_user(db_session, "race-seller@example.com")
    first_buyer = create_user(db_session, "race-buyer-1@example.com")
    second_buyer = create_user(db_session, "race-buyer-2@example.com")
    product = create_product(db_session, seller, quantity=3)
    add_to_cart(db_session, first_buyer, product, quantity=2)
    add_to_cart(db_session, second_buyer, product, quantity=2)
    product_id = product.id
    buyer_ids = [first_buyer.id, second_buyer.id]

    engine = create_engine(
        db_session.get_bind().url,
        connect_args={"check_same_thread": False, "timeout": 30},
    )
    session_factory = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    barrier = threading.Barrier(len(buyer_ids))
    results = []
    try:
        threads = [
            threading.Thread(
                target=_checkout_in_thread,
                args=(session_factory, buyer_id, barrier, results),
            )
            for buyer_id in buyer_ids
        ]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join(timeout=60)
    finally:
        engine.dispose()

    assert sorted(results) == ["insufficient", "ok"]
    db_session.expire_all()
    stored = db_session.query(Product).filter(Product.id == product_id).one()
    assert stored.quantity == 1
    assert db_session.query(Order).count() == 1
