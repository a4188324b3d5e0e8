from typing import Callable

from sqlalchemy.orm import Session

from ecofinds.models.order import Order, OrderStatus

# Decides which status a freshly created pending order advances to, inside
# the checkout transaction.
PaymentCapture = Callable[[Session, Order], OrderStatus]


def capture_immediately(db: Session, order: Order) -> OrderStatus:
    """No payment gateway is wired in: every checkout settles on the spot."""
    return OrderStatus.COMPLETED


def defer_capture(db: Session, order: Order) -> OrderStatus:
    """Leave the order pending for an out-of-band payment confirmation."""
    return OrderStatus.PENDING
