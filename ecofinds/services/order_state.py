from ecofinds.core.exceptions import InvalidTransitionError
from ecofinds.models.order import ORDER_TRANSITIONS, Order, OrderStatus

_REJECTION_MESSAGES = {
    (OrderStatus.COMPLETED, OrderStatus.CANCELLED): "Cannot cancel a completed order",
    (OrderStatus.CANCELLED, OrderStatus.CANCELLED): "Order is already cancelled",
    (OrderStatus.CANCELLED, OrderStatus.COMPLETED): "Cannot complete a cancelled order",
}


def can_transition(current: OrderStatus, target: OrderStatus) -> bool:
    return target in ORDER_TRANSITIONS.get(current, frozenset())


def ensure_transition(current: OrderStatus, target: OrderStatus) -> None:
    """Raise InvalidTransitionError unless ``current -> target`` is allowed."""
    if not can_transition(current, target):
        raise InvalidTransitionError(
            current,
            target,
            _REJECTION_MESSAGES.get((current, target)),
        )


def transition(order: Order, target: OrderStatus) -> OrderStatus:
    """Move ``order`` to ``target`` and return the status it left."""
    previous = order.status
    ensure_transition(previous, target)
    order.status = target
    return previous
