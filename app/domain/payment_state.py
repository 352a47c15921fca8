"""Payment state machine."""

from enum import Enum

from app.core.exceptions import ConflictError


class PaymentStatus(str, Enum):
    """Payment attempt states."""

    PENDING = "PENDING"
    PAID = "PAID"
    FAILED = "FAILED"


PAYMENT_TRANSITIONS = {
    PaymentStatus.PENDING: {PaymentStatus.PAID, PaymentStatus.FAILED},
    PaymentStatus.PAID: set(),
    PaymentStatus.FAILED: set(),
}


def can_transition_payment(current: str, target: str) -> bool:
    return PaymentStatus(target) in PAYMENT_TRANSITIONS.get(PaymentStatus(current), set())


def assert_payment_transition(current: str, target: str) -> None:
    if not can_transition_payment(current, target):
        raise ConflictError(f"Invalid payment transition: {current} -> {target}")
