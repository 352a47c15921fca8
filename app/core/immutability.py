"""Immutability enforcement for payment and audit records using SQLAlchemy events."""

import logging
from datetime import UTC, datetime

from sqlalchemy import event

from app.core.exceptions import ConflictError

logger = logging.getLogger(__name__)


class ImmutabilityViolationError(ConflictError):
    """Raised when attempting to modify or delete protected records."""

    code = "immutable_record"

    def __init__(self, model_name: str, operation: str, record_id: str):
        self.model_name = model_name
        self.operation = operation
        self.record_id = record_id
        super().__init__(
            f"Immutability violation: Cannot {operation} {model_name} record {record_id}."
        )


def _reject(model_name: str, operation: str, target) -> None:
    logger.error(
        f"IMMUTABILITY_VIOLATION: Attempted to {operation} {model_name} "
        f"record_id={target.id} at {datetime.now(UTC).isoformat()}"
    )
    raise ImmutabilityViolationError(model_name, operation, str(target.id))


def prevent_payment_delete(mapper, connection, target):
    """Payments are kept forever as the audit trail of money movement."""
    _reject("Payment", "DELETE", target)


def prevent_audit_update(mapper, connection, target):
    _reject("AuditLog", "UPDATE", target)


def prevent_audit_delete(mapper, connection, target):
    _reject("AuditLog", "DELETE", target)


def register_immutability_enforcement() -> None:
    """Register SQLAlchemy event listeners (safe to call more than once)."""
    from app.models.admin import AuditLog
    from app.models.payment import Payment

    listeners = [
        (Payment, "before_delete", prevent_payment_delete),
        (AuditLog, "before_update", prevent_audit_update),
        (AuditLog, "before_delete", prevent_audit_delete),
    ]
    for model, identifier, fn in listeners:
        if not event.contains(model, identifier, fn):
            event.listen(model, identifier, fn)

    logger.info("Immutability enforcement registered for payment and audit records")
