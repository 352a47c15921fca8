"""Booking and payment audit trail service."""

from typing import Any
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from app.models.admin import AuditLog

SYSTEM_ACTOR = "system"


class AuditService:
    """Service for append-only audit logging."""

    async def log_action(
        self,
        db: AsyncSession,
        actor: str | None,
        action: str,
        resource_type: str,
        resource_id: UUID | None,
        old_values: dict[str, Any] | None = None,
        new_values: dict[str, Any] | None = None,
    ) -> AuditLog:
        """Log an action (immutable, not flushed).

        Args:
            db: Database session
            actor: User id performing the action, or "system"
            action: Action name (e.g., "booking_confirm")
            resource_type: Resource type (e.g., "booking", "payment")
            resource_id: Resource ID
            old_values: Previous state
            new_values: New state

        Returns:
            Created audit log entry
        """
        audit = AuditLog(
            actor=actor or SYSTEM_ACTOR,
            action=action,
            resource_type=resource_type,
            resource_id=resource_id,
            old_values=old_values,
            new_values=new_values,
        )
        db.add(audit)
        return audit

    async def log_booking_transition(
        self,
        db: AsyncSession,
        booking_id: UUID,
        old_status: str | None,
        new_status: str,
        actor: str | None = None,
        **details: Any,
    ) -> AuditLog:
        """Log booking status change."""
        return await self.log_action(
            db=db,
            actor=actor,
            action=f"booking_{new_status.lower()}",
            resource_type="booking",
            resource_id=booking_id,
            old_values={"status": old_status} if old_status else None,
            new_values={"status": new_status, **details},
        )

    async def log_payment_action(
        self,
        db: AsyncSession,
        action: str,
        payment_id: UUID,
        old_status: str | None,
        new_status: str,
        amount: int | None = None,
        actor: str | None = None,
        **details: Any,
    ) -> AuditLog:
        """Log payment status change."""
        new_values: dict[str, Any] = {"status": new_status, **details}
        if amount is not None:
            new_values["amount"] = amount
        return await self.log_action(
            db=db,
            actor=actor,
            action=action,
            resource_type="payment",
            resource_id=payment_id,
            old_values={"status": old_status} if old_status else None,
            new_values=new_values,
        )


audit_service = AuditService()
