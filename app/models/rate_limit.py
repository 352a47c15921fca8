"""Rate-limit attempt records."""

from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import Index, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from app.database import Base, UTCDateTime, utcnow


class RateLimit(Base):
    """One attempt at a rate-limited action."""

    __tablename__ = "rate_limits"
    __table_args__ = (
        Index("ix_rate_limits_identifier_action_created", "identifier", "action", "created_at"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    identifier: Mapped[str] = mapped_column(String(255), nullable=False)  # ip, user id, email
    action: Mapped[str] = mapped_column(String(50), nullable=False)  # booking_create, payment_init
    created_at: Mapped[datetime] = mapped_column(
        UTCDateTime, default=utcnow, nullable=False, index=True
    )
