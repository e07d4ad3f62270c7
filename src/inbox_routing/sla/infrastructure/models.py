"""
SLA Infrastructure Models
==========================

SQLAlchemy ORM models for the SLA module.
"""

from datetime import datetime
from uuid import uuid4

from sqlalchemy import DateTime, ForeignKey, String, Text, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from inbox_routing.config import BreachType
from inbox_routing.infrastructure.database import Base
from inbox_routing.shared.infrastructure.clock import utc_now


class EscalationModel(Base):
    """
    Database model for the Escalation entity.

    Maps to the 'conversation_escalations' table. The unique constraint on
    the deadline is what makes escalation idempotent.
    """
    __tablename__ = "conversation_escalations"
    __table_args__ = (
        UniqueConstraint(
            "conversation_id", "breach_type", "due_at",
            name="uq_conversation_escalations_deadline",
        ),
    )

    id: Mapped[str] = mapped_column(
        Uuid(as_uuid=False), primary_key=True, default=lambda: str(uuid4())
    )
    conversation_id: Mapped[str] = mapped_column(
        Uuid(as_uuid=False),
        ForeignKey("conversations.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    breach_type: Mapped[BreachType] = mapped_column(String(32), nullable=False)
    due_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    reason: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utc_now
    )
