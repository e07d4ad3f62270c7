"""
Conversation Infrastructure Models
===================================

SQLAlchemy ORM models for conversations and their audit events.
"""

from datetime import datetime
from typing import Any, Dict, Optional
from uuid import uuid4

from sqlalchemy import Boolean, DateTime, ForeignKey, Index, Integer, String, Uuid
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from inbox_routing.config import DEFAULT_PRIORITY, DEFAULT_TICKET_STATUS, Priority, TicketStatus
from inbox_routing.infrastructure.database import Base
from inbox_routing.shared.infrastructure.clock import utc_now


def _new_id() -> str:
    return str(uuid4())


class ConversationModel(Base):
    """
    Database model for the Conversation entity.

    Maps to the 'conversations' table. Rows are created by channel
    ingestion; this service only updates them.
    """
    __tablename__ = "conversations"
    __table_args__ = (
        Index("ix_conversations_workspace_status", "workspace_id", "ticket_status"),
    )

    id: Mapped[str] = mapped_column(Uuid(as_uuid=False), primary_key=True, default=_new_id)
    workspace_id: Mapped[str] = mapped_column(Uuid(as_uuid=False), nullable=False, index=True)
    contact_id: Mapped[Optional[str]] = mapped_column(Uuid(as_uuid=False), nullable=True)

    # Routing
    team_id: Mapped[Optional[str]] = mapped_column(
        Uuid(as_uuid=False), ForeignKey("teams.id", ondelete="SET NULL"), nullable=True
    )
    category_id: Mapped[Optional[str]] = mapped_column(
        Uuid(as_uuid=False), ForeignKey("routing_categories.id", ondelete="SET NULL"), nullable=True
    )
    assigned_member_id: Mapped[Optional[str]] = mapped_column(
        Uuid(as_uuid=False), ForeignKey("team_members.id", ondelete="SET NULL"), nullable=True
    )
    assigned_to: Mapped[Optional[str]] = mapped_column(Uuid(as_uuid=False), nullable=True)

    # Takeover
    takeover_by_member_id: Mapped[Optional[str]] = mapped_column(
        Uuid(as_uuid=False), ForeignKey("team_members.id", ondelete="SET NULL"), nullable=True
    )
    takeover_prev_assigned_member_id: Mapped[Optional[str]] = mapped_column(
        Uuid(as_uuid=False), nullable=True
    )
    takeover_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    # Lifecycle
    ticket_status: Mapped[TicketStatus] = mapped_column(
        String(16), nullable=False, default=DEFAULT_TICKET_STATUS
    )
    priority: Mapped[Priority] = mapped_column(String(16), nullable=False, default=DEFAULT_PRIORITY)

    # SLA
    last_customer_message_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    next_response_due_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    resolution_due_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    sla_status: Mapped[Optional[str]] = mapped_column(String(16), nullable=True)

    # Inbox state
    unread_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    is_archived: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    pinned: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    snoozed_until: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    last_read_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    last_message_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utc_now)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utc_now)


class ConversationEventModel(Base):
    """
    Database model for ConversationEvent.

    Maps to the 'conversation_events' table. Insert only.
    """
    __tablename__ = "conversation_events"

    id: Mapped[str] = mapped_column(Uuid(as_uuid=False), primary_key=True, default=_new_id)
    conversation_id: Mapped[str] = mapped_column(
        Uuid(as_uuid=False),
        ForeignKey("conversations.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    type: Mapped[str] = mapped_column(String(64), nullable=False)
    meta: Mapped[Dict[str, Any]] = mapped_column(JSONB, nullable=False, default=dict)
    created_by: Mapped[Optional[str]] = mapped_column(Uuid(as_uuid=False), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utc_now)
