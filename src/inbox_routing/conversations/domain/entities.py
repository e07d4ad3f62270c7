"""
Conversation Domain Entities
============================

The conversation (ticket) and its append-only audit events.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Optional

from inbox_routing.config import AssignmentState, Priority, TicketStatus


@dataclass
class Conversation:
    """
    A customer conversation, routed and timed as a support ticket.

    Every conversation belongs to exactly one workspace and is only ever
    read or written together with that workspace id.
    """

    id: str
    workspace_id: str
    contact_id: Optional[str] = None

    # Routing
    team_id: Optional[str] = None
    category_id: Optional[str] = None
    assigned_member_id: Optional[str] = None
    assigned_to: Optional[str] = None

    # Takeover
    takeover_by_member_id: Optional[str] = None
    takeover_prev_assigned_member_id: Optional[str] = None
    takeover_at: Optional[datetime] = None

    # Lifecycle
    ticket_status: str = TicketStatus.OPEN
    priority: str = Priority.LOW

    # SLA
    last_customer_message_at: Optional[datetime] = None
    next_response_due_at: Optional[datetime] = None
    resolution_due_at: Optional[datetime] = None
    sla_status: Optional[str] = None

    # Inbox state
    unread_count: int = 0
    is_archived: bool = False
    pinned: bool = False
    snoozed_until: Optional[datetime] = None
    last_read_at: Optional[datetime] = None
    last_message_at: Optional[datetime] = None

    @property
    def is_taken_over(self) -> bool:
        return self.takeover_by_member_id is not None

    @property
    def assignment_state(self) -> str:
        if self.is_taken_over:
            return AssignmentState.TAKEN_OVER
        if self.assigned_member_id is not None:
            return AssignmentState.ASSIGNED
        return AssignmentState.UNASSIGNED


@dataclass
class ConversationEvent:
    """Immutable audit record of one state transition."""

    conversation_id: str
    type: str
    meta: Dict[str, Any] = field(default_factory=dict)
    created_by: Optional[str] = None
    id: Optional[str] = None
    created_at: Optional[datetime] = None
