"""
SLA Domain Entities
====================

Pure Python domain entities for SLA escalation.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from inbox_routing.config import BreachType

BREACH_REASONS = {
    BreachType.NEXT_RESPONSE: "SLA breached: next response overdue",
    BreachType.RESOLUTION: "SLA breached: resolution overdue",
}


@dataclass
class Escalation:
    """
    A persisted breach of one deadline.

    Identity is ``(conversation_id, breach_type, due_at)``: the same
    deadline can only ever be escalated once.
    """

    conversation_id: str
    breach_type: str
    due_at: datetime
    reason: str
    id: Optional[str] = None
    created_at: Optional[datetime] = None

    @classmethod
    def for_breach(cls, conversation_id: str, breach_type: str, due_at: datetime) -> "Escalation":
        return cls(
            conversation_id=conversation_id,
            breach_type=breach_type,
            due_at=due_at,
            reason=BREACH_REASONS[breach_type],
        )

    @property
    def key(self) -> tuple:
        return (self.conversation_id, self.breach_type, self.due_at)
