"""
SLA Application DTOs
=====================

Pydantic response models for the SLA endpoints.
"""

from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, Field

from inbox_routing.sla.domain import Escalation, SLAComputation

SLAStatusStr = Literal["ok", "due_soon", "breached"]
BreachTypeStr = Literal["next_response", "resolution"]


class SLAResponse(BaseModel):
    nextResponseDueAt: Optional[datetime] = None
    resolutionDueAt: Optional[datetime] = None
    slaStatus: SLAStatusStr

    @classmethod
    def from_computation(cls, computed: SLAComputation) -> "SLAResponse":
        return cls(
            nextResponseDueAt=computed.next_response_due_at,
            resolutionDueAt=computed.resolution_due_at,
            slaStatus=computed.sla_status,
        )


class EscalationResponse(BaseModel):
    id: Optional[str] = None
    conversationId: str
    breachType: BreachTypeStr
    dueAt: datetime
    reason: str
    createdAt: Optional[datetime] = None

    @classmethod
    def from_domain(cls, escalation: Escalation) -> "EscalationResponse":
        return cls(
            id=escalation.id,
            conversationId=escalation.conversation_id,
            breachType=escalation.breach_type,
            dueAt=escalation.due_at,
            reason=escalation.reason,
            createdAt=escalation.created_at,
        )


class EscalationListResponse(BaseModel):
    escalations: List[EscalationResponse] = Field(default_factory=list)


class SweepResponse(BaseModel):
    evaluated: int = Field(..., description="Conversations recomputed")
    failed: int = Field(default=0, description="Conversations that could not be recomputed")
    breached: int = Field(default=0, description="Conversations whose response SLA is breached")
