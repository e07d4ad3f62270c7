"""
Conversation Application DTOs
==============================

Request and response models for the thread endpoints.

The update body accepts camelCase and snake_case spellings of the same
field. Aliases are resolved here, once; the rest of the code only sees
column names.
"""

from datetime import datetime
from typing import Any, Dict, List, Literal, Optional

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    SerializerFunctionWrapHandler,
    StrictBool,
    StrictInt,
    ValidationError,
    field_validator,
    model_serializer,
)

from inbox_routing.conversations.domain import Conversation
from inbox_routing.core import ValidationException

PriorityStr = Literal["low", "med", "high", "urgent"]
TicketStatusStr = Literal["open", "pending", "solved", "spam"]

# Error codes by the body key that failed, most specific first
_FIELD_ERROR_CODES = (
    ({"ticketStatus", "ticket_status"}, "invalid_ticket_status"),
    ({"priority"}, "invalid_priority"),
)


# ========== Request DTOs ==========

class ThreadUpdateRequest(BaseModel):
    """Patch body for ``POST /threads/{id}/update``. Every field is optional."""

    model_config = ConfigDict(extra="forbid")

    ticket_status: Optional[TicketStatusStr] = Field(
        default=None,
        validation_alias=AliasChoices("ticketStatus", "ticket_status"),
    )
    priority: Optional[PriorityStr] = None
    assigned_member_id: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("assignedTo", "assigned_member_id", "assigned_to"),
    )
    team_id: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("team_id", "teamId"),
    )
    unread_count: Optional[StrictInt] = Field(
        default=None,
        ge=0,
        validation_alias=AliasChoices("unreadCount", "unread_count"),
    )
    is_archived: Optional[StrictBool] = Field(
        default=None,
        validation_alias=AliasChoices("isArchived", "is_archived"),
    )
    pinned: Optional[StrictBool] = None
    snoozed_until: Optional[datetime] = Field(
        default=None,
        validation_alias=AliasChoices("snoozedUntil", "snoozed_until"),
    )
    last_read_at: Optional[datetime] = Field(
        default=None,
        validation_alias=AliasChoices("lastReadAt", "last_read_at"),
    )

    @field_validator("ticket_status", "priority", mode="before")
    @classmethod
    def normalize_enum(cls, v: Any) -> Any:
        if v is None:
            raise ValueError("must not be null")
        if isinstance(v, str):
            return v.strip().lower()
        return v

    @field_validator("assigned_member_id", "team_id", mode="before")
    @classmethod
    def blank_id_is_null(cls, v: Any) -> Any:
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @classmethod
    def parse_payload(cls, payload: Any) -> "ThreadUpdateRequest":
        """
        Validate a raw JSON body.

        Raises:
            ValidationException: ``invalid_ticket_status``, ``invalid_priority``,
                ``unknown_field``, ``invalid_body`` or ``no_fields``
        """
        if not isinstance(payload, dict):
            raise ValidationException("invalid_body")

        try:
            request = cls.model_validate(payload)
        except ValidationError as exc:
            raise ValidationException(_error_code_for(exc), details={"errors": exc.errors()}) from exc

        if not request.model_fields_set:
            raise ValidationException("no_fields")
        return request

    def to_patch(self) -> Dict[str, Any]:
        """Column → value for every field present in the body."""
        patch = {name: getattr(self, name) for name in self.model_fields_set}
        if "assigned_member_id" in patch:
            patch["assigned_to"] = patch["assigned_member_id"]
        return patch


def _error_code_for(exc: ValidationError) -> str:
    failed_keys = {str(error["loc"][0]) for error in exc.errors() if error.get("loc")}
    for keys, code in _FIELD_ERROR_CODES:
        if failed_keys & keys:
            return code
    if any(error["type"] == "extra_forbidden" for error in exc.errors()):
        return "unknown_field"
    return "invalid_body"


# ========== Response DTOs ==========

# Keys left out of the payload entirely when they have no value
_OMIT_WHEN_NULL = frozenset({
    "takeoverByMemberId",
    "takeoverPrevAssignedMemberId",
    "takeoverAt",
    "nextResponseDueAt",
    "resolutionDueAt",
    "slaStatus",
    "lastCustomerMessageAt",
    "snoozedUntil",
    "lastReadAt",
})


class ConversationDTO(BaseModel):
    """Thread payload returned by every conversation endpoint."""

    id: str
    contactId: Optional[str] = None
    assignedTo: Optional[str] = None
    assignedMemberId: Optional[str] = None
    teamId: Optional[str] = None
    takeoverByMemberId: Optional[str] = None
    takeoverPrevAssignedMemberId: Optional[str] = None
    takeoverAt: Optional[datetime] = None
    ticketStatus: str
    priority: str
    unreadCount: int = 0
    lastMessageAt: Optional[datetime] = None
    nextResponseDueAt: Optional[datetime] = None
    resolutionDueAt: Optional[datetime] = None
    slaStatus: Optional[str] = None
    lastCustomerMessageAt: Optional[datetime] = None
    isArchived: bool = False
    pinned: bool = False
    snoozedUntil: Optional[datetime] = None
    lastReadAt: Optional[datetime] = None

    @model_serializer(mode="wrap")
    def _omit_null_optionals(self, handler: SerializerFunctionWrapHandler) -> Dict[str, Any]:
        data = handler(self)
        return {
            key: value for key, value in data.items()
            if value is not None or key not in _OMIT_WHEN_NULL
        }

    @classmethod
    def from_domain(cls, conversation: Conversation) -> "ConversationDTO":
        return cls(
            id=conversation.id,
            contactId=conversation.contact_id,
            assignedTo=conversation.assigned_to,
            assignedMemberId=conversation.assigned_member_id,
            teamId=conversation.team_id,
            takeoverByMemberId=conversation.takeover_by_member_id,
            takeoverPrevAssignedMemberId=conversation.takeover_prev_assigned_member_id,
            takeoverAt=conversation.takeover_at,
            ticketStatus=conversation.ticket_status,
            priority=conversation.priority,
            unreadCount=conversation.unread_count or 0,
            lastMessageAt=conversation.last_message_at,
            nextResponseDueAt=conversation.next_response_due_at,
            resolutionDueAt=conversation.resolution_due_at,
            slaStatus=conversation.sla_status,
            lastCustomerMessageAt=conversation.last_customer_message_at,
            isArchived=bool(conversation.is_archived),
            pinned=bool(conversation.pinned),
            snoozedUntil=conversation.snoozed_until,
            lastReadAt=conversation.last_read_at,
        )


class ThreadResponse(BaseModel):
    thread: ConversationDTO


class ThreadDetailResponse(BaseModel):
    thread: ConversationDTO
    supervisorTakeoverEnabled: bool = False


class ThreadListResponse(BaseModel):
    items: List[ConversationDTO] = Field(default_factory=list)
