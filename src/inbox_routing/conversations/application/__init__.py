"""
Conversations Application Layer
================================

Contains:
- Services: ConversationService
- AuditRecorder: best-effort audit event writer
- DTOs: thread payloads and the update request schema
"""

from inbox_routing.conversations.application.audit import AuditRecorder, jsonable
from inbox_routing.conversations.application.dto import (
    ConversationDTO,
    ThreadDetailResponse,
    ThreadListResponse,
    ThreadResponse,
    ThreadUpdateRequest,
)
from inbox_routing.conversations.application.services import ConversationService

__all__ = [
    "AuditRecorder",
    "jsonable",
    "ConversationDTO",
    "ThreadDetailResponse",
    "ThreadListResponse",
    "ThreadResponse",
    "ThreadUpdateRequest",
    "ConversationService",
]
