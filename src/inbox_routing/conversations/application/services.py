"""
Conversation Application Services
==================================

Thread reads and the supervisor/admin patch operation.

A patch that changes ticket status or priority restarts the SLA
calculation with the new values before the thread is read back.
"""

from typing import Any, Dict, List, Optional

from inbox_routing.config import EventType
from inbox_routing.conversations.application.audit import AuditRecorder
from inbox_routing.conversations.application.dto import ThreadUpdateRequest
from inbox_routing.conversations.domain import Conversation, IConversationRepository
from inbox_routing.core import ResourceNotFoundException, ValidationException
from inbox_routing.routing.domain import ITeamDirectory
from inbox_routing.shared.infrastructure.logging import get_logger
from inbox_routing.sla.application import SLAOverrides, SLARecomputationService

logger = get_logger(__name__)

# Fields whose change invalidates the SLA due dates
_SLA_FIELDS = ("ticket_status", "priority")


class ConversationService:
    """Application service for reading and patching threads."""

    def __init__(
        self,
        conversation_repository: IConversationRepository,
        team_directory: ITeamDirectory,
        sla_service: SLARecomputationService,
        audit: AuditRecorder
    ):
        self._conversation_repo = conversation_repository
        self._team_directory = team_directory
        self._sla_service = sla_service
        self._audit = audit

    async def get(self, workspace_id: str, conversation_id: str) -> Conversation:
        conversation = await self._conversation_repo.get(workspace_id, conversation_id)
        if conversation is None:
            raise ResourceNotFoundException("conversation", conversation_id)
        return conversation

    async def list(
        self,
        workspace_id: str,
        filters: Optional[Dict[str, Any]] = None,
        limit: int = 50,
        offset: int = 0
    ) -> List[Conversation]:
        return await self._conversation_repo.list(workspace_id, filters or {}, limit, offset)

    async def update(
        self,
        workspace_id: str,
        conversation_id: str,
        request: ThreadUpdateRequest,
        acting_user_id: Optional[str] = None
    ) -> Conversation:
        """
        Apply a validated patch.

        Raises:
            ResourceNotFoundException: If the conversation is not in the workspace
            ValidationException: ``invalid_assignee`` or ``invalid_team``
            RepositoryException: If the write fails
        """
        before = await self.get(workspace_id, conversation_id)
        patch = request.to_patch()

        await self._check_references(workspace_id, patch)

        updated = await self._conversation_repo.update_fields(workspace_id, conversation_id, patch)
        if not updated:
            raise ResourceNotFoundException("conversation", conversation_id)

        if any(name in patch for name in _SLA_FIELDS):
            await self._sla_service.recompute(
                workspace_id,
                conversation_id,
                SLAOverrides(
                    priority=patch.get("priority"),
                    ticket_status=patch.get("ticket_status"),
                ),
            )

        changes = {
            name: {"from": getattr(before, name), "to": value}
            for name, value in patch.items()
            if name != "assigned_to"
        }
        await self._audit.record(
            conversation_id,
            EventType.THREAD_UPDATED,
            {"changes": changes},
            acting_user_id,
        )

        logger.info(
            "Thread updated",
            extra={
                "workspace_id": workspace_id,
                "conversation_id": conversation_id,
                "fields": sorted(changes),
            },
        )
        return await self.get(workspace_id, conversation_id)

    async def _check_references(self, workspace_id: str, patch: Dict[str, Any]) -> None:
        assignee = patch.get("assigned_member_id")
        if assignee is not None:
            member = await self._team_directory.get_member(workspace_id, assignee)
            if member is None or not member.is_active:
                raise ValidationException("invalid_assignee")

        team_id = patch.get("team_id")
        if team_id is not None:
            team = await self._team_directory.get_team(workspace_id, team_id)
            if team is None:
                raise ValidationException("invalid_team")
