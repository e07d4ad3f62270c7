"""
Routing Application Services
=============================

- TakeoverCoordinator: supervisor takeover and release
- RoutingCategoryMapper: team ↔ category mappings per workspace
- ConversationRouter: places a new or inbound conversation in a team pool
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Dict, List, Optional, Tuple

from inbox_routing.config import EventType, SUPERVISOR_ROLES
from inbox_routing.conversations.application import AuditRecorder
from inbox_routing.conversations.domain import Conversation, IConversationRepository
from inbox_routing.core import (
    ApplicationException,
    ConflictException,
    FeatureDisabledException,
    ForbiddenException,
    PreconditionFailedException,
    ResourceNotFoundException,
    ValidationException,
)
from inbox_routing.routing.domain import (
    IAssignmentResolver,
    ITeamCategoryRepository,
    ITeamDirectory,
    RoutingCategory,
    RoutingRule,
    Team,
    TeamCategoryMapping,
    TeamMember,
)
from inbox_routing.shared.infrastructure.clock import utc_now
from inbox_routing.shared.infrastructure.logging import get_logger

logger = get_logger(__name__)

TAKEOVER_FEATURE = "supervisor_takeover"


# ========== Takeover / Release ==========

class TakeoverCoordinator:
    """
    Moves a conversation into and out of supervisor takeover.

    The feature flag is fixed at construction. Guards run in order: flag,
    role, conversation lookup, takeover state. Past the guards, release
    never fails because of the restore lookup or the round-robin call;
    those fall through to the next outcome and are logged.
    """

    def __init__(
        self,
        conversation_repository: IConversationRepository,
        team_directory: ITeamDirectory,
        assignment_resolver: IAssignmentResolver,
        audit: AuditRecorder,
        takeover_enabled: bool,
        clock: Callable[[], datetime] = utc_now
    ):
        self._conversation_repo = conversation_repository
        self._team_directory = team_directory
        self._resolver = assignment_resolver
        self._audit = audit
        self._takeover_enabled = takeover_enabled
        self._clock = clock

    @property
    def takeover_enabled(self) -> bool:
        return self._takeover_enabled

    def _authorize(self, role: Optional[str]) -> None:
        if not self._takeover_enabled:
            raise FeatureDisabledException(TAKEOVER_FEATURE)
        if role not in SUPERVISOR_ROLES:
            raise ForbiddenException()

    async def _load(self, workspace_id: str, conversation_id: str) -> Conversation:
        conversation = await self._conversation_repo.get(workspace_id, conversation_id)
        if conversation is None:
            raise ResourceNotFoundException("conversation", conversation_id)
        return conversation

    async def _write(self, workspace_id: str, conversation_id: str, patch: dict) -> None:
        if not await self._conversation_repo.update_fields(workspace_id, conversation_id, patch):
            raise ResourceNotFoundException("conversation", conversation_id)

    async def takeover(
        self,
        workspace_id: str,
        conversation_id: str,
        user_id: str,
        role: Optional[str]
    ) -> Conversation:
        """
        Put the acting supervisor in charge, remembering the current owner.

        Raises:
            FeatureDisabledException, ForbiddenException,
            ResourceNotFoundException, ConflictException (``already_taken_over``),
            PreconditionFailedException (``member_not_found``)
        """
        self._authorize(role)
        conversation = await self._load(workspace_id, conversation_id)

        if conversation.is_taken_over:
            raise ConflictException("already_taken_over")

        member = await self._acting_member(workspace_id, user_id, conversation.team_id)
        if member is None:
            raise PreconditionFailedException("member_not_found")

        prev_assigned = conversation.assigned_member_id
        await self._write(workspace_id, conversation_id, {
            "takeover_by_member_id": member.id,
            "takeover_prev_assigned_member_id": prev_assigned,
            "takeover_at": self._clock(),
            "assigned_member_id": member.id,
            "assigned_to": member.id,
        })

        await self._audit.record(
            conversation_id,
            EventType.TAKEOVER,
            {"prev_assigned": prev_assigned, "takeover_by": member.id, "by": user_id},
            user_id,
        )
        logger.info(
            "Conversation taken over",
            extra={
                "workspace_id": workspace_id,
                "conversation_id": conversation_id,
                "member_id": member.id,
            },
        )
        return await self._load(workspace_id, conversation_id)

    async def release(
        self,
        workspace_id: str,
        conversation_id: str,
        user_id: str,
        role: Optional[str]
    ) -> Conversation:
        """
        End a takeover.

        The remembered owner is restored when still active and on the
        conversation's team. Otherwise the conversation is unassigned and,
        if it has a team, handed to round-robin.

        Raises:
            FeatureDisabledException, ForbiddenException,
            ResourceNotFoundException, PreconditionFailedException (``not_taken_over``),
            RepositoryException
        """
        self._authorize(role)
        conversation = await self._load(workspace_id, conversation_id)

        if not conversation.is_taken_over:
            raise PreconditionFailedException("not_taken_over")

        prev_assigned = conversation.assigned_member_id
        restored = await self._restorable_member(workspace_id, conversation)

        await self._write(workspace_id, conversation_id, {
            "takeover_by_member_id": None,
            "takeover_prev_assigned_member_id": None,
            "takeover_at": None,
            "assigned_member_id": restored,
            "assigned_to": restored,
        })

        auto_assigned = None
        if restored is None and conversation.team_id:
            auto_assigned = await self._auto_assign(conversation)

        await self._audit.record(
            conversation_id,
            EventType.RELEASE_TAKEOVER,
            {
                "prev_assigned": prev_assigned,
                "restored_assigned": restored,
                "auto_assigned": auto_assigned,
                "by": user_id,
            },
            user_id,
        )
        logger.info(
            "Takeover released",
            extra={
                "workspace_id": workspace_id,
                "conversation_id": conversation_id,
                "restored": restored,
                "auto_assigned": auto_assigned,
            },
        )
        return await self._load(workspace_id, conversation_id)

    async def _acting_member(
        self,
        workspace_id: str,
        user_id: str,
        team_id: Optional[str]
    ) -> Optional[TeamMember]:
        members = [m for m in await self._team_directory.list_members_for_user(workspace_id, user_id) if m.is_active]
        if not members:
            return None
        for member in members:
            if team_id and member.team_id == team_id:
                return member
        return members[0]

    async def _restorable_member(
        self,
        workspace_id: str,
        conversation: Conversation
    ) -> Optional[str]:
        prev_id = conversation.takeover_prev_assigned_member_id
        if prev_id is None:
            return None

        try:
            async with self._conversation_repo.isolated():
                member = await self._team_directory.get_member(workspace_id, prev_id)
        except ApplicationException as e:
            logger.warning(
                "Restore lookup failed",
                extra={"conversation_id": conversation.id, "member_id": prev_id, "error": e.message},
            )
            return None

        if member is None or not member.can_own(conversation.team_id):
            logger.info(
                "Previous owner not restorable",
                extra={"conversation_id": conversation.id, "member_id": prev_id},
            )
            return None
        return member.id

    async def _auto_assign(self, conversation: Conversation) -> Optional[str]:
        try:
            return await self._resolver.assign(conversation.team_id, conversation.id)
        except ApplicationException as e:
            logger.warning(
                "Round-robin assignment failed",
                extra={
                    "conversation_id": conversation.id,
                    "team_id": conversation.team_id,
                    "error": e.message,
                },
            )
            return None


# ========== Category mappings ==========

@dataclass
class MappingDetails:
    """A mapping with the display names of its team and category."""
    mapping: TeamCategoryMapping
    team: Team
    category: RoutingCategory


class RoutingCategoryMapper:
    """Reads and writes team ↔ category mappings within one workspace."""

    def __init__(
        self,
        team_directory: ITeamDirectory,
        category_repository: ITeamCategoryRepository
    ):
        self._team_directory = team_directory
        self._category_repo = category_repository

    async def _workspace_scope(
        self,
        workspace_id: str
    ) -> Tuple[Dict[str, Team], Dict[str, RoutingCategory]]:
        teams = {t.id: t for t in await self._team_directory.list_teams(workspace_id)}
        categories = {c.id: c for c in await self._category_repo.list_categories(workspace_id)}
        return teams, categories

    async def list_mappings(self, workspace_id: str) -> List[MappingDetails]:
        teams, categories = await self._workspace_scope(workspace_id)
        if not teams or not categories:
            return []

        mappings = await self._category_repo.list_mappings(teams.keys(), categories.keys())
        details = [
            MappingDetails(mapping=m, team=teams[m.team_id], category=categories[m.category_id])
            for m in mappings
            if m.team_id in teams and m.category_id in categories
        ]
        details.sort(key=lambda d: (d.team.name or "", d.category.label or "", d.team.id, d.category.id))
        return details

    async def save_mappings(
        self,
        workspace_id: str,
        mappings: List[TeamCategoryMapping]
    ) -> List[MappingDetails]:
        """
        Upsert the mappings whose team and category both belong to the workspace.

        Mappings that reference anything else are dropped. The last
        occurrence of a repeated pair wins.

        Raises:
            ValidationException: ``invalid_mappings`` if nothing valid remains
        """
        teams, categories = await self._workspace_scope(workspace_id)

        accepted: Dict[tuple, TeamCategoryMapping] = {}
        dropped = 0
        for mapping in mappings:
            if mapping.team_id in teams and mapping.category_id in categories:
                accepted[mapping.key] = mapping
            else:
                dropped += 1

        if not accepted:
            raise ValidationException("invalid_mappings")

        if dropped:
            logger.warning(
                "Dropped mappings outside the workspace",
                extra={"workspace_id": workspace_id, "dropped": dropped},
            )

        await self._category_repo.upsert_mappings(list(accepted.values()))
        return await self.list_mappings(workspace_id)


# ========== Routing of new conversations ==========

@dataclass
class RoutingResult:
    team_id: Optional[str] = None
    member_id: Optional[str] = None


class ConversationRouter:
    """
    Places a conversation in the team pool for its category.

    Inbound routing is gated by ``skill_routing_enabled``, fixed at
    construction like the takeover flag.
    """

    def __init__(
        self,
        conversation_repository: IConversationRepository,
        team_directory: ITeamDirectory,
        category_repository: ITeamCategoryRepository,
        assignment_resolver: IAssignmentResolver,
        audit: AuditRecorder,
        skill_routing_enabled: bool = False
    ):
        self._conversation_repo = conversation_repository
        self._team_directory = team_directory
        self._category_repo = category_repository
        self._resolver = assignment_resolver
        self._audit = audit
        self._skill_routing_enabled = skill_routing_enabled

    @property
    def skill_routing_enabled(self) -> bool:
        return self._skill_routing_enabled

    async def route_new_conversation(
        self,
        workspace_id: str,
        conversation_id: str,
        category_id: str
    ) -> RoutingResult:
        """
        Pick the team servicing ``category_id`` and round-robin within it.

        Moving the conversation to a different team drops its current owner.
        Round-robin runs when the team changed or nobody owns the
        conversation yet.

        Raises:
            ResourceNotFoundException: If the conversation is not in the workspace
        """
        conversation = await self._conversation_repo.get(workspace_id, conversation_id)
        if conversation is None:
            raise ResourceNotFoundException("conversation", conversation_id)

        team = await self._team_for_category(workspace_id, category_id)
        if team is None:
            logger.info(
                "No team services category",
                extra={"workspace_id": workspace_id, "category_id": category_id},
            )
            return RoutingResult(team_id=None, member_id=conversation.assigned_member_id)

        previous_team_id = conversation.team_id
        team_changed = previous_team_id != team.id
        patch = {"category_id": category_id}
        if team_changed:
            patch.update(team_id=team.id, assigned_member_id=None, assigned_to=None)
        if not await self._conversation_repo.update_fields(workspace_id, conversation_id, patch):
            raise ResourceNotFoundException("conversation", conversation_id)

        await self._audit.record(
            conversation_id,
            EventType.ROUTED,
            {"category_id": category_id, "team_id": team.id, "previous_team_id": previous_team_id},
            None,
        )

        result = RoutingResult(
            team_id=team.id,
            member_id=None if team_changed else conversation.assigned_member_id,
        )
        if team_changed or not conversation.assigned_member_id:
            try:
                result.member_id = await self._resolver.assign(team.id, conversation_id)
            except ApplicationException as e:
                logger.warning(
                    "Round-robin assignment failed",
                    extra={"conversation_id": conversation_id, "team_id": team.id, "error": e.message},
                )
        return result

    async def _team_for_category(self, workspace_id: str, category_id: str) -> Optional[Team]:
        categories = await self._category_repo.list_categories(workspace_id)
        if not any(c.id == category_id for c in categories):
            return None

        teams = {t.id: t for t in await self._team_directory.list_teams(workspace_id)}
        if not teams:
            return None

        mappings = await self._category_repo.list_mappings(teams.keys(), [category_id])
        candidates = [teams[m.team_id] for m in mappings if m.is_active and m.team_id in teams]
        if not candidates:
            return None
        return min(candidates, key=lambda t: (not t.is_default, (t.name or "").lower(), t.id))

    async def infer_category(self, workspace_id: str, text: str) -> Optional[RoutingCategory]:
        """
        First category whose rule has a keyword contained in ``text``.

        Rules are tried by category key, then rule id. Rules pointing at a
        category outside the workspace are skipped.
        """
        if not text:
            return None
        rules = await self._category_repo.list_rules(workspace_id)
        if not rules:
            return None

        categories = {c.id: c for c in await self._category_repo.list_categories(workspace_id)}
        candidates: List[RoutingRule] = [r for r in rules if r.category_id in categories]
        candidates.sort(key=lambda r: (categories[r.category_id].key or "", r.id))

        for rule in candidates:
            if rule.matches(text):
                return categories[rule.category_id]
        return None

    async def route_inbound(
        self,
        workspace_id: str,
        conversation_id: str,
        text: str
    ) -> Optional[RoutingResult]:
        """
        Route a conversation after a customer message arrives.

        A conversation that already has a category is routed by it.
        Otherwise the category is inferred from the message text and stored
        before routing, even when no team services it. Returns None when
        skill routing is off, the conversation is missing or no rule matches.
        """
        if not self._skill_routing_enabled:
            return None

        conversation = await self._conversation_repo.get(workspace_id, conversation_id)
        if conversation is None:
            logger.info(
                "Inbound routing skipped, conversation not found",
                extra={"workspace_id": workspace_id, "conversation_id": conversation_id},
            )
            return None

        category_id = conversation.category_id
        if not category_id:
            category = await self.infer_category(workspace_id, text)
            if category is None:
                return None
            category_id = category.id
            if not await self._conversation_repo.update_fields(
                workspace_id, conversation_id, {"category_id": category_id}
            ):
                return None
            logger.info(
                "Category inferred from routing rules",
                extra={
                    "workspace_id": workspace_id,
                    "conversation_id": conversation_id,
                    "category_key": category.key,
                },
            )

        return await self.route_new_conversation(workspace_id, conversation_id, category_id)
