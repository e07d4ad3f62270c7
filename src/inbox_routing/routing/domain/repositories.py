"""
Routing Ports
=============

Interfaces for team data and for the round-robin assignment procedure.
"""

from abc import ABC, abstractmethod
from typing import Iterable, List, Optional

from inbox_routing.routing.domain.entities import (
    RoutingCategory,
    RoutingRule,
    Team,
    TeamCategoryMapping,
    TeamMember,
)


class ITeamDirectory(ABC):
    """Read access to a workspace's teams and members."""

    @abstractmethod
    async def get_member(self, workspace_id: str, member_id: str) -> Optional[TeamMember]:
        """Get a member of the workspace by id, active or not."""

    @abstractmethod
    async def list_members_for_user(self, workspace_id: str, user_id: str) -> List[TeamMember]:
        """Active member seats held by a user in the workspace."""

    @abstractmethod
    async def get_team(self, workspace_id: str, team_id: str) -> Optional[Team]:
        """Get a team of the workspace by id."""

    @abstractmethod
    async def list_teams(self, workspace_id: str) -> List[Team]:
        """All teams of the workspace."""


class ITeamCategoryRepository(ABC):
    """Data access for routing categories and team mappings."""

    @abstractmethod
    async def list_categories(self, workspace_id: str) -> List[RoutingCategory]:
        """All routing categories of the workspace."""

    @abstractmethod
    async def list_mappings(
        self,
        team_ids: Iterable[str],
        category_ids: Iterable[str]
    ) -> List[TeamCategoryMapping]:
        """Mappings whose team and category are both in the given sets."""

    @abstractmethod
    async def upsert_mappings(
        self,
        mappings: List[TeamCategoryMapping]
    ) -> List[TeamCategoryMapping]:
        """Insert or update on ``(team_id, category_id)``. Returns the stored rows."""

    @abstractmethod
    async def list_rules(self, workspace_id: str) -> List[RoutingRule]:
        """Keyword routing rules of the workspace."""


class IAssignmentResolver(ABC):
    """
    Round-robin assignment within a team.

    Implementations must pick and write the assignee atomically; callers do
    not serialize concurrent assignments themselves.
    """

    @abstractmethod
    async def assign(self, team_id: str, conversation_id: str) -> Optional[str]:
        """
        Assign the conversation to the team's next active member.

        Returns:
            The assigned member id, or None if the team has no eligible member

        Raises:
            AssignmentResolverException: If the assignment call fails
        """
