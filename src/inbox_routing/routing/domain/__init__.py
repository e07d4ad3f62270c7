"""
Routing Domain Layer
====================

Contains:
- Entities: Team, TeamMember, RoutingCategory, TeamCategoryMapping, RoutingRule
- Ports: ITeamDirectory, ITeamCategoryRepository, IAssignmentResolver
"""

from inbox_routing.routing.domain.entities import (
    RoutingCategory,
    RoutingRule,
    Team,
    TeamCategoryMapping,
    TeamMember,
)
from inbox_routing.routing.domain.repositories import (
    IAssignmentResolver,
    ITeamCategoryRepository,
    ITeamDirectory,
)

__all__ = [
    "RoutingCategory",
    "RoutingRule",
    "Team",
    "TeamCategoryMapping",
    "TeamMember",
    "IAssignmentResolver",
    "ITeamCategoryRepository",
    "ITeamDirectory",
]
