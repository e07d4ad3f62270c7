"""
Routing Infrastructure Layer
=============================

- Models: SQLAlchemy ORM models
- Repositories: team directory, category mappings
- External: round-robin procedure adapter
"""

from inbox_routing.routing.infrastructure.external import SQLRoundRobinAssignmentResolver
from inbox_routing.routing.infrastructure.models import (
    RoutingCategoryModel,
    RoutingRuleModel,
    TeamCategoryModel,
    TeamMemberModel,
    TeamModel,
)
from inbox_routing.routing.infrastructure.repositories import (
    SQLAlchemyTeamCategoryRepository,
    SQLAlchemyTeamDirectory,
)

__all__ = [
    "SQLRoundRobinAssignmentResolver",
    "RoutingCategoryModel",
    "RoutingRuleModel",
    "TeamCategoryModel",
    "TeamMemberModel",
    "TeamModel",
    "SQLAlchemyTeamCategoryRepository",
    "SQLAlchemyTeamDirectory",
]
