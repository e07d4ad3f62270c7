"""
Routing Domain Entities
=======================

Teams, their members, and which routing categories each team services.
"""

from dataclasses import dataclass, field
from typing import List, Optional


@dataclass
class Team:
    id: str
    workspace_id: str
    name: Optional[str] = None
    is_default: bool = False


@dataclass
class TeamMember:
    """
    A workspace user's seat on a team.

    Inactive members are never restored after a takeover and never picked
    by round-robin.
    """

    id: str
    team_id: Optional[str]
    workspace_id: str
    user_id: Optional[str] = None
    is_active: bool = True

    def can_own(self, team_id: Optional[str]) -> bool:
        """Whether this member may own a conversation routed to ``team_id``."""
        if not self.is_active:
            return False
        return team_id is None or self.team_id == team_id


@dataclass
class RoutingCategory:
    id: str
    workspace_id: str
    key: str
    label: str


@dataclass
class TeamCategoryMapping:
    """Team ↔ category link, unique per ``(team_id, category_id)``."""

    team_id: str
    category_id: str
    is_active: bool = True
    id: Optional[str] = None

    @property
    def key(self) -> tuple:
        return (self.team_id, self.category_id)


@dataclass
class RoutingRule:
    """
    Keywords that put an inbound message in a category.

    Matching is a case-insensitive substring test on the message text.
    """

    id: str
    workspace_id: str
    category_id: str
    keywords: List[str] = field(default_factory=list)

    def matches(self, text: str) -> bool:
        haystack = text.lower()
        for keyword in self.keywords:
            needle = (keyword or "").strip().lower()
            if needle and needle in haystack:
                return True
        return False
