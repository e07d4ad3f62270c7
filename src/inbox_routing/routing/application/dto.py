"""
Routing Application DTOs
=========================

Request and response models for the team-category mapping endpoints.
"""

from typing import Any, List, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError

from inbox_routing.core import ValidationException
from inbox_routing.routing.application.services import MappingDetails
from inbox_routing.routing.domain import TeamCategoryMapping


class MappingItem(BaseModel):
    """One ``(team, category)`` link as sent by the client."""

    team_id: str = Field(..., min_length=1, validation_alias=AliasChoices("team_id", "teamId"))
    category_id: str = Field(..., min_length=1, validation_alias=AliasChoices("category_id", "categoryId"))
    is_active: bool = Field(default=True, validation_alias=AliasChoices("is_active", "isActive"))

    def to_domain(self) -> TeamCategoryMapping:
        return TeamCategoryMapping(
            team_id=self.team_id,
            category_id=self.category_id,
            is_active=self.is_active,
        )


class MappingsRequest(BaseModel):
    """Either a single ``mapping`` or a batch of ``mappings``."""

    model_config = ConfigDict(extra="ignore")

    mapping: Optional[MappingItem] = None
    mappings: Optional[List[MappingItem]] = None

    @classmethod
    def parse_payload(cls, payload: Any) -> List[TeamCategoryMapping]:
        """
        Raises:
            ValidationException: ``invalid_mappings`` for anything unusable
        """
        if not isinstance(payload, dict):
            raise ValidationException("invalid_mappings")
        try:
            request = cls.model_validate(payload)
        except ValidationError as exc:
            raise ValidationException("invalid_mappings", details={"errors": exc.errors()}) from exc

        items: List[MappingItem] = []
        if request.mappings:
            items.extend(request.mappings)
        elif request.mapping is not None:
            items.append(request.mapping)

        if not items:
            raise ValidationException("invalid_mappings")
        return [item.to_domain() for item in items]


class MappingView(BaseModel):
    id: Optional[str] = None
    teamId: str
    categoryId: str
    isActive: bool
    teamName: Optional[str] = None
    categoryKey: Optional[str] = None
    categoryLabel: Optional[str] = None

    @classmethod
    def from_details(cls, details: MappingDetails) -> "MappingView":
        return cls(
            id=details.mapping.id,
            teamId=details.mapping.team_id,
            categoryId=details.mapping.category_id,
            isActive=details.mapping.is_active,
            teamName=details.team.name,
            categoryKey=details.category.key,
            categoryLabel=details.category.label,
        )


class MappingsResponse(BaseModel):
    mappings: List[MappingView] = Field(default_factory=list)
