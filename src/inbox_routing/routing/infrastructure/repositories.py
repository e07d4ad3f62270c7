"""
Routing Infrastructure Repositories
====================================

SQLAlchemy implementations of the team directory and the category
mapping repository.
"""

from typing import Iterable, List, Optional
from uuid import uuid4

from sqlalchemy import select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from inbox_routing.infrastructure.database import is_uuid, store_error
from inbox_routing.routing.domain import (
    ITeamCategoryRepository,
    ITeamDirectory,
    RoutingCategory,
    RoutingRule,
    Team,
    TeamCategoryMapping,
    TeamMember,
)
from inbox_routing.routing.infrastructure.models import (
    RoutingCategoryModel,
    RoutingRuleModel,
    TeamCategoryModel,
    TeamMemberModel,
    TeamModel,
)
from inbox_routing.shared.infrastructure.clock import utc_now


def _member(model: TeamMemberModel) -> TeamMember:
    return TeamMember(
        id=str(model.id),
        team_id=model.team_id,
        workspace_id=str(model.workspace_id),
        user_id=model.user_id,
        is_active=model.is_active,
    )


def _team(model: TeamModel) -> Team:
    return Team(
        id=str(model.id),
        workspace_id=str(model.workspace_id),
        name=model.name,
        is_default=model.is_default,
    )


class SQLAlchemyTeamDirectory(ITeamDirectory):

    def __init__(self, session: AsyncSession):
        self._session = session

    async def _scalars(self, stmt) -> list:
        try:
            result = await self._session.execute(stmt)
        except SQLAlchemyError as e:
            raise store_error(e) from e
        return list(result.scalars().all())

    async def get_member(self, workspace_id: str, member_id: str) -> Optional[TeamMember]:
        if not (is_uuid(workspace_id) and is_uuid(member_id)):
            return None
        rows = await self._scalars(
            select(TeamMemberModel).where(
                TeamMemberModel.workspace_id == workspace_id,
                TeamMemberModel.id == member_id,
            )
        )
        return _member(rows[0]) if rows else None

    async def list_members_for_user(self, workspace_id: str, user_id: str) -> List[TeamMember]:
        if not (is_uuid(workspace_id) and is_uuid(user_id)):
            return []
        rows = await self._scalars(
            select(TeamMemberModel)
            .where(
                TeamMemberModel.workspace_id == workspace_id,
                TeamMemberModel.user_id == user_id,
                TeamMemberModel.is_active.is_(True),
            )
            .order_by(TeamMemberModel.created_at, TeamMemberModel.id)
        )
        return [_member(row) for row in rows]

    async def get_team(self, workspace_id: str, team_id: str) -> Optional[Team]:
        if not (is_uuid(workspace_id) and is_uuid(team_id)):
            return None
        rows = await self._scalars(
            select(TeamModel).where(TeamModel.workspace_id == workspace_id, TeamModel.id == team_id)
        )
        return _team(rows[0]) if rows else None

    async def list_teams(self, workspace_id: str) -> List[Team]:
        if not is_uuid(workspace_id):
            return []
        rows = await self._scalars(
            select(TeamModel)
            .where(TeamModel.workspace_id == workspace_id)
            .order_by(TeamModel.name, TeamModel.id)
        )
        return [_team(row) for row in rows]


class SQLAlchemyTeamCategoryRepository(ITeamCategoryRepository):
    """
    Category mappings. The upsert relies on the ``(team_id, category_id)``
    unique constraint: re-sending a pair only updates ``is_active``.
    """

    def __init__(self, session: AsyncSession):
        self._session = session

    async def list_categories(self, workspace_id: str) -> List[RoutingCategory]:
        if not is_uuid(workspace_id):
            return []
        stmt = (
            select(RoutingCategoryModel)
            .where(RoutingCategoryModel.workspace_id == workspace_id)
            .order_by(RoutingCategoryModel.label, RoutingCategoryModel.id)
        )
        try:
            result = await self._session.execute(stmt)
        except SQLAlchemyError as e:
            raise store_error(e) from e

        return [
            RoutingCategory(
                id=str(model.id),
                workspace_id=str(model.workspace_id),
                key=model.key,
                label=model.label,
            )
            for model in result.scalars().all()
        ]

    async def list_mappings(
        self,
        team_ids: Iterable[str],
        category_ids: Iterable[str]
    ) -> List[TeamCategoryMapping]:
        team_ids = [t for t in team_ids if is_uuid(t)]
        category_ids = [c for c in category_ids if is_uuid(c)]
        if not team_ids or not category_ids:
            return []

        stmt = (
            select(TeamCategoryModel)
            .where(
                TeamCategoryModel.team_id.in_(team_ids),
                TeamCategoryModel.category_id.in_(category_ids),
            )
            .execution_options(populate_existing=True)
        )
        try:
            result = await self._session.execute(stmt)
        except SQLAlchemyError as e:
            raise store_error(e) from e

        return [
            TeamCategoryMapping(
                id=str(model.id),
                team_id=str(model.team_id),
                category_id=str(model.category_id),
                is_active=model.is_active,
            )
            for model in result.scalars().all()
        ]

    async def upsert_mappings(
        self,
        mappings: List[TeamCategoryMapping]
    ) -> List[TeamCategoryMapping]:
        if not mappings:
            return []

        now = utc_now()
        rows = [
            {
                "id": str(uuid4()),
                "team_id": m.team_id,
                "category_id": m.category_id,
                "is_active": m.is_active,
                "created_at": now,
                "updated_at": now,
            }
            for m in mappings
        ]
        insert_stmt = pg_insert(TeamCategoryModel).values(rows)
        stmt = insert_stmt.on_conflict_do_update(
            index_elements=["team_id", "category_id"],
            set_={
                "is_active": insert_stmt.excluded.is_active,
                "updated_at": insert_stmt.excluded.updated_at,
            },
        ).returning(
            TeamCategoryModel.id,
            TeamCategoryModel.team_id,
            TeamCategoryModel.category_id,
            TeamCategoryModel.is_active,
        )

        try:
            result = await self._session.execute(stmt)
            stored = result.all()
        except SQLAlchemyError as e:
            raise store_error(e) from e

        return [
            TeamCategoryMapping(
                id=str(row.id),
                team_id=str(row.team_id),
                category_id=str(row.category_id),
                is_active=row.is_active,
            )
            for row in stored
        ]

    async def list_rules(self, workspace_id: str) -> List[RoutingRule]:
        if not is_uuid(workspace_id):
            return []
        stmt = select(RoutingRuleModel).where(RoutingRuleModel.workspace_id == workspace_id)
        try:
            result = await self._session.execute(stmt)
        except SQLAlchemyError as e:
            raise store_error(e) from e

        return [
            RoutingRule(
                id=str(model.id),
                workspace_id=str(model.workspace_id),
                category_id=str(model.category_id),
                keywords=list(model.keywords or []),
            )
            for model in result.scalars().all()
        ]
