"""
Round-Robin Assignment Resolver
===============================

Adapter for the database procedure ``assign_conversation_round_robin``.
The procedure picks the team's next active member and writes the
assignment itself; this adapter only invokes it.
"""

from typing import Optional

from sqlalchemy import bindparam, text, Uuid
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from inbox_routing.core import AssignmentResolverException
from inbox_routing.routing.domain import IAssignmentResolver
from inbox_routing.shared.infrastructure.logging import get_logger

logger = get_logger(__name__)

_ASSIGN_SQL = text(
    "SELECT assign_conversation_round_robin(:p_conversation_id, :p_team_id)"
).bindparams(
    bindparam("p_conversation_id", type_=Uuid(as_uuid=False)),
    bindparam("p_team_id", type_=Uuid(as_uuid=False)),
)


class SQLRoundRobinAssignmentResolver(IAssignmentResolver):
    """
    Calls the procedure inside a SAVEPOINT, so a failing call rolls back
    only its own work and the request transaction carries on.
    """

    def __init__(self, session: AsyncSession):
        self._session = session

    async def assign(self, team_id: str, conversation_id: str) -> Optional[str]:
        try:
            async with self._session.begin_nested():
                result = await self._session.execute(
                    _ASSIGN_SQL,
                    {"p_conversation_id": conversation_id, "p_team_id": team_id},
                )
                member_id = result.scalar_one_or_none()
        except SQLAlchemyError as e:
            orig = getattr(e, "orig", None)
            raise AssignmentResolverException(str(orig or e)) from e

        logger.debug(
            "Round-robin assignment",
            extra={"conversation_id": conversation_id, "team_id": team_id, "member_id": member_id},
        )
        return str(member_id) if member_id is not None else None
