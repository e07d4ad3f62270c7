"""
Request Context
===============

Workspace, user and role resolution for incoming requests.

Authentication happens in front of this service: the gateway verifies the
caller and forwards the resolved identity in trusted headers. Everything
downstream is scoped by the ``workspace_id`` resolved here.
"""

from dataclasses import dataclass
from typing import Optional

from fastapi import Depends, Header

from inbox_routing.config import settings
from inbox_routing.core import ForbiddenException, UnauthorizedException


@dataclass(frozen=True)
class RequestContext:
    workspace_id: str
    user_id: str
    role: Optional[str] = None

    def has_role(self, *roles: str) -> bool:
        return self.role in roles


async def get_request_context(
    x_workspace_id: Optional[str] = Header(default=None),
    x_user_id: Optional[str] = Header(default=None),
    x_user_role: Optional[str] = Header(default=None),
) -> RequestContext:
    if not x_workspace_id or not x_user_id:
        raise UnauthorizedException()
    role = x_user_role.strip().lower() if x_user_role else None
    return RequestContext(
        workspace_id=x_workspace_id.strip(),
        user_id=x_user_id.strip(),
        role=role,
    )


def require_workspace_role(*roles: str):
    async def _guard(
        context: RequestContext = Depends(get_request_context),
    ) -> RequestContext:
        if not context.has_role(*roles):
            raise ForbiddenException()
        return context

    return _guard


def get_supervisor_takeover_enabled() -> bool:
    """Feature flag for supervisor takeover and release."""
    return settings.supervisor_takeover_enabled


def get_skill_routing_enabled() -> bool:
    """Feature flag for routing inbound messages by keyword rules."""
    return settings.skill_routing_enabled
