"""
Shared fixtures.

Services are wired against the in-memory fakes in ``fakes.py``; the HTTP
app gets the same services through dependency overrides, so no database
is needed.
"""

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from fakes import (
    OTHER_WORKSPACE,
    WORKSPACE,
    FakeAssignmentResolver,
    FakeConversationRepository,
    FakeEscalationRepository,
    FakeEventRepository,
    FakeTeamCategoryRepository,
    FakeTeamDirectory,
    FixedClock,
)
from inbox_routing.conversations.application import AuditRecorder, ConversationService
from inbox_routing.conversations.domain import Conversation
from inbox_routing.routing.application import (
    ConversationRouter,
    RoutingCategoryMapper,
    TakeoverCoordinator,
)
from inbox_routing.routing.domain import RoutingCategory, Team, TeamMember
from inbox_routing.sla.application import SLARecomputationService
from inbox_routing.sla.infrastructure import StaticSLAPolicyProvider


@pytest.fixture
def clock():
    return FixedClock()


@pytest.fixture
def conversations():
    return FakeConversationRepository()


@pytest.fixture
def events():
    return FakeEventRepository()


@pytest.fixture
def escalations():
    return FakeEscalationRepository()


@pytest.fixture
def directory(conversations):
    return FakeTeamDirectory(
        teams=[
            Team(id="team-a", workspace_id=WORKSPACE, name="Billing"),
            Team(id="team-b", workspace_id=WORKSPACE, name="Support"),
            Team(id="team-x", workspace_id=OTHER_WORKSPACE, name="Elsewhere"),
        ],
        members=[
            TeamMember(id="m-alice", team_id="team-a", workspace_id=WORKSPACE, user_id="u-alice"),
            TeamMember(id="m-bob", team_id="team-b", workspace_id=WORKSPACE, user_id="u-bob"),
            TeamMember(id="m-carol", team_id="team-a", workspace_id=WORKSPACE, user_id="u-carol", is_active=False),
            TeamMember(id="m-sup", team_id="team-a", workspace_id=WORKSPACE, user_id="u-sup"),
        ],
        transaction=conversations,
    )


@pytest.fixture
def categories():
    return FakeTeamCategoryRepository([
        RoutingCategory(id="cat-billing", workspace_id=WORKSPACE, key="billing", label="Billing"),
        RoutingCategory(id="cat-tech", workspace_id=WORKSPACE, key="tech", label="Technical"),
        RoutingCategory(id="cat-x", workspace_id=OTHER_WORKSPACE, key="billing", label="Billing"),
    ])


@pytest.fixture
def resolver(conversations):
    return FakeAssignmentResolver(conversations)


@pytest.fixture
def audit(events):
    return AuditRecorder(events)


@pytest.fixture
def sla_service(conversations, escalations, clock):
    return SLARecomputationService(conversations, escalations, StaticSLAPolicyProvider(), clock=clock)


@pytest.fixture
def conversation_service(conversations, directory, sla_service, audit):
    return ConversationService(conversations, directory, sla_service, audit)


@pytest.fixture
def takeover_enabled():
    return True


@pytest.fixture
def coordinator(conversations, directory, resolver, audit, clock, takeover_enabled):
    return TakeoverCoordinator(
        conversations, directory, resolver, audit, takeover_enabled=takeover_enabled, clock=clock
    )


@pytest.fixture
def mapper(directory, categories):
    return RoutingCategoryMapper(directory, categories)


@pytest.fixture
def skill_routing_enabled():
    return True


@pytest.fixture
def router(conversations, directory, categories, resolver, audit, skill_routing_enabled):
    return ConversationRouter(
        conversations, directory, categories, resolver, audit, skill_routing_enabled=skill_routing_enabled
    )


@pytest.fixture
def make_conversation(conversations):
    def _make(conversation_id: str = "conv-1", **fields) -> Conversation:
        fields.setdefault("workspace_id", WORKSPACE)
        return conversations.add(Conversation(id=conversation_id, **fields))

    return _make


@pytest.fixture
def app(conversation_service, coordinator, mapper, sla_service, takeover_enabled):
    from inbox_routing.conversations.interfaces.controllers import get_conversation_service
    from inbox_routing.main import create_app
    from inbox_routing.routing.interfaces.controllers import get_category_mapper, get_takeover_coordinator
    from inbox_routing.shared.api.deps import get_supervisor_takeover_enabled
    from inbox_routing.sla.interfaces.controllers import get_sla_service

    app = create_app()
    app.dependency_overrides[get_conversation_service] = lambda: conversation_service
    app.dependency_overrides[get_takeover_coordinator] = lambda: coordinator
    app.dependency_overrides[get_category_mapper] = lambda: mapper
    app.dependency_overrides[get_sla_service] = lambda: sla_service
    app.dependency_overrides[get_supervisor_takeover_enabled] = lambda: takeover_enabled
    return app


@pytest_asyncio.fixture
async def client(app):
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as c:
        yield c
