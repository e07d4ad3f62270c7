"""Tests for supervisor takeover and release."""

from datetime import timedelta

import pytest

from fakes import NOW, WORKSPACE
from inbox_routing.core import (
    ConflictException,
    FeatureDisabledException,
    ForbiddenException,
    PreconditionFailedException,
    ResourceNotFoundException,
)
from inbox_routing.routing.application import TakeoverCoordinator


def taken_over(make_conversation, prev="m-alice", team_id="team-a", **fields):
    return make_conversation(
        team_id=team_id,
        assigned_member_id="m-sup",
        assigned_to="m-sup",
        takeover_by_member_id="m-sup",
        takeover_prev_assigned_member_id=prev,
        takeover_at=NOW - timedelta(minutes=5),
        **fields,
    )


class TestTakeover:

    @pytest.mark.asyncio
    async def test_supervisor_becomes_owner(self, coordinator, events, make_conversation):
        make_conversation(team_id="team-a", assigned_member_id="m-alice", assigned_to="m-alice")

        result = await coordinator.takeover(WORKSPACE, "conv-1", "u-sup", "supervisor")

        assert result.takeover_by_member_id == "m-sup"
        assert result.takeover_prev_assigned_member_id == "m-alice"
        assert result.takeover_at == NOW
        assert result.assigned_member_id == "m-sup"
        assert result.assigned_to == "m-sup"
        assert result.assignment_state == "taken_over"

        [event] = events.of_type("takeover")
        assert event.meta == {"prev_assigned": "m-alice", "takeover_by": "m-sup", "by": "u-sup"}
        assert event.created_by == "u-sup"

    @pytest.mark.asyncio
    async def test_second_takeover_conflicts(self, coordinator, conversations, make_conversation):
        taken_over(make_conversation)

        with pytest.raises(ConflictException) as exc:
            await coordinator.takeover(WORKSPACE, "conv-1", "u-sup", "admin")

        assert exc.value.error_code == "already_taken_over"
        assert exc.value.status_code == 409
        assert conversations.writes == []

    @pytest.mark.asyncio
    async def test_caller_without_member_seat(self, coordinator, make_conversation):
        make_conversation(team_id="team-a")

        with pytest.raises(PreconditionFailedException) as exc:
            await coordinator.takeover(WORKSPACE, "conv-1", "u-nobody", "supervisor")

        assert exc.value.error_code == "member_not_found"

    @pytest.mark.asyncio
    async def test_unknown_conversation(self, coordinator):
        with pytest.raises(ResourceNotFoundException) as exc:
            await coordinator.takeover(WORKSPACE, "missing", "u-sup", "supervisor")

        assert exc.value.error_code == "conversation_not_found"


class TestRelease:

    @pytest.mark.asyncio
    async def test_not_taken_over_writes_nothing(self, coordinator, conversations, events, make_conversation):
        make_conversation(team_id="team-a", assigned_member_id="m-alice")

        with pytest.raises(PreconditionFailedException) as exc:
            await coordinator.release(WORKSPACE, "conv-1", "u-sup", "supervisor")

        assert exc.value.error_code == "not_taken_over"
        assert conversations.writes == []
        assert events.events == []

    @pytest.mark.asyncio
    async def test_active_previous_owner_is_restored(self, coordinator, resolver, events, make_conversation):
        taken_over(make_conversation, prev="m-alice")

        result = await coordinator.release(WORKSPACE, "conv-1", "u-sup", "supervisor")

        assert result.assigned_member_id == "m-alice"
        assert result.assigned_to == "m-alice"
        assert result.takeover_by_member_id is None
        assert result.takeover_prev_assigned_member_id is None
        assert result.takeover_at is None
        assert resolver.calls == []

        [event] = events.of_type("release_takeover")
        assert event.meta == {
            "prev_assigned": "m-sup",
            "restored_assigned": "m-alice",
            "auto_assigned": None,
            "by": "u-sup",
        }

    @pytest.mark.asyncio
    async def test_inactive_previous_owner_goes_to_round_robin(
        self, coordinator, resolver, events, make_conversation
    ):
        taken_over(make_conversation, prev="m-carol")
        resolver.next_member = "m-alice"

        result = await coordinator.release(WORKSPACE, "conv-1", "u-sup", "supervisor")

        assert resolver.calls == [("team-a", "conv-1")]
        assert result.assigned_member_id == "m-alice"
        [event] = events.of_type("release_takeover")
        assert event.meta["restored_assigned"] is None
        assert event.meta["auto_assigned"] == "m-alice"

    @pytest.mark.asyncio
    async def test_previous_owner_on_another_team_is_not_restored(
        self, coordinator, resolver, make_conversation
    ):
        taken_over(make_conversation, prev="m-bob")

        result = await coordinator.release(WORKSPACE, "conv-1", "u-sup", "supervisor")

        assert result.assigned_member_id is None
        assert resolver.calls == [("team-a", "conv-1")]

    @pytest.mark.asyncio
    async def test_no_team_means_no_round_robin(self, coordinator, resolver, make_conversation):
        taken_over(make_conversation, prev=None, team_id=None)

        result = await coordinator.release(WORKSPACE, "conv-1", "u-sup", "supervisor")

        assert result.assigned_member_id is None
        assert result.takeover_by_member_id is None
        assert resolver.calls == []

    @pytest.mark.asyncio
    async def test_round_robin_failure_still_releases(self, coordinator, resolver, events, make_conversation):
        taken_over(make_conversation, prev="m-carol")
        resolver.error = "function assign_conversation_round_robin does not exist"

        result = await coordinator.release(WORKSPACE, "conv-1", "u-sup", "supervisor")

        assert result.takeover_by_member_id is None
        assert result.assigned_member_id is None
        [event] = events.of_type("release_takeover")
        assert event.meta["auto_assigned"] is None

    @pytest.mark.asyncio
    async def test_restore_lookup_failure_falls_through(
        self, coordinator, conversations, directory, resolver, make_conversation
    ):
        taken_over(make_conversation, prev="m-alice")
        directory.fail_lookups = True
        resolver.next_member = "m-sup"

        result = await coordinator.release(WORKSPACE, "conv-1", "u-sup", "supervisor")

        assert resolver.calls == [("team-a", "conv-1")]
        assert result.assigned_member_id == "m-sup"
        assert result.takeover_by_member_id is None
        assert conversations.aborted is False

    @pytest.mark.asyncio
    async def test_restore_lookup_runs_in_savepoint(self, coordinator, conversations, make_conversation):
        taken_over(make_conversation, prev="m-alice")

        result = await coordinator.release(WORKSPACE, "conv-1", "u-sup", "supervisor")

        assert result.assigned_member_id == "m-alice"
        assert conversations.savepoints == 1

    @pytest.mark.asyncio
    async def test_audit_failure_does_not_fail_release(self, coordinator, events, make_conversation):
        taken_over(make_conversation, prev="m-alice")
        events.fail = True

        result = await coordinator.release(WORKSPACE, "conv-1", "u-sup", "supervisor")

        assert result.assigned_member_id == "m-alice"
        assert events.events == []


class TestGuards:

    @pytest.fixture
    def disabled(self, conversations, directory, resolver, audit, clock):
        return TakeoverCoordinator(conversations, directory, resolver, audit, takeover_enabled=False, clock=clock)

    @pytest.mark.asyncio
    @pytest.mark.parametrize("role", ["supervisor", "admin", "agent", None])
    async def test_disabled_flag_wins_over_role(self, disabled, conversations, make_conversation, role):
        taken_over(make_conversation)

        with pytest.raises(FeatureDisabledException) as exc:
            await disabled.release(WORKSPACE, "conv-1", "u-sup", role)

        assert exc.value.error_code == "feature_disabled"
        assert exc.value.status_code == 403
        assert conversations.writes == []

    @pytest.mark.asyncio
    async def test_disabled_flag_blocks_takeover(self, disabled, make_conversation):
        make_conversation(team_id="team-a")

        with pytest.raises(FeatureDisabledException):
            await disabled.takeover(WORKSPACE, "conv-1", "u-sup", "supervisor")

    @pytest.mark.asyncio
    @pytest.mark.parametrize("operation", ["takeover", "release"])
    async def test_agent_is_forbidden(self, coordinator, conversations, make_conversation, operation):
        taken_over(make_conversation)

        with pytest.raises(ForbiddenException):
            await getattr(coordinator, operation)(WORKSPACE, "conv-1", "u-alice", "agent")

        assert conversations.writes == []
