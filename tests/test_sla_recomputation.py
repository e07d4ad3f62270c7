"""Tests for SLA recomputation, escalation and the workspace sweep."""

from datetime import timedelta

import pytest

from fakes import NOW, OTHER_WORKSPACE, WORKSPACE
from inbox_routing.conversations.application import ThreadUpdateRequest
from inbox_routing.core import ResourceNotFoundException
from inbox_routing.sla.application import SLAOverrides


@pytest.mark.asyncio
async def test_recompute_persists_due_dates(sla_service, conversations, make_conversation):
    make_conversation(priority="high", last_customer_message_at=NOW - timedelta(minutes=5))

    computed = await sla_service.recompute(WORKSPACE, "conv-1")

    row = conversations.rows["conv-1"]
    assert computed.sla_status == "due_soon"
    assert row.next_response_due_at == NOW + timedelta(minutes=10)
    assert row.resolution_due_at == NOW + timedelta(minutes=235)
    assert row.sla_status == "due_soon"


@pytest.mark.asyncio
async def test_breach_is_escalated_once(sla_service, escalations, make_conversation):
    """Recomputing an already breached conversation adds no second row."""
    make_conversation(priority="urgent", last_customer_message_at=NOW - timedelta(minutes=30))

    await sla_service.recompute(WORKSPACE, "conv-1")
    await sla_service.recompute(WORKSPACE, "conv-1")

    rows = await escalations.list_for_conversation("conv-1")
    assert [e.breach_type for e in rows] == ["next_response"]
    assert rows[0].due_at == NOW - timedelta(minutes=25)
    assert rows[0].reason == "SLA breached: next response overdue"


@pytest.mark.asyncio
async def test_both_deadlines_escalated(sla_service, escalations, make_conversation):
    make_conversation(priority="urgent", last_customer_message_at=NOW - timedelta(hours=3))

    await sla_service.recompute(WORKSPACE, "conv-1")

    rows = await escalations.list_for_conversation("conv-1")
    assert sorted(e.breach_type for e in rows) == ["next_response", "resolution"]


@pytest.mark.asyncio
async def test_deadline_reached_exactly_is_not_escalated(sla_service, escalations, make_conversation):
    """Status says breached, but escalation waits until the deadline has passed."""
    make_conversation(priority="low", last_customer_message_at=NOW - timedelta(minutes=60))

    computed = await sla_service.recompute(WORKSPACE, "conv-1")

    assert computed.sla_status == "breached"
    assert escalations.rows == {}


@pytest.mark.asyncio
async def test_new_customer_message_restarts_the_clock(sla_service, escalations, conversations, make_conversation):
    make_conversation(priority="urgent", last_customer_message_at=NOW - timedelta(minutes=30))
    await sla_service.recompute(WORKSPACE, "conv-1")

    computed = await sla_service.record_customer_message(WORKSPACE, "conv-1", NOW)

    row = conversations.rows["conv-1"]
    assert row.last_customer_message_at == NOW
    assert computed.next_response_due_at == NOW + timedelta(minutes=5)
    assert computed.sla_status == "due_soon"
    assert len(escalations.rows) == 1


@pytest.mark.asyncio
async def test_explicit_message_time_is_persisted(sla_service, conversations, make_conversation):
    make_conversation(priority="med")

    await sla_service.recompute(
        WORKSPACE, "conv-1", SLAOverrides(last_customer_message_at="2024-01-15T11:50:00Z")
    )

    assert conversations.rows["conv-1"].last_customer_message_at == NOW - timedelta(minutes=10)


@pytest.mark.asyncio
async def test_falls_back_to_last_message_at(sla_service, conversations, make_conversation):
    make_conversation(priority="med", last_message_at=NOW - timedelta(minutes=10))

    computed = await sla_service.recompute(WORKSPACE, "conv-1")

    assert computed.next_response_due_at == NOW + timedelta(minutes=20)
    assert conversations.rows["conv-1"].last_customer_message_at is None


@pytest.mark.asyncio
async def test_override_values_win_over_stored_ones(sla_service, make_conversation):
    make_conversation(priority="low", last_customer_message_at=NOW)

    computed = await sla_service.recompute(WORKSPACE, "conv-1", SLAOverrides(priority="urgent"))

    assert computed.next_response_due_at == NOW + timedelta(minutes=5)


@pytest.mark.asyncio
async def test_terminal_status_clears_deadlines_and_never_escalates(
    sla_service, escalations, conversations, make_conversation
):
    make_conversation(
        ticket_status="solved",
        priority="urgent",
        last_customer_message_at=NOW - timedelta(days=1),
        next_response_due_at=NOW - timedelta(hours=23),
        sla_status="breached",
    )

    computed = await sla_service.recompute(WORKSPACE, "conv-1")

    row = conversations.rows["conv-1"]
    assert computed.sla_status == "ok"
    assert row.next_response_due_at is None
    assert row.resolution_due_at is None
    assert row.sla_status == "ok"
    assert escalations.rows == {}


@pytest.mark.asyncio
async def test_other_workspace_is_not_found(sla_service, make_conversation):
    make_conversation(workspace_id=OTHER_WORKSPACE)

    with pytest.raises(ResourceNotFoundException):
        await sla_service.recompute(WORKSPACE, "conv-1")


@pytest.mark.asyncio
async def test_sweep_counts_and_continues_past_failures(sla_service, conversations, make_conversation):
    make_conversation("conv-ok", priority="low", last_customer_message_at=NOW)
    make_conversation("conv-late", priority="urgent", last_customer_message_at=NOW - timedelta(minutes=30))
    make_conversation("conv-broken", priority="low", last_customer_message_at=NOW)
    make_conversation("conv-done", ticket_status="solved", last_customer_message_at=NOW)
    make_conversation("conv-foreign", workspace_id=OTHER_WORKSPACE, last_customer_message_at=NOW)
    conversations.failing_ids.add("conv-broken")

    result = await sla_service.recompute_workspace(WORKSPACE)

    assert result.evaluated == 2
    assert result.failed == 1
    assert result.breached == 1
    assert conversations.rows["conv-late"].sla_status == "breached"
    assert conversations.rows["conv-done"].sla_status is None


@pytest.mark.asyncio
async def test_list_escalations_requires_conversation_in_workspace(sla_service, make_conversation):
    make_conversation(workspace_id=OTHER_WORKSPACE)

    with pytest.raises(ResourceNotFoundException):
        await sla_service.list_escalations(WORKSPACE, "conv-1")


class TestThreadUpdateRecomputesSLA:

    @pytest.mark.asyncio
    async def test_lowering_priority_moves_the_deadline(
        self, conversation_service, escalations, make_conversation
    ):
        """urgent → low ten minutes after the message gives 50 minutes and ok."""
        make_conversation(priority="urgent", last_customer_message_at=NOW - timedelta(minutes=10))

        updated = await conversation_service.update(
            WORKSPACE, "conv-1", ThreadUpdateRequest.parse_payload({"priority": "low"}), "u-sup"
        )

        assert updated.priority == "low"
        assert updated.next_response_due_at == NOW + timedelta(minutes=50)
        assert updated.sla_status == "ok"
        assert escalations.rows == {}

    @pytest.mark.asyncio
    async def test_solving_clears_deadlines(self, conversation_service, make_conversation):
        make_conversation(priority="high", last_customer_message_at=NOW)

        updated = await conversation_service.update(
            WORKSPACE, "conv-1", ThreadUpdateRequest.parse_payload({"ticketStatus": "solved"}), "u-sup"
        )

        assert updated.ticket_status == "solved"
        assert updated.next_response_due_at is None
        assert updated.sla_status == "ok"

    @pytest.mark.asyncio
    async def test_inbox_flags_leave_sla_alone(self, conversation_service, conversations, make_conversation):
        make_conversation(priority="high", last_customer_message_at=NOW)

        updated = await conversation_service.update(
            WORKSPACE, "conv-1", ThreadUpdateRequest.parse_payload({"pinned": True}), "u-sup"
        )

        assert updated.pinned is True
        assert updated.next_response_due_at is None
        assert conversations.writes == [("conv-1", {"pinned": True})]
