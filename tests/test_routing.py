"""Tests for team-category mappings and routing of new and inbound conversations."""

import asyncio

import pytest

from fakes import WORKSPACE
from inbox_routing.core import ResourceNotFoundException, ValidationException
from inbox_routing.routing.application import MappingsRequest
from inbox_routing.routing.domain import RoutingRule, Team, TeamCategoryMapping


class TestCategoryMapper:

    @pytest.mark.asyncio
    async def test_foreign_mappings_are_dropped(self, mapper, categories):
        saved = await mapper.save_mappings(WORKSPACE, [
            TeamCategoryMapping(team_id="team-a", category_id="cat-billing"),
            TeamCategoryMapping(team_id="team-x", category_id="cat-billing"),
            TeamCategoryMapping(team_id="team-a", category_id="cat-x"),
        ])

        assert [(d.team.id, d.category.id) for d in saved] == [("team-a", "cat-billing")]
        assert [m.key for m in categories.upserts[0]] == [("team-a", "cat-billing")]

    @pytest.mark.asyncio
    async def test_nothing_valid_is_rejected(self, mapper, categories):
        with pytest.raises(ValidationException) as exc:
            await mapper.save_mappings(WORKSPACE, [
                TeamCategoryMapping(team_id="team-x", category_id="cat-billing"),
            ])

        assert exc.value.error_code == "invalid_mappings"
        assert categories.upserts == []

    @pytest.mark.asyncio
    async def test_last_duplicate_wins(self, mapper, categories):
        saved = await mapper.save_mappings(WORKSPACE, [
            TeamCategoryMapping(team_id="team-a", category_id="cat-tech", is_active=True),
            TeamCategoryMapping(team_id="team-a", category_id="cat-tech", is_active=False),
        ])

        assert len(categories.upserts[0]) == 1
        assert saved[0].mapping.is_active is False

    @pytest.mark.asyncio
    async def test_upsert_deactivates_existing_pair(self, mapper):
        await mapper.save_mappings(WORKSPACE, [TeamCategoryMapping(team_id="team-b", category_id="cat-tech")])
        saved = await mapper.save_mappings(
            WORKSPACE, [TeamCategoryMapping(team_id="team-b", category_id="cat-tech", is_active=False)]
        )

        assert len(saved) == 1
        assert saved[0].mapping.is_active is False

    @pytest.mark.asyncio
    async def test_list_is_ordered_by_team_then_category(self, mapper):
        await mapper.save_mappings(WORKSPACE, [
            TeamCategoryMapping(team_id="team-b", category_id="cat-billing"),
            TeamCategoryMapping(team_id="team-a", category_id="cat-tech"),
            TeamCategoryMapping(team_id="team-a", category_id="cat-billing"),
        ])

        listed = await mapper.list_mappings(WORKSPACE)

        assert [(d.team.name, d.category.label) for d in listed] == [
            ("Billing", "Billing"),
            ("Billing", "Technical"),
            ("Support", "Billing"),
        ]


class TestMappingsRequest:

    def test_single_mapping_with_camel_case_keys(self):
        [mapping] = MappingsRequest.parse_payload({"mapping": {"teamId": "t", "categoryId": "c"}})
        assert mapping.key == ("t", "c")
        assert mapping.is_active is True

    def test_batch_takes_precedence(self):
        parsed = MappingsRequest.parse_payload({
            "mapping": {"team_id": "t0", "category_id": "c0"},
            "mappings": [
                {"team_id": "t1", "category_id": "c1", "is_active": False},
                {"team_id": "t2", "category_id": "c2"},
            ],
        })
        assert [m.key for m in parsed] == [("t1", "c1"), ("t2", "c2")]
        assert parsed[0].is_active is False

    @pytest.mark.parametrize("payload", [None, [], {}, {"mappings": []}, {"mapping": {"team_id": "t"}}])
    def test_unusable_bodies(self, payload):
        with pytest.raises(ValidationException) as exc:
            MappingsRequest.parse_payload(payload)
        assert exc.value.error_code == "invalid_mappings"


class TestConversationRouter:

    @pytest.mark.asyncio
    async def test_routes_to_mapped_team_and_round_robins(
        self, router, mapper, resolver, conversations, events, make_conversation
    ):
        await mapper.save_mappings(WORKSPACE, [TeamCategoryMapping(team_id="team-b", category_id="cat-tech")])
        make_conversation()
        resolver.next_member = "m-bob"

        result = await router.route_new_conversation(WORKSPACE, "conv-1", "cat-tech")

        assert (result.team_id, result.member_id) == ("team-b", "m-bob")
        row = conversations.rows["conv-1"]
        assert row.team_id == "team-b"
        assert row.category_id == "cat-tech"
        assert row.assigned_member_id == "m-bob"
        [event] = events.of_type("routed")
        assert event.meta == {"category_id": "cat-tech", "team_id": "team-b", "previous_team_id": None}

    @pytest.mark.asyncio
    async def test_team_change_drops_current_owner(self, router, mapper, resolver, conversations, make_conversation):
        await mapper.save_mappings(WORKSPACE, [TeamCategoryMapping(team_id="team-b", category_id="cat-tech")])
        make_conversation(team_id="team-a", assigned_member_id="m-alice", assigned_to="m-alice")

        result = await router.route_new_conversation(WORKSPACE, "conv-1", "cat-tech")

        assert result.member_id is None
        assert conversations.rows["conv-1"].assigned_member_id is None
        assert resolver.calls == [("team-b", "conv-1")]

    @pytest.mark.asyncio
    async def test_same_team_keeps_owner(self, router, mapper, resolver, make_conversation):
        await mapper.save_mappings(WORKSPACE, [TeamCategoryMapping(team_id="team-a", category_id="cat-billing")])
        make_conversation(team_id="team-a", assigned_member_id="m-alice", assigned_to="m-alice")

        result = await router.route_new_conversation(WORKSPACE, "conv-1", "cat-billing")

        assert result.member_id == "m-alice"
        assert resolver.calls == []

    @pytest.mark.asyncio
    async def test_inactive_mapping_is_ignored(self, router, mapper, conversations, make_conversation):
        await mapper.save_mappings(
            WORKSPACE, [TeamCategoryMapping(team_id="team-a", category_id="cat-tech", is_active=False)]
        )
        make_conversation()

        result = await router.route_new_conversation(WORKSPACE, "conv-1", "cat-tech")

        assert result.team_id is None
        assert conversations.writes == []

    @pytest.mark.asyncio
    async def test_foreign_category_routes_nowhere(self, router, conversations, make_conversation):
        make_conversation()

        result = await router.route_new_conversation(WORKSPACE, "conv-1", "cat-x")

        assert result.team_id is None
        assert conversations.writes == []

    @pytest.mark.asyncio
    async def test_resolver_failure_leaves_conversation_in_pool(
        self, router, mapper, resolver, conversations, make_conversation
    ):
        await mapper.save_mappings(WORKSPACE, [TeamCategoryMapping(team_id="team-b", category_id="cat-tech")])
        make_conversation()
        resolver.error = "deadlock detected"

        result = await router.route_new_conversation(WORKSPACE, "conv-1", "cat-tech")

        assert result.team_id == "team-b"
        assert result.member_id is None
        assert conversations.rows["conv-1"].team_id == "team-b"

    @pytest.mark.asyncio
    async def test_unknown_conversation(self, router):
        with pytest.raises(ResourceNotFoundException):
            await router.route_new_conversation(WORKSPACE, "missing", "cat-tech")

    @pytest.mark.asyncio
    async def test_team_names_compare_case_insensitively(self, router, mapper, directory, make_conversation):
        directory.teams["team-c"] = Team(id="team-c", workspace_id=WORKSPACE, name="alpha desk")
        await mapper.save_mappings(WORKSPACE, [
            TeamCategoryMapping(team_id="team-b", category_id="cat-tech"),
            TeamCategoryMapping(team_id="team-c", category_id="cat-tech"),
        ])
        make_conversation()

        result = await router.route_new_conversation(WORKSPACE, "conv-1", "cat-tech")

        assert result.team_id == "team-c"

    @pytest.mark.asyncio
    async def test_default_team_is_preferred(self, router, mapper, directory, make_conversation):
        directory.teams["team-z"] = Team(id="team-z", workspace_id=WORKSPACE, name="Zulu", is_default=True)
        await mapper.save_mappings(WORKSPACE, [
            TeamCategoryMapping(team_id="team-a", category_id="cat-billing"),
            TeamCategoryMapping(team_id="team-z", category_id="cat-billing"),
        ])
        make_conversation()

        result = await router.route_new_conversation(WORKSPACE, "conv-1", "cat-billing")

        assert result.team_id == "team-z"


class TestInboundRouting:

    @pytest.fixture(autouse=True)
    def rules(self, categories):
        categories.rules = [
            RoutingRule(id="rule-2", workspace_id=WORKSPACE, category_id="cat-tech", keywords=["error", " Login "]),
            RoutingRule(id="rule-9", workspace_id=WORKSPACE, category_id="cat-billing", keywords=["invoice", "refund"]),
            RoutingRule(id="rule-x", workspace_id="ws-2", category_id="cat-x", keywords=["login"]),
        ]
        return categories.rules

    @pytest.mark.asyncio
    async def test_keyword_match_stores_category_and_routes(
        self, router, mapper, resolver, conversations, events, make_conversation
    ):
        await mapper.save_mappings(WORKSPACE, [TeamCategoryMapping(team_id="team-b", category_id="cat-tech")])
        make_conversation()
        resolver.next_member = "m-bob"

        result = await router.route_inbound(WORKSPACE, "conv-1", "I can't LOGIN since yesterday")

        assert (result.team_id, result.member_id) == ("team-b", "m-bob")
        assert conversations.rows["conv-1"].category_id == "cat-tech"
        [event] = events.of_type("routed")
        assert event.meta["category_id"] == "cat-tech"

    @pytest.mark.asyncio
    async def test_rules_are_tried_by_category_key(self, router):
        category = await router.infer_category(WORKSPACE, "Refund please, the invoice page shows an error")

        assert category.id == "cat-billing"

    @pytest.mark.asyncio
    async def test_no_match_leaves_conversation_alone(self, router, conversations, events, make_conversation):
        make_conversation()

        result = await router.route_inbound(WORKSPACE, "conv-1", "hello there")

        assert result is None
        assert conversations.writes == []
        assert events.events == []

    @pytest.mark.asyncio
    async def test_inferred_category_is_kept_without_a_team(self, router, conversations, make_conversation):
        make_conversation()

        result = await router.route_inbound(WORKSPACE, "conv-1", "where is my invoice")

        assert result.team_id is None
        assert conversations.rows["conv-1"].category_id == "cat-billing"

    @pytest.mark.asyncio
    async def test_stored_category_wins_over_text(self, router, mapper, resolver, make_conversation):
        await mapper.save_mappings(WORKSPACE, [TeamCategoryMapping(team_id="team-a", category_id="cat-billing")])
        make_conversation(category_id="cat-billing")

        result = await router.route_inbound(WORKSPACE, "conv-1", "login error")

        assert result.team_id == "team-a"
        assert resolver.calls == [("team-a", "conv-1")]

    @pytest.mark.asyncio
    async def test_rules_of_other_workspaces_are_ignored(self, router, categories):
        categories.rules = [r for r in categories.rules if r.workspace_id != WORKSPACE]

        assert await router.infer_category(WORKSPACE, "login") is None

    @pytest.mark.asyncio
    async def test_unknown_conversation_is_skipped(self, router):
        assert await router.route_inbound(WORKSPACE, "missing", "invoice") is None

    @pytest.mark.asyncio
    @pytest.mark.parametrize("skill_routing_enabled", [False])
    async def test_disabled_flag_does_nothing(self, router, conversations, make_conversation, skill_routing_enabled):
        make_conversation()

        result = await router.route_inbound(WORKSPACE, "conv-1", "invoice")

        assert result is None
        assert conversations.writes == []


def test_router_dependency_reads_flag():
    from inbox_routing.routing.interfaces.controllers import get_conversation_router

    routers = [
        asyncio.run(get_conversation_router(session=None, skill_routing_enabled=flag))
        for flag in (True, False)
    ]

    assert [r.skill_routing_enabled for r in routers] == [True, False]
