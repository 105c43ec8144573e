"""
Tests for RuleEngine ordering and passthrough semantics.
"""

import pytest

from cauth.models import DecisionAction, Rule


class TestRuleOrder:
    """The first governing rule decides."""

    @pytest.mark.asyncio
    async def test_first_matching_rule_governs(self, make_engine, make_request, backend):
        backend.responses = {"first.local": (403, {}), "second.local": (200, {"X-User": "bob"})}
        engine = make_engine([
            Rule(path="/api", endpoint="http://first.local/check"),
            Rule(path="/api/v1", endpoint="http://second.local/check"),
        ])

        decision = await engine.evaluate(make_request("/api/v1/items"))

        assert decision.action == DecisionAction.REJECT
        assert decision.response.status_code == 403
        assert [call["host"] for call in backend.calls] == ["first.local"]

    @pytest.mark.asyncio
    async def test_forward_stops_evaluation(self, make_engine, make_request, backend):
        backend.body = {"X-User": "alice"}
        engine = make_engine([
            Rule(path="/api", endpoint="http://first.local/check"),
            Rule(path="/api", endpoint="http://second.local/check"),
        ])

        decision = await engine.evaluate(make_request("/api"))

        assert decision.action == DecisionAction.FORWARD
        assert decision.headers == {"X-User": "alice"}
        assert decision.rule.endpoint == "http://first.local/check"
        assert len(backend.calls) == 1

    @pytest.mark.asyncio
    async def test_no_rules_forwards_unchanged(self, make_engine, make_request):
        decision = await make_engine([]).evaluate(make_request("/anything"))

        assert decision.action == DecisionAction.FORWARD
        assert decision.rule is None
        assert decision.headers == {}

    @pytest.mark.asyncio
    async def test_path_is_cleaned_before_matching(self, make_engine, make_request, backend):
        engine = make_engine([Rule(path="/admin", required_headers=["Authorization"])])

        decision = await engine.evaluate(make_request("/public/../admin"))

        assert decision.action == DecisionAction.REJECT
        assert decision.response.status_code == 401

    @pytest.mark.asyncio
    async def test_excepted_path_is_cleaned(self, make_engine, make_request):
        engine = make_engine([
            Rule(path="/admin", required_headers=["Authorization"], excepted_paths=["/admin/public"]),
        ])

        decision = await engine.evaluate(make_request("/admin/x/../public"))

        assert decision.action == DecisionAction.FORWARD

    @pytest.mark.asyncio
    async def test_case_insensitive_engine(self, make_engine, make_request):
        engine = make_engine([Rule(path="/admin", required_headers=["Authorization"])], case_sensitive=False)

        decision = await engine.evaluate(make_request("/ADMIN"))

        assert decision.action == DecisionAction.REJECT


class TestPassthrough:
    """Passthrough lets evaluation fall through to later rules."""

    @pytest.mark.asyncio
    async def test_missing_fields_fall_through_to_next_rule(self, make_engine, make_request, backend):
        backend.responses = {"second.local": (200, {"X-Via": "query"})}
        engine = make_engine([
            Rule(path="/api", required_headers=["X-Key"], endpoint="http://first.local/check", passthrough=True),
            Rule(path="/api", required_queries=["token"], endpoint="http://second.local/check"),
        ])

        decision = await engine.evaluate(make_request("/api/x", query="token=t"))

        assert decision.action == DecisionAction.FORWARD
        assert decision.headers == {"X-Via": "query"}
        assert [call["host"] for call in backend.calls] == ["second.local"]
        assert backend.calls[0]["payload"]["queries"] == {"token": "t"}

    @pytest.mark.asyncio
    async def test_delegation_failure_falls_through(self, make_engine, make_request, backend):
        backend.responses = {"first.local": (401, {}), "second.local": (403, {})}
        engine = make_engine([
            Rule(path="/api", endpoint="http://first.local/check", passthrough=True),
            Rule(path="/api", endpoint="http://second.local/check"),
        ])

        decision = await engine.evaluate(make_request("/api"))

        assert decision.action == DecisionAction.REJECT
        assert decision.response.status_code == 403
        assert len(backend.calls) == 2

    @pytest.mark.asyncio
    async def test_all_passthrough_forwards_unchanged(self, make_engine, make_request, backend):
        engine = make_engine([
            Rule(path="/api", required_headers=["X-Key"], endpoint="http://first.local/check", passthrough=True),
        ])

        decision = await engine.evaluate(make_request("/api"))

        assert decision.action == DecisionAction.FORWARD
        assert decision.rule is None
        assert decision.headers == {}
        assert backend.calls == []


class TestIdempotence:

    @pytest.mark.asyncio
    async def test_same_request_same_outcome(self, make_engine, make_request, backend):
        backend.body = {"X-User": "alice"}
        engine = make_engine([Rule(path="/admin", required_headers=["Authorization"], endpoint="http://auth.local/c")])

        first = await engine.evaluate(make_request("/admin", headers={"Authorization": "Bearer a"}))
        second = await engine.evaluate(make_request("/admin", headers={"Authorization": "Bearer a"}))

        assert first.action == second.action == DecisionAction.FORWARD
        assert first.headers == second.headers == {"X-User": "alice"}
        assert engine.rules[0].required_headers == ("Authorization",)
