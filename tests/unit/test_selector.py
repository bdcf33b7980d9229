"""Tests for the action selector — slot parsing, weighted choice, precondition filtering."""

import pytest
from pydantic import BaseModel

from testrunner import Action, Actor, Registry
from testrunner.errors import ConfigError, UnknownAction, UnknownActor
from testrunner.prng import PRNG
from testrunner.selector import (
    ActionSelector,
    Candidate,
    action_candidates,
    actor_candidates,
    is_group,
)

ACTORS = {"alice": Actor("alice"), "bob": Actor("bob")}


def _noop(actor, ctx):
    return None


class OpenConfig(BaseModel):
    ilk: str = "ETH-A"
    amount: float = 100.0


def _selector(registry, seed=1, allow=None):
    calls = []

    async def check(action, actor, config):
        calls.append((action.name, actor.name))
        return action.precondition(actor, config) if allow is None else allow(action, actor)

    return ActionSelector(registry, PRNG(seed), check), calls


@pytest.fixture
def reg() -> Registry:
    r = Registry()
    r.register_action(Action("a", operation=_noop))
    r.register_action(Action("b", operation=_noop))
    r.register_action(Action("gated", operation=_noop, precondition=lambda actor, ctx: actor.name == "alice"))
    r.register_action(Action("open", operation=_noop, config_model=OpenConfig))
    return r


class TestSlotParsing:
    def test_is_group(self) -> None:
        assert is_group([[["alice", "a"], ["bob", "b"]]])
        assert not is_group(["alice", "a"])
        assert not is_group(["alice"])

    def test_actor_candidates(self) -> None:
        assert actor_candidates("alice") == [Candidate("alice")]
        assert actor_candidates(["alice", ["bob", 3]]) == [Candidate("alice"), Candidate("bob", 3.0)]

    def test_action_candidates_bare_and_parametrized(self) -> None:
        assert action_candidates("a") == [Candidate("a")]
        assert action_candidates(["open", {"amount": 5}]) == [Candidate("open", 1.0, {"amount": 5})]

    def test_action_candidates_weighted(self) -> None:
        parsed = action_candidates([["a", 2], ["open", {"weight": 4, "amount": 1}], "b"])
        assert [c.name for c in parsed] == ["a", "open", "b"]
        assert [c.weight for c in parsed] == [2.0, 4.0, 1.0]
        assert parsed[1].config == {"weight": 4, "amount": 1}

    def test_malformed(self) -> None:
        with pytest.raises(ConfigError):
            action_candidates([])
        with pytest.raises(ConfigError):
            actor_candidates(42)


class TestSelect:
    @pytest.mark.asyncio
    async def test_literal_pair(self, reg) -> None:
        selector, _ = _selector(reg)
        resolved = await selector.select(["alice", "a"], ACTORS)
        assert resolved.pair == ("alice", "a")
        assert resolved.config == {}

    @pytest.mark.asyncio
    async def test_parametrized_pair_uses_config_model(self, reg) -> None:
        selector, _ = _selector(reg)
        resolved = await selector.select(["alice", ["open", {"amount": 5}]], ACTORS)
        assert resolved.pair == ("alice", ["open", {"amount": 5}])
        assert resolved.config == OpenConfig(ilk="ETH-A", amount=5)

    @pytest.mark.asyncio
    async def test_invalid_config(self, reg) -> None:
        selector, _ = _selector(reg)
        with pytest.raises(ConfigError):
            await selector.select(["alice", ["open", {"amount": "lots"}]], ACTORS)

    @pytest.mark.asyncio
    async def test_weighted_actor_pair_takes_name(self, reg) -> None:
        selector, _ = _selector(reg)
        resolved = await selector.select([[["bob", 5]], "a"], ACTORS)
        assert resolved.actor_name == "bob"

    @pytest.mark.asyncio
    async def test_zero_weight_actor_never_chosen(self, reg) -> None:
        selector, _ = _selector(reg, seed=8)
        for _ in range(50):
            resolved = await selector.select([[["alice", 0], ["bob", 1]], "a"], ACTORS)
            assert resolved.actor_name == "bob"

    @pytest.mark.asyncio
    async def test_precondition_filters_candidates(self, reg) -> None:
        selector, calls = _selector(reg, allow=lambda action, actor: actor.name == "alice")
        for _ in range(20):
            resolved = await selector.select(["bob", ["gated", "a"]], ACTORS)
            assert resolved.action_name == "a"
        assert set(calls) == {("gated", "bob")}

    @pytest.mark.asyncio
    async def test_all_filtered_drops_slot(self, reg) -> None:
        selector, _ = _selector(reg, allow=lambda action, actor: False)
        assert await selector.select(["bob", "gated"], ACTORS) is None

    @pytest.mark.asyncio
    async def test_actions_without_precondition_skip_check(self, reg) -> None:
        selector, calls = _selector(reg)
        await selector.select(["alice", ["a", "b"]], ACTORS)
        assert calls == []

    @pytest.mark.asyncio
    async def test_unknown_actor(self, reg) -> None:
        selector, _ = _selector(reg)
        with pytest.raises(UnknownActor):
            await selector.select(["carol", "a"], ACTORS)

    @pytest.mark.asyncio
    async def test_unknown_action(self, reg) -> None:
        selector, _ = _selector(reg)
        with pytest.raises(UnknownAction):
            await selector.select(["alice", ["a", "missing"]], ACTORS)

    @pytest.mark.asyncio
    async def test_malformed_slot(self, reg) -> None:
        selector, _ = _selector(reg)
        with pytest.raises(ConfigError):
            await selector.select(["alice", "a", "b"], ACTORS)

    @pytest.mark.asyncio
    async def test_same_seed_same_choices(self, reg) -> None:
        slot = [["alice", "bob"], [["a", 1], ["b", 2]]]
        picks = []
        for _ in range(2):
            selector, _ = _selector(reg, seed=31)
            picks.append([(await selector.select(slot, ACTORS)).pair for _ in range(10)])
        assert picks[0] == picks[1]


class TestExpand:
    @pytest.mark.parametrize("seed", range(10))
    def test_group_expansion_is_permutation(self, reg, seed) -> None:
        selector, _ = _selector(reg, seed=seed)
        slots = [["alice", "a"], ["bob", "b"], ["alice", "b"]]
        expanded = selector.expand([slots])
        assert sorted(map(tuple, expanded)) == sorted(map(tuple, slots))
