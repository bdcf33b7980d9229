"""Shared fixtures: an in-memory target and a registry of simple actions."""

from __future__ import annotations

from typing import Any

import pytest

from testrunner import Action, Plan, PlanMode, Registry, anonymous_actor, static_account


class FakeTarget:
    """Records which account each call was made from."""

    def __init__(self) -> None:
        self.active: str | None = None
        self.activations: list[str] = []
        self.calls: list[tuple[str | None, str]] = []

    def use_account(self, address: str) -> None:
        self.active = address
        self.activations.append(address)


def _echo(actor: Any, ctx: Any) -> str:
    ctx.target.calls.append((ctx.target.active, "echo"))
    return f"{actor.name}:echo"


def _boom(actor: Any, ctx: Any) -> None:
    raise RuntimeError("boom")


def _count(actor: Any, ctx: Any) -> int:
    ctx.context["count"] = ctx.context.get("count", 0) + 1
    return ctx.context["count"]


@pytest.fixture
def target() -> FakeTarget:
    return FakeTarget()


@pytest.fixture
def registry() -> Registry:
    reg = Registry()
    reg.register_actor("user", anonymous_actor)
    reg.register_actor("funded", static_account("0xabc"))
    reg.register_action(Action("echo", operation=_echo))
    reg.register_action(Action("boom", operation=_boom))
    reg.register_action(Action("count", operation=_count))
    reg.register_action(Action("never", operation=_echo, precondition=lambda actor, ctx: False))
    reg.register_plan(Plan(
        name="basic",
        actors={"alice": "user"},
        actions=[["alice", "echo"], ["alice", "count"]],
    ))
    reg.register_plan(Plan(
        name="shuffled",
        mode=PlanMode.RANDOM,
        actors={"alice": "user", "bob": "user"},
        actions=[["alice", "count"], ["bob", "count"], ["alice", "echo"], ["bob", "echo"]],
    ))
    return reg
