# Community Edition — basic implementation
"""Name-keyed lookup tables for actors, actions, plans and alerters."""

from __future__ import annotations

from typing import Any, Callable

from testrunner.actions import Action
from testrunner.alerters import BUILTIN_ALERTERS
from testrunner.actors import ActorFactory
from testrunner.errors import UnknownAction, UnknownActor, UnknownAlerter, UnknownPlan
from testrunner.plans import Plan

AlerterFactory = Callable[[], Callable[[str, Any], Any]]


class Registry:
    """Registry of everything a run can refer to by name.

    Usage:
        registry = Registry()
        registry.register_actor("user", anonymous_actor)
        registry.register_action(Action("ping", operation=ping))
        registry.register_plan(Plan(name="smoke", actors={"alice": "user"},
                                    actions=[["alice", "ping"]]))
    """

    def __init__(
        self,
        actors: dict[str, ActorFactory] | None = None,
        actions: dict[str, Action] | None = None,
        plans: dict[str, Plan] | None = None,
        alerters: dict[str, AlerterFactory] | None = None,
    ) -> None:
        self._actors: dict[str, ActorFactory] = dict(actors or {})
        self._actions: dict[str, Action] = dict(actions or {})
        self._plans: dict[str, Plan] = dict(plans or {})
        self._alerters: dict[str, AlerterFactory] = dict(BUILTIN_ALERTERS if alerters is None else alerters)

    def register_actor(self, actor_type: str, factory: ActorFactory) -> None:
        self._actors[actor_type] = factory

    def register_action(self, action: Action, name: str | None = None) -> None:
        self._actions[name or action.name] = action

    def register_plan(self, plan: Plan, name: str | None = None) -> None:
        self._plans[name or plan.name] = plan

    def register_alerter(self, name: str, factory: AlerterFactory) -> None:
        self._alerters[name] = factory

    def get_actor_factory(self, actor_type: str) -> ActorFactory:
        factory = self._actors.get(actor_type)
        if factory is None:
            raise UnknownActor(actor_type, "no actor type registered")
        return factory

    def get_action(self, name: str) -> Action:
        action = self._actions.get(name)
        if action is None:
            raise UnknownAction(name)
        return action

    def get_plan(self, name: str) -> Plan:
        plan = self._plans.get(name)
        if plan is None:
            raise UnknownPlan(name)
        return plan

    def get_alerter(self, name: str) -> AlerterFactory:
        factory = self._alerters.get(name)
        if factory is None:
            raise UnknownAlerter(name)
        return factory

    def plan_names(self) -> list[str]:
        return sorted(self._plans)

    def action_names(self) -> list[str]:
        return sorted(self._actions)

    def actor_types(self) -> list[str]:
        return sorted(self._actors)

    def alerter_names(self) -> list[str]:
        return sorted(self._alerters)

    def to_dict(self) -> dict[str, Any]:
        return {
            "actors": self.actor_types(),
            "actions": [self._actions[n].to_dict() for n in self.action_names()],
            "plans": self.plan_names(),
            "alerters": self.alerter_names(),
        }
