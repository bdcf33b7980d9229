"""testrunner — scenario-driven test and fuzz orchestration.

Runs ordered or randomized sequences of parametrized *actions* performed
by named *actors* against a live target, records a report of what ran, and
hands that report to alerters.

Core concepts
-------------
* **Action** — a reusable bundle of lifecycle hooks
  (``precondition`` → ``before`` → ``operation`` → ``after``).

* **Actor** — an identity, optionally carrying a credential that is
  activated on the target before its actions run.

* **Plan** — a named scenario: which actors exist and which action slots
  run, in order or shuffled. Slots can be literal pairs, groups that are
  shuffled in place, or weighted choices filtered by precondition.

* **Report** — what ran, what each operation returned, and where the run
  failed.

Every random decision goes through one seeded :class:`PRNG`, so a run is
reproducible from its seed.

Quick start::

    from testrunner import Action, Engine, Plan, Registry, anonymous_actor

    registry = Registry()
    registry.register_actor("user", anonymous_actor)
    registry.register_action(Action("ping", operation=lambda actor, ctx: "pong"))
    registry.register_plan(Plan(name="smoke", actors={"alice": "user"},
                                actions=[["alice", "ping"]]))

    report = await Engine(registry, plans=["smoke"], seed=1).run()
"""

from testrunner.actions import Action, ActionContext
from testrunner.actors import Actor, anonymous_actor, static_account
from testrunner.engine import Engine, EngineOptions, Iterations
from testrunner.errors import (
    ActionError,
    ConfigError,
    HookTimeout,
    InvalidInput,
    NoReport,
    PreconditionError,
    RunnerError,
    UnknownAction,
    UnknownActor,
    UnknownAlerter,
    UnknownName,
    UnknownPlan,
)
from testrunner.plans import Plan, PlanMode
from testrunner.prng import PRNG
from testrunner.registry import Registry
from testrunner.report import FAILED, Report, SlotOutcome

__all__ = [
    "Action",
    "ActionContext",
    "ActionError",
    "Actor",
    "ConfigError",
    "Engine",
    "EngineOptions",
    "FAILED",
    "HookTimeout",
    "InvalidInput",
    "Iterations",
    "NoReport",
    "PRNG",
    "Plan",
    "PlanMode",
    "PreconditionError",
    "Registry",
    "Report",
    "RunnerError",
    "SlotOutcome",
    "UnknownAction",
    "UnknownActor",
    "UnknownAlerter",
    "UnknownName",
    "UnknownPlan",
    "anonymous_actor",
    "static_account",
]

__version__ = "0.1.0"
