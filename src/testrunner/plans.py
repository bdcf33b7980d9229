# Community Edition — basic implementation
"""Plan models and the plan resolver."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, Field

if TYPE_CHECKING:
    from testrunner.prng import PRNG
    from testrunner.registry import Registry

logger = logging.getLogger(__name__)


class PlanMode(Enum):
    """Whether a plan's action list is shuffled before it joins the run."""

    SEQUENTIAL = "sequential"
    RANDOM = "random"


class Plan(BaseModel):
    """A declarative scenario: which actors exist and which slots run.

    ``actors`` maps an actor name to an actor type registered with the
    registry. Each entry of ``actions`` is an action slot:

    * ``[actor, action]`` or ``[actor, [action, {config}]]``
    * ``[[slot, slot, ...]]`` — a group, shuffled in place
    * ``[[[actor, w], ...], [[action, w], ...]]`` — a weighted choice
    """

    name: str = ""
    description: str = ""
    actors: dict[str, str] = Field(default_factory=dict)
    actions: list[Any] = Field(default_factory=list)
    mode: PlanMode = PlanMode.SEQUENTIAL


@dataclass
class ResolvedPlan:
    """Actor map and flattened slot list produced from one or more plans."""

    actors: dict[str, str] = field(default_factory=dict)
    actions: list[Any] = field(default_factory=list)


def resolve_plans(names: list[str], registry: Registry, rng: PRNG) -> ResolvedPlan:
    """Merge plans in list order.

    Later plans override earlier ones on actor-name collisions. Plans in
    random mode contribute a shuffled copy of their slots.

    Raises:
        UnknownPlan: if a name is not registered.
    """
    resolved = ResolvedPlan()
    for name in names:
        plan = registry.get_plan(name)
        resolved.actors = {**resolved.actors, **plan.actors}
        if plan.mode is PlanMode.RANDOM:
            actions = rng.shuffle(plan.actions)
        else:
            actions = list(plan.actions)
        resolved.actions.extend(actions)
        logger.debug("resolved plan %s: %d slots (%s)", name, len(actions), plan.mode.value)
    return resolved
