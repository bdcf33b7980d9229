"""Action model — lifecycle hook bundles invoked by the engine."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Callable

from pydantic import BaseModel

if TYPE_CHECKING:
    from testrunner.actors import Actor
    from testrunner.prng import PRNG

Hook = Callable[["Actor", "ActionContext"], Any]

HOOK_NAMES = ("precondition", "before", "operation", "after")


@dataclass
class ActionContext:
    """Arguments handed to every hook call.

    ``context`` is the run-wide mutable dict shared by all actions of a run.
    Hooks may mutate it and ``target`` in place but must not keep references
    to either after they return.
    """

    target: Any
    context: dict[str, Any]
    config: Any
    rng: PRNG
    last_result: Any = None


@dataclass
class Action:
    """A named, reusable operation with optional lifecycle hooks.

    Args:
        name: Registry name.
        operation: Required hook whose return value is the slot result.
        precondition: Returns True when the action may run for an actor right now.
        before: Runs first; its return value becomes ``last_result`` of ``operation``.
        after: Runs last with the operation result; its return value is discarded.
        config_model: Optional pydantic model; slot configs are validated and
            defaulted through it once when the slot is resolved.
        category: Free-form metadata.
    """

    name: str
    operation: Hook
    precondition: Hook | None = None
    before: Hook | None = None
    after: Hook | None = None
    config_model: type[BaseModel] | None = None
    category: str = ""
    tags: list[str] = field(default_factory=list)

    def build_config(self, raw: dict[str, Any] | None) -> Any:
        """Merge a slot's raw config with this action's defaults."""
        raw = dict(raw or {})
        raw.pop("weight", None)
        if self.config_model is None:
            return raw
        return self.config_model(**raw)

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "category": self.category,
            "hooks": [h for h in HOOK_NAMES if getattr(self, h) is not None],
            "has_config_model": self.config_model is not None,
            "tags": self.tags,
        }
