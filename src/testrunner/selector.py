"""Action selector — turns declarative slots into concrete actor/action pairs."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Awaitable, Callable

from pydantic import ValidationError

from testrunner.errors import ConfigError, UnknownActor

if TYPE_CHECKING:
    from testrunner.actions import Action
    from testrunner.actors import Actor
    from testrunner.prng import PRNG
    from testrunner.registry import Registry

logger = logging.getLogger(__name__)

PreconditionRunner = Callable[["Action", "Actor", Any], Awaitable[bool]]


@dataclass
class Candidate:
    """One weighted option of a choice slot."""

    name: str
    weight: float = 1.0
    config: dict[str, Any] | None = None


@dataclass
class ResolvedSlot:
    """A slot reduced to exactly one actor and one action."""

    actor_name: str
    action_name: str
    raw_config: dict[str, Any] | None = None
    config: Any = None

    @property
    def pair(self) -> tuple[str, Any]:
        """The (actor, action) entry recorded in ``report.completed``."""
        if self.raw_config:
            return (self.actor_name, [self.action_name, dict(self.raw_config)])
        return (self.actor_name, self.action_name)


def is_group(slot: Any) -> bool:
    """A group slot is a one-element list wrapping a list of slots."""
    return (
        isinstance(slot, (list, tuple))
        and len(slot) == 1
        and isinstance(slot[0], (list, tuple))
    )


def _parse_candidate(entry: Any) -> Candidate:
    if isinstance(entry, str):
        return Candidate(entry)
    if isinstance(entry, (list, tuple)) and entry and isinstance(entry[0], str):
        if len(entry) == 1:
            return Candidate(entry[0])
        extra = entry[1]
        if isinstance(extra, Mapping):
            weight = extra.get("weight")
            return Candidate(entry[0], 1.0 if weight is None else float(weight), dict(extra))
        if isinstance(extra, (int, float)) and not isinstance(extra, bool):
            return Candidate(entry[0], float(extra))
        if extra is None:
            return Candidate(entry[0])
    raise ConfigError(f"Malformed candidate: {entry!r}")


def actor_candidates(spec: Any) -> list[Candidate]:
    if isinstance(spec, str):
        return [Candidate(spec)]
    if isinstance(spec, (list, tuple)) and spec:
        return [_parse_candidate(entry) for entry in spec]
    raise ConfigError(f"Malformed actor spec: {spec!r}")


def action_candidates(spec: Any) -> list[Candidate]:
    """Normalize an action spec to a candidate list.

    ``"name"`` and ``["name", {config}]`` are single candidates; any other
    list is a list of candidates.
    """
    if isinstance(spec, str):
        return [Candidate(spec)]
    if (
        isinstance(spec, (list, tuple))
        and len(spec) == 2
        and isinstance(spec[0], str)
        and (isinstance(spec[1], Mapping) or spec[1] is None)
    ):
        return [_parse_candidate(spec)]
    if isinstance(spec, (list, tuple)) and spec:
        return [_parse_candidate(entry) for entry in spec]
    raise ConfigError(f"Malformed action spec: {spec!r}")


class ActionSelector:
    """Resolves action slots one at a time, right before they execute.

    Preconditions can read live target state that earlier slots changed,
    so each slot is filtered and picked only when its turn comes.
    """

    def __init__(
        self,
        registry: Registry,
        rng: PRNG,
        check_precondition: PreconditionRunner,
    ) -> None:
        self._registry = registry
        self._rng = rng
        self._check_precondition = check_precondition

    def expand(self, slot: Any) -> list[Any]:
        """Return the shuffled contents of a group slot."""
        return self._rng.shuffle(slot[0])

    def pick(self, candidates: list[Candidate]) -> Candidate:
        if len(candidates) == 1:
            return candidates[0]
        return candidates[self._rng.weighted_index([c.weight for c in candidates])]

    async def select(self, slot: Any, actors: Mapping[str, Actor]) -> ResolvedSlot | None:
        """Resolve one non-group slot.

        Returns None when no action candidate passes its precondition.

        Raises:
            ConfigError: malformed slot or config rejected by the action's model.
            UnknownActor: the picked actor was not imported for this run.
            UnknownAction: a candidate action is not registered.
            PreconditionError: a precondition hook raised.
        """
        if not isinstance(slot, (list, tuple)) or len(slot) != 2:
            raise ConfigError(f"Malformed action slot: {slot!r}")
        actor_spec, action_spec = slot

        actor_name = self.pick(actor_candidates(actor_spec)).name
        actor = actors.get(actor_name)
        if actor is None:
            raise UnknownActor(actor_name, "not part of this run")

        eligible: list[tuple[Candidate, Any]] = []
        for candidate in action_candidates(action_spec):
            action = self._registry.get_action(candidate.name)
            try:
                config = action.build_config(candidate.config)
            except ValidationError as exc:
                raise ConfigError(f"Invalid config for {candidate.name}: {exc}") from exc
            if action.precondition is None or await self._check_precondition(action, actor, config):
                eligible.append((candidate, config))

        if not eligible:
            logger.debug("dropping slot %r: no action passed its precondition for %s", slot, actor_name)
            return None

        chosen = self.pick([c for c, _ in eligible])
        config = next(cfg for c, cfg in eligible if c is chosen)
        return ResolvedSlot(
            actor_name=actor_name,
            action_name=chosen.name,
            raw_config=chosen.config,
            config=config,
        )
