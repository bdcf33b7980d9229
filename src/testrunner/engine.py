"""Engine — resolves plans, selects actions and drives them against the target."""

from __future__ import annotations

import asyncio
import inspect
import itertools
import logging
import time
from collections import deque
from collections.abc import Iterator, Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Literal, Union

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from testrunner.actions import ActionContext
from testrunner.actors import activate
from testrunner.errors import (
    ActionError,
    ConfigError,
    HookTimeout,
    NoReport,
    PreconditionError,
    UnknownActor,
    UnknownName,
)
from testrunner.plans import resolve_plans
from testrunner.prng import PRNG
from testrunner.report import Report
from testrunner.selector import ActionSelector, ResolvedSlot, is_group

if TYPE_CHECKING:
    from testrunner.actions import Action, Hook
    from testrunner.actors import Actor
    from testrunner.registry import Registry

logger = logging.getLogger(__name__)

UNBOUNDED = "unbounded"

# Nested group slots are expanded lazily; this caps how deep they may nest.
MAX_GROUP_DEPTH = 8

TargetFactory = Callable[[str, Any, Any], Union[Any, Awaitable[Any]]]


@dataclass(frozen=True)
class Iterations:
    """How many resolve+execute cycles a run performs.

    ``count`` is None for an unbounded run; a fixed count of 0 means no cycles.
    """

    count: int | None

    @classmethod
    def fixed(cls, count: int) -> Iterations:
        if count < 0:
            raise ConfigError(f"Iteration count must be >= 0, got {count}")
        return cls(count)

    @classmethod
    def unbounded(cls) -> Iterations:
        return cls(None)

    @classmethod
    def parse(cls, value: int | str) -> Iterations:
        if value == UNBOUNDED:
            return cls.unbounded()
        return cls.fixed(int(value))

    @property
    def is_unbounded(self) -> bool:
        return self.count is None

    def __iter__(self) -> Iterator[int]:
        if self.count is None:
            return itertools.count()
        return iter(range(self.count))


class EngineOptions(BaseModel):
    """Options for a run.

    Exactly one of ``plans`` or ``actors`` + ``actions`` must be given.
    """

    model_config = ConfigDict(extra="forbid")

    plans: list[str] | None = None
    actors: dict[str, str] | None = None
    actions: list[Any] | None = None
    iterations: Union[int, Literal["unbounded"]] = 1
    sleep: float = Field(default=0.0, ge=0.0)
    seed: Any = None
    continue_on_failure: bool = False
    hook_timeout: float | None = Field(default=None, gt=0.0)
    url: str | None = None
    config: Path | None = None
    addresses_config: Path | None = None

    @field_validator("iterations")
    @classmethod
    def check_iterations(cls, value: int | str) -> int | str:
        if isinstance(value, int) and value < 0:
            raise ValueError(f"iterations must be >= 0 or '{UNBOUNDED}'")
        return value

    @field_validator("config", "addresses_config")
    @classmethod
    def check_file(cls, value: Path | None) -> Path | None:
        if value is None:
            return None
        value = value.resolve()
        if not value.exists():
            raise ValueError(f"configuration file must exist: {value}")
        return value

    @model_validator(mode="after")
    def check_source(self) -> EngineOptions:
        has_inline = self.actors is not None and self.actions is not None
        if bool(self.plans) == has_inline or (self.plans and (self.actors or self.actions)):
            raise ValueError("Must provide { plans } OR { actors, actions }, but not both")
        return self

    @property
    def iteration_mode(self) -> Iterations:
        return Iterations.parse(self.iterations)


def _load_file(path: Path | None) -> Any:
    if path is None:
        return None
    try:
        return yaml.safe_load(path.read_text())
    except (OSError, yaml.YAMLError) as exc:
        raise ConfigError(f"Could not read {path}: {exc}") from exc


class Engine:
    """Runs scenarios of actions performed by actors against a target.

    Usage:
        engine = Engine(registry, plans=["smoke"], seed=7, iterations=3)
        report = await engine.run()
        await engine.alert("error", ["log"])

    Args:
        registry: Where actors, actions, plans and alerters are looked up.
        options: Pre-built options; keyword arguments are used otherwise.
        target: Shared handle to the system under test, passed to every hook.
        target_factory: Called as ``(url, config, addresses)`` at the start of
            ``run()`` when ``url`` is set and no ``target`` was given.
    """

    def __init__(
        self,
        registry: Registry,
        options: EngineOptions | None = None,
        *,
        target: Any = None,
        target_factory: TargetFactory | None = None,
        **kwargs: Any,
    ) -> None:
        if options is None:
            try:
                options = EngineOptions(**kwargs)
            except ValidationError as exc:
                raise ConfigError(str(exc)) from exc
        elif kwargs:
            raise ConfigError("Pass either an EngineOptions instance or keyword options, not both")
        if options.url and target is None and target_factory is None:
            raise ConfigError(f"url {options.url} given but no target_factory to connect with")

        self.registry = registry
        self.options = options
        self.target = target
        self.target_config = _load_file(options.config)
        self.addresses = _load_file(options.addresses_config) or {}
        self.rng = PRNG(seed=options.seed)
        self.report: Report | None = None
        self._target_factory = target_factory
        self._context: dict[str, Any] = {}
        self._stop_requested = False
        self._selector = ActionSelector(registry, self.rng, self._check_precondition)

    @property
    def context(self) -> dict[str, Any]:
        """State shared across every action of the current run."""
        return self._context

    async def run(self) -> Report:
        """Run all iterations and return the report.

        Setup failures produce a report with ``success=False`` and
        ``error_index=-1``. ``PreconditionError`` and errors outside the
        runner's hierarchy propagate; ``self.report`` keeps the partial report.
        """
        logger.info("running (seed=%r, iterations=%s)", self.rng.seed, self.options.iterations)
        self._context = {}
        self._stop_requested = False
        report = self.report = Report(seed=self.rng.seed)

        try:
            if self.target is None and self.options.url:
                try:
                    await self._connect()
                except Exception as exc:
                    logger.error("target setup failed: %s", exc)
                    return report.fail(exc, index=-1)

            for iteration in self.options.iteration_mode:
                if iteration > 0 and self.options.sleep:
                    await asyncio.sleep(self.options.sleep)
                await self._run_once(report, iteration)
                report.iterations_run += 1
                if not report.success or self._stop_requested:
                    break
        finally:
            report.finish()

        logger.info(
            "run finished: success=%s slots=%d failures=%d",
            report.success, len(report.results), len(report.failures),
        )
        return report

    def stop(self) -> None:
        """Ask a running ``run()`` to return after the current slot."""
        self._stop_requested = True

    async def alert(self, level: str, alerters: str | list[str]) -> None:
        """Hand the last report to each named alerter."""
        if self.report is None:
            raise NoReport("Nothing to alert on yet")
        names = [alerters] if isinstance(alerters, str) else list(alerters)
        for name in names:
            alerter = self.registry.get_alerter(name)()
            outcome = alerter(level, self.report)
            if inspect.isawaitable(outcome):
                await outcome

    async def _connect(self) -> None:
        assert self._target_factory is not None
        logger.info("setting up target for %s", self.options.url)
        target = self._target_factory(self.options.url, self.target_config, self.addresses)
        if inspect.isawaitable(target):
            target = await target
        self.target = target
        logger.info("target ready")

    async def _run_once(self, report: Report, iteration: int) -> None:
        try:
            if self.options.plans:
                resolved = resolve_plans(self.options.plans, self.registry, self.rng)
                actor_types, slots = resolved.actors, resolved.actions
            else:
                actor_types = self.options.actors or {}
                slots = list(self.options.actions or [])
            logger.debug("importing actors...")
            actors = await self._import_actors(actor_types)
        except Exception as exc:
            logger.error("setup failed: %s", exc)
            report.fail(exc, index=-1)
            return

        logger.debug("running actions (iteration %d)...", iteration)
        pending: deque[tuple[Any, int]] = deque((slot, 0) for slot in slots)
        while pending and report.success and not self._stop_requested:
            slot, depth = pending.popleft()
            pair: Any = slot
            started = time.monotonic()
            try:
                if is_group(slot):
                    if depth >= MAX_GROUP_DEPTH:
                        raise ConfigError(f"Group slots nested deeper than {MAX_GROUP_DEPTH}")
                    expanded = self._selector.expand(slot)
                    pending.extendleft(reversed([(s, depth + 1) for s in expanded]))
                    continue
                resolved = await self._selector.select(slot, actors)
                if resolved is None:
                    continue
                pair = resolved.pair
                result = await self._run_action(resolved, actors)
            except (UnknownName, ConfigError, ActionError) as exc:
                duration_ms = (time.monotonic() - started) * 1000
                if not self.options.continue_on_failure:
                    logger.error("slot %d failed, stopping: %s", len(report.results), exc)
                    report.fail(exc)
                    return
                logger.warning("slot %d failed, continuing: %s", len(report.results), exc)
                report.record_failure(pair, exc, iteration, duration_ms)
            else:
                report.record(pair, result, iteration, (time.monotonic() - started) * 1000)

    async def _import_actors(self, actor_types: Mapping[str, str]) -> dict[str, Actor]:
        actors: dict[str, Actor] = {}
        for name, actor_type in actor_types.items():
            factory = self.registry.get_actor_factory(actor_type)
            actor = factory(name, self.target, self.options)
            if inspect.isawaitable(actor):
                actor = await actor
            actors[name] = actor
            logger.debug("imported actor: %s (%s)", name, actor_type)
        return actors

    async def _run_action(self, resolved: ResolvedSlot, actors: Mapping[str, Actor]) -> Any:
        action = self.registry.get_action(resolved.action_name)
        actor = actors.get(resolved.actor_name)
        if actor is None:
            raise UnknownActor(resolved.actor_name, "not part of this run")

        try:
            activate(actor, self.target)
        except Exception as exc:
            raise ActionError(action.name, actor.name, "activate", str(exc)) from exc

        before_result = None
        if action.before is not None:
            before_result = await self._run_step(action, "before", actor, resolved.config, None)
        result = await self._run_step(action, "operation", actor, resolved.config, before_result)
        if action.after is not None:
            await self._run_step(action, "after", actor, resolved.config, result)
        logger.debug("ran %s as %s", action.name, actor.name)
        return result

    async def _run_step(self, action: Action, hook: str, actor: Actor, config: Any, last_result: Any) -> Any:
        try:
            return await self._call(getattr(action, hook), actor, config, last_result)
        except Exception as exc:
            raise ActionError(action.name, actor.name, hook, f"{type(exc).__name__}: {exc}") from exc

    async def _check_precondition(self, action: Action, actor: Actor, config: Any) -> bool:
        try:
            activate(actor, self.target)
            value = await self._call(action.precondition, actor, config, None)
        except Exception as exc:
            raise PreconditionError(action.name, actor.name, f"{type(exc).__name__}: {exc}") from exc
        return bool(value)

    async def _call(self, hook: Hook | None, actor: Actor, config: Any, last_result: Any) -> Any:
        assert hook is not None
        ctx = ActionContext(
            target=self.target,
            context=self._context,
            config=config,
            rng=self.rng,
            last_result=last_result,
        )
        value = hook(actor, ctx)
        if inspect.isawaitable(value):
            timeout = self.options.hook_timeout
            if timeout is None:
                return await value
            try:
                value = await asyncio.wait_for(value, timeout)
            except asyncio.TimeoutError as exc:
                raise HookTimeout(timeout) from exc
        return value
