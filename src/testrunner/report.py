"""Run report — append-only record consumed by alerters."""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

import yaml


class _Failed:
    """Sentinel stored in ``Report.results`` for a slot that failed."""

    _instance: _Failed | None = None

    def __new__(cls) -> _Failed:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "FAILED"

    def __reduce__(self) -> str:
        return "FAILED"


FAILED = _Failed()


class OutcomeStatus(Enum):
    OK = "ok"
    FAILED = "failed"


@dataclass
class SlotOutcome:
    """Per-slot outcome, recorded under both failure policies."""

    index: int
    iteration: int
    status: OutcomeStatus
    error: str = ""
    duration_ms: float = 0.0

    @property
    def ok(self) -> bool:
        return self.status is OutcomeStatus.OK

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {
            "index": self.index,
            "iteration": self.iteration,
            "status": self.status.value,
            "duration_ms": round(self.duration_ms, 1),
        }
        if self.error:
            d["error"] = self.error
        return d


@dataclass
class Report:
    """Structured record of one run.

    ``results``, ``completed`` and ``outcomes`` always have the same length.
    ``success`` flips to False once, at the first fail-fast failure or a
    setup failure; ``error_index`` then points at the failing slot (-1 for
    setup). Under continue-on-failure ``success`` stays True and failures
    show up as :data:`FAILED` entries; ``all_passed`` folds both channels.
    """

    seed: Any = None
    results: list[Any] = field(default_factory=list)
    completed: list[Any] = field(default_factory=list)
    outcomes: list[SlotOutcome] = field(default_factory=list)
    success: bool = True
    error: BaseException | None = None
    error_index: int | None = None
    iterations_run: int = 0
    started_at: float = field(default_factory=time.time)
    ended_at: float | None = None

    def record(self, pair: Any, result: Any, iteration: int, duration_ms: float = 0.0) -> None:
        self.outcomes.append(SlotOutcome(
            index=len(self.results),
            iteration=iteration,
            status=OutcomeStatus.OK,
            duration_ms=duration_ms,
        ))
        self.results.append(result)
        self.completed.append(pair)

    def record_failure(self, pair: Any, error: BaseException, iteration: int, duration_ms: float = 0.0) -> None:
        self.outcomes.append(SlotOutcome(
            index=len(self.results),
            iteration=iteration,
            status=OutcomeStatus.FAILED,
            error=str(error),
            duration_ms=duration_ms,
        ))
        self.results.append(FAILED)
        self.completed.append(pair)

    def fail(self, error: BaseException, index: int | None = None) -> Report:
        """Stop the run at ``index`` (defaults to the next slot)."""
        self.success = False
        self.error = error
        self.error_index = len(self.results) if index is None else index
        return self

    def finish(self) -> Report:
        self.ended_at = time.time()
        return self

    @property
    def failures(self) -> list[SlotOutcome]:
        return [o for o in self.outcomes if not o.ok]

    @property
    def all_passed(self) -> bool:
        return self.success and not self.failures

    @property
    def duration_seconds(self) -> float:
        end = self.ended_at or time.time()
        return end - self.started_at

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {
            "success": self.success,
            "all_passed": self.all_passed,
            "seed": _plain(self.seed),
            "iterations_run": self.iterations_run,
            "completed": [_plain(p) for p in self.completed],
            "results": [_plain(r) for r in self.results],
            "failures": [o.to_dict() for o in self.failures],
            "duration_seconds": round(self.duration_seconds, 3),
        }
        if self.error is not None:
            d["error"] = {"type": type(self.error).__name__, "message": str(self.error)}
            d["error_index"] = self.error_index
        return d

    def to_text(self) -> str:
        """Human-readable YAML rendering."""
        return yaml.safe_dump(self.to_dict(), sort_keys=False, default_flow_style=False)


def _plain(value: Any) -> Any:
    """Coerce a value into something ``yaml.safe_dump`` accepts."""
    if value is FAILED:
        return "FAILED"
    if value is None or isinstance(value, (bool, int, float, str)):
        return value
    if isinstance(value, (list, tuple)):
        return [_plain(v) for v in value]
    if isinstance(value, dict):
        return {str(k): _plain(v) for k, v in value.items()}
    if hasattr(value, "model_dump"):
        return _plain(value.model_dump())
    if hasattr(value, "to_dict"):
        return _plain(value.to_dict())
    return repr(value)
