"""Error hierarchy for the test runner."""

from __future__ import annotations


class RunnerError(Exception):
    """Base class for all test runner errors."""


class ConfigError(RunnerError):
    """Engine options are missing, contradictory, or point at missing files."""


class UnknownName(RunnerError, LookupError):
    """A registry lookup by name found nothing."""

    kind = "name"

    def __init__(self, name: str, detail: str = "") -> None:
        self.name = name
        message = f"Unknown {self.kind}: {name}"
        if detail:
            message = f"{message} ({detail})"
        super().__init__(message)


class UnknownPlan(UnknownName):
    kind = "plan"


class UnknownActor(UnknownName):
    kind = "actor"


class UnknownAction(UnknownName):
    kind = "action"


class UnknownAlerter(UnknownName):
    kind = "alerter"


class PreconditionError(RunnerError):
    """A precondition hook raised instead of returning a bool."""

    def __init__(self, action: str, actor: str, message: str) -> None:
        self.action = action
        self.actor = actor
        super().__init__(f"precondition of {action} for {actor} failed: {message}")


class ActionError(RunnerError):
    """A before/operation/after hook raised."""

    def __init__(self, action: str, actor: str, hook: str, message: str) -> None:
        self.action = action
        self.actor = actor
        self.hook = hook
        super().__init__(f"{action}.{hook} for {actor} failed: {message}")


class InvalidInput(RunnerError, ValueError):
    """The PRNG was handed degenerate input."""


class NoReport(RunnerError):
    """Alerting was requested before any run produced a report."""


class HookTimeout(RunnerError, TimeoutError):
    """An async hook did not finish within the configured hook timeout."""

    def __init__(self, timeout: float) -> None:
        self.timeout = timeout
        super().__init__(f"hook did not finish within {timeout}s")
