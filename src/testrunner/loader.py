# Community Edition — basic implementation
"""YAML loader for plan declarations."""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

import yaml
from pydantic import ValidationError

from testrunner.errors import ConfigError
from testrunner.plans import Plan

if TYPE_CHECKING:
    from testrunner.registry import Registry


def load_plans(path: str | Path) -> list[Plan]:
    """Load plans from a YAML file.

    YAML format:
        plans:
          - name: open-and-close
            mode: random
            actors:
              alice: user
            actions:
              - [alice, open]
              - [alice, [close, {force: true}]]
    """
    path = Path(path)
    if not path.exists():
        raise ConfigError(f"Plan file must exist: {path}")
    try:
        raw = yaml.safe_load(path.read_text()) or {}
    except yaml.YAMLError as exc:
        raise ConfigError(f"Could not parse {path}: {exc}") from exc
    if not isinstance(raw, dict) or not isinstance(raw.get("plans", []), list):
        raise ConfigError(f"{path} must hold a mapping with a 'plans' list")

    plans = []
    for i, entry in enumerate(raw.get("plans", [])):
        if not isinstance(entry, dict):
            raise ConfigError(f"Plan #{i} in {path} is not a mapping")
        try:
            plans.append(Plan(**entry))
        except ValidationError as exc:
            raise ConfigError(f"Invalid plan #{i} in {path}: {exc}") from exc
    return plans


def register_plans(registry: Registry, path: str | Path) -> list[str]:
    """Load plans from ``path`` into ``registry`` and return their names."""
    plans = load_plans(path)
    for plan in plans:
        if not plan.name:
            raise ConfigError(f"Every plan in {path} needs a name")
        registry.register_plan(plan)
    return [p.name for p in plans]
