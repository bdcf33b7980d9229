"""
Vault Scenario Example — fuzz an in-memory lending ledger.

Shows actors with credentials, actions with preconditions and config
models, and plans mixing literal, group and weighted-choice slots.

Run:
    pip install -e .
    python -m testrunner.cli run --registry examples.vault_scenarios:build_registry \
        --target-factory examples.vault_scenarios:connect --url memory:// \
        --plans open-and-close random-vaults --iterations 3 --seed 42
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

from pydantic import BaseModel, Field

from testrunner import Action, Actor, Plan, PlanMode, Registry

logger = logging.getLogger(__name__)


# ── The system under test ───────────────────────────────────────────────


@dataclass
class Vault:
    owner: str
    ilk: str
    collateral: float
    debt: float


@dataclass
class Ledger:
    """Toy lending ledger. Calls act on behalf of the active account."""

    collateral_ratio: float = 1.5
    price: float = 150.0
    active: str | None = None
    vaults: dict[int, Vault] = field(default_factory=dict)
    _next_id: int = 1

    def use_account(self, address: str) -> None:
        self.active = address

    def _require_account(self) -> str:
        if self.active is None:
            raise PermissionError("no active account")
        return self.active

    def open(self, ilk: str, collateral: float, debt: float) -> int:
        owner = self._require_account()
        if collateral * self.price < debt * self.collateral_ratio:
            raise ValueError(f"vault would be unsafe: {collateral} {ilk} for {debt} debt")
        vault_id = self._next_id
        self._next_id += 1
        self.vaults[vault_id] = Vault(owner, ilk, collateral, debt)
        return vault_id

    def owned(self) -> list[int]:
        return [i for i, v in self.vaults.items() if v.owner == self.active]

    def close(self, vault_id: int) -> Vault:
        vault = self.vaults[vault_id]
        if vault.owner != self._require_account():
            raise PermissionError(f"vault {vault_id} belongs to {vault.owner}")
        return self.vaults.pop(vault_id)


def connect(url: str, config: Any, addresses: Any) -> Ledger:
    """Target factory for ``memory://`` URLs."""
    if not url.startswith("memory://"):
        raise ConnectionError(f"unsupported url: {url}")
    options = config or {}
    return Ledger(
        collateral_ratio=options.get("collateral_ratio", 1.5),
        price=options.get("price", 150.0),
    )


# ── Actors ──────────────────────────────────────────────────────────────

_ADDRESSES = {"whale": "0x00000000000000000000000000000000000000aa"}


def account_actor(name: str, target: Any, options: Any) -> Actor:
    """Each actor gets a deterministic address derived from its name."""
    address = _ADDRESSES.get(name) or "0x" + name.encode().hex().rjust(40, "0")[-40:]
    return Actor(name=name, address=address)


# ── Actions ─────────────────────────────────────────────────────────────


class OpenConfig(BaseModel):
    ilk: str = "ETH-A"
    collateral: float = Field(default=2.0, gt=0)
    debt: float = Field(default=100.0, ge=0)


def _open(actor: Actor, ctx: Any) -> dict[str, Any]:
    cfg = ctx.config
    vault_id = ctx.target.open(cfg.ilk, cfg.collateral, cfg.debt)
    ctx.context.setdefault("opened", []).append(vault_id)
    return {"message": "vault safe", "vault_id": vault_id, "ilk": cfg.ilk, "debt": cfg.debt}


def _random_debt(actor: Actor, ctx: Any) -> bool:
    ctx.context["debt"] = 20 + ctx.rng.random() * 10
    return True


def _open_random(actor: Actor, ctx: Any) -> dict[str, Any]:
    debt = ctx.context["debt"]
    collateral = ctx.rng.uniform(1.0, 2.0)
    vault_id = ctx.target.open(ctx.config.ilk, collateral, debt)
    return {"vault_id": vault_id, "collateral": round(collateral, 4), "debt": round(debt, 4)}


def _has_vault(actor: Actor, ctx: Any) -> bool:
    return bool(ctx.target.owned())


def _close(actor: Actor, ctx: Any) -> dict[str, Any]:
    vault_id = ctx.rng.choice(ctx.target.owned())
    vault = ctx.target.close(vault_id)
    return {"vault_id": vault_id, "returned": vault.collateral}


def _check_closed(actor: Actor, ctx: Any) -> None:
    if ctx.last_result["vault_id"] in ctx.target.vaults:
        raise AssertionError(f"vault {ctx.last_result['vault_id']} still open")


ACTIONS = [
    Action("openVault", operation=_open, config_model=OpenConfig, category="vault"),
    Action("openVaultRandom", operation=_open_random, before=_random_debt,
           config_model=OpenConfig, category="vault"),
    Action("closeVault", operation=_close, precondition=_has_vault, after=_check_closed,
           category="vault"),
]


# ── Plans ───────────────────────────────────────────────────────────────

PLANS = [
    Plan(
        name="open-and-close",
        actors={"alice": "account", "whale": "account"},
        actions=[
            ["alice", "openVault"],
            ["whale", ["openVault", {"collateral": 100, "debt": 5000}]],
            ["alice", "closeVault"],
        ],
    ),
    Plan(
        name="random-vaults",
        mode=PlanMode.RANDOM,
        actors={"bob": "account", "carol": "account"},
        actions=[
            [[["bob", "openVaultRandom"], ["carol", "openVaultRandom"]]],
            [[["bob", 2], "carol"], [["closeVault", 3], ["openVaultRandom", 1]]],
            [["bob", "carol"], "closeVault"],
        ],
    ),
]


def build_registry() -> Registry:
    registry = Registry()
    registry.register_actor("account", account_actor)
    for action in ACTIONS:
        registry.register_action(action)
    for plan in PLANS:
        registry.register_plan(plan)
    return registry
