"""Actors — identities that perform actions against the target."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Protocol, Union, runtime_checkable


@runtime_checkable
class AccountTarget(Protocol):
    """Target handle that can switch the account subsequent calls are made from."""

    def use_account(self, address: str) -> Any: ...


@dataclass(frozen=True)
class Actor:
    """An identity used to perform actions.

    ``address`` is an optional credential. When set, the engine activates it
    on the target before each hook runs for this actor.
    """

    name: str
    address: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)


ActorFactory = Callable[[str, Any, Any], Union[Actor, Awaitable[Actor]]]


def anonymous_actor(name: str, target: Any, options: Any) -> Actor:
    """Actor factory for identities without a credential."""
    return Actor(name=name)


def static_account(address: str, **metadata: Any) -> ActorFactory:
    """Build a factory that always yields an actor bound to ``address``."""

    def factory(name: str, target: Any, options: Any) -> Actor:
        return Actor(name=name, address=address, metadata=dict(metadata))

    return factory


def activate(actor: Actor, target: Any) -> None:
    """Make ``actor``'s credential the active account on ``target``.

    Activation mutates shared session state on the target handle; callers
    must not let another actor's hooks run until the current hook finishes.
    """
    if not actor.address:
        return
    if not isinstance(target, AccountTarget):
        raise TypeError(
            f"Actor {actor.name} carries an address but target {type(target).__name__} "
            "has no use_account()"
        )
    target.use_account(actor.address)
