from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from timesheets.schemas.auth import Actor


@runtime_checkable
class ActorProvider(Protocol):
    """Interface for the authenticated-actor provider."""

    def current_actor(self) -> Actor | None:
        """Return the authenticated actor, or None when nobody is signed in."""
        ...


class StaticActorProvider:
    """Provider bound to a single, already-resolved actor (one per request)."""

    def __init__(self, actor: Actor | None) -> None:
        self._actor = actor

    def current_actor(self) -> Actor | None:
        return self._actor
