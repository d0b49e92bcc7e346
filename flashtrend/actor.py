"""
Per-principal remote clients ("actors").

An actor is established lazily the first time a principal is seen and
kept until logout or until it is the least recently used beyond
``settings.MAX_SESSIONS``.  While establishment is in flight the principal's
state reports ``is_fetching`` so queries stay disabled instead of racing
the connection.
"""
import logging
from collections import OrderedDict
from dataclasses import dataclass
from typing import Awaitable, Callable

import httpx

from flashtrend.backend import BackendInterface, HttpBackend
from flashtrend.config import settings
from flashtrend.identity import Identity

logger = logging.getLogger(__name__)

ActorFactory = Callable[[Identity], Awaitable[BackendInterface]]


@dataclass(frozen=True)
class ActorState:
    actor: BackendInterface | None = None
    is_fetching: bool = False

    @property
    def ready(self) -> bool:
        return self.actor is not None and not self.is_fetching


def http_actor_factory(client: httpx.AsyncClient) -> ActorFactory:
    async def factory(identity: Identity) -> BackendInterface:
        return HttpBackend(client, identity.principal)

    return factory


class ActorProvider:
    """
    Actors keyed by principal, least recently used first.  At most
    ``max_actors`` are kept; ``evict_idle`` closes the overflow and
    reports whose cached data should go with them.
    """

    def __init__(self, factory: ActorFactory, max_actors: int | None = None) -> None:
        self._factory = factory
        self._max_actors = max_actors if max_actors is not None else settings.MAX_SESSIONS
        self._actors: OrderedDict[str, BackendInterface] = OrderedDict()
        self._connecting: set[str] = set()

    def state(self, identity: Identity | None) -> ActorState:
        """Current state without triggering establishment."""
        if identity is None:
            return ActorState()
        if identity.principal in self._connecting:
            return ActorState(is_fetching=True)
        return ActorState(actor=self._actors.get(identity.principal))

    async def connect(self, identity: Identity | None) -> ActorState:
        """
        Return the caller's actor, establishing it on first use.

        Anonymous callers never get an actor.  A failed establishment
        leaves the caller without one; queries then report ``disabled``
        and mutations fail with ``ActorUnavailableError``.
        """
        if identity is None:
            return ActorState()
        principal = identity.principal
        if principal in self._actors:
            self._actors.move_to_end(principal)
            return self.state(identity)
        if principal in self._connecting:
            return self.state(identity)

        self._connecting.add(principal)
        try:
            actor = await self._factory(identity)
        except Exception as exc:
            logger.warning("Could not establish actor for %s: %s", principal, exc)
            return ActorState()
        finally:
            self._connecting.discard(principal)

        self._actors[principal] = actor
        logger.debug("Actor established for %s", principal)
        return ActorState(actor=actor)

    async def evict_idle(self) -> list[Identity]:
        """Close the least recently used actors beyond ``max_actors``."""
        evicted = []
        while len(self._actors) > self._max_actors:
            principal, actor = self._actors.popitem(last=False)
            await actor.close()
            logger.debug("Actor evicted for %s", principal)
            evicted.append(Identity(principal))
        return evicted

    async def release(self, identity: Identity | None) -> None:
        if identity is None:
            return
        actor = self._actors.pop(identity.principal, None)
        if actor is not None:
            await actor.close()

    async def close(self) -> None:
        for actor in self._actors.values():
            await actor.close()
        self._actors.clear()

    def __len__(self) -> int:
        return len(self._actors)
