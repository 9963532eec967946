"""Session cache - one credential per pod, acquired once."""
import asyncio
import logging
from typing import Awaitable, Callable, Dict, Optional

from ..errors import SessionAcquisitionError
from ..models import PodIdentity, SessionCredential

logger = logging.getLogger(__name__)

SessionFactory = Callable[[PodIdentity], Awaitable[SessionCredential]]


def static_token_factory(token: Optional[str] = None) -> SessionFactory:
    """Factory handing out the same bearer token (or none) for every pod."""

    async def _factory(identity: PodIdentity) -> SessionCredential:
        return SessionCredential(web_id=identity.web_id, token=token)

    return _factory


class SessionCache:
    """
    Memoizes session credentials by WebID.

    Implements ISessionCache protocol. Acquisition itself is delegated to the
    injected factory; concurrent requests for the same pod share one call.
    """

    def __init__(self, factory: SessionFactory):
        self._factory = factory
        self._sessions: Dict[str, SessionCredential] = {}
        self._locks: Dict[str, asyncio.Lock] = {}

    def __len__(self) -> int:
        return len(self._sessions)

    async def get_session(self, identity: PodIdentity) -> SessionCredential:
        cached = self._sessions.get(identity.web_id)
        if cached is not None:
            return cached

        lock = self._locks.setdefault(identity.web_id, asyncio.Lock())
        async with lock:
            cached = self._sessions.get(identity.web_id)
            if cached is not None:
                return cached
            try:
                session = await self._factory(identity)
            except SessionAcquisitionError:
                raise
            except Exception as e:
                raise SessionAcquisitionError(
                    f"Cannot acquire session for {identity.web_id}: {e}"
                ) from e
            logger.debug("Acquired session for %s", identity.web_id)
            self._sessions[identity.web_id] = session
            return session
