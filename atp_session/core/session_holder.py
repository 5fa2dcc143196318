"""Session Holder - in-memory source of truth for credentials and connectivity.

Invariants:
    - data is None or a complete SessionData (callers of set_state pass complete records)
    - update_auth_tokens without a session is a no-op and emits nothing
    - clear() always leaves data=None and online=False
    - Every mutation notifies subscribers exactly once, after the state has changed
    - A failing listener never blocks the mutation or the remaining listeners

Design Decisions:
    - Explicit subscribe() over an observable framework: plain callables are enough
      for a UI layer to re-render on change
    - Single writer (SessionService), many readers: no locking
"""

import logging
from collections.abc import Callable

from atp_session.core.domain_types import SessionEvent
from atp_session.core.session_data import SessionData

logger = logging.getLogger(__name__)

SessionListener = Callable[["SessionHolder", SessionEvent], None]


class SessionHolder:
    """Current session record plus online/attempting_connect status flags."""

    def __init__(self) -> None:
        self.data: SessionData | None = None
        self.online = False
        self.attempting_connect = False
        self._listeners: list[SessionListener] = []

    @property
    def has_session(self) -> bool:
        return self.data is not None

    def set_state(self, data: SessionData | None) -> None:
        """Replace the session record wholesale."""
        self.data = data
        self._notify(SessionEvent.DATA_REPLACED)

    def update_auth_tokens(self, access_jwt: str, refresh_jwt: str) -> None:
        """Rotate the token pair, keeping service, handle and did."""
        if self.data is None:
            return
        self.data = self.data.with_tokens(access_jwt, refresh_jwt)
        self._notify(SessionEvent.TOKENS_ROTATED)

    def set_online(
        self, online: bool, attempting_connect: bool | None = None,
    ) -> None:
        self.online = online
        if attempting_connect is not None:
            self.attempting_connect = attempting_connect
        self._notify(SessionEvent.STATUS_CHANGED)

    def set_attempting_connect(self, attempting_connect: bool) -> None:
        self.attempting_connect = attempting_connect
        self._notify(SessionEvent.STATUS_CHANGED)

    def clear(self) -> None:
        """Drop the session. Only a new login or account creation restores one."""
        self.data = None
        self.online = False
        self._notify(SessionEvent.CLEARED)

    # --- Subscriptions -------------------------------------------------------

    def subscribe(self, listener: SessionListener) -> Callable[[], None]:
        """Register a change listener. Returns a callable that unsubscribes it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self, event: SessionEvent) -> None:
        for listener in list(self._listeners):
            try:
                listener(self, event)
            except Exception:
                logger.error(
                    "Session listener failed",
                    extra={"event": event.value}, exc_info=True,
                )
