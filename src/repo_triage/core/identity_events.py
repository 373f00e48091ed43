"""Signed-in user notifications with explicit subscription handles."""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable

logger = logging.getLogger(__name__)

IdentityListener = Callable[[str | None], None]
Unsubscribe = Callable[[], None]


class IdentityEvents:
    """Fan out sign-in/sign-out changes to subscribers.

    New subscribers receive the current user id immediately, then every
    later change until they call the handle returned by ``subscribe``.
    """

    def __init__(self, current_user_id: str | None = None) -> None:
        self._lock = threading.Lock()
        self._listeners: dict[int, IdentityListener] = {}
        self._next_token = 0
        self._current_user_id = current_user_id

    @property
    def current_user_id(self) -> str | None:
        return self._current_user_id

    def subscribe(self, listener: IdentityListener) -> Unsubscribe:
        with self._lock:
            token = self._next_token
            self._next_token += 1
            self._listeners[token] = listener
            current = self._current_user_id

        def unsubscribe() -> None:
            with self._lock:
                self._listeners.pop(token, None)

        self._notify(listener, current)
        return unsubscribe

    def publish(self, user_id: str | None) -> None:
        with self._lock:
            self._current_user_id = user_id
            listeners = list(self._listeners.values())
        logger.info("identity.changed signed_in=%s", user_id is not None)
        for listener in listeners:
            self._notify(listener, user_id)

    def listener_count(self) -> int:
        with self._lock:
            return len(self._listeners)

    def _notify(self, listener: IdentityListener, user_id: str | None) -> None:
        try:
            listener(user_id)
        except Exception:
            logger.exception("identity.listener_failed")
