"""
Tree notifications.

Completion is delivered on a later turn of the host's event queue so that a
caller can attach listeners right after starting a tree, even when the tree
resolves without any interactive step. The incomplete notification is
delivered immediately.
"""

from __future__ import annotations

import asyncio
import logging
from collections import deque
from typing import Any, Callable, Deque, Dict, List, Optional, Tuple

logger = logging.getLogger(__name__)

COMPLETE = "complete"
INCOMPLETE = "incomplete"

Listener = Callable[..., Any]


class CallbackQueue:
    """
    Defers callbacks to the next turn of the host's event queue.

    Inside a running asyncio loop, callbacks go through ``loop.call_soon``.
    Without one, they are held until the host calls ``run_pending()``.
    """

    def __init__(self, loop: Optional[asyncio.AbstractEventLoop] = None):
        self._loop = loop
        self._pending: Deque[Tuple[Callable[..., Any], tuple]] = deque()

    def schedule(self, callback: Callable[..., Any], *args: Any) -> None:
        loop = self._loop or _running_loop()
        if loop is not None:
            loop.call_soon(callback, *args)
        else:
            self._pending.append((callback, args))

    def run_pending(self) -> int:
        """
        Run callbacks queued so far.

        Callbacks scheduled while draining wait for the next call.

        Returns:
            Number of callbacks run.
        """
        batch = list(self._pending)
        self._pending.clear()
        for callback, args in batch:
            callback(*args)
        return len(batch)

    @property
    def pending(self) -> int:
        return len(self._pending)


def _running_loop() -> Optional[asyncio.AbstractEventLoop]:
    try:
        return asyncio.get_running_loop()
    except RuntimeError:
        return None


class EventHub:
    """Listener registry for tree notifications."""

    def __init__(self):
        self._listeners: Dict[str, List[Listener]] = {COMPLETE: [], INCOMPLETE: []}

    def subscribe(self, event: str, listener: Listener) -> None:
        if event not in self._listeners:
            raise ValueError(f"Unknown event: {event}")
        self._listeners[event].append(listener)

    def unsubscribe(self, event: str, listener: Listener) -> None:
        if listener in self._listeners.get(event, []):
            self._listeners[event].remove(listener)

    def emit(self, event: str, *args: Any) -> None:
        listeners = list(self._listeners.get(event, []))
        logger.debug(f"Emitting {event} to {len(listeners)} listener(s)")
        for listener in listeners:
            listener(*args)
