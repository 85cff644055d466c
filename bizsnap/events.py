"""Broadcast notifications for external collaborators such as UI caches."""

import inspect
from typing import Callable, Dict, List

from ._utils import logger

DATA_RESTORED = "data-restored"


class EventBus:
    """Fan out payload-less signals to registered handlers."""

    def __init__(self):
        self._handlers: Dict[str, List[Callable]] = {}

    def subscribe(self, event: str, handler: Callable) -> None:
        self._handlers.setdefault(event, []).append(handler)

    def unsubscribe(self, event: str, handler: Callable) -> None:
        handlers = self._handlers.get(event, [])
        if handler in handlers:
            handlers.remove(handler)

    async def emit(self, event: str) -> None:
        """Invoke every handler for ``event``; handler failures are logged."""
        for handler in list(self._handlers.get(event, [])):
            try:
                result = handler()
                if inspect.isawaitable(result):
                    await result
            except Exception as e:
                logger.error(f"Handler for '{event}' failed: {e}")
