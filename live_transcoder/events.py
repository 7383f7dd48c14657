"""
Transcoder lifecycle notifications.

Consumers either subclass :class:`TranscoderListener` or register plain
callbacks per :class:`TranscoderEvent`. Callbacks may be regular functions or
coroutine functions. A failing callback is logged and never reaches the
transcoder.
"""

import inspect
import logging
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

logger = logging.getLogger(__name__)


class TranscoderEvent(Enum):
    """Events emitted by a live transcoder."""

    READY = "ready"
    ERROR = "error"
    EXIT = "exit"
    STOPPED = "stopped"


class TranscoderListener:
    """Base listener with no-op handlers."""

    def on_ready(self) -> Any:
        """The playlist is being written and can be served."""

    def on_error(self, error: Exception) -> Any:
        """A non-fatal error occurred."""

    def on_exit(self, code: Optional[int]) -> Any:
        """FFmpeg exited with the given code."""

    def on_stopped(self) -> Any:
        """The transcoder was torn down."""


_LISTENER_METHODS = {
    TranscoderEvent.READY: "on_ready",
    TranscoderEvent.ERROR: "on_error",
    TranscoderEvent.EXIT: "on_exit",
    TranscoderEvent.STOPPED: "on_stopped",
}


class EventDispatcher:
    """Delivers events to listeners and per-event callbacks."""

    def __init__(self):
        self._listeners: List[TranscoderListener] = []
        self._callbacks: Dict[TranscoderEvent, List[Callable[..., Any]]] = {
            event: [] for event in TranscoderEvent
        }

    def add_listener(self, listener: TranscoderListener) -> None:
        if listener not in self._listeners:
            self._listeners.append(listener)

    def remove_listener(self, listener: TranscoderListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def on(self, event: TranscoderEvent, callback: Callable[..., Any]) -> None:
        """Register a callback for one event."""
        self._callbacks[event].append(callback)

    def off(self, event: TranscoderEvent, callback: Callable[..., Any]) -> None:
        """Unregister a callback. Unknown callbacks are ignored."""
        if callback in self._callbacks[event]:
            self._callbacks[event].remove(callback)

    def clear(self) -> None:
        self._listeners.clear()
        for callbacks in self._callbacks.values():
            callbacks.clear()

    async def emit(self, event: TranscoderEvent, *args: Any) -> None:
        """
        Deliver an event to every listener and callback.

        Args:
            event: Event to deliver
            *args: Event payload (error for ERROR, exit code for EXIT)
        """
        handlers: List[Callable[..., Any]] = [
            getattr(listener, _LISTENER_METHODS[event]) for listener in list(self._listeners)
        ]
        handlers.extend(list(self._callbacks[event]))

        for handler in handlers:
            try:
                result = handler(*args)
                if inspect.isawaitable(result):
                    await result
            except Exception as e:
                logger.error(f"Listener failed handling {event.value} event: {e}", exc_info=True)
