"""
Tests for transcoder notifications.
"""

from unittest.mock import MagicMock

import pytest

from live_transcoder.events import EventDispatcher, TranscoderEvent, TranscoderListener


class RecordingListener(TranscoderListener):
    def __init__(self):
        self.calls = []

    def on_ready(self):
        self.calls.append(("ready",))

    async def on_error(self, error):
        self.calls.append(("error", error))

    def on_exit(self, code):
        self.calls.append(("exit", code))


class TestEventDispatcher:
    """Test event dispatcher."""

    @pytest.mark.asyncio
    async def test_listener_methods(self):
        """Test events map to listener methods, sync and async."""
        dispatcher = EventDispatcher()
        listener = RecordingListener()
        dispatcher.add_listener(listener)
        error = RuntimeError("boom")

        await dispatcher.emit(TranscoderEvent.READY)
        await dispatcher.emit(TranscoderEvent.ERROR, error)
        await dispatcher.emit(TranscoderEvent.EXIT, 1)
        await dispatcher.emit(TranscoderEvent.STOPPED)

        assert listener.calls == [("ready",), ("error", error), ("exit", 1)]

    @pytest.mark.asyncio
    async def test_callbacks(self):
        """Test per-event callbacks receive the payload."""
        dispatcher = EventDispatcher()
        codes = []

        async def on_exit(code):
            codes.append(code)

        dispatcher.on(TranscoderEvent.EXIT, on_exit)
        dispatcher.on(TranscoderEvent.EXIT, codes.append)

        await dispatcher.emit(TranscoderEvent.EXIT, 255)

        assert codes == [255, 255]

    @pytest.mark.asyncio
    async def test_off(self):
        """Test removed callbacks are not called."""
        dispatcher = EventDispatcher()
        callback = MagicMock(return_value=None)

        dispatcher.on(TranscoderEvent.READY, callback)
        dispatcher.off(TranscoderEvent.READY, callback)
        dispatcher.off(TranscoderEvent.READY, callback)
        await dispatcher.emit(TranscoderEvent.READY)

        callback.assert_not_called()

    @pytest.mark.asyncio
    async def test_remove_listener(self):
        """Test removed listeners are not called."""
        dispatcher = EventDispatcher()
        listener = RecordingListener()

        dispatcher.add_listener(listener)
        dispatcher.add_listener(listener)
        dispatcher.remove_listener(listener)
        await dispatcher.emit(TranscoderEvent.READY)

        assert listener.calls == []

    @pytest.mark.asyncio
    async def test_failures_are_isolated(self):
        """Test a failing handler does not stop delivery to others."""
        dispatcher = EventDispatcher()
        received = []

        async def broken():
            raise ValueError("bad listener")

        dispatcher.on(TranscoderEvent.STOPPED, broken)
        dispatcher.on(TranscoderEvent.STOPPED, lambda: received.append(True))

        await dispatcher.emit(TranscoderEvent.STOPPED)

        assert received == [True]

    @pytest.mark.asyncio
    async def test_clear(self):
        """Test clearing all registrations."""
        dispatcher = EventDispatcher()
        listener = RecordingListener()
        received = []
        dispatcher.add_listener(listener)
        dispatcher.on(TranscoderEvent.READY, lambda: received.append(True))

        dispatcher.clear()
        await dispatcher.emit(TranscoderEvent.READY)

        assert listener.calls == []
        assert received == []

    @pytest.mark.asyncio
    async def test_base_listener_is_noop(self):
        """Test the base listener accepts every event."""
        dispatcher = EventDispatcher()
        dispatcher.add_listener(TranscoderListener())

        for event, args in (
            (TranscoderEvent.READY, ()),
            (TranscoderEvent.ERROR, (RuntimeError(),)),
            (TranscoderEvent.EXIT, (0,)),
            (TranscoderEvent.STOPPED, ()),
        ):
            await dispatcher.emit(event, *args)
