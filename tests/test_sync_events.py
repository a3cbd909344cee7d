"""Tests for the sync event bus."""

from cloudvault.sync.events import ERROR, PROGRESS, STATUS, SyncEvent, SyncEventBus


class TestSyncEventBus:
    """Tests for SyncEventBus."""

    def test_emit_reaches_all_listeners(self):
        bus = SyncEventBus()
        first, second = [], []
        bus.subscribe(first.append)
        bus.subscribe(second.append)

        bus.emit(STATUS, status="idle")

        assert first == [SyncEvent(STATUS, {"status": "idle"})]
        assert second == first

    def test_unsubscribe(self):
        bus = SyncEventBus()
        received = []
        unsubscribe = bus.subscribe(received.append)

        unsubscribe()
        unsubscribe()
        bus.emit(PROGRESS, completed=1, total=2, phase="Downloading...")

        assert received == []
        assert len(bus) == 0

    def test_failing_listener_is_isolated(self):
        bus = SyncEventBus()
        received = []

        def broken(event):
            raise ValueError("listener bug")

        bus.subscribe(broken)
        bus.subscribe(received.append)
        bus.emit(ERROR, message="boom")

        assert [e.data["message"] for e in received] == ["boom"]
