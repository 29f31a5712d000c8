"""ConnectionManager: state machine and reconnect policy."""

import asyncio
import json

import pytest

from fakes import FakeActions, FakeConnector, FakeTransport, settle
from gscore_bridge.bridge import OutboundBridge
from gscore_bridge.config import BridgeConfig
from gscore_bridge.models.envelope import OutboundEnvelope
from gscore_bridge.transport.websocket import ConnectionManager, ConnectionState


def make_manager(connector, **overrides) -> ConnectionManager:
    config = BridgeConfig(**{"reconnect_interval": 0, **overrides})
    return ConnectionManager(config, connector=connector)


class LateConnector(FakeConnector):
    """Finishes the handshake even when the opening task is cancelled."""

    async def __call__(self, url: str) -> FakeTransport:
        try:
            await asyncio.Event().wait()
        except asyncio.CancelledError:
            pass
        return await super().__call__(url)


async def wait_for(predicate, rounds: int = 500) -> None:
    for _ in range(rounds):
        if predicate():
            return
        await asyncio.sleep(0)
    raise AssertionError("condition not reached")


class TestConnect:
    @pytest.mark.asyncio
    async def test_connect_opens_and_derives_url(self, connector):
        manager = make_manager(connector, gscore_url="ws://gscore:8765/", gscore_token="abc")
        assert manager.get_status() == ConnectionState.DISCONNECTED

        manager.connect()
        assert manager.get_status() == ConnectionState.CONNECTING
        await settle()

        assert manager.get_status() == ConnectionState.CONNECTED
        assert connector.urls == ["ws://gscore:8765/ws/napcat?token=abc"]
        assert manager.url == connector.urls[0]
        await manager.disconnect()

    @pytest.mark.asyncio
    async def test_connect_is_idempotent(self, connector):
        manager = make_manager(connector)
        manager.connect()
        manager.connect()  # still connecting
        await settle()
        manager.connect()  # connected
        await settle()
        assert len(connector.urls) == 1
        await manager.disconnect()

    @pytest.mark.asyncio
    async def test_connect_uses_new_config_snapshot(self, connector):
        manager = make_manager(connector)
        manager.connect(BridgeConfig(gscore_url="ws://other:1"))
        await settle()
        assert connector.urls == ["ws://other:1/ws/napcat"]
        assert manager.config.gscore_url == "ws://other:1"
        await manager.disconnect()

    @pytest.mark.asyncio
    async def test_disabled_does_nothing(self, connector):
        manager = make_manager(connector, gscore_enable=False)
        manager.connect()
        manager.schedule_reconnect()
        await settle()
        assert connector.urls == []
        assert not manager.reconnect_pending
        assert manager.get_status() == ConnectionState.DISCONNECTED


class TestReconnect:
    @pytest.mark.asyncio
    async def test_stops_after_max_attempts(self):
        connector = FakeConnector(failures=-1)
        manager = make_manager(connector, max_reconnect_attempts=3)
        manager.connect()
        await wait_for(lambda: len(connector.urls) >= 4 and manager.get_status() == ConnectionState.DISCONNECTED)
        await settle(50)

        # first open + 3 reconnect attempts, then nothing more is scheduled
        assert len(connector.urls) == 4
        assert manager.attempts == 3
        assert not manager.reconnect_pending
        assert manager.get_status() == ConnectionState.DISCONNECTED

    @pytest.mark.asyncio
    async def test_unlimited_attempts_never_stop(self):
        connector = FakeConnector(failures=-1)
        manager = make_manager(connector, max_reconnect_attempts=0)
        manager.connect()
        await wait_for(lambda: len(connector.urls) >= 25)
        assert manager.attempts >= 20
        assert manager.reconnect_pending or manager.get_status() == ConnectionState.CONNECTING
        await manager.disconnect()
        assert not manager.reconnect_pending

    @pytest.mark.asyncio
    async def test_success_resets_attempts(self):
        connector = FakeConnector(failures=2)
        manager = make_manager(connector, max_reconnect_attempts=5)
        manager.connect()
        await wait_for(lambda: manager.get_status() == ConnectionState.CONNECTED)
        assert len(connector.urls) == 3
        assert manager.attempts == 0
        assert not manager.reconnect_pending
        await manager.disconnect()

    @pytest.mark.asyncio
    async def test_remote_close_schedules_reconnect(self, connector):
        manager = make_manager(connector, reconnect_interval=60_000)
        manager.connect()
        await settle()
        connector.transports[0].drop()
        await settle()

        assert manager.get_status() == ConnectionState.DISCONNECTED
        assert manager.reconnect_pending
        manager.schedule_reconnect()  # one timer at a time
        assert manager.reconnect_pending
        await manager.disconnect()

    @pytest.mark.asyncio
    async def test_disconnect_cancels_pending_timer(self):
        connector = FakeConnector(failures=-1)
        manager = make_manager(connector, reconnect_interval=60_000)
        manager.connect()
        await settle()
        assert manager.reconnect_pending

        await manager.disconnect()
        assert not manager.reconnect_pending
        assert manager.attempts == 0
        assert manager.get_status() == ConnectionState.DISCONNECTED

    @pytest.mark.asyncio
    async def test_deliberate_disconnect_does_not_reconnect(self, connector):
        manager = make_manager(connector)
        manager.connect()
        await settle()
        transport = connector.transports[0]

        await manager.disconnect()
        await manager.disconnect()
        await settle()
        assert transport.closed
        assert not manager.reconnect_pending
        assert len(connector.urls) == 1

    @pytest.mark.asyncio
    async def test_disconnect_during_handshake_closes_late_transport(self):
        connector = LateConnector()
        manager = make_manager(connector)
        manager.connect()
        await settle()
        assert manager.get_status() == ConnectionState.CONNECTING

        await manager.disconnect()
        await settle()
        assert connector.transports[0].closed
        assert manager.get_status() == ConnectionState.DISCONNECTED
        assert not manager.reconnect_pending


class TestFrames:
    @pytest.mark.asyncio
    async def test_send_only_when_connected(self, connector):
        manager = make_manager(connector)
        assert manager.send(b"early") is False

        manager.connect()
        await settle()
        assert manager.send(b"frame") is True
        await settle()
        assert connector.transports[0].sent == [b"frame"]
        await manager.disconnect()

    @pytest.mark.asyncio
    async def test_malformed_frame_is_dropped(self, connector):
        manager = make_manager(connector)
        received: list[OutboundEnvelope] = []
        manager.add_handler(received.append)
        manager.connect()
        await settle()

        transport = connector.transports[0]
        transport.feed(b"{broken")
        transport.feed(json.dumps({"target_id": "1", "content": [{"type": "text", "data": "ok"}]}).encode())
        await settle()

        assert manager.get_status() == ConnectionState.CONNECTED
        assert [e.target_id for e in received] == ["1"]
        await manager.disconnect()

    @pytest.mark.asyncio
    async def test_async_and_failing_handlers(self, connector):
        manager = make_manager(connector)
        seen: list[str] = []

        async def async_handler(envelope: OutboundEnvelope) -> None:
            seen.append(f"async:{envelope.msg_id}")

        def broken_handler(envelope: OutboundEnvelope) -> None:
            raise RuntimeError("boom")

        manager.on_envelope(broken_handler)
        remove = manager.add_handler(async_handler)
        manager.connect()
        await settle()

        connector.transports[0].feed('{"msg_id": "7"}')
        await settle()
        assert seen == ["async:7"]
        assert manager.get_status() == ConnectionState.CONNECTED

        remove()
        connector.transports[0].feed('{"msg_id": "8"}')
        await settle()
        assert seen == ["async:7"]
        await manager.disconnect()

    @pytest.mark.asyncio
    @pytest.mark.parametrize("bad_item", ["oops", 5, {"type": 123, "data": "x"}])
    async def test_bad_item_does_not_drop_frame(self, connector, bad_item):
        manager = make_manager(connector)
        actions = FakeActions()
        manager.on_envelope(OutboundBridge(actions).handle)
        manager.connect()
        await settle()

        connector.transports[0].feed(json.dumps({
            "target_type": "group",
            "target_id": "42",
            "content": [bad_item, {"type": "text", "data": "hello"}],
        }))
        await settle()

        assert actions.sends() == [{
            "message_type": "group",
            "group_id": "42",
            "message": [{"type": "text", "data": {"text": "hello"}}],
        }]
        await manager.disconnect()
