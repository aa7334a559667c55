from __future__ import annotations

import pytest

from pickup_chat.application.dto.push import PushEvent
from pickup_chat.application.exceptions import TransportError
from pickup_chat.client.push_channel import PushChannelClient
from pickup_chat.domain.value_objects.enums import InboundFrameType
from pickup_chat.domain.value_objects.ids import Confirmed
from tests.conftest import ME, OTHER, FakeTransport, make_message, settle, wire_message


class _Recorder:
    def __init__(self) -> None:
        self.events: list[PushEvent] = []
        self.disconnects = 0

    async def on_message(self, event: PushEvent) -> None:
        self.events.append(event)

    async def on_disconnect(self) -> None:
        self.disconnects += 1


@pytest.fixture
def transports() -> list[FakeTransport]:
    return []


@pytest.fixture
def recorder() -> _Recorder:
    return _Recorder()


@pytest.fixture
def client(transports, recorder) -> PushChannelClient:
    def factory() -> FakeTransport:
        transports.append(FakeTransport())
        return transports[-1]

    c = PushChannelClient(ME, factory)
    c.on_message(recorder.on_message)
    c.on_disconnect(recorder.on_disconnect)
    return c


@pytest.mark.asyncio
async def test_connect_sends_auth_frame_first(client, transports):
    await client.connect()

    assert transports[0].sent == [{"type": "auth", "userId": ME}]
    assert client.connection.connected is True
    assert client.connection.authenticated is True
    await client.close()


@pytest.mark.asyncio
async def test_connect_is_noop_while_open(client, transports):
    await client.connect()
    await client.connect()

    assert len(transports) == 1
    await client.close()


@pytest.mark.asyncio
async def test_connect_failure_raises_transport_error():
    client = PushChannelClient(ME, lambda: FakeTransport(fail_open=True))

    with pytest.raises(TransportError):
        await client.connect()
    assert client.connection.connected is False


@pytest.mark.asyncio
async def test_auth_failure_closes_transport_and_raises_transport_error():
    transport = FakeTransport(fail_send=True)
    client = PushChannelClient(ME, lambda: transport)

    with pytest.raises(TransportError):
        await client.connect()

    assert client.connection.connected is False
    assert client.is_connected is False
    assert transport.is_open is False
    assert await client.send(1, "hello") is False


@pytest.mark.asyncio
async def test_send_while_disconnected_is_noop(client, transports):
    assert await client.send(1, "hello", receiver_id=OTHER) is False
    assert transports == []


@pytest.mark.asyncio
async def test_send_writes_chat_frame(client, transports):
    await client.connect()

    assert await client.send(1, "hello", receiver_id=OTHER) is True

    assert transports[0].sent[-1] == {
        "type": "chat",
        "eventId": 1,
        "content": "hello",
        "messageType": "text",
        "receiverId": OTHER,
    }
    await client.close()


@pytest.mark.asyncio
async def test_inbound_frames_reach_handlers(client, transports, recorder):
    await client.connect()
    incoming = make_message(5, content="game on")
    echo = make_message(6, sender_id=ME, receiver_id=OTHER)

    transports[0].push({"type": "new_message", "message": wire_message(incoming)})
    transports[0].push({"type": "message_sent", "message": wire_message(echo)})
    await settle()

    assert [e.kind for e in recorder.events] == [
        InboundFrameType.NEW_MESSAGE,
        InboundFrameType.MESSAGE_SENT,
    ]
    assert recorder.events[0].message.ref == Confirmed(5)
    assert recorder.events[0].message.content == "game on"
    assert recorder.events[0].notify is True
    assert recorder.events[1].notify is False
    await client.close()


@pytest.mark.asyncio
async def test_unknown_and_malformed_frames_are_ignored(client, transports, recorder):
    await client.connect()

    transports[0].push_raw("not json")
    transports[0].push({"type": "typing", "userId": OTHER})
    transports[0].push({"type": "error", "detail": "not_authenticated"})
    transports[0].push({"type": "new_message"})
    await settle()

    assert recorder.events == []
    assert client.is_connected is True
    await client.close()


@pytest.mark.asyncio
async def test_failing_handler_does_not_stop_reader(recorder):
    async def broken(_event: PushEvent) -> None:
        raise RuntimeError("boom")

    transport = FakeTransport()
    client = PushChannelClient(ME, lambda: transport)
    client.on_message(broken)
    client.on_message(recorder.on_message)
    await client.connect()

    transport.push({"type": "new_message", "message": wire_message(make_message(1))})
    await settle()

    assert len(recorder.events) == 1
    await client.close()


@pytest.mark.asyncio
async def test_drop_flips_connection_and_reconnect_reauths(client, transports, recorder):
    await client.connect()

    transports[0].drop()
    await settle()

    assert client.connection.connected is False
    assert client.is_connected is False
    assert recorder.disconnects == 1
    assert await client.send(1, "hello") is False

    await client.connect()

    assert len(transports) == 2
    assert transports[1].sent == [{"type": "auth", "userId": ME}]
    await client.close()


@pytest.mark.asyncio
async def test_close_does_not_report_disconnect(client, recorder):
    await client.connect()

    await client.close()
    await settle()

    assert client.connection.connected is False
    assert recorder.disconnects == 0
