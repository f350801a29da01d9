"""Tests for TokenSink delivery to live clients."""

import pytest

from tokenwatch.sink import TokenSink

from tests.conftest import sample_token


class FakeClient:
    def __init__(self, error=None):
        self.sent = []
        self.error = error

    async def send_json(self, data):
        if self.error is not None:
            raise self.error
        self.sent.append(data)


class TestBroadcast:
    """Fan-out of events to attached clients."""

    @pytest.mark.asyncio
    async def test_attach_sends_greeting(self):
        sink = TokenSink()
        client = FakeClient()

        await sink.attach(client, {"type": "init"})

        assert sink.clients == [client]
        assert client.sent == [{"type": "init"}]

    @pytest.mark.asyncio
    async def test_failing_client_is_detached(self):
        sink = TokenSink()
        good, broken = FakeClient(), FakeClient(error=RuntimeError("connection closed"))
        sink.clients.extend([good, broken])

        await sink.broadcast({"type": "ping"})

        assert good.sent == [{"type": "ping"}]
        assert sink.clients == [good]

    @pytest.mark.asyncio
    async def test_emit_reaches_clients_newest_first(self):
        sink = TokenSink()
        client = FakeClient()
        sink.clients.append(client)

        await sink.emit(sample_token("Old"))
        await sink.emit(sample_token("New"))

        assert [event["token"]["name"] for event in client.sent] == ["Old", "New"]
        assert [t["name"] for t in sink.snapshot(1)] == ["New"]
        assert sink.tokens_found == 2

    def test_detach_unknown_client_is_a_no_op(self):
        sink = TokenSink()

        sink.detach(FakeClient())

        assert sink.clients == []
