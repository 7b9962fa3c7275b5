"""
Tests for the capture-side CaptionClient.
"""

import base64

import numpy as np
import pytest

from livecaptions.exceptions import ConnectError
from livecaptions.handlers.reconnection_manager import ReconnectionManager
from livecaptions.models.client_api import LinkStatus
from livecaptions.services.caption_client import CONNECTION_LOST, CaptionClient

URL = "ws://localhost:3000/ws"


class ClientHarness:
    def __init__(self, connector, sleep, **kwargs):
        self.statuses = []
        self.transcripts = []
        self.errors = []
        self.relay_statuses = []
        self.client = CaptionClient(
            URL,
            api_key="sk-test",
            reconnection=ReconnectionManager(sleep=sleep, name="relay"),
            connector=connector,
            **kwargs,
        )
        self.client.on_status = lambda status, detail: self.statuses.append((status, detail))
        self.client.on_transcription = lambda text, final: self.transcripts.append((text, final))
        self.client.on_error = self.errors.append
        self.client.on_relay_status = lambda status, detail: self.relay_statuses.append(status)


@pytest.fixture
def make_client(recording_sleep):
    def _make(connector, **kwargs):
        return ClientHarness(connector, recording_sleep, **kwargs)

    return _make


class TestConnect:
    @pytest.mark.asyncio
    async def test_start_sends_config_first(self, make_client, fake_socket, fake_connector):
        socket = fake_socket(ack=None)
        connector = fake_connector(socket)
        harness = make_client(connector, source_language="es", translate_to_english=True)

        await harness.client.start()

        assert connector.calls[0]["url"] == URL
        assert socket.sent[0] == {
            "type": "config",
            "apiKey": "sk-test",
            "sourceLanguage": "es",
            "translateToEnglish": True,
        }
        assert [s for s, _ in harness.statuses] == [LinkStatus.CONNECTING, LinkStatus.CONNECTED]
        await harness.client.stop()

    @pytest.mark.asyncio
    async def test_start_failure(self, make_client, fake_connector):
        harness = make_client(fake_connector(OSError("refused")))

        with pytest.raises(ConnectError):
            await harness.client.start()

        assert harness.client.recording is False
        assert harness.statuses[-1] == (LinkStatus.ERROR, "connection failed")


class TestAudio:
    @pytest.mark.asyncio
    async def test_send_samples_as_pcm16(self, make_client, fake_socket, fake_connector):
        socket = fake_socket(ack=None)
        harness = make_client(fake_connector(socket))
        await harness.client.start()

        assert await harness.client.send_samples([0.5, -1.0, 0.0]) is True

        message = socket.sent_of_type("audio")[0]
        samples = np.frombuffer(base64.b64decode(message["data"]), dtype="<i2")
        assert samples.tolist() == [16383, -32768, 0]
        await harness.client.stop()

    @pytest.mark.asyncio
    async def test_send_without_connection(self, make_client, fake_connector):
        harness = make_client(fake_connector())
        assert await harness.client.send_pcm(b"\x00\x00") is False


class TestRelayMessages:
    @pytest.mark.asyncio
    async def test_messages_reach_callbacks(
        self, make_client, fake_socket, fake_connector, wait_until
    ):
        socket = fake_socket(ack=None)
        harness = make_client(fake_connector(socket))
        await harness.client.start()

        socket.push({"type": "status", "status": "connected"})
        socket.push({"type": "transcription", "text": "hola", "isFinal": False})
        socket.push({"type": "error", "error": "rate limited"})
        socket.push({"type": "mystery"})
        await wait_until(lambda: harness.errors)

        assert harness.relay_statuses == ["connected"]
        assert harness.transcripts == [("hola", False)]
        assert harness.errors == ["rate limited"]
        assert harness.statuses[-1] == (LinkStatus.ERROR, "rate limited")
        await harness.client.stop()


class TestReconnect:
    @pytest.mark.asyncio
    async def test_reconnects_and_resends_config(
        self, make_client, fake_socket, fake_connector, recording_sleep, wait_until
    ):
        first, second = fake_socket(ack=None), fake_socket(ack=None)
        harness = make_client(fake_connector(first, second))
        await harness.client.start()

        first.drop()
        await wait_until(lambda: second.sent)

        assert second.sent[0]["type"] == "config"
        assert (LinkStatus.RECONNECTING, "reconnecting (1/5)...") in harness.statuses
        assert recording_sleep.delays == [1.0]
        assert harness.client.connected
        await harness.client.stop()

    @pytest.mark.asyncio
    async def test_gives_up_after_five_attempts(
        self, make_client, fake_socket, fake_connector, recording_sleep, wait_until
    ):
        socket = fake_socket(ack=None)
        harness = make_client(fake_connector(socket))
        await harness.client.start()

        socket.drop()
        await wait_until(lambda: not harness.client.recording)

        assert recording_sleep.delays == [1.0, 2.0, 4.0, 8.0, 16.0]
        assert harness.statuses[-1] == (LinkStatus.DISCONNECTED, CONNECTION_LOST)

    @pytest.mark.asyncio
    async def test_stop_never_reconnects(
        self, make_client, fake_socket, fake_connector, recording_sleep
    ):
        socket = fake_socket(ack=None)
        connector = fake_connector(socket)
        harness = make_client(connector)
        await harness.client.start()

        await harness.client.stop()

        assert socket.closed
        assert len(connector.calls) == 1
        assert recording_sleep.delays == []
        assert harness.statuses[-1] == (LinkStatus.DISCONNECTED, None)
