"""
Tests for the streaming transcription pipeline.
"""

import pytest

from livecaptions.handlers.reconnection_manager import ReconnectionManager
from livecaptions.models.session_state import AudioFrame, SessionConfig, TranscriptEvent
from livecaptions.pipelines.streaming_pipeline import StreamingTranscriptionPipeline


class Recorder:
    def __init__(self):
        self.active = True
        self.transcripts = []
        self.errors = []
        self.statuses = []
        self.failures = []

    async def on_transcript(self, event):
        self.transcripts.append(event)

    async def on_error(self, message):
        self.errors.append(message)

    async def on_status(self, status, detail=None):
        self.statuses.append((status, detail))

    async def on_failure(self, error):
        self.failures.append(error)


@pytest.fixture
def recorder():
    return Recorder()


@pytest.fixture
def make_pipeline(recorder, recording_sleep):
    def _make(connector=None, source_language=None):
        return StreamingTranscriptionPipeline(
            session_config=SessionConfig(api_key="sk-test", source_language=source_language),
            is_active=lambda: recorder.active,
            on_transcript=recorder.on_transcript,
            on_error=recorder.on_error,
            on_status=recorder.on_status,
            on_failure=recorder.on_failure,
            reconnection=ReconnectionManager(sleep=recording_sleep),
            connector=connector,
        )

    return _make


class TestDirective:
    def test_directive_with_language(self, make_pipeline):
        wire = make_pipeline(source_language="de").build_directive().to_wire()

        assert wire["type"] == "transcription_session.update"
        assert wire["session"] == {
            "input_audio_format": "pcm16",
            "input_audio_transcription": {"model": "gpt-4o-transcribe", "language": "de"},
            "turn_detection": {
                "type": "server_vad",
                "threshold": 0.5,
                "prefix_padding_ms": 300,
                "silence_duration_ms": 500,
            },
        }

    @pytest.mark.parametrize("language", [None, "", "auto"])
    def test_directive_omits_unset_language(self, make_pipeline, language):
        wire = make_pipeline(source_language=language).build_directive().to_wire()
        assert "language" not in wire["session"]["input_audio_transcription"]


class TestProviderEvents:
    @pytest.mark.asyncio
    async def test_delta_is_partial_transcript(self, make_pipeline, recorder):
        pipeline = make_pipeline()
        await pipeline.router.handle_realtime_event(
            {"type": "conversation.item.input_audio_transcription.delta", "delta": "hel"}
        )
        assert recorder.transcripts == [TranscriptEvent("hel", False)]

    @pytest.mark.asyncio
    async def test_empty_delta_is_ignored(self, make_pipeline, recorder):
        pipeline = make_pipeline()
        await pipeline.router.handle_realtime_event(
            {"type": "conversation.item.input_audio_transcription.delta", "delta": ""}
        )
        assert recorder.transcripts == []

    @pytest.mark.asyncio
    async def test_completed_is_final_transcript(self, make_pipeline, recorder):
        pipeline = make_pipeline()
        await pipeline.router.handle_realtime_event(
            {
                "type": "conversation.item.input_audio_transcription.completed",
                "transcript": "hello world",
            }
        )
        assert recorder.transcripts == [TranscriptEvent("hello world", True)]

    @pytest.mark.asyncio
    async def test_error_event_relays_message(self, make_pipeline, recorder):
        pipeline = make_pipeline()
        await pipeline.router.handle_realtime_event(
            {"type": "error", "error": {"message": "rate limited"}}
        )
        await pipeline.router.handle_realtime_event({"type": "error"})
        assert recorder.errors == ["rate limited", "OpenAI API error"]

    @pytest.mark.parametrize("error", ["quota exceeded", ["x"], {"code": "bad"}, None])
    @pytest.mark.asyncio
    async def test_error_without_message_uses_fallback(self, make_pipeline, recorder, error):
        pipeline = make_pipeline()
        await pipeline.router.handle_realtime_event({"type": "error", "error": error})
        assert recorder.errors == ["OpenAI API error"]

    @pytest.mark.asyncio
    async def test_unknown_and_log_events_are_ignored(self, make_pipeline, recorder):
        pipeline = make_pipeline()
        await pipeline.router.handle_realtime_event({"type": "something.new"})
        await pipeline.router.handle_realtime_event(
            {"type": "input_audio_buffer.speech_started"}
        )
        assert recorder.transcripts == []
        assert recorder.errors == []

    @pytest.mark.asyncio
    async def test_no_events_after_owner_inactive(self, make_pipeline, recorder):
        pipeline = make_pipeline()
        recorder.active = False
        await pipeline.router.handle_realtime_event(
            {
                "type": "conversation.item.input_audio_transcription.completed",
                "transcript": "late",
            }
        )
        assert recorder.transcripts == []


class TestLifecycle:
    @pytest.mark.asyncio
    async def test_frames_forwarded_once_open(
        self, make_pipeline, fake_socket, fake_connector
    ):
        socket = fake_socket()
        pipeline = make_pipeline(connector=fake_connector(socket))

        await pipeline.submit(AudioFrame(b"\x00\x00", 1))
        await pipeline.start()
        await pipeline.submit(AudioFrame(b"\x01\x00", 2))

        assert pipeline.frames_dropped == 1
        assert pipeline.frames_forwarded == 1
        assert len(socket.sent_of_type("input_audio_buffer.append")) == 1
        await pipeline.stop()
        assert socket.closed

    @pytest.mark.asyncio
    async def test_transcripts_flow_from_socket(
        self, make_pipeline, recorder, fake_socket, fake_connector, wait_until
    ):
        socket = fake_socket()
        pipeline = make_pipeline(connector=fake_connector(socket))
        await pipeline.start()

        socket.push(
            {
                "type": "conversation.item.input_audio_transcription.completed",
                "transcript": "done",
            }
        )
        await wait_until(lambda: recorder.transcripts)

        assert recorder.transcripts == [TranscriptEvent("done", True)]
        await pipeline.stop()

    @pytest.mark.asyncio
    async def test_provider_rejection_fails_pipeline(
        self, make_pipeline, recorder, fake_socket, fake_connector
    ):
        socket = fake_socket(ack={"type": "error", "error": {"message": "invalid key"}})
        pipeline = make_pipeline(connector=fake_connector(socket))

        await pipeline.start()

        assert len(recorder.failures) == 1
        assert "invalid key" in str(recorder.failures[0])
