"""Unit tests for streaming transcription over a duplex channel."""

import json

import pytest

from voicechat.errors import TranscriptionError
from voicechat.transcription.streaming import EOF_MESSAGE, StreamingTranscriber, config_message
from tests.fakes import FakeDuplexChannel


def start_session(worker, callbacks, channel, **kwargs):
    transcriber = StreamingTranscriber(worker, channel_factory=lambda: channel, **kwargs)
    return transcriber.start(callbacks.on_partial, callbacks.on_final, callbacks.on_error)


@pytest.mark.unit
class TestStreamingTranscriptionSession:

    def test_handshake_audio_and_end_marker_in_order(self, worker, callbacks):
        channel = FakeDuplexChannel()
        session = start_session(worker, callbacks, channel)
        chunks = [bytes([i]) * 32 for i in range(5)]
        for chunk in chunks:
            session.offer(chunk)

        session.finish(timeout=5)

        assert callbacks.done.wait(5)
        assert channel.sent_text[0] == config_message(16000)
        assert json.loads(channel.sent_text[0]) == {"config": {"sample_rate": 16000, "words": True}}
        assert channel.sent_text[-1] == EOF_MESSAGE
        assert channel.sent_bytes == chunks
        assert session.chunks_sent == 5
        assert callbacks.finals == ["hello world"]
        assert callbacks.errors == []
        assert channel.closed.wait(2)

    def test_chunks_offered_before_handshake_are_kept(self, worker, callbacks):
        channel = FakeDuplexChannel()
        session = start_session(worker, callbacks, channel)
        session.offer(b"early")

        session.finish(timeout=5)

        assert callbacks.done.wait(5)
        assert channel.sent_bytes == [b"early"]

    def test_partials_are_merged(self, worker, callbacks):
        channel = FakeDuplexChannel(eof_replies=['{"text": "hello world"}'])
        session = start_session(worker, callbacks, channel)
        assert channel.connected.wait(2)

        worker.submit(_push(channel, '{"partial": "hello"}')).result(2)
        worker.submit(_push(channel, '{"partial": "hello world"}')).result(2)
        worker.submit(_push(channel, '{"partial": "   "}')).result(2)
        worker.submit(_push(channel, '{"partial": "hello"}')).result(2)
        session.finish(timeout=5)

        assert callbacks.done.wait(5)
        assert callbacks.partials == ["hello", "hello world", "hello world"]
        assert callbacks.finals == ["hello world"]
        assert session.transcript == "hello world"

    def test_text_before_end_of_stream_is_a_partial(self, worker, callbacks):
        channel = FakeDuplexChannel(eof_replies=['{"text": "the weather"}'])
        session = start_session(worker, callbacks, channel)
        assert channel.connected.wait(2)

        worker.submit(_push(channel, '{"text": "what is"}')).result(2)
        session.finish(timeout=5)

        assert callbacks.done.wait(5)
        assert callbacks.partials == ["what is"]
        assert callbacks.finals == ["what is the weather"]

    def test_channel_close_after_end_of_stream_delivers_accumulated_text(self, worker, callbacks):
        channel = FakeDuplexChannel(eof_replies=[])
        session = start_session(worker, callbacks, channel)
        assert channel.connected.wait(2)

        worker.submit(_push(channel, '{"partial": "good morning"}')).result(2)
        session.finish(timeout=5)

        assert callbacks.done.wait(5)
        assert callbacks.finals == ["good morning"]

    def test_handshake_failure_is_reported_once(self, worker, callbacks):
        channel = FakeDuplexChannel(connect_error=TranscriptionError("handshake refused"))
        session = start_session(worker, callbacks, channel)

        assert callbacks.done.wait(5)
        session.finish(timeout=1)

        assert len(callbacks.errors) == 1
        assert "handshake" in str(callbacks.errors[0])
        assert callbacks.finals == []

    def test_channel_closed_early_is_an_error(self, worker, callbacks):
        channel = FakeDuplexChannel()
        start_session(worker, callbacks, channel)
        assert channel.connected.wait(2)

        worker.submit(_push(channel, None)).result(2)

        assert callbacks.done.wait(5)
        assert len(callbacks.errors) == 1
        assert isinstance(callbacks.errors[0], TranscriptionError)

    def test_malformed_payload_is_an_error(self, worker, callbacks):
        channel = FakeDuplexChannel()
        start_session(worker, callbacks, channel)
        assert channel.connected.wait(2)

        worker.submit(_push(channel, "{not json")).result(2)

        assert callbacks.done.wait(5)
        assert len(callbacks.errors) == 1
        assert "Invalid transcription payload" in str(callbacks.errors[0])

    def test_concurrent_failures_notify_once(self, worker, callbacks):
        channel = FakeDuplexChannel(send_error=ConnectionResetError("socket reset"))
        session = start_session(worker, callbacks, channel)
        assert channel.connected.wait(2)

        # Sender fails on the chunk while the receiver gets garbage
        session.offer(b"\x00\x00")
        worker.submit(_push(channel, "garbage")).result(2)

        assert callbacks.done.wait(5)
        worker.submit(_fail(session, TranscriptionError("late failure"))).result(2)

        assert len(callbacks.errors) == 1
        assert isinstance(callbacks.errors[0], TranscriptionError)
        assert callbacks.finals == []

    def test_overflow_is_an_error(self, worker, callbacks):
        channel = FakeDuplexChannel(hold_connect=True)
        session = start_session(worker, callbacks, channel, max_pending_chunks=2)

        # Nothing drains while the handshake is pending
        for _ in range(50):
            session.offer(b"\x00\x00")

        assert callbacks.done.wait(5)
        assert len(callbacks.errors) == 1
        assert "overflow" in str(callbacks.errors[0])

    def test_cancel_is_idempotent_and_silent(self, worker, callbacks):
        channel = FakeDuplexChannel()
        session = start_session(worker, callbacks, channel)
        assert channel.connected.wait(2)
        session.offer(b"\x00\x00")

        session.cancel()
        session.cancel()

        assert channel.closed.wait(2)
        assert channel.close_calls == 1
        assert EOF_MESSAGE not in channel.sent_text
        assert not callbacks.done.wait(0.3)
        assert callbacks.errors == []

    def test_finish_after_cancel_does_nothing(self, worker, callbacks):
        channel = FakeDuplexChannel()
        session = start_session(worker, callbacks, channel)
        session.cancel()

        session.finish(timeout=1)

        assert EOF_MESSAGE not in channel.sent_text
        assert callbacks.finals == []

    def test_requires_url_or_factory(self, worker):
        with pytest.raises(ValueError):
            StreamingTranscriber(worker)


async def _push(channel, payload):
    channel.push(payload)


async def _fail(session, error):
    session._fail(error)
