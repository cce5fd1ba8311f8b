"""Voice interaction controller: one microphone turn from activation to draft."""

import time
import uuid
import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from functools import partial
from typing import Callable, Optional

from .permissions import AlwaysGrantedPermission, MicrophonePermission
from .publisher import VoiceEventPublisher
from ..audio.analyzer import DEFAULT_CENTROID_REFERENCE_HZ, AudioFrameAnalyzer
from ..audio.capture import AudioCaptureSession
from ..audio.source import AudioSource
from ..audio.vad import VoiceActivityDetector
from ..concurrency import AtomicFlag
from ..errors import AudioDeviceError, TranscriptionError
from ..messaging.base import MessageSender
from ..models.audio import AudioChunk, CHANNELS, SAMPLE_RATE
from ..models.chat import ChatMessage, MessageStatus, Role, SendResult
from ..models.voice import VoiceState
from ..transcription.base import Transcriber, TranscriptionSession
from ..transcription.worker import AsyncWorker

logger = logging.getLogger(__name__)

VOICE_ERROR_MESSAGE = "Voice input failed"
MICROPHONE_ERROR_MESSAGE = "Microphone unavailable"
PERMISSION_DENIED_MESSAGE = "Microphone permission denied"
SEND_FAILED_MESSAGE = "Failed to send message"


class _Turn:
    """Resources and flags of one voice turn."""

    def __init__(self, number: int):
        self.number = number
        self.capture: Optional[AudioCaptureSession] = None
        self.transcription: Optional[TranscriptionSession] = None
        self.finish_future: Optional[Future] = None

        self.finishing = AtomicFlag()
        self.aborted = AtomicFlag()
        self.error_reported = AtomicFlag()

        # Set on the terminal transcription outcome or on abort
        self.done = threading.Event()
        self.final_text: Optional[str] = None
        self.partial_text = ""


def _completed(value) -> Future:
    future = Future()
    future.set_result(value)
    return future


class VoiceInteractionController:
    """Drives the IDLE -> LISTENING -> THINKING -> IDLE voice cycle.

    Capture chunks flow into the transcription session and through the VAD;
    a detected end of speech or an explicit ``finish`` ends the turn and the
    transcript is published as an editable draft. Errors from either session
    abort the turn with a single toast.
    """

    def __init__(self,
                 audio_source_factory: Callable[[], AudioSource],
                 transcriber: Transcriber,
                 vad: Optional[VoiceActivityDetector] = None,
                 permission: Optional[MicrophonePermission] = None,
                 message_sender: Optional[MessageSender] = None,
                 publisher: Optional[VoiceEventPublisher] = None,
                 worker: Optional[AsyncWorker] = None,
                 sample_rate: int = SAMPLE_RATE,
                 chunk_size: int = 1024,
                 channels: int = CHANNELS,
                 centroid_reference_hz: Optional[float] = DEFAULT_CENTROID_REFERENCE_HZ,
                 finish_timeout: float = 10.0,
                 release_timeout: float = 2.0,
                 clock: Callable[[], float] = time.monotonic,
                 session_id: Optional[str] = None):
        """Initialize voice controller.

        Args:
            audio_source_factory: Creates the microphone source for each turn
            transcriber: Backend that opens one transcription session per turn
            vad: Voice activity detector used for automatic end of turn
            permission: Microphone permission collaborator
            message_sender: Collaborator used by ``send_draft``
            publisher: Event publisher for UI state
            worker: Event loop thread used by ``send_draft``
            sample_rate: Capture sample rate
            chunk_size: Samples per capture read
            channels: Capture channel count
            centroid_reference_hz: Centroid normalization for the frame analyzer;
                None keeps raw Hz
            finish_timeout: Upper bound in seconds on waiting for the transcript
            release_timeout: How long ``start`` waits for a previous device release
            clock: Monotonic clock in seconds used for chunk timestamps
            session_id: Conversation identifier sent with messages
        """
        self.audio_source_factory = audio_source_factory
        self.transcriber = transcriber
        self.vad = vad or VoiceActivityDetector()
        self.permission = permission or AlwaysGrantedPermission()
        self.message_sender = message_sender
        self.publisher = publisher or VoiceEventPublisher()
        self.worker = worker
        self.sample_rate = sample_rate
        self.chunk_size = chunk_size
        self.channels = channels
        self.centroid_reference_hz = centroid_reference_hz
        self.finish_timeout = finish_timeout
        self.release_timeout = release_timeout
        self.clock = clock
        self.session_id = session_id or str(uuid.uuid4())

        self._lock = threading.RLock()
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="VoiceTurn")
        self._state = VoiceState.IDLE
        self._turn: Optional[_Turn] = None
        self._last_capture: Optional[AudioCaptureSession] = None
        self._last_finish: Optional[Future] = None
        self._turn_count = 0
        self._awaiting_permission = False
        self._closed = False

        logger.info(f"VoiceInteractionController initialized (session {self.session_id})")

    @property
    def state(self) -> VoiceState:
        return self._state

    @property
    def is_active(self) -> bool:
        return self._turn is not None

    def _set_state(self, state: VoiceState) -> None:
        with self._lock:
            if self._state == state:
                return
            logger.info(f"Voice state: {self._state.value} -> {state.value}")
            self._state = state
        self.publisher.publish_state(state)

    def start(self) -> bool:
        """Begin a turn.

        Returns:
            True if the controller is now LISTENING
        """
        with self._lock:
            if self._closed:
                logger.warning("Controller is closed")
                return False
            if self._turn is not None:
                logger.warning("Voice turn already active")
                return False

            if not self.permission.is_granted():
                logger.info("Microphone permission missing, requesting it")
                self._awaiting_permission = True
                self.publisher.publish_permission(False)
                self.permission.request()
                return False

            previous = self._last_capture

        # The previous capture thread may need the lock to finish unwinding
        if previous is not None and not previous.stopped_event.wait(self.release_timeout):
            logger.warning("Previous capture still holds the microphone")
            self.publisher.publish_toast(MICROPHONE_ERROR_MESSAGE)
            return False

        with self._lock:
            if self._closed or self._turn is not None:
                return False

            self._turn_count += 1
            turn = _Turn(self._turn_count)
            self._turn = turn
            self._last_finish = None
            self.vad.reset()

            try:
                turn.transcription = self.transcriber.start(
                    on_partial=partial(self._on_partial, turn),
                    on_final=partial(self._on_final, turn),
                    on_error=partial(self._on_turn_error, turn),
                )
            except (TranscriptionError, RuntimeError) as e:
                logger.error(f"Failed to open transcription session: {e}")
                self._turn = None
                self.publisher.publish_toast(VOICE_ERROR_MESSAGE)
                return False

            turn.capture = AudioCaptureSession(
                source=self.audio_source_factory(),
                on_chunk=partial(self._on_chunk, turn),
                on_error=partial(self._on_turn_error, turn),
                sample_rate=self.sample_rate,
                chunk_size=self.chunk_size,
                channels=self.channels,
                analyzer=AudioFrameAnalyzer(
                    sample_rate=self.sample_rate,
                    window_size=self.chunk_size,
                    centroid_reference_hz=self.centroid_reference_hz,
                ),
                clock=self.clock,
            )
            self._last_capture = turn.capture

            if not turn.capture.start():
                # _on_turn_error already reported and released the turn
                return False
            if turn.aborted.get():
                # Transcription failed while the microphone was opening
                turn.capture.cancel()
                self._release(turn)
                return False

            logger.info(f"Voice turn {turn.number} started")
            self._set_state(VoiceState.LISTENING)
            return True

    def on_permission_result(self, granted: bool) -> None:
        """Handle the answer to a microphone permission request."""
        self.publisher.publish_permission(granted)
        with self._lock:
            awaiting, self._awaiting_permission = self._awaiting_permission, False
        if granted:
            if awaiting:
                self.start()
            return

        logger.warning("Microphone permission denied")
        self.cancel()
        self.publisher.publish_toast(PERMISSION_DENIED_MESSAGE)

    def _on_chunk(self, turn: _Turn, chunk: AudioChunk) -> None:
        """Runs on the capture thread."""
        if turn.aborted.get():
            return
        turn.transcription.offer(chunk.data)
        self.publisher.publish_frame(chunk.frame)

        if turn.finishing.get():
            return
        detection = self.vad.evaluate(chunk.frame.amplitude, chunk.timestamp_ms)
        if detection.ended:
            logger.info(f"Silence detected at {chunk.timestamp_ms:.0f} ms, finishing turn")
            self.finish()

    def _on_partial(self, turn: _Turn, text: str) -> None:
        if turn.aborted.get():
            return
        turn.partial_text = text
        self.publisher.publish_partial(text)

    def _on_final(self, turn: _Turn, text: str) -> None:
        turn.final_text = text
        turn.done.set()

    def _on_turn_error(self, turn: _Turn, error: BaseException) -> None:
        if turn.aborted.get():
            logger.debug(f"Ignoring error from aborted turn {turn.number}: {error}")
            return
        if not turn.error_reported.compare_and_set(False, True):
            logger.debug(f"Suppressing additional error in turn {turn.number}: {error}")
            return

        logger.error(f"Voice turn {turn.number} failed: {error}")
        if isinstance(error, AudioDeviceError):
            self.publisher.publish_toast(MICROPHONE_ERROR_MESSAGE)
        else:
            self.publisher.publish_toast(VOICE_ERROR_MESSAGE)
        self._abort(turn)

    def finish(self) -> Future:
        """End the turn gracefully.

        The first caller wins; later callers (VAD end of speech racing the
        user's release) get the same future. Once the turn is over, the
        future of its finish is returned until the next turn starts.

        Returns:
            Future resolving to the draft text, or None if the turn produced none
        """
        with self._lock:
            turn = self._turn
            if turn is None:
                return self._last_finish or _completed(None)
            if turn.aborted.get():
                return _completed(None)
            if not turn.finishing.compare_and_set(False, True):
                return turn.finish_future

            logger.info(f"Finishing voice turn {turn.number}")
            self._set_state(VoiceState.THINKING)
            turn.finish_future = self._executor.submit(self._finish_turn, turn)
            self._last_finish = turn.finish_future
            return turn.finish_future

    def _finish_turn(self, turn: _Turn) -> Optional[str]:
        """Runs on the controller executor; never holds the lock while waiting."""
        try:
            if not turn.capture.stop(timeout=self.release_timeout):
                logger.warning(f"Capture of turn {turn.number} did not drain in time")
            if turn.aborted.get():
                return None

            started = time.monotonic()
            turn.transcription.finish(timeout=self.finish_timeout)
            remaining = max(0.0, self.finish_timeout - (time.monotonic() - started))

            if turn.done.wait(remaining):
                text = turn.final_text
            else:
                logger.warning(f"Transcription timed out after {self.finish_timeout}s, using partial text")
                text = turn.transcription.transcript or turn.partial_text
                turn.transcription.cancel()

            if turn.aborted.get():
                return None

            text = (text or "").strip()
            if text:
                self.publisher.publish_draft(text)
            else:
                logger.info(f"Voice turn {turn.number} produced no transcript")
            return text or None
        except Exception as e:
            logger.error(f"Error finishing voice turn {turn.number}: {e}", exc_info=True)
            self._on_turn_error(turn, e)
            return None
        finally:
            self._release(turn)

    def cancel(self) -> bool:
        """Abort the active turn and discard its transcript.

        Returns:
            True if a turn was cancelled
        """
        with self._lock:
            turn = self._turn
            if turn is None:
                return False
            logger.info(f"Cancelling voice turn {turn.number}")
            return self._abort(turn)

    def _abort(self, turn: _Turn) -> bool:
        if not turn.aborted.compare_and_set(False, True):
            return False
        if turn.capture is not None:
            turn.capture.cancel()
        if turn.transcription is not None:
            turn.transcription.cancel()
        turn.done.set()
        self._release(turn)
        return True

    def _release(self, turn: _Turn) -> None:
        with self._lock:
            if self._turn is not turn:
                return
            self._turn = None
            self._set_state(VoiceState.IDLE)

    def send_draft(self, text: str) -> Future:
        """Send a confirmed draft as a user chat message.

        Returns:
            Future resolving to a SendResult
        """
        text = (text or "").strip()
        if not text:
            return _completed(SendResult.failure(ValueError("Cannot send an empty message")))
        if self.message_sender is None or self.worker is None:
            return _completed(SendResult.failure(RuntimeError("No message sender configured")))

        message = ChatMessage(text=text, role=Role.USER)
        return self.worker.submit(self._send(message))

    async def _send(self, message: ChatMessage) -> SendResult:
        logger.info(f"Sending message {message.id}")
        result = await self.message_sender.send(message, self.session_id)
        if result.ok:
            message.status = MessageStatus.SENT
        else:
            message.status = MessageStatus.FAILED
            logger.error(f"Sending message {message.id} failed: {result.error}")
            self.publisher.publish_toast(SEND_FAILED_MESSAGE)
        return result

    def close(self) -> None:
        """Cancel any active turn and stop the controller thread."""
        with self._lock:
            self._closed = True
        self.cancel()
        self._executor.shutdown(wait=True)
        logger.info("VoiceInteractionController closed")
