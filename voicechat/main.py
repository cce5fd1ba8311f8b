"""Main application entry point for VoiceChat."""

import sys
import time
import argparse
import logging
from pathlib import Path
from typing import Optional

from .audio.vad import VoiceActivityDetector
from .config import VoiceChatConfig
from .messaging import WebhookMessageSender
from .models.voice import VoiceState
from .services.publisher import VoiceEventPublisher
from .services.voice_controller import VoiceInteractionController
from .transcription import AsyncWorker, HttpTranscriber, StreamingTranscriber, Transcriber
from .ui.console import VoiceConsole

logger = logging.getLogger(__name__)


class Server:

    def __init__(self, config_path: str, log_level: Optional[str] = None):
        self.config = VoiceChatConfig(config_path)
        # Command line overrides the configured level
        setup_logging(self.config, log_level or self.config.get('logging.level', 'INFO'))
        self.worker: Optional[AsyncWorker] = None
        self.controller: Optional[VoiceInteractionController] = None
        self.view: Optional[VoiceConsole] = None

    def init(self) -> None:
        logger.info("Initializing services...")

        sample_rate = self.config.get('audio.sample_rate', 16000)
        chunk_size = self.config.get('audio.chunk_size', 1024)
        prefix = self.config.get('events.topic_prefix', 'voice')
        logger.info(f"Audio settings: {sample_rate}Hz, {chunk_size} samples/chunk")

        self.worker = AsyncWorker().start()
        self.view = VoiceConsole(prefix, show_levels=self.config.get('ui.show_levels', False))

        self.controller = VoiceInteractionController(
            audio_source_factory=self._create_source,
            transcriber=self._create_transcriber(sample_rate),
            vad=VoiceActivityDetector(self.config.get_vad_config()),
            message_sender=self._create_sender(),
            publisher=VoiceEventPublisher(prefix),
            worker=self.worker,
            sample_rate=sample_rate,
            chunk_size=chunk_size,
            channels=self.config.get_channels(),
            centroid_reference_hz=self.config.get_centroid_reference_hz(),
            finish_timeout=self.config.get('transcription.finish_timeout_seconds', 10.0),
        )

    def _create_source(self):
        # Imported lazily so the rest of the app works without PortAudio
        from .audio.pyaudio_source import PyAudioSource
        return PyAudioSource(self.config.get('audio.input_device_index'))

    def _create_transcriber(self, sample_rate: int) -> Transcriber:
        mode = self.config.get_transcription_mode()
        url = self.config.get_transcription_url()
        logger.info(f"Transcription mode: {mode} ({url})")
        if mode == 'streaming':
            return StreamingTranscriber(
                self.worker,
                url=url,
                max_pending_chunks=self.config.get_max_pending_chunks(),
                sample_rate=sample_rate,
            )
        return HttpTranscriber(
            url,
            self.worker,
            request_timeout=self.config.get('transcription.request_timeout_seconds', 30.0),
        )

    def _create_sender(self) -> Optional[WebhookMessageSender]:
        test_url = self.config.get('webhook.test_url')
        if not test_url:
            logger.info("No webhook configured, drafts will not be sent")
            return None
        return WebhookMessageSender(
            test_url=test_url,
            prod_url=self.config.get('webhook.prod_url'),
            mode=self.config.get_webhook_mode(),
            lang=self.config.get('webhook.lang'),
            request_timeout=self.config.get('webhook.request_timeout_seconds', 60.0),
        )

    def run(self, duration: int, send: bool = False) -> Optional[str]:
        """Run one voice turn: listen until silence or ``duration`` seconds."""
        if not self.controller.start():
            return None

        deadline = time.monotonic() + duration
        while self.controller.is_active and time.monotonic() < deadline:
            if self.controller.state == VoiceState.THINKING:
                break
            time.sleep(0.1)

        draft = self.controller.finish().result()
        if not draft:
            self.view.console.print("🤷 Nothing was transcribed", style="yellow")
            return None

        if send:
            result = self.controller.send_draft(draft).result()
            if result.ok and result.reply is not None:
                self.view.show_reply(result.reply)
        return draft

    def cleanup(self) -> None:
        if self.controller is not None:
            self.controller.close()
        if self.worker is not None:
            self.worker.shutdown()


def setup_logging(config, level: str = "INFO") -> None:
    """Set up logging configuration from YAML config."""
    log_file_path = config.get('logging.file_path', 'data/logs/voicechat.log')
    console_output = config.get('logging.console_output', True)

    log_dir = Path(log_file_path).parent
    log_dir.mkdir(parents=True, exist_ok=True)

    handlers = []

    # File handler - always write to file
    file_handler = logging.FileHandler(log_file_path)
    file_handler.setLevel(logging.DEBUG)
    file_formatter = logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(threadName)s - %(funcName)s:%(lineno)d - %(message)s'
    )
    file_handler.setFormatter(file_formatter)
    handlers.append(file_handler)

    # Console handler - only if enabled in config
    if console_output:
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setLevel(logging.WARNING)  # Only show warnings and above on console
        console_formatter = logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s')
        console_handler.setFormatter(console_formatter)
        handlers.append(console_handler)

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.setLevel(getattr(logging, level.upper()))
    for handler in handlers:
        root_logger.addHandler(handler)

    logger = logging.getLogger(__name__)
    logger.info("=" * 50)
    logger.info("VoiceChat starting up")
    logger.info(f"Log file: {log_file_path}")
    logger.info(f"Log level set to: {level}")
    logger.info("=" * 50)


def main() -> None:
    """Main entry point for VoiceChat."""
    parser = argparse.ArgumentParser(
        description="VoiceChat - talk to your workflow",
    )

    parser.add_argument(
        "--config",
        type=str,
        default="voicechat.yaml",
        help="Path to configuration YAML file (default: voicechat.yaml)"
    )

    parser.add_argument(
        "--log-level",
        type=str,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Set logging level (default: from config, else INFO)"
    )

    parser.add_argument(
        "--duration",
        type=int,
        default=15,
        help="Maximum seconds to listen before finishing the turn (default: 15)"
    )

    parser.add_argument(
        "--send",
        action="store_true",
        help="Send the transcribed draft to the configured webhook"
    )

    parser.add_argument(
        "--version",
        action="version",
        version="VoiceChat v0.1.0"
    )

    args = parser.parse_args()

    server = None
    try:
        server = Server(args.config, args.log_level)
        server.init()
        server.run(args.duration, send=args.send)
    except KeyboardInterrupt:
        print("\n👋 Goodbye!")
    except Exception as e:
        print(f"❌ Error: {e}")
        logging.error(f"Application error: {e}")
        sys.exit(1)
    finally:
        if server is not None:
            server.cleanup()


if __name__ == "__main__":
    main()
