"""Unit tests for VoiceChatConfig."""

from pathlib import Path

import pytest

from voicechat.config import VoiceChatConfig


@pytest.fixture
def config_file(tmp_path):
    path = tmp_path / "voicechat.yaml"
    path.write_text(
        "audio:\n"
        "  sample_rate: 16000\n"
        "vad:\n"
        "  start_threshold: 0.05\n"
        "  stop_threshold: 0.02\n"
        "transcription:\n"
        "  mode: Streaming\n"
        "  http_url: http://localhost/asr\n"
        "  ws_url: ws://localhost:2700\n"
        "  max_pending_chunks: 100\n"
        "logging:\n"
        "  file_path: logs/app.log\n",
        encoding="utf-8",
    )
    return path


@pytest.mark.unit
class TestVoiceChatConfig:

    def test_dotted_get(self, config_file):
        config = VoiceChatConfig(str(config_file))

        assert config.get("audio.sample_rate") == 16000
        assert config.get("audio.missing", "fallback") == "fallback"
        assert config.get("audio.sample_rate.deeper") is None

    def test_set_creates_sections(self, config_file):
        config = VoiceChatConfig(str(config_file))

        config.set("webhook.mode", "prod")

        assert config.get("webhook.mode") == "prod"
        assert config.get_webhook_mode() == "prod"

    def test_log_path_resolved_against_config_dir(self, config_file):
        config = VoiceChatConfig(str(config_file))

        assert Path(config.get("logging.file_path")) == config_file.parent / "logs" / "app.log"

    def test_vad_config_uses_defaults_for_missing_keys(self, config_file):
        vad = VoiceChatConfig(str(config_file)).get_vad_config()

        assert vad.start_threshold == 0.05
        assert vad.stop_threshold == 0.02
        assert vad.silence_timeout_ms == 700.0

    def test_transcription_settings(self, config_file):
        config = VoiceChatConfig(str(config_file))

        assert config.get_transcription_mode() == "streaming"
        assert config.get_transcription_url() == "ws://localhost:2700"
        assert config.get_max_pending_chunks() == 100

        config.set("transcription.mode", "batch")
        assert config.get_transcription_url() == "http://localhost/asr"

    def test_audio_analysis_settings(self, config_file):
        config = VoiceChatConfig(str(config_file))

        assert config.get_channels() == 1
        assert config.get_centroid_reference_hz() == 8000.0

        config.set("audio.channels", 2)
        config.set("audio.centroid_reference_hz", 4000)
        assert config.get_channels() == 2
        assert config.get_centroid_reference_hz() == 4000.0

        config.set("audio.centroid_reference_hz", None)
        assert config.get_centroid_reference_hz() is None

    def test_unknown_mode_is_rejected(self, config_file):
        config = VoiceChatConfig(str(config_file))
        config.set("transcription.mode", "telepathy")

        with pytest.raises(ValueError):
            config.get_transcription_mode()

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            VoiceChatConfig(str(tmp_path / "nope.yaml"))

    def test_empty_file(self, tmp_path):
        path = tmp_path / "empty.yaml"
        path.write_text("", encoding="utf-8")

        with pytest.raises(ValueError):
            VoiceChatConfig(str(path))

    def test_invalid_yaml(self, tmp_path):
        path = tmp_path / "broken.yaml"
        path.write_text("audio: [unclosed\n", encoding="utf-8")

        with pytest.raises(ValueError, match="Invalid YAML"):
            VoiceChatConfig(str(path))

    def test_sample_config_loads(self):
        sample = Path(__file__).resolve().parents[2] / "voicechat.yaml"
        config = VoiceChatConfig(str(sample))

        assert config.get_transcription_mode() == "batch"
        assert config.get_vad_config().silence_timeout_ms == 700
