"""Simple YAML configuration loader for VoiceChat."""

import os
import yaml
from pathlib import Path
from typing import Dict, Any, Optional
import logging

from ..audio.analyzer import DEFAULT_CENTROID_REFERENCE_HZ
from ..models.audio import CHANNELS
from ..models.vad import VadConfig

logger = logging.getLogger(__name__)

TRANSCRIPTION_MODES = ("batch", "streaming")
WEBHOOK_MODES = ("test", "prod")


class VoiceChatConfig:
    """VoiceChat configuration loader."""

    def __init__(self, config_path: str):
        """Initialize configuration loader.

        Args:
            config_path: Path to YAML config file
        """
        self.config_file = Path(config_path)

        if not self.config_file.exists():
            raise FileNotFoundError(f"Configuration file not found: {self.config_file}")

        logger.info(f"Loading configuration from: {self.config_file}")
        self.config = self._load_config()

    def _load_config(self) -> Dict[str, Any]:
        """Load and parse YAML configuration file."""
        try:
            with open(self.config_file, 'r', encoding='utf-8') as f:
                config = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ValueError(f"Invalid YAML in configuration file: {e}")

        if not config:
            raise ValueError("Configuration file is empty")
        if not isinstance(config, dict):
            raise ValueError("Configuration file must contain a mapping")

        self._resolve_paths(config)

        logger.info("Configuration loaded successfully")
        return config

    def _resolve_paths(self, config: Dict[str, Any]) -> None:
        """Resolve relative paths in configuration relative to config file location."""
        config_dir = self.config_file.parent

        logging_section = config.get('logging')
        if isinstance(logging_section, dict) and logging_section.get('file_path'):
            log_path = logging_section['file_path']
            if not os.path.isabs(log_path):
                logging_section['file_path'] = str(config_dir / log_path)

    def get(self, key_path: str, default: Any = None) -> Any:
        """Get configuration value using dot notation (e.g., 'vad.start_threshold').

        Args:
            key_path: Dot-separated key path
            default: Default value if key not found

        Returns:
            Configuration value or default
        """
        keys = key_path.split('.')
        value = self.config

        for key in keys:
            if isinstance(value, dict) and key in value:
                value = value[key]
            else:
                return default

        return value

    def set(self, key_path: str, value: Any) -> None:
        """Set configuration value using dot notation.

        Args:
            key_path: Dot-separated path to config value (e.g., 'transcription.mode')
            value: Value to set
        """
        keys = key_path.split('.')
        config_dict = self.config

        # Navigate to the parent dictionary
        for key in keys[:-1]:
            if key not in config_dict:
                config_dict[key] = {}
            config_dict = config_dict[key]

        config_dict[keys[-1]] = value
        logger.debug(f"Configuration key '{key_path}' set to: {value}")

    def get_vad_config(self) -> VadConfig:
        """Build the VAD thresholds from the ``vad`` section."""
        defaults = VadConfig()
        return VadConfig(
            start_threshold=float(self.get('vad.start_threshold', defaults.start_threshold)),
            stop_threshold=float(self.get('vad.stop_threshold', defaults.stop_threshold)),
            silence_timeout_ms=float(self.get('vad.silence_timeout_ms', defaults.silence_timeout_ms)),
        )

    def get_transcription_mode(self) -> str:
        """Get transcription mode - CRASHES on unknown values."""
        mode = str(self.get('transcription.mode', 'batch')).lower()
        if mode not in TRANSCRIPTION_MODES:
            raise ValueError(f"Unknown transcription mode '{mode}', expected one of {TRANSCRIPTION_MODES}")
        return mode

    def get_transcription_url(self) -> str:
        """Get the endpoint URL for the configured transcription mode."""
        key = 'transcription.ws_url' if self.get_transcription_mode() == 'streaming' else 'transcription.http_url'
        url = self.get(key)
        if not url:
            raise ValueError(f"{key} not configured")
        return url

    def get_webhook_mode(self) -> str:
        mode = str(self.get('webhook.mode', 'test')).lower()
        if mode not in WEBHOOK_MODES:
            raise ValueError(f"Unknown webhook mode '{mode}', expected one of {WEBHOOK_MODES}")
        return mode

    def get_max_pending_chunks(self) -> Optional[int]:
        value = self.get('transcription.max_pending_chunks')
        return int(value) if value else None

    def get_channels(self) -> int:
        return int(self.get('audio.channels', CHANNELS))

    def get_centroid_reference_hz(self) -> Optional[float]:
        """Centroid normalization in Hz; an explicit ``null`` keeps raw Hz."""
        value = self.get('audio.centroid_reference_hz', DEFAULT_CENTROID_REFERENCE_HZ)
        return float(value) if value is not None else None
