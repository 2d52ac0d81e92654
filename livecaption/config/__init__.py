"""YAML configuration loader for LiveCaption."""

import os
import copy
import yaml
from pathlib import Path
from typing import Dict, Any, List, Optional
import logging

from pydantic import BaseModel, Field, ValidationError, field_validator

from ..models.session import SUPPORTED_LOCALES, normalize_locale_id

logger = logging.getLogger(__name__)


DEFAULT_CONFIG_FILENAME = "livecaption.yaml"


class AudioSettings(BaseModel):
    buffer_size: int = Field(default=1024, gt=0)
    channels: int = Field(default=1, ge=1, le=2)
    input_device_index: Optional[int] = None


class RecognitionSettings(BaseModel):
    default_locale: Optional[str] = None
    supported_locales: List[str] = Field(
        default_factory=lambda: [option.locale_id for option in SUPPORTED_LOCALES]
    )
    require_consent: bool = True
    interim_results: bool = True
    single_utterance: bool = False

    @field_validator("supported_locales")
    @classmethod
    def _normalize_locales(cls, value: List[str]) -> List[str]:
        return [normalize_locale_id(locale) for locale in value]

    @field_validator("default_locale")
    @classmethod
    def _normalize_default(cls, value: Optional[str]) -> Optional[str]:
        return normalize_locale_id(value) if value else None


class GoogleCloudSettings(BaseModel):
    credentials_path: Optional[str] = None
    use_enhanced_model: bool = False
    enable_automatic_punctuation: bool = True
    model: Optional[str] = None


class LoggingSettings(BaseModel):
    level: str = "INFO"
    file_path: str = "data/logs/livecaption.log"
    console_output: bool = True


class LiveCaptionSettings(BaseModel):
    """Validated view of the configuration file."""
    audio: AudioSettings = Field(default_factory=AudioSettings)
    recognition: RecognitionSettings = Field(default_factory=RecognitionSettings)
    google_cloud: GoogleCloudSettings = Field(default_factory=GoogleCloudSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)


class LiveCaptionConfig:
    """LiveCaption configuration loader."""

    def __init__(self, config_path: Optional[str] = None):
        """Initialize configuration loader.

        Args:
            config_path: Path to YAML config file. If None, uses livecaption.yaml
                        in the current directory when present, defaults otherwise.
        """
        if config_path is None and Path(DEFAULT_CONFIG_FILENAME).exists():
            config_path = DEFAULT_CONFIG_FILENAME

        if config_path is None:
            self.config_file: Optional[Path] = None
            logger.info("No configuration file, using defaults")
            self.config: Dict[str, Any] = {}
        else:
            self.config_file = Path(config_path)
            if not self.config_file.exists():
                raise FileNotFoundError(f"Configuration file not found: {self.config_file}")
            logger.info(f"Loading configuration from: {self.config_file}")
            self.config = self._load_config()

        self.settings = self._validate(self.config)

    def _load_config(self) -> Dict[str, Any]:
        """Load and parse YAML configuration file."""
        try:
            with open(self.config_file, 'r', encoding='utf-8') as f:
                config = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ValueError(f"Invalid YAML in configuration file: {e}") from e

        if not config:
            raise ValueError("Configuration file is empty")
        if not isinstance(config, dict):
            raise ValueError("Configuration file must contain a mapping")

        # Resolve relative paths
        self._resolve_paths(config)

        logger.info("Configuration loaded successfully")
        return config

    def _resolve_paths(self, config: Dict[str, Any]) -> None:
        """Resolve relative paths in configuration relative to config file location."""
        config_dir = self.config_file.parent

        # Resolve Google credentials path
        if 'google_cloud' in config and config['google_cloud'].get('credentials_path'):
            creds_path = config['google_cloud']['credentials_path']
            if not os.path.isabs(creds_path):
                config['google_cloud']['credentials_path'] = str(config_dir / creds_path)

        # Resolve log file path
        if 'logging' in config and config['logging'].get('file_path'):
            log_path = config['logging']['file_path']
            if not os.path.isabs(log_path):
                config['logging']['file_path'] = str(config_dir / log_path)

    @staticmethod
    def _validate(config: Dict[str, Any]) -> LiveCaptionSettings:
        try:
            return LiveCaptionSettings.model_validate(copy.deepcopy(config))
        except ValidationError as e:
            raise ValueError(f"Invalid configuration: {e}") from e

    def set(self, key_path: str, value: Any) -> None:
        """Set configuration value using dot notation and revalidate.

        Args:
            key_path: Dot-separated path to config value (e.g., 'recognition.default_locale')
            value: Value to set
        """
        keys = key_path.split('.')
        config_dict = self.config

        # Navigate to the parent dictionary
        for key in keys[:-1]:
            if key not in config_dict:
                config_dict[key] = {}
            config_dict = config_dict[key]

        # Set the final value
        config_dict[keys[-1]] = value
        self.settings = self._validate(self.config)
        logger.debug(f"Configuration key '{key_path}' set to: {value}")
