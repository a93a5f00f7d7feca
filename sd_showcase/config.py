"""
Module: sd_showcase.config
Purpose: Configuration management for sd-showcase
Dependencies: pyyaml, pathlib

Defaults live in Config; a YAML file (config/local.yaml) and a handful of
environment variables may override them.
"""

from pathlib import Path
from typing import Dict, Any, Optional
import logging
import yaml
import os

logger = logging.getLogger(__name__)

# Project root directory
PROJECT_ROOT = Path(__file__).parent.parent

# Directory paths
OUTPUTS_DIR = PROJECT_ROOT / "outputs"
CONFIG_DIR = PROJECT_ROOT / "config"


class Config:
    """
    Configuration manager for sd-showcase.

    Holds the diffusion backend location, image-to-image defaults, the hosted
    language-model settings, API server settings and output formatting.

    Attributes:
        backend (Dict[str, Any]): Diffusion backend connection settings
        img2img (Dict[str, Any]): Image-to-image defaults
        llm (Dict[str, Any]): Prompt and speech relay settings
        speech (Dict[str, Any]): Speech scheduling settings
        api (Dict[str, Any]): API server configuration
        output (Dict[str, Any]): Output file configuration

    Example:
        >>> config = Config()
        >>> config.backend["fallback_sampler"]
        'Euler a'
        >>> config.backend_url("samplers")
        'http://127.0.0.1:7860/sdapi/v1/samplers'
    """

    def __init__(self, config_file: Optional[Path] = None):
        """
        Initialize configuration with default values and optional overrides.

        Args:
            config_file: Optional path to YAML config file for overrides
        """
        self.backend: Dict[str, Any] = {
            "base_url": "http://127.0.0.1:7860/sdapi/v1",
            "timeout": 120.0,  # Seconds, applies to every outbound call
            "fallback_sampler": "Euler a",
            "default_sampler": "DPM++ 2M Karras",
        }

        self.img2img: Dict[str, Any] = {
            "denoising_strength": 0.75,
        }

        self.llm: Dict[str, Any] = {
            "api_key": None,  # Falls back to OPENAI_API_KEY in the SDK
            "chat_model": "gpt-4",
            "tts_model": "tts-1",
            "voice": "alloy",
        }

        self.speech: Dict[str, Any] = {
            "debounce_seconds": 1.0,
        }

        self.api: Dict[str, Any] = {
            "host": "0.0.0.0",
            "port": 8000,
            "reload": False,  # Set True for development
            "log_level": "info",
        }

        self.output: Dict[str, Any] = {
            "directory": str(OUTPUTS_DIR),
            "image_format": "PNG",
            "jpeg_quality": 95,  # If using JPEG
        }

        # Load overrides from file if provided
        if config_file and config_file.exists():
            self._load_overrides(config_file)

        self._load_env_overrides()

    def _load_overrides(self, config_file: Path) -> None:
        """
        Load configuration overrides from YAML file.

        Args:
            config_file: Path to YAML configuration file
        """
        with open(config_file, 'r') as f:
            overrides = yaml.safe_load(f)

        if overrides:
            logger.info(f"Loading configuration overrides from {config_file}")
            for key, value in overrides.items():
                if hasattr(self, key) and isinstance(getattr(self, key), dict):
                    getattr(self, key).update(value)
                else:
                    setattr(self, key, value)

    def _load_env_overrides(self) -> None:
        """Apply environment variable overrides (highest precedence)."""
        if os.getenv("SD_API_URL"):
            self.backend["base_url"] = os.environ["SD_API_URL"]
        if os.getenv("SD_API_TIMEOUT"):
            self.backend["timeout"] = float(os.environ["SD_API_TIMEOUT"])
        if os.getenv("OPENAI_API_KEY"):
            self.llm["api_key"] = os.environ["OPENAI_API_KEY"]

    def backend_url(self, endpoint: str) -> str:
        """
        Build the absolute URL of a diffusion backend endpoint.

        Args:
            endpoint: Endpoint name relative to the base path (e.g. "txt2img")

        Returns:
            Absolute URL string
        """
        return f"{self.backend['base_url'].rstrip('/')}/{endpoint.lstrip('/')}"

    @property
    def timeout(self) -> float:
        """Outbound request timeout in seconds."""
        return float(self.backend["timeout"])


# Global configuration instance
_config_instance: Optional[Config] = None


def get_config() -> Config:
    """
    Get global configuration instance (singleton pattern).

    Returns:
        Shared Config instance

    Example:
        >>> from sd_showcase.config import get_config
        >>> config = get_config()
        >>> print(config.backend["base_url"])
    """
    global _config_instance
    if _config_instance is None:
        # Check for local config override
        local_config = CONFIG_DIR / "local.yaml"
        _config_instance = Config(local_config if local_config.exists() else None)
    return _config_instance


def reset_config() -> None:
    """Drop the cached configuration so the next get_config() reloads it."""
    global _config_instance
    _config_instance = None
