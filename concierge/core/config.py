"""
Configuration management for the concierge.

Loads settings from the YAML config file, applies environment overrides and
provides typed access.
"""
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import yaml

# Load environment variables from .env file
from dotenv import load_dotenv
load_dotenv()


def _project_root() -> Path:
    """Return project root (parent of the concierge package)."""
    return Path(__file__).resolve().parent.parent.parent


DEFAULT_CONFIG_PATH = _project_root() / "config" / "default.yaml"

DATA_MODES = ("stub", "live")


@dataclass
class ConciergeConfig:
    """Configuration for the concierge widget and its data providers."""

    # Data providers
    data_mode: str = "stub"                     # "stub" (demo inventory) or "live" (storefront API)
    api_base_url: str = "http://localhost:3000"
    api_timeout: float = 10.0                   # Seconds per provider call

    # Widget behaviour
    low_confidence_threshold: float = 0.7       # Below this the widget shows the intent chooser
    human_emphasis_threshold: float = 0.5       # Below this the chooser pushes stylist help
    session_ttl_minutes: int = 30               # Inactivity before a session is expired

    @classmethod
    def from_yaml(cls, config_path: Optional[Path] = None) -> "ConciergeConfig":
        """Load configuration from YAML file, then apply environment overrides."""
        path = config_path or DEFAULT_CONFIG_PATH
        data = {}
        if path.exists():
            with open(path, 'r') as f:
                data = yaml.safe_load(f) or {}

        providers_config = data.get('providers', {})
        widget_config = data.get('widget', {})

        config = cls(
            data_mode=providers_config.get('data_mode', 'stub'),
            api_base_url=providers_config.get('api_base_url', 'http://localhost:3000'),
            api_timeout=float(providers_config.get('api_timeout', 10.0)),
            low_confidence_threshold=float(widget_config.get('low_confidence_threshold', 0.7)),
            human_emphasis_threshold=float(widget_config.get('human_emphasis_threshold', 0.5)),
            session_ttl_minutes=int(widget_config.get('session_ttl_minutes', 30)),
        )
        return config.with_env_overrides()

    def with_env_overrides(self) -> "ConciergeConfig":
        """Apply CONCIERGE_* environment variables on top of file settings."""
        mode = os.getenv("CONCIERGE_DATA_MODE")
        if mode:
            self.data_mode = mode.lower()
        base_url = os.getenv("CONCIERGE_API_BASE_URL")
        if base_url:
            self.api_base_url = base_url
        timeout = os.getenv("CONCIERGE_API_TIMEOUT")
        if timeout:
            self.api_timeout = float(timeout)

        if self.data_mode not in DATA_MODES:
            raise ValueError(f"Unknown data_mode '{self.data_mode}', expected one of {DATA_MODES}")
        self.api_base_url = self.api_base_url.rstrip("/")
        return self


# Global config instance
_config: Optional[ConciergeConfig] = None


def get_config() -> ConciergeConfig:
    """Get the global configuration instance."""
    global _config
    if _config is None:
        _config = ConciergeConfig.from_yaml()
    return _config


def set_config(config: ConciergeConfig) -> None:
    """Set the global configuration instance."""
    global _config
    _config = config
