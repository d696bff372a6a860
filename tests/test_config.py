"""
Tests for configuration loading.
"""

import pytest

from concierge.core import config as config_module
from concierge.core.config import DEFAULT_CONFIG_PATH, ConciergeConfig, get_config, set_config


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ("CONCIERGE_DATA_MODE", "CONCIERGE_API_BASE_URL", "CONCIERGE_API_TIMEOUT"):
        monkeypatch.delenv(name, raising=False)
    yield
    set_config(None)


class TestFromYaml:
    """YAML + environment layering."""

    def test_default_file(self):
        config = ConciergeConfig.from_yaml(DEFAULT_CONFIG_PATH)
        assert config.data_mode == "stub"
        assert config.api_base_url == "http://localhost:3000"
        assert config.low_confidence_threshold == 0.7
        assert config.human_emphasis_threshold == 0.5

    def test_custom_file(self, tmp_path):
        path = tmp_path / "concierge.yaml"
        path.write_text(
            "providers:\n"
            "  data_mode: live\n"
            "  api_base_url: https://shop.example.com/\n"
            "  api_timeout: 4\n"
            "widget:\n"
            "  low_confidence_threshold: 0.6\n"
        )
        config = ConciergeConfig.from_yaml(path)
        assert config.data_mode == "live"
        assert config.api_base_url == "https://shop.example.com"
        assert config.api_timeout == 4.0
        assert config.low_confidence_threshold == 0.6
        assert config.session_ttl_minutes == 30

    def test_missing_file_uses_defaults(self, tmp_path):
        config = ConciergeConfig.from_yaml(tmp_path / "absent.yaml")
        assert config == ConciergeConfig()

    def test_env_overrides(self, monkeypatch, tmp_path):
        monkeypatch.setenv("CONCIERGE_DATA_MODE", "LIVE")
        monkeypatch.setenv("CONCIERGE_API_BASE_URL", "http://storefront:8080/")
        monkeypatch.setenv("CONCIERGE_API_TIMEOUT", "2.5")
        config = ConciergeConfig.from_yaml(tmp_path / "absent.yaml")
        assert config.data_mode == "live"
        assert config.api_base_url == "http://storefront:8080"
        assert config.api_timeout == 2.5

    def test_unknown_data_mode(self, monkeypatch, tmp_path):
        monkeypatch.setenv("CONCIERGE_DATA_MODE", "mongo")
        with pytest.raises(ValueError):
            ConciergeConfig.from_yaml(tmp_path / "absent.yaml")


class TestGlobalConfig:
    """get_config / set_config."""

    def test_set_and_get(self):
        custom = ConciergeConfig(data_mode="live")
        set_config(custom)
        assert get_config() is custom

    def test_lazy_load(self):
        set_config(None)
        assert config_module._config is None
        assert isinstance(get_config(), ConciergeConfig)
