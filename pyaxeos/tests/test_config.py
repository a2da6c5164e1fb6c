"""Tests for configuration."""
from pyaxeos.config import Settings


def test_settings_defaults(monkeypatch):
    """Test default settings values."""
    monkeypatch.delenv("AXE_HOST", raising=False)
    settings = Settings(_env_file=None)
    assert settings.host is None
    assert settings.timeout == 10
    assert settings.upload_timeout == 300
    assert settings.info_interval == 5
    assert settings.network_interval == 3
    assert settings.rssi_floor == -80
    assert settings.debug is False


def test_settings_from_env(monkeypatch):
    """Test loading settings from environment variables."""
    monkeypatch.setenv("AXE_HOST", "bitaxe.local")
    monkeypatch.setenv("AXE_INFO_INTERVAL", "2")
    monkeypatch.setenv("AXE_DEBUG", "yes")

    settings = Settings(_env_file=None)
    assert settings.host == "bitaxe.local"
    assert settings.info_interval == 2
    assert settings.debug is True


def test_settings_from_env_file(tmp_path, monkeypatch):
    """Test loading settings from a .env file."""
    monkeypatch.delenv("AXE_RSSI_FLOOR", raising=False)
    env_file = tmp_path / ".env"
    env_file.write_text("AXE_RSSI_FLOOR=-70\nAXE_POOL_MAXSIZE=0\n")

    settings = Settings(_env_file=str(env_file))
    assert settings.rssi_floor == -70
    assert settings.pool_maxsize == 0
