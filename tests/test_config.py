"""
Tests for environment-driven settings.
"""

import pytest

from gatex.config import Settings, get_settings


def test_defaults(monkeypatch):
    """Unset variables fall back to defaults."""
    for name in ("GATEX_TIMEOUT", "GATEX_MAX_RETRIES", "GATEX_CACHE_ENABLED", "GATEX_PORT"):
        monkeypatch.delenv(name, raising=False)

    settings = get_settings()
    assert settings.timeout == 300
    assert settings.max_retries == 3
    assert settings.cache_enabled is True
    assert settings.port == 0


def test_reads_environment_per_call(monkeypatch):
    """Each call reflects the environment at call time."""
    monkeypatch.setenv("GATEX_TIMEOUT", "12.5")
    assert get_settings().timeout == 12.5

    monkeypatch.setenv("GATEX_TIMEOUT", "30")
    monkeypatch.setenv("GATEX_CACHE_ENABLED", "False")
    settings = get_settings()
    assert settings.timeout == 30
    assert settings.cache_enabled is False


@pytest.mark.parametrize(
    "overrides",
    [
        {"timeout": 0},
        {"max_retries": -1},
        {"max_concurrent_requests": 0},
        {"cache_max_age": 0},
        {"port": 70000},
    ],
)
def test_invalid_values_rejected(overrides):
    """Out-of-range values raise on construction."""
    with pytest.raises(ValueError):
        Settings(**overrides)
