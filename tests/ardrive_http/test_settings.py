"""Tests for client settings and environment overrides."""

from __future__ import annotations

import pydantic
import pytest

from ArDriveHTTP import ArDriveHTTP, ConfigurationError, __version__
from ArDriveHTTP.settings import ClientSettings, build_settings, get_settings, reset_settings


def test_defaults() -> None:
    settings = build_settings()
    assert settings.retries == 8
    assert settings.retry_delay_ms == 200
    assert settings.no_logs is False
    assert settings.connect_timeout_s == 8.0
    assert settings.receive_timeout_s == 8.0
    assert settings.isolated_execution is False
    assert settings.user_agent == f"ardrive-http/{__version__}"


def test_none_overrides_are_ignored() -> None:
    settings = build_settings(retries=None, retry_delay_ms=50)
    assert settings.retries == 8
    assert settings.retry_delay_ms == 50


def test_environment_overrides(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("ARDRIVE_HTTP_RETRIES", "3")
    monkeypatch.setenv("ARDRIVE_HTTP_NO_LOGS", "true")
    settings = build_settings()
    assert settings.retries == 3
    assert settings.no_logs is True


def test_keyword_beats_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("ARDRIVE_HTTP_RETRIES", "3")
    assert build_settings(retries=5).retries == 5


@pytest.mark.parametrize(
    "overrides",
    [{"retries": -1}, {"retry_delay_ms": -5}, {"connect_timeout_s": 0}, {"user_agent": "   "}],
)
def test_invalid_values_raise_configuration_error(overrides) -> None:
    with pytest.raises(ConfigurationError):
        build_settings(**overrides)


def test_settings_are_frozen() -> None:
    settings = build_settings()
    with pytest.raises(pydantic.ValidationError):
        settings.retries = 2  # type: ignore[misc]


def test_get_settings_is_cached_until_reset(monkeypatch: pytest.MonkeyPatch) -> None:
    first = get_settings()
    assert get_settings() is first
    monkeypatch.setenv("ARDRIVE_HTTP_RETRIES", "1")
    assert get_settings().retries == first.retries
    reset_settings()
    assert get_settings().retries == 1


class TestClientConfiguration:
    def test_keywords_map_onto_settings(self) -> None:
        with ArDriveHTTP(retries=4, retry_delay_ms=10, no_logs=True) as http:
            assert (http.retries, http.retry_delay_ms, http.no_logs) == (4, 10, True)

    def test_keywords_override_settings_object(self) -> None:
        base = ClientSettings(retries=2, receive_timeout_s=3.0)
        with ArDriveHTTP(retries=6, settings=base) as http:
            assert http.retries == 6
            assert http.settings.receive_timeout_s == 3.0

    def test_omitted_keywords_keep_settings_object_values(self) -> None:
        base = build_settings(retry_delay_ms=0, no_logs=True)
        with ArDriveHTTP(retries=2, settings=base) as http:
            assert http.retries == 2
            assert http.retry_delay_ms == 0
            assert http.no_logs is True

    def test_omitted_keywords_beat_environment(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("ARDRIVE_HTTP_RETRY_DELAY_MS", "900")
        base = ClientSettings(retry_delay_ms=5)
        with ArDriveHTTP(no_logs=True, settings=base) as http:
            assert http.retry_delay_ms == 5

    def test_invalid_keyword_raises(self) -> None:
        with pytest.raises(ConfigurationError):
            ArDriveHTTP(retries=-3)
