"""Tests for environment-driven settings."""

import logging

from usb_relay.config import Settings, resolve_log_level


def test_defaults():
    """An empty environment yields the documented defaults."""
    settings = Settings.from_env({})
    assert settings.directory == "/tmp"
    assert settings.backoff_s == 1.0
    assert settings.log_level == logging.WARNING


def test_env_overrides():
    """USB_RELAY_* and LOG_LEVEL variables override the defaults."""
    settings = Settings.from_env(
        {
            "USB_RELAY_DIR": "/var/run/relay",
            "USB_RELAY_BACKOFF": "2.5",
            "USB_RELAY_POLL_INTERVAL": "0.5",
            "LOG_LEVEL": "info",
        }
    )
    assert settings.directory == "/var/run/relay"
    assert settings.backoff_s == 2.5
    assert settings.poll_interval_s == 0.5
    assert settings.log_level == logging.INFO


def test_bad_values_fall_back():
    """Unparseable or non-positive values keep the defaults."""
    settings = Settings.from_env({"USB_RELAY_BACKOFF": "soon", "USB_RELAY_POLL_INTERVAL": "-1"})
    assert settings.backoff_s == 1.0
    assert settings.poll_interval_s == 0.2


def test_resolve_log_level():
    """Names and numbers resolve to logging levels."""
    assert resolve_log_level("10") == 10
    assert resolve_log_level("debug") == logging.DEBUG
    assert resolve_log_level("nonsense") == logging.WARNING
    assert resolve_log_level(None, logging.INFO) == logging.INFO
