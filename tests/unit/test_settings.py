"""
Unit tests for environment-driven settings and model validation.
"""

import pytest
from pydantic import ValidationError

from logship import LogEvent, Uploader, UploaderSettings, get_settings
from logship.utils import calculate_retry_delay, resolve_name


def test_defaults(monkeypatch):
    for var in ("LOGSHIP_RETRY_ATTEMPTS", "LOGSHIP_RETENTION_IN_DAYS", "LOGSHIP_ENSURE_LOG_GROUP"):
        monkeypatch.delenv(var, raising=False)
    s = UploaderSettings(_env_file=None)
    assert s.retry_attempts == 3
    assert s.retry_backoff_ms == 0
    assert s.retention_in_days == 0
    assert s.ensure_log_group is True
    assert s.max_batch_bytes == 1_000_000


def test_env_overrides(monkeypatch):
    monkeypatch.setenv("LOGSHIP_RETENTION_IN_DAYS", "14")
    monkeypatch.setenv("LOGSHIP_ENSURE_LOG_GROUP", "false")
    monkeypatch.setenv("LOGSHIP_REGION", "eu-west-1")
    s = get_settings()
    assert s.retention_in_days == 14
    assert s.ensure_log_group is False
    assert s.region == "eu-west-1"


def test_negative_retention_rejected(monkeypatch):
    monkeypatch.setenv("LOGSHIP_RETENTION_IN_DAYS", "-1")
    with pytest.raises(ValidationError):
        UploaderSettings(_env_file=None)


def test_uploader_from_settings(fake_client, tokens, guard):
    s = UploaderSettings(_env_file=None, retry_attempts=1, max_batch_bytes=500_000)
    up = Uploader.from_settings(fake_client, s, tokens=tokens, guard=guard)
    assert up._retry_attempts == 1
    assert up._limits.max_batch_bytes == 500_000


def test_log_event_rejects_negative_timestamp():
    with pytest.raises(ValidationError):
        LogEvent(message="x", timestamp=-5)


def test_log_event_message_is_mutable():
    ev = LogEvent(message="long", timestamp=1)
    ev.message = "lo"
    assert ev.to_wire() == {"message": "lo", "timestamp": 1}


def test_resolve_name():
    assert resolve_name("plain") == "plain"
    assert resolve_name(lambda: "dynamic") == "dynamic"
    with pytest.raises(TypeError):
        resolve_name(lambda: 42)


def test_retry_delay_disabled_by_zero_base():
    assert calculate_retry_delay(3, base_delay_ms=0) == 0.0


def test_retry_delay_exponential_with_cap():
    vals = [calculate_retry_delay(i, base_delay_ms=50, max_delay_ms=200, jitter=False) for i in range(5)]
    assert vals == [0.05, 0.1, 0.2, 0.2, 0.2]
