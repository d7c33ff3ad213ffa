"""Unit tests for core/config.py -- startup validation of Settings."""

import pytest
from pydantic import ValidationError

from core.config import Settings

GOOD_KEY = "x" * 32


def _settings(**overrides) -> Settings:
    return Settings(_env_file=None, **overrides)


def test_production_requires_secret_key():
    with pytest.raises(ValidationError, match="SECRET_KEY is required"):
        _settings(debug=False, secret_key="")


def test_debug_generates_secret_key():
    settings = _settings(debug=True, secret_key="")
    assert len(settings.secret_key) >= 32


def test_short_secret_key_rejected():
    with pytest.raises(ValidationError, match="at least 32"):
        _settings(debug=False, secret_key="short")


def test_explicit_secret_key_kept():
    assert _settings(debug=False, secret_key=GOOD_KEY).secret_key == GOOD_KEY


def test_non_positive_access_lifetime_rejected():
    with pytest.raises(ValidationError):
        _settings(secret_key=GOOD_KEY, access_token_expire_seconds=0)


def test_refresh_must_outlive_access():
    with pytest.raises(ValidationError):
        _settings(secret_key=GOOD_KEY, access_token_expire_seconds=600, refresh_token_expire_seconds=600)
