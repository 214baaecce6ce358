from __future__ import annotations

import pytest

from notetags.config import Config


def test_defaults_are_valid():
    Config.validate()


@pytest.mark.parametrize(
    "attr, value",
    [
        ("TAG_SUGGESTION_LIMIT", 0),
        ("TAG_SUGGESTION_MAX_LIMIT", 5),
        ("TAG_STORE_TIMEOUT_SECONDS", 0),
    ],
)
def test_invalid_tag_settings_are_rejected(monkeypatch, attr, value):
    monkeypatch.setattr(Config, attr, value)

    with pytest.raises(ValueError, match=attr):
        Config.validate()


def test_production_requires_database_url(monkeypatch):
    monkeypatch.setattr(Config, "FLASK_ENV", "production")
    monkeypatch.setattr(Config, "DATABASE_URL", None)

    with pytest.raises(ValueError, match="DATABASE_URL"):
        Config.validate()
