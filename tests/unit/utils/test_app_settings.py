"""Tests for deployment environment flags."""

import pytest

from src.utils.settings.app import AppSettings


def test_unset_environment_is_not_development(monkeypatch):
    monkeypatch.delenv("ENVIRONMENT")

    settings = AppSettings()

    assert not settings.is_development
    assert settings.is_production


@pytest.mark.parametrize("value", ["dev", "DEV"])
def test_explicit_dev_flag(monkeypatch, value):
    monkeypatch.setenv("ENVIRONMENT", value)

    assert AppSettings().is_development


@pytest.mark.parametrize("value", ["PROD", "TEST", "staging"])
def test_other_environments_are_not_development(monkeypatch, value):
    monkeypatch.setenv("ENVIRONMENT", value)

    assert not AppSettings().is_development
