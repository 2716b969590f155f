"""Tests for client settings."""

from __future__ import annotations

import json
from pathlib import Path

import pytest
import voluptuous as vol

from ihcclient.settings import IhcSettings


class TestFromDict:
    """Tests for settings validation."""

    def test_defaults(self) -> None:
        settings = IhcSettings.from_dict({"endpoint": "https://192.168.1.3/"})

        assert settings.endpoint == "https://192.168.1.3"
        assert settings.username is None
        assert settings.application == "openapi"
        assert settings.log_sensitive_data is False
        assert settings.verify_ssl is False
        assert settings.request_timeout == 30

    def test_nested_section(self) -> None:
        settings = IhcSettings.from_dict(
            {
                "ihcConfig": {
                    "endpoint": "http://ihc.local",
                    "userName": "admin",
                    "password": "secret",
                    "application": "treeview",
                    "logSensitiveData": "yes",
                    "requestTimeout": "45",
                    "somethingElse": 1,
                }
            }
        )

        assert settings.username == "admin"
        assert settings.password == "secret"
        assert settings.application == "treeview"
        assert settings.log_sensitive_data is True
        assert settings.request_timeout == 45

    @pytest.mark.parametrize(
        "data",
        [
            {},
            {"endpoint": "not a url"},
            {"endpoint": "https://ihc", "application": "games"},
            {"endpoint": "https://ihc", "requestTimeout": 10},
        ],
    )
    def test_invalid(self, data: dict) -> None:
        with pytest.raises(vol.Invalid):
            IhcSettings.from_dict(data)

    def test_password_not_in_repr(self) -> None:
        settings = IhcSettings(endpoint="https://ihc", password="secret")
        assert "secret" not in repr(settings)


class TestFromFile:
    """Tests for loading ihcsettings.json."""

    def test_load(self, tmp_path: Path) -> None:
        path = tmp_path / "ihcsettings.json"
        path.write_text(
            json.dumps({"ihcConfig": {"endpoint": "https://192.168.1.3", "userName": "u"}}),
            encoding="utf-8",
        )

        settings = IhcSettings.from_file(path)

        assert settings.endpoint == "https://192.168.1.3"
        assert settings.username == "u"

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(OSError):
            IhcSettings.from_file(tmp_path / "missing.json")
