"""Client settings for the IHC controller.

Settings are normally read from an ``ihcsettings.json`` file of the form::

    {
        "ihcConfig": {
            "endpoint": "https://192.168.1.3",
            "userName": "admin",
            "password": "secret",
            "application": "openapi"
        }
    }
"""
from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import voluptuous as vol

from .const import (
    APPLICATIONS,
    CONF_APPLICATION,
    CONF_ENDPOINT,
    CONF_LOG_SENSITIVE_DATA,
    CONF_PASSWORD,
    CONF_REQUEST_TIMEOUT,
    CONF_SECTION,
    CONF_USERNAME,
    CONF_VERIFY_SSL,
    DEFAULT_APPLICATION,
    DEFAULT_REQUEST_TIMEOUT,
    MAX_POLL_TIMEOUT,
)

_LOGGER = logging.getLogger(__name__)

SETTINGS_SCHEMA = vol.Schema(
    {
        vol.Required(CONF_ENDPOINT): vol.All(str, vol.Url()),
        vol.Optional(CONF_USERNAME): vol.Any(None, str),
        vol.Optional(CONF_PASSWORD): vol.Any(None, str),
        vol.Optional(CONF_APPLICATION, default=DEFAULT_APPLICATION): vol.In(APPLICATIONS),
        vol.Optional(CONF_LOG_SENSITIVE_DATA, default=False): vol.Boolean(),
        vol.Optional(CONF_VERIFY_SSL, default=False): vol.Boolean(),
        # Must stay above the long-poll timeout or waits are cut off client side
        vol.Optional(CONF_REQUEST_TIMEOUT, default=DEFAULT_REQUEST_TIMEOUT): vol.All(
            vol.Coerce(int), vol.Range(min=MAX_POLL_TIMEOUT + 1)
        ),
    },
    extra=vol.REMOVE_EXTRA,
)


@dataclass(frozen=True)
class IhcSettings:
    """Configuration settings for the IHC client."""

    endpoint: str
    username: str | None = None
    password: str | None = field(default=None, repr=False)
    application: str = DEFAULT_APPLICATION
    log_sensitive_data: bool = False
    verify_ssl: bool = False
    request_timeout: int = DEFAULT_REQUEST_TIMEOUT

    def __post_init__(self) -> None:
        # Service urls are built as <endpoint>/ws/<service>
        object.__setattr__(self, "endpoint", self.endpoint.rstrip("/"))

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> IhcSettings:
        """Validate a settings dict and build settings from it.

        Args:
            data: Settings keyed as in ihcsettings.json, optionally nested
                in an ``ihcConfig`` section.

        Raises:
            vol.Invalid: If the settings do not validate.
        """
        if CONF_SECTION in data:
            data = data[CONF_SECTION]
        conf = SETTINGS_SCHEMA(dict(data))
        return cls(
            endpoint=conf[CONF_ENDPOINT],
            username=conf.get(CONF_USERNAME),
            password=conf.get(CONF_PASSWORD),
            application=conf[CONF_APPLICATION],
            log_sensitive_data=conf[CONF_LOG_SENSITIVE_DATA],
            verify_ssl=conf[CONF_VERIFY_SSL],
            request_timeout=conf[CONF_REQUEST_TIMEOUT],
        )

    @classmethod
    def from_file(cls, path: str | Path) -> IhcSettings:
        """Load settings from a JSON file."""
        path = Path(path)
        _LOGGER.debug("Loading settings from %s", path)
        with path.open(encoding="utf-8") as fp:
            return cls.from_dict(json.load(fp))
