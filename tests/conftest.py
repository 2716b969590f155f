"""Shared fixtures for ihcclient tests."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock
from xml.etree import ElementTree as ET

import pytest

from ihcclient.settings import IhcSettings

XSI = "http://www.w3.org/2001/XMLSchema-instance"
NAMESPACES = f'xmlns:ns1="utcs" xmlns:ns2="utcs.values" xmlns:xsi="{XSI}"'


def make_part(name: str, inner: str = "") -> ET.Element:
    """Build a response part element as returned inside the SOAP body."""
    return ET.fromstring(f"<ns1:{name} {NAMESPACES}>{inner}</ns1:{name}>")


def envelope_fields(resource_id: int, ws_type: str, fields: str, runtime: bool = True) -> str:
    """Render the children of a WSResourceValueEnvelope."""
    return (
        f'<ns1:value xsi:type="ns2:{ws_type}">{fields}</ns1:value>'
        "<ns1:typeString/>"
        f"<ns1:resourceID>{resource_id}</ns1:resourceID>"
        f"<ns1:isValueRuntime>{'true' if runtime else 'false'}</ns1:isValueRuntime>"
    )


def value_item(resource_id: int, ws_type: str, fields: str, runtime: bool = True) -> str:
    """Render a WSResourceValueEnvelope array item."""
    return (
        '<ns1:arrayItem xsi:type="ns1:WSResourceValueEnvelope">'
        f"{envelope_fields(resource_id, ws_type, fields, runtime)}"
        "</ns1:arrayItem>"
    )


def bool_item(resource_id: int, value: bool) -> str:
    return value_item(
        resource_id, "WSBooleanValue", f"<ns2:value>{'true' if value else 'false'}</ns2:value>"
    )


@pytest.fixture
def settings() -> IhcSettings:
    """Settings for a controller at a fixed address."""
    return IhcSettings(
        endpoint="https://192.168.1.3",
        username="admin",
        password="secret",
    )


@pytest.fixture
def soap() -> MagicMock:
    """A SoapClient stand-in with an async post."""
    client = MagicMock()
    client.url = "https://192.168.1.3/ws/ResourceInteractionService"
    client.post = AsyncMock()
    return client


@pytest.fixture
def auth(soap: MagicMock) -> MagicMock:
    """An AuthenticationService stand-in handing out the soap fixture."""
    service = MagicMock()
    service.soap_client.return_value = soap
    return service


def make_session(status: int = 200, data: bytes = b"", headers: dict | None = None) -> MagicMock:
    """Create a ClientSession stand-in whose post returns one response."""
    response = MagicMock()
    response.status = status
    response.read = AsyncMock(return_value=data)
    response.headers = headers or {}
    response.cookies = {}

    session = MagicMock()
    session.closed = False
    session.close = AsyncMock()
    session.post.return_value.__aenter__.return_value = response
    session.post.return_value.__aexit__.return_value = False
    return session


def envelope(body: str) -> bytes:
    """Wrap a response part in a SOAP envelope."""
    return (
        '<SOAP-ENV:Envelope xmlns:SOAP-ENV="http://schemas.xmlsoap.org/soap/envelope/" '
        f"{NAMESPACES}><SOAP-ENV:Body>{body}</SOAP-ENV:Body></SOAP-ENV:Envelope>"
    ).encode()
