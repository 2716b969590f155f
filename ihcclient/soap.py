"""SOAP transport for the IHC controller.

IMPORTANT PROTOCOL NOTES:
========================
Every IHC service is a SOAP 1.1 endpoint at ``<endpoint>/ws/<ServiceName>``.
Requests are plain HTTP POSTs with the operation name in the ``SOAPAction``
header. Request and response parts live in the ``utcs`` namespace, value
payloads (WSBooleanValue etc.) in ``utcs.values``.

SESSION HANDLING:
================
AuthenticationService.authenticate returns a session cookie (JSESSIONID)
that must be sent with every later call to every service. The cookie is
kept in a single SessionCookie shared by all SoapClient instances of one
login, and applied by hand since the controller does not scope its cookie
path per service.
"""
from __future__ import annotations

import asyncio
import logging
import re
from collections.abc import Callable, Iterable, Iterator
from typing import Any
from xml.etree import ElementTree as ET
from xml.sax.saxutils import escape

import aiohttp

from .const import (
    ERROR_HTTP_CLIENT_SIDE_INTERNAL,
    ERROR_HTTP_STATUS_BASE,
    ERROR_XML_DESERIALIZE,
    ERROR_XML_FORMAT,
    ERROR_XML_LOOKUP,
    ERROR_SOAP_FAULT,
    NS_SOAP_ENV,
    NS_UTCS,
    NS_UTCS_VALUES,
    NS_XSI,
    REDACTED,
)
from .exceptions import IhcError, IhcSoapFault
from .settings import IhcSettings

_LOGGER = logging.getLogger(__name__)

USER_AGENT = "ihcclient"

# Prefixes used in request envelopes
PREFIX_UTCS = "utcs"
PREFIX_VALUES = "vals"

ENVELOPE = (
    '<?xml version="1.0" encoding="utf-8"?>'
    f'<soapenv:Envelope xmlns:soapenv="{NS_SOAP_ENV}" xmlns:{PREFIX_UTCS}="{NS_UTCS}" '
    f'xmlns:{PREFIX_VALUES}="{NS_UTCS_VALUES}" xmlns:xsi="{NS_XSI}">'
    "<soapenv:Header/>"
    "<soapenv:Body>{body}</soapenv:Body>"
    "</soapenv:Envelope>"
)

_PASSWORD_PATTERN = re.compile(r"(<(?:\w+:)?password>)[^<]+(</(?:\w+:)?password>)", re.IGNORECASE)


def redact_passwords(text: str) -> str:
    """Replace the contents of any <password> element."""
    return _PASSWORD_PATTERN.sub(rf"\g<1>{REDACTED}\g<2>", text)


# =============================================================================
# Request building
# =============================================================================

def xml_text(value: Any) -> str:
    """Render a python value as XML element text."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    return escape(str(value))


def element(
    name: str,
    *children: str,
    text: Any = None,
    prefix: str = PREFIX_UTCS,
    xsi_type: str | None = None,
) -> str:
    """Build an XML element from already rendered children or a text value."""
    tag = f"{prefix}:{name}"
    attrs = f' xsi:type="{xsi_type}"' if xsi_type else ""
    content = "".join(children) if children else xml_text(text)
    if not content:
        return f"<{tag}{attrs}/>"
    return f"<{tag}{attrs}>{content}</{tag}>"


def array_element(name: str, items: Iterable[Any]) -> str:
    """Build an element holding one arrayItem per item."""
    return element(name, *(element("arrayItem", text=item) for item in items))


# =============================================================================
# Response parsing
# =============================================================================

def local_name(tag: str) -> str:
    """Strip the namespace from an element tag."""
    return tag.rsplit("}", 1)[-1]


def find_child(elem: ET.Element | None, name: str) -> ET.Element | None:
    """Return the first child with the given local name."""
    if elem is None:
        return None
    for child in elem:
        if local_name(child.tag) == name:
            return child
    return None


def find_children(elem: ET.Element | None, name: str) -> Iterator[ET.Element]:
    """Yield children with the given local name."""
    if elem is None:
        return
    for child in elem:
        if local_name(child.tag) == name:
            yield child


def require_child(elem: ET.Element | None, name: str) -> ET.Element:
    """Return the named child or raise if the response lacks it."""
    child = find_child(elem, name)
    if child is None:
        parent = local_name(elem.tag) if elem is not None else "response"
        raise IhcError(ERROR_XML_LOOKUP, f"Element {name} not found in {parent}")
    return child


def is_nil(elem: ET.Element | None) -> bool:
    """Return True for missing or xsi:nil elements."""
    return elem is None or elem.get(f"{{{NS_XSI}}}nil") in ("true", "1")


def xsi_type(elem: ET.Element) -> str | None:
    """Return the local part of the element's xsi:type."""
    value = elem.get(f"{{{NS_XSI}}}type")
    if value is None:
        return None
    return value.rsplit(":", 1)[-1]


def child_text(elem: ET.Element | None, name: str) -> str | None:
    """Return the text of a child element, None if missing or nil."""
    child = find_child(elem, name)
    if is_nil(child):
        return None
    return child.text or ""


def parse_bool(text: str | None) -> bool | None:
    """Parse an xsd:boolean."""
    if text is None:
        return None
    text = text.strip().lower()
    if text in ("true", "1"):
        return True
    if text in ("false", "0"):
        return False
    raise IhcError(ERROR_XML_FORMAT, f"Invalid boolean {text!r}")


def parse_int(text: str | None) -> int | None:
    """Parse an xsd integer type."""
    if text is None or not text.strip():
        return None
    try:
        return int(text.strip())
    except ValueError as ex:
        raise IhcError(ERROR_XML_FORMAT, f"Invalid integer {text!r}") from ex


def parse_float(text: str | None) -> float | None:
    """Parse an xsd:double."""
    if text is None or not text.strip():
        return None
    try:
        return float(text.strip())
    except ValueError as ex:
        raise IhcError(ERROR_XML_FORMAT, f"Invalid number {text!r}") from ex


def child_bool(elem: ET.Element | None, name: str) -> bool | None:
    return parse_bool(child_text(elem, name))


def child_int(elem: ET.Element | None, name: str) -> int | None:
    return parse_int(child_text(elem, name))


def child_float(elem: ET.Element | None, name: str) -> float | None:
    return parse_float(child_text(elem, name))


def parse_envelope(data: bytes, action: str) -> ET.Element:
    """Parse a response envelope and return the element inside Body.

    Raises:
        IhcSoapFault: If the body holds a SOAP fault.
        IhcError: If the response is not a SOAP envelope.
    """
    try:
        root = ET.fromstring(data)
    except ET.ParseError as ex:
        raise IhcError(ERROR_XML_DESERIALIZE, f"Invalid XML in {action} response: {ex}") from ex

    body = find_child(root, "Body")
    if body is None or len(body) == 0:
        raise IhcError(ERROR_XML_LOOKUP, f"No SOAP body in {action} response")

    content = body[0]
    if local_name(content.tag) == "Fault":
        fault_string = child_text(content, "faultstring") or "SOAP fault"
        raise IhcSoapFault(
            ERROR_SOAP_FAULT,
            f"{action}: {fault_string}",
            fault_code=child_text(content, "faultcode"),
        )
    return content


# =============================================================================
# Session cookie
# =============================================================================

class SessionCookie:
    """Holds the controller session cookie shared by all services of a login."""

    COOKIE_NAME = "JSESSIONID"

    def __init__(self, log_sensitive_data: bool = False) -> None:
        """Initialize the cookie holder."""
        self._value: str | None = None
        self._log_sensitive_data = log_sensitive_data

    @property
    def value(self) -> str | None:
        """Return the cookie as sent in the Cookie header (name=value)."""
        return self._value

    def set(self, value: str | None) -> None:
        """Set or clear (None) the session cookie."""
        if value is None:
            if self._value is not None:
                _LOGGER.info("Clearing session cookie")
        elif self._log_sensitive_data:
            _LOGGER.info("Setting session cookie to %s", value)
        else:
            _LOGGER.info("Setting session cookie (value redacted)")
        self._value = value

    def clear(self) -> None:
        """Drop the session cookie."""
        self.set(None)

    @classmethod
    def extract(cls, response: aiohttp.ClientResponse) -> str | None:
        """Extract name=value of the session cookie from a response."""
        # Try Set-Cookie header first
        cookie_header = response.headers.get("Set-Cookie", "")
        if cookie_header:
            pair = cookie_header.split(";", 1)[0].strip()
            if "=" in pair:
                return pair

        # Also check response cookies object
        for cookie in response.cookies.values():
            if cookie.key == cls.COOKIE_NAME:
                return f"{cookie.key}={cookie.value}"
        return None


# =============================================================================
# SOAP client
# =============================================================================

class SoapClient:
    """Posts SOAP requests to one IHC service."""

    def __init__(
        self,
        session: aiohttp.ClientSession,
        settings: IhcSettings,
        cookie: SessionCookie,
        service_name: str,
    ) -> None:
        """Initialize the SOAP client.

        Args:
            session: aiohttp client session
            settings: Client settings (endpoint, timeouts, ssl)
            cookie: Session cookie shared with the authentication service
            service_name: Name of the IHC service, e.g. ResourceInteractionService
        """
        self._session = session
        self._settings = settings
        self._cookie = cookie
        self._service_name = service_name
        self._url = f"{settings.endpoint}/ws/{service_name}"

    @property
    def url(self) -> str:
        """Return the service url."""
        return self._url

    @property
    def service_name(self) -> str:
        """Return the IHC service name."""
        return self._service_name

    def _log_text(self, data: bytes) -> str:
        text = data.decode("utf-8", errors="replace")
        if self._settings.log_sensitive_data:
            return text
        return redact_passwords(text)

    async def post(
        self,
        action: str,
        body: str,
        on_response: Callable[[aiohttp.ClientResponse], None] | None = None,
    ) -> ET.Element:
        """Post a SOAP request and return the response part.

        Args:
            action: SOAP operation name, sent as SOAPAction
            body: Rendered request part (goes inside the envelope Body)
            on_response: Called with the HTTP response on success, before
                the body is parsed

        Returns:
            The element inside the response Body, e.g. <getRuntimeValue2>
        """
        payload = ENVELOPE.format(body=body).encode("utf-8")
        headers = {
            "Content-Type": "text/xml; charset=utf-8",
            "SOAPAction": action,
            "User-Agent": USER_AGENT,
        }
        cookie = self._cookie.value
        if cookie:
            headers["Cookie"] = cookie

        _LOGGER.debug("%s %s request: %s", self._service_name, action, self._log_text(payload))

        try:
            async with self._session.post(
                self._url,
                data=payload,
                headers=headers,
                allow_redirects=False,
                ssl=self._settings.verify_ssl,
                timeout=aiohttp.ClientTimeout(total=self._settings.request_timeout),
            ) as response:
                data = await response.read()
                _LOGGER.debug(
                    "%s %s response (HTTP %s): %s",
                    self._service_name, action, response.status, self._log_text(data),
                )

                if response.status >= 400:
                    # SOAP faults come back as HTTP 500 with a fault body
                    if response.status == 500 and b"Fault" in data:
                        parse_envelope(data, action)
                    raise IhcError(
                        ERROR_HTTP_STATUS_BASE + response.status,
                        f"{action} failed with HTTP {response.status} from {self._url}",
                    )

                if on_response is not None:
                    on_response(response)

        except (aiohttp.ClientError, asyncio.TimeoutError) as ex:
            raise IhcError(
                ERROR_HTTP_CLIENT_SIDE_INTERNAL,
                f"{action} request to {self._url} failed: {ex!r}",
            ) from ex

        return parse_envelope(data, action)
