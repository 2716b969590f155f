"""Authentication service for the IHC controller.

AUTHENTICATION FLOW:
===================
1. POST authenticate to /ws/AuthenticationService with username, password
   and application ("treeview", "openapi" or "administrator")
2. On loginWasSuccessful the response carries a JSESSIONID cookie
3. The cookie is sent with all subsequent calls to all services
4. disconnect logs out and the cookie is dropped
"""
from __future__ import annotations

import datetime as dt
import logging
from types import TracebackType
from xml.etree import ElementTree as ET

import aiohttp

from .const import (
    ERROR_LOGIN_ACCOUNT_INVALID,
    ERROR_LOGIN_CONNECTION_RESTRICTIONS,
    ERROR_LOGIN_INSUFFICIENT_USER_RIGHTS,
    ERROR_LOGIN_UNKNOWN,
    REDACTED,
    SERVICE_AUTHENTICATION,
)
from .exceptions import IhcError, IhcLoginError
from .models import IhcUser
from .settings import IhcSettings
from .soap import (
    SessionCookie,
    SoapClient,
    child_bool,
    child_int,
    child_text,
    element,
    find_child,
    parse_bool,
)

_LOGGER = logging.getLogger(__name__)

# Controller clocks run on Central European (standard) time
WS_TIME_OFFSET = dt.timezone(dt.timedelta(hours=1))


def parse_ws_date(elem: ET.Element | None) -> dt.datetime | None:
    """Parse a WSDate element (year, monthWithJanuaryAsOne, day, hours, ...)."""
    if elem is None:
        return None
    year = child_int(elem, "year")
    if not year:
        return None
    try:
        return dt.datetime(
            year,
            child_int(elem, "monthWithJanuaryAsOne") or 1,
            child_int(elem, "day") or 1,
            child_int(elem, "hours") or 0,
            child_int(elem, "minutes") or 0,
            child_int(elem, "seconds") or 0,
            tzinfo=WS_TIME_OFFSET,
        )
    except ValueError:
        _LOGGER.debug("Ignoring invalid WSDate in response (year=%s)", year)
        return None


class AuthenticationService:
    """High level client for the IHC AuthenticationService.

    The instance owns the session cookie of the login and must be passed
    to the other services.
    """

    def __init__(self, session: aiohttp.ClientSession, settings: IhcSettings) -> None:
        """Initialize the service.

        Args:
            session: aiohttp client session. Its own cookie jar is not used;
                the session cookie is applied by hand.
            settings: Client settings
        """
        self._session = session
        self._settings = settings
        self._cookie = SessionCookie(settings.log_sensitive_data)
        self._soap = self.soap_client(SERVICE_AUTHENTICATION)
        self._connected = False
        self._owns_session = False

    @classmethod
    def create(cls, settings: IhcSettings) -> AuthenticationService:
        """Create a service with its own client session.

        Must be called from a running event loop. The session is closed by
        close() or when leaving ``async with``.
        """
        session = aiohttp.ClientSession(cookie_jar=aiohttp.DummyCookieJar())
        service = cls(session, settings)
        service._owns_session = True
        return service

    @property
    def settings(self) -> IhcSettings:
        """Return client settings."""
        return self._settings

    @property
    def endpoint(self) -> str:
        """Return the controller endpoint."""
        return self._settings.endpoint

    @property
    def cookie(self) -> SessionCookie:
        """Return the session cookie shared with other services."""
        return self._cookie

    @property
    def is_connected(self) -> bool:
        """Return True after a successful login until disconnect."""
        return self._connected

    def soap_client(self, service_name: str) -> SoapClient:
        """Return a SOAP client for a service that shares this login."""
        return SoapClient(self._session, self._settings, self._cookie, service_name)

    async def ping(self) -> bool:
        """Check if the controller is up and serving API calls."""
        response = await self._soap.post("ping", "")
        return bool(parse_bool(response.text))

    async def authenticate(
        self,
        username: str | None = None,
        password: str | None = None,
        application: str | None = None,
    ) -> IhcUser:
        """Log in to the controller.

        Must be called before most calls on other services. Arguments not
        given are taken from the settings.

        Raises:
            IhcLoginError: If the controller refused the login.
        """
        username = username if username is not None else self._settings.username
        password = password if password is not None else self._settings.password
        application = application or self._settings.application

        _LOGGER.info(
            "Authenticating user %s (application=%s, password=%s) at %s",
            username,
            application,
            password if self._settings.log_sensitive_data else REDACTED,
            self.endpoint,
        )
        self._connected = False

        captured: dict[str, str | None] = {}

        def capture_cookie(response: aiohttp.ClientResponse) -> None:
            # Only the raw response carries the cookie
            captured["cookie"] = SessionCookie.extract(response)

        body = element(
            "authenticate1",
            element("password", text=password),
            element("username", text=username),
            element("application", text=application),
        )
        result = await self._soap.post("authenticate", body, on_response=capture_cookie)

        if child_bool(result, "loginWasSuccessful"):
            self._cookie.set(captured.get("cookie"))
            user = find_child(result, "loggedInUser")
            if user is None or len(user) == 0:
                self._cookie.clear()
                raise IhcError(
                    ERROR_LOGIN_UNKNOWN,
                    f"Login succeeded but returned no user data for {self._soap.url}",
                )
            self._connected = True
            ihc_user = IhcUser(
                username=child_text(user, "username"),
                password=child_text(user, "password"),
                firstname=child_text(user, "firstname"),
                lastname=child_text(user, "lastname"),
                phone=child_text(user, "phone"),
                group=child_text(find_child(user, "group"), "type"),
                project=child_text(user, "project"),
                created_date=parse_ws_date(find_child(user, "createdDate")),
                login_date=parse_ws_date(find_child(user, "loginDate")),
            )
            _LOGGER.info("Successfully authenticated user %s", ihc_user.username)
            return ihc_user

        self._cookie.clear()
        if child_bool(result, "loginFailedDueToAccountInvalid"):
            code, reason = ERROR_LOGIN_ACCOUNT_INVALID, "invalid account"
        elif child_bool(result, "loginFailedDueToConnectionRestrictions"):
            code, reason = ERROR_LOGIN_CONNECTION_RESTRICTIONS, "connection restrictions"
        elif child_bool(result, "loginFailedDueToInsufficientUserRights"):
            code, reason = ERROR_LOGIN_INSUFFICIENT_USER_RIGHTS, "insufficient user rights"
        else:
            code, reason = ERROR_LOGIN_UNKNOWN, "unknown reason"
        _LOGGER.error("Login failed for %s: %s", self._soap.url, reason)
        raise IhcLoginError(code, f"Login failed for {self._soap.url}: {reason}")

    async def disconnect(self) -> bool:
        """Log out and drop the session cookie."""
        _LOGGER.info("Disconnecting from %s", self.endpoint)
        try:
            response = await self._soap.post("disconnect", "")
        finally:
            self._connected = False
            self._cookie.clear()
        return bool(parse_bool(response.text))

    async def close(self) -> None:
        """Close the client session if this service created it."""
        if self._owns_session and not self._session.closed:
            await self._session.close()

    async def __aenter__(self) -> AuthenticationService:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        try:
            if self._connected:
                await self.disconnect()
        finally:
            await self.close()
