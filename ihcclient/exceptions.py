"""Exceptions raised by the IHC controller client."""
from __future__ import annotations

from .const import ERROR_HTTP_STATUS_BASE, MESSAGE_ERR


class IhcError(Exception):
    """Communication error with an IHC/HTTP/XML error code."""

    def __init__(self, code: int, message: str | None = None) -> None:
        """Initialize the error."""
        if message is None:
            message = MESSAGE_ERR.get(code, f"Error {code}")
        super().__init__(message)
        self.code = code
        self.message = message

    @property
    def http_status(self) -> int | None:
        """Return the HTTP status for HTTP status errors."""
        if self.code >= ERROR_HTTP_STATUS_BASE:
            return self.code - ERROR_HTTP_STATUS_BASE
        return None

    def __str__(self) -> str:
        return f"{self.code} : {self.message}"


class IhcLoginError(IhcError):
    """The controller refused the login."""


class IhcSoapFault(IhcError):
    """The controller answered with a SOAP fault."""

    def __init__(self, code: int, message: str, fault_code: str | None = None) -> None:
        super().__init__(code, message)
        self.fault_code = fault_code
