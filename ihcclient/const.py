"""Constants for the IHC controller client."""
from typing import Final

# Configuration keys (as used in ihcsettings.json)
CONF_ENDPOINT: Final = "endpoint"
CONF_USERNAME: Final = "userName"
CONF_PASSWORD: Final = "password"
CONF_APPLICATION: Final = "application"
CONF_LOG_SENSITIVE_DATA: Final = "logSensitiveData"
CONF_VERIFY_SSL: Final = "verifySsl"
CONF_REQUEST_TIMEOUT: Final = "requestTimeout"
CONF_SECTION: Final = "ihcConfig"

# Applications accepted by the controller login
APPLICATION_TREEVIEW: Final = "treeview"
APPLICATION_OPENAPI: Final = "openapi"
APPLICATION_ADMINISTRATOR: Final = "administrator"
APPLICATIONS: Final = (APPLICATION_TREEVIEW, APPLICATION_OPENAPI, APPLICATION_ADMINISTRATOR)

DEFAULT_APPLICATION: Final = APPLICATION_OPENAPI
DEFAULT_REQUEST_TIMEOUT: Final = 30

# SOAP services (each served at <endpoint>/ws/<name>)
SERVICE_AUTHENTICATION: Final = "AuthenticationService"
SERVICE_RESOURCE_INTERACTION: Final = "ResourceInteractionService"

# XML namespaces
NS_SOAP_ENV: Final = "http://schemas.xmlsoap.org/soap/envelope/"
NS_XSI: Final = "http://www.w3.org/2001/XMLSchema-instance"
NS_UTCS: Final = "utcs"
NS_UTCS_VALUES: Final = "utcs.values"

# Change stream
DEFAULT_POLL_TIMEOUT: Final = 15
# The controller drops long-polls at or above its own connection timeout
MAX_POLL_TIMEOUT: Final = 20

# Value type strings
TYPE_DATALINE_INPUT: Final = "dataline_input"
TYPE_DATALINE_OUTPUT: Final = "dataline_output"

REDACTED: Final = "***REDACTED***"

# Error codes
ERROR_XML_FORMAT: Final = 1000
ERROR_XML_LOOKUP: Final = 1001
ERROR_XML_SERIALIZE: Final = 1002
ERROR_XML_DESERIALIZE: Final = 1003
ERROR_HTTP_CLIENT_SIDE_INTERNAL: Final = 1004
ERROR_HTTP_UNEXPECTED_CONTENT: Final = 1005
ERROR_LOGIN_CONNECTION_RESTRICTIONS: Final = 1006
ERROR_LOGIN_INSUFFICIENT_USER_RIGHTS: Final = 1007
ERROR_LOGIN_ACCOUNT_INVALID: Final = 1008
ERROR_LOGIN_UNKNOWN: Final = 1009
ERROR_FEATURE_NOT_IMPLEMENTED: Final = 1010
ERROR_SOAP_FAULT: Final = 1011
ERROR_HTTP_STATUS_BASE: Final = 10000

# Error message map
MESSAGE_ERR: Final = {
    ERROR_XML_FORMAT: "Malformed XML",
    ERROR_XML_LOOKUP: "Expected XML element not found",
    ERROR_XML_SERIALIZE: "Could not serialize request",
    ERROR_XML_DESERIALIZE: "Could not parse response",
    ERROR_HTTP_CLIENT_SIDE_INTERNAL: "Communication with controller failed",
    ERROR_HTTP_UNEXPECTED_CONTENT: "Unexpected response content",
    ERROR_LOGIN_CONNECTION_RESTRICTIONS: "Login refused due to connection restrictions",
    ERROR_LOGIN_INSUFFICIENT_USER_RIGHTS: "Login refused due to insufficient user rights",
    ERROR_LOGIN_ACCOUNT_INVALID: "Login refused, invalid account",
    ERROR_LOGIN_UNKNOWN: "Login failed",
    ERROR_FEATURE_NOT_IMPLEMENTED: "Feature not implemented",
    ERROR_SOAP_FAULT: "Controller returned a SOAP fault",
}
