"""Async client for the IHC home automation controller SOAP API.

Typical use::

    settings = IhcSettings.from_file("ihcsettings.json")
    async with AuthenticationService.create(settings) as auth:
        await auth.authenticate()
        resources = ResourceInteractionService(auth)
        async for change in resources.get_resource_value_changes([16451], cancel):
            print(change)
"""
from __future__ import annotations

from .auth import AuthenticationService
from .changes import ChangeStreamCoordinator, ResourceClient, StreamState
from .exceptions import IhcError, IhcLoginError, IhcSoapFault
from .models import (
    DatalineResource,
    EnumDefinition,
    EnumValue,
    IhcUser,
    LoggedData,
    ResourceValue,
    SceneResourceIdAndLocation,
    TypeStrings,
    ValueKind,
)
from .resource_interaction import ResourceInteractionService
from .settings import IhcSettings

__version__ = "0.1.0"

__all__ = [
    "AuthenticationService",
    "ChangeStreamCoordinator",
    "DatalineResource",
    "EnumDefinition",
    "EnumValue",
    "IhcError",
    "IhcLoginError",
    "IhcSettings",
    "IhcSoapFault",
    "IhcUser",
    "LoggedData",
    "ResourceClient",
    "ResourceInteractionService",
    "ResourceValue",
    "SceneResourceIdAndLocation",
    "StreamState",
    "TypeStrings",
    "ValueKind",
]
