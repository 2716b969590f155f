"""Resource interaction service for the IHC controller.

Reads and writes resource values (inputs, outputs, function block values)
and streams their changes.

VALUE ENCODING:
==============
A resource value travels as a WSResourceValueEnvelope::

    <value xsi:type="ns2:WSBooleanValue"><ns2:value>true</ns2:value></value>
    <typeString>dataline_input</typeString>
    <resourceID>123</resourceID>
    <isValueRuntime>true</isValueRuntime>

where the xsi:type of <value> selects the payload:

  WSBooleanValue        value
  WSIntegerValue        integer
  WSFloatingPointValue  floatingPointValue
  WSEnumValue           definitionTypeID, enumValueID, enumName
  WSDateValue           year, month, day
  WSTimeValue           hours, minutes, seconds
  WSTimerValue          milliseconds
  WSWeekdayValue        weekdayNumber
"""
from __future__ import annotations

import asyncio
import datetime as dt
import logging
from collections.abc import Iterable, Sequence
from xml.etree import ElementTree as ET

from .auth import AuthenticationService
from .changes import ChangeStreamCoordinator
from .const import (
    DEFAULT_POLL_TIMEOUT,
    ERROR_FEATURE_NOT_IMPLEMENTED,
    ERROR_XML_FORMAT,
    ERROR_XML_LOOKUP,
    SERVICE_RESOURCE_INTERACTION,
)
from .exceptions import IhcError
from .models import (
    DatalineResource,
    EnumDefinition,
    EnumValue,
    LoggedData,
    ResourceValue,
    SceneResourceIdAndLocation,
    ValueKind,
)
from .soap import (
    PREFIX_VALUES,
    array_element,
    child_bool,
    child_float,
    child_int,
    child_text,
    element,
    find_children,
    is_nil,
    local_name,
    parse_bool,
    require_child,
    xsi_type,
)

_LOGGER = logging.getLogger(__name__)

WS_TYPES: dict[str, ValueKind] = {
    "WSBooleanValue": ValueKind.BOOL,
    "WSIntegerValue": ValueKind.INT,
    "WSFloatingPointValue": ValueKind.DOUBLE,
    "WSEnumValue": ValueKind.ENUM,
    "WSDateValue": ValueKind.DATE,
    "WSTimeValue": ValueKind.TIME,
    "WSTimerValue": ValueKind.TIMER,
    "WSWeekdayValue": ValueKind.WEEKDAY,
}
WS_TYPE_NAMES: dict[ValueKind, str] = {kind: name for name, kind in WS_TYPES.items()}


# =============================================================================
# Value codec
# =============================================================================

def _missing(elem: ET.Element, name: str) -> IhcError:
    return IhcError(ERROR_XML_LOOKUP, f"Element {name} missing or empty in {local_name(elem.tag)}")


def _required_int(elem: ET.Element, name: str) -> int:
    value = child_int(elem, name)
    if value is None:
        raise _missing(elem, name)
    return value


def parse_enum_value(elem: ET.Element) -> EnumValue:
    return EnumValue(
        definition_type_id=_required_int(elem, "definitionTypeID"),
        enum_value_id=_required_int(elem, "enumValueID"),
        enum_name=child_text(elem, "enumName"),
    )


def parse_resource_value(elem: ET.Element) -> ResourceValue:
    """Parse a WSResourceValueEnvelope element.

    Raises:
        IhcError: For value types this client does not support (scene
            values, phone numbers, ...).
    """
    resource_id = _required_int(elem, "resourceID")
    value_elem = require_child(elem, "value")
    ws_type = xsi_type(value_elem)
    kind = WS_TYPES.get(ws_type or "")
    if kind is None:
        raise IhcError(
            ERROR_FEATURE_NOT_IMPLEMENTED,
            f"Value type {ws_type} of resource {resource_id} not supported",
        )

    if kind is ValueKind.BOOL:
        value = child_bool(value_elem, "value")
        if value is None:
            raise _missing(value_elem, "value")
    elif kind is ValueKind.INT:
        value = _required_int(value_elem, "integer")
    elif kind is ValueKind.DOUBLE:
        value = child_float(value_elem, "floatingPointValue")
        if value is None:
            raise _missing(value_elem, "floatingPointValue")
    elif kind is ValueKind.ENUM:
        value = parse_enum_value(value_elem)
    elif kind is ValueKind.DATE:
        fields = [_required_int(value_elem, name) for name in ("year", "month", "day")]
        try:
            value = dt.date(*fields)
        except ValueError as ex:
            raise IhcError(
                ERROR_XML_FORMAT, f"Invalid date {fields} of resource {resource_id}: {ex}"
            ) from ex
    elif kind is ValueKind.TIME:
        fields = [_required_int(value_elem, name) for name in ("hours", "minutes", "seconds")]
        try:
            value = dt.time(*fields)
        except ValueError as ex:
            raise IhcError(
                ERROR_XML_FORMAT, f"Invalid time {fields} of resource {resource_id}: {ex}"
            ) from ex
    elif kind is ValueKind.TIMER:
        value = _required_int(value_elem, "milliseconds")
    else:
        value = _required_int(value_elem, "weekdayNumber")

    return ResourceValue(
        resource_id=resource_id,
        kind=kind,
        value=value,
        is_value_runtime=bool(child_bool(elem, "isValueRuntime")),
        type_string=child_text(elem, "typeString") or None,
    )


def parse_resource_values(part: ET.Element) -> list[ResourceValue]:
    """Parse an array of WSResourceValueEnvelope.

    Nil items are dropped. Items of unsupported types or with malformed
    payloads are skipped with a warning so they do not cost their siblings.
    """
    values = []
    for item in find_children(part, "arrayItem"):
        if is_nil(item):
            continue
        try:
            values.append(parse_resource_value(item))
        except IhcError as ex:
            if ex.code not in (ERROR_FEATURE_NOT_IMPLEMENTED, ERROR_XML_FORMAT):
                raise
            _LOGGER.warning("Skipping value: %s", ex.message)
    return values


def _value_field(name: str, value: object) -> str:
    return element(name, text=value, prefix=PREFIX_VALUES)


def render_value(value: ResourceValue) -> str:
    """Render the <value> element of a resource value."""
    payload = value.value
    kind = value.kind
    if kind is ValueKind.BOOL:
        fields = [_value_field("value", payload)]
    elif kind is ValueKind.INT:
        fields = [_value_field("integer", payload)]
    elif kind is ValueKind.DOUBLE:
        fields = [_value_field("floatingPointValue", float(payload))]
    elif kind is ValueKind.ENUM:
        fields = [
            _value_field("definitionTypeID", payload.definition_type_id),
            _value_field("enumValueID", payload.enum_value_id),
            _value_field("enumName", payload.enum_name),
        ]
    elif kind is ValueKind.DATE:
        fields = [
            _value_field("year", payload.year),
            _value_field("month", payload.month),
            _value_field("day", payload.day),
        ]
    elif kind is ValueKind.TIME:
        fields = [
            _value_field("hours", payload.hour),
            _value_field("minutes", payload.minute),
            _value_field("seconds", payload.second),
        ]
    elif kind is ValueKind.TIMER:
        fields = [_value_field("milliseconds", payload)]
    elif kind is ValueKind.WEEKDAY:
        fields = [_value_field("weekdayNumber", payload)]
    else:
        raise IhcError(ERROR_FEATURE_NOT_IMPLEMENTED, f"Value kind {kind} not supported")

    return element("value", *fields, xsi_type=f"{PREFIX_VALUES}:{WS_TYPE_NAMES[kind]}")


def render_resource_value_fields(value: ResourceValue) -> tuple[str, ...]:
    """Render the child elements of a WSResourceValueEnvelope."""
    return (
        render_value(value),
        element("typeString", text=value.type_string),
        element("resourceID", text=value.resource_id),
        element("isValueRuntime", text=value.is_value_runtime),
    )


def _parse_dataline_resources(part: ET.Element) -> list[DatalineResource]:
    return [
        DatalineResource(
            resource_id=_required_int(item, "resourceID"),
            dataline_number=_required_int(item, "datalineNumber"),
        )
        for item in find_children(part, "arrayItem")
        if not is_nil(item)
    ]


def _parse_scene_location(elem: ET.Element) -> SceneResourceIdAndLocation:
    return SceneResourceIdAndLocation(
        scene_resource_id=_required_int(elem, "sceneResourceId"),
        scene_position_seen_from_product=child_text(elem, "scenePositionSeenFromProduct"),
        scene_position_seen_from_function_block=child_text(
            elem, "scenePositionSeenFromFunctionBlock"
        ),
    )


# =============================================================================
# Service
# =============================================================================

class ResourceInteractionService:
    """High level client for the IHC ResourceInteractionService."""

    def __init__(self, auth: AuthenticationService) -> None:
        """Initialize the service.

        Args:
            auth: Authentication service whose login this service uses
        """
        self._auth = auth
        self._soap = auth.soap_client(SERVICE_RESOURCE_INTERACTION)

    # -------------------------------------------------------------------------
    # Notifications
    # -------------------------------------------------------------------------

    async def enable_runtime_value_notifications(
        self, resource_ids: Sequence[int]
    ) -> list[ResourceValue]:
        """Enable change notification for resources.

        Must be called before wait_for_resource_value_changes. Returns the
        current values of the resources.
        """
        part = await self._soap.post(
            "enableRuntimeValueNotifications",
            array_element("enableRuntimeValueNotifications1", resource_ids),
        )
        return parse_resource_values(part)

    async def disable_runtime_value_notifications(self, resource_ids: Sequence[int]) -> bool:
        """Disable change notification for resources."""
        # Operation name is misspelled by the controller
        part = await self._soap.post(
            "disableRuntimeValueNotifactions",
            array_element("disableRuntimeValueNotifactions1", resource_ids),
        )
        return bool(parse_bool(part.text))

    async def enable_initial_value_notifications(
        self, resource_ids: Sequence[int]
    ) -> list[ResourceValue]:
        part = await self._soap.post(
            "enableInitialValueNotifications",
            array_element("enableInitialValueNotifications1", resource_ids),
        )
        return parse_resource_values(part)

    async def disable_initial_value_notifications(self, resource_ids: Sequence[int]) -> bool:
        part = await self._soap.post(
            "disableInitialValueNotifactions",
            array_element("disableInitialValueNotifactions1", resource_ids),
        )
        return bool(parse_bool(part.text))

    async def wait_for_resource_value_changes(
        self, timeout_seconds: int = DEFAULT_POLL_TIMEOUT
    ) -> list[ResourceValue]:
        """Long-poll for changes of resources with notification enabled.

        The first call returns the current values right away; later calls
        return as soon as something changes, or empty after timeout_seconds.
        The timeout must stay below the controller's connection timeout
        (around 20 seconds) or the calls start failing.

        Prefer get_resource_value_changes over calling this in a loop.
        """
        part = await self._soap.post(
            "waitForResourceValueChanges",
            element("waitForResourceValueChanges1", text=timeout_seconds),
        )
        return parse_resource_values(part)

    def get_resource_value_changes(
        self,
        resource_ids: Iterable[int],
        cancel_event: asyncio.Event | None = None,
        poll_timeout: int = DEFAULT_POLL_TIMEOUT,
    ) -> ChangeStreamCoordinator:
        """Return a stream of changes of the given resources.

        Iterate the result with ``async for``. Notifications are enabled when
        iteration starts and disabled when it ends; see ChangeStreamCoordinator.
        """
        return ChangeStreamCoordinator(self, resource_ids, cancel_event, poll_timeout)

    # -------------------------------------------------------------------------
    # Values
    # -------------------------------------------------------------------------

    async def get_runtime_value(self, resource_id: int) -> ResourceValue:
        """Get the current value of a resource."""
        part = await self._soap.post(
            "getRuntimeValue", element("getRuntimeValue1", text=resource_id)
        )
        return parse_resource_value(part)

    async def get_runtime_values(self, resource_ids: Sequence[int]) -> list[ResourceValue]:
        part = await self._soap.post(
            "getRuntimeValues", array_element("getRuntimeValues1", resource_ids)
        )
        return parse_resource_values(part)

    async def get_initial_value(self, resource_id: int) -> ResourceValue:
        part = await self._soap.post(
            "getInitialValue", element("getInitialValue1", text=resource_id)
        )
        return parse_resource_value(part)

    async def get_initial_values(self, resource_ids: Sequence[int]) -> list[ResourceValue]:
        part = await self._soap.post(
            "getInitialValues", array_element("getInitialValues1", resource_ids)
        )
        return parse_resource_values(part)

    async def set_resource_value(self, value: ResourceValue) -> bool:
        """Set the value of a resource."""
        _LOGGER.debug("Setting resource %s to %s", value.resource_id, value.value)
        part = await self._soap.post(
            "setResourceValue",
            element("setResourceValue1", *render_resource_value_fields(value)),
        )
        return bool(parse_bool(part.text))

    async def set_resource_values(self, values: Iterable[ResourceValue]) -> bool:
        """Set several resource values in one call."""
        items = [element("arrayItem", *render_resource_value_fields(v)) for v in values]
        part = await self._soap.post(
            "setResourceValues", element("setResourceValues1", *items)
        )
        return bool(parse_bool(part.text))

    async def get_resource_type(self, resource_id: int) -> str | None:
        """Return the type string of a resource, see TypeStrings."""
        part = await self._soap.post(
            "getResourceType", element("getResourceType1", text=resource_id)
        )
        return part.text

    # -------------------------------------------------------------------------
    # Definitions
    # -------------------------------------------------------------------------

    async def get_enumerator_definitions(self) -> list[EnumDefinition]:
        part = await self._soap.post("getEnumeratorDefinitions", "")
        definitions = []
        for item in find_children(part, "arrayItem"):
            if is_nil(item):
                continue
            values = [
                parse_enum_value(v)
                for values_elem in find_children(item, "enumeratorValues")
                for v in find_children(values_elem, "arrayItem")
                if not is_nil(v)
            ]
            definitions.append(
                EnumDefinition(
                    enumerator_definition_id=_required_int(item, "enumeratorDefinitionID"),
                    values=tuple(values),
                )
            )
        return definitions

    async def get_all_dataline_inputs(self) -> list[DatalineResource]:
        part = await self._soap.post("getAllDatalineInputs", "")
        return _parse_dataline_resources(part)

    async def get_all_dataline_outputs(self) -> list[DatalineResource]:
        part = await self._soap.post("getAllDatalineOutputs", "")
        return _parse_dataline_resources(part)

    async def get_extra_dataline_inputs(self) -> list[DatalineResource]:
        part = await self._soap.post("getExtraDatalineInputs", "")
        return _parse_dataline_resources(part)

    async def get_extra_dataline_outputs(self) -> list[DatalineResource]:
        part = await self._soap.post("getExtraDatalineOutputs", "")
        return _parse_dataline_resources(part)

    async def get_logged_data(self, resource_id: int) -> list[LoggedData]:
        """Return logged data of a resource."""
        part = await self._soap.post("getLoggedData", element("getLoggedData1", text=resource_id))
        return [
            LoggedData(
                id=_required_int(item, "id"),
                value=child_text(item, "value"),
                timestamp=dt.datetime.fromtimestamp(
                    child_int(item, "timestamp") or 0, tz=dt.timezone.utc
                ),
            )
            for item in find_children(part, "arrayItem")
            if not is_nil(item)
        ]

    async def get_scene_group_resource_id_and_positions(
        self, scene_group_resource_id: int
    ) -> list[SceneResourceIdAndLocation]:
        part = await self._soap.post(
            "getSceneGroupResourceIdAndPositions",
            element("getSceneGroupResourceIdAndPositions1", text=scene_group_resource_id),
        )
        return [
            _parse_scene_location(item)
            for item in find_children(part, "arrayItem")
            if not is_nil(item)
        ]

    async def get_scene_positions_for_scene_value_resource(
        self, scene_value_resource_id: int
    ) -> SceneResourceIdAndLocation:
        part = await self._soap.post(
            "getScenePositionsForSceneValueResource",
            element("getScenePositionsForSceneValueResource1", text=scene_value_resource_id),
        )
        return _parse_scene_location(part)
