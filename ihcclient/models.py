"""Plain models for IHC controller data, free of any SOAP details."""
from __future__ import annotations

import datetime as dt
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any

from .const import TYPE_DATALINE_INPUT, TYPE_DATALINE_OUTPUT


class TypeStrings:
    """Known resource type strings."""

    DATALINE_INPUT = TYPE_DATALINE_INPUT
    DATALINE_OUTPUT = TYPE_DATALINE_OUTPUT


class ValueKind(Enum):
    """Kind of payload carried by a ResourceValue."""

    BOOL = "bool"
    INT = "int"
    DOUBLE = "double"
    ENUM = "enum"
    DATE = "date"
    TIME = "time"
    TIMER = "timer"
    WEEKDAY = "weekday"


@dataclass(frozen=True)
class EnumValue:
    """A value of an enumerator definition."""

    definition_type_id: int
    enum_value_id: int
    enum_name: str | None = None


@dataclass(frozen=True)
class EnumDefinition:
    """An enumerator definition and its values."""

    enumerator_definition_id: int
    values: tuple[EnumValue, ...] = ()


# Python payload type expected for each kind
_PAYLOAD_TYPES: dict[ValueKind, tuple[type, ...]] = {
    ValueKind.BOOL: (bool,),
    ValueKind.INT: (int,),
    ValueKind.DOUBLE: (float, int),
    ValueKind.ENUM: (EnumValue,),
    ValueKind.DATE: (dt.date,),
    ValueKind.TIME: (dt.time,),
    ValueKind.TIMER: (int,),
    ValueKind.WEEKDAY: (int,),
}


@dataclass(frozen=True)
class ResourceValue:
    """Value of a controller resource.

    ``kind`` tags which payload ``value`` holds:

    ========  =======================
    BOOL      bool
    INT       int
    DOUBLE    float
    ENUM      EnumValue
    DATE      datetime.date
    TIME      datetime.time
    TIMER     int (milliseconds)
    WEEKDAY   int (weekday number)
    ========  =======================

    ``value_time`` is roughly when the value was received. It is not used
    by the controller and does not take part in equality.
    """

    resource_id: int
    kind: ValueKind
    value: Any
    is_value_runtime: bool = True
    type_string: str | None = None
    value_time: dt.datetime = field(
        default_factory=lambda: dt.datetime.now(dt.timezone.utc),
        compare=False,
    )

    def __post_init__(self) -> None:
        expected = _PAYLOAD_TYPES[self.kind]
        # bool is an int subclass, keep it out of the numeric kinds
        if not isinstance(self.value, expected) or (
            self.kind is not ValueKind.BOOL and isinstance(self.value, bool)
        ):
            raise TypeError(
                f"{self.kind.name} value expected for resource {self.resource_id}, "
                f"got {type(self.value).__name__}"
            )

    @classmethod
    def create_bool_runtime_input(cls, resource_id: int, value: bool) -> ResourceValue:
        """Create a boolean runtime value for a dataline input."""
        return cls(
            resource_id=resource_id,
            kind=ValueKind.BOOL,
            value=value,
            is_value_runtime=True,
            type_string=TYPE_DATALINE_INPUT,
        )

    @classmethod
    def create_bool_runtime_output(cls, resource_id: int, value: bool) -> ResourceValue:
        """Create a boolean runtime value for a dataline output."""
        return cls(
            resource_id=resource_id,
            kind=ValueKind.BOOL,
            value=value,
            is_value_runtime=True,
            type_string=TYPE_DATALINE_OUTPUT,
        )

    def toggled(self) -> ResourceValue:
        """Return a copy of a boolean value with the opposite value."""
        if self.kind is not ValueKind.BOOL:
            raise ValueError("Source resource should be of boolean type")
        return replace(self, value=not self.value, value_time=dt.datetime.now(dt.timezone.utc))


@dataclass(frozen=True)
class DatalineResource:
    """A dataline input or output."""

    resource_id: int
    dataline_number: int


@dataclass(frozen=True)
class LoggedData:
    """A logged data entry."""

    id: int
    value: str | None
    timestamp: dt.datetime


@dataclass(frozen=True)
class SceneResourceIdAndLocation:
    """Scene resource and its position as seen from product and function block."""

    scene_resource_id: int
    scene_position_seen_from_product: str | None = None
    scene_position_seen_from_function_block: str | None = None


@dataclass(frozen=True)
class IhcUser:
    """A user as returned by a successful login."""

    username: str | None
    password: str | None = field(default=None, repr=False)
    firstname: str | None = None
    lastname: str | None = None
    phone: str | None = None
    group: str | None = None
    project: str | None = None
    created_date: dt.datetime | None = None
    login_date: dt.datetime | None = None
