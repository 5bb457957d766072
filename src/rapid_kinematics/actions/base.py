"""Action base class, reference types and the action registry.

An action is one entry of a robot program: a declaration (speed data, a
target), an instruction (a wait, a digital output) or a movement that needs
both. The generator calls :meth:`Action.declare` for every action in a first
pass and :meth:`Action.instruct` in a second pass.
"""

import abc
import copy
import enum
from typing import TYPE_CHECKING, Any, Callable, ClassVar, Dict, Mapping, Optional, Type

import numpy as np

from ..core import Plane, quaternion_to_plane
from ..errors import ConfigError

if TYPE_CHECKING:
    from ..core import Robot
    from ..rapid import RAPIDGenerator


class ReferenceType(enum.Enum):
    VAR = "VAR"
    PERS = "PERS"
    CONST = "CONST"

    @classmethod
    def parse(cls, value) -> "ReferenceType":
        if isinstance(value, ReferenceType):
            return value
        try:
            return cls(str(value).upper())
        except ValueError:
            raise ConfigError(f"Unknown reference type: {value!r}")


ACTION_TYPES: Dict[str, Type["Action"]] = {}


def register_action(name: str) -> Callable[[Type["Action"]], Type["Action"]]:
    """Class decorator that makes an action constructible from job files by ``name``."""
    def decorator(cls):
        if name in ACTION_TYPES:
            raise ValueError(f"Action type {name!r} is already registered")
        ACTION_TYPES[name] = cls
        cls.action_type = name
        return cls
    return decorator


def action_from_dict(data: Mapping[str, Any], context: Optional[Mapping[str, Any]] = None) -> "Action":
    """
    Build an action from a mapping with a ``type`` key.

    Args:
        data: action fields, e.g. ``{"type": "WaitTime", "duration": 2}``
        context: named objects actions may refer to, ``{"tools": {...},
                 "work_objects": {...}}``

    Returns:
        The constructed action.
    """
    if not isinstance(data, Mapping):
        raise ConfigError(f"An action must be a mapping, got {type(data).__name__}")
    fields = dict(data)
    type_name = fields.pop("type", None)
    if type_name not in ACTION_TYPES:
        raise ConfigError(f"Unknown action type: {type_name!r}")
    return ACTION_TYPES[type_name].from_dict(fields, context or {})


def parse_plane(data: Any) -> Plane:
    """Plane from ``origin`` plus either ``normal``, ``x_axis``/``y_axis`` or ``quaternion``."""
    if isinstance(data, Plane):
        return data
    if not isinstance(data, Mapping) or "origin" not in data:
        raise ConfigError(f"A plane needs an origin, got {data!r}")
    origin = np.asarray(data["origin"], dtype=np.float64)
    try:
        if "quaternion" in data:
            return quaternion_to_plane(origin, np.asarray(data["quaternion"], dtype=np.float64))
        if "x_axis" in data:
            return Plane.from_axes(origin, data["x_axis"], data["y_axis"])
        return Plane.from_normal(origin, data.get("normal", (0.0, 0.0, 1.0)))
    except (KeyError, ValueError) as e:
        raise ConfigError(f"Invalid plane {data!r}: {e}")


def lookup(context: Mapping[str, Any], kind: str, name: Optional[str]):
    if name is None:
        return None
    table = context.get(kind, {})
    if name not in table:
        raise ConfigError(f"Unknown {kind[:-1].replace('_', ' ')}: {name!r}")
    return table[name]


class Action(abc.ABC):
    """Base class of all program actions."""

    action_type: ClassVar[str] = "Action"

    @property
    @abc.abstractmethod
    def is_valid(self) -> bool:
        ...

    def to_rapid_declaration(self, robot: "Robot") -> str:
        return ""

    def to_rapid_instruction(self, robot: "Robot") -> str:
        return ""

    def declare(self, generator: "RAPIDGenerator") -> None:
        """Register the declarations this action needs."""

    def instruct(self, generator: "RAPIDGenerator") -> None:
        """Append the instruction text of this action."""
        text = self.to_rapid_instruction(generator.current_robot)
        if text:
            generator.add_instruction(text)

    def duplicate(self) -> "Action":
        return copy.deepcopy(self)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any], context: Mapping[str, Any]) -> "Action":
        try:
            return cls(**data)
        except TypeError as e:
            raise ConfigError(f"Invalid {cls.action_type} action: {e}")
