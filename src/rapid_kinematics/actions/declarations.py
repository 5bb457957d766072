"""Data declarations: speeds, zones, targets and task lists."""

import functools
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, List, Mapping, Optional, Tuple

from ..core import ExternalJointPosition, Plane, RobotJointPosition, WorkObject, plane_to_quaternion
from ..errors import ConfigError
from ..formatting import format_number, format_quaternion_component, format_vector
from .base import Action, ReferenceType, parse_plane, register_action

if TYPE_CHECKING:
    from ..core import Robot
    from ..rapid import RAPIDGenerator


def _speed(v_tcp: float) -> Tuple[float, float, float, float]:
    return (v_tcp, 500.0, 5000.0, 1000.0)


PREDEFINED_SPEEDS = {
    **{f"v{v}": _speed(float(v)) for v in (
        5, 10, 20, 30, 40, 50, 60, 80, 100, 150, 200, 300, 400, 500, 600, 800,
        1000, 1500, 2000, 2500, 3000, 4000, 5000, 6000, 7000)},
    "vmax": _speed(10000.0),
}

# finep, pzone_tcp, pzone_ori, pzone_eax, zone_ori, zone_leax, zone_reax
PREDEFINED_ZONES = {
    "fine": (True, 0, 0, 0, 0, 0, 0),
    "z0": (False, 0.3, 0.3, 0.3, 0.03, 0.3, 0.03),
    "z1": (False, 1, 1, 1, 0.1, 1, 0.1),
    "z5": (False, 5, 8, 8, 0.8, 8, 0.8),
    "z10": (False, 10, 15, 15, 1.5, 15, 1.5),
    "z15": (False, 15, 23, 23, 2.3, 23, 2.3),
    "z20": (False, 20, 30, 30, 3.0, 30, 3.0),
    "z30": (False, 30, 45, 45, 4.5, 45, 4.5),
    "z40": (False, 40, 60, 60, 6.0, 60, 6.0),
    "z50": (False, 50, 75, 75, 7.5, 75, 7.5),
    "z60": (False, 60, 90, 90, 9.0, 90, 9.0),
    "z80": (False, 80, 120, 120, 12, 120, 12),
    "z100": (False, 100, 150, 150, 15, 150, 15),
    "z150": (False, 150, 225, 225, 23, 225, 23),
    "z200": (False, 200, 300, 300, 30, 300, 30),
}


def _name_suffix(value: float) -> str:
    return format_number(value).replace(".", "_").replace("-", "m")


@register_action("SpeedData")
@dataclass(frozen=True)
class SpeedData(Action):
    """``speeddata``: TCP, orientation and external axis velocities."""
    name: str
    v_tcp: float
    v_ori: float = 500.0
    v_leax: float = 5000.0
    v_reax: float = 1000.0
    reference_type: ReferenceType = ReferenceType.VAR

    @classmethod
    @functools.lru_cache(maxsize=None)
    def from_tcp_speed(cls, v_tcp: float) -> "SpeedData":
        """
        Predefined speed when one matches ``v_tcp``, otherwise a new ``v<v_tcp>``.

        Equal speeds give the same object, so movements built from the same
        number share one declaration.
        """
        for name, values in PREDEFINED_SPEEDS.items():
            if values[0] == float(v_tcp):
                return cls(name, *values)
        return cls(f"v{_name_suffix(v_tcp)}", float(v_tcp))

    @classmethod
    def predefined(cls, name: str) -> "SpeedData":
        if name not in PREDEFINED_SPEEDS:
            raise ConfigError(f"Unknown predefined speed data: {name!r}")
        return cls(name, *PREDEFINED_SPEEDS[name])

    @classmethod
    def from_data(cls, data: Any) -> "SpeedData":
        if isinstance(data, SpeedData):
            return data
        if isinstance(data, str):
            return cls.predefined(data)
        if isinstance(data, (int, float)):
            return cls.from_tcp_speed(data)
        if isinstance(data, Mapping):
            return cls.from_dict(dict(data), {})
        raise ConfigError(f"Invalid speed data: {data!r}")

    @classmethod
    def from_dict(cls, data, context) -> "SpeedData":
        data = dict(data)
        if "reference_type" in data:
            data["reference_type"] = ReferenceType.parse(data["reference_type"])
        return super().from_dict(data, context)

    @property
    def values(self) -> Tuple[float, float, float, float]:
        return (float(self.v_tcp), float(self.v_ori), float(self.v_leax), float(self.v_reax))

    @property
    def is_predefined(self) -> bool:
        return PREDEFINED_SPEEDS.get(self.name) == self.values

    @property
    def is_valid(self) -> bool:
        return bool(self.name) and all(v >= 0 for v in self.values)

    def declaration_text(self) -> str:
        values = ", ".join(format_number(v) for v in self.values)
        return f"{self.reference_type.value} speeddata {self.name} := [{values}];"

    def to_rapid_declaration(self, robot: "Robot" = None) -> str:
        if self.is_predefined:
            return ""
        return self.declaration_text()

    def declare(self, generator: "RAPIDGenerator") -> None:
        generator.add_declaration(generator.speed_datas, self.name, self.declaration_text(), kind="speed data",
                                  owner=self)


@register_action("ZoneData")
@dataclass(frozen=True)
class ZoneData(Action):
    """``zonedata``: corner path sizes around the target."""
    name: str
    finep: bool = False
    pzone_tcp: float = 0.0
    pzone_ori: float = 0.0
    pzone_eax: float = 0.0
    zone_ori: float = 0.0
    zone_leax: float = 0.0
    zone_reax: float = 0.0
    reference_type: ReferenceType = ReferenceType.VAR

    @classmethod
    def fine(cls) -> "ZoneData":
        return cls.predefined("fine")

    @classmethod
    def predefined(cls, name: str) -> "ZoneData":
        if name not in PREDEFINED_ZONES:
            raise ConfigError(f"Unknown predefined zone data: {name!r}")
        return cls(name, *PREDEFINED_ZONES[name])

    @classmethod
    @functools.lru_cache(maxsize=None)
    def from_size(cls, zone: float) -> "ZoneData":
        """Predefined zone of this TCP size if one exists, ``fine`` for negative sizes. Cached like speeds."""
        if zone < 0:
            return cls.fine()
        for name, values in PREDEFINED_ZONES.items():
            if name != "fine" and float(name[1:]) == float(zone):
                return cls(name, *values)
        zone = float(zone)
        return cls(f"z{_name_suffix(zone)}", False, zone, 1.5 * zone, 1.5 * zone,
                   0.15 * zone, 1.5 * zone, 0.15 * zone)

    @classmethod
    def from_data(cls, data: Any) -> "ZoneData":
        if isinstance(data, ZoneData):
            return data
        if isinstance(data, str):
            return cls.predefined(data)
        if isinstance(data, (int, float)):
            return cls.from_size(data)
        if isinstance(data, Mapping):
            return cls.from_dict(dict(data), {})
        raise ConfigError(f"Invalid zone data: {data!r}")

    @classmethod
    def from_dict(cls, data, context) -> "ZoneData":
        data = dict(data)
        if "reference_type" in data:
            data["reference_type"] = ReferenceType.parse(data["reference_type"])
        return super().from_dict(data, context)

    @property
    def values(self) -> Tuple[float, ...]:
        return (float(self.pzone_tcp), float(self.pzone_ori), float(self.pzone_eax),
                float(self.zone_ori), float(self.zone_leax), float(self.zone_reax))

    @property
    def is_predefined(self) -> bool:
        predefined = PREDEFINED_ZONES.get(self.name)
        return predefined is not None and predefined == (self.finep,) + self.values

    @property
    def is_valid(self) -> bool:
        return bool(self.name) and all(v >= 0 for v in self.values)

    def declaration_text(self) -> str:
        values = ", ".join(format_number(v) for v in self.values)
        finep = "TRUE" if self.finep else "FALSE"
        return f"{self.reference_type.value} zonedata {self.name} := [{finep}, {values}];"

    def to_rapid_declaration(self, robot: "Robot" = None) -> str:
        if self.is_predefined:
            return ""
        return self.declaration_text()

    def declare(self, generator: "RAPIDGenerator") -> None:
        generator.add_declaration(generator.zone_datas, self.name, self.declaration_text(), kind="zone data",
                                  owner=self)


@register_action("RobotTarget")
@dataclass(frozen=True, eq=False)
class RobotTarget(Action):
    """
    ``robtarget``: a Cartesian pose of the tool centre point.

    ``plane`` is given in world coordinates. The declaration expresses it in
    the frame of the work object the movement uses.
    """
    name: str
    plane: Plane
    axis_configuration: int = 0
    external_joint_position: ExternalJointPosition = field(default_factory=ExternalJointPosition)
    reference_type: ReferenceType = ReferenceType.VAR

    @classmethod
    def from_dict(cls, data, context) -> "RobotTarget":
        data = dict(data)
        if "plane" not in data:
            raise ConfigError("A robot target needs a plane")
        data["plane"] = parse_plane(data["plane"])
        if "external_joint_position" in data:
            data["external_joint_position"] = ExternalJointPosition(tuple(data["external_joint_position"]))
        if "reference_type" in data:
            data["reference_type"] = ReferenceType.parse(data["reference_type"])
        return super().from_dict(data, context)

    @property
    def is_valid(self) -> bool:
        return bool(self.name) and self.plane.is_valid and 0 <= self.axis_configuration < 8

    def declaration_text(self, work_object: Optional[WorkObject] = None,
                         external_joint_position: Optional[ExternalJointPosition] = None) -> str:
        reference = work_object.global_plane if work_object is not None else None
        position, quaternion = plane_to_quaternion(self.plane, reference)
        quat = "[" + ", ".join(format_quaternion_component(q) for q in quaternion) + "]"
        external = external_joint_position if external_joint_position is not None else self.external_joint_position
        return (
            f"{self.reference_type.value} robtarget {self.name} := [{format_vector(position)}, {quat}, "
            f"[0, 0, 0, {self.axis_configuration}], {external.to_rapid()}];"
        )

    def to_rapid_declaration(self, robot: "Robot" = None) -> str:
        return self.declaration_text()

    def declare(self, generator: "RAPIDGenerator") -> None:
        generator.add_declaration(generator.targets, self.name, self.declaration_text(), kind="target", owner=self)


@register_action("JointTarget")
@dataclass(frozen=True)
class JointTarget(Action):
    """``jointtarget``: values of the robot axes and the external axes."""
    name: str
    robot_joint_position: RobotJointPosition = field(default_factory=RobotJointPosition)
    external_joint_position: ExternalJointPosition = field(default_factory=ExternalJointPosition)
    reference_type: ReferenceType = ReferenceType.CONST

    @classmethod
    def from_dict(cls, data, context) -> "JointTarget":
        data = dict(data)
        if "robot_joint_position" in data:
            data["robot_joint_position"] = RobotJointPosition(tuple(data["robot_joint_position"]))
        if "external_joint_position" in data:
            data["external_joint_position"] = ExternalJointPosition(tuple(data["external_joint_position"]))
        if "reference_type" in data:
            data["reference_type"] = ReferenceType.parse(data["reference_type"])
        return super().from_dict(data, context)

    @property
    def is_valid(self) -> bool:
        return bool(self.name)

    def check_axis_limits(self, robot: "Robot") -> List[str]:
        errors = []
        for i, (value, limits) in enumerate(zip(self.robot_joint_position, robot.internal_axis_limits)):
            if not limits.includes(value):
                errors.append(f"The position of robot axis {i + 1} is not in range.")
        for axis in robot.external_axes:
            number = axis.axis_number
            if self.external_joint_position.is_defined(number) and \
                    not axis.axis_limits.includes(self.external_joint_position[number]):
                errors.append(f"The position of external axis {axis.name} is not in range.")
        return errors

    def declaration_text(self) -> str:
        return (
            f"{self.reference_type.value} jointtarget {self.name} := "
            f"[{self.robot_joint_position.to_rapid()}, {self.external_joint_position.to_rapid()}];"
        )

    def to_rapid_declaration(self, robot: "Robot" = None) -> str:
        return self.declaration_text()

    def declare(self, generator: "RAPIDGenerator") -> None:
        generator.add_declaration(generator.targets, self.name, self.declaration_text(), kind="target", owner=self)


@register_action("TaskList")
@dataclass(frozen=True)
class TaskList(Action):
    """``tasks`` array naming the motion tasks that move synchronized."""
    name: str
    tasks: Tuple[str, ...] = ()

    def __post_init__(self):
        object.__setattr__(self, "tasks", tuple(self.tasks))

    @property
    def is_valid(self) -> bool:
        return bool(self.name) and len(self.tasks) > 0 and all(self.tasks)

    def declaration_text(self) -> str:
        tasks = ", ".join(f"[\"{task}\"]" for task in self.tasks)
        return f"PERS tasks {self.name}{{{len(self.tasks)}}} := [{tasks}];"

    def to_rapid_declaration(self, robot: "Robot" = None) -> str:
        return self.declaration_text()

    def declare(self, generator: "RAPIDGenerator") -> None:
        generator.add_declaration(generator.task_lists, self.name, self.declaration_text(),
                                  kind="task list", multi_move=True, owner=self)
