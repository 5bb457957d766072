"""Move instructions: MoveL, MoveJ, MoveAbsJ and their digital-output variants."""

import enum
import functools
import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Optional, Union

from ..core import ExternalJointPosition, Plane, Robot, RobotJointPosition, RobotTool, WorkObject
from ..errors import ConfigError
from ..formatting import format_signal
from ..kinematics.inverse import inverse_kinematics, resolve_external_axes
from .base import Action, lookup, register_action
from .declarations import JointTarget, RobotTarget, SpeedData, ZoneData
from .instructions import SetDigitalOutput

if TYPE_CHECKING:
    from ..rapid import RAPIDGenerator

logger = logging.getLogger(__name__)


class MovementType(enum.Enum):
    LINEAR = "linear"
    JOINT = "joint"
    ABSOLUTE_JOINT = "absolute_joint"

    @classmethod
    def parse(cls, value) -> "MovementType":
        if isinstance(value, MovementType):
            return value
        try:
            return cls(str(value).lower())
        except ValueError:
            raise ConfigError(f"Unknown movement type: {value!r}")


def _target(data, context) -> Union[RobotTarget, JointTarget]:
    if isinstance(data, (RobotTarget, JointTarget)):
        return data
    if not isinstance(data, dict):
        raise ConfigError(f"Invalid movement target: {data!r}")
    data = dict(data)
    kind = data.pop("type", "RobotTarget")
    if kind == "JointTarget":
        return JointTarget.from_dict(data, context)
    if kind == "RobotTarget":
        return RobotTarget.from_dict(data, context)
    raise ConfigError(f"Unknown target type: {kind!r}")


def global_target_plane(target: RobotTarget, work_object: WorkObject,
                        external_joint_position: Optional[ExternalJointPosition] = None) -> Plane:
    """World pose of ``target``, following the external axis that carries the work object."""
    axis = work_object.external_axis
    if axis is None or axis.axis_number is None:
        return target.plane
    external = external_joint_position if external_joint_position is not None else target.external_joint_position
    if not external.is_defined(axis.axis_number):
        return target.plane
    matrix, _ = axis.calculate_transformation_matrix(external[axis.axis_number])
    return target.plane.transform(matrix)


@register_action("Movement")
@dataclass(frozen=True, eq=False)
class Movement(Action):
    """
    A move to a target with speed and zone data.

    Attributes:
        target: a RobotTarget or a JointTarget (always moved with MoveAbsJ)
        speed_data: the speed of the movement
        zone_data: the corner zone at the target
        movement_type: LINEAR (MoveL), JOINT (MoveJ) or ABSOLUTE_JOINT (MoveAbsJ)
        tool: tool to move with, ``None`` for the generator's current tool
        work_object: work object of the target, ``None`` for wobj0
        digital_output: digital output set when the target is reached
        sync_id: move identifier used while movements are synchronized
    """
    target: Union[RobotTarget, JointTarget]
    speed_data: SpeedData = field(default_factory=lambda: SpeedData.predefined("v100"))
    zone_data: ZoneData = field(default_factory=ZoneData.fine)
    movement_type: MovementType = MovementType.JOINT
    tool: Optional[RobotTool] = None
    work_object: Optional[WorkObject] = None
    digital_output: Optional[SetDigitalOutput] = None
    sync_id: int = 0

    @classmethod
    def from_dict(cls, data, context) -> "Movement":
        data = dict(data)
        if "target" not in data:
            raise ConfigError("A movement needs a target")
        data["target"] = _target(data["target"], context)
        if "speed_data" in data:
            data["speed_data"] = SpeedData.from_data(data["speed_data"])
        if "zone_data" in data:
            data["zone_data"] = ZoneData.from_data(data["zone_data"])
        if "movement_type" in data:
            data["movement_type"] = MovementType.parse(data["movement_type"])
        if isinstance(data.get("tool"), str):
            data["tool"] = lookup(context, "tools", data["tool"])
        if isinstance(data.get("work_object"), str):
            data["work_object"] = lookup(context, "work_objects", data["work_object"])
        if isinstance(data.get("digital_output"), dict):
            output = data["digital_output"]
            data["digital_output"] = SetDigitalOutput(output.get("name", ""), bool(output.get("value", False)))
        return super().from_dict(data, context)

    @property
    def is_absolute_joint(self) -> bool:
        return isinstance(self.target, JointTarget) or self.movement_type is MovementType.ABSOLUTE_JOINT

    @property
    def joint_target_name(self) -> str:
        if isinstance(self.target, JointTarget):
            return self.target.name
        return f"{self.target.name}_jt"

    @property
    def work_object_or_default(self) -> WorkObject:
        return self.work_object if self.work_object is not None else WorkObject.wobj0()

    @property
    def is_valid(self) -> bool:
        if not (self.target.is_valid and self.speed_data.is_valid and self.zone_data.is_valid):
            return False
        if self.tool is not None and not self.tool.is_valid:
            return False
        if self.work_object is not None and not self.work_object.is_valid:
            return False
        if self.digital_output is not None and not self.digital_output.is_valid:
            return False
        return True

    def _robot(self, generator: "RAPIDGenerator") -> Robot:
        if self.tool is None:
            return generator.current_robot
        return generator.robot_with_tool(self.tool)

    def to_rapid_declaration(self, robot: Robot) -> str:
        if isinstance(self.target, JointTarget):
            return self.target.declaration_text()
        if self.movement_type is MovementType.ABSOLUTE_JOINT:
            joint_target = self.solve_joint_target(robot)[0]
            return joint_target.declaration_text()
        return self.robot_target_declaration(robot)

    def robot_target_declaration(self, robot: Robot) -> str:
        """robtarget declaration in the work object frame, with the chosen external axis values."""
        external = None
        if robot.external_axes:
            plane = global_target_plane(self.target, self.work_object_or_default)
            external = resolve_external_axes(robot, plane, self.target.external_joint_position)[0]
        return self.target.declaration_text(self.work_object, external)

    def solve_joint_target(self, robot: Robot):
        """Joint target for a robot target, through inverse kinematics.

        Returns:
            Tuple of (JointTarget, InverseKinematicsResult)
        """
        plane = global_target_plane(self.target, self.work_object_or_default)
        result = inverse_kinematics(robot, plane, self.target.external_joint_position,
                                    configuration=self.target.axis_configuration)
        joint_target = JointTarget(
            self.joint_target_name,
            result.robot_joint_position,
            result.external_joint_position,
        )
        return joint_target, result

    def declare(self, generator: "RAPIDGenerator") -> None:
        self.speed_data.declare(generator)
        self.zone_data.declare(generator)
        robot = self._robot(generator)

        if isinstance(self.target, JointTarget):
            self.target.declare(generator)
            if generator.check_reachability:
                for error in self.target.check_axis_limits(robot):
                    generator.warn(f"Joint target {self.target.name}: {error}")
            return

        if self.movement_type is MovementType.ABSOLUTE_JOINT:
            joint_target, result = self.solve_joint_target(robot)
            if not result.is_valid:
                generator.warn(f"Target {self.target.name} with axis configuration "
                               f"{self.target.axis_configuration}: {' '.join(result.errors)}")
            generator.add_declaration(generator.targets, joint_target.name, joint_target.declaration_text(),
                                      kind="target", owner=self.target)
            return

        generator.add_declaration(generator.targets, self.target.name, self.robot_target_declaration(robot),
                                  kind="target", owner=self.target)
        if generator.check_reachability:
            plane = global_target_plane(self.target, self.work_object_or_default)
            result = inverse_kinematics(robot, plane, self.target.external_joint_position,
                                        configuration=self.target.axis_configuration)
            if not result.is_valid:
                generator.warn(f"Target {self.target.name} with axis configuration "
                               f"{self.target.axis_configuration}: {' '.join(result.errors)}")

    def to_rapid_instruction(self, robot: Robot, synchronized: bool = False) -> str:
        tool = self.tool if self.tool is not None else robot.tool
        sync = f"\\ID:={self.sync_id}" if synchronized else ""
        common = (f"{self.speed_data.name}, {self.zone_data.name}, "
                  f"{tool.name}\\WObj:={self.work_object_or_default.name}")

        if self.is_absolute_joint:
            return f"MoveAbsJ {self.joint_target_name}{sync}, {common};"

        instruction = "MoveL" if self.movement_type is MovementType.LINEAR else "MoveJ"
        if self.digital_output is None:
            return f"{instruction} {self.target.name}{sync}, {common};"
        return (f"{instruction}DO {self.target.name}{sync}, {common}, "
                f"{self.digital_output.name}, {format_signal(self.digital_output.value)};")

    def instruct(self, generator: "RAPIDGenerator") -> None:
        generator.register_movement(self.is_absolute_joint)
        robot = generator.current_robot
        generator.add_instruction(self.to_rapid_instruction(robot, generator.synchronized_movements))
        if self.is_absolute_joint and self.digital_output is not None:
            generator.add_instruction(self.digital_output.to_rapid_instruction())


@register_action("AbsoluteJointMovement")
@dataclass(frozen=True, eq=False)
class AbsoluteJointMovement(Action):
    """MoveAbsJ to explicit axis values."""
    name: str
    robot_joint_position: RobotJointPosition = field(default_factory=RobotJointPosition)
    external_joint_position: ExternalJointPosition = field(default_factory=ExternalJointPosition)
    speed_data: SpeedData = field(default_factory=lambda: SpeedData.predefined("v100"))
    zone_data: ZoneData = field(default_factory=ZoneData.fine)
    tool: Optional[RobotTool] = None
    work_object: Optional[WorkObject] = None

    @classmethod
    def from_dict(cls, data, context) -> "AbsoluteJointMovement":
        data = dict(data)
        if "robot_joint_position" in data:
            data["robot_joint_position"] = RobotJointPosition(tuple(data["robot_joint_position"]))
        if "external_joint_position" in data:
            data["external_joint_position"] = ExternalJointPosition(tuple(data["external_joint_position"]))
        if "speed_data" in data:
            data["speed_data"] = SpeedData.from_data(data["speed_data"])
        if "zone_data" in data:
            data["zone_data"] = ZoneData.from_data(data["zone_data"])
        if isinstance(data.get("tool"), str):
            data["tool"] = lookup(context, "tools", data["tool"])
        if isinstance(data.get("work_object"), str):
            data["work_object"] = lookup(context, "work_objects", data["work_object"])
        return super().from_dict(data, context)

    @functools.cached_property
    def _movement(self) -> Movement:
        return Movement(
            target=JointTarget(self.name, self.robot_joint_position, self.external_joint_position),
            speed_data=self.speed_data,
            zone_data=self.zone_data,
            movement_type=MovementType.ABSOLUTE_JOINT,
            tool=self.tool,
            work_object=self.work_object,
        )

    def as_movement(self) -> Movement:
        """The equivalent Movement to a JointTarget; one object per action."""
        return self._movement

    @property
    def is_valid(self) -> bool:
        return self.as_movement().is_valid

    def to_rapid_declaration(self, robot: Robot) -> str:
        return self.as_movement().to_rapid_declaration(robot)

    def to_rapid_instruction(self, robot: Robot) -> str:
        return self.as_movement().to_rapid_instruction(robot)

    def declare(self, generator: "RAPIDGenerator") -> None:
        self.as_movement().declare(generator)

    def instruct(self, generator: "RAPIDGenerator") -> None:
        self.as_movement().instruct(generator)
