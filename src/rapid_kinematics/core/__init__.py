"""Core robot model data structures.

Planes, intervals and meshes, the joint position value types, and the
immutable robot, tool, work object and external axis records.
"""

from .geometry import Interval, Mesh, Plane, plane_to_plane, plane_to_quaternion, quaternion_to_plane
from .joint_positions import UNDEFINED, ExternalJointPosition, RobotJointPosition
from .external_axis import AxisType, ExternalAxis
from .tool import RobotTool
from .work_object import WorkObject
from .robot_model import (
    KinematicConstants,
    Robot,
    compute_external_axis_tables,
    compute_kinematic_constants,
    compute_tool_plane,
)

__all__ = [
    "Interval",
    "Mesh",
    "Plane",
    "plane_to_plane",
    "plane_to_quaternion",
    "quaternion_to_plane",
    "UNDEFINED",
    "ExternalJointPosition",
    "RobotJointPosition",
    "AxisType",
    "ExternalAxis",
    "RobotTool",
    "WorkObject",
    "KinematicConstants",
    "Robot",
    "compute_external_axis_tables",
    "compute_kinematic_constants",
    "compute_tool_plane",
]
