"""Robot PyTree data structure for a six-axis ABB articulated robot.

The robot is an immutable record. Everything derived from its definition
(kinematic constants, the tool centre point and the external axis lookup
tables) is computed by the pure ``compute_*`` functions below, which are run
by :meth:`Robot.create` and again by every ``with_*`` method.
"""

import logging
from typing import List, Optional, Sequence, Tuple

import jax
import jax.numpy as jnp
from flax import struct

from ..errors import RobotDefinitionError
from ..transforms import se3
from .external_axis import ExternalAxis
from .geometry import Interval, Mesh, Plane, plane_to_plane
from .joint_positions import NUMBER_OF_AXES, ExternalJointPosition, RobotJointPosition
from .tool import RobotTool

Array = jax.Array

logger = logging.getLogger(__name__)

NUMBER_OF_LINK_MESHES = 7


@struct.dataclass
class KinematicConstants:
    """
    Geometry constants of the arm, measured in the robot's base frame.

    Attributes:
        wrist_offset: (3,) offset from the axis-5 origin to the axis-6 origin,
                      stored as ``(dz, dy, dx)``
        axis4_offset_angle: angle of the forearm (axis 3 to axis 5) in the
                            base XZ plane, radians
        lower_arm_length: distance from axis 2 to axis 3
        upper_arm_length: distance from axis 3 to the wrist centre (axis 5)
        elbow_length: lower plus upper arm length, the reach of axis 2
    """
    wrist_offset: Array
    axis4_offset_angle: float
    lower_arm_length: float
    upper_arm_length: float
    elbow_length: float


def _local_origins(internal_axis_planes: Sequence[Plane], base_plane: Plane) -> Array:
    to_base = se3.inverse(base_plane.to_matrix())
    origins = jnp.stack([plane.origin for plane in internal_axis_planes])
    return se3.apply(to_base, origins)


def compute_kinematic_constants(internal_axis_planes: Sequence[Plane], base_plane: Plane) -> KinematicConstants:
    """Derive the arm constants from the axis planes, in base-local coordinates."""
    if len(internal_axis_planes) != NUMBER_OF_AXES:
        raise RobotDefinitionError(
            f"Expected {NUMBER_OF_AXES} internal axis planes, got {len(internal_axis_planes)}")

    o = _local_origins(internal_axis_planes, base_plane)

    wrist = o[5] - o[4]
    wrist_offset = jnp.array([wrist[2], wrist[1], wrist[0]])
    axis4_offset_angle = float(jnp.arctan2(o[4, 2] - o[2, 2], o[4, 0] - o[2, 0]))
    lower = float(jnp.linalg.norm(o[1] - o[2]))
    upper = float(jnp.linalg.norm(o[2] - o[4]))

    return KinematicConstants(
        wrist_offset=wrist_offset,
        axis4_offset_angle=axis4_offset_angle,
        lower_arm_length=lower,
        upper_arm_length=upper,
        elbow_length=lower + upper,
    )


def compute_tool_plane(tool: RobotTool, mounting_frame: Plane) -> Plane:
    """Tool centre point with the tool attached to ``mounting_frame``."""
    return tool.tool_plane.transform(plane_to_plane(tool.attachment_plane, mounting_frame))


def compute_external_axis_tables(
    external_axes: Sequence[ExternalAxis],
) -> Tuple[Tuple[ExternalAxis, ...], Tuple[Optional[Plane], ...], Tuple[Optional[Interval], ...]]:
    """
    Validate the external axes and build the per-logic-number lookup tables.

    Axes without a logic number get their position in ``external_axes``.

    Returns:
        Tuple of (numbered axes, 6 axis planes, 6 axis limits). Slots without
        an axis hold ``None``.
    """
    if len(external_axes) > NUMBER_OF_AXES:
        raise RobotDefinitionError(
            f"At most {NUMBER_OF_AXES} external axes can be attached, got {len(external_axes)}")

    if sum(1 for axis in external_axes if axis.moves_robot) > 1:
        raise RobotDefinitionError("Only one external axis can move the robot")

    numbered = []
    for i, axis in enumerate(external_axes):
        if axis.axis_number is None:
            axis = axis.with_axis_number(i)
        if not axis.is_valid:
            raise RobotDefinitionError(f"External axis {i} ({axis.name}) is not valid")
        numbered.append(axis)

    numbers = [axis.axis_number for axis in numbered]
    if len(set(numbers)) != len(numbers):
        raise RobotDefinitionError(f"External axes share axis logic numbers: {numbers}")

    planes: List[Optional[Plane]] = [None] * NUMBER_OF_AXES
    limits: List[Optional[Interval]] = [None] * NUMBER_OF_AXES
    for axis in numbered:
        planes[axis.axis_number] = axis.axis_plane
        limits[axis.axis_number] = axis.axis_limits

    return tuple(numbered), tuple(planes), tuple(limits)


def compute_meshes(link_meshes: Sequence[Mesh], tool: RobotTool, mounting_frame: Plane) -> Tuple[Mesh, ...]:
    """Link meshes followed by the tool mesh attached to the mounting frame."""
    tool_mesh = tool.mesh.transform(plane_to_plane(tool.attachment_plane, mounting_frame))
    return tuple(link_meshes) + (tool_mesh,)


@struct.dataclass
class Robot:
    """Immutable PyTree representation of an ABB six-axis robot.

    Attributes:
        name: robot type name, e.g. ``IRB120-3/0.58``
        internal_axis_planes: 6 planes, the normal of each is its rotation axis
        internal_axis_limits: 6 intervals in degrees
        base_plane: position of the robot base
        mounting_frame: flange frame at the home pose
        tool: attached tool (in its own coordinates)
        external_axes: attached external axes with assigned logic numbers
        link_meshes: 7 meshes, base followed by links 1 to 6
        meshes: the 7 link meshes plus the attached tool mesh
        kinematics: derived arm constants
        tool_plane: derived tool centre point at the home pose
        external_axis_planes: derived 6-slot table, ``None`` where unused
        external_axis_limits: derived 6-slot table, ``None`` where unused
    """
    name: str = struct.field(pytree_node=False)
    internal_axis_planes: Tuple[Plane, ...]
    internal_axis_limits: Tuple[Interval, ...]
    base_plane: Plane
    mounting_frame: Plane
    tool: RobotTool
    external_axes: Tuple[ExternalAxis, ...]
    link_meshes: Tuple[Mesh, ...]
    meshes: Tuple[Mesh, ...]
    kinematics: KinematicConstants
    tool_plane: Plane
    external_axis_planes: Tuple[Optional[Plane], ...]
    external_axis_limits: Tuple[Optional[Interval], ...]

    number_of_axes = NUMBER_OF_AXES

    @classmethod
    def create(
        cls,
        name: str,
        internal_axis_planes: Sequence[Plane],
        internal_axis_limits: Sequence[Interval],
        base_plane: Plane,
        mounting_frame: Plane,
        tool: Optional[RobotTool] = None,
        external_axes: Sequence[ExternalAxis] = (),
        meshes: Optional[Sequence[Mesh]] = None,
    ) -> "Robot":
        """Validate a robot definition and compute all derived fields."""
        if len(internal_axis_planes) != NUMBER_OF_AXES:
            raise RobotDefinitionError(
                f"Expected {NUMBER_OF_AXES} internal axis planes, got {len(internal_axis_planes)}")
        if len(internal_axis_limits) != NUMBER_OF_AXES:
            raise RobotDefinitionError(
                f"Expected {NUMBER_OF_AXES} internal axis limits, got {len(internal_axis_limits)}")
        if meshes is None:
            meshes = [Mesh.empty() for _ in range(NUMBER_OF_LINK_MESHES)]
        if len(meshes) != NUMBER_OF_LINK_MESHES:
            raise RobotDefinitionError(f"Expected {NUMBER_OF_LINK_MESHES} link meshes, got {len(meshes)}")

        tool = RobotTool.tool0() if tool is None else tool
        if not tool.is_valid:
            raise RobotDefinitionError(f"Robot tool {tool.name!r} is not valid")
        tool = tool.duplicate()

        axes, axis_planes, axis_limits = compute_external_axis_tables(external_axes)
        internal_axis_planes = tuple(internal_axis_planes)

        logger.debug(f"Creating robot {name} with {len(axes)} external axes and tool {tool.name}")

        return cls(
            name=name,
            internal_axis_planes=internal_axis_planes,
            internal_axis_limits=tuple(internal_axis_limits),
            base_plane=base_plane,
            mounting_frame=mounting_frame,
            tool=tool,
            external_axes=axes,
            link_meshes=tuple(meshes),
            meshes=compute_meshes(meshes, tool, mounting_frame),
            kinematics=compute_kinematic_constants(internal_axis_planes, base_plane),
            tool_plane=compute_tool_plane(tool, mounting_frame),
            external_axis_planes=axis_planes,
            external_axis_limits=axis_limits,
        )

    def _rebuild(self, **changes) -> "Robot":
        fields = dict(
            name=self.name,
            internal_axis_planes=self.internal_axis_planes,
            internal_axis_limits=self.internal_axis_limits,
            base_plane=self.base_plane,
            mounting_frame=self.mounting_frame,
            tool=self.tool,
            external_axes=self.external_axes,
            meshes=self.link_meshes,
        )
        fields.update(changes)
        return Robot.create(**fields)

    def with_internal_axis_planes(self, internal_axis_planes: Sequence[Plane]) -> "Robot":
        return self._rebuild(internal_axis_planes=internal_axis_planes)

    def with_internal_axis_limits(self, internal_axis_limits: Sequence[Interval]) -> "Robot":
        return self._rebuild(internal_axis_limits=internal_axis_limits)

    def with_base_plane(self, base_plane: Plane) -> "Robot":
        return self._rebuild(base_plane=base_plane)

    def with_mounting_frame(self, mounting_frame: Plane) -> "Robot":
        return self._rebuild(mounting_frame=mounting_frame)

    def with_tool(self, tool: RobotTool) -> "Robot":
        return self._rebuild(tool=tool)

    def with_external_axes(self, external_axes: Sequence[ExternalAxis]) -> "Robot":
        return self._rebuild(external_axes=external_axes)

    @property
    def is_valid(self) -> bool:
        return (
            self.base_plane.is_valid
            and self.mounting_frame.is_valid
            and all(plane.is_valid for plane in self.internal_axis_planes)
            and self.tool.is_valid
        )

    @property
    def external_axis_moving_robot(self) -> Optional[ExternalAxis]:
        for axis in self.external_axes:
            if axis.moves_robot:
                return axis
        return None

    def transform(self, matrix: Array) -> "Robot":
        """
        Move the robot by the rigid transform ``matrix``.

        External axes are not moved; they keep their own world placement.
        """
        return self._rebuild(
            internal_axis_planes=[plane.transform(matrix) for plane in self.internal_axis_planes],
            base_plane=self.base_plane.transform(matrix),
            mounting_frame=self.mounting_frame.transform(matrix),
            meshes=[mesh.transform(matrix) for mesh in self.link_meshes],
        )

    def pose_meshes(self, robot_joint_position: RobotJointPosition,
                    external_joint_position: Optional[ExternalJointPosition] = None) -> List[Mesh]:
        """Robot and tool meshes posed for the given joint positions."""
        from ..kinematics.chain import forward_kinematics

        result = forward_kinematics(self, robot_joint_position, external_joint_position, hide_mesh=False)
        return list(result.posed_meshes)

    def duplicate(self) -> "Robot":
        """Independent copy with freshly allocated arrays."""
        return jax.tree_util.tree_map(jnp.array, self)

    def __str__(self) -> str:
        if not self.is_valid:
            return "Invalid Robot"
        return f"Robot ({self.name})"
