"""Forward kinematics for the six-axis arm and its external axes.

Each internal axis is a revolute joint about the normal of its axis plane.
The chain is evaluated as a product of exponentials: the se(3) twists of the
six axes are compounded with ``jax.lax.scan`` and the home pose of the tool
centre point is applied last.
"""

from dataclasses import dataclass
from typing import Optional, Tuple

import jax
import jax.numpy as jnp
import numpy as np

from ..core import ExternalJointPosition, Mesh, Plane, Robot, RobotJointPosition
from ..transforms import se3

Array = jax.Array


@dataclass(frozen=True)
class ForwardKinematicsResult:
    """
    Posed robot for one pair of joint positions.

    Attributes:
        link_transforms: (6, 4, 4) world motion of links 1 to 6
        posed_internal_axis_planes: the 6 axis planes after posing
        tcp_plane: posed tool centre point
        posed_external_axis_planes: 6 slots, ``None`` where no axis is attached
        posed_meshes: base, links 1 to 6 and the tool; empty when meshes are hidden
        errors: one message per axis that is outside its limits
    """
    link_transforms: Array
    posed_internal_axis_planes: Tuple[Plane, ...]
    tcp_plane: Plane
    posed_external_axis_planes: Tuple[Optional[Plane], ...]
    posed_meshes: Tuple[Mesh, ...]
    errors: Tuple[str, ...]

    @property
    def in_limits(self) -> bool:
        return not self.errors


def axis_twists(robot: Robot) -> Array:
    """(6, 6) unit twists of the internal axes at the home pose."""
    return jnp.stack([se3.revolute_twist(plane.origin, plane.normal) for plane in robot.internal_axis_planes])


def compound_twists(twists: Array, angles: Array) -> Array:
    """
    Compound joint motions along the chain.

    Args:
        twists: (N, 6) unit twists
        angles: (N,) joint values in radians

    Returns:
        (N, 4, 4) where entry i is exp(twist_0 q_0) ... exp(twist_i q_i)
    """
    def scan_body(carry, xs):
        twist, angle = xs
        carry = carry @ se3.exp(twist * angle)
        return carry, carry

    _, transforms = jax.lax.scan(scan_body, jnp.eye(4, dtype=twists.dtype), (twists, angles))
    return transforms


def external_axis_values(robot: Robot, external_joint_position: Optional[ExternalJointPosition]) -> dict:
    """Value per attached axis logic number; undefined values read as 0."""
    external = external_joint_position if external_joint_position is not None else ExternalJointPosition()
    values = {}
    for axis in robot.external_axes:
        number = axis.axis_number
        values[number] = external[number] if external.is_defined(number) else 0.0
    return values


def forward_kinematics(
    robot: Robot,
    robot_joint_position: RobotJointPosition,
    external_joint_position: Optional[ExternalJointPosition] = None,
    hide_mesh: bool = True,
) -> ForwardKinematicsResult:
    """Compute the posed robot for the given internal and external axis values.

    Args:
        robot: the robot to pose
        robot_joint_position: 6 internal axis values in degrees
        external_joint_position: external axis values; undefined axes stay at 0
        hide_mesh: skip posing the meshes

    Returns:
        ForwardKinematicsResult
    """
    q = np.asarray(list(robot_joint_position), dtype=np.float64)
    if q.shape != (robot.number_of_axes,):
        raise ValueError(f"Expected {robot.number_of_axes} robot axis values, got {q.shape[0]}")

    errors = []
    for i, (value, limits) in enumerate(zip(q, robot.internal_axis_limits)):
        if not limits.includes(value):
            errors.append(f"The position of robot axis {i + 1} is not in range.")

    values = external_axis_values(robot, external_joint_position)

    base_motion = se3.identity()
    posed_external = [None] * len(robot.external_axis_planes)
    for axis in robot.external_axes:
        value = values[axis.axis_number]
        matrix, in_limits = axis.calculate_transformation_matrix(value)
        if not in_limits:
            errors.append(f"The position of external axis {axis.name} is not in range.")
        posed_external[axis.axis_number] = axis.axis_plane.transform(matrix)
        if axis.moves_robot:
            base_motion = matrix

    motions = compound_twists(axis_twists(robot), jnp.deg2rad(jnp.asarray(q)))
    link_transforms = base_motion @ motions

    posed_planes = tuple(plane.transform(link_transforms[i]) for i, plane in enumerate(robot.internal_axis_planes))
    tcp_plane = robot.tool_plane.transform(link_transforms[-1])

    posed_meshes: Tuple[Mesh, ...] = ()
    if not hide_mesh:
        base = robot.meshes[0].transform(base_motion)
        links = tuple(mesh.transform(link_transforms[i]) for i, mesh in enumerate(robot.meshes[1:7]))
        tool = robot.meshes[7].transform(link_transforms[-1])
        posed_meshes = (base,) + links + (tool,)

    return ForwardKinematicsResult(
        link_transforms=link_transforms,
        posed_internal_axis_planes=posed_planes,
        tcp_plane=tcp_plane,
        posed_external_axis_planes=tuple(posed_external),
        posed_meshes=posed_meshes,
        errors=tuple(errors),
    )
