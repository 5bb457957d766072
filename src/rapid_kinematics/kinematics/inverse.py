"""Closed-form inverse kinematics for ABB six-axis robots with a spherical wrist.

The solver works in the robot's base frame with numpy float64 and follows the
classic decomposition:

1. the wrist centre (axis-5 origin) fixes axis 1, with a front and a back
   solution;
2. axes 2 and 3 place the wrist centre, with an elbow-up and an elbow-down
   solution (law of cosines);
3. axes 4, 5 and 6 produce the remaining orientation, with a normal and a
   flipped wrist solution.

All eight combinations are returned, in the order
``index = 4 * base + 2 * elbow + wrist``.
"""

import logging
from dataclasses import dataclass
from typing import List, Optional, Tuple

import numpy as np

from ..core import AxisType, ExternalJointPosition, Interval, Plane, Robot, RobotJointPosition
from .subproblems import rotation, subproblem1, subproblem2, subproblem3

logger = logging.getLogger(__name__)

NUMBER_OF_CONFIGURATIONS = 8
OUT_OF_REACH = "The target is out of reach."

_TOLERANCE = 1e-6


@dataclass(frozen=True)
class IKConfiguration:
    """One of the eight arm configurations for a target."""
    robot_joint_position: RobotJointPosition
    reachable: bool
    in_limits: bool
    errors: Tuple[str, ...] = ()

    @property
    def is_valid(self) -> bool:
        return self.reachable and self.in_limits


@dataclass(frozen=True)
class InverseKinematicsResult:
    """
    All configurations for a target plus the selected one.

    Attributes:
        configurations: the 8 configurations, see the module docstring for the order
        index: index of the selected configuration
        external_joint_position: external axis values used for the solution
        solver_errors: problems that affect every configuration
    """
    configurations: Tuple[IKConfiguration, ...]
    index: int
    external_joint_position: ExternalJointPosition
    solver_errors: Tuple[str, ...] = ()

    @property
    def selected(self) -> IKConfiguration:
        return self.configurations[self.index]

    @property
    def robot_joint_position(self) -> RobotJointPosition:
        return self.selected.robot_joint_position

    @property
    def errors(self) -> List[str]:
        return list(self.solver_errors) + list(self.selected.errors)

    @property
    def is_valid(self) -> bool:
        return not self.solver_errors and self.selected.is_valid


def _wrap(degrees: float) -> float:
    """Normalise to (-180, 180]."""
    return -((-degrees + 180.0) % 360.0 - 180.0)


def _fit_limits(degrees: float, limits: Interval) -> float:
    if limits.includes(degrees):
        return degrees
    for shifted in (degrees + 360.0, degrees - 360.0):
        if limits.includes(shifted):
            return shifted
    return degrees


def _unit(v: np.ndarray) -> np.ndarray:
    return v / np.linalg.norm(v)


def _perpendicular(k: np.ndarray, v: np.ndarray) -> np.ndarray:
    return v - np.dot(k, v) * k


def _distance_to_line(point: np.ndarray, origin: np.ndarray, direction: np.ndarray) -> float:
    return float(np.linalg.norm(np.cross(point - origin, direction)))


def _local_frame(robot: Robot, base_motion: np.ndarray):
    """Axis points, axis directions and home tool pose in the base frame.

    ``base_motion`` moves the whole robot (base, axes and tool) together, so
    it cancels out of the base-local description of the arm.
    """
    to_base = np.linalg.inv(np.asarray(robot.base_plane.to_matrix()))
    R = to_base[:3, :3]
    t = to_base[:3, 3]
    points = [R @ np.asarray(plane.origin) + t for plane in robot.internal_axis_planes]
    directions = [_unit(R @ np.asarray(plane.normal)) for plane in robot.internal_axis_planes]
    home_tool = to_base @ np.asarray(robot.tool_plane.to_matrix())
    world_to_base = to_base @ np.linalg.inv(base_motion)
    return points, directions, home_tool, world_to_base


def resolve_external_axes(
    robot: Robot,
    target_plane: Plane,
    external_joint_position: Optional[ExternalJointPosition] = None,
) -> Tuple[ExternalJointPosition, np.ndarray, List[str]]:
    """
    Pick a value for every attached external axis.

    Defined values are used as given. A linear axis that moves the robot
    otherwise follows the target along its travel direction, clamped to its
    limits. Remaining axes are set to 0.

    Returns:
        Tuple of (external joint position, 4x4 robot base motion, errors)
    """
    given = external_joint_position if external_joint_position is not None else ExternalJointPosition()
    values = ExternalJointPosition()
    base_motion = np.eye(4)
    errors = []

    for axis in robot.external_axes:
        number = axis.axis_number
        if given.is_defined(number):
            value = given[number]
        elif axis.moves_robot and axis.axis_type is AxisType.LINEAR:
            offset = np.asarray(target_plane.origin) - np.asarray(axis.axis_plane.origin)
            value = axis.axis_limits.clamp(float(np.dot(offset, np.asarray(axis.axis_plane.normal))))
        else:
            value = 0.0

        values = values.with_value(number, value)
        matrix, in_limits = axis.calculate_transformation_matrix(value)
        if not in_limits:
            errors.append(f"The position of external axis {axis.name} is not in range.")
        if axis.moves_robot:
            base_motion = np.asarray(matrix)

    return values, base_motion, errors


def _base_solutions(points, directions, wrist_home, wrist, previous_q1):
    """Two axis-1 angles, front first, and whether they are exact."""
    h1, h2 = directions[0], directions[1]
    p1 = points[0]
    x = wrist - p1

    a = np.dot(h2, _perpendicular(h1, x))
    b = -np.dot(h2, np.cross(h1, x))
    e = np.dot(h1, x) * np.dot(h1, h2)
    d = np.dot(h2, wrist_home - p1)
    r = np.hypot(a, b)

    if r < _TOLERANCE:
        logger.debug("Wrist centre lies on axis 1, keeping the previous axis 1 value")
        q1 = previous_q1
        return [q1, q1 + np.pi], abs(d - e) < _TOLERANCE

    cos_psi = (d - e) / r
    exact = abs(cos_psi) <= 1.0 + 1e-9
    psi = np.arccos(np.clip(cos_psi, -1.0, 1.0))
    phi = np.arctan2(b, a)
    candidates = [phi + psi, phi - psi]

    home_radial = _perpendicular(h1, wrist_home - p1)

    def is_front(q1):
        radial = _perpendicular(h1, rotation(h1, -q1) @ x)
        return np.dot(radial, home_radial) >= 0.0

    if not is_front(candidates[0]) and is_front(candidates[1]):
        candidates.reverse()
    return candidates, bool(exact)


def _elbow_solutions(points, directions, wrist_home, wrist_local, elbow_length):
    """(q2, q3) pairs, elbow up first, and whether they are exact."""
    h1, h2, h3 = directions[0], directions[1], directions[2]
    p2, p3 = points[1], points[2]

    reach = float(np.linalg.norm(wrist_local - p2))
    thetas3, exact = subproblem3(h3, wrist_home - p3, p2 - p3, reach)
    if reach > elbow_length + _TOLERANCE:
        exact = False

    solutions = []
    for q3 in thetas3:
        moved = rotation(h3, q3) @ (wrist_home - p3) + p3
        q2 = subproblem1(h2, moved - p2, wrist_local - p2)

        elbow = rotation(h2, q2) @ (p3 - p2)
        line = wrist_local - p2
        line_length = np.linalg.norm(line)
        if line_length > _TOLERANCE:
            line = line / line_length
            elbow = elbow - np.dot(elbow, line) * line
        solutions.append(((q2, q3), float(np.dot(elbow, h1)) > 0.0))

    if not solutions[0][1] and solutions[1][1]:
        solutions.reverse()
    return [pair for pair, _ in solutions], exact


def _wrist_solutions(directions, remaining, previous_q4):
    """(q4, q5, q6) triples, normal wrist first."""
    h4, h5, h6 = directions[3], directions[4], directions[5]
    goal = remaining @ h6

    reference = _perpendicular(h6, h5)
    if np.linalg.norm(reference) < _TOLERANCE:
        reference = _perpendicular(h6, h4)
    reference = _unit(reference)

    def axis6(q4, q5):
        rest = (rotation(h4, q4) @ rotation(h5, q5)).T @ remaining
        return subproblem1(h6, reference, rest @ reference)

    if np.linalg.norm(np.cross(h4, goal)) < 1e-9:
        logger.debug("Wrist singularity, keeping the previous axis 4 value")
        q4 = previous_q4
        q5 = subproblem1(h5, h6, rotation(h4, q4).T @ goal)
        q6 = axis6(q4, q5)
        triples = [(q4, q5, q6), (q4 + np.pi, -q5, q6 + np.pi)]
    else:
        pairs, _ = subproblem2(h4, h5, h6, goal)
        triples = [(q4, q5, axis6(q4, q5)) for q4, q5 in pairs]

    if abs(_wrap(np.degrees(triples[0][0]))) > 90.0 and abs(_wrap(np.degrees(triples[1][0]))) <= 90.0:
        triples.reverse()
    return triples


def _configuration(robot: Robot, radians, reachable: bool) -> IKConfiguration:
    values = []
    errors = []
    for i, (angle, limits) in enumerate(zip(radians, robot.internal_axis_limits)):
        value = _fit_limits(_wrap(float(np.degrees(angle))), limits)
        if not limits.includes(value):
            errors.append(f"The position of robot axis {i + 1} is not in range.")
        values.append(value)

    in_limits = not errors
    if not reachable:
        errors.insert(0, OUT_OF_REACH)
    return IKConfiguration(
        robot_joint_position=RobotJointPosition(tuple(values)),
        reachable=reachable,
        in_limits=in_limits,
        errors=tuple(errors),
    )


def _invalid_result(external: ExternalJointPosition, message: str) -> InverseKinematicsResult:
    configuration = IKConfiguration(RobotJointPosition(), reachable=False, in_limits=True, errors=(message,))
    return InverseKinematicsResult(
        configurations=(configuration,) * NUMBER_OF_CONFIGURATIONS,
        index=0,
        external_joint_position=external,
        solver_errors=(message,),
    )


def inverse_kinematics(
    robot: Robot,
    target_plane: Plane,
    external_joint_position: Optional[ExternalJointPosition] = None,
    configuration: Optional[int] = None,
    previous: Optional[RobotJointPosition] = None,
) -> InverseKinematicsResult:
    """Solve the robot axis values that put the tool centre point on ``target_plane``.

    Args:
        robot: the robot, including its tool
        target_plane: goal pose of the tool centre point in world coordinates
        external_joint_position: external axis values, undefined axes are chosen
        configuration: index 0..7 of the configuration to select
        previous: previous robot joint position, used to resolve singularities

    Returns:
        InverseKinematicsResult with all 8 configurations
    """
    if configuration is not None and not 0 <= configuration < NUMBER_OF_CONFIGURATIONS:
        raise ValueError(f"configuration must be in 0..{NUMBER_OF_CONFIGURATIONS - 1}, got {configuration}")

    external, base_motion, external_errors = resolve_external_axes(robot, target_plane, external_joint_position)
    points, directions, home_tool, world_to_base = _local_frame(robot, base_motion)

    wrist_home = points[4]
    if (_distance_to_line(wrist_home, points[3], directions[3]) > _TOLERANCE
            or _distance_to_line(wrist_home, points[5], directions[5]) > _TOLERANCE):
        return _invalid_result(external, "The robot does not have a spherical wrist.")
    if np.linalg.norm(np.cross(directions[1], directions[2])) > _TOLERANCE:
        return _invalid_result(external, "Robot axes 2 and 3 are not parallel.")

    previous_q1 = np.radians(previous[0]) if previous is not None else 0.0
    previous_q4 = np.radians(previous[3]) if previous is not None else 0.0

    # Chain motion that takes the home tool pose onto the target
    goal = world_to_base @ np.asarray(target_plane.to_matrix()) @ np.linalg.inv(home_tool)
    wrist = goal[:3, :3] @ wrist_home + goal[:3, 3]

    configurations = []
    all_reachable = True
    base_candidates, base_exact = _base_solutions(points, directions, wrist_home, wrist, previous_q1)
    for q1 in base_candidates:
        R1 = rotation(directions[0], q1)
        wrist_local = R1.T @ (wrist - points[0]) + points[0]
        elbows, elbow_exact = _elbow_solutions(points, directions, wrist_home, wrist_local,
                                               robot.kinematics.elbow_length)
        all_reachable = all_reachable and base_exact and elbow_exact
        for q2, q3 in elbows:
            R123 = R1 @ rotation(directions[1], q2) @ rotation(directions[2], q3)
            remaining = R123.T @ goal[:3, :3]
            for q4, q5, q6 in _wrist_solutions(directions, remaining, previous_q4):
                configurations.append(
                    _configuration(robot, (q1, q2, q3, q4, q5, q6), base_exact and elbow_exact))

    if not all_reachable:
        logger.debug(f"Target at {np.asarray(target_plane.origin)} is out of reach for some configurations")

    if configuration is None:
        index = next((i for i, c in enumerate(configurations) if c.is_valid), 0)
    else:
        index = configuration

    return InverseKinematicsResult(
        configurations=tuple(configurations),
        index=index,
        external_joint_position=external,
        solver_errors=tuple(external_errors),
    )
