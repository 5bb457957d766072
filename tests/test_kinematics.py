"""Tests for forward and inverse kinematics."""

import numpy as np
import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from rapid_kinematics.core import ExternalAxis, ExternalJointPosition, Interval, Plane, RobotJointPosition, RobotTool
from rapid_kinematics.io import load_preset
from rapid_kinematics.kinematics import forward_kinematics, inverse_kinematics
from rapid_kinematics.kinematics import subproblems
from rapid_kinematics.kinematics.inverse import OUT_OF_REACH

ROBOT = load_preset("IRB120-3/0.58")

joint_values = st.tuples(
    st.floats(min_value=-150.0, max_value=150.0),
    st.floats(min_value=-80.0, max_value=80.0),
    st.floats(min_value=-100.0, max_value=60.0),
    st.floats(min_value=-150.0, max_value=150.0),
    st.one_of(st.floats(min_value=10.0, max_value=110.0), st.floats(min_value=-110.0, max_value=-10.0)),
    st.floats(min_value=-170.0, max_value=170.0),
)


def assert_planes_close(a: Plane, b: Plane, atol: float = 1e-6):
    np.testing.assert_allclose(a.origin, b.origin, atol=atol)
    np.testing.assert_allclose(a.x_axis, b.x_axis, atol=1e-8)
    np.testing.assert_allclose(a.y_axis, b.y_axis, atol=1e-8)


# Forward kinematics
def test_home_pose_tcp_is_mounting_frame():
    result = forward_kinematics(ROBOT, RobotJointPosition())

    assert result.in_limits
    assert result.link_transforms.shape == (6, 4, 4)
    np.testing.assert_allclose(result.link_transforms, np.tile(np.eye(4), (6, 1, 1)), atol=1e-12)
    assert_planes_close(result.tcp_plane, ROBOT.mounting_frame)


def test_axis_one_quarter_turn():
    result = forward_kinematics(ROBOT, RobotJointPosition((90.0,)))
    np.testing.assert_allclose(result.tcp_plane.origin, [0.0, 374.0, 630.0], atol=1e-9)


def test_axis_five_tilts_flange_down():
    """Axis 5 at 90 degrees points the flange straight down from the wrist centre."""
    result = forward_kinematics(ROBOT, RobotJointPosition((0.0, 0.0, 0.0, 0.0, 90.0, 0.0)))
    np.testing.assert_allclose(result.tcp_plane.origin, [302.0, 0.0, 558.0], atol=1e-9)
    np.testing.assert_allclose(result.tcp_plane.normal, [0.0, 0.0, -1.0], atol=1e-12)


def test_axis_planes_follow_the_chain():
    result = forward_kinematics(ROBOT, RobotJointPosition((90.0,)))
    np.testing.assert_allclose(result.posed_internal_axis_planes[0].origin, [0.0, 0.0, 0.0], atol=1e-9)
    np.testing.assert_allclose(result.posed_internal_axis_planes[1].normal, [-1.0, 0.0, 0.0], atol=1e-12)


def test_forward_kinematics_reports_limits():
    result = forward_kinematics(ROBOT, RobotJointPosition((0.0, 0.0, 100.0, 0.0, 0.0, 0.0)))
    assert not result.in_limits
    assert result.errors == ("The position of robot axis 3 is not in range.",)


def test_forward_kinematics_rejects_wrong_axis_count():
    with pytest.raises(ValueError):
        forward_kinematics(ROBOT, [0.0, 0.0, 0.0, 0.0, 0.0])


def test_forward_kinematics_with_tool():
    tool = RobotTool.create("pen", Plane.world_xy(), Plane.from_normal((0.0, 0.0, 100.0), (0.0, 0.0, 1.0)))
    robot = ROBOT.with_tool(tool)

    result = forward_kinematics(robot, RobotJointPosition())
    np.testing.assert_allclose(result.tcp_plane.origin, [474.0, 0.0, 630.0], atol=1e-9)


def test_pose_meshes_returns_links_and_tool():
    meshes = ROBOT.pose_meshes(RobotJointPosition((10.0, 20.0, 30.0, 40.0, 50.0, 60.0)))
    assert len(meshes) == 8


# Inverse kinematics
def test_home_pose_inverse():
    target = forward_kinematics(ROBOT, RobotJointPosition()).tcp_plane
    result = inverse_kinematics(ROBOT, target)

    assert result.is_valid
    assert result.index == 0
    assert len(result.configurations) == 8
    np.testing.assert_allclose(result.robot_joint_position.to_array(), np.zeros(6), atol=1e-6)


@given(joint_values)
@settings(deadline=None, max_examples=40)
def test_inverse_kinematics_roundtrip(values):
    """Every reachable configuration reproduces the target and one of them is the original pose."""
    q = RobotJointPosition(values)
    target = forward_kinematics(ROBOT, q).tcp_plane

    result = inverse_kinematics(ROBOT, target, previous=q)
    assert len(result.configurations) == 8

    matches = 0
    for configuration in result.configurations:
        assert configuration.reachable
        posed = forward_kinematics(ROBOT, configuration.robot_joint_position).tcp_plane
        assert_planes_close(posed, target, atol=1e-4)
        if np.allclose(configuration.robot_joint_position.to_array(), q.to_array(), atol=1e-5):
            matches += 1
    assert matches >= 1


def test_inverse_kinematics_selects_requested_configuration():
    target = forward_kinematics(ROBOT, RobotJointPosition((20.0, 10.0, -20.0, 30.0, 40.0, 50.0))).tcp_plane

    for index in range(8):
        result = inverse_kinematics(ROBOT, target, configuration=index)
        assert result.index == index
        assert result.selected is result.configurations[index]


def test_inverse_kinematics_configuration_order():
    """Index 4 * base + 2 * elbow + wrist: config 0 is front, elbow up, normal wrist."""
    q = RobotJointPosition((20.0, 10.0, -20.0, 30.0, 40.0, 50.0))
    target = forward_kinematics(ROBOT, q).tcp_plane
    configurations = inverse_kinematics(ROBOT, target).configurations

    np.testing.assert_allclose(configurations[0].robot_joint_position.to_array(), q.to_array(), atol=1e-6)
    # wrist flip keeps axes 1 to 3
    np.testing.assert_allclose(configurations[1].robot_joint_position.to_array()[:3], q.to_array()[:3], atol=1e-6)
    assert abs(configurations[1].robot_joint_position[3]) > 90.0
    # back solution turns axis 1 by half a turn
    back = configurations[4].robot_joint_position[0]
    assert abs(abs(back - 20.0) - 180.0) < 1e-6


def test_inverse_kinematics_rejects_bad_configuration():
    target = forward_kinematics(ROBOT, RobotJointPosition()).tcp_plane
    with pytest.raises(ValueError):
        inverse_kinematics(ROBOT, target, configuration=8)


def test_unreachable_target():
    target = Plane.from_axes((2000.0, 0.0, 630.0), (0.0, 0.0, -1.0), (0.0, 1.0, 0.0))
    result = inverse_kinematics(ROBOT, target)

    assert not result.is_valid
    assert all(not configuration.reachable for configuration in result.configurations)
    assert result.errors[0] == OUT_OF_REACH


def test_singular_wrist_keeps_previous_axis_four():
    q = RobotJointPosition((10.0, 20.0, -30.0, 30.0, 0.0, 10.0))
    target = forward_kinematics(ROBOT, q).tcp_plane

    result = inverse_kinematics(ROBOT, target, previous=q)
    assert any(
        np.allclose(configuration.robot_joint_position.to_array(), q.to_array(), atol=1e-6)
        for configuration in result.configurations
    )


def test_non_spherical_wrist_is_rejected():
    planes = list(ROBOT.internal_axis_planes)
    planes[5] = Plane.from_normal((374.0, 10.0, 630.0), (1.0, 0.0, 0.0))
    robot = ROBOT.with_internal_axis_planes(planes)

    target = forward_kinematics(ROBOT, RobotJointPosition()).tcp_plane
    result = inverse_kinematics(robot, target)
    assert not result.is_valid
    assert "spherical wrist" in result.errors[0]


def test_inverse_kinematics_with_tool():
    tool = RobotTool.create("pen", Plane.world_xy(), Plane.from_normal((0.0, 20.0, 150.0), (0.0, 0.3, 1.0)))
    robot = ROBOT.with_tool(tool)
    q = RobotJointPosition((-35.0, 25.0, 10.0, -60.0, 45.0, 120.0))
    target = forward_kinematics(robot, q).tcp_plane

    result = inverse_kinematics(robot, target)
    assert result.is_valid
    assert_planes_close(forward_kinematics(robot, result.robot_joint_position).tcp_plane, target)


# External axes
def track_robot():
    track = ExternalAxis.linear("track", Plane.world_xy(), (1.0, 0.0, 0.0), Interval(0.0, 2000.0))
    return load_preset("IRB120-3/0.58", external_axes=[track])


def test_linear_axis_moves_robot():
    robot = track_robot()
    result = forward_kinematics(robot, RobotJointPosition(), ExternalJointPosition((500.0,)))

    assert result.in_limits
    np.testing.assert_allclose(result.tcp_plane.origin, [874.0, 0.0, 630.0], atol=1e-9)
    np.testing.assert_allclose(result.posed_external_axis_planes[0].origin, [500.0, 0.0, 0.0], atol=1e-9)
    assert result.posed_external_axis_planes[1] is None


def test_linear_axis_out_of_range():
    result = forward_kinematics(track_robot(), RobotJointPosition(), ExternalJointPosition((2500.0,)))
    assert result.errors == ("The position of external axis track is not in range.",)


def test_inverse_kinematics_with_given_external_value():
    robot = track_robot()
    target = forward_kinematics(robot, RobotJointPosition(), ExternalJointPosition((500.0,))).tcp_plane

    result = inverse_kinematics(robot, target, ExternalJointPosition((500.0,)))
    assert result.is_valid
    assert result.external_joint_position[0] == 500.0
    np.testing.assert_allclose(result.robot_joint_position.to_array(), np.zeros(6), atol=1e-6)


def test_inverse_kinematics_chooses_track_value():
    robot = track_robot()
    target = Plane.from_axes((874.0, 0.0, 630.0), (0.0, 0.0, -1.0), (0.0, 1.0, 0.0))
    assert inverse_kinematics(robot, target).external_joint_position[0] == pytest.approx(874.0)

    far = Plane.from_axes((5000.0, 0.0, 630.0), (0.0, 0.0, -1.0), (0.0, 1.0, 0.0))
    assert inverse_kinematics(robot, far).external_joint_position[0] == pytest.approx(2000.0)


# Subproblems
def test_subproblem1():
    k = np.array([0.0, 0.0, 1.0])
    theta = subproblems.subproblem1(k, np.array([1.0, 0.0, 5.0]), np.array([0.0, 2.0, 5.0]))
    assert theta == pytest.approx(np.pi / 2)


def test_subproblem2_solutions_rotate_p_onto_q():
    k1 = np.array([1.0, 0.0, 0.0])
    k2 = np.array([0.0, 1.0, 0.0])
    p = np.array([1.0, 0.0, 0.0])
    q = subproblems.rotation(k1, 0.4) @ subproblems.rotation(k2, 0.7) @ p

    solutions, exact = subproblems.subproblem2(k1, k2, p, q)
    assert exact
    for theta1, theta2 in solutions:
        np.testing.assert_allclose(
            subproblems.rotation(k1, theta1) @ subproblems.rotation(k2, theta2) @ p, q, atol=1e-12)


def test_subproblem3_distance():
    k = np.array([0.0, 1.0, 0.0])
    p = np.array([302.0, 0.0, 70.0])
    q = np.array([0.0, 0.0, -270.0])

    thetas, exact = subproblems.subproblem3(k, p, q, 400.0)
    assert exact
    for theta in thetas:
        assert np.linalg.norm(subproblems.rotation(k, theta) @ p - q) == pytest.approx(400.0)

    _, exact = subproblems.subproblem3(k, p, q, 1000.0)
    assert not exact
