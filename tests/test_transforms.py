"""Tests for the transforms module."""

import jax
import jax.numpy as jnp
import numpy as np
from hypothesis import given, settings
from hypothesis import strategies as st

from rapid_kinematics.transforms import se3, so3


# Quaternions (ABB order w, x, y, z)
def test_quaternion_to_matrix_identity():
    matrix = so3.from_quaternion(jnp.array([1.0, 0.0, 0.0, 0.0]))
    np.testing.assert_allclose(matrix, jnp.eye(3), rtol=1e-6, atol=1e-6)


def test_matrix_to_quaternion_identity():
    quat = so3.to_quaternion(jnp.eye(3))
    np.testing.assert_allclose(quat, jnp.array([1.0, 0.0, 0.0, 0.0]), rtol=1e-6, atol=1e-6)


def test_slerp_halfway():
    identity = jnp.array([1.0, 0.0, 0.0, 0.0])
    quarter_turn = jnp.array([np.cos(np.pi / 4), 0.0, 0.0, np.sin(np.pi / 4)])

    np.testing.assert_allclose(so3.slerp(identity, quarter_turn, 0.0), identity, atol=1e-9)
    np.testing.assert_allclose(so3.slerp(identity, quarter_turn, 1.0), quarter_turn, atol=1e-9)
    np.testing.assert_allclose(so3.slerp(identity, quarter_turn, 0.5),
                               [np.cos(np.pi / 8), 0.0, 0.0, np.sin(np.pi / 8)], atol=1e-9)
    # t is clipped to [0, 1]
    np.testing.assert_allclose(so3.slerp(identity, quarter_turn, 2.0), quarter_turn, atol=1e-9)


def test_slerp_takes_shorter_arc():
    q = jnp.array([np.cos(np.pi / 8), 0.0, np.sin(np.pi / 8), 0.0])
    np.testing.assert_allclose(so3.slerp(q, -q, 0.5), q, atol=1e-9)


def test_lerp():
    result = so3.lerp(jnp.array([1.0, 0.0, 0.0, 0.0]), jnp.array([0.0, 0.0, 0.0, 1.0]), 0.5)
    np.testing.assert_allclose(result, [0.5, 0.0, 0.0, 0.5], atol=1e-12)

def test_matrix_to_quaternion_jit():
    """90 degrees about Y through a jitted conversion."""
    matrix = jnp.array([[0.0, 0.0, 1.0], [0.0, 1.0, 0.0], [-1.0, 0.0, 0.0]])
    quat = jax.jit(so3.to_quaternion)(matrix)
    np.testing.assert_allclose(quat, jnp.array([0.7071068, 0.0, 0.7071068, 0.0]), rtol=1e-6, atol=1e-6)


def test_to_quaternion_scalar_part_is_non_negative():
    """A half turn plus a bit is reported with w >= 0, like the controller does."""
    R = so3.from_axis_angle(jnp.array([0.0, 0.0, 1.0]), 1.2 * jnp.pi)
    quat = so3.to_quaternion(R)
    assert quat[0] >= 0.0
    np.testing.assert_allclose(so3.from_quaternion(quat), R, atol=1e-9)


@given(st.integers(min_value=0, max_value=100))
@settings(deadline=None, max_examples=25)
def test_quaternion_roundtrip(seed):
    """quaternion -> matrix -> quaternion gives the same rotation."""
    quat = jax.random.uniform(jax.random.PRNGKey(seed), (4,), minval=-1.0, maxval=1.0)
    quat = quat / jnp.linalg.norm(quat)

    quat2 = so3.to_quaternion(so3.from_quaternion(quat))

    # q and -q are the same rotation
    assert jnp.abs(jnp.sum(quat * quat2)) > 0.999


# Rotations
def test_so3_exp_identity():
    np.testing.assert_allclose(so3.exp(jnp.zeros(3)), jnp.eye(3), rtol=1e-6, atol=1e-6)


def test_from_axis_angle_normalises_axis():
    R = so3.from_axis_angle(jnp.array([0.0, 0.0, 5.0]), jnp.pi / 2)
    np.testing.assert_allclose(R @ jnp.array([1.0, 0.0, 0.0]), jnp.array([0.0, 1.0, 0.0]), atol=1e-12)


def test_so3_skew_symmetric():
    v = jnp.array([1.0, 2.0, 3.0])
    K = so3.skew_symmetric(v)

    expected = jnp.array([[0.0, -3.0, 2.0], [3.0, 0.0, -1.0], [-2.0, 1.0, 0.0]])
    np.testing.assert_allclose(K, expected, rtol=1e-6, atol=1e-6)
    np.testing.assert_allclose(K @ jnp.array([4.0, 5.0, 6.0]), jnp.cross(v, jnp.array([4.0, 5.0, 6.0])))


# Rigid transforms
def test_se3_from_position_and_rotation():
    T = se3.from_position_and_rotation(jnp.array([1.0, 2.0, 3.0]), jnp.eye(3))

    expected = jnp.array([[1.0, 0.0, 0.0, 1.0], [0.0, 1.0, 0.0, 2.0], [0.0, 0.0, 1.0, 3.0], [0.0, 0.0, 0.0, 1.0]])
    np.testing.assert_allclose(T, expected, rtol=1e-6, atol=1e-6)


def test_transform_compose():
    """Translate by x after a Z quarter turn with a Y offset."""
    t1 = se3.translation(jnp.array([1.0, 0.0, 0.0]))
    R_z90 = so3.from_quaternion(jnp.array([0.7071068, 0.0, 0.0, 0.7071068]))
    t2 = se3.from_position_and_rotation(jnp.array([0.0, 1.0, 0.0]), R_z90)

    transformed = se3.apply(se3.multiply(t1, t2), jnp.array([1.0, 0.0, 0.0]))
    np.testing.assert_allclose(transformed, jnp.array([1.0, 2.0, 0.0]), rtol=1e-6, atol=1e-6)


def test_se3_exp_identity():
    np.testing.assert_allclose(se3.exp(jnp.zeros(6)), jnp.eye(4), rtol=1e-6, atol=1e-6)


def test_se3_pure_translation():
    T = se3.exp(jnp.array([1.0, 2.0, 3.0, 0.0, 0.0, 0.0]))
    np.testing.assert_allclose(se3.get_rotation(T), jnp.eye(3), rtol=1e-6, atol=1e-6)
    np.testing.assert_allclose(se3.get_position(T), jnp.array([1.0, 2.0, 3.0]), rtol=1e-6, atol=1e-6)


def test_se3_inverse():
    T = se3.exp(jnp.array([0.1, 0.2, 0.3, 0.05, 0.1, 0.15]))
    np.testing.assert_allclose(se3.multiply(T, se3.inverse(T)), jnp.eye(4), rtol=1e-6, atol=1e-6)


def test_se3_apply_multiple_points():
    T = se3.translation(jnp.array([1.0, 2.0, 3.0]))
    points = jnp.array([[0.0, 0.0, 0.0], [1.0, 0.0, 0.0], [0.0, 1.0, 0.0]])

    np.testing.assert_allclose(se3.apply(T, points), points + jnp.array([1.0, 2.0, 3.0]), rtol=1e-6, atol=1e-6)


def test_apply_rotation_ignores_translation():
    T = se3.rotation_about_axis(jnp.array([100.0, 0.0, 0.0]), jnp.array([0.0, 0.0, 1.0]), jnp.pi / 2)
    np.testing.assert_allclose(se3.apply_rotation(T, jnp.array([1.0, 0.0, 0.0])), jnp.array([0.0, 1.0, 0.0]),
                               atol=1e-12)


def test_rotation_about_axis_keeps_axis_points_fixed():
    point = jnp.array([302.0, 0.0, 630.0])
    T = se3.rotation_about_axis(point, jnp.array([0.0, 1.0, 0.0]), 0.7)

    np.testing.assert_allclose(se3.apply(T, point), point, atol=1e-9)
    np.testing.assert_allclose(se3.apply(T, point + jnp.array([0.0, 50.0, 0.0])),
                               point + jnp.array([0.0, 50.0, 0.0]), atol=1e-9)


@given(st.floats(min_value=-3.0, max_value=3.0))
@settings(deadline=None, max_examples=25)
def test_revolute_twist_matches_rotation_about_axis(angle):
    """exp(twist * angle) of a revolute joint is the rotation about its axis line."""
    point = jnp.array([0.0, 0.0, 290.0])
    direction = jnp.array([0.0, 1.0, 0.0])

    T_twist = se3.exp(se3.revolute_twist(point, direction) * angle)
    T_axis = se3.rotation_about_axis(point, direction, angle)
    np.testing.assert_allclose(T_twist, T_axis, atol=1e-9)


def test_prismatic_twist_translates():
    T = se3.exp(se3.prismatic_twist(jnp.array([2.0, 0.0, 0.0])) * 250.0)
    np.testing.assert_allclose(se3.get_position(T), jnp.array([250.0, 0.0, 0.0]), atol=1e-9)


@given(st.integers(min_value=0, max_value=100))
@settings(deadline=None, max_examples=10)
def test_transform_inverse_property(seed):
    """Applying T and then T^-1 returns the original points."""
    key1, key2, key3 = jax.random.split(jax.random.PRNGKey(seed), 3)

    position = jax.random.uniform(key1, (3,), minval=-500.0, maxval=500.0)
    quat = jax.random.uniform(key2, (4,), minval=-1.0, maxval=1.0)
    T = se3.from_position_and_rotation(position, so3.from_quaternion(quat / jnp.linalg.norm(quat)))

    points = jax.random.uniform(key3, (10, 3), minval=-1000.0, maxval=1000.0)
    back = se3.apply(se3.inverse(T), se3.apply(T, points))
    np.testing.assert_allclose(back, points, rtol=1e-9, atol=1e-9)


def test_transform_points_batched():
    """Batched transforms applied with vmap."""
    positions = jnp.tile(jnp.array([1.0, 2.0, 3.0]), (10, 1))
    transforms = se3.from_position_and_rotation(positions, jnp.tile(jnp.eye(3), (10, 1, 1)))
    points = jnp.array([[1.0, 0.0, 0.0], [0.0, 1.0, 0.0]])

    transformed = jax.vmap(lambda T: se3.apply(T, points))(transforms)

    assert transformed.shape == (10, 2, 3)
    np.testing.assert_allclose(transformed[3], points + positions[3], rtol=1e-6, atol=1e-6)
