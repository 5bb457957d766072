"""SE(3) rigid-body transforms implemented with JAX.

Transforms are (..., 4, 4) homogeneous matrices. Robot joints are modelled as
se(3) twists ``[v, w]`` of a revolute axis through a point, so posing an axis
by an angle is ``exp(twist * angle)``. Lengths are in millimetres.
"""

import jax
import jax.numpy as jnp

from . import so3

Array = jax.Array


def from_position_and_rotation(p: Array, R: Array) -> Array:
    """
    Construct SE(3) transform from position and rotation.

    Args:
        p: (..., 3) position vector
        R: (..., 3, 3) rotation matrix

    Returns:
        (..., 4, 4) homogeneous transformation matrix
    """
    batch_shape = jnp.broadcast_shapes(p.shape[:-1], R.shape[:-2])
    p = jnp.broadcast_to(p, batch_shape + (3,))
    R = jnp.broadcast_to(R, batch_shape + (3, 3))

    T = jnp.zeros(batch_shape + (4, 4), dtype=p.dtype)
    T = T.at[..., :3, :3].set(R)
    T = T.at[..., :3, 3].set(p)
    T = T.at[..., 3, 3].set(1.0)

    return T


def identity() -> Array:
    return jnp.eye(4, dtype=jnp.float64)


def translation(vector: Array) -> Array:
    """Pure translation by ``vector``."""
    vector = jnp.asarray(vector, dtype=jnp.float64)
    return from_position_and_rotation(vector, jnp.eye(3, dtype=vector.dtype))


def revolute_twist(point: Array, direction: Array) -> Array:
    """
    Unit twist of a revolute joint.

    Args:
        point: (3,) any point on the rotation axis
        direction: (3,) rotation axis direction, normalised here

    Returns:
        (6,) twist ``[-w x p, w]``
    """
    point = jnp.asarray(point, dtype=jnp.float64)
    direction = jnp.asarray(direction, dtype=jnp.float64)
    direction = direction / jnp.linalg.norm(direction)
    return jnp.concatenate([-jnp.cross(direction, point), direction])


def prismatic_twist(direction: Array) -> Array:
    """Unit twist of a linear joint travelling along ``direction``."""
    direction = jnp.asarray(direction, dtype=jnp.float64)
    direction = direction / jnp.linalg.norm(direction)
    return jnp.concatenate([direction, jnp.zeros(3, dtype=direction.dtype)])


def rotation_about_axis(point: Array, direction: Array, angle) -> Array:
    """Rotation of ``angle`` radians about the line through ``point`` along ``direction``."""
    point = jnp.asarray(point, dtype=jnp.float64)
    R = so3.from_axis_angle(direction, angle)
    t = point - jnp.matmul(R, point)
    return from_position_and_rotation(t, R)


def exp(twist: Array) -> Array:
    """
    SE(3) exponential map: convert twist to transformation matrix.

    Uses Taylor series for small angles to avoid division by zero.

    Args:
        twist: (..., 6) array of twists [vx, vy, vz, wx, wy, wz].

    Returns:
        (..., 4, 4) array of transformation matrices.
    """
    v, w = twist[..., :3], twist[..., 3:]
    angle = jnp.linalg.norm(w, axis=-1, keepdims=True)
    eps = jnp.finfo(twist.dtype).eps

    R = so3.exp(w)

    angle_sq = angle * angle
    is_small_angle = angle < 1e-6

    # A = (1 - cos(theta)) / theta^2
    A = jnp.where(is_small_angle, 0.5 - angle_sq / 24.0, (1.0 - jnp.cos(angle)) / (angle_sq + eps))
    # B = (theta - sin(theta)) / theta^3
    B = jnp.where(is_small_angle, 1.0 / 6.0 - angle_sq / 120.0, (angle - jnp.sin(angle)) / (angle_sq * angle + eps))

    K = so3.skew_symmetric(w)
    K_sq = jnp.matmul(K, K)

    I = jnp.eye(3, dtype=twist.dtype)
    I = jnp.broadcast_to(I, K.shape)

    # V = I + A*K + B*K^2
    V = I + A[..., None] * K + B[..., None] * K_sq

    t = jnp.einsum("...ij,...j->...i", V, v)

    return from_position_and_rotation(t, R)


def multiply(T1: Array, T2: Array) -> Array:
    """T1 @ T2: apply ``T2`` first, then ``T1``."""
    return jnp.matmul(T1, T2)


def inverse(T: Array) -> Array:
    """
    Compute inverse of SE(3) transformation matrix.

    Uses the block structure T^-1 = [[R^T, -R^T @ t], [0, 1]].

    Args:
        T: (..., 4, 4) transformation matrix

    Returns:
        (..., 4, 4) inverse transformation matrix
    """
    R = T[..., :3, :3]
    t = T[..., :3, 3]

    R_inv = jnp.swapaxes(R, -1, -2)
    t_inv = -jnp.einsum("...ij,...j->...i", R_inv, t)

    return from_position_and_rotation(t_inv, R_inv)


def apply(T: Array, points: Array) -> Array:
    """
    Apply SE(3) transformation to points.

    Args:
        T: (..., 4, 4) transformation matrix
        points: (..., 3) or (N, 3) points to transform

    Returns:
        transformed points with the same shape as ``points``
    """
    ones = jnp.ones_like(points[..., 0:1])
    points_h = jnp.concatenate([points, ones], axis=-1)
    transformed_h = jnp.einsum("...ij,...j->...i", T, points_h) if points.ndim == 1 \
        else jnp.einsum("ij,nj->ni", T, points_h)
    return transformed_h[..., :3]


def apply_rotation(T: Array, vectors: Array) -> Array:
    """Rotate direction vectors by the rotation part of ``T``."""
    R = T[..., :3, :3]
    if vectors.ndim == 1:
        return jnp.einsum("ij,j->i", R, vectors)
    return jnp.einsum("ij,nj->ni", R, vectors)


def get_position(T: Array) -> Array:
    """(..., 3) translation part of ``T``."""
    return T[..., :3, 3]


def get_rotation(T: Array) -> Array:
    """(..., 3, 3) rotation part of ``T``."""
    return T[..., :3, :3]
