"""SO(3) rotation helpers in JAX.

Rotations are plain (..., 3, 3) matrices. Quaternions follow the ABB RAPID
ordering ``[q1, q2, q3, q4] = [w, x, y, z]`` used in robtarget, tooldata and
wobjdata records.
"""

import jax
import jax.numpy as jnp

Array = jax.Array


def exp(log_r: Array) -> Array:
    """
    SO(3) exponential map: convert axis-angle vector to rotation matrix.

    Implements Rodrigues' formula. The magnitude of ``log_r`` is the rotation
    angle in radians, its direction the rotation axis.

    Args:
        log_r: (..., 3) array of axis-angle vectors

    Returns:
        (..., 3, 3) array of rotation matrices
    """
    angle = jnp.linalg.norm(log_r, axis=-1, keepdims=True)

    # Taylor expansion below the threshold
    small_angle = angle < 1e-8
    cos_angle = jnp.where(small_angle, 1.0 - 0.5 * angle**2, jnp.cos(angle))
    sin_angle = jnp.where(small_angle, angle - angle**3 / 6.0, jnp.sin(angle))

    axis = jnp.where(angle > 1e-8, log_r / jnp.where(angle > 1e-8, angle, 1.0), log_r)
    K = skew_symmetric(axis)

    I = jnp.eye(3, dtype=log_r.dtype)
    I = jnp.broadcast_to(I, log_r.shape[:-1] + (3, 3))

    # R = I + sin(θ) * K + (1 - cos(θ)) * K²
    return (I +
            sin_angle[..., None] * K +
            (1.0 - cos_angle)[..., None] * jnp.matmul(K, K))


def from_axis_angle(axis: Array, angle) -> Array:
    """Rotation of ``angle`` radians about ``axis`` (normalised here)."""
    axis = jnp.asarray(axis, dtype=jnp.float64)
    axis = axis / jnp.linalg.norm(axis, axis=-1, keepdims=True)
    return exp(axis * jnp.asarray(angle, dtype=jnp.float64)[..., None])


def skew_symmetric(v: Array) -> Array:
    """
    Convert 3D vector to skew-symmetric (cross-product) matrix.

    Args:
        v: (..., 3) vector

    Returns:
        (..., 3, 3) skew-symmetric matrix
    """
    zeros = jnp.zeros(v.shape[:-1], dtype=v.dtype)

    return jnp.stack([
        jnp.stack([zeros, -v[..., 2], v[..., 1]], axis=-1),
        jnp.stack([v[..., 2], zeros, -v[..., 0]], axis=-1),
        jnp.stack([-v[..., 1], v[..., 0], zeros], axis=-1)
    ], axis=-2)


def from_quaternion(quaternions: Array) -> Array:
    """
    Convert quaternions to rotation matrices.

    Args:
        quaternions: (..., 4) array of quaternions in (w, x, y, z) format

    Returns:
        (..., 3, 3) array of rotation matrices
    """
    quaternions = quaternions / jnp.linalg.norm(quaternions, axis=-1, keepdims=True)

    w, x, y, z = jnp.moveaxis(quaternions, -1, 0)

    xx, yy, zz = x*x, y*y, z*z
    wx, wy, wz = w*x, w*y, w*z
    xy, xz, yz = x*y, x*z, y*z

    return jnp.stack([
        jnp.stack([1 - 2*(yy + zz), 2*(xy - wz), 2*(xz + wy)], axis=-1),
        jnp.stack([2*(xy + wz), 1 - 2*(xx + zz), 2*(yz - wx)], axis=-1),
        jnp.stack([2*(xz - wy), 2*(yz + wx), 1 - 2*(xx + yy)], axis=-1)
    ], axis=-2)


def to_quaternion(matrix: Array) -> Array:
    """
    Convert rotation matrices to quaternions (w, x, y, z).

    The scalar part is kept non-negative, which is the form the ABB controller
    prints back for robtargets.

    Args:
        matrix: (..., 3, 3) array of rotation matrices

    Returns:
        (..., 4) array of unit quaternions
    """
    m00 = matrix[..., 0, 0]
    m01 = matrix[..., 0, 1]
    m02 = matrix[..., 0, 2]
    m10 = matrix[..., 1, 0]
    m11 = matrix[..., 1, 1]
    m12 = matrix[..., 1, 2]
    m20 = matrix[..., 2, 0]
    m21 = matrix[..., 2, 1]
    m22 = matrix[..., 2, 2]

    trace = m00 + m11 + m22
    eps = jnp.finfo(matrix.dtype).eps

    # Four candidates, one per dominant diagonal term
    q0 = jnp.stack([trace + 1.0, m21 - m12, m02 - m20, m10 - m01], axis=-1) * 0.5
    q1 = jnp.stack([m21 - m12, m00 - m11 - m22 + 1.0, m01 + m10, m02 + m20], axis=-1) * 0.5
    q2 = jnp.stack([m02 - m20, m01 + m10, m11 - m00 - m22 + 1.0, m12 + m21], axis=-1) * 0.5
    q3 = jnp.stack([m10 - m01, m02 + m20, m12 + m21, m22 - m00 - m11 + 1.0], axis=-1) * 0.5

    s0 = 1.0 / jnp.sqrt(jnp.maximum(1.0 + trace, eps))
    s1 = 1.0 / jnp.sqrt(jnp.maximum(1.0 + m00 - m11 - m22, eps))
    s2 = 1.0 / jnp.sqrt(jnp.maximum(1.0 + m11 - m00 - m22, eps))
    s3 = 1.0 / jnp.sqrt(jnp.maximum(1.0 + m22 - m00 - m11, eps))

    q0 = q0 * s0[..., None]
    q1 = q1 * s1[..., None]
    q2 = q2 * s2[..., None]
    q3 = q3 * s3[..., None]

    mask0 = (trace > 0)
    mask1 = (~mask0) & (m00 > m11) & (m00 > m22)
    mask2 = (~mask0) & (~mask1) & (m11 > m22)
    mask3 = (~mask0) & (~mask1) & (~mask2)

    quaternion = (
        jnp.where(mask0[..., None], q0, 0) +
        jnp.where(mask1[..., None], q1, 0) +
        jnp.where(mask2[..., None], q2, 0) +
        jnp.where(mask3[..., None], q3, 0)
    )

    quaternion = jnp.where(quaternion[..., 0:1] < 0, -quaternion, quaternion)
    return quaternion / jnp.linalg.norm(quaternion, axis=-1, keepdims=True)


def _interpolation_inputs(q1: Array, q2: Array, t):
    t = jnp.clip(t, 0.0, 1.0)
    cos_theta = jnp.sum(q1 * q2, axis=-1, keepdims=True)
    # take the shorter arc
    sign = jnp.where(cos_theta < 0, -1.0, 1.0)
    return t, cos_theta, sign


def slerp(q1: Array, q2: Array, t) -> Array:
    """
    Spherical linear interpolation between quaternions.

    Args:
        q1: (..., 4) start quaternions (w, x, y, z)
        q2: (..., 4) end quaternions
        t: interpolation parameter, clipped to [0, 1]

    Returns:
        (..., 4) interpolated quaternions
    """
    t, cos_theta, sign = _interpolation_inputs(q1, q2, t)
    cos_theta = jnp.abs(cos_theta)

    # nearly aligned quaternions fall back to linear weights
    aligned = cos_theta > 1.0 - 1e-6
    theta = jnp.arccos(jnp.clip(cos_theta, -1.0, 1.0))
    sin_theta = jnp.where(aligned, 1.0, jnp.sin(theta))

    ratio1 = jnp.where(aligned, 1.0 - t, jnp.sin((1.0 - t) * theta) / sin_theta)
    ratio2 = sign * jnp.where(aligned, t, jnp.sin(t * theta) / sin_theta)
    return q1 * ratio1 + q2 * ratio2


def lerp(q1: Array, q2: Array, t) -> Array:
    """Linear interpolation along the shorter arc. The result is not normalized."""
    t, _, sign = _interpolation_inputs(q1, q2, t)
    return q1 * (1.0 - t) + q2 * (sign * t)
