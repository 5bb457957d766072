"""Geometry records shared by the robot model: planes, intervals and meshes.

A ``Plane`` is an oriented frame (origin plus orthonormal X and Y axes, the
normal is the Z axis). Planes play the role of coordinate systems everywhere:
robot axes, tool frames, targets and work objects.
"""

from typing import Optional, Tuple

import jax
import jax.numpy as jnp
import numpy as np
from flax import struct

from ..transforms import se3, so3

Array = jax.Array


def _as_vector(values) -> Array:
    vector = jnp.asarray(values, dtype=jnp.float64)
    if vector.shape != (3,):
        raise ValueError(f"Expected a 3D vector, got shape {vector.shape}")
    return vector


def _perpendicular_to(v) -> Tuple[float, float, float]:
    """Vector perpendicular to ``v`` using the usual CAD convention.

    The two largest components of ``v`` are swapped and one is negated, so a
    plane built from the normal (1, 0, 0) gets (0, 1, 0) as its X axis.
    """
    x, y, z = (float(c) for c in v)
    ax, ay, az = abs(x), abs(y), abs(z)
    result = [0.0, 0.0, 0.0]

    if ay > ax:
        if az > ay:
            i, j, k, a, b = 2, 1, 0, z, -y
        elif az >= ax:
            i, j, k, a, b = 1, 2, 0, y, -z
        else:
            i, j, k, a, b = 1, 0, 2, y, -x
    elif az > ax:
        i, j, k, a, b = 2, 0, 1, z, -x
    elif az > ay:
        i, j, k, a, b = 0, 2, 1, x, -z
    else:
        i, j, k, a, b = 0, 1, 2, x, -y

    result[i] = b
    result[j] = a
    result[k] = 0.0
    return tuple(result)


@struct.dataclass
class Plane:
    """Oriented frame with origin and orthonormal X/Y axes (mm)."""
    origin: Array
    x_axis: Array
    y_axis: Array

    @classmethod
    def world_xy(cls) -> "Plane":
        return cls(
            origin=jnp.zeros(3, dtype=jnp.float64),
            x_axis=jnp.array([1.0, 0.0, 0.0], dtype=jnp.float64),
            y_axis=jnp.array([0.0, 1.0, 0.0], dtype=jnp.float64),
        )

    @classmethod
    def from_axes(cls, origin, x_axis, y_axis) -> "Plane":
        """Plane through ``origin``; ``y_axis`` is re-orthogonalised against ``x_axis``."""
        origin = _as_vector(origin)
        x = _as_vector(x_axis)
        y = _as_vector(y_axis)

        x_length = jnp.linalg.norm(x)
        z = jnp.cross(x, y)
        z_length = jnp.linalg.norm(z)
        if float(x_length) < 1e-12 or float(z_length) < 1e-12:
            raise ValueError("Plane axes must be non-zero and not parallel")

        x = x / x_length
        z = z / z_length
        y = jnp.cross(z, x)
        return cls(origin=origin, x_axis=x, y_axis=y)

    @classmethod
    def from_normal(cls, origin, normal) -> "Plane":
        """Plane through ``origin`` with Z axis ``normal`` and a derived X axis."""
        normal = _as_vector(normal)
        length = float(jnp.linalg.norm(normal))
        if length < 1e-12:
            raise ValueError("Plane normal must be non-zero")
        z = normal / length
        x = jnp.asarray(_perpendicular_to(z), dtype=jnp.float64)
        x = x / jnp.linalg.norm(x)
        y = jnp.cross(z, x)
        return cls(origin=_as_vector(origin), x_axis=x, y_axis=y / jnp.linalg.norm(y))

    @classmethod
    def from_matrix(cls, matrix: Array) -> "Plane":
        matrix = jnp.asarray(matrix, dtype=jnp.float64)
        if matrix.shape != (4, 4):
            raise ValueError(f"matrix must have shape (4, 4), got {matrix.shape}")
        return cls(origin=matrix[:3, 3], x_axis=matrix[:3, 0], y_axis=matrix[:3, 1])

    @property
    def normal(self) -> Array:
        return jnp.cross(self.x_axis, self.y_axis)

    @property
    def z_axis(self) -> Array:
        return self.normal

    @property
    def is_valid(self) -> bool:
        values = np.concatenate([np.asarray(self.origin), np.asarray(self.x_axis), np.asarray(self.y_axis)])
        if not np.all(np.isfinite(values)):
            return False
        return float(np.linalg.norm(np.cross(np.asarray(self.x_axis), np.asarray(self.y_axis)))) > 1e-9

    def to_matrix(self) -> Array:
        """4x4 frame matrix mapping plane coordinates to world coordinates."""
        R = jnp.stack([self.x_axis, self.y_axis, self.normal], axis=-1)
        return se3.from_position_and_rotation(self.origin, R)

    def transform(self, matrix: Array) -> "Plane":
        return Plane(
            origin=se3.apply(matrix, self.origin),
            x_axis=se3.apply_rotation(matrix, self.x_axis),
            y_axis=se3.apply_rotation(matrix, self.y_axis),
        )

    def rotate(self, angle: float, axis: Optional[Array] = None, center: Optional[Array] = None) -> "Plane":
        """Rotate by ``angle`` radians about ``axis`` (default: the normal) through ``center``."""
        axis = self.normal if axis is None else _as_vector(axis)
        center = self.origin if center is None else _as_vector(center)
        return self.transform(se3.rotation_about_axis(center, axis, angle))

    def translate(self, vector) -> "Plane":
        return self.replace(origin=self.origin + _as_vector(vector))

    def flip_x(self) -> "Plane":
        """Reverse the normal by negating the X axis."""
        return self.replace(x_axis=-self.x_axis)

    def flip_y(self) -> "Plane":
        """Reverse the normal by negating the Y axis."""
        return self.replace(y_axis=-self.y_axis)

    def distance_to(self, other: "Plane") -> float:
        return float(jnp.linalg.norm(self.origin - other.origin))


def plane_to_plane(source: Plane, target: Plane) -> Array:
    """Rigid transform that maps frame ``source`` onto frame ``target``."""
    return se3.multiply(target.to_matrix(), se3.inverse(source.to_matrix()))


def plane_to_quaternion(plane: Plane, reference: Optional[Plane] = None) -> Tuple[Array, Array]:
    """
    Express ``plane`` relative to ``reference`` as origin and quaternion.

    Args:
        plane: the plane to convert
        reference: the coordinate system to express it in (default world XY)

    Returns:
        Tuple of (3,) origin in reference coordinates and (4,) quaternion
        ``[w, x, y, z]`` with ``w >= 0``.
    """
    local = plane.to_matrix()
    if reference is not None:
        local = se3.multiply(se3.inverse(reference.to_matrix()), local)
    return se3.get_position(local), so3.to_quaternion(se3.get_rotation(local))


def quaternion_to_plane(origin, quaternion, reference: Optional[Plane] = None) -> Plane:
    """Inverse of :func:`plane_to_quaternion`."""
    R = so3.from_quaternion(jnp.asarray(quaternion, dtype=jnp.float64))
    plane = Plane.from_matrix(se3.from_position_and_rotation(_as_vector(origin), R))
    if reference is not None:
        plane = plane.transform(reference.to_matrix())
    return plane


@struct.dataclass
class Interval:
    """Closed numeric interval, used for axis limits (degrees or mm)."""
    min: float
    max: float

    @property
    def lower(self) -> float:
        return min(float(self.min), float(self.max))

    @property
    def upper(self) -> float:
        return max(float(self.min), float(self.max))

    @property
    def length(self) -> float:
        return float(self.max) - float(self.min)

    @property
    def mid(self) -> float:
        return 0.5 * (float(self.min) + float(self.max))

    @property
    def is_increasing(self) -> bool:
        return float(self.max) > float(self.min)

    def includes(self, value: float, tolerance: float = 1e-9) -> bool:
        return self.lower - tolerance <= float(value) <= self.upper + tolerance

    def clamp(self, value: float) -> float:
        return min(max(float(value), self.lower), self.upper)


@struct.dataclass
class Mesh:
    """Triangle mesh as vertex (N, 3) and face (M, 3) arrays."""
    vertices: Array
    faces: Array

    @classmethod
    def empty(cls) -> "Mesh":
        return cls(
            vertices=jnp.zeros((0, 3), dtype=jnp.float64),
            faces=jnp.zeros((0, 3), dtype=jnp.int32),
        )

    @classmethod
    def from_arrays(cls, vertices, faces) -> "Mesh":
        vertices = jnp.asarray(vertices, dtype=jnp.float64).reshape(-1, 3)
        faces = jnp.asarray(faces, dtype=jnp.int32).reshape(-1, 3)
        return cls(vertices=vertices, faces=faces)

    @property
    def is_empty(self) -> bool:
        return self.vertices.shape[0] == 0

    def transform(self, matrix: Array) -> "Mesh":
        if self.is_empty:
            return self
        return self.replace(vertices=se3.apply(matrix, self.vertices))
