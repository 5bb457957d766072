"""External axes: linear tracks and rotational positioners.

An external axis is a tagged record. ``axis_type`` decides whether a value is
a travel in millimetres along the axis plane normal or a rotation in degrees
about it. Axes are never posed in place; every pose call returns new geometry.
"""

import enum
from typing import List, Optional, Tuple

import jax
import jax.numpy as jnp
from flax import struct

from ..transforms import se3
from .geometry import Interval, Mesh, Plane

Array = jax.Array

AXIS_LOGIC = ("a", "b", "c", "d", "e", "f")


class AxisType(enum.Enum):
    LINEAR = "linear"
    ROTATIONAL = "rotational"


@struct.dataclass
class ExternalAxis:
    """
    A single external axis.

    Attributes:
        name: identifier used in RAPID (e.g. as ``ufmec`` of a work object)
        axis_type: LINEAR or ROTATIONAL
        attachment_plane: where the robot or the work object is coupled
        axis_plane: reference frame of the axis; the normal is the travel or
                    rotation direction
        axis_limits: travel limits in mm or degrees
        axis_number: logic number 0..5 (``None`` until attached to a robot)
        moves_robot: whether the axis carries the robot base
        base_mesh: fixed part of the axis
        link_mesh: moving part of the axis at value 0
    """
    name: str = struct.field(pytree_node=False)
    axis_type: AxisType = struct.field(pytree_node=False)
    attachment_plane: Plane
    axis_plane: Plane
    axis_limits: Interval
    axis_number: Optional[int] = struct.field(pytree_node=False, default=None)
    moves_robot: bool = struct.field(pytree_node=False, default=False)
    base_mesh: Mesh = struct.field(default_factory=Mesh.empty)
    link_mesh: Mesh = struct.field(default_factory=Mesh.empty)

    @classmethod
    def linear(cls, name: str, attachment_plane: Plane, axis_vector, axis_limits: Interval,
               axis_number: Optional[int] = None, moves_robot: bool = True,
               base_mesh: Optional[Mesh] = None, link_mesh: Optional[Mesh] = None) -> "ExternalAxis":
        """Linear track travelling along ``axis_vector`` from the attachment plane."""
        axis_plane = Plane.from_normal(attachment_plane.origin, axis_vector)
        return cls(
            name=name,
            axis_type=AxisType.LINEAR,
            attachment_plane=attachment_plane,
            axis_plane=axis_plane,
            axis_limits=axis_limits,
            axis_number=axis_number,
            moves_robot=moves_robot,
            base_mesh=base_mesh if base_mesh is not None else Mesh.empty(),
            link_mesh=link_mesh if link_mesh is not None else Mesh.empty(),
        )

    @classmethod
    def rotational(cls, name: str, axis_plane: Plane, axis_limits: Interval,
                   axis_number: Optional[int] = None, moves_robot: bool = False,
                   base_mesh: Optional[Mesh] = None, link_mesh: Optional[Mesh] = None) -> "ExternalAxis":
        """Positioner rotating about the normal of ``axis_plane``."""
        return cls(
            name=name,
            axis_type=AxisType.ROTATIONAL,
            attachment_plane=axis_plane,
            axis_plane=axis_plane,
            axis_limits=axis_limits,
            axis_number=axis_number,
            moves_robot=moves_robot,
            base_mesh=base_mesh if base_mesh is not None else Mesh.empty(),
            link_mesh=link_mesh if link_mesh is not None else Mesh.empty(),
        )

    @property
    def is_valid(self) -> bool:
        if not self.attachment_plane.is_valid or not self.axis_plane.is_valid:
            return False
        if not self.axis_limits.is_increasing:
            return False
        if self.axis_number is not None and not 0 <= self.axis_number < len(AXIS_LOGIC):
            return False
        return True

    @property
    def axis_logic(self) -> str:
        if self.axis_number is None:
            return "-"
        return AXIS_LOGIC[self.axis_number]

    def with_axis_number(self, axis_number: int) -> "ExternalAxis":
        return self.replace(axis_number=axis_number)

    def _matrix(self, value: float) -> Array:
        if self.axis_type is AxisType.LINEAR:
            return se3.translation(self.axis_plane.normal * float(value))
        return se3.rotation_about_axis(self.axis_plane.origin, self.axis_plane.normal,
                                       jnp.deg2rad(float(value)))

    def calculate_transformation_matrix(self, value: float) -> Tuple[Array, bool]:
        """Transform of the moving link for ``value``, plus whether it is within the limits."""
        return self._matrix(value), self.axis_limits.includes(value)

    def calculate_transformation_matrix_clamped(self, value: float) -> Array:
        return self._matrix(self.axis_limits.clamp(value))

    def calculate_position(self, value: float) -> Tuple[Plane, bool]:
        """Posed attachment plane for ``value``."""
        matrix, in_limits = self.calculate_transformation_matrix(value)
        return self.attachment_plane.transform(matrix), in_limits

    def calculate_position_clamped(self, value: float) -> Plane:
        return self.attachment_plane.transform(self.calculate_transformation_matrix_clamped(value))

    def pose_meshes(self, value: float) -> List[Mesh]:
        """``[base mesh, posed link mesh]`` for ``value``."""
        matrix, _ = self.calculate_transformation_matrix(value)
        return [self.base_mesh, self.link_mesh.transform(matrix)]

    def transform(self, matrix: Array) -> "ExternalAxis":
        return self.replace(
            attachment_plane=self.attachment_plane.transform(matrix),
            axis_plane=self.axis_plane.transform(matrix),
            base_mesh=self.base_mesh.transform(matrix),
            link_mesh=self.link_mesh.transform(matrix),
        )

    def __str__(self) -> str:
        kind = "Linear" if self.axis_type is AxisType.LINEAR else "Rotational"
        if not self.is_valid:
            return f"Invalid External {kind} Axis"
        return f"External {kind} Axis ({self.name})"
