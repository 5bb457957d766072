"""Work object record and its RAPID ``wobjdata`` declaration."""

from typing import Optional

import jax
import jax.numpy as jnp
from flax import struct

from ..formatting import format_bool, format_quaternion_component, format_vector
from .external_axis import ExternalAxis
from .geometry import Plane, plane_to_quaternion

Array = jax.Array


def _pose(plane: Plane, reference: Optional[Plane] = None) -> str:
    position, quaternion = plane_to_quaternion(plane, reference)
    quat = "[" + ", ".join(format_quaternion_component(q) for q in quaternion) + "]"
    return f"[{format_vector(position)}, {quat}]"


@struct.dataclass
class WorkObject:
    """
    A user frame with an object frame on top of it.

    When ``external_axis`` is set the work object is carried by that axis
    (e.g. a rotary table) and the controller moves the user frame with it.
    """
    name: str = struct.field(pytree_node=False)
    user_frame: Plane
    object_frame: Plane = struct.field(default_factory=Plane.world_xy)
    external_axis: Optional[ExternalAxis] = None

    @classmethod
    def wobj0(cls) -> "WorkObject":
        return cls(name="wobj0", user_frame=Plane.world_xy())

    @property
    def is_valid(self) -> bool:
        if not self.name:
            return False
        if self.external_axis is not None and not self.external_axis.is_valid:
            return False
        return self.user_frame.is_valid and self.object_frame.is_valid

    @property
    def fixed_frame(self) -> bool:
        return self.external_axis is None

    @property
    def global_plane(self) -> Plane:
        """Object frame expressed in world coordinates."""
        return self.object_frame.transform(self.user_frame.to_matrix())

    def with_external_axis(self, external_axis: Optional[ExternalAxis]) -> "WorkObject":
        return self.replace(external_axis=external_axis)

    def duplicate(self) -> "WorkObject":
        return jax.tree_util.tree_map(jnp.array, self)

    def to_rapid_declaration(self) -> str:
        if self.external_axis is None:
            ufmec = ""
            user_frame = _pose(self.user_frame)
        else:
            ufmec = self.external_axis.name
            user_frame = _pose(self.user_frame, self.external_axis.attachment_plane)
        return (
            f"PERS wobjdata {self.name} := [FALSE, {format_bool(self.fixed_frame)}, \"{ufmec}\", "
            f"{user_frame}, {_pose(self.object_frame)}];"
        )

    def __str__(self) -> str:
        if not self.is_valid:
            return "Invalid Work Object"
        return f"Work Object ({self.name})"
