"""Robot tool record and its RAPID ``tooldata`` declaration."""

from typing import Optional

import jax
import jax.numpy as jnp
from flax import struct

from ..formatting import format_bool, format_number, format_quaternion_component, format_vector
from .geometry import Mesh, Plane, plane_to_quaternion

Array = jax.Array


@struct.dataclass
class RobotTool:
    """
    End effector mounted on the robot flange.

    Attributes:
        name: RAPID identifier
        attachment_plane: frame of the tool that mates with the mounting frame
        tool_plane: tool centre point frame, in the same coordinates as the
                    attachment plane
        mass: tool mass in kg
        center_of_gravity: (3,) centre of gravity relative to the attachment plane
        mesh: tool geometry in attachment coordinates
        robot_hold: whether the robot holds the tool
    """
    name: str = struct.field(pytree_node=False)
    attachment_plane: Plane
    tool_plane: Plane
    mass: float = 0.001
    center_of_gravity: Array = struct.field(default_factory=lambda: jnp.array([0.0, 0.0, 0.001]))
    mesh: Mesh = struct.field(default_factory=Mesh.empty)
    robot_hold: bool = struct.field(pytree_node=False, default=True)

    @classmethod
    def tool0(cls) -> "RobotTool":
        """The controller's predefined flange tool."""
        return cls(name="tool0", attachment_plane=Plane.world_xy(), tool_plane=Plane.world_xy())

    @classmethod
    def create(cls, name: str, attachment_plane: Plane, tool_plane: Plane, mass: float = 0.001,
               center_of_gravity=(0.0, 0.0, 0.001), mesh: Optional[Mesh] = None,
               robot_hold: bool = True) -> "RobotTool":
        return cls(
            name=name,
            attachment_plane=attachment_plane,
            tool_plane=tool_plane,
            mass=float(mass),
            center_of_gravity=jnp.asarray(center_of_gravity, dtype=jnp.float64),
            mesh=mesh if mesh is not None else Mesh.empty(),
            robot_hold=robot_hold,
        )

    @property
    def is_valid(self) -> bool:
        if not self.name:
            return False
        return self.attachment_plane.is_valid and self.tool_plane.is_valid and float(self.mass) > 0

    def duplicate(self) -> "RobotTool":
        """Independent copy with freshly allocated arrays."""
        return jax.tree_util.tree_map(jnp.array, self)

    def to_rapid_declaration(self) -> str:
        position, quaternion = plane_to_quaternion(self.tool_plane, self.attachment_plane)
        quat = "[" + ", ".join(format_quaternion_component(q) for q in quaternion) + "]"
        return (
            f"PERS tooldata {self.name} := [{format_bool(self.robot_hold)}, "
            f"[{format_vector(position)}, {quat}], "
            f"[{format_number(self.mass)}, {format_vector(self.center_of_gravity)}, "
            f"[1, 0, 0, 0], 0, 0, 0]];"
        )

    def __str__(self) -> str:
        if not self.is_valid:
            return "Invalid Robot Tool"
        return f"Robot Tool ({self.name})"
