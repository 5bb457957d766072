"""
Rigid-body math for robot kinematics, written with JAX arrays.

- so3: rotation matrices, axis-angle and ABB-ordered quaternions
- se3: homogeneous transforms and joint twists
"""

from . import so3
from . import se3

__all__ = [
    "so3",
    "se3",
]
