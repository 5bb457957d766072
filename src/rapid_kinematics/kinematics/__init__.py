"""Forward and inverse kinematics of the robot model."""

from .chain import ForwardKinematicsResult, compound_twists, forward_kinematics
from .inverse import IKConfiguration, InverseKinematicsResult, inverse_kinematics
from . import subproblems

__all__ = [
    "ForwardKinematicsResult",
    "compound_twists",
    "forward_kinematics",
    "IKConfiguration",
    "InverseKinematicsResult",
    "inverse_kinematics",
    "subproblems",
]
