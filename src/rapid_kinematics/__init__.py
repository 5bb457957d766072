"""
RAPID Kinematics: robot kinematics and RAPID code generation for ABB robots.

This library models six-axis ABB robots with external axes, solves forward
and closed-form inverse kinematics with JAX and numpy, and writes RAPID
program and system modules from an ordered list of actions.
"""

import jax
jax.config.update("jax_enable_x64", True)

# Import core modules
from . import transforms
from . import core
from . import kinematics
from . import actions
from . import io

from .errors import (
    ConfigError,
    JointPositionMismatchError,
    PresetError,
    RapidKinematicsError,
    RobotDefinitionError,
)
from .core import (
    ExternalAxis,
    ExternalJointPosition,
    Interval,
    Plane,
    Robot,
    RobotJointPosition,
    RobotTool,
    WorkObject,
)
from .kinematics import forward_kinematics, inverse_kinematics
from .io import available_presets, load_preset
from .rapid import RAPIDGenerator, generate_program, generate_system

__version__ = "0.1.0"
__all__ = [
    "transforms",
    "core",
    "kinematics",
    "actions",
    "io",
    "ConfigError",
    "JointPositionMismatchError",
    "PresetError",
    "RapidKinematicsError",
    "RobotDefinitionError",
    "ExternalAxis",
    "ExternalJointPosition",
    "Interval",
    "Plane",
    "Robot",
    "RobotJointPosition",
    "RobotTool",
    "WorkObject",
    "forward_kinematics",
    "inverse_kinematics",
    "available_presets",
    "load_preset",
    "RAPIDGenerator",
    "generate_program",
    "generate_system",
]
