"""Exceptions raised by rapid_kinematics.

Everything derives from ``ValueError`` so callers that only guard against bad
input keep working.
"""


class RapidKinematicsError(ValueError):
    """Base class for all package errors."""


class RobotDefinitionError(RapidKinematicsError):
    """A robot, tool or external axis definition is inconsistent."""


class JointPositionMismatchError(RapidKinematicsError):
    """A defined external axis value was combined with an undefined (9E9) one."""


class PresetError(RapidKinematicsError):
    """A robot preset is unknown or its file is malformed."""


class ConfigError(RapidKinematicsError):
    """A generator configuration or job file is malformed."""
