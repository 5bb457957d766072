"""Program actions and the registry that builds them from job files.

Importing this package registers every action type in ``ACTION_TYPES``.
"""

from .base import ACTION_TYPES, Action, ReferenceType, action_from_dict, parse_plane, register_action
from .declarations import PREDEFINED_SPEEDS, PREDEFINED_ZONES, JointTarget, RobotTarget, SpeedData, TaskList, ZoneData
from .instructions import (
    CodeLine,
    CodeType,
    Comment,
    OverrideRobotTool,
    SetAnalogOutput,
    SetDigitalOutput,
    SyncMoveOff,
    SyncMoveOn,
    WaitDI,
    WaitDO,
    WaitSyncTask,
    WaitTime,
)
from .movements import AbsoluteJointMovement, Movement, MovementType

__all__ = [
    "ACTION_TYPES",
    "Action",
    "ReferenceType",
    "action_from_dict",
    "parse_plane",
    "register_action",
    "PREDEFINED_SPEEDS",
    "PREDEFINED_ZONES",
    "JointTarget",
    "RobotTarget",
    "SpeedData",
    "TaskList",
    "ZoneData",
    "CodeLine",
    "CodeType",
    "Comment",
    "OverrideRobotTool",
    "SetAnalogOutput",
    "SetDigitalOutput",
    "SyncMoveOff",
    "SyncMoveOn",
    "WaitDI",
    "WaitDO",
    "WaitSyncTask",
    "WaitTime",
    "AbsoluteJointMovement",
    "Movement",
    "MovementType",
]
