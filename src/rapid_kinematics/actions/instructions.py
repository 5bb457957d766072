"""Single-line RAPID instructions: waits, I/O, synchronization and raw code."""

import enum
import functools
from dataclasses import dataclass
from typing import TYPE_CHECKING, Tuple

from ..core import RobotTool
from ..errors import ConfigError
from ..formatting import format_number, format_optional_time, format_signal
from .base import Action, ReferenceType, lookup, register_action
from .declarations import TaskList

if TYPE_CHECKING:
    from ..core import Robot
    from ..rapid import RAPIDGenerator


@register_action("WaitTime")
@dataclass(frozen=True)
class WaitTime(Action):
    duration: float

    @property
    def is_valid(self) -> bool:
        return float(self.duration) >= 0

    def to_rapid_instruction(self, robot: "Robot" = None) -> str:
        return f"WaitTime {format_number(self.duration)};"


@register_action("WaitDI")
@dataclass(frozen=True)
class WaitDI(Action):
    """Wait until a digital input has the given value."""
    name: str
    value: bool
    max_time: float = -1

    @property
    def is_valid(self) -> bool:
        return bool(self.name)

    def to_rapid_instruction(self, robot: "Robot" = None) -> str:
        return f"WaitDI {self.name}, {format_signal(self.value)}{format_optional_time('MaxTime', self.max_time)};"


@register_action("WaitDO")
@dataclass(frozen=True)
class WaitDO(Action):
    """Wait until a digital output has the given value."""
    name: str
    value: bool
    max_time: float = -1

    @property
    def is_valid(self) -> bool:
        return bool(self.name)

    def to_rapid_instruction(self, robot: "Robot" = None) -> str:
        return f"WaitDO {self.name}, {format_signal(self.value)}{format_optional_time('MaxTime', self.max_time)};"


@register_action("SetDigitalOutput")
@dataclass(frozen=True)
class SetDigitalOutput(Action):
    name: str
    value: bool

    @property
    def is_valid(self) -> bool:
        return bool(self.name)

    def to_rapid_instruction(self, robot: "Robot" = None) -> str:
        return f"SetDO {self.name}, {format_signal(self.value)};"


@register_action("SetAnalogOutput")
@dataclass(frozen=True)
class SetAnalogOutput(Action):
    name: str
    value: float

    @property
    def is_valid(self) -> bool:
        return bool(self.name)

    def to_rapid_instruction(self, robot: "Robot" = None) -> str:
        return f"SetAO {self.name}, {format_number(self.value)};"


@functools.lru_cache(maxsize=None)
def _shared_task_list(name: str, tasks: Tuple[str, ...]) -> TaskList:
    return TaskList(name, tasks)


def _task_list(data) -> TaskList:
    """Task list of a job file entry; equal entries give the same object."""
    if isinstance(data, TaskList):
        return data
    if isinstance(data, dict):
        return _shared_task_list(str(data.get("name", "")), tuple(str(task) for task in data.get("tasks", ())))
    raise ConfigError(f"Invalid task list: {data!r}")


def _sync_fields(data) -> dict:
    data = dict(data)
    if "task_list" in data:
        data["task_list"] = _task_list(data.get("task_list"))
    if "reference_type" in data:
        data["reference_type"] = ReferenceType.parse(data["reference_type"])
    return data


def _declare_syncident(generator: "RAPIDGenerator", action) -> None:
    generator.add_declaration(generator.syncidents, action.syncident, action.syncident_declaration(),
                              kind="syncident", multi_move=True, owner=action)


class _SyncInstruction(Action):
    """Instructions that meet the other tasks at a ``syncident``."""

    def syncident_declaration(self) -> str:
        return f"{self.reference_type.value} syncident {self.syncident};"

    def to_rapid_declaration(self, robot: "Robot" = None) -> str:
        return self.syncident_declaration()

    @classmethod
    def from_dict(cls, data, context) -> "_SyncInstruction":
        return super().from_dict(_sync_fields(data), context)


@register_action("SyncMoveOn")
@dataclass(frozen=True)
class SyncMoveOn(_SyncInstruction):
    """Start synchronized movements with the tasks in ``task_list``."""
    syncident: str
    task_list: TaskList
    time_out: float = -1
    reference_type: ReferenceType = ReferenceType.VAR

    @property
    def is_valid(self) -> bool:
        return bool(self.syncident) and self.task_list.is_valid

    def to_rapid_instruction(self, robot: "Robot" = None) -> str:
        return (f"SyncMoveOn {self.syncident}, {self.task_list.name}"
                f"{format_optional_time('TimeOut', self.time_out)};")

    def declare(self, generator: "RAPIDGenerator") -> None:
        _declare_syncident(generator, self)
        self.task_list.declare(generator)

    def instruct(self, generator: "RAPIDGenerator") -> None:
        generator.add_instruction(self.to_rapid_instruction())
        generator.synchronized_movements = True


@register_action("SyncMoveOff")
@dataclass(frozen=True)
class SyncMoveOff(_SyncInstruction):
    """End synchronized movements."""
    syncident: str
    time_out: float = -1
    reference_type: ReferenceType = ReferenceType.VAR

    @property
    def is_valid(self) -> bool:
        return bool(self.syncident)

    def to_rapid_instruction(self, robot: "Robot" = None) -> str:
        return f"SyncMoveOff {self.syncident}{format_optional_time('TimeOut', self.time_out)};"

    def declare(self, generator: "RAPIDGenerator") -> None:
        _declare_syncident(generator, self)

    def instruct(self, generator: "RAPIDGenerator") -> None:
        generator.add_instruction(self.to_rapid_instruction())
        generator.synchronized_movements = False


@register_action("WaitSyncTask")
@dataclass(frozen=True)
class WaitSyncTask(_SyncInstruction):
    """Wait until all tasks in ``task_list`` reach the same sync point."""
    syncident: str
    task_list: TaskList
    time_out: float = -1
    reference_type: ReferenceType = ReferenceType.VAR

    @property
    def is_valid(self) -> bool:
        return bool(self.syncident) and self.task_list.is_valid

    def to_rapid_instruction(self, robot: "Robot" = None) -> str:
        return (f"WaitSyncTask {self.syncident}, {self.task_list.name}"
                f"{format_optional_time('TimeOut', self.time_out)};")

    def declare(self, generator: "RAPIDGenerator") -> None:
        _declare_syncident(generator, self)
        self.task_list.declare(generator)


@register_action("Comment")
@dataclass(frozen=True)
class Comment(Action):
    text: str

    @property
    def is_valid(self) -> bool:
        return True

    def to_rapid_instruction(self, robot: "Robot" = None) -> str:
        return "\n".join(f"! {line}" for line in str(self.text).splitlines() or [""])


class CodeType(enum.Enum):
    INSTRUCTION = "instruction"
    DECLARATION = "declaration"


@register_action("CodeLine")
@dataclass(frozen=True)
class CodeLine(Action):
    """Raw RAPID text, placed with the declarations or the instructions."""
    code: str
    code_type: CodeType = CodeType.INSTRUCTION

    @classmethod
    def from_dict(cls, data, context) -> "CodeLine":
        data = dict(data)
        if "code_type" in data:
            try:
                data["code_type"] = CodeType(str(data["code_type"]).lower())
            except ValueError:
                raise ConfigError(f"Unknown code type: {data['code_type']!r}")
        return super().from_dict(data, context)

    @property
    def is_valid(self) -> bool:
        return bool(self.code)

    def to_rapid_declaration(self, robot: "Robot" = None) -> str:
        return self.code if self.code_type is CodeType.DECLARATION else ""

    def to_rapid_instruction(self, robot: "Robot" = None) -> str:
        return self.code if self.code_type is CodeType.INSTRUCTION else ""

    def declare(self, generator: "RAPIDGenerator") -> None:
        if self.code_type is CodeType.DECLARATION:
            generator.program_declarations.append(self.code)


@register_action("OverrideRobotTool")
@dataclass(frozen=True, eq=False)
class OverrideRobotTool(Action):
    """Use ``tool`` instead of the robot's own tool for the following movements."""
    tool: RobotTool

    @classmethod
    def from_dict(cls, data, context) -> "OverrideRobotTool":
        tool = data.get("tool")
        if isinstance(tool, str):
            tool = lookup(context, "tools", tool)
        return super().from_dict({**data, "tool": tool}, context)

    @property
    def is_valid(self) -> bool:
        return isinstance(self.tool, RobotTool) and self.tool.is_valid

    def to_rapid_instruction(self, robot: "Robot" = None) -> str:
        return f"! Robot tool overridden by {self.tool.name}"

    def declare(self, generator: "RAPIDGenerator") -> None:
        generator.set_tool(self.tool)

    def instruct(self, generator: "RAPIDGenerator") -> None:
        generator.set_tool(self.tool)
        generator.add_instruction(self.to_rapid_instruction())
