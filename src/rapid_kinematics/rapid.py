"""RAPID program and system module generation.

The generator walks an ordered list of actions twice. The first pass
collects declarations (deduplicated by name per data type), the second pass
writes the instructions. Problems that do not stop generation, such as a
name collision or an unreachable target, are logged and collected in
``RAPIDGenerator.warnings``.
"""

import logging
import os
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence, Tuple

from .actions import PREDEFINED_SPEEDS, PREDEFINED_ZONES, Action, SpeedData, ZoneData
from .core import Robot, RobotTool, WorkObject
from .errors import RapidKinematicsError

logger = logging.getLogger(__name__)

DECLARATION_INDENT = "    "
INSTRUCTION_INDENT = "        "

# errors a malformed action can raise from its hooks; the action is skipped
ACTION_ERRORS = (RapidKinematicsError, TypeError, AttributeError, ValueError, ArithmeticError)

BASE_SYSTEM_DATA = [
    "PERS tooldata tool0 := [TRUE, [[0, 0, 0], [1, 0, 0, 0]], [0.001, [0, 0, 0.001], [1, 0, 0, 0], 0, 0, 0]];",
    "PERS wobjdata wobj0 := [FALSE, TRUE, \"\", [[0, 0, 0], [1, 0, 0, 0]], [[0, 0, 0], [1, 0, 0, 0]]];",
    "PERS loaddata load0 := [0.001, [0, 0, 0.001], [1, 0, 0, 0], 0, 0, 0];",
]


def _generated_by() -> str:
    from . import __version__
    return f"! This RAPID code was generated with rapid-kinematics v{__version__}"


def _indent(lines: Iterable[str], indent: str) -> List[str]:
    result = []
    for text in lines:
        result.extend(indent + line if line else "" for line in text.splitlines() or [""])
    return result


def _collision_message(kind: str, name: str, same_values: bool) -> str:
    if same_values:
        return f"The {kind} name {name!r} is already declared elsewhere; the first declaration is kept."
    return (f"The {kind} name {name!r} is already declared with different values; "
            f"the first declaration is kept.")


def _is_silent_redeclaration(existing_declaration: str, existing_owner, declaration: str, owner) -> bool:
    """Predefined data re-used as is, or one object declared again."""
    if existing_declaration != declaration:
        return False
    return existing_owner is None or existing_owner is owner


def _user_declarations(items, predefined: Dict[str, str], kind: str, warn: Callable[[str], None]) -> List[str]:
    declared = {name: (text, None) for name, text in predefined.items()}
    declarations = []
    for item in items:
        text = item.to_rapid_declaration()
        if item.name in declared:
            existing, owner = declared[item.name]
            if not _is_silent_redeclaration(existing, owner, text, item):
                warn(_collision_message(kind, item.name, existing == text))
            continue
        declared[item.name] = (text, item)
        declarations.append(text)
    return declarations


def system_module(
    system_name: str = "BASE",
    tools: Sequence[RobotTool] = (),
    work_objects: Sequence[WorkObject] = (),
    custom_code: Sequence[str] = (),
    warn: Optional[Callable[[str], None]] = None,
) -> str:
    """Text of a system module with tool data, work object data and custom lines."""
    warn = warn if warn is not None else logger.warning
    is_base = system_name == "BASE"

    header = f"MODULE {system_name} (SYSMODULE, NOSTEPIN, VIEWONLY)" if is_base else f"MODULE {system_name} (SYSMODULE)"
    lines = [header, "", DECLARATION_INDENT + _generated_by(), ""]
    lines += _indent(["! System module with basic predefined system data",
                      "!************************************************"], DECLARATION_INDENT)
    lines.append("")

    predefined_tools: Dict[str, str] = {}
    predefined_work_objects: Dict[str, str] = {}
    if is_base:
        lines += _indent(["! System data tool0, wobj0 and load0",
                          "! Do not translate or delete tool0, wobj0, load0"] + BASE_SYSTEM_DATA, DECLARATION_INDENT)
        lines.append("")
        predefined_tools["tool0"] = BASE_SYSTEM_DATA[0]
        predefined_work_objects["wobj0"] = BASE_SYSTEM_DATA[1]

    tool_lines = _user_declarations(tools, predefined_tools, "tool", warn)
    if tool_lines:
        lines += _indent(["! User defined tooldata"] + tool_lines, DECLARATION_INDENT)
        lines.append("")

    work_object_lines = _user_declarations(work_objects, predefined_work_objects, "work object", warn)
    if work_object_lines:
        lines += _indent(["! User defined wobjdata"] + work_object_lines, DECLARATION_INDENT)
        lines.append("")

    if custom_code:
        lines += _indent(["! User defined custom code lines"] + list(custom_code), DECLARATION_INDENT)
        lines.append("")

    lines.append("ENDMODULE")
    return "\n".join(lines)


class RAPIDGenerator:
    """
    Turns a list of actions into a RAPID program module.

    Args:
        robot: the robot the program is written for
        program_name: name of the program module (and its ``.mod`` file)
        system_name: name of the system module (and its ``.sys`` file)
        output_directory: directory the modules are written to
        save_to_file: write the modules when they are created
        check_reachability: check robot targets with inverse kinematics
    """

    def __init__(
        self,
        robot: Robot,
        program_name: str = "MainModule",
        system_name: str = "BASE",
        output_directory: Optional[str] = None,
        save_to_file: bool = False,
        check_reachability: bool = True,
    ):
        self.robot = robot.duplicate()
        self.program_name = program_name
        self.system_name = system_name
        self.output_directory = output_directory
        self.save_to_file = save_to_file
        self.check_reachability = check_reachability

        self.program_code = ""
        self.system_code = ""
        self._robots: Dict[int, Tuple[RobotTool, Robot]] = {}
        self._reset()

    @classmethod
    def from_config(cls, robot: Robot, config) -> "RAPIDGenerator":
        return cls(
            robot,
            program_name=config.program_name,
            system_name=config.system_name,
            output_directory=config.output_directory,
            save_to_file=config.save_to_file,
            check_reachability=config.check_reachability,
        )

    def _reset(self) -> None:
        self._robots.clear()
        self._owners: Dict[Tuple[int, str], Any] = {}
        self.current_tool = self.robot.tool
        self.current_robot = self.robot

        self.speed_datas = {name: SpeedData.predefined(name).declaration_text() for name in PREDEFINED_SPEEDS}
        self.zone_datas = {name: ZoneData.predefined(name).declaration_text() for name in PREDEFINED_ZONES}
        self.targets: Dict[str, str] = {}
        self.syncidents: Dict[str, str] = {}
        self.task_lists: Dict[str, str] = {}

        self.program_declarations: List[str] = []
        self.program_declarations_multi_move: List[str] = []
        self.program_instructions: List[str] = []

        self.synchronized_movements = False
        self.first_movement_is_move_abs = False
        self._movement_seen = False
        self.warnings: List[str] = []

    def warn(self, message: str) -> None:
        logger.warning(message)
        self.warnings.append(message)

    def add_declaration(self, table: Dict[str, str], name: str, declaration: str,
                        kind: str = "declaration", multi_move: bool = False, owner: Any = None) -> bool:
        """
        Declare ``name`` once.

        ``owner`` is the object the declaration comes from. The same owner
        declaring the same text again (a target shared by several movements)
        is silent, as is re-using predefined data. Any other re-use of a name
        keeps the first declaration and adds a warning.

        Returns:
            True when the declaration was added.
        """
        key = (id(table), name)
        existing = table.get(name)
        if existing is not None:
            if not _is_silent_redeclaration(existing, self._owners.get(key), declaration, owner):
                self.warn(_collision_message(kind, name, existing == declaration))
            return False

        table[name] = declaration
        self._owners[key] = owner
        if multi_move:
            self.program_declarations_multi_move.append(declaration)
        else:
            self.program_declarations.append(declaration)
        return True

    def add_instruction(self, instruction: str) -> None:
        self.program_instructions.append(instruction)

    def robot_with_tool(self, tool: RobotTool) -> Robot:
        # the cached tool is kept alive with its robot so its id is not reused
        cached = self._robots.get(id(tool))
        if cached is None or cached[0] is not tool:
            cached = (tool, self.robot.with_tool(tool))
            self._robots[id(tool)] = cached
        return cached[1]

    def set_tool(self, tool: RobotTool) -> None:
        """Move the current-tool cursor."""
        self.current_tool = tool
        self.current_robot = self.robot_with_tool(tool)

    def register_movement(self, is_move_abs: bool) -> None:
        if self._movement_seen:
            return
        self._movement_seen = True
        self.first_movement_is_move_abs = is_move_abs
        if not is_move_abs:
            self.warn("The first movement is not an absolute joint movement.")

    def _run(self, actions, hook: str, skipped: set) -> None:
        for i, action in enumerate(actions):
            if i in skipped:
                continue
            try:
                getattr(action, hook)(self)
            except ACTION_ERRORS as e:
                skipped.add(i)
                self.warn(f"Action {i} ({type(action).__name__}) is skipped: {e}")

    def _check_valid(self, i: int, action) -> bool:
        if not isinstance(action, Action):
            self.warn(f"Action {i} ({type(action).__name__}) is not an action and is skipped.")
            return False
        try:
            is_valid = action.is_valid
        except ACTION_ERRORS as e:
            self.warn(f"Action {i} ({type(action).__name__}) is skipped: {e}")
            return False
        if not is_valid:
            self.warn(f"Action {i} ({type(action).__name__}) is not valid and is skipped.")
        return bool(is_valid)

    def create_program_code(self, actions: Sequence[Action]) -> str:
        """Program module text for ``actions``, in order."""
        self._reset()
        actions = list(actions)

        skipped = {i for i, action in enumerate(actions) if not self._check_valid(i, action)}

        self._run(actions, "declare", skipped)

        self.current_tool = self.robot.tool
        self.current_robot = self.robot
        self.synchronized_movements = False
        self._run(actions, "instruct", skipped)

        lines = [f"MODULE {self.program_name}",
                 DECLARATION_INDENT + _generated_by(),
                 DECLARATION_INDENT + f"! Robot: {self.robot.name}",
                 ""]
        if self.program_declarations_multi_move:
            lines += _indent(self.program_declarations_multi_move, DECLARATION_INDENT)
            lines.append("")
        if self.program_declarations:
            lines += _indent(self.program_declarations, DECLARATION_INDENT)
            lines.append("")
        lines.append(DECLARATION_INDENT + "PROC main()")
        lines += _indent(self.program_instructions, INSTRUCTION_INDENT)
        lines += [DECLARATION_INDENT + "ENDPROC", "", "ENDMODULE"]

        self.program_code = "\n".join(lines)
        logger.info(f"Created program module {self.program_name} with {len(self.program_instructions)} instructions")

        if self.save_to_file:
            self.write_program_code()
        return self.program_code

    def create_system_code(self, tools: Sequence[RobotTool] = (), work_objects: Sequence[WorkObject] = (),
                           custom_code: Sequence[str] = ()) -> str:
        """System module text with the given tools, work objects and custom lines."""
        self.system_code = system_module(self.system_name, tools, work_objects, custom_code, warn=self.warn)
        if self.save_to_file:
            self.write_system_code()
        return self.system_code

    def _write(self, file_name: str, code: str) -> Optional[str]:
        if not self.output_directory:
            logger.debug(f"No output directory set, {file_name} is not written")
            return None
        os.makedirs(self.output_directory, exist_ok=True)
        path = os.path.join(self.output_directory, file_name)
        with open(path, "w", encoding="utf-8") as f:
            f.write(code)
        logger.info(f"Wrote {path}")
        return path

    def write_program_code(self) -> Optional[str]:
        return self._write(f"{self.program_name}.mod", self.program_code)

    def write_system_code(self) -> Optional[str]:
        return self._write(f"{self.system_name}.sys", self.system_code)


def generate_program(program_name: str, actions: Sequence[Action], robot: Robot) -> str:
    return RAPIDGenerator(robot, program_name=program_name).create_program_code(actions)


def generate_system(system_name: str, tools: Sequence[RobotTool] = (), work_objects: Sequence[WorkObject] = (),
                    custom_lines: Sequence[str] = ()) -> str:
    return system_module(system_name, tools, work_objects, custom_lines)
