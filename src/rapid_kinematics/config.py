"""Generator configuration and YAML job files.

A job file describes one generation run:

    generator:
      program_name: MainModule
      output_directory: out
      save_to_file: true
    robot:
      preset: IRB120-3/0.58
      position: {origin: [0, 0, 0], normal: [0, 0, 1]}
      tool: gripper
    tools:
      - name: gripper
        tool_plane: {origin: [0, 0, 120]}
        mass: 1.2
    work_objects:
      - name: table
        user_frame: {origin: [400, 0, 0]}
    custom_code:
      - "PERS num counter := 0;"
    actions:
      - {type: WaitDI, name: di1, value: true, max_time: 5}
      - {type: SetDigitalOutput, name: do1, value: true}
"""

import dataclasses
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional

import yaml

from .actions import Action, action_from_dict, parse_plane
from .core import Plane, Robot, RobotTool, WorkObject
from .errors import ConfigError
from .io import load_preset

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GeneratorConfig:
    program_name: str = "MainModule"
    system_name: str = "BASE"
    output_directory: Optional[str] = None
    save_to_file: bool = False
    check_reachability: bool = True

    @classmethod
    def from_dict(cls, data: Optional[Mapping[str, Any]]) -> "GeneratorConfig":
        data = dict(data or {})
        known = {f.name for f in dataclasses.fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ConfigError(f"Unknown generator settings: {', '.join(unknown)}")
        return cls(**data)

    def with_output_directory(self, output_directory: str) -> "GeneratorConfig":
        return dataclasses.replace(self, output_directory=output_directory, save_to_file=True)


@dataclass(frozen=True)
class Job:
    config: GeneratorConfig
    robot: Robot
    actions: List[Action] = field(default_factory=list)
    tools: List[RobotTool] = field(default_factory=list)
    work_objects: List[WorkObject] = field(default_factory=list)
    custom_code: List[str] = field(default_factory=list)


def _read_yaml(path: str) -> Dict[str, Any]:
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except OSError as e:
        raise ConfigError(f"Cannot read {path}: {e}")
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}")
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"{path} must contain a mapping at the top level")
    return data


def load_config(path: str) -> GeneratorConfig:
    """Read generator settings from a YAML file."""
    return GeneratorConfig.from_dict(_read_yaml(path))


def _tool(data: Mapping[str, Any]) -> RobotTool:
    if not data.get("name"):
        raise ConfigError("A tool needs a name")
    return RobotTool.create(
        name=data["name"],
        attachment_plane=parse_plane(data.get("attachment_plane", {"origin": [0, 0, 0]})),
        tool_plane=parse_plane(data.get("tool_plane", {"origin": [0, 0, 0]})),
        mass=data.get("mass", 0.001),
        center_of_gravity=data.get("center_of_gravity", (0.0, 0.0, 0.001)),
        robot_hold=data.get("robot_hold", True),
    )


def _work_object(data: Mapping[str, Any]) -> WorkObject:
    if not data.get("name"):
        raise ConfigError("A work object needs a name")
    return WorkObject(
        name=data["name"],
        user_frame=parse_plane(data.get("user_frame", {"origin": [0, 0, 0]})),
        object_frame=parse_plane(data.get("object_frame", {"origin": [0, 0, 0]})),
    )


def load_job(path: str) -> Job:
    """Read a YAML job file and build the robot, tools, work objects and actions."""
    data = _read_yaml(path)
    config = GeneratorConfig.from_dict(data.get("generator"))

    tools = [_tool(item) for item in data.get("tools", [])]
    work_objects = [_work_object(item) for item in data.get("work_objects", [])]
    context = {
        "tools": {tool.name: tool for tool in tools},
        "work_objects": {work_object.name: work_object for work_object in work_objects},
    }

    robot_data = data.get("robot")
    if not isinstance(robot_data, dict) or "preset" not in robot_data:
        raise ConfigError(f"{path} needs a robot section with a preset name")
    position: Optional[Plane] = None
    if "position" in robot_data:
        position = parse_plane(robot_data["position"])
    tool = None
    if "tool" in robot_data:
        tool = context["tools"].get(robot_data["tool"])
        if tool is None:
            raise ConfigError(f"Unknown robot tool: {robot_data['tool']!r}")
    robot = load_preset(robot_data["preset"], position_plane=position, tool=tool)

    actions = [action_from_dict(item, context) for item in data.get("actions", [])]
    custom_code = [str(line) for line in data.get("custom_code", [])]

    logger.info(f"Loaded job {path}: {len(actions)} actions for {robot.name}")
    return Job(config, robot, actions, tools, work_objects, custom_code)
