"""Preset parser for loading ABB robot definitions from XML files.

A preset file describes a robot at the world origin:

    <robot name="IRB120-3/0.58">
      <axis index="1" origin="0 0 0" normal="0 0 1" min="-165" max="165"/>
      ...
      <mounting-frame origin="374 0 630" normal="1 0 0" rotation="-90"/>
      <mesh link="0" file="irb120_base.npz"/>
    </robot>

Mesh files are optional ``.npz`` archives with ``vertices`` and ``faces``
arrays, resolved relative to the preset file.
"""

import logging
import os
from typing import Dict, List, Optional, Sequence

import jax.numpy as jnp
import numpy as np
from lxml import etree

from ..core import ExternalAxis, Interval, Mesh, Plane, Robot, RobotTool
from ..errors import PresetError

logger = logging.getLogger(__name__)

PRESET_DIRECTORY = os.path.join(os.path.dirname(__file__), "presets")


def _vector(element, attribute: str) -> np.ndarray:
    text = element.get(attribute)
    if text is None:
        raise PresetError(f"<{element.tag}> is missing the '{attribute}' attribute")
    try:
        values = np.array([float(x) for x in text.split()])
    except ValueError:
        raise PresetError(f"<{element.tag}> has a non-numeric '{attribute}': {text!r}")
    if values.shape != (3,):
        raise PresetError(f"<{element.tag}> '{attribute}' must have 3 values, got {text!r}")
    return values


def _number(element, attribute: str, default: Optional[float] = None) -> float:
    text = element.get(attribute)
    if text is None:
        if default is None:
            raise PresetError(f"<{element.tag}> is missing the '{attribute}' attribute")
        return default
    try:
        return float(text)
    except ValueError:
        raise PresetError(f"<{element.tag}> has a non-numeric '{attribute}': {text!r}")


def _preset_files() -> Dict[str, str]:
    """Robot name to preset file path for every packaged preset."""
    files = {}
    for file_name in sorted(os.listdir(PRESET_DIRECTORY)):
        if not file_name.endswith(".xml"):
            continue
        path = os.path.join(PRESET_DIRECTORY, file_name)
        name = etree.parse(path).getroot().get("name")
        files[name] = path
    return files


def available_presets() -> List[str]:
    """Names of the packaged robot presets."""
    return list(_preset_files())


def load_preset_file(
    preset_path: str,
    position_plane: Optional[Plane] = None,
    tool: Optional[RobotTool] = None,
    external_axes: Sequence[ExternalAxis] = (),
) -> Robot:
    """Load a preset XML file and build the robot.

    Args:
        preset_path: path to the preset file
        position_plane: where to put the robot base (default world XY)
        tool: attached tool (default tool0)
        external_axes: attached external axes

    Returns:
        Robot: the robot at ``position_plane``, or on the attachment plane of
        the external axis that moves it.
    """
    try:
        tree = etree.parse(preset_path)
    except (OSError, etree.XMLSyntaxError) as e:
        raise PresetError(f"Cannot read preset file {preset_path}: {e}")
    root = tree.getroot()

    name = root.get("name")
    if not name:
        raise PresetError(f"Preset file {preset_path} has no robot name")

    axes = sorted(root.findall("axis"), key=lambda axis: int(_number(axis, "index")))
    if len(axes) != Robot.number_of_axes:
        raise PresetError(f"Preset {name} defines {len(axes)} axes, expected {Robot.number_of_axes}")

    axis_planes = []
    axis_limits = []
    for axis in axes:
        axis_planes.append(Plane.from_normal(_vector(axis, "origin"), _vector(axis, "normal")))
        axis_limits.append(Interval(_number(axis, "min"), _number(axis, "max")))

    frame = root.find("mounting-frame")
    if frame is None:
        raise PresetError(f"Preset {name} has no <mounting-frame>")
    mounting_frame = Plane.from_normal(_vector(frame, "origin"), _vector(frame, "normal"))
    mounting_frame = mounting_frame.rotate(float(jnp.deg2rad(_number(frame, "rotation", 0.0))))

    meshes = [Mesh.empty() for _ in range(7)]
    for mesh in root.findall("mesh"):
        link = int(_number(mesh, "link"))
        if not 0 <= link < len(meshes):
            raise PresetError(f"Preset {name} has a mesh for unknown link {link}")
        mesh_path = os.path.join(os.path.dirname(preset_path), mesh.get("file", ""))
        with np.load(mesh_path) as data:
            meshes[link] = Mesh.from_arrays(data["vertices"], data["faces"])

    logger.debug(f"Loaded preset {name} from {preset_path}")

    robot = Robot.create(
        name=name,
        internal_axis_planes=axis_planes,
        internal_axis_limits=axis_limits,
        base_plane=Plane.world_xy(),
        mounting_frame=mounting_frame,
        tool=tool,
        external_axes=external_axes,
        meshes=meshes,
    )

    moving_axis = robot.external_axis_moving_robot
    if moving_axis is not None:
        position_plane = moving_axis.attachment_plane
    if position_plane is not None:
        robot = robot.transform(position_plane.to_matrix())
    return robot


def load_preset(
    name: str,
    position_plane: Optional[Plane] = None,
    tool: Optional[RobotTool] = None,
    external_axes: Sequence[ExternalAxis] = (),
) -> Robot:
    """Load a packaged robot preset by name, e.g. ``"IRB120-3/0.58"``."""
    files = _preset_files()
    if name not in files:
        raise PresetError(f"Unknown robot preset {name!r}, available: {', '.join(files)}")
    return load_preset_file(files[name], position_plane, tool, external_axes)
