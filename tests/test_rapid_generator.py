"""Tests for RAPID program and system module generation."""

import gc
import os

import pytest

from rapid_kinematics import __version__
from rapid_kinematics.actions import (
    AbsoluteJointMovement,
    CodeLine,
    CodeType,
    Comment,
    JointTarget,
    Movement,
    MovementType,
    OverrideRobotTool,
    ReferenceType,
    RobotTarget,
    SetDigitalOutput,
    SpeedData,
    SyncMoveOff,
    SyncMoveOn,
    TaskList,
    WaitDI,
    WaitSyncTask,
    WaitTime,
    ZoneData,
)
from rapid_kinematics.core import Plane, RobotJointPosition, RobotTool, WorkObject
from rapid_kinematics.io import load_preset
from rapid_kinematics.rapid import RAPIDGenerator, generate_program, generate_system

ROBOT = load_preset("IRB120-3/0.58")
HOME = Plane.from_axes((374.0, 0.0, 630.0), (0.0, 0.0, -1.0), (0.0, 1.0, 0.0))
GENERATED_BY = f"! This RAPID code was generated with rapid-kinematics v{__version__}"


def home_movement():
    return AbsoluteJointMovement("home", RobotJointPosition((0.0, 0.0, 0.0, 0.0, 30.0, 0.0)))


def target(name, dx=0.0, dz=0.0):
    return RobotTarget(name, HOME.translate((dx, 0.0, dz)))


def collisions(generator):
    return [warning for warning in generator.warnings if "already declared" in warning]


# Program module
def test_program_layout():
    code = generate_program("MainModule", [SpeedData("fast", 250), WaitTime(1)], ROBOT)
    assert code == "\n".join([
        "MODULE MainModule",
        "    " + GENERATED_BY,
        "    ! Robot: IRB120-3/0.58",
        "",
        "    VAR speeddata fast := [250, 500, 5000, 1000];",
        "",
        "    PROC main()",
        "        WaitTime 1;",
        "    ENDPROC",
        "",
        "ENDMODULE",
    ])


def test_instructions_keep_action_order():
    actions = [home_movement(), WaitDI("di1", True, 5), SetDigitalOutput("do1", True)]
    generator = RAPIDGenerator(ROBOT)
    code = generator.create_program_code(actions)

    assert generator.program_instructions == [
        "MoveAbsJ home, v100, fine, tool0\\WObj:=wobj0;",
        "WaitDI di1, 1\\MaxTime:=5;",
        "SetDO do1, 1;",
    ]
    assert code.index("WaitDI di1, 1\\MaxTime:=5;") < code.index("SetDO do1, 1;")
    assert "CONST jointtarget home := [[0, 0, 0, 0, 30, 0], [9E9, 9E9, 9E9, 9E9, 9E9, 9E9]];" in code
    assert generator.first_movement_is_move_abs
    assert generator.warnings == []


def test_movement_declarations():
    actions = [
        home_movement(),
        Movement(target("p10", dz=-100.0), SpeedData("fast", 250), ZoneData.from_size(7), MovementType.LINEAR),
        Movement(target("p20", dx=-50.0), SpeedData.predefined("v100"), ZoneData.from_size(10)),
    ]
    generator = RAPIDGenerator(ROBOT)
    code = generator.create_program_code(actions)

    assert "    VAR speeddata fast := [250, 500, 5000, 1000];" in code
    assert "    VAR zonedata z7 := [FALSE, 7, 10.5, 10.5, 1.05, 10.5, 1.05];" in code
    assert "    VAR robtarget p10 := [[374, 0, 530], [0.707107, 0, 0.707107, 0], [0, 0, 0, 0], " \
           "[9E9, 9E9, 9E9, 9E9, 9E9, 9E9]];" in code
    assert "        MoveL p10, fast, z7, tool0\\WObj:=wobj0;" in code
    assert "        MoveJ p20, v100, z10, tool0\\WObj:=wobj0;" in code
    # predefined data is never declared
    assert "speeddata v100" not in code
    assert "zonedata z10" not in code
    assert generator.warnings == []


def test_shared_declaration_is_declared_once():
    fast = SpeedData("fast", 250)
    p10 = target("p10")
    actions = [home_movement(), Movement(p10, fast), Movement(p10, fast)]
    generator = RAPIDGenerator(ROBOT)
    code = generator.create_program_code(actions)

    assert code.count("speeddata fast") == 1
    assert code.count("robtarget p10") == 1
    assert code.count("MoveJ p10") == 2
    assert collisions(generator) == []


def test_same_name_from_two_actions_warns():
    generator = RAPIDGenerator(ROBOT)
    code = generator.create_program_code([SpeedData("fast", 250), SpeedData("fast", 250)])

    assert code.count("VAR speeddata fast := [250, 500, 5000, 1000];") == 1
    assert len(collisions(generator)) == 1
    assert "'fast'" in collisions(generator)[0]


def test_speeds_from_numbers_are_shared():
    actions = [
        home_movement(),
        Movement(target("p10"), SpeedData.from_data(123)),
        Movement(target("p20", dx=-50.0), SpeedData.from_data(123)),
    ]
    generator = RAPIDGenerator(ROBOT)
    code = generator.create_program_code(actions)

    assert code.count("VAR speeddata v123 := [123, 500, 5000, 1000];") == 1
    assert generator.warnings == []


def test_name_collision_keeps_first_declaration():
    p10 = target("p10")
    actions = [
        home_movement(),
        Movement(p10, SpeedData("fast", 250)),
        Movement(p10, SpeedData("fast", 300)),
    ]
    generator = RAPIDGenerator(ROBOT)
    code = generator.create_program_code(actions)

    assert "VAR speeddata fast := [250, 500, 5000, 1000];" in code
    assert "[300, 500" not in code
    assert len(collisions(generator)) == 1
    assert "'fast'" in collisions(generator)[0]


def test_predefined_name_collision():
    actions = [home_movement(), Movement(target("p10"), SpeedData("v100", 120))]
    generator = RAPIDGenerator(ROBOT)
    code = generator.create_program_code(actions)

    assert "speeddata v100" not in code
    assert len(collisions(generator)) == 1


def test_first_movement_warning():
    generator = RAPIDGenerator(ROBOT)
    generator.create_program_code([Movement(target("p10"))])

    assert not generator.first_movement_is_move_abs
    assert generator.warnings == ["The first movement is not an absolute joint movement."]


def test_unreachable_target_warning():
    generator = RAPIDGenerator(ROBOT)
    code = generator.create_program_code([home_movement(), Movement(target("far", dx=2000.0))])

    assert "robtarget far" in code
    assert any("far" in warning and "out of reach" in warning for warning in generator.warnings)

    generator = RAPIDGenerator(ROBOT, check_reachability=False)
    generator.create_program_code([home_movement(), Movement(target("far", dx=2000.0))])
    assert generator.warnings == []


def test_move_absolute_joint_to_robot_target():
    actions = [Movement(target("p10"), movement_type=MovementType.ABSOLUTE_JOINT)]
    generator = RAPIDGenerator(ROBOT)
    code = generator.create_program_code(actions)

    assert "    CONST jointtarget p10_jt := [[0, 0, 0, 0, 0, 0], [9E9, 9E9, 9E9, 9E9, 9E9, 9E9]];" in code
    assert "        MoveAbsJ p10_jt, v100, fine, tool0\\WObj:=wobj0;" in code
    assert "robtarget" not in code


def test_move_absolute_joint_with_digital_output():
    movement = Movement(JointTarget("home"), digital_output=SetDigitalOutput("do1", True))
    generator = RAPIDGenerator(ROBOT)
    generator.create_program_code([movement])

    assert generator.program_instructions == ["MoveAbsJ home, v100, fine, tool0\\WObj:=wobj0;", "SetDO do1, 1;"]


def test_joint_target_out_of_limits_warning():
    movement = Movement(JointTarget("bad", RobotJointPosition((0.0, 0.0, 100.0, 0.0, 0.0, 0.0))))
    generator = RAPIDGenerator(ROBOT)
    generator.create_program_code([movement])
    assert generator.warnings == ["Joint target bad: The position of robot axis 3 is not in range."]


def test_invalid_actions_are_skipped():
    generator = RAPIDGenerator(ROBOT)
    code = generator.create_program_code([WaitTime(-1), WaitTime(2)])

    assert "WaitTime -1;" not in code
    assert "        WaitTime 2;" in code
    assert generator.warnings == ["Action 0 (WaitTime) is not valid and is skipped."]


def test_action_failing_validity_check_is_skipped():
    generator = RAPIDGenerator(ROBOT)
    code = generator.create_program_code([WaitTime(None), SetDigitalOutput("do1", True)])

    assert generator.program_instructions == ["SetDO do1, 1;"]
    assert "        SetDO do1, 1;" in code
    assert len(generator.warnings) == 1
    assert generator.warnings[0].startswith("Action 0 (WaitTime) is skipped:")


def test_action_failing_in_declaration_pass_is_skipped():
    broken = Movement(HOME)
    generator = RAPIDGenerator(ROBOT)
    generator.create_program_code([broken, SetDigitalOutput("do1", True)])

    assert generator.program_instructions == ["SetDO do1, 1;"]
    assert len(generator.warnings) == 1
    assert generator.warnings[0].startswith("Action 0 (Movement) is skipped:")


def test_non_actions_are_skipped():
    generator = RAPIDGenerator(ROBOT)
    generator.create_program_code(["WaitTime 1;", WaitTime(2)])

    assert generator.program_instructions == ["WaitTime 2;"]
    assert generator.warnings == ["Action 0 (str) is not an action and is skipped."]


def test_tool_robots_follow_each_run():
    generator = RAPIDGenerator(ROBOT)
    for i in range(20):
        tool = RobotTool.create(f"t{i}", Plane.world_xy(), Plane.world_xy())
        generator.create_program_code([OverrideRobotTool(tool)])
        assert generator.current_robot.tool.name == f"t{i}"
        assert generator.robot_with_tool(tool) is generator.current_robot
        del tool
        gc.collect()


def test_tool_override():
    pen = RobotTool.create("pen", Plane.world_xy(), Plane.from_normal((0.0, 0.0, 100.0), (0.0, 0.0, 1.0)))
    actions = [
        home_movement(),
        Movement(target("p10"), movement_type=MovementType.LINEAR),
        OverrideRobotTool(pen),
        Movement(target("p20", dx=100.0), movement_type=MovementType.LINEAR),
    ]
    generator = RAPIDGenerator(ROBOT)
    generator.create_program_code(actions)

    assert generator.program_instructions[1:] == [
        "MoveL p10, v100, fine, tool0\\WObj:=wobj0;",
        "! Robot tool overridden by pen",
        "MoveL p20, v100, fine, pen\\WObj:=wobj0;",
    ]
    assert generator.current_tool.name == "pen"
    assert generator.warnings == []


def test_movement_tool_overrides_current_tool():
    pen = RobotTool.create("pen", Plane.world_xy(), Plane.from_normal((0.0, 0.0, 100.0), (0.0, 0.0, 1.0)))
    generator = RAPIDGenerator(ROBOT)
    generator.create_program_code([home_movement(), Movement(target("p10"), tool=pen)])
    assert generator.program_instructions[1] == "MoveJ p10, v100, fine, pen\\WObj:=wobj0;"


def test_work_object_target_declaration():
    table = WorkObject("table", Plane.from_normal((300.0, 0.0, 0.0), (0.0, 0.0, 1.0)))
    generator = RAPIDGenerator(ROBOT)
    code = generator.create_program_code([home_movement(), Movement(target("p10"), work_object=table)])

    assert "VAR robtarget p10 := [[74, 0, 630], [0.707107, 0, 0.707107, 0]" in code
    assert "MoveJ p10, v100, fine, tool0\\WObj:=table;" in code


def test_synchronized_movements():
    task_list = TaskList("task_list1", ["T_ROB1", "T_ROB2"])
    actions = [
        home_movement(),
        SyncMoveOn("sync1", task_list),
        Movement(target("p10"), movement_type=MovementType.LINEAR, sync_id=10),
        SyncMoveOff("sync2"),
        Movement(target("p20", dx=50.0), movement_type=MovementType.LINEAR, sync_id=20),
    ]
    generator = RAPIDGenerator(ROBOT)
    code = generator.create_program_code(actions)

    assert generator.program_declarations_multi_move == [
        "VAR syncident sync1;",
        "PERS tasks task_list1{2} := [[\"T_ROB1\"], [\"T_ROB2\"]];",
        "VAR syncident sync2;",
    ]
    # multi move declarations come first
    assert code.index("VAR syncident sync1;") < code.index("CONST jointtarget home")
    assert "MoveL p10\\ID:=10, v100, fine, tool0\\WObj:=wobj0;" in code
    assert "MoveL p20, v100, fine, tool0\\WObj:=wobj0;" in code
    assert not generator.synchronized_movements


def test_synchronized_declarations_keep_reference_type():
    task_list = TaskList("task_list1", ["T_ROB1", "T_ROB2"])
    actions = [
        SyncMoveOn("sync1", task_list, reference_type=ReferenceType.PERS),
        WaitSyncTask("sync2", task_list),
        SyncMoveOff("sync3", reference_type=ReferenceType.PERS),
    ]
    generator = RAPIDGenerator(ROBOT)
    generator.create_program_code(actions)

    assert generator.program_declarations_multi_move == [
        "PERS syncident sync1;",
        "PERS tasks task_list1{2} := [[\"T_ROB1\"], [\"T_ROB2\"]];",
        "VAR syncident sync2;",
        "PERS syncident sync3;",
    ]
    assert collisions(generator) == []


def test_code_lines_and_comments():
    actions = [
        CodeLine("VAR num counter := 0;", CodeType.DECLARATION),
        Comment("start"),
        CodeLine("counter := counter + 1;"),
    ]
    code = generate_program("MainModule", actions, ROBOT)

    assert "    VAR num counter := 0;" in code
    assert code.index("        ! start") < code.index("        counter := counter + 1;")


def test_generator_does_not_modify_robot():
    generator = RAPIDGenerator(ROBOT)
    generator.create_program_code([OverrideRobotTool(RobotTool.create("pen", Plane.world_xy(), Plane.world_xy()))])
    assert ROBOT.tool.name == "tool0"
    assert generator.robot.tool.name == "tool0"


def test_generator_can_run_twice():
    generator = RAPIDGenerator(ROBOT)
    actions = [home_movement(), WaitTime(1)]
    assert generator.create_program_code(actions) == generator.create_program_code(actions)


# System module
def test_base_system_module():
    assert generate_system("BASE") == "\n".join([
        "MODULE BASE (SYSMODULE, NOSTEPIN, VIEWONLY)",
        "",
        "    " + GENERATED_BY,
        "",
        "    ! System module with basic predefined system data",
        "    !************************************************",
        "",
        "    ! System data tool0, wobj0 and load0",
        "    ! Do not translate or delete tool0, wobj0, load0",
        "    PERS tooldata tool0 := [TRUE, [[0, 0, 0], [1, 0, 0, 0]], [0.001, [0, 0, 0.001], [1, 0, 0, 0], 0, 0, 0]];",
        "    PERS wobjdata wobj0 := [FALSE, TRUE, \"\", [[0, 0, 0], [1, 0, 0, 0]], [[0, 0, 0], [1, 0, 0, 0]]];",
        "    PERS loaddata load0 := [0.001, [0, 0, 0.001], [1, 0, 0, 0], 0, 0, 0];",
        "",
        "ENDMODULE",
    ])


def test_system_module_with_user_data():
    pen = RobotTool.create("pen", Plane.world_xy(), Plane.from_normal((0.0, 0.0, 100.0), (0.0, 0.0, 1.0)),
                           mass=1.2, center_of_gravity=(0.0, 0.0, 50.0))
    table = WorkObject("table", Plane.from_normal((400.0, 0.0, 0.0), (0.0, 0.0, 1.0)))
    code = generate_system("BASE", [RobotTool.tool0(), pen], [table], ["PERS num counter := 0;"])

    assert code.count("PERS tooldata tool0") == 1
    assert ("    ! User defined tooldata\n"
            "    PERS tooldata pen := [TRUE, [[0, 0, 100], [1, 0, 0, 0]], "
            "[1.2, [0, 0, 50], [1, 0, 0, 0], 0, 0, 0]];") in code
    assert "    ! User defined wobjdata\n    PERS wobjdata table := " in code
    assert "    ! User defined custom code lines\n    PERS num counter := 0;" in code


def test_system_module_name_collision():
    first = RobotTool.create("pen", Plane.world_xy(), Plane.world_xy())
    second = RobotTool.create("pen", Plane.world_xy(), Plane.from_normal((0.0, 0.0, 50.0), (0.0, 0.0, 1.0)))

    generator = RAPIDGenerator(ROBOT, system_name="SysData")
    code = generator.create_system_code([first, second])

    assert code.startswith("MODULE SysData (SYSMODULE)\n")
    assert "tool0" not in code
    assert code.count("PERS tooldata pen") == 1
    assert "[[0, 0, 0], [1, 0, 0, 0]]" in code
    assert len(collisions(generator)) == 1


def test_system_module_repeated_tool():
    pen = RobotTool.create("pen", Plane.world_xy(), Plane.world_xy())
    copy = RobotTool.create("pen", Plane.world_xy(), Plane.world_xy())

    generator = RAPIDGenerator(ROBOT)
    code = generator.create_system_code([pen, pen, RobotTool.tool0()])
    assert code.count("PERS tooldata pen") == 1
    assert collisions(generator) == []

    code = generator.create_system_code([pen, copy])
    assert code.count("PERS tooldata pen") == 1
    assert len(collisions(generator)) == 1


# Files
def test_write_modules(tmp_path):
    output = tmp_path / "rapid"
    generator = RAPIDGenerator(ROBOT, output_directory=str(output), save_to_file=True)
    program = generator.create_program_code([home_movement()])
    system = generator.create_system_code()

    with open(os.path.join(output, "MainModule.mod"), encoding="utf-8") as f:
        assert f.read() == program
    with open(os.path.join(output, "BASE.sys"), encoding="utf-8") as f:
        assert f.read() == system


def test_write_without_directory():
    generator = RAPIDGenerator(ROBOT)
    generator.create_program_code([WaitTime(1)])
    assert generator.write_program_code() is None


@pytest.mark.parametrize("save_to_file", [False, True])
def test_save_to_file_flag(tmp_path, save_to_file):
    generator = RAPIDGenerator(ROBOT, program_name="Prog", output_directory=str(tmp_path), save_to_file=save_to_file)
    generator.create_program_code([WaitTime(1)])
    assert (tmp_path / "Prog.mod").exists() == save_to_file
