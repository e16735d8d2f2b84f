from pathlib import Path

import pytest

from urdf_tree.cli import Format, main
from urdf_tree.formatters import SummaryFormatter, TreeFormatter
from urdf_tree.parsers import URDFParser, parse_urdf


@pytest.fixture
def data_dir() -> Path:
    """Path to test data directory"""
    return Path(__file__).parent / "urdf_data"


def test_tree_formatter(data_dir: Path) -> None:
    """Test the indented tree output"""
    robot = URDFParser(data_dir / "ver_complex_robot.urdf").parse()

    lines = TreeFormatter(robot, color=False).format().splitlines()

    assert lines[2] == "robot name is: complex_robot"
    assert lines[3] == "root link: base_link has 1 child(ren)"
    assert lines[4:] == [
        "    child(1):  link1  [fixed_joint: fixed]",
        "        child(1):  link2  [revolute_joint: revolute]",
        "            child(1):  link3  [prismatic_joint: prismatic]",
        "        child(2):  tool  [mimic_joint: continuous]",
    ]


def test_tree_formatter_color(data_dir: Path) -> None:
    """Test that link names are colorized by default"""
    robot = URDFParser(data_dir / "ver_simple_robot.urdf").parse()

    assert "\033[32mbase_link\033[0m" in TreeFormatter(robot).format()


def test_tree_formatter_deep_chain() -> None:
    """Test that a serial chain deeper than the recursion limit is formatted"""
    depth = 1200
    links = "".join(f'<link name="link{i}"/>' for i in range(depth + 1))
    joints = "".join(
        f'<joint name="joint{i}" type="fixed"><parent link="link{i}"/><child link="link{i + 1}"/></joint>'
        for i in range(depth)
    )
    robot = parse_urdf(f'<robot name="chain">{links}{joints}</robot>')

    lines = TreeFormatter(robot, color=False).format().splitlines()

    assert len(lines) == 4 + depth
    assert lines[4] == "    child(1):  link1  [joint0: fixed]"
    assert lines[-1] == f"{'    ' * depth}child(1):  link{depth}  [joint{depth - 1}: fixed]"


def test_summary_formatter(data_dir: Path) -> None:
    """Test the element counts"""
    robot = URDFParser(data_dir / "ver_complex_robot.urdf").parse()

    summary = SummaryFormatter(robot, color=False).format()

    assert "root link: base_link" in summary
    assert "links: 5" in summary
    assert "joints: 4" in summary
    assert "    revolute: 1" in summary
    assert "materials: 3" in summary
    assert "visuals: 4" in summary
    assert "collisions: 2" in summary


def test_main_prints_tree(data_dir: Path, capsys: pytest.CaptureFixture[str]) -> None:
    """Test that the tree format is the default"""
    main(data_dir / "ver_simple_robot.urdf", color=False)

    out = capsys.readouterr().out
    assert "root link: base_link has 1 child(ren)" in out
    assert "child(1):  end_link  [joint1: revolute]" in out


def test_main_summary(data_dir: Path, capsys: pytest.CaptureFixture[str]) -> None:
    """Test selecting the summary format"""
    main(data_dir / "ver_simple_robot.urdf", format=Format.summary, color=False)

    assert "links: 2" in capsys.readouterr().out


def test_main_reports_parse_error(data_dir: Path, capsys: pytest.CaptureFixture[str]) -> None:
    """Test that a parse error is printed with its kind and exits with status 1"""
    with pytest.raises(SystemExit) as excinfo:
        main(data_dir / "err_multiple_roots.urdf")

    assert excinfo.value.code == 1
    assert "error[MULTIPLE_ROOTS_FOUND]" in capsys.readouterr().err


def test_main_missing_file(data_dir: Path) -> None:
    """Test that a missing file is not reported as a parse error"""
    with pytest.raises(FileNotFoundError):
        main(data_dir / "nonexistent.urdf")
