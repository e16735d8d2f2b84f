from abc import ABC, abstractmethod
from collections import Counter

from .model import Link, Robot

__all__ = ["StringFormatter", "TreeFormatter", "SummaryFormatter"]

# ANSI color codes
BLUE = "\033[34m"
GREEN = "\033[32m"
RESET = "\033[0m"

INDENT = "    "


class StringFormatter(ABC):
    """Base class for all string formatters

    Attributes:
        robot: Robot object to format
        color: Whether to emit ANSI color codes
    """

    def __init__(self, robot: Robot, color: bool = True):
        self.robot = robot
        self.color = color

    @abstractmethod
    def format(self) -> str:
        """Format the robot"""
        pass

    def _colorize(self, text: str, color: str) -> str:
        """Apply ANSI color to text, unless coloring is disabled

        Args:
            text: Text to colorize
            color: ANSI color code to apply

        Returns:
            Colorized string
        """
        if not self.color:
            return text
        return f"{color}{text}{RESET}"

    def _wrap_bars(self, text: str) -> str:
        """Wrap text in horiztonal bars (━)

        Args:
            text: Text to wrap

        Returns:
            Formatted string
        """
        return f"━━━ {text} ━━━"


class TreeFormatter(StringFormatter):
    """Formatter that prints the kinematic tree from the root down"""

    def format(self) -> str:
        """Format the robot

        Returns:
            Formatted string
        """
        root = self.robot.root
        lines = [self._wrap_bars("ROBOT"), ""]
        lines.append(f"robot name is: {self.robot.name}")
        lines.append(f"root link: {self._colorize(root.name, GREEN)} has {len(root.child_links)} child(ren)")
        lines.extend(self._format_children(root, depth=1))
        return "\n".join(lines)

    def _format_children(self, link: Link, depth: int) -> list[str]:
        """Format the subtree below a link

        Args:
            link: Link whose children are formatted
            depth: Indentation level of the children

        Returns:
            List of formatted lines
        """
        lines = []
        stack = self._child_entries(link, depth)
        while stack:
            i, joint_name, child_name, level = stack.pop()
            joint = self.robot.joints[joint_name]
            joint_text = self._colorize(f"[{joint_name}: {joint.type.value}]", BLUE)
            lines.append(f"{INDENT * level}child({i}):  {self._colorize(child_name, GREEN)}  {joint_text}")
            stack.extend(self._child_entries(self.robot.links[child_name], level + 1))
        return lines

    @staticmethod
    def _child_entries(link: Link, level: int) -> list[tuple[int, str, str, int]]:
        # reversed so the first child is popped first
        entries = enumerate(zip(link.child_joints, link.child_links, strict=True), start=1)
        return [(i, joint_name, child_name, level) for i, (joint_name, child_name) in entries][::-1]


class SummaryFormatter(StringFormatter):
    """Formatter that counts the elements of the model"""

    def format(self) -> str:
        """Format the robot

        Returns:
            Formatted string
        """
        joint_types = Counter(joint.type.value for joint in self.robot.joints.values())
        num_visuals = sum(len(link.visuals) for link in self.robot.iter_links())
        num_collisions = sum(len(link.collisions) for link in self.robot.iter_links())

        lines = [self._wrap_bars("SUMMARY"), ""]
        lines.append(f"robot: {self.robot.name}")
        lines.append(f"root link: {self._colorize(self.robot.root_link, GREEN)}")
        lines.append(f"links: {len(self.robot.links)}")
        lines.append(f"joints: {len(self.robot.joints)}")
        for joint_type, count in sorted(joint_types.items()):
            lines.append(f"{INDENT}{joint_type}: {count}")
        lines.append(f"materials: {len(self.robot.materials)}")
        lines.append(f"visuals: {num_visuals}")
        lines.append(f"collisions: {num_collisions}")
        return "\n".join(lines)
