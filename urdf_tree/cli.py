import logging
import sys
from enum import Enum
from pathlib import Path

import tyro

from .errors import URDFParseError
from .formatters import SummaryFormatter, TreeFormatter
from .parsers import URDFParser


class Format(Enum):
    tree = TreeFormatter
    summary = SummaryFormatter


def main(
    path: Path,
    /,
    format: Format = Format.tree,
    color: bool = True,
    verbose: bool = False,
) -> None:
    """Parse a URDF file, validate its kinematic tree, and print it.

    Args:
        path: Path to the URDF file
        format: Output format
        color: Colorize output with ANSI codes
        verbose: Enable debug logging

    """
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    try:
        robot = URDFParser(path).parse()
    except URDFParseError as e:
        print(f"error[{e.kind.name}]: {e}", file=sys.stderr)
        raise SystemExit(1) from e

    print(format.value(robot, color=color).format())


def tyro_cli():
    tyro.cli(main, prog="urdf-tree")


if __name__ == "__main__":
    tyro_cli()
