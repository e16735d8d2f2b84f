"""Decoding of numeric attribute text into scalars and value types

Attribute values are whitespace-trimmed, split on single spaces, and every
non-empty token is converted with strict number parsing. Failures raise
URDFParseError with the NUMBER_FORMAT, NUMBER_RANGE, VECTOR_ARITY or
COLOR_ARITY kind.
"""

import math
import struct

from .errors import ErrorKind, URDFParseError
from .model import Color, Rotation, Vector3

__all__ = [
    "trim",
    "split_whitespace",
    "parse_double",
    "parse_float",
    "parse_vector3",
    "parse_color",
    "parse_rpy",
]

WHITESPACE = " \t\n\r\f\v"


def trim(text: str) -> str:
    """Strip leading and trailing whitespace (space, tab, newline, CR, form feed, vertical tab)"""
    return text.strip(WHITESPACE)


def split_whitespace(text: str) -> list[str]:
    """Split on single space characters

    Runs of spaces are not collapsed, so consecutive delimiters produce empty tokens.

    Args:
        text: String to split

    Returns:
        List of tokens, possibly containing empty strings
    """
    return text.split(" ")


def _to_number(text: str, width: str) -> float:
    token = trim(text)
    # float() would accept digit-group underscores
    if not token or "_" in token:
        raise URDFParseError(ErrorKind.NUMBER_FORMAT, f"String [{text}] is not a valid {width}")

    try:
        value = float(token)
    except ValueError:
        raise URDFParseError(ErrorKind.NUMBER_FORMAT, f"String [{text}] is not a valid {width}") from None

    if math.isinf(value) and "inf" not in token.lower():
        raise URDFParseError(ErrorKind.NUMBER_RANGE, f"String value [{text}] does not fit in a {width}")

    # underflow to zero
    if value == 0.0 and any(c in "123456789" for c in token.lower().partition("e")[0]):
        raise URDFParseError(ErrorKind.NUMBER_RANGE, f"String value [{text}] does not fit in a {width}")

    return value


def parse_double(text: str) -> float:
    """Parse text into a double precision value

    Args:
        text: Numeral, optionally surrounded by whitespace

    Returns:
        Parsed value

    Raises:
        URDFParseError: NUMBER_FORMAT if text is not a numeral, NUMBER_RANGE if it overflows or underflows to zero
    """
    return _to_number(text, "double")


def parse_float(text: str) -> float:
    """Parse text into a single precision value

    Args:
        text: Numeral, optionally surrounded by whitespace

    Returns:
        Parsed value rounded to the nearest binary32

    Raises:
        URDFParseError: NUMBER_FORMAT if text is not a numeral, NUMBER_RANGE if it does not fit in a float
    """
    value = _to_number(text, "float")
    try:
        rounded = struct.unpack("f", struct.pack("f", value))[0]
    except OverflowError:
        raise URDFParseError(ErrorKind.NUMBER_RANGE, f"String value [{text}] does not fit in a float") from None
    if rounded == 0.0 and value != 0.0:
        raise URDFParseError(ErrorKind.NUMBER_RANGE, f"String value [{text}] does not fit in a float")
    return rounded


def _parse_components(text: str, parse, what: str) -> list[float]:
    values = []
    for piece in split_whitespace(text):
        if piece == "":
            continue
        try:
            values.append(parse(piece))
        except URDFParseError as e:
            raise e.wrap(f"Not able to parse component ({piece}) while parsing {what} [{text}]") from e
    return values


def parse_vector3(text: str) -> Vector3:
    """Parse 'x y z' into a Vector3

    Args:
        text: Space-separated string of three numbers

    Returns:
        Vector3

    Raises:
        URDFParseError: VECTOR_ARITY unless exactly three values are found
    """
    values = _parse_components(text, parse_double, "vector")
    if len(values) != 3:
        raise URDFParseError(
            ErrorKind.VECTOR_ARITY,
            f"Parser found {len(values)} elements but 3 expected while parsing vector [{text}]",
        )
    return Vector3(*values)


def parse_color(text: str) -> Color:
    """Parse 'r g b a' into a Color

    Args:
        text: Space-separated string of four numbers

    Returns:
        Color, components are not clamped

    Raises:
        URDFParseError: COLOR_ARITY unless exactly four values are found
    """
    values = _parse_components(text, parse_float, "color")
    if len(values) != 4:
        raise URDFParseError(
            ErrorKind.COLOR_ARITY,
            f"Color string [{text}] needs to contain exactly 4 values, found {len(values)}",
        )
    return Color(*values)


def parse_rpy(text: str) -> Rotation:
    """Parse 'roll pitch yaw' (radians) into a unit quaternion"""
    rpy = parse_vector3(text)
    return Rotation.from_rpy(rpy.x, rpy.y, rpy.z)
