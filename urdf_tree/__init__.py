from .errors import ErrorKind, URDFParseError
from .parsers import URDFParser, parse_urdf

__all__ = [
    "ErrorKind",
    "URDFParseError",
    "URDFParser",
    "parse_urdf",
]
