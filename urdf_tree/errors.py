from enum import Enum

__all__ = ["ErrorKind", "URDFParseError"]


class ErrorKind(Enum):
    """Kinds of failure reported while building a robot model"""

    MALFORMED_DOCUMENT = "malformed_document"
    MISSING_ATTRIBUTE = "missing_attribute"
    MISSING_ELEMENT = "missing_element"
    NUMBER_FORMAT = "number_format"
    NUMBER_RANGE = "number_range"
    VECTOR_ARITY = "vector_arity"
    COLOR_ARITY = "color_arity"
    UNKNOWN_GEOMETRY_TYPE = "unknown_geometry_type"
    EMPTY_GEOMETRY = "empty_geometry"
    INCOMPLETE_MATERIAL = "incomplete_material"
    UNDEFINED_MATERIAL = "undefined_material"
    DUPLICATE_MATERIAL = "duplicate_material"
    INCOMPLETE_INERTIA_TENSOR = "incomplete_inertia_tensor"
    UNNAMED_LINK = "unnamed_link"
    DUPLICATE_LINK = "duplicate_link"
    NO_LINKS_DEFINED = "no_links_defined"
    UNNAMED_JOINT = "unnamed_joint"
    UNKNOWN_JOINT_TYPE = "unknown_joint_type"
    DUPLICATE_JOINT = "duplicate_joint"
    MISSING_PARENT_SPEC = "missing_parent_spec"
    MISSING_CHILD_SPEC = "missing_child_spec"
    UNKNOWN_PARENT_LINK = "unknown_parent_link"
    UNKNOWN_CHILD_LINK = "unknown_child_link"
    EMPTY_DYNAMICS = "empty_dynamics"
    MISSING_LIMIT_ATTRIBUTE = "missing_limit_attribute"
    MISSING_SAFETY_ATTRIBUTE = "missing_safety_attribute"
    MISSING_MIMIC_TARGET = "missing_mimic_target"
    NO_ROOT_FOUND = "no_root_found"
    MULTIPLE_ROOTS_FOUND = "multiple_roots_found"
    MULTIPLE_PARENTS_FOUND = "multiple_parents_found"
    CYCLE_DETECTED = "cycle_detected"


class URDFParseError(ValueError):
    """Error raised when a robot description cannot be turned into a model

    Attributes:
        kind: Category of the failure
        message: Human-readable description
        link: Name of the enclosing link, if known
        joint: Name of the enclosing joint, if known
    """

    def __init__(self, kind: ErrorKind, message: str, *, link: str | None = None, joint: str | None = None):
        super().__init__(message)
        self.kind = kind
        self.message = message
        self.link = link
        self.joint = joint

    def wrap(self, prefix: str, *, link: str | None = None, joint: str | None = None) -> "URDFParseError":
        """Build a new error of the same kind with additional outer context

        Args:
            prefix: Text prepended to the current message
            link: Enclosing link name, used only if none is recorded yet
            joint: Enclosing joint name, used only if none is recorded yet

        Returns:
            New URDFParseError, to be raised from this one
        """
        return URDFParseError(
            self.kind,
            f"{prefix}: {self.message}",
            link=self.link or link,
            joint=self.joint or joint,
        )

    def __repr__(self) -> str:
        return f"URDFParseError({self.kind.name}, {self.message!r})"
