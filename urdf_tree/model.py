import math
from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import ClassVar

__all__ = [
    "Robot",
    "Link",
    "Joint",
    "JointType",
    "JointDynamics",
    "JointLimits",
    "JointSafety",
    "JointCalibration",
    "JointMimic",
    "Vector3",
    "Rotation",
    "Transform",
    "Color",
    "Base",
    "Geometry",
    "GeometryType",
    "Box",
    "Capsule",
    "Cylinder",
    "Sphere",
    "Mesh",
    "Inertial",
    "Collision",
    "Material",
    "Visual",
]


@dataclass(frozen=True)
class Base:
    """Base class for objects with source tracking metadata

    Attributes:
        line_number: Line number of element in source document
        source_path: Hierarchical path to element in source document
    """

    _line_number: int | None = field(default=None, repr=False, compare=False, kw_only=True)
    _source_path: str | None = field(default=None, repr=False, compare=False, kw_only=True)


@dataclass(frozen=True)
class Vector3:
    """Vector in R^3

    Attributes:
        x, y, z: Components
    """

    x: float = 0.0
    y: float = 0.0
    z: float = 0.0

    def __add__(self, other: "Vector3") -> "Vector3":
        if not isinstance(other, Vector3):
            return NotImplemented
        return Vector3(self.x + other.x, self.y + other.y, self.z + other.z)


@dataclass(frozen=True)
class Rotation:
    """Orientation as an (x, y, z, w) quaternion

    Rotations decoded from roll-pitch-yaw are normalized to unit length.
    Defaults to the identity.
    """

    x: float = 0.0
    y: float = 0.0
    z: float = 0.0
    w: float = 1.0

    @classmethod
    def from_rpy(cls, roll: float, pitch: float, yaw: float) -> "Rotation":
        """Convert roll-pitch-yaw Euler angles to a unit quaternion

        Args:
            roll: Rotation about x in radians
            pitch: Rotation about y in radians
            yaw: Rotation about z in radians

        Returns:
            Normalized Rotation
        """
        phi, the, psi = 0.5 * roll, 0.5 * pitch, 0.5 * yaw
        cr, cp, cy = math.cos(phi), math.cos(the), math.cos(psi)
        sr, sp, sy = math.sin(phi), math.sin(the), math.sin(psi)

        return cls(
            x=sr * cp * cy - cr * sp * sy,
            y=cr * sp * cy + sr * cp * sy,
            z=cr * cp * sy - sr * sp * cy,
            w=cr * cp * cy + sr * sp * sy,
        ).normalized()

    def normalized(self) -> "Rotation":
        """Scale to unit length, a zero quaternion becomes the identity"""
        norm = math.sqrt(self.x * self.x + self.y * self.y + self.z * self.z + self.w * self.w)
        if norm == 0.0:
            return Rotation()
        return Rotation(self.x / norm, self.y / norm, self.z / norm, self.w / norm)

    def inverse(self) -> "Rotation":
        """Conjugate divided by the squared norm

        The zero quaternion has no inverse and is returned unchanged.
        """
        norm = self.w * self.w + self.x * self.x + self.y * self.y + self.z * self.z
        if norm == 0.0:
            return self
        return Rotation(-self.x / norm, -self.y / norm, -self.z / norm, self.w / norm)

    def to_rpy(self) -> tuple[float, float, float]:
        """Decompose into (roll, pitch, yaw) in radians

        Pitch is pinned to +/- pi/2 at gimbal lock.
        """
        x, y, z, w = self.x, self.y, self.z, self.w
        sqx, sqy, sqz, sqw = x * x, y * y, z * z, w * w

        roll = math.atan2(2 * (y * z + w * x), sqw - sqx - sqy + sqz)
        s = -2 * (x * z - w * y)
        if s <= -1.0:
            pitch = -0.5 * math.pi
        elif s >= 1.0:
            pitch = 0.5 * math.pi
        else:
            pitch = math.asin(s)
        yaw = math.atan2(2 * (x * y + w * z), sqw + sqx - sqy - sqz)

        return roll, pitch, yaw

    def __mul__(self, other):
        """Hamilton product with a Rotation, or rotation of a Vector3

        For rotations, (a * b) applies b first.
        """
        if isinstance(other, Rotation):
            return Rotation(
                x=self.w * other.x + self.x * other.w + self.y * other.z - self.z * other.y,
                y=self.w * other.y - self.x * other.z + self.y * other.w + self.z * other.x,
                z=self.w * other.z + self.x * other.y - self.y * other.x + self.z * other.w,
                w=self.w * other.w - self.x * other.x - self.y * other.y - self.z * other.z,
            )
        if isinstance(other, Vector3):
            pure = Rotation(other.x, other.y, other.z, 0.0)
            rotated = self * (pure * self.inverse())
            return Vector3(rotated.x, rotated.y, rotated.z)
        return NotImplemented


@dataclass(frozen=True)
class Transform(Base):
    """Position and orientation in SE(3)

    Attributes:
        position: Translation in meters, defaults to (0.0, 0.0, 0.0)
        rotation: Unit quaternion, defaults to the identity
    """

    position: Vector3 = Vector3()
    rotation: Rotation = Rotation()


@dataclass(frozen=True)
class Color:
    """RGBA color, components are not clamped to [0, 1]"""

    r: float = 0.0
    g: float = 0.0
    b: float = 0.0
    a: float = 1.0


class GeometryType(Enum):
    """Shape tags, valued by their element name"""

    SPHERE = "sphere"
    BOX = "box"
    CYLINDER = "cylinder"
    CAPSULE = "capsule"
    MESH = "mesh"


@dataclass(frozen=True)
class Geometry(Base):
    """Base class for geometric shapes, dispatch on `type`"""

    type: ClassVar[GeometryType]


@dataclass(frozen=True)
class Sphere(Geometry):
    """Sphere geometry

    Attributes:
        radius: Radius in meters
    """

    type: ClassVar[GeometryType] = GeometryType.SPHERE

    radius: float = 0.0


@dataclass(frozen=True)
class Box(Geometry):
    """Box geometry

    Attributes:
        dim: (x, y, z) dimensions in meters
    """

    type: ClassVar[GeometryType] = GeometryType.BOX

    dim: Vector3 = Vector3()


@dataclass(frozen=True)
class Cylinder(Geometry):
    """Cylinder geometry

    Attributes:
        length: Length in meters
        radius: Radius in meters
    """

    type: ClassVar[GeometryType] = GeometryType.CYLINDER

    length: float = 0.0
    radius: float = 0.0


@dataclass(frozen=True)
class Capsule(Geometry):
    """Capsule geometry, a cylinder capped by two hemispheres

    Attributes:
        length: Length of the cylindrical section in meters
        radius: Radius in meters
    """

    type: ClassVar[GeometryType] = GeometryType.CAPSULE

    length: float = 0.0
    radius: float = 0.0


@dataclass(frozen=True)
class Mesh(Geometry):
    """Mesh geometry

    Attributes:
        filename: URI to mesh file
        scale: (x, y, z) scale factors, defaults to (1.0, 1.0, 1.0)
    """

    type: ClassVar[GeometryType] = GeometryType.MESH

    filename: str = ""
    scale: Vector3 = Vector3(1.0, 1.0, 1.0)


@dataclass(frozen=True)
class Material(Base):
    """Material properties for visual elements

    Attributes:
        name: Name of the material
        texture_filename: URI to texture file, defaults to None if not specified
        color: RGBA color, defaults to None if not specified
    """

    name: str
    texture_filename: str | None = None
    color: Color | None = None

    @property
    def is_defined(self) -> bool:
        """Whether the material carries a color or a texture, as opposed to a bare name reference"""
        return self.color is not None or self.texture_filename is not None


@dataclass(frozen=True)
class Inertial(Base):
    """Inertial properties of a link

    Attributes:
        origin: Pose of inertial frame w.r.t. link frame, defaults to the identity
        mass: Mass in kilograms
        ixx, ixy, ixz, iyy, iyz, izz: Components of the 3x3 symmetric inertia tensor in kg*m^2
    """

    origin: Transform = Transform()
    mass: float = 0.0
    ixx: float = 0.0
    ixy: float = 0.0
    ixz: float = 0.0
    iyy: float = 0.0
    iyz: float = 0.0
    izz: float = 0.0


@dataclass(frozen=True)
class Visual(Base):
    """Visual geometry of a link

    Attributes:
        name: Optional name of the visual element
        origin: Pose of visual geometry w.r.t. link frame, defaults to the identity
        geometry: Geometric shape for visualization
        material_name: Name of the referenced material, None if no material is given
        material: Inline material before assembly, the registry entry after
    """

    name: str | None = None
    origin: Transform = Transform()
    geometry: Geometry | None = None
    material_name: str | None = None
    material: Material | None = None


@dataclass(frozen=True)
class Collision(Base):
    """Collision geometry of a link

    Attributes:
        name: Optional name of the collision element
        origin: Pose of collision geometry w.r.t. link frame, defaults to the identity
        geometry: Geometric shape for collision checking
    """

    name: str | None = None
    origin: Transform = Transform()
    geometry: Geometry | None = None


@dataclass(frozen=True)
class JointDynamics(Base):
    """Joint damping and friction

    Attributes:
        damping: Damping coefficient
        friction: Static friction
    """

    damping: float = 0.0
    friction: float = 0.0


@dataclass(frozen=True)
class JointLimits(Base):
    """Joint limits

    Attributes:
        lower: Lower joint limit (radians for revolute, meters for prismatic)
        upper: Upper joint limit (radians for revolute, meters for prismatic)
        effort: Maximum joint effort (torque for revolute, force for prismatic)
        velocity: Maximum joint velocity (rad/s for revolute, m/s for prismatic)
    """

    lower: float = 0.0
    upper: float = 0.0
    effort: float = 0.0
    velocity: float = 0.0


@dataclass(frozen=True)
class JointSafety(Base):
    """Safety controller parameters

    Attributes:
        upper_limit: Upper soft limit
        lower_limit: Lower soft limit
        k_position: Position gain of the soft limit
        k_velocity: Velocity gain of the soft limit
    """

    upper_limit: float = 0.0
    lower_limit: float = 0.0
    k_position: float = 0.0
    k_velocity: float = 0.0


@dataclass(frozen=True)
class JointCalibration(Base):
    """Reference positions of the calibration switch edges

    Attributes:
        rising: Position of the rising edge, None if not specified
        falling: Position of the falling edge, None if not specified
    """

    rising: float | None = None
    falling: float | None = None


@dataclass(frozen=True)
class JointMimic(Base):
    """Joint position defined as multiplier * other + offset

    Attributes:
        joint_name: Name of the mimicked joint
        offset: Offset added to the scaled position
        multiplier: Scale applied to the mimicked joint position
    """

    joint_name: str
    offset: float = 0.0
    multiplier: float = 0.0


class JointType(Enum):
    """Joint types, valued by their `type` attribute"""

    UNKNOWN = "unknown"
    REVOLUTE = "revolute"
    CONTINUOUS = "continuous"
    PRISMATIC = "prismatic"
    FLOATING = "floating"
    PLANAR = "planar"
    FIXED = "fixed"

    @property
    def has_axis(self) -> bool:
        return self not in (JointType.FLOATING, JointType.FIXED)


@dataclass(frozen=True)
class Joint(Base):
    """Joint connecting two links

    Attributes:
        name: Name of the joint
        type: Type of joint
        axis: Axis of actuation expressed in the joint frame, defaults to (1.0, 0.0, 0.0)
        child_link_name: Name of the child link, empty if not specified
        parent_link_name: Name of the parent link, empty if not specified
        parent_to_joint_transform: Pose of joint frame w.r.t. parent link frame, defaults to the identity
        dynamics, limits, safety, calibration, mimic: Optional joint properties
    """

    name: str
    type: JointType = JointType.UNKNOWN
    axis: Vector3 = Vector3(1.0, 0.0, 0.0)
    child_link_name: str = ""
    parent_link_name: str = ""
    parent_to_joint_transform: Transform = Transform()
    dynamics: JointDynamics | None = None
    limits: JointLimits | None = None
    safety: JointSafety | None = None
    calibration: JointCalibration | None = None
    mimic: JointMimic | None = None


@dataclass(frozen=True)
class Link(Base):
    """Robot link

    Tree relations are stored as names and resolved against the owning Robot.

    Attributes:
        name: Name of the link
        inertial: Inertial properties, defaults to None
        collisions: Collision elements in document order
        visuals: Visual elements in document order
        parent_joint: Name of the joint whose child this link is, None for the root
        parent_link: Name of the parent link, None for the root
        child_joints: Names of joints having this link as parent
        child_links: Names of the child links, aligned with child_joints
        link_index: Breadth-first position from the root, -1 before assembly
    """

    name: str
    inertial: Inertial | None = None
    collisions: tuple[Collision, ...] = ()
    visuals: tuple[Visual, ...] = ()
    parent_joint: str | None = None
    parent_link: str | None = None
    child_joints: tuple[str, ...] = ()
    child_links: tuple[str, ...] = ()
    link_index: int = -1


@dataclass(frozen=True)
class Robot:
    """Validated robot model

    Attributes:
        name: Name of the robot
        root_link: Name of the unique root link
        links: Read-only mapping of link names to Link objects, in document order
        joints: Read-only mapping of joint names to Joint objects, in document order
        materials: Read-only mapping of material names to Material objects
    """

    name: str
    root_link: str
    links: Mapping[str, Link] = field(default_factory=dict)
    joints: Mapping[str, Joint] = field(default_factory=dict)
    materials: Mapping[str, Material] = field(default_factory=dict)

    @property
    def root(self) -> Link:
        return self.links[self.root_link]

    def get_link(self, name: str) -> Link | None:
        return self.links.get(name)

    def get_joint(self, name: str) -> Joint | None:
        return self.joints.get(name)

    def get_material(self, name: str) -> Material | None:
        return self.materials.get(name)

    def iter_links(self) -> Iterator[Link]:
        return iter(self.links.values())

    def parent_of(self, link: str) -> Link | None:
        """Parent Link of the named link, None for the root"""
        parent = self.links[link].parent_link
        return self.links[parent] if parent is not None else None

    def children_of(self, link: str) -> tuple[Link, ...]:
        return tuple(self.links[child] for child in self.links[link].child_links)

    def descendants(self) -> Iterator[Link]:
        """Depth-first traversal of the kinematic tree starting at the root"""
        stack = [self.root]
        while stack:
            link = stack.pop()
            yield link
            stack.extend(reversed(self.children_of(link.name)))
