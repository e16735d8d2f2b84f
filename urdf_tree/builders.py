"""Builders turning single URDF elements into model records

Every builder receives the element it decodes plus the name of the enclosing
link or joint for diagnostics, and either returns a record or raises
URDFParseError. Builders never look at other top-level elements; name
references are left for the assembler in `parsers` to resolve.
"""

from lxml import etree

from .codec import parse_color, parse_double, parse_rpy, parse_vector3
from .errors import ErrorKind, URDFParseError
from .model import (
    Box,
    Capsule,
    Collision,
    Cylinder,
    Geometry,
    GeometryType,
    Inertial,
    Joint,
    JointCalibration,
    JointDynamics,
    JointLimits,
    JointMimic,
    JointSafety,
    JointType,
    Link,
    Material,
    Mesh,
    Sphere,
    Transform,
    Visual,
)

__all__ = [
    "parse_transform",
    "parse_geometry",
    "parse_material",
    "parse_dynamics",
    "parse_limits",
    "parse_safety",
    "parse_calibration",
    "parse_mimic",
    "parse_inertial",
    "parse_visual",
    "parse_collision",
    "parse_link",
    "parse_joint",
]

INERTIA_COMPONENTS = ("ixx", "ixy", "ixz", "iyy", "iyz", "izz")

_JOINT_TYPES = {joint_type.value: joint_type for joint_type in JointType if joint_type is not JointType.UNKNOWN}


def _get_source_metadata(elem: etree._Element) -> dict:
    """Get source tracking metadata for element

    Args:
        elem: Element to get metadata for

    Returns:
        Dict with _line_number and _source_path
    """
    return {
        "_line_number": elem.sourceline,
        "_source_path": elem.getroottree().getpath(elem),
    }


def _context(link: str | None = None, joint: str | None = None) -> str:
    if joint is not None:
        return f"Error while parsing joint '{joint}'"
    return f"Error while parsing link '{link}'"


def _missing(kind: ErrorKind, text: str, *, link: str | None = None, joint: str | None = None) -> URDFParseError:
    return URDFParseError(kind, f"{_context(link, joint)}: {text}", link=link, joint=joint)


def _parse_double_attribute(
    elem: etree._Element, attribute: str, description: str, *, link: str | None = None, joint: str | None = None
) -> float:
    """Parse a numeric attribute known to be present

    Args:
        elem: Element carrying the attribute
        attribute: Attribute name
        description: Human-readable name of the value, e.g. 'sphere radius'
        link: Enclosing link name for diagnostics
        joint: Enclosing joint name for diagnostics

    Returns:
        Parsed value

    Raises:
        URDFParseError: NUMBER_FORMAT or NUMBER_RANGE, with element context
    """
    text = elem.get(attribute)
    try:
        return parse_double(text)
    except URDFParseError as e:
        raise e.wrap(
            f"{_context(link, joint)}: {description} [{text}] is not a valid double", link=link, joint=joint
        ) from e


def _parse_optional_double(
    elem: etree._Element, attribute: str, description: str, default: float | None = 0.0, **context
) -> float | None:
    if elem.get(attribute) is None:
        return default
    return _parse_double_attribute(elem, attribute, description, **context)


def parse_transform(origin_elem: etree._Element | None) -> Transform:
    """Parse origin element

    Args:
        origin_elem: Origin element, or None

    Returns:
        Transform with position and rotation, identity components where attributes are absent
    """
    if origin_elem is None:
        return Transform()

    kwargs = _get_source_metadata(origin_elem)

    xyz = origin_elem.get("xyz")
    if xyz is not None:
        kwargs["position"] = parse_vector3(xyz)

    rpy = origin_elem.get("rpy")
    if rpy is not None:
        kwargs["rotation"] = parse_rpy(rpy)

    return Transform(**kwargs)


def parse_geometry(geometry_elem: etree._Element, link_name: str | None) -> Geometry:
    """Parse geometry element

    Args:
        geometry_elem: Geometry element whose first child names the shape
        link_name: Name of the enclosing link

    Returns:
        Sphere, Box, Cylinder, Capsule or Mesh

    Raises:
        URDFParseError: EMPTY_GEOMETRY, UNKNOWN_GEOMETRY_TYPE, MISSING_ATTRIBUTE or a number error
    """
    ctx = {"link": link_name}

    shape_elem = next(iter(geometry_elem), None)
    if shape_elem is None:
        raise _missing(ErrorKind.EMPTY_GEOMETRY, "geometry does not contain any shape information", **ctx)

    try:
        shape_type = GeometryType(shape_elem.tag)
    except ValueError:
        raise URDFParseError(
            ErrorKind.UNKNOWN_GEOMETRY_TYPE,
            f"{_context(**ctx)}: unknown shape type '{shape_elem.tag}'",
            **ctx,
        ) from None

    metadata = _get_source_metadata(shape_elem)

    if shape_type is GeometryType.SPHERE:
        if shape_elem.get("radius") is None:
            raise _missing(ErrorKind.MISSING_ATTRIBUTE, "sphere shape must have a radius attribute", **ctx)
        radius = _parse_double_attribute(shape_elem, "radius", "sphere radius", **ctx)
        return Sphere(radius=radius, **metadata)

    elif shape_type is GeometryType.BOX:
        size = shape_elem.get("size")
        if size is None:
            raise _missing(ErrorKind.MISSING_ATTRIBUTE, "box shape must have a size attribute", **ctx)
        try:
            dim = parse_vector3(size)
        except URDFParseError as e:
            raise e.wrap(f"{_context(**ctx)}: box size [{size}] is not valid", **ctx) from e
        return Box(dim=dim, **metadata)

    elif shape_type in (GeometryType.CYLINDER, GeometryType.CAPSULE):
        shape = shape_type.value
        for attribute in ("length", "radius"):
            if shape_elem.get(attribute) is None:
                raise _missing(
                    ErrorKind.MISSING_ATTRIBUTE,
                    f"{shape} shape must have both length and radius attributes, '{attribute}' is missing",
                    **ctx,
                )
        length = _parse_double_attribute(shape_elem, "length", f"{shape} length", **ctx)
        radius = _parse_double_attribute(shape_elem, "radius", f"{shape} radius", **ctx)
        cls = Cylinder if shape_type is GeometryType.CYLINDER else Capsule
        return cls(length=length, radius=radius, **metadata)

    else:
        filename = shape_elem.get("filename")
        if filename is None:
            raise _missing(ErrorKind.MISSING_ATTRIBUTE, "mesh must contain a filename attribute", **ctx)
        scale = shape_elem.get("scale")
        if scale is None:
            return Mesh(filename=filename, **metadata)
        try:
            return Mesh(filename=filename, scale=parse_vector3(scale), **metadata)
        except URDFParseError as e:
            raise e.wrap(f"{_context(**ctx)}: mesh scale [{scale}] is not valid", **ctx) from e


def parse_material(material_elem: etree._Element, relaxed: bool = False, link_name: str | None = None) -> Material:
    """Parse material element

    Args:
        material_elem: Material element
        relaxed: Accept a material with only a name, used for references inside a visual
        link_name: Name of the enclosing link, None for top-level materials

    Returns:
        Material object

    Raises:
        URDFParseError: MISSING_ATTRIBUTE without a name, INCOMPLETE_MATERIAL if neither
            color nor texture is given and relaxed is False
    """
    name = material_elem.get("name")
    if name is None:
        raise URDFParseError(
            ErrorKind.MISSING_ATTRIBUTE, "Error! Material without a name attribute detected", link=link_name
        )

    texture_filename = None
    texture_elem = material_elem.find("texture")
    if texture_elem is not None:
        texture_filename = texture_elem.get("filename")

    color = None
    color_elem = material_elem.find("color")
    if color_elem is not None and color_elem.get("rgba") is not None:
        try:
            color = parse_color(color_elem.get("rgba"))
        except URDFParseError as e:
            raise e.wrap(f"Material [{name}] has malformed color rgba values", link=link_name) from e

    material = Material(
        name=name,
        texture_filename=texture_filename,
        color=color,
        **_get_source_metadata(material_elem),
    )

    if not relaxed and not material.is_defined:
        raise URDFParseError(
            ErrorKind.INCOMPLETE_MATERIAL,
            f"Material [{name}] has neither a texture nor a color defined",
            link=link_name,
        )

    return material


def parse_dynamics(dynamics_elem: etree._Element, joint_name: str) -> JointDynamics:
    """Parse dynamics element

    Raises:
        URDFParseError: EMPTY_DYNAMICS if neither damping nor friction is given
    """
    if dynamics_elem.get("damping") is None and dynamics_elem.get("friction") is None:
        raise _missing(
            ErrorKind.EMPTY_DYNAMICS,
            "joint dynamics element specified with no damping and no friction",
            joint=joint_name,
        )

    return JointDynamics(
        damping=_parse_optional_double(dynamics_elem, "damping", "dynamics damping value", joint=joint_name),
        friction=_parse_optional_double(dynamics_elem, "friction", "dynamics friction value", joint=joint_name),
        **_get_source_metadata(dynamics_elem),
    )


def parse_limits(limit_elem: etree._Element, joint_name: str) -> JointLimits:
    """Parse limit element

    Lower and upper default to 0.0, effort and velocity are required.

    Raises:
        URDFParseError: MISSING_LIMIT_ATTRIBUTE naming the missing attribute
    """
    for attribute in ("effort", "velocity"):
        if limit_elem.get(attribute) is None:
            raise _missing(
                ErrorKind.MISSING_LIMIT_ATTRIBUTE, f"joint limit: no {attribute} specified", joint=joint_name
            )

    return JointLimits(
        lower=_parse_optional_double(limit_elem, "lower", "limits lower value", joint=joint_name),
        upper=_parse_optional_double(limit_elem, "upper", "limits upper value", joint=joint_name),
        effort=_parse_double_attribute(limit_elem, "effort", "limits effort value", joint=joint_name),
        velocity=_parse_double_attribute(limit_elem, "velocity", "limits velocity value", joint=joint_name),
        **_get_source_metadata(limit_elem),
    )


def parse_safety(safety_elem: etree._Element, joint_name: str) -> JointSafety:
    """Parse safety_controller element

    Raises:
        URDFParseError: MISSING_SAFETY_ATTRIBUTE if k_velocity is absent
    """
    if safety_elem.get("k_velocity") is None:
        raise _missing(ErrorKind.MISSING_SAFETY_ATTRIBUTE, "joint safety: no k_velocity specified", joint=joint_name)

    return JointSafety(
        upper_limit=_parse_optional_double(safety_elem, "upper_limit", "safety upper_limit value", joint=joint_name),
        lower_limit=_parse_optional_double(safety_elem, "lower_limit", "safety lower_limit value", joint=joint_name),
        k_position=_parse_optional_double(safety_elem, "k_position", "safety k_position value", joint=joint_name),
        k_velocity=_parse_double_attribute(safety_elem, "k_velocity", "safety k_velocity value", joint=joint_name),
        **_get_source_metadata(safety_elem),
    )


def parse_calibration(calibration_elem: etree._Element, joint_name: str) -> JointCalibration:
    rising = _parse_optional_double(
        calibration_elem, "rising", "calibration rising_position value", default=None, joint=joint_name
    )
    falling = _parse_optional_double(
        calibration_elem, "falling", "calibration falling_position value", default=None, joint=joint_name
    )
    return JointCalibration(rising=rising, falling=falling, **_get_source_metadata(calibration_elem))


def parse_mimic(mimic_elem: etree._Element, joint_name: str) -> JointMimic:
    """Parse mimic element

    Raises:
        URDFParseError: MISSING_MIMIC_TARGET if the joint attribute is absent
    """
    target = mimic_elem.get("joint")
    if target is None:
        raise _missing(ErrorKind.MISSING_MIMIC_TARGET, "joint mimic: no mimic joint specified", joint=joint_name)

    return JointMimic(
        joint_name=target,
        offset=_parse_optional_double(mimic_elem, "offset", "mimic offset value", joint=joint_name),
        multiplier=_parse_optional_double(mimic_elem, "multiplier", "mimic multiplier value", joint=joint_name),
        **_get_source_metadata(mimic_elem),
    )


def parse_inertial(inertial_elem: etree._Element, link_name: str) -> Inertial:
    """Parse inertial element

    Args:
        inertial_elem: Inertial element
        link_name: Name of the enclosing link

    Returns:
        Inertial object

    Raises:
        URDFParseError: MISSING_ELEMENT without mass or inertia, MISSING_ATTRIBUTE without
            a mass value, INCOMPLETE_INERTIA_TENSOR if any tensor component is absent
    """
    ctx = {"link": link_name}

    try:
        origin = parse_transform(inertial_elem.find("origin"))
    except URDFParseError as e:
        raise e.wrap(f"{_context(**ctx)}: inertial origin is not valid", **ctx) from e

    mass_elem = inertial_elem.find("mass")
    if mass_elem is None:
        raise _missing(ErrorKind.MISSING_ELEMENT, "inertial element must have a <mass> element", **ctx)
    if mass_elem.get("value") is None:
        raise _missing(ErrorKind.MISSING_ATTRIBUTE, "<mass> element must have a value attribute", **ctx)
    mass = _parse_double_attribute(mass_elem, "value", "inertial mass", **ctx)

    inertia_elem = inertial_elem.find("inertia")
    if inertia_elem is None:
        raise _missing(ErrorKind.MISSING_ELEMENT, "inertial element must have an <inertia> element", **ctx)

    missing = [component for component in INERTIA_COMPONENTS if inertia_elem.get(component) is None]
    if missing:
        raise _missing(
            ErrorKind.INCOMPLETE_INERTIA_TENSOR,
            f"<inertia> element must have ixx,ixy,ixz,iyy,iyz,izz attributes, missing {','.join(missing)}",
            **ctx,
        )

    tensor = {
        component: _parse_double_attribute(inertia_elem, component, f"inertia {component}", **ctx)
        for component in INERTIA_COMPONENTS
    }

    return Inertial(origin=origin, mass=mass, **tensor, **_get_source_metadata(inertial_elem))


def parse_visual(visual_elem: etree._Element, link_name: str) -> Visual:
    """Parse visual element

    The material, if any, is parsed in relaxed mode and resolved later by the assembler.

    Args:
        visual_elem: Visual element
        link_name: Name of the enclosing link

    Returns:
        Visual object
    """
    ctx = {"link": link_name}

    try:
        origin = parse_transform(visual_elem.find("origin"))
    except URDFParseError as e:
        raise e.wrap(f"{_context(**ctx)}: visual origin is not valid", **ctx) from e

    geometry_elem = visual_elem.find("geometry")
    geometry = parse_geometry(geometry_elem, link_name) if geometry_elem is not None else None

    material_name = None
    material = None
    material_elem = visual_elem.find("material")
    if material_elem is not None:
        material_name = material_elem.get("name")
        if material_name is None:
            raise _missing(ErrorKind.MISSING_ATTRIBUTE, "visual material must contain a name attribute", **ctx)
        material = parse_material(material_elem, relaxed=True, link_name=link_name)

    return Visual(
        name=visual_elem.get("name"),
        origin=origin,
        geometry=geometry,
        material_name=material_name,
        material=material,
        **_get_source_metadata(visual_elem),
    )


def parse_collision(collision_elem: etree._Element, link_name: str) -> Collision:
    ctx = {"link": link_name}

    try:
        origin = parse_transform(collision_elem.find("origin"))
    except URDFParseError as e:
        raise e.wrap(f"{_context(**ctx)}: collision origin is not valid", **ctx) from e

    geometry_elem = collision_elem.find("geometry")
    geometry = parse_geometry(geometry_elem, link_name) if geometry_elem is not None else None

    return Collision(
        name=collision_elem.get("name"),
        origin=origin,
        geometry=geometry,
        **_get_source_metadata(collision_elem),
    )


def parse_link(link_elem: etree._Element) -> Link:
    """Parse link element

    Args:
        link_elem: Link element

    Returns:
        Link object without tree relations

    Raises:
        URDFParseError: UNNAMED_LINK without a name attribute
    """
    name = link_elem.get("name")
    if name is None:
        raise URDFParseError(ErrorKind.UNNAMED_LINK, "Error! Link without a name attribute detected")

    inertial_elem = link_elem.find("inertial")
    inertial = parse_inertial(inertial_elem, name) if inertial_elem is not None else None

    visuals = tuple(parse_visual(visual_elem, name) for visual_elem in link_elem.findall("visual"))
    collisions = tuple(parse_collision(collision_elem, name) for collision_elem in link_elem.findall("collision"))

    return Link(
        name=name,
        inertial=inertial,
        collisions=collisions,
        visuals=visuals,
        **_get_source_metadata(link_elem),
    )


def parse_joint(joint_elem: etree._Element) -> Joint:
    """Parse joint element

    Parent and child link names are taken as given, an absent one is left empty
    and rejected during tree assembly.

    Args:
        joint_elem: Joint element

    Returns:
        Joint object

    Raises:
        URDFParseError: UNNAMED_JOINT, MISSING_ATTRIBUTE without a type, UNKNOWN_JOINT_TYPE,
            or any error of the joint property builders
    """
    name = joint_elem.get("name")
    if name is None:
        raise URDFParseError(ErrorKind.UNNAMED_JOINT, "Error while parsing model: unnamed joint found")

    type_str = joint_elem.get("type")
    if type_str is None:
        raise URDFParseError(
            ErrorKind.MISSING_ATTRIBUTE,
            f"Error! Joint '{name}' has no type, check to see if it's a reference",
            joint=name,
        )
    if type_str not in _JOINT_TYPES:
        raise URDFParseError(
            ErrorKind.UNKNOWN_JOINT_TYPE, f"Error! Joint '{name}' has unknown type ({type_str})", joint=name
        )
    joint_type = _JOINT_TYPES[type_str]

    kwargs = {}

    try:
        kwargs["parent_to_joint_transform"] = parse_transform(joint_elem.find("origin"))
    except URDFParseError as e:
        raise e.wrap(f"Error! Malformed parent origin element for joint '{name}'", joint=name) from e

    parent_elem = joint_elem.find("parent")
    if parent_elem is not None and parent_elem.get("link") is not None:
        kwargs["parent_link_name"] = parent_elem.get("link")

    child_elem = joint_elem.find("child")
    if child_elem is not None and child_elem.get("link") is not None:
        kwargs["child_link_name"] = child_elem.get("link")

    if joint_type.has_axis:
        axis_elem = joint_elem.find("axis")
        if axis_elem is not None and axis_elem.get("xyz") is not None:
            try:
                kwargs["axis"] = parse_vector3(axis_elem.get("xyz"))
            except URDFParseError as e:
                raise e.wrap(f"Error! Malformed axis element for joint '{name}'", joint=name) from e

    properties = (
        ("dynamics", "dynamics", parse_dynamics),
        ("limit", "limits", parse_limits),
        ("safety_controller", "safety", parse_safety),
        ("calibration", "calibration", parse_calibration),
        ("mimic", "mimic", parse_mimic),
    )
    for tag, field_name, builder in properties:
        property_elem = joint_elem.find(tag)
        if property_elem is not None:
            kwargs[field_name] = builder(property_elem, name)

    return Joint(name=name, type=joint_type, **kwargs, **_get_source_metadata(joint_elem))
