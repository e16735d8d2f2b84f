import pytest
from lxml import etree

from urdf_tree import ErrorKind, URDFParseError
from urdf_tree.builders import (
    parse_calibration,
    parse_collision,
    parse_dynamics,
    parse_geometry,
    parse_inertial,
    parse_joint,
    parse_limits,
    parse_link,
    parse_material,
    parse_mimic,
    parse_safety,
    parse_transform,
    parse_visual,
)
from urdf_tree.model import Box, Capsule, Color, Cylinder, JointType, Mesh, Sphere, Vector3


def _elem(xml_string: str) -> etree._Element:
    return etree.fromstring(xml_string)


def _geometry(shape: str) -> etree._Element:
    """Geometry element nested in a link, as found in a document"""
    link = _elem(f'<link name="arm"><visual><geometry>{shape}</geometry></visual></link>')
    return link.find("visual/geometry")


@pytest.mark.parametrize(
    ("shape", "expected"),
    [
        ('<sphere radius="0.5"/>', Sphere(radius=0.5)),
        ('<box size="0.1 0.2 0.3"/>', Box(dim=Vector3(0.1, 0.2, 0.3))),
        ('<cylinder length="0.6" radius="0.2"/>', Cylinder(length=0.6, radius=0.2)),
        ('<capsule length="0.6" radius="0.2"/>', Capsule(length=0.6, radius=0.2)),
        ('<mesh filename="test.obj" scale="0.7 0.8 0.9"/>', Mesh(filename="test.obj", scale=Vector3(0.7, 0.8, 0.9))),
        ('<mesh filename="test.obj"/>', Mesh(filename="test.obj", scale=Vector3(1.0, 1.0, 1.0))),
        ('<sphere radius=" 0.5 "/>', Sphere(radius=0.5)),
    ],
)
def test_geometry(shape: str, expected) -> None:
    """Test parsing each geometry shape"""
    assert parse_geometry(_geometry(shape), "arm") == expected


@pytest.mark.parametrize(
    ("shape", "kind"),
    [
        ("<sphere/>", ErrorKind.MISSING_ATTRIBUTE),
        ('<sphere radius="big"/>', ErrorKind.NUMBER_FORMAT),
        ("<box/>", ErrorKind.MISSING_ATTRIBUTE),
        ('<box size="1 2"/>', ErrorKind.VECTOR_ARITY),
        ('<cylinder radius="1"/>', ErrorKind.MISSING_ATTRIBUTE),
        ('<cylinder length="1"/>', ErrorKind.MISSING_ATTRIBUTE),
        ('<capsule length="x" radius="1"/>', ErrorKind.NUMBER_FORMAT),
        ('<mesh scale="1 1 1"/>', ErrorKind.MISSING_ATTRIBUTE),
        ('<mesh filename="a.stl" scale="1 1"/>', ErrorKind.VECTOR_ARITY),
        ('<cone radius="1"/>', ErrorKind.UNKNOWN_GEOMETRY_TYPE),
        ("", ErrorKind.EMPTY_GEOMETRY),
    ],
)
def test_geometry_errors(shape: str, kind: ErrorKind) -> None:
    """Test that geometry errors carry their kind and the link name"""
    with pytest.raises(URDFParseError) as excinfo:
        parse_geometry(_geometry(shape), "arm")

    assert excinfo.value.kind is kind
    assert excinfo.value.link == "arm"
    assert "link 'arm'" in str(excinfo.value)


def test_geometry_number_error_context() -> None:
    """Test that a codec error is wrapped with the attribute and link"""
    with pytest.raises(URDFParseError, match=r"link 'arm': sphere radius \[big\] is not a valid double") as excinfo:
        parse_geometry(_geometry('<sphere radius="big"/>'), "arm")

    assert excinfo.value.__cause__.kind is ErrorKind.NUMBER_FORMAT


def test_unknown_geometry_names_shape() -> None:
    """Test that an unknown shape is named in the error"""
    with pytest.raises(URDFParseError, match="unknown shape type 'cone'"):
        parse_geometry(_geometry('<cone radius="1"/>'), "arm")


def test_transform() -> None:
    """Test parsing an origin element with source metadata"""
    transform = parse_transform(_elem('<origin xyz="1 2 3" rpy="0 0 0"/>'))

    assert transform.position == Vector3(1.0, 2.0, 3.0)
    assert transform._line_number == 1


def test_transform_missing_element() -> None:
    """Test that a missing origin gives the identity transform"""
    assert parse_transform(None).position == Vector3()


def test_material_color_and_texture() -> None:
    """Test parsing a material with both color and texture"""
    material = parse_material(
        _elem('<material name="Grey"><color rgba="0.5 0.5 0.5 1"/><texture filename="grey.png"/></material>')
    )

    assert material.name == "Grey"
    assert material.color == Color(0.5, 0.5, 0.5, 1.0)
    assert material.texture_filename == "grey.png"


def test_material_strict_requires_color_or_texture() -> None:
    """Test that a strict material needs a color or texture"""
    with pytest.raises(URDFParseError, match="neither a texture nor a color") as excinfo:
        parse_material(_elem('<material name="Grey"/>'))
    assert excinfo.value.kind is ErrorKind.INCOMPLETE_MATERIAL


def test_material_relaxed_accepts_name_only() -> None:
    """Test that a relaxed material may carry only a name"""
    material = parse_material(_elem('<material name="Grey"/>'), relaxed=True)

    assert material.name == "Grey"
    assert not material.is_defined


def test_material_without_name() -> None:
    """Test that a material without a name fails"""
    with pytest.raises(URDFParseError) as excinfo:
        parse_material(_elem('<material><color rgba="1 1 1 1"/></material>'))
    assert excinfo.value.kind is ErrorKind.MISSING_ATTRIBUTE


def test_material_malformed_color() -> None:
    """Test that a bad rgba value names the material"""
    with pytest.raises(URDFParseError, match=r"Material \[Grey\] has malformed color") as excinfo:
        parse_material(_elem('<material name="Grey"><color rgba="1 1 1"/></material>'))
    assert excinfo.value.kind is ErrorKind.COLOR_ARITY


def test_dynamics() -> None:
    """Test that a missing dynamics attribute defaults to zero"""
    dynamics = parse_dynamics(_elem('<dynamics friction="0.2"/>'), "j")

    assert dynamics.damping == 0.0
    assert dynamics.friction == 0.2


def test_dynamics_empty() -> None:
    """Test that dynamics without damping or friction fails"""
    with pytest.raises(URDFParseError) as excinfo:
        parse_dynamics(_elem("<dynamics/>"), "j")
    assert excinfo.value.kind is ErrorKind.EMPTY_DYNAMICS
    assert excinfo.value.joint == "j"


def test_limits_defaults() -> None:
    """Test that lower and upper limits default to zero"""
    limits = parse_limits(_elem('<limit effort="1" velocity="2"/>'), "j")

    assert (limits.lower, limits.upper, limits.effort, limits.velocity) == (0.0, 0.0, 1.0, 2.0)


@pytest.mark.parametrize(("attributes", "missing"), [('velocity="2"', "effort"), ('effort="1"', "velocity")])
def test_limits_missing(attributes: str, missing: str) -> None:
    """Test that effort and velocity are required"""
    with pytest.raises(URDFParseError, match=f"no {missing} specified") as excinfo:
        parse_limits(_elem(f"<limit {attributes}/>"), "j")
    assert excinfo.value.kind is ErrorKind.MISSING_LIMIT_ATTRIBUTE


def test_limits_number_error_keeps_kind() -> None:
    """Test that a bad limit value keeps NUMBER_FORMAT and names the joint"""
    with pytest.raises(URDFParseError, match=r"joint 'j': limits lower value \[low\]") as excinfo:
        parse_limits(_elem('<limit lower="low" effort="1" velocity="2"/>'), "j")
    assert excinfo.value.kind is ErrorKind.NUMBER_FORMAT
    assert excinfo.value.joint == "j"


def test_safety() -> None:
    """Test parsing a safety controller with defaults"""
    safety = parse_safety(_elem('<safety_controller k_velocity="10" upper_limit="1.5"/>'), "j")

    assert safety.k_velocity == 10.0
    assert safety.upper_limit == 1.5
    assert safety.lower_limit == 0.0
    assert safety.k_position == 0.0


def test_safety_requires_k_velocity() -> None:
    """Test that a safety controller needs k_velocity"""
    with pytest.raises(URDFParseError) as excinfo:
        parse_safety(_elem('<safety_controller k_position="10"/>'), "j")
    assert excinfo.value.kind is ErrorKind.MISSING_SAFETY_ATTRIBUTE


def test_calibration_is_optional() -> None:
    """Test that calibration values are absent unless given"""
    calibration = parse_calibration(_elem('<calibration falling="0.1"/>'), "j")

    assert calibration.rising is None
    assert calibration.falling == 0.1
    assert parse_calibration(_elem("<calibration/>"), "j").falling is None


def test_mimic() -> None:
    """Test parsing a mimic with default offset"""
    mimic = parse_mimic(_elem('<mimic joint="other" multiplier="2"/>'), "j")

    assert mimic.joint_name == "other"
    assert mimic.multiplier == 2.0
    assert mimic.offset == 0.0


def test_mimic_requires_target() -> None:
    """Test that a mimic needs a target joint"""
    with pytest.raises(URDFParseError) as excinfo:
        parse_mimic(_elem('<mimic multiplier="2"/>'), "j")
    assert excinfo.value.kind is ErrorKind.MISSING_MIMIC_TARGET


INERTIA = '<inertia ixx="1" ixy="0" ixz="0" iyy="2" iyz="0" izz="3"/>'


def test_inertial() -> None:
    """Test parsing mass, origin and inertia tensor"""
    inertial = parse_inertial(_elem(f'<inertial><origin xyz="0 0 1"/><mass value="2.5"/>{INERTIA}</inertial>'), "l")

    assert inertial.mass == 2.5
    assert inertial.origin.position == Vector3(0.0, 0.0, 1.0)
    assert (inertial.ixx, inertial.iyy, inertial.izz) == (1.0, 2.0, 3.0)


@pytest.mark.parametrize(
    ("body", "kind"),
    [
        (INERTIA, ErrorKind.MISSING_ELEMENT),
        ('<mass value="1"/>', ErrorKind.MISSING_ELEMENT),
        (f"<mass/>{INERTIA}", ErrorKind.MISSING_ATTRIBUTE),
        (f'<mass value="heavy"/>{INERTIA}', ErrorKind.NUMBER_FORMAT),
        (f'<origin xyz="0 0"/><mass value="1"/>{INERTIA}', ErrorKind.VECTOR_ARITY),
    ],
)
def test_inertial_errors(body: str, kind: ErrorKind) -> None:
    """Test that inertial errors carry their kind and the link name"""
    with pytest.raises(URDFParseError) as excinfo:
        parse_inertial(_elem(f"<inertial>{body}</inertial>"), "l")
    assert excinfo.value.kind is kind
    assert excinfo.value.link == "l"


def test_inertia_tensor_incomplete() -> None:
    """Test that missing tensor components are listed"""
    with pytest.raises(URDFParseError, match="missing iyz,izz") as excinfo:
        parse_inertial(_elem('<inertial><mass value="1"/><inertia ixx="1" ixy="0" ixz="0" iyy="1"/></inertial>'), "l")
    assert excinfo.value.kind is ErrorKind.INCOMPLETE_INERTIA_TENSOR


def test_visual_with_inline_material() -> None:
    """Test parsing a visual with an inline material"""
    visual = parse_visual(
        _elem(
            '<visual name="v"><geometry><sphere radius="1"/></geometry>'
            '<material name="Red"><color rgba="1 0 0 1"/></material></visual>'
        ),
        "l",
    )

    assert visual.name == "v"
    assert visual.material_name == "Red"
    assert visual.material.color == Color(1.0, 0.0, 0.0, 1.0)


def test_visual_optional_fields() -> None:
    """Test that an empty visual is valid"""
    visual = parse_visual(_elem("<visual/>"), "l")

    assert visual.name is None
    assert visual.geometry is None
    assert visual.material_name is None
    assert visual.material is None


def test_visual_material_without_name() -> None:
    """Test that a visual material needs a name"""
    with pytest.raises(URDFParseError, match="visual material must contain a name") as excinfo:
        parse_visual(_elem('<visual><material><color rgba="1 0 0 1"/></material></visual>'), "l")
    assert excinfo.value.kind is ErrorKind.MISSING_ATTRIBUTE


def test_collision_bad_origin() -> None:
    """Test that a bad collision origin is reported"""
    with pytest.raises(URDFParseError, match="collision origin is not valid") as excinfo:
        parse_collision(_elem('<collision><origin rpy="0 0"/></collision>'), "l")
    assert excinfo.value.kind is ErrorKind.VECTOR_ARITY


def test_link() -> None:
    """Test that visuals and collisions keep document order"""
    link = parse_link(
        _elem(
            '<link name="l"><collision name="c1"/><visual name="v1"/><collision name="c2"/><visual name="v2"/></link>'
        )
    )

    assert link.name == "l"
    assert link.inertial is None
    assert [visual.name for visual in link.visuals] == ["v1", "v2"]
    assert [collision.name for collision in link.collisions] == ["c1", "c2"]
    assert link.parent_joint is None
    assert link.link_index == -1


def test_unnamed_link() -> None:
    """Test that a link without a name fails"""
    with pytest.raises(URDFParseError) as excinfo:
        parse_link(_elem("<link/>"))
    assert excinfo.value.kind is ErrorKind.UNNAMED_LINK


@pytest.mark.parametrize("type_str", [jt.value for jt in JointType if jt is not JointType.UNKNOWN])
def test_joint_types(type_str: str) -> None:
    """Test parsing every joint type"""
    joint = parse_joint(_elem(f'<joint name="j" type="{type_str}"/>'))

    assert joint.type is JointType(type_str)


def test_joint() -> None:
    """Test parsing a joint with origin, links, axis and limits"""
    joint = parse_joint(
        _elem(
            '<joint name="j" type="prismatic"><origin xyz="0 0 1"/><parent link="a"/><child link="b"/>'
            '<axis xyz="0 1 0"/><limit effort="1" velocity="1"/></joint>'
        )
    )

    assert joint.parent_link_name == "a"
    assert joint.child_link_name == "b"
    assert joint.axis == Vector3(0.0, 1.0, 0.0)
    assert joint.parent_to_joint_transform.position == Vector3(0.0, 0.0, 1.0)
    assert joint.limits.effort == 1.0
    assert joint.dynamics is None


def test_joint_without_links() -> None:
    """Test that parent and child may be omitted on a single joint"""
    joint = parse_joint(_elem('<joint name="j" type="fixed"/>'))

    assert joint.parent_link_name == ""
    assert joint.child_link_name == ""


def test_fixed_joint_axis_not_read() -> None:
    """Test that the axis of a fixed joint is ignored"""
    joint = parse_joint(_elem('<joint name="j" type="fixed"><axis xyz="not a vector"/></joint>'))

    assert joint.axis == Vector3(1.0, 0.0, 0.0)


@pytest.mark.parametrize(
    ("xml_string", "kind"),
    [
        ('<joint type="fixed"/>', ErrorKind.UNNAMED_JOINT),
        ('<joint name="j"/>', ErrorKind.MISSING_ATTRIBUTE),
        ('<joint name="j" type="hinge"/>', ErrorKind.UNKNOWN_JOINT_TYPE),
        ('<joint name="j" type="unknown"/>', ErrorKind.UNKNOWN_JOINT_TYPE),
        ('<joint name="j" type="revolute"><axis xyz="0 1"/></joint>', ErrorKind.VECTOR_ARITY),
        ('<joint name="j" type="fixed"><origin xyz="a b c"/></joint>', ErrorKind.NUMBER_FORMAT),
        ('<joint name="j" type="revolute"><limit effort="1"/></joint>', ErrorKind.MISSING_LIMIT_ATTRIBUTE),
    ],
)
def test_joint_errors(xml_string: str, kind: ErrorKind) -> None:
    """Test that joint errors carry their kind"""
    with pytest.raises(URDFParseError) as excinfo:
        parse_joint(_elem(xml_string))
    assert excinfo.value.kind is kind


def test_unknown_joint_type_names_type() -> None:
    """Test that an unknown joint type is named in the error"""
    with pytest.raises(URDFParseError, match=r"unknown type \(hinge\)"):
        parse_joint(_elem('<joint name="j" type="hinge"/>'))
