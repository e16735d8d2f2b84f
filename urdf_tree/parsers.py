import logging
from collections import deque
from dataclasses import replace
from pathlib import Path
from types import MappingProxyType

from lxml import etree

from .builders import parse_joint, parse_link, parse_material
from .errors import ErrorKind, URDFParseError
from .model import Joint, Link, Material, Robot

__all__ = ["URDFParser", "parse_urdf"]

_logger = logging.getLogger(__name__)

KNOWN_TOP_LEVEL_ELEMENTS = ("material", "link", "joint")


class URDFParser:
    """Parser for URDF documents

    Builds a validated Robot in four phases: declaration of materials, links and
    joints; resolution of visual materials; tree assembly; root resolution. The
    first violated rule aborts parsing.

    Attributes:
        xml_path: Path to URDF file, None when parsing from a string
    """

    def __init__(self, xml_path: Path | str | None = None):
        """Initialize parser

        Args:
            xml_path: Path to URDF file, only required for parse()
        """
        self.xml_path = Path(xml_path) if xml_path is not None else None

    def parse(self) -> Robot:
        """Parse URDF file into Robot model

        Returns:
            Robot model

        Raises:
            FileNotFoundError: If the URDF file doesn't exist
            URDFParseError: If the document is not a valid robot description
        """
        if self.xml_path is None:
            raise ValueError("No xml_path given, use parse_string() for in-memory documents")
        if not self.xml_path.exists():
            raise FileNotFoundError(f"XML file not found: {self.xml_path}")

        _logger.debug(f"Parsing {self.xml_path}")
        return self.parse_string(self.xml_path.read_bytes())

    def parse_string(self, xml_string: str | bytes) -> Robot:
        """Parse URDF document text into Robot model

        Args:
            xml_string: Full document text

        Returns:
            Robot model

        Raises:
            URDFParseError: If the document is not a valid robot description
        """
        root = self._load(xml_string)

        robot_name = root.get("name")
        if robot_name is None:
            raise URDFParseError(
                ErrorKind.MISSING_ATTRIBUTE,
                "No name given for the robot. Please add a name attribute to the robot element",
            )

        for elem in root:
            if elem.tag not in KNOWN_TOP_LEVEL_ELEMENTS:
                _logger.debug(f"Ignoring <{elem.tag}> element on line {elem.sourceline}")

        materials = self._parse_materials(root)
        links = self._parse_links(root)
        joints = self._parse_joints(root)

        links = self._resolve_materials(links, materials)
        links, root_link = self._build_tree(links, joints)

        _logger.debug(
            f"Parsed robot '{robot_name}': {len(materials)} materials, {len(links)} links, "
            f"{len(joints)} joints, root link '{root_link}'"
        )

        return Robot(
            name=robot_name,
            root_link=root_link,
            links=MappingProxyType(links),
            joints=MappingProxyType(joints),
            materials=MappingProxyType(materials),
        )

    def _load(self, xml_string: str | bytes) -> etree._Element:
        """Parse markup and check the root element

        Raises:
            URDFParseError: MALFORMED_DOCUMENT if markup is invalid or the root is not <robot>
        """
        if isinstance(xml_string, str):
            # lxml refuses str input carrying an encoding declaration
            xml_string = xml_string.encode("utf-8")
        if not xml_string.strip():
            raise URDFParseError(ErrorKind.MALFORMED_DOCUMENT, "Error! Empty XML document")

        parser = etree.XMLParser(remove_comments=True, remove_pis=True)
        try:
            root = etree.fromstring(xml_string, parser)
        except etree.XMLSyntaxError as e:
            raise URDFParseError(ErrorKind.MALFORMED_DOCUMENT, f"Error! Malformed XML document: {e}") from e

        if root.tag != "robot":
            raise URDFParseError(
                ErrorKind.MALFORMED_DOCUMENT, "Error! Could not find the <robot> element in the xml file"
            )
        return root

    def _parse_materials(self, root: etree._Element) -> dict[str, Material]:
        """Parse all top-level material elements

        Args:
            root: Root element of URDF tree

        Returns:
            Dict mapping material names to Material objects

        Raises:
            URDFParseError: INCOMPLETE_MATERIAL or DUPLICATE_MATERIAL
        """
        materials = {}

        for material_elem in root.findall("material"):
            material = parse_material(material_elem, relaxed=False)

            if material.name in materials:
                raise URDFParseError(
                    ErrorKind.DUPLICATE_MATERIAL, f"Error! Duplicate materials '{material.name}' found"
                )

            materials[material.name] = material

        return materials

    def _parse_links(self, root: etree._Element) -> dict[str, Link]:
        """Parse all link elements

        Args:
            root: Root element of URDF tree

        Returns:
            Dict mapping link names to Link objects, in document order

        Raises:
            URDFParseError: DUPLICATE_LINK, NO_LINKS_DEFINED, or any link builder error
        """
        links = {}

        for link_elem in root.findall("link"):
            link = parse_link(link_elem)

            if link.name in links:
                raise URDFParseError(
                    ErrorKind.DUPLICATE_LINK, f"Error! Duplicate links '{link.name}' found", link=link.name
                )

            links[link.name] = link

        if not links:
            raise URDFParseError(ErrorKind.NO_LINKS_DEFINED, "Error! No link elements found in the urdf file")

        return links

    def _parse_joints(self, root: etree._Element) -> dict[str, Joint]:
        """Parse all joint elements

        Args:
            root: Root element of URDF tree

        Returns:
            Dict mapping joint names to Joint objects, in document order

        Raises:
            URDFParseError: DUPLICATE_JOINT, or any joint builder error
        """
        joints = {}

        for joint_elem in root.findall("joint"):
            joint = parse_joint(joint_elem)

            if joint.name in joints:
                raise URDFParseError(
                    ErrorKind.DUPLICATE_JOINT, f"Error! Duplicate joints '{joint.name}' found", joint=joint.name
                )

            joints[joint.name] = joint

        return joints

    def _resolve_materials(self, links: dict[str, Link], materials: dict[str, Material]) -> dict[str, Link]:
        """Bind every visual material reference to a registry entry

        A registry entry always wins over an inline definition. An inline definition
        of an unknown name is promoted into the registry.

        Args:
            links: Dict mapping link names to Link objects
            materials: Material registry, extended in place by promotions

        Returns:
            Dict mapping link names to Link objects with bound materials

        Raises:
            URDFParseError: UNDEFINED_MATERIAL if a name can't be resolved
        """
        resolved = {}

        for name, link in links.items():
            visuals = []
            for visual in link.visuals:
                if visual.material_name:
                    if visual.material_name in materials:
                        visual = replace(visual, material=materials[visual.material_name])
                    elif visual.material is not None and visual.material.is_defined:
                        _logger.debug(f"Promoting inline material '{visual.material_name}' of link '{name}'")
                        materials[visual.material_name] = visual.material
                    else:
                        raise URDFParseError(
                            ErrorKind.UNDEFINED_MATERIAL,
                            f"Error! Link '{name}' material '{visual.material_name}' undefined",
                            link=name,
                        )
                visuals.append(visual)
            resolved[name] = replace(link, visuals=tuple(visuals))

        return resolved

    def _build_tree(self, links: dict[str, Link], joints: dict[str, Joint]) -> tuple[dict[str, Link], str]:
        """Connect links through joints and find the root

        Args:
            links: Dict mapping link names to Link objects
            joints: Dict mapping joint names to Joint objects

        Returns:
            Tuple of (links with tree relations and link_index set, root link name)

        Raises:
            URDFParseError: MISSING_PARENT_SPEC, MISSING_CHILD_SPEC, UNKNOWN_CHILD_LINK,
                UNKNOWN_PARENT_LINK, MULTIPLE_PARENTS_FOUND, NO_ROOT_FOUND,
                MULTIPLE_ROOTS_FOUND or CYCLE_DETECTED
        """
        parent_joint: dict[str, str] = {}
        child_joints: dict[str, list[str]] = {name: [] for name in links}

        for joint in joints.values():
            if not joint.parent_link_name:
                raise URDFParseError(
                    ErrorKind.MISSING_PARENT_SPEC,
                    f"Error while constructing model! Joint [{joint.name}] is missing a parent link specification",
                    joint=joint.name,
                )
            if not joint.child_link_name:
                raise URDFParseError(
                    ErrorKind.MISSING_CHILD_SPEC,
                    f"Error while constructing model! Joint [{joint.name}] is missing a child link specification",
                    joint=joint.name,
                )
            if joint.child_link_name not in links:
                raise URDFParseError(
                    ErrorKind.UNKNOWN_CHILD_LINK,
                    f"Error while constructing model! Child link [{joint.child_link_name}] "
                    f"of joint [{joint.name}] not found",
                    joint=joint.name,
                )
            if joint.parent_link_name not in links:
                raise URDFParseError(
                    ErrorKind.UNKNOWN_PARENT_LINK,
                    f"Error while constructing model! Parent link [{joint.parent_link_name}] "
                    f"of joint [{joint.name}] not found",
                    joint=joint.name,
                )
            if joint.child_link_name in parent_joint:
                raise URDFParseError(
                    ErrorKind.MULTIPLE_PARENTS_FOUND,
                    f"Error while constructing model! Link [{joint.child_link_name}] is the child of both "
                    f"joint [{parent_joint[joint.child_link_name]}] and joint [{joint.name}]",
                    link=joint.child_link_name,
                    joint=joint.name,
                )

            parent_joint[joint.child_link_name] = joint.name
            child_joints[joint.parent_link_name].append(joint.name)

        root_link = self._find_root(links, parent_joint)
        link_index = self._index_links(root_link, links, joints, child_joints)

        tree = {}
        for name, link in links.items():
            joint_name = parent_joint.get(name)
            tree[name] = replace(
                link,
                parent_joint=joint_name,
                parent_link=joints[joint_name].parent_link_name if joint_name is not None else None,
                child_joints=tuple(child_joints[name]),
                child_links=tuple(joints[child].child_link_name for child in child_joints[name]),
                link_index=link_index[name],
            )

        return tree, root_link

    def _find_root(self, links: dict[str, Link], parent_joint: dict[str, str]) -> str:
        """Find the unique link that is nobody's child

        Raises:
            URDFParseError: NO_ROOT_FOUND or MULTIPLE_ROOTS_FOUND
        """
        root_link = None

        for name in links:
            if name in parent_joint:
                continue
            if root_link is not None:
                raise URDFParseError(
                    ErrorKind.MULTIPLE_ROOTS_FOUND,
                    f"Error! Multiple root links found: ({root_link}) and ({name})",
                    link=name,
                )
            root_link = name

        if root_link is None:
            raise URDFParseError(
                ErrorKind.NO_ROOT_FOUND, "Error! No root link found. The urdf does not contain a valid link tree"
            )

        return root_link

    def _index_links(
        self,
        root_link: str,
        links: dict[str, Link],
        joints: dict[str, Joint],
        child_joints: dict[str, list[str]],
    ) -> dict[str, int]:
        """Number links breadth-first from the root

        Raises:
            URDFParseError: CYCLE_DETECTED if a link can't be reached from the root
        """
        link_index = {}
        queue = deque([root_link])

        while queue:
            name = queue.popleft()
            link_index[name] = len(link_index)
            queue.extend(joints[joint_name].child_link_name for joint_name in child_joints[name])

        for name in links:
            if name not in link_index:
                raise URDFParseError(
                    ErrorKind.CYCLE_DETECTED,
                    f"Error while constructing model! Link [{name}] is part of a joint cycle "
                    f"and is not reachable from root link [{root_link}]",
                    link=name,
                )

        return link_index


def parse_urdf(xml_string: str | bytes) -> Robot:
    """Parse URDF document text into Robot model

    Args:
        xml_string: Full document text

    Returns:
        Robot model
    """
    return URDFParser().parse_string(xml_string)
