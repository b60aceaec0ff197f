"""Helpers over parsed lxml trees shared by the repair passes and the cleaner."""

from pathlib import Path
from typing import BinaryIO, Dict, Iterable, List, Union

from lxml import etree

ENGINE_NAMESPACE = "http://schemas.microsoft.com/analysisservices/2003/engine"

NAMESPACES: Dict[str, str] = {
    "AS": ENGINE_NAMESPACE,
    "ddl2": "http://schemas.microsoft.com/analysisservices/2003/engine/2",
    "ddl2_2": "http://schemas.microsoft.com/analysisservices/2003/engine/2/2",
    "ddl100_100": "http://schemas.microsoft.com/analysisservices/2008/engine/100/100",
    "dwd": "http://schemas.microsoft.com/DataWarehouse/Designer/1.0",
    "xsd": "http://www.w3.org/2001/XMLSchema",
    "xs": "http://www.w3.org/2001/XMLSchema",
    "xsi": "http://www.w3.org/2001/XMLSchema-instance",
    "msprop": "urn:schemas-microsoft-com:xml-msprop",
    "msdata": "urn:schemas-microsoft-com:xml-msdata",
}

# Prefixes declared on the root of every document the codec writes.
OUTPUT_NSMAP: Dict[Union[str, None], str] = {
    None: ENGINE_NAMESPACE,
    "xsd": NAMESPACES["xsd"],
    "xsi": NAMESPACES["xsi"],
    "ddl2": NAMESPACES["ddl2"],
    "ddl2_2": NAMESPACES["ddl2_2"],
    "ddl100_100": NAMESPACES["ddl100_100"],
    "dwd": NAMESPACES["dwd"],
}


def engine_tag(local_name: str) -> str:
    """Returns the Clark-notation tag of an engine element."""
    return f"{{{ENGINE_NAMESPACE}}}{local_name}"


def local_name(element) -> str:
    return etree.QName(element).localname


def qualify(name: str, namespaces: Dict[str, str] = NAMESPACES) -> str:
    """Turns 'prefix:local' into Clark notation; other names pass through."""
    if ":" in name and not name.startswith("{"):
        prefix, local = name.split(":", 1)
        return f"{{{namespaces[prefix]}}}{local}"
    return name


def parse_document(source: Union[Path, str, BinaryIO]) -> etree._ElementTree:
    """Parses a document dropping ignorable whitespace so it re-indents cleanly."""
    parser = etree.XMLParser(remove_blank_text=True)
    if isinstance(source, Path):
        source = str(source)
    return etree.parse(source, parser)


def write_document(tree: etree._ElementTree, target: Union[Path, str, BinaryIO]):
    """Writes a document as indented UTF-8 with an XML declaration."""
    if isinstance(target, Path):
        target = str(target)
    tree.write(target, encoding="utf-8", xml_declaration=True, pretty_print=True)


def select(tree, path: str, namespaces: Dict[str, str] = NAMESPACES) -> List:
    """Runs a qualified XPath query against a tree or element."""
    return tree.xpath(path, namespaces=namespaces)


def node_exists(parent, name: str) -> bool:
    """True if any direct element child of parent has the given name."""
    for child in parent:
        if not isinstance(child.tag, str):
            continue
        if child.tag == name or local_name(child) == name:
            return True
    return False


def remove_nodes(nodes: Iterable) -> int:
    """Detaches every node from its parent and returns how many were removed."""
    count = 0
    for node in list(nodes):
        parent = node.getparent()
        if parent is None:
            continue
        parent.remove(node)
        count += 1
    return count


def remove_attributes(
    nodes: Iterable, attribute_name: str, namespaces: Dict[str, str] = NAMESPACES
) -> int:
    """
    Removes an attribute from every element given.

    Returns the number of elements processed; an element without the
    attribute is left as it is.
    """
    key = qualify(attribute_name, namespaces)
    count = 0
    for element in list(nodes):
        element.attrib.pop(key, None)
        count += 1
    return count
