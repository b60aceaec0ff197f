"""lxml implementation of the ObjectCodec port."""

import copy
import logging
from typing import BinaryIO, Dict, Tuple, Type

from lxml import etree

from ..application.domain import (
    AggregationDesign,
    Cube,
    DataSource,
    DataSourceView,
    Database,
    Dimension,
    MeasureGroup,
    MiningStructure,
    ModelObject,
    ObjectCodec,
    ObjectCollection,
    Partition,
    Role,
    Source,
)
from ..application.exceptions import CodecError
from .xml_nodes import OUTPUT_NSMAP, engine_tag, local_name, parse_document

_ELEMENT_NAMES: Dict[Type[ModelObject], str] = {
    Database: "Database",
    DataSource: "DataSource",
    DataSourceView: "DataSourceView",
    Role: "Role",
    Dimension: "Dimension",
    MiningStructure: "MiningStructure",
    Cube: "Cube",
    MeasureGroup: "MeasureGroup",
    Partition: "Partition",
    AggregationDesign: "AggregationDesign",
}

# (wrapper element, item element, model attribute, item type)
_COLLECTIONS: Dict[Type[ModelObject], Tuple[Tuple[str, str, str, type], ...]] = {
    Database: (
        ("Dimensions", "Dimension", "dimensions", Dimension),
        ("Cubes", "Cube", "cubes", Cube),
        ("MiningStructures", "MiningStructure", "mining_structures", MiningStructure),
        ("Roles", "Role", "roles", Role),
        ("DataSources", "DataSource", "data_sources", DataSource),
        ("DataSourceViews", "DataSourceView", "data_source_views", DataSourceView),
    ),
    Cube: (
        ("MeasureGroups", "MeasureGroup", "measure_groups", MeasureGroup),
    ),
    MeasureGroup: (
        ("Partitions", "Partition", "partitions", Partition),
        ("AggregationDesigns", "AggregationDesign", "aggregation_designs", AggregationDesign),
    ),
}

# Types that cannot be identified without both an ID and a Name.
_NAME_REQUIRED = (MeasureGroup,)


class XmlObjectCodec(ObjectCodec):
    """
    Maps engine XML documents to model objects and back.

    ID and Name become model fields and known child collections become typed
    children; every other element is kept in the object's payload, with the
    collection wrappers emptied but left in place so they are written back
    where they were read.
    """

    def __init__(self):
        self.logger = logging.getLogger(self.__class__.__name__)

    def deserialize(self, source: Source, target: ModelObject) -> ModelObject:
        """
        Populates target from an XML document.

        Args:
            source: A path or a binary stream holding the document.
            target: A fresh model object of the type the document describes.

        Returns:
            The populated target.

        Raises:
            CodecError: If the document is not well-formed or does not
                        describe an object of the target's type.
        """
        try:
            tree = parse_document(source)
        except (etree.XMLSyntaxError, OSError) as e:
            raise CodecError(f"Cannot read XML from {source!r}: {e}") from e

        self._populate(tree.getroot(), target)
        return target

    def serialize(
        self, sink: BinaryIO, source: ModelObject, include_defaults: bool = False
    ):
        """
        Writes source to a binary stream as an indented UTF-8 document.

        Args:
            sink: An open binary stream.
            source: The object to write.
            include_defaults: Also write empty collections.
        """
        element = self._to_element(source, include_defaults, is_root=True)
        etree.ElementTree(element).write(
            sink, encoding="utf-8", xml_declaration=True, pretty_print=True
        )

    def _element_name(self, model_type: type) -> str:
        for known_type, name in _ELEMENT_NAMES.items():
            if issubclass(model_type, known_type):
                return name
        raise CodecError(f"No XML mapping for {model_type.__name__}")

    def _collections(self, model_type: type):
        for known_type, specs in _COLLECTIONS.items():
            if issubclass(model_type, known_type):
                return specs
        return ()

    def _populate(self, element, target: ModelObject):
        expected = self._element_name(type(target))
        if not isinstance(element.tag, str) or local_name(element) != expected:
            raise CodecError(
                f"Expected a '{expected}' element, found '{element.tag}'"
            )

        target.id = element.findtext(engine_tag("ID")) or ""
        target.name = element.findtext(engine_tag("Name")) or ""
        if not target.id:
            raise CodecError(f"'{expected}' element has no ID")
        if isinstance(target, _NAME_REQUIRED) and not target.name:
            raise CodecError(f"'{expected}' '{target.id}' has no Name")

        payload = copy.deepcopy(element)
        for wrapper_name, item_name, attribute, item_type in self._collections(
            type(target)
        ):
            collection = ObjectCollection()
            wrapper = payload.find(engine_tag(wrapper_name))
            if wrapper is not None:
                for item_element in wrapper.findall(engine_tag(item_name)):
                    collection.append(self._populate(item_element, item_type()))
                for child in list(wrapper):
                    wrapper.remove(child)
            setattr(target, attribute, collection)

        target.payload = payload
        return target

    def _to_element(self, source: ModelObject, include_defaults: bool, is_root=False):
        element_name = self._element_name(type(source))
        if source.payload is not None:
            element = copy.deepcopy(source.payload)
        elif is_root:
            element = etree.Element(engine_tag(element_name), nsmap=OUTPUT_NSMAP)
        else:
            element = etree.Element(engine_tag(element_name))

        self._set_identity(element, source)

        for wrapper_name, _, attribute, _ in self._collections(type(source)):
            items = getattr(source, attribute)
            wrapper = element.find(engine_tag(wrapper_name))
            if not items and not include_defaults:
                if wrapper is not None:
                    element.remove(wrapper)
                continue
            if wrapper is None:
                wrapper = etree.SubElement(element, engine_tag(wrapper_name))
            for child in list(wrapper):
                wrapper.remove(child)
            for item in items:
                wrapper.append(self._to_element(item, include_defaults))

        return element

    def _set_identity(self, element, source: ModelObject):
        id_element = element.find(engine_tag("ID"))
        if id_element is None:
            id_element = etree.Element(engine_tag("ID"))
            element.insert(0, id_element)
        id_element.text = source.id

        name_element = element.find(engine_tag("Name"))
        if name_element is None:
            if not source.name:
                return
            name_element = etree.Element(engine_tag("Name"))
            id_element.addnext(name_element)
        name_element.text = source.name
