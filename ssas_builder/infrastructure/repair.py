"""lxml implementation of the FileRepairer port."""

import io
import logging
from pathlib import Path
from typing import BinaryIO

from lxml import etree

from ..application.domain import Cube, FileRepairer
from ..application.exceptions import (
    CodecError,
    InvalidArgumentError,
    MeasureGroupNotFoundError,
    ProjectIOError,
)
from .xml_nodes import engine_tag, node_exists, parse_document, remove_nodes, select, write_document

_MEASURE_GROUP = "/AS:Cube/AS:MeasureGroups/AS:MeasureGroup"

_PARTITIONS_FILE_ARTIFACTS = ("AS:Name", "AS:StorageMode", "AS:ProcessingMode")
_CUBE_FILE_ARTIFACTS = ("AS:Partitions", "AS:AggregationDesigns")


class XmlFileRepairer(FileRepairer):
    """Rewrites cube and partitions documents around the codec's round trip."""

    def __init__(self):
        self.logger = logging.getLogger(self.__class__.__name__)

    def _load(self, path: Path) -> etree._ElementTree:
        if not path or not str(path):
            raise InvalidArgumentError("Provide a file to repair")
        try:
            return parse_document(Path(path))
        except etree.XMLSyntaxError as e:
            raise CodecError(f"Cannot parse '{path}': {e}") from e
        except OSError as e:
            raise ProjectIOError(f"Cannot read '{path}': {e}") from e

    def _save(self, tree: etree._ElementTree, path: Path):
        try:
            write_document(tree, Path(path))
        except OSError as e:
            raise ProjectIOError(f"Cannot write '{path}': {e}") from e

    def _strip(self, path: Path, artifacts) -> int:
        tree = self._load(path)
        removed = 0
        for artifact in artifacts:
            removed += remove_nodes(select(tree, f"{_MEASURE_GROUP}/{artifact}"))
        self._save(tree, path)
        self.logger.debug(f"Removed {removed} node(s) from {Path(path).name}")
        return removed

    def inject_partition_names(self, partitions_file: Path, cube: Cube) -> BinaryIO:
        """
        Restores the measure group names a partitions file leaves out.

        Each measure group without a Name gets one, looked up by ID in the
        cube the file belongs to. The file on disk is not modified.

        Args:
            partitions_file: Path of the partitions file.
            cube: The already loaded cube the file belongs to.

        Returns:
            An in-memory stream holding the enriched document.

        Raises:
            InvalidArgumentError: If no cube or no file is given.
            MeasureGroupNotFoundError: If an ID is not in the cube.
        """
        if cube is None:
            raise InvalidArgumentError(
                "Provide a Cube object that matches the partitions file"
            )
        tree = self._load(partitions_file)

        for id_node in select(tree, f"{_MEASURE_GROUP}/AS:ID"):
            measure_group_node = id_node.getparent()
            if node_exists(measure_group_node, "Name"):
                continue

            measure_group = cube.measure_groups.find(id_node.text)
            if measure_group is None:
                raise MeasureGroupNotFoundError(id_node.text, cube.name)

            name_node = etree.Element(engine_tag("Name"))
            name_node.text = measure_group.name
            id_node.addnext(name_node)

        return io.BytesIO(etree.tostring(tree, encoding="utf-8", xml_declaration=True))

    def strip_partitions_file(self, partitions_file: Path) -> int:
        """Removes measure group Name, StorageMode and ProcessingMode nodes."""
        return self._strip(partitions_file, _PARTITIONS_FILE_ARTIFACTS)

    def strip_cube_file(self, cube_file: Path) -> int:
        """Removes Partitions and AggregationDesigns from a cube file."""
        return self._strip(cube_file, _CUBE_FILE_ARTIFACTS)
