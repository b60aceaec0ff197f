"""lxml implementation of the ManifestStore port."""

import logging
from pathlib import Path
from typing import List

import pydantic
from lxml import etree

from ..application.domain import (
    CUBE_CATEGORY,
    SIMPLE_CATEGORIES,
    CubeItem,
    ManifestStore,
    ProjectManifest,
)
from ..application.exceptions import ManifestError, ProjectIOError, ProjectNotFoundError
from .manifest_models import ManifestDocument, ProjectItem


def _path(*steps: str) -> str:
    """Builds a namespace-agnostic XPath from element names."""
    return "/".join(f"*[local-name()='{step}']" for step in steps)


_FULL_PATH = _path("ProjectItem", "FullPath")
_DEPENDENCIES = _path("Dependencies", "ProjectItem", "FullPath")


class XmlManifestStore(ManifestStore):
    """Reads and writes the item lists of a .dwproj project file."""

    def __init__(self):
        self.logger = logging.getLogger(self.__class__.__name__)

    def _read_items(self, root, category_element: str) -> List[dict]:
        items = []
        for node in root.xpath(f"//{_path(category_element)}/{_FULL_PATH}"):
            item = {"full_path": (node.text or "").strip(), "dependencies": []}
            for dependency in node.getparent().xpath(_DEPENDENCIES):
                item["dependencies"].append(
                    {"full_path": (dependency.text or "").strip()}
                )
            items.append(item)
        return items

    def _validate_and_extract(self, root, manifest_path: Path) -> ManifestDocument:
        """Validates the raw item references and returns a document model."""
        database_paths = root.xpath(f"//{_path('Database', 'FullPath')}")
        if len(database_paths) != 1:
            raise ManifestError(
                f"'{manifest_path}': expected one Database/FullPath entry, "
                f"found {len(database_paths)}"
            )

        raw = {"database": {"full_path": (database_paths[0].text or "").strip()}}
        for category in SIMPLE_CATEGORIES + (CUBE_CATEGORY,):
            raw[category.attribute] = self._read_items(root, category.manifest_element)

        try:
            return ManifestDocument.model_validate(raw)
        except pydantic.ValidationError as e:
            raise ManifestError(f"Invalid manifest '{manifest_path}': {e}") from e

    def _map_to_domain(self, document: ManifestDocument, base_dir: Path) -> ProjectManifest:
        """Resolves every item against the manifest's directory."""

        def resolve(item: ProjectItem) -> Path:
            return base_dir / item.full_path.replace("\\", "/")

        items = {
            category.attribute: tuple(
                resolve(item) for item in getattr(document, category.attribute)
            )
            for category in SIMPLE_CATEGORIES
        }
        cubes = tuple(
            CubeItem(
                path=resolve(item),
                dependencies=tuple(resolve(d) for d in item.dependencies),
            )
            for item in document.cubes
        )
        return ProjectManifest(
            base_dir=base_dir,
            database=resolve(document.database),
            items=items,
            cubes=cubes,
        )

    def read(self, manifest_path: Path) -> ProjectManifest:
        """
        Reads the manifest and resolves every file it references.

        Args:
            manifest_path: Path of the .dwproj file.

        Returns:
            The manifest with absolute paths, in manifest order.

        Raises:
            ProjectNotFoundError: If the manifest does not exist.
            ManifestError: If it cannot be parsed or a reference is malformed.
        """
        manifest_path = Path(manifest_path)
        if not manifest_path.is_file():
            raise ProjectNotFoundError(f"'{manifest_path}' does not exist")

        try:
            root = etree.parse(str(manifest_path)).getroot()
        except etree.XMLSyntaxError as e:
            raise ManifestError(f"Cannot parse '{manifest_path}': {e}") from e

        document = self._validate_and_extract(root, manifest_path)
        manifest = self._map_to_domain(document, manifest_path.resolve().parent)

        self.logger.debug(
            f"Manifest {manifest_path.name} lists {len(manifest.cubes)} cube(s) and "
            f"{sum(len(paths) for paths in manifest.items.values())} other object(s)"
        )
        return manifest

    @staticmethod
    def _add_item(parent, path: Path, base_dir: Path):
        item = etree.SubElement(parent, "ProjectItem")
        relative = path.relative_to(base_dir).as_posix()
        etree.SubElement(item, "Name").text = path.name
        etree.SubElement(item, "FullPath").text = relative
        return item

    def write(self, manifest_path: Path, manifest: ProjectManifest):
        """
        Writes a .dwproj listing the files of a manifest.

        Raises:
            ProjectIOError: If the file cannot be written.
        """
        base_dir = manifest.base_dir
        project = etree.Element("Project")

        database = etree.SubElement(project, "Database")
        etree.SubElement(database, "Name").text = manifest.database.name
        etree.SubElement(database, "FullPath").text = (
            manifest.database.relative_to(base_dir).as_posix()
        )

        for category in SIMPLE_CATEGORIES:
            group = etree.SubElement(project, category.manifest_element)
            for path in manifest.paths_for(category):
                self._add_item(group, path, base_dir)

        group = etree.SubElement(project, CUBE_CATEGORY.manifest_element)
        for cube in manifest.cubes:
            item = self._add_item(group, cube.path, base_dir)
            if cube.dependencies:
                dependencies = etree.SubElement(item, "Dependencies")
                for dependency in cube.dependencies:
                    self._add_item(dependencies, dependency, base_dir)

        try:
            etree.ElementTree(project).write(
                str(manifest_path),
                encoding="utf-8",
                xml_declaration=True,
                pretty_print=True,
            )
        except OSError as e:
            raise ProjectIOError(f"Cannot write '{manifest_path}': {e}") from e

        self.logger.debug(f"Wrote manifest {Path(manifest_path).name}")
