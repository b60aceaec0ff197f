"""
This module defines the core domain models for the application.

These classes represent the technology-agnostic object model of an Analysis
Services database and the ports the application services talk to. The XML
content an entity carries beyond its identity is held as an opaque payload
owned by the codec adapter.
"""

import copy
import dataclasses
import enum
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, BinaryIO, Callable, Dict, List, NamedTuple, Optional, Tuple, Union

from .exceptions import InvalidArgumentError


# --- Object Model ---

class ObjectCollection(list):
    """An ordered collection of model objects addressable by ID."""

    def find(self, object_id: str) -> Optional["ModelObject"]:
        """Returns the member with the given ID, or None."""
        for item in self:
            if item.id == object_id:
                return item
        return None

    def find_by_name(self, name: str) -> Optional["ModelObject"]:
        """Returns the first member with the given name, or None."""
        for item in self:
            if item.name == name:
                return item
        return None


@dataclasses.dataclass
class ModelObject:
    """Base class for every entity of the object model."""

    id: str = ""
    name: str = ""
    payload: Any = dataclasses.field(default=None, repr=False, compare=False)

    def clone(self):
        """Returns a deep, detached copy of this object."""
        return copy.deepcopy(self)


@dataclasses.dataclass
class DataSource(ModelObject):
    pass


@dataclasses.dataclass
class DataSourceView(ModelObject):
    pass


@dataclasses.dataclass
class Role(ModelObject):
    pass


@dataclasses.dataclass
class Dimension(ModelObject):
    pass


@dataclasses.dataclass
class MiningStructure(ModelObject):
    pass


@dataclasses.dataclass
class Partition(ModelObject):
    pass


@dataclasses.dataclass
class AggregationDesign(ModelObject):
    pass


@dataclasses.dataclass
class MeasureGroup(ModelObject):
    """A cube sub-entity owning partitions and aggregation designs."""

    partitions: ObjectCollection = dataclasses.field(default_factory=ObjectCollection)
    aggregation_designs: ObjectCollection = dataclasses.field(
        default_factory=ObjectCollection
    )


@dataclasses.dataclass
class Cube(ModelObject):
    measure_groups: ObjectCollection = dataclasses.field(default_factory=ObjectCollection)


@dataclasses.dataclass
class Database(ModelObject):
    """The aggregate assembled from every file of a project."""

    data_sources: ObjectCollection = dataclasses.field(default_factory=ObjectCollection)
    data_source_views: ObjectCollection = dataclasses.field(
        default_factory=ObjectCollection
    )
    roles: ObjectCollection = dataclasses.field(default_factory=ObjectCollection)
    dimensions: ObjectCollection = dataclasses.field(default_factory=ObjectCollection)
    mining_structures: ObjectCollection = dataclasses.field(
        default_factory=ObjectCollection
    )
    cubes: ObjectCollection = dataclasses.field(default_factory=ObjectCollection)


# --- Project Layout ---

@dataclasses.dataclass(frozen=True)
class ObjectCategory:
    """Where a category lives in the database, the manifest and on disk."""

    attribute: str
    manifest_element: str
    extension: str
    factory: Callable[[], ModelObject]


SIMPLE_CATEGORIES: Tuple[ObjectCategory, ...] = (
    ObjectCategory("data_sources", "DataSources", ".ds", DataSource),
    ObjectCategory("data_source_views", "DataSourceViews", ".dsv", DataSourceView),
    ObjectCategory("roles", "Roles", ".role", Role),
    ObjectCategory("dimensions", "Dimensions", ".dim", Dimension),
    ObjectCategory("mining_structures", "MiningModels", ".dmm", MiningStructure),
)

CUBE_CATEGORY = ObjectCategory("cubes", "Cubes", ".cube", Cube)

PARTITIONS_EXTENSION = ".partitions"
DATABASE_EXTENSION = ".database"
PROJECT_EXTENSION = ".dwproj"


@dataclasses.dataclass(frozen=True)
class CubeItem:
    """A cube file and the dependency files holding its partitions."""

    path: Path
    dependencies: Tuple[Path, ...] = ()


@dataclasses.dataclass(frozen=True)
class ProjectManifest:
    """A transient, typed index into the files of a project."""

    base_dir: Path
    database: Path
    items: Dict[str, Tuple[Path, ...]]
    cubes: Tuple[CubeItem, ...] = ()

    def paths_for(self, category: ObjectCategory) -> Tuple[Path, ...]:
        return self.items.get(category.attribute, ())


# --- Validation ---

class ServerEdition(enum.Enum):
    """Capability tier of the target server."""

    Standard = "Standard"
    Enterprise = "Enterprise"
    Developer = "Developer"
    Evaluation = "Evaluation"

    @classmethod
    def parse(cls, value: Union[str, "ServerEdition"]) -> "ServerEdition":
        """
        Converts an edition name to a member.

        Raises:
            InvalidArgumentError: If the name is not an exact member name.
        """
        if isinstance(value, cls):
            return value
        if value not in cls.__members__:
            raise InvalidArgumentError(f"'{value}' is not a valid ServerEdition.")
        return cls[value]


@dataclasses.dataclass(frozen=True)
class ValidationResult:
    object_path: str
    description: str


@dataclasses.dataclass(frozen=True)
class ValidationReport:
    is_valid: bool
    results: Tuple[ValidationResult, ...] = ()


class CleanResult(NamedTuple):
    """File counters reported by a directory clean."""

    inspected: int
    eligible: int
    altered: int


# --- Ports (Interfaces) ---

Source = Union[Path, str, BinaryIO]


class ObjectCodec(ABC):
    """A port for reading and writing model objects as XML."""

    @abstractmethod
    def deserialize(self, source: Source, target: ModelObject) -> ModelObject:
        """Populates target from an XML document and returns it."""
        pass

    @abstractmethod
    def serialize(
        self, sink: BinaryIO, source: ModelObject, include_defaults: bool = False
    ):
        """Writes source as an XML document to a binary stream."""
        pass


class ManifestStore(ABC):
    """A port for reading and writing a project manifest."""

    @abstractmethod
    def read(self, manifest_path: Path) -> ProjectManifest:
        """Reads and resolves the manifest at manifest_path."""
        pass

    @abstractmethod
    def write(self, manifest_path: Path, manifest: ProjectManifest):
        """Writes manifest with paths relative to its base directory."""
        pass


class FileRepairer(ABC):
    """A port for the fix-ups applied around cube and partitions files."""

    @abstractmethod
    def inject_partition_names(self, partitions_file: Path, cube: Cube) -> BinaryIO:
        """Returns the partitions file with measure group names restored."""
        pass

    @abstractmethod
    def strip_partitions_file(self, partitions_file: Path) -> int:
        """Removes serializer byproducts from a partitions file."""
        pass

    @abstractmethod
    def strip_cube_file(self, cube_file: Path) -> int:
        """Removes partition content from a cube file."""
        pass


class ModelValidator(ABC):
    """A port for validating a database against a server edition."""

    @abstractmethod
    def validate(
        self, database: Database, edition: Union[str, ServerEdition]
    ) -> ValidationReport:
        """
        Validates the database. Always returns a report; raises only for an
        unknown edition.
        """
        pass


def collections_of(database: Database) -> List[Tuple[ObjectCategory, ObjectCollection]]:
    """Pairs every category with its collection on the database."""
    return [
        (category, getattr(database, category.attribute))
        for category in SIMPLE_CATEGORIES + (CUBE_CATEGORY,)
    ]
