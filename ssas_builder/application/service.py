"""
The core application services, containing the project assembly logic.

This module defines the assembler that folds the files of a project into one
Database, the disassembler that writes a Database back out as one file per
object, and the build service that ties assembly, validation and output
together.
"""

import logging
from pathlib import Path
from typing import List, Optional, Union

from .domain import *
from .exceptions import (
    AssemblyError,
    DomainError,
    DuplicateObjectError,
    InfrastructureError,
    InvalidArgumentError,
    ProjectIOError,
    ProjectNotFoundError,
)
from .reconciler import merge_partition_cube, split_partition_cube

logger = logging.getLogger(__name__)


class ProjectAssembler:
    """Loads a decomposed project into a single Database."""

    def __init__(
        self,
        codec: ObjectCodec,
        manifest_store: ManifestStore,
        repairer: FileRepairer,
    ):
        """Initializes the assembler with its ports."""
        self.logger = logging.getLogger(self.__class__.__name__)
        self.codec = codec
        self.manifest_store = manifest_store
        self.repairer = repairer

    def _load(self, path: Path, target: ModelObject) -> ModelObject:
        """Deserializes one project file into target."""
        self.logger.debug(f"Loading {path.name}...")
        if not path.is_file():
            raise AssemblyError(path, "file does not exist")
        try:
            return self.codec.deserialize(path, target)
        except (InfrastructureError, OSError) as e:
            raise AssemblyError(path, str(e)) from e

    def _merge_dependency(self, path: Path, cube: Cube):
        """Folds one partitions file into the cube it belongs to."""
        self.logger.debug(f"Merging {path.name} into cube '{cube.name}'...")
        if not path.is_file():
            raise AssemblyError(path, "file does not exist")
        try:
            stream = self.repairer.inject_partition_names(path, cube)
            partition_cube = self.codec.deserialize(stream, Cube())
            merge_partition_cube(cube, partition_cube)
        except (InfrastructureError, DomainError, OSError) as e:
            raise AssemblyError(path, str(e)) from e

    def assemble(self, manifest_path: Union[Path, str]) -> Database:
        """
        Builds a Database from a project manifest and the files it lists.

        Args:
            manifest_path: Path of the .dwproj file.

        Returns:
            The fully populated Database.

        Raises:
            ProjectNotFoundError: If the manifest does not exist.
            ManifestError: If the manifest is malformed.
            AssemblyError: If any referenced file cannot be loaded or merged.
        """
        manifest_path = Path(manifest_path)
        if not manifest_path.is_file():
            raise ProjectNotFoundError(f"'{manifest_path}' does not exist")

        self.logger.info(f"Assembling project {manifest_path}...")
        manifest = self.manifest_store.read(manifest_path)

        database = self._load(manifest.database, Database())

        for category in SIMPLE_CATEGORIES:
            collection = getattr(database, category.attribute)
            for path in manifest.paths_for(category):
                collection.append(self._load(path, category.factory()))
            self.logger.info(
                f"Loaded {len(collection)} {category.manifest_element} object(s)"
            )

        for item in manifest.cubes:
            cube = self._load(item.path, Cube())
            database.cubes.append(cube)
            for dependency in item.dependencies:
                self._merge_dependency(dependency, cube)
        self.logger.info(f"Loaded {len(database.cubes)} cube(s)")

        return database


class ProjectDisassembler:
    """Writes a Database out as one file per object."""

    def __init__(
        self,
        codec: ObjectCodec,
        repairer: FileRepairer,
        manifest_store: Optional[ManifestStore] = None,
        allow_overwrite: bool = False,
        include_defaults: bool = False,
    ):
        """
        Initializes the disassembler.

        Args:
            codec: The object codec.
            repairer: The file repair passes.
            manifest_store: Writes project files; needed by write_manifest().
            allow_overwrite: Let a later object overwrite an earlier one of the
                             same category and name instead of failing.
            include_defaults: Passed through to the codec.
        """
        self.logger = logging.getLogger(self.__class__.__name__)
        self.codec = codec
        self.repairer = repairer
        self.manifest_store = manifest_store
        self.allow_overwrite = allow_overwrite
        self.include_defaults = include_defaults

    def _write(self, source: ModelObject, path: Path) -> Path:
        """Serializes one object to path."""
        try:
            with open(path, "wb") as sink:
                self.codec.serialize(sink, source, self.include_defaults)
        except OSError as e:
            raise ProjectIOError(f"Cannot write '{path}': {e}") from e
        self.logger.debug(f"Wrote {path.name}")
        return path

    def _check_duplicates(self, database: Database):
        """Applies the duplicate-name policy before anything is written."""
        for category, collection in collections_of(database):
            seen = set()
            for item in collection:
                key = item.name.casefold()
                if key in seen:
                    message = (
                        f"More than one {category.manifest_element} object is "
                        f"named '{item.name}'"
                    )
                    if not self.allow_overwrite:
                        raise DuplicateObjectError(message)
                    self.logger.warning(f"{message}; the last one wins.")
                seen.add(key)

    def disassemble(
        self, database: Optional[Database], target_dir: Union[Path, str]
    ) -> List[Path]:
        """
        Writes every object of a database to its own file.

        Cubes are written without their partitions and aggregation designs,
        which go to a companion .partitions file.

        Args:
            database: The database to write.
            target_dir: Directory to create the files in; created if missing.
                        None or a blank string is rejected. A Path is taken
                        as given, so Path("") is the current directory.

        Returns:
            The paths written, in write order.

        Raises:
            InvalidArgumentError: If the database or directory is missing.
            DuplicateObjectError: If two objects of a category share a name
                                  and overwriting is not allowed.
            ProjectIOError: If a file cannot be written.
        """
        if database is None:
            raise InvalidArgumentError("Please provide a database object")
        if not target_dir or not str(target_dir).strip():
            raise InvalidArgumentError("Please provide a directory to write the files to")

        target_dir = Path(target_dir)
        self._check_duplicates(database)
        try:
            target_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise ProjectIOError(f"Cannot create '{target_dir}': {e}") from e

        self.logger.info(f"Disassembling database '{database.name}' into {target_dir}...")
        written = []

        for category in SIMPLE_CATEGORIES:
            for item in getattr(database, category.attribute):
                path = target_dir / f"{item.name}{category.extension}"
                written.append(self._write(item, path))

        for cube in database.cubes:
            cube_path = target_dir / f"{cube.name}{CUBE_CATEGORY.extension}"
            written.append(self._write(cube, cube_path))
            self.repairer.strip_cube_file(cube_path)

            partitions_path = target_dir / f"{cube.name}{PARTITIONS_EXTENSION}"
            written.append(self._write(split_partition_cube(cube), partitions_path))
            self.repairer.strip_partitions_file(partitions_path)

        self.logger.info(f"Wrote {len(written)} file(s).")
        return written

    def write_manifest(
        self,
        database: Database,
        target_dir: Union[Path, str],
        project_name: Optional[str] = None,
    ) -> Path:
        """
        Writes a project file and database file for a disassembled database.

        The project lists the files disassemble() produces, so the directory
        can be assembled again.

        Raises:
            InvalidArgumentError: If the database or manifest store is missing.

        Returns:
            Path of the project file.
        """
        if database is None:
            raise InvalidArgumentError("Please provide a database object")
        if self.manifest_store is None:
            raise InvalidArgumentError("No manifest store is configured")

        target_dir = Path(target_dir)
        project_name = project_name or database.name

        database_file = target_dir / f"{project_name}{DATABASE_EXTENSION}"
        shell = Database(id=database.id, name=database.name, payload=database.payload)
        self._write(shell, database_file)

        def files(collection, extension: str):
            paths = []
            for item in collection:
                path = target_dir / f"{item.name}{extension}"
                if path not in paths:
                    paths.append(path)
            return tuple(paths)

        manifest = ProjectManifest(
            base_dir=target_dir,
            database=database_file,
            items={
                category.attribute: files(
                    getattr(database, category.attribute), category.extension
                )
                for category in SIMPLE_CATEGORIES
            },
            cubes=tuple(
                CubeItem(
                    path=path,
                    dependencies=(path.with_suffix(PARTITIONS_EXTENSION),),
                )
                for path in files(database.cubes, CUBE_CATEGORY.extension)
            ),
        )

        manifest_path = target_dir / f"{project_name}{PROJECT_EXTENSION}"
        self.manifest_store.write(manifest_path, manifest)
        self.logger.info(f"Wrote project file {manifest_path.name}")
        return manifest_path

    def generate_output_file(
        self, database: Optional[Database], target_file: Union[Path, str]
    ) -> Path:
        """
        Writes the whole database to a single consolidated file.

        Raises:
            InvalidArgumentError: If the database is missing.
            ProjectIOError: If the file cannot be written.
        """
        if database is None:
            raise InvalidArgumentError("Please provide a database object")

        target_file = Path(target_file)
        try:
            target_file.parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise ProjectIOError(f"Cannot create '{target_file.parent}': {e}") from e

        self._write(database, target_file)
        self.logger.info(f"Generated {target_file}")
        return target_file


class BuildService:
    """Assembles a project, validates it and writes the output file."""

    def __init__(
        self,
        assembler: ProjectAssembler,
        disassembler: ProjectDisassembler,
        validator: ModelValidator,
    ):
        self.assembler = assembler
        self.disassembler = disassembler
        self.validator = validator

    def build(
        self,
        project_file: Union[Path, str],
        target_file: Union[Path, str],
        edition: Union[str, ServerEdition],
    ) -> ValidationReport:
        """
        Runs a full build of a project.

        The output file is written only if validation reports nothing.

        Args:
            project_file: Path of the .dwproj file.
            target_file: Path of the consolidated output file.
            edition: Server edition to validate against.

        Returns:
            The validation report.

        Raises:
            ProjectNotFoundError: If the project file does not exist.
            InvalidArgumentError: If the edition is unknown.
        """
        logger.info(f"Project File  :  {project_file}")
        logger.info(f"Target File   :  {target_file}")
        logger.info(f"Server Edition:  {edition}")

        project_file = Path(project_file)
        if not project_file.is_file():
            raise ProjectNotFoundError(f"'{project_file}' does not exist.")
        edition = ServerEdition.parse(edition)

        database = self.assembler.assemble(project_file)
        report = self.validator.validate(database, edition)

        for result in report.results:
            logger.error(f"{result.object_path}: {result.description}")

        if not report.is_valid:
            logger.error(f"Validation failed; {target_file} was not written.")
            return report

        self.disassembler.generate_output_file(database, target_file)
        return report
