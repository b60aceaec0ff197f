"""Structural and edition-capability checks implementing the ModelValidator port."""

import logging
from typing import List, Union

from ..application.domain import (
    Cube,
    Database,
    ModelValidator,
    ServerEdition,
    ValidationReport,
    ValidationResult,
    collections_of,
)

# Editions limited to a single partition per measure group.
_SINGLE_PARTITION_EDITIONS = (ServerEdition.Standard,)


class EditionValidator(ModelValidator):
    """Checks identity, uniqueness and edition limits of a database."""

    def __init__(self):
        self.logger = logging.getLogger(self.__class__.__name__)

    def validate(
        self, database: Database, edition: Union[str, ServerEdition]
    ) -> ValidationReport:
        """
        Validates a database for the given server edition.

        Args:
            database: The assembled database.
            edition: A ServerEdition or its exact name.

        Returns:
            A report that is valid only if no diagnostics were raised.

        Raises:
            InvalidArgumentError: If the edition is unknown. Nothing in the
                                  database is inspected in that case.
        """
        edition = ServerEdition.parse(edition)
        results: List[ValidationResult] = []

        self._check_identity(database, f"Database '{database.name}'", results)

        for category, collection in collections_of(database):
            self._check_collection(collection, category.manifest_element, results)

        for cube in database.cubes:
            self._check_cube(cube, edition, results)

        self.logger.info(
            f"Validated database '{database.name}' for {edition.value}: "
            f"{len(results)} issue(s)"
        )
        return ValidationReport(is_valid=not results, results=tuple(results))

    @staticmethod
    def _check_identity(obj, object_path: str, results: List[ValidationResult]):
        if not obj.id:
            results.append(ValidationResult(object_path, "The ID is missing."))
        if not obj.name:
            results.append(ValidationResult(object_path, "The name is missing."))

    def _check_collection(self, collection, label: str, results: List[ValidationResult]):
        ids, names = set(), set()
        for item in collection:
            object_path = f"{label}/{item.name or item.id}"
            self._check_identity(item, object_path, results)
            if item.id and item.id in ids:
                results.append(
                    ValidationResult(object_path, f"The ID '{item.id}' is used more than once.")
                )
            if item.name and item.name in names:
                results.append(
                    ValidationResult(object_path, f"The name '{item.name}' is used more than once.")
                )
            ids.add(item.id)
            names.add(item.name)

    def _check_cube(self, cube: Cube, edition: ServerEdition, results: List[ValidationResult]):
        label = f"Cubes/{cube.name}/MeasureGroups"
        self._check_collection(cube.measure_groups, label, results)

        for measure_group in cube.measure_groups:
            object_path = f"{label}/{measure_group.name or measure_group.id}"
            self._check_collection(
                measure_group.partitions, f"{object_path}/Partitions", results
            )
            self._check_collection(
                measure_group.aggregation_designs,
                f"{object_path}/AggregationDesigns",
                results,
            )

            if not measure_group.partitions:
                results.append(
                    ValidationResult(object_path, "The measure group has no partitions.")
                )
            elif (
                edition in _SINGLE_PARTITION_EDITIONS
                and len(measure_group.partitions) > 1
            ):
                results.append(
                    ValidationResult(
                        object_path,
                        f"The {edition.value} edition allows only one partition "
                        f"per measure group; found {len(measure_group.partitions)}.",
                    )
                )
