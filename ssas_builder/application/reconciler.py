"""
Split and merge of partition data between a cube and a partition cube.

Partitions and aggregation designs are always stored apart from the rest of
the cube, in a transient "partition cube" that carries only the measure
groups owning them. Measure groups are matched by ID; names are not reliable
in the reduced tree.
"""

import logging

from .domain import Cube, MeasureGroup
from .exceptions import MeasureGroupNotFoundError

logger = logging.getLogger(__name__)


def split_partition_cube(base_cube: Cube) -> Cube:
    """
    Copies the partitions and aggregation designs of a cube into a new cube.

    Only measure groups with at least one partition or aggregation design
    appear in the result, each as a stand-in carrying the source ID and name.
    The base cube keeps its own children.

    Args:
        base_cube: The fully populated cube to split.

    Returns:
        A partition cube holding clones of the partition data.
    """
    partition_cube = Cube(id=base_cube.id, name=base_cube.name)

    for measure_group in tuple(base_cube.measure_groups):
        # Snapshot both collections before copying from them.
        partitions = tuple(measure_group.partitions)
        aggregation_designs = tuple(measure_group.aggregation_designs)
        if not partitions and not aggregation_designs:
            continue

        stand_in = MeasureGroup(id=measure_group.id, name=measure_group.name)
        stand_in.partitions.extend(p.clone() for p in partitions)
        stand_in.aggregation_designs.extend(a.clone() for a in aggregation_designs)
        partition_cube.measure_groups.append(stand_in)

    logger.debug(
        f"Split {len(partition_cube.measure_groups)} measure group(s) "
        f"from cube '{base_cube.name}'"
    )
    return partition_cube


def merge_partition_cube(base_cube: Cube, partition_cube: Cube):
    """
    Appends the partition data of a partition cube onto a base cube.

    Every measure group of the partition cube is resolved in the base cube
    before anything is copied, so a mismatch leaves the base cube untouched.

    Args:
        base_cube: The cube loaded from the cube file.
        partition_cube: The cube loaded from one of its dependency files.

    Raises:
        MeasureGroupNotFoundError: If a measure group ID has no match.
    """
    pairs = []
    for source in tuple(partition_cube.measure_groups):
        target = base_cube.measure_groups.find(source.id)
        if target is None:
            raise MeasureGroupNotFoundError(source.id, base_cube.name)
        pairs.append((target, source))

    for target, source in pairs:
        target.partitions.extend(p.clone() for p in tuple(source.partitions))
        target.aggregation_designs.extend(
            a.clone() for a in tuple(source.aggregation_designs)
        )
        logger.debug(
            f"Merged {len(source.partitions)} partition(s) and "
            f"{len(source.aggregation_designs)} aggregation design(s) "
            f"into measure group '{target.id}'"
        )
