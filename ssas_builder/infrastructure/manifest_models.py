"""
Pydantic models for validating the item lists read from a project manifest.

These models serve as a strict contract for what the manifest must provide,
so a malformed reference is caught here rather than halfway through an
assembly.
"""

from typing import List

from pydantic import BaseModel, Field


class ProjectItem(BaseModel):
    """A single file reference, with the files it depends on."""

    full_path: str = Field(min_length=1)
    dependencies: List["ProjectItem"] = Field(default_factory=list)


class ManifestDocument(BaseModel):
    """Represents every item reference a manifest holds, per category."""

    database: ProjectItem
    data_sources: List[ProjectItem] = Field(default_factory=list)
    data_source_views: List[ProjectItem] = Field(default_factory=list)
    roles: List[ProjectItem] = Field(default_factory=list)
    dimensions: List[ProjectItem] = Field(default_factory=list)
    mining_structures: List[ProjectItem] = Field(default_factory=list)
    cubes: List[ProjectItem] = Field(default_factory=list)
