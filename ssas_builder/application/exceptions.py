"""
Core exceptions for the SSAS project builder.

This module defines a hierarchy of custom exceptions to allow for granular
error handling and clear separation of failure domains.
"""


class SsasBuilderError(Exception):
    """Base exception for all component-specific errors."""
    pass


# --- Configuration and Argument Errors ---

class ConfigurationError(SsasBuilderError):
    """Raised for errors related to application configuration."""
    pass


class InvalidArgumentError(SsasBuilderError, ValueError):
    """Raised when a required argument is missing, empty or not recognised."""
    pass


class DuplicateObjectError(InvalidArgumentError):
    """Raised when two objects of one category would be written to one file."""
    pass


class ProjectNotFoundError(SsasBuilderError):
    """Raised when a project file, input file or directory does not exist."""
    pass


# --- Infrastructure Errors ---

class InfrastructureError(SsasBuilderError):
    """Base class for errors related to external systems (file system, XML)."""
    pass


class ProjectIOError(InfrastructureError):
    """Raised when reading, writing or copying a project file fails."""
    pass


class CodecError(InfrastructureError):
    """Raised when an XML document cannot be mapped to or from the model."""
    pass


class ManifestError(InfrastructureError):
    """Raised when the project manifest is malformed."""
    pass


# --- Domain/Business Logic Errors ---

class DomainError(SsasBuilderError):
    """Base class for errors related to business logic failures."""
    pass


class MeasureGroupNotFoundError(DomainError, LookupError):
    """Raised when a measure group ID has no match in the base cube."""

    def __init__(self, measure_group_id: str, cube_name: str):
        super().__init__(
            f"Measure group '{measure_group_id}' not found in cube '{cube_name}'"
        )
        self.measure_group_id = measure_group_id
        self.cube_name = cube_name


class AssemblyError(DomainError):
    """Raised when a project file cannot be folded into the database."""

    def __init__(self, path, reason: str):
        super().__init__(f"Failed to assemble '{path}': {reason}")
        self.path = path
