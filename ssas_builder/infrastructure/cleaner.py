"""
Batch removal of volatile metadata from project files.

Timestamps, processing state and regenerated designer attributes change every
time a project is opened or reverse engineered; stripping them keeps the
files stable under source control. None of them is needed for a build.
"""

import logging
import shutil
import stat
from datetime import datetime
from pathlib import Path
from typing import Iterable, List, Sequence, Union

from lxml import etree
from tqdm import tqdm
from tqdm.contrib.logging import logging_redirect_tqdm

from ..application.domain import CleanResult
from ..application.exceptions import CodecError, ProjectIOError, ProjectNotFoundError
from .xml_nodes import parse_document, remove_attributes, remove_nodes, select, write_document

DEFAULT_PATTERNS = (
    "*.cube",
    "*.partitions",
    "*.dsv",
    "*.dim",
    "*.ds",
    "*.dmm",
    "*.role",
)

VOLATILE_ELEMENTS = (
    "//AS:CreatedTimestamp",
    "//AS:LastSchemaUpdate",
    "//AS:LastProcessed",
    "//AS:State",
    "//AS:CurrentStorageMode",
)

DESIGN_TIME_NAME_ATTRIBUTES = ("dwd:design-time-name", "msprop:design-time-name")

_BACKUP_TIMESTAMP = "%Y%m%d%H%M"


def parse_patterns(text: str) -> List[str]:
    """Splits a comma-separated pattern list; a blank list means the defaults."""
    patterns = [p.strip() for p in (text or "").split(",") if p.strip()]
    return patterns or list(DEFAULT_PATTERNS)


def backup_path(path: Path, now: datetime = None) -> Path:
    """Returns '<name>.<yyyyMMddHHmm>.bak' next to path."""
    now = now or datetime.now()
    return path.with_name(f"{path.name}.{now.strftime(_BACKUP_TIMESTAMP)}.bak")


def is_read_only(path: Path) -> bool:
    return not path.stat().st_mode & stat.S_IWUSR


class DirectoryCleaner:
    """Strips volatile elements and attributes from the files of a directory."""

    def __init__(self, show_progress: bool = False):
        self.logger = logging.getLogger(self.__class__.__name__)
        self.show_progress = show_progress

    def _find_files(self, directory: Path, patterns: Sequence[str], recursive: bool) -> List[Path]:
        """Lists matching files once each, in pattern order."""
        found = []
        seen = set()
        for pattern in patterns:
            matches = directory.rglob(pattern) if recursive else directory.glob(pattern)
            for path in sorted(matches):
                if path.is_file() and path not in seen:
                    seen.add(path)
                    found.append(path)
        return found

    def _clean_document(
        self,
        tree: etree._ElementTree,
        is_dimension: bool,
        remove_design_time_names: bool,
        remove_dimension_annotations: bool,
    ) -> bool:
        """Applies every removal to a parsed document; True if it changed."""
        changed = False

        for path in VOLATILE_ELEMENTS:
            if remove_nodes(select(tree, path)) > 0:
                changed = True

        # .dim annotations stay unless explicitly requested.
        if remove_dimension_annotations or not is_dimension:
            if remove_nodes(select(tree, "//AS:Annotations")) > 0:
                changed = True

        if remove_design_time_names:
            for attribute in DESIGN_TIME_NAME_ATTRIBUTES:
                owners = select(tree, f"//@{attribute}/..")
                if remove_attributes(owners, attribute) > 0:
                    changed = True

        return changed

    def _backup(self, path: Path) -> Path:
        """Copies path to its timestamped backup; an existing backup is never replaced."""
        target = backup_path(path)
        try:
            with open(path, "rb") as source, open(target, "xb") as sink:
                shutil.copyfileobj(source, sink)
        except FileExistsError as e:
            raise ProjectIOError(
                f"Backup '{target}' already exists; '{path}' was left unchanged"
            ) from e
        return target

    def _clean_file(
        self,
        path: Path,
        remove_design_time_names: bool,
        remove_dimension_annotations: bool,
        make_backup: bool,
    ) -> bool:
        try:
            tree = parse_document(path)
        except etree.XMLSyntaxError as e:
            raise CodecError(f"Cannot parse '{path}': {e}") from e

        changed = self._clean_document(
            tree,
            is_dimension=path.suffix == ".dim",
            remove_design_time_names=remove_design_time_names,
            remove_dimension_annotations=remove_dimension_annotations,
        )
        if not changed:
            return False

        try:
            if make_backup:
                self._backup(path)
            write_document(tree, path)
        except OSError as e:
            raise ProjectIOError(f"Cannot rewrite '{path}': {e}") from e

        self.logger.debug(f"Altered '{path}'")
        return True

    def clean(
        self,
        directory: Union[Path, str],
        patterns: Iterable[str] = DEFAULT_PATTERNS,
        recursive: bool = False,
        remove_design_time_names: bool = False,
        remove_dimension_annotations: bool = False,
        make_backup: bool = True,
    ) -> CleanResult:
        """
        Cleans every matching file of a directory.

        Read-only files are counted as inspected and skipped.

        Args:
            directory: The project directory.
            patterns: Glob patterns of the files to inspect.
            recursive: Also descend into subdirectories.
            remove_design_time_names: Remove designer 'design-time-name'
                                      attributes, which are regenerated
                                      whenever the project is recreated.
            remove_dimension_annotations: Also remove annotations from .dim files.
            make_backup: Copy a file to a timestamped .bak before changing it.

        Returns:
            The inspected, eligible and altered file counts.

        Raises:
            ProjectNotFoundError: If the directory does not exist.
            CodecError: If a matching file is not well-formed XML.
            ProjectIOError: If a file cannot be backed up or written, or its
                            backup for the current minute already exists.
        """
        directory = Path(directory)
        if not directory.is_dir():
            raise ProjectNotFoundError(f"'{directory}' is not a directory")

        patterns = list(patterns) or list(DEFAULT_PATTERNS)
        files = self._find_files(directory, patterns, recursive)
        inspected = eligible = altered = 0

        with logging_redirect_tqdm():
            for path in tqdm(files, desc="Cleaning", unit="file", disable=not self.show_progress):
                inspected += 1
                if is_read_only(path):
                    self.logger.info(f"{path} is read-only; skipping")
                    continue

                eligible += 1
                if self._clean_file(
                    path,
                    remove_design_time_names,
                    remove_dimension_annotations,
                    make_backup,
                ):
                    altered += 1

        self.logger.info(f"Inspected {inspected:,} files")
        self.logger.info(f"Cleaned {eligible:,} files")
        self.logger.info(f"Altered {altered:,} files")
        return CleanResult(inspected=inspected, eligible=eligible, altered=altered)
