"""
Entry point for the ssas_builder component.
"""

import argparse
import logging
import sys

from .application.exceptions import ConfigurationError, SsasBuilderError
from .infrastructure.cleaner import parse_patterns
from .infrastructure.containers import Container

logger = logging.getLogger(__name__)


def setup_logging(level: str, fmt: str):
    """Applies basic logging configuration."""
    logging.basicConfig(level=level, format=fmt, datefmt="%H:%M:%S")


def run_build(container: Container, args: argparse.Namespace) -> int:
    edition = args.edition or container.config().get("build.server_edition")
    if not edition:
        raise ConfigurationError("No server edition given and build.server_edition is not set")
    report = container.build_service().build(args.project_file, args.target_file, edition)
    return 0 if report.is_valid else 1


def run_disassemble(container: Container, args: argparse.Namespace) -> int:
    database = container.assembler().assemble(args.project_file)

    overrides = {"allow_overwrite": True} if args.allow_overwrite else {}
    disassembler = container.disassembler(**overrides)
    disassembler.disassemble(database, args.target_dir)
    if args.write_manifest:
        disassembler.write_manifest(database, args.target_dir)
    return 0


def run_clean(container: Container, args: argparse.Namespace) -> int:
    defaults = container.config().cleaner
    patterns = parse_patterns(args.patterns) if args.patterns else list(defaults.patterns)

    result = container.cleaner().clean(
        args.directory,
        patterns=patterns,
        recursive=args.recursive or defaults.recursive,
        remove_design_time_names=args.remove_design_time_names
        or defaults.remove_design_time_names,
        remove_dimension_annotations=args.remove_dimension_annotations
        or defaults.remove_dimension_annotations,
        make_backup=defaults.make_backup and not args.no_backup,
    )
    logger.info(
        f"Inspected {result.inspected}, eligible {result.eligible}, "
        f"altered {result.altered}"
    )
    return 0


def run_sort(container: Container, args: argparse.Namespace) -> int:
    container.sorter().sort_file(args.input_file, args.output_file)
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="ssas_builder",
        description="Build, split and clean Analysis Services projects",
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable verbose (DEBUG) logging",
    )
    commands = parser.add_subparsers(dest="command", required=True)

    build = commands.add_parser(
        "build", help="Assemble and validate a project, then write the database file"
    )
    build.add_argument("project_file", help="Path to the .dwproj file")
    build.add_argument("target_file", help="Consolidated database file to write")
    build.add_argument(
        "--edition",
        help="Server edition to validate against (Standard, Enterprise, Developer, Evaluation)",
    )
    build.set_defaults(handler=run_build)

    disassemble = commands.add_parser(
        "disassemble", help="Assemble a project and write one file per object"
    )
    disassemble.add_argument("project_file", help="Path to the .dwproj file")
    disassemble.add_argument("target_dir", help="Directory to write the files to")
    disassemble.add_argument(
        "--allow-overwrite",
        action="store_true",
        help="Let objects with the same name overwrite each other",
    )
    disassemble.add_argument(
        "--write-manifest",
        action="store_true",
        help="Also write a .dwproj and .database file for the output",
    )
    disassemble.set_defaults(handler=run_disassemble)

    clean = commands.add_parser(
        "clean", help="Strip volatile metadata from the files of a project directory"
    )
    clean.add_argument("directory", help="Project directory")
    clean.add_argument(
        "--patterns",
        help="Comma-separated file patterns, e.g. '*.cube,*.dim'",
    )
    clean.add_argument("--recursive", "-r", action="store_true", help="Include subdirectories")
    clean.add_argument(
        "--remove-design-time-names",
        action="store_true",
        help="Remove the regenerated design-time-name attributes",
    )
    clean.add_argument(
        "--remove-dimension-annotations",
        action="store_true",
        help="Also remove annotations from dimension files",
    )
    clean.add_argument("--no-backup", action="store_true", help="Do not write .bak files")
    clean.add_argument("--progress", action="store_true", help="Show a progress bar")
    clean.set_defaults(handler=run_clean)

    sort = commands.add_parser("sort", help="Write a file in canonical element order")
    sort.add_argument("input_file", help="File to sort")
    sort.add_argument("output_file", help="Sorted file to write")
    sort.set_defaults(handler=run_sort)

    return parser


def main(argv=None) -> int:
    """Wires and runs the application using the DI container."""
    args = build_parser().parse_args(argv)

    container = Container()
    container.cli_args.from_dict(vars(args))

    config = container.config()
    level = "DEBUG" if args.verbose else config.logging.level
    setup_logging(level=level, fmt=config.logging.format)

    try:
        return args.handler(container, args)
    except SsasBuilderError as e:
        logger.error(f"An application error occurred: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
