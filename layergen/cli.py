# File: layergen/cli.py
"""
LayerGen - Command-Line Interface
===================================

Built with the standard-library ``argparse`` module.

Usage examples::

    # One collection from a schema file
    layergen generate blog posts --fields-file schemas/posts.yaml

    # Preview without touching the filesystem
    layergen generate blog posts --fields-file posts.json --dry-run

    # Every target of a multi-collection config (default: ./layergen.config.yaml)
    layergen generate config
    layergen generate config shop.config.yaml --only products --force

    # Undo a generated collection
    layergen rollback blog posts

Exit codes:
    0 - success (dry runs included)
    1 - a target failed validation or planning
    2 - a target failed while writing artifacts
    3 - a target failed while updating registries, or rollback failed
    4 - input/argument error (bad config, missing schema file)
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Dict, List, NoReturn, Optional, Sequence, Tuple

from layergen.config import (
    build_targets,
    find_default_config,
    load_run_config,
    merge_flags,
    resolve_dialect,
)
from layergen.errors import LayergenError, SchemaError
from layergen.generator import Orchestrator, RunReport
from layergen.models import (
    CollectionOptions,
    GenerationFlags,
    RunConfig,
    SeedOptions,
    Target,
    TargetState,
)
from layergen.rollback import RemovedArtifact, RollbackEngine
from layergen.typemap import TypeTable
from layergen.validators import ValidationResult, validate_run_config

# ---------------------------------------------------------------------------
# Logger (configured in _setup_logging)
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("layergen")


# ---------------------------------------------------------------------------
# Exit codes
# ---------------------------------------------------------------------------

EXIT_SUCCESS: int = 0
EXIT_VALIDATION_ERROR: int = 1
EXIT_WRITE_ERROR: int = 2
EXIT_REGISTRY_ERROR: int = 3
EXIT_INPUT_ERROR: int = 4

_STAGE_EXIT_CODES: Dict[str, int] = {
    TargetState.VALIDATING.value: EXIT_VALIDATION_ERROR,
    TargetState.PLANNING.value: EXIT_VALIDATION_ERROR,
    TargetState.WRITING.value: EXIT_WRITE_ERROR,
    TargetState.REGISTRY_UPDATING.value: EXIT_REGISTRY_ERROR,
}

CONFIG_KEYWORD: str = "config"


# ---------------------------------------------------------------------------
# Logging setup
# ---------------------------------------------------------------------------


def _setup_logging(verbosity: int) -> None:
    """
    Configure the ``layergen`` logger based on verbosity level.

    Args:
        verbosity: -1 = silent, 0 = WARNING, 1 = INFO, 2+ = DEBUG.
    """
    if verbosity >= 2:
        level = logging.DEBUG
    elif verbosity >= 1:
        level = logging.INFO
    elif verbosity == 0:
        level = logging.WARNING
    else:
        level = logging.CRITICAL + 1

    handler: logging.StreamHandler = logging.StreamHandler(sys.stderr)
    handler.setLevel(level)

    fmt: str = "%(asctime)s │ %(levelname)-8s │ %(name)s │ %(message)s"
    datefmt: str = "%H:%M:%S"
    handler.setFormatter(logging.Formatter(fmt, datefmt=datefmt))

    root_logger: logging.Logger = logging.getLogger("layergen")
    root_logger.setLevel(level)

    # Remove existing handlers to prevent duplication
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.propagate = False


# ---------------------------------------------------------------------------
# Argument parser
# ---------------------------------------------------------------------------


def _add_verbosity(parser: argparse.ArgumentParser) -> None:
    group = parser.add_argument_group("verbosity")
    group.add_argument(
        "-v", "--verbose",
        action="count",
        default=0,
        help="Increase verbosity (-v for INFO, -vv for DEBUG).",
    )
    group.add_argument(
        "-q", "--quiet",
        action="store_true",
        default=False,
        help="Suppress log output; only the report is printed.",
    )


def _add_root(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--root",
        type=str,
        default=".",
        metavar="DIR",
        help="Application root holding layers/ and the registry files (default: .).",
    )


def _build_parser() -> argparse.ArgumentParser:
    """Build and return the argument parser."""
    from layergen import __version__

    parser: argparse.ArgumentParser = argparse.ArgumentParser(
        prog="layergen",
        description=(
            "LayerGen - collection scaffolding for layered Nuxt applications.\n\n"
            "Turns a field schema (JSON/YAML) into the input and listing\n"
            "surfaces, API handlers, database schema, queries and types of one\n"
            "collection, and registers it in the application's index files."
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=(
            "Examples:\n"
            "  %(prog)s generate blog posts --fields-file posts.yaml\n"
            "  %(prog)s generate config layergen.config.yaml --only posts\n"
            "  %(prog)s rollback blog posts\n"
        ),
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"LayerGen v{__version__}",
    )
    commands = parser.add_subparsers(dest="command", metavar="COMMAND")
    commands.required = True

    # --- generate ---
    gen: argparse.ArgumentParser = commands.add_parser(
        "generate",
        help="Generate one collection, or every target of a config file.",
        description=(
            "generate <layer> <collection> [options]\n"
            "generate config [path] [--only name]"
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    gen.add_argument("layer", help="Layer name, or 'config' to run a config file.")
    gen.add_argument(
        "collection",
        nargs="?",
        default=None,
        help="Collection name (or, after 'config', the config file path).",
    )
    _add_root(gen)

    schema_group = gen.add_argument_group("schema")
    schema_group.add_argument(
        "-f", "--fields-file",
        type=str,
        default=None,
        metavar="PATH",
        help="Field schema file (JSON or YAML).",
    )
    schema_group.add_argument(
        "--dialect",
        type=str,
        default=None,
        metavar="NAME",
        help="Database dialect: sqlite (default) or pg.",
    )
    schema_group.add_argument(
        "--feature",
        dest="features",
        action="append",
        default=[],
        metavar="ID",
        help="Enable an extra field-type manifest (repeatable, e.g. 'assets').",
    )

    options_group = gen.add_argument_group("collection options")
    options_group.add_argument("--hierarchy", action="store_true", default=False,
                               help="Tree collection: parentId/path/depth/order, move and reorder.")
    options_group.add_argument("--sortable", action="store_true", default=False,
                               help="Manually ordered collection: order column and reorder.")
    options_group.add_argument("--translatable", action="store_true", default=False,
                               help="Add the translations column even without translatable fields.")
    options_group.add_argument(
        "--seed",
        type=int,
        nargs="?",
        const=25,
        default=None,
        metavar="COUNT",
        help="Generate a seed module (default count: 25).",
    )
    options_group.add_argument(
        "--form-component",
        type=str,
        default=None,
        metavar="NAME",
        help="Use an existing form component instead of generating one.",
    )

    behaviour_group = gen.add_argument_group("behaviour flags")
    behaviour_group.add_argument("--force", action="store_true", default=False,
                                 help="Overwrite existing files and conflicting registry entries.")
    behaviour_group.add_argument("--no-translations", action="store_true", default=False,
                                 help="Treat translatable fields as plain fields.")
    behaviour_group.add_argument("--dry-run", action="store_true", default=False,
                                 help="Print the full plan without writing anything.")
    behaviour_group.add_argument(
        "--only",
        type=str,
        default=None,
        metavar="NAME",
        help="With 'config': run only the collection with this name.",
    )
    _add_verbosity(gen)

    # --- rollback ---
    rb: argparse.ArgumentParser = commands.add_parser(
        "rollback",
        help="Remove a generated collection and its registry entries.",
    )
    rb.add_argument("layer", help="Layer name.")
    rb.add_argument("collection", help="Collection name.")
    _add_root(rb)
    _add_verbosity(rb)

    return parser


# ---------------------------------------------------------------------------
# Generate
# ---------------------------------------------------------------------------


def _flags(args: argparse.Namespace) -> GenerationFlags:
    return GenerationFlags(
        force=args.force,
        dry_run=args.dry_run,
        no_translations=args.no_translations,
    )


def _single_target(args: argparse.Namespace) -> Target:
    if args.fields_file is None:
        raise SchemaError("--fields-file is required", collection=args.collection)
    seed: Optional[SeedOptions] = SeedOptions(count=args.seed) if args.seed is not None else None
    flags: GenerationFlags = _flags(args)
    options: CollectionOptions = CollectionOptions(
        hierarchy=args.hierarchy,
        sortable=args.sortable,
        translatable=args.translatable,
        no_translations=flags.no_translations,
        seed=seed,
        form_component=args.form_component,
    )
    return Target(
        layer=args.layer,
        collection=args.collection,
        dialect=resolve_dialect(args.dialect or "sqlite"),
        flags=flags,
        options=options,
        fields_file=str(Path(args.fields_file).resolve()),
    )


def _config_targets(args: argparse.Namespace, root: Path) -> Tuple[List[Target], TypeTable]:
    """Resolve the config file and expand it into ``(targets, type table)``."""
    if args.collection is not None:
        path: Optional[Path] = Path(args.collection)
    else:
        path = find_default_config(Path.cwd()) or find_default_config(root)
    if path is None:
        raise LayergenError("No config path given and no layergen.config.yaml/.json found.")

    config: RunConfig = load_run_config(path)
    diagnostics: ValidationResult = validate_run_config(config)
    for issue in diagnostics.warnings:
        logger.warning("%s: %s", path.name, issue.message)
    if diagnostics.has_errors:
        raise LayergenError(
            f"Invalid configuration {path}:\n" + diagnostics.format_report()
        )

    flags: GenerationFlags = merge_flags(
        config.flags,
        force=args.force,
        dry_run=args.dry_run,
        no_translations=args.no_translations,
    )
    targets: List[Target] = build_targets(config, only=args.only, flags=flags)
    if args.dialect is not None:
        for target in targets:
            target.dialect = resolve_dialect(args.dialect)

    types, _missing = TypeTable.from_features([*config.features, *args.features])
    return targets, types


def _exit_code(report: RunReport) -> int:
    if report.success:
        return EXIT_SUCCESS
    return _STAGE_EXIT_CODES.get(report.failures[0].stage, EXIT_VALIDATION_ERROR)


def _run_generate(args: argparse.Namespace) -> int:
    root: Path = Path(args.root).resolve()
    config_mode: bool = args.layer == CONFIG_KEYWORD

    if args.only is not None and not config_mode:
        logger.error("--only is only valid with 'generate config'.")
        return EXIT_INPUT_ERROR
    if not config_mode and args.collection is None:
        logger.error("generate needs <layer> <collection>, or 'config [path]'.")
        return EXIT_INPUT_ERROR

    try:
        if config_mode:
            targets, types = _config_targets(args, root)
        else:
            targets = [_single_target(args)]
            types, _missing = TypeTable.from_features(args.features)
    except LayergenError as exc:
        logger.error("%s", exc)
        return EXIT_INPUT_ERROR

    logger.info("Root:    %s", root)
    logger.info("Targets: %s", ", ".join(t.label for t in targets))
    if args.dry_run:
        logger.info("Dry-run mode: nothing will be written.")

    report: RunReport = Orchestrator(root, types=types).run(targets)
    print(report.summary())

    code: int = _exit_code(report)
    if code != EXIT_SUCCESS:
        logger.error("Generation failed with exit code %d.", code)
    return code


# ---------------------------------------------------------------------------
# Rollback
# ---------------------------------------------------------------------------


def _run_rollback(args: argparse.Namespace) -> int:
    root: Path = Path(args.root).resolve()
    try:
        removed: List[RemovedArtifact] = RollbackEngine(root).rollback(args.layer, args.collection)
    except SchemaError as exc:
        logger.error("%s", exc)
        return EXIT_INPUT_ERROR
    except (OSError, LayergenError) as exc:
        logger.error("Rollback of %s/%s failed: %s", args.layer, args.collection, exc)
        return EXIT_REGISTRY_ERROR

    print(f"{'='*60}")
    print(f"  LayerGen - Rollback {args.layer}/{args.collection}")
    print(f"{'='*60}")
    if not removed:
        print("  Nothing to remove.")
    for item in removed:
        print(f"    {item}")
    print(f"{'='*60}")
    return EXIT_SUCCESS


# ---------------------------------------------------------------------------
# Main entry point
# ---------------------------------------------------------------------------


def run(argv: Optional[Sequence[str]] = None) -> int:
    """Parse ``argv``, run the command and return its exit code."""
    parser: argparse.ArgumentParser = _build_parser()
    args: argparse.Namespace = parser.parse_args(argv)

    verbosity: int = -1 if args.quiet else args.verbose
    _setup_logging(verbosity)

    if args.command == "rollback":
        return _run_rollback(args)
    return _run_generate(args)


def cli_main(argv: Optional[Sequence[str]] = None) -> NoReturn:
    """
    Main CLI entry point.

    Can be called from ``__main__.py`` or directly for testing.
    """
    sys.exit(run(argv))


def main() -> None:
    """Console-script entry point."""
    cli_main()


# ---------------------------------------------------------------------------
# Module-level exports
# ---------------------------------------------------------------------------

__all__: List[str] = [
    "run",
    "cli_main",
    "main",
    "EXIT_SUCCESS",
    "EXIT_VALIDATION_ERROR",
    "EXIT_WRITE_ERROR",
    "EXIT_REGISTRY_ERROR",
    "EXIT_INPUT_ERROR",
]

logger.debug("layergen.cli loaded.")
