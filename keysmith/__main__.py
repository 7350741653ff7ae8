"""Entry point for keysmith: python -m keysmith."""

import argparse
import json
import logging
import sys
from pathlib import Path

from . import __version__
from .cache import CacheManager
from .config import find_config, load_config
from .errors import KeysmithError
from .i18n import init_lang, t
from .models import EmptyValuePolicy, KeysmithConfig
from .report import format_summary
from .syncer import SyncOptions, Syncer


def setup_logging(verbose: bool, quiet: bool = False) -> None:
    """Configure logging."""
    if quiet:
        # JSON mode: keep stdout clean for the payload
        level = logging.DEBUG if verbose else logging.WARNING
        stream = sys.stderr
    else:
        level = logging.DEBUG if verbose else logging.INFO
        stream = sys.stdout
    format_str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    logging.basicConfig(
        level=level,
        format=format_str,
        handlers=[logging.StreamHandler(stream)],
    )

    # Reduce noise from libraries
    logging.getLogger("yaml").setLevel(logging.WARNING)


def parse_args(argv=None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        prog="keysmith",
        description="Reconcile translation keys used in code with locale files",
    )

    parser.add_argument(
        "-c", "--config",
        type=Path,
        default=None,
        help="Path to configuration file (default: keysmith.yaml in the workspace)",
    )

    parser.add_argument(
        "-r", "--root",
        type=Path,
        default=Path("."),
        help="Workspace root (default: current directory)",
    )

    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable verbose logging",
    )

    parser.add_argument(
        "-w", "--write",
        action="store_true",
        help="Write missing keys to locale files (default is a dry run)",
    )

    parser.add_argument(
        "--prune",
        action="store_true",
        help="With --write, remove unused keys from every locale",
    )

    parser.add_argument(
        "--target",
        action="append",
        default=None,
        metavar="PATH",
        help="Only analyze these files or globs (repeatable); disables unused-key detection",
    )

    parser.add_argument(
        "--assume",
        action="append",
        default=[],
        metavar="KEY",
        help="Treat KEY as referenced (repeatable)",
    )

    parser.add_argument(
        "--validate-interpolations",
        action="store_true",
        default=None,
        help="Compare placeholders between source and target values",
    )

    parser.add_argument(
        "--empty-values",
        choices=[policy.value for policy in EmptyValuePolicy],
        default=None,
        help="Override the empty value policy",
    )

    parser.add_argument(
        "--invalidate-cache",
        action="store_true",
        help="Ignore and delete the reference cache before scanning",
    )

    parser.add_argument(
        "--clear-cache",
        action="store_true",
        help="Delete all cache files and exit",
    )

    parser.add_argument(
        "--cache-status",
        action="store_true",
        help="Show whether the cache files are fresh and exit",
    )

    parser.add_argument(
        "--json",
        action="store_true",
        help="Print the summary as JSON",
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )

    return parser.parse_args(argv)


def resolve_config(args: argparse.Namespace, root: Path) -> KeysmithConfig:
    """Load the configured or discovered config file, or fall back to defaults."""
    logger = logging.getLogger(__name__)
    config_path = args.config
    if config_path is None:
        config_path = find_config(root)
        if config_path is None:
            logger.info(t("cli_config_default"))
            return KeysmithConfig()
    elif not config_path.is_absolute():
        config_path = Path.cwd() / config_path
    return load_config(config_path)


def show_cache_status(syncer: Syncer) -> None:
    manager = CacheManager(syncer.workspace_root)
    expected = syncer.extractor.expected_cache_metadata()
    for name, status in manager.status(expected).items():
        if not status["exists"]:
            state = t("cli_cache_state_missing")
        elif status["stale"]:
            state = t("cli_cache_state_stale", reasons="; ".join(status["reasons"]))
        else:
            state = t("cli_cache_state_fresh")
        print(t("cli_cache_status_line", name=name, state=state, files=status["files"], path=status["path"]))


def main(argv=None) -> int:
    """Main entry point."""
    args = parse_args(argv)
    setup_logging(args.verbose, quiet=args.json)
    init_lang("en")

    logger = logging.getLogger(__name__)
    root = args.root.resolve()

    if args.config is not None and not args.config.exists():
        logger.error(t("cli_config_not_found", path=args.config))
        return 1

    if args.clear_cache:
        print(t("cli_cache_cleared", count=CacheManager(root).clear_all()))
        return 0

    try:
        config = resolve_config(args, root)
        syncer = Syncer(config, root)

        if args.cache_status:
            show_cache_status(syncer)
            return 0

        options = SyncOptions(
            write=args.write,
            prune=args.prune,
            invalidate_cache=args.invalidate_cache,
            targets=args.target,
            assumed_keys=args.assume,
            validate_interpolations=args.validate_interpolations,
            empty_value_policy=EmptyValuePolicy(args.empty_values) if args.empty_values else None,
        )
        if args.prune and not args.write:
            logger.warning("--prune has no effect without --write")

        summary = syncer.run(options)
    except KeysmithError as e:
        logger.error("%s", e)
        return 2
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        return 130

    if args.json:
        print(json.dumps(summary.to_dict(), indent=2, ensure_ascii=False))
    else:
        print(format_summary(summary, verbose=args.verbose))

    return 1 if summary.failed else 0


if __name__ == "__main__":
    sys.exit(main())
