"""CLI entry point for nstree."""

import argparse
import logging
import sys
from collections.abc import Sequence

from nstree.collector import NamespaceCollector, TreeSnapshot
from nstree.config import LOG_LEVELS, OutputFormat, TreeOptions, configure_logging
from nstree.errors import FilterSpecError, ProcUnavailableError
from nstree.filters import NAMESPACE_TYPES
from nstree.render import render, render_json

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_NO_PROC = 1
EXIT_INTERRUPTED = 130


def build_parser() -> argparse.ArgumentParser:
    """Build the command-line parser."""
    parser = argparse.ArgumentParser(
        prog="nstree",
        description=(
            "Show the process tree like pstree, annotating each process with the "
            "Linux namespaces that differ from its parent's. Threads are hidden "
            "by default."
        ),
    )
    parser.add_argument(
        "-t",
        "--show-threads",
        action="store_true",
        help="Include threads in the tree",
    )
    parser.add_argument(
        "-f",
        "--filter",
        dest="filters",
        action="append",
        metavar="TYPES",
        help=(
            "Only show branches where one of these namespace types changes "
            "(comma separated, repeatable; 'all' matches any change). "
            f"Types: {', '.join(NAMESPACE_TYPES)}"
        ),
    )
    parser.add_argument(
        "--format",
        choices=[fmt.value for fmt in OutputFormat],
        default=OutputFormat.TEXT.value,
        help="Output format (default: text)",
    )
    parser.add_argument(
        "-i",
        "--interactive",
        action="store_true",
        help="Browse the tree in an interactive terminal UI",
    )
    parser.add_argument(
        "-j",
        "--workers",
        type=int,
        default=1,
        help="Threads used to read namespace links (default: 1)",
    )
    parser.add_argument(
        "--log-level",
        type=str.upper,
        choices=LOG_LEVELS,
        default=None,
        help="Log level for messages on stderr (default: $NSTREE_LOG_LEVEL or WARNING)",
    )
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    """Collect, filter and render the namespace tree."""
    parser = build_parser()
    args = parser.parse_args(argv)
    try:
        options = TreeOptions.from_args(args)
    except FilterSpecError as exc:
        parser.error(str(exc))

    configure_logging(options.log_level)
    collector = NamespaceCollector(show_threads=options.show_threads, workers=options.workers)

    try:
        if options.interactive:
            return _run_interactive(collector, options)
        records = collector.collect()
    except ProcUnavailableError as exc:
        logger.error("%s", exc)
        return EXIT_NO_PROC
    except KeyboardInterrupt:
        return EXIT_INTERRUPTED

    snapshot = TreeSnapshot.from_records(records, options.filters)
    if options.output_format is OutputFormat.JSON:
        print(render_json(snapshot.graph, snapshot.keep, options.filters.describe()))
    else:
        render(snapshot.graph, sys.stdout, snapshot.keep)
    return EXIT_OK


def _run_interactive(collector: NamespaceCollector, options: TreeOptions) -> int:
    from nstree.app import NamespaceTreeApp

    collector.ensure_available()
    NamespaceTreeApp(collector.collect, options.filters).run()
    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
