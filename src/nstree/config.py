"""Runtime configuration for nstree."""

import argparse
import logging
import os
import sys
from dataclasses import dataclass, field
from enum import Enum

from nstree.filters import FilterSpec

ENV_LOG_LEVEL = "NSTREE_LOG_LEVEL"
DEFAULT_LOG_LEVEL = "WARNING"
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")
LOG_FORMAT = "%(levelname)s %(name)s: %(message)s"


class OutputFormat(Enum):
    """Output formats for the non-interactive tree."""

    TEXT = "text"
    JSON = "json"


def default_log_level() -> str:
    """Log level from the environment, falling back to WARNING."""
    level = os.environ.get(ENV_LOG_LEVEL, DEFAULT_LOG_LEVEL).strip().upper()
    return level if level in LOG_LEVELS else DEFAULT_LOG_LEVEL


@dataclass(slots=True, frozen=True)
class TreeOptions:
    """Options for one nstree run."""

    show_threads: bool = False
    filters: FilterSpec = field(default_factory=FilterSpec)
    output_format: OutputFormat = OutputFormat.TEXT
    interactive: bool = False
    workers: int = 1
    log_level: str = DEFAULT_LOG_LEVEL

    @classmethod
    def from_args(cls, args: argparse.Namespace) -> "TreeOptions":
        """
        Build options from parsed command-line arguments.

        Raises:
            FilterSpecError: if a filter names an unknown namespace type.
        """
        return cls(
            show_threads=args.show_threads,
            filters=FilterSpec.parse(args.filters or []),
            output_format=OutputFormat(args.format),
            interactive=args.interactive,
            workers=max(1, args.workers),
            log_level=args.log_level or default_log_level(),
        )


def configure_logging(level: str) -> None:
    """Send log records to stderr so they never mix with the tree."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.WARNING),
        format=LOG_FORMAT,
        stream=sys.stderr,
    )
