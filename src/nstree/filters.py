"""Namespace filters and keep-propagation for nstree."""

import logging
from collections.abc import Iterable
from dataclasses import dataclass

from nstree.diff import changed_types
from nstree.errors import FilterSpecError
from nstree.graph import ProcessGraph
from nstree.models import NamespaceSet

logger = logging.getLogger(__name__)

WILDCARDS = ("all", "*")

# Namespace types as they appear in /proc/<pid>/ns link targets. The
# pid_for_children and time_for_children links point at pid:[...] and time:[...].
NAMESPACE_TYPES = (
    "cgroup",
    "ipc",
    "mnt",
    "net",
    "pid",
    "time",
    "user",
    "uts",
)


@dataclass(slots=True, frozen=True)
class FilterSpec:
    """
    Namespace types a node must have changed to be shown.

    ``wildcard`` matches a change of any type. A FilterSpec with no types and no
    wildcard disables filtering.
    """

    types: frozenset[str] = frozenset()
    wildcard: bool = False

    @classmethod
    def parse(cls, values: Iterable[str]) -> "FilterSpec":
        """
        Parse filter arguments such as ``["net,mnt", "pid"]`` or ``["all"]``.

        Raises:
            FilterSpecError: if a name is not a known namespace type.
        """
        types: set[str] = set()
        wildcard = False
        for value in values:
            for name in value.split(","):
                name = name.strip().lower()
                if not name:
                    continue
                if name in WILDCARDS:
                    wildcard = True
                elif name in NAMESPACE_TYPES:
                    types.add(name)
                else:
                    raise FilterSpecError(
                        f"unknown namespace type {name!r} "
                        f"(expected one of: {', '.join(NAMESPACE_TYPES)}, all)"
                    )
        return cls(types=frozenset(types), wildcard=wildcard)

    @property
    def active(self) -> bool:
        return self.wildcard or bool(self.types)

    def matches(self, changed: set[str]) -> bool:
        """Whether a set of changed namespace types satisfies this spec."""
        if not self.active:
            return True
        if self.wildcard and changed:
            return True
        return not self.types.isdisjoint(changed)

    def describe(self) -> list[str]:
        names = sorted(self.types)
        if self.wildcard:
            names.insert(0, WILDCARDS[0])
        return names


def is_relevant(
    namespaces: NamespaceSet, parent: NamespaceSet | None, filters: FilterSpec
) -> bool:
    """Own relevance of a node against its direct parent's namespaces."""
    if not filters.active:
        return True
    return filters.matches(changed_types(namespaces, parent))


def mark_keep(graph: ProcessGraph, filters: FilterSpec) -> dict[int, bool]:
    """
    Compute keep flags for every node reachable from the root.

    A node is kept when it is relevant itself or any descendant is kept, so
    the kept nodes always form a connected tree hanging off the root. The
    result maps record index to flag; an empty map means there is no root.

    A record reached under several parents (duplicate pids) is decided per
    parent and kept if any of those visits keeps it.
    """
    keep: dict[int, bool] = {}
    root = graph.root()
    if root is None:
        return keep

    visits = list(graph.walk(root))
    parent_visit: list[int | None] = []
    open_visits: list[int] = []
    for position, visit in enumerate(visits):
        del open_visits[visit.depth:]
        parent_visit.append(open_visits[-1] if open_visits else None)
        open_visits.append(position)

    # Reversed pre-order decides every child before its parent
    kept_child = [False] * len(visits)
    for position in range(len(visits) - 1, -1, -1):
        visit = visits[position]
        record = graph.records[visit.index]
        parent_ns = None if visit.parent is None else graph.records[visit.parent].namespaces
        kept = kept_child[position] or is_relevant(record.namespaces, parent_ns, filters)
        keep[visit.index] = keep.get(visit.index, False) or kept
        owner = parent_visit[position]
        if kept and owner is not None:
            kept_child[owner] = True

    logger.debug("kept %d of %d reachable nodes", sum(keep.values()), len(keep))
    return keep
