"""Process graph construction for nstree."""

import logging
from collections.abc import Callable, Collection, Iterable, Iterator
from dataclasses import dataclass, field
from typing import NamedTuple

from nstree.models import ProcessRecord

logger = logging.getLogger(__name__)

ROOT_PID = 1


class Visit(NamedTuple):
    """One node reached by ProcessGraph.walk."""

    index: int
    parent: int | None
    depth: int
    is_last: bool
    children: list[int]


@dataclass(slots=True)
class ProcessGraph:
    """
    Parent/child links over a flat, caller-owned list of process records.

    Nodes are addressed by their index in ``records``. The children index maps a
    parent pid to the indices of its children in discovery order, so every
    record sharing a pid sees the same children.
    """

    records: tuple[ProcessRecord, ...]
    children_by_pid: dict[int, list[int]] = field(default_factory=dict)

    @classmethod
    def build(cls, records: Iterable[ProcessRecord]) -> "ProcessGraph":
        """
        Link records into a tree by parent pid in a single pass.

        Records whose parent pid matches no record are kept but are never
        reachable from the root.
        """
        snapshot = tuple(records)
        children_by_pid: dict[int, list[int]] = {}
        for index, record in enumerate(snapshot):
            children_by_pid.setdefault(record.parent_pid, []).append(index)

        graph = cls(records=snapshot, children_by_pid=children_by_pid)
        if logger.isEnabledFor(logging.DEBUG):
            for index in graph.orphans():
                record = snapshot[index]
                logger.debug(
                    "pid %d has no parent record (ppid %d)", record.pid, record.parent_pid
                )
        logger.info("built process graph with %d records", len(snapshot))
        return graph

    def __len__(self) -> int:
        return len(self.records)

    def root(self) -> int | None:
        """Index of the first non-thread record with pid 1, or None."""
        for index, record in enumerate(self.records):
            if record.pid == ROOT_PID and not record.is_thread:
                return index
        return None

    def children(self, index: int, ancestors: Collection[int] = ()) -> list[int]:
        """
        Child indices of the node at ``index`` in discovery order.

        Children already present in ``ancestors`` are dropped so that a
        malformed snapshot cannot loop forever.
        """
        result = []
        for child in self.children_by_pid.get(self.records[index].pid, ()):
            if child == index or child in ancestors:
                logger.debug("skipping pid %d, already on the path", self.records[child].pid)
                continue
            result.append(child)
        return result

    def orphans(self) -> list[int]:
        """Indices of records whose parent pid matches no record."""
        known = {record.pid for record in self.records}
        return [
            index
            for index, record in enumerate(self.records)
            if record.parent_pid not in known
        ]

    def walk(
        self, root: int, include: Callable[[int], bool] | None = None
    ) -> Iterator[Visit]:
        """
        Pre-order walk from ``root`` using an explicit stack.

        Children come in discovery order. Children rejected by ``include`` are
        not visited, and ``Visit.children`` lists only the accepted ones.
        """
        stack: list[tuple[int, int | None, int, bool]] = [(root, None, 0, True)]
        path: list[int] = []
        on_path: set[int] = set()
        while stack:
            index, parent, depth, is_last = stack.pop()
            # Drop finished branches so the path holds this node's ancestors only
            while len(path) > depth:
                on_path.discard(path.pop())

            children = self.children(index, on_path)
            if include is not None:
                children = [child for child in children if include(child)]
            yield Visit(index, parent, depth, is_last, children)

            path.append(index)
            on_path.add(index)
            for position in range(len(children) - 1, -1, -1):
                stack.append(
                    (children[position], index, depth + 1, position == len(children) - 1)
                )
