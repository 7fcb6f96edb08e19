"""Process and namespace collection for nstree."""

import logging
import os
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from pathlib import Path

import psutil

from nstree.errors import ProcUnavailableError
from nstree.filters import FilterSpec, mark_keep
from nstree.graph import ProcessGraph
from nstree.models import NamespaceEntry, NamespaceSet, ProcessRecord

logger = logging.getLogger(__name__)

PROC_ROOT = Path("/proc")


@dataclass(slots=True)
class _Pending:
    """A discovered process or thread waiting for its namespaces."""

    pid: int
    parent_pid: int
    command: str
    is_thread: bool
    ns_dir: Path


@dataclass(slots=True)
class TreeSnapshot:
    """A linked process graph plus the keep flags for one filter spec."""

    graph: ProcessGraph
    keep: dict[int, bool]
    filters: FilterSpec

    @classmethod
    def from_records(
        cls, records: list[ProcessRecord], filters: FilterSpec | None = None
    ) -> "TreeSnapshot":
        filters = filters or FilterSpec()
        graph = ProcessGraph.build(records)
        if graph.root() is None:
            logger.warning("no record for pid 1, the tree is empty")
        return cls(graph=graph, keep=mark_keep(graph, filters), filters=filters)

    @property
    def shown(self) -> int:
        return sum(self.keep.values())


class NamespaceCollector:
    """
    Collects process records and their namespaces from the proc filesystem.

    Uses psutil to enumerate processes and threads, and reads the namespace
    links under ``<proc_root>/<pid>/ns`` directly. Processes that vanish or
    deny access mid-scan degrade to a record without readable namespaces.
    """

    def __init__(
        self,
        show_threads: bool = False,
        proc_root: Path = PROC_ROOT,
        workers: int = 1,
    ) -> None:
        """
        Initialize the NamespaceCollector.

        Args:
            show_threads: Also emit one record per non-leader thread.
            proc_root: Mount point of the proc filesystem.
            workers: Threads used to read namespace links. 1 reads inline.
        """
        self._show_threads = show_threads
        self._proc_root = Path(proc_root)
        self._workers = max(1, workers)

    @property
    def show_threads(self) -> bool:
        return self._show_threads

    @property
    def workers(self) -> int:
        return self._workers

    def ensure_available(self) -> None:
        """Raise ProcUnavailableError if the proc filesystem is missing."""
        if not self._proc_root.is_dir():
            raise ProcUnavailableError(f"{self._proc_root} is not available")

    def collect(self) -> list[ProcessRecord]:
        """Collect one record per process (and thread) in discovery order."""
        self.ensure_available()
        pending = self._discover()

        ns_dirs = [item.ns_dir for item in pending]
        if self._workers > 1:
            with ThreadPoolExecutor(
                max_workers=self._workers, thread_name_prefix="NamespaceReader"
            ) as executor:
                namespace_sets = list(executor.map(self.read_namespaces, ns_dirs))
        else:
            namespace_sets = [self.read_namespaces(ns_dir) for ns_dir in ns_dirs]

        records = [
            ProcessRecord(
                pid=item.pid,
                parent_pid=item.parent_pid,
                command=item.command,
                is_thread=item.is_thread,
                namespaces=namespaces,
                namespaces_readable=readable,
            )
            for item, (namespaces, readable) in zip(pending, namespace_sets)
        ]
        logger.info("collected %d records", len(records))
        return records

    def _discover(self) -> list[_Pending]:
        """
        Enumerate processes, each followed by its threads when enabled.

        Handles NoSuchProcess and ZombieProcess by skipping the process.
        """
        pending: list[_Pending] = []
        for proc in psutil.process_iter(attrs=["pid", "ppid", "name"]):
            info = proc.info
            pid = info.get("pid", proc.pid)
            name = info.get("name") or ""
            pending.append(
                _Pending(
                    pid=pid,
                    parent_pid=info.get("ppid") or 0,
                    command=name,
                    is_thread=False,
                    ns_dir=self._proc_root / str(pid) / "ns",
                )
            )
            if self._show_threads:
                pending.extend(self._discover_threads(proc, pid, name))
        return pending

    def _discover_threads(self, proc: psutil.Process, pid: int, name: str) -> list[_Pending]:
        try:
            threads = proc.threads()
        except (psutil.NoSuchProcess, psutil.AccessDenied, psutil.ZombieProcess):
            logger.debug("cannot list threads of pid %d", pid)
            return []

        task_dir = self._proc_root / str(pid) / "task"
        pending = []
        for thread in threads:
            if thread.id == pid:
                continue
            thread_dir = task_dir / str(thread.id)
            pending.append(
                _Pending(
                    pid=thread.id,
                    parent_pid=pid,
                    command=self._read_comm(thread_dir) or name,
                    is_thread=True,
                    ns_dir=thread_dir / "ns",
                )
            )
        return pending

    @staticmethod
    def _read_comm(task_dir: Path) -> str | None:
        try:
            return (task_dir / "comm").read_text().strip()
        except OSError:
            return None

    @staticmethod
    def read_namespaces(ns_dir: Path) -> tuple[NamespaceSet, bool]:
        """
        Read the namespace links in ``ns_dir``.

        Returns the parsed set and whether every link could be read. Links are
        read in directory order, as the kernel lists them.
        """
        try:
            names = os.listdir(ns_dir)
        except OSError as exc:
            logger.debug("cannot list %s: %s", ns_dir, exc)
            return NamespaceSet(), False

        entries: list[NamespaceEntry] = []
        readable = True
        for name in names:
            try:
                target = os.readlink(ns_dir / name)
            except OSError as exc:
                logger.debug("cannot read %s/%s: %s", ns_dir, name, exc)
                readable = False
                continue
            entries.append(NamespaceEntry.parse(target))
        return NamespaceSet(tuple(entries)), readable
