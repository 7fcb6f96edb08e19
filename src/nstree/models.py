"""Data models for nstree."""

from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field


@dataclass(slots=True, frozen=True)
class NamespaceEntry:
    """One namespace membership, e.g. type ``net`` / ``net:[4026531840]``."""

    type: str
    identifier: str

    def __post_init__(self) -> None:
        expected = self.identifier.partition(":")[0]
        if self.type != expected:
            raise ValueError(
                f"namespace type {self.type!r} does not match identifier {self.identifier!r}"
            )

    @classmethod
    def parse(cls, identifier: str) -> "NamespaceEntry":
        """Build an entry from a namespace link target such as ``mnt:[4026531841]``."""
        return cls(type=identifier.partition(":")[0], identifier=identifier)


@dataclass(slots=True, frozen=True)
class NamespaceSet:
    """Ordered namespace entries of one process, looked up by type."""

    entries: tuple[NamespaceEntry, ...] = ()

    @classmethod
    def from_identifiers(cls, identifiers: Iterable[str]) -> "NamespaceSet":
        return cls(tuple(NamespaceEntry.parse(identifier) for identifier in identifiers))

    def get(self, ns_type: str) -> NamespaceEntry | None:
        """Return the first entry of the given type, or None."""
        for entry in self.entries:
            if entry.type == ns_type:
                return entry
        return None

    @property
    def identifiers(self) -> list[str]:
        return [entry.identifier for entry in self.entries]

    @property
    def types(self) -> list[str]:
        return [entry.type for entry in self.entries]

    def __iter__(self) -> Iterator[NamespaceEntry]:
        return iter(self.entries)

    def __len__(self) -> int:
        return len(self.entries)

    def __bool__(self) -> bool:
        return bool(self.entries)


@dataclass(slots=True, frozen=True)
class ProcessRecord:
    """Immutable snapshot of one process or thread and its namespaces."""

    pid: int  # Thread id when is_thread is set
    parent_pid: int  # Owning process pid for threads
    command: str
    is_thread: bool = False
    namespaces: NamespaceSet = field(default_factory=NamespaceSet)
    namespaces_readable: bool = True
