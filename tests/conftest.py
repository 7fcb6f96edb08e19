"""Shared fixtures for nstree tests."""

import pytest

from nstree.models import NamespaceSet, ProcessRecord


@pytest.fixture
def make_record():
    """Factory for ProcessRecord with namespaces given as identifiers."""

    def _make(
        pid: int,
        parent_pid: int,
        namespaces: list[str] | None = None,
        command: str | None = None,
        is_thread: bool = False,
        readable: bool = True,
    ) -> ProcessRecord:
        return ProcessRecord(
            pid=pid,
            parent_pid=parent_pid,
            command=command or f"proc{pid}",
            is_thread=is_thread,
            namespaces=NamespaceSet.from_identifiers(namespaces or []),
            namespaces_readable=readable,
        )

    return _make


@pytest.fixture
def scenario_records(make_record):
    """init -> pid 2 (new mnt) -> pid 3 (new net)."""
    return [
        make_record(1, 0, ["net:[A]", "mnt:[B]"], command="init"),
        make_record(2, 1, ["net:[A]", "mnt:[C]"], command="sshd"),
        make_record(3, 2, ["net:[D]", "mnt:[C]"], command="bash"),
    ]
