"""Namespace differences between a process and its parent."""

from nstree.models import NamespaceEntry, NamespaceSet


def changed_entries(
    namespaces: NamespaceSet, parent: NamespaceSet | None
) -> list[NamespaceEntry]:
    """
    Entries of ``namespaces`` that are new or different relative to ``parent``.

    Order follows ``namespaces``. Without a parent every entry counts as new.
    """
    if parent is None:
        return list(namespaces)
    changed = []
    for entry in namespaces:
        parent_entry = parent.get(entry.type)
        if parent_entry is None or parent_entry.identifier != entry.identifier:
            changed.append(entry)
    return changed


def namespace_diff(namespaces: NamespaceSet, parent: NamespaceSet | None) -> list[str]:
    """Identifiers to display for a node, in the node's storage order."""
    return [entry.identifier for entry in changed_entries(namespaces, parent)]


def changed_types(namespaces: NamespaceSet, parent: NamespaceSet | None) -> set[str]:
    """Namespace types that changed relative to ``parent``."""
    return {entry.type for entry in changed_entries(namespaces, parent)}
