"""Text and JSON rendering of the namespace process tree."""

import json
from collections.abc import Iterator
from datetime import datetime, timezone
from typing import TextIO

from nstree.diff import namespace_diff
from nstree.graph import ProcessGraph, Visit
from nstree.models import ProcessRecord

LAST_BRANCH = "└─"
MID_BRANCH = "├─"
LAST_INDENT = "  "
MID_INDENT = "│ "
UNREADABLE_MARKER = "?"


def format_label(record: ProcessRecord, changed: list[str]) -> str:
    """Format one node, e.g. ``{worker}(812)? [net:[4026532281]]``."""
    name = f"{{{record.command}}}" if record.is_thread else record.command
    label = f"{name}({record.pid})"
    if not record.namespaces_readable:
        label += UNREADABLE_MARKER
    if changed:
        label += f" [{', '.join(changed)}]"
    return label



def _is_kept(keep: dict[int, bool] | None, index: int) -> bool:
    return keep is None or keep.get(index, False)


def kept_visits(graph: ProcessGraph, keep: dict[int, bool] | None) -> Iterator[Visit]:
    """Pre-order visits of the kept tree, or nothing when the root is pruned."""
    root = graph.root()
    if root is None or not _is_kept(keep, root):
        return iter(())
    return graph.walk(root, include=lambda index: _is_kept(keep, index))


def visit_diff(graph: ProcessGraph, visit: Visit) -> list[str]:
    parent_ns = None if visit.parent is None else graph.records[visit.parent].namespaces
    return namespace_diff(graph.records[visit.index].namespaces, parent_ns)


def render_lines(graph: ProcessGraph, keep: dict[int, bool] | None = None) -> list[str]:
    """
    Render the tree rooted at pid 1 as a list of lines.

    ``keep`` comes from ``mark_keep``; None shows every node. Returns no lines
    when there is no root or the root itself was pruned.
    """
    lines = []
    # prefixes[d] is the indentation in front of a node at depth d
    prefixes = [""]
    for visit in kept_visits(graph, keep):
        del prefixes[visit.depth + 1:]
        prefix = prefixes[visit.depth]
        connector = LAST_BRANCH if visit.is_last else MID_BRANCH
        record = graph.records[visit.index]
        lines.append(prefix + connector + format_label(record, visit_diff(graph, visit)))
        prefixes.append(prefix + (LAST_INDENT if visit.is_last else MID_INDENT))
    return lines


def render(graph: ProcessGraph, output: TextIO, keep: dict[int, bool] | None = None) -> None:
    """Write the rendered tree to ``output``, one node per line."""
    for line in render_lines(graph, keep):
        output.write(line + "\n")


def render_text(graph: ProcessGraph, keep: dict[int, bool] | None = None) -> str:
    return "".join(line + "\n" for line in render_lines(graph, keep))


def render_json(
    graph: ProcessGraph,
    keep: dict[int, bool] | None = None,
    filters: list[str] | None = None,
) -> str:
    """Render the pruned tree as a JSON document."""
    tree = None
    shown = 0
    open_nodes: list[dict] = []
    for visit in kept_visits(graph, keep):
        node = _node_to_dict(graph.records[visit.index], visit_diff(graph, visit))
        del open_nodes[visit.depth:]
        if open_nodes:
            open_nodes[-1]["children"].append(node)
        else:
            tree = node
        open_nodes.append(node)
        shown += 1

    output = {
        "generated_at": datetime.now(timezone.utc).isoformat(timespec="seconds"),
        "filters": filters or [],
        "total_records": len(graph),
        "shown_records": shown,
        "tree": tree,
    }
    return json.dumps(output, indent=2)


def _node_to_dict(record: ProcessRecord, changed: list[str]) -> dict:
    """Convert one node to a JSON-serializable dictionary with no children yet."""
    return {
        "pid": record.pid,
        "command": record.command,
        "thread": record.is_thread,
        "namespaces_readable": record.namespaces_readable,
        "namespaces": changed,
        "children": [],
    }
