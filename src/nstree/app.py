"""nstree - Interactive Textual tree browser."""

from collections.abc import Callable

from rich.text import Text
from textual.app import App, ComposeResult
from textual.widgets import Footer, Tree
from textual.widgets.tree import TreeNode

from nstree.collector import TreeSnapshot
from nstree.errors import NstreeError
from nstree.filters import FilterSpec
from nstree.models import ProcessRecord
from nstree.render import format_label, kept_visits, visit_diff

EMPTY_LABEL = "no matching processes"


class ProcessTree(Tree[ProcessRecord]):
    """Tree widget showing one snapshot, rooted at pid 1."""

    DEFAULT_CSS = """
    ProcessTree {
        height: 1fr;
        border: solid $primary;
    }
    """

    def __init__(self, *args, **kwargs) -> None:
        """Initialize ProcessTree."""
        super().__init__(EMPTY_LABEL, *args, **kwargs)
        self._process_count: int = 0

    @property
    def process_count(self) -> int:
        """Number of processes currently in the tree."""
        return self._process_count

    def show_snapshot(self, snapshot: TreeSnapshot) -> int:
        """Replace the tree contents with a snapshot and return the node count."""
        graph = snapshot.graph
        count = 0
        open_nodes: list[TreeNode[ProcessRecord]] = []
        for visit in kept_visits(graph, snapshot.keep):
            record = graph.records[visit.index]
            # Text labels keep namespace brackets from being read as markup
            label = Text(format_label(record, visit_diff(graph, visit)))
            del open_nodes[visit.depth:]
            if not open_nodes:
                self.reset(label, record)
                node = self.root
            elif visit.children:
                node = open_nodes[-1].add(label, data=record)
            else:
                node = open_nodes[-1].add_leaf(label, data=record)
            open_nodes.append(node)
            count += 1

        if count == 0:
            self.reset(EMPTY_LABEL)
        else:
            self.root.expand()
        self._process_count = count
        return count


class NamespaceTreeApp(App):
    """Main nstree application."""

    TITLE = "nstree"
    SUB_TITLE = "Process namespace tree"

    BINDINGS = [
        ("q", "quit", "Quit"),
        ("e", "expand_all", "Expand all"),
        ("c", "collapse_all", "Collapse all"),
        ("r", "rescan", "Rescan"),
    ]

    def __init__(
        self,
        source: Callable[[], list[ProcessRecord]],
        filters: FilterSpec | None = None,
    ) -> None:
        """
        Initialize the NamespaceTreeApp.

        Args:
            source: Returns a fresh list of process records on every scan.
            filters: Namespace filter applied to every scan.
        """
        super().__init__()
        self._source = source
        self._filter_spec = filters or FilterSpec()
        self._snapshot: TreeSnapshot | None = None

    @property
    def snapshot(self) -> TreeSnapshot | None:
        return self._snapshot

    def compose(self) -> ComposeResult:
        """Compose the application layout."""
        yield ProcessTree(id="process-tree")
        yield Footer()

    def on_mount(self) -> None:
        """Take the first snapshot when the app is mounted."""
        self.action_rescan()

    def action_rescan(self) -> None:
        """Collect a new snapshot and redraw the tree."""
        try:
            snapshot = TreeSnapshot.from_records(self._source(), self._filter_spec)
        except NstreeError as exc:
            self.notify(str(exc), severity="error")
            return

        self._snapshot = snapshot
        shown = self.query_one(ProcessTree).show_snapshot(snapshot)
        self.sub_title = f"{shown} of {len(snapshot.graph)} processes"

    def action_expand_all(self) -> None:
        self.query_one(ProcessTree).root.expand_all()

    def action_collapse_all(self) -> None:
        self.query_one(ProcessTree).root.collapse_all()
