"""Tests for namespace filters and keep-propagation."""

import pytest

from nstree.errors import FilterSpecError
from nstree.filters import FilterSpec, is_relevant, mark_keep
from nstree.graph import ProcessGraph
from nstree.models import NamespaceSet


def kept_pids(graph: ProcessGraph, keep: dict[int, bool]) -> set[int]:
    return {graph.records[i].pid for i, flag in keep.items() if flag}


class TestFilterSpec:
    """Tests for FilterSpec parsing and matching."""

    def test_empty_spec_is_inactive(self):
        """Test no filters means no pruning."""
        spec = FilterSpec.parse([])
        assert not spec.active
        assert spec.matches(set())

    def test_parse_comma_separated_and_repeated(self):
        """Test comma lists and repeated options are merged."""
        spec = FilterSpec.parse(["net,mnt", " PID "])
        assert spec.types == frozenset({"net", "mnt", "pid"})
        assert not spec.wildcard

    @pytest.mark.parametrize("value", ["all", "*", "ALL"])
    def test_parse_wildcard(self, value):
        """Test the wildcard spellings."""
        spec = FilterSpec.parse([value])
        assert spec.wildcard
        assert spec.active

    def test_parse_unknown_type(self):
        """Test unknown names are rejected."""
        with pytest.raises(FilterSpecError, match="bogus"):
            FilterSpec.parse(["net,bogus"])

    def test_filter_error_is_value_error(self):
        """Test FilterSpecError can be handled as a ValueError."""
        with pytest.raises(ValueError):
            FilterSpec.parse(["nope"])

    def test_matches(self):
        """Test matching against changed namespace types."""
        spec = FilterSpec(types=frozenset({"net"}))
        assert spec.matches({"net", "mnt"})
        assert not spec.matches({"mnt"})
        assert not spec.matches(set())

    def test_wildcard_needs_some_change(self):
        """Test the wildcard matches any change but not no change."""
        spec = FilterSpec(wildcard=True)
        assert spec.matches({"uts"})
        assert not spec.matches(set())

    def test_describe(self):
        """Test describe lists the wildcard first, then sorted types."""
        spec = FilterSpec(types=frozenset({"net", "ipc"}), wildcard=True)
        assert spec.describe() == ["all", "ipc", "net"]


class TestIsRelevant:
    """Tests for per-node relevance."""

    def test_root_relevant_by_presence(self):
        """Test a root is relevant for any type it has."""
        namespaces = NamespaceSet.from_identifiers(["net:[1]"])
        assert is_relevant(namespaces, None, FilterSpec(types=frozenset({"net"})))
        assert not is_relevant(namespaces, None, FilterSpec(types=frozenset({"mnt"})))

    def test_only_filtered_types_count(self):
        """Test a change of an unfiltered type is not relevant."""
        parent = NamespaceSet.from_identifiers(["net:[1]", "mnt:[1]"])
        node = NamespaceSet.from_identifiers(["net:[1]", "mnt:[2]"])
        assert not is_relevant(node, parent, FilterSpec(types=frozenset({"net"})))
        assert is_relevant(node, parent, FilterSpec(types=frozenset({"mnt"})))
        assert is_relevant(node, parent, FilterSpec(wildcard=True))


class TestMarkKeep:
    """Tests for keep-propagation."""

    def test_no_filter_keeps_everything(self, scenario_records):
        """Test no filter keeps every reachable node."""
        graph = ProcessGraph.build(scenario_records)
        keep = mark_keep(graph, FilterSpec())
        assert kept_pids(graph, keep) == {1, 2, 3}
        assert all(keep.values())

    def test_ancestors_of_relevant_node_kept(self, scenario_records):
        """Test pid 1 and pid 2 survive because pid 3 changes net."""
        graph = ProcessGraph.build(scenario_records)
        keep = mark_keep(graph, FilterSpec(types=frozenset({"net"})))
        assert kept_pids(graph, keep) == {1, 2, 3}

    def test_irrelevant_branch_pruned(self, scenario_records):
        """Test a filter no node satisfies prunes the whole tree."""
        graph = ProcessGraph.build(scenario_records[:2])
        keep = mark_keep(graph, FilterSpec(types=frozenset({"ipc"})))
        assert kept_pids(graph, keep) == set()

    def test_root_kept_on_presence(self, scenario_records):
        """Test the root is relevant for a type it merely has."""
        graph = ProcessGraph.build(scenario_records[:2])
        keep = mark_keep(graph, FilterSpec(types=frozenset({"net"})))
        assert kept_pids(graph, keep) == {1}

    def test_sibling_branches_pruned_independently(self, make_record):
        """Test only the branch holding a relevant node survives."""
        records = [
            make_record(1, 0, ["net:[1]", "mnt:[1]"]),
            make_record(2, 1, ["net:[1]", "mnt:[1]"]),
            make_record(3, 2, ["net:[1]", "mnt:[1]"]),
            make_record(4, 1, ["net:[1]", "mnt:[1]"]),
            make_record(5, 4, ["net:[1]", "mnt:[7]"]),
            make_record(6, 5, ["net:[1]", "mnt:[7]"]),
        ]
        graph = ProcessGraph.build(records)
        keep = mark_keep(graph, FilterSpec(types=frozenset({"mnt"})))
        assert kept_pids(graph, keep) == {1, 4, 5}

    def test_diff_against_direct_parent_only(self, make_record):
        """Test a grandchild matching its parent is not relevant."""
        records = [
            make_record(1, 0, ["net:[1]"]),
            make_record(2, 1, ["net:[2]"]),
            make_record(3, 2, ["net:[2]"]),
        ]
        graph = ProcessGraph.build(records)
        keep = mark_keep(graph, FilterSpec(wildcard=True))
        assert keep[2] is False
        assert kept_pids(graph, keep) == {1, 2}

    def test_wildcard_is_superset_of_single_type(self, make_record):
        """Test relaxing to the wildcard never drops a kept node."""
        records = [
            make_record(1, 0, ["net:[1]", "mnt:[1]", "uts:[1]"]),
            make_record(2, 1, ["net:[1]", "mnt:[2]", "uts:[1]"]),
            make_record(3, 1, ["net:[3]", "mnt:[1]", "uts:[1]"]),
            make_record(4, 3, ["net:[3]", "mnt:[1]", "uts:[4]"]),
            make_record(5, 1, ["net:[1]", "mnt:[1]", "uts:[1]"]),
        ]
        graph = ProcessGraph.build(records)
        wildcard = kept_pids(graph, mark_keep(graph, FilterSpec(wildcard=True)))
        for ns_type in ("net", "mnt", "uts", "ipc"):
            single = kept_pids(graph, mark_keep(graph, FilterSpec(types=frozenset({ns_type}))))
            assert single <= wildcard

    def test_kept_nodes_connected_to_root(self, make_record):
        """Test every kept node's parent is kept as well."""
        records = [
            make_record(1, 0, ["net:[1]"]),
            make_record(2, 1, ["net:[1]"]),
            make_record(3, 2, ["net:[1]"]),
            make_record(4, 3, ["net:[9]"]),
            make_record(5, 1, ["net:[1]"]),
        ]
        graph = ProcessGraph.build(records)
        keep = mark_keep(graph, FilterSpec(types=frozenset({"net"})))
        by_pid = {graph.records[i].pid: flag for i, flag in keep.items()}
        for index, flag in keep.items():
            record = graph.records[index]
            if flag and record.pid != 1:
                assert by_pid[record.parent_pid]

    def test_no_root_gives_empty_map(self, make_record):
        """Test a snapshot without pid 1 yields no flags."""
        graph = ProcessGraph.build([make_record(2, 1, ["net:[1]"])])
        assert mark_keep(graph, FilterSpec(wildcard=True)) == {}

    def test_unreachable_records_not_flagged(self, make_record):
        """Test orphans never receive a keep flag."""
        records = [make_record(1, 0), make_record(50, 40)]
        graph = ProcessGraph.build(records)
        assert set(mark_keep(graph, FilterSpec())) == {0}

    def test_cycle_does_not_recurse_forever(self, make_record):
        """Test a parent loop below the root terminates."""
        records = [make_record(1, 0), make_record(2, 3), make_record(3, 2), make_record(2, 1)]
        graph = ProcessGraph.build(records)
        keep = mark_keep(graph, FilterSpec())
        assert keep[0] is True

    def test_duplicate_pid_parents_keep_shared_child(self, make_record):
        """Test a child relevant under only one of two same-pid parents stays kept."""
        records = [
            make_record(1, 0, ["net:[1]"]),
            make_record(5, 1, ["net:[1]"]),
            make_record(5, 1, ["net:[9]"]),
            make_record(6, 5, ["net:[9]"]),
        ]
        graph = ProcessGraph.build(records)
        keep = mark_keep(graph, FilterSpec(types=frozenset({"net"})))
        assert keep == {0: True, 1: True, 2: True, 3: True}

    def test_deep_chain(self, make_record):
        """Test a chain deeper than the recursion limit is marked bottom-up."""
        depth = 5000
        records = [make_record(1, 0, ["net:[1]"])]
        records += [make_record(pid, pid - 1, ["net:[1]"]) for pid in range(2, depth)]
        records.append(make_record(depth, depth - 1, ["net:[2]"]))
        graph = ProcessGraph.build(records)
        keep = mark_keep(graph, FilterSpec(types=frozenset({"net"})))

        assert len(keep) == depth
        assert all(keep.values())
        assert mark_keep(graph, FilterSpec(types=frozenset({"mnt"})))[0] is True
