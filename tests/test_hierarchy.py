"""
Unit tests for the hierarchy module.
"""

import random

import pytest
import pandas as pd
import sys
import os

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from bompivot.hierarchy.schema import HierarchyConfig, MASTER_ROOT_ID, EMPTY_ROOT_ID
from bompivot.hierarchy.builder import (
    build_hierarchy, build_path_hierarchy, build_flat_hierarchy, has_path_data,
)
from bompivot.hierarchy.index import index_descendants, compute_descendant_index
from bompivot.dimensions import get_dimension_config, BOM_DIMENSIONS


@pytest.fixture
def le_config():
    return HierarchyConfig(name="le", id_field="LE")


@pytest.fixture
def le_rows():
    return [
        {"LE": "FR01", "PATH": "WORLD//EUROPE//FRANCE"},
        {"LE": "DE01", "PATH": "WORLD//EUROPE//GERMANY"},
        {"LE": "US01", "PATH": "WORLD//AMERICAS//USA"},
    ]


@pytest.fixture
def le_hierarchy(le_rows, le_config):
    return index_descendants(build_hierarchy(le_rows, le_config))


class TestPathHierarchy:
    def test_single_first_segment_is_root(self, le_rows, le_config):
        h = build_hierarchy(le_rows, le_config)
        assert h.roots == ["ROOT_WORLD"]
        assert h.root.label == "WORLD"
        assert h.root.level == 0
        assert h.root.is_root

    def test_shared_prefixes_reuse_nodes(self, le_rows, le_config):
        h = build_hierarchy(le_rows, le_config)
        # WORLD, EUROPE, AMERICAS, FRANCE, GERMANY, USA
        assert len(h.nodes) == 6
        europe = h.get_node("ROOT_WORLD//EUROPE")
        assert europe.level == 1
        assert europe.children == ["ROOT_WORLD//EUROPE//FRANCE", "ROOT_WORLD//EUROPE//GERMANY"]

    def test_leaves_carry_fact_keys(self, le_rows, le_config):
        h = build_hierarchy(le_rows, le_config)
        france = h.get_node("ROOT_WORLD//EUROPE//FRANCE")
        assert france.is_leaf
        assert france.fact_id == "FR01"
        assert france.level == 2
        assert france.data["PATH"] == "WORLD//EUROPE//FRANCE"
        assert not h.get_node("ROOT_WORLD//EUROPE").is_leaf

    def test_children_sorted_case_insensitively(self, le_config):
        rows = [
            {"LE": "1", "PATH": "W//gamma"},
            {"LE": "2", "PATH": "W//Alpha"},
            {"LE": "3", "PATH": "W//beta"},
        ]
        h = build_hierarchy(rows, le_config)
        labels = [n.label for n in h.children_of(h.root_id)]
        assert labels == ["Alpha", "beta", "gamma"]

    def test_master_root_for_several_first_segments(self, le_config):
        rows = [
            {"LE": "FR01", "PATH": "EUROPE//FRANCE"},
            {"LE": "US01", "PATH": "AMERICAS//USA"},
        ]
        h = build_hierarchy(rows, le_config)
        assert h.roots == [MASTER_ROOT_ID]
        master = h.root
        assert master.label == "All Items"
        assert master.children == ["ROOT_AMERICAS", "ROOT_EUROPE"]
        assert h.get_node("ROOT_EUROPE").level == 1
        assert not h.get_node("ROOT_EUROPE").is_root
        assert h.get_node("ROOT_EUROPE//FRANCE").level == 2

    def test_master_root_label_uses_shared_first_word(self, le_config):
        rows = [
            {"LE": "1", "PATH": "Europe North//A"},
            {"LE": "2", "PATH": "Europe South//B"},
        ]
        h = build_hierarchy(rows, le_config)
        assert h.root.label == "Europe All Items"

    def test_missing_and_blank_paths_are_skipped(self, le_rows, le_config):
        rows = le_rows + [{"LE": "XX"}, {"LE": "YY", "PATH": "   "}, {"LE": "ZZ", "PATH": "////"}]
        h = build_hierarchy(rows, le_config)
        assert len(h.nodes) == 6
        assert len(h.flat_data) == 6

    def test_duplicate_leaf_key_first_wins(self, le_config):
        rows = [
            {"LE": "A1", "PATH": "W//A"},
            {"LE": "A2", "PATH": "W//A"},
        ]
        h = build_hierarchy(rows, le_config)
        assert h.get_node("ROOT_W//A").fact_id == "A1"
        assert len(h.nodes) == 2

    def test_leaf_label_from_description(self):
        config = get_dimension_config("cost_element")
        rows = [{"COST_ELEMENT": "5000", "COST_ELEMENT_DESC": "Raw material", "PATH": "COSTS//5000"}]
        h = build_hierarchy(rows, config)
        leaf = h.get_node("ROOT_COSTS//5000")
        assert leaf.label == "Raw material"
        assert leaf.fact_id == "5000"

    def test_custom_separator(self):
        config = get_dimension_config("gmid_display")
        rows = [
            {"COMPONENT_GMID": "G2", "PATH_GMID": "G0/G1/G2", "DISPLAY": "Part 2"},
            {"COMPONENT_GMID": "G3", "PATH_GMID": "G0/G1/G3"},
        ]
        h = build_hierarchy(rows, config)
        assert h.roots == ["ROOT_G0"]
        assert h.get_node("ROOT_G0/G1/G2").label == "Part 2"
        assert h.get_node("ROOT_G0/G1/G3").label == "G3"

    def test_dataframe_input(self, le_rows, le_config):
        h = build_hierarchy(pd.DataFrame(le_rows), le_config)
        assert len(h.nodes) == 6

    def test_single_segment_path_is_the_root(self, le_config):
        h = build_hierarchy([{"LE": "W", "PATH": "WORLD"}], le_config)
        assert h.roots == ["ROOT_WORLD"]
        assert h.root.fact_id == "W"

    def test_row_ending_on_interior_node(self, le_config):
        rows = [
            {"LE": "K1", "PATH": "W//A"},
            {"LE": "K2", "PATH": "W//A//B"},
        ]
        for ordered in (rows, list(reversed(rows))):
            h = index_descendants(build_hierarchy(ordered, le_config))
            a = h.get_node("ROOT_W//A")
            assert not a.is_leaf
            assert a.fact_id == "K1"
            assert a.descendant_fact_ids == {"K2"}

    def test_colliding_node_ids_stay_distinct(self, le_config):
        # "W///A" splits to W + "/A", "W/ //A" to "W/" + A; both join to "W///A"
        rows = [
            {"LE": "K1", "PATH": "X//W///A"},
            {"LE": "K2", "PATH": "X//W/ //A"},
        ]
        h = index_descendants(build_hierarchy(rows, le_config))
        assert len(h.nodes) == 5
        assert sorted(n.fact_id for n in h.leaf_nodes()) == ["K1", "K2"]
        assert h.root.descendant_fact_ids == {"K1", "K2"}
        for node in h.nodes.values():
            for child in h.children_of(node.id):
                assert h.parent_of(child.id) is node


class TestFallbacks:
    def test_empty_input_gives_single_root(self, le_config):
        h = build_hierarchy([], le_config)
        assert h.roots == [EMPTY_ROOT_ID]
        assert h.root.children == []
        assert len(h.nodes) == 1

    def test_none_input(self, le_config):
        h = build_hierarchy(None, le_config)
        assert h.root is not None

    def test_all_rows_malformed(self, le_config):
        h = build_hierarchy([{"LE": "A", "PATH": "////"}, "not a row", {"PATH": "//"}], le_config)
        assert h.root_id == EMPTY_ROOT_ID
        assert h.root.children == []

    def test_flat_mode_without_path_data(self):
        config = get_dimension_config("item_cost_type")
        rows = [
            {"ITEM_COST_TYPE": "B", "ITEM_COST_TYPE_DESC": "Bought"},
            {"ITEM_COST_TYPE": "A", "ITEM_COST_TYPE_DESC": "Assembly"},
            {"ITEM_COST_TYPE": "B", "ITEM_COST_TYPE_DESC": "Duplicate"},
            {"ITEM_COST_TYPE": None},
        ]
        h = build_hierarchy(rows, config)
        assert h.roots == ["ITEM_COST_TYPE_ROOT"]
        assert h.root.label == "All Item Cost Types"
        assert h.root.children == ["ITEM_COST_TYPE_A", "ITEM_COST_TYPE_B"]
        assert h.get_node("ITEM_COST_TYPE_B").label == "Bought"
        assert all(n.level == 1 and n.is_leaf for n in h.children_of(h.root_id))

    def test_path_config_falls_back_to_flat(self, le_config):
        assert not has_path_data([{"LE": "A"}], "PATH")
        h = build_hierarchy([{"LE": "A"}, {"LE": "B"}], le_config)
        assert h.roots == ["LE_ROOT"]
        assert [n.fact_id for n in h.children_of("LE_ROOT")] == ["A", "B"]

    def test_flat_from_other_code_field(self):
        config = get_dimension_config("year")
        facts = [{"ZYEAR": 2024}, {"ZYEAR": 2023}, {"ZYEAR": 2024}]
        h = build_flat_hierarchy(facts, config, code_field="ZYEAR")
        assert [n.fact_id for n in h.children_of(h.root_id)] == [2023, 2024]

    def test_flat_code_matching_root_suffix(self):
        config = get_dimension_config("item_cost_type")
        h = index_descendants(build_flat_hierarchy(
            [{"ITEM_COST_TYPE": "ROOT"}, {"ITEM_COST_TYPE": "X"}], config
        ))
        leaves = h.children_of(h.root_id)
        assert [n.fact_id for n in leaves] == ["ROOT", "X"]
        assert h.root_id not in [n.id for n in leaves]
        assert h.root.descendant_fact_ids == {"ROOT", "X"}

    def test_flat_codes_deduplicated_by_value(self):
        config = get_dimension_config("year")
        h = build_flat_hierarchy([{"YEAR": 1}, {"YEAR": "1"}, {"YEAR": 1}], config)
        leaves = h.children_of(h.root_id)
        assert len(leaves) == 2
        assert len({n.id for n in leaves}) == 2
        assert {type(n.fact_id) for n in leaves} == {int, str}


class TestDeterminism:
    def test_same_input_same_tree(self, le_rows, le_config):
        first = [(n.id, n.label, n.level) for n in build_hierarchy(le_rows, le_config).walk()]
        second = [(n.id, n.label, n.level) for n in build_hierarchy(le_rows, le_config).walk()]
        assert first == second

    def test_row_order_does_not_matter(self, le_config):
        rows = [{"LE": f"L{i}", "PATH": f"R{i % 2}//M{i % 3}//L{i}"} for i in range(12)]
        expected = [(n.id, n.label, n.level) for n in build_hierarchy(rows, le_config).walk()]
        shuffled = list(rows)
        random.Random(7).shuffle(shuffled)
        actual = [(n.id, n.label, n.level) for n in build_hierarchy(shuffled, le_config).walk()]
        assert actual == expected


class TestDescendantIndex:
    def test_leaf_holds_own_key(self, le_hierarchy):
        for leaf in le_hierarchy.leaf_nodes():
            assert leaf.descendant_fact_ids == {leaf.fact_id}

    def test_roll_up_covers_descendants(self, le_hierarchy):
        for node in le_hierarchy.nodes.values():
            if node.is_leaf:
                continue
            union = set()
            for child in le_hierarchy.children_of(node.id):
                union |= child.descendant_fact_ids
            assert node.descendant_fact_ids == union

    def test_root_covers_every_key(self, le_hierarchy):
        assert le_hierarchy.root.descendant_fact_ids == {"FR01", "DE01", "US01"}

    def test_index_is_idempotent(self, le_hierarchy):
        before = {k: set(v.descendant_fact_ids) for k, v in le_hierarchy.nodes.items()}
        index_descendants(le_hierarchy)
        after = {k: set(v.descendant_fact_ids) for k, v in le_hierarchy.nodes.items()}
        assert before == after

    def test_immutable_variant_leaves_nodes_untouched(self, le_rows, le_config):
        h = build_hierarchy(le_rows, le_config)
        index = compute_descendant_index(h)
        assert index["ROOT_WORLD//EUROPE"] == frozenset({"FR01", "DE01"})
        assert all(not n.descendant_fact_ids for n in h.nodes.values())

    def test_multi_valued_leaf_is_flattened(self, le_config):
        rows = [{"LE": ["A", "B"], "PATH": "W//AB"}, {"LE": "C", "PATH": "W//C"}]
        h = index_descendants(build_hierarchy(rows, le_config))
        assert h.get_node("ROOT_W//AB").descendant_fact_ids == {"A", "B"}
        assert h.root.descendant_fact_ids == {"A", "B", "C"}

    def test_empty_hierarchy(self, le_config):
        h = index_descendants(build_hierarchy([], le_config))
        assert h.root.descendant_fact_ids == set()


class TestHierarchyNavigation:
    def test_parent_and_ancestors(self, le_hierarchy):
        france = "ROOT_WORLD//EUROPE//FRANCE"
        assert le_hierarchy.parent_of(france).id == "ROOT_WORLD//EUROPE"
        assert [n.id for n in le_hierarchy.ancestors(france)] == ["ROOT_WORLD", "ROOT_WORLD//EUROPE"]
        assert le_hierarchy.path_of(france)[-1] == france
        assert le_hierarchy.parent_of("ROOT_WORLD") is None

    def test_walk_order(self, le_hierarchy):
        labels = [n.label for n in le_hierarchy.walk()]
        assert labels == ["WORLD", "AMERICAS", "USA", "EUROPE", "FRANCE", "GERMANY"]

    def test_flatten_respects_expansion(self, le_hierarchy):
        assert [r["id"] for r in le_hierarchy.flatten(expanded=set())] == ["ROOT_WORLD"]
        rows = le_hierarchy.flatten(expanded={"ROOT_WORLD"})
        assert [r["label"] for r in rows] == ["WORLD", "AMERICAS", "EUROPE"]
        assert rows[2]["path"] == ["ROOT_WORLD", "ROOT_WORLD//EUROPE"]

    def test_stats(self, le_hierarchy):
        assert le_hierarchy.stats() == {"nodes": 6, "leaves": 3, "depth": 2}


class TestDimensionRegistry:
    def test_known_dimensions(self):
        assert set(BOM_DIMENSIONS) == {
            "le", "cost_element", "gmid_display", "smartcode",
            "item_cost_type", "material_type", "year", "mc",
        }

    def test_unknown_dimension(self):
        with pytest.raises(ValueError):
            get_dimension_config("region")


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
