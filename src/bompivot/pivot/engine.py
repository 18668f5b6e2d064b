"""
Pivot Engine: orchestrates hierarchy construction, expansion state,
combination generation and matrix aggregation.

Typical use:
    engine = PivotEngine()
    engine.load({"le": le_rows, "cost_element": ce_rows}, fact_rows)
    engine.set_expanded("le", Zone.ROW, engine.get_hierarchy("le").root_id, True)
    result = engine.build(PivotLayout(row_fields=["le"], measures=["COST_UNIT"]))

Every build is a full, synchronous recomputation; nothing is cached between
builds except the hierarchies (rebuilt on load) and the expansion state.
"""

import logging
from dataclasses import dataclass
from typing import Dict, List, Optional, Any

import pandas as pd

from bompivot.dimensions import BOM_DIMENSIONS
from bompivot.hierarchy.schema import Hierarchy, HierarchyNode, HierarchyConfig
from bompivot.hierarchy.builder import (
    build_hierarchy, build_flat_hierarchy, as_records, Records,
)
from bompivot.hierarchy.index import index_descendants
from bompivot.pivot.axis import AxisCombination, AxisCombinationGenerator, CombinationPolicy
from bompivot.pivot.expansion import ExpansionStateStore, Zone, ZoneLike
from bompivot.pivot.filters import FactFilter, FactRecords, as_frame
from bompivot.pivot.layout import PivotLayout
from bompivot.pivot.matrix import PivotMatrix, PivotMatrixBuilder, resolve_rows, resolve_columns
from bompivot.pivot.slicer import FilterSelection

logger = logging.getLogger(__name__)


@dataclass
class PivotResult:
    """
    Output of one pivot build, handed to the renderer.

    Attributes:
        layout: Layout the result was built for
        row_combinations: Visible row combinations in display order
        column_combinations: Visible column combinations in display order
        matrix: Aggregated values
        fact_count: Number of fact records after exclusion filters
    """
    layout: PivotLayout
    row_combinations: List[AxisCombination]
    column_combinations: List[AxisCombination]
    matrix: PivotMatrix
    fact_count: int

    def get_summary(self) -> Dict[str, Any]:
        return {
            "layout": self.layout.to_dict(),
            "rows": len(self.row_combinations),
            "columns": len(self.column_combinations),
            "cells": self.matrix.cell_count,
            "fact_count": self.fact_count,
        }


class PivotEngine:
    """
    In-memory pivot engine over BOM dimension and fact tables.

    Args:
        dimension_configs: Dimension name -> HierarchyConfig (BOM defaults)
        policy: Combination ceilings for multi-dimension axes
        fact_fields: Dimension -> fact column mapping override
    """

    def __init__(self,
                 dimension_configs: Dict[str, HierarchyConfig] = None,
                 policy: CombinationPolicy = None,
                 fact_fields: Dict[str, str] = None):
        self.dimension_configs = dict(dimension_configs or BOM_DIMENSIONS)
        self.fact_filter = FactFilter(fact_fields)
        self.expansion = ExpansionStateStore()
        self.filters = FilterSelection()
        self.hierarchies: Dict[str, Hierarchy] = {}
        self.facts = pd.DataFrame()
        self.generator = AxisCombinationGenerator(self.hierarchies, self.expansion, policy)
        self.matrix_builder = PivotMatrixBuilder(self.fact_filter)
        self._loaded = False

    def load(self, dimensions: Dict[str, Records], facts: FactRecords):
        """
        Load dimension and fact tables, rebuilding every hierarchy.

        A configured dimension without a table gets a flat hierarchy built
        from the distinct values of its fact field, when that field exists.
        Expansion state and exclusion filters are reset.
        """
        dimensions = dimensions or {}
        self.facts = as_frame(facts)
        self.hierarchies.clear()
        self.expansion.clear()
        self.filters.clear()

        for name in dimensions:
            if name not in self.dimension_configs:
                logger.warning(f"Ignoring table for unconfigured dimension {name}")

        for name, config in self.dimension_configs.items():
            rows = as_records(dimensions.get(name))
            if rows:
                hierarchy = build_hierarchy(rows, config)
            else:
                hierarchy = self._hierarchy_from_facts(config)
                if hierarchy is None:
                    logger.debug(f"No data for dimension {name}")
                    continue
            self.hierarchies[name] = index_descendants(hierarchy)

        self._loaded = True
        logger.info(
            f"Loaded {len(self.facts)} fact records, "
            f"hierarchies: {sorted(self.hierarchies.keys())}"
        )

    def _hierarchy_from_facts(self, config: HierarchyConfig) -> Optional[Hierarchy]:
        fact_field = self.fact_filter.fact_field(config.name)
        if not fact_field or fact_field not in self.facts.columns:
            return None
        columns = [fact_field]
        if config.label_field and config.label_field in self.facts.columns:
            columns.append(config.label_field)
        distinct = self.facts[columns].drop_duplicates(subset=[fact_field])
        logger.info(f"Building {config.name} from {len(distinct)} distinct {fact_field} values")
        return build_flat_hierarchy(distinct, config, code_field=fact_field)

    @property
    def is_loaded(self) -> bool:
        return self._loaded

    def get_hierarchy(self, dimension: str) -> Optional[Hierarchy]:
        return self.hierarchies.get(dimension)

    def get_node(self, dimension: str, node_id: str) -> Optional[HierarchyNode]:
        """Look a node up by (dimension, node id)."""
        hierarchy = self.hierarchies.get(dimension)
        if hierarchy is None:
            logger.warning(f"Hierarchy not found: {dimension}")
            return None
        node = hierarchy.get_node(node_id)
        if node is None:
            logger.warning(f"Node not found: {node_id} in hierarchy {dimension}")
        return node

    def set_expanded(self, dimension: str, zone: ZoneLike, node_id: str,
                     expanded: bool = True) -> bool:
        """
        Record a user expand/collapse. Returns False for an unknown node.
        """
        node = self.get_node(dimension, node_id)
        if node is None:
            return False
        self.expansion.set_expanded(dimension, zone, node_id, expanded)
        node.expanded = expanded
        return True

    def toggle_expansion(self, dimension: str, zone: ZoneLike, node_id: str) -> Optional[bool]:
        """Flip a node; returns the new state, or None for an unknown node."""
        node = self.get_node(dimension, node_id)
        if node is None:
            return None
        node.expanded = self.expansion.toggle(dimension, zone, node_id)
        return node.expanded

    def expand_all(self, dimension: str, zone: ZoneLike):
        hierarchy = self.hierarchies.get(dimension)
        if hierarchy is None:
            logger.warning(f"Hierarchy not found: {dimension}")
            return
        internal = [n for n in hierarchy.nodes.values() if n.has_children]
        self.expansion.expand_all(dimension, zone, [n.id for n in internal])
        for node in internal:
            node.expanded = True

    def collapse_all(self, dimension: str, zone: ZoneLike):
        self.expansion.collapse_all(dimension, zone)
        hierarchy = self.hierarchies.get(dimension)
        if hierarchy is not None:
            for node in hierarchy.nodes.values():
                node.expanded = False

    def visible_nodes(self, dimension: str, zone: ZoneLike) -> List[HierarchyNode]:
        return self.generator.visible_nodes(dimension, zone)

    def combinations(self, fields: List[str], zone: ZoneLike) -> List[AxisCombination]:
        return self.generator.combine(fields, zone)

    def filtered_facts(self) -> pd.DataFrame:
        """Fact records left after exclusion filters."""
        return self.filters.apply(self.facts, self.hierarchies, self.fact_filter)

    def grand_total(self, measure: str) -> float:
        return self.fact_filter.aggregate(self.filtered_facts(), measure)

    def build(self, layout: PivotLayout) -> PivotResult:
        """Rebuild the full pivot for a layout."""
        if not self._loaded:
            logger.warning("Building pivot before any data was loaded")

        facts = self.filtered_facts()
        # An axis without usable dimensions carries one identity combination
        rows = resolve_rows(self.generator.combine(layout.row_fields, Zone.ROW))
        columns = resolve_columns(self.generator.combine(layout.column_fields, Zone.COLUMN))
        matrix = self.matrix_builder.build(facts, rows, columns, layout.measures)

        logger.info(f"Pivot {layout.layout_id}: {layout.describe()}")
        return PivotResult(
            layout=layout,
            row_combinations=rows,
            column_combinations=columns,
            matrix=matrix,
            fact_count=len(facts),
        )
