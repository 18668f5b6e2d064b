"""
Fact Filter & Aggregator.

Filtering a fact table by a hierarchy node follows three rules, in order:
1. a root (designated root or root sentinel) keeps every record;
2. a leaf with a fact key keeps records whose fact field equals the key
   (set membership for multi-valued keys);
3. any other node keeps records whose fact field is in the node's
   descendant fact keys.

A dimension without a fact field mapping, or a fact table without the mapped
column, leaves the records untouched and logs a warning.
"""

import logging
from functools import reduce
from typing import Dict, List, Optional, Any, Iterable, Union

import numpy as np
import pandas as pd

from bompivot.hierarchy.schema import HierarchyNode, ROOT_SENTINELS
from bompivot.pivot.axis import AxisCombination

logger = logging.getLogger(__name__)

# Dimension name -> fact table column
DIMENSION_FACT_FIELDS = {
    "le": "LE",
    "cost_element": "COST_ELEMENT",
    "gmid_display": "COMPONENT_GMID",
    "smartcode": "ROOT_SMARTCODE",
    "item_cost_type": "ITEM_COST_TYPE",
    "material_type": "COMPONENT_MATERIAL_TYPE",
    "year": "ZYEAR",
    "mc": "MC",
}

FactRecords = Union[pd.DataFrame, Iterable[Dict[str, Any]], None]


def as_frame(records: FactRecords) -> pd.DataFrame:
    """Normalize fact records to a DataFrame (DataFrames pass through)."""
    if isinstance(records, pd.DataFrame):
        return records
    if records is None:
        return pd.DataFrame()
    return pd.DataFrame.from_records(list(records))


def is_root_node(node: HierarchyNode) -> bool:
    return node.is_root or node.id in ROOT_SENTINELS


class FactFilter:
    """
    Filters fact records by hierarchy nodes and sums measures.

    Args:
        fact_fields: Dimension -> fact column mapping. Defaults to
            DIMENSION_FACT_FIELDS.
    """

    def __init__(self, fact_fields: Dict[str, str] = None):
        self.fact_fields = dict(DIMENSION_FACT_FIELDS if fact_fields is None else fact_fields)
        self._warned = set()

    def fact_field(self, dimension: str) -> Optional[str]:
        return self.fact_fields.get(dimension)

    def reset_warnings(self):
        """Start a new warning scope (one per pivot build)."""
        self._warned.clear()

    def _warn_once(self, key: Any, message: str):
        if key in self._warned:
            logger.debug(message)
            return
        self._warned.add(key)
        logger.warning(message)

    def filter_by_node(self, records: FactRecords,
                       node: Optional[HierarchyNode]) -> pd.DataFrame:
        """Keep the fact records that fall under ``node``."""
        df = as_frame(records)
        if node is None or is_root_node(node):
            return df

        field = self.fact_field(node.dimension)
        if field is None:
            self._warn_once(
                ("dimension", node.dimension),
                f"No fact field mapped for dimension {node.dimension!r}, not filtering",
            )
            return df
        if field not in df.columns:
            if not df.empty:
                self._warn_once(
                    ("column", field),
                    f"Fact records have no {field} column, not filtering by {node.dimension}",
                )
            return df

        column = df[field]
        if node.is_leaf and node.fact_id is not None:
            if isinstance(node.fact_id, (list, tuple, set, frozenset)):
                mask = column.isin(list(node.fact_ids()))
            else:
                mask = column.eq(node.fact_id)
        else:
            mask = column.isin(list(node.descendant_fact_ids))
        return df[mask]

    def filter_by_combination(self, records: FactRecords,
                              nodes: Union[AxisCombination, Iterable[HierarchyNode]]
                              ) -> pd.DataFrame:
        """Intersect the filters of every node of a combination."""
        if isinstance(nodes, AxisCombination):
            nodes = nodes.nodes
        return reduce(self.filter_by_node, nodes, as_frame(records))

    @staticmethod
    def aggregate(records: FactRecords, measure: str) -> float:
        """
        Sum a measure column.

        Values are coerced to numbers; NaN, infinities and non-numeric
        values count as 0. An empty input sums to 0.
        """
        df = as_frame(records)
        if df.empty or measure not in df.columns:
            return 0.0
        values = pd.to_numeric(df[measure], errors="coerce").to_numpy(dtype=float, na_value=np.nan)
        return float(values[np.isfinite(values)].sum())

    def aggregate_many(self, records: FactRecords, measures: List[str]) -> Dict[str, float]:
        df = as_frame(records)
        return {m: self.aggregate(df, m) for m in measures}


def filter_by_node(records: FactRecords, node: Optional[HierarchyNode]) -> pd.DataFrame:
    return FactFilter().filter_by_node(records, node)


def filter_by_combination(records: FactRecords,
                          nodes: Union[AxisCombination, Iterable[HierarchyNode]]) -> pd.DataFrame:
    return FactFilter().filter_by_combination(records, nodes)


def aggregate(records: FactRecords, measure: str) -> float:
    return FactFilter.aggregate(records, measure)
