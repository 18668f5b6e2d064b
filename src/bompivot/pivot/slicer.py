"""
Exclusion filters applied to the fact table before the pivot is built.

Each dimension holds a set of excluded node ids. Excluding a node removes the
fact records of its own key and of every key beneath it. Records without a
value in the fact field are kept.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, Set, Any, Iterable, Optional

import pandas as pd

from bompivot.hierarchy.schema import Hierarchy
from bompivot.pivot.filters import FactFilter, FactRecords, as_frame

logger = logging.getLogger(__name__)


@dataclass
class FilterSelection:
    """
    Excluded hierarchy nodes (or raw values) per dimension.

    Attributes:
        excluded: Dimension name -> excluded node ids. For a dimension
            without a hierarchy, the entries are raw fact values.
    """
    excluded: Dict[str, Set[Any]] = field(default_factory=dict)

    def exclude(self, dimension: str, node_ids: Iterable[Any]):
        self.excluded.setdefault(dimension, set()).update(node_ids)

    def include(self, dimension: str, node_ids: Iterable[Any]):
        current = self.excluded.get(dimension)
        if current is None:
            return
        current.difference_update(node_ids)
        if not current:
            del self.excluded[dimension]

    def clear(self, dimension: Optional[str] = None):
        if dimension is None:
            self.excluded.clear()
        else:
            self.excluded.pop(dimension, None)

    @property
    def is_empty(self) -> bool:
        return not any(self.excluded.values())

    def excluded_fact_ids(self, dimension: str,
                          hierarchy: Optional[Hierarchy]) -> Set[Any]:
        """Fact keys removed by the exclusions of one dimension."""
        selection = self.excluded.get(dimension, set())
        if hierarchy is None:
            return set(selection)

        fact_ids = set()
        for node_id in selection:
            node = hierarchy.get_node(node_id)
            if node is None:
                logger.warning(f"Excluded node {node_id} not found in {dimension}")
                continue
            fact_ids.update(node.fact_ids())
            fact_ids.update(node.descendant_fact_ids)
        return fact_ids

    def apply(self, records: FactRecords, hierarchies: Dict[str, Hierarchy],
              fact_filter: FactFilter = None) -> pd.DataFrame:
        """
        Remove the excluded records.

        Args:
            records: Fact records
            hierarchies: Dimension name -> Hierarchy
            fact_filter: Provides the dimension -> fact field mapping

        Returns:
            Filtered DataFrame (the input itself when nothing is excluded)
        """
        fact_filter = fact_filter or FactFilter()
        df = as_frame(records)
        before = len(df)

        for dimension, selection in self.excluded.items():
            if not selection:
                continue
            fact_field = fact_filter.fact_field(dimension)
            if fact_field is None:
                logger.warning(f"No fact field mapped for dimension {dimension!r}, ignoring exclusions")
                continue
            if fact_field not in df.columns:
                logger.warning(f"Fact records have no {fact_field} column, ignoring {dimension} exclusions")
                continue
            excluded = self.excluded_fact_ids(dimension, hierarchies.get(dimension))
            if excluded:
                df = df[~df[fact_field].isin(list(excluded))]

        if len(df) != before:
            logger.info(f"Exclusion filters: {before} -> {len(df)} records")
        return df

    def to_dict(self) -> Dict[str, Any]:
        return {dim: sorted(map(str, ids)) for dim, ids in self.excluded.items()}
