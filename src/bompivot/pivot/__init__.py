"""
Pivot module: expansion state, axis combinations, fact filtering and the
pivot matrix.
"""

from bompivot.pivot.expansion import ExpansionStateStore, Zone
from bompivot.pivot.axis import (
    AxisCombination, AxisCombinationGenerator, CombinationPolicy, KEY_SEPARATOR,
)
from bompivot.pivot.filters import (
    FactFilter, DIMENSION_FACT_FIELDS,
    filter_by_node, filter_by_combination, aggregate,
)
from bompivot.pivot.slicer import FilterSelection
from bompivot.pivot.matrix import (
    PivotMatrix, PivotCell, PivotMatrixBuilder, TOTAL_ROW_KEY, DEFAULT_COLUMN_KEY,
)
from bompivot.pivot.layout import PivotLayout
from bompivot.pivot.engine import PivotEngine, PivotResult

__all__ = [
    "ExpansionStateStore", "Zone",
    "AxisCombination", "AxisCombinationGenerator", "CombinationPolicy", "KEY_SEPARATOR",
    "FactFilter", "DIMENSION_FACT_FIELDS",
    "filter_by_node", "filter_by_combination", "aggregate",
    "FilterSelection",
    "PivotMatrix", "PivotCell", "PivotMatrixBuilder", "TOTAL_ROW_KEY", "DEFAULT_COLUMN_KEY",
    "PivotLayout",
    "PivotEngine", "PivotResult",
]
