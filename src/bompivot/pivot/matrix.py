"""
Pivot Matrix Builder: aggregate measures for every row x column combination.

The matrix is sparse and row-keyed: ``rows[row_key][f"{column_key}|{measure}"]``.
Cells whose filtered record set is empty are not stored and read as 0.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Iterator

import pandas as pd

from bompivot.pivot.axis import AxisCombination, KEY_SEPARATOR
from bompivot.pivot.filters import FactFilter, FactRecords, as_frame

logger = logging.getLogger(__name__)

TOTAL_ROW_KEY = "__TOTAL__"
DEFAULT_COLUMN_KEY = "__DEFAULT__"


def resolve_rows(row_combinations: Optional[List[AxisCombination]]) -> List[AxisCombination]:
    """Row combinations, or the single grand-total row for an empty axis."""
    return list(row_combinations or [AxisCombination.identity(TOTAL_ROW_KEY, "Total")])


def resolve_columns(column_combinations: Optional[List[AxisCombination]]) -> List[AxisCombination]:
    """Column combinations, or the single default column for an empty axis."""
    return list(column_combinations or [AxisCombination.identity(DEFAULT_COLUMN_KEY, "Value")])


@dataclass
class PivotCell:
    """One aggregated value."""
    row_key: str
    column_key: str
    measure: str
    value: float


@dataclass
class PivotMatrix:
    """
    Sparse row -> {column key|measure -> value} map.

    Attributes:
        rows: Stored cells, keyed by row key then cell key
        row_keys: Row keys in axis order (including rows without cells)
        column_keys: Column keys in axis order
        measures: Measures in display order
    """
    rows: Dict[str, Dict[str, float]] = field(default_factory=dict)
    row_keys: List[str] = field(default_factory=list)
    column_keys: List[str] = field(default_factory=list)
    measures: List[str] = field(default_factory=list)

    @staticmethod
    def cell_key(column_key: str, measure: str) -> str:
        return f"{column_key}{KEY_SEPARATOR}{measure}"

    def set(self, row_key: str, column_key: str, measure: str, value: float):
        self.rows.setdefault(row_key, {})[self.cell_key(column_key, measure)] = value

    def get(self, row_key: str, column_key: str, measure: str,
            default: float = 0.0) -> float:
        return self.rows.get(row_key, {}).get(self.cell_key(column_key, measure), default)

    def cells(self) -> Iterator[PivotCell]:
        """Stored cells in axis order."""
        for row_key in self.row_keys:
            row = self.rows.get(row_key)
            if not row:
                continue
            for column_key in self.column_keys:
                for measure in self.measures:
                    key = self.cell_key(column_key, measure)
                    if key in row:
                        yield PivotCell(row_key, column_key, measure, row[key])

    @property
    def cell_count(self) -> int:
        return sum(len(r) for r in self.rows.values())

    @property
    def is_empty(self) -> bool:
        return self.cell_count == 0

    def to_dataframe(self) -> pd.DataFrame:
        """Dense export: one row per row key, (column key, measure) columns."""
        columns = pd.MultiIndex.from_product(
            [self.column_keys, self.measures], names=["column", "measure"]
        )
        data = [
            [self.get(r, c, m) for c in self.column_keys for m in self.measures]
            for r in self.row_keys
        ]
        return pd.DataFrame(data, index=pd.Index(self.row_keys, name="row"), columns=columns)


class PivotMatrixBuilder:
    """Compute a PivotMatrix from facts and axis combinations."""

    def __init__(self, fact_filter: FactFilter = None):
        self.fact_filter = fact_filter or FactFilter()

    def build(self, facts: FactRecords,
              row_combinations: Optional[List[AxisCombination]],
              column_combinations: Optional[List[AxisCombination]],
              measures: List[str]) -> PivotMatrix:
        """
        Aggregate every measure for every (row, column) pair.

        An axis without combinations is treated as one identity combination,
        so its values equal the aggregate over the other axis alone.
        """
        df = as_frame(facts)
        rows = resolve_rows(row_combinations)
        columns = resolve_columns(column_combinations)
        self.fact_filter.reset_warnings()
        measures = list(dict.fromkeys(measures or []))
        if not measures:
            logger.warning("No measures selected, pivot matrix will be empty")

        matrix = PivotMatrix(
            row_keys=[r.key for r in rows],
            column_keys=[c.key for c in columns],
            measures=measures,
        )
        if not measures or df.empty:
            return matrix

        for row in rows:
            row_df = self.fact_filter.filter_by_combination(df, row)
            if row_df.empty:
                continue
            for column in columns:
                cell_df = self.fact_filter.filter_by_combination(row_df, column)
                if cell_df.empty:
                    continue
                for measure in measures:
                    matrix.set(row.key, column.key, measure,
                               self.fact_filter.aggregate(cell_df, measure))

        logger.info(
            f"Built pivot matrix: {len(rows)} rows x {len(columns)} columns x "
            f"{len(measures)} measures, {matrix.cell_count} cells"
        )
        return matrix
