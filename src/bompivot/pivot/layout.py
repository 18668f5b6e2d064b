"""
Pivot layout: which dimensions sit on each axis and which measures are summed.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Any
import hashlib
import json

DEFAULT_MEASURES = ["COST_UNIT"]


@dataclass
class PivotLayout:
    """
    Axis assignment of a pivot.

    Attributes:
        row_fields: Dimension names on the row axis, outermost first
        column_fields: Dimension names on the column axis
        measures: Measure columns to sum
    """
    row_fields: List[str] = field(default_factory=list)
    column_fields: List[str] = field(default_factory=list)
    measures: List[str] = field(default_factory=lambda: list(DEFAULT_MEASURES))

    @property
    def layout_id(self) -> str:
        """Stable identifier for this layout."""
        content = json.dumps(self.to_dict(), sort_keys=True)
        return hashlib.md5(content.encode()).hexdigest()[:12]

    @property
    def dimensions(self) -> List[str]:
        return list(dict.fromkeys(self.row_fields + self.column_fields))

    def describe(self) -> str:
        """Generate human-readable description of the layout."""
        parts = [
            f"Rows: {', '.join(self.row_fields) if self.row_fields else 'Total'}",
            f"Columns: {', '.join(self.column_fields) if self.column_fields else 'Value'}",
            f"Measures: {', '.join(f'SUM({m})' for m in self.measures)}",
        ]
        return "; ".join(parts)

    def copy(self) -> "PivotLayout":
        return PivotLayout(
            row_fields=list(self.row_fields),
            column_fields=list(self.column_fields),
            measures=list(self.measures),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "row_fields": list(self.row_fields),
            "column_fields": list(self.column_fields),
            "measures": list(self.measures),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PivotLayout":
        return cls(
            row_fields=list(data["row_fields"]),
            column_fields=list(data["column_fields"]),
            measures=list(data.get("measures", DEFAULT_MEASURES)),
        )

    def __hash__(self):
        return hash(self.layout_id)
