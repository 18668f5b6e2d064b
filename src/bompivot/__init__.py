"""
BOMPivot: hierarchical pivot engine for bill-of-materials cost data.

Builds dimension hierarchies from path-encoded dimension tables, tracks
per-axis expand/collapse state and aggregates fact measures for every visible
row x column combination.
"""

__version__ = "0.1.0"
__author__ = "BOMPivot Team"

from bompivot.hierarchy.schema import Hierarchy, HierarchyNode, HierarchyConfig
from bompivot.hierarchy.builder import build_hierarchy
from bompivot.hierarchy.index import index_descendants
from bompivot.pivot.expansion import ExpansionStateStore, Zone
from bompivot.pivot.layout import PivotLayout
from bompivot.pivot.engine import PivotEngine, PivotResult

__all__ = [
    "Hierarchy",
    "HierarchyNode",
    "HierarchyConfig",
    "build_hierarchy",
    "index_descendants",
    "ExpansionStateStore",
    "Zone",
    "PivotLayout",
    "PivotEngine",
    "PivotResult",
]
