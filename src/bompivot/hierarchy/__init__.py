"""
Hierarchy module: dimension trees, their construction and descendant index.
"""

from bompivot.hierarchy.schema import (
    Hierarchy, HierarchyNode, HierarchyConfig,
    MASTER_ROOT_ID, EMPTY_ROOT_ID, ROOT_SENTINELS,
)
from bompivot.hierarchy.builder import (
    build_hierarchy, build_path_hierarchy, build_flat_hierarchy,
    empty_hierarchy, has_path_data,
)
from bompivot.hierarchy.index import index_descendants, compute_descendant_index

__all__ = [
    "Hierarchy", "HierarchyNode", "HierarchyConfig",
    "MASTER_ROOT_ID", "EMPTY_ROOT_ID", "ROOT_SENTINELS",
    "build_hierarchy", "build_path_hierarchy", "build_flat_hierarchy",
    "empty_hierarchy", "has_path_data",
    "index_descendants", "compute_descendant_index",
]
