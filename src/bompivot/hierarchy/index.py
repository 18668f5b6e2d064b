"""
Descendant Index: attach to every node the fact keys reachable beneath it.

Single bottom-up pass over the levels, deepest first. Must run after the tree
is complete; running it again on the same tree gives the same result.
"""

import logging
from collections import defaultdict
from typing import Dict, FrozenSet, Any

from bompivot.hierarchy.schema import Hierarchy

logger = logging.getLogger(__name__)


def compute_descendant_index(hierarchy: Hierarchy) -> Dict[str, FrozenSet[Any]]:
    """
    Compute node id -> descendant fact keys without touching the nodes.

    A leaf maps to its own key(s); an internal node maps to the union of
    its children's sets.
    """
    by_level = defaultdict(list)
    for node in hierarchy.nodes.values():
        by_level[node.level].append(node)

    index: Dict[str, FrozenSet[Any]] = {}
    for level in sorted(by_level, reverse=True):
        for node in by_level[level]:
            if node.is_leaf:
                index[node.id] = frozenset(node.fact_ids())
                continue
            collected = set()
            for child_id in node.children:
                collected.update(index.get(child_id, ()))
            index[node.id] = frozenset(collected)
    return index


def index_descendants(hierarchy: Hierarchy) -> Hierarchy:
    """Fill ``descendant_fact_ids`` on every node in place."""
    index = compute_descendant_index(hierarchy)
    for node_id, fact_ids in index.items():
        hierarchy.nodes[node_id].descendant_fact_ids = set(fact_ids)

    root = hierarchy.root
    logger.debug(
        f"Indexed {hierarchy.dimension}: {len(index)} nodes, "
        f"{len(root.descendant_fact_ids) if root else 0} fact keys under root"
    )
    return hierarchy
