"""
Axis Combination Generator.

For each dimension placed on an axis, the visible frontier of its hierarchy is
computed from the Expansion State Store: a node is shown (and not descended)
when it is a leaf or collapsed in that zone; an expanded node is replaced by
its children. Several dimensions on one axis combine as a cartesian product,
bounded by a CombinationPolicy:

1. each dimension's visible list is deduplicated by (id, label, dimension);
2. if the product fits the ceiling it is used as is;
3. otherwise every dimension with no expanded node in the zone contributes
   only its root;
4. if the product still exceeds the ceiling, it is enumerated in
   lexicographic order (first dimension slowest) and truncated.
"""

import itertools
import logging
from dataclasses import dataclass, field
from typing import List, Dict, Optional, Tuple, Any

from bompivot.hierarchy.schema import Hierarchy, HierarchyNode
from bompivot.pivot.expansion import ExpansionStateStore, ZoneLike, as_zone

logger = logging.getLogger(__name__)

KEY_SEPARATOR = "|"


@dataclass
class CombinationPolicy:
    """
    Ceilings on the number of combinations per axis.

    Attributes:
        ceilings: Dimension count -> maximum combinations
        default_ceiling: Used for dimension counts missing from ``ceilings``
        single_dimension_ceiling: Optional cap for a single-dimension axis
    """
    ceilings: Dict[int, int] = field(default_factory=lambda: {2: 100, 3: 50})
    default_ceiling: int = 25
    single_dimension_ceiling: Optional[int] = None

    def ceiling_for(self, dimension_count: int) -> Optional[int]:
        if dimension_count <= 1:
            return self.single_dimension_ceiling
        return self.ceilings.get(dimension_count, self.default_ceiling)


@dataclass
class AxisCombination:
    """
    One row or column of the pivot: one node per axis dimension.

    A combination without nodes is the identity (no filtering); it stands in
    for an axis with no dimensions.
    """
    nodes: Tuple[HierarchyNode, ...]
    key: str = ""
    label: Optional[str] = None

    def __post_init__(self):
        self.nodes = tuple(self.nodes)
        if not self.key:
            self.key = KEY_SEPARATOR.join(n.id for n in self.nodes)

    @classmethod
    def identity(cls, key: str, label: str) -> "AxisCombination":
        return cls(nodes=(), key=key, label=label)

    @property
    def is_identity(self) -> bool:
        return not self.nodes

    @property
    def labels(self) -> List[str]:
        if self.is_identity:
            return [self.label] if self.label else []
        return [n.label for n in self.nodes]

    @property
    def dimensions(self) -> List[str]:
        return [n.dimension for n in self.nodes]

    @property
    def node_ids(self) -> List[str]:
        return [n.id for n in self.nodes]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "key": self.key,
            "labels": self.labels,
            "dimensions": self.dimensions,
            "node_ids": self.node_ids,
            "levels": [n.level for n in self.nodes],
        }


class AxisCombinationGenerator:
    """Produce the visible node combinations of a pivot axis."""

    def __init__(self, hierarchies: Dict[str, Hierarchy],
                 expansion: ExpansionStateStore,
                 policy: CombinationPolicy = None):
        self.hierarchies = hierarchies
        self.expansion = expansion
        self.policy = policy or CombinationPolicy()

    def visible_nodes(self, dimension: str, zone: ZoneLike) -> List[HierarchyNode]:
        """Visible frontier of a dimension's hierarchy in the given zone."""
        hierarchy = self.hierarchies.get(dimension)
        if hierarchy is None:
            logger.warning(f"No hierarchy for dimension {dimension}")
            return []
        zone = as_zone(zone)

        visible = []
        stack = [r for r in reversed(hierarchy.roots) if r in hierarchy.nodes]
        while stack:
            node = hierarchy.nodes[stack.pop()]
            if node.is_leaf or not node.children or \
                    not self.expansion.is_expanded(dimension, zone, node.id):
                visible.append(node)
                continue
            stack.extend(c for c in reversed(node.children) if c in hierarchy.nodes)
        return visible

    @staticmethod
    def deduplicate(nodes: List[HierarchyNode]) -> List[HierarchyNode]:
        seen = set()
        unique = []
        for node in nodes:
            key = (node.id, node.label, node.dimension)
            if key in seen:
                continue
            seen.add(key)
            unique.append(node)
        return unique

    def _root_only(self, dimension: str) -> List[HierarchyNode]:
        root = self.hierarchies[dimension].root
        return [root] if root is not None else []

    def combine(self, dimensions: List[str], zone: ZoneLike) -> List[AxisCombination]:
        """
        Ordered combinations for the dimensions placed on one axis.

        Args:
            dimensions: Dimension names in axis order
            zone: Axis zone whose expansion state applies

        Returns:
            List of AxisCombination (empty when no usable dimension is given)
        """
        zone = as_zone(zone)
        fields = []
        for dim in dict.fromkeys(dimensions):
            if dim in self.hierarchies:
                fields.append(dim)
            else:
                logger.warning(f"Dropping dimension {dim} from {zone.value} axis: no hierarchy")
        if not fields:
            return []

        lists = [self.deduplicate(self.visible_nodes(dim, zone)) for dim in fields]
        ceiling = self.policy.ceiling_for(len(fields))

        if ceiling is not None and _product_size(lists) > ceiling:
            lists = [
                self._root_only(dim) if not self.expansion.has_expanded(dim, zone) else nodes
                for dim, nodes in zip(fields, lists)
            ]
            size = _product_size(lists)
            if size > ceiling:
                logger.warning(
                    f"{zone.value} axis {fields}: {size} combinations exceed "
                    f"ceiling {ceiling}, truncating"
                )
            products = itertools.islice(itertools.product(*lists), ceiling)
        else:
            products = itertools.product(*lists)

        combinations = [AxisCombination(nodes=combo) for combo in products]
        logger.debug(f"{zone.value} axis {fields}: {len(combinations)} combinations")
        return combinations


def _product_size(lists: List[List[Any]]) -> int:
    size = 1
    for items in lists:
        size *= len(items)
    return size
