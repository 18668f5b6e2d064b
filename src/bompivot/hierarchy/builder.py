"""
Hierarchy Builder: turns flat dimension rows into a dimension tree.

Two construction modes share one entry point, ``build_hierarchy``:
- path mode: each row carries a path string (e.g. ``WORLD//EUROPE//FRANCE``);
  intermediate nodes are memoized on (parent id, segment) so rows sharing a
  prefix reuse the same nodes.
- flat mode: one root with one leaf per distinct code value.

The builder never raises. Malformed rows are skipped with a warning and an
unusable input yields a single-root hierarchy with no children.
"""

import logging
from collections.abc import Mapping
from typing import List, Dict, Optional, Any, Tuple, Iterable, Union

import pandas as pd

from bompivot.hierarchy.schema import (
    Hierarchy, HierarchyNode, HierarchyConfig,
    MASTER_ROOT_ID, EMPTY_ROOT_ID, DEFAULT_ROOT_LABEL,
)

logger = logging.getLogger(__name__)

Records = Union[pd.DataFrame, Iterable[Dict[str, Any]], None]


def as_records(records: Records) -> List[Dict[str, Any]]:
    """Normalize a DataFrame or an iterable of rows to a list of rows."""
    if records is None:
        return []
    if isinstance(records, pd.DataFrame):
        return records.to_dict("records")
    return list(records)


def is_blank(value: Any) -> bool:
    """True for None, NaN, empty collections and whitespace-only strings."""
    if value is None:
        return True
    if isinstance(value, str):
        return value.strip() == ""
    if isinstance(value, (list, tuple, set, frozenset)):
        return len(value) == 0
    try:
        return bool(pd.isna(value))
    except (TypeError, ValueError):
        return False


def _fact_key(value: Any) -> Any:
    if is_blank(value):
        return None
    if isinstance(value, (list, tuple, set, frozenset)):
        return tuple(v for v in value if not is_blank(v))
    return value


def has_path_data(records: Records, path_field: Optional[str]) -> bool:
    """Capability check: does any row carry a non-blank path?"""
    if not path_field:
        return False
    for row in as_records(records):
        if isinstance(row, Mapping) and not is_blank(row.get(path_field)):
            return True
    return False


def split_path(path: Any, separator: str) -> List[str]:
    """Split a path string, dropping empty segments."""
    return [s.strip() for s in str(path).split(separator) if s.strip()]


def master_root_label(first_segments: List[str]) -> str:
    """'All Items', prefixed with the first word the segments all share."""
    first_words = {s.split(" ")[0] for s in first_segments}
    prefix = f"{first_words.pop()} " if len(first_words) == 1 else ""
    return f"{prefix}{DEFAULT_ROOT_LABEL}"


def empty_hierarchy(config: HierarchyConfig,
                    records: Optional[List[Dict[str, Any]]] = None) -> Hierarchy:
    """Minimal hierarchy: a single root without children."""
    hierarchy = Hierarchy(dimension=config.name, flat_data=records or [])
    root = HierarchyNode(
        id=EMPTY_ROOT_ID,
        label=config.root_label or DEFAULT_ROOT_LABEL,
        level=0,
        dimension=config.name,
        is_root=True,
    )
    hierarchy.nodes[root.id] = root
    hierarchy.roots.append(root.id)
    return hierarchy


def sort_children(hierarchy: Hierarchy):
    """Sort every child list case-insensitively by label."""
    nodes = hierarchy.nodes
    for node in nodes.values():
        if len(node.children) > 1:
            node.children.sort(key=lambda cid: (nodes[cid].label.casefold(), cid))


def unique_node_id(hierarchy: Hierarchy, node_id: str) -> str:
    """Return ``node_id``, suffixed with ``#n`` when another node already holds it."""
    if node_id not in hierarchy.nodes:
        return node_id
    n = 2
    while f"{node_id}#{n}" in hierarchy.nodes:
        n += 1
    logger.warning(f"{hierarchy.dimension}: node id {node_id!r} already taken, using {node_id}#{n}")
    return f"{node_id}#{n}"


def _attach_leaf(node: HierarchyNode, row: Dict[str, Any], config: HierarchyConfig):
    key = _fact_key(row.get(config.id_field))
    if node.fact_id is not None:
        if key is not None and key != node.fact_id:
            logger.debug(
                f"{config.name}: node {node.id} already mapped to {node.fact_id}, "
                f"ignoring {key}"
            )
        return

    node.fact_id = key
    node.data = dict(row)
    if config.label_field:
        label = row.get(config.label_field)
        if not is_blank(label):
            node.label = str(label).strip()
    # A row ending on an interior node keeps its key but does not make it a leaf
    node.is_leaf = not node.children


def build_path_hierarchy(records: Records, config: HierarchyConfig) -> Hierarchy:
    """Build a hierarchy from path-encoded rows."""
    rows = as_records(records)
    parsed: List[Tuple[Dict[str, Any], List[str]]] = []
    skipped = 0

    for i, row in enumerate(rows):
        if not isinstance(row, Mapping):
            logger.warning(f"{config.name}: skipping record {i}, not a mapping")
            skipped += 1
            continue
        path = row.get(config.path_field)
        if is_blank(path):
            logger.warning(f"{config.name}: skipping record {i}, missing {config.path_field}")
            skipped += 1
            continue
        segments = split_path(path, config.separator)
        if not segments:
            logger.warning(f"{config.name}: skipping record {i}, empty path {path!r}")
            skipped += 1
            continue
        parsed.append((row, segments))

    if not parsed:
        logger.warning(f"{config.name}: no usable path rows, returning empty hierarchy")
        return empty_hierarchy(config, rows)

    first_segments = list(dict.fromkeys(segments[0] for _, segments in parsed))
    needs_master_root = len(first_segments) > 1

    hierarchy = Hierarchy(dimension=config.name, flat_data=rows)
    master = None
    if needs_master_root:
        master = HierarchyNode(
            id=MASTER_ROOT_ID,
            label=config.root_label or master_root_label(first_segments),
            level=0,
            dimension=config.name,
            is_root=True,
        )
        hierarchy.nodes[master.id] = master
        hierarchy.roots.append(master.id)

    memo: Dict[Tuple[str, str], str] = {}

    for row, segments in parsed:
        root_id = f"ROOT_{segments[0]}"
        current = hierarchy.nodes.get(root_id)
        if current is None:
            current = HierarchyNode(
                id=root_id,
                label=segments[0],
                level=1 if needs_master_root else 0,
                dimension=config.name,
                is_root=not needs_master_root,
            )
            if master is not None:
                hierarchy.add_child(master, current)
            else:
                hierarchy.nodes[root_id] = current
                hierarchy.roots.append(root_id)

        for segment in segments[1:]:
            key = (current.id, segment)
            node_id = memo.get(key)
            if node_id is None:
                node_id = unique_node_id(hierarchy, f"{current.id}{config.separator}{segment}")
                hierarchy.add_child(current, HierarchyNode(
                    id=node_id,
                    label=segment,
                    level=current.level + 1,
                    dimension=config.name,
                ))
                memo[key] = node_id
            current = hierarchy.nodes[node_id]

        _attach_leaf(current, row, config)

    sort_children(hierarchy)
    logger.info(
        f"Built {config.name} hierarchy: {len(hierarchy.nodes)} nodes "
        f"from {len(parsed)} rows ({skipped} skipped)"
    )
    return hierarchy


def build_flat_hierarchy(records: Records, config: HierarchyConfig,
                         code_field: Optional[str] = None) -> Hierarchy:
    """
    Build a one-level hierarchy: a root with one leaf per distinct code.

    Args:
        records: Dimension rows, or fact rows when no dimension table exists
        config: Dimension configuration
        code_field: Column holding the code (defaults to ``config.id_field``)
    """
    code_field = code_field or config.id_field
    rows = as_records(records)
    hierarchy = Hierarchy(dimension=config.name, flat_data=rows)
    root = HierarchyNode(
        id=config.flat_root_id,
        label=config.root_label or f"All {config.title}s",
        level=0,
        dimension=config.name,
        is_root=True,
    )
    hierarchy.nodes[root.id] = root
    hierarchy.roots.append(root.id)

    seen = set()
    for row in rows:
        if not isinstance(row, Mapping):
            continue
        code = _fact_key(row.get(code_field))
        if code is None or code in seen:
            continue
        seen.add(code)
        # 1 and "1" are distinct codes but format to the same id
        node_id = unique_node_id(hierarchy, f"{config.name.upper()}_{code}")
        label = row.get(config.label_field) if config.label_field else None
        hierarchy.add_child(root, HierarchyNode(
            id=node_id,
            label=str(code) if is_blank(label) else str(label).strip(),
            level=1,
            dimension=config.name,
            is_leaf=True,
            fact_id=code,
            data=dict(row),
        ))

    sort_children(hierarchy)
    logger.info(f"Built flat {config.name} hierarchy with {len(root.children)} values")
    return hierarchy


def build_hierarchy(records: Records, config: HierarchyConfig) -> Hierarchy:
    """
    Build a dimension hierarchy, choosing path or flat mode from the data.

    Never raises: on empty or unusable input a single-root hierarchy is
    returned so consumers need no null checks.
    """
    try:
        rows = as_records(records)
        if not rows:
            logger.warning(f"{config.name}: no dimension rows, returning empty hierarchy")
            return empty_hierarchy(config)
        if has_path_data(rows, config.path_field):
            return build_path_hierarchy(rows, config)
        return build_flat_hierarchy(rows, config)
    except Exception as e:
        logger.error(f"{config.name}: hierarchy build failed: {e}")
        return empty_hierarchy(config)
