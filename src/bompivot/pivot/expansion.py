"""
Expansion State Store: which hierarchy nodes are expanded, per axis zone.

Keys are (dimension, zone, node id). The row and column zones of the same
dimension are independent. Unknown keys read as collapsed.
"""

import threading
from enum import Enum
from typing import Dict, Tuple, Iterable, Optional, Set, Union


class Zone(Enum):
    """Pivot axis zones."""
    ROW = "row"
    COLUMN = "column"


ZoneLike = Union[Zone, str]
ExpansionKey = Tuple[str, Zone, str]


def as_zone(zone: ZoneLike) -> Zone:
    return zone if isinstance(zone, Zone) else Zone(zone)


class ExpansionStateStore:
    """
    Session-wide expansion flags.

    Reads are lock-free dict lookups; writes go through a lock so a host
    with several threads has a single serialized writer.
    """

    def __init__(self):
        self._state: Dict[ExpansionKey, bool] = {}
        self._lock = threading.Lock()

    def is_expanded(self, dimension: str, zone: ZoneLike, node_id: str) -> bool:
        return self._state.get((dimension, as_zone(zone), node_id), False)

    def set_expanded(self, dimension: str, zone: ZoneLike, node_id: str,
                     expanded: bool):
        key = (dimension, as_zone(zone), node_id)
        with self._lock:
            if expanded:
                self._state[key] = True
            else:
                self._state.pop(key, None)

    def toggle(self, dimension: str, zone: ZoneLike, node_id: str) -> bool:
        """Flip a node's state and return the new value."""
        key = (dimension, as_zone(zone), node_id)
        with self._lock:
            new_value = not self._state.get(key, False)
            if new_value:
                self._state[key] = True
            else:
                self._state.pop(key, None)
        return new_value

    def expand_all(self, dimension: str, zone: ZoneLike, node_ids: Iterable[str]):
        zone = as_zone(zone)
        with self._lock:
            for node_id in node_ids:
                self._state[(dimension, zone, node_id)] = True

    def collapse_all(self, dimension: str, zone: ZoneLike):
        zone = as_zone(zone)
        with self._lock:
            for key in [k for k in self._state if k[0] == dimension and k[1] == zone]:
                del self._state[key]

    def expanded_nodes(self, dimension: str, zone: ZoneLike) -> Set[str]:
        zone = as_zone(zone)
        return {k[2] for k, v in list(self._state.items())
                if v and k[0] == dimension and k[1] == zone}

    def has_expanded(self, dimension: str, zone: ZoneLike) -> bool:
        """True when at least one node of the dimension is expanded in the zone."""
        zone = as_zone(zone)
        return any(v and k[0] == dimension and k[1] == zone
                   for k, v in list(self._state.items()))

    def clear(self, dimension: Optional[str] = None):
        """Forget all state, or only one dimension's (fresh data load)."""
        with self._lock:
            if dimension is None:
                self._state.clear()
            else:
                for key in [k for k in self._state if k[0] == dimension]:
                    del self._state[key]

    def __len__(self) -> int:
        return len(self._state)
