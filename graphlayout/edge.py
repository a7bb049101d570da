# edge.py
from __future__ import annotations
from typing import Any, Dict, Mapping, Optional, Tuple

from .errors import LayoutDataError

# Render-side geometry that never takes part in a layout
GEOMETRY_KEYS = ("startPoint", "endPoint", "sourceNode", "targetNode", "controlPoints")

_EDGE_KEYS = ("source", "target", "strength", "distance")


class Edge:
    """Directed pair of node ids with optional per-edge strength / ideal length."""
    __slots__ = ("_source", "_target", "_strength", "_distance", "data")

    def __init__(self, source, target, strength: Optional[float] = None,
                 distance: Optional[float] = None, **data: Any):
        if source is None or target is None:
            raise LayoutDataError("Edge needs both a source and a target.")
        self._source = str(source)
        self._target = str(target)
        self._strength = None if strength is None else float(strength)
        self._distance = None if distance is None else float(distance)
        self.data: Dict[str, Any] = {k: v for k, v in data.items() if k not in GEOMETRY_KEYS}

    @classmethod
    def from_dict(cls, record: Mapping[str, Any]) -> Edge:
        if "source" not in record or "target" not in record:
            raise LayoutDataError(f"Edge record without source/target: {dict(record)!r}")
        extra = {k: v for k, v in record.items() if k not in _EDGE_KEYS}
        return cls(record["source"], record["target"],
                   record.get("strength"), record.get("distance"), **extra)

    # --- Getters ---
    def getSource(self) -> str: return self._source
    def getTarget(self) -> str: return self._target
    def getStrength(self) -> Optional[float]: return self._strength
    def getDistance(self) -> Optional[float]: return self._distance

    source = property(getSource)
    target = property(getTarget)
    strength = property(getStrength)
    distance = property(getDistance)

    def key(self) -> Tuple[str, str]:
        return (self._source, self._target)

    def copy(self) -> Edge:
        return Edge(self._source, self._target, self._strength, self._distance, **self.data)

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = dict(self.data)
        out["source"] = self._source
        out["target"] = self._target
        if self._strength is not None: out["strength"] = self._strength
        if self._distance is not None: out["distance"] = self._distance
        return out

    def __eq__(self, other) -> bool:
        return isinstance(other, Edge) and self.key() == other.key() \
            and self._strength == other._strength and self._distance == other._distance

    def __hash__(self) -> int:
        return hash(self.key())

    def __repr__(self):
        return f"E({self._source} -> {self._target})"
