# node.py

from PyQt5.QtCore import QPointF
from typing import Any, Dict, Mapping, MutableMapping, Optional, Tuple, Union

from .errors import LayoutDataError

SizeValue = Union[float, Tuple[float, float], None]

# Keys with a dedicated slot; everything else in a record goes to `data`
_NODE_KEYS = ("id", "x", "y", "fx", "fy", "size", "degree", "weight")


def _opt_float(value, key):
    if value is None:
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        raise LayoutDataError(f"Node field '{key}' must be a number, got {value!r}")


class Node:
    """
    A graph node as seen by the layouts.

    Nodes are owned by the caller: the engines read and write `x`/`y`
    (and `degree`/`weight` for the circular layout) in place, but never create
    or drop nodes. `fx`/`fy` pin the node when both are set.

    A node built from a mutable mapping keeps it in `record`, and
    `sync_record()` copies the layout results back into it.
    """
    __slots__ = ("id", "x", "y", "fx", "fy", "size", "degree", "weight", "data", "record")

    def __init__(self, id: str, x: Optional[float] = None, y: Optional[float] = None,
                 fx: Optional[float] = None, fy: Optional[float] = None,
                 size: SizeValue = None, **data: Any):
        if id is None:
            raise LayoutDataError("Node id is required.")
        self.id = str(id)
        self.x = _opt_float(x, "x")
        self.y = _opt_float(y, "y")
        self.fx = _opt_float(fx, "fx")
        self.fy = _opt_float(fy, "fy")
        self.size = size
        self.degree = 0
        self.weight = None
        self.data: Dict[str, Any] = dict(data)
        self.record: Optional[MutableMapping[str, Any]] = None

    @classmethod
    def from_dict(cls, record: Mapping[str, Any]) -> "Node":
        if "id" not in record:
            raise LayoutDataError(f"Node record without id: {dict(record)!r}")
        extra = {k: v for k, v in record.items() if k not in _NODE_KEYS}
        size = record.get("size")
        if isinstance(size, list):
            size = tuple(size)
        node = cls(record["id"], record.get("x"), record.get("y"),
                   record.get("fx"), record.get("fy"), size, **extra)
        if isinstance(record, MutableMapping):
            node.record = record
        return node

    # --- Getters and Setters ---
    def getId(self) -> str:
        return self.id

    def getPosition(self) -> QPointF:
        return QPointF(self.x or 0.0, self.y or 0.0)

    def setPosition(self, pos: Union[QPointF, Tuple[float, float]]) -> None:
        if isinstance(pos, QPointF):
            self.x, self.y = pos.x(), pos.y()
        else:
            x, y = pos
            self.x, self.y = float(x), float(y)

    def moveBy(self, dx: float, dy: float) -> None:
        self.x = (self.x or 0.0) + dx
        self.y = (self.y or 0.0) + dy

    def pos_tuple(self) -> Tuple[float, float]:
        return (self.x, self.y)

    def hasPosition(self) -> bool:
        return self.x is not None and self.y is not None

    def isPinned(self) -> bool:
        return self.fx is not None and self.fy is not None

    def sync_record(self) -> None:
        rec = self.record
        if rec is None:
            return
        rec["x"] = self.x
        rec["y"] = self.y
        if self.weight is not None:
            rec["degree"] = self.degree
            rec["weight"] = self.weight

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = dict(self.data)
        out["id"] = self.id
        out["x"] = self.x
        out["y"] = self.y
        if self.fx is not None: out["fx"] = self.fx
        if self.fy is not None: out["fy"] = self.fy
        if self.size is not None:
            out["size"] = list(self.size) if isinstance(self.size, tuple) else self.size
        out["degree"] = self.degree
        if self.weight is not None: out["weight"] = self.weight
        return out

    def __repr__(self) -> str:
        return f"N({self.id})"
