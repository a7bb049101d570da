# graph.py

from typing import Any, Dict, Iterable, List, Mapping, Optional, Set, Union
import logging

from .node import Node
from .edge import Edge
from .errors import LayoutDataError

logger = logging.getLogger(__name__)

NodeLike = Union[Node, Mapping[str, Any]]
EdgeLike = Union[Edge, Mapping[str, Any]]


class GraphData:
    """
    Nodes and edges bound to a layout.

    The node objects are the caller's and are shared as-is; edges are always
    copied (geometry-only fields stripped) so the caller's edge records are
    never touched.
    """

    def __init__(self, nodes: Optional[Iterable[NodeLike]] = None,
                 edges: Optional[Iterable[EdgeLike]] = None):
        self.nodes: List[Node] = [n if isinstance(n, Node) else Node.from_dict(n)
                                  for n in (nodes or [])]
        self.edges: List[Edge] = [e.copy() if isinstance(e, Edge) else Edge.from_dict(e)
                                  for e in (edges or [])]
        self._index: Dict[str, int] = {}
        self._adjacency: Dict[str, Set[str]] = {}
        self._degrees: List[int] = []
        self._build_index()

    @classmethod
    def from_dict(cls, payload: Optional[Mapping[str, Any]]) -> "GraphData":
        payload = payload or {}
        return cls(payload.get("nodes") or [], payload.get("edges") or [])

    @classmethod
    def coerce(cls, data) -> "GraphData":
        if data is None:
            return cls()
        if isinstance(data, GraphData):
            return data
        if isinstance(data, Mapping):
            return cls.from_dict(data)
        raise LayoutDataError(f"Unsupported graph payload type: {type(data).__name__}")

    # --------------------------
    # Index & adjacency
    # --------------------------
    def _build_index(self):
        for i, node in enumerate(self.nodes):
            if node.id in self._index:
                raise LayoutDataError(f"Duplicate node id '{node.id}'.")
            self._index[node.id] = i
            self._adjacency[node.id] = set()

        self._degrees = [0] * len(self.nodes)
        for e in self.edges:
            s, t = e.source, e.target
            if s not in self._index or t not in self._index:
                missing = s if s not in self._index else t
                raise LayoutDataError(f"{e!r} references unknown node '{missing}'.")
            # Each edge counts once for both endpoints (a self-loop counts twice)
            self._degrees[self._index[s]] += 1
            self._degrees[self._index[t]] += 1
            self._adjacency[s].add(t)
            self._adjacency[t].add(s)

        logger.debug("Bound graph with %d nodes and %d edges", len(self.nodes), len(self.edges))

    def index_of(self, node_id: str) -> int:
        return self._index.get(node_id, -1)

    def index_map(self) -> Dict[str, int]:
        return dict(self._index)

    def degrees(self) -> List[int]:
        return list(self._degrees)

    def getDegree(self, node_id: str) -> int:
        i = self._index.get(node_id, -1)
        return self._degrees[i] if i >= 0 else 0

    def neighbors(self, node_id: str) -> Set[str]:
        return set(self._adjacency.get(node_id, set()))

    def connected(self, a: str, b: str) -> bool:
        return b in self._adjacency.get(a, set())

    def __len__(self) -> int:
        return len(self.nodes)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "nodes": [n.to_dict() for n in self.nodes],
            "edges": [e.to_dict() for e in self.edges],
        }
