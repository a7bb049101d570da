# circular.py
"""
Circular layout.

Nodes are put on a circle (or a spiral, when start and end radius differ) in
the order chosen by `ordering`:

- None        input order;
- "degree"    stable sort by ascending degree. Callers often read the name as
              "hubs first"; the order is lowest degree first;
- "topology" / "topology-directed"
              greedy sequence that puts graph neighbours next to each other.

The angle depends only on the position in that order, never on node size.
"""

from typing import List
import logging
import math

from .base import Layout
from .config import CircularConfig, ORDERINGS
from .graph import GraphData
from .node import Node
from .utils_geom import v_polar

logger = logging.getLogger(__name__)

PI = math.pi

# Radius ramp used when no radius can be derived from the config
RAMP_START = 10.0
RAMP_SPAN = 100.0


def init_hierarchy(data: GraphData, directed: bool):
    """
    Per-node neighbour lists for topology ordering, indexed like data.nodes.
    Directed: source records target as child, target records source as parent.
    Undirected: both endpoints record each other as children.
    """
    n = len(data.nodes)
    children: List[List[str]] = [[] for _ in range(n)]
    parents: List[List[str]] = [[] for _ in range(n)]
    for e in data.edges:
        si = data.index_of(e.source)
        ti = data.index_of(e.target)
        if directed:
            children[si].append(e.target)
            parents[ti].append(e.source)
        else:
            children[si].append(e.target)
            children[ti].append(e.source)
    return children, parents


def topology_ordering(data: GraphData, degrees: List[int], directed: bool = False) -> List[Node]:
    """
    Starting from node 0, walk the nodes in input order. Node i is taken next
    when it is unplaced and either is the last node, differs in degree from
    node i+1, or is connected to the anchor. Otherwise the first unplaced child
    of the anchor with the same degree as node i is taken, and failing that the
    first unplaced node by index.

    The anchor starts at ordered[0] and moves one slot forward only when node i
    is taken directly, so after a child or fallback pick it lags behind the
    newest node.
    """
    nodes = data.nodes
    n = len(nodes)
    if n == 0:
        return []
    children, _ = init_hierarchy(data, directed)
    picked = [False] * n
    ordered: List[int] = [0]
    picked[0] = True
    anchor = 0

    for i in range(1, n):
        ref = ordered[anchor]
        if (i == n - 1 or degrees[i] != degrees[i + 1]
                or data.connected(nodes[ref].id, nodes[i].id)) and not picked[i]:
            ordered.append(i)
            picked[i] = True
            anchor += 1
            continue

        found = False
        for child_id in children[ref]:
            ci = data.index_of(child_id)
            if degrees[ci] == degrees[i] and not picked[ci]:
                ordered.append(ci)
                picked[ci] = True
                found = True
                break
        if found:
            continue
        # Linear scan for the first unplaced node; order-sensitive, keep as is
        for ii in range(n):
            if not picked[ii]:
                ordered.append(ii)
                picked[ii] = True
                break

    return [nodes[i] for i in ordered]


def degree_ordering(nodes: List[Node]) -> List[Node]:
    # Ascending; sorted() is stable so equal degrees keep input order
    return sorted(nodes, key=lambda nd: nd.degree)


class CircularLayout(Layout):
    config_class = CircularConfig

    def __init__(self, options=None, environment=None, **kwargs):
        self._order: List[Node] = []
        super().__init__(options, environment, **kwargs)

    def getType(self) -> str:
        return "circular"

    @property
    def order(self) -> List[Node]:
        return list(self._order)

    def execute(self, reloadData: bool = False) -> List[Node]:
        self._check_alive("execute")
        if self._running:
            logger.debug("circular: execute() ignored, layout already running")
            return list(self._order)

        cfg = self._config
        nodes = self.nodes
        n = len(nodes)
        self._begin()
        if n == 0:
            self._order = []
            self._finish()
            return []

        center = cfg.resolved_center()
        degrees = self._data.degrees()
        for node, d in zip(nodes, degrees):
            node.degree = d
            node.weight = d

        if n == 1:
            nodes[0].setPosition(center)
            self._order = [nodes[0]]
            self._finish()
            return list(self._order)

        radius = cfg.radius
        start_radius = cfg.start_radius
        end_radius = cfg.end_radius
        if not radius and not start_radius and not end_radius:
            radius = cfg.width / 2.0 if cfg.height > cfg.width else cfg.height / 2.0
        elif not start_radius and end_radius:
            start_radius = end_radius
        elif start_radius and not end_radius:
            end_radius = start_radius

        ordered = self._ordered_nodes(degrees)

        angle_step = (cfg.end_angle - cfg.start_angle) / n * cfg.angle_ratio
        divisions = cfg.divisions
        per_division = int(math.ceil(n / divisions))
        band = 2 * PI / divisions

        for i, node in enumerate(ordered):
            r = radius
            if not r and start_radius is not None and end_radius is not None:
                r = start_radius + i * (end_radius - start_radius) / (n - 1)
            if not r:
                r = RAMP_START + i * RAMP_SPAN / (n - 1)
            k = i % per_division
            d = i // per_division
            if cfg.clockwise:
                angle = cfg.start_angle + k * angle_step + band * d
            else:
                angle = cfg.end_angle - k * angle_step - band * d
            node.setPosition(v_polar(center, r, angle))

        self._order = ordered
        self._finish()
        return list(ordered)

    def _ordered_nodes(self, degrees: List[int]) -> List[Node]:
        ordering = self._config.ordering
        if ordering is None:
            return list(self.nodes)
        if ordering == "topology":
            return topology_ordering(self._data, degrees)
        if ordering == "topology-directed":
            return topology_ordering(self._data, degrees, directed=True)
        if ordering == "degree":
            return degree_ordering(self.nodes)
        logger.warning("circular: unknown ordering %r (expected one of %s), using input order",
                       ordering, ", ".join(ORDERINGS))
        return list(self.nodes)

    def _reset_prepared(self):
        self._order = []
