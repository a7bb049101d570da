# gforce.py
"""
Force-directed layout with explicit velocity integration.

Every step accumulates three forces into a flat acceleration buffer
(acc[2*i], acc[2*i+1] for node i):

- Coulomb-like repulsion between every pair of nodes, plus an extra push for
  pairs closer than the sum of their radii when overlap prevention is on;
- spring attraction along every edge towards its ideal length, divided by
  the endpoint masses (mass defaults to degree, so hubs move less);
- gravity towards the layout center, or a per-node center from `get_center`.

Velocity is acceleration scaled by step size and damping, capped at
`max_speed`. The step size shrinks with the iteration count (floored at
MIN_STEP). The run ends when the mean displacement of a step drops below
`min_movement` or after `max_iteration` steps.

One step runs per scheduler callback, so the host stays responsive between
steps. Inside a worker (`ExecutionEnvironment.worker`) the whole loop runs at
once and each step is posted as a "tick" message instead.
"""

from typing import Any, List, Optional, Tuple
import logging
import math
import random
import secrets

from PyQt5.QtCore import QPointF

from .base import Layout, LayoutState
from .config import GForceConfig, as_func, resolve_radius_func, _is_number
from .graph import GraphData
from .node import Node
from .scheduler import ExecutionEnvironment
from .utils_geom import EPS, hash_direction, v_clamp_len

logger = logging.getLogger(__name__)

MESSAGE_TICK = "tick"

# Step-size schedule
MIN_STEP = 0.02
STEP_DECAY = 0.002

# Offsets that keep the force terms finite for (nearly) coincident nodes
LENGTH_EPS = 0.01
COULOMB_OFFSET = 0.1


class ForceSimulation:
    """
    Per-run state of a gForce layout: node order, degrees and the per-node
    values resolved from the config (strength, mass, collision radius) plus the
    springs derived from the edges. Positions are read from and written to the
    bound `Node` objects.
    """

    def __init__(self, data: GraphData, config: GForceConfig):
        self.nodes: List[Node] = data.nodes
        self.edges = data.edges
        self.config = config
        self.index = data.index_map()
        self.degrees = data.degrees()
        self.center: QPointF = config.resolved_center()

        strength = as_func(config.node_strength, 1.0)
        self.strengths = [float(strength(nd)) for nd in self.nodes]

        if config.get_mass is not None:
            masses = [float(config.get_mass(nd)) for nd in self.nodes]
        else:
            masses = [float(d or 1) for d in self.degrees]
        for nd, m in zip(self.nodes, masses):
            if not (m > 0) or math.isinf(m):
                raise ValueError(f"mass of node '{nd.id}' must be a positive number, got {m!r}")
        self.masses = masses

        self.radii: Optional[List[float]] = None
        if config.prevent_overlap:
            radius = resolve_radius_func(config.node_size, config.node_spacing)
            self.radii = [radius(nd) for nd in self.nodes]

        link_distance = as_func(config.link_distance, 1.0)
        edge_strength = as_func(config.edge_strength, 1.0)
        # (source index, target index, ideal length, strength)
        self.springs: List[Tuple[int, int, float, float]] = []
        for e in self.edges:
            length = e.distance if e.distance is not None else link_distance(e)
            k = e.strength if e.strength is not None else edge_strength(e)
            self.springs.append((self.index[e.source], self.index[e.target],
                                 float(length or 1.0), float(k)))

    # --------------------------
    # Forces
    # --------------------------
    def cal_repulsive(self, acc: List[float]) -> None:
        nodes = self.nodes
        n = len(nodes)
        strengths = self.strengths
        masses = self.masses
        radii = self.radii
        factor = self.config.factor
        scale = self.config.coulomb_dis_scale

        for i in range(n):
            ni = nodes[i]
            xi, yi = ni.x, ni.y
            for j in range(i + 1, n):
                nj = nodes[j]
                vx = xi - nj.x; vy = yi - nj.y
                raw = math.hypot(vx, vy)
                L = raw + LENGTH_EPS
                if raw < EPS:
                    dx, dy = hash_direction(i, j)
                else:
                    dx = vx / L; dy = vy / L
                nL = (L + COULOMB_OFFSET) * scale
                s = (strengths[i] + strengths[j]) / 2.0
                param = s * factor / (nL * nL)
                acc[2 * i] += dx * param
                acc[2 * i + 1] += dy * param
                acc[2 * j] -= dx * param
                acc[2 * j + 1] -= dy * param

                if radii is not None and L < radii[i] + radii[j]:
                    p_ov = s / (L * L)
                    acc[2 * i] += dx * p_ov / masses[i]
                    acc[2 * i + 1] += dy * p_ov / masses[i]
                    acc[2 * j] -= dx * p_ov / masses[j]
                    acc[2 * j + 1] -= dy * p_ov / masses[j]

    def cal_attractive(self, acc: List[float]) -> None:
        nodes = self.nodes
        masses = self.masses
        for si, ti, length, k in self.springs:
            src = nodes[si]; tgt = nodes[ti]
            vx = tgt.x - src.x; vy = tgt.y - src.y
            L = math.hypot(vx, vy) + LENGTH_EPS
            dx = vx / L; dy = vy / L
            param = (length - L) * k
            acc[2 * si] -= dx * param / masses[si]
            acc[2 * si + 1] -= dy * param / masses[si]
            acc[2 * ti] += dx * param / masses[ti]
            acc[2 * ti + 1] += dy * param / masses[ti]

    def _center_for(self, i: int, node: Node) -> Tuple[float, float, float]:
        cx, cy, g = self.center.x(), self.center.y(), self.config.gravity
        get_center = self.config.get_center
        if get_center is not None:
            opt = get_center(node, self.degrees[i])
            if opt is not None and len(opt) >= 3 and all(_is_number(v) for v in opt[:3]):
                cx, cy, g = float(opt[0]), float(opt[1]), float(opt[2])
        return cx, cy, g

    def cal_gravity(self, acc: List[float]) -> None:
        for i, node in enumerate(self.nodes):
            cx, cy, g = self._center_for(i, node)
            if not g:
                continue
            acc[2 * i] -= g * (node.x - cx)
            acc[2 * i + 1] -= g * (node.y - cy)

    # --------------------------
    # Integration
    # --------------------------
    def step_size(self, iteration: int) -> float:
        return max(MIN_STEP, self.config.interval - iteration * STEP_DECAY)

    def update_velocity(self, acc: List[float], step: float) -> List[float]:
        param = step * self.config.damping
        max_speed = self.config.max_speed
        vel = [0.0] * len(acc)
        for i in range(len(self.nodes)):
            vx = acc[2 * i] * param
            vy = acc[2 * i + 1] * param
            if not math.isfinite(vx): vx = 0.0
            if not math.isfinite(vy): vy = 0.0
            vel[2 * i], vel[2 * i + 1] = v_clamp_len(vx, vy, max_speed)
        return vel

    def update_position(self, vel: List[float], step: float) -> None:
        for i, node in enumerate(self.nodes):
            if node.isPinned():
                node.x = node.fx
                node.y = node.fy
                continue
            node.x += vel[2 * i] * step
            node.y += vel[2 * i + 1] * step
        for node in self.nodes:
            node.sync_record()

    def step(self, iteration: int) -> float:
        """Advance one step; returns the mean displacement of the nodes."""
        nodes = self.nodes
        n = len(nodes)
        acc = [0.0] * (2 * n)
        self.cal_repulsive(acc)
        if self.springs:
            self.cal_attractive(acc)
        self.cal_gravity(acc)

        step = self.step_size(iteration)
        vel = self.update_velocity(acc, step)
        previous = [(nd.x, nd.y) for nd in nodes]
        self.update_position(vel, step)

        movement = 0.0
        for nd, (px, py) in zip(nodes, previous):
            movement += math.hypot(nd.x - px, nd.y - py)
        return movement / n if n else 0.0


class GForceLayout(Layout):
    config_class = GForceConfig

    def __init__(self, options=None, environment: Optional[ExecutionEnvironment] = None, **kwargs):
        self._simulation: Optional[ForceSimulation] = None
        self._handle: Any = None
        self._iteration = 0
        super().__init__(options, environment, **kwargs)

    def getType(self) -> str:
        return "gForce"

    @property
    def iteration(self) -> int:
        return self._iteration

    @property
    def simulation(self) -> Optional[ForceSimulation]:
        return self._simulation

    # --------------------------
    # Execute
    # --------------------------
    def execute(self, reloadData: bool = False) -> None:
        self._check_alive("execute")
        if self._running:
            logger.debug("gForce: execute() ignored, layout already running")
            return

        cfg = self._config
        nodes = self.nodes
        self._cancel_pending()

        if not nodes:
            self._begin()
            self._finish()
            return

        if len(nodes) == 1:
            self._begin()
            only = nodes[0]
            if only.isPinned():
                only.x, only.y = only.fx, only.fy
            else:
                only.setPosition(cfg.resolved_center())
            self._finish()
            return

        self._seed_positions(nodes, cfg)

        if reloadData or self._simulation is None:
            try:
                self._simulation = ForceSimulation(self._data, cfg)
            except Exception as e:
                logger.warning("gForce: could not set up the simulation: %s", e)
                self._simulation = None
                self._running = False
                self._state = LayoutState.IDLE
                return

        offloaded = cfg.worker_enabled
        if offloaded and not self._environment.in_worker:
            logger.warning("gForce: worker_enabled is only supported when running inside a worker; "
                           "stepping on the scheduler instead.")
            offloaded = False

        if not offloaded and not self._environment.can_schedule:
            logger.warning("gForce: the execution environment has no scheduler; layout not started.")
            self._state = LayoutState.IDLE
            return

        self._iteration = 0
        self._begin()
        logger.debug("gForce: starting on %d nodes, %d edges", len(nodes), len(self.edges))
        if offloaded:
            self._run_offloaded()
        else:
            self._schedule_next()

    def _seed_positions(self, nodes: List[Node], cfg: GForceConfig):
        rng = random.Random(cfg.seed if cfg.seed is not None else secrets.randbits(64))
        for node in nodes:
            if node.x is None:
                node.x = rng.random() * cfg.width
            if node.y is None:
                node.y = rng.random() * cfg.height

    # --------------------------
    # Stepping
    # --------------------------
    def _schedule_next(self):
        self._handle = self._environment.scheduler.schedule(self._tick)

    def _tick(self):
        self._handle = None
        sim = self._simulation
        if not self._running or sim is None:
            return
        try:
            movement = sim.step(self._iteration)
            self._iteration += 1
            tick = self._config.tick
            if tick:
                tick()
        except Exception as e:
            self._abort(e)
            return
        # The tick callback may have stopped or destroyed the layout
        if not self._running:
            return

        if self._is_done(movement):
            self._finish()
            return
        self._schedule_next()

    def _abort(self, exc: Exception):
        # No further movement; on_layout_end is not fired for an aborted run
        logger.warning("gForce: step %d failed, layout stopped: %s", self._iteration, exc)
        self._handle = None
        self._running = False
        if self._state is not LayoutState.DESTROYED:
            self._state = LayoutState.IDLE

    def _is_done(self, movement: float) -> bool:
        if movement < self._config.min_movement:
            logger.debug("gForce: converged after %d steps (movement %.4f)", self._iteration, movement)
            return True
        if self._iteration >= self._config.max_iteration:
            logger.debug("gForce: reached max_iteration (%d)", self._config.max_iteration)
            return True
        return False

    def _run_offloaded(self):
        sim = self._simulation
        total = self._config.max_iteration
        for current in range(1, total + 1):
            try:
                movement = sim.step(self._iteration)
            except Exception as e:
                self._abort(e)
                return
            self._iteration += 1
            self._environment.post_message({
                "type": MESSAGE_TICK,
                "nodes": [nd.to_dict() for nd in self.nodes],
                "currentTick": current,
                "totalTicks": total,
            })
            if not self._running:
                return
            if movement < self._config.min_movement:
                break
        self._finish()

    # --------------------------
    # Lifecycle hooks
    # --------------------------
    def _cancel_pending(self):
        if self._handle is not None and self._environment.scheduler is not None:
            self._environment.scheduler.cancel(self._handle)
        self._handle = None

    def _reset_prepared(self):
        self._simulation = None
