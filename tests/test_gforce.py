import logging
import math
import random

import pytest
from PyQt5.QtCore import QEventLoop, QTimer

from graphlayout import (
    ExecutionEnvironment, ForceSimulation, GForceConfig, GForceLayout, GraphData,
    LayoutState, LayoutStateError, QtScheduler,
)
from graphlayout.config import merge_options


def positioned(n, seed=7, size=None):
    rng = random.Random(seed)
    return [{"id": f"p{i}", "x": rng.uniform(0, 300), "y": rng.uniform(0, 300), "size": size}
            for i in range(n)]


def make_sim(data, **options):
    return ForceSimulation(data, merge_options(GForceConfig(), options))


def distance(a, b):
    return math.hypot(a.x - b.x, a.y - b.y)


# --------------------------
# Force terms
# --------------------------
@pytest.mark.parametrize("options", [
    {"prevent_overlap": False},
    {"prevent_overlap": False, "node_strength": lambda n: 10 + len(n.id)},
    {"prevent_overlap": True, "node_size": 400},
    {"coulomb_dis_scale": 0.05, "factor": 3},
])
def test_repulsion_is_antisymmetric_per_pair(options):
    data = GraphData.from_dict({"nodes": [{"id": "a", "x": 10, "y": 20}, {"id": "b", "x": 13, "y": 16}]})
    sim = make_sim(data, **options)
    acc = [0.0] * 4
    sim.cal_repulsive(acc)
    assert acc[0] == -acc[2]
    assert acc[1] == -acc[3]
    assert acc[0] < 0 < acc[2]  # a is left of b and is pushed further left


def test_repulsion_sums_to_zero():
    data = GraphData.from_dict({"nodes": positioned(12)})
    sim = make_sim(data, prevent_overlap=False, node_strength=lambda n: 500 + 100 * int(n.id[1:]))
    acc = [0.0] * 24
    sim.cal_repulsive(acc)
    assert sum(acc[0::2]) == pytest.approx(0.0, abs=1e-4)
    assert sum(acc[1::2]) == pytest.approx(0.0, abs=1e-4)


def test_coincident_nodes_get_opposite_pushes():
    data = GraphData.from_dict({"nodes": [{"id": "a", "x": 5, "y": 5}, {"id": "b", "x": 5, "y": 5}]})
    sim = make_sim(data)
    acc = [0.0] * 4
    sim.cal_repulsive(acc)
    assert math.hypot(acc[0], acc[1]) > 0
    assert acc[0] == -acc[2] and acc[1] == -acc[3]


def test_attraction_pulls_long_edges_together():
    data = GraphData.from_dict({
        "nodes": [{"id": "a", "x": 0, "y": 0}, {"id": "b", "x": 100, "y": 0}, {"id": "c", "x": 0, "y": 50}],
        "edges": [{"source": "a", "target": "b"}, {"source": "a", "target": "c", "distance": 50}],
    })
    sim = make_sim(data, edge_strength=2)
    assert sim.masses == [2.0, 1.0, 1.0]
    acc = [0.0] * 6
    sim.cal_attractive(acc)
    # a -> b is longer than the ideal length 1: a moves right, b moves left
    assert acc[0] > 0
    assert acc[2] < 0
    # the heavier endpoint gets half the push of the lighter one
    assert acc[2] == pytest.approx(-2 * acc[0])
    # a -> c is almost exactly at its per-edge ideal length
    assert abs(acc[5]) < 0.05


def test_per_edge_strength_overrides_config():
    data = GraphData.from_dict({
        "nodes": [{"id": "a", "x": 0, "y": 0}, {"id": "b", "x": 10, "y": 0}],
        "edges": [{"source": "a", "target": "b", "strength": 0}],
    })
    sim = make_sim(data)
    acc = [0.0] * 4
    sim.cal_attractive(acc)
    assert acc == [0.0, 0.0, 0.0, 0.0]


def test_gravity_uses_custom_center_and_skips_zero_gravity():
    data = GraphData.from_dict({"nodes": [{"id": "a", "x": 10, "y": 10}, {"id": "b", "x": 40, "y": 0}]})

    def get_center(node, degree):
        return (0, 0, 2) if node.id == "a" else (0, 0, 0)

    sim = make_sim(data, get_center=get_center)
    acc = [0.0] * 4
    sim.cal_gravity(acc)
    assert acc == [-20.0, -20.0, 0.0, 0.0]

    sim = make_sim(data, center=(0, 0), gravity=1)
    acc = [0.0] * 4
    sim.cal_gravity(acc)
    assert acc == [-10.0, -10.0, -40.0, 0.0]


def test_velocity_is_capped_and_step_size_decays():
    data = GraphData.from_dict({"nodes": [{"id": "a", "x": 0, "y": 0}, {"id": "b", "x": 1, "y": 1}]})
    sim = make_sim(data, max_speed=5, interval=0.1)
    vel = sim.update_velocity([3e6, 4e6, 1.0, float("nan")], 0.1)
    assert math.hypot(vel[0], vel[1]) == pytest.approx(5.0)
    assert vel[0] / vel[1] == pytest.approx(0.75)
    assert vel[3] == 0.0
    assert sim.step_size(0) == pytest.approx(0.1)
    assert sim.step_size(10) == pytest.approx(0.08)
    assert sim.step_size(1000) == pytest.approx(0.02)


# --------------------------
# Layout runs
# --------------------------
def test_pinned_nodes_never_move(manual_env, make_ring):
    payload = make_ring(6)
    payload["nodes"][0].update(fx=10, fy=-4)
    data = GraphData.from_dict(payload)
    seen = []
    layout = GForceLayout({"seed": 3, "max_iteration": 40}, manual_env,
                          tick=lambda: seen.append(data.nodes[0].pos_tuple()))
    layout.init(data)
    layout.execute()
    manual_env.scheduler.run_until_idle()
    assert seen
    assert all(p == (10.0, -4.0) for p in seen)


def test_converges_within_max_iteration_and_ends_once(manual_env, ring6):
    ends = []
    ticks = []
    layout = GForceLayout(environment=manual_env, seed=11,
                          onLayoutEnd=lambda: ends.append(layout.iteration),
                          tick=lambda: ticks.append(1))
    layout.init(ring6)
    layout.execute()
    assert layout.state is LayoutState.RUNNING
    manual_env.scheduler.run_until_idle()

    assert len(ends) == 1
    assert 1 <= ends[0] <= 500
    assert len(ticks) == ends[0]
    assert layout.state is LayoutState.IDLE
    assert not layout.running
    assert manual_env.scheduler.pending() == 0
    assert all(math.isfinite(n.x) and math.isfinite(n.y) for n in ring6.nodes)


def test_iteration_cap_stops_the_run(manual_env, ring6):
    ends = []
    layout = GForceLayout({"max_iteration": 3, "min_movement": 0}, manual_env,
                          on_layout_end=lambda: ends.append(1))
    layout.init(ring6)
    layout.execute()
    manual_env.scheduler.run_until_idle()
    assert layout.iteration == 3
    assert ends == [1]


def test_execute_while_running_is_ignored(manual_env, ring6):
    layout = GForceLayout(environment=manual_env, seed=5, min_movement=0)
    layout.init(ring6)
    layout.execute()
    for _ in range(3):
        manual_env.scheduler.run_pending()
    before = [n.pos_tuple() for n in ring6.nodes]

    layout.execute()
    layout.execute(reloadData=True)

    assert manual_env.scheduler.pending() == 1
    assert layout.iteration == 3
    assert [n.pos_tuple() for n in ring6.nodes] == before
    manual_env.scheduler.run_pending()
    assert layout.iteration == 4


def test_overlapping_nodes_separate_monotonically(manual_env):
    data = GraphData.from_dict({"nodes": [{"id": "a", "x": 0, "y": 0, "size": 20},
                                          {"id": "b", "x": 0, "y": 0, "size": 20}]})
    a, b = data.nodes
    distances = [distance(a, b)]
    layout = GForceLayout({"prevent_overlap": True}, manual_env,
                          tick=lambda: distances.append(distance(a, b)))
    layout.init(data)
    layout.execute()
    for _ in range(5):
        manual_env.scheduler.run_pending()

    assert len(distances) == 6
    assert all(d2 > d1 for d1, d2 in zip(distances, distances[1:]))
    assert distances[-1] > 20.0


def test_unseeded_positions_are_reproducible(manual_env, make_ring):
    first = GraphData.from_dict(make_ring(5))
    second = GraphData.from_dict(make_ring(5))
    for data in (first, second):
        layout = GForceLayout({"seed": 42, "max_iteration": 10}, manual_env)
        layout.init(data)
        layout.execute()
        manual_env.scheduler.run_until_idle()
    assert [n.pos_tuple() for n in first.nodes] == [n.pos_tuple() for n in second.nodes]


def test_empty_and_single_node_graphs(manual_env):
    ends = []
    layout = GForceLayout({"center": (3, 4)}, manual_env, on_layout_end=lambda: ends.append(1))
    layout.execute()
    assert ends == [1]

    layout.init({"nodes": [{"id": "solo", "x": 99, "y": 99}]})
    layout.execute()
    assert ends == [1, 1]
    assert layout.nodes[0].pos_tuple() == (3.0, 4.0)
    assert manual_env.scheduler.pending() == 0
    assert layout.state is LayoutState.IDLE


def test_setup_failure_is_logged_not_raised(manual_env, ring6, caplog):
    ends = []
    layout = GForceLayout({"get_mass": lambda n: 0}, manual_env, on_layout_end=lambda: ends.append(1))
    layout.init(ring6)
    with caplog.at_level(logging.WARNING, logger="graphlayout"):
        layout.execute()
    assert "could not set up the simulation" in caplog.text
    assert not layout.running
    assert manual_env.scheduler.pending() == 0
    assert ends == []


def test_update_config_stops_a_running_layout(manual_env, ring6):
    layout = GForceLayout(environment=manual_env, seed=1, min_movement=0)
    layout.init(ring6)
    layout.execute()
    manual_env.scheduler.run_pending()
    sim = layout.simulation

    layout.updateConfig(gravity=0)
    assert layout.state is LayoutState.IDLE
    assert manual_env.scheduler.pending() == 0
    assert layout.simulation is None
    assert layout.config.gravity == 0

    layout.execute()
    assert layout.running
    assert layout.simulation is not sim
    layout.stop()
    assert manual_env.scheduler.pending() == 0


def test_stop_from_tick_callback(manual_env, ring6):
    layout = GForceLayout(environment=manual_env, seed=2, min_movement=0,
                          tick=lambda: layout.stop() if layout.iteration == 2 else None)
    layout.init(ring6)
    layout.execute()
    manual_env.scheduler.run_until_idle()
    assert layout.iteration == 2
    assert layout.state is LayoutState.IDLE


def failing_center(after):
    calls = []

    def get_center(node, degree):
        calls.append(node.id)
        if len(calls) > after:
            raise RuntimeError("center lookup failed")
        return None
    return get_center


def test_failing_step_stops_the_layout(manual_env, ring6, caplog):
    ends = []
    # 6 nodes per step: the fourth step raises
    layout = GForceLayout(environment=manual_env, seed=3, min_movement=0,
                          get_center=failing_center(18), on_layout_end=lambda: ends.append(1))
    layout.init(ring6)
    layout.execute()
    with caplog.at_level(logging.WARNING, logger="graphlayout"):
        manual_env.scheduler.run_until_idle()

    assert "layout stopped" in caplog.text
    assert "center lookup failed" in caplog.text
    assert layout.iteration == 3
    assert not layout.running
    assert layout.state is LayoutState.IDLE
    assert manual_env.scheduler.pending() == 0
    assert ends == []

    # not stuck: the next execute() schedules a fresh run
    layout.execute()
    assert layout.running
    assert manual_env.scheduler.pending() == 1
    layout.stop()


def test_failing_tick_callback_stops_the_layout(manual_env, ring6):
    def tick():
        if layout.iteration == 3:
            raise ValueError("render failed")

    layout = GForceLayout(environment=manual_env, seed=3, min_movement=0, tick=tick)
    layout.init(ring6)
    layout.execute()
    manual_env.scheduler.run_until_idle()
    assert layout.iteration == 3
    assert layout.state is LayoutState.IDLE
    assert manual_env.scheduler.pending() == 0


def test_failing_step_in_worker_mode(ring6):
    messages, ends = [], []
    env = ExecutionEnvironment.worker(messages.append)
    layout = GForceLayout({"worker_enabled": True, "seed": 3, "min_movement": 0}, env,
                          get_center=failing_center(12), on_layout_end=lambda: ends.append(1))
    layout.init(ring6)
    layout.execute()
    assert [m["currentTick"] for m in messages] == [1, 2]
    assert not layout.running
    assert ends == []


def test_positions_are_written_to_caller_records(manual_env, make_ring):
    payload = make_ring(5)
    layout = GForceLayout(environment=manual_env, seed=5, min_movement=0, max_iteration=40)
    layout.init(payload)
    layout.execute()

    manual_env.scheduler.run_pending()
    first = [(rec["x"], rec["y"]) for rec in payload["nodes"]]
    assert first == [nd.pos_tuple() for nd in layout.nodes]

    manual_env.scheduler.run_until_idle()
    assert [(rec["x"], rec["y"]) for rec in payload["nodes"]] == [nd.pos_tuple() for nd in layout.nodes]
    assert [(rec["x"], rec["y"]) for rec in payload["nodes"]] != first
    assert all("weight" not in rec for rec in payload["nodes"])


def test_destroy_releases_everything(manual_env, ring6):
    layout = GForceLayout(environment=manual_env, seed=2)
    layout.init(ring6)
    layout.execute()
    layout.destroy()
    assert layout.state is LayoutState.DESTROYED
    assert manual_env.scheduler.pending() == 0
    assert layout.nodes == [] and layout.edges == []
    with pytest.raises(LayoutStateError):
        layout.execute()
    with pytest.raises(LayoutStateError):
        layout.updateConfig(gravity=1)
    layout.destroy()


def test_worker_mode_outside_worker_is_downgraded(manual_env, ring6, caplog):
    layout = GForceLayout({"worker_enabled": True, "seed": 4}, manual_env)
    layout.init(ring6)
    with caplog.at_level(logging.WARNING, logger="graphlayout"):
        layout.execute()
    assert "only supported when running inside a worker" in caplog.text
    assert manual_env.scheduler.pending() == 1


def test_worker_mode_posts_tick_messages(ring6):
    messages = []
    ends = []
    ticks = []
    env = ExecutionEnvironment.worker(messages.append)
    layout = GForceLayout({"workerEnabled": True, "seed": 9, "maxIteration": 50}, env,
                          tick=lambda: ticks.append(1), on_layout_end=lambda: ends.append(1))
    layout.init(ring6)
    layout.execute()

    assert ends == [1]
    assert ticks == []
    assert not layout.running
    assert 1 <= len(messages) <= 50
    assert [m["currentTick"] for m in messages] == list(range(1, len(messages) + 1))
    last = messages[-1]
    assert last["type"] == "tick"
    assert last["totalTicks"] == 50
    assert [n["id"] for n in last["nodes"]] == [n.id for n in ring6.nodes]
    assert last["nodes"][0]["x"] == ring6.nodes[0].x


def test_no_scheduler_means_no_run(ring6, caplog):
    layout = GForceLayout(environment=ExecutionEnvironment())
    layout.init(ring6)
    with caplog.at_level(logging.WARNING, logger="graphlayout"):
        layout.execute()
    assert "no scheduler" in caplog.text
    assert not layout.running


def test_runs_on_the_qt_event_loop(qapp, ring6):
    loop = QEventLoop()
    ends = []

    def on_end():
        ends.append(1)
        loop.quit()

    layout = GForceLayout({"seed": 8, "max_iteration": 30}, ExecutionEnvironment(scheduler=QtScheduler()),
                          on_layout_end=on_end)
    layout.init(ring6)
    layout.execute()
    assert layout.running  # nothing ran yet, the first step waits for the event loop
    guard = QTimer()
    guard.setSingleShot(True)
    guard.timeout.connect(loop.quit)
    guard.start(10000)
    loop.exec_()
    guard.stop()

    assert ends == [1]
    assert 1 <= layout.iteration <= 30
