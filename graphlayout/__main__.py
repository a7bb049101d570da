# __main__.py

from PyQt5.QtCore import QCoreApplication, QTimer
import argparse
import logging
import sys

from .graph import GraphData
from .logging_config import setup_logging
from .registry import LAYOUT_TYPES, create_layout
from .scheduler import ExecutionEnvironment

logger = logging.getLogger("graphlayout.demo")


def build_demo_graph(n: int = 12) -> GraphData:
    """
    Ring of n nodes triangulated by fanning from node 0
    (0-2, 0-3, ..., 0-(n-2)) on top of the outer cycle.
    """
    n = max(3, int(n))
    nodes = [{"id": f"n{i}"} for i in range(n)]
    edges = [{"source": f"n{i}", "target": f"n{(i + 1) % n}"} for i in range(n)]
    for i in range(2, n - 1):
        edges.append({"source": "n0", "target": f"n{i}"})
    return GraphData.from_dict({"nodes": nodes, "edges": edges})


def run_layout(type_name: str, data: GraphData, options=None, timeout_ms: int = 30000) -> GraphData:
    """Run one layout to completion on a Qt event loop."""
    app = QCoreApplication.instance() or QCoreApplication(sys.argv[:1])
    done = {"ended": False}

    def on_end():
        done["ended"] = True
        app.quit()

    opts = dict(options or {})
    opts["on_layout_end"] = on_end
    layout = create_layout(type_name, opts, environment=ExecutionEnvironment.default())
    layout.init(data)
    # The circular layout finishes inside execute(); start it from the loop so quit() lands
    QTimer.singleShot(0, layout.execute)
    guard = QTimer()
    guard.setSingleShot(True)
    guard.timeout.connect(app.quit)
    guard.start(timeout_ms)
    app.exec_()
    guard.stop()
    if not done["ended"]:
        logger.warning("%s layout did not finish within %d ms", type_name, timeout_ms)
        layout.stop()
    layout.destroy()
    return data


def main(argv=None):
    parser = argparse.ArgumentParser(prog="graphlayout", description="Run a demo graph layout.")
    parser.add_argument("--nodes", type=int, default=12)
    parser.add_argument("--layout", choices=sorted(LAYOUT_TYPES), default="gForce")
    parser.add_argument("--seed", type=int, default=None)
    parser.add_argument("--verbose", action="store_true")
    args = parser.parse_args(argv)

    setup_logging(logging.DEBUG if args.verbose else logging.INFO)
    data = build_demo_graph(args.nodes)
    options = {"seed": args.seed} if args.layout == "gForce" else {}
    run_layout(args.layout, data, options)
    for node in data.nodes:
        logger.info("%s: (%.2f, %.2f)", node.id, node.x, node.y)
    return 0


if __name__ == '__main__':
    sys.exit(main())
