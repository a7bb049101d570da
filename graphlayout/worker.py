# worker.py
"""
Offloaded layout execution.

`LayoutWorker` runs a whole layout inside a QThread. The layout sees an
`ExecutionEnvironment.worker(...)` whose message channel is the
`tick_message` signal, so a gForce layout with `worker_enabled=True` posts
one message per step:

    {"type": "tick", "nodes": [...], "currentTick": k, "totalTicks": total}

The host connects to the signals and never touches the layout object itself.
The node objects in `data` are mutated by the worker thread; the host must not
run another layout on the same nodes until `layout_finished` fires.
"""

from typing import Any, Dict, Mapping, Optional
import logging

from PyQt5.QtCore import QThread, pyqtSignal

from .config import normalize_option_name
from .graph import GraphData
from .registry import create_layout
from .scheduler import ExecutionEnvironment

logger = logging.getLogger(__name__)


class LayoutWorker(QThread):
    tick_message = pyqtSignal(dict)
    layout_finished = pyqtSignal(list)   # final node dicts
    error_occurred = pyqtSignal(str)

    def __init__(self, type_name: str, data, options: Optional[Mapping[str, Any]] = None, parent=None):
        super().__init__(parent)
        self.type_name = type_name
        self.data = GraphData.coerce(data)
        self.options: Dict[str, Any] = {normalize_option_name(k): v for k, v in (options or {}).items()}
        if type_name == "gForce":
            # Step messages instead of scheduler callbacks
            self.options.setdefault("worker_enabled", True)
        self.layout = None

    def run(self):
        try:
            logger.info("Starting %s layout in background thread...", self.type_name)
            env = ExecutionEnvironment.worker(self.tick_message.emit)
            self.layout = create_layout(self.type_name, self.options, environment=env)
            self.layout.init(self.data)
            self.layout.execute()
            self.layout_finished.emit([nd.to_dict() for nd in self.data.nodes])
        except Exception as e:
            logger.error("Error in LayoutWorker: %s", e)
            self.error_occurred.emit(str(e))
        finally:
            if self.layout is not None:
                self.layout.destroy()
