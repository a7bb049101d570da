"""graphlayout: force-directed and circular node placement for node-link diagrams."""

from .base import Layout, LayoutState
from .circular import CircularLayout
from .config import CircularConfig, GForceConfig, LayoutConfig, SizeKind, SizeSpec
from .edge import Edge
from .errors import LayoutConfigError, LayoutDataError, LayoutError, LayoutStateError
from .gforce import ForceSimulation, GForceLayout
from .graph import GraphData
from .logging_config import setup_logging
from .node import Node
from .registry import LAYOUT_TYPES, create_layout
from .scheduler import ExecutionEnvironment, ManualScheduler, QtScheduler, Scheduler
from .worker import LayoutWorker

__all__ = [
    "CircularConfig", "CircularLayout", "Edge", "ExecutionEnvironment", "ForceSimulation",
    "GForceConfig", "GForceLayout", "GraphData", "LAYOUT_TYPES", "Layout", "LayoutConfig",
    "LayoutConfigError", "LayoutDataError", "LayoutError", "LayoutState", "LayoutStateError",
    "LayoutWorker", "ManualScheduler", "Node", "QtScheduler", "Scheduler", "SizeKind",
    "SizeSpec", "create_layout", "setup_logging",
]
