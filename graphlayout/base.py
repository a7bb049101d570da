# base.py
"""
Lifecycle shared by every layout.

    UNCONFIGURED --init--> CONFIGURED --execute--> RUNNING <--> IDLE
                                                        \\
                                     any state --destroy--> DESTROYED

`execute()` while RUNNING is ignored. `updateConfig()` stops a running layout
before swapping the config. After `destroy()` every call raises
`LayoutStateError`.
"""

from abc import ABC, abstractmethod
from enum import Enum
from typing import Any, List, Mapping, Optional
import logging

from .config import LayoutConfig, merge_options
from .edge import Edge
from .errors import LayoutStateError
from .graph import GraphData
from .node import Node
from .scheduler import ExecutionEnvironment

logger = logging.getLogger(__name__)


class LayoutState(Enum):
    UNCONFIGURED = "unconfigured"
    CONFIGURED = "configured"
    RUNNING = "running"
    IDLE = "idle"
    DESTROYED = "destroyed"


class Layout(ABC):
    config_class = LayoutConfig

    def __init__(self, options: Optional[Mapping[str, Any]] = None,
                 environment: Optional[ExecutionEnvironment] = None, **kwargs):
        self._environment = environment if environment is not None else ExecutionEnvironment.default()
        self._config: LayoutConfig = self.getDefaultConfig()
        self._data: Optional[GraphData] = None
        self._state = LayoutState.UNCONFIGURED
        self._running = False
        self._end_fired = False
        merged = dict(options or {})
        merged.update(kwargs)
        if merged:
            self._config = merge_options(self._config, merged)

    # --------------------------
    # Contract
    # --------------------------
    def getType(self) -> str:
        return "base"

    def getDefaultConfig(self) -> LayoutConfig:
        return self.config_class()

    def init(self, data) -> None:
        self._check_alive("init")
        if self._running:
            self.stop()
        self._data = GraphData.coerce(data)
        self._reset_prepared()
        self._state = LayoutState.CONFIGURED
        logger.debug("%s: bound %d nodes, %d edges", self.getType(),
                     len(self._data.nodes), len(self._data.edges))

    @abstractmethod
    def execute(self, reloadData: bool = False):
        """Start (or run) the layout on the bound data."""

    def updateConfig(self, options: Optional[Mapping[str, Any]] = None, **kwargs) -> None:
        self._check_alive("updateConfig")
        merged = dict(options or {})
        merged.update(kwargs)
        new_config = merge_options(self._config, merged)
        if self._running:
            self.stop()
        self._config = new_config
        self._reset_prepared()

    def stop(self) -> None:
        self._check_alive("stop")
        self._cancel_pending()
        if self._running:
            self._running = False
            self._state = LayoutState.IDLE
            logger.debug("%s: stopped", self.getType())

    def destroy(self) -> None:
        if self._state is LayoutState.DESTROYED:
            return
        self._cancel_pending()
        self._running = False
        self._data = None
        self._reset_prepared()
        self._config = self.getDefaultConfig()
        self._state = LayoutState.DESTROYED
        logger.debug("%s: destroyed", self.getType())

    # --------------------------
    # Accessors
    # --------------------------
    @property
    def state(self) -> LayoutState:
        return self._state

    @property
    def running(self) -> bool:
        return self._running

    @property
    def config(self) -> LayoutConfig:
        return self._config

    @property
    def environment(self) -> ExecutionEnvironment:
        return self._environment

    @property
    def nodes(self) -> List[Node]:
        return self._data.nodes if self._data is not None else []

    @property
    def edges(self) -> List[Edge]:
        return self._data.edges if self._data is not None else []

    # --------------------------
    # Helpers for subclasses
    # --------------------------
    def _check_alive(self, op: str):
        if self._state is LayoutState.DESTROYED:
            raise LayoutStateError(f"{self.getType()}: {op}() called on a destroyed layout.")

    def _begin(self):
        self._running = True
        self._end_fired = False
        self._state = LayoutState.RUNNING

    def _finish(self):
        """Leave RUNNING and fire the end-of-layout callback once for this run."""
        self._running = False
        if self._state is not LayoutState.DESTROYED:
            self._state = LayoutState.IDLE
        if self._end_fired:
            return
        self._end_fired = True
        self._sync_records()
        logger.info("%s: layout finished (%d nodes)", self.getType(), len(self.nodes))
        cb = self._config.on_layout_end
        if cb:
            cb()

    def _sync_records(self):
        for node in self.nodes:
            node.sync_record()

    def _reset_prepared(self):
        pass

    def _cancel_pending(self):
        pass
