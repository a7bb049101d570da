import sys

import pytest
from PyQt5.QtCore import QCoreApplication

from graphlayout import ExecutionEnvironment, GraphData


@pytest.fixture
def manual_env():
    return ExecutionEnvironment.manual()


@pytest.fixture(scope="session")
def qapp():
    app = QCoreApplication.instance()
    if app is None:
        app = QCoreApplication(sys.argv[:1])
    return app


def ring(n, prefix="n"):
    nodes = [{"id": f"{prefix}{i}"} for i in range(n)]
    edges = [{"source": f"{prefix}{i}", "target": f"{prefix}{(i + 1) % n}"} for i in range(n)]
    return {"nodes": nodes, "edges": edges}


@pytest.fixture
def make_ring():
    return ring


@pytest.fixture
def ring6():
    return GraphData.from_dict(ring(6))
