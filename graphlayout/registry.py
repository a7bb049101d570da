# registry.py

from typing import Any, Dict, Mapping, Optional, Type

from .base import Layout
from .circular import CircularLayout
from .errors import LayoutConfigError
from .gforce import GForceLayout
from .scheduler import ExecutionEnvironment

LAYOUT_TYPES: Dict[str, Type[Layout]] = {
    "gForce": GForceLayout,
    "circular": CircularLayout,
}


def create_layout(type_name: str, options: Optional[Mapping[str, Any]] = None,
                  environment: Optional[ExecutionEnvironment] = None) -> Layout:
    try:
        cls = LAYOUT_TYPES[type_name]
    except KeyError:
        raise LayoutConfigError(
            f"Unknown layout type '{type_name}' (known: {', '.join(sorted(LAYOUT_TYPES))})") from None
    return cls(options, environment)
