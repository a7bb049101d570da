# config.py
"""
Layout options.

Each layout variant has one frozen dataclass. A new instance is built on every
`updateConfig` call (`merge_options`), so a running step never sees options
change under it. Option names are snake_case; the camelCase spelling used by
front-end payloads (`maxIteration`, `onLayoutEnd`, ...) is accepted too.
"""

from dataclasses import dataclass, field, fields, replace
from enum import Enum
from numbers import Real
from typing import Any, Callable, Mapping, Optional, Tuple, Union
import math
import re

from PyQt5.QtCore import QPointF

from .errors import LayoutConfigError

DEFAULT_NODE_RADIUS = 10.0

NumberOrFunc = Union[float, Callable[[Any], float]]

_CAMEL_RE = re.compile(r"(?<=[a-z0-9])([A-Z])")


def normalize_option_name(name: str) -> str:
    return _CAMEL_RE.sub(r"_\1", name).lower()


def _is_number(v) -> bool:
    return isinstance(v, Real) and not isinstance(v, bool)


def _check_number(name, v, minimum=None, strict=False, allow_none=False):
    if v is None and allow_none:
        return
    if not _is_number(v) or math.isnan(v):
        raise LayoutConfigError(f"Option '{name}' must be a number, got {v!r}")
    if minimum is not None and (v <= minimum if strict else v < minimum):
        op = ">" if strict else ">="
        raise LayoutConfigError(f"Option '{name}' must be {op} {minimum}, got {v!r}")


def _check_number_or_func(name, v, allow_none=True):
    if v is None and allow_none:
        return
    if not (callable(v) or _is_number(v)):
        raise LayoutConfigError(f"Option '{name}' must be a number or a callable, got {v!r}")


def _check_callable(name, v):
    if v is not None and not callable(v):
        raise LayoutConfigError(f"Option '{name}' must be callable, got {v!r}")


def _check_bool(name, v):
    if not isinstance(v, bool):
        raise LayoutConfigError(f"Option '{name}' must be a bool, got {v!r}")


# --------------------------
# Node size / spacing variant
# --------------------------
class SizeKind(Enum):
    NONE = "none"
    SCALAR = "scalar"
    PAIR = "pair"
    CALLBACK = "callback"


@dataclass(frozen=True)
class SizeSpec:
    kind: SizeKind = SizeKind.NONE
    value: Any = None

    @classmethod
    def of(cls, value, name: str = "node_size") -> "SizeSpec":
        if isinstance(value, SizeSpec):
            return value
        if value is None:
            return cls()
        if callable(value):
            return cls(SizeKind.CALLBACK, value)
        if _is_number(value):
            return cls(SizeKind.SCALAR, float(value))
        if isinstance(value, (tuple, list)) and len(value) == 2 and all(_is_number(v) for v in value):
            return cls(SizeKind.PAIR, (float(value[0]), float(value[1])))
        raise LayoutConfigError(
            f"Option '{name}' must be a number, a (width, height) pair or a callable, got {value!r}")


def node_half_size(node) -> Optional[float]:
    """Half of the node's own size (larger side of a pair), or None when it has none."""
    size = getattr(node, "size", None)
    if isinstance(size, (tuple, list)) and len(size) >= 2:
        larger = max(float(size[0]), float(size[1]))
        return larger / 2.0 if larger else None
    if _is_number(size) and size:
        return float(size) / 2.0
    return None


def resolve_radius_func(node_size: SizeSpec, node_spacing: SizeSpec,
                        fallback: float = DEFAULT_NODE_RADIUS) -> Callable[[Any], float]:
    """
    Collision radius per node: the node's own size, else the configured size,
    else `fallback`; spacing is added on top. Scalars and pairs are sizes
    (halved), a callback returns the radius directly.
    """
    if node_spacing.kind is SizeKind.SCALAR:
        gap = node_spacing.value
        spacing = lambda n: gap
    elif node_spacing.kind is SizeKind.CALLBACK:
        spacing = node_spacing.value
    else:
        spacing = lambda n: 0.0

    if node_size.kind is SizeKind.SCALAR:
        r = node_size.value / 2.0
        configured = lambda n: r
    elif node_size.kind is SizeKind.PAIR:
        r = max(node_size.value) / 2.0
        configured = lambda n: r
    elif node_size.kind is SizeKind.CALLBACK:
        configured = node_size.value
    else:
        configured = lambda n: fallback

    def radius(node) -> float:
        own = node_half_size(node)
        base = own if own is not None else configured(node)
        return float(base) + float(spacing(node) or 0.0)

    return radius


def as_func(value: Optional[NumberOrFunc], default: float = 1.0) -> Callable[[Any], float]:
    if value is None:
        return lambda d: default
    if callable(value):
        return value
    v = float(value)
    return lambda d: v


# --------------------------
# Config dataclasses
# --------------------------
@dataclass(frozen=True)
class LayoutConfig:
    center: Optional[Tuple[float, float]] = None
    width: float = 300.0
    height: float = 300.0
    tick: Optional[Callable[[], None]] = None
    on_layout_end: Optional[Callable[[], None]] = None

    def __post_init__(self):
        c = self.center
        if c is not None:
            if isinstance(c, QPointF):
                c = (c.x(), c.y())
            if not (isinstance(c, (tuple, list)) and len(c) == 2 and all(_is_number(v) for v in c)):
                raise LayoutConfigError(f"Option 'center' must be an (x, y) pair, got {self.center!r}")
            object.__setattr__(self, "center", (float(c[0]), float(c[1])))
        _check_number("width", self.width, minimum=0)
        _check_number("height", self.height, minimum=0)
        _check_callable("tick", self.tick)
        _check_callable("on_layout_end", self.on_layout_end)

    def resolved_center(self) -> QPointF:
        if self.center is not None:
            return QPointF(*self.center)
        return QPointF(self.width / 2.0, self.height / 2.0)


@dataclass(frozen=True)
class GForceConfig(LayoutConfig):
    max_iteration: int = 500
    edge_strength: Optional[NumberOrFunc] = 200.0
    node_strength: Optional[NumberOrFunc] = 1000.0
    coulomb_dis_scale: float = 0.005
    damping: float = 0.9
    max_speed: float = 1000.0
    min_movement: float = 0.5
    interval: float = 0.02
    factor: float = 1.0
    get_mass: Optional[Callable[[Any], float]] = None
    get_center: Optional[Callable[[Any, int], Any]] = None
    link_distance: Optional[NumberOrFunc] = 1.0
    gravity: float = 10.0
    prevent_overlap: bool = True
    node_size: Any = field(default_factory=SizeSpec)
    node_spacing: Any = field(default_factory=SizeSpec)
    worker_enabled: bool = False
    seed: Optional[int] = None

    def __post_init__(self):
        super().__post_init__()
        if not isinstance(self.max_iteration, int) or isinstance(self.max_iteration, bool) \
                or self.max_iteration < 1:
            raise LayoutConfigError(f"Option 'max_iteration' must be an int >= 1, got {self.max_iteration!r}")
        _check_number_or_func("edge_strength", self.edge_strength)
        _check_number_or_func("node_strength", self.node_strength)
        _check_number_or_func("link_distance", self.link_distance)
        _check_number("coulomb_dis_scale", self.coulomb_dis_scale, minimum=0, strict=True)
        _check_number("damping", self.damping, minimum=0)
        _check_number("max_speed", self.max_speed, minimum=0, strict=True)
        _check_number("min_movement", self.min_movement, minimum=0)
        _check_number("interval", self.interval, minimum=0, strict=True)
        _check_number("factor", self.factor)
        _check_number("gravity", self.gravity)
        _check_callable("get_mass", self.get_mass)
        _check_callable("get_center", self.get_center)
        _check_bool("prevent_overlap", self.prevent_overlap)
        _check_bool("worker_enabled", self.worker_enabled)
        if self.seed is not None and (not isinstance(self.seed, int) or isinstance(self.seed, bool)):
            raise LayoutConfigError(f"Option 'seed' must be an int, got {self.seed!r}")
        object.__setattr__(self, "node_size", SizeSpec.of(self.node_size, "node_size"))
        spacing = SizeSpec.of(self.node_spacing, "node_spacing")
        if spacing.kind is SizeKind.PAIR:
            raise LayoutConfigError("Option 'node_spacing' must be a number or a callable.")
        object.__setattr__(self, "node_spacing", spacing)


ORDERINGS = ("topology", "topology-directed", "degree")


@dataclass(frozen=True)
class CircularConfig(LayoutConfig):
    radius: Optional[float] = None
    start_radius: Optional[float] = None
    end_radius: Optional[float] = None
    start_angle: float = 0.0
    end_angle: float = 2 * math.pi
    clockwise: bool = True
    divisions: int = 1
    ordering: Optional[str] = None
    angle_ratio: float = 1.0

    def __post_init__(self):
        super().__post_init__()
        _check_number("radius", self.radius, minimum=0, allow_none=True)
        _check_number("start_radius", self.start_radius, minimum=0, allow_none=True)
        _check_number("end_radius", self.end_radius, minimum=0, allow_none=True)
        _check_number("start_angle", self.start_angle)
        _check_number("end_angle", self.end_angle)
        _check_bool("clockwise", self.clockwise)
        if not isinstance(self.divisions, int) or isinstance(self.divisions, bool) or self.divisions < 1:
            raise LayoutConfigError(f"Option 'divisions' must be an int >= 1, got {self.divisions!r}")
        _check_number("angle_ratio", self.angle_ratio)
        # Unknown orderings are tolerated here and fall back to input order at execute()


def merge_options(config: LayoutConfig, options: Optional[Mapping[str, Any]]) -> LayoutConfig:
    """Return a new config with `options` applied over `config`."""
    if not options:
        return config
    known = {f.name for f in fields(config)}
    changes = {}
    for key, value in options.items():
        name = normalize_option_name(key)
        if name not in known:
            raise LayoutConfigError(f"Unknown option '{key}' for {type(config).__name__}.")
        changes[name] = value
    return replace(config, **changes)
