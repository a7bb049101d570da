# utils_geom.py

from PyQt5.QtCore import QPointF
from typing import Tuple
import math

EPS = 1e-9

def v_polar(center: QPointF, r: float, theta_rad: float) -> QPointF:
    # Point at angle theta (screen coordinates, y down) and distance r from center
    return QPointF(center.x() + math.cos(theta_rad) * r, center.y() + math.sin(theta_rad) * r)

def v_clamp_len(x: float, y: float, max_len: float) -> Tuple[float, float]:
    L = math.hypot(x, y)
    if L > max_len:
        s = max_len / L
        return x * s, y * s
    return x, y


# --------------------------
# Deterministic tie-breaking
# --------------------------
def hash_u32(*args) -> int:
    # FNV-1a over the integer arguments
    h = 0x811C9DC5
    for a in args:
        x = int(a) & 0xffffffff
        h ^= x
        h = (h * 0x01000193) & 0xffffffff
    return h

def hash_direction(i: int, j: int) -> Tuple[float, float]:
    """
    Unit vector derived from the (i, j) pair. Used when two nodes sit on
    exactly the same point and the separating direction is undefined.
    """
    ang = (hash_u32(i, j) / 4294967296.0) * 2.0 * math.pi
    return math.cos(ang), math.sin(ang)
