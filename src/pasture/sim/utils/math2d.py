from __future__ import annotations

import math

from pygame.math import Vector2


def _clamp_value(value: float, min_value: float, max_value: float) -> float:
    return max(min_value, min(max_value, value))


def _sigmoid(value: float) -> float:
    if value >= 0.0:
        z = math.exp(-value)
        return 1.0 / (1.0 + z)
    z = math.exp(value)
    return z / (1.0 + z)


def _wrap_angle(angle: float) -> float:
    """Signed shortest representation of ``angle`` in [-pi, pi]."""
    return math.atan2(math.sin(angle), math.cos(angle))


def _wrap_coordinate(value: float, span: float) -> float:
    if value < 0.0:
        return value + span
    if value > span:
        return value - span
    return value


def _wrap_position(position: Vector2, width: float, height: float) -> None:
    position.update(_wrap_coordinate(position.x, width), _wrap_coordinate(position.y, height))


def _dist_sq_xy(ax: float, ay: float, bx: float, by: float) -> float:
    dx = ax - bx
    dy = ay - by
    return dx * dx + dy * dy
