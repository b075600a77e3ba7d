from __future__ import annotations

import math

from pygame.math import Vector2

UP = Vector2(0.0, 1.0)


def _clamp_length_max(vector: Vector2, max_length: float) -> Vector2:
    if max_length <= 0:
        return Vector2()
    magnitude_sq = vector.length_squared()
    if magnitude_sq <= max_length * max_length:
        return Vector2(vector)
    if magnitude_sq == 0:
        return Vector2()
    return vector * (max_length / math.sqrt(magnitude_sq))


def _clamp_length(vector: Vector2, min_length: float, max_length: float) -> Vector2:
    magnitude_sq = vector.length_squared()
    if magnitude_sq < 1e-18 or not math.isfinite(magnitude_sq):
        return Vector2()
    magnitude = math.sqrt(magnitude_sq)
    if magnitude < min_length:
        return vector * (min_length / magnitude)
    if magnitude > max_length:
        return vector * (max_length / magnitude)
    return Vector2(vector)


def _cosine_similarity(a: Vector2, b: Vector2) -> float:
    denom = a.length() * b.length()
    if denom <= 0.0:
        return 0.0
    similarity = a.dot(b) / denom
    if not math.isfinite(similarity):
        return 0.0
    return _clamp_value(similarity, -1.0, 1.0)


def _safe_normalize(vector: Vector2) -> Vector2:
    magnitude_sq = vector.length_squared()
    if magnitude_sq < 1e-10:
        return Vector2()
    return vector / math.sqrt(magnitude_sq)


def _heading_from_velocity(vector: Vector2) -> float:
    if vector.length_squared() < 1e-12:
        return 0.0
    return math.atan2(vector.y, vector.x)


def _angle_between(a: Vector2, b: Vector2) -> float:
    # Signed angle rotating a onto b, in (-pi, pi].
    return math.atan2(a.x * b.y - a.y * b.x, a.dot(b))


def _wrap_angle(angle: float) -> float:
    wrapped = math.fmod(angle + math.pi, 2.0 * math.pi)
    if wrapped <= 0.0:
        wrapped += 2.0 * math.pi
    return wrapped - math.pi


def _hue_from_direction(direction: Vector2) -> float:
    return 360.0 * (_angle_between(direction, UP) + math.pi) / (2.0 * math.pi)


def _clamp_value(value: float, min_value: float, max_value: float) -> float:
    return max(min_value, min(max_value, value))
