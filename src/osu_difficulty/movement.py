"""
Cursor movements: the unit most evaluators reason about.

A movement runs from one cursor position/time/radius to another. Distances are
normalised so that objects of different sizes produce comparable jumps.
"""
import enum
from dataclasses import dataclass, replace

import numpy as np

from . import config


class DistanceModel(enum.Enum):
    # Each endpoint is scaled by its own radius.
    PER_ENDPOINT = "per_endpoint"
    # Both endpoints are scaled by the larger of the two radii.
    MAX_RADIUS = "max_radius"


def normalised_distance(start, end, start_radius, end_radius, model=None):
    """
    Distance between two cursor positions in units where every object has
    NORMALISED_RADIUS.

    With PER_ENDPOINT and differing radii the result depends on where on the
    playfield the endpoints lie, not only on their separation: (100, 0) at
    radius 20 and (200, 0) at radius 40 are 0 apart. MAX_RADIUS scales both
    endpoints by the larger radius and has no such dependence. Within one map
    all radii are equal and both models agree.
    """
    if model is None:
        model = DistanceModel(config.MOVEMENT_DISTANCE_MODEL)
    start = np.asarray(start, dtype=float)
    end = np.asarray(end, dtype=float)

    if model is DistanceModel.MAX_RADIUS:
        scale = config.NORMALISED_RADIUS / max(start_radius, end_radius)
        return float(np.linalg.norm(end * scale - start * scale))

    return float(np.linalg.norm(end * (config.NORMALISED_RADIUS / end_radius)
                                - start * (config.NORMALISED_RADIUS / start_radius)))


@dataclass(frozen=True)
class Movement:
    start: tuple
    start_time: float
    start_radius: float
    end: tuple
    end_time: float
    end_radius: float
    is_nested: bool = False

    @property
    def time(self) -> float:
        """Duration, floored so that velocities stay finite."""
        return max(self.end_time - self.start_time, config.MIN_DELTA_TIME)

    @property
    def distance(self) -> float:
        return normalised_distance(self.start, self.end, self.start_radius, self.end_radius)

    @property
    def velocity(self) -> float:
        return self.distance / self.time

    @property
    def vector(self) -> np.ndarray:
        """Raw (unnormalised) displacement."""
        return np.asarray(self.end, dtype=float) - np.asarray(self.start, dtype=float)

    def with_start_of(self, other: "Movement") -> "Movement":
        """This movement, but beginning where other begins."""
        return replace(self, start=other.start, start_time=other.start_time, start_radius=other.start_radius)

    def __str__(self):
        return f"{self.start}->{self.end} ({self.distance:.2f}px, {self.time:.2f}ms)"


def signed_angle(v1, v2) -> float:
    """Angle from v1 to v2 in (-pi, pi], via atan2(cross, dot)."""
    dot = float(v1[0] * v2[0] + v1[1] * v2[1])
    det = float(v1[0] * v2[1] - v1[1] * v2[0])
    return float(np.arctan2(det, dot))


def movement_angle(current: Movement, previous: Movement) -> float:
    """
    Unsigned angle at the joint between previous and current, measured between
    the reversed previous movement and the current one (pi for a straight line).
    """
    v1 = np.asarray(previous.start, dtype=float) - np.asarray(previous.end, dtype=float)
    v2 = np.asarray(current.end, dtype=float) - np.asarray(current.start, dtype=float)
    return abs(signed_angle(v1, v2))


def movement_angle_signed(current: Movement, previous: Movement) -> float:
    v1 = np.asarray(previous.start, dtype=float) - np.asarray(previous.end, dtype=float)
    v2 = np.asarray(current.end, dtype=float) - np.asarray(current.start, dtype=float)
    return signed_angle(v1, v2)


def distance_point_to_movement(point, movement: Movement) -> float:
    """Raw distance from point to the closest point on the movement's segment."""
    start = np.asarray(movement.start, dtype=float)
    ab = movement.vector
    point = np.asarray(point, dtype=float)
    length_squared = float(np.dot(ab, ab))
    if length_squared == 0:
        return float(np.linalg.norm(point - start))
    t = min(max(float(np.dot(point - start, ab)) / length_squared, 0.0), 1.0)
    return float(np.linalg.norm(point - (start + t * ab)))


def stays_within_radius(movement_a: Movement, movement_b: Movement, radius: float) -> bool:
    """Whether the shorter movement lies within radius of the longer one's segment."""
    smallest = movement_a if movement_a.distance < movement_b.distance else movement_b
    biggest = movement_a if movement_a.distance > movement_b.distance else movement_b

    d_start = distance_point_to_movement(smallest.start, biggest)
    d_end = distance_point_to_movement(smallest.end, biggest)
    return d_start <= radius and d_end <= radius
