# hit_objects.py
#
# Raw input events handed to the calculator by the map source. Every event is
# an immutable value; the small closed set of kinds is modelled as separate
# dataclasses so callers can dispatch on the type.

import enum
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

import numpy as np

from .config import TAIL_LENIENCY

PLAYFIELD_CENTRE = (256.0, 192.0)

# Paths are never allowed to exceed this length (osu!pixels).
MAX_PATH_LENGTH = 100000


class NestedKind(enum.Enum):
    HEAD = "head"
    TICK = "tick"
    REPEAT = "repeat"
    TAIL = "tail"


@dataclass(frozen=True)
class NestedEvent:
    """A sub-event inside a slider: its head, ticks, repeats and tail."""
    kind: NestedKind
    time: float
    position: Tuple[float, float]
    path_progress: float = 0.0


class SliderPath:
    """
    A slider's drawn path, stored as a polyline of offsets from the slider head.
    Positions are looked up by arc length so that progress is uniform in distance.
    """

    def __init__(self, points, expected_distance: Optional[float] = None):
        points = np.asarray(points, dtype=float).reshape(-1, 2)
        if len(points) == 0:
            points = np.zeros((1, 2))
        self.points = points - points[0]

        segment_lengths = np.linalg.norm(np.diff(self.points, axis=0), axis=1)
        self.cumulative_length = np.concatenate(([0.0], np.cumsum(segment_lengths)))
        calculated = float(self.cumulative_length[-1])

        if expected_distance is None:
            expected_distance = calculated
        self.distance = float(min(max(expected_distance, 0.0), MAX_PATH_LENGTH))

        # Extend the final segment when the drawn path is shorter than the expected length.
        if self.distance > calculated and len(self.points) > 1 and segment_lengths[-1] > 0:
            direction = (self.points[-1] - self.points[-2]) / segment_lengths[-1]
            self.points[-1] = self.points[-1] + direction * (self.distance - calculated)
            self.cumulative_length[-1] = self.distance

    @classmethod
    def linear(cls, end_offset):
        return cls([(0.0, 0.0), end_offset])

    def position_at(self, progress: float) -> np.ndarray:
        """Offset from the head at the given fraction (0-1) of the path's length."""
        if len(self.points) == 1 or self.distance == 0:
            return self.points[0].copy()
        d = min(max(progress, 0.0), 1.0) * self.distance
        x = np.interp(d, self.cumulative_length, self.points[:, 0])
        y = np.interp(d, self.cumulative_length, self.points[:, 1])
        return np.array([x, y])

    def __repr__(self):
        return f"SliderPath({len(self.points)} points, {self.distance:.1f}px)"


@dataclass(frozen=True)
class HitEvent:
    time: float
    position: Tuple[float, float]
    radius: float
    category: Optional[int] = None
    new_combo: bool = False

    @property
    def end_time(self) -> float:
        return self.time

    @property
    def end_position(self) -> Tuple[float, float]:
        return self.position

    @property
    def combo_value(self) -> int:
        return 1


@dataclass(frozen=True)
class HitCircle(HitEvent):
    pass


@dataclass(frozen=True)
class Slider(HitEvent):
    path: SliderPath = field(default_factory=lambda: SliderPath([(0.0, 0.0)]))
    span_count: int = 1
    duration: float = 0.0
    nested: Tuple[NestedEvent, ...] = ()

    @property
    def end_time(self) -> float:
        return self.time + self.duration

    @property
    def span_duration(self) -> float:
        return self.duration / self.span_count

    @property
    def repeat_count(self) -> int:
        return self.span_count - 1

    @property
    def end_position(self) -> Tuple[float, float]:
        return tuple(np.asarray(self.position) + self.path.position_at(self.span_count % 2))

    @property
    def combo_value(self) -> int:
        return max(1, len(self.nested))

    def path_position_at(self, progress: float) -> np.ndarray:
        """Absolute position along the path (0-1 of a single span)."""
        return np.asarray(self.position, dtype=float) + self.path.position_at(progress)


@dataclass(frozen=True)
class Spinner(HitEvent):
    spin_end_time: float = 0.0

    @property
    def end_time(self) -> float:
        return max(self.time, self.spin_end_time)


@dataclass(frozen=True)
class TinyDroplet(HitEvent):
    """Scores, but does not contribute to combo."""

    @property
    def combo_value(self) -> int:
        return 0


@dataclass(frozen=True)
class Banana(HitEvent):
    """Bonus event: neither scores towards accuracy nor contributes to combo."""

    @property
    def combo_value(self) -> int:
        return 0


class FilterPolicy(enum.Enum):
    # Everything except bonus events.
    SCORING = "scoring"
    # Only events that contribute to combo.
    COMBO = "combo"

    def accepts(self, event: HitEvent) -> bool:
        if isinstance(event, Banana):
            return False
        if self is FilterPolicy.COMBO and isinstance(event, TinyDroplet):
            return False
        return True


@dataclass(frozen=True)
class MapProperties:
    circle_size: float = 5.0
    approach_rate: float = 5.0
    overall_difficulty: float = 5.0
    drain_rate: float = 5.0
    slider_multiplier: float = 1.4
    slider_tick_rate: float = 1.0
    stack_leniency: float = 0.7
    is_convert: bool = False


@dataclass
class Beatmap:
    events: List[HitEvent]
    properties: MapProperties = field(default_factory=MapProperties)

    def max_combo(self) -> int:
        return sum(event.combo_value for event in self.events)

    def count(self, kind) -> int:
        return sum(1 for event in self.events if isinstance(event, kind))


def generate_slider_events(start_time, position, path, span_count, span_duration, tick_distance, velocity):
    """
    Generates the nested events of a slider in time order: head, ticks and
    repeats per span, then the tail at the slider's end.
    """
    position = np.asarray(position, dtype=float)
    length = path.distance
    tick_distance = min(max(tick_distance, 0.0), length)
    min_distance_from_end = velocity * 10

    def at(progress):
        return tuple(float(v) for v in position + path.position_at(progress))

    events = [NestedEvent(NestedKind.HEAD, start_time, tuple(float(v) for v in position), 0.0)]

    if tick_distance != 0:
        for span in range(span_count):
            span_start_time = start_time + span * span_duration
            reversed_span = span % 2 == 1

            ticks = []
            d = tick_distance
            while d <= length:
                if d >= length - min_distance_from_end:
                    break
                path_progress = d / length
                time_progress = 1 - path_progress if reversed_span else path_progress
                ticks.append(NestedEvent(NestedKind.TICK, span_start_time + time_progress * span_duration,
                                         at(path_progress), path_progress))
                d += tick_distance

            if reversed_span:
                ticks.reverse()
            events.extend(ticks)

            if span < span_count - 1:
                progress = (span + 1) % 2
                events.append(NestedEvent(NestedKind.REPEAT, span_start_time + span_duration, at(progress), progress))
    else:
        for span in range(span_count - 1):
            progress = (span + 1) % 2
            events.append(NestedEvent(NestedKind.REPEAT, start_time + (span + 1) * span_duration, at(progress), progress))

    final_progress = span_count % 2
    events.append(NestedEvent(NestedKind.TAIL, start_time + span_count * span_duration, at(final_progress), final_progress))
    return tuple(events)


def make_slider(time, position, radius, path, span_count=1, velocity=1.0, tick_distance=0.0,
                category=None, new_combo=False):
    """
    Builds a Slider with generated nested events.
    velocity is in osu!pixels per ms; tick_distance in osu!pixels (0 disables ticks).
    """
    if span_count < 1:
        raise ValueError("A slider needs at least one span")
    if velocity <= 0:
        raise ValueError("Slider velocity must be positive")
    span_duration = path.distance / velocity
    nested = generate_slider_events(time, position, path, span_count, span_duration, tick_distance, velocity)
    return Slider(time=time, position=tuple(position), radius=radius, category=category, new_combo=new_combo,
                  path=path, span_count=span_count, duration=span_duration * span_count, nested=nested)


def tracking_end_time(slider: Slider) -> float:
    """The time by which the cursor must have finished following the slider."""
    return max(slider.time + slider.duration + TAIL_LENIENCY, slider.time + slider.duration / 2)
