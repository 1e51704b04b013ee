# difficulty_object.py
#
# Turns raw hit events into the annotated sequence that every skill walks.
#
# Building happens in explicit phases so that no object ever edits another
# after construction:
#   1. per object scalars and the lazy slider decomposition,
#   2. a merge pass that rewrites each object's nested movements using the
#      head-to-head jump to its successor,
#   3. head movements (which start where the predecessor's last movement ends),
#   4. jump/angle features and same-category streaks.

import math
from typing import List, Optional

import numpy as np

from . import config
from .hit_objects import FilterPolicy, HitCircle, MapProperties, NestedKind, Slider, Spinner, tracking_end_time
from .mods import get_ar_ms, get_timing_windows
from .movement import Movement, signed_angle, stays_within_radius
from .utils import print_status


class DifficultyObject:
    """
    One annotated object of the difficulty sequence.

    Created only by build_difficulty_objects(); read-only afterwards.
    Times are in rate-adjusted milliseconds unless stated otherwise.
    """

    def __init__(self, base, last_base, last_last_base, index, objects, clock_rate, properties):
        self.base = base
        self.last_base = last_base
        self.last_last_base = last_last_base
        self.index = index
        self._objects = objects
        self.clock_rate = clock_rate

        self.start_time = base.time / clock_rate
        self.end_time = base.end_time / clock_rate
        self.delta_time = (base.time - last_base.time) / clock_rate
        # Capped to prevent difficulty calculation breaking from simultaneous objects.
        self.adjusted_delta_time = max(self.delta_time, config.MIN_DELTA_TIME)

        self.radius = base.radius
        self.scaling_factor = config.NORMALISED_RADIUS / base.radius
        self.small_circle_bonus = max(1.0, 1.0 + (30 - base.radius) / 40)

        windows = get_timing_windows(properties.overall_difficulty)
        self.hit_window_great = 2 * windows['300'] / clock_rate
        # Timing slack a player can borrow by hitting off-centre in the great window.
        self.extra_delta_time = self.hit_window_great / 2

        self.time_preempt = get_ar_ms(properties.approach_rate)

        self.movements = ()

        self.lazy_end_position = None
        self.lazy_travel_time = 0.0
        self.lazy_travel_distance = 0.0
        self.travel_distance = 0.0
        self.travel_time = 0.0

        self.lazy_jump_distance = 0.0
        self.minimum_jump_distance = 0.0
        self.minimum_jump_time = self.adjusted_delta_time
        self.angle = None
        self.angle_signed = None
        self.normalised_vector_angle = None

        # Same-category streak data (stamina).
        self.streak_position = 0
        self.category_index = -1
        self._category_objects = None
        self.previous_category_change = None
        self.next_category_change = None

    def __repr__(self):
        return (f"DifficultyObject(index={self.index}, {type(self.base).__name__} @ {self.start_time:.1f}ms, "
                f"{len(self.movements)} movements)")

    def previous(self, backwards_index: int) -> Optional["DifficultyObject"]:
        """The object backwards_index + 1 places earlier, or None."""
        index = self.index - (backwards_index + 1)
        if index < 0:
            return None
        return self._objects[index]

    def next(self, forwards_index: int) -> Optional["DifficultyObject"]:
        index = self.index + forwards_index + 1
        if index >= len(self._objects):
            return None
        return self._objects[index]

    @property
    def is_note(self) -> bool:
        """Whether this object takes part in same-category streaks."""
        return isinstance(self.base, HitCircle) and self.base.category is not None

    def previous_same_category(self, backwards_index: int) -> Optional["DifficultyObject"]:
        if self._category_objects is None:
            return None
        index = self.category_index - (backwards_index + 1)
        if index < 0:
            return None
        return self._category_objects[index]

    @property
    def end_cursor_position(self) -> np.ndarray:
        if self.lazy_end_position is not None:
            return np.asarray(self.lazy_end_position, dtype=float)
        return np.asarray(self.base.position, dtype=float)

    def opacity_at(self, time: float, hidden: bool) -> float:
        """Visibility (0-1) of this object at the given unscaled map time."""
        if time > self.base.time:
            # Treated as invisible once its start time has passed.
            return 0.0

        fade_in_start_time = self.base.time - self.time_preempt
        if hidden:
            fade_in_duration = self.time_preempt * 0.4
        else:
            fade_in_duration = 400 * min(1.0, self.time_preempt / 450)

        fade_in = min(max((time - fade_in_start_time) / fade_in_duration, 0.0), 1.0)
        if not hidden:
            return fade_in

        fade_out_start_time = self.base.time - self.time_preempt + fade_in_duration
        fade_out_duration = self.time_preempt * config.HIDDEN_FADE_OUT_DURATION_MULTIPLIER
        return min(fade_in, 1.0 - min(max((time - fade_out_start_time) / fade_out_duration, 0.0), 1.0))

    def doubletapness(self, next_object: Optional["DifficultyObject"]) -> float:
        """How possible it is (0-1) to doubletap this object together with the next one."""
        if next_object is None:
            return 0.0

        curr_delta_time = max(1.0, self.delta_time)
        next_delta_time = max(1.0, next_object.delta_time)
        delta_difference = abs(next_delta_time - curr_delta_time)
        speed_ratio = curr_delta_time / max(curr_delta_time, delta_difference)
        window_ratio = min(1.0, curr_delta_time / self.hit_window_great) ** 2
        return 1.0 - speed_ratio ** (1 - window_ratio)


def build_difficulty_objects(events, clock_rate=1.0, properties=None, policy=FilterPolicy.SCORING):
    """
    Builds the annotated sequence for a list of raw events.

    The first retained event only serves as the predecessor of the second, so n
    events yield n - 1 objects; fewer than two events yield an empty list.
    """
    if clock_rate <= 0:
        raise ValueError(f"Clock rate must be positive, got {clock_rate}")
    if properties is None:
        properties = MapProperties()

    events = list(events)
    filtered = sorted((e for e in events if policy.accepts(e)), key=lambda e: e.time)
    objects: List[DifficultyObject] = []

    for i in range(1, len(filtered)):
        last_last = filtered[i - 2] if i > 1 else None
        obj = DifficultyObject(filtered[i], filtered[i - 1], last_last, len(objects), objects, clock_rate, properties)
        obj.movements = _compute_slider_movements(obj)
        objects.append(obj)

    for current, following in zip(objects, objects[1:]):
        current.movements = merge_nested_movements(current.movements, head_to_head_movement(current, following),
                                                   following.scaling_factor)

    for obj in objects:
        obj.movements = (_head_movement(obj),) + obj.movements

    for obj in objects:
        _compute_jump_features(obj)

    _assign_category_streaks(objects)

    print_status(f"Built {len(objects)} difficulty objects from {len(filtered)} events "
                 f"({len(events) - len(filtered)} filtered)", level="DEBUG")
    return objects


def head_to_head_movement(previous: DifficultyObject, current: DifficultyObject) -> Movement:
    return Movement(
        start=tuple(previous.base.position),
        start_time=previous.start_time,
        start_radius=previous.base.radius,
        end=tuple(current.base.position),
        end_time=current.start_time,
        end_radius=current.base.radius,
    )


def merge_nested_movements(nested, head_to_head: Movement, scaling_factor: float):
    """
    Returns a corrected copy of an object's nested movements given the direct
    jump to the next object.

    Nested movements that retrace the head-to-head jump are dropped, but only
    when every movement from the first retracing one to the end of the list
    also retraces it. Short nested movements (other than the last) are folded
    into the movement that follows them.
    """
    working = list(nested)
    to_remove = set()
    radius = config.ASSUMED_SLIDER_RADIUS / scaling_factor

    for i, movement in enumerate(working):
        if stays_within_radius(head_to_head, movement, radius):
            to_remove.add(i)
        elif to_remove:
            # The cursor has to move for this one anyway, so all earlier ones are needed too.
            to_remove.clear()
            break

    for i in range(len(working) - 1):
        if working[i].distance < config.ASSUMED_SLIDER_RADIUS:
            working[i + 1] = working[i + 1].with_start_of(working[i])
            to_remove.add(i)

    return tuple(m for i, m in enumerate(working) if i not in to_remove)


def _head_movement(obj: DifficultyObject) -> Movement:
    previous = obj.previous(0)
    if previous is not None:
        last_movement = previous.movements[-1]
        start, start_time, start_radius = last_movement.end, last_movement.end_time, last_movement.end_radius
    else:
        start = tuple(obj.last_base.end_position)
        start_time = obj.last_base.time / obj.clock_rate
        start_radius = obj.last_base.radius

    return Movement(
        start=start,
        start_time=start_time,
        start_radius=start_radius,
        end=tuple(obj.base.position),
        end_time=obj.start_time,
        end_radius=obj.base.radius,
    )


def _compute_slider_movements(obj: DifficultyObject):
    """
    Follows a slider's nested events the lazy way: the cursor only moves once
    it would otherwise leave the assumed follow radius. Sets the lazy end and
    travel values on obj and returns its nested movements.
    """
    slider = obj.base
    if not isinstance(slider, Slider):
        return ()

    if not slider.nested:
        raise ValueError(f"Slider at {slider.time}ms has no nested events")

    nested = list(slider.nested)
    tracking_end = tracking_end_time(slider)

    ticks = [n for n in nested if n.kind is NestedKind.TICK]
    last_tick = ticks[-1] if ticks else None
    if last_tick is not None and last_tick.time > tracking_end:
        tracking_end = last_tick.time
        # Walk order puts the late tick last, to keep the known output.
        nested.remove(last_tick)
        nested.append(last_tick)

    obj.lazy_travel_time = tracking_end - slider.time

    end_time_min = obj.lazy_travel_time / slider.span_duration if slider.span_duration > 0 else 0.0
    if end_time_min % 2 >= 1:
        end_time_min = 1 - end_time_min % 1
    else:
        end_time_min %= 1

    lazy_end = slider.path_position_at(end_time_min)

    cursor = np.asarray(slider.position, dtype=float)
    cursor_time = slider.time
    current_radius = config.NORMALISED_RADIUS
    scaling_factor = obj.scaling_factor
    clock_rate = obj.clock_rate

    movements = []
    for i in range(1, len(nested)):
        nested_event = nested[i]
        current_movement = np.asarray(nested_event.position, dtype=float) - cursor
        new_time = nested_event.time
        nested_radius = config.ASSUMED_SLIDER_RADIUS
        is_last = i == len(nested) - 1

        if is_last:
            # Take the lazy end instead of the real end when it is the shorter move.
            lazy_movement = lazy_end - cursor
            if np.linalg.norm(lazy_movement) < np.linalg.norm(current_movement):
                current_movement = lazy_movement
                new_time = tracking_end

        movement_length = float(np.linalg.norm(current_movement)) * scaling_factor

        if movement_length > nested_radius:
            length_multiplier = (movement_length - nested_radius) / movement_length
            new_position = cursor + current_movement * length_multiplier

            movements.append(Movement(
                start=tuple(cursor),
                start_time=cursor_time / clock_rate,
                start_radius=current_radius / scaling_factor,
                end=tuple(new_position),
                end_time=new_time / clock_rate,
                end_radius=nested_radius / scaling_factor,
                is_nested=True,
            ))
            obj.lazy_travel_distance += movement_length - nested_radius

            cursor = new_position
            cursor_time = new_time
            current_radius = nested_radius

        if is_last:
            lazy_end = cursor

    obj.lazy_end_position = tuple(float(v) for v in lazy_end)
    obj.travel_distance = obj.lazy_travel_distance * math.pow(1 + slider.repeat_count / 2.5, 1.0 / 2.5)
    obj.travel_time = max(obj.lazy_travel_time / clock_rate, config.MIN_DELTA_TIME)
    return tuple(movements)


def _compute_jump_features(obj: DifficultyObject):
    if isinstance(obj.base, Spinner) or isinstance(obj.last_base, Spinner):
        return

    scaling_factor = obj.scaling_factor
    position = np.asarray(obj.base.position, dtype=float)
    previous = obj.previous(0)

    if previous is not None:
        last_cursor = previous.end_cursor_position
    else:
        last_cursor = np.asarray(obj.last_base.position, dtype=float)

    obj.lazy_jump_distance = float(np.linalg.norm(position * scaling_factor - last_cursor * scaling_factor))
    obj.minimum_jump_time = obj.adjusted_delta_time
    obj.minimum_jump_distance = obj.lazy_jump_distance

    if isinstance(obj.last_base, Slider) and previous is not None:
        last_travel_time = max(previous.lazy_travel_time / obj.clock_rate, config.MIN_DELTA_TIME)
        obj.minimum_jump_time = max(obj.adjusted_delta_time - last_travel_time, config.MIN_DELTA_TIME)

        tail_position = np.asarray(obj.last_base.end_position, dtype=float)
        tail_jump_distance = float(np.linalg.norm(tail_position - position)) * scaling_factor
        obj.minimum_jump_distance = max(0.0, min(
            obj.lazy_jump_distance - (config.MAXIMUM_SLIDER_RADIUS - config.ASSUMED_SLIDER_RADIUS),
            tail_jump_distance - config.MAXIMUM_SLIDER_RADIUS,
        ))

    jump = position - last_cursor
    if np.linalg.norm(jump) > 0:
        # Direction of the jump with its sign folded away.
        obj.normalised_vector_angle = math.atan2(abs(jump[1]), abs(jump[0]))

    if obj.last_last_base is not None and not isinstance(obj.last_last_base, Spinner):
        previous_previous = obj.previous(1)
        if previous_previous is not None:
            last_last_cursor = previous_previous.end_cursor_position
        else:
            last_last_cursor = np.asarray(obj.last_last_base.position, dtype=float)

        v1 = last_last_cursor - np.asarray(obj.last_base.position, dtype=float)
        v2 = position - last_cursor
        obj.angle_signed = signed_angle(v1, v2)
        obj.angle = abs(obj.angle_signed)


def _assign_category_streaks(objects):
    notes = [obj for obj in objects if obj.is_note]
    by_category = {}

    for i, note in enumerate(notes):
        category = note.base.category
        same = by_category.setdefault(category, [])
        note.category_index = len(same)
        note._category_objects = same
        same.append(note)

        if i > 0 and notes[i - 1].base.category == category:
            note.streak_position = notes[i - 1].streak_position + 1
        else:
            note.streak_position = 0

        change_index = i - note.streak_position - 1
        note.previous_category_change = notes[change_index] if change_index >= 0 else None

    next_change = None
    for i in range(len(notes) - 1, -1, -1):
        if i + 1 < len(notes) and notes[i + 1].base.category != notes[i].base.category:
            next_change = notes[i + 1]
        notes[i].next_category_change = next_change
