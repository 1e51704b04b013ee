# aim_evaluators.py
#
# Aim difficulty of single objects. Three flavours:
#   - snap aim, evaluated per cursor movement,
#   - flow aim, rewarding changes of spacing and direction in continuous motion,
#   - agility, rewarding fast direction changes at high BPM.

import math
from typing import List, Optional

import numpy as np

from .config import NORMALISED_DIAMETER, NORMALISED_RADIUS
from .difficulty_utils import milliseconds_to_bpm, reverse_lerp, smootherstep, smoothstep
from .hit_objects import Spinner
from .movement import Movement, movement_angle

WIDE_ANGLE_MULTIPLIER = 1.5
ACUTE_ANGLE_MULTIPLIER = 2.55
SLIDER_MULTIPLIER = 1.35
VELOCITY_CHANGE_MULTIPLIER = 0.75
WIGGLE_MULTIPLIER = 1.02

FLOW_AIM_MULTIPLIER = 0.02

# Agility repetition window.
REPETITION_NOTE_LIMIT = 6
REPETITION_TIME_TOLERANCE = 25


def _is_unaimable(current) -> bool:
    previous = current.previous(0)
    return isinstance(current.base, Spinner) or previous is None or isinstance(previous.base, Spinner)


def _wide_angle_bonus(angle: float) -> float:
    return smoothstep(angle, math.radians(40), math.radians(140))


def _acute_angle_bonus(angle: float) -> float:
    return smoothstep(angle, math.radians(140), math.radians(40))


# --- SNAP AIM ---

def _movement_context(current, index: int):
    """The two movements preceding current.movements[index], the second may be None."""
    movements = current.movements
    last = current.previous(0)
    last_last = current.previous(1)

    previous_movement = movements[index - 1] if index > 0 else last.movements[-1]

    if index > 1:
        prev_prev_movement = movements[index - 2]
    elif len(last.movements) > 1:
        prev_prev_movement = last.movements[-2]
    elif last_last is not None and last_last.movements:
        prev_prev_movement = last_last.movements[-1]
    else:
        prev_prev_movement = None

    return previous_movement, prev_prev_movement


def evaluate_aim(current, with_slider_travel: bool) -> float:
    """
    Evaluates the difficulty of aiming the current object, based on cursor
    velocity, angle difficulty, sharp velocity changes and slider difficulty.

    With slider travel the strains of every movement are summed, otherwise only
    the head movement counts.
    """
    if _is_unaimable(current):
        return 0.0

    movement_strains: List[float] = []
    for index, movement in enumerate(current.movements):
        previous_movement, prev_prev_movement = _movement_context(current, index)
        movement_strains.append(_movement_strain(current, movement, previous_movement, prev_prev_movement, index > 0))

    if with_slider_travel:
        return sum(movement_strains)
    return movement_strains[0]


def evaluate_aim_movement(current, movement: Movement) -> float:
    """Snap aim difficulty of one of current's own movements."""
    if _is_unaimable(current):
        return 0.0

    index = current.movements.index(movement)
    previous_movement, prev_prev_movement = _movement_context(current, index)
    return _movement_strain(current, movement, previous_movement, prev_prev_movement, index > 0)


def _movement_strain(current, current_movement: Movement, previous_movement: Movement,
                     prev_prev_movement: Optional[Movement], is_nested: bool) -> float:
    radius = NORMALISED_RADIUS
    diameter = NORMALISED_DIAMETER

    curr_velocity = current_movement.velocity
    prev_velocity = previous_movement.velocity

    wide_angle_bonus = 0.0
    acute_angle_bonus = 0.0
    velocity_change_bonus = 0.0
    wiggle_bonus = 0.0

    aim_strain = curr_velocity

    if prev_prev_movement is not None:
        curr_angle = movement_angle(current_movement, previous_movement)
        last_angle = movement_angle(previous_movement, prev_prev_movement)

        # Rewarding angles, take the smaller velocity as base.
        angle_bonus = min(curr_velocity, prev_velocity)

        shorter = min(current_movement.time, previous_movement.time)
        longer = max(current_movement.time, previous_movement.time)

        if not is_nested and longer < 1.25 * shorter:  # same rhythm
            acute_angle_bonus = _acute_angle_bonus(curr_angle)

            # Penalize angle repetition.
            acute_angle_bonus *= 0.08 + 0.92 * (1 - min(acute_angle_bonus, _acute_angle_bonus(last_angle) ** 3))

            # Only above 300 BPM 1/2 and one diameter of spacing.
            acute_angle_bonus *= (angle_bonus
                                  * smootherstep(milliseconds_to_bpm(current_movement.time, 2), 300, 400)
                                  * smootherstep(current_movement.distance, diameter, diameter * 2))

        wide_angle_bonus = _wide_angle_bonus(curr_angle)

        # Penalize angle repetition.
        wide_angle_bonus *= 1 - min(wide_angle_bonus, _wide_angle_bonus(last_angle) ** 3)

        # Full wide angle bonus from one diameter onwards.
        wide_angle_bonus *= angle_bonus * smootherstep(current_movement.distance, 0, diameter)

        # Wiggles: jumps of [radius, 3 * diameter] at angles below 110 degrees.
        wiggle_bonus = (angle_bonus
                        * smootherstep(current_movement.distance, radius, diameter)
                        * reverse_lerp(current_movement.distance, diameter * 3, diameter) ** 1.8
                        * smootherstep(curr_angle, math.radians(110), math.radians(60))
                        * smootherstep(previous_movement.distance, radius, diameter)
                        * reverse_lerp(previous_movement.distance, diameter * 3, diameter) ** 1.8
                        * smootherstep(last_angle, math.radians(110), math.radians(60)))

        last = current.previous(0)
        last2 = current.previous(2)
        if last2 is not None:
            # Back and forth through a middle point gets less wide bonus.
            distance = float(np.linalg.norm(np.subtract(last2.base.position, last.base.position)))
            if distance < 1:
                wide_angle_bonus *= 1 - 0.35 * (1 - distance)

    if max(prev_velocity, curr_velocity) != 0:
        # Scale with ratio of difference compared to 0.5 * max dist.
        dist_ratio = smoothstep(abs(prev_velocity - curr_velocity) / max(prev_velocity, curr_velocity), 0, 1)

        # Reward for % distance up to 125 / strain time for overlaps where velocity is still changing.
        overlap_velocity_buff = min(diameter * 1.25 / min(current_movement.time, previous_movement.time),
                                    abs(prev_velocity - curr_velocity))

        velocity_change_bonus = overlap_velocity_buff * dist_ratio

        # Penalize for rhythm changes.
        velocity_change_bonus *= (min(current_movement.time, previous_movement.time)
                                  / max(current_movement.time, previous_movement.time)) ** 2

    aim_strain += wiggle_bonus * WIGGLE_MULTIPLIER
    aim_strain += velocity_change_bonus * VELOCITY_CHANGE_MULTIPLIER

    # Acute or wide angle bonus, whichever is larger.
    aim_strain += max(acute_angle_bonus * ACUTE_ANGLE_MULTIPLIER, wide_angle_bonus * WIDE_ANGLE_MULTIPLIER)

    aim_strain *= current.small_circle_bonus

    if is_nested:
        aim_strain *= SLIDER_MULTIPLIER

    return aim_strain


# --- FLOW AIM ---

def evaluate_flow_aim(current) -> float:
    """
    Flow aim: rewards jerk (change of spacing change) and direction changes,
    scaled by squared jump distance over time. Looks one object ahead to nerf
    the last note of spaced triples.
    """
    if _is_unaimable(current) or current.index <= 1:
        return 0.0

    prev = current.previous(0)
    prev2 = current.previous(1)

    curr_distance_difference = abs(current.minimum_jump_distance - prev.minimum_jump_distance)
    prev_distance_difference = abs(prev.minimum_jump_distance - prev2.minimum_jump_distance)

    jerk = abs(curr_distance_difference - prev_distance_difference)

    angle_difference_adjusted = math.sin(_direction_change(current, prev) / 2) * 180

    next_obj = current.next(0)
    prev3 = current.previous(2)

    # The last note of a spaced triple does not show its flow difficulty through its angle.
    if (prev3 is not None and abs(prev2.adjusted_delta_time - prev3.adjusted_delta_time) > 25
            and next_obj is not None and abs(current.adjusted_delta_time - next_obj.adjusted_delta_time) > 25
            and current.angle is not None):
        straightness = smootherstep(current.angle, math.radians(180), math.radians(90))
        angle_difference_adjusted *= straightness
        jerk *= straightness

    if angle_difference_adjusted > 0:
        angular_change_bonus = max(0.0, 0.6 * math.log10(angle_difference_adjusted))
    else:
        angular_change_bonus = 0.0

    jerk_factor = min(1.0, jerk / 15)
    adjusted_distance_scale = 0.85 + jerk_factor + angular_change_bonus * jerk_factor

    distance_factor = current.lazy_jump_distance ** 2 * adjusted_distance_scale

    difficulty = distance_factor / current.adjusted_delta_time
    difficulty *= current.small_circle_bonus

    return difficulty * FLOW_AIM_MULTIPLIER


def _direction_change(current, previous) -> float:
    if current.angle_signed is None or previous.angle_signed is None:
        return 0.0
    if current.angle is None or previous.angle is None:
        return 0.0

    signed_angle_difference = abs(current.angle_signed - previous.angle_signed)

    # Patterns in a straight line can be aimed without turning.
    signed_angle_difference *= smootherstep(current.angle, math.radians(180), math.radians(90))

    angle_difference = abs(current.angle - previous.angle)
    return max(signed_angle_difference, angle_difference)


# --- AGILITY ---

def evaluate_agility(current, with_cheesability: bool) -> float:
    """
    Agility: a BPM-driven bonus (1 at 270 BPM 1/2) for changing direction
    quickly. With cheesability both intervals are widened by the timing slack
    a player could exploit.
    """
    if _is_unaimable(current) or current.index <= 1:
        return 0.0

    prev = current.previous(0)

    curr_strain_time = current.adjusted_delta_time
    last_strain_time = prev.adjusted_delta_time

    if with_cheesability:
        curr_strain_time += current.extra_delta_time
        last_strain_time += prev.extra_delta_time

    prev_distance_multiplier = smootherstep(prev.lazy_jump_distance / NORMALISED_RADIUS, 0.5, 1)

    # A stacked previous note means there was no movement since two notes back.
    curr_time = curr_strain_time + last_strain_time * (1 - prev_distance_multiplier)
    prev_time = last_strain_time

    base_factor = 1.0
    if current.angle is not None and prev.angle is not None:
        base_factor = 1 - 0.4 * smoothstep(prev.angle, math.radians(90), math.radians(40)) \
            * _agility_angle_difference(current.angle, prev.angle)

    # Penalize angle repetition.
    angle_repetition_nerf = (base_factor + (1 - base_factor) * angle_vector_repetition(current)) ** 2

    agility_bonus = max(0.0, (milliseconds_to_bpm(max(curr_time, prev_time), 2) / 270.0) ** 4.0 - 1)

    return agility_bonus * angle_repetition_nerf * 10 * current.small_circle_bonus


def _agility_angle_difference(current_angle: float, last_angle: float) -> float:
    return math.cos(2 * min(math.pi / 4, abs(current_angle - last_angle)))


def angle_vector_repetition(current) -> float:
    """
    1 for varied jump directions, down to 0.25 / count^2 when the last few
    equally timed jumps all point the same way.
    """
    constant_angle_count = 0.0
    notes_processed = 0
    index = 0

    while notes_processed < REPETITION_NOTE_LIMIT:
        loop_obj = current.previous(index)
        if loop_obj is None:
            break
        if abs(current.delta_time - loop_obj.delta_time) > REPETITION_TIME_TOLERANCE:
            break

        if loop_obj.normalised_vector_angle is not None and current.normalised_vector_angle is not None:
            angle_difference = abs(current.normalised_vector_angle - loop_obj.normalised_vector_angle)
            constant_angle_count += math.cos(8 * min(math.pi / 16, angle_difference))

        notes_processed += 1
        index += 1

    if constant_angle_count <= 0:
        return 1.0
    return min(0.5 / constant_angle_count, 1.0) ** 2
