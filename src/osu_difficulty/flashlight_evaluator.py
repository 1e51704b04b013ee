# flashlight_evaluator.py
#
# Memory difficulty under a restricted field of view: how far away, how
# recently and how visibly the last few objects were placed.

import numpy as np

from .hit_objects import Slider, Spinner

MAX_OPACITY_BONUS = 0.4
HIDDEN_BONUS = 0.2
MIN_VELOCITY = 0.5
SLIDER_MULTIPLIER = 1.3
MIN_ANGLE_MULTIPLIER = 0.2
LOOKBACK = 10


def evaluate_flashlight(current, hidden: bool) -> float:
    """
    Sums distance over cumulative time for up to ten previous objects, with
    bonuses for objects that are already faded and for fast sliders, and nerfs
    for stacks, short jumps and repeated angles.
    """
    if isinstance(current.base, Spinner):
        return 0.0

    scaling_factor = 52.0 / current.base.radius
    position = np.asarray(current.base.position, dtype=float)

    small_dist_nerf = 1.0
    cumulative_strain_time = 0.0
    result = 0.0
    last_obj = current
    angle_repeat_count = 0.0

    for i in range(min(current.index, LOOKBACK)):
        loop_obj = current.previous(i)
        cumulative_strain_time += last_obj.adjusted_delta_time

        if not isinstance(loop_obj.base, Spinner):
            jump_distance = float(np.linalg.norm(position - np.asarray(loop_obj.base.end_position, dtype=float)))

            # Objects inside the visible radius are easy to see.
            if i == 0:
                small_dist_nerf = min(1.0, jump_distance / 75.0)

            # Only the first object of a stack counts.
            stack_nerf = min(1.0, (loop_obj.lazy_jump_distance / scaling_factor) / 25.0)

            opacity_bonus = 1.0 + MAX_OPACITY_BONUS * (1.0 - current.opacity_at(loop_obj.base.time, hidden))

            result += stack_nerf * opacity_bonus * scaling_factor * jump_distance / cumulative_strain_time

            if loop_obj.angle is not None and current.angle is not None:
                # Older objects count less towards the nerf.
                if abs(loop_obj.angle - current.angle) < 0.02:
                    angle_repeat_count += max(1.0 - 0.1 * i, 0.0)

        last_obj = loop_obj

    result = (small_dist_nerf * result) ** 2

    if hidden:
        result *= 1.0 + HIDDEN_BONUS

    result *= MIN_ANGLE_MULTIPLIER + (1.0 - MIN_ANGLE_MULTIPLIER) / (angle_repeat_count + 1.0)

    slider_bonus = 0.0
    if isinstance(current.base, Slider):
        # Travel distance independent of circle size.
        pixel_travel_distance = current.lazy_travel_distance / scaling_factor

        slider_bonus = max(0.0, pixel_travel_distance / current.travel_time - MIN_VELOCITY) ** 0.5
        slider_bonus *= pixel_travel_distance

        # Repeats need less memorisation.
        if current.base.repeat_count > 0:
            slider_bonus /= current.base.repeat_count + 1

    result += slider_bonus * SLIDER_MULTIPLIER
    return result
