# speed_evaluator.py
#
# Tapping speed difficulty of a single object.

from .config import NORMALISED_DIAMETER
from .difficulty_utils import bpm_to_milliseconds, milliseconds_to_bpm
from .hit_objects import Spinner
from .mods import ModSet

SINGLE_SPACING_THRESHOLD = NORMALISED_DIAMETER * 1.25
# 200 BPM 1/4th
MIN_SPEED_BONUS = 200
SPEED_BALANCING_FACTOR = 40
DISTANCE_MULTIPLIER = 0.9


def evaluate_speed(current, mods=None) -> float:
    """
    Evaluates the difficulty of tapping the current object, based on time since
    the previous object, spacing (up to 125 normalised units) and how easily
    it can be doubletapped together with the next object.
    """
    if isinstance(current.base, Spinner):
        return 0.0

    mods = ModSet(mods or ())
    previous = current.previous(0)

    strain_time = current.adjusted_delta_time
    doubletapness = 1.0 - current.doubletapness(current.next(0))

    # Cap deltatime to the hit window so that patterns within it are treated as equally hard.
    strain_time /= min(max((strain_time / current.hit_window_great) / 0.93, 0.92), 1.0)

    speed_bonus = 0.0
    if milliseconds_to_bpm(strain_time) > MIN_SPEED_BONUS:
        speed_bonus = 0.75 * ((bpm_to_milliseconds(MIN_SPEED_BONUS) - strain_time) / SPEED_BALANCING_FACTOR) ** 2

    travel_distance = previous.travel_distance if previous is not None else 0.0
    distance = min(travel_distance + current.minimum_jump_distance, SINGLE_SPACING_THRESHOLD)

    distance_bonus = (distance / SINGLE_SPACING_THRESHOLD) ** 3.95 * DISTANCE_MULTIPLIER
    if "AP" in mods:
        distance_bonus = 0.0

    difficulty = (1 + speed_bonus + distance_bonus) * 1000 / strain_time
    return difficulty * doubletapness
