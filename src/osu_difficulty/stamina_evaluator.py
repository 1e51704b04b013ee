# stamina_evaluator.py
#
# Finger stamina: how soon the finger that must hit this note was last used.
# Notes alternate between categories (colours); near a category change only two
# fingers are usable, otherwise four.

from .config import STAMINA_FINGER_CHANGE_WINDOW

BASE_STRAIN = 0.5


def speed_bonus(interval: float) -> float:
    # Capped at a very small interval to keep the bonus finite.
    return 20 / max(interval, 1)


def available_fingers_for(current) -> int:
    previous_change = current.previous_category_change
    next_change = current.next_category_change

    if previous_change is not None and current.start_time - previous_change.start_time < STAMINA_FINGER_CHANGE_WINDOW:
        return 2
    if next_change is not None and next_change.start_time - current.start_time < STAMINA_FINGER_CHANGE_WINDOW:
        return 2
    return 4


def evaluate_stamina(current) -> float:
    """Base strain of 0.5 plus speed bonuses against the last use of the same finger."""
    if not current.is_note:
        return 0.0

    previous = current.previous(1)
    previous_same = current.previous_same_category(available_fingers_for(current) - 1)

    strain = BASE_STRAIN
    if previous is None:
        return strain

    if previous_same is not None:
        strain += speed_bonus(current.start_time - previous_same.start_time) \
            + 0.5 * speed_bonus(current.start_time - previous.start_time)

    return strain
