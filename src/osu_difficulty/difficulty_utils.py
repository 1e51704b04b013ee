"""
Shaping primitives shared by every evaluator.

Bonus and nerf curves are all built from these few functions, so their exact
form is part of the calibrated behaviour.
"""
import math


def clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def lerp(start: float, end: float, amount: float) -> float:
    return start + (end - start) * amount


def reverse_lerp(x: float, start: float, end: float) -> float:
    """Position of x between start and end, clamped to [0, 1]."""
    if start == end:
        return 0.0
    return clamp((x - start) / (end - start), 0.0, 1.0)


def smoothstep(x: float, start: float, end: float) -> float:
    """
    Cubic Hermite step. start may be greater than end, in which case the
    curve falls from 1 to 0 instead of rising.
    """
    x = reverse_lerp(x, start, end)
    return x * x * (3.0 - 2.0 * x)


def smootherstep(x: float, start: float, end: float) -> float:
    """Quintic variant of smoothstep with zero second derivative at both edges."""
    x = reverse_lerp(x, start, end)
    return x * x * x * (x * (6.0 * x - 15.0) + 10.0)


def logistic(x: float, max_value: float = 1.0) -> float:
    """max_value / (1 + e^-x)."""
    return max_value / (1.0 + math.exp(-x))


def logistic_curve(x: float, midpoint: float, multiplier: float, max_value: float = 1.0) -> float:
    """Logistic centred on midpoint with the given steepness."""
    return max_value / (1.0 + math.exp(multiplier * (midpoint - x)))


def milliseconds_to_bpm(ms: float, delimiter: int = 4) -> float:
    """Converts an interval to the BPM at which it is a 1/delimiter snap."""
    return 60000.0 / (ms * delimiter)


def bpm_to_milliseconds(bpm: float, delimiter: int = 4) -> float:
    return 60000.0 / delimiter / bpm


def difficulty_range(difficulty: float, minimum: float, middle: float, maximum: float) -> float:
    """Maps a 0-10 difficulty setting onto a value range split at 5."""
    if difficulty > 5:
        return middle + (maximum - middle) * (difficulty - 5) / 5
    if difficulty < 5:
        return middle - (middle - minimum) * (5 - difficulty) / 5
    return middle
