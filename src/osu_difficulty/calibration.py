# calibration.py
#
# Offline fitting of skill multipliers against reference star ratings, plus a
# small JSON store for the fitted values.

import json
import os
from pathlib import Path
from typing import Callable, Dict, List, Optional, Sequence

from . import config
from .difficulty_calculator import DifficultyCalculator
from .utils import print_status

JITTER = 1e-10


class CalibrationError(RuntimeError):
    """Raised when the simplex search runs out of its evaluation budget."""

    def __init__(self, maximum_iterations: int, evaluations: int):
        super().__init__(f"Exceeded maximum ({maximum_iterations}) simplex evaluations after {evaluations}")
        self.maximum_iterations = maximum_iterations
        self.evaluations = evaluations


def _has_converged(tolerance: float, high: float, low: float) -> bool:
    spread = 2 * abs(high - low) / (abs(high) + abs(low) + JITTER)
    return spread < tolerance


def nelder_mead_minimum(objective: Callable[[float], float], initial_guess: float,
                        initial_perturbation: Optional[float] = None, convergence_tolerance: float = 1e-8,
                        maximum_iterations: int = 1000) -> float:
    """
    One-dimensional Nelder-Mead simplex search.

    The simplex is two points; each step tries a reflection, then an expansion
    or a contraction, and shrinks towards the best point when nothing helps.
    Converged once the relative spread of the two values stays below the
    tolerance on two consecutive checks.

    Raises CalibrationError when more than maximum_iterations objective
    evaluations would be needed.
    """
    if initial_perturbation is None:
        initial_perturbation = 0.00025 if initial_guess == 0.0 else initial_guess * 0.05

    vertices = [initial_guess, initial_guess + initial_perturbation]
    values = [objective(v) for v in vertices]
    evaluations = 0
    times_converged = 0

    def try_scale(scale, high, centroid):
        # With two vertices the centroid is simply the other vertex.
        new_point = vertices[centroid] + (vertices[high] - vertices[centroid]) * scale
        new_value = objective(new_point)
        if new_value < values[high]:
            vertices[high] = new_point
            values[high] = new_value
        return new_value

    while True:
        high = 0 if values[0] > values[1] else 1
        other = 1 - high
        low = 1 if values[1] <= values[0] else 0

        if _has_converged(convergence_tolerance, values[high], values[low]):
            times_converged += 1
        else:
            times_converged = 0

        if times_converged == 2:
            break

        reflection_value = try_scale(-1.0, high, other)
        evaluations += 1

        if reflection_value <= values[low]:
            try_scale(2.0, high, other)
            evaluations += 1
        elif reflection_value >= values[other]:
            current_worst = values[high]
            contraction_value = try_scale(0.5, high, other)
            evaluations += 1

            if contraction_value >= current_worst:
                # Shrink towards the best vertex.
                shrink = 1 - low
                vertices[shrink] = (vertices[shrink] + vertices[low]) * 0.5
                values[shrink] = objective(vertices[shrink])
                evaluations += 2

        if evaluations >= maximum_iterations:
            raise CalibrationError(maximum_iterations, evaluations)

    return vertices[low]


def calibrate_skill_multiplier(skill: str, samples: Sequence, targets: Sequence[float],
                               initial_guess: Optional[float] = None, maximum_iterations: int = 200,
                               base_multipliers: Optional[Dict[str, float]] = None) -> float:
    """
    Fits one skill multiplier so that the star ratings of samples, a list of
    (beatmap, mods) pairs, match targets in the least-squares sense.
    """
    if skill not in config.SKILL_MULTIPLIERS:
        raise ValueError(f"Unknown skill: {skill}")
    if len(samples) != len(targets):
        raise ValueError("Every sample needs exactly one target rating")
    if not samples:
        raise ValueError("Cannot calibrate without samples")

    base = dict(base_multipliers or {})
    if initial_guess is None:
        initial_guess = base.get(skill, config.SKILL_MULTIPLIERS[skill])

    def objective(multiplier):
        multipliers = dict(base)
        multipliers[skill] = abs(multiplier)
        error = 0.0
        for (beatmap, mods), target in zip(samples, targets):
            rating = DifficultyCalculator(beatmap, mods, multipliers).calculate().star_rating
            error += (rating - target) ** 2
        return error

    print_status(f"Calibrating '{skill}' on {len(samples)} maps from {initial_guess:.4f}...")
    fitted = abs(nelder_mead_minimum(objective, initial_guess, maximum_iterations=maximum_iterations))
    print_status(f"Calibrated '{skill}' multiplier: {fitted:.4f}")
    return fitted


class CalibrationStore:
    """Named sets of skill multipliers, kept in a JSON file."""

    def __init__(self, store_dir="saves/calibration"):
        self.store_dir = Path(store_dir)
        os.makedirs(self.store_dir, exist_ok=True)
        self.presets_file = self.store_dir / "skill_multipliers.json"
        self.presets: Dict[str, Dict[str, float]] = self._load_presets()

    def _load_presets(self) -> Dict[str, Dict[str, float]]:
        if self.presets_file.exists():
            with open(self.presets_file, 'r') as f:
                try:
                    return json.load(f)
                except json.JSONDecodeError:
                    print_status(f"Could not decode JSON from {self.presets_file}. Starting with empty presets.",
                                 level="WARN")
                    return {}
        return {}

    def _save_presets(self):
        with open(self.presets_file, 'w') as f:
            json.dump(self.presets, f, indent=4)

    def add_preset(self, name: str, multipliers: Dict[str, float]):
        """Adds or updates a preset."""
        unknown = set(multipliers) - set(config.SKILL_MULTIPLIERS)
        if unknown:
            raise ValueError(f"Unknown skill multiplier(s): {', '.join(sorted(unknown))}")
        self.presets[name] = {key: float(value) for key, value in multipliers.items()}
        self._save_presets()
        print_status(f"Preset '{name}' saved.")

    def get_preset(self, name: str) -> Optional[Dict[str, float]]:
        return self.presets.get(name)

    def list_presets(self) -> List[str]:
        return list(self.presets.keys())

    def delete_preset(self, name: str) -> bool:
        if name in self.presets:
            del self.presets[name]
            self._save_presets()
            print_status(f"Preset '{name}' deleted.")
            return True
        print_status(f"Preset '{name}' not found.", level="WARN")
        return False

    def default_multipliers(self) -> Dict[str, float]:
        return dict(config.SKILL_MULTIPLIERS)
