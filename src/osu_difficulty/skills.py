# skills.py
#
# The concrete skills fed by the calculator. Each owns its running strain
# state and turns evaluator output into ObjectStrain values.

import math
from typing import List

from . import config
from .aim_evaluators import evaluate_agility, evaluate_aim_movement, evaluate_flow_aim
from .flashlight_evaluator import evaluate_flashlight
from .hit_objects import Slider
from .speed_evaluator import evaluate_speed
from .stamina_evaluator import evaluate_stamina
from .difficulty_utils import logistic, reverse_lerp
from .strain_skill import (ObjectStrain, OsuStrainSkill, StrainSkill, VariableLengthStrainSkill,
                           count_top_weighted_sliders)


def _multiplier(name, override):
    return config.SKILL_MULTIPLIERS[name] if override is None else override


class Aim(OsuStrainSkill):
    """
    Aiming every object with normalised distances. Each cursor movement is its
    own strain step; nested slider movements only count partially.
    """
    name = "aim"
    strain_decay_base = config.STRAIN_DECAY_BASES["aim"]

    def __init__(self, mods=(), include_sliders=True, skill_multiplier=None):
        super().__init__(mods)
        self.include_sliders = include_sliders
        self.skill_multiplier = _multiplier("aim", skill_multiplier)
        self.slider_strains: List[float] = []

    def strain_values_at(self, current):
        movements = current.movements if self.include_sliders else current.movements[:1]

        previous = current.previous(0)
        previous_time = previous.start_time if previous is not None else 0.0

        # Strains are filed under the time the movement starts.
        for movement in movements:
            self.last_strain = self.current_strain

            weight = config.NESTED_MOVEMENT_STRAIN_WEIGHT if movement.is_nested else 1.0
            self.current_strain *= self.strain_decay(movement.time)
            self.current_strain += evaluate_aim_movement(current, movement) * self.skill_multiplier * weight

            if isinstance(current.base, Slider) and not movement.is_nested:
                self.slider_strains.append(self.current_strain)

            yield ObjectStrain(time=movement.start_time, previous_time=previous_time, value=self.current_strain)
            previous_time = movement.start_time

    def difficult_slider_count(self) -> float:
        if not self.slider_strains:
            return 0.0

        max_slider_strain = max(self.slider_strains)
        if max_slider_strain == 0:
            return 0.0

        return sum(1.0 / (1.0 + math.exp(-(strain / max_slider_strain * 12.0 - 6.0))) for strain in self.slider_strains)

    def count_top_weighted_sliders(self) -> float:
        return count_top_weighted_sliders(self.slider_strains, self.difficulty_value())


class FlowAim(OsuStrainSkill):
    """
    Continuous-motion aim. Two tracks decay independently: a flow track and an
    agility bonus track; their sum is the strain.

    Also totals how much agility difficulty disappears when the timing window
    is exploited (cheese_inaccuracy).
    """
    name = "flow_aim"
    strain_decay_base = config.STRAIN_DECAY_BASES["flow_aim"]
    agility_decay_base = config.STRAIN_DECAY_BASES["agility"]

    def __init__(self, mods=(), skill_multiplier=None, agility_multiplier=None):
        super().__init__(mods)
        self.skill_multiplier = _multiplier("flow_aim", skill_multiplier)
        self.agility_multiplier = _multiplier("agility", agility_multiplier)

        self.current_flow_strain = 0.0
        self.current_agility_strain = 0.0
        self._last_flow_strain = 0.0
        self._last_agility_strain = 0.0
        self.cheese_inaccuracy = 0.0

    def agility_decay(self, ms: float) -> float:
        return self.agility_decay_base ** (ms / 1000)

    def calculate_initial_strain(self, delta_time: float) -> float:
        return (self._last_flow_strain * self.strain_decay(delta_time)
                + self._last_agility_strain * self.agility_decay(delta_time))

    def decayed_strain(self, elapsed: float) -> float:
        return (self.current_flow_strain * self.strain_decay(elapsed)
                + self.current_agility_strain * self.agility_decay(elapsed))

    def strain_values_at(self, current):
        self._last_flow_strain = self.current_flow_strain
        self._last_agility_strain = self.current_agility_strain
        self.last_strain = self.current_strain

        delta = current.adjusted_delta_time

        self.current_flow_strain *= self.strain_decay(delta)
        self.current_flow_strain += evaluate_flow_aim(current) * self.skill_multiplier

        agility = evaluate_agility(current, True) * self.agility_multiplier
        agility_without_cheese = evaluate_agility(current, False) * self.agility_multiplier
        self.cheese_inaccuracy += agility_without_cheese - agility

        self.current_agility_strain *= self.agility_decay(delta)
        self.current_agility_strain += agility

        self.current_strain = self.current_flow_strain + self.current_agility_strain

        previous = current.previous(0)
        yield ObjectStrain(time=current.start_time,
                           previous_time=previous.start_time if previous is not None else 0.0,
                           value=self.current_strain)


class Speed(VariableLengthStrainSkill):
    """Tapping speed over a continuously weighted window of recent objects."""
    name = "speed"
    strain_decay_base = config.STRAIN_DECAY_BASES["speed"]

    def __init__(self, mods=(), skill_multiplier=None):
        super().__init__(mods)
        self.skill_multiplier = _multiplier("speed", skill_multiplier)

    def strain_value_of(self, current) -> float:
        return evaluate_speed(current, self.mods) * self.skill_multiplier

    def relevant_note_count(self) -> float:
        """Number of notes weighted against the hardest one."""
        if not self.object_strains:
            return 0.0

        max_strain = max(self.object_strains)
        if max_strain == 0:
            return 0.0

        return sum(1.0 / (1.0 + math.exp(-(strain / max_strain * 12.0 - 6.0))) for strain in self.object_strains)


class Flashlight(StrainSkill):
    """Memorisation under a limited field of view."""
    name = "flashlight"
    strain_decay_base = config.STRAIN_DECAY_BASES["flashlight"]

    def __init__(self, mods=(), skill_multiplier=None):
        super().__init__(mods)
        self.skill_multiplier = _multiplier("flashlight", skill_multiplier)
        self.hidden = "HD" in self.mods

    def strain_values_at(self, current):
        self.last_strain = self.current_strain
        self.current_strain *= self.strain_decay(current.delta_time)
        self.current_strain += evaluate_flashlight(current, self.hidden) * self.skill_multiplier

        previous = current.previous(0)
        yield ObjectStrain(time=current.start_time,
                           previous_time=previous.start_time if previous is not None else 0.0,
                           value=self.current_strain)

    def difficulty_value(self) -> float:
        return sum(self.peaks())

    @staticmethod
    def difficulty_to_performance(difficulty: float) -> float:
        return 25 * difficulty ** 2


class Stamina(StrainSkill):
    """
    Finger stamina over same-category streaks.

    The single-colour variant damps strain once a streak runs past ten notes
    and starts every section from zero.
    """
    name = "stamina"
    strain_decay_base = config.STRAIN_DECAY_BASES["stamina"]

    def __init__(self, mods=(), single_colour=False, is_convert=False, skill_multiplier=None):
        super().__init__(mods)
        self.single_colour = single_colour
        self.is_convert = is_convert
        self.skill_multiplier = _multiplier("stamina", skill_multiplier)

    def strain_values_at(self, current):
        self.last_strain = self.current_strain

        self.current_strain *= self.strain_decay(current.delta_time)
        stamina_difficulty = evaluate_stamina(current) * self.skill_multiplier

        index = current.streak_position
        mono_length_bonus = 1.0 if self.is_convert else 1.0 + 0.5 * reverse_lerp(index, 5, 20)

        # Longer same-colour runs inside patterns only matter to colour-based stamina.
        if not self.single_colour:
            stamina_difficulty *= mono_length_bonus

        self.current_strain += stamina_difficulty

        if self.single_colour:
            strain_value = logistic(-(index - 10) / 2.0, self.current_strain)
        else:
            strain_value = self.current_strain

        previous = current.previous(0)
        yield ObjectStrain(time=current.start_time,
                           previous_time=previous.start_time if previous is not None else 0.0,
                           value=strain_value)

    def calculate_initial_strain(self, delta_time: float) -> float:
        if self.single_colour:
            return 0.0
        return super().calculate_initial_strain(delta_time)
