# strain_skill.py
#
# Strain accumulation and aggregation.
#
# A skill folds evaluator output into a running strain that decays
# exponentially with time, and records the peak strain of each time section.
# The peaks are then reduced to one difficulty value.

import math
from collections import deque
from dataclasses import dataclass
from typing import Iterable, List

from . import config
from .difficulty_utils import clamp, lerp, logistic_curve
from .mods import ModSet


@dataclass(frozen=True)
class ObjectStrain:
    time: float
    previous_time: float
    value: float


@dataclass(frozen=True)
class StrainPeak:
    value: float
    section_length: float


def difficulty_to_performance(difficulty: float) -> float:
    return (5.0 * max(1.0, difficulty / config.DIFFICULTY_MULTIPLIER) - 4.0) ** 3.0 / 100000.0


def count_top_weighted_strains(object_strains: List[float], difficulty_value: float) -> float:
    """How many object strains are close to the top strain of a consistently difficult map."""
    if not object_strains:
        return 0.0

    # What the top strain would be if all strain values were identical.
    consistent_top_strain = difficulty_value / 10
    if consistent_top_strain == 0:
        return float(len(object_strains))

    return sum(1.1 / (1 + math.exp(-10 * (s / consistent_top_strain - 0.88))) for s in object_strains)


def count_top_weighted_sliders(slider_strains: List[float], difficulty_value: float) -> float:
    if not slider_strains:
        return 0.0

    consistent_top_strain = difficulty_value / 10
    if consistent_top_strain == 0:
        return 0.0

    return sum(logistic_curve(s / consistent_top_strain, 0.88, 10, 1.1) for s in slider_strains)


def count_relevant_objects(object_strains: List[float], difficulty_value: float) -> float:
    """
    Number of objects weighted against the top strain. Longer maps get a more
    lenient threshold: being consistently difficult for 1000 notes is worth
    more than for 100.
    """
    consistent_top_strain = difficulty_value / 10
    if consistent_top_strain == 0:
        return 0.0

    length_factor = 0.74 * 0.9987 ** len(object_strains)
    return sum((1.1 - length_factor) / (1 + math.exp(-10 * (s / consistent_top_strain - 0.88 - length_factor / 4.0)))
               for s in object_strains)


class StrainSkill:
    """
    Base strain skill with fixed-length sections.

    Subclasses yield ObjectStrain values from strain_values_at() and define
    the strain at the start of a new section through calculate_initial_strain().
    """
    name = "strain"
    strain_decay_base = 0.15
    section_length = config.SECTION_LENGTH
    decay_weight = config.DECAY_WEIGHT

    def __init__(self, mods=()):
        self.mods = ModSet(mods)
        self.current_strain = 0.0
        self.last_strain = 0.0
        self.object_strains: List[float] = []

        self._strain_peaks: List[float] = []
        self._current_section_peak = 0.0
        self._current_section_end = 0.0
        self._started = False

    def strain_decay(self, ms: float) -> float:
        return self.strain_decay_base ** (ms / 1000)

    def decayed_strain(self, elapsed: float) -> float:
        """Strain after elapsed ms without further input."""
        return self.current_strain * self.strain_decay(elapsed)

    def calculate_initial_strain(self, delta_time: float) -> float:
        return self.last_strain * self.strain_decay(delta_time)

    def strain_values_at(self, current) -> Iterable[ObjectStrain]:
        raise NotImplementedError

    def process(self, current):
        """Feeds one object. Objects must be processed in sequence order."""
        for strain in self.strain_values_at(current):
            self._process_strain(strain)

    def _process_strain(self, strain: ObjectStrain):
        if not self._started:
            self._current_section_end = math.ceil(strain.time / self.section_length) * self.section_length
            self._started = True

        # Close every section that ends before this strain, including empty ones.
        while strain.time > self._current_section_end:
            self._strain_peaks.append(self._current_section_peak)
            self._current_section_peak = self.calculate_initial_strain(self._current_section_end - strain.previous_time)
            self._current_section_end += self.section_length

        self._current_section_peak = max(strain.value, self._current_section_peak)
        self.object_strains.append(strain.value)

    def peaks(self) -> List[float]:
        """Peak strain of every section so far, the open one included."""
        if not self._started:
            return []
        return self._strain_peaks + [self._current_section_peak]

    def difficulty_value(self) -> float:
        """Weighted sum of the section peaks, highest first."""
        difficulty = 0.0
        weight = 1.0

        # Sections with no strain would only slow the sort down.
        for strain in sorted((p for p in self.peaks() if p > 0), reverse=True):
            difficulty += strain * weight
            weight *= self.decay_weight

        return difficulty

    def count_top_weighted_strains(self) -> float:
        return count_top_weighted_strains(self.object_strains, self.difficulty_value())


class OsuStrainSkill(StrainSkill):
    """Strain skill whose strongest early sections are scaled down before summing."""
    reduced_strain_duration = config.REDUCED_STRAIN_DURATION
    reduced_strain_baseline = config.REDUCED_STRAIN_BASELINE

    @property
    def reduced_section_count(self) -> int:
        return int(self.reduced_strain_duration / self.section_length)

    def difficulty_value(self) -> float:
        peaks = sorted((p for p in self.peaks() if p > 0), reverse=True)
        reduced_count = self.reduced_section_count

        # Retries are free, so the hardest few sections are overrated.
        for i in range(min(len(peaks), reduced_count)):
            scale = math.log10(lerp(1, 10, clamp(i / reduced_count, 0, 1)))
            peaks[i] *= lerp(self.reduced_strain_baseline, 1.0, scale)

        difficulty = 0.0
        weight = 1.0
        for strain in sorted(peaks, reverse=True):
            difficulty += strain * weight
            weight *= self.decay_weight

        return difficulty

    def count_relevant_objects(self) -> float:
        return count_relevant_objects(self.object_strains, self.difficulty_value())


class VariableLengthStrainSkill:
    """
    Strain skill that integrates recent contributions instead of keeping a
    single exponentially decaying value.

    Every contribution covers the interval since the previous object. Its
    weight at a later moment is the mean of decay^(x / 1000) over the ages of
    that interval; once the weight drops below the influence threshold the
    contribution is evicted. Sections run from object to object, capped at
    max_section_length, and gaps are filled with empty sections.
    """
    name = "variable"
    strain_decay_base = 0.3
    max_section_length = config.SECTION_LENGTH
    decay_weight = config.DECAY_WEIGHT
    influence_threshold = config.VARIABLE_STRAIN_INFLUENCE_THRESHOLD
    difficulty_multiplier = config.VARIABLE_STRAIN_DIFFICULTY_MULTIPLIER

    def __init__(self, mods=()):
        self.mods = ModSet(mods)
        self.object_strains: List[float] = []
        # (time, length, difficulty), oldest first.
        self._contributions = deque()
        self._closed_peaks: List[StrainPeak] = []
        self._open_section_time = None
        self._open_section_peak = 0.0

    @property
    def decay_weight_integral(self) -> float:
        # Integral of decay_weight^x over [0, inf).
        return -1.0 / math.log(self.decay_weight)

    def strain_value_of(self, current) -> float:
        """Difficulty contribution of one object."""
        raise NotImplementedError

    def contribution_weight(self, age: float, length: float) -> float:
        """Mean of decay^(x / 1000) for x in [age, age + length]."""
        decay_per_ms = math.log(self.strain_decay_base) / 1000
        if length <= 0:
            return math.exp(decay_per_ms * age)
        return (math.exp(decay_per_ms * (age + length)) - math.exp(decay_per_ms * age)) / (decay_per_ms * length)

    def strain_at(self, time: float) -> float:
        return sum(difficulty * self.contribution_weight(time - start, length)
                   for start, length, difficulty in self._contributions)

    @property
    def current_strain(self) -> float:
        if self._open_section_time is None:
            return 0.0
        return self.strain_at(self._open_section_time)

    def decayed_strain(self, elapsed: float) -> float:
        if self._open_section_time is None:
            return 0.0
        return self.strain_at(self._open_section_time + elapsed)

    def process(self, current):
        time = current.start_time
        self._close_sections_until(time)

        self._contributions.append((time, current.adjusted_delta_time, self.strain_value_of(current)))
        while self._contributions:
            start, length, _ = self._contributions[0]
            if self.contribution_weight(time - start, length) >= self.influence_threshold:
                break
            self._contributions.popleft()

        strain = self.strain_at(time)
        self.object_strains.append(strain)

        self._open_section_time = time
        self._open_section_peak = strain

    def _close_sections_until(self, time: float):
        if self._open_section_time is None:
            return

        gap = time - self._open_section_time
        self._closed_peaks.append(StrainPeak(self._open_section_peak, min(max(gap, 0.0), self.max_section_length)))

        section_start = self._open_section_time + self.max_section_length
        while section_start < time:
            length = min(time - section_start, self.max_section_length)
            self._closed_peaks.append(StrainPeak(self.strain_at(section_start), length))
            section_start += self.max_section_length

    def peaks(self) -> List[StrainPeak]:
        if self._open_section_time is None:
            return []
        return self._closed_peaks + [StrainPeak(self._open_section_peak, self.max_section_length)]

    def difficulty_value(self) -> float:
        """Continuous weighted sum of the sorted peaks, each covering its own share of the weight curve."""
        difficulty = 0.0
        time = 0.0
        integral = self.decay_weight_integral

        for peak in sorted((p for p in self.peaks() if p.value > 0), key=lambda p: p.value, reverse=True):
            span = peak.section_length / self.max_section_length
            weight = self.decay_weight ** time * (integral - integral * self.decay_weight ** span)
            difficulty += peak.value * weight
            time += span

        return difficulty * self.difficulty_multiplier

    def count_relevant_objects(self) -> float:
        return count_relevant_objects(self.object_strains, self.difficulty_value())

    def count_top_weighted_strains(self) -> float:
        return count_top_weighted_strains(self.object_strains, self.difficulty_value())
