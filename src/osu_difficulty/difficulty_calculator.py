import math
from dataclasses import replace
from typing import Dict, Optional

from . import config
from .attributes import DifficultyAttributes
from .difficulty_object import build_difficulty_objects
from .hit_objects import Beatmap, FilterPolicy, HitCircle, Slider, Spinner
from .mods import (ModSet, apply_difficulty_mods, ar_ms_to_val, circle_radius, get_ar_ms, get_timing_windows,
                   od_ms_to_val)
from .skills import Aim, Flashlight, FlowAim, Speed, Stamina
from .strain_skill import difficulty_to_performance
from .utils import print_status


class DifficultyCalculator:
    """
    Calculates the star rating and per-skill difficulty attributes of a map.

    The map is preprocessed once, every skill is fed the same sequence in
    lockstep, and the skill values are then rescaled for map length, approach
    rate, visibility modifiers and accuracy before being combined through
    their performance values into one rating.
    """
    DIFFICULTY_MULTIPLIER = config.DIFFICULTY_MULTIPLIER
    STAR_RATING_SCALE = config.STAR_RATING_SCALE
    NORM_EXPONENT = config.PERFORMANCE_NORM_EXPONENT

    def __init__(self, beatmap: Beatmap, mods=(), skill_multipliers: Optional[Dict[str, float]] = None):
        self.beatmap = beatmap
        self.mods = ModSet(mods)
        self.skill_multipliers = dict(skill_multipliers or {})

        unknown = set(self.skill_multipliers) - set(config.SKILL_MULTIPLIERS)
        if unknown:
            raise ValueError(f"Unknown skill multiplier(s): {', '.join(sorted(unknown))}")

        self.clock_rate = self.mods.clock_rate()
        self.properties = apply_difficulty_mods(beatmap.properties, self.mods)

    def _create_skills(self):
        m = self.skill_multipliers
        skills = {
            "aim": Aim(self.mods, include_sliders=True, skill_multiplier=m.get("aim")),
            "aim_no_sliders": Aim(self.mods, include_sliders=False, skill_multiplier=m.get("aim")),
            "flow_aim": FlowAim(self.mods, skill_multiplier=m.get("flow_aim"), agility_multiplier=m.get("agility")),
            "speed": Speed(self.mods, skill_multiplier=m.get("speed")),
            "stamina": Stamina(self.mods, single_colour=False, is_convert=self.properties.is_convert,
                               skill_multiplier=m.get("stamina")),
            "stamina_single_colour": Stamina(self.mods, single_colour=True, is_convert=self.properties.is_convert,
                                             skill_multiplier=m.get("stamina")),
        }
        if "FL" in self.mods:
            skills["flashlight"] = Flashlight(self.mods, skill_multiplier=m.get("flashlight"))
        return skills

    def calculate(self) -> DifficultyAttributes:
        """Runs the full calculation. Deterministic for identical inputs."""
        scoring = [e for e in self.beatmap.events if FilterPolicy.SCORING.accepts(e)]
        if not scoring:
            print_status("No scoring events, returning zero attributes.", level="DEBUG")
            return DifficultyAttributes.zero(self.mods.acronyms, self.clock_rate)

        if self.properties.circle_size != self.beatmap.properties.circle_size:
            # Circle size modifiers resize every object.
            factor = circle_radius(self.properties.circle_size) / circle_radius(self.beatmap.properties.circle_size)
            scoring = [replace(e, radius=e.radius * factor) for e in scoring]

        objects = build_difficulty_objects(scoring, self.clock_rate, self.properties, FilterPolicy.SCORING)
        skills = self._create_skills()

        for obj in objects:
            for skill in skills.values():
                skill.process(obj)

        attributes = self._create_attributes(skills, scoring)
        print_status(f"{len(objects)} objects, mods {self.mods!r}: {attributes.star_rating:.2f} stars "
                     f"(aim {attributes.aim_difficulty:.2f}, speed {attributes.speed_difficulty:.2f}, "
                     f"flow {attributes.flow_aim_difficulty:.2f})", level="DEBUG")
        return attributes

    # --- Rating transforms ---

    @staticmethod
    def _length_bonus(total_hits: int) -> float:
        return 0.95 + 0.4 * min(1.0, total_hits / 2000.0) + \
            (math.log10(total_hits / 2000.0) * 0.5 if total_hits > 2000 else 0.0)

    def _compute_aim_rating(self, difficulty_value: float, total_hits: int, approach_rate: float,
                            overall_difficulty: float) -> float:
        aim_rating = math.sqrt(difficulty_value) * self.DIFFICULTY_MULTIPLIER

        if "TD" in self.mods:
            aim_rating = aim_rating ** 0.8
        if "RX" in self.mods:
            aim_rating *= 0.9

        rating_multiplier = 1.0

        length_bonus = self._length_bonus(total_hits)
        rating_multiplier *= length_bonus

        approach_rate_factor = 0.0
        if approach_rate > 10.33:
            approach_rate_factor = 0.3 * (approach_rate - 10.33)
        elif approach_rate < 8.0:
            approach_rate_factor = 0.05 * (8.0 - approach_rate)

        if "RX" in self.mods:
            approach_rate_factor = 0.0

        # Buff for longer maps with high AR.
        rating_multiplier *= 1.0 + approach_rate_factor * length_bonus

        if self.mods.has_any("HD", "TC"):
            # Nerfs high AR and buffs lower AR.
            rating_multiplier *= 1.0 + 0.04 * (12.0 - approach_rate)

        rating_multiplier *= 0.98 + overall_difficulty ** 2 / 2500

        return aim_rating * rating_multiplier ** (1 / 3)

    def _compute_speed_rating(self, difficulty_value: float, total_hits: int, approach_rate: float) -> float:
        if "RX" in self.mods:
            return 0.0

        speed_rating = math.sqrt(difficulty_value) * self.DIFFICULTY_MULTIPLIER

        rating_multiplier = 1.0

        length_bonus = self._length_bonus(total_hits)
        rating_multiplier *= length_bonus

        approach_rate_factor = 0.0
        if approach_rate > 10.33:
            approach_rate_factor = 0.3 * (approach_rate - 10.33)

        rating_multiplier *= 1.0 + approach_rate_factor * length_bonus

        if "BL" in self.mods:
            # Object count is a poor proxy for Blinds, so only the minimum buff is given.
            rating_multiplier *= 1.12
        elif self.mods.has_any("HD", "TC"):
            rating_multiplier *= 1.0 + 0.04 * (12.0 - approach_rate)

        return speed_rating * rating_multiplier ** (1 / 3)

    def _compute_flashlight_rating(self, difficulty_value: float, total_hits: int, overall_difficulty: float) -> float:
        flashlight_rating = math.sqrt(difficulty_value) * self.DIFFICULTY_MULTIPLIER

        if "TD" in self.mods:
            flashlight_rating = flashlight_rating ** 0.8
        if "RX" in self.mods:
            flashlight_rating *= 0.7

        rating_multiplier = 1.0
        rating_multiplier *= 0.98 + overall_difficulty ** 2 / 2500

        # Short maps have a higher share of objects seen at the largest flashlight radius.
        rating_multiplier *= 0.7 + 0.1 * min(1.0, total_hits / 200.0) + \
            (0.2 * min(1.0, (total_hits - 200) / 200.0) if total_hits > 200 else 0.0)

        return flashlight_rating * rating_multiplier ** (1 / 3)

    def performance_multiplier(self, spinner_count: int, total_hits: int) -> float:
        multiplier = config.PERFORMANCE_BASE_MULTIPLIER
        if "SO" in self.mods and total_hits > 0:
            multiplier *= 1.0 - (spinner_count / total_hits) ** 0.85
        return multiplier

    def _create_attributes(self, skills, scoring) -> DifficultyAttributes:
        total_hits = len(scoring)
        clock_rate = self.clock_rate

        preempt = get_ar_ms(self.properties.approach_rate) / clock_rate
        approach_rate = ar_ms_to_val(preempt)

        windows = get_timing_windows(self.properties.overall_difficulty)
        great_window = windows['300'] / clock_rate
        overall_difficulty = od_ms_to_val(great_window)

        aim = skills["aim"]
        aim_no_sliders = skills["aim_no_sliders"]
        flow_aim = skills["flow_aim"]
        speed = skills["speed"]
        flashlight = skills.get("flashlight")

        aim_rating = self._compute_aim_rating(aim.difficulty_value(), total_hits, approach_rate, overall_difficulty)
        aim_rating_no_sliders = self._compute_aim_rating(aim_no_sliders.difficulty_value(), total_hits,
                                                         approach_rate, overall_difficulty)
        slider_factor = aim_rating_no_sliders / aim_rating if aim_rating > 0 else 1.0

        flow_aim_rating = self._compute_aim_rating(flow_aim.difficulty_value(), total_hits, approach_rate,
                                                   overall_difficulty)
        speed_rating = self._compute_speed_rating(speed.difficulty_value(), total_hits, approach_rate)

        flashlight_rating = 0.0
        if flashlight is not None:
            flashlight_rating = self._compute_flashlight_rating(flashlight.difficulty_value(), total_hits,
                                                                overall_difficulty)

        performances = [
            difficulty_to_performance(aim_rating),
            difficulty_to_performance(flow_aim_rating),
            difficulty_to_performance(speed_rating),
            Flashlight.difficulty_to_performance(flashlight_rating),
        ]
        base_performance = sum(p ** self.NORM_EXPONENT for p in performances) ** (1.0 / self.NORM_EXPONENT)

        spinner_count = sum(1 for e in scoring if isinstance(e, Spinner))
        multiplier = self.performance_multiplier(spinner_count, total_hits)

        if base_performance > 0.00001:
            star_rating = multiplier ** (1 / 3) * self.STAR_RATING_SCALE * \
                ((100000 / 2 ** (1 / self.NORM_EXPONENT) * base_performance) ** (1 / 3) + 4)
        else:
            star_rating = 0.0

        stamina_value = skills["stamina"].difficulty_value()
        single_colour_value = skills["stamina_single_colour"].difficulty_value()
        mono_stamina_factor = single_colour_value / stamina_value if stamina_value > 0 else 1.0

        return DifficultyAttributes(
            star_rating=star_rating,
            mods=self.mods.acronyms,
            aim_difficulty=aim_rating,
            aim_difficult_slider_count=aim.difficult_slider_count(),
            aim_difficult_strain_count=aim.count_top_weighted_strains(),
            flow_aim_difficulty=flow_aim_rating,
            flow_aim_cheese_inaccuracy=flow_aim.cheese_inaccuracy,
            speed_difficulty=speed_rating,
            speed_note_count=speed.relevant_note_count(),
            speed_difficult_strain_count=speed.count_top_weighted_strains(),
            flashlight_difficulty=flashlight_rating,
            slider_factor=slider_factor,
            stamina_difficulty=stamina_value * config.STAMINA_SKILL_MULTIPLIER,
            mono_stamina_factor=mono_stamina_factor,
            approach_rate=approach_rate,
            overall_difficulty=overall_difficulty,
            drain_rate=self.properties.drain_rate,
            great_hit_window=great_window,
            ok_hit_window=windows['100'] / clock_rate,
            meh_hit_window=windows['50'] / clock_rate,
            max_combo=sum(e.combo_value for e in scoring),
            hit_circle_count=sum(1 for e in scoring if isinstance(e, HitCircle)),
            slider_count=sum(1 for e in scoring if isinstance(e, Slider)),
            spinner_count=spinner_count,
            clock_rate=clock_rate,
        )


def calculate_difficulty(beatmap: Beatmap, mods=(), skill_multipliers=None) -> DifficultyAttributes:
    """Convenience wrapper around DifficultyCalculator(...).calculate()."""
    return DifficultyCalculator(beatmap, mods, skill_multipliers).calculate()
