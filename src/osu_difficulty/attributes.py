# attributes.py
#
# The immutable result of a difficulty calculation.

from dataclasses import asdict, dataclass
from typing import Tuple


@dataclass(frozen=True)
class DifficultyAttributes:
    star_rating: float = 0.0
    mods: Tuple[str, ...] = ()

    aim_difficulty: float = 0.0
    aim_difficult_slider_count: float = 0.0
    aim_difficult_strain_count: float = 0.0
    flow_aim_difficulty: float = 0.0
    flow_aim_cheese_inaccuracy: float = 0.0
    speed_difficulty: float = 0.0
    speed_note_count: float = 0.0
    speed_difficult_strain_count: float = 0.0
    flashlight_difficulty: float = 0.0
    slider_factor: float = 1.0

    stamina_difficulty: float = 0.0
    mono_stamina_factor: float = 0.0

    approach_rate: float = 0.0
    overall_difficulty: float = 0.0
    drain_rate: float = 0.0
    great_hit_window: float = 0.0
    ok_hit_window: float = 0.0
    meh_hit_window: float = 0.0

    max_combo: int = 0
    hit_circle_count: int = 0
    slider_count: int = 0
    spinner_count: int = 0

    clock_rate: float = 1.0

    @classmethod
    def zero(cls, mods=(), clock_rate=1.0):
        """Result for a map without scoring events."""
        return cls(mods=tuple(mods), slider_factor=1.0, mono_stamina_factor=1.0, clock_rate=clock_rate)

    def to_dict(self):
        """Plain dictionary for JSON consumers."""
        data = asdict(self)
        data["mods"] = list(self.mods)
        return data
