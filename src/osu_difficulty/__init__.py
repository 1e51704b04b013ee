"""
osu_difficulty: difficulty and performance ratings for timed sequences of hit
events, built on movement decomposition and decaying strain skills.
"""
from .attributes import DifficultyAttributes
from .batch import calculate_many
from .calibration import CalibrationError, CalibrationStore, calibrate_skill_multiplier, nelder_mead_minimum
from .difficulty_calculator import DifficultyCalculator, calculate_difficulty
from .difficulty_object import DifficultyObject, build_difficulty_objects
from .hit_objects import (Banana, Beatmap, FilterPolicy, HitCircle, MapProperties, NestedEvent, NestedKind, Slider,
                          SliderPath, Spinner, TinyDroplet, make_slider)
from .mods import ModSet, get_timing_windows
from .movement import DistanceModel, Movement
from .osu_parser import parse_beatmap
from .utils import print_status, set_log_level

__version__ = "0.1.0"
