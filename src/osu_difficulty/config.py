# config.py
#
# Stores the tuning constants for preprocessing, strain accumulation and
# rating. Values here are the calibrated defaults; individual skill multipliers
# can be overridden per calculation (see calibration.CalibrationStore).

# --- Logging ---
# Messages below this level are not printed by utils.print_status.
LOG_LEVEL = "WARN"


# --- Preprocessing ---
# All distances are scaled so that every object has this radius.
NORMALISED_RADIUS = 50
NORMALISED_DIAMETER = NORMALISED_RADIUS * 2

# Floor applied to every delta time and movement duration (ms).
MIN_DELTA_TIME = 25

# Cursor deviation tolerated while following a slider before a new movement is emitted.
ASSUMED_SLIDER_RADIUS = NORMALISED_RADIUS * 1.0
MAXIMUM_SLIDER_RADIUS = NORMALISED_RADIUS * 2.4

# The slider tail can be released this many ms before the slider ends.
TAIL_LENIENCY = -36

# Movement distance model: "per_endpoint" or "max_radius".
MOVEMENT_DISTANCE_MODEL = "per_endpoint"

# Hidden fades objects out over this fraction of the preempt time.
HIDDEN_FADE_OUT_DURATION_MULTIPLIER = 0.3

# Objects closer than this (ms) to a category change can be alternated with two fingers.
STAMINA_FINGER_CHANGE_WINDOW = 300


# --- Strain ---
SECTION_LENGTH = 400
DECAY_WEIGHT = 0.9

# The first few seconds of a map are systematically overrated; the strongest
# sections within this duration are scaled down towards the baseline.
REDUCED_STRAIN_DURATION = 4000
REDUCED_STRAIN_BASELINE = 0.9

# Variable-length strain skills drop a contribution once its weight falls below this.
VARIABLE_STRAIN_INFLUENCE_THRESHOLD = 0.001
VARIABLE_STRAIN_DIFFICULTY_MULTIPLIER = 1.058

SKILL_MULTIPLIERS = {
    "aim": 26.4,
    "flow_aim": 6.0,
    "agility": 2.0,
    "speed": 1.46,
    "flashlight": 0.05512,
    "stamina": 1.1,
}

STRAIN_DECAY_BASES = {
    "aim": 0.15,
    "flow_aim": 0.15,
    "agility": 0.3,
    "speed": 0.3,
    "flashlight": 0.15,
    "stamina": 0.4,
}

# Nested slider movements only carry part of the aim strain.
NESTED_MOVEMENT_STRAIN_WEIGHT = 0.4


# --- Rating ---
DIFFICULTY_MULTIPLIER = 0.0675
PERFORMANCE_BASE_MULTIPLIER = 1.15
PERFORMANCE_NORM_EXPONENT = 1.1
STAR_RATING_SCALE = 0.026

# Taiko-style stamina scaling (final_multiplier * stamina share).
STAMINA_SKILL_MULTIPLIER = 0.375 * 0.0625
