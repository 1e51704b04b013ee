# mods.py
#
# Modifier handling. The calculator only ever asks whether a named modifier is
# active; this module owns the few mechanical effects (clock rate, Hard Rock /
# Easy stat scaling) and the hit window / approach rate conversions.

from dataclasses import replace

from .difficulty_utils import difficulty_range

MOD_ALIASES = {
    "no-fail": "NF",
    "easier": "EZ",
    "touch-input": "TD",
    "hidden-approach": "HD",
    "harder": "HR",
    "sudden-death": "SD",
    "double-speed": "DT",
    "nightcore": "NC",
    "half-speed": "HT",
    "daycore": "DC",
    "flashlight-visibility": "FL",
    "relax-aim": "RX",
    "autopilot": "AP",
    "spun-out": "SO",
    "traceable": "TC",
    "blinds": "BL",
}

KNOWN_MODS = frozenset(MOD_ALIASES.values())

DOUBLE_TIME_RATE = 1.5
HALF_TIME_RATE = 0.75


def _normalise_mod_name(name):
    key = name.strip()
    if key.lower() in MOD_ALIASES:
        return MOD_ALIASES[key.lower()]
    if key.upper() in KNOWN_MODS:
        return key.upper()
    raise ValueError(f"Unknown modifier: {name!r}")


class ModSet:
    """
    An immutable set of active modifiers, stored as acronyms.

    Accepts acronyms ("HD"), long names ("hidden-approach") or a packed
    acronym string ("HDDT").
    """

    def __init__(self, mods=()):
        if isinstance(mods, ModSet):
            self._mods = mods._mods
            return
        if isinstance(mods, str):
            mods = self._split_packed(mods)
        self._mods = frozenset(_normalise_mod_name(m) for m in mods)

    @staticmethod
    def _split_packed(text):
        text = text.strip()
        if not text:
            return []
        if text.lower() in MOD_ALIASES:
            return [text]
        if len(text) % 2 != 0:
            raise ValueError(f"Cannot split modifier string: {text!r}")
        return [text[i:i + 2] for i in range(0, len(text), 2)]

    def __contains__(self, name):
        try:
            return _normalise_mod_name(name) in self._mods
        except ValueError:
            return False

    def has_any(self, *names):
        return any(name in self for name in names)

    def __iter__(self):
        return iter(self.acronyms)

    def __len__(self):
        return len(self._mods)

    def __eq__(self, other):
        if isinstance(other, ModSet):
            return self._mods == other._mods
        return NotImplemented

    def __hash__(self):
        return hash(self._mods)

    def __repr__(self):
        return f"ModSet({''.join(self.acronyms) or 'NM'})"

    @property
    def acronyms(self):
        return tuple(sorted(self._mods))

    def clock_rate(self):
        """Playback rate implied by the speed-changing modifiers."""
        if self.has_any("DT", "NC"):
            return DOUBLE_TIME_RATE
        if self.has_any("HT", "DC"):
            return HALF_TIME_RATE
        return 1.0


def apply_difficulty_mods(properties, mods):
    """
    Returns map properties with Hard Rock / Easy applied.
    Rate changes are not baked in here; they are handled through the clock rate.
    """
    mods = ModSet(mods)
    cs = properties.circle_size
    ar = properties.approach_rate
    od = properties.overall_difficulty
    hp = properties.drain_rate

    if "HR" in mods:
        cs = min(10.0, cs * 1.3)
        ar = min(10.0, ar * 1.4)
        od = min(10.0, od * 1.4)
        hp = min(10.0, hp * 1.4)
    if "EZ" in mods:
        cs *= 0.5
        ar *= 0.5
        od *= 0.5
        hp *= 0.5

    return replace(properties, circle_size=cs, approach_rate=ar, overall_difficulty=od, drain_rate=hp)


def get_timing_windows(od):
    """
    Calculates the hit windows in milliseconds for 300, 100, and 50 hits
    based on the Overall Difficulty (OD). Values are half-widths at 1.0x rate.
    """
    return {
        '300': difficulty_range(od, 80, 50, 20),
        '100': difficulty_range(od, 140, 100, 60),
        '50': difficulty_range(od, 200, 150, 100),
    }


def get_ar_ms(ar):
    """Converts Approach Rate (AR) to a preempt time in milliseconds."""
    return difficulty_range(ar, 1800, 1200, 450)


def ar_ms_to_val(ar_ms):
    """Converts AR milliseconds back to an AR value."""
    if ar_ms > 1200:
        return (1800.0 - ar_ms) / 120.0
    elif ar_ms < 1200:
        return (1200.0 - ar_ms) / 150.0 + 5.0
    else:
        return 5.0


def od_ms_to_val(od_300_ms):
    """Converts OD milliseconds (300-window) back to an OD value."""
    return (80.0 - od_300_ms) / 6.0


def circle_radius(cs):
    """Converts Circle Size (CS) to an osu!pixel radius."""
    return 64.0 * (1.0 - 0.7 * (cs - 5) / 5) / 2
