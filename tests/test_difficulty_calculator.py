import pytest

from osu_difficulty import DifficultyAttributes, DifficultyCalculator, calculate_difficulty
from osu_difficulty.hit_objects import Banana, Beatmap, HitCircle, Spinner


def test_empty_map_gives_zero_attributes(properties):
    attributes = calculate_difficulty(Beatmap(events=[], properties=properties), ["DT"])
    assert attributes == DifficultyAttributes.zero(("DT",), 1.5)
    assert attributes.star_rating == 0
    assert attributes.slider_factor == 1.0


def test_empty_map_and_map_without_stamina_agree_on_mono_factor(properties, jump_map):
    empty = calculate_difficulty(Beatmap(events=[], properties=properties))
    assert empty.mono_stamina_factor == 1.0
    assert empty.mono_stamina_factor == calculate_difficulty(jump_map).mono_stamina_factor


def test_bonus_events_alone_give_zero_attributes(properties):
    bananas = [Banana(time=i * 100, position=(0, 0), radius=32) for i in range(5)]
    assert calculate_difficulty(Beatmap(events=bananas, properties=properties)).star_rating == 0


def test_single_event_has_no_skill_difficulty(properties, radius):
    beatmap = Beatmap(events=[HitCircle(time=0, position=(100, 100), radius=radius)], properties=properties)
    attributes = calculate_difficulty(beatmap)
    assert attributes.aim_difficulty == 0
    assert attributes.speed_difficulty == 0
    assert attributes.hit_circle_count == 1
    assert attributes.max_combo == 1


def test_calculation_is_deterministic(jump_map, slider_map):
    for beatmap in (jump_map, slider_map):
        assert calculate_difficulty(beatmap, ["HD"]) == calculate_difficulty(beatmap, ["HD"])


def test_jump_map_has_a_rating(jump_map):
    attributes = calculate_difficulty(jump_map)
    assert attributes.star_rating > 0
    assert attributes.aim_difficulty > 0
    assert attributes.speed_difficulty > 0
    assert attributes.flashlight_difficulty == 0
    assert attributes.hit_circle_count == 40
    assert attributes.max_combo == 40
    assert attributes.mods == ()


def test_map_attributes(jump_map):
    attributes = calculate_difficulty(jump_map)
    assert attributes.approach_rate == pytest.approx(9)
    assert attributes.overall_difficulty == pytest.approx(8)
    assert attributes.great_hit_window == pytest.approx(32)
    assert attributes.clock_rate == 1.0


def test_double_time_speeds_up_the_map(jump_map):
    nomod = calculate_difficulty(jump_map)
    double_time = calculate_difficulty(jump_map, ["DT"])
    half_time = calculate_difficulty(jump_map, ["HT"])

    assert double_time.clock_rate == 1.5
    assert double_time.star_rating > nomod.star_rating > half_time.star_rating
    assert double_time.great_hit_window == pytest.approx(nomod.great_hit_window / 1.5)
    assert double_time.approach_rate > nomod.approach_rate


def test_hard_rock_makes_aim_harder(jump_map):
    assert calculate_difficulty(jump_map, ["HR"]).aim_difficulty > calculate_difficulty(jump_map).aim_difficulty


def test_relax_removes_speed(jump_map):
    relax = calculate_difficulty(jump_map, ["RX"])
    assert relax.speed_difficulty == 0
    assert relax.aim_difficulty < calculate_difficulty(jump_map).aim_difficulty


def test_flashlight_only_with_the_modifier(jump_map):
    assert calculate_difficulty(jump_map, ["FL"]).flashlight_difficulty > 0
    assert calculate_difficulty(jump_map, ["FL"]).star_rating > calculate_difficulty(jump_map).star_rating


def test_skill_multiplier_overrides(jump_map):
    base = calculate_difficulty(jump_map)
    doubled = calculate_difficulty(jump_map, skill_multipliers={"aim": 52.8})
    # Ratings grow with the square root of the skill value.
    assert doubled.aim_difficulty == pytest.approx(base.aim_difficulty * 2 ** 0.5)
    assert doubled.speed_difficulty == pytest.approx(base.speed_difficulty)


def test_unknown_skill_multiplier_is_rejected(jump_map):
    with pytest.raises(ValueError):
        DifficultyCalculator(jump_map, skill_multipliers={"reading": 1.0})


def test_unknown_mod_is_rejected(jump_map):
    with pytest.raises(ValueError):
        DifficultyCalculator(jump_map, ["ZZ"])


def test_sliders_are_counted(slider_map):
    attributes = calculate_difficulty(slider_map)
    assert attributes.slider_count == 4
    assert attributes.hit_circle_count == 8
    assert attributes.max_combo == sum(event.combo_value for event in slider_map.events)
    assert attributes.slider_factor > 0
    assert attributes.aim_difficult_slider_count > 0


def test_spun_out_lowers_the_rating_of_spinner_maps(jump_map):
    events = list(jump_map.events) + [Spinner(time=8000, position=(256, 192), radius=32, spin_end_time=9000)]
    beatmap = Beatmap(events=events, properties=jump_map.properties)
    assert calculate_difficulty(beatmap, ["SO"]).star_rating < calculate_difficulty(beatmap).star_rating
    assert calculate_difficulty(beatmap).spinner_count == 1


def test_stamina_needs_categorised_notes(jump_map, make_circles, properties):
    assert calculate_difficulty(jump_map).stamina_difficulty == 0
    assert calculate_difficulty(jump_map).mono_stamina_factor == 1.0

    circles = make_circles([(i * 120, (i % 2) * 150, 0) for i in range(40)], categories=[i % 3 % 2 for i in range(40)])
    attributes = calculate_difficulty(Beatmap(events=circles, properties=properties))
    assert attributes.stamina_difficulty > 0
    assert 0 < attributes.mono_stamina_factor <= 1


def test_to_dict(jump_map):
    data = calculate_difficulty(jump_map, ["HD", "DT"]).to_dict()
    assert data["mods"] == ["DT", "HD"]
    assert data["star_rating"] > 0
    assert set(data) >= {"aim_difficulty", "speed_difficulty", "flow_aim_difficulty", "clock_rate"}
