import math
from types import SimpleNamespace

import pytest

from osu_difficulty.difficulty_object import build_difficulty_objects
from osu_difficulty.skills import Aim, Flashlight, FlowAim, Speed, Stamina
from osu_difficulty.strain_skill import (ObjectStrain, OsuStrainSkill, StrainSkill, VariableLengthStrainSkill,
                                         count_relevant_objects, count_top_weighted_strains, difficulty_to_performance)


class RecordedStrain(StrainSkill):
    """Replays fixed strain values instead of evaluating objects."""

    def strain_values_at(self, current):
        yield ObjectStrain(time=current.time, previous_time=current.previous_time, value=current.value)


class RecordedOsuStrain(RecordedStrain, OsuStrainSkill):
    pass


class ConstantVariableStrain(VariableLengthStrainSkill):

    def strain_value_of(self, current):
        return 1.0


def _feed(skill, strains):
    previous_time = 0.0
    for time, value in strains:
        skill.process(SimpleNamespace(time=time, previous_time=previous_time, value=value))
        previous_time = time
    return skill


def _timed(start_time, adjusted_delta_time=100.0):
    return SimpleNamespace(start_time=start_time, adjusted_delta_time=adjusted_delta_time)


def test_section_peaks_and_weighted_sum():
    skill = _feed(RecordedStrain(), [(200, 0), (600, 5), (1000, 0), (1400, 10), (1800, 3)])
    assert skill.peaks() == [0, 5, 0, 10, 3]
    assert skill.difficulty_value() == pytest.approx(10 + 5 * 0.9 + 3 * 0.81)


def test_empty_sections_are_recorded():
    skill = _feed(RecordedStrain(), [(200, 4), (1500, 2)])
    assert skill.peaks() == [4, 0, 0, 2]


def test_no_input_gives_no_peaks():
    skill = RecordedStrain()
    assert skill.peaks() == []
    assert skill.difficulty_value() == 0


def test_reduced_sections_scale_the_hardest_peak_down():
    skill = _feed(RecordedOsuStrain(), [(200, 10)])
    assert skill.difficulty_value() == pytest.approx(9.0)


def test_strain_decays_monotonically(straight_stream):
    skill = Aim()
    for obj in build_difficulty_objects(straight_stream):
        skill.process(obj)

    assert skill.current_strain > 0
    decayed = [skill.decayed_strain(t) for t in (0, 100, 500, 1000, 5000)]
    assert decayed[0] == pytest.approx(skill.current_strain)
    assert all(a > b for a, b in zip(decayed, decayed[1:]))
    assert skill.decayed_strain(1e6) == pytest.approx(0)


def test_difficulty_to_performance_has_a_floor():
    assert difficulty_to_performance(0) == pytest.approx(1e-5)
    assert difficulty_to_performance(1.0) > difficulty_to_performance(0.5)


def test_count_helpers_handle_zero_difficulty():
    assert count_top_weighted_strains([], 10) == 0
    assert count_top_weighted_strains([1.0, 2.0], 0) == 2
    assert count_relevant_objects([1.0, 2.0], 0) == 0


def test_count_top_weighted_strains_for_a_consistent_map():
    # Every strain exactly at the consistent top strain counts a little over half.
    strains = [1.0] * 10
    expected = 10 * 1.1 / (1 + math.exp(-10 * (1 - 0.88)))
    assert count_top_weighted_strains(strains, 10.0) == pytest.approx(expected)


def test_variable_length_single_contribution():
    skill = ConstantVariableStrain()
    skill.process(_timed(1000))

    strain = skill.object_strains[0]
    assert 0 < strain < 1
    assert strain == pytest.approx(skill.contribution_weight(0, 100))
    assert skill.difficulty_value() == pytest.approx(strain * 0.1 / -math.log(0.9) * 1.058)


def test_variable_length_contribution_weight_falls_with_age():
    skill = ConstantVariableStrain()
    assert skill.contribution_weight(0, 0) == pytest.approx(1.0)
    weights = [skill.contribution_weight(age, 100) for age in (0, 200, 1000, 3000)]
    assert all(a > b for a, b in zip(weights, weights[1:]))


def test_variable_length_fills_gaps_with_sections():
    skill = ConstantVariableStrain()
    skill.process(_timed(1000))
    skill.process(_timed(3000, 2000))

    peaks = skill.peaks()
    assert len(peaks) == 6
    assert sum(p.section_length for p in peaks[:-1]) == pytest.approx(2000)
    gap_values = [p.value for p in peaks[1:5]]
    assert all(a > b for a, b in zip(gap_values, gap_values[1:]))


def test_variable_length_evicts_old_contributions():
    skill = ConstantVariableStrain()
    skill.process(_timed(1000))
    skill.process(_timed(2000))
    assert len(skill._contributions) == 2

    skill.process(_timed(20000))
    assert len(skill._contributions) == 1


def test_variable_length_decayed_strain():
    skill = ConstantVariableStrain()
    assert skill.current_strain == 0
    skill.process(_timed(1000))
    assert skill.decayed_strain(500) < skill.current_strain


def test_skills_are_zero_without_input():
    for skill in (Aim(), FlowAim(), Speed(), Flashlight(), Stamina()):
        assert skill.difficulty_value() == 0


def test_aim_without_sliders_only_sees_head_movements(slider_map):
    objects = build_difficulty_objects(slider_map.events)
    with_sliders = Aim(include_sliders=True)
    without_sliders = Aim(include_sliders=False)
    for obj in objects:
        with_sliders.process(obj)
        without_sliders.process(obj)

    assert len(without_sliders.object_strains) == len(objects)
    assert len(with_sliders.object_strains) == sum(len(obj.movements) for obj in objects)
    assert with_sliders.slider_strains
    assert 0 < with_sliders.difficult_slider_count() <= len(with_sliders.slider_strains)
    assert with_sliders.count_top_weighted_sliders() > 0


def test_aim_strain_is_filed_under_the_movement_start(make_circles):
    # The jump onto the third circle runs from 390 ms to 430 ms, across the 400 ms section boundary.
    objects = build_difficulty_objects(make_circles([(0, 0, 0), (390, 100, 0), (430, 200, 0)]))
    skill = Aim()

    skill.process(objects[0])
    skill.process(objects[1])
    strains = list(skill.strain_values_at(objects[2]))

    assert [s.time for s in strains] == [390]
    assert strains[0].previous_time == 390


def test_aim_strain_crossing_a_section_boundary_counts_in_the_earlier_section(make_circles):
    objects = build_difficulty_objects(make_circles([(0, 0, 0), (390, 100, 0), (430, 200, 0)]))
    skill = Aim()
    for obj in objects:
        skill.process(obj)

    peaks = skill.peaks()
    assert len(peaks) == 2
    assert peaks[-1] >= skill.current_strain


def test_skill_multiplier_scales_strain_linearly(jump_map):
    objects = build_difficulty_objects(jump_map.events, properties=jump_map.properties)
    single = Aim(skill_multiplier=10.0)
    double = Aim(skill_multiplier=20.0)
    for obj in objects:
        single.process(obj)
        double.process(obj)

    assert double.difficulty_value() == pytest.approx(2 * single.difficulty_value())


def test_flow_aim_tracks_cheese_inaccuracy(make_circles):
    circles = make_circles([(i * 80, (i % 2) * 200, 0) for i in range(12)])
    skill = FlowAim()
    for obj in build_difficulty_objects(circles):
        skill.process(obj)

    assert skill.cheese_inaccuracy > 0
    assert skill.difficulty_value() > 0


def test_flashlight_difficulty_is_the_sum_of_peaks(jump_map):
    skill = Flashlight(["FL"])
    for obj in build_difficulty_objects(jump_map.events, properties=jump_map.properties):
        skill.process(obj)
    assert skill.difficulty_value() == pytest.approx(sum(skill.peaks()))
    assert Flashlight.difficulty_to_performance(2.0) == 100


def test_single_colour_stamina_is_lower(make_circles):
    categories = [0] * 30
    circles = make_circles([(i * 100, 0, 0) for i in range(30)], categories=categories)
    objects = build_difficulty_objects(circles)

    stamina = Stamina()
    single_colour = Stamina(single_colour=True)
    for obj in objects:
        stamina.process(obj)
        single_colour.process(obj)

    assert 0 < single_colour.difficulty_value() < stamina.difficulty_value()
