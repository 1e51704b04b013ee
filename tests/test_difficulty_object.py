import math

import pytest

from osu_difficulty.difficulty_object import build_difficulty_objects, head_to_head_movement, merge_nested_movements
from osu_difficulty.hit_objects import (Banana, HitCircle, MapProperties, Slider, SliderPath, Spinner, TinyDroplet,
                                        make_slider)
from osu_difficulty.movement import Movement


def _movement(start, end, start_time=0.0, end_time=100.0, radius=50.0):
    return Movement(start=start, start_time=start_time, start_radius=radius,
                    end=end, end_time=end_time, end_radius=radius, is_nested=True)


def test_fewer_than_two_events_give_an_empty_sequence(make_circles):
    assert build_difficulty_objects([]) == []
    assert build_difficulty_objects(make_circles([(0, 0, 0)])) == []


def test_first_event_only_serves_as_predecessor(straight_stream):
    objects = build_difficulty_objects(straight_stream)
    assert len(objects) == len(straight_stream) - 1
    assert objects[0].base is straight_stream[1]
    assert objects[0].last_base is straight_stream[0]
    assert objects[0].last_last_base is None
    assert objects[1].last_last_base is straight_stream[0]


def test_events_are_sorted_and_filtered(make_circles):
    circles = make_circles([(400, 0, 0), (0, 100, 0), (200, 200, 0)])
    banana = Banana(time=100, position=(0, 0), radius=50)
    droplet = TinyDroplet(time=300, position=(50, 50), radius=50)

    objects = build_difficulty_objects(circles + [banana, droplet])
    assert [obj.base.time for obj in objects] == [200, 300, 400]
    assert all(not isinstance(obj.base, Banana) for obj in objects)


def test_clock_rate_must_be_positive(straight_stream):
    with pytest.raises(ValueError):
        build_difficulty_objects(straight_stream, clock_rate=0)


def test_clock_rate_scales_times(straight_stream):
    objects = build_difficulty_objects(straight_stream, clock_rate=2.0)
    assert objects[0].start_time == 100
    assert objects[0].delta_time == 100
    assert objects[0].hit_window_great == pytest.approx(50)


def test_navigation(straight_stream):
    objects = build_difficulty_objects(straight_stream)
    assert objects[0].previous(0) is None
    assert objects[2].previous(0) is objects[1]
    assert objects[2].previous(1) is objects[0]
    assert objects[2].next(0) is objects[3]
    assert objects[3].next(0) is None


def test_delta_time_is_floored(make_circles):
    objects = build_difficulty_objects(make_circles([(0, 0, 0), (1, 100, 0)]))
    assert objects[0].delta_time == 1
    assert objects[0].adjusted_delta_time == 25
    assert objects[0].movements[0].time == 25


def test_constant_pattern_has_equal_movements(straight_stream):
    objects = build_difficulty_objects(straight_stream)
    for obj in objects:
        assert len(obj.movements) == 1
        assert obj.movements[0].distance == pytest.approx(100)
        assert obj.movements[0].time == pytest.approx(200)
        assert obj.lazy_jump_distance == pytest.approx(100)
        assert obj.minimum_jump_distance == pytest.approx(100)

    assert objects[0].angle is None
    for obj in objects[1:]:
        assert obj.angle == pytest.approx(math.pi)


def test_first_head_movement_starts_at_the_raw_predecessor(make_circles):
    circles = make_circles([(0, 10, 20), (300, 200, 20)], radius=40)
    movement = build_difficulty_objects(circles)[0].movements[0]
    assert movement.start == (10, 20)
    assert movement.start_time == 0
    assert movement.start_radius == 40


def test_normalised_distances_do_not_depend_on_scale(make_circles):
    points = [(0, 0, 0), (150, 80, 40), (300, 160, 170), (450, 20, 90)]
    small = build_difficulty_objects(make_circles(points, radius=25))
    large = build_difficulty_objects(make_circles([(t, x * 2, y * 2) for t, x, y in points], radius=50))

    for a, b in zip(small, large):
        assert a.lazy_jump_distance == pytest.approx(b.lazy_jump_distance)
        assert a.movements[0].distance == pytest.approx(b.movements[0].distance)
        assert a.angle == b.angle or a.angle == pytest.approx(b.angle)


def test_lazy_slider_end_and_travel():
    slider = make_slider(500, (0, 0), 50, SliderPath.linear((200, 0)), velocity=0.5)
    events = [
        HitCircle(time=0, position=(0, 0), radius=50),
        slider,
        HitCircle(time=1500, position=(0, 300), radius=50),
    ]
    slider_obj, circle_obj = build_difficulty_objects(events)

    assert slider_obj.lazy_travel_time == pytest.approx(364)
    assert slider_obj.lazy_end_position == pytest.approx((132, 0))
    assert slider_obj.lazy_travel_distance == pytest.approx(132)
    assert slider_obj.travel_distance == pytest.approx(132)
    assert slider_obj.travel_time == pytest.approx(364)

    # Head movement first, then the single lazy nested movement.
    assert len(slider_obj.movements) == 2
    nested = slider_obj.movements[1]
    assert nested.is_nested
    assert nested.end == pytest.approx((132, 0))
    assert nested.end_time == pytest.approx(864)

    head = circle_obj.movements[0]
    assert head.start == pytest.approx((132, 0))
    assert head.start_time == pytest.approx(864)
    assert circle_obj.lazy_jump_distance == pytest.approx(math.hypot(132, 300))


def test_slider_without_nested_events_is_rejected():
    broken = Slider(time=500, position=(0, 0), radius=50, duration=100)
    with pytest.raises(ValueError):
        build_difficulty_objects([HitCircle(time=0, position=(0, 0), radius=50), broken])


def test_spinners_have_no_jump_features():
    events = [
        HitCircle(time=0, position=(0, 0), radius=50),
        Spinner(time=500, position=(256, 192), radius=50, spin_end_time=1500),
        HitCircle(time=2000, position=(100, 100), radius=50),
    ]
    spinner_obj, circle_obj = build_difficulty_objects(events)
    assert spinner_obj.lazy_jump_distance == 0
    assert circle_obj.lazy_jump_distance == 0
    assert spinner_obj.end_time == 1500


def test_merge_drops_nested_movements_along_the_jump():
    head_to_head = _movement((0, 0), (300, 0), end_time=500)
    nested = (_movement((0, 0), (100, 0)), _movement((100, 0), (200, 5)))
    assert merge_nested_movements(nested, head_to_head, 1.0) == ()


def test_merge_keeps_everything_when_a_later_movement_leaves_the_jump():
    head_to_head = _movement((0, 0), (300, 0), end_time=500)
    nested = (_movement((0, 0), (100, 0)), _movement((100, 0), (100, 200)))
    assert merge_nested_movements(nested, head_to_head, 1.0) == nested


def test_merge_folds_short_movements_into_the_next_one():
    head_to_head = _movement((0, 0), (0, -300), end_time=500)
    short = _movement((0, 0), (30, 0), start_time=10, end_time=50)
    long = _movement((30, 0), (30, 200), start_time=50, end_time=150)

    merged = merge_nested_movements((short, long), head_to_head, 1.0)
    assert len(merged) == 1
    assert merged[0].start == (0, 0)
    assert merged[0].start_time == 10
    assert merged[0].end == (30, 200)


def test_head_to_head_movement_joins_object_heads(straight_stream):
    objects = build_difficulty_objects(straight_stream)
    movement = head_to_head_movement(objects[0], objects[1])
    assert movement.start == (100, 0)
    assert movement.end == (200, 0)
    assert movement.time == 200


def test_category_streaks(make_circles):
    circles = make_circles([(i * 100, 0, 0) for i in range(6)], categories=[0, 0, 1, 1, 1, 0])
    objects = build_difficulty_objects(circles)

    assert [obj.streak_position for obj in objects] == [0, 0, 1, 2, 0]
    assert objects[2].previous_category_change is objects[0]
    assert objects[1].next_category_change is objects[4]
    assert objects[4].previous_same_category(0) is objects[0]
    assert objects[3].previous_same_category(1) is objects[1]
    assert objects[0].previous_same_category(0) is None


def test_objects_without_category_are_not_notes(straight_stream):
    objects = build_difficulty_objects(straight_stream)
    assert not any(obj.is_note for obj in objects)


def test_opacity_fades_in_and_hidden_fades_out():
    properties = MapProperties(approach_rate=5)
    circles = [HitCircle(time=0, position=(0, 0), radius=50), HitCircle(time=2000, position=(0, 0), radius=50)]
    obj = build_difficulty_objects(circles, properties=properties)[0]

    assert obj.opacity_at(800, hidden=False) == 0
    assert obj.opacity_at(1000, hidden=False) == pytest.approx(0.5)
    assert obj.opacity_at(1900, hidden=False) == 1
    assert obj.opacity_at(1900, hidden=True) == 0
    assert obj.opacity_at(2100, hidden=False) == 0
