"""Pytest configuration and shared fixtures for the difficulty calculator tests.

Fixtures build small synthetic maps directly from hit events, so tests do not
depend on any beatmap files.
"""
import pytest

from osu_difficulty import config
from osu_difficulty.hit_objects import Beatmap, HitCircle, MapProperties, SliderPath, make_slider
from osu_difficulty.mods import circle_radius


@pytest.fixture(autouse=True)
def restore_log_level():
    """Keep log level changes local to a test."""
    level = config.LOG_LEVEL
    yield
    config.LOG_LEVEL = level


@pytest.fixture
def properties():
    return MapProperties(circle_size=4.0, approach_rate=9.0, overall_difficulty=8.0, drain_rate=5.0)


@pytest.fixture
def radius(properties):
    return circle_radius(properties.circle_size)


@pytest.fixture
def make_circles():
    """Builds circles from (time, x, y) triples with a shared radius."""
    def _make(points, radius=50.0, categories=None):
        circles = []
        for i, (time, x, y) in enumerate(points):
            category = categories[i] if categories is not None else None
            circles.append(HitCircle(time=float(time), position=(float(x), float(y)), radius=radius,
                                     category=category))
        return circles
    return _make


@pytest.fixture
def straight_stream(make_circles):
    """Five collinear, evenly spaced and evenly timed circles."""
    return make_circles([(i * 200, i * 100, 0) for i in range(5)])


@pytest.fixture
def jump_map(properties, radius):
    """Forty circles jumping across the screen every 150 ms."""
    events = []
    for i in range(40):
        position = (100.0, 100.0) if i % 2 == 0 else (400.0, 300.0)
        events.append(HitCircle(time=1000.0 + i * 150, position=position, radius=radius))
    return Beatmap(events=events, properties=properties)


@pytest.fixture
def slider_map(properties, radius):
    """Circles and sliders mixed, with ticks and repeats."""
    events = []
    time = 1000.0
    for i in range(12):
        x = 100.0 + (i % 4) * 90
        y = 120.0 + (i % 3) * 70
        if i % 3 == 0:
            path = SliderPath.linear((160.0, 40.0))
            slider = make_slider(time, (x, y), radius, path, span_count=1 + i % 2, velocity=0.4, tick_distance=80.0)
            events.append(slider)
            time = slider.end_time + 200
        else:
            events.append(HitCircle(time=time, position=(x, y), radius=radius))
            time += 180
    return Beatmap(events=events, properties=properties)
