# osu_parser.py
#
# Contains the logic for parsing .osu beatmap files into a Beatmap.
# Slider curves are sampled into polylines with the bezier package, slider
# timing comes from the timing points, and legacy stacking is applied before
# the events are frozen.

import numpy as np
import bezier

from .hit_objects import Beatmap, HitCircle, MapProperties, SliderPath, Spinner, make_slider
from .mods import circle_radius, get_ar_ms
from .utils import print_status

# Hitsound bits that mark a note as the second category (rim/kat).
WHISTLE = 2
CLAP = 8

# Osu!pixels between polyline samples when flattening a curve.
CURVE_SAMPLE_SPACING = 4.0

BASE_SCORING_DISTANCE = 100


def _read_sections(f):
    """Groups the non-empty lines of an .osu file by section name."""
    sections = {}
    current = None
    for line in f:
        line = line.strip()
        if not line or line.startswith('//'):
            continue
        if line.startswith('[') and line.endswith(']'):
            current = line[1:-1]
            sections.setdefault(current, [])
            continue
        if current is not None:
            sections[current].append(line)
    return sections


def _parse_key_values(lines):
    values = {}
    for line in lines:
        parts = line.split(':', 1)
        if len(parts) == 2:
            values[parts[0].strip()] = parts[1].strip()
    return values


def _parse_timing_points(lines):
    timing_points = []
    for line in lines:
        parts = line.split(',')
        if len(parts) < 2:
            continue
        timing_points.append({
            'time': float(parts[0]),
            'beat_length': float(parts[1]),
            'uninherited': len(parts) <= 6 or int(parts[6]) == 1,
        })
    return timing_points


def _sample_bezier(control_points):
    """Flattens one bezier segment into points along the curve."""
    if len(control_points) < 2:
        return np.asarray(control_points, dtype=float)
    if len(control_points) == 2:
        return np.asarray(control_points, dtype=float)

    nodes = np.asfortranarray(np.asarray(control_points, dtype=float).T)
    curve = bezier.Curve(nodes, degree=len(control_points) - 1)
    samples = max(2, int(curve.length / CURVE_SAMPLE_SPACING) + 1)
    return curve.evaluate_multi(np.linspace(0.0, 1.0, samples)).T


def _sample_circular_arc(p0, p1, p2):
    """Points along the circle through three control points, from p0 via p1 to p2."""
    a, b, c = (np.asarray(p, dtype=float) for p in (p0, p1, p2))
    d = 2 * (a[0] * (b[1] - c[1]) + b[0] * (c[1] - a[1]) + c[0] * (a[1] - b[1]))
    if abs(d) < 1e-6:
        # Collinear control points describe a plain bezier.
        return _sample_bezier([p0, p1, p2])

    a_sq, b_sq, c_sq = a.dot(a), b.dot(b), c.dot(c)
    centre = np.array([
        (a_sq * (b[1] - c[1]) + b_sq * (c[1] - a[1]) + c_sq * (a[1] - b[1])) / d,
        (a_sq * (c[0] - b[0]) + b_sq * (a[0] - c[0]) + c_sq * (b[0] - a[0])) / d,
    ])
    radius = np.linalg.norm(a - centre)

    theta_start = np.arctan2(a[1] - centre[1], a[0] - centre[0])
    theta_end = np.arctan2(c[1] - centre[1], c[0] - centre[0])
    while theta_end < theta_start:
        theta_end += 2 * np.pi

    direction = 1
    theta_range = theta_end - theta_start

    # Going the other way round when the middle point is on the right of a->c.
    ortho_ac = np.array([c[1] - a[1], -(c[0] - a[0])])
    if ortho_ac.dot(b - a) < 0:
        direction = -1
        theta_range = 2 * np.pi - theta_range

    samples = max(2, int(theta_range * radius / CURVE_SAMPLE_SPACING) + 1)
    thetas = theta_start + direction * np.linspace(0.0, theta_range, samples)
    return np.stack([centre[0] + radius * np.cos(thetas), centre[1] + radius * np.sin(thetas)], axis=1)


def build_curve_points(curve_type, control_points):
    """
    Flattens slider control points into a polyline.
    B (and C) curves are split into bezier segments at repeated control points.
    """
    if curve_type == 'L' or len(control_points) == 2:
        return np.asarray(control_points, dtype=float)

    if curve_type == 'P' and len(control_points) == 3:
        return _sample_circular_arc(*control_points)

    points = []
    segment = [control_points[0]]
    for point in control_points[1:]:
        if point == segment[-1]:
            points.extend(_sample_bezier(segment))
            segment = [point]
        else:
            segment.append(point)
    points.extend(_sample_bezier(segment))

    points = np.asarray(points, dtype=float)
    # Segment joins appear twice.
    keep = np.concatenate(([True], np.any(np.diff(points, axis=0) != 0, axis=1)))
    return points[keep]


def _parse_hit_object(line, combo_number):
    parts = line.split(',')
    if len(parts) < 5:
        raise ValueError(f"expected at least 5 fields, got {len(parts)}")

    obj_type_int = int(parts[3])
    obj = {
        'x': float(parts[0]), 'y': float(parts[1]),
        'time': float(parts[2]),
        'type': obj_type_int,
        'hitsound': int(parts[4]),
        'new_combo': bool((obj_type_int >> 2) & 1),
        'is_slider': bool((obj_type_int >> 1) & 1),
        'is_spinner': bool((obj_type_int >> 3) & 1),
        'combo_number': combo_number,
    }

    if obj['is_slider']:
        curve_fields = parts[5].split('|')
        control_points = [(obj['x'], obj['y'])]
        for p_str in curve_fields[1:]:
            p_parts = p_str.split(':')
            control_points.append((float(p_parts[0]), float(p_parts[1])))
        obj['curve_type'] = curve_fields[0]
        obj['control_points'] = control_points
        obj['slides'] = int(parts[6])
        obj['length'] = float(parts[7])
    elif obj['is_spinner']:
        obj['end_time'] = float(parts[5])

    return obj


def calculate_slider_velocities(hit_objects, difficulty, timing_points):
    """Stores velocity (px/ms), tick distance and duration on every slider."""
    slider_multiplier = difficulty.get('SliderMultiplier', 1.4)
    tick_rate = difficulty.get('SliderTickRate', 1.0)

    first_uninherited_point = None
    for point in timing_points:
        if point['uninherited']:
            first_uninherited_point = point
            break
    if first_uninherited_point is None:
        print_status("No uninherited timing points found, assuming 120 BPM.", level="WARN")
        current_beat_length = 500.0
    else:
        current_beat_length = first_uninherited_point['beat_length']

    current_slider_sv = 1.0
    timing_point_idx = -1
    for obj in hit_objects:
        while timing_point_idx + 1 < len(timing_points) and timing_points[timing_point_idx + 1]['time'] <= obj['time']:
            timing_point_idx += 1
            point = timing_points[timing_point_idx]
            if point['uninherited']:
                current_beat_length = point['beat_length']
                current_slider_sv = 1.0
            elif point['beat_length'] < 0:
                current_slider_sv = min(max(-100.0 / point['beat_length'], 0.1), 10.0)

        if obj['is_slider']:
            scoring_distance = BASE_SCORING_DISTANCE * slider_multiplier * current_slider_sv
            obj['velocity'] = scoring_distance / current_beat_length if current_beat_length > 0 else 0.0
            obj['tick_distance'] = scoring_distance / tick_rate
            obj['slider_duration'] = obj['length'] / obj['velocity'] * obj['slides'] if obj['velocity'] > 0 else 0.0


def apply_stack_leniency(hit_objects, difficulty):
    """
    Offsets objects that are placed on top of a recent object so that stacks
    fan out up and to the left, one step per stacked object.
    """
    cs = difficulty.get('CircleSize', 5.0)
    ar = difficulty.get('ApproachRate', difficulty.get('OverallDifficulty', 5.0))
    stack_leniency = difficulty.get('StackLeniency', 0.7)

    stack_offset = circle_radius(cs) / 10
    stack_time_window = get_ar_ms(ar) * stack_leniency

    for i in range(len(hit_objects)):
        current_obj = hit_objects[i]
        current_obj['stack_count'] = 0
        if current_obj['is_spinner']:
            continue

        for j in range(i - 1, -1, -1):
            prev_obj = hit_objects[j]
            if prev_obj['is_spinner']:
                continue
            time_diff = current_obj['time'] - prev_obj['time']
            if time_diff > stack_time_window:
                break

            if prev_obj['is_slider']:
                slider_end_time = prev_obj['time'] + prev_obj.get('slider_duration', 0)
                if slider_end_time >= current_obj['time']:
                    continue

            dist_sq = (current_obj['x'] - prev_obj['x']) ** 2 + (current_obj['y'] - prev_obj['y']) ** 2
            if dist_sq < 1:
                current_obj['stack_count'] = prev_obj['stack_count'] + 1
                break

    for obj in hit_objects:
        offset = obj['stack_count'] * stack_offset
        obj['stacked_x'] = obj['x'] - offset
        obj['stacked_y'] = obj['y'] - offset


def _to_event(obj, radius):
    position = (obj['stacked_x'], obj['stacked_y'])

    if obj['is_spinner']:
        return Spinner(time=obj['time'], position=position, radius=radius, new_combo=obj['new_combo'],
                       spin_end_time=obj['end_time'])

    if obj['is_slider']:
        points = build_curve_points(obj['curve_type'], obj['control_points'])
        path = SliderPath(points, expected_distance=obj['length'])
        return make_slider(obj['time'], position, radius, path, span_count=max(1, obj['slides']),
                           velocity=obj['velocity'], tick_distance=obj['tick_distance'],
                           new_combo=obj['new_combo'])

    category = 1 if obj['hitsound'] & (WHISTLE | CLAP) else 0
    return HitCircle(time=obj['time'], position=position, radius=radius, category=category,
                     new_combo=obj['new_combo'])


def parse_beatmap(beatmap_path):
    """
    Parses the .osu file into a Beatmap.

    Returns None (after printing an error) when the file is missing or
    unreadable. Malformed hit object lines are skipped with a warning.
    """
    print_status(f"Parsing beatmap: {beatmap_path}")

    try:
        with open(beatmap_path, 'r', encoding='utf-8') as f:
            sections = _read_sections(f)
    except FileNotFoundError:
        print_status(f"Beatmap file not found at: {beatmap_path}", level="ERROR")
        return None
    except (OSError, UnicodeDecodeError) as e:
        print_status(f"An error occurred while reading beatmap: {e}", level="ERROR")
        return None

    general = _parse_key_values(sections.get('General', []))
    difficulty = {}
    for key, value in _parse_key_values(sections.get('Difficulty', [])).items():
        try:
            difficulty[key] = float(value)
        except ValueError:
            print_status(f"Ignoring non-numeric difficulty value {key}: {value}", level="WARN")
    difficulty['StackLeniency'] = float(general.get('StackLeniency', 0.7))

    timing_points = _parse_timing_points(sections.get('TimingPoints', []))

    hit_objects = []
    combo_number = 1
    for line in sections.get('HitObjects', []):
        try:
            obj = _parse_hit_object(line, combo_number)
        except (ValueError, IndexError) as e:
            print_status(f"Skipping malformed hit object '{line}': {e}", level="WARN")
            continue
        combo_number = 1 if obj['new_combo'] else combo_number + 1
        hit_objects.append(obj)

    hit_objects.sort(key=lambda o: o['time'])
    calculate_slider_velocities(hit_objects, difficulty, timing_points)
    apply_stack_leniency(hit_objects, difficulty)

    properties = MapProperties(
        circle_size=difficulty.get('CircleSize', 5.0),
        approach_rate=difficulty.get('ApproachRate', difficulty.get('OverallDifficulty', 5.0)),
        overall_difficulty=difficulty.get('OverallDifficulty', 5.0),
        drain_rate=difficulty.get('HPDrainRate', 5.0),
        slider_multiplier=difficulty.get('SliderMultiplier', 1.4),
        slider_tick_rate=difficulty.get('SliderTickRate', 1.0),
        stack_leniency=difficulty['StackLeniency'],
    )
    radius = circle_radius(properties.circle_size)

    events = []
    for obj in hit_objects:
        try:
            events.append(_to_event(obj, radius))
        except ValueError as e:
            print_status(f"Skipping hit object at {obj['time']}ms: {e}", level="WARN")

    print_status(f"Successfully parsed {len(events)} hit objects and {len(timing_points)} timing points.")
    return Beatmap(events=events, properties=properties)
