# batch.py
#
# Runs many independent calculations over a process pool. Each worker builds
# its own sequence and skill state; nothing is shared between calculations.

import multiprocessing
import os
from typing import List, Optional, Sequence

from tqdm import tqdm

from .attributes import DifficultyAttributes
from .difficulty_calculator import calculate_difficulty
from .osu_parser import parse_beatmap
from .utils import print_status


def _calculate_job(job):
    beatmap, mods, skill_multipliers = job
    if isinstance(beatmap, (str, os.PathLike)):
        beatmap = parse_beatmap(beatmap)
        if beatmap is None:
            return None
    return calculate_difficulty(beatmap, mods, skill_multipliers)


def calculate_many(beatmaps: Sequence, mods=(), skill_multipliers=None, num_workers: Optional[int] = None,
                   show_progress: bool = True) -> List[Optional[DifficultyAttributes]]:
    """
    Calculates attributes for every beatmap (Beatmap objects or .osu paths)
    with the same mods. Results keep the input order; maps that fail to parse
    give None.
    """
    jobs = [(beatmap, mods, skill_multipliers) for beatmap in beatmaps]
    if not jobs:
        return []

    if num_workers is None:
        num_workers = max(1, (os.cpu_count() or 2) - 1)
    num_workers = min(num_workers, len(jobs))

    if num_workers == 1:
        results = list(tqdm(map(_calculate_job, jobs), total=len(jobs), desc="Calculating", disable=not show_progress))
    else:
        print_status(f"Using {num_workers} worker processes for {len(jobs)} maps.")
        with multiprocessing.Pool(num_workers) as pool:
            iterator = pool.imap(_calculate_job, jobs)
            results = list(tqdm(iterator, total=len(jobs), desc="Calculating", disable=not show_progress))

    failed = sum(1 for r in results if r is None)
    if failed:
        print_status(f"{failed} of {len(jobs)} maps could not be calculated.", level="WARN")
    return results
