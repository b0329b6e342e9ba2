# sample_charts.py
from __future__ import annotations

from typing import Iterable, List, Tuple

from beatmap_models import Beatmap, GameMode, HitObjectInfo


def beatmap_from_rows(mode: GameMode, rows: Iterable[Tuple[int, int, int]]) -> Beatmap:
    """Build a beatmap from (start_time, lane, end_time) rows, kept in the given order."""
    hit_objects = tuple(HitObjectInfo(start_time=int(start), lane=int(lane), end_time=int(end)) for start, lane, end in rows)
    return Beatmap(mode=mode, hit_objects=hit_objects)


def build_sample_beatmap(*, difficulty: str, mode: GameMode = GameMode.KEYS4) -> Beatmap:
    normalized_difficulty = (difficulty or "easy").strip().lower() or "easy"

    if normalized_difficulty == "hard":
        step_interval_ms = 150
        total_notes = 64
    elif normalized_difficulty == "medium":
        step_interval_ms = 250
        total_notes = 48
    else:
        normalized_difficulty = "easy"
        step_interval_ms = 400
        total_notes = 32

    lead_in_ms = 1000
    key_count = 4 if mode is GameMode.KEYS4 else 7

    # Deterministic lane pattern that covers all lanes and includes a few jumps and holds.
    lane_pattern = [
        1, 2, 3, 4,
        2, 1, 4, 3,
        1, 3, 2, 4,
        3, 4, 1, 2,
    ]

    rows: List[Tuple[int, int, int]] = []
    current_time_ms = lead_in_ms

    for note_index in range(total_notes):
        lane = ((lane_pattern[note_index % len(lane_pattern)] - 1) % key_count) + 1
        if note_index % 8 == 5:
            rows.append((current_time_ms, lane, current_time_ms + step_interval_ms * 2))
        else:
            rows.append((current_time_ms, lane, 0))

        # Jumps on higher difficulties: a second note in the mirrored lane at the same time.
        if normalized_difficulty in ("medium", "hard") and note_index % 6 == 0:
            paired_lane = key_count + 1 - lane
            if paired_lane != lane:
                rows.append((current_time_ms, paired_lane, 0))

        current_time_ms += step_interval_ms

    rows.sort(key=lambda row: (row[0], row[1]))
    return beatmap_from_rows(mode, rows)
