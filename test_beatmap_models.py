from __future__ import annotations

import pytest

from beatmap_models import (
    Beatmap,
    BeatmapValidationError,
    GameMode,
    HitObjectInfo,
    TimingPointInfo,
    key_count_for_mode,
    mode_for_key_count,
)
from sample_charts import beatmap_from_rows


def test_key_counts():
    assert key_count_for_mode(GameMode.KEYS4) == 4
    assert key_count_for_mode(GameMode.KEYS7) == 7
    assert mode_for_key_count(7) is GameMode.KEYS7
    with pytest.raises(BeatmapValidationError):
        mode_for_key_count(5)


def test_hold_end_defines_length():
    beatmap = beatmap_from_rows(GameMode.KEYS4, [(0, 1, 0), (100, 2, 900), (400, 3, 0)])
    assert beatmap.length() == 900
    assert beatmap_from_rows(GameMode.KEYS4, []).length() == 0


def test_sorting_is_stable_for_equal_start_times():
    beatmap = beatmap_from_rows(GameMode.KEYS4, [(500, 4, 0), (0, 3, 0), (0, 1, 0)])
    assert not beatmap.is_sorted()

    ordered = beatmap.sorted_by_start_time()
    assert ordered.is_sorted()
    assert [(item.start_time, item.lane) for item in ordered.hit_objects] == [(0, 3), (0, 1), (500, 4)]
    # The unsorted beatmap is left as it was.
    assert beatmap.hit_objects[0].start_time == 500


@pytest.mark.parametrize(
    "rows",
    [
        [],
        [(0, 5, 0)],
        [(-10, 1, 0)],
        [(1000, 1, 900)],
    ],
)
def test_validate_rejects_broken_maps(rows):
    with pytest.raises(BeatmapValidationError):
        beatmap_from_rows(GameMode.KEYS4, rows).validate()


def test_validate_accepts_playable_map():
    beatmap_from_rows(GameMode.KEYS7, [(0, 7, 0), (0, 4, 250)]).validate()


def test_common_bpm_prefers_most_frequent_value():
    beatmap = Beatmap(
        mode=GameMode.KEYS4,
        hit_objects=(HitObjectInfo(start_time=0, lane=1),),
        timing_points=(
            TimingPointInfo(start_time=0.0, bpm=180.0),
            TimingPointInfo(start_time=1000.0, bpm=123.455),
            TimingPointInfo(start_time=2000.0, bpm=123.455),
        ),
    )
    assert beatmap.common_bpm() == 123.46
    assert beatmap_from_rows(GameMode.KEYS4, [(0, 1, 0)]).common_bpm() == 0.0


def test_with_rate_scales_times_and_bpm():
    beatmap = Beatmap(
        mode=GameMode.KEYS4,
        hit_objects=(HitObjectInfo(start_time=0, lane=1), HitObjectInfo(start_time=1000, lane=2, end_time=1500)),
        timing_points=(TimingPointInfo(start_time=0.0, bpm=120.0),),
    )
    faster = beatmap.with_rate(2.0)
    assert [(item.start_time, item.end_time) for item in faster.hit_objects] == [(0, 0), (500, 750)]
    assert faster.timing_points[0].bpm == 240.0
    assert faster.length() == 750

    with pytest.raises(ValueError):
        beatmap.with_rate(0)
