# -*- coding: utf-8 -*-
########################
# beatmap_models.py
########################
# Purpose:
# - In-memory beatmap representation consumed by the strain rating engine.
# - Converters (sm_convert.py, osu_convert.py) produce these; strain_rating.py reads them.
#
# Design notes:
# - Frozen dataclasses. Nothing in the engine mutates a Beatmap.
# - Times are integer milliseconds. end_time == 0 means the hit object is not a hold.
# - Lanes are 1-based.
# - sorted_by_start_time(), with_rate() return new beatmaps rather than editing in place.
#
########################
# Interfaces:
# Public enums:
# - class GameMode(enum.Enum): KEYS4 | KEYS7
#
# Public exceptions:
# - class BeatmapValidationError(ValueError)
# - class ChartError(Exception), ChartParseError(ChartError), ChartValidationError(ChartError)
#   (raised by the chart converters)
#
# Public dataclasses:
# - HitObjectInfo(start_time: int, lane: int, end_time: int = 0)
#   - is_hold() -> bool
#   - effective_end_time() -> int
# - TimingPointInfo(start_time: float, bpm: float)
# - SliderVelocityInfo(start_time: float, multiplier: float)
# - Beatmap(mode, hit_objects, timing_points, slider_velocities, title, artist, creator,
#           difficulty_name, source, description)
#   - key_count() -> int
#   - length() -> int
#   - is_sorted() -> bool
#   - sorted_by_start_time() -> Beatmap
#   - validate() -> None
#   - common_bpm() -> float
#   - with_rate(rate: float) -> Beatmap
#
# Public functions:
# - key_count_for_mode(mode: GameMode) -> int
# - mode_for_key_count(key_count: int) -> GameMode
#
########################

from __future__ import annotations

import dataclasses
import enum
from collections import Counter
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Tuple


class GameMode(enum.Enum):
    KEYS4 = "keys4"
    KEYS7 = "keys7"


class BeatmapValidationError(ValueError):
    """Raised when a beatmap violates the structural rules the engine relies on."""


class ChartError(Exception):
    """Base error for converting a chart file into a Beatmap."""


class ChartParseError(ChartError):
    """Raised when the file cannot be parsed into the expected structure."""


class ChartValidationError(ChartError):
    """Raised when the file parses but its notes cannot form a valid Beatmap."""


_KEY_COUNT_BY_MODE = {
    GameMode.KEYS4: 4,
    GameMode.KEYS7: 7,
}


def key_count_for_mode(mode: GameMode) -> int:
    if mode not in _KEY_COUNT_BY_MODE:
        raise BeatmapValidationError(f"Unsupported game mode: {mode!r}")
    return _KEY_COUNT_BY_MODE[mode]


def mode_for_key_count(key_count: int) -> GameMode:
    for mode, count in _KEY_COUNT_BY_MODE.items():
        if count == int(key_count):
            return mode
    raise BeatmapValidationError(
        f"Unsupported key count: {key_count!r}. Supported: {sorted(_KEY_COUNT_BY_MODE.values())}"
    )


@dataclass(frozen=True)
class HitObjectInfo:
    start_time: int
    lane: int
    end_time: int = 0

    def is_hold(self) -> bool:
        return int(self.end_time) > 0

    def effective_end_time(self) -> int:
        return max(int(self.start_time), int(self.end_time))


@dataclass(frozen=True)
class TimingPointInfo:
    start_time: float
    bpm: float


@dataclass(frozen=True)
class SliderVelocityInfo:
    start_time: float
    multiplier: float


@dataclass(frozen=True)
class Beatmap:
    mode: GameMode
    hit_objects: Tuple[HitObjectInfo, ...]
    timing_points: Tuple[TimingPointInfo, ...] = ()
    slider_velocities: Tuple[SliderVelocityInfo, ...] = ()
    title: str = ""
    artist: str = ""
    creator: str = ""
    difficulty_name: str = ""
    source: str = ""
    description: str = ""

    def key_count(self) -> int:
        return key_count_for_mode(self.mode)

    def length(self) -> int:
        """Time of the last note's effective end in milliseconds (0 for an empty map)."""
        if not self.hit_objects:
            return 0
        return max(hit_object.effective_end_time() for hit_object in self.hit_objects)

    def is_sorted(self) -> bool:
        previous_start = None
        for hit_object in self.hit_objects:
            if previous_start is not None and int(hit_object.start_time) < previous_start:
                return False
            previous_start = int(hit_object.start_time)
        return True

    def sorted_by_start_time(self) -> Beatmap:
        # Stable sort keeps the authored order of notes that share a start time.
        return dataclasses.replace(
            self,
            hit_objects=tuple(sorted(self.hit_objects, key=lambda item: int(item.start_time))),
            timing_points=tuple(sorted(self.timing_points, key=lambda item: float(item.start_time))),
            slider_velocities=tuple(sorted(self.slider_velocities, key=lambda item: float(item.start_time))),
        )

    def validate(self) -> None:
        if not isinstance(self.mode, GameMode):
            raise BeatmapValidationError(f"Unsupported game mode: {self.mode!r}")
        if not self.hit_objects:
            raise BeatmapValidationError("Beatmap has no hit objects")

        key_count = self.key_count()
        for position, hit_object in enumerate(self.hit_objects):
            lane = int(hit_object.lane)
            if lane < 1 or lane > key_count:
                raise BeatmapValidationError(
                    f"Hit object #{position} has lane {lane}, expected 1..{key_count} for {self.mode.value}"
                )
            if int(hit_object.start_time) < 0:
                raise BeatmapValidationError(f"Hit object #{position} starts before 0 ms: {hit_object.start_time}")
            if hit_object.is_hold() and int(hit_object.end_time) <= int(hit_object.start_time):
                raise BeatmapValidationError(
                    f"Hit object #{position} ends at {hit_object.end_time} ms, not after its start {hit_object.start_time} ms"
                )

    def common_bpm(self) -> float:
        """Most frequent BPM across timing points, rounded to 2 decimals half away from zero."""
        if not self.timing_points:
            return 0.0
        counts = Counter(float(point.bpm) for point in self.timing_points)
        # Counter keeps first-seen order for equal counts.
        most_common_bpm = counts.most_common(1)[0][0]
        rounded = Decimal(str(most_common_bpm)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
        return float(rounded)

    def with_rate(self, rate: float) -> Beatmap:
        rate_value = float(rate)
        if rate_value <= 0.0:
            raise ValueError(f"rate must be > 0, got {rate!r}")

        def scale(time_ms: float) -> int:
            return int(round(float(time_ms) / rate_value))

        hit_objects = tuple(
            HitObjectInfo(
                start_time=scale(hit_object.start_time),
                lane=int(hit_object.lane),
                end_time=scale(hit_object.end_time) if hit_object.is_hold() else 0,
            )
            for hit_object in self.hit_objects
        )
        timing_points = tuple(
            TimingPointInfo(start_time=float(scale(point.start_time)), bpm=float(point.bpm) * rate_value)
            for point in self.timing_points
        )
        slider_velocities = tuple(
            SliderVelocityInfo(start_time=float(scale(velocity.start_time)), multiplier=float(velocity.multiplier))
            for velocity in self.slider_velocities
        )
        return dataclasses.replace(
            self,
            hit_objects=hit_objects,
            timing_points=timing_points,
            slider_velocities=slider_velocities,
        )


def _run_unit_tests() -> None:
    beatmap = Beatmap(
        mode=GameMode.KEYS4,
        hit_objects=(
            HitObjectInfo(start_time=500, lane=2),
            HitObjectInfo(start_time=100, lane=1, end_time=900),
            HitObjectInfo(start_time=700, lane=4),
        ),
        timing_points=(TimingPointInfo(start_time=0.0, bpm=150.0), TimingPointInfo(start_time=200.0, bpm=150.0)),
    )
    assert beatmap.key_count() == 4
    assert beatmap.length() == 900
    assert not beatmap.is_sorted()

    ordered = beatmap.sorted_by_start_time()
    assert ordered.is_sorted()
    assert [item.start_time for item in ordered.hit_objects] == [100, 500, 700]
    ordered.validate()
    assert ordered.common_bpm() == 150.0

    doubled = ordered.with_rate(2.0)
    assert [item.start_time for item in doubled.hit_objects] == [50, 250, 350]
    assert doubled.hit_objects[0].end_time == 450
    assert doubled.hit_objects[1].end_time == 0

    bad_lane = Beatmap(mode=GameMode.KEYS4, hit_objects=(HitObjectInfo(start_time=0, lane=5),))
    try:
        bad_lane.validate()
    except BeatmapValidationError:
        pass
    else:
        raise AssertionError("Expected BeatmapValidationError for lane 5 in 4K")


if __name__ == "__main__":
    _run_unit_tests()
    print("beatmap_models.py: ok")
