# -*- coding: utf-8 -*-
########################
# osu_convert.py
########################
# Purpose:
# - Parse osu!mania .osu files into Beatmaps for the strain rating engine.
#
# Key Logic:
# - [General] Mode must be 3 (mania).
# - [Difficulty] CircleSize is the key count; 4 and 7 convert, anything else is rejected.
# - [HitObjects] "x,y,time,type,hitSound,extras":
#   - lane = floor(x * key_count / 512) + 1
#   - type bit 128 is a hold; its end time is the first ':' field of extras
#   - type bit 1 is a tap
#   - other types are skipped
# - [TimingPoints] "time,beatLength,meter,sampleSet,sampleIndex,volume,uninherited,effects":
#   - uninherited points become TimingPointInfo(bpm = 60000 / beatLength)
#   - inherited points become SliderVelocityInfo(multiplier = round(-100 / beatLength, 2))
#
# Design notes:
# - Section and key names are matched exactly as osu! writes them.
# - Comments (//) and blank lines are ignored; both \r\n and \n line endings work.
#
########################
# Interfaces:
# Public functions:
# - parse_osu_text(osu_text: str) -> Beatmap
# - load_osu_beatmap(osu_path: pathlib.Path) -> Beatmap
#
########################

from __future__ import annotations

import logging
import math
import re
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from beatmap_models import (
    Beatmap,
    BeatmapValidationError,
    ChartParseError,
    ChartValidationError,
    HitObjectInfo,
    SliderVelocityInfo,
    TimingPointInfo,
    mode_for_key_count,
)

logger = logging.getLogger(__name__)

_SECTION_PATTERN = re.compile(r"^\[([A-Za-z0-9]+)\]$")
_PLAYFIELD_WIDTH = 512
_MANIA_MODE = "3"
_TYPE_TAP = 1 << 0
_TYPE_HOLD = 1 << 7


def _split_key_value(line_text: str) -> Optional[Tuple[str, str]]:
    if ":" not in line_text:
        return None
    key_text, value_text = line_text.split(":", 1)
    return key_text.strip(), value_text.strip()


def _parse_int(value_text: str, *, field_name: str) -> int:
    try:
        return int(float(value_text))
    except ValueError as exc:
        raise ChartParseError(f"Invalid {field_name} value: {value_text!r}") from exc


def _parse_float(value_text: str, *, field_name: str) -> float:
    try:
        return float(value_text)
    except ValueError as exc:
        raise ChartParseError(f"Invalid {field_name} value: {value_text!r}") from exc


def _lane_from_x(x_value: int, key_count: int) -> int:
    lane = int(math.floor(float(x_value) * key_count / _PLAYFIELD_WIDTH)) + 1
    if lane < 1 or lane > key_count:
        raise ChartValidationError(f"Hit object x={x_value} maps outside 1..{key_count}")
    return lane


def _parse_hit_object(line_text: str, key_count: int) -> Optional[HitObjectInfo]:
    members = line_text.split(",")
    if len(members) < 5:
        raise ChartParseError(f"Invalid hit object line: {line_text!r}")

    lane = _lane_from_x(_parse_int(members[0], field_name="x"), key_count)
    start_time = _parse_int(members[2], field_name="time")
    type_flags = _parse_int(members[3], field_name="type")

    if type_flags & _TYPE_HOLD:
        if len(members) < 6:
            raise ChartParseError(f"Hold note without end time: {line_text!r}")
        end_time = _parse_int(members[5].split(":", 1)[0], field_name="endTime")
        return HitObjectInfo(start_time=start_time, lane=lane, end_time=end_time)

    if type_flags & _TYPE_TAP:
        return HitObjectInfo(start_time=start_time, lane=lane)

    logger.debug("Skipping hit object with type %d at %d ms", type_flags, start_time)
    return None


def parse_osu_text(osu_text: str) -> Beatmap:
    general: Dict[str, str] = {}
    metadata: Dict[str, str] = {}
    difficulty: Dict[str, str] = {}
    timing_lines: List[str] = []
    hit_object_lines: List[str] = []

    section_name = ""
    for raw_line in osu_text.splitlines():
        line_text = raw_line.strip()
        if not line_text or line_text.startswith("//"):
            continue

        match = _SECTION_PATTERN.match(line_text)
        if match is not None:
            section_name = match.group(1)
            continue

        if section_name in ("General", "Metadata", "Difficulty"):
            pair = _split_key_value(line_text)
            if pair is None:
                continue
            target = {"General": general, "Metadata": metadata, "Difficulty": difficulty}[section_name]
            target[pair[0]] = pair[1]
        elif section_name == "TimingPoints":
            timing_lines.append(line_text)
        elif section_name == "HitObjects":
            hit_object_lines.append(line_text)

    mode_text = general.get("Mode", "0")
    if mode_text != _MANIA_MODE:
        raise ChartValidationError(f"Beatmap's game mode is not osu!mania (Mode: {mode_text})")

    if "CircleSize" not in difficulty:
        raise ChartParseError("Missing CircleSize in [Difficulty]")
    key_count = _parse_int(difficulty["CircleSize"], field_name="CircleSize")
    try:
        mode = mode_for_key_count(key_count)
    except BeatmapValidationError as exc:
        raise ChartValidationError(str(exc)) from exc

    timing_points: List[TimingPointInfo] = []
    slider_velocities: List[SliderVelocityInfo] = []
    for line_text in timing_lines:
        members = line_text.split(",")
        if len(members) < 2:
            raise ChartParseError(f"Invalid timing point line: {line_text!r}")
        start_time = _parse_float(members[0], field_name="timing point time")
        beat_length = _parse_float(members[1], field_name="beatLength")
        if beat_length == 0.0:
            raise ChartValidationError(f"Timing point at {start_time} ms has a zero beat length")
        if len(members) > 6:
            uninherited = members[6].strip() == "1"
        else:
            uninherited = beat_length > 0.0

        if uninherited:
            timing_points.append(TimingPointInfo(start_time=start_time, bpm=60000.0 / beat_length))
        else:
            slider_velocities.append(SliderVelocityInfo(start_time=start_time, multiplier=round(-100.0 / beat_length, 2)))

    hit_objects: List[HitObjectInfo] = []
    for line_text in hit_object_lines:
        hit_object = _parse_hit_object(line_text, key_count)
        if hit_object is not None:
            hit_objects.append(hit_object)

    creator = metadata.get("Creator", "")
    return Beatmap(
        mode=mode,
        hit_objects=tuple(hit_objects),
        timing_points=tuple(timing_points),
        slider_velocities=tuple(slider_velocities),
        title=metadata.get("Title", ""),
        artist=metadata.get("Artist", ""),
        creator=creator,
        difficulty_name=metadata.get("Version", ""),
        source=metadata.get("Source", ""),
        description=f"This is a converted version of {creator}'s map.",
    )


def load_osu_beatmap(osu_path: Path) -> Beatmap:
    try:
        osu_text = Path(osu_path).read_text(encoding="utf-8-sig")
    except UnicodeDecodeError as exc:
        raise ChartParseError(f"osu! file is not valid UTF-8: {osu_path}") from exc
    except OSError as exc:
        raise ChartParseError(f"Failed to read osu! file: {osu_path}") from exc
    return parse_osu_text(osu_text)


_SAMPLE_OSU = """osu file format v14

[General]
Mode: 3

[Metadata]
Title:Sample
Creator:Someone
Version:4K Easy

[Difficulty]
CircleSize:4

[TimingPoints]
0,500,4,1,0,100,1,0
1000,-50,4,1,0,100,0,0

[HitObjects]
64,192,0,1,0,0:0:0:0:
448,192,0,1,0,0:0:0:0:
192,192,500,128,0,1500:0:0:0:0:
"""


def _run_unit_tests() -> None:
    beatmap = parse_osu_text(_SAMPLE_OSU)
    assert beatmap.key_count() == 4
    assert [(item.start_time, item.lane, item.end_time) for item in beatmap.hit_objects] == [
        (0, 1, 0),
        (0, 4, 0),
        (500, 2, 1500),
    ]
    assert beatmap.timing_points[0].bpm == 120.0
    assert beatmap.slider_velocities[0].multiplier == 2.0
    assert beatmap.difficulty_name == "4K Easy"


if __name__ == "__main__":
    _run_unit_tests()
    print("osu_convert.py: ok")
