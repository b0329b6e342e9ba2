# -*- coding: utf-8 -*-
########################
# sm_convert.py
########################
# Purpose:
# - Parse StepMania .sm files into 4K Beatmaps for the strain rating engine.
#
# Key Logic:
# - The file is a flat list of "#NAME:value;" fields. One tokenizer yields them all;
#   the first of each header name wins, every NOTES field is a chart.
# - A NOTES value is "step type : description : difficulty : meter : radar : rows".
# - Rows are grouped into measures by ','. A measure spans 4 beats shared evenly by its rows.
# - Beat -> time goes through BpmTimeline; note time in ms = seconds * 1000 - #OFFSET * 1000, rounded.
#
# Design notes:
# - Only dance-single charts convert (4 lanes, GameMode.KEYS4); other step types are skipped.
# - Format slack is tolerated (comments, blank lines, spacing) but an unplayable chart is an error.
#
########################
# Interfaces:
# Public dataclasses:
# - SimfileHeader(title, artist, credit, subtitle, offset_seconds, bpm_segments)
# - StepChartBlock(step_type: str, difficulty: str, meter: int, description: str, notes_text: str)
# - LoadedSimfileChart(beatmap: Beatmap, header: SimfileHeader, step_chart: StepChartBlock,
#                      source_path: Optional[pathlib.Path])
# - BpmTimeline(segments, segment_start_seconds)
#   - from_segments(segments) -> BpmTimeline
#   - seconds_at(beat: float) -> float
#
# Public functions:
# - normalize_difficulty(difficulty: str) -> str
# - parse_simfile_text(simfile_text: str, *, source_path: Optional[Path] = None) -> list[LoadedSimfileChart]
# - load_simfile(simfile_path: pathlib.Path) -> list[LoadedSimfileChart]
# - load_chart_for_difficulty(simfile_path: pathlib.Path, *, difficulty: str) -> Optional[LoadedSimfileChart]
#
# Note symbols:
# - '0' empty, '1' tap, '2' hold head, '4' roll head (treated as hold), '3' hold/roll tail
# - 'M' mine, 'F' fake, 'L' lift, 'K' keysound: ignored
#
########################

from __future__ import annotations

import bisect
import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterator, List, Optional, Sequence, Tuple

from beatmap_models import (
    Beatmap,
    ChartParseError,
    ChartValidationError,
    GameMode,
    HitObjectInfo,
    TimingPointInfo,
)

logger = logging.getLogger(__name__)

DIFFICULTIES = ("beginner", "easy", "medium", "hard", "challenge", "edit")

_LANE_COUNT = 4
_BEATS_PER_MEASURE = 4.0
_HOLD_HEADS = ("2", "4")
_HOLD_TAIL = "3"
_TAP = "1"
_IGNORED_SYMBOLS = frozenset("MFLK")

_FIELD_PATTERN = re.compile(r"#([A-Za-z0-9_]+)\s*:(.*?);", re.DOTALL)


@dataclass(frozen=True)
class SimfileHeader:
    title: str
    artist: str
    credit: str
    subtitle: str
    offset_seconds: float
    bpm_segments: Sequence[Tuple[float, float]]


@dataclass(frozen=True)
class StepChartBlock:
    step_type: str
    difficulty: str
    meter: int
    description: str
    notes_text: str


@dataclass(frozen=True)
class LoadedSimfileChart:
    beatmap: Beatmap
    header: SimfileHeader
    step_chart: StepChartBlock
    source_path: Optional[Path]


@dataclass(frozen=True)
class BpmTimeline:
    """Piecewise constant tempo. segments are (start_beat, bpm), ascending, the first at beat 0."""

    segments: Tuple[Tuple[float, float], ...]
    segment_start_seconds: Tuple[float, ...]

    @classmethod
    def from_segments(cls, segments: Sequence[Tuple[float, float]]) -> BpmTimeline:
        ordered = tuple(sorted((float(beat), float(bpm)) for beat, bpm in segments))
        start_seconds = [0.0]
        for (previous_beat, previous_bpm), (beat, _bpm) in zip(ordered, ordered[1:]):
            start_seconds.append(start_seconds[-1] + (beat - previous_beat) * 60.0 / previous_bpm)
        return cls(segments=ordered, segment_start_seconds=tuple(start_seconds))

    def seconds_at(self, beat: float) -> float:
        starts = [segment_beat for segment_beat, _bpm in self.segments]
        position = max(bisect.bisect_right(starts, float(beat)) - 1, 0)
        segment_beat, bpm = self.segments[position]
        return self.segment_start_seconds[position] + (float(beat) - segment_beat) * 60.0 / bpm


def normalize_difficulty(difficulty: str) -> str:
    name = str(difficulty or "").strip().lower()
    if name not in DIFFICULTIES:
        raise ValueError(f"Unsupported difficulty: {difficulty!r}. Allowed: {sorted(DIFFICULTIES)}")
    return name


def _strip_comments(simfile_text: str) -> str:
    return "\n".join(line.split("//", 1)[0] for line in simfile_text.splitlines())


def _iter_fields(simfile_text: str) -> Iterator[Tuple[str, str]]:
    for match in _FIELD_PATTERN.finditer(_strip_comments(simfile_text)):
        yield match.group(1).strip().upper(), match.group(2)


def _parse_offset_seconds(raw_text: str) -> float:
    text = raw_text.strip()
    if not text:
        return 0.0
    try:
        return float(text)
    except ValueError as exc:
        raise ChartParseError(f"Invalid #OFFSET value: {text!r}") from exc


def _parse_bpm_segments(raw_text: str) -> List[Tuple[float, float]]:
    segments: List[Tuple[float, float]] = []
    for item in (part.strip() for part in raw_text.split(",")):
        if not item:
            continue
        beat_text, separator, bpm_text = item.partition("=")
        if not separator:
            raise ChartParseError(f"Invalid #BPMS segment: {item!r}")
        try:
            beat, bpm = float(beat_text), float(bpm_text)
        except ValueError as exc:
            raise ChartParseError(f"Invalid #BPMS segment numbers: {item!r}") from exc
        if bpm <= 0.0:
            raise ChartParseError(f"BPM must be > 0, got {bpm!r} at beat {beat!r}")
        segments.append((beat, bpm))

    if not segments:
        raise ChartParseError("Missing #BPMS tag")

    segments.sort()
    if segments[0][0] != 0.0:
        # The first tempo also covers the beats before its marker.
        segments.insert(0, (0.0, segments[0][1]))
    return segments


def _parse_header(header_fields: Dict[str, str]) -> SimfileHeader:
    return SimfileHeader(
        title=header_fields.get("TITLE", "").strip() or "Untitled",
        artist=header_fields.get("ARTIST", "").strip(),
        credit=header_fields.get("CREDIT", "").strip(),
        subtitle=header_fields.get("SUBTITLE", "").strip(),
        offset_seconds=_parse_offset_seconds(header_fields.get("OFFSET", "")),
        bpm_segments=_parse_bpm_segments(header_fields.get("BPMS", "")),
    )


def _parse_step_chart(notes_value: str) -> StepChartBlock:
    fields = notes_value.split(":", 5)
    if len(fields) != 6:
        raise ChartParseError(f"#NOTES needs 6 ':' separated fields, found {len(fields)}")
    step_type, description, difficulty_text, meter_text = (field.strip() for field in fields[:4])

    if not step_type:
        raise ChartParseError("Missing step type in #NOTES")
    try:
        difficulty = normalize_difficulty(difficulty_text)
    except ValueError as exc:
        raise ChartParseError(str(exc)) from exc
    try:
        meter = int(meter_text) if meter_text else 1
    except ValueError as exc:
        raise ChartParseError(f"Invalid meter in #NOTES: {meter_text!r}") from exc

    return StepChartBlock(
        step_type=step_type,
        difficulty=difficulty,
        meter=meter,
        description=description,
        notes_text=fields[5],
    )


def _measures(notes_text: str) -> List[List[str]]:
    measures = []
    for chunk in notes_text.split(","):
        measures.append(["".join(line.split()) for line in chunk.splitlines() if line.strip()])
    # Text after the last ',' is only a measure when it has rows.
    while measures and not measures[-1]:
        measures.pop()
    return measures


def _hit_objects_from_rows(notes_text: str, timeline: BpmTimeline, offset_seconds: float) -> List[HitObjectInfo]:
    hit_objects: List[HitObjectInfo] = []
    hold_starts: Dict[int, int] = {}

    for measure_index, rows in enumerate(_measures(notes_text)):
        for row_index, row in enumerate(rows):
            if len(row) != _LANE_COUNT:
                raise ChartValidationError(f"dance-single rows have {_LANE_COUNT} columns, got {len(row)}: {row!r}")

            beat = _BEATS_PER_MEASURE * (measure_index + float(row_index) / len(rows))
            time_ms = int(round((timeline.seconds_at(beat) - float(offset_seconds)) * 1000.0))

            for lane, symbol in enumerate(row, start=1):
                if symbol == "0" or symbol.upper() in _IGNORED_SYMBOLS:
                    continue
                if symbol == _TAP:
                    hit_objects.append(HitObjectInfo(start_time=time_ms, lane=lane))
                elif symbol in _HOLD_HEADS:
                    if lane in hold_starts:
                        raise ChartValidationError(f"Lane {lane} starts a hold at beat {beat:.3f} while one is open")
                    hold_starts[lane] = time_ms
                elif symbol == _HOLD_TAIL:
                    if lane not in hold_starts:
                        raise ChartValidationError(f"Lane {lane} ends a hold at beat {beat:.3f} that never started")
                    hit_objects.append(HitObjectInfo(start_time=hold_starts.pop(lane), lane=lane, end_time=time_ms))
                else:
                    raise ChartValidationError(f"Unsupported note symbol {symbol!r} in row {row!r}")

    if hold_starts:
        raise ChartValidationError(f"Holds never released in lanes {sorted(hold_starts)}")

    hit_objects.sort(key=lambda item: (int(item.start_time), int(item.lane)))
    return hit_objects


def _build_beatmap(header: SimfileHeader, step_chart: StepChartBlock) -> Beatmap:
    timeline = BpmTimeline.from_segments(header.bpm_segments)
    hit_objects = _hit_objects_from_rows(step_chart.notes_text, timeline, header.offset_seconds)
    timing_points = tuple(
        TimingPointInfo(
            start_time=float(round((timeline.seconds_at(beat) - header.offset_seconds) * 1000.0)),
            bpm=float(bpm),
        )
        for beat, bpm in timeline.segments
    )

    return Beatmap(
        mode=GameMode.KEYS4,
        hit_objects=tuple(hit_objects),
        timing_points=timing_points,
        title=header.title,
        artist=header.artist,
        creator=header.credit,
        difficulty_name=step_chart.description or step_chart.difficulty.capitalize(),
        source=header.subtitle,
        description="This map was converted from StepMania.",
    )


def parse_simfile_text(simfile_text: str, *, source_path: Optional[Path] = None) -> List[LoadedSimfileChart]:
    header_fields: Dict[str, str] = {}
    notes_values: List[str] = []
    for name, value in _iter_fields(simfile_text):
        if name == "NOTES":
            notes_values.append(value)
        else:
            header_fields.setdefault(name, value)

    header = _parse_header(header_fields)
    if not notes_values:
        raise ChartParseError("No #NOTES blocks found")

    charts: List[LoadedSimfileChart] = []
    for notes_value in notes_values:
        step_chart = _parse_step_chart(notes_value)
        if step_chart.step_type.lower() != "dance-single":
            logger.debug("Skipping %s %s chart", step_chart.step_type, step_chart.difficulty)
            continue
        charts.append(
            LoadedSimfileChart(
                beatmap=_build_beatmap(header, step_chart),
                header=header,
                step_chart=step_chart,
                source_path=source_path,
            )
        )
    return charts


def load_simfile(simfile_path: Path) -> List[LoadedSimfileChart]:
    path = Path(simfile_path)
    try:
        simfile_text = path.read_text(encoding="utf-8")
    except UnicodeDecodeError as exc:
        raise ChartParseError(f"Simfile is not valid UTF-8: {path}") from exc
    except OSError as exc:
        raise ChartParseError(f"Failed to read simfile: {path}") from exc
    return parse_simfile_text(simfile_text, source_path=path)


def load_chart_for_difficulty(simfile_path: Path, *, difficulty: str) -> Optional[LoadedSimfileChart]:
    wanted = normalize_difficulty(difficulty)
    # First matching block in file order.
    return next((chart for chart in load_simfile(simfile_path) if chart.step_chart.difficulty == wanted), None)


_SAMPLE_SIMFILE = """#TITLE:Sample;
#ARTIST:Nobody;
#OFFSET:0.000;
#BPMS:0.000=120.000;

#NOTES:
     dance-single:
     :
     Easy:
     1:
     0.000,0.000,0.000,0.000,0.000:
1001
0200
0010
0300
;
"""


def _run_unit_tests() -> None:
    charts = parse_simfile_text(_SAMPLE_SIMFILE)
    assert len(charts) == 1
    beatmap = charts[0].beatmap
    assert beatmap.mode is GameMode.KEYS4
    # 120 BPM, 4 rows per measure: one row per beat, 500 ms apart.
    assert [(item.start_time, item.lane, item.end_time) for item in beatmap.hit_objects] == [
        (0, 1, 0),
        (0, 4, 0),
        (500, 2, 1500),
        (1000, 3, 0),
    ]
    assert beatmap.title == "Sample"
    assert beatmap.common_bpm() == 120.0

    timeline = BpmTimeline.from_segments([(0.0, 120.0), (4.0, 240.0)])
    assert timeline.seconds_at(4.0) == 2.0
    assert timeline.seconds_at(5.0) == 2.25


if __name__ == "__main__":
    _run_unit_tests()
    print("sm_convert.py: ok")
