# -*- coding: utf-8 -*-
########################
# chart_loader.py
########################
# Purpose:
# - Resolve a chart file on disk into a Beatmap ready for StrainRatingData.
# - Picks the converter by file suffix and reports missing or broken charts explicitly.
#
########################
# Key Logic:
# - Suffix decides the converter:
#   - .sm  -> sm_convert (dance-single charts; optional difficulty selection)
#   - .osu -> osu_convert (one chart per file; difficulty must not be given)
# - Strict contract:
#   - The returned beatmap is sorted by start time and has passed Beatmap.validate().
#   - Missing file or missing difficulty is ChartNotFoundError.
#   - A file that exists but cannot be parsed or validated is ChartLoadError.
#
########################
# Interfaces:
# Public exceptions:
# - class ChartNotFoundError(Exception)
# - class ChartLoadError(Exception)
#
# Public dataclasses:
# - @dataclass(frozen=True) class LoadedBeatmap
#   - beatmap: Beatmap
#   - source_kind: str  # "sm" | "osu"
#   - chart_path: pathlib.Path
#
# Public functions:
# - supported_suffixes() -> list[str]
# - load_beatmap(chart_path: pathlib.Path, *, difficulty: Optional[str] = None) -> LoadedBeatmap
#
########################

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

import osu_convert
import sm_convert
from beatmap_models import Beatmap, BeatmapValidationError, ChartError

logger = logging.getLogger(__name__)


class ChartNotFoundError(Exception):
    """Raised when no chart can be resolved for the requested path and difficulty."""


class ChartLoadError(Exception):
    """Raised when a chart file exists but fails parsing or validation."""


@dataclass(frozen=True)
class LoadedBeatmap:
    beatmap: Beatmap
    source_kind: str
    chart_path: Path


_SUFFIX_TO_KIND = {
    ".sm": "sm",
    ".osu": "osu",
}


def supported_suffixes() -> List[str]:
    return sorted(_SUFFIX_TO_KIND.keys())


def _load_sm(chart_path: Path, difficulty: Optional[str]) -> Beatmap:
    if difficulty is not None:
        loaded = sm_convert.load_chart_for_difficulty(chart_path, difficulty=difficulty)
        if loaded is None:
            raise ChartNotFoundError(f"No dance-single {difficulty!r} chart in {chart_path}")
        return loaded.beatmap

    charts = sm_convert.load_simfile(chart_path)
    if not charts:
        raise ChartNotFoundError(f"No dance-single chart in {chart_path}")
    return charts[0].beatmap


def load_beatmap(chart_path: Path, *, difficulty: Optional[str] = None) -> LoadedBeatmap:
    path = Path(chart_path)
    source_kind = _SUFFIX_TO_KIND.get(path.suffix.lower())
    if source_kind is None:
        raise ValueError(f"Unsupported chart file {path.name!r}. Supported suffixes: {supported_suffixes()}")
    if not path.is_file():
        raise ChartNotFoundError(f"Chart file does not exist: {path}")

    try:
        if source_kind == "sm":
            beatmap = _load_sm(path, difficulty)
        else:
            if difficulty is not None:
                raise ValueError(".osu files hold a single difficulty; do not pass one")
            beatmap = osu_convert.load_osu_beatmap(path)

        if not beatmap.is_sorted():
            logger.debug("Sorting hit objects of %s", path.name)
            beatmap = beatmap.sorted_by_start_time()
        beatmap.validate()
    except (ChartError, BeatmapValidationError) as exc:
        # Corrupt or invalid chart is a first-class error outcome.
        raise ChartLoadError(f"Failed to load chart {path}: {exc}") from exc

    logger.info("Loaded %s chart %s: %d hit objects, %s", source_kind, path.name, len(beatmap.hit_objects), beatmap.mode.value)
    return LoadedBeatmap(beatmap=beatmap, source_kind=source_kind, chart_path=path)
