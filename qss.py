"""
qss.py

Command line entrypoint: rate one chart file and print the result as JSON.

Usage
- python qss.py path/to/chart.sm --difficulty hard
- python qss.py path/to/chart.osu --rate 1.2 --verbose

Output
- Success: {"ok": true, "chart": {...}, "summary": {...}} and exit code 0
- Failure: {"ok": false, "error": "..."} and exit code 2
"""

from __future__ import annotations

import argparse
import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

import chart_loader
from beatmap_models import Beatmap
from config import AppConfig, get_config, load_config
from strain_models import StrainRatingError
from strain_rating import StrainRatingData

logger = logging.getLogger("qss")


def _build_argument_parser() -> argparse.ArgumentParser:
    argument_parser = argparse.ArgumentParser(description="Rate the difficulty of a 4K/7K chart")
    argument_parser.add_argument("chart", type=Path, help=f"Chart file ({', '.join(chart_loader.supported_suffixes())}).")
    argument_parser.add_argument("--difficulty", default=None, help="StepMania difficulty to rate (default: first chart).")
    argument_parser.add_argument("--rate", type=float, default=1.0, help="Playback rate applied before rating.")
    argument_parser.add_argument("--config", type=Path, default=None, help="Config JSON file (overrides search paths).")
    argument_parser.add_argument("--verbose", action="store_true", help="Log pipeline stages to stderr.")
    return argument_parser


def _load_app_config(config_path: Optional[Path]) -> AppConfig:
    if config_path is not None:
        app_config, _resolved_path = load_config(config_path)
    else:
        app_config, _resolved_path = get_config()
    return app_config


def _chart_payload(beatmap: Beatmap, loaded: chart_loader.LoadedBeatmap, rate: float) -> Dict[str, Any]:
    return {
        "path": str(loaded.chart_path),
        "source_kind": loaded.source_kind,
        "title": beatmap.title,
        "artist": beatmap.artist,
        "creator": beatmap.creator,
        "difficulty_name": beatmap.difficulty_name,
        "mode": beatmap.mode.value,
        "common_bpm": beatmap.common_bpm(),
        "rate": float(rate),
    }


def rate_chart(
    chart_path: Path,
    *,
    difficulty: Optional[str] = None,
    rate: float = 1.0,
    app_config: Optional[AppConfig] = None,
) -> Dict[str, Any]:
    effective_config = app_config if app_config is not None else AppConfig()
    loaded = chart_loader.load_beatmap(chart_path, difficulty=difficulty)
    beatmap = loaded.beatmap
    if float(rate) != 1.0:
        beatmap = beatmap.with_rate(rate)
        # Rounding can collapse very short holds at high rates.
        beatmap.validate()

    rating = StrainRatingData(beatmap, config=effective_config.strain)
    return {
        "ok": True,
        "chart": _chart_payload(beatmap, loaded, rate),
        "summary": rating.summary().to_dict(),
    }


def main(argv: Optional[List[str]] = None) -> int:
    parsed_args = _build_argument_parser().parse_args(argv)

    try:
        app_config = _load_app_config(parsed_args.config)
    except (OSError, ValueError) as exception:
        print(json.dumps({"ok": False, "error": str(exception)}, ensure_ascii=False, indent=2))
        return 2

    log_level = "DEBUG" if parsed_args.verbose else app_config.cli.log_level
    logging.basicConfig(level=getattr(logging, log_level), format="%(levelname)s %(name)s: %(message)s")

    try:
        payload = rate_chart(
            parsed_args.chart,
            difficulty=parsed_args.difficulty,
            rate=parsed_args.rate,
            app_config=app_config,
        )
    except (chart_loader.ChartNotFoundError, chart_loader.ChartLoadError, StrainRatingError, ValueError) as exception:
        logger.debug("Rating failed", exc_info=True)
        print(json.dumps({"ok": False, "error": str(exception)}, ensure_ascii=False, indent=app_config.cli.indent))
        return 2

    print(json.dumps(payload, ensure_ascii=False, indent=app_config.cli.indent))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
