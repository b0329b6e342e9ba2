"""
config.py

Settings for the strain rating tools: thresholds and multipliers for the
engine, output options for the command line.

Rules
- StrainRatingData never reads this module's files. It is handed a StrainConfig
  (or uses StrainConfig() defaults); only qss.py resolves a config file.
- At most one UTF-8 JSON file is read. No directories are created.
- Values are validated by pydantic; a bad file or override is a ValueError.

Where the file comes from (first match wins)
  1) $QSS_CONFIG_PATH, which must point at an existing file
  2) ./qss_config.json
  3) <platformdirs user config dir>/qss/qss_config.json
  Nothing found: built-in defaults.

Environment overrides are applied on top of the file:
  QSS_CHORD_THRESHOLD_MS   strain.chord_threshold_ms
  QSS_LN_END_THRESHOLD_MS  strain.ln_end_threshold_ms
  QSS_DENSITY_SCALE        strain.density_scale
  QSS_LOG_LEVEL            cli.log_level

Example qss_config.json
{
  "strain": {"chord_threshold_ms": 8, "ln_end_threshold_ms": 42, "density_scale": 3.25},
  "cli": {"log_level": "INFO", "indent": 2}
}
"""

from __future__ import annotations

import json
import os
from functools import lru_cache
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Tuple

from platformdirs import user_config_dir
from pydantic import BaseModel, Field, ValidationError, field_validator

CONFIG_FILE_NAME = "qss_config.json"
CONFIG_PATH_ENV = "QSS_CONFIG_PATH"

_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")


class StrainConfig(BaseModel):
    chord_threshold_ms: float = Field(default=8.0, gt=0, description="Notes starting closer than this are a chord.")
    ln_end_threshold_ms: float = Field(
        default=42.0, ge=0, description="Notes starting up to this long after a hold ends still layer with it; 0 disables the tail."
    )
    ln_later_end_multiplier: float = Field(default=1.2, ge=1.0, description="Layered hold ending after the current one.")
    ln_earlier_end_multiplier: float = Field(
        default=1.2, ge=1.0, description="Layered hold ending at or before the current one."
    )
    ln_not_ln_multiplier: float = Field(default=1.2, ge=1.0, description="Tap layered under the current hold.")
    density_scale: float = Field(default=3.25, ge=0, description="Difficulty per unit of average note density.")


class CliConfig(BaseModel):
    log_level: str = Field(default="WARNING", description="One of DEBUG, INFO, WARNING, ERROR.")
    indent: int = Field(default=2, ge=0, le=8, description="JSON output indentation.")

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, value: str) -> str:
        level_name = str(value or "").strip().upper()
        if level_name not in _LOG_LEVELS:
            raise ValueError(f"log_level must be one of: {', '.join(_LOG_LEVELS)}")
        return level_name


class AppConfig(BaseModel):
    strain: StrainConfig = Field(default_factory=StrainConfig)
    cli: CliConfig = Field(default_factory=CliConfig)


# (environment variable, section, key, converter)
_ENVIRONMENT_OVERRIDES: Tuple[Tuple[str, str, str, Callable[[str], Any]], ...] = (
    ("QSS_CHORD_THRESHOLD_MS", "strain", "chord_threshold_ms", float),
    ("QSS_LN_END_THRESHOLD_MS", "strain", "ln_end_threshold_ms", float),
    ("QSS_DENSITY_SCALE", "strain", "density_scale", float),
    ("QSS_LOG_LEVEL", "cli", "log_level", str),
)


def _default_config_candidates() -> List[Path]:
    return [
        Path.cwd() / CONFIG_FILE_NAME,
        Path(user_config_dir("qss", appauthor=False)) / CONFIG_FILE_NAME,
    ]


def _resolve_config_path() -> Optional[Path]:
    explicit_path_text = os.environ.get(CONFIG_PATH_ENV, "").strip()
    if explicit_path_text:
        return Path(explicit_path_text)
    return next((candidate for candidate in _default_config_candidates() if candidate.exists()), None)


def _read_json_file_utf8(config_path: Path) -> Dict[str, Any]:
    # A missing file propagates as FileNotFoundError so callers can tell it apart.
    try:
        document = json.loads(config_path.read_text(encoding="utf-8"))
    except FileNotFoundError:
        raise
    except json.JSONDecodeError as exception:
        raise ValueError(f"Config file {config_path} is not valid JSON: {exception}") from exception
    except OSError as exception:
        raise OSError(f"Cannot read config file {config_path}: {exception}") from exception

    if not isinstance(document, dict):
        raise ValueError(f"Config file {config_path} must hold a JSON object, got {type(document).__name__}")
    return document


def _apply_environment_overrides(config_dict: Dict[str, Any]) -> Dict[str, Any]:
    """Return a copy of config_dict with QSS_* environment values merged in.

    Unparseable numbers are skipped, so a stray variable never hides the file value.
    """
    merged: Dict[str, Any] = {}
    for section_name, section in config_dict.items():
        merged[section_name] = dict(section) if isinstance(section, dict) else section

    for env_name, section_name, key_name, convert in _ENVIRONMENT_OVERRIDES:
        raw_value = os.environ.get(env_name, "").strip()
        if not raw_value:
            continue
        try:
            value = convert(raw_value)
        except ValueError:
            continue
        section = merged.get(section_name)
        if not isinstance(section, dict):
            section = {}
            merged[section_name] = section
        section[key_name] = value

    return merged


def load_config(config_path: Optional[Path] = None) -> Tuple[AppConfig, Optional[Path]]:
    """Load, merge and validate settings. Returns the config and the file it came from (None for defaults)."""
    source_path = config_path if config_path is not None else _resolve_config_path()
    raw_config = _read_json_file_utf8(source_path) if source_path is not None else {}

    try:
        app_config = AppConfig.model_validate(_apply_environment_overrides(raw_config))
    except ValidationError as exception:
        source_label = str(source_path) if source_path is not None else "defaults"
        raise ValueError(f"Config validation failed for {source_label}:\n{exception}") from exception

    return app_config, source_path


@lru_cache(maxsize=1)
def get_config() -> Tuple[AppConfig, Optional[Path]]:
    return load_config()


def to_json(config: AppConfig) -> str:
    return json.dumps(config.model_dump(), ensure_ascii=False, indent=2)


def main() -> int:
    try:
        app_config, source_path = load_config()
    except (OSError, ValueError) as exception:
        print(json.dumps({"ok": False, "error": str(exception)}, ensure_ascii=False, indent=2))
        return 2

    payload = {
        "ok": True,
        "config_path": None if source_path is None else str(source_path),
        "config": json.loads(to_json(app_config)),
    }
    print(json.dumps(payload, ensure_ascii=False, indent=2))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
