"""
Crop settings persistence: load, save, and validate user overrides.

The caller-supplied constants (minimum crop size, handle tolerance,
output sizes, JPEG quality) default to the values in ``config``.  Users
may override any of them in a JSON file in the config directory
(provided by ``config.config_dir()``).  A missing, corrupt or invalid
file falls back to the defaults.  This module is Qt-free.

The on-disk format uses a versioned envelope::

    {"version": 1, "settings": {"save_output_size": 512, "quality": 0.95}}

Keys left out of ``settings`` keep their defaults.
"""

import json
import logging
from dataclasses import asdict, dataclass, replace
from pathlib import Path

from profile_crop_tool.config import (
    HIT_TOLERANCE, JPEG_QUALITY_DEFAULT, JPEG_QUALITY_MAX, JPEG_QUALITY_MIN,
    MIN_CROP_SIZE, OUTPUT_SIZE_MAX, OUTPUT_SIZE_MIN, PREVIEW_OUTPUT_SIZE,
    PREVIEW_OUTPUT_SIZES, SAVE_OUTPUT_SIZE, config_dir,
)

logger = logging.getLogger(__name__)

_SETTINGS_FILENAME = "settings.json"
_FORMAT_VERSION = 1


@dataclass(frozen=True)
class CropSettings:
    """Tunable constants for one crop session."""
    min_size: int = MIN_CROP_SIZE
    hit_tolerance: float = HIT_TOLERANCE
    save_output_size: int = SAVE_OUTPUT_SIZE
    preview_output_size: int = PREVIEW_OUTPUT_SIZE
    quality: int = JPEG_QUALITY_DEFAULT


_KNOWN_KEYS = frozenset(asdict(CropSettings()).keys())


# =============================================================================
# Helpers
# =============================================================================
def _settings_path() -> Path:
    """Return the full path to settings.json."""
    return config_dir() / _SETTINGS_FILENAME


def normalize_quality(value: float | int) -> int:
    """
    Map an encode quality onto Pillow's 1-100 scale.

    Floats in ``(0, 1]`` are read as a fraction (``0.95`` → ``95``);
    integers are taken as-is.
    """
    if isinstance(value, float) and 0 < value <= 1:
        return int(round(value * 100))
    return int(value)


def _is_int(value: object) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _is_number(value: object) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


# =============================================================================
# Validation
# =============================================================================
def validate_settings(data: object) -> list[str]:
    """
    Validate a settings dict (any subset of the known keys).

    Returns a list of error strings (empty means valid).
    """
    errors: list[str] = []

    if not isinstance(data, dict):
        errors.append("Settings must be a dict")
        return errors

    unknown = set(data.keys()) - _KNOWN_KEYS
    if unknown:
        errors.append(f"unknown keys: {', '.join(sorted(unknown))}")

    if "min_size" in data:
        val = data["min_size"]
        if not _is_int(val) or val <= 0:
            errors.append(f"min_size must be a positive integer, got {val!r}")

    if "hit_tolerance" in data:
        val = data["hit_tolerance"]
        if not _is_number(val) or val <= 0:
            errors.append(f"hit_tolerance must be a positive number, got {val!r}")

    if "save_output_size" in data:
        val = data["save_output_size"]
        if not _is_int(val) or not OUTPUT_SIZE_MIN <= val <= OUTPUT_SIZE_MAX:
            errors.append(
                f"save_output_size must be an integer in "
                f"{OUTPUT_SIZE_MIN}..{OUTPUT_SIZE_MAX}, got {val!r}"
            )

    if "preview_output_size" in data:
        val = data["preview_output_size"]
        if val not in PREVIEW_OUTPUT_SIZES or not _is_int(val):
            allowed = ", ".join(str(s) for s in PREVIEW_OUTPUT_SIZES)
            errors.append(f"preview_output_size must be one of {allowed}, got {val!r}")

    if "quality" in data:
        val = data["quality"]
        if not _is_number(val) or not JPEG_QUALITY_MIN <= normalize_quality(val) <= JPEG_QUALITY_MAX:
            errors.append(f"quality must be a fraction in (0, 1] or an integer 1..100, got {val!r}")

    return errors


def settings_from_dict(data: dict) -> CropSettings:
    """Build CropSettings from a validated dict, defaulting missing keys."""
    errors = validate_settings(data)
    if errors:
        raise ValueError("Invalid settings:\n  " + "\n  ".join(errors))
    values = dict(data)
    if "quality" in values:
        values["quality"] = normalize_quality(values["quality"])
    return replace(CropSettings(), **values)


# =============================================================================
# Load / Save
# =============================================================================
def load_settings(path: Path | None = None) -> CropSettings:
    """
    Load settings from settings.json.

    Returns the defaults if the file is missing, corrupt, lacks the
    version envelope or fails validation.  Unlike a missing file, a
    broken one is left on disk for the user to fix.
    """
    path = path or _settings_path()

    if not path.exists():
        logger.debug("No settings file at %s — using defaults", path)
        return CropSettings()

    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
    except (json.JSONDecodeError, OSError) as exc:
        logger.warning("Failed to read settings.json (%s) — using defaults", exc)
        return CropSettings()

    if not isinstance(raw, dict) or raw.get("version") != _FORMAT_VERSION or "settings" not in raw:
        logger.warning("settings.json missing version envelope — using defaults")
        return CropSettings()

    data = raw["settings"]
    errors = validate_settings(data)
    if errors:
        logger.warning(
            "settings.json validation failed:\n  %s\nUsing defaults.",
            "\n  ".join(errors),
        )
        return CropSettings()

    settings = settings_from_dict(data)
    logger.info("Loaded crop settings from %s", path)
    return settings


def save_settings(settings: CropSettings, path: Path | None = None) -> None:
    """
    Validate and write settings to settings.json in a versioned envelope.

    Raises ValueError if validation fails.
    Raises OSError if the file cannot be written.
    """
    data = asdict(settings)
    errors = validate_settings(data)
    if errors:
        raise ValueError("Invalid settings:\n  " + "\n  ".join(errors))

    envelope = {"version": _FORMAT_VERSION, "settings": data}
    path = path or _settings_path()
    path.write_text(json.dumps(envelope, indent=2, ensure_ascii=False), encoding="utf-8")
    logger.info("Saved crop settings to %s", path)
