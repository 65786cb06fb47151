from __future__ import annotations

import json
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, Optional, Union

from passportcheck.core.errors import ConfigError


@dataclass(frozen=True)
class ValidationParams:
    """
    Parameters that control how a passport photo is judged.

    images_folder:
        Folder of photos to validate in batch mode. Optional.
    min_face_area_pct:
        The face box must cover strictly more than this percentage of the image.
    background_color:
        Expected background color, as a color name or hex string. Default white.
    bg_threshold:
        Maximum redmean color distance for a background pixel to count as valid.
    pixel_validity_threshold:
        Minimum percentage of valid background pixels.
    """
    images_folder: Optional[str] = None
    min_face_area_pct: float = 10.0
    background_color: str = "white"
    bg_threshold: int = 50
    pixel_validity_threshold: int = 85


# JSON keys of the configuration file -> ValidationParams fields
CONFIG_KEYS = {
    "imagesFolderPath": "images_folder",
    "MinimumFaceAreaByPercentage": "min_face_area_pct",
    "PassportBackgroundColor": "background_color",
    "bgThreshold": "bg_threshold",
    "pixelValidityThreshold": "pixel_validity_threshold",
}


def _coerce(name: str, value: Any) -> Any:
    if name in ("images_folder", "background_color"):
        if not isinstance(value, str):
            raise ConfigError(f"{name} must be a string, got {value!r}")
        return value
    try:
        if name == "min_face_area_pct":
            return float(value)
        return int(value)
    except (TypeError, ValueError) as e:
        raise ConfigError(f"{name} must be a number, got {value!r}") from e


def params_from_mapping(data: dict[str, Any]) -> ValidationParams:
    """Build params from a mapping using the configuration file's keys."""
    known = {f.name for f in fields(ValidationParams)}
    kwargs: dict[str, Any] = {}
    for key, value in data.items():
        name = CONFIG_KEYS.get(key, key if key in known else None)
        if name is None:
            continue
        kwargs[name] = _coerce(name, value)
    return ValidationParams(**kwargs)


def load_params(path: Union[str, Path]) -> ValidationParams:
    path = Path(path)
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except OSError as e:
        raise ConfigError(f"Cannot read config file {path}: {e}") from e
    except json.JSONDecodeError as e:
        raise ConfigError(f"Config file {path} is not valid JSON: {e}") from e
    if not isinstance(data, dict):
        raise ConfigError(f"Config file {path} must hold a JSON object")
    return params_from_mapping(data)
