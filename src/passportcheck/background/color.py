from __future__ import annotations

import math
from typing import Sequence, Union

from PIL import ImageColor

from passportcheck.core.geometry import ColorRGB


def color_distance(c1: ColorRGB, c2: ColorRGB) -> float:
    """
    Redmean-weighted RGB distance, a cheap approximation of perceived difference.

    Integer arithmetic throughout, including the >> 8 weight divisions.
    """
    rmean = (c1.r + c2.r) // 2
    r = c1.r - c2.r
    g = c1.g - c2.g
    b = c1.b - c2.b
    return math.sqrt((((512 + rmean) * r * r) >> 8) + 4 * g * g + (((767 - rmean) * b * b) >> 8))


def parse_color(value: Union[str, Sequence[int], ColorRGB]) -> ColorRGB:
    """Color name ("White"), hex string ("#ffffff") or (r, g, b) -> ColorRGB."""
    if isinstance(value, ColorRGB):
        return value
    if isinstance(value, str):
        rgb = ImageColor.getrgb(value.strip())
        return ColorRGB(int(rgb[0]), int(rgb[1]), int(rgb[2]))
    if len(value) < 3:
        raise ValueError(f"Expected an (r, g, b) triple, got {value!r}")
    r, g, b = (int(v) for v in value[:3])
    for v in (r, g, b):
        if not 0 <= v <= 255:
            raise ValueError(f"Color channel out of range 0-255: {v}")
    return ColorRGB(r, g, b)
