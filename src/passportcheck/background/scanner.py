"""
Background check around the detected face.

Each row from the face's bottom edge up to the top of the image is sampled
outwards on both sides of the face, starting halfway between the face box and
the image edge. Every sampled pixel counts as valid when it is close enough
to the expected background color.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from passportcheck.background.color import color_distance
from passportcheck.background.raster import Raster
from passportcheck.core.errors import NoBackgroundPixelsError
from passportcheck.core.geometry import WHITE, ColorRGB

logger = logging.getLogger(__name__)


@dataclass
class ScanResult:
    valid_count: int = 0
    invalid_count: int = 0

    @property
    def total(self) -> int:
        return self.valid_count + self.invalid_count

    def add(self, valid: bool) -> None:
        if valid:
            self.valid_count += 1
        else:
            self.invalid_count += 1

    def validity_pct(self) -> int:
        """Integer percentage of valid pixels. Raises NoBackgroundPixelsError if nothing was sampled."""
        if self.total == 0:
            raise NoBackgroundPixelsError()
        return (self.valid_count * 100) // self.total


def midpoint(a: int, b: int) -> int:
    """Point halfway from a towards b, half-way cases rounded to even."""
    d = round(abs(b - a) * 0.5)
    return a + d if a <= b else a - d


def _is_background(pixel: ColorRGB, target: ColorRGB, bg_threshold: int) -> bool:
    distance = color_distance(pixel, target)
    return 0 <= distance <= bg_threshold


def scan_background(
    raster: Raster,
    face_left: int,
    y_start: int,
    face_right: int,
    image_width: int,
    target_color: ColorRGB,
    bg_threshold: int,
    result: Optional[ScanResult] = None,
) -> ScanResult:
    """Sample the background rows, adding to result (a new ScanResult if not given)."""
    if result is None:
        result = ScanResult()
    for y in range(y_start, 0, -1):
        left_x = midpoint(0, face_left)
        right_x = midpoint(image_width, face_right)
        while left_x > 0 or right_x < image_width:
            if left_x > 0:
                result.add(_is_background(raster.get_pixel(left_x, y), target_color, bg_threshold))
                left_x -= 1
            if right_x < image_width:
                # The right side is always compared against white.
                result.add(_is_background(raster.get_pixel(right_x, y), WHITE, bg_threshold))
                right_x += 1
    return result


def is_valid_background(
    raster: Raster,
    face_left: int,
    y_start: int,
    face_right: int,
    image_width: int,
    target_color: ColorRGB,
    bg_threshold: int,
    pixel_validity_threshold_pct: int,
    result: Optional[ScanResult] = None,
) -> bool:
    """
    True when enough of the sampled background matches.

    Pass a ScanResult to keep the counts of the scan.
    """
    result = scan_background(
        raster, face_left, y_start, face_right, image_width, target_color, bg_threshold, result
    )
    pct = result.validity_pct()
    logger.debug(
        "Background scan: %d valid, %d invalid (%d%%, need %d%%)",
        result.valid_count,
        result.invalid_count,
        pct,
        pixel_validity_threshold_pct,
    )
    return pct >= pixel_validity_threshold_pct
