from __future__ import annotations

from typing import Protocol, Union

import numpy as np
from PIL import Image

from passportcheck.core.geometry import ColorRGB


class Raster(Protocol):
    """Read-only random access to the pixels of a decoded RGB image."""

    @property
    def width(self) -> int: ...

    @property
    def height(self) -> int: ...

    def get_pixel(self, x: int, y: int) -> ColorRGB: ...


def to_rgb_array(img: Union[Image.Image, np.ndarray]) -> np.ndarray:
    """PIL image or numpy array -> (H, W, 3) uint8 RGB array."""
    arr = np.asarray(img)
    if arr.ndim == 2:
        arr = np.stack([arr, arr, arr], axis=-1)
    if arr.shape[-1] == 4:
        arr = arr[:, :, :3]
    return arr.astype(np.uint8)


class ArrayRaster:
    """Raster over an (H, W, 3) RGB numpy array."""

    def __init__(self, rgb: Union[Image.Image, np.ndarray]):
        self._rgb = to_rgb_array(rgb)

    @property
    def width(self) -> int:
        return int(self._rgb.shape[1])

    @property
    def height(self) -> int:
        return int(self._rgb.shape[0])

    @property
    def array(self) -> np.ndarray:
        return self._rgb

    def get_pixel(self, x: int, y: int) -> ColorRGB:
        if not (0 <= x < self.width and 0 <= y < self.height):
            raise IndexError(f"Pixel ({x}, {y}) outside {self.width}x{self.height} image")
        r, g, b = self._rgb[y, x]
        return ColorRGB(int(r), int(g), int(b))
