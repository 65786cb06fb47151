from __future__ import annotations

from dataclasses import dataclass
from typing import NamedTuple, Sequence


@dataclass(frozen=True)
class Point2D:
    x: float
    y: float


@dataclass(frozen=True)
class Point3D:
    x: float
    y: float
    z: float


@dataclass(frozen=True)
class ColorRGB:
    r: int
    g: int
    b: int


WHITE = ColorRGB(255, 255, 255)


@dataclass(frozen=True)
class FaceBoundingBox:
    """
    Face rectangle in pixel coordinates, as reported by a face detector.

    right/bottom are exclusive, so width = right - left.
    """
    left: int
    top: int
    right: int
    bottom: int

    @property
    def width(self) -> int:
        return max(0, self.right - self.left)

    @property
    def height(self) -> int:
        return max(0, self.bottom - self.top)

    @property
    def area(self) -> int:
        return self.width * self.height

    def contains(self, p: Point2D) -> bool:
        return self.left <= p.x < self.right and self.top <= p.y < self.bottom


@dataclass(frozen=True)
class CameraIntrinsics:
    fx: float
    fy: float
    cx: float
    cy: float


class EulerAngles(NamedTuple):
    """
    Euler angles in radians, in the order (yaw, roll, pitch).

    yaw is the rotation about the z axis, roll about x and pitch about y,
    following the R = Rz(yaw) @ Ry(pitch) @ Rx(roll) matrix convention.
    """
    yaw: float
    roll: float
    pitch: float


@dataclass(frozen=True)
class HeadPose:
    """Head angles in degrees, as a viewer of the photo would name them."""
    yaw: float
    pitch: float
    roll: float


# 68 points in the iBUG/dlib layout.
LandmarkSet = Sequence[Point2D]
