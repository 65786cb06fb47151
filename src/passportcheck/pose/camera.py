from __future__ import annotations

import numpy as np

from passportcheck.core.geometry import CameraIntrinsics


def build_intrinsics(width: int, height: int) -> CameraIntrinsics:
    """Pinhole approximation: focal length ~ image width, principal point at the center."""
    return CameraIntrinsics(fx=float(width), fy=float(width), cx=width / 2.0, cy=height / 2.0)


def camera_matrix(intrinsics: CameraIntrinsics) -> np.ndarray:
    return np.array(
        [
            [intrinsics.fx, 0.0, intrinsics.cx],
            [0.0, intrinsics.fy, intrinsics.cy],
            [0.0, 0.0, 1.0],
        ],
        dtype=np.float64,
    )


def distortion_coeffs() -> np.ndarray:
    # No lens distortion
    return np.zeros((4, 1), dtype=np.float64)
