"""
Generic 3D face model used for head pose estimation.

Six anatomical points in millimeters, with the nose tip at the origin, y up
and z towards the viewer. The order matches LANDMARK_INDICES, which name the
same points in the 68-point landmark layout.
"""

from __future__ import annotations

from typing import Tuple

import numpy as np

from passportcheck.core.geometry import LandmarkSet, Point2D, Point3D

NOSE_TIP = 30
CHIN = 8
LEFT_EYE_OUTER = 36
RIGHT_EYE_OUTER = 45
MOUTH_LEFT = 48
MOUTH_RIGHT = 54

LANDMARK_INDICES: Tuple[int, ...] = (NOSE_TIP, CHIN, LEFT_EYE_OUTER, RIGHT_EYE_OUTER, MOUTH_LEFT, MOUTH_RIGHT)

LANDMARK_COUNT = 68

MODEL_POINTS: Tuple[Point3D, ...] = (
    Point3D(0.0, 0.0, 0.0),           # Nose tip
    Point3D(0.0, -330.0, -65.0),      # Chin
    Point3D(-225.0, 170.0, -135.0),   # Left eye outer corner
    Point3D(225.0, 170.0, -135.0),    # Right eye outer corner
    Point3D(-150.0, -150.0, -125.0),  # Left mouth corner
    Point3D(150.0, -150.0, -125.0),   # Right mouth corner
)


def reference_points() -> Tuple[Point3D, ...]:
    return MODEL_POINTS


def model_points_array() -> np.ndarray:
    """(6, 3) float64 array of the model points."""
    return np.array([(p.x, p.y, p.z) for p in MODEL_POINTS], dtype=np.float64)


def select_image_points(landmarks: LandmarkSet) -> Tuple[Point2D, ...]:
    """Pick the six model landmarks out of a full 68-point set."""
    if len(landmarks) != LANDMARK_COUNT:
        raise ValueError(f"Expected {LANDMARK_COUNT} landmarks, got {len(landmarks)}")
    return tuple(landmarks[i] for i in LANDMARK_INDICES)
