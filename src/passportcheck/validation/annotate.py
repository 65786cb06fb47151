from __future__ import annotations

from typing import Union

import cv2
import numpy as np
from PIL import Image

from passportcheck.background.raster import to_rgb_array
from passportcheck.pose.camera import build_intrinsics
from passportcheck.pose.face_model import LANDMARK_INDICES, NOSE_TIP
from passportcheck.pose.solver import project_model
from passportcheck.validation.validator import PhotoAnalysis

# RGB
GREEN = (0, 255, 0)
BLACK = (0, 0, 0)
YELLOW = (255, 255, 0)
CYAN = (0, 255, 255)

# A point 1000mm in front of the nose tip, along the face's forward axis.
NOSE_DIRECTION_POINT = np.array([[0.0, 0.0, 1000.0]])


def annotate_photo(image: Union[Image.Image, np.ndarray], analysis: PhotoAnalysis) -> np.ndarray:
    """
    Draw what the validator saw on a copy of the RGB photo.

    Face box in green for a valid photo (black otherwise), the six pose
    landmarks in yellow and a cyan line from the nose tip in the direction
    the head is facing.
    """
    out = np.ascontiguousarray(to_rgb_array(image).copy())
    h, w = out.shape[:2]
    valid = analysis.verdict.is_valid

    if analysis.face is not None:
        f = analysis.face
        cv2.rectangle(out, (f.left, f.top), (f.right, f.bottom), GREEN if valid else BLACK, 4 if valid else 2)

    if analysis.landmarks is not None and analysis.solution is not None:
        nose = analysis.landmarks[NOSE_TIP]
        tip = project_model(analysis.solution, build_intrinsics(w, h), NOSE_DIRECTION_POINT)[0]
        if np.all(np.isfinite(tip)):
            cv2.line(
                out,
                (int(round(nose.x)), int(round(nose.y))),
                (int(round(tip[0])), int(round(tip[1]))),
                CYAN,
                2,
            )

    if analysis.landmarks is not None:
        for i in LANDMARK_INDICES:
            p = analysis.landmarks[i]
            cv2.circle(out, (int(round(p.x)), int(round(p.y))), 3, YELLOW, -1)

    return out
