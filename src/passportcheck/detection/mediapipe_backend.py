"""
Face detector and 68-point landmark predictor backed by MediaPipe.

Face boxes come from MediaPipe Face Detection. Landmarks come from Face Mesh,
with the mesh vertices that correspond to the iBUG 68-point layout picked out
so the pose model's landmark indices apply unchanged.
"""

from __future__ import annotations

from typing import List, Optional, Union

import mediapipe as mp
import numpy as np
from PIL import Image

from passportcheck.background.raster import to_rgb_array
from passportcheck.core.errors import LandmarkDetectionError
from passportcheck.core.geometry import FaceBoundingBox, LandmarkSet, Point2D

# Face Mesh vertex for each of the 68 iBUG landmarks
MEDIAPIPE_TO_IBUG_68 = [
    # Jawline 0-16
    162, 234, 93, 58, 172, 136, 149, 148, 152, 377, 378, 365, 397, 288, 323, 454, 389,
    # Eyebrows 17-26
    71, 63, 105, 66, 107, 336, 296, 334, 293, 301,
    # Nose bridge 27-30
    168, 197, 5, 4,
    # Nose bottom 31-35
    75, 97, 2, 326, 305,
    # Eyes 36-47
    33, 160, 158, 133, 153, 144, 362, 385, 387, 263, 373, 380,
    # Outer lip 48-59
    61, 39, 37, 0, 267, 269, 291, 405, 314, 17, 84, 181,
    # Inner lip 60-67
    78, 82, 13, 312, 308, 317, 14, 87,
]


class MediaPipeFaceDetector:
    def __init__(self, min_detection_confidence: float = 0.5, model_selection: int = 1):
        self.min_detection_confidence = min_detection_confidence
        self.model_selection = model_selection

    def detect_faces(self, image: Union[Image.Image, np.ndarray]) -> List[FaceBoundingBox]:
        rgb = to_rgb_array(image)
        h, w = rgb.shape[:2]

        with mp.solutions.face_detection.FaceDetection(
            model_selection=self.model_selection,
            min_detection_confidence=self.min_detection_confidence,
        ) as detector:
            results = detector.process(rgb)

        boxes: List[FaceBoundingBox] = []
        for det in results.detections or []:
            bb = det.location_data.relative_bounding_box
            left = int(round(bb.xmin * w))
            top = int(round(bb.ymin * h))
            boxes.append(
                FaceBoundingBox(
                    left=left,
                    top=top,
                    right=left + int(round(bb.width * w)),
                    bottom=top + int(round(bb.height * h)),
                )
            )
        return boxes


class MediaPipeLandmarkPredictor:
    def __init__(self, max_num_faces: int = 4, min_detection_confidence: float = 0.5):
        self.max_num_faces = max_num_faces
        self.min_detection_confidence = min_detection_confidence

    def detect_landmarks(self, image: Union[Image.Image, np.ndarray], face: FaceBoundingBox) -> LandmarkSet:
        """68 landmarks of the mesh whose nose tip falls inside the face box."""
        rgb = to_rgb_array(image)
        h, w = rgb.shape[:2]

        with mp.solutions.face_mesh.FaceMesh(
            static_image_mode=True,
            refine_landmarks=False,
            max_num_faces=self.max_num_faces,
            min_detection_confidence=self.min_detection_confidence,
        ) as face_mesh:
            results = face_mesh.process(rgb)

        best: Optional[List[Point2D]] = None
        best_dist = float("inf")
        cx = (face.left + face.right) / 2.0
        cy = (face.top + face.bottom) / 2.0
        for mesh in results.multi_face_landmarks or []:
            lm = mesh.landmark
            points = [Point2D(lm[i].x * w, lm[i].y * h) for i in MEDIAPIPE_TO_IBUG_68]
            nose = points[30]
            if not face.contains(nose):
                continue
            dist = (nose.x - cx) ** 2 + (nose.y - cy) ** 2
            if dist < best_dist:
                best, best_dist = points, dist

        if best is None:
            raise LandmarkDetectionError()
        return best
