from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Optional, Protocol, Sequence, Union

import numpy as np
from PIL import Image

from passportcheck.background.color import parse_color
from passportcheck.background.raster import ArrayRaster, to_rgb_array
from passportcheck.background.scanner import ScanResult, is_valid_background
from passportcheck.core.errors import (
    BackgroundInvalidError,
    DetectionCountError,
    FaceAreaTooSmallError,
    LandmarkDetectionError,
    PhotoValidationError,
    PostureInvalidError,
)
from passportcheck.core.geometry import FaceBoundingBox, HeadPose, LandmarkSet
from passportcheck.core.models import ValidationParams
from passportcheck.pose.face_model import LANDMARK_COUNT
from passportcheck.pose.posture import classify
from passportcheck.pose.solver import PoseSolution, estimate_head_pose
from passportcheck.validation.report import ValidationVerdict

logger = logging.getLogger(__name__)


class FaceDetector(Protocol):
    def detect_faces(self, image: np.ndarray) -> Sequence[FaceBoundingBox]: ...


class LandmarkPredictor(Protocol):
    def detect_landmarks(self, image: np.ndarray, face: FaceBoundingBox) -> LandmarkSet: ...


@dataclass
class PhotoAnalysis:
    """
    Everything measured while validating one photo.

    Fields stay None for stages that were never reached. The verdict stays
    invalid until every rule has passed.
    """
    image_path: Optional[str] = None
    metrics: dict[str, Any] = field(default_factory=dict)
    face: Optional[FaceBoundingBox] = None
    landmarks: Optional[LandmarkSet] = None
    pose: Optional[HeadPose] = None
    solution: Optional[PoseSolution] = None
    verdict: ValidationVerdict = field(default_factory=lambda: ValidationVerdict(is_valid=False))


def _check_photo(
    rgb: np.ndarray,
    detector: FaceDetector,
    predictor: LandmarkPredictor,
    params: ValidationParams,
    analysis: PhotoAnalysis,
) -> None:
    h, w = rgb.shape[0], rgb.shape[1]
    target_color = parse_color(params.background_color)

    # Rule: exactly one face
    faces = list(detector.detect_faces(rgb))
    if len(faces) != 1:
        raise DetectionCountError(len(faces))
    face = faces[0]
    analysis.face = face

    # Rule: face size
    area_pct = face.area * 100.0 / (w * h) if w and h else 0.0
    analysis.metrics["face_area_pct"] = area_pct
    if not area_pct > params.min_face_area_pct:
        raise FaceAreaTooSmallError(area_pct, params.min_face_area_pct)

    # Rule: background
    y_start = min(face.bottom, h - 1)
    scan = ScanResult()
    background_ok = is_valid_background(
        ArrayRaster(rgb),
        face.left,
        y_start,
        face.right,
        w,
        target_color,
        params.bg_threshold,
        params.pixel_validity_threshold,
        result=scan,
    )
    analysis.metrics["background_validity_pct"] = scan.validity_pct()
    if not background_ok:
        raise BackgroundInvalidError(params.background_color)

    # Rule: head pose
    landmarks = predictor.detect_landmarks(rgb, face)
    if len(landmarks) != LANDMARK_COUNT:
        logger.debug("Predictor returned %d landmarks, expected %d", len(landmarks), LANDMARK_COUNT)
        raise LandmarkDetectionError()
    analysis.landmarks = landmarks
    pose, solution = estimate_head_pose(landmarks, w, h)
    analysis.pose = pose
    analysis.solution = solution
    analysis.metrics.update(yaw=pose.yaw, pitch=pose.pitch, roll=pose.roll)
    if not classify(pose.yaw, pose.pitch, pose.roll):
        raise PostureInvalidError(pose.yaw, pose.pitch, pose.roll)


def analyze_photo(
    image: Union[Image.Image, np.ndarray],
    detector: FaceDetector,
    predictor: LandmarkPredictor,
    params: Optional[ValidationParams] = None,
    image_path: Optional[str] = None,
) -> PhotoAnalysis:
    """
    Run every rule against one RGB photo and keep the intermediate results.

    Rules run in order (face count, face size, background, head pose) and the
    first failing rule decides the verdict. Errors that are not rule failures
    (bad configuration, broken collaborators) propagate.
    """
    params = params or ValidationParams()
    rgb = to_rgb_array(image)
    analysis = PhotoAnalysis(image_path=image_path)

    try:
        _check_photo(rgb, detector, predictor, params, analysis)
    except PhotoValidationError as e:
        logger.debug("%s: %s", image_path or "photo", e)
        analysis.verdict = ValidationVerdict(
            is_valid=False,
            error_message=str(e),
            image_path=image_path,
            metrics=dict(analysis.metrics),
        )
    else:
        analysis.verdict = ValidationVerdict(
            is_valid=True,
            error_message=None,
            image_path=image_path,
            metrics=dict(analysis.metrics),
        )
    return analysis


def validate_photo(
    image: Union[Image.Image, np.ndarray],
    detector: FaceDetector,
    predictor: LandmarkPredictor,
    params: Optional[ValidationParams] = None,
    image_path: Optional[str] = None,
) -> ValidationVerdict:
    return analyze_photo(image, detector, predictor, params, image_path).verdict
