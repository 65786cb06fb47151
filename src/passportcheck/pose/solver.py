"""
Head pose from six facial landmarks.

The pose is the rotation/translation that maps the generic face model onto
the camera so that its projection best matches the observed landmarks
(a Perspective-n-Point problem). The rotation is then decomposed into Euler
angles and turned into head yaw/pitch/roll in degrees.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Sequence, Tuple

import cv2
import numpy as np

from passportcheck.core.errors import PoseSolveError
from passportcheck.core.geometry import (
    CameraIntrinsics,
    EulerAngles,
    HeadPose,
    LandmarkSet,
    Point2D,
    Point3D,
)
from passportcheck.pose.camera import build_intrinsics, camera_matrix, distortion_coeffs
from passportcheck.pose.face_model import model_points_array, reference_points, select_image_points

logger = logging.getLogger(__name__)

_ORTHONORMAL_TOL = 1e-6

# Minimum ratio of the smaller to the larger spread of the image points.
_MIN_SPREAD_RATIO = 1e-3


@dataclass(frozen=True, eq=False)
class PoseSolution:
    """
    rotation:
        3x3 proper rotation matrix (model -> camera).
    translation:
        Model origin (the nose tip) in camera coordinates.
    rotation_vector / translation_vector:
        The same pose in OpenCV's (3, 1) vector form, for projectPoints.
    """
    rotation: np.ndarray
    translation: Point3D
    rotation_vector: np.ndarray
    translation_vector: np.ndarray


def solve(
    model_points: Sequence[Point3D],
    image_points: Sequence[Point2D],
    intrinsics: CameraIntrinsics,
) -> PoseSolution:
    """Solve for the pose minimizing reprojection error. Raises PoseSolveError."""
    if len(model_points) != len(image_points):
        raise PoseSolveError(f"{len(model_points)} model points but {len(image_points)} image points")
    if len(model_points) < 4:
        raise PoseSolveError("at least 4 correspondences are needed")

    obj = np.array([(p.x, p.y, p.z) for p in model_points], dtype=np.float64)
    img = np.array([(p.x, p.y) for p in image_points], dtype=np.float64)
    if not np.all(np.isfinite(img)):
        raise PoseSolveError("landmarks contain non-finite coordinates")
    if _is_degenerate(img):
        raise PoseSolveError("landmarks are collinear or coincide")

    try:
        ok, rvec, tvec = cv2.solvePnP(
            obj,
            img,
            camera_matrix(intrinsics),
            distortion_coeffs(),
            flags=cv2.SOLVEPNP_ITERATIVE,
        )
    except cv2.error as e:
        raise PoseSolveError(f"solvePnP failed: {e}") from e

    if not ok or rvec is None or tvec is None:
        raise PoseSolveError("solvePnP did not converge")
    if not (np.all(np.isfinite(rvec)) and np.all(np.isfinite(tvec))):
        raise PoseSolveError("solvePnP returned non-finite values")

    rotation, _ = cv2.Rodrigues(rvec)
    if not is_proper_rotation(rotation):
        raise PoseSolveError("solution is not a proper rotation")

    t = tvec.reshape(3)
    return PoseSolution(
        rotation=rotation,
        translation=Point3D(float(t[0]), float(t[1]), float(t[2])),
        rotation_vector=rvec.reshape(3, 1),
        translation_vector=tvec.reshape(3, 1),
    )


def _is_degenerate(points: np.ndarray) -> bool:
    """True when the 2D points lie (nearly) on one line or one spot."""
    centred = points - points.mean(axis=0)
    s = np.linalg.svd(centred, compute_uv=False)
    if s[0] <= 1e-9:
        return True
    return bool(s[-1] / s[0] < _MIN_SPREAD_RATIO)


def is_proper_rotation(r: np.ndarray, tol: float = _ORTHONORMAL_TOL) -> bool:
    r = np.asarray(r, dtype=np.float64)
    if r.shape != (3, 3) or not np.all(np.isfinite(r)):
        return False
    return bool(np.allclose(r @ r.T, np.eye(3), atol=tol) and abs(np.linalg.det(r) - 1.0) <= tol)


def _decompose(m: np.ndarray, pitch: float) -> EulerAngles:
    c = math.cos(pitch)
    roll = math.atan2(m[2, 1] / c, m[2, 2] / c)
    yaw = math.atan2(m[1, 0] / c, m[0, 0] / c)
    return EulerAngles(yaw=yaw, roll=roll, pitch=pitch)


def rotation_to_euler_solutions(r: np.ndarray) -> Tuple[EulerAngles, EulerAngles]:
    """
    Both Euler decompositions of a rotation matrix, (primary, alternate).

    Away from gimbal lock every rotation has two decompositions, with
    pitch_b = pi - pitch_a. Only the primary one is used for validation;
    the alternate is returned for callers that need the other branch.
    In gimbal lock (|m20| >= 1) yaw is fixed to 0 and both are equal.
    """
    m = np.asarray(r, dtype=np.float64)
    m20 = m[2, 0]

    if abs(m20) >= 1:
        if m20 < 0:  # locked down
            pitch = math.pi / 2
            roll = math.atan2(m[0, 1], m[0, 2])
        else:  # locked up
            pitch = -math.pi / 2
            roll = math.atan2(-m[0, 1], -m[0, 2])
        locked = EulerAngles(yaw=0.0, roll=roll, pitch=pitch)
        return locked, locked

    pitch_a = -math.asin(m20)
    pitch_b = math.pi - pitch_a
    return _decompose(m, pitch_a), _decompose(m, pitch_b)


def rotation_to_euler(r: np.ndarray) -> EulerAngles:
    return rotation_to_euler_solutions(r)[0]


def euler_to_rotation(angles: EulerAngles) -> np.ndarray:
    """R = Rz(yaw) @ Ry(pitch) @ Rx(roll)."""
    cy, sy = math.cos(angles.yaw), math.sin(angles.yaw)
    cp, sp = math.cos(angles.pitch), math.sin(angles.pitch)
    cr, sr = math.cos(angles.roll), math.sin(angles.roll)
    rz = np.array([[cy, -sy, 0.0], [sy, cy, 0.0], [0.0, 0.0, 1.0]])
    ry = np.array([[cp, 0.0, sp], [0.0, 1.0, 0.0], [-sp, 0.0, cp]])
    rx = np.array([[1.0, 0.0, 0.0], [0.0, cr, -sr], [0.0, sr, cr]])
    return rz @ ry @ rx


def unwrap_pitch(pitch_deg: float) -> float:
    """
    Map a pitch near +-180 degrees to near 0.

    The face model is y-up while image rows grow downwards, so a face looking
    straight at the camera comes out at +-180 and wraps around there.
    """
    return float(np.sign(pitch_deg) * 180.0 - pitch_deg)


def head_pose_from_euler(angles: EulerAngles) -> HeadPose:
    """
    Head yaw/pitch/roll in degrees.

    Turning the head left/right rotates about the camera's vertical (y) axis,
    nodding about its horizontal (x) axis and tilting about the optical (z)
    axis, so the head angles are the decomposition angles about y, x and z.
    """
    return HeadPose(
        yaw=math.degrees(angles.pitch),
        pitch=unwrap_pitch(math.degrees(angles.roll)),
        roll=math.degrees(angles.yaw),
    )


def estimate_head_pose(landmarks: LandmarkSet, width: int, height: int) -> Tuple[HeadPose, PoseSolution]:
    """Full chain: 68 landmarks + image size -> head pose."""
    intrinsics = build_intrinsics(width, height)
    solution = solve(reference_points(), select_image_points(landmarks), intrinsics)
    pose = head_pose_from_euler(rotation_to_euler(solution.rotation))
    logger.debug("Head pose yaw=%.2f pitch=%.2f roll=%.2f", pose.yaw, pose.pitch, pose.roll)
    return pose, solution


def project_model(solution: PoseSolution, intrinsics: CameraIntrinsics, points: np.ndarray | None = None) -> np.ndarray:
    """Project 3D model-space points (default: the face model) to (N, 2) pixels."""
    if points is None:
        points = model_points_array()
    projected, _ = cv2.projectPoints(
        np.asarray(points, dtype=np.float64).reshape(-1, 3),
        solution.rotation_vector,
        solution.translation_vector,
        camera_matrix(intrinsics),
        distortion_coeffs(),
    )
    return projected.reshape(-1, 2)
