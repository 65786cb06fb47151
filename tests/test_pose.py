import math
import unittest

import numpy as np

from tests._test_path import SRC  # noqa: F401
from tests._synthetic import FRONTAL, projected_landmarks, turned_head

from passportcheck.core.errors import PoseSolveError
from passportcheck.core.geometry import EulerAngles, Point2D, Point3D
from passportcheck.pose.camera import build_intrinsics, camera_matrix
from passportcheck.pose.face_model import (
    LANDMARK_INDICES,
    reference_points,
    select_image_points,
)
from passportcheck.pose.posture import classify
from passportcheck.pose.solver import (
    estimate_head_pose,
    euler_to_rotation,
    head_pose_from_euler,
    is_proper_rotation,
    project_model,
    rotation_to_euler,
    rotation_to_euler_solutions,
    solve,
    unwrap_pitch,
)


class TestCameraModel(unittest.TestCase):
    def test_intrinsics(self):
        intr = build_intrinsics(640, 480)
        self.assertEqual((intr.fx, intr.fy, intr.cx, intr.cy), (640.0, 640.0, 320.0, 240.0))

    def test_matrix(self):
        m = camera_matrix(build_intrinsics(101, 51))
        self.assertEqual(m.shape, (3, 3))
        self.assertAlmostEqual(m[0, 2], 50.5)
        self.assertAlmostEqual(m[1, 2], 25.5)
        self.assertEqual(m[2, 2], 1.0)


class TestReferenceFaceModel(unittest.TestCase):
    def test_model_points(self):
        pts = reference_points()
        self.assertEqual(len(pts), 6)
        self.assertEqual(pts[0], Point3D(0.0, 0.0, 0.0))
        self.assertEqual(pts[1], Point3D(0.0, -330.0, -65.0))
        self.assertEqual(LANDMARK_INDICES, (30, 8, 36, 45, 48, 54))

    def test_select_image_points(self):
        landmarks = [Point2D(float(i), float(-i)) for i in range(68)]
        picked = select_image_points(landmarks)
        self.assertEqual([p.x for p in picked], [30.0, 8.0, 36.0, 45.0, 48.0, 54.0])

    def test_select_requires_68_points(self):
        with self.assertRaises(ValueError):
            select_image_points([Point2D(0, 0)] * 5)


class TestEulerDecomposition(unittest.TestCase):
    def test_round_trip(self):
        for yaw in (-2.5, -0.4, 0.0, 0.3, 1.9):
            for pitch in (-1.2, -0.1, 0.0, 0.7, 1.4):
                for roll in (-3.0, 0.0, 0.5, 2.2):
                    r = euler_to_rotation(EulerAngles(yaw=yaw, roll=roll, pitch=pitch))
                    back = euler_to_rotation(rotation_to_euler(r))
                    np.testing.assert_allclose(back, r, atol=1e-9)

    def test_primary_recovers_angles_in_principal_range(self):
        angles = rotation_to_euler(euler_to_rotation(EulerAngles(yaw=0.3, roll=-0.2, pitch=0.1)))
        self.assertAlmostEqual(angles.yaw, 0.3)
        self.assertAlmostEqual(angles.roll, -0.2)
        self.assertAlmostEqual(angles.pitch, 0.1)

    def test_alternate_solution_is_also_valid(self):
        r = euler_to_rotation(EulerAngles(yaw=0.4, roll=1.0, pitch=0.3))
        primary, alternate = rotation_to_euler_solutions(r)
        self.assertAlmostEqual(alternate.pitch, math.pi - primary.pitch)
        np.testing.assert_allclose(euler_to_rotation(alternate), r, atol=1e-9)

    def test_gimbal_lock_down(self):
        # m20 = -1
        r = euler_to_rotation(EulerAngles(yaw=0.0, roll=0.6, pitch=math.pi / 2))
        r[2, 0] = -1.0
        primary, alternate = rotation_to_euler_solutions(r)
        self.assertEqual(primary.yaw, 0.0)
        self.assertEqual(primary.pitch, math.pi / 2)
        self.assertAlmostEqual(primary.roll, 0.6)
        self.assertEqual(primary, alternate)

    def test_gimbal_lock_up(self):
        # m20 = +1
        r = euler_to_rotation(EulerAngles(yaw=0.0, roll=0.6, pitch=-math.pi / 2))
        r[2, 0] = 1.0
        angles = rotation_to_euler(r)
        self.assertEqual(angles.yaw, 0.0)
        self.assertEqual(angles.pitch, -math.pi / 2)
        self.assertAlmostEqual(angles.roll, 0.6)

    def test_field_order(self):
        self.assertEqual(EulerAngles._fields, ("yaw", "roll", "pitch"))


class TestHeadPose(unittest.TestCase):
    def test_unwrap_pitch(self):
        self.assertAlmostEqual(unwrap_pitch(179.0), 1.0)
        self.assertAlmostEqual(unwrap_pitch(-179.0), -1.0)
        self.assertAlmostEqual(unwrap_pitch(180.0), 0.0)
        self.assertEqual(unwrap_pitch(0.0), 0.0)

    def test_head_pose_axes(self):
        pose = head_pose_from_euler(EulerAngles(yaw=math.radians(3), roll=math.radians(170), pitch=math.radians(-2)))
        self.assertAlmostEqual(pose.yaw, -2.0)
        self.assertAlmostEqual(pose.pitch, 10.0)
        self.assertAlmostEqual(pose.roll, 3.0)


class TestPoseSolver(unittest.TestCase):
    def test_recovers_known_pose(self):
        intr = build_intrinsics(640, 480)
        rvec = np.array([[0.1], [-0.2], [0.05]])
        landmarks = projected_landmarks(640, 480, rvec=rvec, tvec=(20.0, -10.0, 3000.0))
        sol = solve(reference_points(), select_image_points(landmarks), intr)

        self.assertTrue(is_proper_rotation(sol.rotation))
        np.testing.assert_allclose(sol.rotation_vector, rvec, atol=1e-4)
        self.assertAlmostEqual(sol.translation.z, 3000.0, delta=1.0)

        reproj = project_model(sol, intr)
        observed = np.array([(p.x, p.y) for p in select_image_points(landmarks)])
        np.testing.assert_allclose(reproj, observed, atol=1e-3)

    def test_frontal_face(self):
        landmarks = projected_landmarks(640, 480, rvec=FRONTAL)
        pose, sol = estimate_head_pose(landmarks, 640, 480)
        self.assertAlmostEqual(pose.yaw, 0.0, delta=0.01)
        self.assertAlmostEqual(pose.pitch, 0.0, delta=0.01)
        self.assertAlmostEqual(pose.roll, 0.0, delta=0.01)
        self.assertTrue(classify(pose.yaw, pose.pitch, pose.roll))

    def test_turned_face(self):
        landmarks = projected_landmarks(640, 480, rvec=turned_head(20.0))
        pose, _ = estimate_head_pose(landmarks, 640, 480)
        self.assertAlmostEqual(pose.yaw, 20.0, delta=0.01)
        self.assertAlmostEqual(pose.pitch, 0.0, delta=0.01)
        self.assertAlmostEqual(pose.roll, 0.0, delta=0.01)
        self.assertFalse(classify(pose.yaw, pose.pitch, pose.roll))

    def test_mismatched_points(self):
        with self.assertRaises(PoseSolveError):
            solve(reference_points(), [Point2D(0, 0)] * 5, build_intrinsics(100, 100))

    def test_too_few_points(self):
        with self.assertRaises(PoseSolveError):
            solve(reference_points()[:3], [Point2D(0, 0)] * 3, build_intrinsics(100, 100))

    def test_collinear_landmarks(self):
        pts = [Point2D(10.0 * i, 20.0) for i in range(6)]
        with self.assertRaises(PoseSolveError):
            solve(reference_points(), pts, build_intrinsics(100, 100))

    def test_nearly_collinear_landmarks(self):
        pts = [Point2D(10.0 * i, 5.0 * i + 3.0 + (1e-4 if i % 2 else 0.0)) for i in range(6)]
        with self.assertRaises(PoseSolveError):
            solve(reference_points(), pts, build_intrinsics(100, 100))

    def test_coincident_landmarks(self):
        with self.assertRaises(PoseSolveError):
            solve(reference_points(), [Point2D(50.0, 50.0)] * 6, build_intrinsics(100, 100))

    def test_non_finite_landmarks(self):
        pts = [Point2D(float("nan"), 0.0)] + [Point2D(1.0, 1.0)] * 5
        with self.assertRaises(PoseSolveError):
            solve(reference_points(), pts, build_intrinsics(100, 100))


class TestPostureClassifier(unittest.TestCase):
    def test_frontal(self):
        self.assertTrue(classify(0, 0, 0))

    def test_limits_are_inclusive(self):
        self.assertTrue(classify(4, -15, 5))
        self.assertTrue(classify(-4, 15, -5))

    def test_out_of_range(self):
        self.assertFalse(classify(10, 0, 0))
        self.assertFalse(classify(0, 15.1, 0))
        self.assertFalse(classify(0, 0, -5.5))
