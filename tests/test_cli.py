import io
import json
import tempfile
import unittest
from contextlib import redirect_stderr, redirect_stdout
from pathlib import Path
from unittest.mock import patch

from PIL import Image

from tests._test_path import SRC  # noqa: F401
from tests._synthetic import FACE_BOX, StubDetector, StubPredictor, projected_landmarks, solid_image

from passportcheck import cli
from passportcheck.core.models import ValidationParams


class TestCli(unittest.TestCase):
    def setUp(self):
        self.dir = Path(tempfile.mkdtemp(prefix="passportcheck_cli_"))
        self.photos = self.dir / "photos"
        self.photos.mkdir()
        Image.fromarray(solid_image(200, 200), "RGB").save(self.photos / "white.png")
        Image.fromarray(solid_image(200, 200, (30, 30, 30)), "RGB").save(self.photos / "dark.png")
        (self.photos / "notes.txt").write_text("not an image")
        self.backends = (StubDetector([FACE_BOX]), StubPredictor(projected_landmarks(200, 200)))

    def _run(self, argv):
        out, err = io.StringIO(), io.StringIO()
        with patch.object(cli, "_default_backends", return_value=self.backends):
            with redirect_stdout(out), redirect_stderr(err):
                code = cli.main(argv)
        return code, out.getvalue(), err.getvalue()

    def test_single_valid_photo(self):
        code, out, _ = self._run([str(self.photos / "white.png")])
        self.assertEqual(code, 0)
        self.assertIn("Overall: PASS", out)

    def test_folder_with_invalid_photo(self):
        code, out, _ = self._run(["--images-dir", str(self.photos)])
        self.assertEqual(code, 1)
        self.assertEqual(out.count("Passport Photo Validation"), 2)
        self.assertIn("White background not detected", out)
        self.assertNotIn("notes.txt", out)

    def test_config_file(self):
        config = self.dir / "config.json"
        config.write_text(json.dumps({"imagesFolderPath": str(self.photos), "bgThreshold": 800}))
        code, out, _ = self._run(["--config", str(config)])
        # every pixel is within distance 800 of white
        self.assertEqual(code, 0)
        self.assertEqual(out.count("Overall: PASS"), 2)

    def test_flags_override_config(self):
        config = self.dir / "config.json"
        config.write_text(json.dumps({"bgThreshold": 800}))
        args = cli._build_arg_parser().parse_args(["--config", str(config), "--bg-threshold", "5"])
        self.assertEqual(cli._params_from_args(args).bg_threshold, 5)

    def test_bad_config(self):
        config = self.dir / "config.json"
        config.write_text("{oops")
        code, _, err = self._run(["--config", str(config), str(self.photos / "white.png")])
        self.assertEqual(code, 2)
        self.assertIn("ERROR", err)

    def test_bad_color(self):
        code, _, err = self._run(["--background-color", "nope", str(self.photos / "white.png")])
        self.assertEqual(code, 2)

    def test_no_images(self):
        code, _, err = self._run([])
        self.assertEqual(code, 2)
        self.assertIn("no images", err)

    def test_missing_folder(self):
        code, _, _ = self._run(["--images-dir", str(self.dir / "missing")])
        self.assertEqual(code, 2)

    def test_analysis_error_does_not_stop_batch(self):
        Image.fromarray(solid_image(200, 200), "RGB").save(self.dir / "second.png")
        landmarks = projected_landmarks(200, 200)

        class FailsOnce:
            calls = 0

            def detect_landmarks(self, image, face):
                self.calls += 1
                if self.calls == 1:
                    raise RuntimeError("predictor crashed")
                return landmarks

        self.backends = (StubDetector([FACE_BOX]), FailsOnce())
        code, out, _ = self._run([str(self.photos / "white.png"), str(self.dir / "second.png")])
        self.assertEqual(code, 1)
        self.assertEqual(out.count("Passport Photo Validation"), 2)
        self.assertIn("Validation failed: predictor crashed", out)
        self.assertIn("Overall: PASS", out)

    def test_short_landmark_set_is_reported_per_photo(self):
        Image.fromarray(solid_image(200, 200), "RGB").save(self.dir / "second.png")
        self.backends = (StubDetector([FACE_BOX]), StubPredictor(projected_landmarks(200, 200)[:5]))
        code, out, _ = self._run([str(self.photos / "white.png"), str(self.dir / "second.png")])
        self.assertEqual(code, 1)
        self.assertEqual(out.count("Facial landmarks could not be located"), 2)

    def test_unreadable_file_does_not_stop_batch(self):
        broken = self.dir / "broken.jpg"
        broken.write_bytes(b"not really a jpeg")
        code, out, _ = self._run([str(broken), str(self.photos / "white.png")])
        self.assertEqual(code, 1)
        self.assertIn("Cannot read image", out)
        self.assertIn("Overall: PASS", out)

    def test_annotate_dir(self):
        annotated = self.dir / "annotated"
        code, _, _ = self._run(["--annotate-dir", str(annotated), str(self.photos / "white.png")])
        self.assertEqual(code, 0)
        self.assertTrue((annotated / "white_annotated.png").exists())

    def test_validate_file(self):
        detector, predictor = self.backends
        verdict = cli.validate_file(self.photos / "white.png", detector, predictor, ValidationParams())
        self.assertTrue(verdict.is_valid)
        self.assertEqual(verdict.image_path, str(self.photos / "white.png"))
