"""
Validate passport photos from the command line.

Usage:
  passport-validator photo1.jpg photo2.jpg
  passport-validator --images-dir ./photos --background-color white
  passport-validator --config config.json --annotate-dir ./annotated -v

Each photo is checked independently: exactly one face, large enough, on a
uniform background of the expected color, looking straight at the camera.
Exit status is 0 when every photo passed, 1 when any failed and 2 on usage
or configuration errors.
"""

from __future__ import annotations

import argparse
import logging
import sys
from dataclasses import replace
from pathlib import Path
from typing import List, Optional, Tuple

from PIL import Image, ImageOps

from passportcheck.background.color import parse_color
from passportcheck.core.errors import ConfigError
from passportcheck.core.models import ValidationParams, load_params
from passportcheck.validation.annotate import annotate_photo
from passportcheck.validation.report import ValidationVerdict, format_verdict_text
from passportcheck.validation.validator import (
    FaceDetector,
    LandmarkPredictor,
    PhotoAnalysis,
    analyze_photo,
)

logger = logging.getLogger(__name__)

IMAGE_SUFFIXES = {".jpg", ".jpeg", ".png", ".bmp", ".tif", ".tiff", ".webp"}


def _load_image_rgb(path: str) -> Image.Image:
    """Load an image, apply EXIF orientation, return RGB PIL Image."""
    img = Image.open(path)
    img = ImageOps.exif_transpose(img)
    if img.mode != "RGB":
        img = img.convert("RGB")
    return img


def _default_backends() -> Tuple[FaceDetector, LandmarkPredictor]:
    # Imported here so --help and config errors do not need mediapipe.
    from passportcheck.detection.mediapipe_backend import MediaPipeFaceDetector, MediaPipeLandmarkPredictor

    return MediaPipeFaceDetector(), MediaPipeLandmarkPredictor()


def collect_images(paths: List[str], folder: Optional[str]) -> List[Path]:
    found = [Path(p) for p in paths]
    if folder:
        d = Path(folder)
        if not d.is_dir():
            raise ConfigError(f"Images folder does not exist: {d}")
        found.extend(sorted(p for p in d.iterdir() if p.is_file() and p.suffix.lower() in IMAGE_SUFFIXES))
    return found


def _params_from_args(args: argparse.Namespace) -> ValidationParams:
    params = load_params(args.config) if args.config else ValidationParams()
    overrides = {}
    if args.images_dir is not None:
        overrides["images_folder"] = args.images_dir
    if args.background_color is not None:
        overrides["background_color"] = args.background_color
    if args.bg_threshold is not None:
        overrides["bg_threshold"] = args.bg_threshold
    if args.pixel_validity is not None:
        overrides["pixel_validity_threshold"] = args.pixel_validity
    if args.min_face_area is not None:
        overrides["min_face_area_pct"] = args.min_face_area
    return replace(params, **overrides)


def validate_file(
    path: Path,
    detector: FaceDetector,
    predictor: LandmarkPredictor,
    params: ValidationParams,
    annotate_dir: Optional[Path] = None,
) -> ValidationVerdict:
    """
    Validate one file.

    Never raises for a single bad photo: unreadable files and unexpected
    errors while analysing it produce an invalid verdict, so a batch goes on.
    """
    try:
        img = _load_image_rgb(str(path))
        analysis: PhotoAnalysis = analyze_photo(img, detector, predictor, params, image_path=str(path))

        if annotate_dir is not None:
            annotate_dir.mkdir(parents=True, exist_ok=True)
            out = annotate_dir / f"{path.stem}_annotated.png"
            Image.fromarray(annotate_photo(img, analysis)).save(out)
            logger.debug("Annotated image written to %s", out)
    except OSError as e:
        logger.warning("Cannot read %s: %s", path, e)
        return ValidationVerdict(is_valid=False, error_message=f"Cannot read image: {e}", image_path=str(path))
    except Exception as e:
        logger.warning("Validation of %s failed: %s", path, e, exc_info=True)
        return ValidationVerdict(is_valid=False, error_message=f"Validation failed: {e}", image_path=str(path))

    return analysis.verdict


def _build_arg_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(description="Check passport photos for face size, background and head pose.")
    p.add_argument("images", nargs="*", help="Photo files to validate")
    p.add_argument("--config", "-c", help="JSON config file (imagesFolderPath, bgThreshold, ...)")
    p.add_argument("--images-dir", help="Validate every image in this folder")
    p.add_argument("--background-color", help="Expected background color, name or hex (default: white)")
    p.add_argument("--bg-threshold", type=int, help="Max color distance of a background pixel")
    p.add_argument("--pixel-validity", type=int, help="Min percentage of valid background pixels")
    p.add_argument("--min-face-area", type=float, help="Min face area as a percentage of the image")
    p.add_argument("--annotate-dir", help="Write annotated copies of the photos here")
    p.add_argument("--verbose", "-v", action="store_true", help="Debug logging")
    return p


def main(argv: Optional[list[str]] = None) -> int:
    args = _build_arg_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    try:
        params = _params_from_args(args)
        parse_color(params.background_color)
        images = collect_images(args.images, params.images_folder)
    except (ConfigError, ValueError) as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return 2

    if not images:
        print("ERROR: no images given (pass files, --images-dir or imagesFolderPath in --config)", file=sys.stderr)
        return 2

    detector, predictor = _default_backends()
    annotate_dir = Path(args.annotate_dir) if args.annotate_dir else None

    all_valid = True
    for path in images:
        verdict = validate_file(path, detector, predictor, params, annotate_dir)
        logger.info("%s: %s", path, "valid" if verdict.is_valid else verdict.error_message)
        all_valid = all_valid and verdict.is_valid
        print(format_verdict_text(verdict))
        print()

    return 0 if all_valid else 1


if __name__ == "__main__":
    raise SystemExit(main())
