from __future__ import annotations


class PhotoValidationError(Exception):
    """
    A photo failed one of the compliance rules.

    The message is meant for the person who submitted the photo.
    """


class DetectionCountError(PhotoValidationError):
    def __init__(self, count: int):
        self.count = count
        super().__init__("No Face Detected" if count < 1 else "Multiple Faces Detected")


class LandmarkDetectionError(PhotoValidationError):
    def __init__(self):
        super().__init__("Facial landmarks could not be located")


class FaceAreaTooSmallError(PhotoValidationError):
    def __init__(self, area_pct: float, minimum_pct: float):
        self.area_pct = area_pct
        self.minimum_pct = minimum_pct
        super().__init__(
            "Detected face area is below requirement. "
            "Square aspect ratio is recommended for best results."
        )


class BackgroundInvalidError(PhotoValidationError):
    def __init__(self, color_name: str):
        self.color_name = color_name
        super().__init__(f"{color_name.capitalize()} background not detected")


class NoBackgroundPixelsError(PhotoValidationError):
    def __init__(self):
        super().__init__("No background pixels around the face could be sampled")


class PoseSolveError(PhotoValidationError):
    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(f"Head pose could not be estimated ({reason})")


class PostureInvalidError(PhotoValidationError):
    def __init__(self, yaw: float, pitch: float, roll: float):
        self.yaw = yaw
        self.pitch = pitch
        self.roll = roll
        super().__init__(
            f"Head is not facing the camera (yaw {yaw:+.1f}, pitch {pitch:+.1f}, roll {roll:+.1f} degrees)"
        )


class ConfigError(ValueError):
    """Configuration file could not be read or holds invalid values."""
