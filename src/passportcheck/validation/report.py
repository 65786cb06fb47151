from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, List, Optional


@dataclass(frozen=True)
class ValidationVerdict:
    """
    Outcome of validating one photo.

    error_message is None exactly when the photo is valid.
    metrics holds whatever was measured before the verdict was reached
    (face_area_pct, background_validity_pct, yaw, pitch, roll).
    """
    is_valid: bool
    error_message: Optional[str] = None
    image_path: Optional[str] = None
    metrics: dict[str, Any] = field(default_factory=dict)


def format_verdict_text(verdict: ValidationVerdict) -> str:
    lines: List[str] = []
    lines.append("Passport Photo Validation")
    lines.append("-" * 25)
    if verdict.image_path:
        lines.append(f"Image: {verdict.image_path}")
    lines.append(f"Overall: {'PASS' if verdict.is_valid else 'FAIL'}")
    if verdict.error_message:
        lines.append(f"Reason: {verdict.error_message}")
    for key, value in verdict.metrics.items():
        if isinstance(value, float):
            lines.append(f"  {key}: {value:.2f}")
        else:
            lines.append(f"  {key}: {value}")
    return "\n".join(lines)
