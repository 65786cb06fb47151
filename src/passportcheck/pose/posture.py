from __future__ import annotations

# Calibrated limits in degrees, inclusive.
YAW_LIMIT = 4.0
PITCH_LIMIT = 15.0
ROLL_LIMIT = 5.0


def classify(yaw: float, pitch: float, roll: float) -> bool:
    """True when the head is close enough to frontal."""
    return (
        -YAW_LIMIT <= yaw <= YAW_LIMIT
        and -PITCH_LIMIT <= pitch <= PITCH_LIMIT
        and -ROLL_LIMIT <= roll <= ROLL_LIMIT
    )
