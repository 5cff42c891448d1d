"""
Landmark-based mood classification.

Maps one face-mesh landmark frame to a discrete mood by measuring how far the
mouth is open relative to the height of the face. Normalizing by face height
keeps the signal independent of camera distance and frame resolution.
"""

from collections.abc import Sequence

from .models import LandmarkPoint, MoodLabel

# Face-mesh indices with fixed anatomical meaning
FOREHEAD = 10
UPPER_LIP = 13
LOWER_LIP = 14
CHIN = 152

MIN_LANDMARKS = CHIN + 1
MIN_FACE_HEIGHT = 0.001

SURPRISED_RATIO = 0.24
HAPPY_RATIO = 0.16
CALM_RATIO = 0.07


def mouth_open_ratio(frame: Sequence[LandmarkPoint]) -> float:
    """Vertical lip gap divided by forehead-to-chin height."""
    face_height = max(abs(frame[CHIN].y - frame[FOREHEAD].y), MIN_FACE_HEIGHT)
    return abs(frame[LOWER_LIP].y - frame[UPPER_LIP].y) / face_height


def classify(frame: Sequence[LandmarkPoint] | None) -> MoodLabel:
    """
    Classify a single landmark frame.

    Frames that are missing or too short to contain every required index
    fall back to NEUTRAL rather than raising.

    Args:
        frame: Ordered landmark points for one detected face

    Returns:
        The mood label for this frame
    """
    if not frame or len(frame) < MIN_LANDMARKS:
        return MoodLabel.NEUTRAL

    ratio = mouth_open_ratio(frame)
    if ratio > SURPRISED_RATIO:
        return MoodLabel.SURPRISED
    if ratio > HAPPY_RATIO:
        return MoodLabel.HAPPY
    if ratio < CALM_RATIO:
        return MoodLabel.CALM
    return MoodLabel.NEUTRAL
