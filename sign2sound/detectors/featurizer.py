"""
Pose featurizer.

Turns one frame of 21 hand landmarks into the 84-value vector the letter
classifier was trained on. The output layout is fixed:

    [0:63]   wrist-centred, palm-scaled landmark coordinates (x, y, z per point)
    [63:66]  palm normal (unit vector)
    [66:71]  fingertip distances from the wrist (thumb .. pinky)
    [71:77]  pairwise distances between the index/middle/ring/pinky tips
    [77:81]  PIP joint angles (index, middle, ring, pinky), radians
    [81:84]  thumb tip to index base, thumb tip to middle base, their difference
"""

import numpy as np
from typing import Iterable

from sign2sound.utils.math_utils import EPS, landmarks_to_array, euclidean, unit_vector, joint_angle


NUM_LANDMARKS = 21
FEATURE_DIM = 84

# MediaPipe Hand Landmark indices (for reference)
LANDMARK_NAMES = {
    'WRIST': 0,
    'THUMB_CMC': 1, 'THUMB_MCP': 2, 'THUMB_IP': 3, 'THUMB_TIP': 4,
    'INDEX_MCP': 5, 'INDEX_PIP': 6, 'INDEX_DIP': 7, 'INDEX_TIP': 8,
    'MIDDLE_MCP': 9, 'MIDDLE_PIP': 10, 'MIDDLE_DIP': 11, 'MIDDLE_TIP': 12,
    'RING_MCP': 13, 'RING_PIP': 14, 'RING_DIP': 15, 'RING_TIP': 16,
    'PINKY_MCP': 17, 'PINKY_PIP': 18, 'PINKY_DIP': 19, 'PINKY_TIP': 20,
}

TIP_INDICES = (4, 8, 12, 16, 20)
FINGER_TIP_INDICES = (8, 12, 16, 20)

# (MCP, PIP, DIP) per non-thumb finger; the angle is measured at the PIP
PIP_TRIPLES = (
    (5, 6, 7),
    (9, 10, 11),
    (13, 14, 15),
    (17, 18, 19),
)


def as_landmark_array(landmarks: Iterable) -> np.ndarray:
    """Validate and convert a frame to a (21, 3) float array."""
    pts = landmarks_to_array(landmarks)
    if pts.shape != (NUM_LANDMARKS, 3):
        raise ValueError(
            f"Expected {NUM_LANDMARKS} landmarks with 3 coordinates, got shape {pts.shape}"
        )
    return pts


def featurize_pose(landmarks: Iterable) -> np.ndarray:
    """Compute the 84-value pose feature vector for one hand.

    Translation puts the wrist at the origin; all points are then divided by
    the wrist to middle-MCP distance, so the vector does not depend on where
    the hand is in the image or how far it is from the camera.

    Args:
        landmarks: 21 landmarks, either (x, y, z) triples or objects with
            `.x`, `.y`, `.z`.

    Returns:
        np.ndarray of shape (84,), dtype float64.

    Raises:
        ValueError: if the frame is not 21 points of 3 coordinates.
    """
    pts = as_landmark_array(landmarks)

    pts = pts - pts[LANDMARK_NAMES['WRIST']]
    scale = float(np.linalg.norm(pts[LANDMARK_NAMES['MIDDLE_MCP']])) + EPS
    pts = pts / scale

    normal = unit_vector(np.cross(pts[LANDMARK_NAMES['INDEX_MCP']], pts[LANDMARK_NAMES['PINKY_MCP']]))

    tip_dists = [float(np.linalg.norm(pts[i])) for i in TIP_INDICES]

    inter_tip = []
    for a in range(len(FINGER_TIP_INDICES)):
        for b in range(a + 1, len(FINGER_TIP_INDICES)):
            inter_tip.append(float(euclidean(pts[FINGER_TIP_INDICES[a]], pts[FINGER_TIP_INDICES[b]])))

    angles = [joint_angle(pts[a], pts[b], pts[c]) for a, b, c in PIP_TRIPLES]

    thumb = pts[LANDMARK_NAMES['THUMB_TIP']]
    thumb_to_index = float(euclidean(thumb, pts[LANDMARK_NAMES['INDEX_MCP']]))
    thumb_to_middle = float(euclidean(thumb, pts[LANDMARK_NAMES['MIDDLE_MCP']]))
    thumb_feats = [thumb_to_index, thumb_to_middle, thumb_to_middle - thumb_to_index]

    features = np.concatenate([
        pts.reshape(-1),
        normal,
        np.array(tip_dists + inter_tip + angles + thumb_feats, dtype=float),
    ])
    return features


__all__ = [
    "NUM_LANDMARKS",
    "FEATURE_DIM",
    "LANDMARK_NAMES",
    "as_landmark_array",
    "featurize_pose",
]
