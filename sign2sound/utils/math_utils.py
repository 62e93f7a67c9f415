import numpy as np
from collections import deque
from typing import Iterable, Optional, Sequence


EPS = 1e-6


def landmarks_to_array(landmarks: Iterable) -> np.ndarray:
    """Convert landmarks into a (N, 3) NumPy array.

    Accepts either objects exposing `.x`, `.y`, `.z` (MediaPipe landmarks)
    or plain sequences of three floats.

    Args:
        landmarks: iterable of landmark objects or (x, y, z) triples

    Returns:
        np.ndarray of shape (N, 3) dtype float with columns (x, y, z).
    """
    rows = []
    for lm in landmarks:
        if hasattr(lm, 'x'):
            rows.append([lm.x, lm.y, getattr(lm, 'z', 0.0)])
        else:
            rows.append(list(lm))
    arr = np.array(rows, dtype=float)
    if arr.size == 0:
        return arr.reshape((0, 3))
    return arr


def euclidean(a, b):
    """Euclidean distance between points.

    - If `a` and `b` are 1-D points, returns a scalar.
    - If arrays of points, returns distances per-row.
    """
    a = np.asarray(a, dtype=float)
    b = np.asarray(b, dtype=float)
    return np.linalg.norm(a - b, axis=-1)


def unit_vector(v, eps: float = EPS) -> np.ndarray:
    """Scale `v` to unit length; `eps` keeps a zero vector finite."""
    v = np.asarray(v, dtype=float)
    return v / (np.linalg.norm(v) + eps)


def joint_angle(a, b, c, eps: float = 1e-8) -> float:
    """Angle ABC in radians at joint B.

    The cosine is clamped to [-1, 1] before acos so floating-point drift
    never leaves the domain.
    """
    a = np.asarray(a, dtype=float)
    b = np.asarray(b, dtype=float)
    c = np.asarray(c, dtype=float)
    ba = unit_vector(a - b, eps)
    bc = unit_vector(c - b, eps)
    cos_val = float(np.clip(np.dot(ba, bc), -1.0, 1.0))
    return float(np.arccos(cos_val))


class MovingAverage:
    """Simple moving average buffer (keeps last N samples)."""

    def __init__(self, n: int = 3) -> None:
        self.n = int(n)
        self.buf = deque(maxlen=self.n)

    def update(self, x: Iterable) -> np.ndarray:
        self.buf.append(np.array(x, dtype=float))
        return np.mean(self.buf, axis=0)

    def clear(self) -> None:
        self.buf.clear()

    def __len__(self) -> int:
        return len(self.buf)


def majority_vote(values: Sequence) -> Optional[object]:
    """Most frequent value in `values`.

    Ties go to the value that first reached the winning count during a
    left-to-right scan, so the earlier-inserted value wins.
    """
    if not values:
        return None
    counts = {}
    best_value = values[0]
    best_count = 0
    for value in values:
        counts[value] = counts.get(value, 0) + 1
        if counts[value] > best_count:
            best_count = counts[value]
            best_value = value
    return best_value


def argmax(values: Sequence[float]) -> int:
    """Index of the first maximum."""
    best_idx = 0
    best_val = float('-inf')
    for i, v in enumerate(values):
        if v > best_val:
            best_val = v
            best_idx = i
    return best_idx


__all__ = [
    "EPS",
    "landmarks_to_array",
    "euclidean",
    "unit_vector",
    "joint_angle",
    "MovingAverage",
    "majority_vote",
    "argmax",
]
