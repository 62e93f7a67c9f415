import numpy as np
from collections import deque
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, Iterable, List, Optional, Tuple

from sign2sound.detectors.featurizer import LANDMARK_NAMES, NUM_LANDMARKS
from sign2sound.utils.math_utils import EPS, landmarks_to_array, euclidean


class GestureLabel(str, Enum):
    THUMB_UP = "THUMB_UP"
    THUMB_DOWN = "THUMB_DOWN"
    PINCH = "PINCH"
    OPEN_PALM = "OPEN_PALM"
    SMART_SELECT = "SMART_SELECT"


# Order used when counting votes in the debounce buffer
VALID_GESTURES: Tuple[GestureLabel, ...] = (
    GestureLabel.THUMB_UP,
    GestureLabel.THUMB_DOWN,
    GestureLabel.PINCH,
    GestureLabel.OPEN_PALM,
    GestureLabel.SMART_SELECT,
)

WRIST = LANDMARK_NAMES['WRIST']
THUMB_TIP = LANDMARK_NAMES['THUMB_TIP']
INDEX_MCP = LANDMARK_NAMES['INDEX_MCP']
INDEX_TIP = LANDMARK_NAMES['INDEX_TIP']
MIDDLE_MCP = LANDMARK_NAMES['MIDDLE_MCP']
MIDDLE_TIP = LANDMARK_NAMES['MIDDLE_TIP']
RING_MCP = LANDMARK_NAMES['RING_MCP']
RING_TIP = LANDMARK_NAMES['RING_TIP']
PINKY_MCP = LANDMARK_NAMES['PINKY_MCP']
PINKY_TIP = LANDMARK_NAMES['PINKY_TIP']

FINGER_TIP_MCP = (
    (INDEX_TIP, INDEX_MCP),
    (MIDDLE_TIP, MIDDLE_MCP),
    (RING_TIP, RING_MCP),
    (PINKY_TIP, PINKY_MCP),
)


@dataclass
class HandGeometry:
    """
    Per-frame geometry shared by all gesture rules.
    Distances are in the landmark coordinate space; `palm` is the
    wrist to middle-MCP distance every ratio is measured against.
    """
    points: np.ndarray  # shape (21, 3)
    palm: float
    fingers_folded: bool

    def dist(self, i: int, j: int) -> float:
        return float(euclidean(self.points[i], self.points[j]))

    def y(self, i: int) -> float:
        return float(self.points[i][1])


def compute_hand_geometry(points: np.ndarray) -> HandGeometry:
    palm = float(euclidean(points[WRIST], points[MIDDLE_MCP])) + EPS
    folded = True
    for tip, mcp in FINGER_TIP_MCP:
        if euclidean(points[tip], points[WRIST]) > euclidean(points[mcp], points[WRIST]):
            folded = False
            break
    return HandGeometry(points=points, palm=palm, fingers_folded=folded)


@dataclass(frozen=True)
class GestureRule:
    """A label and the predicate that proposes it."""
    label: GestureLabel
    predicate: Callable[[HandGeometry], bool]


class GestureClassifier:
    """
    Rule-based single-frame gesture proposer.

    Rules are checked in a fixed order and the first match wins. The
    conditions overlap (SMART_SELECT and the thumb gestures both look at
    thumb spread), so the order is part of the behaviour.
    """

    def __init__(
        self,
        smart_thumb_spread: float = 0.4,
        smart_extended_ratio: float = 1.5,
        smart_folded_ratio: float = 1.2,
        thumb_spread: float = 0.6,
        thumb_vertical_offset: float = 0.3,
        pinch_touch: float = 0.15,
        pinch_folded_ratio: float = 1.3,
        open_extended: float = 0.85,
        open_spread: float = 0.9,
    ):
        self.smart_thumb_spread = smart_thumb_spread
        self.smart_extended_ratio = smart_extended_ratio
        self.smart_folded_ratio = smart_folded_ratio
        self.thumb_spread = thumb_spread
        self.thumb_vertical_offset = thumb_vertical_offset
        self.pinch_touch = pinch_touch
        self.pinch_folded_ratio = pinch_folded_ratio
        self.open_extended = open_extended
        self.open_spread = open_spread

        self.rules: List[GestureRule] = [
            GestureRule(GestureLabel.SMART_SELECT, self._is_smart_select),
            GestureRule(GestureLabel.THUMB_UP, self._is_thumb_up),
            GestureRule(GestureLabel.THUMB_DOWN, self._is_thumb_down),
            GestureRule(GestureLabel.PINCH, self._is_pinch),
            GestureRule(GestureLabel.OPEN_PALM, self._is_open_palm),
        ]

    @classmethod
    def from_config(cls, cfg) -> "GestureClassifier":
        g = lambda *keys, default: cfg.get('gestures', *keys, default=default)
        return cls(
            smart_thumb_spread=g('smart_select', 'thumb_spread_ratio', default=0.4),
            smart_extended_ratio=g('smart_select', 'extended_ratio', default=1.5),
            smart_folded_ratio=g('smart_select', 'folded_ratio', default=1.2),
            thumb_spread=g('thumb', 'spread_ratio', default=0.6),
            thumb_vertical_offset=g('thumb', 'vertical_offset_ratio', default=0.3),
            pinch_touch=g('pinch', 'touch_ratio', default=0.15),
            pinch_folded_ratio=g('pinch', 'folded_ratio', default=1.3),
            open_extended=g('open_palm', 'extended_ratio', default=0.85),
            open_spread=g('open_palm', 'spread_ratio', default=0.9),
        )

    def classify(self, landmarks: Iterable) -> Optional[GestureLabel]:
        """Return the first matching gesture for this frame, or None."""
        points = landmarks_to_array(landmarks)
        if points.shape[0] < NUM_LANDMARKS:
            return None
        hand = compute_hand_geometry(points)
        for rule in self.rules:
            if rule.predicate(hand):
                return rule.label
        return None

    # Rules

    def _is_smart_select(self, h: HandGeometry) -> bool:
        return (
            h.dist(THUMB_TIP, INDEX_MCP) > h.palm * self.smart_thumb_spread
            and h.dist(INDEX_TIP, WRIST) > h.dist(INDEX_MCP, WRIST) * self.smart_extended_ratio
            and h.dist(PINKY_TIP, WRIST) > h.dist(PINKY_MCP, WRIST) * self.smart_extended_ratio
            and h.dist(MIDDLE_TIP, WRIST) < h.dist(MIDDLE_MCP, WRIST) * self.smart_folded_ratio
            and h.dist(RING_TIP, WRIST) < h.dist(RING_MCP, WRIST) * self.smart_folded_ratio
        )

    def _thumb_spread(self, h: HandGeometry) -> bool:
        return h.fingers_folded and h.dist(THUMB_TIP, INDEX_MCP) > h.palm * self.thumb_spread

    def _is_thumb_up(self, h: HandGeometry) -> bool:
        # image y grows downwards
        return self._thumb_spread(h) and h.y(THUMB_TIP) < h.y(WRIST) - h.palm * self.thumb_vertical_offset

    def _is_thumb_down(self, h: HandGeometry) -> bool:
        return self._thumb_spread(h) and h.y(THUMB_TIP) > h.y(WRIST) + h.palm * self.thumb_vertical_offset

    def _is_pinch(self, h: HandGeometry) -> bool:
        if h.fingers_folded or h.dist(THUMB_TIP, INDEX_TIP) >= h.palm * self.pinch_touch:
            return False
        # Rest of the hand is measured against the middle MCP for all three tips
        limit = h.dist(MIDDLE_MCP, WRIST) * self.pinch_folded_ratio
        return all(h.dist(tip, WRIST) < limit for tip in (MIDDLE_TIP, RING_TIP, PINKY_TIP))

    def _is_open_palm(self, h: HandGeometry) -> bool:
        if h.fingers_folded:
            return False
        tips = (THUMB_TIP, INDEX_TIP, MIDDLE_TIP, RING_TIP, PINKY_TIP)
        return (
            all(h.dist(tip, WRIST) > h.palm * self.open_extended for tip in tips)
            and h.dist(INDEX_TIP, PINKY_TIP) > h.palm * self.open_spread
        )


class GestureDebouncer:
    """
    Majority vote over recent per-frame proposals plus a cooldown.

    A gesture commits when it fills `commit_ratio` of the buffer. After a
    commit the buffer is emptied and nothing commits for `cooldown_frames`.
    """

    def __init__(
        self,
        buffer_size: int = 10,
        cooldown_frames: int = 20,
        commit_ratio: float = 0.7,
        potential_ratio: float = 0.4,
    ):
        self.buffer_size = int(buffer_size)
        self.cooldown_frames = int(cooldown_frames)
        self.required = int(np.floor(self.buffer_size * commit_ratio))
        self.potential_required = int(np.floor(self.buffer_size * potential_ratio))
        self.buffer = deque(maxlen=self.buffer_size)
        self.cooldown = 0

    @classmethod
    def from_config(cls, cfg) -> "GestureDebouncer":
        return cls(
            buffer_size=cfg.get('gestures', 'buffer_size', default=10),
            cooldown_frames=cfg.get('gestures', 'cooldown_frames', default=20),
            commit_ratio=cfg.get('gestures', 'commit_ratio', default=0.7),
            potential_ratio=cfg.get('gestures', 'potential_ratio', default=0.4),
        )

    def update(self, label: Optional[GestureLabel]) -> Optional[GestureLabel]:
        """Record this frame's proposal and return a committed gesture, if any."""
        self.buffer.append(label)

        if self.cooldown > 0:
            self.cooldown -= 1
            return None

        counts = self.counts()
        for gesture in VALID_GESTURES:
            if counts[gesture] >= self.required:
                self.cooldown = self.cooldown_frames
                self.buffer.clear()
                return gesture
        return None

    def counts(self) -> Dict[GestureLabel, int]:
        counts = {g: 0 for g in VALID_GESTURES}
        for label in self.buffer:
            if label in counts:
                counts[label] += 1
        return counts

    def is_potential_gesture(self) -> bool:
        """True when enough recent frames look like some gesture to hold off spelling."""
        valid = sum(1 for label in self.buffer if label is not None)
        return valid >= self.potential_required

    def reset(self) -> None:
        self.buffer.clear()
        self.cooldown = 0


class GestureRecognizer:
    """Classifier + debouncer for one hand stream."""

    def __init__(self, classifier: Optional[GestureClassifier] = None,
                 debouncer: Optional[GestureDebouncer] = None):
        self.classifier = classifier or GestureClassifier()
        self.debouncer = debouncer or GestureDebouncer()
        self.last_proposal: Optional[GestureLabel] = None

    @classmethod
    def from_config(cls, cfg) -> "GestureRecognizer":
        return cls(GestureClassifier.from_config(cfg), GestureDebouncer.from_config(cfg))

    def update_and_check(self, landmarks: Iterable) -> Optional[GestureLabel]:
        self.last_proposal = self.classifier.classify(landmarks)
        return self.debouncer.update(self.last_proposal)

    def is_potential_gesture(self) -> bool:
        return self.debouncer.is_potential_gesture()


__all__ = [
    "GestureLabel",
    "VALID_GESTURES",
    "HandGeometry",
    "compute_hand_geometry",
    "GestureRule",
    "GestureClassifier",
    "GestureDebouncer",
    "GestureRecognizer",
]
