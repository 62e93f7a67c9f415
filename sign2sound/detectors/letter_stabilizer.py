"""
Letter stabilization.

Per-frame classifier output flickers. The stabilizer turns it into at most one
committed letter per held pose:

1. average the last 3 feature vectors before classification
2. drop predictions under the per-letter confidence threshold
3. majority vote over the last 5 accepted predictions
4. count frames the voted letter stays the same and commit once the hold
   threshold is reached (fast when confident, slow when repeating a letter)
"""

import numpy as np
from collections import deque
from dataclasses import dataclass
from typing import Dict, Optional, Iterable

from sign2sound.detectors.featurizer import featurize_pose
from sign2sound.detectors.letter_classifier import ClassificationResult, LetterClassifier
from sign2sound.utils.math_utils import MovingAverage, majority_vote


NO_LETTER = "_"


@dataclass
class LetterUpdate:
    """What one frame did to the stabilizer, for display and commit handling."""
    letter: str = NO_LETTER
    confidence: float = 0.0
    progress: float = 0.0
    committed: Optional[str] = None


class LetterStabilizer:
    """
    Owns the feature-average buffer, the raw prediction buffer and the hold
    counter. Never shared; the spelling session holds the only instance.
    """

    def __init__(
        self,
        classifier: Optional[LetterClassifier] = None,
        confidence_thresholds: Optional[Dict[str, float]] = None,
        feature_buffer_size: int = 3,
        raw_buffer_size: int = 5,
        min_votes: int = 3,
        hold_frames: int = 15,
        fast_hold_frames: int = 8,
        fast_confidence: float = 0.85,
        repeat_hold_frames: int = 45,
    ):
        self.classifier = classifier
        thresholds = dict(confidence_thresholds or {"default": 0.6})
        self.default_threshold = float(thresholds.pop("default", 0.6))
        self.confidence_thresholds = {k: float(v) for k, v in thresholds.items()}

        self.min_votes = int(min_votes)
        self.hold_frames = int(hold_frames)
        self.fast_hold_frames = int(fast_hold_frames)
        self.fast_confidence = float(fast_confidence)
        self.repeat_hold_frames = int(repeat_hold_frames)

        self.feature_buffer = MovingAverage(n=feature_buffer_size)
        self.raw_buffer = deque(maxlen=int(raw_buffer_size))
        self.stable_label: Optional[str] = None
        self.hold_count = 0
        self._index_labels: Dict[int, str] = {}

    @classmethod
    def from_config(cls, cfg, classifier: Optional[LetterClassifier] = None) -> "LetterStabilizer":
        thresholds = {}
        for key in (cfg.get('confidence_thresholds', default={}) or {}):
            thresholds[key] = cfg.get('confidence_thresholds', key)
        return cls(
            classifier=classifier,
            confidence_thresholds=thresholds,
            feature_buffer_size=cfg.get('stabilization', 'feature_buffer_size', default=3),
            raw_buffer_size=cfg.get('stabilization', 'raw_buffer_size', default=5),
            min_votes=cfg.get('stabilization', 'min_votes', default=3),
            hold_frames=cfg.get('stabilization', 'hold_frames', default=15),
            fast_hold_frames=cfg.get('stabilization', 'fast_hold_frames', default=8),
            fast_confidence=cfg.get('stabilization', 'fast_confidence', default=0.85),
            repeat_hold_frames=cfg.get('stabilization', 'repeat_hold_frames', default=45),
        )

    def threshold_for(self, label: str) -> float:
        return self.confidence_thresholds.get(label, self.default_threshold)

    def reset(self) -> None:
        """Hard reset after tracking loss or a committed gesture."""
        self.feature_buffer.clear()
        self.raw_buffer.clear()
        self.stable_label = None
        self.hold_count = 0

    def smooth(self, features: np.ndarray) -> np.ndarray:
        """Push one feature vector and return the mean of the buffer."""
        return self.feature_buffer.update(features)

    def process(self, landmarks: Iterable, last_letter: Optional[str] = None) -> LetterUpdate:
        """Featurize, smooth, classify and stabilize one frame."""
        if self.classifier is None:
            raise RuntimeError("LetterStabilizer.process needs a classifier")
        smoothed = self.smooth(featurize_pose(landmarks))
        return self.update(self.classifier.classify(smoothed), last_letter)

    def update(self, result: ClassificationResult, last_letter: Optional[str] = None) -> LetterUpdate:
        """
        Feed one classification result.

        Args:
            result: top class of the smoothed frame
            last_letter: last letter of the word in progress, if any

        Returns:
            LetterUpdate; `committed` is set on the frame the hold completes.
        """
        if result.confidence < self.threshold_for(result.label):
            return LetterUpdate()

        self.raw_buffer.append(result.index)
        self._index_labels[result.index] = result.label
        if len(self.raw_buffer) < self.min_votes:
            return LetterUpdate(letter=result.label, confidence=result.confidence)

        stable = self._index_labels[majority_vote(list(self.raw_buffer))]

        if stable == self.stable_label:
            self.hold_count += 1
        else:
            self.stable_label = stable
            self.hold_count = 1

        threshold = self.fast_hold_frames if result.confidence > self.fast_confidence else self.hold_frames
        if last_letter is not None and stable == last_letter:
            threshold = self.repeat_hold_frames

        if self.hold_count >= threshold:
            progress = self.hold_count / threshold
            self.hold_count = 0
            return LetterUpdate(letter=stable, confidence=result.confidence,
                                progress=progress, committed=stable)

        return LetterUpdate(letter=stable, confidence=result.confidence,
                            progress=self.hold_count / threshold)

