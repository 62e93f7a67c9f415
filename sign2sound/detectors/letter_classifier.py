"""
Letter classifier contract.

The pose model itself is external. This module wraps whatever callable
produces class scores for an 84-value feature vector, checks at startup that
its input and output shapes agree with the configured labels, and turns the
score vector into a `ClassificationResult`.
"""

import numpy as np
from dataclasses import dataclass
from typing import Callable, Optional, Sequence

from sign2sound.detectors.featurizer import FEATURE_DIM
from sign2sound.utils.math_utils import argmax


class ClassifierShapeError(ValueError):
    """Classifier input dimension or class count disagrees with the configuration."""


@dataclass(frozen=True)
class ClassificationResult:
    """Top class of one classifier call."""
    index: int
    label: str
    confidence: float


class LetterClassifier:
    """Validated adapter around an external `features -> scores` function."""

    def __init__(
        self,
        predict_fn: Callable[[np.ndarray], Sequence[float]],
        labels: Sequence[str],
        input_dim: Optional[int] = None,
    ):
        """
        Args:
            predict_fn: maps a (84,) float vector to one score per label
            labels: label per output index
            input_dim: input size the model declares, when known

        Raises:
            ClassifierShapeError: on any dimension mismatch
        """
        self.predict_fn = predict_fn
        self.labels = list(labels)
        if not self.labels:
            raise ClassifierShapeError("Label list is empty")

        if input_dim is not None and int(input_dim) != FEATURE_DIM:
            raise ClassifierShapeError(f"Expected model input {FEATURE_DIM}, got {input_dim}")

        # Probe once so a wrong output size fails at startup, not mid-stream
        probe = self._scores(np.zeros(FEATURE_DIM, dtype=float))
        print(f"✓ Letter classifier ready: {FEATURE_DIM} features -> {probe.shape[0]} classes")

    def _scores(self, features: np.ndarray) -> np.ndarray:
        scores = np.asarray(self.predict_fn(features), dtype=float).reshape(-1)
        if scores.shape[0] != len(self.labels):
            raise ClassifierShapeError(
                f"Label count {len(self.labels)} does not match model classes {scores.shape[0]}"
            )
        return scores

    def classify(self, features: np.ndarray) -> ClassificationResult:
        features = np.asarray(features, dtype=float).reshape(-1)
        if features.shape[0] != FEATURE_DIM:
            raise ClassifierShapeError(f"Expected {FEATURE_DIM} features, got {features.shape[0]}")
        scores = self._scores(features)
        idx = argmax(scores)
        return ClassificationResult(index=idx, label=self.labels[idx], confidence=float(scores[idx]))

    __call__ = classify


class DenseNetwork:
    """
    Feed-forward network exported as plain weight arrays.

    The .npz holds W0, b0, W1, b1, ... ; hidden layers use ReLU and the last
    layer a softmax, matching the Keras letter model the weights come from.
    """

    def __init__(self, weights, biases):
        if len(weights) != len(biases) or not weights:
            raise ClassifierShapeError("Need one bias per weight matrix")
        self.weights = [np.asarray(w, dtype=float) for w in weights]
        self.biases = [np.asarray(b, dtype=float) for b in biases]
        for i in range(1, len(self.weights)):
            if self.weights[i].shape[0] != self.weights[i - 1].shape[1]:
                raise ClassifierShapeError(f"Layer {i} input does not match layer {i - 1} output")

    @classmethod
    def load(cls, path: str) -> "DenseNetwork":
        with np.load(path) as data:
            n_layers = len([k for k in data.files if k.startswith('W')])
            weights = [data[f'W{i}'] for i in range(n_layers)]
            biases = [data[f'b{i}'] for i in range(n_layers)]
        print(f"✓ Loaded {n_layers}-layer network from {path}")
        return cls(weights, biases)

    @property
    def input_dim(self) -> int:
        return int(self.weights[0].shape[0])

    @property
    def output_dim(self) -> int:
        return int(self.weights[-1].shape[1])

    def __call__(self, features: np.ndarray) -> np.ndarray:
        x = np.asarray(features, dtype=float).reshape(-1)
        for w, b in zip(self.weights[:-1], self.biases[:-1]):
            x = np.maximum(x @ w + b, 0.0)
        logits = x @ self.weights[-1] + self.biases[-1]
        logits = logits - logits.max()
        exp = np.exp(logits)
        return exp / exp.sum()


def load_letter_classifier(weights_path: str, labels: Sequence[str]) -> LetterClassifier:
    """Build the validated classifier from an exported weights file."""
    network = DenseNetwork.load(weights_path)
    return LetterClassifier(network, labels, input_dim=network.input_dim)


__all__ = [
    "ClassifierShapeError",
    "ClassificationResult",
    "LetterClassifier",
    "DenseNetwork",
    "load_letter_classifier",
]
