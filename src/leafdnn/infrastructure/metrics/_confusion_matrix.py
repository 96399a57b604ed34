"""
Classification bookkeeping.

`ConfusionMatrix` records ``(prediction, target)`` pairs, optionally in a
bounded window that drops the oldest record first, and reports accuracy over
the records it holds.
"""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass
from typing import Deque, List, Optional, Sequence

import numpy as np

from ..tensor._tensor import SharedTensor


@dataclass(frozen=True)
class Sample:
    """One recorded classification."""

    prediction: int
    target: int

    def correct(self) -> bool:
        return self.prediction == self.target

    def __str__(self) -> str:
        return f"Prediction: {self.prediction:2}, Target: {self.target:2}"


@dataclass(frozen=True)
class Accuracy:
    """
    Correct / total counts of a set of samples.

    `str` renders as ``"<correct>/<total> = <percent>%"``.
    """

    num_correct: int
    num_samples: int

    def ratio(self) -> float:
        if self.num_samples == 0:
            return 0.0
        return self.num_correct / self.num_samples

    def __str__(self) -> str:
        return f"{self.num_correct}/{self.num_samples} = {self.ratio() * 100.0:.2f}%"


class ConfusionMatrix:
    """
    Windowed record of classification results.

    Parameters
    ----------
    num_classes : int
        Number of classes; also the width of one network output row.
    capacity : int, optional
        Maximum number of records kept. None keeps everything.
    """

    def __init__(self, num_classes: int, capacity: Optional[int] = None) -> None:
        if int(num_classes) <= 0:
            raise ValueError(f"num_classes must be > 0, got {num_classes}")
        self.num_classes = int(num_classes)
        self._capacity: Optional[int] = None
        self._samples: Deque[Sample] = deque()
        self.set_capacity(capacity)

    @property
    def capacity(self) -> Optional[int]:
        return self._capacity

    def set_capacity(self, capacity: Optional[int]) -> None:
        """
        Bound the number of kept records, evicting the oldest ones if needed.

        Raises
        ------
        ValueError
            If `capacity` is not positive.
        """
        if capacity is not None and int(capacity) <= 0:
            raise ValueError(f"capacity must be > 0, got {capacity}")
        self._capacity = None if capacity is None else int(capacity)
        self._samples = deque(self._samples, maxlen=self._capacity)

    def add_sample(self, prediction: int, target: int) -> None:
        self._samples.append(Sample(int(prediction), int(target)))

    def add_samples(self, predictions: Sequence[int], targets: Sequence[int]) -> None:
        """
        Record predictions and targets pairwise.

        Raises
        ------
        ValueError
            If the two sequences differ in length.
        """
        if len(predictions) != len(targets):
            raise ValueError(
                f"got {len(predictions)} predictions but {len(targets)} targets"
            )
        for prediction, target in zip(predictions, targets):
            self.add_sample(prediction, target)

    def get_predictions(self, network_out: SharedTensor) -> List[int]:
        """
        Arg-max class of every sample of a network output.

        The output is read row-major, `num_classes` values per sample; ties
        resolve to the lowest index.
        """
        values = network_out.to_numpy().reshape(-1)
        if values.size % self.num_classes != 0:
            raise ValueError(
                f"network output of {values.size} values is not a multiple of "
                f"{self.num_classes} classes"
            )
        rows = values.reshape(-1, self.num_classes)
        return [int(i) for i in np.argmax(rows, axis=1)]

    def samples(self) -> List[Sample]:
        """Recorded samples, oldest first."""
        return list(self._samples)

    def accuracy(self) -> Accuracy:
        correct = sum(1 for s in self._samples if s.correct())
        return Accuracy(num_correct=correct, num_samples=len(self._samples))

    def reset(self) -> None:
        self._samples.clear()

    def __len__(self) -> int:
        return len(self._samples)
