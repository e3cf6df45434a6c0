from __future__ import annotations
from collections import deque
from typing import Deque, List

import numpy as np

ANGLE_HISTORY_SIZE = 5


class AngleSmoother:
    """
    Moving average over the last `size` raw angles.
    Right after a clear() the buffer is shorter than `size` and the mean is
    taken over what is there.
    """
    def __init__(self, size: int = ANGLE_HISTORY_SIZE):
        if size < 1:
            raise ValueError("smoothing window must be positive")
        self.size = size
        self._history: Deque[float] = deque(maxlen=size)

    def push(self, raw_angle: float) -> float:
        self._history.append(float(raw_angle))
        return float(np.mean(self._history))

    def clear(self):
        self._history.clear()

    def values(self) -> List[float]:
        return list(self._history)

    def __len__(self) -> int:
        return len(self._history)
