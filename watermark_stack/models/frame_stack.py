from __future__ import annotations
from dataclasses import dataclass
import numpy as np


@dataclass(frozen=True)
class FrameStack:
    """
    Selected frames stacked along a trailing frame axis.

    data : np.ndarray  (H, W, C, S)  float32  [0, 1]
    """
    data: np.ndarray

    @property
    def height(self) -> int:
        return self.data.shape[0]

    @property
    def width(self) -> int:
        return self.data.shape[1]

    @property
    def channels(self) -> int:
        return self.data.shape[2]

    @property
    def frame_count(self) -> int:
        return self.data.shape[3]

    @property
    def feature_width(self) -> int:
        """Length of one pixel's feature vector (channels * frames)."""
        return self.channels * self.frame_count
