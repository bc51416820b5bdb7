from __future__ import annotations
from typing import Sequence

import numpy as np

from ..models.errors import DimensionMismatchError
from ..models.frame_stack import FrameStack
from ..models.image import Image


class StackService:
    """
    Stacks selected frames and exposes the per-pixel feature layout.
    A pixel's feature vector is channel-major: every frame's R, then every G, then every B.
    """

    @staticmethod
    def build(selected: Sequence[Image]) -> FrameStack:
        if not selected:
            raise DimensionMismatchError("Cannot build a stack from zero frames")
        return FrameStack(np.stack([img.pixels for img in selected], axis=3).astype(np.float32, copy=False))

    @staticmethod
    def pixel_features(stack: FrameStack) -> np.ndarray:
        """(H * W, C * S) features for every pixel, row-major over the image."""
        return stack.data.reshape(-1, stack.feature_width)

    @staticmethod
    def gather_features(stack: FrameStack, coordinates: np.ndarray) -> np.ndarray:
        """(n, C * S) features at the given (row, col) coordinates only."""
        rows, cols = coordinates[:, 0], coordinates[:, 1]
        return stack.data[rows, cols].reshape(len(coordinates), stack.feature_width)
