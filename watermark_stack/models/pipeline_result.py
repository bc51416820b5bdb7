from __future__ import annotations
from dataclasses import dataclass, field
from typing import List
import numpy as np

from .frame_stack import FrameStack
from .image import Image


@dataclass
class PipelineResult:
    """
    Everything one pipeline run produced.
    """
    frames: List[Image]        # all ingested frames, input order
    stack: FrameStack
    positions: np.ndarray      # (H, W) bool
    watermark: np.ndarray      # (H, W, 4) float32 RGBA
    cleaned: List[Image] = field(default_factory=list)  # empty unless removal was requested

    @property
    def watermark_pixels(self) -> int:
        return int(self.positions.sum())
