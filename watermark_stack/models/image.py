from __future__ import annotations
from dataclasses import dataclass
from pathlib import Path
import numpy as np


@dataclass
class Image:
    """
    Simple data object: normalized pixels (+ optional source path for bookkeeping).
    No codec logic outside the repositories.
    """
    pixels: np.ndarray # Shape (H, W, C), dtype float32, values in [0, 1].
    path: Path | None = None # Source of the image.

    @property
    def height(self) -> int:
        return self.pixels.shape[0]

    @property
    def width(self) -> int:
        return self.pixels.shape[1]

    @property
    def channels(self) -> int:
        return self.pixels.shape[2]
