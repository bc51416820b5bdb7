from __future__ import annotations
from typing import List, Sequence
import logging

import cv2
import numpy as np

from ..models.errors import DimensionMismatchError
from ..models.image import Image

logger = logging.getLogger(__name__)


class RemovalService:
    """
    Removes an extracted watermark from frames by reversing alpha blending.

    The watermark blending formula is:
        observed = (1 - alpha) * background + alpha * color

    To recover the background:
        background = (observed - alpha * color) / (1 - alpha)

    Where alpha is close to 1 the background is gone; those pixels are inpainted.
    """

    def __init__(self, max_alpha: float = 0.9, inpaint_alpha: float = 0.95, inpaint_radius: int = 3):
        self.max_alpha = max_alpha            # denominator floor is 1 - max_alpha
        self.inpaint_alpha = inpaint_alpha    # alpha at or above this is inpainted
        self.inpaint_radius = inpaint_radius

    def remove(self, image: Image, watermark: np.ndarray) -> Image:
        """
        Args:
            image: a frame carrying the watermark.
            watermark: (H, W, 4) RGBA watermark in [0, 1].

        Returns:
            Image: new frame with the watermark removed, same path as *image*.
        """
        watermark = np.asarray(watermark, dtype=np.float32)
        if watermark.ndim != 3 or watermark.shape[2] != 4:
            raise DimensionMismatchError(f"Watermark must be (H, W, 4), got {watermark.shape}")
        if watermark.shape[:2] != image.pixels.shape[:2]:
            raise DimensionMismatchError(
                f"Watermark size {watermark.shape[:2]} does not match image {image.pixels.shape[:2]}"
            )

        observed = image.pixels[:, :, :3].astype(np.float32)
        color = watermark[:, :, :3]
        alpha = watermark[:, :, 3:4]

        denom = np.maximum(1.0 - alpha, 1.0 - self.max_alpha)
        restored = np.clip((observed - alpha * color) / denom, 0.0, 1.0)

        opaque = alpha[:, :, 0] >= self.inpaint_alpha
        if opaque.any():
            restored_u8 = np.round(restored * 255).astype(np.uint8)
            mask = opaque.astype(np.uint8) * 255
            restored_u8 = cv2.inpaint(restored_u8, mask, self.inpaint_radius, cv2.INPAINT_TELEA)
            restored = restored_u8.astype(np.float32) / 255.0

        return Image(pixels=restored.astype(np.float32), path=image.path)

    def remove_all(self, images: Sequence[Image], watermark: np.ndarray) -> List[Image]:
        cleaned = [self.remove(img, watermark) for img in images]
        logger.info(f"Removed watermark from {len(cleaned)} frames")
        return cleaned
