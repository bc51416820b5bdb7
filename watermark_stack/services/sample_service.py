from __future__ import annotations
from typing import List, Sequence, Tuple

import numpy as np

from ..models.image import Image
from ..models.pipeline_config import PipelineConfig
from ..models.watermark_mode import WatermarkMode


class SampleService:
    """
    Synthetic per-pixel samples for training the stack models elsewhere.

    A sample is one pixel position seen across stack_size backgrounds, with
    or without a constant watermark pixel alpha-blended on top.
    """

    def __init__(self, stack_size: int, min_transparency: float, seed: int | None = None):
        if stack_size < 1:
            raise ValueError("stack_size must be at least 1")
        if not 0.0 <= min_transparency <= 1.0:
            raise ValueError("min_transparency must be within [0, 1]")
        self.stack_size = int(stack_size)
        self.min_transparency = min_transparency
        self.rng = np.random.default_rng(seed)

    @classmethod
    def from_config(cls, config: PipelineConfig) -> "SampleService":
        return cls(config.stack_size, config.min_transparency, seed=config.seed)

    # ── Random values (skewed towards dark / transparent ends) ───────
    def random_color_value(self, size=None) -> np.ndarray:
        u = self.rng.random(size) * self.rng.random(size)
        return np.round(255 * np.sqrt(u)) / 255

    def random_alpha(self) -> float:
        u = self.rng.random() * self.rng.random()
        alpha = self.min_transparency + (1 - self.min_transparency) * np.sqrt(u)
        return float(np.round(255 * alpha) / 255)

    # ── Pixels ───────────────────────────────────────────────────────
    def color_pixel_stack(self) -> np.ndarray:
        """(3, stack_size) random background colors."""
        return self.random_color_value((3, self.stack_size)).astype(np.float32)

    def watermark_pixel(self, mode: WatermarkMode | str) -> np.ndarray:
        mode = WatermarkMode(mode)
        if mode is WatermarkMode.WHITE:
            return np.ones(3, dtype=np.float32)
        if mode is WatermarkMode.BLACK:
            return np.zeros(3, dtype=np.float32)
        return self.random_color_value(3).astype(np.float32)

    def mix(self, original: np.ndarray, watermark: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
        """
        Blend one watermark pixel into every column of *original* with a random alpha.

        Returns:
            (mixed (3, stack_size), watermark_rgba (4,))
        """
        alpha = self.random_alpha()
        mixed = original * (1 - alpha) + watermark.reshape(3, 1) * alpha
        return mixed.astype(np.float32), np.append(watermark, alpha).astype(np.float32)

    # ── Batches ──────────────────────────────────────────────────────
    def localization_batch(
        self, count: int, mode: WatermarkMode | str, no_watermark_fraction: float = 0.5
    ) -> Tuple[np.ndarray, np.ndarray]:
        """Features (count, 3 * stack_size) and presence targets (count, 1), shuffled."""
        if not 0.0 <= no_watermark_fraction <= 1.0:
            raise ValueError("no_watermark_fraction must be within [0, 1]")
        clean = int(round(count * no_watermark_fraction))
        features, targets = [], []
        for _ in range(count - clean):
            mixed, _ = self.mix(self.color_pixel_stack(), self.watermark_pixel(mode))
            features.append(mixed.reshape(-1))
            targets.append([1.0])
        for _ in range(clean):
            features.append(self.color_pixel_stack().reshape(-1))
            targets.append([0.0])

        order = self.rng.permutation(count)
        features = np.asarray(features, dtype=np.float32).reshape(count, 3 * self.stack_size)
        targets = np.asarray(targets, dtype=np.float32).reshape(count, 1)
        return features[order], targets[order]

    def extraction_batch(self, count: int, mode: WatermarkMode | str) -> Tuple[np.ndarray, np.ndarray]:
        """Features (count, 3 * stack_size) and RGBA targets (count, 4)."""
        features = np.empty((count, 3 * self.stack_size), dtype=np.float32)
        targets = np.empty((count, 4), dtype=np.float32)
        for i in range(count):
            mixed, rgba = self.mix(self.color_pixel_stack(), self.watermark_pixel(mode))
            features[i] = mixed.reshape(-1)
            targets[i] = rgba
        return features, targets

    # ── Whole frames ─────────────────────────────────────────────────
    @staticmethod
    def composite(frames: Sequence[Image], watermark: np.ndarray) -> List[Image]:
        """Alpha-composite one (H, W, 4) watermark onto every frame."""
        watermark = np.asarray(watermark, dtype=np.float32)
        alpha = watermark[:, :, 3:4]
        color = watermark[:, :, :3]
        return [
            Image(pixels=(frame.pixels[:, :, :3] * (1 - alpha) + color * alpha).astype(np.float32), path=frame.path)
            for frame in frames
        ]
