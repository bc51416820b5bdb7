from __future__ import annotations
import logging

import numpy as np

from ..models.errors import DimensionMismatchError
from ..models.frame_stack import FrameStack
from ..models.watermark_mode import ModelTask, WatermarkMode
from .model_service import ModelService
from .stack_service import StackService

logger = logging.getLogger(__name__)


class LocalizationService:
    """
    Runs the presence model over every pixel's channel stack.
    *   One batched predict call per stack.
    *   Returns a (H, W) bool map, or the raw float scores when as_bool=False.
    """

    def __init__(self, model_service: ModelService, stack_service: StackService | None = None):
        self.model_service = model_service
        self.stack_service = stack_service or StackService()

    def score(self, stack: FrameStack, mode: WatermarkMode | str) -> np.ndarray:
        predictor = self.model_service.get_predictor(ModelTask.LOCALIZE, mode)
        if predictor.input_width != stack.feature_width:
            raise DimensionMismatchError(
                f"Localization model expects {predictor.input_width} features per pixel, "
                f"stack provides {stack.feature_width}"
            )

        features = self.stack_service.pixel_features(stack)
        scores = np.asarray(predictor.predict(features), dtype=np.float32)
        if scores.shape != (features.shape[0], 1):
            raise ValueError(f"Localization model returned shape {scores.shape}, expected ({features.shape[0]}, 1)")
        return scores.reshape(stack.height, stack.width)

    def locate(self, stack: FrameStack, mode: WatermarkMode | str, as_bool: bool = True) -> np.ndarray:
        scores = self.score(stack, mode)
        if not as_bool:
            return scores

        # round half up, then anything non-zero counts as present
        positions = np.floor(scores + 0.5) != 0
        logger.info(f"Watermark found at {int(positions.sum())}/{positions.size} pixels")
        return positions
