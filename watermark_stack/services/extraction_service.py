from __future__ import annotations
import logging

import numpy as np

from ..models.errors import DimensionMismatchError, InvalidPositionTypeError
from ..models.frame_stack import FrameStack
from ..models.watermark_mode import ModelTask, WatermarkMode
from .model_service import ModelService
from .stack_service import StackService

logger = logging.getLogger(__name__)

RGBA = 4


class ExtractionService:
    """
    Sparse gather → predict → scatter.

    Only pixels marked in the position map are fed to the extraction model;
    results land in a zero (fully transparent) (H, W, 4) array.
    """

    def __init__(self, model_service: ModelService, stack_service: StackService | None = None):
        self.model_service = model_service
        self.stack_service = stack_service or StackService()

    def extract(self, stack: FrameStack, positions: np.ndarray, mode: WatermarkMode | str) -> np.ndarray:
        """
        Args:
            stack: the frame stack.
            positions: (H, W) bool presence map.
            mode: watermark category selecting the extraction model.

        Returns:
            np.ndarray: (H, W, 4) float32 RGBA watermark in [0, 1].
        """
        positions = np.asarray(positions)
        if positions.dtype != np.bool_:
            raise InvalidPositionTypeError(positions.dtype)
        if positions.shape != (stack.height, stack.width):
            raise DimensionMismatchError(
                f"Position map shape {positions.shape} does not match stack ({stack.height}, {stack.width})"
            )

        watermark = np.zeros((stack.height, stack.width, RGBA), dtype=np.float32)
        coordinates = np.argwhere(positions)
        if len(coordinates) == 0:
            logger.info("Empty position map, nothing to extract")
            return watermark

        predictor = self.model_service.get_predictor(ModelTask.EXTRACT, mode)
        if predictor.input_width != stack.feature_width:
            raise DimensionMismatchError(
                f"Extraction model expects {predictor.input_width} features per pixel, "
                f"stack provides {stack.feature_width}"
            )

        features = self.stack_service.gather_features(stack, coordinates)
        values = np.asarray(predictor.predict(features), dtype=np.float32)
        if values.shape != (len(coordinates), RGBA):
            raise ValueError(f"Extraction model returned shape {values.shape}, expected ({len(coordinates)}, {RGBA})")

        watermark[coordinates[:, 0], coordinates[:, 1]] = values
        logger.info(f"Extracted watermark at {len(coordinates)} pixels")
        return watermark
