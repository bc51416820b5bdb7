"""
Watermark Stack Pipeline
Public entry points: ingest → select → stack → locate → extract (→ remove).
Every call takes its configuration and model cache explicitly.
"""

from __future__ import annotations
import logging
from typing import List, Sequence

import numpy as np

from ..models.frame_stack import FrameStack
from ..models.image import Image
from ..models.pipeline_config import PipelineConfig
from ..models.pipeline_result import PipelineResult
from ..repositories.image_repository import ImageRepository
from ..services.extraction_service import ExtractionService
from ..services.frame_service import FrameService, ImageSource
from ..services.localization_service import LocalizationService
from ..services.model_service import ModelService
from ..services.removal_service import RemovalService
from ..services.stack_selection_service import StackSelectionService
from ..services.stack_service import StackService

logger = logging.getLogger(__name__)


def build_stack(
    images: Sequence[ImageSource],
    config: PipelineConfig,
    *,
    frame_service: FrameService | None = None,
    selection_service: StackSelectionService | None = None,
    stack_service: StackService = StackService(),
) -> FrameStack:
    """
    Ingest *images*, select config.stack_size of them and stack them.

    Raises:
        InsufficientFramesError: fewer than config.stack_size images.
        DimensionMismatchError: images of different width or height.
    """
    frames = (frame_service or FrameService()).ingest(images, config.stack_size)
    return _stack_frames(frames, config, selection_service, stack_service)


def _stack_frames(
    frames: List[Image],
    config: PipelineConfig,
    selection_service: StackSelectionService | None,
    stack_service: StackService,
) -> FrameStack:
    selection_service = selection_service or StackSelectionService.from_config(config)
    selected = selection_service.select(frames, config.stack_size)
    return stack_service.build(selected)


def locate_watermark(
    stack: FrameStack,
    config: PipelineConfig,
    model_service: ModelService,
    *,
    as_bool: bool = True,
) -> np.ndarray:
    """(H, W) presence map for config.mode; bool unless as_bool=False."""
    return LocalizationService(model_service).locate(stack, config.mode, as_bool=as_bool)


def extract_watermark(
    stack: FrameStack,
    position_map: np.ndarray,
    config: PipelineConfig,
    model_service: ModelService,
) -> np.ndarray:
    """
    (H, W, 4) RGBA watermark at the marked pixels, transparent elsewhere.

    Raises:
        InvalidPositionTypeError: position_map is not boolean.
    """
    return ExtractionService(model_service).extract(stack, position_map, config.mode)


def to_image_bytes(array: np.ndarray, *, image_repository: ImageRepository = ImageRepository()) -> bytes:
    """PNG bytes for a position map, watermark or frame array."""
    return image_repository.encode(array)


def remove_watermark(
    images: Sequence[Image],
    watermark: np.ndarray,
    *,
    removal_service: RemovalService = RemovalService(),
) -> List[Image]:
    return removal_service.remove_all(images, watermark)


def run_pipeline(
    sources: Sequence[ImageSource],
    config: PipelineConfig,
    model_service: ModelService,
    *,
    remove: bool = False,
    frame_service: FrameService | None = None,
    selection_service: StackSelectionService | None = None,
    stack_service: StackService = StackService(),
    removal_service: RemovalService = RemovalService(),
) -> PipelineResult:
    """
    Full run over *sources*. The removal step works on every ingested frame,
    not only the ones that were stacked.
    """
    logger.info(f"Step 1: ingesting {len(sources)} images")
    frames = (frame_service or FrameService()).ingest(sources, config.stack_size)

    logger.info(f"Step 2: selecting {config.stack_size} frames ({config.selection_policy.value})")
    stack = _stack_frames(frames, config, selection_service, stack_service)

    logger.info(f"Step 3: locating {config.mode.value} watermark")
    positions = locate_watermark(stack, config, model_service)

    logger.info("Step 4: extracting watermark")
    watermark = extract_watermark(stack, positions, config, model_service)

    result = PipelineResult(frames=frames, stack=stack, positions=positions, watermark=watermark)
    if remove:
        logger.info("Step 5: removing watermark")
        result.cleaned = remove_watermark(frames, watermark, removal_service=removal_service)
    return result
