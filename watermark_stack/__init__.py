"""
Multi-frame watermark extraction.

Frames that share one fixed watermark are stacked per pixel so a small
trained model can tell the watermark apart from the changing background.
"""

from .models.errors import (
    WatermarkStackError,
    InsufficientFramesError,
    DimensionMismatchError,
    InvalidPositionTypeError,
    ModelNotLoadedError,
    ModelLoadError,
    ImageDecodeError,
)
from .models.pipeline_config import PipelineConfig
from .models.watermark_mode import WatermarkMode, ModelTask, SelectionPolicy

__all__ = [
    "WatermarkStackError",
    "InsufficientFramesError",
    "DimensionMismatchError",
    "InvalidPositionTypeError",
    "ModelNotLoadedError",
    "ModelLoadError",
    "ImageDecodeError",
    "PipelineConfig",
    "WatermarkMode",
    "ModelTask",
    "SelectionPolicy",
]
