from __future__ import annotations
from pathlib import Path
from typing import List, Sequence, Union, Tuple
import logging

import numpy as np
from PIL import Image as PILImage

from ..models.errors import InsufficientFramesError, DimensionMismatchError
from ..models.image import Image
from ..repositories.image_repository import ImageRepository

logger = logging.getLogger(__name__)

ImageSource = Union[bytes, str, Path, np.ndarray, PILImage.Image, Image]


class FrameService:
    """
    Turns a heterogeneous list of image sources into equally sized RGB frames in [0, 1].
    Decoding is delegated to ImageRepository; inputs are never mutated.
    """

    def __init__(self, image_repository: ImageRepository | None = None):
        self.image_repository = image_repository or ImageRepository()

    def ingest(self, sources: Sequence[ImageSource], stack_size: int) -> List[Image]:
        """
        Args:
            sources: bytes, file paths, pixel arrays, PIL images or Image objects.
            stack_size: minimum number of frames required.

        Returns:
            List[Image]: one RGB float32 frame per source, in input order.

        Raises:
            InsufficientFramesError: fewer than stack_size sources.
            DimensionMismatchError: a frame's width or height differs from the first frame's.
        """
        sources = list(sources)
        if not sources or len(sources) < stack_size:
            raise InsufficientFramesError(len(sources), max(stack_size, 1))

        frames: List[Image] = []
        expected: Tuple[int, int] | None = None
        for index, source in enumerate(sources):
            raw, path = self._decode(source)
            height, width = raw.shape[:2]
            if expected is None:
                expected = (height, width)
            elif width != expected[1]:
                raise DimensionMismatchError(
                    f"Image {index} has width {width}, expected {expected[1]}"
                )
            elif height != expected[0]:
                raise DimensionMismatchError(
                    f"Image {index} has height {height}, expected {expected[0]}"
                )
            frames.append(Image(pixels=self.normalize(raw), path=path))

        logger.info(f"Ingested {len(frames)} frames of {expected[1]}x{expected[0]}")
        return frames

    def _decode(self, source: ImageSource) -> Tuple[np.ndarray, Path | None]:
        if isinstance(source, Image):
            return source.pixels, source.path
        if isinstance(source, PILImage.Image):
            if source.mode not in ("L", "RGB", "RGBA"):
                source = source.convert("RGBA")
            return np.asarray(source), None
        if isinstance(source, np.ndarray):
            return source, None
        if isinstance(source, (str, Path)):
            return self.image_repository.load(source), Path(source)
        if isinstance(source, (bytes, bytearray, memoryview)):
            return self.image_repository.decode_bytes(bytes(source)), None
        raise TypeError(f"Unsupported image source type: {type(source).__name__}")

    @staticmethod
    def normalize(raw: np.ndarray) -> np.ndarray:
        """
        16-bit pixels are divided by 65535, other integer pixels by 255; floating
        pixels are taken as already normalized. The result is clipped to [0, 1].
        Gray is expanded to RGB, RGBA is flattened onto black.
        """
        arr = np.asarray(raw)
        if arr.ndim not in (2, 3):
            raise DimensionMismatchError(f"Expected a (H, W) or (H, W, C) image, got shape {arr.shape}")

        if np.issubdtype(arr.dtype, np.floating):
            pixels = np.clip(arr, 0.0, 1.0).astype(np.float32)
        else:
            scale = 65535.0 if arr.dtype == np.uint16 else 255.0
            pixels = np.clip(arr.astype(np.float32) / scale, 0.0, 1.0)

        if pixels.ndim == 2:
            pixels = pixels[:, :, None]
        channels = pixels.shape[2]
        if channels == 1:
            return np.repeat(pixels, 3, axis=2)
        if channels == 3:
            return np.ascontiguousarray(pixels)
        if channels == 4:
            return np.ascontiguousarray(pixels[:, :, :3] * pixels[:, :, 3:4])
        raise DimensionMismatchError(f"Unsupported channel count {channels}")
