from __future__ import annotations
from io import BytesIO
from pathlib import Path
from typing import Union, Iterable, List, Iterator
import logging
import os

import numpy as np
import cv2
from PIL import Image as PILImage
from dotenv import load_dotenv

from ..models.errors import ImageDecodeError

# Load environment variables
load_dotenv()

logger = logging.getLogger(__name__)

_DEFAULT_EXTS = ".png,.jpg,.jpeg,.bmp,.webp"


class ImageRepository:
    """
    Codec boundary: bytes / files ↔ integer pixel arrays.

    • decode() returns uint8 (H, W, C) in RGB / RGBA order, or (H, W) for grayscale.
    • encode() accepts float [0, 1], integer 0-255 or boolean arrays and returns PNG bytes.
    """
    def __init__(self):
        exts = os.getenv("VALID_IMAGE_EXTENSIONS") or _DEFAULT_EXTS
        self.VALID_EXTS = {e.strip().lower() for e in exts.split(",") if e.strip()}

    # ---------- decode ----------
    @staticmethod
    def _from_cv2(arr: np.ndarray) -> np.ndarray:
        """OpenCV channel order → RGB(A), 16-bit → 8-bit."""
        if arr.dtype == np.uint16:
            arr = np.round(arr / 257.0).astype(np.uint8)
        if arr.ndim == 3 and arr.shape[2] == 4:
            return cv2.cvtColor(arr, cv2.COLOR_BGRA2RGBA)
        if arr.ndim == 3 and arr.shape[2] == 3:
            return cv2.cvtColor(arr, cv2.COLOR_BGR2RGB)
        return arr

    def decode_bytes(self, data: bytes) -> np.ndarray:
        buf = np.frombuffer(data, dtype=np.uint8)
        arr = cv2.imdecode(buf, cv2.IMREAD_UNCHANGED) if buf.size else None
        if arr is None:
            raise ImageDecodeError(f"Could not decode {len(data)} bytes as an image")
        return self._from_cv2(arr)

    def load(self, path: Union[str, Path]) -> np.ndarray:
        path = Path(path)
        if not path.is_file():
            raise FileNotFoundError(f"Image not found: {path}")
        # cv2.imread cannot open non-ASCII paths on every platform; go through bytes
        try:
            return self.decode_bytes(path.read_bytes())
        except ImageDecodeError as err:
            raise ImageDecodeError(f"Image unreadable: {path}") from err

    def decode(self, source: Union[bytes, str, Path]) -> np.ndarray:
        if isinstance(source, (bytes, bytearray, memoryview)):
            return self.decode_bytes(bytes(source))
        return self.load(source)

    # ---------- encode ----------
    @staticmethod
    def to_uint8(arr: np.ndarray) -> np.ndarray:
        """
        bool      → 0 / 255
        float     → round(x * 255), clamped to 0-255
        integer   → clamped to 0-255
        """
        arr = np.asarray(arr)
        if arr.dtype == np.bool_:
            return arr.astype(np.uint8) * 255
        if np.issubdtype(arr.dtype, np.floating):
            return np.clip(np.round(arr * 255.0), 0, 255).astype(np.uint8)
        return np.clip(arr, 0, 255).astype(np.uint8)

    def encode(self, arr: np.ndarray) -> bytes:
        """Encode a (H, W), (H, W, 1), (H, W, 3) or (H, W, 4) array as PNG."""
        pixels = self.to_uint8(arr)
        if pixels.ndim == 3 and pixels.shape[2] == 1:
            pixels = pixels[:, :, 0]
        if not (pixels.ndim == 2 or (pixels.ndim == 3 and pixels.shape[2] in (3, 4))):
            raise ValueError(f"Cannot encode array of shape {pixels.shape} as an image")

        out = BytesIO()
        PILImage.fromarray(np.ascontiguousarray(pixels)).save(out, format="PNG")
        return out.getvalue()

    def save(self, arr: np.ndarray, path: Union[str, Path]) -> Path:
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(self.encode(arr))
        return path

    # ---------- directories ----------
    def iter_dir(
        self,
        folder: Union[str, Path],
        *,
        recursive: bool = False,
        exts: Iterable[str] | None = None,
    ) -> Iterator[Path]:
        """
        Yield image file paths in name order. Files with other extensions are skipped.
        """
        folder = Path(folder)
        if not folder.is_dir():
            raise NotADirectoryError(folder)

        allowed = {e.lower() for e in (exts or self.VALID_EXTS)}
        pattern = "**/*" if recursive else "*"

        for p in sorted(folder.glob(pattern)):
            if not p.is_file():
                continue
            if p.suffix.lower() not in allowed:
                logger.debug(f"Skipping due to extension: {p}")
                continue
            yield p

    def list_dir(
        self, folder: Union[str, Path], *, recursive=False, exts=None
    ) -> List[Path]:
        return list(self.iter_dir(folder, recursive=recursive, exts=exts))
