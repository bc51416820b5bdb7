"""Tests for frame ingestion: decoding, size checks and normalization."""

import numpy as np
import pytest
from PIL import Image as PILImage

from watermark_stack.models.errors import DimensionMismatchError, InsufficientFramesError
from watermark_stack.models.image import Image
from watermark_stack.repositories.image_repository import ImageRepository
from watermark_stack.services.frame_service import FrameService


def test_ingest_mixed_sources(tmp_path) -> None:
    repo = ImageRepository()
    rgb = np.full((6, 8, 3), 51, dtype=np.uint8)
    path = repo.save(rgb, tmp_path / "frame.png")

    sources = [
        repo.encode(rgb),                                   # bytes
        path,                                               # pathlib.Path
        str(path),                                          # str path
        rgb.copy(),                                         # uint8 array
        PILImage.fromarray(rgb),                            # PIL image
        Image(pixels=np.full((6, 8, 3), 0.2, dtype=np.float32)),
    ]
    frames = FrameService().ingest(sources, stack_size=6)

    assert len(frames) == 6
    for frame in frames:
        assert frame.pixels.shape == (6, 8, 3)
        assert frame.pixels.dtype == np.float32
        np.testing.assert_allclose(frame.pixels, 0.2, atol=1e-6)
    assert frames[1].path == path
    assert frames[0].path is None


def test_ingest_does_not_mutate_inputs() -> None:
    arr = np.full((2, 2, 3), 255, dtype=np.uint8)
    FrameService().ingest([arr], stack_size=1)
    assert arr.dtype == np.uint8 and arr.max() == 255


def test_too_few_sources_fail_before_decoding() -> None:
    # garbage bytes would raise ImageDecodeError if anything were decoded
    with pytest.raises(InsufficientFramesError) as info:
        FrameService().ingest([b"garbage"] * 4, stack_size=5)
    assert info.value.received == 4
    assert info.value.required == 5


def test_mismatched_width_is_rejected() -> None:
    a = np.zeros((50, 100, 3), dtype=np.uint8)
    b = np.zeros((50, 90, 3), dtype=np.uint8)
    with pytest.raises(DimensionMismatchError, match="width"):
        FrameService().ingest([a, b], stack_size=2)


def test_mismatched_height_is_rejected() -> None:
    # 100x50 and 100x60 (width x height)
    a = np.zeros((50, 100, 3), dtype=np.uint8)
    b = np.zeros((60, 100, 3), dtype=np.uint8)
    with pytest.raises(DimensionMismatchError, match="height"):
        FrameService().ingest([a, b], stack_size=2)


def test_normalize_gray_and_rgba() -> None:
    gray = np.full((2, 2), 255, dtype=np.uint8)
    out = FrameService.normalize(gray)
    assert out.shape == (2, 2, 3)
    assert np.all(out == 1.0)

    rgba = np.zeros((2, 2, 4), dtype=np.uint8)
    rgba[..., 0] = 255
    rgba[..., 3] = 51
    out = FrameService.normalize(rgba)
    assert out.shape == (2, 2, 3)
    np.testing.assert_allclose(out[..., 0], 0.2, atol=1e-6)
    assert np.all(out[..., 1:] == 0)


def test_normalize_float_is_clipped_not_rescaled() -> None:
    arr = np.array([[[-0.5, 0.25, 1.5]]], dtype=np.float64)
    out = FrameService.normalize(arr)
    assert out.tolist() == [[[0.0, 0.25, 1.0]]]


def test_sixteen_bit_sources_stay_in_unit_range() -> None:
    arr = np.full((2, 2, 3), 65535, dtype=np.uint16)
    arr[0, 0] = (0, 32896, 65535)

    frame = FrameService().ingest([arr], stack_size=1)[0]

    assert frame.pixels.max() == pytest.approx(1.0)
    assert frame.pixels[0, 0].tolist() == pytest.approx([0.0, 32896 / 65535, 1.0])


def test_unsupported_source_type() -> None:
    with pytest.raises(TypeError):
        FrameService().ingest([42], stack_size=1)
