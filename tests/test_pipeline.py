"""End-to-end tests of the public pipeline with stub models."""

import numpy as np
import pytest

from watermark_stack.models.errors import (
    DimensionMismatchError,
    InsufficientFramesError,
    InvalidPositionTypeError,
)
from watermark_stack.models.image import Image
from watermark_stack.models.pipeline_config import PipelineConfig
from watermark_stack.pipeline import (
    build_stack,
    extract_watermark,
    locate_watermark,
    remove_watermark,
    run_pipeline,
    to_image_bytes,
)
from watermark_stack.repositories.image_repository import ImageRepository
from watermark_stack.services.model_service import ModelService
from watermark_stack.services.sample_service import SampleService

WHITE_RGBA = [1.0, 1.0, 1.0, 0.6]


def _watermark(size=8):
    wm = np.zeros((size, size, 4), dtype=np.float32)
    wm[2:4, 3:6] = WHITE_RGBA
    return wm


def _backgrounds(count=12, size=8):
    # dark solid backgrounds: a 60 % white watermark always lifts pixels above 0.6
    rng = np.random.default_rng(5)
    return [Image(pixels=np.full((size, size, 3), rng.random(3) * 0.55, dtype=np.float32)) for _ in range(count)]


def _models(stub_predictor, stack_size):
    width = 3 * stack_size
    models = ModelService()
    models.register("localize", "white", stub_predictor(
        width, 1, fn=lambda batch: (batch.min(axis=1, keepdims=True) >= 0.6).astype(np.float32)))
    models.register("extract", "white", stub_predictor(
        width, 4, fn=lambda batch: np.tile(WHITE_RGBA, (len(batch), 1))))
    return models


def test_run_pipeline_finds_extracts_and_removes(stub_predictor) -> None:
    config = PipelineConfig(stack_size=5, mode="white", seed=3)
    backgrounds = _backgrounds()
    frames = SampleService.composite(backgrounds, _watermark())

    result = run_pipeline(frames, config, _models(stub_predictor, 5), remove=True)

    expected = np.zeros((8, 8), dtype=bool)
    expected[2:4, 3:6] = True
    assert result.stack.data.shape == (8, 8, 3, 5)
    np.testing.assert_array_equal(result.positions, expected)
    assert result.watermark_pixels == 6
    np.testing.assert_allclose(result.watermark, _watermark())
    assert len(result.cleaned) == len(frames)
    for cleaned, background in zip(result.cleaned, backgrounds):
        np.testing.assert_allclose(cleaned.pixels, background.pixels, atol=1e-5)


def test_step_by_step_entry_points(stub_predictor) -> None:
    config = PipelineConfig(stack_size=5, mode="white", seed=0)
    models = _models(stub_predictor, 5)
    frames = SampleService.composite(_backgrounds(), _watermark())

    stack = build_stack(frames, config)
    positions = locate_watermark(stack, config, models)
    watermark = extract_watermark(stack, positions, config, models)
    cleaned = remove_watermark(frames, watermark)

    assert positions.dtype == np.bool_
    assert locate_watermark(stack, config, models, as_bool=False).dtype == np.float32
    assert len(cleaned) == 12

    png = to_image_bytes(watermark)
    assert png.startswith(b"\x89PNG")
    decoded = ImageRepository().decode(png)
    assert decoded.shape == (8, 8, 4)
    assert decoded[2, 3].tolist() == [255, 255, 255, 153]


def test_position_map_png(stub_predictor) -> None:
    positions = np.eye(3, dtype=bool)
    decoded = ImageRepository().decode(to_image_bytes(positions))
    assert decoded.tolist() == [[255, 0, 0], [0, 255, 0], [0, 0, 255]]


def test_build_stack_one_frame_short() -> None:
    config = PipelineConfig(stack_size=5)
    with pytest.raises(InsufficientFramesError):
        build_stack(_backgrounds(count=4), config)


def test_build_stack_mismatched_sizes() -> None:
    config = PipelineConfig(stack_size=2)
    images = [np.zeros((50, 100, 3), dtype=np.uint8), np.zeros((60, 100, 3), dtype=np.uint8)]
    with pytest.raises(DimensionMismatchError):
        build_stack(images, config)


def test_extract_rejects_probability_map(stub_predictor) -> None:
    config = PipelineConfig(stack_size=5, mode="white")
    models = _models(stub_predictor, 5)
    stack = build_stack(_backgrounds(), config)
    scores = locate_watermark(stack, config, models, as_bool=False)
    with pytest.raises(InvalidPositionTypeError):
        extract_watermark(stack, scores, config, models)
