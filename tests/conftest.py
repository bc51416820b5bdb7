import numpy as np
import pytest

from watermark_stack.models.image import Image


class StubPredictor:
    """Records every batch it sees; output comes from *fn* or is all zeros."""

    def __init__(self, input_width, output_width, fn=None):
        self.input_width = input_width
        self.output_width = output_width
        self.fn = fn
        self.calls = []

    def predict(self, batch):
        self.calls.append(np.array(batch, copy=True))
        if self.fn is None:
            return np.zeros((len(batch), self.output_width), dtype=np.float32)
        return np.asarray(self.fn(batch), dtype=np.float32)


@pytest.fixture
def stub_predictor():
    return StubPredictor


def solid_frame(color, size=(10, 10)) -> Image:
    """A (H, W, 3) float32 frame filled with one RGB color."""
    return Image(pixels=np.full((*size, 3), color, dtype=np.float32))


@pytest.fixture
def make_solid_frame():
    return solid_frame
