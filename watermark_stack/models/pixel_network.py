from __future__ import annotations
import torch
import torch.nn as nn


class PixelNetwork(nn.Module):
    """
    Dense per-pixel network stored in the model files.

    Input is one pixel's channel stack (3 * stack_size values); output is a
    presence score (1 value) or an RGBA watermark pixel (4 values), clamped to
    [0, 1] the way a ReLU capped at 1 would.

    Older presence checkpoints were trained behind a plain ReLU with no upper
    bound. The cap at 1 is new for them; it does not change the presence map,
    which rounds half up and only tests for non-zero.
    """

    def __init__(self, input_width: int, output_width: int) -> None:
        super().__init__()
        self.input_width = input_width
        self.output_width = output_width
        self.layers = nn.Sequential(
            nn.Linear(input_width, input_width),
            nn.ReLU(inplace=True),
            nn.Linear(input_width, output_width),
        )

    def forward(self, x: torch.Tensor) -> torch.Tensor:
        return self.layers(x).clamp(0, 1)
