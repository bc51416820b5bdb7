from __future__ import annotations
from dataclasses import dataclass, replace
from pathlib import Path
import os

import torch
from dotenv import load_dotenv

from .watermark_mode import WatermarkMode, SelectionPolicy

# Load environment variables
load_dotenv()


@dataclass(frozen=True)
class PipelineConfig:
    """
    Explicit per-call configuration.

    stack_size        frames per stack, also fixes the model input width (3 * stack_size)
    mode              watermark category, selects the model variant
    selection_policy  frame selection algorithm used when more frames than stack_size are given
    seed              seed for the selection shuffle (None = fresh entropy)
    model_dir         root directory of <task>/<mode>.pth model files
    device            torch device for inference ("auto" picks CUDA > MPS > CPU)
    min_transparency  lowest watermark alpha produced by the sample synthesizer
    """
    stack_size: int = 20
    mode: WatermarkMode = WatermarkMode.COLORFUL
    selection_policy: SelectionPolicy = SelectionPolicy.SPARSITY_FIRST
    seed: int | None = None
    model_dir: Path = Path("bin/model")
    device: str = "auto"
    min_transparency: float = 0.4

    def __post_init__(self):
        if isinstance(self.stack_size, bool) or not isinstance(self.stack_size, int) or self.stack_size < 1:
            raise ValueError(f"stack_size must be a positive integer, got {self.stack_size!r}")
        if not 0.0 <= self.min_transparency <= 1.0:
            raise ValueError(f"min_transparency must be within [0, 1], got {self.min_transparency}")
        # Accept plain strings from env / CLI
        object.__setattr__(self, "mode", WatermarkMode(self.mode))
        object.__setattr__(self, "selection_policy", SelectionPolicy(self.selection_policy))
        object.__setattr__(self, "model_dir", Path(self.model_dir))

    @classmethod
    def from_env(cls, **overrides) -> "PipelineConfig":
        """Build a config from environment variables; keyword overrides win."""
        seed = os.getenv("RANDOM_SEED")
        values = dict(
            stack_size=int(os.getenv("STACK_SIZE", "20")),
            mode=os.getenv("WATERMARK_MODE", WatermarkMode.COLORFUL.value),
            selection_policy=os.getenv("SELECTION_POLICY", SelectionPolicy.SPARSITY_FIRST.value),
            seed=int(seed) if seed else None,
            model_dir=os.getenv("MODEL_DIR", "bin/model"),
            device=os.getenv("MODEL_DEVICE", "auto"),
            min_transparency=float(os.getenv("MIN_TRANSPARENCY", "0.4")),
        )
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)

    def with_overrides(self, **changes) -> "PipelineConfig":
        return replace(self, **changes)

    @property
    def feature_width(self) -> int:
        """Model input width for RGB stacks."""
        return 3 * self.stack_size

    def resolve_device(self) -> str:
        # Use CUDA on NVIDIA, MPS on Apple Silicon, CPU otherwise
        if self.device != "auto":
            return self.device
        if torch.cuda.is_available():
            return "cuda"
        elif hasattr(torch.backends, 'mps') and torch.backends.mps.is_available():
            return "mps"
        return "cpu"
