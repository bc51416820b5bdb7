from __future__ import annotations
from dataclasses import dataclass
from enum import Enum


class WatermarkMode(Enum):
    """Watermark category; each one has its own trained model variant."""
    COLORFUL = "colorful"
    WHITE = "white"
    BLACK = "black"


class ModelTask(Enum):
    LOCALIZE = "localize"   # presence, 1 output per pixel
    EXTRACT = "extract"     # RGBA, 4 outputs per pixel

    @property
    def output_width(self) -> int:
        return 1 if self is ModelTask.LOCALIZE else 4


class SelectionPolicy(Enum):
    """How frames are picked when more than stack_size are supplied."""
    SPARSITY_FIRST = "sparsity_first"
    ROUND_ROBIN = "round_robin"


@dataclass(frozen=True)
class ModelKey:
    task: ModelTask
    mode: WatermarkMode

    @classmethod
    def for_mode(cls, task: ModelTask | str, mode: WatermarkMode | str) -> "ModelKey":
        return cls(task=ModelTask(task), mode=WatermarkMode(mode))

    def __str__(self) -> str:
        return f"{self.task.value}/{self.mode.value}"
