from __future__ import annotations
import threading
from typing import Protocol, runtime_checkable

import numpy as np
import torch
import torch.nn as nn


@runtime_checkable
class Predictor(Protocol):
    """
    Opaque trained model: one batched call per pipeline step.

    predict(batch)  (N, input_width) float32  →  (N, output_width) float32
    """
    input_width: int
    output_width: int

    def predict(self, batch: np.ndarray) -> np.ndarray:
        ...


class TorchPredictor:
    """
    Wraps a torch module for read-only inference.
    • Weights are frozen and the module stays in eval mode.
    • Safe to share between threads; forward passes hold no per-call state.
    """

    def __init__(self, module: nn.Module, input_width: int, output_width: int, device: str = "cpu"):
        self.input_width = input_width
        self.output_width = output_width
        self.device = device
        self.module = module.to(device).eval()
        for p in self.module.parameters():
            p.requires_grad_(False)
        self._lock = threading.Lock()

    @torch.inference_mode()
    def predict(self, batch: np.ndarray) -> np.ndarray:
        batch = np.asarray(batch, dtype=np.float32)
        if batch.ndim != 2 or batch.shape[1] != self.input_width:
            raise ValueError(
                f"Expected batch of shape (N, {self.input_width}), got {batch.shape}"
            )
        if batch.shape[0] == 0:
            return np.zeros((0, self.output_width), dtype=np.float32)

        x = torch.from_numpy(np.ascontiguousarray(batch)).to(self.device)
        # MPS / CUDA kernels are not guaranteed re-entrant across threads
        with self._lock:
            out = self.module(x)
        return out.float().cpu().numpy().reshape(batch.shape[0], self.output_width)
