from __future__ import annotations
from pathlib import Path
from typing import Union
import logging

import torch

from ..models.errors import ModelLoadError
from ..models.pixel_network import PixelNetwork
from ..models.predictor import TorchPredictor
from ..models.watermark_mode import ModelKey

logger = logging.getLogger(__name__)


class ModelRepository:
    """
    Model file I/O.

    Layout:  <model_dir>/<task>/<mode>.pth
    Checkpoint dict:  {"state_dict": ..., "input_width": int, "output_width": int}
    """

    def __init__(self, model_dir: Union[str, Path], device: str = "cpu"):
        self.model_dir = Path(model_dir)
        self.device = device

    def model_path(self, key: ModelKey) -> Path:
        return self.model_dir / key.task.value / f"{key.mode.value}.pth"

    def load(self, key: ModelKey) -> TorchPredictor:
        path = self.model_path(key)
        if not path.exists():
            raise ModelLoadError(f"Model {key} not found at {path}")

        try:
            ckpt = torch.load(path, map_location="cpu", weights_only=True)
            input_width = int(ckpt["input_width"])
            output_width = int(ckpt["output_width"])
            network = PixelNetwork(input_width, output_width)
            # Remove 'module.' or '_orig_mod.' prefixes left by DataParallel / torch.compile
            state_dict = {
                k.replace("module.", "").replace("_orig_mod.", ""): v
                for k, v in ckpt["state_dict"].items()
            }
            network.load_state_dict(state_dict)
        except Exception as err:
            raise ModelLoadError(f"Model {key} at {path} is unreadable: {err}") from err

        if output_width != key.task.output_width:
            raise ModelLoadError(
                f"Model {key} has {output_width} outputs, expected {key.task.output_width}"
            )

        logger.info(f"Loaded model {key} ({input_width} → {output_width}) from {path}")
        return TorchPredictor(network, input_width, output_width, device=self.device)

    def save(self, key: ModelKey, network: PixelNetwork) -> Path:
        """Write a checkpoint in the layout load() expects."""
        path = self.model_path(key)
        path.parent.mkdir(parents=True, exist_ok=True)
        torch.save(
            {
                "state_dict": network.state_dict(),
                "input_width": network.input_width,
                "output_width": network.output_width,
            },
            path,
        )
        return path
