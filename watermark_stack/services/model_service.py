from __future__ import annotations
import threading
import logging
from typing import Dict

from ..models.errors import ModelNotLoadedError
from ..models.pipeline_config import PipelineConfig
from ..models.predictor import Predictor
from ..models.watermark_mode import ModelKey, ModelTask, WatermarkMode
from ..repositories.model_repository import ModelRepository

logger = logging.getLogger(__name__)


class ModelService:
    """
    Process-wide predictor cache, owned by whoever runs the pipeline.

    • Each (task, mode) predictor is loaded lazily, exactly once.
    • A per-key lock keeps concurrent first use from loading twice.
    • Predictors are read-only after load and shared across calls.
    """

    def __init__(self, repository: ModelRepository | None = None):
        self.repository = repository
        self._predictors: Dict[ModelKey, Predictor] = {}
        self._key_locks: Dict[ModelKey, threading.Lock] = {}
        self._lock = threading.Lock()
        self._closed = False

    @classmethod
    def from_config(cls, config: PipelineConfig) -> "ModelService":
        return cls(ModelRepository(config.model_dir, device=config.resolve_device()))

    # ───────────────────────── lifecycle
    def close(self) -> None:
        with self._lock:
            self._predictors.clear()
            self._key_locks.clear()
            self._closed = True

    def __enter__(self) -> "ModelService":
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    # ───────────────────────── public API
    def register(self, task: ModelTask | str, mode: WatermarkMode | str, predictor: Predictor) -> None:
        """Install a predictor directly (custom runtimes, tests)."""
        key = ModelKey.for_mode(task, mode)
        with self._lock:
            self._predictors[key] = predictor

    def is_loaded(self, task: ModelTask | str, mode: WatermarkMode | str) -> bool:
        return ModelKey.for_mode(task, mode) in self._predictors

    def get_predictor(self, task: ModelTask | str, mode: WatermarkMode | str) -> Predictor:
        key = ModelKey.for_mode(task, mode)
        try:
            return self._cached(key)
        except ModelNotLoadedError:
            return self._load_once(key)

    # ───────────────────────── internals
    def _cached(self, key: ModelKey) -> Predictor:
        if self._closed:
            raise RuntimeError("ModelService is closed")
        try:
            return self._predictors[key]
        except KeyError:
            raise ModelNotLoadedError(str(key)) from None

    def _load_once(self, key: ModelKey) -> Predictor:
        with self._lock:
            key_lock = self._key_locks.setdefault(key, threading.Lock())

        with key_lock:
            # another thread may have finished loading while we waited
            if key in self._predictors:
                return self._predictors[key]
            if self.repository is None:
                raise ModelNotLoadedError(f"No predictor registered for {key} and no model repository configured")
            predictor = self.repository.load(key)
            with self._lock:
                self._predictors[key] = predictor
            return predictor
