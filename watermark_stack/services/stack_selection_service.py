from __future__ import annotations
from collections import deque
from itertools import zip_longest
from typing import Dict, List, Sequence, Set, Tuple
import logging

import numpy as np

from ..models.errors import InsufficientFramesError
from ..models.image import Image
from ..models.pipeline_config import PipelineConfig
from ..models.watermark_mode import SelectionPolicy

logger = logging.getLogger(__name__)

# Buckets[channel][bucket] → frame indices, in input order
Buckets = List[List[List[int]]]


class StackSelectionService:
    """
    Picks exactly stack_size frames that span the observed color distribution.

    Every frame falls into one of 10 buckets per RGB channel, keyed by
    floor(mean(channel) * 10). A selection policy walks those buckets; the
    result is deduplicated, truncated to stack_size in selection order, and
    shuffled so no frame slot carries a fixed meaning for the model.
    """

    BUCKET_COUNT = 10

    def __init__(
        self,
        policy: SelectionPolicy | str = SelectionPolicy.SPARSITY_FIRST,
        seed: int | None = None,
    ):
        self.policy = SelectionPolicy(policy)
        self.rng = np.random.default_rng(seed)

    @classmethod
    def from_config(cls, config: PipelineConfig) -> "StackSelectionService":
        return cls(policy=config.selection_policy, seed=config.seed)

    # ─── Public API ────────────────────────────────────────────────
    def select(self, frames: Sequence[Image], stack_size: int) -> List[Image]:
        """
        Args:
            frames: candidate frames, all of the same size.
            stack_size: number of frames to return.

        Returns:
            List[Image]: exactly stack_size distinct frames from *frames*, shuffled.
        """
        frames = list(frames)
        if len(frames) < stack_size:
            raise InsufficientFramesError(len(frames), stack_size)

        if len(frames) == stack_size:
            chosen = list(range(len(frames)))
        else:
            buckets = self.bucket_frames(frames)
            if self.policy is SelectionPolicy.SPARSITY_FIRST:
                chosen = self._sparsity_first(buckets, stack_size)
            else:
                chosen = self._round_robin(buckets, stack_size)
            chosen = list(dict.fromkeys(chosen))[:stack_size]
            if len(chosen) < stack_size:
                chosen = self._random_fill(chosen, len(frames), stack_size)
            logger.debug(f"{self.policy.value} selected frames {chosen}")

        order = self.rng.permutation(len(chosen))
        return [frames[chosen[i]] for i in order]

    @classmethod
    def bucket_index(cls, pixels: np.ndarray) -> Tuple[int, int, int]:
        """(r, g, b) bucket of one frame; a mean of exactly 1.0 stays in the top bucket."""
        means = pixels[:, :, :3].reshape(-1, 3).mean(axis=0, dtype=np.float64)
        top = cls.BUCKET_COUNT - 1
        return tuple(min(int(np.floor(m * cls.BUCKET_COUNT)), top) for m in means)

    def bucket_frames(self, frames: Sequence[Image]) -> Buckets:
        buckets: Buckets = [[[] for _ in range(self.BUCKET_COUNT)] for _ in range(3)]
        for index, frame in enumerate(frames):
            for channel, bucket in enumerate(self.bucket_index(frame.pixels)):
                buckets[channel][bucket].append(index)
        return buckets

    # ─── Policies ──────────────────────────────────────────────────
    def _rarest(self, channel_buckets: List[List[int]], pending: Set[int]) -> List[int]:
        """Pending bucket ids sharing the lowest population."""
        low = min(len(channel_buckets[b]) for b in pending)
        return sorted(b for b in pending if len(channel_buckets[b]) == low)

    def _tie_key(self, members: List[int], bucket: int, claimed: Set[int], contested: Set[int]):
        """
        Order among equally populated buckets: fewest members already taken,
        then fewest members another channel is also about to pick from, then
        further from mid-gray, then the lower id.
        """
        extremeness = abs((bucket + 0.5) / self.BUCKET_COUNT - 0.5)
        taken = sum(1 for i in members if i in claimed)
        shared = sum(1 for i in members if i in contested)
        return taken, shared, -extremeness, bucket

    def _sparsity_first(self, buckets: Buckets, stack_size: int) -> List[int]:
        pending = [set(range(self.BUCKET_COUNT)) for _ in buckets]
        result: Dict[int, None] = {}

        for _ in range(self.BUCKET_COUNT):
            if len(result) >= stack_size:
                break
            tied = [self._rarest(buckets[c], pending[c]) for c in range(3)]
            claimed = set(result)
            members = []
            for c in range(3):
                contested = {
                    i for o in range(3) if o != c for b in tied[o] for i in buckets[o][b]
                }
                bucket = min(
                    tied[c],
                    key=lambda b: self._tie_key(buckets[c][b], b, claimed, contested),
                )
                pending[c].discard(bucket)
                claimed.update(buckets[c][bucket])
                members.append(buckets[c][bucket])
            # interleave R, G, B members so truncation keeps every channel's pick
            for group in zip_longest(*members):
                for index in group:
                    if index is not None:
                        result.setdefault(index)

        return list(result)

    def _round_robin(self, buckets: Buckets, stack_size: int) -> List[int]:
        queues = [[deque(bucket) for bucket in channel] for channel in buckets]
        result: Dict[int, None] = {}
        bucket = idle = 0

        while len(result) <= stack_size and idle < self.BUCKET_COUNT:
            added = False
            for channel in queues:
                queue = channel[bucket]
                while queue:
                    index = queue.popleft()
                    if index not in result:
                        result[index] = None
                        added = True
                        break
            idle = 0 if added else idle + 1
            bucket = (bucket + 1) % self.BUCKET_COUNT

        return list(result)

    def _random_fill(self, chosen: List[int], frame_count: int, stack_size: int) -> List[int]:
        taken = set(chosen)
        remaining = [i for i in range(frame_count) if i not in taken]
        missing = stack_size - len(chosen)
        logger.warning(
            f"Bucket selection produced {len(chosen)}/{stack_size} frames; "
            f"filling {missing} at random"
        )
        extra = self.rng.choice(remaining, size=missing, replace=False)
        return chosen + [int(i) for i in extra]
