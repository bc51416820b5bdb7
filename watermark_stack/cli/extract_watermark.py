#!/usr/bin/env python3
"""
Extract (and optionally remove) a fixed watermark shared by a batch of images.

    watermark-stack data/frames --out-dir data/result --mode white --remove
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import List

from dotenv import load_dotenv
from tqdm import tqdm

# Load environment variables first
load_dotenv()

from ..models.errors import WatermarkStackError
from ..models.pipeline_config import PipelineConfig
from ..models.watermark_mode import WatermarkMode, SelectionPolicy
from ..pipeline.watermark_pipeline import run_pipeline
from ..repositories.image_repository import ImageRepository
from ..services.model_service import ModelService

logger = logging.getLogger(__name__)


def parse_args(argv=None) -> argparse.Namespace:
    ap = argparse.ArgumentParser(description=__doc__, formatter_class=argparse.RawDescriptionHelpFormatter)
    ap.add_argument("inputs", nargs="+", help="image files and/or directories of images")
    ap.add_argument("--out-dir", default="data/watermark_result")
    ap.add_argument("--stack-size", type=int, default=None, help="defaults to $STACK_SIZE or 20")
    ap.add_argument("--mode", choices=[m.value for m in WatermarkMode], default=None)
    ap.add_argument("--policy", choices=[p.value for p in SelectionPolicy], default=None)
    ap.add_argument("--model-dir", default=None)
    ap.add_argument("--device", default=None, help="auto, cpu, cuda or mps")
    ap.add_argument("--seed", type=int, default=None)
    ap.add_argument("--remove", action="store_true", help="also write watermark-free frames")
    ap.add_argument("--recursive", action="store_true")
    ap.add_argument("-v", "--verbose", action="store_true")
    return ap.parse_args(argv)


def collect_inputs(inputs: List[str], image_repository: ImageRepository, recursive: bool = False) -> List[Path]:
    paths: List[Path] = []
    for item in inputs:
        p = Path(item)
        if p.is_dir():
            paths.extend(image_repository.iter_dir(p, recursive=recursive))
        else:
            paths.append(p)
    return paths


def main(argv=None) -> int:
    args = parse_args(argv)

    # --- Centralized Logging Configuration ---
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format='%(asctime)s - %(name)-25s - %(levelname)-8s - %(message)s',
        datefmt='%H:%M:%S'
    )

    image_repository = ImageRepository()
    out_dir = Path(args.out_dir)

    try:
        config = PipelineConfig.from_env(
            stack_size=args.stack_size,
            mode=args.mode,
            selection_policy=args.policy,
            model_dir=args.model_dir,
            device=args.device,
            seed=args.seed,
        )
        paths = collect_inputs(args.inputs, image_repository, recursive=args.recursive)

        with ModelService.from_config(config) as model_service:
            result = run_pipeline(paths, config, model_service, remove=args.remove)

        image_repository.save(result.positions, out_dir / "position.png")
        image_repository.save(result.watermark, out_dir / "watermark.png")
        for i, frame in enumerate(tqdm(result.cleaned, desc="save", ncols=70, disable=not result.cleaned)):
            name = f"{frame.path.stem}_clean.png" if frame.path else f"frame_{i:04d}_clean.png"
            image_repository.save(frame.pixels, out_dir / "cleaned" / name)
    except (WatermarkStackError, ValueError, FileNotFoundError, NotADirectoryError) as err:
        print(f"error: {err}", file=sys.stderr)
        return 1

    print(f"Watermark found at {result.watermark_pixels} pixels")
    print(f"Results written to {out_dir}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
