from .watermark_pipeline import (
    build_stack,
    locate_watermark,
    extract_watermark,
    to_image_bytes,
    remove_watermark,
    run_pipeline,
)

__all__ = [
    "build_stack",
    "locate_watermark",
    "extract_watermark",
    "to_image_bytes",
    "remove_watermark",
    "run_pipeline",
]
