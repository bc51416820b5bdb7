"""
Exception taxonomy.

Input validation errors are fatal to the call and never retried.
Resource errors surface unchanged (chained to the underlying cause).
"""


class WatermarkStackError(Exception):
    """Base class for every error raised by this package."""


class InsufficientFramesError(WatermarkStackError, ValueError):
    def __init__(self, received: int, required: int):
        self.received = received
        self.required = required
        super().__init__(f"At least {required} images are required, got {received}")


class DimensionMismatchError(WatermarkStackError, ValueError):
    pass


class InvalidPositionTypeError(WatermarkStackError, TypeError):
    def __init__(self, dtype):
        self.dtype = dtype
        super().__init__(
            f"Position map must be boolean, got dtype {dtype}; threshold probabilities first"
        )


class ImageDecodeError(WatermarkStackError, ValueError):
    pass


class ModelNotLoadedError(WatermarkStackError, KeyError):
    """Model cache miss. Handled by loading the model once."""


class ModelLoadError(WatermarkStackError):
    """Model file missing, unreadable, or not matching the expected widths."""
