from __future__ import annotations

from typing import Optional, Tuple


class Yolo26Error(Exception):
    """Base class for errors raised by yolo26_kit."""


class ShapeMismatch(Yolo26Error, ValueError):
    """
    The model output does not have the expected ``[4 + num_classes, num_proposals]`` layout.

    Retrying cannot help: the model or engine configuration is wrong.
    """

    def __init__(self, expected_features: int, actual_shape: Tuple[int, ...], message: Optional[str] = None):
        self.expected_features = expected_features
        self.actual_shape = tuple(int(s) for s in actual_shape)
        if message is None:
            message = (
                f"Expected a 2-D output with {expected_features} feature rows "
                f"(4 box + {expected_features - 4} classes), got shape {self.actual_shape}."
            )
        super().__init__(message)


class InputValidationError(Yolo26Error, ValueError):
    """Unsupported image format or non-positive image dimensions."""


class ModelLoadError(Yolo26Error, RuntimeError):
    """An inference backend failed to load the model."""
