from typing import Tuple

import numpy as np

from .errors import InputValidationError
from .types import LetterboxTransform


def compute_letterbox(img_w: int, img_h: int, target_size: int = 640) -> LetterboxTransform:
    """
    Compute the isotropic scale and padding that fit a ``img_w x img_h`` image
    into a ``target_size x target_size`` square.

    Padding is split evenly; an odd remainder goes to the right/bottom.
    """

    if img_w <= 0 or img_h <= 0:
        raise InputValidationError(f"Image dimensions must be positive, got {img_w}x{img_h}.")
    if target_size <= 0:
        raise InputValidationError(f"target_size must be positive, got {target_size}.")

    scale = min(target_size / img_w, target_size / img_h)
    new_w = max(1, int(round(img_w * scale)))
    new_h = max(1, int(round(img_h * scale)))

    pad_w = target_size - new_w
    pad_h = target_size - new_h

    return LetterboxTransform(
        scale=scale,
        pad_left=pad_w // 2,
        pad_top=pad_h // 2,
        original_width=int(img_w),
        original_height=int(img_h),
        target_size=int(target_size),
        new_width=new_w,
        new_height=new_h,
    )


def letterbox(
    image: np.ndarray,
    transform: LetterboxTransform,
    color: Tuple[int, int, int] = (114, 114, 114),
) -> np.ndarray:
    """
    Resize ``image`` by ``transform.scale`` and place it at
    ``(pad_left, pad_top)`` inside a square canvas filled with ``color``.
    """
    try:
        import cv2  # type: ignore
    except Exception as e:  # pragma: no cover
        raise ImportError("OpenCV is required for letterbox(). Install with `pip install opencv-python`.") from e

    h, w = image.shape[:2]
    if (w, h) != (transform.original_width, transform.original_height):
        raise InputValidationError(
            f"Image is {w}x{h} but the transform was computed for "
            f"{transform.original_width}x{transform.original_height}."
        )

    if (w, h) != (transform.new_width, transform.new_height):
        image = cv2.resize(image, (transform.new_width, transform.new_height), interpolation=cv2.INTER_LINEAR)

    return cv2.copyMakeBorder(
        image,
        transform.pad_top,
        transform.pad_bottom,
        transform.pad_left,
        transform.pad_right,
        cv2.BORDER_CONSTANT,
        value=color,
    )
