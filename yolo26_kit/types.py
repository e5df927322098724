from dataclasses import dataclass
from typing import Tuple


@dataclass
class Detection:
    """
    A single detection box stored as (x, y, width, height).

    The coordinate space depends on the pipeline stage: model input pixels
    right after decoding, original image pixels after mapping.
    """

    x: float
    y: float
    width: float
    height: float
    score: float
    class_id: int

    @property
    def x2(self) -> float:
        return self.x + self.width

    @property
    def y2(self) -> float:
        return self.y + self.height

    @property
    def area(self) -> float:
        return self.width * self.height

    def as_xywh(self) -> Tuple[float, float, float, float]:
        return self.x, self.y, self.width, self.height

    def as_xyxy(self) -> Tuple[float, float, float, float]:
        return self.x, self.y, self.x2, self.y2


@dataclass(frozen=True)
class LetterboxTransform:
    """
    Parameters of the resize + pad that fit an image into a square model input.

    Only valid for the detection call that computed it.
    """

    scale: float
    pad_left: int
    pad_top: int
    original_width: int
    original_height: int
    target_size: int
    new_width: int
    new_height: int

    @property
    def pad_right(self) -> int:
        return self.target_size - self.new_width - self.pad_left

    @property
    def pad_bottom(self) -> int:
        return self.target_size - self.new_height - self.pad_top
