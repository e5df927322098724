import logging
from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Tuple

import numpy as np

from .errors import ShapeMismatch
from .nms import NMSConfig, nms
from .types import Detection, LetterboxTransform

logger = logging.getLogger(__name__)


@dataclass
class PostprocessConfig:
    """
    Settings for turning a raw YOLO26 output tensor into detections.
    """

    conf_threshold: float = 0.50
    # <= 0 disables NMS entirely.
    iou_threshold: float = 0.45
    # If True, NMS suppresses across classes.
    agnostic: bool = False
    max_detections: Optional[int] = None
    # Optional whitelist of class IDs; None keeps all.
    class_ids: Optional[Sequence[int]] = None
    num_classes: int = 80
    # If True, a malformed output tensor raises ShapeMismatch instead of yielding [].
    strict_shape: bool = False
    sort_by_area: bool = True

    def __post_init__(self) -> None:
        if not 0.0 <= self.conf_threshold <= 1.0:
            raise ValueError(f"conf_threshold must be in [0, 1], got {self.conf_threshold}")
        if self.iou_threshold > 1.0:
            raise ValueError(f"iou_threshold must be <= 1, got {self.iou_threshold}")
        if self.max_detections is not None and self.max_detections < 1:
            raise ValueError("max_detections must be >= 1 or None")
        if self.num_classes < 1:
            raise ValueError("num_classes must be >= 1")


@dataclass
class PostprocessResult:
    detections: List[Detection] = field(default_factory=list)
    # Highest class score over all proposals, before thresholding.
    global_max_score: float = 0.0
    num_candidates: int = 0
    num_after_nms: int = 0
    shape_error: Optional[ShapeMismatch] = None


def decode_proposals(
    pred: np.ndarray,
    conf_threshold: float,
    num_classes: int = 80,
) -> Tuple[List[Detection], float]:
    """
    Decode a ``[4 + num_classes, num_proposals]`` tensor.

    Rows 0..3 hold cx, cy, w, h in model input pixels; the remaining rows hold
    per-class sigmoid scores. Each column yields at most one Detection, for its
    best class (lowest class index on ties), if that score is >= ``conf_threshold``.

    Returns the detections (unordered) and the highest score seen across all
    proposals regardless of the threshold.
    """

    p = np.asarray(pred)
    expected = 4 + num_classes
    if p.ndim != 2 or p.shape[0] != expected:
        raise ShapeMismatch(expected, p.shape)

    num_proposals = p.shape[1]
    if num_proposals == 0:
        return [], 0.0

    # Walk class rows so every read is a contiguous slice.
    best = np.array(p[4], dtype=np.float64)
    label = np.zeros(num_proposals, dtype=np.int64)
    for k in range(1, num_classes):
        row = p[4 + k]
        better = row > best
        best = np.where(better, row, best)
        label = np.where(better, k, label)

    global_max = max(0.0, float(np.nanmax(best))) if np.any(~np.isnan(best)) else 0.0

    keep = np.flatnonzero(best >= conf_threshold)
    if keep.size == 0:
        return [], global_max

    cx = p[0, keep]
    cy = p[1, keep]
    bw = p[2, keep]
    bh = p[3, keep]
    x0 = cx - bw * 0.5
    y0 = cy - bh * 0.5

    detections = [
        Detection(
            x=float(x0[j]),
            y=float(y0[j]),
            width=float(bw[j]),
            height=float(bh[j]),
            score=float(best[i]),
            class_id=int(label[i]),
        )
        for j, i in enumerate(keep)
    ]
    return detections, global_max


def sort_by_score(detections: Sequence[Detection]) -> List[Detection]:
    """Descending score. Ties may come out in any order."""
    return sorted(detections, key=lambda d: d.score, reverse=True)


def sort_by_area(detections: Sequence[Detection]) -> List[Detection]:
    return sorted(detections, key=lambda d: d.area, reverse=True)


def map_to_original(det: Detection, transform: LetterboxTransform) -> Detection:
    """
    Map a box from letterboxed model input pixels back to the original image.

    Both corners are clamped to ``[0, dim - 1]``; width/height never go negative.
    """

    max_x = float(transform.original_width - 1)
    max_y = float(transform.original_height - 1)

    x0 = (det.x - transform.pad_left) / transform.scale
    y0 = (det.y - transform.pad_top) / transform.scale
    x1 = (det.x2 - transform.pad_left) / transform.scale
    y1 = (det.y2 - transform.pad_top) / transform.scale

    x0 = max(0.0, min(x0, max_x))
    y0 = max(0.0, min(y0, max_y))
    x1 = max(0.0, min(x1, max_x))
    y1 = max(0.0, min(y1, max_y))

    return Detection(
        x=x0,
        y=y0,
        width=max(0.0, x1 - x0),
        height=max(0.0, y1 - y0),
        score=det.score,
        class_id=det.class_id,
    )


class YoloPostprocessor:
    """
    Post-process for YOLO26 exports (e.g. 84 x 8400: 4 box rows + 80 class rows).

    Stages: decode -> sort by score -> NMS -> map to original image -> sort by area.
    A single leading batch axis of size 1 is accepted and dropped.
    """

    def __init__(self, cfg: PostprocessConfig):
        self.cfg = cfg

    def process(self, preds: np.ndarray, transform: LetterboxTransform) -> List[Detection]:
        return self.process_with_stats(preds, transform).detections

    def process_with_stats(self, preds: np.ndarray, transform: LetterboxTransform) -> PostprocessResult:
        p = np.asarray(preds)
        if p.ndim == 3 and p.shape[0] == 1:
            p = p[0]

        try:
            candidates, global_max = decode_proposals(p, self.cfg.conf_threshold, self.cfg.num_classes)
        except ShapeMismatch as exc:
            if self.cfg.strict_shape:
                raise
            logger.warning("Decoding skipped: %s", exc)
            return PostprocessResult(shape_error=exc)

        if self.cfg.class_ids is not None:
            allowed = set(int(c) for c in self.cfg.class_ids)
            candidates = [d for d in candidates if d.class_id in allowed]

        result = PostprocessResult(global_max_score=global_max, num_candidates=len(candidates))
        if not candidates:
            return result

        candidates = sort_by_score(candidates)
        kept = nms(
            candidates,
            NMSConfig(
                iou_threshold=self.cfg.iou_threshold,
                agnostic=self.cfg.agnostic,
                max_detections=self.cfg.max_detections,
            ),
        )
        logger.debug("after NMS: %d of %d candidates", len(kept), len(candidates))

        mapped = [map_to_original(d, transform) for d in kept]
        if self.cfg.sort_by_area:
            mapped = sort_by_area(mapped)

        result.detections = mapped
        result.num_after_nms = len(kept)
        return result
