from dataclasses import dataclass
from typing import List, Optional, Sequence

import numpy as np

from .types import Detection


@dataclass
class NMSConfig:
    iou_threshold: float = 0.45
    # If True, boxes of different classes may suppress each other.
    agnostic: bool = False
    max_detections: Optional[int] = None


def iou(a: Detection, b: Detection) -> float:
    """
    Intersection-over-union of two xywh boxes. Returns 0 when the union is empty.
    """

    iw = max(0.0, min(a.x2, b.x2) - max(a.x, b.x))
    ih = max(0.0, min(a.y2, b.y2) - max(a.y, b.y))
    inter = iw * ih
    union = a.area + b.area - inter
    if union <= 0:
        return 0.0
    return float(inter / union)


def nms_sorted_indices(
    boxes: np.ndarray,
    class_ids: np.ndarray,
    iou_threshold: float,
    agnostic: bool = False,
    max_detections: Optional[int] = None,
) -> np.ndarray:
    """
    Greedy NMS over boxes that are already sorted by descending score.

    Expects boxes shape (N, 4) in xywh and class_ids shape (N,).
    Returns the kept indices in input order. ``iou_threshold <= 0`` keeps everything.
    """

    n = int(boxes.shape[0])
    if n == 0:
        return np.empty((0,), dtype=np.int64)

    if iou_threshold <= 0:
        keep_all = np.arange(n, dtype=np.int64)
        return keep_all if max_detections is None else keep_all[:max_detections]

    x1 = boxes[:, 0]
    y1 = boxes[:, 1]
    x2 = boxes[:, 0] + boxes[:, 2]
    y2 = boxes[:, 1] + boxes[:, 3]
    areas = boxes[:, 2] * boxes[:, 3]

    picked: List[int] = []
    for i in range(n):
        if max_detections is not None and len(picked) >= max_detections:
            break

        if picked:
            cand = np.asarray(picked, dtype=np.int64)
            if not agnostic:
                cand = cand[class_ids[cand] == class_ids[i]]

            if cand.size:
                w = np.maximum(0.0, np.minimum(x2[i], x2[cand]) - np.maximum(x1[i], x1[cand]))
                h = np.maximum(0.0, np.minimum(y2[i], y2[cand]) - np.maximum(y1[i], y1[cand]))
                inter = w * h
                union = areas[i] + areas[cand] - inter
                ious = np.where(union > 0, inter / np.where(union > 0, union, 1.0), 0.0)
                if np.any(ious > iou_threshold):
                    continue

        picked.append(i)

    return np.asarray(picked, dtype=np.int64)


def nms(detections: Sequence[Detection], cfg: NMSConfig) -> List[Detection]:
    """
    Suppress overlapping detections. ``detections`` must be sorted by descending score;
    the result keeps that order.
    """

    if not detections:
        return []

    boxes = np.array([d.as_xywh() for d in detections], dtype=np.float64)
    class_ids = np.array([d.class_id for d in detections], dtype=np.int64)
    keep = nms_sorted_indices(
        boxes,
        class_ids,
        cfg.iou_threshold,
        agnostic=cfg.agnostic,
        max_detections=cfg.max_detections,
    )
    return [detections[int(i)] for i in keep]
