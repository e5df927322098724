from __future__ import annotations

import argparse
import statistics
import time
from dataclasses import dataclass
from typing import List

import numpy as np

from yolo26_kit import PostprocessConfig, YoloPostprocessor, compute_letterbox


@dataclass(frozen=True)
class TimingSummary:
    n: int
    mean_ms: float
    p50_ms: float
    p95_ms: float


def _percentile(sorted_values: List[float], q: float) -> float:
    if not sorted_values:
        raise ValueError("No values provided.")
    if len(sorted_values) == 1:
        return float(sorted_values[0])
    # Linear interpolation between closest ranks.
    pos = (q / 100.0) * (len(sorted_values) - 1)
    lo = int(np.floor(pos))
    hi = int(np.ceil(pos))
    t = pos - lo
    return float(sorted_values[lo] * (1.0 - t) + sorted_values[hi] * t)


def _summarize_ms(values_s: List[float]) -> TimingSummary:
    ms = sorted(v * 1000.0 for v in values_s)
    return TimingSummary(
        n=len(ms),
        mean_ms=float(statistics.fmean(ms)),
        p50_ms=_percentile(ms, 50.0),
        p95_ms=_percentile(ms, 95.0),
    )


def synthetic_output(num_classes: int, num_proposals: int, input_size: int, seed: int = 0) -> np.ndarray:
    """Random ``[4 + num_classes, num_proposals]`` tensor with sigmoid-like scores."""
    rng = np.random.default_rng(seed)
    out = np.empty((4 + num_classes, num_proposals), dtype=np.float32)
    out[0:2] = rng.uniform(0, input_size, size=(2, num_proposals))
    out[2:4] = rng.uniform(8, input_size / 4, size=(2, num_proposals))
    # Mostly background, with a sparse set of confident proposals.
    out[4:] = rng.beta(0.5, 8.0, size=(num_classes, num_proposals))
    return out


def main() -> int:
    parser = argparse.ArgumentParser(description="Benchmark YOLO26 post-processing on a synthetic output tensor.")
    parser.add_argument("--classes", type=int, default=80)
    parser.add_argument("--proposals", type=int, default=8400)
    parser.add_argument("--imgsz", type=int, default=640)
    parser.add_argument("--orig-w", type=int, default=1280)
    parser.add_argument("--orig-h", type=int, default=720)
    parser.add_argument("--conf", type=float, default=0.50)
    parser.add_argument("--iou", type=float, default=0.45)
    parser.add_argument("--agnostic", action="store_true")
    parser.add_argument("--warmup", type=int, default=5)
    parser.add_argument("--repeats", type=int, default=50)
    args = parser.parse_args()

    if args.repeats < 1:
        raise ValueError("--repeats must be >= 1")
    if args.warmup < 0:
        raise ValueError("--warmup must be >= 0")

    pred = synthetic_output(int(args.classes), int(args.proposals), int(args.imgsz))
    transform = compute_letterbox(int(args.orig_w), int(args.orig_h), int(args.imgsz))
    post = YoloPostprocessor(
        PostprocessConfig(
            conf_threshold=float(args.conf),
            iou_threshold=float(args.iou),
            agnostic=bool(args.agnostic),
            num_classes=int(args.classes),
        )
    )

    for _ in range(int(args.warmup)):
        post.process(pred, transform)

    times: List[float] = []
    last = None
    for _ in range(int(args.repeats)):
        t0 = time.perf_counter()
        last = post.process_with_stats(pred, transform)
        times.append(time.perf_counter() - t0)

    s = _summarize_ms(times)
    print(f"postprocess: n={s.n} mean={s.mean_ms:.3f}ms p50={s.p50_ms:.3f}ms p95={s.p95_ms:.3f}ms")
    if last is not None:
        print(
            f"candidates={last.num_candidates} after_nms={last.num_after_nms} "
            f"global_max={last.global_max_score:.3f}"
        )
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
