"""
Inference backends for yolo26_kit.

Each backend exposes ``infer(blob) -> np.ndarray`` where ``blob`` is a (1, 3, S, S)
float32 array and the result is the raw ``[4 + num_classes, num_proposals]`` output
(optionally with a leading batch axis of 1). Runtimes are imported lazily so
pre/post-processing works without any of them installed.
"""

from __future__ import annotations

__all__ = []
