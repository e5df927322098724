from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional, Tuple


SUPPORTED_BACKENDS = ("ncnn", "onnxruntime", "torchscript")


@dataclass(frozen=True)
class ModelConfig:
    """
    Load-time model settings. Read-only once a model is loaded.

    Input pixels are normalized as ``(pixel - mean_vals[c]) * norm_vals[c]``.
    """

    # ncnn model id (e.g. "models/yolo26n") or model file; used when load_model gets no path.
    model_id: Optional[str] = None
    input_size: int = 640
    mean_vals: Tuple[float, float, float] = (0.0, 0.0, 0.0)
    norm_vals: Tuple[float, float, float] = (1 / 255.0, 1 / 255.0, 1 / 255.0)
    use_gpu: bool = False
    num_classes: int = 80
    # None infers the backend from the model path.
    backend: Optional[str] = None
    pad_value: int = 114

    def __post_init__(self) -> None:
        if self.input_size < 32:
            raise ValueError("input_size must be >= 32")
        if len(self.mean_vals) != 3 or len(self.norm_vals) != 3:
            raise ValueError("mean_vals and norm_vals must have exactly 3 entries")
        if self.num_classes < 1:
            raise ValueError("num_classes must be >= 1")
        if self.backend is not None and self.backend.lower() not in SUPPORTED_BACKENDS:
            raise ValueError(f"backend must be one of {SUPPORTED_BACKENDS}, got {self.backend!r}")
        if not 0 <= self.pad_value <= 255:
            raise ValueError("pad_value must be in [0, 255]")


def _require_triplet(payload: Dict[str, Any], key: str) -> Tuple[float, float, float]:
    value = payload[key]
    if not isinstance(value, list) or len(value) != 3:
        raise ValueError(f"{key} must be a list of 3 numbers")
    for v in value:
        if isinstance(v, bool) or not isinstance(v, (int, float)):
            raise ValueError(f"{key} must be a list of 3 numbers")
    return float(value[0]), float(value[1]), float(value[2])


def _optional_int(payload: Dict[str, Any], key: str, default: int) -> int:
    if key not in payload:
        return default
    value = payload[key]
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"{key} must be an integer")
    return int(value)


def load_model_config(path: Path) -> ModelConfig:
    if not path.exists():
        raise FileNotFoundError(f"Model config not found: {path}")
    raw = path.read_text(encoding="utf-8")
    try:
        payload = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise ValueError(f"Invalid model config JSON: {path}") from exc
    if not isinstance(payload, dict):
        raise ValueError("Model config must be a JSON object")

    allowed = {
        "model_id",
        "input_size",
        "mean_vals",
        "norm_vals",
        "use_gpu",
        "num_classes",
        "backend",
        "pad_value",
    }
    unknown = sorted(set(payload.keys()) - allowed)
    if unknown:
        raise ValueError(f"Unknown model config keys: {unknown}")

    defaults = ModelConfig()
    mean_vals = _require_triplet(payload, "mean_vals") if "mean_vals" in payload else defaults.mean_vals
    norm_vals = _require_triplet(payload, "norm_vals") if "norm_vals" in payload else defaults.norm_vals

    use_gpu = payload.get("use_gpu", False)
    if not isinstance(use_gpu, bool):
        raise ValueError("use_gpu must be a boolean")
    backend = payload.get("backend")
    if backend is not None and not isinstance(backend, str):
        raise ValueError("backend must be a string if provided")
    model_id = payload.get("model_id")
    if model_id is not None and not isinstance(model_id, str):
        raise ValueError("model_id must be a string if provided")

    return ModelConfig(
        model_id=model_id,
        input_size=_optional_int(payload, "input_size", defaults.input_size),
        mean_vals=mean_vals,
        norm_vals=norm_vals,
        use_gpu=use_gpu,
        num_classes=_optional_int(payload, "num_classes", defaults.num_classes),
        backend=backend,
        pad_value=_optional_int(payload, "pad_value", defaults.pad_value),
    )
