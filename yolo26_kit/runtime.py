from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, List, Optional, Sequence, Union

import numpy as np

from .config import ModelConfig
from .errors import InputValidationError
from .letterbox import compute_letterbox, letterbox
from .postprocess import PostprocessConfig, PostprocessResult, YoloPostprocessor
from .types import Detection, LetterboxTransform


logger = logging.getLogger(__name__)

PathLike = Union[str, Path]

CHANNEL_ORDERS = ("bgr", "rgb", "bgra", "rgba")


def find_project_root(
    start: Optional[PathLike] = None,
    markers: Sequence[str] = ("pyproject.toml", ".git"),
) -> Path:
    """
    Best-effort project root discovery: the first ancestor holding one of ``markers``.
    """

    p = Path(start) if start is not None else Path.cwd()
    p = p.resolve()
    if p.is_file():
        p = p.parent

    for parent in (p, *p.parents):
        for m in markers:
            if (parent / m).exists():
                return parent
    return p


def resolve_path(path: PathLike, root: Optional[PathLike] = "auto") -> Path:
    """
    Absolute paths are returned as-is; relative ones resolve against ``root``
    (or the project root when ``root`` is "auto"/None).
    """

    p = Path(path)
    if p.is_absolute():
        return p

    if root == "auto" or root is None:
        base = find_project_root()
    else:
        base = Path(root).resolve()

    return (base / p).resolve()


@dataclass(frozen=True)
class PreprocessResult:
    blob: np.ndarray
    transform: LetterboxTransform


def _to_rgb(image: np.ndarray, channel_order: str) -> np.ndarray:
    order = channel_order.lower()
    if order not in CHANNEL_ORDERS:
        raise InputValidationError(f"channel_order must be one of {CHANNEL_ORDERS}, got {channel_order!r}")

    expected_channels = 4 if order.endswith("a") else 3
    if image.ndim != 3 or image.shape[2] != expected_channels:
        raise InputValidationError(
            f"Expected image shape (H, W, {expected_channels}) for {order!r}, got {image.shape}"
        )

    if order == "bgr":
        rgb = image[:, :, ::-1]
    elif order == "bgra":
        rgb = image[:, :, 2::-1]
    else:
        rgb = image[:, :, :3]
    return np.ascontiguousarray(rgb)


class YoloModel:
    """
    Handle for one loaded model: preprocess (letterbox) -> inference -> postprocess.

    Inference goes through a per-handle lock because engine scratch buffers are not
    reentrant. Pre/post-processing run outside the lock, so several handles (or
    several threads on one handle) only contend on the inference step.
    """

    def __init__(
        self,
        infer_fn: Callable[[np.ndarray], np.ndarray],
        config: ModelConfig = ModelConfig(),
        *,
        backend: Optional[object] = None,
        backend_name: Optional[str] = None,
        model_id: Optional[str] = None,
    ):
        self._infer_fn = infer_fn
        self._lock = threading.Lock()
        self.config = config
        self.backend = backend
        self.backend_name = backend_name
        self.model_id = model_id if model_id is not None else config.model_id

    def preprocess(self, image: np.ndarray, channel_order: str = "bgr") -> PreprocessResult:
        if image is None or not isinstance(image, np.ndarray):
            raise InputValidationError("image must be a NumPy array.")
        if image.dtype != np.uint8:
            raise InputValidationError(f"Expected a uint8 image, got dtype {image.dtype}")
        if image.ndim != 3:
            raise InputValidationError(f"Expected image shape (H, W, C), got {image.shape}")

        img_h, img_w = image.shape[:2]
        transform = compute_letterbox(img_w, img_h, self.config.input_size)
        rgb = _to_rgb(image, channel_order)
        logger.debug("input: w=%d h=%d order=%s", img_w, img_h, channel_order)

        pad = self.config.pad_value
        padded = letterbox(rgb, transform, color=(pad, pad, pad))

        mean = np.asarray(self.config.mean_vals, dtype=np.float32)
        norm = np.asarray(self.config.norm_vals, dtype=np.float32)
        blob = (padded.astype(np.float32) - mean) * norm
        # HWC -> CHW, add batch
        blob = np.ascontiguousarray(np.transpose(blob, (2, 0, 1))[None, ...])

        return PreprocessResult(blob=blob, transform=transform)

    def infer(self, blob: np.ndarray) -> np.ndarray:
        with self._lock:
            out = self._infer_fn(blob)
        logger.debug("output shape: %s", getattr(out, "shape", None))
        return out

    def detect_with_stats(
        self,
        image: np.ndarray,
        post_cfg: PostprocessConfig,
        channel_order: str = "bgr",
    ) -> PostprocessResult:
        start = time.perf_counter()
        prep = self.preprocess(image, channel_order)
        preds = self.infer(prep.blob)
        result = YoloPostprocessor(post_cfg).process_with_stats(preds, prep.transform)
        logger.debug("%.2fms detect", (time.perf_counter() - start) * 1000.0)
        return result

    def detect(
        self,
        image: np.ndarray,
        conf_threshold: float = 0.50,
        iou_threshold: float = 0.45,
        *,
        agnostic: bool = False,
        channel_order: str = "bgr",
    ) -> List[Detection]:
        post_cfg = PostprocessConfig(
            conf_threshold=conf_threshold,
            iou_threshold=iou_threshold,
            agnostic=agnostic,
            num_classes=self.config.num_classes,
        )
        return self.detect_with_stats(image, post_cfg, channel_order).detections

    __call__ = detect


def detect(
    model: YoloModel,
    image: np.ndarray,
    conf_threshold: float = 0.50,
    iou_threshold: float = 0.45,
    *,
    agnostic: bool = False,
    channel_order: str = "bgr",
) -> List[Detection]:
    """
    Run one image through ``model`` and return detections in original image
    coordinates, largest box first.
    """

    return model.detect(
        image,
        conf_threshold,
        iou_threshold,
        agnostic=agnostic,
        channel_order=channel_order,
    )


def _infer_backend(path: Path) -> str:
    suffix = path.suffix.lower()
    if suffix == ".onnx":
        return "onnxruntime"
    if suffix in {".torchscript", ".ts", ".pt"}:
        return "torchscript"
    if suffix in {"", ".param", ".bin", ".ncnn"}:
        return "ncnn"
    raise ValueError(f"Could not infer backend from extension '{suffix}'. Set ModelConfig.backend explicitly.")


def load_model(
    model_path: Optional[PathLike] = None,
    config: ModelConfig = ModelConfig(),
    *,
    root: Optional[PathLike] = "auto",
    onnx_providers: Optional[Sequence[str]] = None,
    ncnn_threads: Optional[int] = None,
    torch_output_index: int = 0,
) -> YoloModel:
    """
    Load a model from disk and wrap it in a YoloModel handle.

    Args:
        model_path: ncnn model id/path (``models/yolo26n`` -> ``.ncnn.param``/``.ncnn.bin``),
            ``.onnx`` file, or TorchScript file; relative paths resolve against ``root``.
            None falls back to ``config.model_id``.
        config: load-time settings; ``config.backend`` overrides extension-based selection

    Raises:
        ModelLoadError: the backend runtime is missing or rejects the model files
    """

    if model_path is None:
        model_path = config.model_id
    if model_path is None:
        raise ValueError("No model given: pass model_path or set ModelConfig.model_id.")

    resolved = resolve_path(model_path, root=root)
    chosen = (config.backend or _infer_backend(resolved)).lower()

    if chosen == "ncnn":
        from .backends.ncnn_backend import NcnnBackend, NcnnBackendConfig

        backend = NcnnBackend(resolved, NcnnBackendConfig(use_gpu=config.use_gpu, num_threads=ncnn_threads))
    elif chosen == "onnxruntime":
        from .backends.onnxruntime_backend import OnnxRuntimeBackend, OnnxRuntimeBackendConfig

        backend = OnnxRuntimeBackend(
            resolved, OnnxRuntimeBackendConfig(use_gpu=config.use_gpu, providers=onnx_providers)
        )
    elif chosen == "torchscript":
        from .backends.torchscript_backend import TorchScriptBackend, TorchScriptBackendConfig

        backend = TorchScriptBackend(
            resolved, TorchScriptBackendConfig(use_gpu=config.use_gpu, output_index=torch_output_index)
        )
    else:
        raise ValueError(f"Unsupported backend: {chosen!r}")

    logger.info("Loaded model %s with %s on %s", resolved, chosen, backend.device_name)
    return YoloModel(backend.infer, config, backend=backend, backend_name=chosen, model_id=str(resolved))
