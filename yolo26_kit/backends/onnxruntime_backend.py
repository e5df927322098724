from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Sequence, Union

import numpy as np

from ..errors import ModelLoadError


logger = logging.getLogger(__name__)

PathLike = Union[str, Path]

_GPU_PROVIDER = "CUDAExecutionProvider"
_CPU_PROVIDER = "CPUExecutionProvider"


@dataclass(frozen=True)
class OnnxRuntimeBackendConfig:
    """
    Configuration for ONNX Runtime inference.

    - use_gpu: prefer the CUDA provider when available
    - providers: explicit ORT providers; overrides use_gpu when given
    - input_name/output_name: override auto-selected I/O names if needed
    """

    use_gpu: bool = False
    providers: Optional[Sequence[str]] = None
    input_name: Optional[str] = None
    output_name: Optional[str] = None


class OnnxRuntimeBackend:
    """
    Minimal ONNX Runtime backend.

    Expects an NCHW float32 blob shaped (1, 3, S, S) and returns the primary output.
    """

    def __init__(self, model_path: PathLike, cfg: OnnxRuntimeBackendConfig = OnnxRuntimeBackendConfig()):
        try:
            import onnxruntime as ort  # type: ignore
        except Exception as e:  # pragma: no cover
            raise ModelLoadError(
                "onnxruntime is required for the ONNX backend. Install it with `pip install onnxruntime` "
                "(or `onnxruntime-gpu`)."
            ) from e

        self._ort = ort
        self.model_path = Path(model_path)
        if not self.model_path.exists():
            raise ModelLoadError(f"ONNX model not found: {self.model_path}")

        if cfg.providers is not None:
            providers = list(cfg.providers)
        elif cfg.use_gpu and _GPU_PROVIDER in ort.get_available_providers():
            providers = [_GPU_PROVIDER, _CPU_PROVIDER]
        else:
            if cfg.use_gpu:
                logger.warning("GPU not available, falling back to CPU")
            providers = [_CPU_PROVIDER]

        try:
            self.session = ort.InferenceSession(
                str(self.model_path), sess_options=ort.SessionOptions(), providers=providers
            )
        except Exception as e:
            raise ModelLoadError(f"Failed to create ONNX Runtime session for {self.model_path}: {e}") from e

        self.input_name = cfg.input_name or self.session.get_inputs()[0].name
        self.output_name = cfg.output_name or self.session.get_outputs()[0].name

    @property
    def providers_in_use(self) -> Sequence[str]:
        return tuple(self.session.get_providers())

    @property
    def device_name(self) -> str:
        return "GPU" if _GPU_PROVIDER in self.providers_in_use else "CPU"

    def infer(self, blob: np.ndarray) -> np.ndarray:
        outputs = self.session.run([self.output_name], {self.input_name: blob})
        return outputs[0]
