from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Tuple, Union

import numpy as np

from ..errors import ModelLoadError


logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


@dataclass(frozen=True)
class NcnnBackendConfig:
    """
    Configuration for ncnn inference.

    - use_gpu: run on Vulkan if a GPU is present (falls back to CPU otherwise)
    - num_threads: CPU threads; None lets ncnn pick the big-core count
    """

    use_gpu: bool = False
    num_threads: Optional[int] = None
    input_name: str = "in0"
    output_name: str = "out0"


def ncnn_model_files(model: PathLike) -> Tuple[Path, Path]:
    """
    Resolve the ``.param``/``.bin`` pair for a model.

    ``models/yolo26n`` -> ``models/yolo26n.ncnn.param`` + ``models/yolo26n.ncnn.bin``;
    ``models/yolo26n.ncnn`` names the same pair; a path already ending in ``.param``
    or ``.bin`` names one file of the pair.
    """

    p = Path(model)
    suffix = p.suffix.lower()
    if suffix == ".param":
        return p, p.with_suffix(".bin")
    if suffix == ".bin":
        return p.with_suffix(".param"), p
    if suffix == ".ncnn":
        return p.with_name(p.name + ".param"), p.with_name(p.name + ".bin")
    return Path(f"{p}.ncnn.param"), Path(f"{p}.ncnn.bin")


class NcnnBackend:
    """
    Minimal ncnn runner for YOLO26 exports (``in0`` -> ``out0``).
    """

    def __init__(self, model: PathLike, cfg: NcnnBackendConfig = NcnnBackendConfig()):
        try:
            import ncnn  # type: ignore
        except Exception as e:  # pragma: no cover
            raise ModelLoadError("ncnn is required for the ncnn backend. Install it with `pip install ncnn`.") from e

        self._ncnn = ncnn
        self.param_path, self.bin_path = ncnn_model_files(model)
        for path in (self.param_path, self.bin_path):
            if not path.exists():
                raise ModelLoadError(f"ncnn model file not found: {path}")

        use_gpu = cfg.use_gpu
        if use_gpu and ncnn.get_gpu_count() == 0:
            logger.warning("GPU not available, falling back to CPU")
            use_gpu = False
        self.use_gpu = use_gpu

        net = ncnn.Net()
        net.opt.use_vulkan_compute = use_gpu
        if use_gpu:
            # FP32 on GPU
            net.opt.use_fp16_packed = False
            net.opt.use_fp16_storage = False
            net.opt.use_fp16_arithmetic = False
        if cfg.num_threads is not None:
            net.opt.num_threads = cfg.num_threads

        if net.load_param(str(self.param_path)) != 0:
            raise ModelLoadError(f"Failed to load ncnn param: {self.param_path}")
        if net.load_model(str(self.bin_path)) != 0:
            raise ModelLoadError(f"Failed to load ncnn weights: {self.bin_path}")

        self.net = net
        self.input_name = cfg.input_name
        self.output_name = cfg.output_name

    @property
    def device_name(self) -> str:
        return "GPU (FP32)" if self.use_gpu else "CPU"

    def infer(self, blob: np.ndarray) -> np.ndarray:
        x = np.asarray(blob, dtype=np.float32)
        if x.ndim == 4:
            if x.shape[0] != 1:
                raise ValueError(f"Batch > 1 is not supported (got shape {x.shape}).")
            x = x[0]
        x = np.ascontiguousarray(x)

        ex = self.net.create_extractor()
        ex.set_light_mode(True)
        ex.input(self.input_name, self._ncnn.Mat(x))
        ret, out = ex.extract(self.output_name)
        if ret != 0:
            raise RuntimeError(f"ncnn extract({self.output_name!r}) failed with code {ret}.")
        return np.array(out)
