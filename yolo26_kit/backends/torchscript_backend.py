from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Union

import numpy as np

from ..errors import ModelLoadError


logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


@dataclass(frozen=True)
class TorchScriptBackendConfig:
    """
    Configuration for TorchScript inference.

    - use_gpu: run on ``cuda`` when torch can see a device
    - output_index: if the model returns multiple outputs, select this index
    """

    use_gpu: bool = False
    output_index: int = 0


class TorchScriptBackend:
    """
    TorchScript backend using `torch.jit.load`; no model class code is needed.
    """

    def __init__(self, model_path: PathLike, cfg: TorchScriptBackendConfig = TorchScriptBackendConfig()):
        try:
            import torch  # type: ignore
        except Exception as e:  # pragma: no cover
            raise ModelLoadError("torch is required for the TorchScript backend. Install with `pip install torch`.") from e

        self._torch = torch
        self.model_path = Path(model_path)
        if not self.model_path.exists():
            raise ModelLoadError(f"TorchScript model not found: {self.model_path}")

        use_gpu = cfg.use_gpu
        if use_gpu and not torch.cuda.is_available():
            logger.warning("GPU not available, falling back to CPU")
            use_gpu = False
        self.device = torch.device("cuda" if use_gpu else "cpu")
        self.output_index = cfg.output_index

        try:
            model = torch.jit.load(str(self.model_path), map_location=self.device)
        except Exception as e:
            raise ModelLoadError(f"Failed to load TorchScript model {self.model_path}: {e}") from e
        model.eval()
        self.model = model

    @property
    def device_name(self) -> str:
        return "GPU" if self.device.type == "cuda" else "CPU"

    def infer(self, blob: np.ndarray) -> np.ndarray:
        torch = self._torch
        x = torch.as_tensor(blob, device=self.device).float().contiguous()

        with torch.no_grad():
            y = self.model(x)

        if isinstance(y, (tuple, list)):
            y = y[self.output_index]

        return y.detach().to("cpu").numpy()
