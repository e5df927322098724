"""
Post-processing for YOLO26-style detectors.

Turns the raw ``[4 + num_classes, num_proposals]`` output into boxes in the
original image: decode -> score sort -> NMS -> inverse letterbox -> area sort.
Core functionality needs only NumPy (and OpenCV for letterboxing); inference
runtimes live in ``yolo26_kit.backends`` and are imported lazily.
"""

from .types import Detection, LetterboxTransform
from .errors import InputValidationError, ModelLoadError, ShapeMismatch, Yolo26Error
from .letterbox import compute_letterbox, letterbox
from .nms import NMSConfig, iou, nms
from .postprocess import (
    PostprocessConfig,
    PostprocessResult,
    YoloPostprocessor,
    decode_proposals,
    map_to_original,
    sort_by_area,
    sort_by_score,
)
from .config import ModelConfig, load_model_config
from .runtime import YoloModel, detect, load_model, find_project_root, resolve_path
from .metadata import COCO_CLASS_NAMES, class_name, load_class_names

__all__ = [
    "Detection",
    "LetterboxTransform",
    "Yolo26Error",
    "ShapeMismatch",
    "InputValidationError",
    "ModelLoadError",
    "compute_letterbox",
    "letterbox",
    "NMSConfig",
    "iou",
    "nms",
    "PostprocessConfig",
    "PostprocessResult",
    "YoloPostprocessor",
    "decode_proposals",
    "map_to_original",
    "sort_by_area",
    "sort_by_score",
    "ModelConfig",
    "load_model_config",
    "YoloModel",
    "detect",
    "load_model",
    "find_project_root",
    "resolve_path",
    "COCO_CLASS_NAMES",
    "class_name",
    "load_class_names",
]
