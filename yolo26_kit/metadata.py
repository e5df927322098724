from __future__ import annotations

from typing import Dict, Mapping, Optional, Sequence, Union


COCO_CLASS_NAMES = (
    "person", "bicycle", "car", "motorcycle", "airplane", "bus", "train", "truck", "boat", "traffic light",
    "fire hydrant", "stop sign", "parking meter", "bench", "bird", "cat", "dog", "horse", "sheep", "cow",
    "elephant", "bear", "zebra", "giraffe", "backpack", "umbrella", "handbag", "tie", "suitcase", "frisbee",
    "skis", "snowboard", "sports ball", "kite", "baseball bat", "baseball glove", "skateboard", "surfboard",
    "tennis racket", "bottle", "wine glass", "cup", "fork", "knife", "spoon", "bowl", "banana", "apple",
    "sandwich", "orange", "broccoli", "carrot", "hot dog", "pizza", "donut", "cake", "chair", "couch",
    "potted plant", "bed", "dining table", "toilet", "tv", "laptop", "mouse", "remote", "keyboard", "cell phone",
    "microwave", "oven", "toaster", "sink", "refrigerator", "book", "clock", "vase", "scissors", "teddy bear",
    "hair drier", "toothbrush",
)


def class_name(class_id: int, names: Optional[Union[Mapping[int, str], Sequence[str]]] = None) -> str:
    """
    Human-readable label for ``class_id``; ``"unknown"`` when it is out of range.
    """

    if names is None:
        names = COCO_CLASS_NAMES
    if isinstance(names, Mapping):
        return names.get(class_id, "unknown")
    if 0 <= class_id < len(names):
        return names[class_id]
    return "unknown"


def load_class_names(metadata_path: str) -> Dict[int, str]:
    """
    Load class names from a lightweight ``metadata.yaml``:

        names:
          0: person
          1: bicycle
          ...

    Only the indented entries under ``names:`` are read; the first following
    top-level key ends the block, so keys after it (``imgsz:``, ``stride:`` ...)
    that happen to look like ``<int>: <value>`` are not mistaken for class names.
    PyYAML is not needed.
    """

    names: Dict[int, str] = {}
    in_names = False

    with open(metadata_path, "r", encoding="utf-8") as f:
        for raw in f:
            line = raw.strip()
            if not line or line.startswith("#"):
                continue
            if line == "names:":
                in_names = True
                continue
            if not in_names:
                continue
            # A new top-level key ends the block.
            if not raw[:1].isspace():
                break

            if ":" not in line:
                continue
            left, right = line.split(":", 1)
            left = left.strip()
            if not left.isdigit():
                continue
            names[int(left)] = right.strip().strip("'").strip('"')

    return names
