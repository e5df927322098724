from __future__ import annotations

import argparse
import logging
from pathlib import Path

import cv2

from yolo26_kit import ModelConfig, class_name, detect, load_class_names, load_model, load_model_config


def read_image(path: str):
    img = cv2.imread(path)
    if img is None:
        raise FileNotFoundError(f"Could not read image at path: {path}")
    return img


def main() -> int:
    parser = argparse.ArgumentParser(description="Run YOLO26 detection on a single image.")
    parser.add_argument("image", help="Path to an input image.")
    parser.add_argument(
        "--model",
        default=None,
        help="ncnn model id, .onnx or TorchScript file (default: config model_id, else Models/yolo26n).",
    )
    parser.add_argument("--config", default=None, help="Optional model config JSON.")
    parser.add_argument("--backend", default=None, help="Force backend: ncnn / onnxruntime / torchscript.")
    parser.add_argument("--imgsz", type=int, default=640, help="Square model input size.")
    parser.add_argument("--gpu", action="store_true", help="Prefer GPU; falls back to CPU if unavailable.")
    parser.add_argument("--conf", type=float, default=0.50, help="Confidence threshold.")
    parser.add_argument("--iou", type=float, default=0.45, help="IoU threshold for NMS (<= 0 disables NMS).")
    parser.add_argument("--agnostic", action="store_true", help="Class-agnostic NMS.")
    parser.add_argument("--names", default=None, help="Optional metadata.yaml with class names.")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging.")
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if args.config is not None:
        config = load_model_config(Path(args.config))
    else:
        config = ModelConfig(
            model_id="Models/yolo26n",
            input_size=int(args.imgsz),
            use_gpu=bool(args.gpu),
            backend=args.backend,
        )

    model = load_model(args.model, config)
    names = load_class_names(args.names) if args.names else None

    image = read_image(args.image)
    detections = detect(model, image, args.conf, args.iou, agnostic=args.agnostic)

    for det in detections:
        x, y, w, h = det.as_xywh()
        print(f"{class_name(det.class_id, names)} {det.score:.3f} x={x:.1f} y={y:.1f} w={w:.1f} h={h:.1f}")
    print(f"detections={len(detections)}")

    return 0


if __name__ == "__main__":
    raise SystemExit(main())
