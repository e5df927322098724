import tempfile
import unittest
from pathlib import Path
from typing import List

import numpy as np

from yolo26_kit import (
    InputValidationError,
    ModelConfig,
    ModelLoadError,
    PostprocessConfig,
    YoloModel,
    detect,
    load_model,
)
from yolo26_kit.backends.ncnn_backend import ncnn_model_files


def _single_box_output(cx: float, cy: float, w: float, h: float, score: float = 0.9, num_classes: int = 80) -> np.ndarray:
    out = np.zeros((1, 4 + num_classes, 16), dtype=np.float32)
    out[0, 0:4, 0] = [cx, cy, w, h]
    out[0, 4 + 2, 0] = score
    return out


class _RecordingInfer:
    def __init__(self, output: np.ndarray):
        self.output = output
        self.blobs: List[np.ndarray] = []

    def __call__(self, blob: np.ndarray) -> np.ndarray:
        self.blobs.append(blob)
        return self.output


class TestPreprocess(unittest.TestCase):
    def setUp(self) -> None:
        self.model = YoloModel(_RecordingInfer(np.zeros((84, 0), dtype=np.float32)))

    def test_blob_layout_and_normalization(self) -> None:
        img = np.zeros((720, 1280, 3), dtype=np.uint8)
        img[:, :, 2] = 255  # pure red in BGR
        prep = self.model.preprocess(img, "bgr")
        self.assertEqual(prep.blob.shape, (1, 3, 640, 640))
        self.assertEqual(prep.blob.dtype, np.float32)
        # Image area: red channel first after BGR -> RGB.
        self.assertAlmostEqual(float(prep.blob[0, 0, 320, 320]), 1.0, places=5)
        self.assertAlmostEqual(float(prep.blob[0, 2, 320, 320]), 0.0, places=5)
        # Padding area.
        self.assertAlmostEqual(float(prep.blob[0, 1, 0, 0]), 114 / 255.0, places=5)
        self.assertEqual(prep.transform.pad_top, 140)

    def test_rgba_alpha_is_stripped(self) -> None:
        img = np.zeros((64, 64, 4), dtype=np.uint8)
        img[:, :, 0] = 255  # red in RGBA
        img[:, :, 3] = 7
        prep = self.model.preprocess(img, "rgba")
        self.assertEqual(prep.blob.shape[1], 3)
        self.assertAlmostEqual(float(prep.blob[0, 0, 320, 320]), 1.0, places=5)

    def test_bgra(self) -> None:
        img = np.zeros((64, 64, 4), dtype=np.uint8)
        img[:, :, 0] = 255  # blue in BGRA
        prep = self.model.preprocess(img, "bgra")
        self.assertAlmostEqual(float(prep.blob[0, 2, 320, 320]), 1.0, places=5)
        self.assertAlmostEqual(float(prep.blob[0, 0, 320, 320]), 0.0, places=5)

    def test_custom_mean_and_norm(self) -> None:
        model = YoloModel(
            _RecordingInfer(np.zeros((84, 0))),
            ModelConfig(input_size=64, mean_vals=(10.0, 10.0, 10.0), norm_vals=(0.5, 0.5, 0.5)),
        )
        img = np.full((64, 64, 3), 30, dtype=np.uint8)
        prep = model.preprocess(img, "rgb")
        self.assertTrue(np.allclose(prep.blob, 10.0))

    def test_invalid_images(self) -> None:
        with self.assertRaises(InputValidationError):
            self.model.preprocess(np.zeros((10, 10), dtype=np.uint8))
        with self.assertRaises(InputValidationError):
            self.model.preprocess(np.zeros((10, 10, 1), dtype=np.uint8))
        with self.assertRaises(InputValidationError):
            self.model.preprocess(np.zeros((10, 10, 3), dtype=np.float32))
        with self.assertRaises(InputValidationError):
            self.model.preprocess(np.zeros((0, 10, 3), dtype=np.uint8))
        with self.assertRaises(InputValidationError):
            self.model.preprocess(np.zeros((10, 10, 3), dtype=np.uint8), "bgra")
        with self.assertRaises(InputValidationError):
            self.model.preprocess(np.zeros((10, 10, 3), dtype=np.uint8), "yuv")
        with self.assertRaises(InputValidationError):
            self.model.preprocess("not an image")  # type: ignore[arg-type]


class TestDetect(unittest.TestCase):
    def test_end_to_end_maps_to_original(self) -> None:
        infer = _RecordingInfer(_single_box_output(320, 320, 100, 100))
        model = YoloModel(infer)
        img = np.zeros((720, 1280, 3), dtype=np.uint8)

        dets = detect(model, img)
        self.assertEqual(len(infer.blobs), 1)
        self.assertEqual(len(dets), 1)
        self.assertEqual(dets[0].class_id, 2)
        x, y, w, h = dets[0].as_xywh()
        self.assertAlmostEqual(x, 540.0)
        self.assertAlmostEqual(y, 260.0)
        self.assertAlmostEqual(w, 200.0)
        self.assertAlmostEqual(h, 200.0)

    def test_method_and_function_agree(self) -> None:
        model = YoloModel(_RecordingInfer(_single_box_output(100, 100, 50, 40, score=0.6)))
        img = np.zeros((480, 640, 3), dtype=np.uint8)
        self.assertEqual(model.detect(img, 0.5, 0.45), detect(model, img, 0.5, 0.45))
        self.assertEqual(detect(model, img, conf_threshold=0.7), [])

    def test_invalid_input_skips_inference(self) -> None:
        infer = _RecordingInfer(_single_box_output(320, 320, 100, 100))
        model = YoloModel(infer)
        with self.assertRaises(InputValidationError):
            detect(model, np.zeros((10, 10), dtype=np.uint8))
        self.assertEqual(infer.blobs, [])

    def test_wrong_output_shape_is_empty(self) -> None:
        model = YoloModel(_RecordingInfer(np.zeros((1, 85, 16), dtype=np.float32)))
        img = np.zeros((64, 64, 3), dtype=np.uint8)
        self.assertEqual(detect(model, img), [])
        result = model.detect_with_stats(img, PostprocessConfig())
        self.assertIsNotNone(result.shape_error)

    def test_thin_image_is_empty(self) -> None:
        infer = _RecordingInfer(np.zeros((84, 4), dtype=np.float32))
        model = YoloModel(infer)
        self.assertEqual(detect(model, np.zeros((2000, 1, 3), dtype=np.uint8)), [])
        self.assertEqual(infer.blobs[0].shape, (1, 3, 640, 640))

    def test_num_classes_follows_model_config(self) -> None:
        out = np.zeros((4 + 2, 4), dtype=np.float32)
        out[0:4, 0] = [32, 32, 10, 10]
        out[5, 0] = 0.8
        model = YoloModel(_RecordingInfer(out), ModelConfig(input_size=64, num_classes=2))
        dets = detect(model, np.zeros((64, 64, 3), dtype=np.uint8))
        self.assertEqual([d.class_id for d in dets], [1])


class TestLoadModel(unittest.TestCase):
    def test_unknown_extension(self) -> None:
        with self.assertRaises(ValueError):
            load_model("/tmp/model.xyz")

    def test_missing_files_raise_model_load_error(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            for name in ("missing.onnx", "missing.torchscript", "missing"):
                with self.assertRaises(ModelLoadError):
                    load_model(Path(tmp) / name)

    def test_model_id_from_config(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            config = ModelConfig(model_id=str(Path(tmp) / "missing.onnx"))
            with self.assertRaises(ModelLoadError):
                load_model(config=config)

    def test_no_model_given(self) -> None:
        with self.assertRaises(ValueError):
            load_model()

    def test_handle_keeps_model_id(self) -> None:
        infer = _RecordingInfer(np.zeros((84, 0), dtype=np.float32))
        self.assertEqual(YoloModel(infer, ModelConfig(model_id="models/yolo26n")).model_id, "models/yolo26n")
        self.assertEqual(YoloModel(infer, ModelConfig(model_id="a"), model_id="b").model_id, "b")
        self.assertIsNone(YoloModel(infer).model_id)


class TestNcnnModelFiles(unittest.TestCase):
    def test_model_id(self) -> None:
        want = (Path("models/yolo26n.ncnn.param"), Path("models/yolo26n.ncnn.bin"))
        self.assertEqual(ncnn_model_files("models/yolo26n"), want)
        self.assertEqual(ncnn_model_files("models/yolo26n.ncnn"), want)

    def test_explicit_file(self) -> None:
        want = (Path("models/x.param"), Path("models/x.bin"))
        self.assertEqual(ncnn_model_files("models/x.param"), want)
        self.assertEqual(ncnn_model_files(Path("models/x.bin")), want)


if __name__ == "__main__":
    unittest.main()
