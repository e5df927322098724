import unittest

import numpy as np

from yolo26_kit.nms import NMSConfig, iou, nms, nms_sorted_indices
from yolo26_kit.postprocess import sort_by_score
from yolo26_kit.types import Detection


def _det(x: float, y: float, w: float, h: float, score: float, class_id: int = 0) -> Detection:
    return Detection(x=x, y=y, width=w, height=h, score=score, class_id=class_id)


class TestIoU(unittest.TestCase):
    def test_identical_boxes(self) -> None:
        a = _det(0, 0, 10, 10, 0.9)
        self.assertAlmostEqual(iou(a, a), 1.0)

    def test_partial_overlap(self) -> None:
        a = _det(0, 0, 10, 10, 0.9)
        b = _det(1, 1, 10, 10, 0.8)
        self.assertAlmostEqual(iou(a, b), 81.0 / 119.0)

    def test_disjoint_boxes(self) -> None:
        self.assertEqual(iou(_det(0, 0, 5, 5, 0.9), _det(10, 10, 5, 5, 0.8)), 0.0)

    def test_degenerate_boxes_have_zero_iou(self) -> None:
        a = _det(3, 3, 0, 0, 0.9)
        self.assertEqual(iou(a, a), 0.0)


class TestNMS(unittest.TestCase):
    def test_overlapping_same_class_suppressed(self) -> None:
        dets = [_det(0, 0, 10, 10, 0.9), _det(1, 1, 10, 10, 0.8)]
        kept = nms(dets, NMSConfig(iou_threshold=0.45))
        self.assertEqual(kept, [dets[0]])

    def test_per_class_vs_agnostic(self) -> None:
        dets = [_det(0, 0, 10, 10, 0.9, class_id=0), _det(1, 1, 10, 10, 0.8, class_id=1)]
        self.assertEqual(len(nms(dets, NMSConfig(iou_threshold=0.45, agnostic=False))), 2)
        self.assertEqual(nms(dets, NMSConfig(iou_threshold=0.45, agnostic=True)), [dets[0]])

    def test_iou_equal_to_threshold_is_kept(self) -> None:
        # IoU of these two boxes is exactly 0.5.
        dets = [_det(0, 0, 10, 10, 0.9), _det(0, 0, 10, 5, 0.8)]
        self.assertEqual(len(nms(dets, NMSConfig(iou_threshold=0.5))), 2)

    def test_non_positive_threshold_disables_suppression(self) -> None:
        dets = [_det(0, 0, 10, 10, 0.9), _det(0, 0, 10, 10, 0.8), _det(0, 0, 10, 10, 0.7)]
        self.assertEqual(nms(dets, NMSConfig(iou_threshold=0.0)), dets)
        self.assertEqual(nms(dets, NMSConfig(iou_threshold=-1.0)), dets)

    def test_suppressed_box_does_not_suppress(self) -> None:
        # b overlaps a heavily, c overlaps b but not a: c must survive.
        a = _det(0, 0, 10, 10, 0.9)
        b = _det(3, 0, 10, 10, 0.8)
        c = _det(8, 0, 10, 10, 0.7)
        kept = nms([a, b, c], NMSConfig(iou_threshold=0.3))
        self.assertEqual(kept, [a, c])

    def test_zero_area_candidates_are_kept(self) -> None:
        dets = [_det(5, 5, 0, 0, 0.9), _det(5, 5, 0, 0, 0.8)]
        self.assertEqual(len(nms(dets, NMSConfig(iou_threshold=0.45))), 2)

    def test_max_detections(self) -> None:
        dets = [_det(i * 20, 0, 10, 10, 0.9 - i * 0.1) for i in range(5)]
        kept = nms(dets, NMSConfig(iou_threshold=0.45, max_detections=3))
        self.assertEqual(kept, dets[:3])

    def test_empty(self) -> None:
        self.assertEqual(nms([], NMSConfig()), [])
        keep = nms_sorted_indices(np.zeros((0, 4)), np.zeros((0,), dtype=np.int64), 0.45)
        self.assertEqual(keep.shape, (0,))

    def test_output_is_ordered_subsequence(self) -> None:
        rng = np.random.default_rng(3)
        dets = sort_by_score(
            [
                _det(*rng.uniform(0, 100, size=2), *rng.uniform(5, 40, size=2), float(s), int(c))
                for s, c in zip(rng.uniform(0, 1, size=60), rng.integers(0, 3, size=60))
            ]
        )
        kept = nms(dets, NMSConfig(iou_threshold=0.45))
        positions = [dets.index(d) for d in kept]
        self.assertEqual(positions, sorted(positions))

    def test_idempotent(self) -> None:
        rng = np.random.default_rng(11)
        dets = sort_by_score(
            [
                _det(*rng.uniform(0, 200, size=2), *rng.uniform(10, 60, size=2), float(s), int(c))
                for s, c in zip(rng.uniform(0, 1, size=80), rng.integers(0, 4, size=80))
            ]
        )
        for agnostic in (False, True):
            cfg = NMSConfig(iou_threshold=0.45, agnostic=agnostic)
            once = nms(dets, cfg)
            self.assertEqual(nms(once, cfg), once)


if __name__ == "__main__":
    unittest.main()
