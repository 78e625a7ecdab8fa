import unittest

import numpy as np

from yolo_postkit.geometry import iou
from yolo_postkit.nms import NMSConfig, nms_per_class, nms_sorted
from yolo_postkit.sort import sort_by_confidence
from yolo_postkit.types import Detection


def _det(x, y, w, h, score, label=0):
    return Detection(x=float(x), y=float(y), width=float(w), height=float(h), score=score, label=label)


class TestNMS(unittest.TestCase):
    def test_empty(self) -> None:
        self.assertEqual(nms_sorted([], NMSConfig()), [])
        self.assertEqual(nms_per_class([], NMSConfig()), [])

    def test_suppresses_overlap(self) -> None:
        dets = [
            _det(0, 0, 10, 10, 0.9),
            _det(1, 1, 10, 10, 0.8),
            _det(50, 50, 10, 10, 0.7),
        ]
        self.assertEqual(nms_sorted(dets, NMSConfig(iou_threshold=0.45)), [0, 2])

    def test_equal_iou_is_kept(self) -> None:
        # IoU of these two is exactly 1/3
        dets = [_det(0, 0, 10, 10, 0.9), _det(0, 5, 10, 10, 0.8)]
        self.assertEqual(nms_sorted(dets, NMSConfig(iou_threshold=1.0 / 3.0)), [0, 1])
        self.assertEqual(nms_sorted(dets, NMSConfig(iou_threshold=0.3)), [0])

    def test_only_kept_boxes_suppress(self) -> None:
        # b is suppressed by a; c overlaps b but not a, so it survives.
        dets = [
            _det(0, 0, 10, 10, 0.9),
            _det(6, 0, 10, 10, 0.8),
            _det(12, 0, 10, 10, 0.7),
        ]
        self.assertEqual(nms_sorted(dets, NMSConfig(iou_threshold=0.2)), [0, 2])

    def test_zero_area_boxes_do_not_crash(self) -> None:
        dets = [_det(5, 5, 0, 0, 0.9), _det(5, 5, 0, 0, 0.8), _det(0, 0, 10, 10, 0.7)]
        self.assertEqual(nms_sorted(dets, NMSConfig(iou_threshold=0.5)), [0, 1, 2])

    def test_max_detections(self) -> None:
        dets = [_det(i * 20, 0, 10, 10, 1.0 - i * 0.1) for i in range(5)]
        self.assertEqual(nms_sorted(dets, NMSConfig(iou_threshold=0.5, max_detections=2)), [0, 1])

    def test_per_class(self) -> None:
        dets = [
            _det(0, 0, 10, 10, 0.9, label=0),
            _det(1, 1, 10, 10, 0.8, label=1),
            _det(1, 0, 10, 10, 0.7, label=0),
        ]
        self.assertEqual(nms_per_class(dets, NMSConfig(iou_threshold=0.45)), [0, 1])
        self.assertEqual(nms_sorted(dets, NMSConfig(iou_threshold=0.45)), [0])

    def test_invalid_threshold(self) -> None:
        with self.assertRaises(ValueError):
            NMSConfig(iou_threshold=1.5)
        with self.assertRaises(ValueError):
            NMSConfig(max_detections=0)

    def test_random_no_kept_pair_above_threshold(self) -> None:
        rng = np.random.default_rng(0)
        thr = 0.4
        for _ in range(10):
            dets = [
                _det(*rng.uniform(0, 100, size=2), *rng.uniform(5, 40, size=2), float(rng.uniform()))
                for _ in range(60)
            ]
            sort_by_confidence(dets)
            keep = nms_sorted(dets, NMSConfig(iou_threshold=thr))
            self.assertEqual(keep, sorted(keep))
            kept = [dets[i] for i in keep]
            for i in range(len(kept)):
                for j in range(i + 1, len(kept)):
                    self.assertLessEqual(iou(kept[i], kept[j]), thr + 1e-9)
            # Every dropped box overlaps some kept box that scores at least as high
            for idx in set(range(len(dets))) - set(keep):
                self.assertTrue(any(iou(dets[idx], dets[k]) > thr - 1e-9 for k in keep if k < idx))


if __name__ == "__main__":
    unittest.main()
