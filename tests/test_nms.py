import unittest

import numpy as np

from yolo_live.nms import NMSConfig, iou, nms, suppress


class TestIoU(unittest.TestCase):
    def test_identical(self) -> None:
        self.assertEqual(iou((0, 0, 10, 10), (0, 0, 10, 10)), 1.0)

    def test_half_overlap(self) -> None:
        self.assertEqual(iou((0, 0, 10, 10), (0, 0, 10, 5)), 0.5)

    def test_disjoint_and_touching(self) -> None:
        self.assertEqual(iou((0, 0, 10, 10), (20, 20, 5, 5)), 0.0)
        self.assertEqual(iou((0, 0, 10, 10), (10, 0, 10, 10)), 0.0)

    def test_degenerate_box(self) -> None:
        self.assertEqual(iou((0, 0, 0, 0), (0, 0, 0, 0)), 0.0)


class TestSuppress(unittest.TestCase):
    def test_full_overlap_keeps_higher(self) -> None:
        boxes = np.array([[10, 10, 50, 50], [10, 10, 50, 50]], dtype=np.float32)
        scores = np.array([0.6, 0.9], dtype=np.float32)
        self.assertEqual(suppress(boxes, scores, iou_threshold=0.45), [1])

    def test_disjoint_boxes_kept_by_descending_score(self) -> None:
        boxes = np.array([[0, 0, 10, 10], [100, 100, 10, 10]], dtype=np.float32)
        scores = np.array([0.5, 0.8], dtype=np.float32)
        self.assertEqual(suppress(boxes, scores), [1, 0])

    def test_score_threshold(self) -> None:
        boxes = np.array([[0, 0, 10, 10], [100, 100, 10, 10], [200, 200, 10, 10]], dtype=np.float32)
        scores = np.array([0.19, 0.2, 0.9], dtype=np.float32)
        keep = suppress(boxes, scores, score_threshold=0.2)
        self.assertEqual(keep, [2, 1])

    def test_iou_equal_to_threshold_is_kept(self) -> None:
        boxes = np.array([[0, 0, 10, 10], [0, 0, 10, 5]], dtype=np.float32)
        scores = np.array([0.9, 0.8], dtype=np.float32)
        self.assertEqual(suppress(boxes, scores, iou_threshold=0.5), [0, 1])
        self.assertEqual(suppress(boxes, scores, iou_threshold=0.49), [0])

    def test_max_outputs(self) -> None:
        boxes = np.array([[0, 0, 10, 10], [100, 0, 10, 10], [200, 0, 10, 10]], dtype=np.float32)
        scores = np.array([0.3, 0.9, 0.5], dtype=np.float32)
        self.assertEqual(suppress(boxes, scores, max_outputs=2), [1, 2])
        self.assertEqual(suppress(boxes, scores, max_outputs=0), [])

    def test_ties_keep_index_order(self) -> None:
        boxes = np.array([[0, 0, 10, 10], [100, 0, 10, 10], [200, 0, 10, 10]], dtype=np.float32)
        scores = np.array([0.5, 0.5, 0.5], dtype=np.float32)
        self.assertEqual(suppress(boxes, scores), [0, 1, 2])

        same = np.array([[0, 0, 10, 10]] * 3, dtype=np.float32)
        self.assertEqual(suppress(same, scores), [0])

    def test_greedy_chain(self) -> None:
        # b overlaps a and c; a suppresses b, so c survives.
        boxes = np.array([[0, 0, 10, 10], [4, 0, 10, 10], [8, 0, 10, 10]], dtype=np.float32)
        scores = np.array([0.9, 0.8, 0.7], dtype=np.float32)
        self.assertEqual(suppress(boxes, scores, iou_threshold=0.4), [0, 2])

    def test_class_agnostic_by_default(self) -> None:
        boxes = np.array([[0, 0, 10, 10], [1, 1, 10, 10]], dtype=np.float32)
        scores = np.array([0.9, 0.8], dtype=np.float32)
        class_ids = np.array([0, 2])
        self.assertEqual(suppress(boxes, scores, class_ids=class_ids), [0])

    def test_per_class(self) -> None:
        boxes = np.array([[0, 0, 10, 10], [1, 1, 10, 10], [0, 0, 10, 10]], dtype=np.float32)
        scores = np.array([0.9, 0.8, 0.7], dtype=np.float32)
        class_ids = np.array([0, 2, 0])
        keep = suppress(boxes, scores, class_ids=class_ids, class_agnostic=False)
        self.assertEqual(keep, [0, 1])

    def test_empty(self) -> None:
        self.assertEqual(suppress(np.zeros((0, 4)), np.zeros((0,))), [])

    def test_length_mismatch(self) -> None:
        with self.assertRaises(ValueError):
            suppress(np.zeros((2, 4)), np.zeros((3,)))

    def test_deterministic(self) -> None:
        rng = np.random.default_rng(3)
        boxes = np.concatenate([rng.uniform(0, 600, (200, 2)), rng.uniform(5, 80, (200, 2))], axis=1)
        scores = rng.uniform(0, 1, 200)
        self.assertEqual(suppress(boxes, scores), suppress(boxes, scores))

    def test_nms_config_wrapper(self) -> None:
        boxes = np.array([[10, 10, 50, 50], [10, 10, 50, 50]], dtype=np.float32)
        scores = np.array([0.9, 0.6], dtype=np.float32)
        self.assertEqual(nms(boxes, scores, NMSConfig()), [0])
        self.assertEqual(nms(boxes, scores, NMSConfig(score_threshold=0.95)), [])


if __name__ == "__main__":
    unittest.main()
