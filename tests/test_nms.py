import unittest

import numpy as np

from detect_kit.nms import NMSConfig, nms, suppress
from detect_kit.types import Detection


def _det(x1, y1, x2, y2, score, class_id=0, label="person") -> Detection:
    return Detection(x1=x1, y1=y1, x2=x2, y2=y2, score=score, class_id=class_id, label=label)


class TestSuppress(unittest.TestCase):
    def test_duplicates_collapse_to_highest_score(self) -> None:
        low = _det(101, 101, 201, 201, 0.6)
        high = _det(100, 100, 200, 200, 0.9)
        out = suppress([low, high], NMSConfig(iou_threshold=0.7))
        self.assertEqual(out, [high])

    def test_result_is_sorted_by_score(self) -> None:
        a = _det(0, 0, 10, 10, 0.55)
        b = _det(100, 100, 110, 110, 0.95)
        c = _det(200, 200, 210, 210, 0.75)
        out = suppress([a, b, c])
        self.assertEqual([d.score for d in out], [0.95, 0.75, 0.55])

    def test_idempotent(self) -> None:
        dets = [
            _det(0, 0, 100, 100, 0.9),
            _det(2, 2, 102, 102, 0.8),
            _det(50, 50, 150, 150, 0.7),
            _det(300, 300, 400, 400, 0.6),
        ]
        once = suppress(dets)
        twice = suppress(once)
        self.assertEqual(once, twice)

    def test_iou_at_threshold_is_suppressed(self) -> None:
        # inter 70, union 100 -> IoU == 0.7
        a = _det(0, 0, 10, 10, 0.9)
        b = _det(0, 0, 10, 7, 0.8)
        self.assertEqual(suppress([a, b], NMSConfig(iou_threshold=0.7)), [a])

    def test_below_threshold_survives(self) -> None:
        a = _det(0, 0, 10, 10, 0.9)
        b = _det(0, 0, 10, 6, 0.8)
        self.assertEqual(suppress([a, b], NMSConfig(iou_threshold=0.7)), [a, b])

    def test_cross_class_suppression_by_default(self) -> None:
        person = _det(0, 0, 100, 100, 0.9, class_id=0, label="person")
        dog = _det(1, 1, 100, 100, 0.8, class_id=16, label="dog")
        self.assertEqual(suppress([person, dog]), [person])

    def test_per_class_keeps_other_classes(self) -> None:
        person = _det(0, 0, 100, 100, 0.9, class_id=0, label="person")
        dog = _det(1, 1, 100, 100, 0.8, class_id=16, label="dog")
        person_dup = _det(0, 0, 99, 99, 0.7, class_id=0, label="person")
        out = suppress([person, dog, person_dup], class_agnostic=False)
        self.assertEqual(out, [person, dog])

    def test_equal_scores_keep_input_order(self) -> None:
        a = _det(0, 0, 10, 10, 0.8)
        b = _det(100, 100, 110, 110, 0.8)
        c = _det(200, 200, 210, 210, 0.8)
        self.assertEqual(suppress([a, b, c]), [a, b, c])

    def test_equal_score_duplicates_keep_first(self) -> None:
        first = _det(0, 0, 10, 10, 0.8, class_id=1, label="bicycle")
        second = _det(0, 0, 10, 10, 0.8, class_id=2, label="car")
        self.assertEqual(suppress([first, second]), [first])

    def test_degenerate_boxes_do_not_crash(self) -> None:
        flipped = _det(10, 0, 0, 10, 0.9)
        zero = _det(5, 5, 5, 5, 0.8)
        out = suppress([flipped, zero])
        self.assertEqual(out, [flipped, zero])

    def test_input_not_modified(self) -> None:
        dets = [_det(0, 0, 10, 10, 0.5), _det(0, 0, 10, 10, 0.9)]
        copy = list(dets)
        suppress(dets)
        self.assertEqual(dets, copy)

    def test_empty(self) -> None:
        self.assertEqual(suppress([]), [])

    def test_max_detections(self) -> None:
        dets = [_det(i * 20, 0, i * 20 + 10, 10, 0.5 + i * 0.01) for i in range(5)]
        out = suppress(dets, NMSConfig(max_detections=2))
        self.assertEqual(out, [dets[4], dets[3]])


class TestNmsIndices(unittest.TestCase):
    def test_empty_returns_empty_indices(self) -> None:
        keep = nms(np.zeros((0, 4)), np.zeros((0,)), NMSConfig())
        self.assertEqual(keep.shape, (0,))

    def test_indices_in_selection_order(self) -> None:
        boxes = np.array([[0, 0, 10, 10], [100, 100, 110, 110], [1, 1, 10, 10]], dtype=np.float32)
        scores = np.array([0.6, 0.9, 0.8], dtype=np.float32)
        keep = nms(boxes, scores, NMSConfig(iou_threshold=0.7))
        self.assertEqual(keep.tolist(), [1, 2])


if __name__ == "__main__":
    unittest.main()
