import unittest

import numpy as np

from detect_kit.geometry import box_area, intersection, iou, union


class TestIoU(unittest.TestCase):
    def test_identical_boxes(self) -> None:
        box = [10.0, 20.0, 110.0, 70.0]
        self.assertAlmostEqual(iou(box, box), 1.0)

    def test_disjoint_boxes(self) -> None:
        self.assertEqual(iou([0, 0, 10, 10], [20, 20, 30, 30]), 0.0)

    def test_touching_edges_do_not_overlap(self) -> None:
        self.assertEqual(iou([0, 0, 10, 10], [10, 0, 20, 10]), 0.0)

    def test_contained_box_ratio_of_areas(self) -> None:
        outer = [0, 0, 10, 10]
        inner = [2, 2, 4, 4]
        self.assertAlmostEqual(iou(outer, inner), 4.0 / 100.0)
        self.assertAlmostEqual(iou(inner, outer), 4.0 / 100.0)

    def test_partial_overlap(self) -> None:
        # inter 25, union 100 + 100 - 25
        self.assertAlmostEqual(iou([0, 0, 10, 10], [5, 5, 15, 15]), 25.0 / 175.0)

    def test_degenerate_box_has_negative_area_and_no_overlap(self) -> None:
        flipped = [10, 10, 0, 0]
        self.assertEqual(float(box_area(flipped)), 100.0)
        inverted_x = [10, 0, 0, 10]
        self.assertEqual(float(box_area(inverted_x)), -100.0)
        self.assertEqual(float(intersection(inverted_x, [0, 0, 10, 10])), 0.0)
        self.assertEqual(iou(inverted_x, inverted_x), 0.0)

    def test_one_against_many(self) -> None:
        boxes = np.array([[0, 0, 10, 10], [5, 5, 15, 15], [50, 50, 60, 60]], dtype=np.float32)
        out = iou(boxes[0], boxes)
        self.assertEqual(out.shape, (3,))
        self.assertTrue(np.allclose(out, [1.0, 25.0 / 175.0, 0.0]))
        self.assertTrue(np.allclose(union(boxes[0], boxes), [100.0, 175.0, 200.0]))

    def test_rejects_wrong_coordinate_count(self) -> None:
        with self.assertRaises(ValueError):
            iou([0, 0, 1], [0, 0, 1, 1])


if __name__ == "__main__":
    unittest.main()
