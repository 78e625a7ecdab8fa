import unittest

import numpy as np

from yolo_postkit.grid import (
    YOLOV5_ANCHORS,
    AnchorSet,
    generate_grids_and_stride,
    group_for_stride,
    make_grid,
)
from yolo_postkit.types import GridCell


class TestGrid(unittest.TestCase):
    def test_generate_grids_and_stride_order(self) -> None:
        cells = generate_grids_and_stride(64, 32, (8, 16))
        # 8x4 cells at stride 8, 4x2 at stride 16
        self.assertEqual(len(cells), 32 + 8)
        self.assertEqual(cells[0], GridCell(grid_x=0, grid_y=0, stride=8))
        self.assertEqual(cells[1], GridCell(grid_x=1, grid_y=0, stride=8))
        self.assertEqual(cells[8], GridCell(grid_x=0, grid_y=1, stride=8))
        self.assertEqual(cells[31], GridCell(grid_x=7, grid_y=3, stride=8))
        self.assertEqual(cells[32], GridCell(grid_x=0, grid_y=0, stride=16))

    def test_make_grid_row_major(self) -> None:
        gx, gy = make_grid(2, 3)
        self.assertEqual(gx.shape, (2, 3))
        self.assertTrue(np.array_equal(gx, np.array([[0, 1, 2], [0, 1, 2]], dtype=np.float32)))
        self.assertTrue(np.array_equal(gy, np.array([[0, 0, 0], [1, 1, 1]], dtype=np.float32)))

    def test_anchor_set_from_flat(self) -> None:
        anchors = AnchorSet.from_flat(YOLOV5_ANCHORS, anchors_per_group=3)
        self.assertEqual(anchors.num_groups, 3)
        self.assertEqual(anchors.anchors_per_group, 3)
        self.assertTrue(np.array_equal(anchors.for_group(0)[1], np.array([16, 30], dtype=np.float32)))
        self.assertTrue(np.array_equal(anchors.for_stride(32, (8, 16, 32))[2], np.array([373, 326], dtype=np.float32)))

    def test_anchor_set_is_read_only(self) -> None:
        anchors = AnchorSet.from_flat(YOLOV5_ANCHORS)
        with self.assertRaises(ValueError):
            anchors.for_group(0)[0, 0] = 1.0

    def test_anchor_set_rejects_bad_input(self) -> None:
        with self.assertRaises(ValueError):
            AnchorSet.from_flat([])
        with self.assertRaises(ValueError):
            AnchorSet.from_flat([10, 13, 16])
        anchors = AnchorSet.from_flat(YOLOV5_ANCHORS[:6])
        with self.assertRaises(ValueError):
            anchors.for_group(1)

    def test_group_for_stride(self) -> None:
        self.assertEqual(group_for_stride(8, (8, 16, 32)), 0)
        self.assertEqual(group_for_stride(32, (8, 16, 32)), 2)
        with self.assertRaises(ValueError):
            group_for_stride(64, (8, 16, 32))


if __name__ == "__main__":
    unittest.main()
