from dataclasses import dataclass
from typing import List, Sequence, Tuple

import numpy as np

from .types import GridCell

# YOLOv5 P3/P4/P5 priors, (w, h) pairs grouped per stride 8 / 16 / 32.
YOLOV5_ANCHORS: Tuple[float, ...] = (
    10, 13, 16, 30, 33, 23,
    30, 61, 62, 45, 59, 119,
    116, 90, 156, 198, 373, 326,
)
DEFAULT_STRIDES: Tuple[int, ...] = (8, 16, 32)


@dataclass(frozen=True, eq=False)
class AnchorSet:
    """
    Read-only anchor priors indexed by stride-group and anchor slot.

    `table` has shape (num_groups, anchors_per_group, 2) holding (w, h).
    """

    table: np.ndarray

    def __post_init__(self) -> None:
        t = np.array(self.table, dtype=np.float32)
        if t.ndim != 3 or t.shape[2] != 2:
            raise ValueError(f"Anchor table must have shape (groups, anchors, 2), got {t.shape}")
        if t.shape[0] == 0 or t.shape[1] == 0:
            raise ValueError(f"Anchor table is empty: {t.shape}")
        t.setflags(write=False)
        object.__setattr__(self, "table", t)

    @classmethod
    def from_flat(cls, values: Sequence[float], anchors_per_group: int = 3) -> "AnchorSet":
        """
        Build from the flat layout `group * (2 * A) + anchor * 2 + {0: w, 1: h}`.
        """

        if anchors_per_group < 1:
            raise ValueError("anchors_per_group must be >= 1")
        flat = np.asarray(values, dtype=np.float32).reshape(-1)
        per_group = anchors_per_group * 2
        if flat.size == 0 or flat.size % per_group != 0:
            raise ValueError(
                f"Anchor list of length {flat.size} does not split into groups of {anchors_per_group} (w, h) pairs"
            )
        return cls(flat.reshape(-1, anchors_per_group, 2))

    @property
    def num_groups(self) -> int:
        return int(self.table.shape[0])

    @property
    def anchors_per_group(self) -> int:
        return int(self.table.shape[1])

    def for_group(self, group: int) -> np.ndarray:
        if group < 0 or group >= self.num_groups:
            raise ValueError(f"No anchors for stride-group {group} (have {self.num_groups} groups)")
        return self.table[group]

    def for_stride(self, stride: int, strides: Sequence[int]) -> np.ndarray:
        return self.for_group(group_for_stride(stride, strides))


def group_for_stride(stride: int, strides: Sequence[int]) -> int:
    strides = list(strides)
    if stride not in strides:
        raise ValueError(f"Stride {stride} is not one of the configured strides {strides}")
    return strides.index(stride)


def feature_size(target_w: int, target_h: int, stride: int) -> Tuple[int, int]:
    """(feat_h, feat_w) for a letterbox canvas at a given stride."""

    if stride <= 0:
        raise ValueError(f"stride must be > 0, got {stride}")
    return target_h // stride, target_w // stride


def make_grid(feat_h: int, feat_w: int) -> Tuple[np.ndarray, np.ndarray]:
    """
    Row-major grid offsets, each shaped (feat_h, feat_w): (grid_x, grid_y).
    """

    gy, gx = np.meshgrid(
        np.arange(feat_h, dtype=np.float32),
        np.arange(feat_w, dtype=np.float32),
        indexing="ij",
    )
    return gx, gy


def generate_grids_and_stride(target_w: int, target_h: int, strides: Sequence[int] = DEFAULT_STRIDES) -> List[GridCell]:
    cells: List[GridCell] = []
    for stride in strides:
        feat_h, feat_w = feature_size(target_w, target_h, stride)
        for gy in range(feat_h):
            for gx in range(feat_w):
                cells.append(GridCell(grid_x=gx, grid_y=gy, stride=stride))
    return cells
