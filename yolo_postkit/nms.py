from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence

import numpy as np

from .types import Detection


@dataclass
class NMSConfig:
    iou_threshold: float = 0.45
    max_detections: Optional[int] = None

    def __post_init__(self) -> None:
        if not 0.0 <= self.iou_threshold <= 1.0:
            raise ValueError(f"iou_threshold must be in [0, 1], got {self.iou_threshold}")
        if self.max_detections is not None and self.max_detections < 1:
            raise ValueError("max_detections must be >= 1 when set")


def nms_sorted(dets: Sequence[Detection], cfg: NMSConfig) -> List[int]:
    """
    Greedy NMS over detections already sorted by descending score.

    A candidate is dropped when its IoU with any kept box is strictly greater than
    the threshold. Returns the kept indices in input order.
    """

    n = len(dets)
    if n == 0:
        return []

    boxes = np.array([d.as_xyxy() for d in dets], dtype=np.float64)
    x1, y1, x2, y2 = boxes[:, 0], boxes[:, 1], boxes[:, 2], boxes[:, 3]
    areas = np.maximum(0.0, x2 - x1) * np.maximum(0.0, y2 - y1)

    keep: List[int] = []
    for i in range(n):
        if cfg.max_detections is not None and len(keep) >= cfg.max_detections:
            break
        if keep:
            k = np.asarray(keep)
            w = np.maximum(0.0, np.minimum(x2[i], x2[k]) - np.maximum(x1[i], x1[k]))
            h = np.maximum(0.0, np.minimum(y2[i], y2[k]) - np.maximum(y1[i], y1[k]))
            inter = w * h
            union = areas[i] + areas[k] - inter
            # Degenerate pairs (empty union) count as no overlap.
            iou = np.divide(inter, union, out=np.zeros_like(inter), where=union > 0)
            if np.any(iou > cfg.iou_threshold):
                continue
        keep.append(i)

    return keep


def nms_per_class(dets: Sequence[Detection], cfg: NMSConfig) -> List[int]:
    """
    Class-aware NMS: boxes only suppress boxes with the same label.

    Kept indices are merged back in input (score-descending) order.
    """

    by_label: Dict[int, List[int]] = {}
    for idx, d in enumerate(dets):
        by_label.setdefault(d.label, []).append(idx)

    kept: List[int] = []
    per_class_cfg = NMSConfig(iou_threshold=cfg.iou_threshold)
    for idx in by_label.values():
        keep_local = nms_sorted([dets[i] for i in idx], per_class_cfg)
        kept.extend(idx[k] for k in keep_local)

    kept.sort()
    if cfg.max_detections is not None:
        kept = kept[: cfg.max_detections]
    return kept
