"""
Decode raw YOLOv5-style head outputs into letterbox-space detections.

Each stride produces one flat float32 buffer laid out as
`[anchor][row][col][dx, dy, dw, dh, obj, cls_0 .. cls_{C-1}]`.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import List, Optional, Sequence

import numpy as np

from .grid import DEFAULT_STRIDES, AnchorSet, feature_size, make_grid
from .types import Detection

logger = logging.getLogger(__name__)

BOX_CHANNELS = 5


def sigmoid(x: np.ndarray) -> np.ndarray:
    x = np.asarray(x, dtype=np.float32)
    with np.errstate(over="ignore"):
        return np.float32(1.0) / (np.float32(1.0) + np.exp(-x))


class FeatureMap:
    """
    Shape-checked view over one stride's flat output buffer.

    The buffer is never copied when it already is float32; the view is read-only.
    """

    def __init__(self, buffer, num_anchors: int, feat_h: int, feat_w: int, num_classes: int):
        if num_anchors < 1 or feat_h < 1 or feat_w < 1:
            raise ValueError(f"Invalid feature map shape: anchors={num_anchors} h={feat_h} w={feat_w}")
        if num_classes < 1:
            raise ValueError(f"num_classes must be >= 1, got {num_classes}")

        flat = np.asarray(buffer, dtype=np.float32).reshape(-1)
        channels = BOX_CHANNELS + num_classes
        expected = num_anchors * feat_h * feat_w * channels
        if flat.size != expected:
            raise ValueError(
                f"Feature buffer has {flat.size} values, expected {expected} "
                f"({num_anchors} anchors x {feat_h}x{feat_w} cells x {channels} channels)"
            )

        data = flat.reshape(num_anchors, feat_h, feat_w, channels).view()
        data.setflags(write=False)
        self.data = data
        self.num_anchors = num_anchors
        self.feat_h = feat_h
        self.feat_w = feat_w
        self.num_classes = num_classes

    @property
    def shape(self):
        return self.data.shape

    def cell(self, anchor: int, row: int, col: int) -> np.ndarray:
        if not (0 <= anchor < self.num_anchors and 0 <= row < self.feat_h and 0 <= col < self.feat_w):
            raise IndexError(f"Cell ({anchor}, {row}, {col}) outside feature map {self.shape[:3]}")
        return self.data[anchor, row, col]


def decode_stride(
    buffer,
    stride: int,
    prob_threshold: float,
    letterbox_rows: int,
    letterbox_cols: int,
    anchors: AnchorSet,
    strides: Sequence[int] = DEFAULT_STRIDES,
    num_classes: int = 80,
) -> List[Detection]:
    """
    Decode one stride's buffer into candidate detections above `prob_threshold`.

    Candidates come out in row, column, anchor order. Ties in the best-class search
    keep the lowest class index.
    """

    if not 0.0 <= prob_threshold <= 1.0:
        raise ValueError(f"prob_threshold must be in [0, 1], got {prob_threshold}")

    group_anchors = anchors.for_stride(stride, strides)
    feat_h, feat_w = feature_size(letterbox_cols, letterbox_rows, stride)
    fmap = buffer if isinstance(buffer, FeatureMap) else FeatureMap(
        buffer, group_anchors.shape[0], feat_h, feat_w, num_classes
    )
    if fmap.shape[:3] != (group_anchors.shape[0], feat_h, feat_w):
        raise ValueError(
            f"Feature map shape {fmap.shape[:3]} does not match stride {stride} "
            f"expectation {(group_anchors.shape[0], feat_h, feat_w)}"
        )
    if fmap.num_classes != num_classes:
        raise ValueError(f"Feature map carries {fmap.num_classes} classes, expected {num_classes}")

    # (H, W, A, C) so that nonzero() walks cells in row, column, anchor order.
    data = fmap.data.transpose(1, 2, 0, 3)
    cls_raw = data[..., BOX_CHANNELS:]
    best_cls = np.argmax(cls_raw, axis=-1)
    best_raw = np.take_along_axis(cls_raw, best_cls[..., None], axis=-1)[..., 0]
    scores = sigmoid(data[..., 4]) * sigmoid(best_raw)

    rows, cols, slots = np.nonzero(scores >= np.float32(prob_threshold))
    if rows.size == 0:
        logger.debug("stride %d: no candidates above %.3f", stride, prob_threshold)
        return []

    gx, gy = make_grid(feat_h, feat_w)
    box = sigmoid(data[rows, cols, slots, 0:4])
    s = np.float32(stride)
    cx = (box[:, 0] * np.float32(2.0) - np.float32(0.5) + gx[rows, cols]) * s
    cy = (box[:, 1] * np.float32(2.0) - np.float32(0.5) + gy[rows, cols]) * s
    bw = box[:, 2] * box[:, 2] * np.float32(4.0) * group_anchors[slots, 0]
    bh = box[:, 3] * box[:, 3] * np.float32(4.0) * group_anchors[slots, 1]

    x0 = cx - bw * np.float32(0.5)
    y0 = cy - bh * np.float32(0.5)
    x1 = cx + bw * np.float32(0.5)
    y1 = cy + bh * np.float32(0.5)

    out = [
        Detection(
            x=float(bx0),
            y=float(by0),
            width=float(bx1 - bx0),
            height=float(by1 - by0),
            score=float(sc),
            label=int(lbl),
        )
        for bx0, by0, bx1, by1, sc, lbl in zip(
            x0, y0, x1, y1, scores[rows, cols, slots], best_cls[rows, cols, slots]
        )
    ]
    logger.debug("stride %d: %d candidates", stride, len(out))
    return out


def decode_outputs(
    outputs: Sequence,
    prob_threshold: float,
    letterbox_rows: int,
    letterbox_cols: int,
    anchors: AnchorSet,
    strides: Sequence[int] = DEFAULT_STRIDES,
    num_classes: int = 80,
    max_workers: Optional[int] = None,
) -> List[Detection]:
    """
    Decode one buffer per configured stride and concatenate in stride order.

    With `max_workers` > 1 the strides are decoded on a thread pool; the result
    is identical to the sequential path.
    """

    strides = list(strides)
    if len(outputs) != len(strides):
        raise ValueError(f"Expected {len(strides)} output buffers (strides {strides}), got {len(outputs)}")

    def _one(args) -> List[Detection]:
        buf, stride = args
        return decode_stride(
            buf,
            stride,
            prob_threshold,
            letterbox_rows,
            letterbox_cols,
            anchors,
            strides=strides,
            num_classes=num_classes,
        )

    jobs = list(zip(outputs, strides))
    if max_workers is not None and max_workers > 1 and len(jobs) > 1:
        with ThreadPoolExecutor(max_workers=max_workers) as pool:
            per_stride = list(pool.map(_one, jobs))
    else:
        per_stride = [_one(job) for job in jobs]

    proposals: List[Detection] = []
    for dets in per_stride:
        proposals.extend(dets)
    return proposals
