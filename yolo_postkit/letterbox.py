from dataclasses import dataclass
from typing import List, Sequence, Tuple

import numpy as np

from .types import Detection


@dataclass(frozen=True)
class LetterboxGeometry:
    """
    Resize/pad parameters of a letterbox canvas and their inverse.

    Resized size is truncated and the padding split with integer division, so the
    image sits at (pad_w, pad_h) on the canvas with any odd pixel on the right/bottom.
    `ratio_x` is src_rows / resize_rows and `ratio_y` is src_cols / resize_cols;
    the two only differ when truncation makes the resize inexact.
    """

    letterbox_rows: int
    letterbox_cols: int
    src_rows: int
    src_cols: int
    scale: float
    resize_rows: int
    resize_cols: int
    pad_h: int
    pad_w: int
    ratio_x: float
    ratio_y: float

    @classmethod
    def compute(cls, letterbox_rows: int, letterbox_cols: int, src_rows: int, src_cols: int) -> "LetterboxGeometry":
        for name, value in (
            ("letterbox_rows", letterbox_rows),
            ("letterbox_cols", letterbox_cols),
            ("src_rows", src_rows),
            ("src_cols", src_cols),
        ):
            if value <= 0:
                raise ValueError(f"{name} must be > 0, got {value}")

        # Truncation happens in single precision.
        scale = np.float32(min(letterbox_rows / src_rows, letterbox_cols / src_cols))
        resize_rows = int(scale * np.float32(src_rows))
        resize_cols = int(scale * np.float32(src_cols))
        if resize_rows <= 0 or resize_cols <= 0:
            raise ValueError(
                f"Source {src_rows}x{src_cols} collapses to {resize_rows}x{resize_cols} "
                f"on a {letterbox_rows}x{letterbox_cols} canvas"
            )

        return cls(
            letterbox_rows=letterbox_rows,
            letterbox_cols=letterbox_cols,
            src_rows=src_rows,
            src_cols=src_cols,
            scale=float(scale),
            resize_rows=resize_rows,
            resize_cols=resize_cols,
            pad_h=(letterbox_rows - resize_rows) // 2,
            pad_w=(letterbox_cols - resize_cols) // 2,
            ratio_x=float(np.float32(src_rows) / np.float32(resize_rows)),
            ratio_y=float(np.float32(src_cols) / np.float32(resize_cols)),
        )


def remap_detection(det: Detection, geom: LetterboxGeometry) -> Detection:
    """Rewrite one letterbox-space detection into source image pixels, in place."""

    x0 = (det.x - geom.pad_w) * geom.ratio_x
    y0 = (det.y - geom.pad_h) * geom.ratio_y
    x1 = (det.x2 - geom.pad_w) * geom.ratio_x
    y1 = (det.y2 - geom.pad_h) * geom.ratio_y

    max_x = float(geom.src_cols - 1)
    max_y = float(geom.src_rows - 1)
    x0 = max(min(x0, max_x), 0.0)
    y0 = max(min(y0, max_y), 0.0)
    x1 = max(min(x1, max_x), 0.0)
    y1 = max(min(y1, max_y), 0.0)

    det.x = x0
    det.y = y0
    det.width = x1 - x0
    det.height = y1 - y0
    return det


def remap_detections(dets: Sequence[Detection], geom: LetterboxGeometry) -> List[Detection]:
    """
    Map every detection back to the source image without any selection.

    The input detections are rewritten in place and returned as a new list.
    """

    return [remap_detection(d, geom) for d in dets]


def letterbox(
    image: np.ndarray,
    new_shape: Tuple[int, int] = (640, 640),
    color: Tuple[int, int, int] = (114, 114, 114),
) -> Tuple[np.ndarray, LetterboxGeometry]:
    """
    Resize and pad an (H, W, C) image onto a (rows, cols) canvas.

    The placement matches `LetterboxGeometry`, so `remap_detections` with the returned
    geometry inverts it.

    Returns:
        padded: canvas of shape (rows, cols, C)
        geometry: the LetterboxGeometry used
    """
    try:
        import cv2  # type: ignore
    except Exception as e:  # pragma: no cover
        raise ImportError("OpenCV is required for letterbox(). Install with `pip install opencv-python`.") from e

    if isinstance(new_shape, int):
        new_shape = (new_shape, new_shape)
    rows, cols = new_shape
    src_rows, src_cols = image.shape[:2]
    geom = LetterboxGeometry.compute(rows, cols, src_rows, src_cols)

    if (src_rows, src_cols) != (geom.resize_rows, geom.resize_cols):
        image = cv2.resize(image, (geom.resize_cols, geom.resize_rows), interpolation=cv2.INTER_LINEAR)

    top = geom.pad_h
    bottom = rows - geom.resize_rows - top
    left = geom.pad_w
    right = cols - geom.resize_cols - left
    padded = cv2.copyMakeBorder(image, top, bottom, left, right, cv2.BORDER_CONSTANT, value=color)

    return padded, geom
