from typing import Union

from .types import Detection, Rect

RectLike = Union[Rect, Detection]


def _as_rect(r: RectLike) -> Rect:
    if isinstance(r, Detection):
        return r.rect
    x, y, w, h = r
    return float(x), float(y), float(w), float(h)


def area(r: RectLike) -> float:
    _, _, w, h = _as_rect(r)
    if w <= 0 or h <= 0:
        return 0.0
    return w * h


def intersection_area(a: RectLike, b: RectLike) -> float:
    """
    Area of the axis-aligned overlap of two (x, y, w, h) rectangles, 0 when disjoint.
    """

    ax, ay, aw, ah = _as_rect(a)
    bx, by, bw, bh = _as_rect(b)
    iw = min(ax + aw, bx + bw) - max(ax, bx)
    ih = min(ay + ah, by + bh) - max(ay, by)
    if iw <= 0 or ih <= 0:
        return 0.0
    return iw * ih


def iou(a: RectLike, b: RectLike) -> float:
    """
    Intersection over union. Returns 0.0 when the union is empty (both boxes degenerate).
    """

    inter = intersection_area(a, b)
    union = area(a) + area(b) - inter
    if union <= 0:
        return 0.0
    return inter / union
