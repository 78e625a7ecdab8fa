"""
Post-processing for anchor-based YOLO heads (YOLOv5 style, one output per stride).

Turns raw per-cell network output into deduplicated detections in source image
coordinates: decode -> confidence sort -> greedy NMS -> inverse letterbox.
Depends on NumPy; OpenCV is only needed for the `letterbox()` image helper.
"""

from .types import Detection, GridCell
from .geometry import area, intersection_area, iou
from .grid import DEFAULT_STRIDES, YOLOV5_ANCHORS, AnchorSet, generate_grids_and_stride
from .decode import FeatureMap, decode_outputs, decode_stride
from .sort import ParallelQuickSortStrategy, QuickSortStrategy, sort_by_confidence
from .nms import NMSConfig, nms_per_class, nms_sorted
from .letterbox import LetterboxGeometry, letterbox, remap_detections
from .postprocess import YoloPostConfig, YoloPostprocessor
from .config import load_post_config
from .metadata import load_class_names

__all__ = [
    "Detection",
    "GridCell",
    "area",
    "intersection_area",
    "iou",
    "DEFAULT_STRIDES",
    "YOLOV5_ANCHORS",
    "AnchorSet",
    "generate_grids_and_stride",
    "FeatureMap",
    "decode_outputs",
    "decode_stride",
    "ParallelQuickSortStrategy",
    "QuickSortStrategy",
    "sort_by_confidence",
    "NMSConfig",
    "nms_per_class",
    "nms_sorted",
    "LetterboxGeometry",
    "letterbox",
    "remap_detections",
    "YoloPostConfig",
    "YoloPostprocessor",
    "load_post_config",
    "load_class_names",
]
