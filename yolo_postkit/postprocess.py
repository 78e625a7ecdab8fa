import logging
from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Tuple

from .decode import decode_outputs
from .grid import DEFAULT_STRIDES, YOLOV5_ANCHORS, AnchorSet
from .letterbox import LetterboxGeometry, remap_detections
from .nms import NMSConfig, nms_per_class, nms_sorted
from .sort import ParallelQuickSortStrategy, QuickSortStrategy, SortStrategy, sort_by_confidence
from .types import Detection

logger = logging.getLogger(__name__)

SORT_STRATEGIES = ("sequential", "parallel")


@dataclass(frozen=True)
class YoloPostConfig:
    """
    Configuration for anchor-based YOLO post processing.
    """

    num_classes: int = 80
    anchors_per_group: int = 3
    strides: Tuple[int, ...] = DEFAULT_STRIDES
    # Flat (w, h) priors, `anchors_per_group` pairs per stride, in stride order.
    anchors: Tuple[float, ...] = YOLOV5_ANCHORS
    prob_threshold: float = 0.45
    nms_threshold: float = 0.45
    letterbox_rows: int = 640
    letterbox_cols: int = 640
    # If False, skip NMS and only sort by score.
    apply_nms: bool = True
    # If False, boxes only suppress boxes of the same class.
    class_agnostic_nms: bool = True
    max_detections: Optional[int] = None
    # Thread pool size for decoding strides concurrently; None decodes sequentially.
    decode_workers: Optional[int] = None
    sort_strategy: str = "sequential"
    anchor_set: AnchorSet = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        if self.num_classes < 1:
            raise ValueError("num_classes must be >= 1")
        if self.anchors_per_group < 1:
            raise ValueError("anchors_per_group must be >= 1")
        if not self.strides:
            raise ValueError("strides must not be empty")
        if any(s <= 0 for s in self.strides):
            raise ValueError(f"strides must be > 0, got {list(self.strides)}")
        if len(set(self.strides)) != len(self.strides):
            raise ValueError(f"strides must be unique, got {list(self.strides)}")
        if not 0.0 <= self.prob_threshold <= 1.0:
            raise ValueError("prob_threshold must be in [0, 1]")
        if not 0.0 <= self.nms_threshold <= 1.0:
            raise ValueError("nms_threshold must be in [0, 1]")
        if self.letterbox_rows <= 0 or self.letterbox_cols <= 0:
            raise ValueError("letterbox_rows and letterbox_cols must be > 0")
        if self.max_detections is not None and self.max_detections < 1:
            raise ValueError("max_detections must be >= 1 when set")
        if self.decode_workers is not None and self.decode_workers < 1:
            raise ValueError("decode_workers must be >= 1 when set")
        if self.sort_strategy not in SORT_STRATEGIES:
            raise ValueError(f"sort_strategy must be one of {SORT_STRATEGIES}, got {self.sort_strategy!r}")

        object.__setattr__(self, "strides", tuple(int(s) for s in self.strides))
        object.__setattr__(self, "anchors", tuple(float(a) for a in self.anchors))
        anchor_set = AnchorSet.from_flat(self.anchors, self.anchors_per_group)
        if anchor_set.num_groups < len(self.strides):
            raise ValueError(
                f"{len(self.strides)} strides need {len(self.strides)} anchor groups, "
                f"got {anchor_set.num_groups}"
            )
        object.__setattr__(self, "anchor_set", anchor_set)


class YoloPostprocessor:
    """
    Post-process for anchor-based (YOLOv5 style) heads exported per stride.

    Pipeline per image:
    - decode every stride buffer into letterbox-space candidates
    - sort by descending score
    - greedy NMS
    - map the kept boxes back onto the source image

    The processor keeps no state between calls.
    """

    def __init__(self, cfg: YoloPostConfig = YoloPostConfig(), sorter: Optional[SortStrategy] = None):
        self.cfg = cfg
        if sorter is None:
            sorter = ParallelQuickSortStrategy() if cfg.sort_strategy == "parallel" else QuickSortStrategy()
        self.sorter = sorter

    def geometry(self, src_size: Tuple[int, int]) -> LetterboxGeometry:
        src_rows, src_cols = src_size
        return LetterboxGeometry.compute(self.cfg.letterbox_rows, self.cfg.letterbox_cols, src_rows, src_cols)

    def decode(self, outputs: Sequence) -> List[Detection]:
        """
        Decode one raw buffer per configured stride into letterbox-space candidates.
        """

        return decode_outputs(
            outputs,
            self.cfg.prob_threshold,
            self.cfg.letterbox_rows,
            self.cfg.letterbox_cols,
            self.cfg.anchor_set,
            strides=self.cfg.strides,
            num_classes=self.cfg.num_classes,
            max_workers=self.cfg.decode_workers,
        )

    def select(self, proposals: List[Detection]) -> List[Detection]:
        """
        Sort `proposals` in place and return the detections surviving NMS, best first.
        """

        sort_by_confidence(proposals, self.sorter)
        if not self.cfg.apply_nms:
            if self.cfg.max_detections is not None:
                return proposals[: self.cfg.max_detections]
            return list(proposals)

        nms_cfg = NMSConfig(iou_threshold=self.cfg.nms_threshold, max_detections=self.cfg.max_detections)
        if self.cfg.class_agnostic_nms:
            picked = nms_sorted(proposals, nms_cfg)
        else:
            picked = nms_per_class(proposals, nms_cfg)
        logger.debug("nms kept %d of %d", len(picked), len(proposals))
        return [proposals[i] for i in picked]

    def remap(self, dets: List[Detection], src_size: Tuple[int, int]) -> List[Detection]:
        """
        Map letterbox-space detections onto the source image, no selection.

        Args:
            dets: detections in letterbox coordinates, rewritten in place
            src_size: (rows, cols) of the source image
        """

        return remap_detections(dets, self.geometry(src_size))

    def finalize(self, proposals: List[Detection], src_size: Tuple[int, int]) -> List[Detection]:
        """
        Sort, suppress and remap in one step.

        Args:
            proposals: letterbox-space candidates, reordered in place
            src_size: (rows, cols) of the source image
        """

        geom = self.geometry(src_size)
        return remap_detections(self.select(proposals), geom)

    def process(self, outputs: Sequence, src_size: Tuple[int, int]) -> List[Detection]:
        """
        Convert raw per-stride head outputs into final detections in source image
        coordinates.

        Args:
            outputs: one flat float32 buffer per configured stride, in stride order
            src_size: (rows, cols) of the source image
        """

        geom = self.geometry(src_size)
        proposals = self.decode(outputs)
        logger.debug("decoded %d proposals", len(proposals))
        if not proposals:
            return []
        return remap_detections(self.select(proposals), geom)
