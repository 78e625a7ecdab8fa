from __future__ import annotations

import argparse
import dataclasses
import sys
from pathlib import Path
from typing import Dict, List, Optional, Sequence

import numpy as np

from .config import load_post_config
from .log import configure_logger
from .metadata import class_name, load_class_names
from .postprocess import YoloPostConfig, YoloPostprocessor
from .types import Detection


def format_detection(det: Detection, names: Optional[Dict[int, str]] = None) -> str:
    x0, y0, x1, y1 = det.as_xyxy()
    return (
        f"{det.label:2d}: {det.score * 100:3.0f}%, "
        f"[{x0:4.0f}, {y0:4.0f}, {x1:4.0f}, {y1:4.0f}], {class_name(names, det.label)}"
    )


def _load_outputs(paths: Sequence[str]) -> List[np.ndarray]:
    outputs = []
    for p in paths:
        path = Path(p)
        if not path.exists():
            raise FileNotFoundError(f"Output dump not found: {path}")
        outputs.append(np.load(path).astype(np.float32, copy=False))
    return outputs


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="yolo-postkit",
        description="Decode raw per-stride YOLO head dumps (.npy) into final detections.",
    )
    parser.add_argument("outputs", nargs="+", help="One .npy buffer per stride, in stride order.")
    parser.add_argument(
        "--src-size",
        type=int,
        nargs=2,
        metavar=("ROWS", "COLS"),
        required=True,
        help="Source image size the letterbox was built from.",
    )
    parser.add_argument("--config", default=None, help="JSON post-process config.")
    parser.add_argument("--conf", type=float, default=None, help="Override probability threshold.")
    parser.add_argument("--iou", type=float, default=None, help="Override NMS IoU threshold.")
    parser.add_argument("--no-nms", action="store_true", help="Only sort and remap, no suppression.")
    parser.add_argument("--per-class-nms", action="store_true", help="Suppress only within the same class.")
    parser.add_argument("--names", default=None, help="metadata.yaml with a `names:` block.")
    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    logger = configure_logger("yolo_postkit")

    cfg = load_post_config(args.config) if args.config else YoloPostConfig()
    overrides = {}
    if args.conf is not None:
        overrides["prob_threshold"] = args.conf
    if args.iou is not None:
        overrides["nms_threshold"] = args.iou
    if args.no_nms:
        overrides["apply_nms"] = False
    if args.per_class_nms:
        overrides["class_agnostic_nms"] = False
    if overrides:
        cfg = dataclasses.replace(cfg, **overrides)

    names = load_class_names(args.names) if args.names else None
    outputs = _load_outputs(args.outputs)

    post = YoloPostprocessor(cfg)
    src_rows, src_cols = args.src_size
    detections = post.process(outputs, src_size=(src_rows, src_cols))
    logger.info("%d detections", len(detections))

    for det in detections:
        print(format_detection(det, names))
    return 0


if __name__ == "__main__":
    sys.exit(main())
