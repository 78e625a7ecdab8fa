from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from .postprocess import SORT_STRATEGIES, YoloPostConfig

_INT_KEYS = ("num_classes", "anchors_per_group", "letterbox_rows", "letterbox_cols")
_FLOAT_KEYS = ("prob_threshold", "nms_threshold")
_BOOL_KEYS = ("apply_nms", "class_agnostic_nms")
_OPTIONAL_INT_KEYS = ("max_detections", "decode_workers")


def _require_number(payload: Dict[str, Any], key: str) -> float:
    value = payload[key]
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValueError(f"{key} must be a number")
    return float(value)


def _require_int(payload: Dict[str, Any], key: str) -> int:
    value = payload[key]
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"{key} must be an integer")
    return int(value)


def _require_bool(payload: Dict[str, Any], key: str) -> bool:
    value = payload[key]
    if not isinstance(value, bool):
        raise ValueError(f"{key} must be true or false")
    return value


def _optional_int(payload: Dict[str, Any], key: str) -> Optional[int]:
    if payload[key] is None:
        return None
    return _require_int(payload, key)


def _number_list(payload: Dict[str, Any], key: str) -> List[Any]:
    value = payload[key]
    if not isinstance(value, list) or not value:
        raise ValueError(f"{key} must be a non-empty list")
    for item in value:
        if isinstance(item, bool) or not isinstance(item, (int, float)):
            raise ValueError(f"{key} must only contain numbers")
    return value


def post_config_from_dict(payload: Dict[str, Any]) -> YoloPostConfig:
    if not isinstance(payload, dict):
        raise ValueError("Post-process config must be a JSON object")

    allowed = set(_INT_KEYS + _FLOAT_KEYS + _BOOL_KEYS + _OPTIONAL_INT_KEYS) | {"strides", "anchors", "sort_strategy"}
    unknown = sorted(set(payload.keys()) - allowed)
    if unknown:
        raise ValueError(f"Unknown post-process config keys: {unknown}")

    kwargs: Dict[str, Any] = {}
    for key in _INT_KEYS:
        if key in payload:
            kwargs[key] = _require_int(payload, key)
    for key in _FLOAT_KEYS:
        if key in payload:
            kwargs[key] = _require_number(payload, key)
    for key in _BOOL_KEYS:
        if key in payload:
            kwargs[key] = _require_bool(payload, key)
    for key in _OPTIONAL_INT_KEYS:
        if key in payload:
            kwargs[key] = _optional_int(payload, key)

    if "strides" in payload:
        strides = _number_list(payload, "strides")
        if any(not isinstance(s, int) for s in strides):
            raise ValueError("strides must only contain integers")
        kwargs["strides"] = tuple(strides)
    if "anchors" in payload:
        kwargs["anchors"] = tuple(float(a) for a in _number_list(payload, "anchors"))
    if "sort_strategy" in payload:
        strategy = payload["sort_strategy"]
        if strategy not in SORT_STRATEGIES:
            raise ValueError(f"sort_strategy must be one of {SORT_STRATEGIES}")
        kwargs["sort_strategy"] = strategy

    return YoloPostConfig(**kwargs)


def load_post_config(path: Union[str, Path]) -> YoloPostConfig:
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Post-process config not found: {path}")
    raw = path.read_text(encoding="utf-8")
    try:
        payload = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise ValueError(f"Invalid post-process config JSON: {path}") from exc
    return post_config_from_dict(payload)
