from __future__ import annotations

import json
import logging
from dataclasses import dataclass, replace
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple, Union

from .errors import ConfigurationMismatch
from .metadata import labels_from_names, load_class_names, names_in_order
from .types import Label

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]
AnchorPair = Tuple[float, float]


class DecodeMode(str, Enum):
    # Model already applies sigmoid + grid math, single (1, N, dims) output.
    FUSED = "fused"
    # One output per stride, sigmoid/anchors/grid applied here.
    RAW = "raw"


@dataclass(frozen=True)
class YoloModelConfig:
    """
    Read-only description of one exported YOLOv5 network.

    `strides`, `shapes` (grid sizes) and `anchors` are only used in raw mode;
    index `i` of each describes the `i`-th entry of `outputs`.
    """

    width: int
    height: int
    dimensions: int
    labels: Tuple[Label, ...]
    confidence: float = 0.20
    mul_confidence: float = 0.25
    overlap: float = 0.45
    decode_mode: DecodeMode = DecodeMode.FUSED
    outputs: Tuple[str, ...] = ("output",)
    input_name: str = "images"
    depth: int = 3
    strides: Tuple[int, ...] = ()
    shapes: Tuple[int, ...] = ()
    anchors: Tuple[Tuple[AnchorPair, ...], ...] = ()

    def __post_init__(self) -> None:
        if self.width <= 0 or self.height <= 0:
            raise ValueError("width and height must be > 0")
        if self.depth != 3:
            raise ValueError("depth must be 3 (RGB input)")
        if self.dimensions < 6:
            raise ValueError("dimensions must be >= 6 (4 box + objectness + at least one class)")
        for key in ("confidence", "mul_confidence", "overlap"):
            value = getattr(self, key)
            if not 0.0 <= value <= 1.0:
                raise ValueError(f"{key} must be within [0, 1]")
        if not isinstance(self.decode_mode, DecodeMode):
            raise ValueError(f"decode_mode must be a DecodeMode, got {self.decode_mode!r}")
        if not self.outputs:
            raise ValueError("outputs must name at least one tensor")

        if len(self.labels) != self.num_classes:
            raise ConfigurationMismatch(
                f"Expected {self.num_classes} labels for dimensions={self.dimensions}, got {len(self.labels)}"
            )
        for index, label in enumerate(self.labels):
            if label.id != index:
                raise ConfigurationMismatch(f"Label ids must be dense: labels[{index}].id is {label.id}")

        if self.decode_mode is DecodeMode.RAW:
            n = len(self.outputs)
            if len(self.strides) != n or len(self.shapes) != n or len(self.anchors) != n:
                raise ConfigurationMismatch(
                    "Raw decoding needs one stride, grid shape and anchor set per output "
                    f"(outputs={n}, strides={len(self.strides)}, shapes={len(self.shapes)}, "
                    f"anchors={len(self.anchors)})"
                )
            for i, scale_anchors in enumerate(self.anchors):
                if not scale_anchors:
                    raise ConfigurationMismatch(f"anchors[{i}] is empty")
                if any(len(pair) != 2 for pair in scale_anchors):
                    raise ConfigurationMismatch(f"anchors[{i}] must contain (w, h) pairs")
            if any(s <= 0 for s in self.strides) or any(g <= 0 for g in self.shapes):
                raise ValueError("strides and shapes must be > 0")

    @property
    def num_classes(self) -> int:
        return self.dimensions - 5

    @property
    def input_size(self) -> Tuple[int, int]:
        return self.width, self.height


# ---------------------------------------------------------------------- #
# JSON loader
# ---------------------------------------------------------------------- #
def _require_number(payload: Dict[str, Any], key: str) -> float:
    if key not in payload:
        raise ValueError(f"Missing required key: {key}")
    value = payload[key]
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValueError(f"{key} must be a number")
    return float(value)


def _require_int(payload: Dict[str, Any], key: str) -> int:
    if key not in payload:
        raise ValueError(f"Missing required key: {key}")
    value = payload[key]
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"{key} must be an integer")
    return int(value)


def _optional_number(payload: Dict[str, Any], key: str, default: float) -> float:
    if key not in payload:
        return default
    return _require_number(payload, key)


def _str_list(value: object, key: str) -> List[str]:
    if isinstance(value, list) and all(isinstance(item, str) and item.strip() for item in value):
        return [item.strip() for item in value]
    raise ValueError(f"{key} must be a list of non-empty strings")


def _int_list(value: object, key: str) -> List[int]:
    if isinstance(value, list) and all(isinstance(item, int) and not isinstance(item, bool) for item in value):
        return [int(item) for item in value]
    raise ValueError(f"{key} must be a list of integers")


def _anchor_list(value: object) -> Tuple[Tuple[AnchorPair, ...], ...]:
    if not isinstance(value, list):
        raise ValueError("anchors must be a list (one entry per output)")
    scales = []
    for scale in value:
        if not isinstance(scale, list):
            raise ValueError("anchors entries must be lists of [w, h] pairs")
        pairs = []
        for pair in scale:
            if (
                not isinstance(pair, list)
                or len(pair) != 2
                or any(isinstance(v, bool) or not isinstance(v, (int, float)) for v in pair)
            ):
                raise ValueError("anchors entries must be lists of [w, h] pairs")
            pairs.append((float(pair[0]), float(pair[1])))
        scales.append(tuple(pairs))
    return tuple(scales)


def _load_labels(payload: Dict[str, Any], base_dir: Path) -> Tuple[Label, ...]:
    if "labels" in payload and "metadata" in payload:
        raise ValueError("Use either 'labels' or 'metadata', not both.")
    if "labels" in payload:
        return labels_from_names(_str_list(payload["labels"], "labels"))
    if "metadata" in payload:
        value = payload["metadata"]
        if not isinstance(value, str) or not value.strip():
            raise ValueError("metadata must be a non-empty string")
        meta_path = Path(value)
        if not meta_path.is_absolute():
            meta_path = base_dir / meta_path
        if not meta_path.exists():
            raise FileNotFoundError(f"Label metadata not found: {meta_path}")
        names = load_class_names(str(meta_path))
        ids = sorted(names)
        if ids != list(range(len(ids))):
            raise ConfigurationMismatch(f"Label metadata ids must be dense from 0, got {ids}")
        return labels_from_names(names_in_order(names))
    raise ValueError("Missing required key: labels (or metadata)")


def load_model_config(path: PathLike) -> YoloModelConfig:
    """
    Load a model configuration from JSON.

    Example:

        {
          "width": 640, "height": 640,
          "decode_mode": "raw",
          "outputs": ["output0", "output1", "output2"],
          "strides": [8, 16, 32],
          "shapes": [80, 40, 20],
          "anchors": [[[10, 13], [16, 30], [33, 23]], ...],
          "metadata": "metadata.yaml"
        }

    `dimensions` defaults to `5 + len(labels)`. A relative `metadata` path is
    resolved against the config file's directory.
    """

    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Model config not found: {path}")
    raw = path.read_text(encoding="utf-8")
    try:
        payload = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise ValueError(f"Invalid model config JSON: {path}") from exc
    if not isinstance(payload, dict):
        raise ValueError("Model config must be a JSON object")

    allowed = {
        "width",
        "height",
        "dimensions",
        "labels",
        "metadata",
        "confidence",
        "mul_confidence",
        "overlap",
        "decode_mode",
        "outputs",
        "input_name",
        "strides",
        "shapes",
        "anchors",
    }
    unknown = sorted(set(payload.keys()) - allowed)
    if unknown:
        raise ValueError(f"Unknown model config keys: {unknown}")

    labels = _load_labels(payload, path.parent)
    dimensions = _require_int(payload, "dimensions") if "dimensions" in payload else 5 + len(labels)

    mode_value = payload.get("decode_mode", DecodeMode.FUSED.value)
    try:
        decode_mode = DecodeMode(mode_value)
    except ValueError as exc:
        raise ValueError(f"decode_mode must be one of {[m.value for m in DecodeMode]}, got {mode_value!r}") from exc

    input_name = payload.get("input_name", "images")
    if not isinstance(input_name, str) or not input_name.strip():
        raise ValueError("input_name must be a non-empty string")

    outputs = _str_list(payload["outputs"], "outputs") if "outputs" in payload else ["output"]

    cfg = YoloModelConfig(
        width=_require_int(payload, "width"),
        height=_require_int(payload, "height"),
        dimensions=dimensions,
        labels=labels,
        confidence=_optional_number(payload, "confidence", 0.20),
        mul_confidence=_optional_number(payload, "mul_confidence", 0.25),
        overlap=_optional_number(payload, "overlap", 0.45),
        decode_mode=decode_mode,
        outputs=tuple(outputs),
        input_name=input_name,
        strides=tuple(_int_list(payload["strides"], "strides")) if "strides" in payload else (),
        shapes=tuple(_int_list(payload["shapes"], "shapes")) if "shapes" in payload else (),
        anchors=_anchor_list(payload["anchors"]) if "anchors" in payload else (),
    )
    logger.debug(
        "Loaded model config %s: %dx%d, %d classes, mode=%s",
        path,
        cfg.width,
        cfg.height,
        cfg.num_classes,
        cfg.decode_mode.value,
    )
    return cfg


def with_thresholds(
    cfg: YoloModelConfig,
    *,
    confidence: Optional[float] = None,
    mul_confidence: Optional[float] = None,
    overlap: Optional[float] = None,
) -> YoloModelConfig:
    """
    Copy of `cfg` with some thresholds replaced (validation runs again).
    """

    changes: Dict[str, float] = {}
    if confidence is not None:
        changes["confidence"] = float(confidence)
    if mul_confidence is not None:
        changes["mul_confidence"] = float(mul_confidence)
    if overlap is not None:
        changes["overlap"] = float(overlap)
    return replace(cfg, **changes)
