from __future__ import annotations

import logging
from typing import List, Optional, Sequence, Tuple

import numpy as np

from .config import DecodeMode, YoloModelConfig
from .errors import ConfigurationMismatch
from .letterbox import LetterboxGeometry, letterbox_geometry
from .types import Detection

logger = logging.getLogger(__name__)


def sigmoid(x: np.ndarray) -> np.ndarray:
    with np.errstate(over="ignore"):
        return 1.0 / (1.0 + np.exp(-x))


def xywh2xyxy(boxes: np.ndarray) -> np.ndarray:
    cx, cy, w, h = boxes[:, 0], boxes[:, 1], boxes[:, 2], boxes[:, 3]
    return np.stack([cx - w / 2, cy - h / 2, cx + w / 2, cy + h / 2], axis=1)


def map_boxes(boxes: np.ndarray, geometry: LetterboxGeometry) -> np.ndarray:
    """
    Original image xyxy -> network input xyxy (scale by gain, then add pad).
    """

    dw, dh = geometry.pad
    out = np.array(boxes, dtype=np.float64, copy=True).reshape(-1, 4)
    out[:, [0, 2]] = out[:, [0, 2]] * geometry.gain + dw
    out[:, [1, 3]] = out[:, [1, 3]] * geometry.gain + dh
    return out


def unmap_boxes(
    boxes: np.ndarray,
    geometry: LetterboxGeometry,
    orig_size: Optional[Tuple[int, int]] = None,
) -> np.ndarray:
    """
    Network input xyxy -> original image xyxy (remove pad, divide by gain).

    With `orig_size` (w, h) every coordinate is clipped to [0, w-1] / [0, h-1].
    """

    dw, dh = geometry.pad
    out = np.array(boxes, dtype=np.float64, copy=True).reshape(-1, 4)
    out[:, [0, 2]] = (out[:, [0, 2]] - dw) / geometry.gain
    out[:, [1, 3]] = (out[:, [1, 3]] - dh) / geometry.gain

    if orig_size is not None:
        orig_w, orig_h = orig_size
        out[:, [0, 2]] = np.clip(out[:, [0, 2]], 0, orig_w - 1)
        out[:, [1, 3]] = np.clip(out[:, [1, 3]], 0, orig_h - 1)
    return out


def _to_detections(
    boxes: np.ndarray,
    scores: np.ndarray,
    class_ids: np.ndarray,
    cfg: YoloModelConfig,
) -> List[Detection]:
    # Boxes that collapsed while clipping are not detections.
    keep = (boxes[:, 2] > boxes[:, 0]) & (boxes[:, 3] > boxes[:, 1])
    return [
        Detection(
            label=cfg.labels[int(cls_id)],
            score=float(score),
            x1=float(x1),
            y1=float(y1),
            x2=float(x2),
            y2=float(y2),
        )
        for (x1, y1, x2, y2), score, cls_id in zip(boxes[keep], scores[keep], class_ids[keep])
    ]


def _resolve_geometry(
    orig_size: Tuple[int, int],
    cfg: YoloModelConfig,
    geometry: Optional[LetterboxGeometry],
) -> LetterboxGeometry:
    if geometry is not None:
        return geometry
    return letterbox_geometry(orig_size, cfg.input_size)


def decode_fused(
    output: np.ndarray,
    orig_size: Tuple[int, int],
    cfg: YoloModelConfig,
    geometry: Optional[LetterboxGeometry] = None,
) -> List[Detection]:
    """
    Decode a (1, N, 5 + C) output whose scores are already probabilities.

    Rows with objectness <= `cfg.confidence` are skipped. Every class whose
    `objectness * class_score` is above `cfg.mul_confidence` yields its own
    detection, so one row can produce several.
    """

    dims = cfg.dimensions
    p = np.asarray(output, dtype=np.float32)
    if p.ndim == 3 and p.shape[0] != 1:
        raise ValueError(f"Batch > 1 is not supported (got shape {p.shape}). Pass one image at a time.")
    if p.size % dims != 0:
        raise ConfigurationMismatch(f"Output of size {p.size} is not a multiple of dimensions={dims}")
    p = p.reshape(-1, dims)

    p = p[p[:, 4] > cfg.confidence]
    if p.shape[0] == 0:
        return []

    # mul_conf = obj_conf * cls_conf
    scores = p[:, 5:] * p[:, 4:5]
    rows, class_ids = np.nonzero(scores > cfg.mul_confidence)
    if rows.size == 0:
        return []

    geometry = _resolve_geometry(orig_size, cfg, geometry)
    boxes = unmap_boxes(xywh2xyxy(p[rows, :4]), geometry, orig_size)
    detections = _to_detections(boxes, scores[rows, class_ids], class_ids, cfg)
    logger.debug("Fused decode: %d rows above objectness, %d detections", p.shape[0], len(detections))
    return detections


def decode_raw(
    outputs: Sequence[np.ndarray],
    orig_size: Tuple[int, int],
    cfg: YoloModelConfig,
    geometry: Optional[LetterboxGeometry] = None,
) -> List[Detection]:
    """
    Decode raw per-stride outputs (no sigmoid/grid applied by the model).

    Output `i` holds `len(cfg.anchors[i]) x g x g` predictions of
    `cfg.dimensions` values (g = `cfg.shapes[i]`), laid out anchor, row, column.
    For each cell:

        cx = (sig(tx) * 2 - 0.5 + x) * stride
        cy = (sig(ty) * 2 - 0.5 + y) * stride
        w  = (sig(tw) * 2) ** 2 * anchor_w
        h  = (sig(th) * 2) ** 2 * anchor_h

    The best `objectness * class` score labels the box.
    """

    if len(outputs) != len(cfg.shapes):
        raise ConfigurationMismatch(f"Expected {len(cfg.shapes)} raw outputs, got {len(outputs)}")

    dims = cfg.dimensions
    geometry = _resolve_geometry(orig_size, cfg, geometry)

    all_boxes: List[np.ndarray] = []
    all_scores: List[np.ndarray] = []
    all_ids: List[np.ndarray] = []

    for i, out in enumerate(outputs):
        g = cfg.shapes[i]
        stride = cfg.strides[i]
        anchors = np.asarray(cfg.anchors[i], dtype=np.float32)
        na = anchors.shape[0]

        p = np.asarray(out, dtype=np.float32)
        expected = na * g * g * dims
        if p.size != expected:
            raise ConfigurationMismatch(
                f"Output {i} ({cfg.outputs[i]!r}) has {p.size} values, expected {na}x{g}x{g}x{dims}={expected}"
            )
        p = sigmoid(p.reshape(na, g, g, dims))

        obj = p[..., 4]
        scores = p[..., 5:] * obj[..., None]
        best = scores.argmax(axis=-1)
        best_score = np.take_along_axis(scores, best[..., None], axis=-1)[..., 0]

        mask = (obj > cfg.confidence) & (best_score > cfg.mul_confidence)
        a_idx, y_idx, x_idx = np.nonzero(mask)
        if a_idx.size == 0:
            continue

        b = p[a_idx, y_idx, x_idx]
        cx = (b[:, 0] * 2 - 0.5 + x_idx) * stride
        cy = (b[:, 1] * 2 - 0.5 + y_idx) * stride
        bw = (b[:, 2] * 2) ** 2 * anchors[a_idx, 0]
        bh = (b[:, 3] * 2) ** 2 * anchors[a_idx, 1]

        xyxy = xywh2xyxy(np.stack([cx, cy, bw, bh], axis=1))
        all_boxes.append(unmap_boxes(xyxy, geometry, orig_size))
        all_scores.append(best_score[a_idx, y_idx, x_idx])
        all_ids.append(best[a_idx, y_idx, x_idx])

    if not all_boxes:
        return []

    detections = _to_detections(
        np.concatenate(all_boxes),
        np.concatenate(all_scores),
        np.concatenate(all_ids),
        cfg,
    )
    logger.debug("Raw decode over %d outputs: %d detections", len(outputs), len(detections))
    return detections


def decode(
    outputs: Sequence[np.ndarray],
    orig_size: Tuple[int, int],
    cfg: YoloModelConfig,
    geometry: Optional[LetterboxGeometry] = None,
) -> List[Detection]:
    """
    Decode engine outputs (in `cfg.outputs` order) with the configured strategy.
    """

    if cfg.decode_mode is DecodeMode.FUSED:
        if not outputs:
            raise ConfigurationMismatch("Fused decoding needs one output tensor, got none")
        return decode_fused(outputs[0], orig_size, cfg, geometry)
    if cfg.decode_mode is DecodeMode.RAW:
        return decode_raw(outputs, orig_size, cfg, geometry)
    raise ValueError(f"Unsupported decode mode: {cfg.decode_mode!r}")
