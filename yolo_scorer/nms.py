from __future__ import annotations

import logging
from typing import List, Sequence

import numpy as np

from .types import Detection

logger = logging.getLogger(__name__)


def overlap_matrix(boxes: np.ndarray) -> np.ndarray:
    """
    Pairwise IoU for (N, 4) xyxy boxes. Disjoint pairs and pairs with an
    empty union get 0.
    """

    boxes = np.asarray(boxes, dtype=np.float64).reshape(-1, 4)
    x1, y1, x2, y2 = boxes[:, 0], boxes[:, 1], boxes[:, 2], boxes[:, 3]
    areas = (x2 - x1) * (y2 - y1)

    xx1 = np.maximum(x1[:, None], x1[None, :])
    yy1 = np.maximum(y1[:, None], y1[None, :])
    xx2 = np.minimum(x2[:, None], x2[None, :])
    yy2 = np.minimum(y2[:, None], y2[None, :])

    w = np.maximum(0.0, xx2 - xx1)
    h = np.maximum(0.0, yy2 - yy1)
    inter = w * h
    union = areas[:, None] + areas[None, :] - inter

    iou = np.zeros_like(inter)
    np.divide(inter, union, out=iou, where=union > 0)
    return iou


def suppress(
    detections: Sequence[Detection],
    overlap_threshold: float,
    *,
    per_class: bool = False,
) -> List[Detection]:
    """
    Greedy non-maximum suppression over all labels.

    Every detection, in input order, removes each still-alive detection it
    overlaps by at least `overlap_threshold` whose score is not higher than
    its own. A detection that has already been removed still removes others,
    so two overlapping detections with equal scores remove each other.

    The kept detections are returned in input order. With `per_class=True`
    only detections sharing a label id can remove each other.
    """

    n = len(detections)
    if n == 0:
        return []

    boxes = np.array([d.as_xyxy() for d in detections], dtype=np.float64)
    scores = np.array([d.score for d in detections], dtype=np.float64)
    iou = overlap_matrix(boxes)
    # Boxes that do not intersect never suppress each other, whatever the threshold.
    candidates = (iou > 0) & (iou >= overlap_threshold)
    if per_class:
        ids = np.array([d.label.id for d in detections])
        candidates &= ids[:, None] == ids[None, :]

    alive = np.ones(n, dtype=bool)
    for i in range(n):
        hit = alive & candidates[i] & (scores[i] >= scores)
        hit[i] = False
        alive &= ~hit

    kept = [d for d, keep in zip(detections, alive) if keep]
    logger.debug("Suppression kept %d of %d detections", len(kept), n)
    return kept
