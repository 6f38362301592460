"""
Ready-made configurations for the stock COCO YOLOv5 exports.

P5 models (n/s/m/l/x) take 640x640 input and predict at strides 8/16/32;
P6 models (n6/s6/...) take 1280x1280 and add stride 64.
"""

from __future__ import annotations

from typing import Sequence

from .config import DecodeMode, YoloModelConfig
from .metadata import labels_from_names

COCO_NAMES = (
    "person", "bicycle", "car", "motorcycle", "airplane", "bus", "train", "truck", "boat",
    "traffic light", "fire hydrant", "stop sign", "parking meter", "bench", "bird", "cat", "dog",
    "horse", "sheep", "cow", "elephant", "bear", "zebra", "giraffe", "backpack", "umbrella",
    "handbag", "tie", "suitcase", "frisbee", "skis", "snowboard", "sports ball", "kite",
    "baseball bat", "baseball glove", "skateboard", "surfboard", "tennis racket", "bottle",
    "wine glass", "cup", "fork", "knife", "spoon", "bowl", "banana", "apple", "sandwich",
    "orange", "broccoli", "carrot", "hot dog", "pizza", "donut", "cake", "chair", "couch",
    "potted plant", "bed", "dining table", "toilet", "tv", "laptop", "mouse", "remote",
    "keyboard", "cell phone", "microwave", "oven", "toaster", "sink", "refrigerator", "book",
    "clock", "vase", "scissors", "teddy bear", "hair drier", "toothbrush",
)

P5_STRIDES = (8, 16, 32)
P5_ANCHORS = (
    ((10, 13), (16, 30), (33, 23)),
    ((30, 61), (62, 45), (59, 119)),
    ((116, 90), (156, 198), (373, 326)),
)

P6_STRIDES = (8, 16, 32, 64)
P6_ANCHORS = (
    ((19, 27), (44, 40), (38, 94)),
    ((96, 68), (86, 152), (180, 137)),
    ((140, 301), (303, 264), (238, 542)),
    ((436, 615), (739, 380), (925, 792)),
)


def _grid_shapes(size: int, strides: Sequence[int]):
    return tuple(size // s for s in strides)


def coco_p5_config(decode_mode: DecodeMode = DecodeMode.FUSED, size: int = 640) -> YoloModelConfig:
    """
    Fused mode expects the single `output` tensor of a standard export; raw mode
    expects the three per-stride heads (exported without the Detect layer).
    """

    raw = decode_mode is DecodeMode.RAW
    return YoloModelConfig(
        width=size,
        height=size,
        dimensions=5 + len(COCO_NAMES),
        labels=labels_from_names(COCO_NAMES),
        confidence=0.20,
        mul_confidence=0.25,
        overlap=0.45,
        decode_mode=decode_mode,
        outputs=("output", "output1", "output2") if raw else ("output",),
        strides=P5_STRIDES if raw else (),
        shapes=_grid_shapes(size, P5_STRIDES) if raw else (),
        anchors=P5_ANCHORS if raw else (),
    )


def coco_p6_config(decode_mode: DecodeMode = DecodeMode.FUSED, size: int = 1280) -> YoloModelConfig:
    raw = decode_mode is DecodeMode.RAW
    return YoloModelConfig(
        width=size,
        height=size,
        dimensions=5 + len(COCO_NAMES),
        labels=labels_from_names(COCO_NAMES),
        confidence=0.20,
        mul_confidence=0.25,
        overlap=0.45,
        decode_mode=decode_mode,
        outputs=("output", "output1", "output2", "output3") if raw else ("output",),
        strides=P6_STRIDES if raw else (),
        shapes=_grid_shapes(size, P6_STRIDES) if raw else (),
        anchors=P6_ANCHORS if raw else (),
    )
