"""
YOLOv5 scoring helpers: letterbox, tensor packing, output decoding and
suppression around an external inference engine.

Works on NumPy arrays; OpenCV is needed for letterboxing and ONNX Runtime
only for `load_scorer`.
"""

from .types import Detection, Label
from .errors import ConfigurationMismatch
from .letterbox import LetterboxGeometry, LetterboxResult, letterbox, letterbox_geometry
from .tensor import to_tensor
from .config import DecodeMode, YoloModelConfig, load_model_config, with_thresholds
from .metadata import labels_from_names, load_class_names
from .decode import decode, decode_fused, decode_raw, map_boxes, unmap_boxes
from .nms import overlap_matrix, suppress
from .presets import coco_p5_config, coco_p6_config
from .scorer import PreprocessResult, YoloScorer, load_scorer

__all__ = [
    "Detection",
    "Label",
    "ConfigurationMismatch",
    "LetterboxGeometry",
    "LetterboxResult",
    "letterbox",
    "letterbox_geometry",
    "to_tensor",
    "DecodeMode",
    "YoloModelConfig",
    "load_model_config",
    "with_thresholds",
    "labels_from_names",
    "load_class_names",
    "decode",
    "decode_fused",
    "decode_raw",
    "map_boxes",
    "unmap_boxes",
    "overlap_matrix",
    "suppress",
    "coco_p5_config",
    "coco_p6_config",
    "PreprocessResult",
    "YoloScorer",
    "load_scorer",
]
