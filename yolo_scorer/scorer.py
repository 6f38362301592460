from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, List, Mapping, Optional, Sequence, Tuple, Union

import numpy as np

from .config import YoloModelConfig
from .decode import decode
from .errors import ConfigurationMismatch
from .letterbox import LetterboxGeometry, letterbox
from .nms import suppress
from .tensor import to_tensor
from .types import Detection

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]
InferFn = Callable[[Mapping[str, np.ndarray]], Mapping[str, np.ndarray]]


@dataclass(frozen=True)
class PreprocessResult:
    tensor: np.ndarray
    orig_size: Tuple[int, int]
    gain: float
    pad: Tuple[float, float]

    @property
    def geometry(self) -> LetterboxGeometry:
        return LetterboxGeometry(gain=self.gain, pad=self.pad)


class YoloScorer:
    """
    Letterbox -> tensor -> inference -> decode -> suppression.

    Expects (H, W, 3) uint8 images (BGR by default, OpenCV-style) and returns
    `Detection`s in original image coordinates. The inference engine is any
    callable mapping `{cfg.input_name: tensor}` to named output arrays.
    """

    def __init__(
        self,
        cfg: YoloModelConfig,
        infer_fn: InferFn,
        *,
        backend: Optional[object] = None,
        channel_order: str = "bgr",
    ):
        self.cfg = cfg
        self._infer_fn = infer_fn
        self.backend = backend
        self.channel_order = channel_order

    def preprocess(self, image: np.ndarray) -> PreprocessResult:
        if image is None or not hasattr(image, "shape"):
            raise TypeError("image must be a NumPy array.")
        if image.ndim != 3 or image.shape[2] != 3:
            raise ValueError(f"Expected image shape (H, W, 3), got {getattr(image, 'shape', None)}")

        orig_h, orig_w = image.shape[:2]
        boxed = letterbox(image, new_shape=self.cfg.input_size)
        tensor = to_tensor(boxed.image, channel_order=self.channel_order, expected_size=self.cfg.input_size)
        return PreprocessResult(tensor=tensor, orig_size=(orig_w, orig_h), gain=boxed.gain, pad=boxed.pad)

    def run(self, tensor: np.ndarray) -> List[np.ndarray]:
        """
        Call the engine and return its outputs in `cfg.outputs` order.
        """

        result = self._infer_fn({self.cfg.input_name: tensor})
        missing = [name for name in self.cfg.outputs if name not in result]
        if missing:
            raise ConfigurationMismatch(
                f"Model outputs {missing} not found in inference result (got {sorted(result.keys())})"
            )
        return [np.asarray(result[name]) for name in self.cfg.outputs]

    def parse(
        self,
        outputs: Sequence[np.ndarray],
        orig_size: Tuple[int, int],
        geometry: Optional[LetterboxGeometry] = None,
    ) -> List[Detection]:
        return decode(outputs, orig_size, self.cfg, geometry)

    def suppress(self, detections: Sequence[Detection]) -> List[Detection]:
        return suppress(detections, self.cfg.overlap)

    def predict(self, image: np.ndarray) -> List[Detection]:
        prep = self.preprocess(image)
        outputs = self.run(prep.tensor)
        candidates = self.parse(outputs, prep.orig_size, prep.geometry)
        detections = self.suppress(candidates)
        logger.debug(
            "Predicted %d detections (%d candidates) for %dx%d image",
            len(detections),
            len(candidates),
            prep.orig_size[0],
            prep.orig_size[1],
        )
        return detections

    __call__ = predict


def load_scorer(
    model: Union[PathLike, bytes],
    cfg: YoloModelConfig,
    *,
    providers: Optional[Sequence[str]] = None,
    channel_order: str = "bgr",
) -> YoloScorer:
    """
    Create a scorer backed by ONNX Runtime.

    Args:
        model: path to the .onnx file, or its bytes
        cfg: configuration matching the exported model
        providers: ORT execution providers; None uses ORT's default order
    """

    from .backends.onnxruntime_backend import OnnxRuntimeBackend, OnnxRuntimeBackendConfig

    ort_backend = OnnxRuntimeBackend(model, OnnxRuntimeBackendConfig(providers=providers))
    if cfg.input_name not in ort_backend.input_names:
        raise ConfigurationMismatch(
            f"Model input {cfg.input_name!r} not found (model inputs: {list(ort_backend.input_names)})"
        )
    missing = [name for name in cfg.outputs if name not in ort_backend.output_names]
    if missing:
        raise ConfigurationMismatch(
            f"Model outputs {missing} not declared by the model (model outputs: {list(ort_backend.output_names)})"
        )
    return YoloScorer(cfg, ort_backend, backend=ort_backend, channel_order=channel_order)
