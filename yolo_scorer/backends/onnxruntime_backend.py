from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Mapping, Optional, Sequence, Union

import numpy as np

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


@dataclass(frozen=True)
class OnnxRuntimeBackendConfig:
    """
    Configuration for ONNX Runtime inference.

    - providers: ORT execution providers (e.g., ["CUDAExecutionProvider", "CPUExecutionProvider"])
    - intra_op_num_threads: 0 lets ORT decide
    """

    providers: Optional[Sequence[str]] = None
    intra_op_num_threads: int = 0


class OnnxRuntimeBackend:
    """
    Runs an exported model and returns every output by name.

    Used as the `infer_fn` of a `YoloScorer`: takes `{input_name: blob}` and
    returns `{output_name: array}`. Picking and ordering the outputs is up to
    the caller.
    """

    def __init__(self, model: Union[PathLike, bytes], cfg: OnnxRuntimeBackendConfig = OnnxRuntimeBackendConfig()):
        try:
            import onnxruntime as ort  # type: ignore
        except Exception as e:  # pragma: no cover
            raise ImportError(
                "onnxruntime is required for the ONNX backend. Install it with `pip install onnxruntime` "
                "(or `onnxruntime-gpu`)."
            ) from e

        self._ort = ort
        sess_opts = ort.SessionOptions()
        if cfg.intra_op_num_threads:
            sess_opts.intra_op_num_threads = cfg.intra_op_num_threads
        providers = list(cfg.providers) if cfg.providers is not None else None

        if isinstance(model, (bytes, bytearray)):
            self.model_path = None
            source = bytes(model)
        else:
            self.model_path = Path(model)
            if not self.model_path.exists():
                raise FileNotFoundError(str(self.model_path))
            source = str(self.model_path)

        self.session = ort.InferenceSession(source, sess_options=sess_opts, providers=providers)
        self.input_names = tuple(i.name for i in self.session.get_inputs())
        self.output_names = tuple(o.name for o in self.session.get_outputs())
        logger.info(
            "ONNX Runtime session ready (%s): inputs=%s outputs=%s providers=%s",
            self.model_path or "<bytes>",
            list(self.input_names),
            list(self.output_names),
            list(self.providers_in_use),
        )

    @property
    def providers_in_use(self) -> Sequence[str]:
        # ORT returns providers in priority order for this session.
        return tuple(self.session.get_providers())

    @property
    def available_providers(self) -> Sequence[str]:
        return tuple(self._ort.get_available_providers())

    def __call__(self, feeds: Mapping[str, np.ndarray]) -> Dict[str, np.ndarray]:
        values = self.session.run(None, dict(feeds))
        return dict(zip(self.output_names, values))
