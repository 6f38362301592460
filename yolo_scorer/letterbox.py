from dataclasses import dataclass
from typing import Tuple

import numpy as np


@dataclass(frozen=True)
class LetterboxGeometry:
    """
    gain: resized / original (same for both axes)
    pad: (dw, dh) left/top padding in network input pixels, may be fractional
    """

    gain: float
    pad: Tuple[float, float]


@dataclass(frozen=True)
class LetterboxResult:
    image: np.ndarray
    gain: float
    pad: Tuple[float, float]


def letterbox_geometry(orig_size: Tuple[int, int], input_size: Tuple[int, int]) -> LetterboxGeometry:
    """
    Gain and padding for fitting `orig_size` (w, h) into `input_size` (W, H).

    The smaller axis ratio wins, so one axis is filled exactly and the other
    one is padded; the image is never cropped.
    """

    w, h = orig_size
    new_w, new_h = input_size
    if w <= 0 or h <= 0:
        raise ValueError(f"Image size must be positive, got {orig_size}")
    if new_w <= 0 or new_h <= 0:
        raise ValueError(f"Model input size must be positive, got {input_size}")

    gain = min(new_w / w, new_h / h)
    dw = (new_w - w * gain) / 2
    dh = (new_h - h * gain) / 2
    return LetterboxGeometry(gain=gain, pad=(dw, dh))


def letterbox(
    image: np.ndarray,
    new_shape: Tuple[int, int] = (640, 640),
    color: Tuple[int, int, int] = (0, 0, 0),
) -> LetterboxResult:
    """
    Resize and pad image to the model input size, keeping the aspect ratio.

    Args:
        image: (H, W, C) uint8 image
        new_shape: (W, H) model input size
        color: fill value for the padded border

    Returns:
        LetterboxResult with the padded image plus the gain/pad needed to map
        boxes back onto the original image. Images already at `new_shape`
        are returned untouched.
    """
    try:
        import cv2  # type: ignore
    except Exception as e:  # pragma: no cover
        raise ImportError("OpenCV is required for letterbox(). Install with `pip install opencv-python`.") from e

    if image is None or not hasattr(image, "shape") or image.ndim < 2:
        raise TypeError("image must be a NumPy array shaped (H, W[, C]).")
    if isinstance(new_shape, int):
        new_shape = (new_shape, new_shape)

    h, w = image.shape[:2]
    new_w, new_h = new_shape
    geometry = letterbox_geometry((w, h), (new_w, new_h))

    if (w, h) == (new_w, new_h):
        return LetterboxResult(image=image, gain=1.0, pad=(0.0, 0.0))

    gain = geometry.gain
    resized_w, resized_h = int(round(w * gain)), int(round(h * gain))
    resized_w, resized_h = min(max(resized_w, 1), new_w), min(max(resized_h, 1), new_h)

    if (w, h) != (resized_w, resized_h):
        image = cv2.resize(image, (resized_w, resized_h), interpolation=cv2.INTER_LINEAR)

    dw, dh = geometry.pad
    left = min(max(int(round(dw - 0.1)), 0), new_w - resized_w)
    top = min(max(int(round(dh - 0.1)), 0), new_h - resized_h)
    right = new_w - resized_w - left
    bottom = new_h - resized_h - top
    padded = cv2.copyMakeBorder(image, top, bottom, left, right, cv2.BORDER_CONSTANT, value=color)

    return LetterboxResult(image=padded, gain=gain, pad=geometry.pad)
