from typing import Optional, Tuple

import numpy as np


def to_tensor(
    image: np.ndarray,
    channel_order: str = "bgr",
    expected_size: Optional[Tuple[int, int]] = None,
) -> np.ndarray:
    """
    Pack an (H, W, 3) image into a float32 NCHW tensor, RGB planes scaled to [0, 1].

    Args:
        image: uint8 pixels, already letterboxed to the model input size
        channel_order: "bgr" (OpenCV) or "rgb"
        expected_size: optional (W, H) the image has to match
    """

    if image is None or not hasattr(image, "shape"):
        raise TypeError("image must be a NumPy array.")
    if image.ndim != 3 or image.shape[2] != 3:
        raise ValueError(f"Expected image shape (H, W, 3), got {getattr(image, 'shape', None)}")

    h, w = image.shape[:2]
    if expected_size is not None and (w, h) != tuple(expected_size):
        raise ValueError(f"Expected image size {tuple(expected_size)}, got {(w, h)}")

    order = channel_order.lower()
    if order == "bgr":
        pixels = image[:, :, ::-1]
    elif order == "rgb":
        pixels = image
    else:
        raise ValueError(f"Unsupported channel order: {channel_order!r}")

    # HWC -> CHW, normalize, add batch
    blob = pixels.astype(np.float32) / 255.0
    blob = np.transpose(blob, (2, 0, 1))[None, ...]
    return np.ascontiguousarray(blob)
