"""Frame decoding, preprocessing and the forward pass.

``predict`` turns one encoded frame into a score vector:

    bytes -> RGB uint8 (H, W, 3) -> bilinear resize -> /255 float32
          -> batch of 1 -> model -> list of floats

Every tensor lives inside ``predict`` and is dropped before it returns, on the
success path and on every error path, so repeated cycles do not accumulate
memory.
"""

from __future__ import annotations

from typing import Callable, List, Union

import cv2
import numpy as np
import torch

from gesture_cam.utils.errors import DecodeError, InferenceError

DEFAULT_INPUT_SIZE = 224


def decode_frame(frame: bytes) -> np.ndarray:
    """Decode encoded image bytes into an RGB uint8 array of shape (H, W, 3).

    Raises:
        DecodeError: If the bytes are empty, corrupt, or not a supported image.
    """
    if not frame:
        raise DecodeError("Empty frame")

    buf = np.frombuffer(frame, dtype=np.uint8)
    try:
        bgr = cv2.imdecode(buf, cv2.IMREAD_COLOR)
    except cv2.error as e:
        raise DecodeError(f"Could not decode frame: {e}") from e
    if bgr is None:
        raise DecodeError("Could not decode frame: unsupported or corrupt image data")

    return cv2.cvtColor(bgr, cv2.COLOR_BGR2RGB)


def preprocess(image: np.ndarray, input_size: int = DEFAULT_INPUT_SIZE) -> np.ndarray:
    """Bilinear-resize to ``input_size`` x ``input_size`` and scale to [0, 1].

    No mean subtraction; models that need it do it in their own layers.
    """
    resized = cv2.resize(image, (input_size, input_size), interpolation=cv2.INTER_LINEAR)
    return resized.astype(np.float32) / 255.0


def to_batch(
    image: np.ndarray,
    device: Union[str, torch.device] = "cpu",
    channels_first: bool = True,
) -> torch.Tensor:
    """Wrap an (H, W, C) float image into a batch of one.

    Returns (1, C, H, W) when ``channels_first`` else (1, H, W, C).
    """
    tensor = torch.from_numpy(np.ascontiguousarray(image))
    if channels_first:
        tensor = tensor.permute(2, 0, 1)
    return tensor.unsqueeze(0).to(device)


def predict(
    model: Callable[[torch.Tensor], torch.Tensor],
    frame: bytes,
    input_size: int = DEFAULT_INPUT_SIZE,
    device: Union[str, torch.device] = "cpu",
    channels_first: bool = True,
    apply_softmax: bool = False,
) -> List[float]:
    """Run one frame through the model and return its score vector.

    Raises:
        DecodeError: The frame could not be decoded.
        InferenceError: The model call failed or did not return a single
            score vector for the batch of one.
    """
    image = preprocess(decode_frame(frame), input_size)

    with torch.no_grad():
        batch = to_batch(image, device, channels_first)
        try:
            output = model(batch)
        except Exception as e:
            raise InferenceError(f"Model invocation failed: {e}") from e

        if not isinstance(output, torch.Tensor):
            raise InferenceError(f"Model returned {type(output).__name__}, expected a tensor")
        if output.dim() != 2 or output.shape[0] != 1 or output.shape[1] < 1:
            raise InferenceError(f"Expected model output of shape (1, N), got {tuple(output.shape)}")

        scores = output[0].float()
        if apply_softmax:
            scores = torch.softmax(scores, dim=0)
        return scores.cpu().tolist()
