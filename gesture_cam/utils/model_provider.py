"""Model and label loading.

The classifier is a TorchScript archive; its class names live in a sidecar
``metadata.json`` (Teachable Machine style) whose ``labels`` array maps output
index ``i`` to a name. Both are loaded once at startup and never mutated.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Tuple, Union

import torch

from gesture_cam.utils.errors import FatalStartupError

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


def resolve_device(name: str = "auto") -> torch.device:
    """Map a config device name to a ``torch.device``.

    ``"auto"`` picks CUDA when available, otherwise CPU.
    """
    if name == "auto":
        return torch.device("cuda" if torch.cuda.is_available() else "cpu")
    return torch.device(name)


def load_labels(metadata_path: PathLike) -> Tuple[str, ...]:
    """Read the ordered label list from a metadata JSON file.

    A missing ``labels`` field yields an empty tuple; callers fall back to
    ``class_<index>`` names. All other fields are ignored.

    Raises:
        FatalStartupError: If the file cannot be read, is not valid JSON, is
            not a JSON object, or ``labels`` is not a list of strings.
    """
    path = Path(metadata_path)
    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as e:
        raise FatalStartupError(f"Cannot read metadata file {path}: {e}") from e
    except UnicodeDecodeError as e:
        raise FatalStartupError(f"Metadata file {path} is not valid UTF-8: {e}") from e

    try:
        metadata = json.loads(raw)
    except json.JSONDecodeError as e:
        raise FatalStartupError(f"Invalid JSON in metadata file {path}: {e}") from e

    if not isinstance(metadata, dict):
        raise FatalStartupError(f"Metadata file {path} must contain a JSON object")

    labels = metadata.get("labels", [])
    if not isinstance(labels, list) or not all(isinstance(s, str) for s in labels):
        raise FatalStartupError(f"Invalid 'labels' in {path}: expected an array of strings")

    logger.debug(f"Loaded {len(labels)} labels from {path}")
    return tuple(labels)


def load_model(model_path: PathLike, device: torch.device) -> torch.nn.Module:
    """Load a TorchScript classifier onto ``device`` in eval mode.

    Raises:
        FatalStartupError: If the file is missing or cannot be deserialized.
    """
    path = Path(model_path)
    if not path.exists():
        raise FatalStartupError(f"Model not found at {path}")

    try:
        model = torch.jit.load(str(path), map_location=device)
    except (RuntimeError, ValueError, OSError) as e:
        raise FatalStartupError(f"Failed to load model from {path}: {e}") from e

    model.eval()
    logger.info(f"Loaded model from {path}")
    return model


def load_model_and_labels(
    model_path: PathLike,
    metadata_path: PathLike,
    device: torch.device,
) -> Tuple[torch.nn.Module, Tuple[str, ...]]:
    """Load the metadata labels, then the model.

    Metadata is read first so a broken sidecar fails before the (much slower)
    model deserialization.
    """
    labels = load_labels(metadata_path)
    model = load_model(model_path, device)
    return model, labels
