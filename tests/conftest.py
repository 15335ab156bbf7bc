"""
Pytest configuration and shared fixtures.
"""
import asyncio
import json
import logging
from pathlib import Path
from typing import List

import cv2
import numpy as np
import pytest
import torch

from gesture_cam.utils.frame_source import FrameSource


class FixedScores(torch.nn.Module):
    """Classifier stub that returns the same scores for every image in the batch."""

    def __init__(self, scores: List[float]):
        super().__init__()
        self.register_buffer("scores", torch.tensor([scores], dtype=torch.float32))

    def forward(self, x: torch.Tensor) -> torch.Tensor:
        return self.scores.expand(x.shape[0], -1)


class StaticSource(FrameSource):
    """Frame source replaying a fixed sequence; the last item repeats.

    Exception instances in the sequence are raised instead of returned.
    """

    def __init__(self, *results):
        self.results = list(results)
        self.calls = 0
        self.closed = False

    def read_frame(self) -> bytes:
        self.calls += 1
        item = self.results.pop(0) if len(self.results) > 1 else self.results[0]
        if isinstance(item, Exception):
            raise item
        return item

    def close(self) -> None:
        self.closed = True


class BlockingSource(FrameSource):
    """Frame source whose capture waits until ``release`` is set."""

    def __init__(self, frame: bytes):
        self.frame = frame
        self.release = asyncio.Event()
        self.calls = 0

    def read_frame(self) -> bytes:
        return self.frame

    async def capture_frame(self) -> bytes:
        self.calls += 1
        await self.release.wait()
        return self.frame


@pytest.fixture(autouse=True)
def reset_package_logger():
    """Undo setup_logger() between tests so handlers do not leak."""
    yield
    logger = logging.getLogger("gesture_cam")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    logger.propagate = True
    logger.setLevel(logging.NOTSET)


@pytest.fixture
def project_root() -> Path:
    """Project root directory."""
    return Path(__file__).parent.parent


@pytest.fixture
def png_bytes() -> bytes:
    """A 48x32 mid-grey PNG frame."""
    image = np.full((32, 48, 3), 128, dtype=np.uint8)
    ok, buf = cv2.imencode(".png", image)
    assert ok
    return buf.tobytes()


@pytest.fixture
def rps_labels():
    return ("rock", "paper", "scissors")


@pytest.fixture
def rps_model() -> FixedScores:
    return FixedScores([0.1, 0.7, 0.2])


@pytest.fixture
def model_file(tmp_path: Path, rps_model: FixedScores) -> Path:
    """TorchScript archive of the rock/paper/scissors stub."""
    path = tmp_path / "model.pt"
    torch.jit.script(rps_model).save(str(path))
    return path


@pytest.fixture
def metadata_file(tmp_path: Path, rps_labels) -> Path:
    path = tmp_path / "metadata.json"
    path.write_text(json.dumps({"modelName": "rps", "labels": list(rps_labels)}), encoding="utf-8")
    return path
