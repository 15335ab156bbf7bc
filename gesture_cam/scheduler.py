"""Repeating capture -> predict -> report loop with a re-entrancy guard.

The scheduler is a single-threaded asyncio timer. Every ``interval_s`` seconds
it ticks; a tick while the scheduler is IDLE flips it to RUNNING and starts one
cycle, a tick while RUNNING is dropped (never queued, no catch-up). The cycle
always returns the scheduler to IDLE, whether it reported a prediction or
failed. Under slow hardware this yields "at least ``interval_s`` between cycle
starts", never overlapping cycles.

Inference is synchronous and blocks the loop while it runs; the only
suspension inside a cycle is the frame capture.
"""

from __future__ import annotations

import asyncio
import logging
from enum import Enum
from typing import Callable, Optional, Sequence, Union

import torch

from gesture_cam.utils.errors import CaptureError
from gesture_cam.utils.frame_source import FrameSource
from gesture_cam.utils.pipeline import DEFAULT_INPUT_SIZE, predict
from gesture_cam.utils.prediction import (
    Prediction,
    format_report,
    looks_like_probabilities,
    top_prediction,
)

logger = logging.getLogger(__name__)


class CycleState(Enum):
    IDLE = "idle"
    RUNNING = "running"


def print_report(line: str) -> None:
    print(line, flush=True)


def _log_abandoned_capture(future: asyncio.Future) -> None:
    if future.cancelled():
        return
    error = future.exception()
    if error is not None:
        logger.debug(f"Timed-out capture finished with error: {error}")
    else:
        logger.debug("Timed-out capture finished; frame discarded")


class CaptureScheduler:
    """Drive capture/predict cycles on a fixed timer, one at a time.

    Args:
        source: Where frames come from.
        model: Loaded classifier; read-only, shared by every cycle.
        labels: Class names in model output order.
        interval_s: Seconds between ticks.
        input_size: Square model input dimension.
        device: Device the input batch is moved to.
        channels_first: Feed NCHW (True) or NHWC (False) batches.
        apply_softmax: Softmax the raw model output before reporting.
        capture_timeout: Seconds before a capture is force-failed with a
            CaptureError. ``None`` waits indefinitely. A timed-out read keeps
            running in its executor thread; the cycle fails but ticks are
            dropped until that read returns, so the camera is never read
            twice at once.
        report: Sink for prediction lines, stdout by default.
    """

    def __init__(
        self,
        source: FrameSource,
        model: Callable[[torch.Tensor], torch.Tensor],
        labels: Sequence[str],
        interval_s: float = 5.0,
        input_size: int = DEFAULT_INPUT_SIZE,
        device: Union[str, torch.device] = "cpu",
        channels_first: bool = True,
        apply_softmax: bool = False,
        capture_timeout: Optional[float] = None,
        report: Callable[[str], None] = print_report,
    ) -> None:
        if interval_s <= 0:
            raise ValueError("interval_s must be > 0")
        self._source = source
        self._model = model
        self._labels = tuple(labels)
        self.interval_s = float(interval_s)
        self.input_size = int(input_size)
        self.device = device
        self.channels_first = channels_first
        self.apply_softmax = apply_softmax
        self.capture_timeout = capture_timeout
        self._report = report

        self._state = CycleState.IDLE
        self._task: Optional[asyncio.Task] = None
        self._pending_capture: Optional[asyncio.Future] = None
        self._warned_scores = False

        self.completed_cycles = 0
        self.failed_cycles = 0
        self.dropped_ticks = 0

    @property
    def state(self) -> CycleState:
        return self._state

    def tick(self) -> Optional[asyncio.Task]:
        """Start a cycle unless one is already running.

        Must be called from inside a running event loop. Returns the cycle
        task, or ``None`` if the tick was dropped.
        """
        if self._state is CycleState.RUNNING:
            self.dropped_ticks += 1
            logger.debug("Previous cycle still running; tick dropped")
            return None
        if self._pending_capture is not None and not self._pending_capture.done():
            self.dropped_ticks += 1
            logger.debug("Timed-out capture still reading the camera; tick dropped")
            return None

        # Flip the guard before the task is scheduled so back-to-back ticks
        # cannot both pass the check.
        self._state = CycleState.RUNNING
        try:
            self._task = asyncio.get_running_loop().create_task(self._cycle())
        except Exception:
            self._state = CycleState.IDLE
            raise
        return self._task

    async def run_cycle(self) -> Optional[Prediction]:
        """Run one guarded cycle now and wait for it.

        Returns the prediction, or ``None`` if the cycle failed or another
        cycle was already in flight.
        """
        task = self.tick()
        if task is None:
            return None
        return await task

    async def run(self, max_ticks: Optional[int] = None) -> None:
        """Tick every ``interval_s`` seconds, starting one interval from now.

        Runs until cancelled. With ``max_ticks`` it stops after that many
        ticks and waits for the in-flight cycle and camera read, if any.
        """
        ticks = 0
        while max_ticks is None or ticks < max_ticks:
            await asyncio.sleep(self.interval_s)
            self.tick()
            ticks += 1

        if self._task is not None and not self._task.done():
            await self._task
        if self._pending_capture is not None and not self._pending_capture.done():
            await asyncio.wait([self._pending_capture])

    async def _capture(self) -> bytes:
        capture = asyncio.ensure_future(self._source.capture_frame())
        self._pending_capture = capture
        if self.capture_timeout is None:
            return await capture
        try:
            return await asyncio.wait_for(asyncio.shield(capture), self.capture_timeout)
        except asyncio.TimeoutError as e:
            capture.add_done_callback(_log_abandoned_capture)
            raise CaptureError(f"Capture timed out after {self.capture_timeout}s") from e

    async def _cycle(self) -> Optional[Prediction]:
        try:
            frame = await self._capture()
            scores = predict(
                self._model,
                frame,
                input_size=self.input_size,
                device=self.device,
                channels_first=self.channels_first,
                apply_softmax=self.apply_softmax,
            )
            del frame
            prediction = top_prediction(scores, self._labels)
            self._check_scores(scores)
            self._report(format_report(prediction, scores))
            self.completed_cycles += 1
            return prediction
        except Exception as e:
            self.failed_cycles += 1
            logger.error(f"Capture/predict error: {str(e) or type(e).__name__}")
            logger.debug("Cycle failure details", exc_info=True)
            return None
        finally:
            self._state = CycleState.IDLE

    def _check_scores(self, scores: Sequence[float]) -> None:
        if self._warned_scores or looks_like_probabilities(scores):
            return
        self._warned_scores = True
        logger.warning(
            "Model scores are not probabilities (outside [0, 1] or not summing to 1); "
            "reported confidence percentages may be meaningless. "
            "Set inference.apply_softmax if the model emits logits."
        )
