"""Error types raised by the capture/predict pipeline.

Only FatalStartupError ends the process; everything else is caught at the
cycle boundary by the scheduler and turned into a log line.
"""


class GestureCamError(Exception):
    """Base class for all errors raised by gesture_cam."""


class FatalStartupError(GestureCamError):
    """Model or metadata could not be loaded."""


class CaptureError(GestureCamError):
    """Camera unavailable, busy, or returned no data."""


class PipelineError(GestureCamError):
    """A frame could not be turned into a score vector."""


class DecodeError(PipelineError):
    """Raw frame bytes are corrupt or use an unsupported encoding."""


class InferenceError(PipelineError):
    """The model call failed or returned an unexpected shape."""
