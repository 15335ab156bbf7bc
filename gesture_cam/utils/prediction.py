"""Top-label extraction and prediction report formatting."""

from __future__ import annotations

import math
from datetime import datetime, timezone
from decimal import ROUND_HALF_UP, Decimal
from typing import NamedTuple, Optional, Sequence

import numpy as np


class Prediction(NamedTuple):
    index: int
    label: str
    score: float

    @property
    def confidence(self) -> str:
        return format_confidence(self.score)


def label_for(index: int, labels: Sequence[str]) -> str:
    """Return ``labels[index]``, or ``class_<index>`` when there is no entry."""
    if 0 <= index < len(labels):
        return labels[index]
    return f"class_{index}"


def top_prediction(scores: Sequence[float], labels: Sequence[str]) -> Prediction:
    """Pick the highest-scoring class.

    Ties go to the first index reaching the maximum.

    Raises:
        ValueError: If ``scores`` is empty.
    """
    arr = np.asarray(scores, dtype=np.float64)
    if arr.size == 0:
        raise ValueError("Cannot pick a top prediction from an empty score vector")
    idx = int(np.argmax(arr))
    return Prediction(idx, label_for(idx, labels), float(arr[idx]))


def format_fixed(value: float, digits: int) -> str:
    """Format ``value`` with ``digits`` decimals, rounding exact halves up.

    Rounds the exact binary value of the float, so 0.125 gives "0.13" while
    1.005 (stored as 1.00499...) gives "1.00".
    """
    if not math.isfinite(value) or abs(value) >= 1e15:
        return f"{value:.{digits}f}"
    return str(Decimal(value).quantize(Decimal(1).scaleb(-digits), rounding=ROUND_HALF_UP))


def format_confidence(score: float) -> str:
    """Score as a percentage with one fractional digit (0.7 -> "70.0")."""
    return format_fixed(score * 100, 1)


def format_timestamp(when: Optional[datetime] = None) -> str:
    """UTC ISO-8601 timestamp with millisecond precision and a ``Z`` suffix."""
    when = when or datetime.now(timezone.utc)
    if when.tzinfo is None:
        when = when.replace(tzinfo=timezone.utc)
    return when.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def format_report(
    prediction: Prediction,
    scores: Sequence[float],
    when: Optional[datetime] = None,
) -> str:
    """Build the per-cycle output line.

    ``[<timestamp>] <label> (<confidence>%) | scores=<v0>, <v1>, ...``
    """
    score_text = ", ".join(format_fixed(v, 2) for v in scores)
    return (
        f"[{format_timestamp(when)}] {prediction.label} "
        f"({prediction.confidence}%) | scores={score_text}"
    )


def looks_like_probabilities(scores: Sequence[float], tolerance: float = 0.01) -> bool:
    """True if every score is in [0, 1] and they sum to 1 within ``tolerance``.

    Confidence percentages are only meaningful for such vectors.
    """
    arr = np.asarray(scores, dtype=np.float64)
    if arr.size == 0:
        return False
    return bool(np.all(arr >= 0.0) and np.all(arr <= 1.0) and abs(arr.sum() - 1.0) <= tolerance)
