from datetime import datetime, timezone

import pytest

from gesture_cam.utils.prediction import (
    Prediction,
    format_confidence,
    format_fixed,
    format_report,
    format_timestamp,
    label_for,
    looks_like_probabilities,
    top_prediction,
)


def test_top_prediction_picks_highest_score():
    pred = top_prediction([0.1, 0.7, 0.2], ["rock", "paper", "scissors"])
    assert pred == Prediction(1, "paper", pytest.approx(0.7))
    assert pred.confidence == "70.0"


def test_tie_goes_to_first_index_and_missing_label_is_synthesized():
    pred = top_prediction([0.3, 0.3], [])
    assert pred.index == 0
    assert pred.label == "class_0"
    assert pred.confidence == "30.0"


def test_tie_later_in_vector():
    pred = top_prediction([0.1, 0.4, 0.05, 0.4], ["a", "b", "c", "d"])
    assert pred.index == 1
    assert pred.label == "b"


def test_scores_longer_than_labels():
    pred = top_prediction([0.1, 0.2, 0.6], ["rock", "paper"])
    assert pred.label == "class_2"


def test_empty_scores_rejected():
    with pytest.raises(ValueError):
        top_prediction([], ["rock"])


@pytest.mark.parametrize("index,expected", [(0, "rock"), (2, "scissors"), (3, "class_3"), (17, "class_17")])
def test_label_for(index, expected):
    assert label_for(index, ("rock", "paper", "scissors")) == expected


@pytest.mark.parametrize("score,expected", [(0.7, "70.0"), (1.0, "100.0"), (0.0, "0.0"), (0.12344, "12.3"), (2.5, "250.0")])
def test_format_confidence(score, expected):
    assert format_confidence(score) == expected


def test_format_timestamp_is_utc_iso_with_millis():
    when = datetime(2024, 3, 5, 14, 7, 9, 123456, tzinfo=timezone.utc)
    assert format_timestamp(when) == "2024-03-05T14:07:09.123Z"


def test_format_report_line():
    when = datetime(2024, 3, 5, 14, 7, 9, tzinfo=timezone.utc)
    scores = [0.1, 0.7, 0.2]
    line = format_report(top_prediction(scores, ["rock", "paper", "scissors"]), scores, when)
    assert line == "[2024-03-05T14:07:09.000Z] paper (70.0%) | scores=0.10, 0.70, 0.20"


def test_looks_like_probabilities():
    assert looks_like_probabilities([0.1, 0.7, 0.2])
    assert not looks_like_probabilities([0.3, 0.3])
    assert not looks_like_probabilities([2.0, -1.0])
    assert not looks_like_probabilities([])


def test_exact_halves_round_up():
    scores = [0.125, 0.375, 0.5]
    line = format_report(top_prediction(scores, []), scores, datetime(2024, 1, 1, tzinfo=timezone.utc))
    assert line.endswith("class_2 (50.0%) | scores=0.13, 0.38, 0.50")


@pytest.mark.parametrize(
    "value,digits,expected",
    [
        (0.125, 2, "0.13"),
        (0.625, 2, "0.63"),
        (1.005, 2, "1.00"),  # stored just below the half
        (6.25, 1, "6.3"),
        (0.0, 2, "0.00"),
        (float("nan"), 2, "nan"),
    ],
)
def test_format_fixed(value, digits, expected):
    assert format_fixed(value, digits) == expected


def test_confidence_half_rounds_up():
    assert format_confidence(0.0625) == "6.3"
    assert format_confidence(0.125) == "12.5"
