import pytest

from mindreader.services.adaptive_engine import compute_confidence, compute_progress, is_guess_ready


def test_confidence_uses_last_five_answers():
    answers = ["Yes", "No", "Yes", "Yes", "Probably", "No"]
    assert compute_confidence(answers) == pytest.approx(0.6)


def test_confidence_without_answers():
    assert compute_confidence([]) == 0.0


@pytest.mark.parametrize(
    "count,confidence,ready",
    [
        (14, 1.0, False),
        (15, 0.6, True),
        (15, 0.5, False),
        (19, 0.2, False),
        (20, 0.0, True),
    ],
)
def test_guess_readiness(count, confidence, ready):
    assert is_guess_ready(count, confidence) is ready


@pytest.mark.parametrize(
    "count,confidence,guess,expected",
    [
        (0, 0.0, False, 0),
        (10, 0.5, False, 50),
        (10, 0.8, False, 65),
        (18, 1.0, False, 95),
        (3, 0.0, True, 100),
    ],
)
def test_progress(count, confidence, guess, expected):
    assert compute_progress(count, confidence, guess) == expected


@pytest.mark.parametrize("count", range(0, 30, 3))
@pytest.mark.parametrize("confidence", [0.0, 0.4, 0.7, 1.0])
def test_progress_is_bounded_and_full_only_for_guesses(count, confidence):
    asking = compute_progress(count, confidence, False)
    assert 0 <= asking < 100
    assert compute_progress(count, confidence, True) == 100
