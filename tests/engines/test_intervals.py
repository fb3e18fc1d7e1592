import itertools
from datetime import timedelta

import pytest

from core.errors import Err, ErrorCode, Ok
from engines.intervals import (
    BASE_INTERVALS,
    ReviewQuality,
    compute_next,
    next_due_at,
    validate_quality,
)


@pytest.mark.parametrize("quality,expected", list(enumerate([0, 0, 1, 3, 7, 14])))
def test_first_review_uses_base_table(quality, expected):
    result = compute_next(quality, 2.5, 0, 0)
    assert result.new_interval == expected


def test_base_table_constant():
    assert BASE_INTERVALS == (0, 0, 1, 3, 7, 14)


def test_bounds_hold_for_all_inputs():
    eases = [1.3, 1.5, 2.5, 3.0, 5.0]
    intervals = [0, 1, 7, 100, 200, 365]
    counts = [0, 1, 2, 10]
    for q, ease, interval, count in itertools.product(range(6), eases, intervals, counts):
        result = compute_next(q, ease, interval, count)
        assert result.new_ease >= 1.3
        assert 0 <= result.new_interval <= 365


def test_new_item_perfect_answer():
    result = compute_next(ReviewQuality.PERFECT, 2.5, 0, 0)
    assert result.new_interval == 14
    assert result.new_ease > 2.5
    assert result.repeat_same_day is False


def test_blackout_repeats_same_day():
    result = compute_next(ReviewQuality.BLACKOUT, 2.5, 7, 2)
    assert result.new_interval == 0
    assert result.repeat_same_day is True
    assert result.new_ease < 2.5


def test_second_review_good_answer():
    # q=4 leaves ease unchanged: 2.5 + (0.1 - 1 * (0.08 + 0.02)) == 2.5
    result = compute_next(ReviewQuality.GOOD, 2.5, 7, 1)
    assert result.new_ease == pytest.approx(2.5)
    assert result.new_interval == max(7, int(7 * result.new_ease)) == 17


def test_second_review_never_below_base_interval():
    result = compute_next(ReviewQuality.PERFECT, 1.3, 1, 1)
    assert result.new_interval == 14


def test_mature_review_multiplies_interval():
    result = compute_next(ReviewQuality.PERFECT, 2.5, 10, 3)
    assert result.new_ease == pytest.approx(2.6)
    assert result.new_interval == 26


def test_difficult_answer_resets_to_one_day():
    result = compute_next(ReviewQuality.DIFFICULT, 2.5, 30, 5)
    assert result.new_interval == 1
    assert result.repeat_same_day is False


def test_interval_capped_at_a_year():
    result = compute_next(ReviewQuality.PERFECT, 3.0, 300, 5)
    assert result.new_interval == 365


def test_ease_floor():
    result = compute_next(ReviewQuality.BLACKOUT, 1.3, 0, 0)
    assert result.new_ease == 1.3


def test_next_due_same_day_is_one_hour(now):
    result = compute_next(ReviewQuality.INCORRECT, 2.5, 3, 2)
    assert next_due_at(result, now) == now + timedelta(hours=1)


def test_next_due_in_days(now):
    result = compute_next(ReviewQuality.HESITATION, 2.5, 0, 0)
    assert next_due_at(result, now) == now + timedelta(days=3)


@pytest.mark.parametrize("value", [-1, 6, 42])
def test_validate_quality_rejects_out_of_range(value):
    match validate_quality(value):
        case Err(error):
            assert error.code is ErrorCode.E2003_OUT_OF_RANGE
            assert error.code.http_status == 400
        case Ok(_):
            pytest.fail("expected validation error")


def test_validate_quality_accepts_range():
    assert validate_quality(0) == Ok(ReviewQuality.BLACKOUT)
    assert validate_quality(5) == Ok(ReviewQuality.PERFECT)


@pytest.mark.parametrize("value", [2.9, 3.0, "3", None])
def test_validate_quality_rejects_non_integers(value):
    result = validate_quality(value)

    assert result.is_err()
    assert result.error.code is ErrorCode.E2003_OUT_OF_RANGE
