import time

import pytest

from tinynet.timestamp import MICROSECONDS_PER_SECOND, Timestamp, add_time


def test_invalid_is_zero_and_default():
    assert Timestamp.invalid() == Timestamp()
    assert Timestamp.invalid().micro_seconds_since_epoch == 0


def test_now_lies_between_two_clock_readings():
    before = time.time_ns() // 1000
    stamp = Timestamp.now()
    after = time.time_ns() // 1000
    assert before <= stamp.micro_seconds_since_epoch <= after


def test_ordering_follows_microseconds():
    early = Timestamp(100)
    late = Timestamp(200)
    assert early < late
    assert not late < early
    assert sorted([late, early]) == [early, late]


def test_equality_by_value():
    assert Timestamp(42) == Timestamp(42)
    assert Timestamp(42) != Timestamp(43)


def test_one_second_of_microseconds_is_one_second():
    assert Timestamp(MICROSECONDS_PER_SECOND).seconds_since_epoch == 1
    assert Timestamp(MICROSECONDS_PER_SECOND - 1).seconds_since_epoch == 0
    assert add_time(Timestamp(0), 1.0) == Timestamp(1_000_000)


@pytest.mark.parametrize("seconds", [0, 1, 17, 1_700_000_000])
def test_seconds_since_epoch_drops_fraction(seconds):
    stamp = Timestamp(seconds * MICROSECONDS_PER_SECOND + 123_456)
    assert stamp.seconds_since_epoch == seconds


def test_seconds_since_epoch_truncates_toward_zero_for_negative():
    stamp = Timestamp(-(3 * MICROSECONDS_PER_SECOND + 5))
    assert stamp.seconds_since_epoch == -3


def test_add_time_whole_and_fraction():
    assert add_time(Timestamp(1_000_000), 1.5) == Timestamp(2_500_000)


def test_add_time_truncates_fraction_of_microsecond():
    assert add_time(Timestamp(0), 0.0000015) == Timestamp(1)


def test_add_time_negative_truncates_toward_zero():
    assert add_time(Timestamp(10), -0.0000015) == Timestamp(9)


def test_add_time_zero_is_identity():
    stamp = Timestamp(987_654_321)
    assert add_time(stamp, 0.0) == stamp


def test_timestamp_is_immutable():
    stamp = Timestamp(5)
    with pytest.raises(AttributeError):
        stamp.micro_seconds_since_epoch = 6  # type: ignore[misc]
    assert stamp.micro_seconds_since_epoch == 5