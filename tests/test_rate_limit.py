import pytest

from carrier_extractor.rate_limit import BackoffPolicy, DelayPolicy


def test_delay_policy_sleeps_only_when_positive() -> None:
    calls = []

    DelayPolicy(0.0).wait(calls.append)
    DelayPolicy.from_milliseconds(250).wait(calls.append)

    assert calls == [0.25]


def test_negative_milliseconds_are_clamped() -> None:
    assert DelayPolicy.from_milliseconds(-10).delay_seconds == 0.0
    assert BackoffPolicy.from_milliseconds(-10).base_seconds == 0.0


def test_backoff_doubles_each_attempt() -> None:
    policy = BackoffPolicy.from_milliseconds(2000)

    assert [policy.delay_for(attempt) for attempt in (1, 2, 3)] == [2.0, 4.0, 8.0]


def test_backoff_rejects_attempt_zero() -> None:
    with pytest.raises(ValueError):
        BackoffPolicy().delay_for(0)
