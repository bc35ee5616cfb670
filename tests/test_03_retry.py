"""
Tests for the bounded retry policy.

Delays are recorded with an injected sleep, never waited on.
"""
import asyncio

import pytest

from conftest import SleepRecorder
from tts_fallback.speech.retry import RetryPolicy


def _sequence(*values):
    calls = []
    remaining = list(values)

    async def operation():
        calls.append(len(calls) + 1)
        return remaining.pop(0)

    return operation, calls


class TestRetryPolicy:

    def test_first_success_stops(self):
        """An accepted first value means one attempt and no delay."""
        sleeps = SleepRecorder()
        operation, calls = _sequence(["voice"])
        policy = RetryPolicy(max_attempts=3, delay_s=1.0, sleep=sleeps)

        result = asyncio.run(policy.run(operation, accept=bool))

        assert result.succeeded is True
        assert result.attempts == 1
        assert result.value == ["voice"]
        assert calls == [1]
        assert sleeps.calls == []

    def test_delay_only_between_attempts(self):
        """Three failed attempts sleep twice, never after the last one."""
        sleeps = SleepRecorder()
        operation, calls = _sequence([], [], [])
        policy = RetryPolicy(max_attempts=3, delay_s=1.0, sleep=sleeps)

        result = asyncio.run(policy.run(operation, accept=bool))

        assert result.succeeded is False
        assert result.attempts == 3
        assert calls == [1, 2, 3]
        assert sleeps.calls == [1.0, 1.0]

    def test_success_on_later_attempt(self):
        sleeps = SleepRecorder()
        operation, calls = _sequence([], ["voice"], ["unused"])
        policy = RetryPolicy(max_attempts=3, delay_s=0.5, sleep=sleeps)

        result = asyncio.run(policy.run(operation, accept=bool))

        assert result.succeeded is True
        assert result.attempts == 2
        assert sleeps.calls == [0.5]

    def test_on_reject_called_per_rejected_attempt(self):
        rejected = []
        operation, _ = _sequence(0, 0, 7)
        policy = RetryPolicy(max_attempts=3, delay_s=0, sleep=SleepRecorder())

        asyncio.run(policy.run(operation, accept=bool, on_reject=lambda n, v: rejected.append((n, v))))

        assert rejected == [(1, 0), (2, 0)]

    def test_single_attempt_never_sleeps(self):
        sleeps = SleepRecorder()
        operation, _ = _sequence(None)

        result = asyncio.run(RetryPolicy(max_attempts=1, sleep=sleeps).run(operation, accept=bool))

        assert result.succeeded is False
        assert sleeps.calls == []

    @pytest.mark.parametrize("kwargs", [{"max_attempts": 0}, {"max_attempts": 2, "delay_s": -1}])
    def test_invalid_policy(self, kwargs):
        with pytest.raises(ValueError):
            RetryPolicy(**kwargs)
