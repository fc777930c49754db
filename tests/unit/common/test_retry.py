"""
백오프 유틸리티 테스트
"""

import pytest
from unittest.mock import AsyncMock, patch
from hypothesis import given, strategies as st

from dynamo_storage.common.retry import backoff_delay, exponential_backoff


class TestBackoffDelay:
    """지연 시간 계산 테스트"""

    def test_doubles_per_attempt(self):
        assert [backoff_delay(n, 0.05, 10.0) for n in (1, 2, 3, 4)] == [0.05, 0.1, 0.2, 0.4]

    def test_capped_at_max_delay(self):
        assert backoff_delay(20, 0.05, 2.0) == 2.0

    def test_attempt_zero_uses_base(self):
        assert backoff_delay(0, 0.5, 2.0) == 0.5

    @given(
        attempt=st.integers(min_value=1, max_value=30),
        base=st.floats(min_value=0.001, max_value=1.0),
        max_delay=st.floats(min_value=1.0, max_value=10.0),
    )
    def test_jitter_stays_within_half_to_full(self, attempt, base, max_delay):
        full = backoff_delay(attempt, base, max_delay)
        jittered = backoff_delay(attempt, base, max_delay, jitter=True)
        assert full * 0.5 <= jittered <= full


class TestExponentialBackoff:
    """비동기 백오프 테스트"""

    @pytest.mark.asyncio
    async def test_sleeps_for_computed_delay(self):
        with patch("dynamo_storage.common.retry.asyncio.sleep", new_callable=AsyncMock) as sleep:
            await exponential_backoff(3, 0.1, 5.0)
        sleep.assert_awaited_once()
        assert sleep.await_args.args[0] == pytest.approx(0.4)
