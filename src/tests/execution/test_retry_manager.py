"""Tests for retry logic."""

import pytest

from research_swarm.execution import RetryManager


class RetryCounter:
    """Helper class to count retry attempts."""

    def __init__(self, fail_count: int = 2):
        self.attempts = 0
        self.fail_count = fail_count

    async def failing_function(self):
        """Function that fails a certain number of times."""
        self.attempts += 1
        if self.attempts <= self.fail_count:
            raise RuntimeError(f"Attempt {self.attempts} failed")
        return f"Success on attempt {self.attempts}"


@pytest.mark.asyncio
async def test_retry_manager_success():
    """Test retry manager with eventual success."""
    manager = RetryManager(max_retries=3, base_delay=0)
    counter = RetryCounter(fail_count=2)

    result = await manager.execute_with_retry(counter.failing_function)

    assert result == "Success on attempt 3"
    assert counter.attempts == 3


@pytest.mark.asyncio
async def test_retry_manager_all_failures():
    """Test the last error is raised once attempts run out."""
    manager = RetryManager(max_retries=2, base_delay=0)
    counter = RetryCounter(fail_count=10)

    with pytest.raises(RuntimeError, match="Attempt 2 failed"):
        await manager.execute_with_retry(counter.failing_function)

    assert counter.attempts == 2


@pytest.mark.asyncio
async def test_single_attempt_does_not_retry():
    """Test max_retries=1 calls the function once."""
    manager = RetryManager(max_retries=1)
    counter = RetryCounter(fail_count=1)

    with pytest.raises(RuntimeError):
        await manager.execute_with_retry(counter.failing_function)

    assert counter.attempts == 1


@pytest.mark.asyncio
async def test_non_matching_errors_not_retried():
    """Test errors outside retry_on propagate immediately."""
    manager = RetryManager(max_retries=3, base_delay=0)
    counter = RetryCounter(fail_count=5)

    with pytest.raises(RuntimeError):
        await manager.execute_with_retry(counter.failing_function, retry_on=(ValueError,))

    assert counter.attempts == 1


def test_retry_delay_calculation():
    """Test exponential backoff delay calculation."""
    manager = RetryManager(max_retries=5, backoff_factor=2.0, max_delay=10.0)

    assert manager.calculate_delay(0) == 1.0
    assert manager.calculate_delay(1) == 2.0
    assert manager.calculate_delay(2) == 4.0
    assert manager.calculate_delay(3) == 8.0
    assert manager.calculate_delay(4) == 10.0  # 16, capped at max_delay
