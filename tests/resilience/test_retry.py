"""Tests for retry with backoff on upstream HTTP calls."""

import asyncio
from unittest.mock import patch

import httpx
import pytest

from servers.wazai_map.resilience.retry import is_retryable_http_error, retry_with_backoff


def status_error(code: int) -> httpx.HTTPStatusError:
    request = httpx.Request("GET", "https://connpass.com/api/v2/events/")
    response = httpx.Response(code, request=request)
    return httpx.HTTPStatusError(f"HTTP {code}", request=request, response=response)


class TestIsRetryableHttpError:
    def test_transport_errors_are_retryable(self):
        assert is_retryable_http_error(httpx.ConnectError("refused"))
        assert is_retryable_http_error(httpx.ReadTimeout("slow"))

    @pytest.mark.parametrize("code", [429, 500, 502, 503, 504])
    def test_throttling_and_server_errors_are_retryable(self, code):
        assert is_retryable_http_error(status_error(code))

    @pytest.mark.parametrize("code", [400, 401, 403, 404])
    def test_client_errors_are_not_retryable(self, code):
        assert not is_retryable_http_error(status_error(code))

    def test_other_exceptions_are_not_retryable(self):
        assert not is_retryable_http_error(ValueError("bad json"))


class TestRetryWithBackoff:
    """Tests for retry_with_backoff decorator."""

    @pytest.mark.asyncio
    async def test_returns_on_success(self):
        @retry_with_backoff(max_attempts=3)
        async def fetch():
            return {"events": []}

        assert await fetch() == {"events": []}

    @pytest.mark.asyncio
    async def test_retries_transport_failures(self):
        call_count = 0

        @retry_with_backoff(max_attempts=3, base_delay=0.01)
        async def flaky():
            nonlocal call_count
            call_count += 1
            if call_count < 3:
                raise httpx.ConnectError("refused")
            return "ok"

        assert await flaky() == "ok"
        assert call_count == 3

    @pytest.mark.asyncio
    async def test_raises_after_max_attempts(self):
        call_count = 0

        @retry_with_backoff(max_attempts=3, base_delay=0.01)
        async def always_down():
            nonlocal call_count
            call_count += 1
            raise status_error(503)

        with pytest.raises(httpx.HTTPStatusError):
            await always_down()

        assert call_count == 3

    @pytest.mark.asyncio
    async def test_does_not_retry_client_errors(self):
        call_count = 0

        @retry_with_backoff(max_attempts=3, base_delay=0.01)
        async def unauthorized():
            nonlocal call_count
            call_count += 1
            raise status_error(401)

        with pytest.raises(httpx.HTTPStatusError):
            await unauthorized()

        assert call_count == 1

    @pytest.mark.asyncio
    async def test_custom_should_retry(self):
        call_count = 0

        @retry_with_backoff(
            max_attempts=2, base_delay=0.01, should_retry=lambda e: isinstance(e, ValueError)
        )
        async def parse():
            nonlocal call_count
            call_count += 1
            raise ValueError("bad")

        with pytest.raises(ValueError):
            await parse()

        assert call_count == 2

    @pytest.mark.asyncio
    async def test_exponential_delay(self):
        delays = []
        original_sleep = asyncio.sleep

        async def mock_sleep(delay):
            delays.append(delay)
            await original_sleep(0)

        @retry_with_backoff(max_attempts=4, base_delay=0.1, exponential_base=2.0, jitter=False)
        async def fail():
            raise httpx.ConnectError("refused")

        with patch("asyncio.sleep", mock_sleep):
            with pytest.raises(httpx.ConnectError):
                await fail()

        assert delays == pytest.approx([0.1, 0.2, 0.4])

    @pytest.mark.asyncio
    async def test_max_delay_cap(self):
        delays = []

        async def mock_sleep(delay):
            delays.append(delay)

        @retry_with_backoff(
            max_attempts=5, base_delay=10.0, max_delay=1.0, exponential_base=2.0, jitter=False
        )
        async def fail():
            raise httpx.ConnectError("refused")

        with patch("asyncio.sleep", mock_sleep):
            with pytest.raises(httpx.ConnectError):
                await fail()

        assert len(delays) == 4
        assert all(delay <= 1.0 for delay in delays)

    @pytest.mark.asyncio
    async def test_preserves_function_name(self):
        @retry_with_backoff()
        async def fetch_events():
            return None

        assert fetch_events.__name__ == "fetch_events"
