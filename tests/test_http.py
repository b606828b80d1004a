"""
Tests for the shared HTTP plumbing.
"""

import httpx
import pytest


class TestTransientRetry:
    """Tests for transient_retry."""

    async def test_retries_network_errors(self):
        from devhub_mcp.http import transient_retry
        attempts = []

        @transient_retry()
        async def flaky():
            attempts.append(1)
            if len(attempts) < 2:
                raise httpx.ConnectError("refused")
            return "ok"

        assert await flaky() == "ok"
        assert len(attempts) == 2

    async def test_does_not_retry_api_errors(self):
        from devhub_mcp.http import ApiError, transient_retry
        attempts = []

        @transient_retry()
        async def failing():
            attempts.append(1)
            raise ApiError("GitLab", 500, "Internal Server Error", "")

        with pytest.raises(ApiError):
            await failing()
        assert len(attempts) == 1


class TestRaiseForApiError:
    """Tests for raise_for_api_error."""

    def test_success_passes(self):
        from devhub_mcp.http import raise_for_api_error
        request = httpx.Request("GET", "https://api.example.com/x")
        raise_for_api_error(httpx.Response(201, request=request), "Figma")

    def test_error_message(self):
        from devhub_mcp.http import ApiError, raise_for_api_error
        request = httpx.Request("GET", "https://api.example.com/x")
        with pytest.raises(ApiError) as exc_info:
            raise_for_api_error(httpx.Response(403, text="denied", request=request), "Figma")
        assert str(exc_info.value) == "Figma API error: 403 Forbidden\ndenied"
        assert exc_info.value.service == "Figma"
