"""
HTTP client for the external OTP provider.

The provider generates, emails and verifies passcodes. Every call is a single
request/response; failures are raised as OtpProviderError with the
provider's own message when it sent one, otherwise a fixed fallback.
"""

from __future__ import annotations

from typing import Any

import httpx
import structlog

from gcx.errors import OtpProviderError

logger = structlog.get_logger()


class OtpProviderClient:
    """Async client for the OTP provider API."""

    def __init__(
        self,
        base_url: str,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = base_url
        self._client = httpx.AsyncClient(base_url=base_url, timeout=timeout, transport=transport)

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _request(
        self,
        method: str,
        path: str,
        fallback: str,
        payload: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        """Perform one call and return the decoded JSON object.

        Raises:
            OtpProviderError: On transport failure, non-2xx status or a body that
                is not a JSON object.
        """
        try:
            response = await self._client.request(method, path, json=payload)
        except httpx.HTTPError as e:
            logger.error("otp_provider_unreachable", path=path, error=str(e))
            raise OtpProviderError(fallback) from e

        try:
            data = response.json()
        except ValueError:
            data = None

        if response.is_error:
            message = data.get("error") if isinstance(data, dict) else None
            logger.error(
                "otp_provider_error",
                path=path,
                status=response.status_code,
                body=data if data is not None else response.text[:200],
            )
            raise OtpProviderError(message or fallback, details={"provider_status": response.status_code})

        if not isinstance(data, dict):
            logger.error("otp_provider_malformed_response", path=path, status=response.status_code)
            raise OtpProviderError(fallback)

        return data

    async def send_user_otp(self, email: str) -> dict[str, Any]:
        return await self._request("POST", "/send-otp", "Failed to send OTP", {"email": email})

    async def verify_user_otp(self, email: str, otp: str) -> dict[str, Any]:
        return await self._request("POST", "/verify-otp", "Failed to verify OTP", {"email": email, "otp": otp})

    async def send_admin_otp(self) -> dict[str, Any]:
        return await self._request("POST", "/admin/send-otp", "Failed to send admin OTP")

    async def verify_admin_otp(self, otp: str) -> dict[str, Any]:
        return await self._request("POST", "/admin/verify-otp", "Failed to verify admin OTP", {"otp": otp})

    async def otp_status(self) -> dict[str, Any]:
        return await self._request("GET", "/otp-status", "Failed to check OTP status")

    async def health(self) -> dict[str, Any]:
        return await self._request("GET", "/health", "Failed to check API health")
