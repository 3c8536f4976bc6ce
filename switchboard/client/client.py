"""Switchboard API client.

Provides a Python client for the Switchboard HTTP API.

Usage:
    from switchboard.client import SwitchboardClient

    async with SwitchboardClient("http://localhost:8000") as client:
        response = await client.interactive(
            InteractiveRequest(event_type="NEW_INTERACTION", end_point="Main")
        )
        print(response.message)
"""

from typing import Any

import httpx

from switchboard.interactive.models import InteractiveRequest, InteractiveResponse


class SwitchboardClientError(Exception):
    """Base exception for client errors."""

    def __init__(self, message: str, status_code: int | None = None, details: Any = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.details = details


class SwitchboardClient:
    """Async client for the Switchboard API.

    Attributes:
        base_url: Base URL of the Switchboard API
    """

    def __init__(
        self,
        base_url: str = "http://localhost:8000",
        api_key: str | None = None,
        timeout: float = 60.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """Initialize the client.

        Args:
            base_url: Base URL of the Switchboard API
            api_key: Sent as the x-api-key header when set
            timeout: Request timeout in seconds
            transport: Optional transport, used to talk to an app in-process
        """
        self.base_url = base_url.rstrip("/")
        self._api_key = api_key
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=timeout,
            transport=transport,
        )

    async def __aenter__(self) -> "SwitchboardClient":
        return self

    async def __aexit__(self, *args) -> None:
        await self.close()

    async def close(self) -> None:
        """Close the HTTP client."""
        await self._client.aclose()

    def _headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self._api_key:
            headers["x-api-key"] = self._api_key
        return headers

    async def _request(
        self,
        method: str,
        path: str,
        *,
        json: dict | None = None,
    ) -> Any:
        """Make an API request."""
        try:
            response = await self._client.request(
                method=method,
                url=path,
                headers=self._headers(),
                json=json,
            )
        except httpx.HTTPError as e:
            raise SwitchboardClientError(f"Request to {path} failed: {e}") from e

        if response.status_code >= 400:
            details = None
            try:
                details = response.json()
                message = details.get("error", {}).get("message", response.text)
            except ValueError:
                message = response.text

            raise SwitchboardClientError(
                message=message,
                status_code=response.status_code,
                details=details,
            )

        if response.status_code == 204:
            return {}

        return response.json()

    # Health
    async def health(self) -> dict[str, Any]:
        """Check API health."""
        return await self._request("GET", "/health")

    # Inference
    async def infer(self, payload: dict[str, Any]) -> dict[str, str]:
        """Invoke the rules engine as the telephony platform would."""
        return await self._request("POST", "/v1/inference", json=payload)

    async def interactive(self, request: InteractiveRequest) -> InteractiveResponse:
        """Send one simulated platform event."""
        data = await self._request(
            "POST",
            "/v1/interactive",
            json=request.model_dump(mode="json", by_alias=True, exclude_none=True),
        )
        return InteractiveResponse.model_validate(data)

    # Batches
    async def start_batch(
        self,
        user_id: str,
        test_ids: list[str] | None = None,
        folder: str | None = None,
        recursive: bool = False,
    ) -> dict[str, Any]:
        """Submit a batch of tests for execution."""
        payload: dict[str, Any] = {"user_id": user_id, "recursive": recursive}
        if test_ids is not None:
            payload["test_ids"] = test_ids
        if folder is not None:
            payload["folder"] = folder
        return await self._request("POST", "/v1/batches", json=payload)

    async def get_batch(self, batch_id: str) -> dict[str, Any]:
        """Get a batch with its decoded results and coverage."""
        return await self._request("GET", f"/v1/batches/{batch_id}")

    async def list_batches(self) -> list[dict[str, Any]]:
        """List batches, newest first."""
        data = await self._request("GET", "/v1/batches")
        return data.get("batches", [])
