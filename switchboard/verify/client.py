"""Ways the test interpreter reaches the interactive simulator."""

from typing import Protocol

from switchboard.client import SwitchboardClient
from switchboard.interactive.models import InteractiveRequest, InteractiveResponse
from switchboard.interactive.simulator import InteractiveSimulator


class InferenceClient(Protocol):
    """Sends simulated platform events and returns the simulator's response."""

    async def send(self, request: InteractiveRequest) -> InteractiveResponse: ...


class LocalInferenceClient:
    """Drives an in-process simulator."""

    def __init__(self, simulator: InteractiveSimulator) -> None:
        self._simulator = simulator

    async def send(self, request: InteractiveRequest) -> InteractiveResponse:
        return await self._simulator.handle(request)


class RemoteInferenceClient:
    """Drives a simulator behind the HTTP API."""

    def __init__(self, client: SwitchboardClient) -> None:
        self._client = client

    async def send(self, request: InteractiveRequest) -> InteractiveResponse:
        return await self._client.interactive(request)
