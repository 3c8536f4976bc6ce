"""External integration invocation for Integration rules.

An integration runs asynchronously and reports progress by writing
IntegrationStatus into session state: START -> RUN -> END, ERROR or
TIMEOUT. Callers wait a bounded window for a terminal status and
otherwise return so the platform can check again later.
"""

import asyncio
from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable, Mapping
from datetime import datetime, timedelta
from typing import Any

import httpx

from switchboard.config.models.inference import InferenceConfig
from switchboard.inference.analytics import timestamp
from switchboard.inference.errors import RuleConfigError
from switchboard.inference.orchestrator import Clock, utc_now
from switchboard.observability.logging import get_logger
from switchboard.platform.errors import PlatformError
from switchboard.rules.evaluator import is_number
from switchboard.state.models import SessionState
from switchboard.state.store import StateStore

logger = get_logger(__name__)

INTEGRATION_STATUS = "IntegrationStatus"
INTEGRATION_START = "IntegrationStart"
INTEGRATION_END = "IntegrationEnd"
INTEGRATION_ERROR_CAUSE = "IntegrationErrorCause"
INTEGRATION_RESPONSE = "IntegrationResponse"

PENDING_STATUSES = frozenset({"START", "RUN"})
TIMEOUT_CAUSE = "The request timed out"


class IntegrationInvoker(ABC):
    """Starts an integration function without waiting for its result."""

    @abstractmethod
    async def invoke(self, function_name: str, payload: dict[str, Any]) -> None:
        """Start a function.

        Raises:
            PlatformError: If the function could not be started
        """
        pass


class HttpIntegrationInvoker(IntegrationInvoker):
    """Starts integrations by POSTing to configured URLs."""

    def __init__(self, client: httpx.AsyncClient, endpoints: Mapping[str, str]) -> None:
        self._client = client
        self._endpoints = dict(endpoints)

    async def invoke(self, function_name: str, payload: dict[str, Any]) -> None:
        url = self._endpoints.get(function_name)
        if url is None:
            raise PlatformError(f"No endpoint configured for integration: {function_name}")
        try:
            response = await self._client.post(url, json=payload)
            response.raise_for_status()
        except httpx.HTTPError as e:
            raise PlatformError(
                f"Failed to invoke integration: {function_name}: {e}",
                cause=e,
            ) from e


class CallbackIntegrationInvoker(IntegrationInvoker):
    """Runs an in-process coroutine as the integration.

    The coroutine is scheduled as a task so invoke() returns before it
    completes, like a remote asynchronous invocation.
    """

    def __init__(
        self,
        handler: Callable[[str, dict[str, Any]], Awaitable[None]],
    ) -> None:
        self._handler = handler
        self._tasks: set[asyncio.Task[None]] = set()
        self._call_history: list[dict[str, Any]] = []

    @property
    def call_history(self) -> list[dict[str, Any]]:
        """Return history of calls for testing assertions."""
        return self._call_history

    async def invoke(self, function_name: str, payload: dict[str, Any]) -> None:
        self._call_history.append({"function_name": function_name, "payload": payload})
        task = asyncio.create_task(self._handler(function_name, payload))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)


class IntegrationRunner:
    """Starts integrations and tracks their completion in session state."""

    def __init__(
        self,
        state_store: StateStore,
        invoker: IntegrationInvoker,
        config: InferenceConfig | None = None,
        clock: Clock = utc_now,
    ) -> None:
        self._store = state_store
        self._invoker = invoker
        self._config = config or InferenceConfig()
        self._clock = clock

    async def start(self, contact_id: str) -> dict[str, str]:
        """Start the current rule's integration and wait briefly for it.

        Returns:
            String valued session state, or {"status": "ERROR"} when the
            integration could not be started
        """
        state = await self._store.load(contact_id)
        if not await self._begin(state):
            return {"status": "ERROR"}

        state = await self._wait(contact_id, self._config.integration_wait_seconds)
        return state.to_response()

    async def run(self, contact_id: str) -> SessionState:
        """Start the current rule's integration and wait out its full timeout.

        A still pending integration is recorded as TIMEOUT.

        Returns:
            Session state after the integration finished
        """
        state = await self._store.load(contact_id)
        timeout = state.get_param("functionTimeout")
        if not is_number(timeout):
            raise RuleConfigError(
                "Integration rule is missing functionTimeout",
                contact_id=contact_id,
            )
        if not await self._begin(state):
            return await self._store.load(contact_id)

        state = await self._wait(contact_id, float(timeout))
        if state.get(INTEGRATION_STATUS) in PENDING_STATUSES:
            logger.warning("integration_timed_out", contact_id=contact_id)
            state.set(INTEGRATION_STATUS, "TIMEOUT")
            state.set(INTEGRATION_ERROR_CAUSE, TIMEOUT_CAUSE)
            state.set(INTEGRATION_END, timestamp(self._clock()))
            await self._store.persist(state)
        return state

    async def _begin(self, state: SessionState) -> bool:
        """Mark the integration started and invoke it.

        Returns:
            False if the invocation failed and ERROR was recorded
        """
        function_name = state.get_param("functionName") or state.get_param("functionArn")
        if not function_name:
            raise RuleConfigError(
                "Integration rule is missing functionName",
                contact_id=state.contact_id,
            )

        payload = state.get_param("functionPayload", "")

        state.set(INTEGRATION_STATUS, "START")
        state.set(INTEGRATION_START, timestamp(self._clock()))
        state.delete(INTEGRATION_END)
        state.delete(INTEGRATION_ERROR_CAUSE)
        await self._store.persist(state)

        try:
            await self._invoker.invoke(
                function_name,
                {"ContactId": state.contact_id, "Payload": payload},
            )
        except PlatformError as e:
            logger.error(
                "integration_start_failed",
                contact_id=state.contact_id,
                function_name=function_name,
                error=str(e),
            )
            state.set(INTEGRATION_STATUS, "ERROR")
            state.set(INTEGRATION_END, timestamp(self._clock()))
            await self._store.persist(state)
            return False

        logger.info(
            "integration_started",
            contact_id=state.contact_id,
            function_name=function_name,
        )
        return True

    async def check_timeout(self, contact_id: str) -> dict[str, str]:
        """Mark a pending integration as timed out once its deadline has passed."""
        state = await self._store.load(contact_id)
        started = state.get(INTEGRATION_START)
        timeout = state.get_param("functionTimeout")
        if not started or not is_number(timeout):
            raise RuleConfigError(
                "Integration timeout check needs IntegrationStart and functionTimeout",
                contact_id=contact_id,
            )

        deadline = datetime.fromisoformat(started) + timedelta(seconds=float(timeout))
        now = self._clock()
        if now > deadline:
            logger.warning(
                "integration_timed_out",
                contact_id=contact_id,
                overdue_seconds=int((now - deadline).total_seconds()),
            )
            state.set(INTEGRATION_STATUS, "TIMEOUT")
            state.set(INTEGRATION_ERROR_CAUSE, TIMEOUT_CAUSE)
            state.set(INTEGRATION_END, timestamp(now))
            await self._store.persist(state)
            return state.to_response()

        state = await self._wait(contact_id, self._config.integration_wait_seconds)
        return state.to_response()

    async def complete(
        self,
        contact_id: str,
        status: str = "END",
        response: Any = None,
        error_cause: str | None = None,
    ) -> None:
        """Record an integration's outcome, as reported by the integration itself."""
        state = await self._store.load(contact_id)
        state.set(INTEGRATION_STATUS, status)
        state.set(INTEGRATION_END, timestamp(self._clock()))
        state.set(INTEGRATION_ERROR_CAUSE, error_cause)
        state.set(INTEGRATION_RESPONSE, response)

        output_key = state.get_param("functionOutputKey")
        if output_key:
            state.set(output_key, response)
        await self._store.persist(state)
        logger.info("integration_completed", contact_id=contact_id, status=status)

    async def _wait(self, contact_id: str, window_seconds: float) -> SessionState:
        loop = asyncio.get_running_loop()
        deadline = loop.time() + window_seconds
        state = await self._store.load(contact_id)
        while state.get(INTEGRATION_STATUS) in PENDING_STATUSES and loop.time() < deadline:
            await asyncio.sleep(self._config.integration_poll_seconds)
            state = await self._store.load(contact_id)
        return state
