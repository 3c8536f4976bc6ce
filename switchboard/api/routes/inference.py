"""Telephony platform endpoints: inference, integrations and contact events."""

from fastapi import APIRouter

from switchboard.api.dependencies import (
    ContactEventHandlerDep,
    IntegrationRunnerDep,
    OrchestratorDep,
)
from switchboard.api.exceptions import from_domain_error
from switchboard.api.models.platform import (
    ContactEventRequest,
    ContactEventResponse,
    IntegrationCompleteRequest,
    IntegrationRequest,
)
from switchboard.inference.errors import InferenceError
from switchboard.inference.models import InferenceRequest
from switchboard.observability.logging import get_logger
from switchboard.platform.errors import PlatformError
from switchboard.stores.errors import StoreError

logger = get_logger(__name__)

router = APIRouter()


@router.post("/inference", response_model=dict[str, str])
async def infer(request: InferenceRequest, orchestrator: OrchestratorDep) -> dict[str, str]:
    """Advance a contact's session to the next platform rule.

    Returns:
        Session state flattened to string values for the platform
    """
    try:
        return await orchestrator.infer(request)
    except (InferenceError, StoreError) as e:
        raise from_domain_error(e) from e


@router.post("/integration/start", response_model=dict[str, str])
async def start_integration(
    request: IntegrationRequest,
    runner: IntegrationRunnerDep,
) -> dict[str, str]:
    """Start the current rule's integration and wait briefly for its result."""
    try:
        return await runner.start(request.contact_id)
    except (InferenceError, StoreError) as e:
        raise from_domain_error(e) from e


@router.post("/integration/check", response_model=dict[str, str])
async def check_integration(
    request: IntegrationRequest,
    runner: IntegrationRunnerDep,
) -> dict[str, str]:
    """Check a running integration, timing it out once its deadline passes."""
    try:
        return await runner.check_timeout(request.contact_id)
    except (InferenceError, StoreError) as e:
        raise from_domain_error(e) from e


@router.post("/integration/complete", status_code=204)
async def complete_integration(
    request: IntegrationCompleteRequest,
    runner: IntegrationRunnerDep,
) -> None:
    """Record the outcome an integration function reports back."""
    try:
        await runner.complete(
            request.contact_id,
            status=request.status,
            response=request.response,
            error_cause=request.error_cause,
        )
    except StoreError as e:
        raise from_domain_error(e) from e


@router.post("/contact-events", response_model=ContactEventResponse)
async def contact_event(
    request: ContactEventRequest,
    handler: ContactEventHandlerDep,
) -> ContactEventResponse:
    """Handle a contact lifecycle event.

    On disconnect, attributes changed during the session are written
    back to the platform.
    """
    logger.debug("contact_event_request", contact_id=request.contact_id)
    try:
        updated = await handler.on_disconnect(request.contact_id)
    except (InferenceError, PlatformError, StoreError) as e:
        raise from_domain_error(e) from e
    return ContactEventResponse(contact_id=request.contact_id, updated_attributes=updated)
