"""Interactive simulator endpoint."""

from fastapi import APIRouter

from switchboard.api.dependencies import SimulatorDep
from switchboard.api.exceptions import from_domain_error
from switchboard.inference.errors import InferenceError
from switchboard.interactive.models import InteractiveRequest, InteractiveResponse
from switchboard.stores.errors import StoreError

router = APIRouter()


@router.post("/interactive", response_model=InteractiveResponse)
async def interactive(
    request: InteractiveRequest,
    simulator: SimulatorDep,
) -> InteractiveResponse:
    """Send one simulated platform event and return the next step."""
    try:
        return await simulator.handle(request)
    except (InferenceError, StoreError) as e:
        raise from_domain_error(e) from e
