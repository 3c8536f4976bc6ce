"""Batch test endpoints."""

from fastapi import APIRouter

from switchboard.api.dependencies import BatchServiceDep
from switchboard.api.exceptions import from_domain_error
from switchboard.api.models.batch import BatchCreate, BatchListResponse
from switchboard.observability.logging import get_logger
from switchboard.stores.errors import StoreError
from switchboard.verify.errors import BatchError
from switchboard.verify.models import BatchDetail, BatchRecord

logger = get_logger(__name__)

router = APIRouter(prefix="/batches")


@router.post("", response_model=BatchRecord, status_code=202)
async def start_batch(request: BatchCreate, service: BatchServiceDep) -> BatchRecord:
    """Submit a batch of tests.

    The batch runs in the background; poll GET /v1/batches/{batch_id}
    for progress and results.
    """
    logger.info("start_batch_request", user_id=request.user_id, folder=request.folder)
    try:
        return await service.start(
            request.user_id,
            test_ids=request.test_ids,
            folder=request.folder,
            recursive=request.recursive,
        )
    except (BatchError, StoreError) as e:
        raise from_domain_error(e) from e


@router.get("", response_model=BatchListResponse)
async def list_batches(service: BatchServiceDep) -> BatchListResponse:
    """List live batches, newest first."""
    try:
        batches = await service.list_batches()
    except StoreError as e:
        raise from_domain_error(e) from e
    return BatchListResponse(batches=batches)


@router.get("/{batch_id}", response_model=BatchDetail)
async def get_batch(batch_id: str, service: BatchServiceDep) -> BatchDetail:
    """Get a batch with its results and coverage."""
    try:
        return await service.get(batch_id)
    except (BatchError, StoreError) as e:
        raise from_domain_error(e) from e
