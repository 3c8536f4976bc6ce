"""Batch request and response models."""

from pydantic import BaseModel, Field

from switchboard.verify.models import BatchRecord


class BatchCreate(BaseModel):
    """Request model for submitting a batch.

    Either test_ids or folder selects the tests to run.
    """

    user_id: str = Field(..., min_length=1, description="Requesting user")
    test_ids: list[str] | None = Field(default=None, description="Explicit tests to run")
    folder: str | None = Field(default=None, description="Folder scope when no ids are given")
    recursive: bool = Field(default=False, description="Include sub folders of folder")


class BatchListResponse(BaseModel):
    batches: list[BatchRecord] = Field(default_factory=list)
