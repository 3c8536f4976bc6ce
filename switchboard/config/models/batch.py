"""Batch test runner configuration models."""

from pydantic import BaseModel, Field


class BatchConfig(BaseModel):
    """Batch test runner configuration."""

    batch_size: int = Field(
        default=10,
        ge=1,
        description="Number of tests run concurrently in one chunk",
    )
    inference_url: str | None = Field(
        default=None,
        description="Remote interactive endpoint; tests run in-process when unset",
    )
    request_timeout_seconds: float = Field(
        default=60.0,
        gt=0,
        description="Timeout for remote inference requests",
    )
    max_interactions: int = Field(
        default=500,
        ge=1,
        description="Requests one test may make before it is failed",
    )
