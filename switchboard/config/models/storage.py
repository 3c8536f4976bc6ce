"""Storage backend configuration models."""

from typing import Literal

from pydantic import BaseModel, Field

BackendType = Literal["inmemory", "redis"]
BlobBackendType = Literal["inmemory", "filesystem"]


class RedisBackedConfig(BaseModel):
    """Settings shared by stores that can live in Redis."""

    backend: BackendType = Field(default="inmemory", description="Backend type")
    redis_url: str = Field(
        default="redis://localhost:6379/0",
        description="Redis connection URL",
    )
    key_prefix: str = Field(default="switchboard", description="Prefix for Redis keys")


class StateStoreConfig(RedisBackedConfig):
    """Session state store configuration."""

    key_prefix: str = Field(default="state", description="Prefix for Redis keys")
    ttl_seconds: int = Field(
        default=14400,  # 4 hours
        gt=0,
        description="Time to live for session state (seconds)",
    )


class RuleStoreConfig(RedisBackedConfig):
    """Rule set and endpoint configuration store."""

    key_prefix: str = Field(default="rules", description="Prefix for Redis keys")


class TestStoreConfig(RedisBackedConfig):
    """Test script store configuration."""

    __test__ = False

    key_prefix: str = Field(default="tests", description="Prefix for Redis keys")


class BatchStoreConfig(RedisBackedConfig):
    """Batch result store configuration."""

    key_prefix: str = Field(default="batch", description="Prefix for Redis keys")
    expiry_hours: int = Field(
        default=168,
        gt=0,
        description="Hours a batch record is kept",
    )
    max_inline_bytes: int = Field(
        default=307200,
        gt=0,
        description="Encoded results larger than this are written to blob storage",
    )


class BlobStoreConfig(BaseModel):
    """Blob storage for oversized batch results."""

    backend: BlobBackendType = Field(default="inmemory", description="Backend type")
    bucket: str = Field(default="switchboard-batches", description="Bucket name")
    root_path: str = Field(
        default="data/blobs",
        description="Root directory for the filesystem backend",
    )


class StorageConfig(BaseModel):
    """Configuration for all storage backends."""

    state: StateStoreConfig = Field(
        default_factory=StateStoreConfig,
        description="Session state store",
    )
    rules: RuleStoreConfig = Field(
        default_factory=RuleStoreConfig,
        description="Rule configuration store",
    )
    tests: TestStoreConfig = Field(
        default_factory=TestStoreConfig,
        description="Test script store",
    )
    batches: BatchStoreConfig = Field(
        default_factory=BatchStoreConfig,
        description="Batch result store",
    )
    blobs: BlobStoreConfig = Field(
        default_factory=BlobStoreConfig,
        description="Blob storage",
    )
