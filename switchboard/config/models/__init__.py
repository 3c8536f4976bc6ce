"""Configuration model exports.

    from switchboard.config.models import StorageConfig, InferenceConfig
"""

from switchboard.config.models.api import APIConfig
from switchboard.config.models.batch import BatchConfig
from switchboard.config.models.inference import InferenceConfig, PlatformConfig
from switchboard.config.models.observability import (
    LoggingConfig,
    MetricsConfig,
    ObservabilityConfig,
)
from switchboard.config.models.storage import (
    BatchStoreConfig,
    BlobStoreConfig,
    RuleStoreConfig,
    StateStoreConfig,
    StorageConfig,
    TestStoreConfig,
)

__all__ = [
    "APIConfig",
    "BatchConfig",
    "BatchStoreConfig",
    "BlobStoreConfig",
    "InferenceConfig",
    "LoggingConfig",
    "MetricsConfig",
    "ObservabilityConfig",
    "PlatformConfig",
    "RuleStoreConfig",
    "StateStoreConfig",
    "StorageConfig",
    "TestStoreConfig",
]
