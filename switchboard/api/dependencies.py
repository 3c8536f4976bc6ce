"""Dependency injection for API routes.

Provides FastAPI dependencies for the stores and services used by API
endpoints. Backends are chosen from settings and can be overridden for
testing.
"""

from functools import lru_cache
from typing import Annotated

import httpx
import redis.asyncio as redis
from fastapi import Depends

from switchboard.client import SwitchboardClient
from switchboard.config.loader import ConfigLayers
from switchboard.config.settings import Settings
from switchboard.inference.handlers import LocalRuleHandlers, PrometheusMetricsSink
from switchboard.inference.integration import HttpIntegrationInvoker, IntegrationRunner
from switchboard.inference.orchestrator import InferenceOrchestrator
from switchboard.interactive.handlers import SimulatedRuleHandlers
from switchboard.interactive.simulator import InteractiveSimulator
from switchboard.observability.logging import get_logger
from switchboard.platform.attributes import (
    InMemoryContactAttributeService,
    RetryingContactAttributeService,
)
from switchboard.platform.events import ContactEventHandler
from switchboard.rules.cache import RuleSetCache
from switchboard.rules.store import RuleConfigStore
from switchboard.rules.stores import InMemoryRuleConfigStore, RedisRuleConfigStore
from switchboard.state.store import StateStore
from switchboard.state.stores import InMemoryStateStore, RedisStateStore
from switchboard.verify.archive import ResultArchive
from switchboard.verify.blobs import BlobStore, FileSystemBlobStore, InMemoryBlobStore
from switchboard.verify.client import (
    InferenceClient,
    LocalInferenceClient,
    RemoteInferenceClient,
)
from switchboard.verify.coordinator import BatchCoordinator
from switchboard.verify.interpreter import TestInterpreter
from switchboard.verify.service import BatchService
from switchboard.verify.store import BatchStore, TestStore
from switchboard.verify.stores import (
    InMemoryBatchStore,
    InMemoryTestStore,
    RedisBatchStore,
    RedisTestStore,
)

logger = get_logger(__name__)

# Clients shared across stores, keyed by URL
_redis_clients: dict[str, redis.Redis] = {}
_http_client: httpx.AsyncClient | None = None
_remote_client: SwitchboardClient | None = None

# Store and service instances - created once and reused
_state_store: StateStore | None = None
_rule_store: RuleConfigStore | None = None
_rule_cache: RuleSetCache | None = None
_local_handlers: LocalRuleHandlers | None = None
_orchestrator: InferenceOrchestrator | None = None
_integration_runner: IntegrationRunner | None = None
_contact_event_handler: ContactEventHandler | None = None
_simulator: InteractiveSimulator | None = None
_test_store: TestStore | None = None
_batch_store: BatchStore | None = None
_blob_store: BlobStore | None = None
_batch_service: BatchService | None = None


@lru_cache
def get_settings() -> Settings:
    """Application settings, built once per process.

    A missing default.toml is logged and model defaults apply.
    """
    layers = ConfigLayers.from_environment()
    if not layers.available:
        logger.warning("config_file_not_found", path=str(layers.base))
    return Settings()


def get_redis_client(url: str) -> redis.Redis:
    """Get the shared Redis client for a URL, creating it on first access."""
    client = _redis_clients.get(url)
    if client is None:
        client = redis.from_url(url, decode_responses=True)
        _redis_clients[url] = client
        logger.info("redis_client_created", url=url.split("@")[-1])
    return client


def get_http_client() -> httpx.AsyncClient:
    """Get the shared HTTP client used to start integrations."""
    global _http_client
    if _http_client is None:
        _http_client = httpx.AsyncClient(timeout=get_settings().batch.request_timeout_seconds)
    return _http_client


def get_state_store() -> StateStore:
    """Get the session StateStore instance."""
    global _state_store
    if _state_store is None:
        config = get_settings().storage.state
        if config.backend == "redis":
            _state_store = RedisStateStore(get_redis_client(config.redis_url), config)
        else:
            _state_store = InMemoryStateStore(ttl_seconds=config.ttl_seconds)
        logger.info("state_store_initialized", store_type=config.backend)
    return _state_store


def get_rule_store() -> RuleConfigStore:
    """Get the RuleConfigStore instance."""
    global _rule_store
    if _rule_store is None:
        config = get_settings().storage.rules
        if config.backend == "redis":
            _rule_store = RedisRuleConfigStore(get_redis_client(config.redis_url), config)
        else:
            _rule_store = InMemoryRuleConfigStore()
        logger.info("rule_store_initialized", store_type=config.backend)
    return _rule_store


def get_rule_cache() -> RuleSetCache:
    """Get the process wide rule set cache."""
    global _rule_cache
    if _rule_cache is None:
        _rule_cache = RuleSetCache(get_rule_store())
    return _rule_cache


def get_local_handlers() -> LocalRuleHandlers:
    """Get the local rule type handlers shared by inference and the simulator."""
    global _local_handlers
    if _local_handlers is None:
        namespace = get_settings().observability.metrics.rule_metric_namespace
        _local_handlers = LocalRuleHandlers(PrometheusMetricsSink(namespace))
    return _local_handlers


def get_orchestrator() -> InferenceOrchestrator:
    """Get the InferenceOrchestrator instance."""
    global _orchestrator
    if _orchestrator is None:
        _orchestrator = InferenceOrchestrator(
            cache=get_rule_cache(),
            state_store=get_state_store(),
            handlers=get_local_handlers(),
            config=get_settings().inference,
        )
        logger.info("orchestrator_initialized")
    return _orchestrator


def get_integration_runner() -> IntegrationRunner:
    """Get the IntegrationRunner instance."""
    global _integration_runner
    if _integration_runner is None:
        config = get_settings().inference
        _integration_runner = IntegrationRunner(
            state_store=get_state_store(),
            invoker=HttpIntegrationInvoker(get_http_client(), config.integration_endpoints),
            config=config,
        )
    return _integration_runner


def get_contact_event_handler() -> ContactEventHandler:
    """Get the ContactEventHandler instance.

    Platform attribute calls go through the retrying service.
    """
    global _contact_event_handler
    if _contact_event_handler is None:
        attributes = RetryingContactAttributeService(
            InMemoryContactAttributeService(),
            get_settings().platform,
        )
        _contact_event_handler = ContactEventHandler(get_state_store(), attributes)
    return _contact_event_handler


def get_simulator() -> InteractiveSimulator:
    """Get the InteractiveSimulator instance."""
    global _simulator
    if _simulator is None:
        _simulator = InteractiveSimulator(
            cache=get_rule_cache(),
            state_store=get_state_store(),
            handlers=SimulatedRuleHandlers(get_local_handlers(), get_integration_runner()),
            config=get_settings().inference,
        )
        logger.info("simulator_initialized")
    return _simulator


def get_test_store() -> TestStore:
    """Get the TestStore instance."""
    global _test_store
    if _test_store is None:
        config = get_settings().storage.tests
        if config.backend == "redis":
            _test_store = RedisTestStore(get_redis_client(config.redis_url), config)
        else:
            _test_store = InMemoryTestStore()
        logger.info("test_store_initialized", store_type=config.backend)
    return _test_store


def get_batch_store() -> BatchStore:
    """Get the BatchStore instance."""
    global _batch_store
    if _batch_store is None:
        config = get_settings().storage.batches
        if config.backend == "redis":
            _batch_store = RedisBatchStore(get_redis_client(config.redis_url), config)
        else:
            _batch_store = InMemoryBatchStore()
        logger.info("batch_store_initialized", store_type=config.backend)
    return _batch_store


def get_blob_store() -> BlobStore:
    """Get the BlobStore instance for overflowing batch results."""
    global _blob_store
    if _blob_store is None:
        config = get_settings().storage.blobs
        if config.backend == "filesystem":
            _blob_store = FileSystemBlobStore(config.root_path)
        else:
            _blob_store = InMemoryBlobStore()
        logger.info("blob_store_initialized", store_type=config.backend)
    return _blob_store


def get_inference_client() -> InferenceClient:
    """Get the client batches drive the simulator through.

    Tests run against a remote deployment when batch.inference_url is
    set and in-process otherwise.
    """
    global _remote_client
    config = get_settings().batch
    if config.inference_url is None:
        return LocalInferenceClient(get_simulator())
    if _remote_client is None:
        _remote_client = SwitchboardClient(
            config.inference_url,
            timeout=config.request_timeout_seconds,
        )
    return RemoteInferenceClient(_remote_client)


def get_batch_service() -> BatchService:
    """Get the BatchService instance."""
    global _batch_service
    if _batch_service is None:
        settings = get_settings()
        archive = ResultArchive(
            get_blob_store(),
            settings.storage.batches,
            bucket=settings.storage.blobs.bucket,
        )
        coordinator = BatchCoordinator(
            batch_store=get_batch_store(),
            test_store=get_test_store(),
            interpreter=TestInterpreter(get_inference_client(), settings.batch),
            cache=get_rule_cache(),
            archive=archive,
            config=settings.batch,
        )
        _batch_service = BatchService(
            batch_store=get_batch_store(),
            test_store=get_test_store(),
            coordinator=coordinator,
            archive=archive,
            config=settings.storage.batches,
        )
        logger.info("batch_service_initialized")
    return _batch_service


# Type aliases for dependency injection
SettingsDep = Annotated[Settings, Depends(get_settings)]
StateStoreDep = Annotated[StateStore, Depends(get_state_store)]
RuleCacheDep = Annotated[RuleSetCache, Depends(get_rule_cache)]
OrchestratorDep = Annotated[InferenceOrchestrator, Depends(get_orchestrator)]
IntegrationRunnerDep = Annotated[IntegrationRunner, Depends(get_integration_runner)]
ContactEventHandlerDep = Annotated[ContactEventHandler, Depends(get_contact_event_handler)]
SimulatorDep = Annotated[InteractiveSimulator, Depends(get_simulator)]
BatchServiceDep = Annotated[BatchService, Depends(get_batch_service)]


async def reset_dependencies() -> None:
    """Reset all cached dependencies.

    Used for testing to ensure fresh instances.
    Closes connections before resetting.
    """
    global _http_client, _remote_client
    global _state_store, _rule_store, _rule_cache, _local_handlers, _orchestrator
    global _integration_runner, _contact_event_handler, _simulator
    global _test_store, _batch_store, _blob_store, _batch_service

    for client in _redis_clients.values():
        await client.aclose()
    _redis_clients.clear()

    if _http_client is not None:
        await _http_client.aclose()
        _http_client = None

    if _remote_client is not None:
        await _remote_client.close()
        _remote_client = None

    _state_store = None
    _rule_store = None
    _rule_cache = None
    _local_handlers = None
    _orchestrator = None
    _integration_runner = None
    _contact_event_handler = None
    _simulator = None
    _test_store = None
    _batch_store = None
    _blob_store = None
    _batch_service = None
    get_settings.cache_clear()
