"""Root settings model for Switchboard configuration."""

from typing import Any, Literal

from pydantic import Field
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
)

from switchboard.config.loader import ConfigLayers
from switchboard.config.models.api import APIConfig
from switchboard.config.models.batch import BatchConfig
from switchboard.config.models.inference import InferenceConfig, PlatformConfig
from switchboard.config.models.observability import ObservabilityConfig
from switchboard.config.models.storage import StorageConfig

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


class LayeredTomlSource(PydanticBaseSettingsSource):
    """Values from the merged TOML layers.

    A configuration directory without default.toml contributes nothing,
    leaving model defaults and environment variables in charge.
    """

    def __init__(
        self,
        settings_cls: type[BaseSettings],
        layers: ConfigLayers | None = None,
    ) -> None:
        super().__init__(settings_cls)
        self.layers = layers or ConfigLayers.from_environment()
        self._values = self.layers.load() if self.layers.available else {}

    def get_field_value(
        self, field: Any, field_name: str  # noqa: ARG002
    ) -> tuple[Any, str, bool]:
        value = self._values.get(field_name)
        return value, field_name, value is not None

    def __call__(self) -> dict[str, Any]:
        return dict(self._values)


class Settings(BaseSettings):
    """Every Switchboard setting, one nested model per area.

    Later sources win: model defaults, then the TOML layers, then
    SWITCHBOARD_* variables (nested with `__`), then constructor arguments.
    """

    model_config = SettingsConfigDict(
        env_prefix="SWITCHBOARD_",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore",
    )

    app_name: str = Field(default="switchboard", description="Application name for logging")
    debug: bool = Field(default=False, description="Enable debug mode")
    log_level: LogLevel = Field(default="INFO", description="Logging level")

    api: APIConfig = Field(default_factory=APIConfig, description="API server configuration")
    storage: StorageConfig = Field(
        default_factory=StorageConfig,
        description="Storage backend configuration",
    )
    inference: InferenceConfig = Field(
        default_factory=InferenceConfig,
        description="Session inference configuration",
    )
    platform: PlatformConfig = Field(
        default_factory=PlatformConfig,
        description="Telephony platform call configuration",
    )
    batch: BatchConfig = Field(
        default_factory=BatchConfig,
        description="Batch test runner configuration",
    )
    observability: ObservabilityConfig = Field(
        default_factory=ObservabilityConfig,
        description="Observability configuration",
    )

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,  # noqa: ARG003
        file_secret_settings: PydanticBaseSettingsSource,  # noqa: ARG003
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        """Constructor arguments, then SWITCHBOARD_* variables, then TOML layers."""
        return (init_settings, env_settings, LayeredTomlSource(settings_cls))
