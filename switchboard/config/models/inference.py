"""Inference and platform call configuration models."""

from pydantic import BaseModel, Field


class InferenceConfig(BaseModel):
    """Session inference configuration."""

    timezone: str = Field(
        default="UTC",
        description="Call centre time zone used for local time and holidays",
    )
    max_contact_attributes: int = Field(
        default=200,
        gt=0,
        description="Maximum contact attribute delta exported on a Queue rule",
    )
    integration_wait_seconds: float = Field(
        default=2.0,
        gt=0,
        description="How long an integration start or check waits for completion",
    )
    integration_poll_seconds: float = Field(
        default=0.1,
        gt=0,
        description="Interval between session state reads while waiting",
    )
    mobile_prefix: str = Field(
        default="+614",
        description="Phone number prefix treated as mobile by rule conditions",
    )
    max_rule_set_transitions: int = Field(
        default=100,
        gt=0,
        description="Rule set changes allowed in one invocation before failing",
    )
    integration_endpoints: dict[str, str] = Field(
        default_factory=dict,
        description="Integration function name to the URL that starts it",
    )


class PlatformConfig(BaseModel):
    """Retry settings for telephony platform attribute calls."""

    backoff_base_ms: int = Field(default=250, gt=0, description="Minimum sleep (ms)")
    backoff_scaling: int = Field(default=2, ge=1, description="Exponential scaling factor")
    backoff_clamp_retry: int = Field(
        default=5,
        ge=0,
        description="Retry number at which the exponential growth stops",
    )
    max_retries: int = Field(default=20, ge=1, description="Attempts before giving up")
