"""Inference request and processing models."""

from dataclasses import dataclass
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field


class InferenceEvent(str, Enum):
    """Why the telephony platform invoked inference."""

    NEW_SESSION = "NEW_SESSION"
    NEXT_STEP = "NEXT_STEP"
    USER_INPUT = "USER_INPUT"
    INTEGRATION_CALLBACK = "INTEGRATION_CALLBACK"


class InferenceRequest(BaseModel):
    """Inbound invocation from the telephony platform."""

    contact_id: str = Field(..., min_length=1, description="Session identifier")
    event: InferenceEvent = Field(
        default=InferenceEvent.NEXT_STEP,
        description="Event kind",
    )
    dialled_number: str | None = Field(default=None, description="Number the caller dialled")
    customer_phone_number: str | None = Field(
        default=None,
        description="Caller number, absent when withheld",
    )
    contact_attributes: dict[str, Any] = Field(
        default_factory=dict,
        description="Attributes currently held by the platform for this contact",
    )
    parameters: dict[str, Any] = Field(
        default_factory=dict,
        description="Event specific parameters such as typed input or integration results",
    )


@dataclass
class ProcessingState:
    """Loop control flags for one inference invocation."""

    evaluate_next_rule: bool = True
    rule_set_changed: bool = False
    state_flushed: bool = False


@dataclass
class IntentResult:
    """Classification returned by an intent classifier."""

    intent: str
    confidence: float
