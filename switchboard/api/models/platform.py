"""Integration and contact event request and response models."""

from enum import Enum
from typing import Any

from pydantic import BaseModel, Field


class IntegrationRequest(BaseModel):
    """Start or check the current rule's integration for a contact."""

    contact_id: str = Field(..., min_length=1)


class IntegrationCompleteRequest(BaseModel):
    """Outcome reported by an integration function."""

    contact_id: str = Field(..., min_length=1)
    status: str = Field(default="END", description="END, ERROR or TIMEOUT")
    response: Any = Field(default=None, description="Stored under the rule's output key")
    error_cause: str | None = None


class ContactEventType(str, Enum):
    DISCONNECTED = "DISCONNECTED"


class ContactEventRequest(BaseModel):
    """Contact lifecycle event published by the telephony platform."""

    contact_id: str = Field(..., min_length=1)
    event_type: ContactEventType = ContactEventType.DISCONNECTED


class ContactEventResponse(BaseModel):
    contact_id: str
    updated_attributes: int
