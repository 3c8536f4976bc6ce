"""Interactive simulator request and response models.

Field names travel in camelCase on the wire.
"""

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class InteractiveEvent(str, Enum):
    """Simulated telephony platform events."""

    NEW_INTERACTION = "NEW_INTERACTION"
    NEXT_RULE = "NEXT_RULE"
    INPUT = "INPUT"
    HANGUP = "HANGUP"


class InteractiveRequest(BaseModel):
    """One simulated platform call."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    event_type: InteractiveEvent
    contact_id: str | None = Field(default=None, description="Required after NEW_INTERACTION")
    end_point: str | None = Field(default=None, description="Endpoint a new interaction enters by")
    customer_phone_number: str | None = None
    interaction_date_time: datetime | None = Field(
        default=None,
        description="Simulated call time used for System attributes",
    )
    contact_attributes: dict[str, Any] = Field(default_factory=dict)
    input: str | None = Field(default=None, description="Caller input for INPUT events")


class InteractiveResponse(BaseModel):
    """What the simulated platform would do next."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    contact_id: str
    input_required: bool = False
    message: str | None = None
    queue: str | None = None
    terminate: bool = False
    external_number: str | None = None
    disconnected: bool = False

    rule_set: str | None = None
    rule: str | None = None
    rule_type: str | None = None
    rule_set_id: str | None = None
    rule_id: str | None = None
    folder: str | None = None

    integration_status: str | None = None
    integration_error_cause: str | None = None

    state: dict[str, Any] = Field(
        default_factory=dict,
        description="Persisted session state after the step",
    )
