"""Rule set, rule and endpoint models."""

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class RuleType(str, Enum):
    """Closed set of rule types.

    Local types are executed in-process by the orchestrator. Every other
    type is rendered by the telephony platform, which calls back once the
    rule has been played out.
    """

    RULE_SET = "RuleSet"
    UPDATE_STATES = "UpdateStates"
    SET_ATTRIBUTES = "SetAttributes"
    TEXT_INFERENCE = "TextInference"
    DISTRIBUTION = "Distribution"
    METRIC = "Metric"

    MESSAGE = "Message"
    QUEUE = "Queue"
    TERMINATE = "Terminate"
    EXTERNAL_NUMBER = "ExternalNumber"
    DTMF_MENU = "DTMFMenu"
    DTMF_INPUT = "DTMFInput"
    NLU_MENU = "NLUMenu"
    NLU_INPUT = "NLUInput"
    INTEGRATION = "Integration"
    SMS_MESSAGE = "SMSMessage"

    @property
    def is_local(self) -> bool:
        """Whether this type is resolved without the telephony platform."""
        return self in LOCAL_RULE_TYPES


LOCAL_RULE_TYPES: frozenset[RuleType] = frozenset({
    RuleType.RULE_SET,
    RuleType.UPDATE_STATES,
    RuleType.SET_ATTRIBUTES,
    RuleType.TEXT_INFERENCE,
    RuleType.DISTRIBUTION,
    RuleType.METRIC,
})


class Weight(BaseModel):
    """A weighted condition that contributes to a rule's activation."""

    model_config = ConfigDict(extra="ignore")

    weight_id: str | None = Field(default=None, description="Condition identifier")
    field: str = Field(..., description="Dotted path into session state")
    operation: str = Field(..., description="Comparison operation")
    value: str | None = Field(default=None, description="Comparison operand")
    weight: float = Field(default=0, description="Weight added when the condition holds")


class Rule(BaseModel):
    """A single step within a rule set."""

    model_config = ConfigDict(extra="ignore")

    rule_id: str = Field(..., description="Unique rule identifier")
    rule_set_id: str = Field(..., description="Owning rule set identifier")
    name: str = Field(..., description="Name, unique within the rule set")
    description: str = Field(default="", description="Free text description")
    enabled: bool = Field(default=True, description="Disabled rules are dropped at load")
    priority: float = Field(default=0, description="Higher priority rules are evaluated first")
    activation: float = Field(default=0, description="Weight needed for the rule to activate")
    type: RuleType = Field(..., description="Rule type")
    params: dict[str, Any] = Field(default_factory=dict, description="Type specific parameters")
    weights: list[Weight] = Field(default_factory=list, description="Activation conditions")


class RuleSet(BaseModel):
    """A named, ordered collection of rules."""

    model_config = ConfigDict(extra="ignore")

    rule_set_id: str = Field(..., description="Unique rule set identifier")
    name: str = Field(..., description="Globally unique name")
    description: str = Field(default="", description="Free text description")
    enabled: bool = Field(default=True, description="Disabled rule sets are dropped at load")
    folder: str = Field(default="/", description="Organisational folder path")
    end_points: list[str] = Field(
        default_factory=list,
        description="Endpoint names that route to this rule set",
    )
    rules: list[Rule] = Field(default_factory=list, description="Rules in the set")

    def rule_index(self, rule_name: str) -> int | None:
        """Position of a rule by name, or None when absent."""
        for index, rule in enumerate(self.rules):
            if rule.name == rule_name:
                return index
        return None

    def get_rule(self, rule_name: str) -> Rule | None:
        """Find a rule by name."""
        index = self.rule_index(rule_name)
        return None if index is None else self.rules[index]


class EndPoint(BaseModel):
    """Inbound routing entry mapping dialled numbers to a named endpoint."""

    model_config = ConfigDict(extra="ignore")

    end_point_id: str | None = Field(default=None, description="Endpoint identifier")
    name: str = Field(..., description="Endpoint name referenced by rule sets")
    enabled: bool = Field(default=True, description="Disabled endpoints are dropped at load")
    inbound_numbers: list[str] = Field(
        default_factory=list,
        description="Dialled numbers answered by this endpoint",
    )
