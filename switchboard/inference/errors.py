"""Inference error hierarchy.

Configuration errors are fatal for the invocation that raised them and
are never retried. The calling platform decides how to surface them.
"""


class InferenceError(Exception):
    """Base exception for all inference errors."""

    def __init__(self, message: str, contact_id: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.contact_id = contact_id


class ConfigurationError(InferenceError):
    """Rule, rule set or endpoint configuration cannot drive the session."""

    pass


class RuleSetNotFoundError(ConfigurationError):
    """No enabled rule set exists with the requested name."""

    pass


class RuleNotFoundError(ConfigurationError):
    """The current rule is missing from its rule set."""

    pass


class EndPointNotFoundError(ConfigurationError):
    """A dialled number or endpoint name does not route to a rule set."""

    pass


class RuleSetExhaustedError(ConfigurationError):
    """A rule set ran out of rules with nothing on the return stack."""

    pass


class AttributeOverflowError(ConfigurationError):
    """The contact attribute delta exceeds what the platform accepts."""

    pass


class DistributionConfigError(ConfigurationError):
    """A Distribution rule has malformed options or weights."""

    pass


class UnknownRuleTypeError(ConfigurationError):
    """A rule type has no handler in the current dispatch path."""

    pass


class RuleConfigError(ConfigurationError):
    """A rule is missing parameters its type requires."""

    pass


class InvalidRequestError(InferenceError):
    """An inbound request is missing fields or carries an unknown event."""

    pass
