"""Test factories for Switchboard domain models."""

from tests.factories.rules import EndPointFactory, RuleFactory, RuleSetFactory
from tests.factories.verify import TestDefinitionFactory

__all__ = [
    "EndPointFactory",
    "RuleFactory",
    "RuleSetFactory",
    "TestDefinitionFactory",
]
