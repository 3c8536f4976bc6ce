"""Rule sets, rule configuration storage, caching and activation."""

from switchboard.rules.cache import RuleSetCache
from switchboard.rules.evaluator import RuleEvaluator, WeightedRuleEvaluator
from switchboard.rules.models import EndPoint, Rule, RuleSet, RuleType, Weight
from switchboard.rules.store import RuleConfigStore

__all__ = [
    "EndPoint",
    "Rule",
    "RuleConfigStore",
    "RuleEvaluator",
    "RuleSet",
    "RuleSetCache",
    "RuleType",
    "WeightedRuleEvaluator",
    "Weight",
]
