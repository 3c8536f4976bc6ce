"""Rule and rule set coverage across a batch of test results."""

from switchboard.observability.logging import get_logger
from switchboard.rules.models import RuleSet
from switchboard.verify.models import (
    Coverage,
    RuleCoverage,
    RuleSetCoverage,
    TestResult,
)

logger = get_logger(__name__)


def _percentage(part: int, whole: int) -> int:
    return part * 100 // whole


def compute_coverage(rule_sets: list[RuleSet], results: list[TestResult]) -> Coverage:
    """Count interactions per rule and derive floor rounded coverage.

    A rule is covered once any interaction reported it. Interactions
    naming a rule set or rule that is not enabled are skipped.
    """
    rule_set_coverage = [
        RuleSetCoverage(
            name=rule_set.name,
            id=rule_set.rule_set_id,
            rules=[RuleCoverage(name=rule.name, id=rule.rule_id) for rule in rule_set.rules],
        )
        for rule_set in rule_sets
    ]
    by_name = {rule_set.name: rule_set for rule_set in rule_set_coverage}

    for result in results:
        for interaction in result.interactions:
            response = interaction.response
            if response.rule_set is None or response.rule is None:
                continue
            rule_set = by_name.get(response.rule_set)
            if rule_set is None:
                logger.warning("coverage_unknown_rule_set", rule_set=response.rule_set)
                continue
            rule_set.count += 1
            rule = next((r for r in rule_set.rules if r.name == response.rule), None)
            if rule is None:
                logger.warning(
                    "coverage_unknown_rule",
                    rule_set=response.rule_set,
                    rule=response.rule,
                )
                continue
            rule.count += 1

    total_rules = 0
    total_activated = 0
    for rule_set in rule_set_coverage:
        rules = len(rule_set.rules)
        activated = sum(1 for rule in rule_set.rules if rule.count > 0)
        if rules > 0:
            rule_set.covered = _percentage(activated, rules)
            rule_set.uncovered = 100 - rule_set.covered
        total_rules += rules
        total_activated += activated

    coverage = Coverage(rule_sets=rule_set_coverage)
    if total_rules > 0:
        coverage.covered = _percentage(total_activated, total_rules)
        coverage.uncovered = 100 - coverage.covered
    return coverage
