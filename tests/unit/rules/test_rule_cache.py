"""Unit tests for RuleSetCache."""

import pytest

from switchboard.inference.errors import EndPointNotFoundError, RuleSetNotFoundError
from switchboard.rules.cache import RuleSetCache
from switchboard.rules.stores import InMemoryRuleConfigStore
from tests.factories import EndPointFactory, RuleFactory, RuleSetFactory


@pytest.fixture
def store() -> InMemoryRuleConfigStore:
    return InMemoryRuleConfigStore(
        rule_sets=[
            RuleSetFactory.create(
                name="Main",
                end_points=["MainLine"],
                rules=[
                    RuleFactory.message("Low", "low", priority=1),
                    RuleFactory.message("Disabled", "off", priority=5, enabled=False),
                    RuleFactory.message("High", "high", priority=10),
                    RuleFactory.message("AlsoLow", "low again", priority=1),
                ],
            ),
            RuleSetFactory.create(name="Retired", end_points=["OldLine"], enabled=False),
        ],
        end_points=[
            EndPointFactory.create(name="MainLine", inbound_numbers=["+61311111111"]),
            EndPointFactory.create(name="Orphan", inbound_numbers=["+61322222222"]),
            EndPointFactory.create(
                name="Closed", inbound_numbers=["+61333333333"], enabled=False
            ),
        ],
        config_items={"CallCentreTimeZone": "Australia/Sydney"},
    )


@pytest.fixture
async def cache(store: InMemoryRuleConfigStore) -> RuleSetCache:
    cache = RuleSetCache(store)
    await cache.refresh()
    return cache


class TestRuleSetCacheLoading:
    """Tests for what enters the cache."""

    @pytest.mark.asyncio
    async def test_disabled_rules_and_rule_sets_dropped(self, cache: RuleSetCache) -> None:
        assert [rule_set.name for rule_set in cache.rule_sets] == ["Main"]
        assert cache.find_rule_set("Retired") is None
        names = [rule.name for rule in cache.get_rule_set("Main").rules]
        assert "Disabled" not in names

    @pytest.mark.asyncio
    async def test_rules_sorted_by_descending_priority(self, cache: RuleSetCache) -> None:
        names = [rule.name for rule in cache.get_rule_set("Main").rules]
        assert names == ["High", "Low", "AlsoLow"]

    @pytest.mark.asyncio
    async def test_config_items_loaded(self, cache: RuleSetCache) -> None:
        assert cache.config_items == {"CallCentreTimeZone": "Australia/Sydney"}


class TestRuleSetCacheLookups:
    """Tests for rule set and endpoint resolution."""

    @pytest.mark.asyncio
    async def test_unknown_rule_set_raises(self, cache: RuleSetCache) -> None:
        with pytest.raises(RuleSetNotFoundError):
            cache.get_rule_set("Nope")

    @pytest.mark.asyncio
    async def test_rule_set_for_end_point(self, cache: RuleSetCache) -> None:
        assert cache.rule_set_for_end_point("MainLine").name == "Main"
        with pytest.raises(EndPointNotFoundError):
            cache.rule_set_for_end_point("OldLine")

    @pytest.mark.asyncio
    async def test_rule_set_for_dialled_number(self, cache: RuleSetCache) -> None:
        assert cache.rule_set_for_dialled_number("+61311111111").name == "Main"

    @pytest.mark.asyncio
    async def test_unknown_dialled_number_raises(self, cache: RuleSetCache) -> None:
        with pytest.raises(EndPointNotFoundError, match="by dialled number"):
            cache.rule_set_for_dialled_number("+61399999999")

    @pytest.mark.asyncio
    async def test_disabled_end_point_numbers_ignored(self, cache: RuleSetCache) -> None:
        with pytest.raises(EndPointNotFoundError):
            cache.rule_set_for_dialled_number("+61333333333")

    @pytest.mark.asyncio
    async def test_end_point_without_rule_set_raises(self, cache: RuleSetCache) -> None:
        with pytest.raises(EndPointNotFoundError, match="Orphan"):
            cache.rule_set_for_dialled_number("+61322222222")


class TestRuleSetCacheRefresh:
    """Tests for last change token handling."""

    @pytest.mark.asyncio
    async def test_unchanged_token_skips_reload(self, store: InMemoryRuleConfigStore) -> None:
        cache = RuleSetCache(store)
        assert await cache.refresh() is True
        assert await cache.refresh() is False

    @pytest.mark.asyncio
    async def test_changed_token_reloads(
        self, store: InMemoryRuleConfigStore, cache: RuleSetCache
    ) -> None:
        await store.save_rule_set(RuleSetFactory.create(name="Billing"))

        assert await cache.refresh() is True
        assert cache.get_rule_set("Billing").name == "Billing"

    @pytest.mark.asyncio
    async def test_custom_token_accessor(self, store: InMemoryRuleConfigStore) -> None:
        token = {"value": "a"}

        async def last_change() -> str:
            return token["value"]

        cache = RuleSetCache(store, last_change=last_change)
        assert await cache.refresh() is True
        await store.save_rule_set(RuleSetFactory.create(name="Billing"))
        assert await cache.refresh() is False

        token["value"] = "b"
        assert await cache.refresh() is True
        assert cache.find_rule_set("Billing") is not None
