"""Test factories for batch test models."""

from typing import Any

from switchboard.verify.models import TestDefinition


class TestDefinitionFactory:
    """Factory for creating TestDefinition instances for testing."""

    __test__ = False

    @staticmethod
    def create(
        *,
        test_id: str = "test-1",
        name: str = "Test 1",
        folder: str = "/",
        end_point: str = "MainLine",
        payload: str = "",
        customer_phone_number: str | None = "+61400000000",
        contact_attributes: dict[str, Any] | None = None,
    ) -> TestDefinition:
        return TestDefinition(
            test_id=test_id,
            name=name,
            folder=folder,
            end_point=end_point,
            payload=payload,
            customer_phone_number=customer_phone_number,
            contact_attributes=contact_attributes or {},
        )
