"""Unit tests for AllocationPathResolver."""

import pytest

from config.models import GovernanceConfig
from allocator_governance.domain.allocator.types import AllocationPath, AllocatorType
from allocator_governance.domain.exceptions import ConfigurationError
from allocator_governance.domain.services import AllocationPathResolver


MDMA_FIL = "f410fw325e6novwl57jcsbhz6koljylxuhqq5jnp5ftq"


class TestAllocationPathResolver:
    def test_rkh_path(self, resolver) -> None:
        assert resolver.resolve(AllocatorType.RKH) == AllocationPath(
            pathway="RKH", address="f080", is_meta_allocator=False
        )

    def test_meta_allocator_path(self, resolver) -> None:
        path = resolver.resolve(AllocatorType.MDMA)

        assert path.pathway == "MDMA"
        assert path.address == MDMA_FIL
        assert path.is_meta_allocator is True

    def test_accepts_string_case_insensitively(self, resolver) -> None:
        assert resolver.resolve("orma") == resolver.resolve(AllocatorType.ORMA)

    def test_deterministic(self, resolver) -> None:
        assert resolver.resolve("MDMA") is resolver.resolve("MDMA")

    def test_unconfigured_type_raises(self, resolver) -> None:
        """AMA is a known type but absent from this config."""
        with pytest.raises(ConfigurationError):
            resolver.resolve(AllocatorType.AMA)

    def test_unknown_string_raises(self, resolver) -> None:
        with pytest.raises(ConfigurationError):
            resolver.resolve("NOPE")

    def test_rkh_without_meta_allocators(self) -> None:
        resolver = AllocationPathResolver(GovernanceConfig())

        assert resolver.resolve("RKH").address == "f080"
        assert resolver.meta_allocators() == []

    def test_lists_meta_allocators(self, resolver) -> None:
        assert [ma.name for ma in resolver.meta_allocators()] == ["MDMA", "ORMA"]
