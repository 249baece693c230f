"""
Allocation Path Resolver - map an allocator type to its approval pathway.

RKH applications are finalised by the root key holder multisig at a
well-known address. Meta-allocator types (MDMA, ORMA, AMA) are finalised
on-chain by their allocator contract.
"""

from __future__ import annotations
from typing import Dict, List, Union

from config.models import GovernanceConfig, MetaAllocatorConfig

from ..allocator.types import AllocationPath, AllocatorType, RKH_ADDRESS, RKH_PATHWAY
from ..exceptions import ConfigurationError


class AllocationPathResolver:
    """
    Pure lookup built once from the governance config.

    Deterministic: the same allocator type always yields the same path.
    """

    def __init__(self, config: GovernanceConfig):
        self._meta_allocators: Dict[str, MetaAllocatorConfig] = {
            ma.name.upper(): ma for ma in config.meta_allocators
        }
        self._paths: Dict[str, AllocationPath] = {
            RKH_PATHWAY: AllocationPath(
                pathway=RKH_PATHWAY,
                address=RKH_ADDRESS,
                is_meta_allocator=False,
            ),
        }
        for name, ma in self._meta_allocators.items():
            self._paths[name] = AllocationPath(
                pathway=name,
                address=ma.fil_address,
                is_meta_allocator=True,
            )

    def resolve(self, allocator_type: Union[AllocatorType, str]) -> AllocationPath:
        """
        Resolve the pathway for an allocator type.

        Args:
            allocator_type: AllocatorType or its string value.

        Raises:
            ConfigurationError: If no pathway is configured for the type.
        """
        key = allocator_type.value if isinstance(allocator_type, AllocatorType) else str(allocator_type)
        path = self._paths.get(key.upper())
        if path is None:
            raise ConfigurationError(f"No allocation path configured for allocator type {key!r}")
        return path

    def meta_allocators(self) -> List[MetaAllocatorConfig]:
        """Configured meta-allocator contracts, in config order."""
        return list(self._meta_allocators.values())
