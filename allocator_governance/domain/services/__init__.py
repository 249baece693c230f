"""Domain services."""

from .allocation_path_resolver import AllocationPathResolver

__all__ = ["AllocationPathResolver"]
