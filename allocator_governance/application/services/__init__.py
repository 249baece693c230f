"""Application services."""

from .approval_poller import MetaAllocatorApprovalPoller, clamp_from_block, validate_poller_config
from .approval_resolvers import (
    ApprovalResolver,
    IssueApprovalResolver,
    ApplicationApprovalResolver,
    default_resolvers,
)

__all__ = [
    "MetaAllocatorApprovalPoller",
    "clamp_from_block",
    "validate_poller_config",
    "ApprovalResolver",
    "IssueApprovalResolver",
    "ApplicationApprovalResolver",
    "default_resolvers",
]
