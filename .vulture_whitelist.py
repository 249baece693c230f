# Vulture Whitelist for the allocator governance service
# Code that is reached through dispatch tables, ABCs or callers outside this repo.

# ═══════════════════════════════════════════════════════════════════════════════
# Aggregate apply handlers
# Invoked through the _EVENT_HANDLERS table, never by name
# ═══════════════════════════════════════════════════════════════════════════════

_._on_application_created
_._on_kyc_approved
_._on_governance_review_started
_._on_kyc_rejected
_._on_kyc_revoked
_._on_governance_review_approved
_._on_governance_review_rejected
_._on_rkh_approvals_updated
_._on_rkh_approval_completed
_._on_meta_allocator_approval_completed
_._on_datacap_refresh_requested
_._on_allocator_multisig_updated
_._on_application_pull_request_updated
_._on_application_edited

# ═══════════════════════════════════════════════════════════════════════════════
# Command handlers
# Registered on the CommandBus and dispatched by command type
# ═══════════════════════════════════════════════════════════════════════════════

_.handle
_.command_type

# ═══════════════════════════════════════════════════════════════════════════════
# Read access used by the API layer and projections
# ═══════════════════════════════════════════════════════════════════════════════

_.rkh_address
_.mdma_address
_.grant_cycle
_.to_response
_.get_current_version
_.stream_version
_.get_stream

# ═══════════════════════════════════════════════════════════════════════════════
# Event bus
# ═══════════════════════════════════════════════════════════════════════════════

_.unsubscribe
