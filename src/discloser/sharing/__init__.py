"""Expiring, view-limited share links over frozen disclosure snapshots."""

from .access import create_share_access_router
from .audit import (
    InMemoryShareAuditEmitter,
    LoggingShareAuditEmitter,
    ShareAuditEmitter,
    ShareAuditEvent,
    redact_token,
)
from .collaborators import (
    ConditionResult,
    HealthRecordSource,
    InMemoryHealthRecordSource,
    InMemoryProfileLookup,
    KnownCondition,
    OwnerProfile,
    ProfileLookup,
    TestResult,
)
from .conditions import aggregate_conditions
from .errors import (
    ShareLinkError,
    ShareLinkForbidden,
    ShareLinkNotFound,
    ShareLinkValidationError,
    SharePersistenceError,
    TokenCollision,
)
from .model import (
    DisclosedEntry,
    DisclosureMode,
    LinkKind,
    LinkStatus,
    ResultLink,
    ResultSnapshot,
    ShareLink,
    StatusLink,
    StatusSnapshot,
    TestStatus,
    generate_share_token,
)
from .repository import InMemoryShareLinkRepository, ShareLinkRepository
from .resolver import ResolveFailure, ResolveOutcome, ShareLinkResolver
from .routes import create_share_router
from .service import (
    LinkFilter,
    LinkOptions,
    ShareLinkService,
    build_share_url,
    validate_link_options,
)
from .snapshot import build_result_snapshot, build_status_snapshot
from .status import (
    classify,
    expiration_label,
    format_time_remaining,
    format_view_count,
    is_expired,
)

__all__ = [
    'ConditionResult',
    'DisclosedEntry',
    'DisclosureMode',
    'HealthRecordSource',
    'InMemoryHealthRecordSource',
    'InMemoryProfileLookup',
    'InMemoryShareAuditEmitter',
    'InMemoryShareLinkRepository',
    'KnownCondition',
    'LinkFilter',
    'LinkKind',
    'LinkOptions',
    'LinkStatus',
    'LoggingShareAuditEmitter',
    'OwnerProfile',
    'ProfileLookup',
    'ResolveFailure',
    'ResolveOutcome',
    'ResultLink',
    'ResultSnapshot',
    'ShareAuditEmitter',
    'ShareAuditEvent',
    'ShareLink',
    'ShareLinkError',
    'ShareLinkForbidden',
    'ShareLinkNotFound',
    'ShareLinkRepository',
    'ShareLinkResolver',
    'ShareLinkService',
    'ShareLinkValidationError',
    'SharePersistenceError',
    'StatusLink',
    'StatusSnapshot',
    'TestResult',
    'TestStatus',
    'TokenCollision',
    'aggregate_conditions',
    'build_result_snapshot',
    'build_share_url',
    'build_status_snapshot',
    'classify',
    'create_share_access_router',
    'create_share_router',
    'expiration_label',
    'format_time_remaining',
    'format_view_count',
    'generate_share_token',
    'is_expired',
    'redact_token',
    'validate_link_options',
]
