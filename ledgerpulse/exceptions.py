"""Custom exceptions for LedgerPulse."""


class LedgerPulseError(Exception):
    """Base exception for all LedgerPulse errors."""


class ConfigError(LedgerPulseError):
    """Configuration-related errors."""


class DatabaseError(LedgerPulseError):
    """Database operation errors."""


class ConflictRetryableError(DatabaseError):
    """A transactional write lost a race and may be retried."""


class AggregateUnavailableError(DatabaseError):
    """Strongly consistent aggregate update failed after all retries."""


class QueryValidationError(LedgerPulseError):
    """Missing or invalid input to a query or command."""


class NotFoundError(LedgerPulseError):
    """No data matches the query filters."""


class PartialAggregateFailure(LedgerPulseError):
    """Best-effort daily aggregate update failed after the live update committed."""


class JobError(LedgerPulseError):
    """Scheduled or on-demand job errors."""


class ReconciliationError(JobError):
    """Backfill / month rollup errors."""


class RendererNotConfiguredError(LedgerPulseError):
    """No report renderer is available to produce an artifact."""
