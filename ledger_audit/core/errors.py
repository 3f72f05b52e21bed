from typing import Optional


class LedgerAuditError(Exception):
    """Base exception for all history sync / replay / reconciliation errors."""

    def __init__(self, message: str, index: Optional[int] = None, identity: Optional[str] = None):
        self.index = index
        self.identity = identity
        context = []
        if index is not None:
            context.append(f"index={index}")
        if identity is not None:
            context.append(f"identity={identity}")
        if context:
            message = f"{message} ({', '.join(context)})"
        super().__init__(message)


class UpstreamUnavailable(LedgerAuditError):
    """Transport failure or timeout talking to the remote history source."""
    pass


class UpstreamGap(LedgerAuditError):
    """Remote reports no event at an index below its own stated count."""
    pass


class MalformedEvent(LedgerAuditError):
    """Durable record cannot be decoded into a TransactionEvent."""
    pass


class InvalidIdentity(LedgerAuditError):
    """Identity text is not a canonical principal."""
    pass


class NotFound(LedgerAuditError):
    """A record or identity assumed present is absent."""
    pass


class RecordConflict(LedgerAuditError):
    """Attempt to overwrite a stored index with different content."""
    pass


class StatsCheckFailed(LedgerAuditError):
    """Aggregate stats failed a sanity check."""
    pass
