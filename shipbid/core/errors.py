"""
Error kinds raised by the ledger client.

Library code raises these; the CLI catches LedgerError at the invocation
boundary, logs it and exits non-zero.
"""

from typing import Optional


class LedgerError(Exception):
    """Base class for every failure talking to the ledger."""

    def __init__(self, message: str, transaction: Optional[str] = None):
        super().__init__(message)
        self.transaction = transaction

    def __str__(self) -> str:
        message = super().__str__()
        if self.transaction:
            return f"{self.transaction}: {message}"
        return message


class LedgerConnectionError(LedgerError):
    """The ledger is unreachable or the identity could not be loaded."""


class QueryError(LedgerError):
    """A read-only evaluation failed."""


class NotFoundError(QueryError):
    """The queried auction or bid does not exist (or is not visible to us)."""


class DecodeError(LedgerError):
    """A query returned a payload that does not match the expected record shape."""


class SubmitError(LedgerError):
    """Proposal, endorsement, ordering or commit of a write failed."""


class ConflictError(SubmitError):
    """
    The write lost a race with a concurrent writer.

    Raised for read-set version conflicts and endorsement policy failures
    caused by stale organization membership. Safe to retry after re-reading.
    """


# Markers the peer puts in error messages
_NOT_FOUND_MARKERS = ("does not exist",)
_CONFLICT_MARKERS = (
    "MVCC_READ_CONFLICT",
    "PHANTOM_READ_CONFLICT",
    "ENDORSEMENT_POLICY_FAILURE",
)


def classify_error(message: str, transaction: str, write: bool) -> LedgerError:
    """
    Map a chaincode/peer error message to an error kind.

    Args:
        message: Error text reported by the peer or gateway
        transaction: Transaction name, for context
        write: True for submit, False for evaluate

    Returns:
        The matching LedgerError subclass instance (not raised)
    """
    if any(marker in message for marker in _CONFLICT_MARKERS):
        return ConflictError(message, transaction)
    if any(marker in message for marker in _NOT_FOUND_MARKERS):
        # A missing key on the write path is still a failed submit
        if write:
            return SubmitError(message, transaction)
        return NotFoundError(message, transaction)
    if write:
        return SubmitError(message, transaction)
    return QueryError(message, transaction)
