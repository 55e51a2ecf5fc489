"""Error taxonomy for chunked proof submission.

Fatal conditions abort the whole submission call. Ineligible outcomes
(already complete, duplicate challenge, not the winner) are not errors;
they are reported through SubmissionResult.

The ledger counter is always the durable record of how far a submission
got, so every error here is safe to follow with a fresh invocation.
"""

from __future__ import annotations

from typing import Any, Optional


class SubmissionError(Exception):
    """Base class for conditions that abort a submission."""


class LockContention(SubmissionError):
    """Another process holds the lease for this submission target."""

    def __init__(self, key: str, holder: Optional[dict[str, Any]] = None) -> None:
        self.key = key
        self.holder = holder or {}
        owner = self.holder.get("owner", "unknown")
        expires = self.holder.get("expires_utc", "unknown")
        super().__init__(
            f"Lock {key} is held by {owner} (lease expires {expires})"
        )


class ConsistencyViolation(SubmissionError):
    """The ledger counter did not land where the submitted window said it would."""

    def __init__(self, target: Any, expected: int, observed: int) -> None:
        self.target = target
        self.expected = expected
        self.observed = observed
        super().__init__(
            f"{target}: expected ledger proof count {expected}, observed {observed}"
        )


class RootCommitFailure(SubmissionError):
    """Root commitment transaction confirmed but left no root or submitter recorded."""

    def __init__(self, target: Any) -> None:
        self.target = target
        super().__init__(
            f"{target}: root commitment confirmed but root or submitter is still unset"
        )


class LedgerError(Exception):
    """The ledger rejected a transaction or a query failed.

    Always propagated to the caller; never converted into a result.
    """

    def __init__(self, message: str, cause: Optional[BaseException] = None) -> None:
        self.cause = cause
        super().__init__(message)


class LedgerTimeout(LedgerError):
    """A receipt or confirmation wait exceeded its budget."""


class ArtifactError(ValueError):
    """A submission artifact file is missing fields or malformed."""
