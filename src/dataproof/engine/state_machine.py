"""Submission state machine — enforces the coordinator's lifecycle.

Transitions are fail-closed: any transition not explicitly allowed is
rejected. Terminal states (COMPLETED, SKIPPED, ABORTED) have no exits.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from dataproof.models.submission import SubmissionState


# Legal transitions: (from_state, to_state)
_TRANSITIONS: set[tuple[SubmissionState, SubmissionState]] = {
    (SubmissionState.IDLE, SubmissionState.LOCK_HELD),
    (SubmissionState.LOCK_HELD, SubmissionState.ROOT_CHECKED),
    (SubmissionState.ROOT_CHECKED, SubmissionState.ADVANCING),
    (SubmissionState.ADVANCING, SubmissionState.COMPLETED),
    # Challenge responses are a single transaction after the gate
    (SubmissionState.LOCK_HELD, SubmissionState.COMPLETED),
    # Ineligible targets end without mutation
    (SubmissionState.LOCK_HELD, SubmissionState.SKIPPED),
    # Fatal conditions
    (SubmissionState.IDLE, SubmissionState.ABORTED),
    (SubmissionState.LOCK_HELD, SubmissionState.ABORTED),
    (SubmissionState.ROOT_CHECKED, SubmissionState.ABORTED),
    (SubmissionState.ADVANCING, SubmissionState.ABORTED),
}

TERMINAL_STATES = frozenset({
    SubmissionState.COMPLETED,
    SubmissionState.SKIPPED,
    SubmissionState.ABORTED,
})


class TransitionError(Exception):
    """Raised when a state transition is not allowed."""


@dataclass
class SubmissionRun:
    """State of one coordinator invocation, with its transition history."""
    subject: str
    state: SubmissionState = SubmissionState.IDLE
    history: list[SubmissionState] = field(default_factory=lambda: [SubmissionState.IDLE])

    @property
    def finished(self) -> bool:
        return self.state in TERMINAL_STATES

    def transition(self, target: SubmissionState) -> None:
        if (self.state, target) not in _TRANSITIONS:
            raise TransitionError(
                f"{self.subject}: illegal transition {self.state.value} → {target.value}"
            )
        self.state = target
        self.history.append(target)
