"""Chunked submission engine — lock, eligibility, root commitment, window loop."""

from dataproof.engine.coordinator import SubmissionCoordinator
from dataproof.engine.eligibility import EligibilityGate
from dataproof.engine.lock import ExclusiveLock, LockHandle
from dataproof.engine.root import RootCommitter
from dataproof.engine.state_machine import SubmissionRun, TransitionError
from dataproof.engine.window import WindowAdvancer

__all__ = [
    "EligibilityGate",
    "ExclusiveLock",
    "LockHandle",
    "RootCommitter",
    "SubmissionCoordinator",
    "SubmissionRun",
    "TransitionError",
    "WindowAdvancer",
]
