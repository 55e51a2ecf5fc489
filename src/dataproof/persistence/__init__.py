"""Local persistence — submission audit log and artifact loading."""

from dataproof.persistence.artifacts import (
    load_challenge_proof,
    load_dataset_metadata,
    load_dataset_proof,
)
from dataproof.persistence.event_log import SubmissionEvent, SubmissionEventKind, SubmissionLog

__all__ = [
    "SubmissionEvent",
    "SubmissionEventKind",
    "SubmissionLog",
    "load_challenge_proof",
    "load_dataset_metadata",
    "load_dataset_proof",
]
