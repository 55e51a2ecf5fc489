"""Core data models for dataproof."""

from dataproof.models.dataset import DatasetMetadata, DatasetState, TimeoutParameters
from dataproof.models.submission import (
    ChallengeProof,
    ChunkWindow,
    DataType,
    DatasetProof,
    LeafSequence,
    RootCommitment,
    SubmissionCursor,
    SubmissionOutcome,
    SubmissionResult,
    SubmissionState,
    SubmissionTarget,
    plan_windows,
)

__all__ = [
    "ChallengeProof",
    "ChunkWindow",
    "DataType",
    "DatasetMetadata",
    "DatasetProof",
    "DatasetState",
    "LeafSequence",
    "RootCommitment",
    "SubmissionCursor",
    "SubmissionOutcome",
    "SubmissionResult",
    "SubmissionState",
    "SubmissionTarget",
    "TimeoutParameters",
    "plan_windows",
]
