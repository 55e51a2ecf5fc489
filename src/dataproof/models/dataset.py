"""Dataset models — metadata and replica requirement artifacts, lifecycle state, timeouts."""

from __future__ import annotations

import enum
from dataclasses import dataclass


class DatasetState(enum.IntEnum):
    """On-chain dataset lifecycle state, in contract ordinal order."""
    NONE = 0
    METADATA_SUBMITTED = 1
    REQUIREMENT_SUBMITTED = 2
    WAIT_ESCROW = 3
    PROOF_SUBMITTED = 4
    APPROVED = 5
    REJECTED = 6


@dataclass(frozen=True)
class DatasetMetadata:
    """A loaded dataset metadata artifact."""
    client: int
    title: str
    industry: str
    name: str
    description: str
    source: str
    access_method: str
    size_in_bytes: int
    is_public: bool
    version: int
    proof_block_count: int
    audit_block_count: int


@dataclass(frozen=True)
class TimeoutParameters:
    """Block counts a dataset allows for proof submission and auditing."""
    proof_block_count: int
    audit_block_count: int


@dataclass(frozen=True)
class DatasetReplicaRequirements:
    """Where and by whom each replica of a dataset is to be stored.

    The per-replica fields are parallel: replica i is prepared by
    data_preparers[i], stored by storage_providers[i] (actor IDs) and
    placed in regions[i], countries[i] (ISO 3166-1 numeric) and
    cities[i].
    """
    dataset_id: int
    data_preparers: tuple[tuple[str, ...], ...]
    storage_providers: tuple[tuple[int, ...], ...]
    regions: tuple[int, ...]
    countries: tuple[int, ...]
    cities: tuple[tuple[int, ...], ...]
    amount: int

    @property
    def replica_count(self) -> int:
        return len(self.regions)
