"""Submission models — targets, leaf sequences, cursors, windows, results.

A submission streams the ordered leaves of one dataset proof to the
ledger in bounded windows. The ledger's proof counter is the only
durable progress record; the cursor here is re-derived from it at the
start of every run.

Invariants enforced by these models:
- 0 <= cursor.position <= cursor.total
- cursor.done <=> cursor.position == cursor.total
- A leaf sequence has exactly one size per hash
- Only the window ending at the sequence end carries completed=True
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Any, Iterator


class DataType(str, enum.Enum):
    """Category of proof data submitted for a dataset."""
    SOURCE = "source"
    MAPPING_FILES = "mapping_files"

    @property
    def chain_value(self) -> int:
        """Enum ordinal used by the on-chain contracts."""
        return _DATA_TYPE_CHAIN_VALUES[self]

    @classmethod
    def from_chain_value(cls, value: int) -> DataType:
        for member, chain_value in _DATA_TYPE_CHAIN_VALUES.items():
            if chain_value == value:
                return member
        raise ValueError(f"Unknown data type value: {value}")


_DATA_TYPE_CHAIN_VALUES: dict[DataType, int] = {
    DataType.SOURCE: 0,
    DataType.MAPPING_FILES: 1,
}


@dataclass(frozen=True)
class SubmissionTarget:
    """One logical submission stream: a dataset and a data category."""
    dataset_id: int
    data_type: DataType

    @property
    def lock_key(self) -> str:
        return f"{self.dataset_id}{self.data_type.chain_value}"

    def __str__(self) -> str:
        return f"dataset {self.dataset_id} ({self.data_type.value})"


@dataclass(frozen=True)
class ChunkWindow:
    """The payload of one chunk transaction."""
    start: int
    end: int
    leaf_hashes: tuple[str, ...]
    leaf_sizes: tuple[int, ...]
    completed: bool

    @property
    def size(self) -> int:
        return self.end - self.start


class LeafSequence:
    """Ordered (hash, size) leaves of a dataset proof. Read-only.

    Usage:
        leaves = LeafSequence(["0xab...", "0xcd..."], [1024, 2048])
        window = leaves.window(0, 4)
    """

    def __init__(self, leaf_hashes: list[str], leaf_sizes: list[int]) -> None:
        if len(leaf_hashes) != len(leaf_sizes):
            raise ValueError(
                f"Leaf hash count ({len(leaf_hashes)}) does not match "
                f"leaf size count ({len(leaf_sizes)})"
            )
        self._hashes: tuple[str, ...] = tuple(leaf_hashes)
        self._sizes: tuple[int, ...] = tuple(int(s) for s in leaf_sizes)

    def __len__(self) -> int:
        return len(self._hashes)

    def __iter__(self) -> Iterator[tuple[str, int]]:
        return iter(zip(self._hashes, self._sizes))

    @property
    def hashes(self) -> tuple[str, ...]:
        return self._hashes

    @property
    def sizes(self) -> tuple[int, ...]:
        return self._sizes

    def window(self, start: int, window_size: int) -> ChunkWindow:
        """Slice the window beginning at start, clipped to the sequence end."""
        if window_size < 1:
            raise ValueError(f"Window size must be at least 1, got {window_size}")
        if not 0 <= start < len(self):
            raise ValueError(f"Window start {start} outside sequence of {len(self)} leaves")
        end = min(start + window_size, len(self))
        return ChunkWindow(
            start=start,
            end=end,
            leaf_hashes=self._hashes[start:end],
            leaf_sizes=self._sizes[start:end],
            completed=end == len(self),
        )


@dataclass
class SubmissionCursor:
    """Mutable progress through a leaf sequence for a single run."""
    position: int
    window_size: int
    total: int

    def __post_init__(self) -> None:
        if self.window_size < 1:
            raise ValueError(f"Window size must be at least 1, got {self.window_size}")
        self._check(self.position)

    @property
    def done(self) -> bool:
        return self.position == self.total

    def next_end(self) -> int:
        return min(self.position + self.window_size, self.total)

    def advance_to(self, position: int) -> None:
        self._check(position)
        self.position = position

    def _check(self, position: int) -> None:
        if not 0 <= position <= self.total:
            raise ValueError(
                f"Cursor position {position} outside [0, {self.total}]"
            )


def plan_windows(total: int, window_size: int, start: int = 0) -> list[tuple[int, int, bool]]:
    """Return the (start, end, completed) windows that cover [start, total)."""
    cursor = SubmissionCursor(position=start, window_size=window_size, total=total)
    windows: list[tuple[int, int, bool]] = []
    while not cursor.done:
        end = cursor.next_end()
        windows.append((cursor.position, end, end == total))
        cursor.advance_to(end)
    return windows


@dataclass(frozen=True)
class RootCommitment:
    """One-time binding of a target to its proof root and access method."""
    target: SubmissionTarget
    root: str
    access_method: str


@dataclass(frozen=True)
class DatasetProof:
    """A loaded proof artifact."""
    root: str
    leaves: LeafSequence


@dataclass(frozen=True)
class ChallengeProof:
    """A loaded challenge-response artifact."""
    dataset_id: int
    random_seed: int
    leaves: tuple[str, ...]
    siblings: tuple[tuple[str, ...], ...]
    paths: tuple[int, ...]


class SubmissionState(str, enum.Enum):
    """Lifecycle of one coordinator invocation.

    State machine:
        IDLE → LOCK_HELD → ROOT_CHECKED → ADVANCING → COMPLETED
        LOCK_HELD → SKIPPED             (target not eligible)
        LOCK_HELD → COMPLETED           (challenge submitted)
        IDLE → ABORTED                  (lock contention)
        LOCK_HELD | ROOT_CHECKED | ADVANCING → ABORTED
    """
    IDLE = "idle"
    LOCK_HELD = "lock_held"
    ROOT_CHECKED = "root_checked"
    ADVANCING = "advancing"
    COMPLETED = "completed"
    SKIPPED = "skipped"
    ABORTED = "aborted"


class SubmissionOutcome(str, enum.Enum):
    """How a submission call ended."""
    COMPLETED = "completed"
    ALREADY_COMPLETE = "already_complete"
    INELIGIBLE = "ineligible"
    ABORTED = "aborted"


@dataclass(frozen=True)
class SubmissionResult:
    """Result of a submission or service operation."""
    success: bool
    outcome: SubmissionOutcome
    errors: list[str] = field(default_factory=list)
    data: dict[str, Any] = field(default_factory=dict)
