"""Append-only submission log — the local audit trail of every engine decision.

Each lock acquisition, root check, chunk confirmation, completion and
abort is appended as an immutable, hashed record. The ledger remains
the source of truth for progress; this log records what this host
decided and why, so an operator can explain a failed run before
re-invoking it.

Records are persisted as JSONL and verified on load: a record whose
stored hash does not match its recomputed canonical hash, or a repeated
event ID, fails closed, as does a malformed line. The exception is an
unterminated final line, which is what an interrupted append leaves
behind: it is cut off if it does not parse and terminated if it does.
"""

from __future__ import annotations

import enum
import hashlib
import json
import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional

logger = logging.getLogger(__name__)


class SubmissionEventKind(str, enum.Enum):
    """Classification of submission events."""
    LOCK_ACQUIRED = "lock_acquired"
    LOCK_RELEASED = "lock_released"
    LOCK_CONTENDED = "lock_contended"
    TARGET_INELIGIBLE = "target_ineligible"
    ROOT_PRESENT = "root_present"
    ROOT_COMMITTED = "root_committed"
    WINDOW_CONFIRMED = "window_confirmed"
    SUBMISSION_COMPLETED = "submission_completed"
    SUBMISSION_ABORTED = "submission_aborted"
    LEDGER_FAILURE = "ledger_failure"
    CHALLENGE_SUBMITTED = "challenge_submitted"
    PROOF_COMPLETION_SUBMITTED = "proof_completion_submitted"
    AUDITOR_STAKED = "auditor_staked"
    ESCROW_COMPLETED = "escrow_completed"
    METADATA_SUBMITTED = "metadata_submitted"
    TIMEOUT_PARAMETERS_UPDATED = "timeout_parameters_updated"
    REPLICA_REQUIREMENTS_SUBMITTED = "replica_requirements_submitted"


def _canonical_hash(
    event_id: str,
    event_kind: str,
    timestamp_utc: str,
    subject: str,
    payload: dict[str, Any],
) -> str:
    canonical = json.dumps(
        {
            "event_id": event_id,
            "event_kind": event_kind,
            "timestamp_utc": timestamp_utc,
            "subject": subject,
            "payload": payload,
        },
        sort_keys=True,
        ensure_ascii=False,
    ).encode("utf-8")
    return f"sha256:{hashlib.sha256(canonical).hexdigest()}"


@dataclass(frozen=True)
class SubmissionEvent:
    """A single immutable entry in the submission log.

    subject names what the event is about, e.g. the lock key of a
    submission target or "dataset:<id>".
    """
    event_id: str
    event_kind: SubmissionEventKind
    timestamp_utc: str
    subject: str
    payload: dict[str, Any]
    event_hash: str

    @staticmethod
    def create(
        event_kind: SubmissionEventKind,
        subject: str,
        payload: dict[str, Any],
        event_id: Optional[str] = None,
        timestamp_utc: Optional[datetime] = None,
    ) -> SubmissionEvent:
        """Create a new event record with computed hash."""
        ts = timestamp_utc or datetime.now(timezone.utc)
        ts_str = ts.strftime("%Y-%m-%dT%H:%M:%SZ")
        event_id = event_id or f"evt_{uuid.uuid4().hex}"
        return SubmissionEvent(
            event_id=event_id,
            event_kind=event_kind,
            timestamp_utc=ts_str,
            subject=subject,
            payload=payload,
            event_hash=_canonical_hash(event_id, event_kind.value, ts_str, subject, payload),
        )


class SubmissionLog:
    """Append-only submission log with optional JSONL persistence.

    Usage:
        log = SubmissionLog(storage_path=Path("data/submissions.jsonl"))
        log.record(SubmissionEventKind.WINDOW_CONFIRMED, "420", {"end": 8})
    """

    def __init__(self, storage_path: Optional[Path] = None) -> None:
        self._events: list[SubmissionEvent] = []
        self._event_ids: set[str] = set()
        self._storage_path = storage_path

        if storage_path and storage_path.exists():
            self._load_from_file(storage_path)

    def record(
        self,
        kind: SubmissionEventKind,
        subject: str,
        payload: Optional[dict[str, Any]] = None,
    ) -> SubmissionEvent:
        """Create and append an event. Returns the appended record."""
        event = SubmissionEvent.create(kind, subject, payload or {})
        self.append(event)
        return event

    def append(self, event: SubmissionEvent) -> None:
        """Append an event to the log.

        Raises ValueError if event_id is a duplicate (replay protection).
        """
        if event.event_id in self._event_ids:
            raise ValueError(f"Duplicate event ID: {event.event_id}")

        self._events.append(event)
        self._event_ids.add(event.event_id)

        if self._storage_path:
            self._append_to_file(event)

    def events(
        self,
        kind: Optional[SubmissionEventKind] = None,
        subject: Optional[str] = None,
    ) -> list[SubmissionEvent]:
        """Return events, optionally filtered by kind and subject."""
        result = list(self._events)
        if kind is not None:
            result = [e for e in result if e.event_kind == kind]
        if subject is not None:
            result = [e for e in result if e.subject == subject]
        return result

    @property
    def count(self) -> int:
        return len(self._events)

    @property
    def last_event(self) -> Optional[SubmissionEvent]:
        return self._events[-1] if self._events else None

    def _append_to_file(self, event: SubmissionEvent) -> None:
        record = {
            "event_id": event.event_id,
            "event_kind": event.event_kind.value,
            "timestamp_utc": event.timestamp_utc,
            "subject": event.subject,
            "payload": event.payload,
            "event_hash": event.event_hash,
        }
        self._storage_path.parent.mkdir(parents=True, exist_ok=True)
        with self._storage_path.open("a", encoding="utf-8") as f:
            f.write(json.dumps(record, sort_keys=True, ensure_ascii=False) + "\n")

    def _load_from_file(self, path: Path) -> None:
        """Load events from a JSONL file, verifying each record's hash."""
        raw = path.read_bytes()
        complete = raw.rfind(b"\n") + 1
        tail = raw[complete:]
        if tail.strip():
            if _parse_record(tail) is None:
                logger.warning(
                    "Discarding torn final record in %s (%d bytes)", path, len(tail),
                )
                with path.open("r+b") as f:
                    f.truncate(complete)
                raw = raw[:complete]
            else:
                with path.open("ab") as f:
                    f.write(b"\n")

        for line_num, line in enumerate(raw.splitlines(), 1):
            line = line.strip()
            if not line:
                continue
            data = _parse_record(line)
            if data is None:
                raise ValueError(f"Malformed record (line {line_num}) in {path}")
            event_id = data["event_id"]

            if event_id in self._event_ids:
                raise ValueError(
                    f"Duplicate event ID on recovery (line {line_num}): {event_id}"
                )

            expected_hash = _canonical_hash(
                event_id,
                data["event_kind"],
                data["timestamp_utc"],
                data["subject"],
                data["payload"],
            )
            if data["event_hash"] != expected_hash:
                raise ValueError(
                    f"Integrity check failed (line {line_num}): event {event_id} "
                    f"stored hash {data['event_hash']} != computed {expected_hash}"
                )

            self._events.append(SubmissionEvent(
                event_id=event_id,
                event_kind=SubmissionEventKind(data["event_kind"]),
                timestamp_utc=data["timestamp_utc"],
                subject=data["subject"],
                payload=data["payload"],
                event_hash=data["event_hash"],
            ))
            self._event_ids.add(event_id)


def _parse_record(line: bytes) -> Optional[dict[str, Any]]:
    try:
        data = json.loads(line.decode("utf-8"))
    except ValueError:
        return None
    return data if isinstance(data, dict) else None
