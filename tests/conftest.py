"""Shared fixtures: a simulated ledger, configs and artifact writers."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Callable, Optional, Sequence

import pytest

from dataproof.config import ContractAddresses, Credential, Role, SubmitterConfig
from dataproof.errors import LedgerError
from dataproof.ledger.gateway import (
    ZERO_ADDRESS,
    ZERO_ROOT,
    LedgerEvent,
    LedgerGateway,
    LedgerOperation,
    LedgerQuery,
    Transaction,
)

PREPARER_KEY = "0x" + "11" * 32
AUDITOR_KEY = "0x" + "22" * 32
CLIENT_KEY = "0x" + "33" * 32
PREPARER_ADDRESS = "0x" + "a1" * 20
AUDITOR_ADDRESS = "0x" + "a2" * 20
CLIENT_ADDRESS = "0x" + "a3" * 20

ADDRESSES = {
    PREPARER_KEY: PREPARER_ADDRESS,
    AUDITOR_KEY: AUDITOR_ADDRESS,
    CLIENT_KEY: CLIENT_ADDRESS,
}

CONFIRMATION_DEPTH = 6


class FakeLedger(LedgerGateway):
    """In-memory ledger with the dataset contracts' observable behaviour.

    Failure injection:
        stalled_windows  -- window start positions whose tx confirms
                            without moving the proof counter
        root_noop        -- root tx confirms without recording a root
        foreign_leaves   -- window start -> leaves another writer appends
                            right after that window confirms
        timeouts_noop    -- timeout update confirms without storing
        failures         -- operation -> LedgerError raised on submit
    """

    def __init__(self) -> None:
        self.height = 100
        self.counters: dict[tuple[int, int], int] = {}
        self.roots: dict[tuple[int, int], str] = {}
        self.submitters: dict[int, str] = {}
        self.completed: set[tuple[int, int]] = set()
        self.challenges: set[tuple[int, str, int]] = set()
        self.winners: set[tuple[int, str]] = set()
        self.metadata: dict[str, int] = {}
        self.timeouts: dict[int, tuple[int, int]] = {}
        self.states: dict[int, int] = {}
        self.replica_requirements: dict[int, list[Any]] = {}
        self.min_proof_timeout = 100
        self.min_audit_timeout = 200
        self.next_dataset_id = 1

        self.stalled_windows: set[int] = set()
        self.root_noop = False
        self.foreign_leaves: dict[int, int] = {}
        self.timeouts_noop = False
        self.failures: dict[LedgerOperation, LedgerError] = {}

        self.submitted: list[dict[str, Any]] = []
        self.queries: list[tuple[LedgerQuery, tuple[Any, ...]]] = []
        self.waits: list[int] = []
        self._events: dict[str, dict[LedgerEvent, dict[str, Any]]] = {}

    # -- helpers for tests ------------------------------------------------

    def operations(self, operation: LedgerOperation) -> list[dict[str, Any]]:
        return [s for s in self.submitted if s["operation"] == operation]

    # -- LedgerGateway ----------------------------------------------------

    def submit(
        self,
        operation: LedgerOperation,
        args: Sequence[Any],
        credential: Credential,
        value: int = 0,
    ) -> Transaction:
        if operation in self.failures:
            raise self.failures[operation]

        self.height += 1
        tx = Transaction(hash=f"0x{len(self.submitted) + 1:064x}", height=self.height)
        sender = ADDRESSES[credential.private_key]
        self.submitted.append({
            "operation": operation,
            "args": list(args),
            "role": credential.role,
            "value": value,
            "tx": tx,
        })

        if operation == LedgerOperation.SUBMIT_PROOF_ROOT:
            key = (args[0], args[1])
            if key in self.roots:
                raise LedgerError(f"root already submitted for {key}")
            if not self.root_noop:
                self.roots[key] = args[3]
                self.submitters.setdefault(args[0], sender)
        elif operation == LedgerOperation.SUBMIT_PROOF:
            dataset_id, data_type, hashes, index, sizes, completed = args
            key = (dataset_id, data_type)
            if index != self.counters.get(key, 0):
                raise LedgerError(f"leaf index {index} out of order")
            if index not in self.stalled_windows:
                self.counters[key] = index + len(hashes) + self.foreign_leaves.get(index, 0)
                if completed:
                    self.completed.add(key)
        elif operation == LedgerOperation.SUBMIT_CHALLENGE_PROOFS:
            self.challenges.add((args[0], sender, args[1]))
        elif operation == LedgerOperation.SUBMIT_METADATA:
            dataset_id = self.next_dataset_id
            self.next_dataset_id += 1
            self.metadata[args[6]] = dataset_id
            self.states[dataset_id] = 1
            self._events[tx.hash] = {
                LedgerEvent.METADATA_SUBMITTED: {"datasetId": dataset_id, "provider": sender},
            }
        elif operation == LedgerOperation.UPDATE_TIMEOUT_PARAMETERS:
            if not self.timeouts_noop:
                self.timeouts[args[0]] = (args[1], args[2])
        elif operation == LedgerOperation.SUBMIT_REPLICA_REQUIREMENTS:
            self.replica_requirements[args[0]] = list(args[1:])
            self.states[args[0]] = 2
        return tx

    def query(self, query: LedgerQuery, *args: Any) -> Any:
        self.queries.append((query, args))
        if query == LedgerQuery.PROOF_COUNT:
            return self.counters.get((args[0], args[1]), 0)
        if query == LedgerQuery.PROOF_ROOT:
            return self.roots.get((args[0], args[1]), ZERO_ROOT)
        if query == LedgerQuery.PROOF_SUBMITTER:
            return self.submitters.get(args[0], ZERO_ADDRESS)
        if query == LedgerQuery.PROOF_ALL_COMPLETED:
            return (args[0], args[1]) in self.completed
        if query == LedgerQuery.CHALLENGE_DUPLICATE:
            return (args[0], args[1], args[2]) in self.challenges
        if query == LedgerQuery.IS_WINNER:
            return (args[0], args[1]) in self.winners
        if query == LedgerQuery.HAS_METADATA:
            return args[0] in self.metadata
        if query == LedgerQuery.DATASET_ID_FOR_ACCESS_METHOD:
            return self.metadata.get(args[0], 0)
        if query == LedgerQuery.TIMEOUT_PARAMETERS:
            return self.timeouts.get(args[0], (0, 0))
        if query == LedgerQuery.DATASET_STATE:
            return self.states.get(args[0], 0)
        if query == LedgerQuery.MIN_PROOF_TIMEOUT:
            return self.min_proof_timeout
        if query == LedgerQuery.MIN_AUDIT_TIMEOUT:
            return self.min_audit_timeout
        raise AssertionError(f"unhandled query {query}")

    def wait_for_confirmation(self, height: int) -> None:
        self.waits.append(height)
        self.height = max(self.height, height + CONFIRMATION_DEPTH)

    def decode_event(self, tx: Transaction, event: LedgerEvent) -> dict[str, Any]:
        try:
            return dict(self._events[tx.hash][event])
        except KeyError:
            raise LedgerError(f"No {event.value} event in tx {tx.hash}")


@pytest.fixture
def ledger() -> FakeLedger:
    return FakeLedger()


@pytest.fixture
def config(tmp_path: Path) -> SubmitterConfig:
    return SubmitterConfig(
        network="calibration",
        rpc_url="http://127.0.0.1:8545",
        chain_id=314159,
        contracts=ContractAddresses(
            dataset_proof="0x" + "01" * 20,
            dataset_challenge="0x" + "02" * 20,
            dataset_metadata="0x" + "03" * 20,
            filplus="0x" + "04" * 20,
            dataset_requirement="0x" + "05" * 20,
        ),
        private_keys={
            Role.DATASET_PREPARER: PREPARER_KEY,
            Role.DATASET_AUDITOR: AUDITOR_KEY,
            Role.STORAGE_CLIENT: CLIENT_KEY,
        },
        auditor_account=AUDITOR_ADDRESS,
        lock_dir=tmp_path / "locks",
        data_dir=tmp_path / "data",
        confirmation_depth=CONFIRMATION_DEPTH,
    )


@pytest.fixture
def preparer() -> Credential:
    return Credential(role=Role.DATASET_PREPARER, private_key=PREPARER_KEY)


@pytest.fixture
def auditor() -> Credential:
    return Credential(role=Role.DATASET_AUDITOR, private_key=AUDITOR_KEY)


def leaf_hash(n: int) -> str:
    return f"0x{n:064x}"


@pytest.fixture
def write_proof(tmp_path: Path) -> Callable[..., Path]:
    """Write a proof artifact with n leaves; returns its path."""
    def _write(n: int, root: str = "0x" + "ee" * 32, name: str = "proof.json") -> Path:
        path = tmp_path / name
        path.write_text(json.dumps({
            "Root": root,
            "LeafHashes": [leaf_hash(i + 1) for i in range(n)],
            "LeafSizes": [1024 * (i + 1) for i in range(n)],
        }), encoding="utf-8")
        return path
    return _write


@pytest.fixture
def write_challenge(tmp_path: Path) -> Callable[..., Path]:
    """Write a challenge artifact for a dataset and seed; returns its path."""
    def _write(dataset_id: int, seed: Any = 7, name: str = "challenge.json") -> Path:
        path = tmp_path / name
        path.write_text(json.dumps({
            "DatasetId": dataset_id,
            "RandomSeed": seed,
            "Leaves": [leaf_hash(1), leaf_hash(2)],
            "Siblings": [[leaf_hash(3), leaf_hash(4)], [leaf_hash(5), leaf_hash(6)]],
            "Paths": [0, "3"],
        }), encoding="utf-8")
        return path
    return _write


def write_metadata(path: Path, access_method: str = "https://example.org/ds", **overrides: Any) -> Path:
    data = {
        "client": 1001,
        "title": "Genome reads",
        "industry": "life sciences",
        "name": "reads-2024",
        "description": "Raw sequencing reads",
        "source": "lab",
        "accessMethod": access_method,
        "sizeInBytes": "1099511627776",
        "isPublic": True,
        "version": 1,
        "proofBlockCount": 50,
        "auditBlockCount": 300,
    }
    data.update(overrides)
    path.write_text(json.dumps(data), encoding="utf-8")
    return path


@pytest.fixture
def metadata_file(tmp_path: Path) -> Callable[..., Path]:
    def _write(access_method: str = "https://example.org/ds", **overrides: Any) -> Path:
        return write_metadata(tmp_path / "metadata.json", access_method, **overrides)
    return _write


@pytest.fixture
def requirements_file(tmp_path: Path) -> Callable[..., Path]:
    """Write a two-replica requirements artifact; returns its path."""
    def _write(dataset_id: int = 7, **overrides: Any) -> Path:
        data = {
            "datasetId": dataset_id,
            "dataPreparers": [[PREPARER_ADDRESS], [PREPARER_ADDRESS, CLIENT_ADDRESS]],
            "storageProviders": [[1001], ["1002", 1003]],
            "regions": [0, 1],
            "countries": [840, 276],
            "cities": [[1], [2, 3]],
            "amount": "0",
        }
        data.update(overrides)
        path = tmp_path / "requirements.json"
        path.write_text(json.dumps(data), encoding="utf-8")
        return path
    return _write
