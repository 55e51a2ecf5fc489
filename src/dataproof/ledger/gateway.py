"""Ledger gateway — the typed capability surface the engine talks to.

The engine never holds a raw contract handle. Every state-changing call
goes through submit() with an explicit credential, every read through
query() or one of the typed helpers, and every confirmation wait through
wait_for_confirmation(). A concrete binding (web3, or a simulated ledger
in tests) implements the four abstract methods.
"""

from __future__ import annotations

import abc
import enum
from dataclasses import dataclass
from typing import Any, Sequence

from dataproof.config import Credential
from dataproof.models.submission import SubmissionTarget


# Sentinels the contracts return for "nothing recorded".
ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"
ZERO_ROOT = "0x" + "00" * 32


class LedgerContract(str, enum.Enum):
    DATASET_PROOF = "dataset_proof"
    DATASET_CHALLENGE = "dataset_challenge"
    DATASET_METADATA = "dataset_metadata"
    DATASET_REQUIREMENT = "dataset_requirement"
    FILPLUS = "filplus"


class LedgerOperation(str, enum.Enum):
    """State-changing contract calls."""
    SUBMIT_PROOF_ROOT = "submitDatasetProofRoot"
    SUBMIT_PROOF = "submitDatasetProof"
    SUBMIT_PROOF_COMPLETED = "submitDatasetProofCompleted"
    COMPLETE_ESCROW = "completeEscrow"
    SUBMIT_CHALLENGE_PROOFS = "submitDatasetChallengeProofs"
    AUDITOR_STAKE = "auditorStake"
    SUBMIT_METADATA = "submitDatasetMetadata"
    UPDATE_TIMEOUT_PARAMETERS = "updateDatasetTimeoutParameters"
    SUBMIT_REPLICA_REQUIREMENTS = "submitDatasetReplicaRequirements"

    @property
    def contract(self) -> LedgerContract:
        return _OPERATION_CONTRACTS[self]


class LedgerQuery(str, enum.Enum):
    """Read-only contract calls."""
    PROOF_COUNT = "getDatasetProofCount"
    PROOF_ROOT = "getDatasetProofRootHash"
    PROOF_SUBMITTER = "getDatasetProofSubmitter"
    PROOF_ALL_COMPLETED = "isDatasetProofallCompleted"
    CHALLENGE_DUPLICATE = "isDatasetChallengeProofDuplicate"
    IS_WINNER = "isWinner"
    HAS_METADATA = "hasDatasetMetadata"
    DATASET_ID_FOR_ACCESS_METHOD = "getDatasetIdForAccessMethod"
    TIMEOUT_PARAMETERS = "getDatasetTimeoutParameters"
    DATASET_STATE = "getDatasetState"
    MIN_PROOF_TIMEOUT = "datasetRuleMinProofTimeout"
    MIN_AUDIT_TIMEOUT = "datasetRuleMinAuditTimeout"

    @property
    def contract(self) -> LedgerContract:
        return _QUERY_CONTRACTS[self]


class LedgerEvent(str, enum.Enum):
    METADATA_SUBMITTED = "DatasetMetadataSubmitted"

    @property
    def contract(self) -> LedgerContract:
        return LedgerContract.DATASET_METADATA


_OPERATION_CONTRACTS: dict[LedgerOperation, LedgerContract] = {
    LedgerOperation.SUBMIT_PROOF_ROOT: LedgerContract.DATASET_PROOF,
    LedgerOperation.SUBMIT_PROOF: LedgerContract.DATASET_PROOF,
    LedgerOperation.SUBMIT_PROOF_COMPLETED: LedgerContract.DATASET_PROOF,
    LedgerOperation.COMPLETE_ESCROW: LedgerContract.DATASET_PROOF,
    LedgerOperation.SUBMIT_CHALLENGE_PROOFS: LedgerContract.DATASET_CHALLENGE,
    LedgerOperation.AUDITOR_STAKE: LedgerContract.DATASET_CHALLENGE,
    LedgerOperation.SUBMIT_METADATA: LedgerContract.DATASET_METADATA,
    LedgerOperation.UPDATE_TIMEOUT_PARAMETERS: LedgerContract.DATASET_METADATA,
    LedgerOperation.SUBMIT_REPLICA_REQUIREMENTS: LedgerContract.DATASET_REQUIREMENT,
}

_QUERY_CONTRACTS: dict[LedgerQuery, LedgerContract] = {
    LedgerQuery.PROOF_COUNT: LedgerContract.DATASET_PROOF,
    LedgerQuery.PROOF_ROOT: LedgerContract.DATASET_PROOF,
    LedgerQuery.PROOF_SUBMITTER: LedgerContract.DATASET_PROOF,
    LedgerQuery.PROOF_ALL_COMPLETED: LedgerContract.DATASET_PROOF,
    LedgerQuery.CHALLENGE_DUPLICATE: LedgerContract.DATASET_CHALLENGE,
    LedgerQuery.IS_WINNER: LedgerContract.DATASET_CHALLENGE,
    LedgerQuery.HAS_METADATA: LedgerContract.DATASET_METADATA,
    LedgerQuery.DATASET_ID_FOR_ACCESS_METHOD: LedgerContract.DATASET_METADATA,
    LedgerQuery.TIMEOUT_PARAMETERS: LedgerContract.DATASET_METADATA,
    LedgerQuery.DATASET_STATE: LedgerContract.DATASET_METADATA,
    LedgerQuery.MIN_PROOF_TIMEOUT: LedgerContract.FILPLUS,
    LedgerQuery.MIN_AUDIT_TIMEOUT: LedgerContract.FILPLUS,
}


@dataclass(frozen=True)
class Transaction:
    """A transaction the ledger has included in a block."""
    hash: str
    height: int


class LedgerGateway(abc.ABC):
    """Abstract ledger binding.

    Implementations raise dataproof.errors.LedgerError (or LedgerTimeout)
    for any failed transaction, failed query or exhausted wait.
    """

    @abc.abstractmethod
    def submit(
        self,
        operation: LedgerOperation,
        args: Sequence[Any],
        credential: Credential,
        value: int = 0,
    ) -> Transaction:
        """Sign and send a transaction; return once it is included."""

    @abc.abstractmethod
    def query(self, query: LedgerQuery, *args: Any) -> Any:
        """Perform a read-only call and return the decoded value."""

    @abc.abstractmethod
    def wait_for_confirmation(self, height: int) -> None:
        """Block until chain height >= height + the confirmation depth."""

    @abc.abstractmethod
    def decode_event(self, tx: Transaction, event: LedgerEvent) -> dict[str, Any]:
        """Return the arguments of the first matching event in tx's receipt."""

    # ------------------------------------------------------------------
    # Typed reads
    # ------------------------------------------------------------------

    def read_counter(self, target: SubmissionTarget) -> int:
        """Count of leaves the ledger has accepted for target."""
        return int(self.query(
            LedgerQuery.PROOF_COUNT, target.dataset_id, target.data_type.chain_value,
        ))

    def read_root(self, target: SubmissionTarget) -> str:
        """Root hash committed for target's data type, ZERO_ROOT when absent."""
        root = self.query(
            LedgerQuery.PROOF_ROOT, target.dataset_id, target.data_type.chain_value,
        )
        if not root:
            return ZERO_ROOT
        if isinstance(root, (bytes, bytearray)):
            return "0x" + bytes(root).hex()
        return str(root)

    def read_submitter(self, target: SubmissionTarget) -> str:
        """Proof submitter of target's dataset, ZERO_ADDRESS when absent."""
        submitter = self.query(LedgerQuery.PROOF_SUBMITTER, target.dataset_id)
        return str(submitter) if submitter else ZERO_ADDRESS


def is_zero_address(address: str) -> bool:
    return not address or int(address, 16) == 0


def is_zero_root(root: str) -> bool:
    return is_zero_address(root)
