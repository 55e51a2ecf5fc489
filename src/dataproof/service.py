"""Dataproof service — the facade the CLI drives.

Wraps the submission coordinator and the single-transaction dataset
operations (proof completion, auditor stake, escrow completion,
metadata, timeout parameters and replica requirements). Each operation picks the role
credential it signs with and passes it explicitly to the gateway.

All operations return SubmissionResult. Ledger errors propagate.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

from dataproof.config import Role, SubmitterConfig
from dataproof.engine.coordinator import SubmissionCoordinator
from dataproof.engine.eligibility import EligibilityGate
from dataproof.ledger.gateway import LedgerEvent, LedgerGateway, LedgerOperation, LedgerQuery
from dataproof.models.dataset import DatasetState, TimeoutParameters
from dataproof.models.submission import DataType, SubmissionOutcome, SubmissionResult, SubmissionTarget
from dataproof.persistence.artifacts import load_dataset_metadata, load_replica_requirements
from dataproof.persistence.event_log import SubmissionEventKind, SubmissionLog

logger = logging.getLogger(__name__)

# Default auditor stake: 1 FIL in attoFIL.
DEFAULT_AUDITOR_STAKE = 10**18


class DataproofService:
    """Unified submission facade.

    Usage:
        service = DataproofService(config, gateway)
        result = service.submit_proof(42, DataType.SOURCE, "https://...",
                                      Path("proof.json"), chunk=500)
    """

    def __init__(
        self,
        config: SubmitterConfig,
        gateway: LedgerGateway,
        submission_log: Optional[SubmissionLog] = None,
    ) -> None:
        self._config = config
        self._gateway = gateway
        self._log = submission_log if submission_log is not None else SubmissionLog()
        self._coordinator = SubmissionCoordinator(
            gateway,
            lock_dir=config.lock_dir,
            submission_log=self._log,
            lease_seconds=config.lock_lease_seconds,
        )

    @property
    def submission_log(self) -> SubmissionLog:
        return self._log

    # ------------------------------------------------------------------
    # Chunked submissions
    # ------------------------------------------------------------------

    def submit_proof(
        self,
        dataset_id: int,
        data_type: DataType,
        access_method: str,
        path: Path,
        chunk: int,
    ) -> SubmissionResult:
        """Submit a dataset proof artifact in windows of chunk leaves."""
        return self._coordinator.submit_proof(
            SubmissionTarget(dataset_id=dataset_id, data_type=data_type),
            path,
            access_method=access_method,
            window_size=chunk,
            credential=self._config.credential(Role.DATASET_PREPARER),
        )

    def submit_challenge(self, dataset_id: int, path: Path) -> SubmissionResult:
        """Submit the auditor's challenge response for dataset_id."""
        return self._coordinator.submit_challenge(
            dataset_id,
            path,
            auditor=self._config.require_auditor_account(),
            credential=self._config.credential(Role.DATASET_AUDITOR),
        )

    # ------------------------------------------------------------------
    # Single-transaction dataset operations
    # ------------------------------------------------------------------

    def submit_proof_completed(self, dataset_id: int) -> SubmissionResult:
        """Mark all proofs of a dataset complete."""
        return self._single(
            LedgerOperation.SUBMIT_PROOF_COMPLETED, dataset_id, Role.DATASET_AUDITOR,
            SubmissionEventKind.PROOF_COMPLETION_SUBMITTED,
        )

    def auditor_stake(self, dataset_id: int, amount: int = DEFAULT_AUDITOR_STAKE) -> SubmissionResult:
        if amount <= 0:
            raise ValueError("Stake amount must be positive")
        return self._single(
            LedgerOperation.AUDITOR_STAKE, dataset_id, Role.DATASET_AUDITOR,
            SubmissionEventKind.AUDITOR_STAKED, value=amount,
        )

    def complete_escrow(self, dataset_id: int) -> SubmissionResult:
        return self._single(
            LedgerOperation.COMPLETE_ESCROW, dataset_id, Role.DATASET_AUDITOR,
            SubmissionEventKind.ESCROW_COMPLETED,
        )

    def submit_metadata(self, path: Path) -> SubmissionResult:
        """Register dataset metadata once, then apply its timeout parameters.

        If metadata for the artifact's access method already exists, its
        dataset ID is reused and no metadata transaction is sent.
        """
        metadata = load_dataset_metadata(path)
        credential = self._config.credential(Role.STORAGE_CLIENT)

        if self._gateway.query(LedgerQuery.HAS_METADATA, metadata.access_method):
            dataset_id = int(self._gateway.query(
                LedgerQuery.DATASET_ID_FOR_ACCESS_METHOD, metadata.access_method,
            ))
            created = False
            logger.info("Metadata for %s already submitted as dataset %d",
                        metadata.access_method, dataset_id)
        else:
            tx = self._gateway.submit(
                LedgerOperation.SUBMIT_METADATA,
                [
                    metadata.client,
                    metadata.title,
                    metadata.industry,
                    metadata.name,
                    metadata.description,
                    metadata.source,
                    metadata.access_method,
                    metadata.size_in_bytes,
                    metadata.is_public,
                    metadata.version,
                ],
                credential,
            )
            event = self._gateway.decode_event(tx, LedgerEvent.METADATA_SUBMITTED)
            dataset_id = int(event["datasetId"])
            created = True
            self._gateway.wait_for_confirmation(tx.height)
            self._log.record(
                SubmissionEventKind.METADATA_SUBMITTED, f"dataset:{dataset_id}",
                {"access_method": metadata.access_method, "tx_hash": tx.hash},
            )

        timeouts = self.update_timeout_parameters(
            dataset_id, metadata.proof_block_count, metadata.audit_block_count,
        )
        return SubmissionResult(
            success=timeouts.success,
            outcome=timeouts.outcome,
            errors=list(timeouts.errors),
            data={"dataset_id": dataset_id, "created": created, **timeouts.data},
        )

    def update_timeout_parameters(
        self,
        dataset_id: int,
        proof_block_count: int,
        audit_block_count: int,
    ) -> SubmissionResult:
        """Set proof/audit timeouts, raised to at least the ledger minimum + 1."""
        min_proof = int(self._gateway.query(LedgerQuery.MIN_PROOF_TIMEOUT))
        min_audit = int(self._gateway.query(LedgerQuery.MIN_AUDIT_TIMEOUT))
        requested = TimeoutParameters(
            proof_block_count=proof_block_count if proof_block_count > min_proof else min_proof + 1,
            audit_block_count=audit_block_count if audit_block_count > min_audit else min_audit + 1,
        )

        tx = self._gateway.submit(
            LedgerOperation.UPDATE_TIMEOUT_PARAMETERS,
            [dataset_id, requested.proof_block_count, requested.audit_block_count],
            self._config.credential(Role.STORAGE_CLIENT),
        )
        self._gateway.wait_for_confirmation(tx.height)

        stored_proof, stored_audit = self._gateway.query(LedgerQuery.TIMEOUT_PARAMETERS, dataset_id)
        stored = TimeoutParameters(
            proof_block_count=int(stored_proof), audit_block_count=int(stored_audit),
        )
        matched = stored == requested
        self._log.record(
            SubmissionEventKind.TIMEOUT_PARAMETERS_UPDATED, f"dataset:{dataset_id}",
            {
                "requested": [requested.proof_block_count, requested.audit_block_count],
                "stored": [stored.proof_block_count, stored.audit_block_count],
                "tx_hash": tx.hash,
            },
        )

        errors: list[str] = []
        if not matched:
            errors.append(
                f"dataset {dataset_id}: stored timeouts {stored} do not match requested {requested}"
            )
        return SubmissionResult(
            success=matched,
            outcome=SubmissionOutcome.COMPLETED if matched else SubmissionOutcome.ABORTED,
            errors=errors,
            data={
                "proof_block_count": stored.proof_block_count,
                "audit_block_count": stored.audit_block_count,
            },
        )

    def submit_replica_requirements(self, path: Path) -> SubmissionResult:
        """Submit where each replica of a dataset must be stored.

        Only a dataset whose metadata is submitted and which has no
        requirements yet is eligible, and every country code must be a
        known ISO 3166-1 numeric code. Otherwise nothing is sent and the
        result is INELIGIBLE.
        """
        requirements = load_replica_requirements(path)
        dataset_id = requirements.dataset_id
        gate = EligibilityGate(self._gateway)
        if not gate.check_replica_requirements_eligible(requirements):
            return SubmissionResult(
                success=False,
                outcome=SubmissionOutcome.INELIGIBLE,
                errors=[f"dataset {dataset_id}: {gate.last_reason}"],
                data={"dataset_id": dataset_id, "reason": gate.last_reason},
            )

        tx = self._gateway.submit(
            LedgerOperation.SUBMIT_REPLICA_REQUIREMENTS,
            [
                dataset_id,
                [list(group) for group in requirements.data_preparers],
                [list(group) for group in requirements.storage_providers],
                list(requirements.regions),
                list(requirements.countries),
                [list(group) for group in requirements.cities],
                requirements.amount,
            ],
            self._config.credential(Role.STORAGE_CLIENT),
        )
        self._gateway.wait_for_confirmation(tx.height)
        payload = {
            "dataset_id": dataset_id,
            "replicas": requirements.replica_count,
            "tx_hash": tx.hash,
            "height": tx.height,
        }
        self._log.record(
            SubmissionEventKind.REPLICA_REQUIREMENTS_SUBMITTED, f"dataset:{dataset_id}", payload,
        )
        return SubmissionResult(success=True, outcome=SubmissionOutcome.COMPLETED, data=payload)

    def dataset_state(self, dataset_id: int) -> DatasetState:
        return DatasetState(int(self._gateway.query(LedgerQuery.DATASET_STATE, dataset_id)))

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _single(
        self,
        operation: LedgerOperation,
        dataset_id: int,
        role: Role,
        kind: SubmissionEventKind,
        value: int = 0,
    ) -> SubmissionResult:
        tx = self._gateway.submit(operation, [dataset_id], self._config.credential(role), value=value)
        self._gateway.wait_for_confirmation(tx.height)
        payload = {"dataset_id": dataset_id, "tx_hash": tx.hash, "height": tx.height}
        if value:
            payload["value"] = value
        self._log.record(kind, f"dataset:{dataset_id}", payload)
        return SubmissionResult(success=True, outcome=SubmissionOutcome.COMPLETED, data=payload)
