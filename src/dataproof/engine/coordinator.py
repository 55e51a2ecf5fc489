"""Submission coordinator — one proof or challenge submission, end to end.

Orchestration for a proof:
    lock → eligibility → load artifact → root commitment → window loop → release

The lock is a hard precondition and is released on every exit path.
Fatal engine conditions (lock contention, root commit failure,
consistency violation, malformed artifact) end the call with an ABORTED
result carrying the context needed to diagnose it. Ledger errors are
logged to the audit trail and re-raised; they are never turned into a
result. Either way the ledger counter records how far the submission
got, and calling again resumes from there.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Callable, Optional

from dataproof.config import Credential
from dataproof.engine.eligibility import EligibilityGate
from dataproof.engine.lock import ExclusiveLock
from dataproof.engine.root import RootCommitter
from dataproof.engine.state_machine import SubmissionRun
from dataproof.engine.window import WindowAdvancer
from dataproof.errors import (
    ArtifactError,
    ConsistencyViolation,
    LedgerError,
    LockContention,
    SubmissionError,
)
from dataproof.ledger.gateway import LedgerGateway, LedgerOperation, Transaction
from dataproof.models.submission import (
    ChunkWindow,
    RootCommitment,
    SubmissionOutcome,
    SubmissionResult,
    SubmissionState,
    SubmissionTarget,
)
from dataproof.persistence.artifacts import load_challenge_proof, load_dataset_proof
from dataproof.persistence.event_log import SubmissionEventKind, SubmissionLog

logger = logging.getLogger(__name__)

CHALLENGE_DISCRIMINATOR = "challenge"


class SubmissionCoordinator:
    """Drives proof and challenge submissions for single targets.

    Usage:
        coordinator = SubmissionCoordinator(gateway, lock_dir=Path("locks"))
        result = coordinator.submit_proof(
            target, Path("proof.json"), access_method="https://...",
            window_size=500, credential=preparer,
        )
    """

    def __init__(
        self,
        gateway: LedgerGateway,
        lock_dir: Path,
        submission_log: Optional[SubmissionLog] = None,
        lease_seconds: float = 6 * 3600.0,
        gate: Optional[EligibilityGate] = None,
        root_committer: Optional[RootCommitter] = None,
        advancer: Optional[WindowAdvancer] = None,
    ) -> None:
        self._gateway = gateway
        self._lock_dir = lock_dir
        self._lease_seconds = lease_seconds
        self._log = submission_log if submission_log is not None else SubmissionLog()
        self._gate = gate or EligibilityGate(gateway)
        self._root = root_committer or RootCommitter(gateway)
        self._advancer = advancer or WindowAdvancer(gateway)

    @property
    def submission_log(self) -> SubmissionLog:
        return self._log

    # ------------------------------------------------------------------
    # Proofs
    # ------------------------------------------------------------------

    def submit_proof(
        self,
        target: SubmissionTarget,
        artifact_path: Path,
        access_method: str,
        window_size: int,
        credential: Credential,
    ) -> SubmissionResult:
        """Submit the proof artifact for target until the ledger holds all of it."""
        if window_size < 1:
            raise ValueError(f"Window size must be at least 1, got {window_size}")

        context = {"dataset_id": target.dataset_id, "data_type": target.data_type.value}

        def body(run: SubmissionRun, lock: ExclusiveLock) -> SubmissionResult:
            if not self._gate.check_proof_eligible(target):
                run.transition(SubmissionState.SKIPPED)
                self._log.record(
                    SubmissionEventKind.TARGET_INELIGIBLE, run.subject,
                    {**context, "reason": self._gate.last_reason},
                )
                return self._result(
                    run, True, SubmissionOutcome.ALREADY_COMPLETE,
                    data={**context, "reason": self._gate.last_reason},
                )

            proof = load_dataset_proof(artifact_path)

            wrote = self._root.ensure_root(
                RootCommitment(target=target, root=proof.root, access_method=access_method),
                credential,
            )
            self._log.record(
                SubmissionEventKind.ROOT_COMMITTED if wrote else SubmissionEventKind.ROOT_PRESENT,
                run.subject,
                {**context, "root": proof.root},
            )
            run.transition(SubmissionState.ROOT_CHECKED)

            def confirmed(window: ChunkWindow, tx: Transaction) -> None:
                lock.renew()
                self._log.record(
                    SubmissionEventKind.WINDOW_CONFIRMED, run.subject,
                    {
                        **context,
                        "start": window.start,
                        "end": window.end,
                        "completed": window.completed,
                        "tx_hash": tx.hash,
                        "height": tx.height,
                    },
                )

            run.transition(SubmissionState.ADVANCING)
            windows = self._advancer.advance(
                target, proof.leaves, window_size, credential, on_confirmed=confirmed,
            )
            run.transition(SubmissionState.COMPLETED)

            summary = {
                **context,
                "root_committed": wrote,
                "windows_submitted": len(windows),
                "position": len(proof.leaves),
            }
            self._log.record(SubmissionEventKind.SUBMISSION_COMPLETED, run.subject, summary)
            logger.info("%s: proof submission complete (%d windows)", target, len(windows))
            return self._result(run, True, SubmissionOutcome.COMPLETED, data=summary)

        return self._locked(target.lock_key, context, body)

    # ------------------------------------------------------------------
    # Challenges
    # ------------------------------------------------------------------

    def submit_challenge(
        self,
        dataset_id: int,
        artifact_path: Path,
        auditor: str,
        credential: Credential,
    ) -> SubmissionResult:
        """Submit a challenge response if the auditor may and has not already."""
        context: dict[str, Any] = {"dataset_id": dataset_id}

        def body(run: SubmissionRun, lock: ExclusiveLock) -> SubmissionResult:
            challenge = load_challenge_proof(artifact_path)
            if challenge.dataset_id != dataset_id:
                raise ArtifactError(
                    f"Artifact {artifact_path} is for dataset {challenge.dataset_id}, "
                    f"not {dataset_id}"
                )

            if not self._gate.check_challenge_eligible(dataset_id, auditor, challenge.random_seed):
                run.transition(SubmissionState.SKIPPED)
                self._log.record(
                    SubmissionEventKind.TARGET_INELIGIBLE, run.subject,
                    {**context, "random_seed": challenge.random_seed,
                     "reason": self._gate.last_reason},
                )
                return self._result(
                    run, False, SubmissionOutcome.INELIGIBLE,
                    data={**context, "reason": self._gate.last_reason},
                )

            tx = self._gateway.submit(
                LedgerOperation.SUBMIT_CHALLENGE_PROOFS,
                [
                    dataset_id,
                    challenge.random_seed,
                    list(challenge.leaves),
                    [list(s) for s in challenge.siblings],
                    list(challenge.paths),
                ],
                credential,
            )
            self._gateway.wait_for_confirmation(tx.height)
            run.transition(SubmissionState.COMPLETED)

            summary = {
                **context,
                "random_seed": challenge.random_seed,
                "tx_hash": tx.hash,
                "height": tx.height,
            }
            self._log.record(SubmissionEventKind.CHALLENGE_SUBMITTED, run.subject, summary)
            return self._result(run, True, SubmissionOutcome.COMPLETED, data=summary)

        return self._locked(f"{dataset_id}{CHALLENGE_DISCRIMINATOR}", context, body)

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _locked(
        self,
        key: str,
        context: dict[str, Any],
        body: Callable[[SubmissionRun, ExclusiveLock], SubmissionResult],
    ) -> SubmissionResult:
        """Run body under the lock for key, mapping fatal conditions to results."""
        run = SubmissionRun(subject=key)
        lock = ExclusiveLock(key, self._lock_dir, lease_seconds=self._lease_seconds)

        acquired = False
        try:
            with lock.held():
                acquired = True
                run.transition(SubmissionState.LOCK_HELD)
                self._log.record(SubmissionEventKind.LOCK_ACQUIRED, key, {"path": str(lock.path)})
                try:
                    return body(run, lock)
                except (SubmissionError, ArtifactError) as exc:
                    return self._abort(run, exc, context)
                except LedgerError as exc:
                    run.transition(SubmissionState.ABORTED)
                    self._log.record(
                        SubmissionEventKind.LEDGER_FAILURE, key,
                        {**context, "state": run.history[-2].value, "error": str(exc)},
                    )
                    raise
        except LockContention as exc:
            if run.state is not SubmissionState.IDLE:
                raise
            run.transition(SubmissionState.ABORTED)
            self._log.record(
                SubmissionEventKind.LOCK_CONTENDED, key, {**context, "holder": exc.holder},
            )
            logger.error("%s", exc)
            return self._result(
                run, False, SubmissionOutcome.ABORTED,
                errors=[str(exc)], data={**context, "lock": str(lock.path)},
            )
        finally:
            if acquired and lock.handle is None:
                self._log.record(SubmissionEventKind.LOCK_RELEASED, key, {})

    def _abort(
        self,
        run: SubmissionRun,
        exc: Exception,
        context: dict[str, Any],
    ) -> SubmissionResult:
        failed_in = run.state
        run.transition(SubmissionState.ABORTED)
        data: dict[str, Any] = {**context, "failed_in": failed_in.value, "error_type": type(exc).__name__}
        if isinstance(exc, ConsistencyViolation):
            data["expected"] = exc.expected
            data["observed"] = exc.observed
        self._log.record(SubmissionEventKind.SUBMISSION_ABORTED, run.subject, {**data, "error": str(exc)})
        logger.error("%s: submission aborted in %s: %s", run.subject, failed_in.value, exc)
        return self._result(run, False, SubmissionOutcome.ABORTED, errors=[str(exc)], data=data)

    @staticmethod
    def _result(
        run: SubmissionRun,
        success: bool,
        outcome: SubmissionOutcome,
        errors: Optional[list[str]] = None,
        data: Optional[dict[str, Any]] = None,
    ) -> SubmissionResult:
        payload = dict(data or {})
        payload["state"] = run.state.value
        payload["history"] = [s.value for s in run.history]
        return SubmissionResult(success=success, outcome=outcome, errors=errors or [], data=payload)
