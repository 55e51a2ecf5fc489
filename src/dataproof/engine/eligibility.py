"""Eligibility gate — read-only preconditions checked before any mutation.

A negative answer is not an error: it means submitting would be
redundant or would be rejected, and the caller ends with no ledger
mutation attempted.
"""

from __future__ import annotations

import logging
from typing import Optional

import pycountry

from dataproof.ledger.gateway import LedgerGateway, LedgerQuery
from dataproof.models.dataset import DatasetReplicaRequirements, DatasetState
from dataproof.models.submission import SubmissionTarget

logger = logging.getLogger(__name__)

REASON_PROOF_COMPLETE = "all dataset proofs already completed"
REASON_CHALLENGE_DUPLICATE = "challenge proof already submitted for this seed"
REASON_NOT_WINNER = "auditor is not a winner for this dataset"
REASON_NOT_AWAITING_REQUIREMENTS = "dataset is not awaiting replica requirements"
REASON_INVALID_COUNTRY = "unknown ISO 3166-1 numeric country code"


def is_country_code(code: int) -> bool:
    """True for an assigned ISO 3166-1 numeric country code."""
    if not 0 < code < 1000:
        return False
    return pycountry.countries.get(numeric=f"{code:03d}") is not None


class EligibilityGate:
    """Precondition checks against the ledger.

    After a check returns False, last_reason says which condition failed.
    """

    def __init__(self, gateway: LedgerGateway) -> None:
        self._gateway = gateway
        self.last_reason: Optional[str] = None

    def check_proof_eligible(self, target: SubmissionTarget) -> bool:
        """False when every proof chunk for target is already complete."""
        self.last_reason = None
        completed = self._gateway.query(
            LedgerQuery.PROOF_ALL_COMPLETED,
            target.dataset_id,
            target.data_type.chain_value,
        )
        if completed:
            self.last_reason = REASON_PROOF_COMPLETE
            logger.info("%s: %s, nothing to do", target, REASON_PROOF_COMPLETE)
            return False
        return True

    def check_challenge_eligible(
        self,
        dataset_id: int,
        auditor: str,
        random_seed: int,
    ) -> bool:
        """False when the response is a duplicate or auditor is not a winner.

        The duplicate check runs first; a duplicate short-circuits without
        consulting the winner role.
        """
        self.last_reason = None
        if self._gateway.query(
            LedgerQuery.CHALLENGE_DUPLICATE, dataset_id, auditor, random_seed,
        ):
            self.last_reason = REASON_CHALLENGE_DUPLICATE
            logger.info("dataset %d: %s", dataset_id, REASON_CHALLENGE_DUPLICATE)
            return False

        if not self._gateway.query(LedgerQuery.IS_WINNER, dataset_id, auditor):
            self.last_reason = REASON_NOT_WINNER
            logger.info("dataset %d: %s", dataset_id, REASON_NOT_WINNER)
            return False

        return True

    def check_replica_requirements_eligible(
        self,
        requirements: DatasetReplicaRequirements,
    ) -> bool:
        """False unless the dataset awaits requirements and every country is known."""
        self.last_reason = None
        dataset_id = requirements.dataset_id
        state = int(self._gateway.query(LedgerQuery.DATASET_STATE, dataset_id))
        if state != DatasetState.METADATA_SUBMITTED:
            self.last_reason = REASON_NOT_AWAITING_REQUIREMENTS
            logger.info("dataset %d: %s (state %d)", dataset_id, REASON_NOT_AWAITING_REQUIREMENTS, state)
            return False

        unknown = [c for c in requirements.countries if not is_country_code(c)]
        if unknown:
            self.last_reason = f"{REASON_INVALID_COUNTRY}: {', '.join(map(str, unknown))}"
            logger.info("dataset %d: %s", dataset_id, self.last_reason)
            return False

        return True
