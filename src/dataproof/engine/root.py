"""Root committer — writes a target's proof root exactly once.

A dataset carries one root per data type, so the root hash the ledger
holds for (dataset, data type) decides whether the commitment exists.
After writing, both the per-type root and the dataset's proof submitter
are read back once the transaction is confirmed; an accepted
transaction that left either unset is a failure, not a success.
"""

from __future__ import annotations

import logging

from dataproof.config import Credential
from dataproof.errors import RootCommitFailure
from dataproof.ledger.gateway import (
    LedgerGateway,
    LedgerOperation,
    is_zero_address,
    is_zero_root,
)
from dataproof.models.submission import RootCommitment

logger = logging.getLogger(__name__)


class RootCommitter:
    """Idempotent root commitment.

    Usage:
        committer = RootCommitter(gateway)
        wrote = committer.ensure_root(commitment, credential)
    """

    def __init__(self, gateway: LedgerGateway) -> None:
        self._gateway = gateway

    def ensure_root(self, commitment: RootCommitment, credential: Credential) -> bool:
        """Make sure the root commitment exists on the ledger.

        Returns True if this call wrote it, False if it already existed.
        Raises RootCommitFailure if the write confirmed without effect.
        """
        target = commitment.target
        existing = self._gateway.read_root(target)
        if not is_zero_root(existing):
            logger.info("%s: root %s already committed", target, existing)
            return False

        logger.info("%s: no root recorded, submitting root %s", target, commitment.root)
        tx = self._gateway.submit(
            LedgerOperation.SUBMIT_PROOF_ROOT,
            [
                target.dataset_id,
                target.data_type.chain_value,
                commitment.access_method,
                commitment.root,
            ],
            credential,
        )
        self._gateway.wait_for_confirmation(tx.height)

        if is_zero_root(self._gateway.read_root(target)):
            raise RootCommitFailure(target)
        if is_zero_address(self._gateway.read_submitter(target)):
            raise RootCommitFailure(target)

        logger.info("%s: root committed in tx %s", target, tx.hash)
        return True
