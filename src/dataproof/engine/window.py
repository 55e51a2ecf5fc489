"""Window advancer — streams a leaf sequence to the ledger chunk by chunk.

Progress is never remembered between runs. Every run starts from the
ledger's proof counter, submits the next window, waits for the
confirmation depth and reads the counter back. The counter must land
exactly on the window end; anything else (a lost transaction, another
writer, a silent rejection) aborts the run with ConsistencyViolation.
There is no per-chunk retry: re-invoking the whole submission is safe
because it resumes from whatever the ledger recorded.
"""

from __future__ import annotations

import logging
from typing import Callable, Optional

from dataproof.config import Credential
from dataproof.errors import ConsistencyViolation
from dataproof.ledger.gateway import LedgerGateway, LedgerOperation, Transaction
from dataproof.models.submission import (
    ChunkWindow,
    LeafSequence,
    SubmissionCursor,
    SubmissionTarget,
)

logger = logging.getLogger(__name__)

WindowCallback = Callable[[ChunkWindow, Transaction], None]


class WindowAdvancer:
    """Confirmation-gated chunk submission loop.

    Usage:
        advancer = WindowAdvancer(gateway)
        windows = advancer.advance(target, leaves, window_size=500,
                                   credential=credential)
    """

    def __init__(self, gateway: LedgerGateway) -> None:
        self._gateway = gateway

    def resume_cursor(
        self,
        target: SubmissionTarget,
        sequence: LeafSequence,
        window_size: int,
    ) -> SubmissionCursor:
        """Build a cursor at the ledger's current count for target."""
        position = self._gateway.read_counter(target)
        if not 0 <= position <= len(sequence):
            raise ConsistencyViolation(target, expected=len(sequence), observed=position)
        return SubmissionCursor(position=position, window_size=window_size, total=len(sequence))

    def advance(
        self,
        target: SubmissionTarget,
        sequence: LeafSequence,
        window_size: int,
        credential: Credential,
        on_confirmed: Optional[WindowCallback] = None,
    ) -> list[ChunkWindow]:
        """Submit every remaining window. Returns the windows confirmed by this call."""
        cursor = self.resume_cursor(target, sequence, window_size)
        if cursor.position:
            logger.info("%s: resuming at leaf %d of %d", target, cursor.position, cursor.total)

        confirmed: list[ChunkWindow] = []
        while not cursor.done:
            window = sequence.window(cursor.position, cursor.window_size)
            logger.info(
                "%s: submitting leaves [%d:%d) of %d%s",
                target, window.start, window.end, cursor.total,
                " (final)" if window.completed else "",
            )
            tx = self._gateway.submit(
                LedgerOperation.SUBMIT_PROOF,
                [
                    target.dataset_id,
                    target.data_type.chain_value,
                    list(window.leaf_hashes),
                    window.start,
                    list(window.leaf_sizes),
                    window.completed,
                ],
                credential,
            )
            self._gateway.wait_for_confirmation(tx.height)

            observed = self._gateway.read_counter(target)
            if observed != window.end:
                logger.error(
                    "%s: proof count %d after tx %s, expected %d",
                    target, observed, tx.hash, window.end,
                )
                raise ConsistencyViolation(target, expected=window.end, observed=observed)

            cursor.advance_to(window.end)
            confirmed.append(window)
            if on_confirmed is not None:
                on_confirmed(window, tx)

        return confirmed
