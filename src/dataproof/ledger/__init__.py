"""Ledger access — the gateway interface and its contract vocabulary.

The web3 binding lives in dataproof.ledger.web3_gateway and is imported
only where a live network is needed.
"""

from dataproof.ledger.gateway import (
    ZERO_ADDRESS,
    ZERO_ROOT,
    LedgerContract,
    LedgerEvent,
    LedgerGateway,
    LedgerOperation,
    LedgerQuery,
    Transaction,
    is_zero_address,
    is_zero_root,
)

__all__ = [
    "ZERO_ADDRESS",
    "ZERO_ROOT",
    "LedgerContract",
    "LedgerEvent",
    "LedgerGateway",
    "LedgerOperation",
    "LedgerQuery",
    "Transaction",
    "is_zero_address",
    "is_zero_root",
]
