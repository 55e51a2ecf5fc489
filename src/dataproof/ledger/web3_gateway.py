"""Web3 ledger binding — signs, sends and confirms dataset contract calls.

Each submit() builds the contract call, signs it locally with the
credential it was handed, sends the raw transaction and waits (bounded)
for the receipt. A reverted receipt is a LedgerError, never a silent
success. Confirmation depth is counted in blocks on top of inclusion.
"""

from __future__ import annotations

import logging
import re
import time
from typing import Any, Callable, Optional, Sequence

from eth_account import Account
from web3 import HTTPProvider, Web3
from web3.exceptions import TimeExhausted, Web3Exception
from web3.logs import DISCARD

from dataproof.config import Credential, SubmitterConfig
from dataproof.errors import LedgerError, LedgerTimeout
from dataproof.ledger.abi import CONTRACT_ABIS
from dataproof.ledger.gateway import (
    LedgerContract,
    LedgerEvent,
    LedgerGateway,
    LedgerOperation,
    LedgerQuery,
    Transaction,
)

logger = logging.getLogger(__name__)

_ADDRESS_RE = re.compile(r"^0x[0-9a-fA-F]{40}$")


class Web3LedgerGateway(LedgerGateway):
    """LedgerGateway over a JSON-RPC endpoint.

    Usage:
        gateway = Web3LedgerGateway(config)
        tx = gateway.submit(LedgerOperation.SUBMIT_PROOF, args, credential)
        gateway.wait_for_confirmation(tx.height)
    """

    def __init__(
        self,
        config: SubmitterConfig,
        w3: Optional[Web3] = None,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._w3 = w3 or Web3(HTTPProvider(config.rpc_url))
        self._chain_id = config.chain_id
        self._confirmation_depth = config.confirmation_depth
        self._block_period = config.block_period
        self._confirmation_timeout = config.confirmation_timeout
        self._receipt_timeout = config.receipt_timeout
        self._sleep = sleep
        self._clock = clock

        addresses = {
            LedgerContract.DATASET_PROOF: config.contracts.dataset_proof,
            LedgerContract.DATASET_CHALLENGE: config.contracts.dataset_challenge,
            LedgerContract.DATASET_METADATA: config.contracts.dataset_metadata,
            LedgerContract.DATASET_REQUIREMENT: config.contracts.dataset_requirement,
            LedgerContract.FILPLUS: config.contracts.filplus,
        }
        self._contracts = {
            contract: self._w3.eth.contract(
                address=Web3.to_checksum_address(address),
                abi=CONTRACT_ABIS[contract],
            )
            for contract, address in addresses.items()
        }

    # ------------------------------------------------------------------
    # LedgerGateway
    # ------------------------------------------------------------------

    def submit(
        self,
        operation: LedgerOperation,
        args: Sequence[Any],
        credential: Credential,
        value: int = 0,
    ) -> Transaction:
        acct = Account.from_key(credential.private_key)
        call = self._bind(operation.contract, operation.value, args)

        try:
            tx = call.build_transaction({
                "from": acct.address,
                "nonce": self._w3.eth.get_transaction_count(acct.address),
                "chainId": self._chain_id,
                "value": value,
            })
            signed = acct.sign_transaction(tx)
            tx_hash = self._w3.eth.send_raw_transaction(signed.raw_transaction)
            logger.info("Sent %s tx %s as %s", operation.value, Web3.to_hex(tx_hash), credential.role.value)
            receipt = self._w3.eth.wait_for_transaction_receipt(
                tx_hash, timeout=self._receipt_timeout,
            )
        except TimeExhausted as exc:
            raise LedgerTimeout(
                f"{operation.value}: no receipt within {self._receipt_timeout}s", cause=exc,
            ) from exc
        except (Web3Exception, ValueError) as exc:
            raise LedgerError(f"{operation.value} failed: {exc}", cause=exc) from exc

        hex_hash = Web3.to_hex(tx_hash)
        if receipt["status"] != 1:
            raise LedgerError(f"{operation.value} reverted in tx {hex_hash}")

        logger.info("%s included in block %d", hex_hash, receipt["blockNumber"])
        return Transaction(hash=hex_hash, height=int(receipt["blockNumber"]))

    def query(self, query: LedgerQuery, *args: Any) -> Any:
        call = self._bind(query.contract, query.value, args)
        try:
            return call.call()
        except (Web3Exception, ValueError) as exc:
            raise LedgerError(f"{query.value} failed: {exc}", cause=exc) from exc

    def wait_for_confirmation(self, height: int) -> None:
        target = height + self._confirmation_depth
        deadline = self._clock() + self._confirmation_timeout
        while True:
            try:
                current = self._w3.eth.block_number
            except (Web3Exception, ValueError) as exc:
                raise LedgerError(f"Reading block height failed: {exc}", cause=exc) from exc
            if current >= target:
                return
            if self._clock() >= deadline:
                raise LedgerTimeout(
                    f"Chain height {current} did not reach {target} "
                    f"within {self._confirmation_timeout}s"
                )
            logger.debug("Waiting for block %d (at %d)", target, current)
            self._sleep(self._block_period)

    def decode_event(self, tx: Transaction, event: LedgerEvent) -> dict[str, Any]:
        contract = self._contracts[event.contract]
        try:
            receipt = self._w3.eth.get_transaction_receipt(tx.hash)
            decoded = getattr(contract.events, event.value)().process_receipt(
                receipt, errors=DISCARD,
            )
        except (Web3Exception, ValueError) as exc:
            raise LedgerError(f"Decoding {event.value} failed: {exc}", cause=exc) from exc
        if not decoded:
            raise LedgerError(f"No {event.value} event in tx {tx.hash}")
        return dict(decoded[0]["args"])

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _bind(self, contract: LedgerContract, name: str, args: Sequence[Any]) -> Any:
        function = getattr(self._contracts[contract].functions, name)
        return function(*[_normalize(arg) for arg in args])


def _normalize(arg: Any) -> Any:
    """Checksum bare address strings; the ABI encoder rejects other forms."""
    if isinstance(arg, str) and _ADDRESS_RE.match(arg):
        return Web3.to_checksum_address(arg)
    if isinstance(arg, (list, tuple)):
        return [_normalize(item) for item in arg]
    return arg
