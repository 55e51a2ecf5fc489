"""Submitter configuration — network, contracts, credentials and engine tuning.

Values come from the process environment, optionally seeded from a
.env file. Credentials are kept per role and handed to each transaction
explicitly; nothing here mutates shared client state.

Usage:
    config = SubmitterConfig.from_env(Path(".env"))
    credential = config.credential(Role.DATASET_PREPARER)
"""

from __future__ import annotations

import enum
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Mapping, Optional

from dotenv import load_dotenv


class Role(str, enum.Enum):
    """Actors whose keys sign dataset transactions."""
    DATASET_PREPARER = "dataset_preparer"
    DATASET_AUDITOR = "dataset_auditor"
    STORAGE_CLIENT = "storage_client"


@dataclass(frozen=True)
class Credential:
    """A signing key bound to the role it acts for."""
    role: Role
    private_key: str = field(repr=False)


@dataclass(frozen=True)
class NetworkProfile:
    chain_id: int
    rpc_url: str


NETWORKS: dict[str, NetworkProfile] = {
    "calibration": NetworkProfile(
        chain_id=314159,
        rpc_url="https://api.calibration.node.glif.io/rpc/v1",
    ),
    "mainnet": NetworkProfile(
        chain_id=314,
        rpc_url="https://api.node.glif.io/rpc/v1",
    ),
}

# Blocks that must follow inclusion before a transaction counts as durable.
CHAIN_SUCCESS_INTERVAL = 6
# Filecoin epoch length.
BLOCK_PERIOD_SECONDS = 30.0

_ROLE_KEY_VARS: dict[Role, str] = {
    Role.DATASET_PREPARER: "DATASET_PREPARER_PRIVATE_KEY",
    Role.DATASET_AUDITOR: "DATASET_AUDITOR_PRIVATE_KEY",
    Role.STORAGE_CLIENT: "STORAGE_CLIENT_PRIVATE_KEY",
}


@dataclass(frozen=True)
class ContractAddresses:
    dataset_proof: str
    dataset_challenge: str
    dataset_metadata: str
    filplus: str
    dataset_requirement: str


@dataclass(frozen=True)
class SubmitterConfig:
    """Everything the submitter needs to talk to one network."""
    network: str
    rpc_url: str
    chain_id: int
    contracts: ContractAddresses
    private_keys: dict[Role, str] = field(default_factory=dict, repr=False)
    auditor_account: Optional[str] = None
    lock_dir: Path = Path(".")
    data_dir: Path = Path("data")
    confirmation_depth: int = CHAIN_SUCCESS_INTERVAL
    block_period: float = BLOCK_PERIOD_SECONDS
    confirmation_timeout: float = 1800.0
    receipt_timeout: float = 600.0
    lock_lease_seconds: float = 6 * 3600.0

    @classmethod
    def from_env(
        cls,
        env_file: Optional[Path] = None,
        environ: Optional[Mapping[str, str]] = None,
    ) -> SubmitterConfig:
        """Build a config from environment variables.

        When env_file is given it is loaded first without overriding
        variables already set. Raises ValueError naming any missing
        required variable.
        """
        if environ is None:
            if env_file is not None:
                load_dotenv(env_file, override=False)
            environ = os.environ

        network = environ.get("NETWORK", "calibration")
        if network not in NETWORKS:
            raise ValueError(
                f"Unknown NETWORK {network!r}; expected one of {sorted(NETWORKS)}"
            )
        profile = NETWORKS[network]

        def required(name: str) -> str:
            value = environ.get(name)
            if not value:
                raise ValueError(f"Missing required configuration: {name}")
            return value

        contracts = ContractAddresses(
            dataset_proof=required("DATASET_PROOF_ADDRESS"),
            dataset_challenge=required("DATASET_CHALLENGE_ADDRESS"),
            dataset_metadata=required("DATASET_METADATA_ADDRESS"),
            filplus=required("FILPLUS_ADDRESS"),
            dataset_requirement=required("DATASET_REQUIREMENT_ADDRESS"),
        )

        private_keys = {
            role: environ[var]
            for role, var in _ROLE_KEY_VARS.items()
            if environ.get(var)
        }

        return cls(
            network=network,
            rpc_url=environ.get("RPC_URL") or profile.rpc_url,
            chain_id=int(environ.get("CHAIN_ID") or profile.chain_id),
            contracts=contracts,
            private_keys=private_keys,
            auditor_account=environ.get("DATASET_AUDITOR_ACCOUNT") or None,
            lock_dir=Path(environ.get("DATAPROOF_LOCK_DIR", ".")),
            data_dir=Path(environ.get("DATAPROOF_DATA_DIR", "data")),
            confirmation_depth=int(environ.get("CONFIRMATION_DEPTH", CHAIN_SUCCESS_INTERVAL)),
            block_period=float(environ.get("BLOCK_PERIOD_SECONDS", BLOCK_PERIOD_SECONDS)),
            confirmation_timeout=float(environ.get("CONFIRMATION_TIMEOUT_SECONDS", 1800)),
            receipt_timeout=float(environ.get("RECEIPT_TIMEOUT_SECONDS", 600)),
            lock_lease_seconds=float(environ.get("LOCK_LEASE_SECONDS", 6 * 3600)),
        )

    def credential(self, role: Role) -> Credential:
        """Return the signing credential for a role.

        Raises ValueError if the role's key variable was not configured.
        """
        key = self.private_keys.get(role)
        if not key:
            raise ValueError(
                f"No private key configured for {role.value} "
                f"(set {_ROLE_KEY_VARS[role]})"
            )
        return Credential(role=role, private_key=key)

    def require_auditor_account(self) -> str:
        if not self.auditor_account:
            raise ValueError("Missing required configuration: DATASET_AUDITOR_ACCOUNT")
        return self.auditor_account
