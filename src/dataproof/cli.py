"""Dataproof CLI — command-line interface for dataset proof submission.

Usage:
    python -m dataproof.cli submit-proof --dataset-id 42 --data-type source \\
        --access-method https://example.org/car --path proof.json --chunk 500
    python -m dataproof.cli submit-challenge --dataset-id 42 --path challenge.json
    python -m dataproof.cli submit-proof-completed --dataset-id 42
    python -m dataproof.cli auditor-stake --dataset-id 42
    python -m dataproof.cli complete-escrow --dataset-id 42
    python -m dataproof.cli submit-metadata --path metadata.json
    python -m dataproof.cli submit-replica-requirements --path requirements.json
    python -m dataproof.cli update-timeout-parameters --dataset-id 42 \\
        --proof-block-count 2880 --audit-block-count 2880
    python -m dataproof.cli dataset-state --dataset-id 42

Configuration is read from the environment and an optional .env file
(see dataproof.config).
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path

from dataproof.config import SubmitterConfig
from dataproof.errors import LedgerError
from dataproof.models.submission import DataType, SubmissionResult
from dataproof.persistence.event_log import SubmissionLog
from dataproof.service import DEFAULT_AUDITOR_STAKE, DataproofService


DEFAULT_ENV_FILE = Path(".env")

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_LEDGER_ERROR = 2


def _make_service(env_file: Path) -> DataproofService:
    """Create a DataproofService bound to the configured network."""
    from dataproof.ledger.web3_gateway import Web3LedgerGateway

    config = SubmitterConfig.from_env(env_file)
    config.data_dir.mkdir(parents=True, exist_ok=True)
    submission_log = SubmissionLog(storage_path=config.data_dir / "submissions.jsonl")
    return DataproofService(config, Web3LedgerGateway(config), submission_log=submission_log)


def _report(result: SubmissionResult) -> int:
    print(json.dumps(
        {"success": result.success, "outcome": result.outcome.value, **result.data},
        indent=2,
        default=str,
    ))
    if result.success:
        return EXIT_OK
    for error in result.errors:
        print(f"Failed: {error}", file=sys.stderr)
    return EXIT_FAILED


def cmd_submit_proof(args: argparse.Namespace) -> int:
    service = _make_service(args.env_file)
    return _report(service.submit_proof(
        dataset_id=args.dataset_id,
        data_type=args.data_type,
        access_method=args.access_method,
        path=args.path,
        chunk=args.chunk,
    ))


def cmd_submit_challenge(args: argparse.Namespace) -> int:
    service = _make_service(args.env_file)
    return _report(service.submit_challenge(args.dataset_id, args.path))


def cmd_submit_proof_completed(args: argparse.Namespace) -> int:
    service = _make_service(args.env_file)
    return _report(service.submit_proof_completed(args.dataset_id))


def cmd_auditor_stake(args: argparse.Namespace) -> int:
    service = _make_service(args.env_file)
    return _report(service.auditor_stake(args.dataset_id, args.amount))


def cmd_complete_escrow(args: argparse.Namespace) -> int:
    service = _make_service(args.env_file)
    return _report(service.complete_escrow(args.dataset_id))


def cmd_submit_metadata(args: argparse.Namespace) -> int:
    service = _make_service(args.env_file)
    return _report(service.submit_metadata(args.path))


def cmd_submit_replica_requirements(args: argparse.Namespace) -> int:
    service = _make_service(args.env_file)
    return _report(service.submit_replica_requirements(args.path))


def cmd_update_timeout_parameters(args: argparse.Namespace) -> int:
    service = _make_service(args.env_file)
    return _report(service.update_timeout_parameters(
        args.dataset_id, args.proof_block_count, args.audit_block_count,
    ))


def cmd_dataset_state(args: argparse.Namespace) -> int:
    service = _make_service(args.env_file)
    state = service.dataset_state(args.dataset_id)
    print(json.dumps({"dataset_id": args.dataset_id, "state": state.name, "value": int(state)}))
    return EXIT_OK


def _data_type(value: str) -> DataType:
    """Accept a data type by name ("source") or contract ordinal ("0")."""
    try:
        if value.isdigit():
            return DataType.from_chain_value(int(value))
        return DataType(value)
    except ValueError:
        choices = ", ".join(d.value for d in DataType)
        raise argparse.ArgumentTypeError(
            f"invalid data type {value!r} (choose from {choices}, or 0/1)"
        )


def _positive_int(value: str) -> int:
    number = int(value)
    if number < 1:
        raise argparse.ArgumentTypeError(f"must be a positive integer, got {value}")
    return number


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="dataproof",
        description="Resumable chunked dataset proof submission",
    )
    parser.add_argument(
        "--env-file",
        type=Path,
        default=DEFAULT_ENV_FILE,
        help="Path to a .env file (default: .env)",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    sub = parser.add_subparsers(dest="command")

    # submit-proof
    p_proof = sub.add_parser("submit-proof", help="Submit a dataset proof in chunks")
    p_proof.add_argument("-i", "--dataset-id", type=int, required=True, help="Dataset ID")
    p_proof.add_argument(
        "-t", "--data-type", type=_data_type, required=True,
        help="Data type: source | mapping_files (or 0 | 1)",
    )
    p_proof.add_argument(
        "-m", "--access-method", required=True, help="Mapping files access method",
    )
    p_proof.add_argument("-p", "--path", type=Path, required=True, help="Proof file path")
    p_proof.add_argument(
        "-c", "--chunk", type=_positive_int, required=True,
        help="Leaves submitted per transaction",
    )

    # submit-challenge
    p_chal = sub.add_parser("submit-challenge", help="Submit dataset challenge proofs")
    p_chal.add_argument("-i", "--dataset-id", type=int, required=True, help="Dataset ID")
    p_chal.add_argument("-p", "--path", type=Path, required=True, help="Challenge proof file path")

    # single-transaction dataset operations
    for name, help_text in (
        ("submit-proof-completed", "Mark dataset proofs completed"),
        ("complete-escrow", "Complete dataset escrow"),
        ("dataset-state", "Show dataset state"),
    ):
        p = sub.add_parser(name, help=help_text)
        p.add_argument("-i", "--dataset-id", type=int, required=True, help="Dataset ID")

    p_stake = sub.add_parser("auditor-stake", help="Stake as auditor for a dataset")
    p_stake.add_argument("-i", "--dataset-id", type=int, required=True, help="Dataset ID")
    p_stake.add_argument(
        "-a", "--amount", type=_positive_int, default=DEFAULT_AUDITOR_STAKE,
        help="Stake in attoFIL (default: 1 FIL)",
    )

    # submit-metadata
    p_meta = sub.add_parser("submit-metadata", help="Submit dataset metadata")
    p_meta.add_argument("-p", "--path", type=Path, required=True, help="Metadata file path")

    # submit-replica-requirements
    p_req = sub.add_parser(
        "submit-replica-requirements", help="Submit dataset replica requirements",
    )
    p_req.add_argument(
        "-p", "--path", type=Path, required=True, help="Replica requirements file path",
    )

    # update-timeout-parameters
    p_time = sub.add_parser("update-timeout-parameters", help="Update dataset timeout parameters")
    p_time.add_argument("-i", "--dataset-id", type=int, required=True, help="Dataset ID")
    p_time.add_argument("-p", "--proof-block-count", type=int, required=True)
    p_time.add_argument("-a", "--audit-block-count", type=int, required=True)

    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if args.command is None:
        parser.print_help()
        return EXIT_OK

    commands = {
        "submit-proof": cmd_submit_proof,
        "submit-challenge": cmd_submit_challenge,
        "submit-proof-completed": cmd_submit_proof_completed,
        "auditor-stake": cmd_auditor_stake,
        "complete-escrow": cmd_complete_escrow,
        "submit-metadata": cmd_submit_metadata,
        "submit-replica-requirements": cmd_submit_replica_requirements,
        "update-timeout-parameters": cmd_update_timeout_parameters,
        "dataset-state": cmd_dataset_state,
    }

    handler = commands.get(args.command)
    if handler is None:
        print(f"Unknown command: {args.command}", file=sys.stderr)
        return EXIT_FAILED

    try:
        return handler(args)
    except LedgerError as exc:
        print(f"Ledger error: {exc}", file=sys.stderr)
        return EXIT_LEDGER_ERROR
    except ValueError as exc:
        print(f"Failed: {exc}", file=sys.stderr)
        return EXIT_FAILED


if __name__ == "__main__":
    raise SystemExit(main())
