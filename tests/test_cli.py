"""Tests for the CLI — argument parsing, dispatch and exit codes."""

from __future__ import annotations

import dataclasses
import json
from pathlib import Path
from typing import Callable

import pytest

from dataproof import cli
from dataproof.config import SubmitterConfig
from dataproof.errors import LedgerError
from dataproof.ledger.gateway import LedgerOperation
from dataproof.models.submission import DataType
from dataproof.service import DEFAULT_AUDITOR_STAKE, DataproofService

from conftest import AUDITOR_ADDRESS, FakeLedger


@pytest.fixture
def use_service(
    monkeypatch: pytest.MonkeyPatch,
    config: SubmitterConfig,
    ledger: FakeLedger,
) -> Callable[..., None]:
    def _use(cfg: SubmitterConfig = config) -> None:
        service = DataproofService(cfg, ledger)
        monkeypatch.setattr(cli, "_make_service", lambda env_file: service)
    _use()
    return _use


class TestParser:
    def test_submit_proof_args(self) -> None:
        args = cli.build_parser().parse_args([
            "submit-proof", "-i", "42", "-t", "source",
            "-m", "https://example.org/ds", "-p", "proof.json", "-c", "500",
        ])
        assert args.dataset_id == 42
        assert args.data_type == DataType.SOURCE
        assert args.path == Path("proof.json")
        assert args.chunk == 500

    @pytest.mark.parametrize("value,expected", [
        ("source", DataType.SOURCE),
        ("mapping_files", DataType.MAPPING_FILES),
        ("0", DataType.SOURCE),
        ("1", DataType.MAPPING_FILES),
    ])
    def test_data_type_by_name_or_ordinal(self, value: str, expected: DataType) -> None:
        args = cli.build_parser().parse_args([
            "submit-proof", "-i", "1", "-t", value, "-m", "x", "-p", "p.json", "-c", "1",
        ])
        assert args.data_type == expected

    @pytest.mark.parametrize("argv", [
        ["submit-proof", "-i", "1", "-t", "other", "-m", "x", "-p", "p.json", "-c", "1"],
        ["submit-proof", "-i", "1", "-t", "2", "-m", "x", "-p", "p.json", "-c", "1"],
        ["submit-proof", "-i", "1", "-t", "source", "-m", "x", "-p", "p.json", "-c", "0"],
        ["auditor-stake", "-i", "1", "-a", "0"],
        ["submit-challenge", "-i", "1"],
    ])
    def test_rejects_invalid(self, argv: list[str]) -> None:
        with pytest.raises(SystemExit):
            cli.build_parser().parse_args(argv)

    def test_stake_default(self) -> None:
        args = cli.build_parser().parse_args(["auditor-stake", "-i", "7"])
        assert args.amount == DEFAULT_AUDITOR_STAKE

    def test_env_file_default(self) -> None:
        args = cli.build_parser().parse_args(["dataset-state", "-i", "7"])
        assert args.env_file == Path(".env")


class TestMain:
    def test_no_command_prints_help(self, capsys: pytest.CaptureFixture[str]) -> None:
        assert cli.main([]) == cli.EXIT_OK
        assert "submit-proof" in capsys.readouterr().out

    def test_submit_proof(
        self,
        use_service: Callable[..., None],
        ledger: FakeLedger,
        write_proof: Callable[..., Path],
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        path = write_proof(5)
        code = cli.main([
            "submit-proof", "-i", "7", "-t", "1", "-m", "https://example.org/ds",
            "-p", str(path), "-c", "2",
        ])
        assert code == cli.EXIT_OK
        report = json.loads(capsys.readouterr().out)
        assert report["success"] is True
        assert report["outcome"] == "completed"
        assert report["windows_submitted"] == 3
        assert ledger.counters[(7, 1)] == 5

    def test_ineligible_challenge_exits_failed(
        self,
        use_service: Callable[..., None],
        write_challenge: Callable[..., Path],
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        code = cli.main(["submit-challenge", "-i", "7", "-p", str(write_challenge(7))])
        assert code == cli.EXIT_FAILED
        assert json.loads(capsys.readouterr().out)["outcome"] == "ineligible"

    def test_challenge_submitted(
        self,
        use_service: Callable[..., None],
        ledger: FakeLedger,
        write_challenge: Callable[..., Path],
    ) -> None:
        ledger.winners.add((7, AUDITOR_ADDRESS))
        assert cli.main(["submit-challenge", "-i", "7", "-p", str(write_challenge(7))]) == cli.EXIT_OK

    def test_ledger_error_exit_code(
        self,
        use_service: Callable[..., None],
        ledger: FakeLedger,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        ledger.failures[LedgerOperation.COMPLETE_ESCROW] = LedgerError("execution reverted")
        assert cli.main(["complete-escrow", "-i", "7"]) == cli.EXIT_LEDGER_ERROR
        assert "execution reverted" in capsys.readouterr().err

    def test_configuration_error_exit_code(
        self,
        use_service: Callable[..., None],
        config: SubmitterConfig,
        write_challenge: Callable[..., Path],
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        use_service(dataclasses.replace(config, auditor_account=None))
        code = cli.main(["submit-challenge", "-i", "7", "-p", str(write_challenge(7))])
        assert code == cli.EXIT_FAILED
        assert "DATASET_AUDITOR_ACCOUNT" in capsys.readouterr().err

    def test_auditor_stake(self, use_service: Callable[..., None], ledger: FakeLedger) -> None:
        assert cli.main(["auditor-stake", "-i", "7", "-a", "25"]) == cli.EXIT_OK
        [call] = ledger.operations(LedgerOperation.AUDITOR_STAKE)
        assert call["value"] == 25

    def test_dataset_state(
        self,
        use_service: Callable[..., None],
        ledger: FakeLedger,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        ledger.states[7] = 5
        assert cli.main(["dataset-state", "-i", "7"]) == cli.EXIT_OK
        assert json.loads(capsys.readouterr().out) == {
            "dataset_id": 7, "state": "APPROVED", "value": 5,
        }

    def test_submit_metadata(
        self,
        use_service: Callable[..., None],
        metadata_file: Callable[..., Path],
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        assert cli.main(["submit-metadata", "-p", str(metadata_file())]) == cli.EXIT_OK
        report = json.loads(capsys.readouterr().out)
        assert report["dataset_id"] == 1
        assert report["proof_block_count"] == 101

    def test_update_timeout_parameters(
        self, use_service: Callable[..., None], ledger: FakeLedger,
    ) -> None:
        code = cli.main(["update-timeout-parameters", "-i", "7", "-p", "2880", "-a", "2880"])
        assert code == cli.EXIT_OK
        assert ledger.timeouts[7] == (2880, 2880)

    def test_submit_replica_requirements(
        self,
        use_service: Callable[..., None],
        ledger: FakeLedger,
        requirements_file: Callable[..., Path],
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        ledger.states[7] = 1
        code = cli.main(["submit-replica-requirements", "-p", str(requirements_file())])
        assert code == cli.EXIT_OK
        assert json.loads(capsys.readouterr().out)["replicas"] == 2
        assert 7 in ledger.replica_requirements

    def test_ineligible_replica_requirements_exit_failed(
        self,
        use_service: Callable[..., None],
        ledger: FakeLedger,
        requirements_file: Callable[..., Path],
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        code = cli.main(["submit-replica-requirements", "-p", str(requirements_file())])
        assert code == cli.EXIT_FAILED
        assert json.loads(capsys.readouterr().out)["outcome"] == "ineligible"
        assert ledger.replica_requirements == {}
