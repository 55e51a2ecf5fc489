"""Tests for artifact loading — proves malformed files are rejected before any ledger call."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Callable

import pytest

from dataproof.errors import ArtifactError
from dataproof.persistence.artifacts import (
    load_challenge_proof,
    load_dataset_metadata,
    load_dataset_proof,
    load_replica_requirements,
)

from conftest import CLIENT_ADDRESS, PREPARER_ADDRESS, leaf_hash


def _write(tmp_path: Path, data: Any, name: str = "artifact.json") -> Path:
    path = tmp_path / name
    path.write_text(json.dumps(data), encoding="utf-8")
    return path


class TestDatasetProof:
    def test_load(self, write_proof: Callable[..., Path]) -> None:
        proof = load_dataset_proof(write_proof(3, root="0xabc"))
        assert proof.root == "0xabc"
        assert len(proof.leaves) == 3
        assert proof.leaves.sizes == (1024, 2048, 3072)

    def test_sizes_may_be_strings(self, tmp_path: Path) -> None:
        path = _write(tmp_path, {
            "Root": "0xabc",
            "LeafHashes": [leaf_hash(1), leaf_hash(2)],
            "LeafSizes": ["4096", "0x10"],
        })
        assert load_dataset_proof(path).leaves.sizes == (4096, 16)

    @pytest.mark.parametrize("data,message", [
        ({"LeafHashes": [leaf_hash(1)], "LeafSizes": [1]}, "missing field 'Root'"),
        ({"Root": "", "LeafHashes": [leaf_hash(1)], "LeafSizes": [1]}, "non-empty"),
        ({"Root": "0xabc", "LeafHashes": [], "LeafSizes": []}, "must not be empty"),
        ({"Root": "0xabc", "LeafHashes": [leaf_hash(1)], "LeafSizes": [1, 2]}, "does not match"),
        ({"Root": "0xabc", "LeafHashes": [leaf_hash(1)], "LeafSizes": ["big"]}, "must be an integer"),
        ({"Root": "0xabc", "LeafHashes": [leaf_hash(1)], "LeafSizes": [True]}, "must be an integer"),
        ({"Root": "0xabc", "LeafHashes": [1], "LeafSizes": [1]}, "list of strings"),
    ])
    def test_rejects_malformed(self, tmp_path: Path, data: Any, message: str) -> None:
        with pytest.raises(ArtifactError, match=message):
            load_dataset_proof(_write(tmp_path, data))

    def test_rejects_invalid_json(self, tmp_path: Path) -> None:
        path = tmp_path / "proof.json"
        path.write_text("{not json")
        with pytest.raises(ArtifactError, match="not valid JSON"):
            load_dataset_proof(path)

    def test_rejects_non_object(self, tmp_path: Path) -> None:
        with pytest.raises(ArtifactError, match="JSON object"):
            load_dataset_proof(_write(tmp_path, [1, 2, 3]))

    def test_rejects_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(ArtifactError, match="Cannot read artifact"):
            load_dataset_proof(tmp_path / "absent.json")

    def test_artifact_error_is_value_error(self, tmp_path: Path) -> None:
        with pytest.raises(ValueError):
            load_dataset_proof(tmp_path / "absent.json")


class TestChallengeProof:
    def test_load(self, write_challenge: Callable[..., Path]) -> None:
        challenge = load_challenge_proof(write_challenge(7, seed="123456789012345678901234567890"))
        assert challenge.dataset_id == 7
        assert challenge.random_seed == 123456789012345678901234567890
        assert challenge.leaves == (leaf_hash(1), leaf_hash(2))
        assert challenge.siblings[1] == (leaf_hash(5), leaf_hash(6))
        assert challenge.paths == (0, 3)

    def test_rejects_unequal_lengths(self, tmp_path: Path) -> None:
        path = _write(tmp_path, {
            "DatasetId": 7,
            "RandomSeed": 1,
            "Leaves": [leaf_hash(1), leaf_hash(2)],
            "Siblings": [[leaf_hash(3)]],
            "Paths": [0, 1],
        })
        with pytest.raises(ArtifactError, match="equal length"):
            load_challenge_proof(path)

    def test_rejects_missing_seed(self, tmp_path: Path) -> None:
        path = _write(tmp_path, {"DatasetId": 7, "Leaves": [], "Siblings": [], "Paths": []})
        with pytest.raises(ArtifactError, match="RandomSeed"):
            load_challenge_proof(path)


class TestDatasetMetadata:
    def test_load(self, metadata_file: Callable[..., Path]) -> None:
        metadata = load_dataset_metadata(metadata_file("https://example.org/x"))
        assert metadata.access_method == "https://example.org/x"
        assert metadata.size_in_bytes == 1099511627776
        assert metadata.is_public is True
        assert metadata.proof_block_count == 50
        assert metadata.audit_block_count == 300

    def test_is_public_must_be_boolean(self, metadata_file: Callable[..., Path]) -> None:
        with pytest.raises(ArtifactError, match="isPublic"):
            load_dataset_metadata(metadata_file(isPublic="yes"))

    def test_title_must_be_string(self, metadata_file: Callable[..., Path]) -> None:
        with pytest.raises(ArtifactError, match="title must be a string"):
            load_dataset_metadata(metadata_file(title=5))


class TestReplicaRequirements:
    def test_load(self, requirements_file: Callable[..., Path]) -> None:
        requirements = load_replica_requirements(requirements_file())
        assert requirements.dataset_id == 7
        assert requirements.replica_count == 2
        assert requirements.data_preparers == (
            (PREPARER_ADDRESS,), (PREPARER_ADDRESS, CLIENT_ADDRESS),
        )
        assert requirements.storage_providers == ((1001,), (1002, 1003))
        assert requirements.countries == (840, 276)
        assert requirements.cities == ((1,), (2, 3))
        assert requirements.amount == 0

    def test_contract_spellings_accepted(
        self, tmp_path: Path, requirements_file: Callable[..., Path],
    ) -> None:
        data = json.loads(requirements_file().read_text())
        data["countrys"] = data.pop("countries")
        data["citys"] = data.pop("cities")
        requirements = load_replica_requirements(_write(tmp_path, data))
        assert requirements.countries == (840, 276)
        assert requirements.cities == ((1,), (2, 3))

    def test_rejects_mismatched_replica_lists(self, requirements_file: Callable[..., Path]) -> None:
        with pytest.raises(ArtifactError, match="countries has 1 entries for 2 replicas"):
            load_replica_requirements(requirements_file(countries=[840]))

    def test_rejects_non_address_preparer(self, requirements_file: Callable[..., Path]) -> None:
        with pytest.raises(ArtifactError, match="not an address"):
            load_replica_requirements(requirements_file(dataPreparers=[["alice"], ["bob"]]))

    def test_rejects_missing_cities(self, tmp_path: Path, requirements_file: Callable[..., Path]) -> None:
        data = json.loads(requirements_file().read_text())
        del data["cities"]
        with pytest.raises(ArtifactError, match="missing field 'cities'"):
            load_replica_requirements(_write(tmp_path, data))

    def test_rejects_empty_requirements(self, requirements_file: Callable[..., Path]) -> None:
        with pytest.raises(ArtifactError, match="at least one replica"):
            load_replica_requirements(requirements_file(
                dataPreparers=[], storageProviders=[], regions=[], countries=[], cities=[],
            ))
