"""Artifact loaders — proof, challenge, metadata and replica requirement JSON files.

Artifacts are read whole and validated before any ledger call is made.
Integer fields may be JSON numbers or decimal/hex strings, since seeds
and paths routinely exceed the range JavaScript tooling can emit as
numbers.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from web3 import Web3

from dataproof.errors import ArtifactError
from dataproof.models.dataset import DatasetMetadata, DatasetReplicaRequirements
from dataproof.models.submission import ChallengeProof, DatasetProof, LeafSequence


def _read_json(path: Path) -> dict[str, Any]:
    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ArtifactError(f"Cannot read artifact {path}: {exc}") from exc
    try:
        parsed = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise ArtifactError(f"Artifact {path} is not valid JSON: {exc}") from exc
    if not isinstance(parsed, dict):
        raise ArtifactError(f"Artifact {path} must contain a JSON object")
    return parsed


def _field(data: dict[str, Any], name: str, path: Path) -> Any:
    if name not in data:
        raise ArtifactError(f"Artifact {path} is missing field {name!r}")
    return data[name]


def _as_int(value: Any, name: str, path: Path) -> int:
    if isinstance(value, bool):
        raise ArtifactError(f"Artifact {path}: {name} must be an integer, got {value!r}")
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        try:
            return int(value, 0)
        except ValueError:
            pass
    raise ArtifactError(f"Artifact {path}: {name} must be an integer, got {value!r}")


def _as_str_list(value: Any, name: str, path: Path) -> list[str]:
    if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
        raise ArtifactError(f"Artifact {path}: {name} must be a list of strings")
    return list(value)


def load_dataset_proof(path: Path) -> DatasetProof:
    """Load {Root, LeafHashes, LeafSizes}."""
    data = _read_json(path)
    root = _field(data, "Root", path)
    if not isinstance(root, str) or not root:
        raise ArtifactError(f"Artifact {path}: Root must be a non-empty string")
    hashes = _as_str_list(_field(data, "LeafHashes", path), "LeafHashes", path)
    if not hashes:
        raise ArtifactError(f"Artifact {path}: LeafHashes must not be empty")
    raw_sizes = _field(data, "LeafSizes", path)
    if not isinstance(raw_sizes, list):
        raise ArtifactError(f"Artifact {path}: LeafSizes must be a list")
    sizes = [_as_int(s, "LeafSizes", path) for s in raw_sizes]
    try:
        leaves = LeafSequence(hashes, sizes)
    except ValueError as exc:
        raise ArtifactError(f"Artifact {path}: {exc}") from exc
    return DatasetProof(root=root, leaves=leaves)


def load_challenge_proof(path: Path) -> ChallengeProof:
    """Load {DatasetId, RandomSeed, Leaves, Siblings, Paths}."""
    data = _read_json(path)
    leaves = _as_str_list(_field(data, "Leaves", path), "Leaves", path)
    raw_siblings = _field(data, "Siblings", path)
    if not isinstance(raw_siblings, list):
        raise ArtifactError(f"Artifact {path}: Siblings must be a list of lists")
    siblings = tuple(
        tuple(_as_str_list(s, "Siblings", path)) for s in raw_siblings
    )
    raw_paths = _field(data, "Paths", path)
    if not isinstance(raw_paths, list):
        raise ArtifactError(f"Artifact {path}: Paths must be a list")
    paths = tuple(_as_int(p, "Paths", path) for p in raw_paths)

    if not (len(leaves) == len(siblings) == len(paths)):
        raise ArtifactError(
            f"Artifact {path}: Leaves ({len(leaves)}), Siblings ({len(siblings)}) "
            f"and Paths ({len(paths)}) must have equal length"
        )

    return ChallengeProof(
        dataset_id=_as_int(_field(data, "DatasetId", path), "DatasetId", path),
        random_seed=_as_int(_field(data, "RandomSeed", path), "RandomSeed", path),
        leaves=tuple(leaves),
        siblings=siblings,
        paths=paths,
    )


def load_dataset_metadata(path: Path) -> DatasetMetadata:
    """Load a dataset metadata artifact (camelCase keys)."""
    data = _read_json(path)

    def text(name: str) -> str:
        value = _field(data, name, path)
        if not isinstance(value, str):
            raise ArtifactError(f"Artifact {path}: {name} must be a string")
        return value

    def number(name: str) -> int:
        return _as_int(_field(data, name, path), name, path)

    is_public = _field(data, "isPublic", path)
    if not isinstance(is_public, bool):
        raise ArtifactError(f"Artifact {path}: isPublic must be a boolean")

    return DatasetMetadata(
        client=number("client"),
        title=text("title"),
        industry=text("industry"),
        name=text("name"),
        description=text("description"),
        source=text("source"),
        access_method=text("accessMethod"),
        size_in_bytes=number("sizeInBytes"),
        is_public=is_public,
        version=number("version"),
        proof_block_count=number("proofBlockCount"),
        audit_block_count=number("auditBlockCount"),
    )


def _field_any(data: dict[str, Any], names: tuple[str, ...], path: Path) -> Any:
    for name in names:
        if name in data:
            return data[name]
    raise ArtifactError(f"Artifact {path} is missing field {names[0]!r}")


def _as_list(value: Any, name: str, path: Path) -> list[Any]:
    if not isinstance(value, list):
        raise ArtifactError(f"Artifact {path}: {name} must be a list")
    return value


def load_replica_requirements(path: Path) -> DatasetReplicaRequirements:
    """Load {datasetId, dataPreparers, storageProviders, regions, countries, cities, amount}.

    The contract's spellings "countrys" and "citys" are accepted too.
    Every per-replica list must have one entry per replica.
    """
    data = _read_json(path)

    def int_list(value: Any, name: str) -> tuple[int, ...]:
        return tuple(_as_int(v, name, path) for v in _as_list(value, name, path))

    def nested(value: Any, name: str, item: Any) -> tuple[tuple[Any, ...], ...]:
        return tuple(
            tuple(item(v, name) for v in _as_list(group, name, path))
            for group in _as_list(value, name, path)
        )

    def address(value: Any, name: str) -> str:
        if not isinstance(value, str) or not Web3.is_address(value):
            raise ArtifactError(f"Artifact {path}: {name} entry {value!r} is not an address")
        return value

    requirements = DatasetReplicaRequirements(
        dataset_id=_as_int(_field(data, "datasetId", path), "datasetId", path),
        data_preparers=nested(_field(data, "dataPreparers", path), "dataPreparers", address),
        storage_providers=nested(
            _field(data, "storageProviders", path), "storageProviders",
            lambda v, name: _as_int(v, name, path),
        ),
        regions=int_list(_field(data, "regions", path), "regions"),
        countries=int_list(_field_any(data, ("countries", "countrys"), path), "countries"),
        cities=nested(
            _field_any(data, ("cities", "citys"), path), "cities",
            lambda v, name: _as_int(v, name, path),
        ),
        amount=_as_int(_field(data, "amount", path), "amount", path),
    )

    replicas = requirements.replica_count
    if replicas == 0:
        raise ArtifactError(f"Artifact {path}: at least one replica is required")
    for name, values in (
        ("dataPreparers", requirements.data_preparers),
        ("storageProviders", requirements.storage_providers),
        ("countries", requirements.countries),
        ("cities", requirements.cities),
    ):
        if len(values) != replicas:
            raise ArtifactError(
                f"Artifact {path}: {name} has {len(values)} entries for {replicas} replicas"
            )
    if requirements.amount < 0:
        raise ArtifactError(f"Artifact {path}: amount must not be negative")
    return requirements
