"""Contract ABI fragments for the functions and events the submitter uses.

Only the entries the gateway calls are listed. Enum parameters
(dataset data type) are encoded as uint8, matching Solidity's ABI.
"""

from __future__ import annotations

from typing import Any

from dataproof.ledger.gateway import LedgerContract


def _params(*specs: tuple[str, str]) -> list[dict[str, Any]]:
    return [{"name": name, "type": type_} for name, type_ in specs]


def _function(
    name: str,
    inputs: list[dict[str, Any]],
    outputs: list[dict[str, Any]] | None = None,
    mutability: str = "nonpayable",
) -> dict[str, Any]:
    return {
        "type": "function",
        "name": name,
        "inputs": inputs,
        "outputs": outputs or [],
        "stateMutability": mutability,
    }


def _view(name: str, inputs: list[dict[str, Any]], *outputs: tuple[str, str]) -> dict[str, Any]:
    return _function(name, inputs, _params(*outputs), mutability="view")


DATASET_PROOF_ABI: list[dict[str, Any]] = [
    _function("submitDatasetProofRoot", _params(
        ("_datasetId", "uint64"),
        ("_dataType", "uint8"),
        ("_mappingFilesAccessMethod", "string"),
        ("_rootHash", "bytes32"),
    )),
    _function("submitDatasetProof", _params(
        ("_datasetId", "uint64"),
        ("_dataType", "uint8"),
        ("_leafHashes", "bytes32[]"),
        ("_leafIndex", "uint64"),
        ("_leafSizes", "uint64[]"),
        ("_completed", "bool"),
    )),
    _function("submitDatasetProofCompleted", _params(("_datasetId", "uint64"))),
    _function("completeEscrow", _params(("_datasetId", "uint64"))),
    _view("getDatasetProofCount",
          _params(("_datasetId", "uint64"), ("_dataType", "uint8")),
          ("", "uint64")),
    _view("getDatasetProofRootHash",
          _params(("_datasetId", "uint64"), ("_dataType", "uint8")),
          ("", "bytes32")),
    _view("getDatasetProofSubmitter",
          _params(("_datasetId", "uint64")),
          ("", "address")),
    _view("isDatasetProofallCompleted",
          _params(("_datasetId", "uint64"), ("_dataType", "uint8")),
          ("", "bool")),
]

DATASET_CHALLENGE_ABI: list[dict[str, Any]] = [
    _function("submitDatasetChallengeProofs", _params(
        ("_datasetId", "uint64"),
        ("_randomSeed", "uint64"),
        ("_leaves", "bytes32[]"),
        ("_siblings", "bytes32[][]"),
        ("_paths", "uint32[]"),
    )),
    _function("auditorStake", _params(("_datasetId", "uint64")), mutability="payable"),
    _view("isDatasetChallengeProofDuplicate",
          _params(("_datasetId", "uint64"), ("_auditor", "address"), ("_randomSeed", "uint64")),
          ("", "bool")),
    _view("isWinner",
          _params(("_datasetId", "uint64"), ("_account", "address")),
          ("", "bool")),
]

DATASET_METADATA_ABI: list[dict[str, Any]] = [
    _function("submitDatasetMetadata", _params(
        ("_client", "uint64"),
        ("_title", "string"),
        ("_industry", "string"),
        ("_name", "string"),
        ("_description", "string"),
        ("_source", "string"),
        ("_accessMethod", "string"),
        ("_sizeInBytes", "uint64"),
        ("_isPublic", "bool"),
        ("_version", "uint64"),
    ), _params(("", "uint64"))),
    _function("updateDatasetTimeoutParameters", _params(
        ("_datasetId", "uint64"),
        ("_proofBlockCount", "uint64"),
        ("_auditBlockCount", "uint64"),
    )),
    _view("hasDatasetMetadata", _params(("_accessMethod", "string")), ("", "bool")),
    _view("getDatasetIdForAccessMethod", _params(("_accessMethod", "string")), ("", "uint64")),
    _view("getDatasetTimeoutParameters",
          _params(("_datasetId", "uint64")),
          ("proofBlockCount", "uint64"), ("auditBlockCount", "uint64")),
    _view("getDatasetState", _params(("_datasetId", "uint64")), ("", "uint8")),
    {
        "type": "event",
        "name": "DatasetMetadataSubmitted",
        "anonymous": False,
        "inputs": [
            {"name": "datasetId", "type": "uint64", "indexed": True},
            {"name": "provider", "type": "address", "indexed": True},
        ],
    },
]

DATASET_REQUIREMENT_ABI: list[dict[str, Any]] = [
    _function("submitDatasetReplicaRequirements", _params(
        ("_datasetId", "uint64"),
        ("_dataPreparers", "address[][]"),
        ("_storageProviders", "uint64[][]"),
        ("_regions", "uint8[]"),
        ("_countrys", "uint16[]"),
        ("_citys", "uint32[][]"),
        ("_amount", "uint256"),
    )),
]

FILPLUS_ABI: list[dict[str, Any]] = [
    _view("datasetRuleMinProofTimeout", [], ("", "uint64")),
    _view("datasetRuleMinAuditTimeout", [], ("", "uint64")),
]

CONTRACT_ABIS: dict[LedgerContract, list[dict[str, Any]]] = {
    LedgerContract.DATASET_PROOF: DATASET_PROOF_ABI,
    LedgerContract.DATASET_CHALLENGE: DATASET_CHALLENGE_ABI,
    LedgerContract.DATASET_METADATA: DATASET_METADATA_ABI,
    LedgerContract.DATASET_REQUIREMENT: DATASET_REQUIREMENT_ABI,
    LedgerContract.FILPLUS: FILPLUS_ABI,
}
