"""Graph contract validation.

Validates invariants of an index result before it is persisted to Neo4j.
"""

from __future__ import annotations

from dependency_indexer.core.records import IndexResult
from dependency_indexer.errors import GraphContractViolation

__all__ = ["GraphContractViolation", "validate_graph_contract"]


def validate_graph_contract(*, repo_id: str, result: IndexResult) -> None:
    file_paths = set()
    for f in result.files:
        if f.repo_id != repo_id:
            raise GraphContractViolation(f"File repo_id mismatch: {f.file_path}")
        if not f.file_path:
            raise GraphContractViolation("File file_path is empty")
        if f.file_path in file_paths:
            raise GraphContractViolation(f"Duplicate file_path detected: {f.file_path}")
        file_paths.add(f.file_path)

    for e in result.dependencies:
        if e.from_path not in file_paths:
            raise GraphContractViolation(f"Edge source is not an indexed file: {e.from_path}")
        if e.to_path not in file_paths:
            raise GraphContractViolation(f"Edge target is not an indexed file: {e.to_path}")
