"""Dependency indexer: TS/JS import graphs stored in and queried from Neo4j."""

from dependency_indexer.core.orchestrator import RepositoryLocks, index_repository
from dependency_indexer.core.records import IndexStats
from dependency_indexer.errors import (
    DependencyIndexerError,
    GraphContractViolation,
    GraphStoreError,
    IndexingCancelledError,
    IndexingInProgressError,
    RepositoryNotFoundError,
)

__all__ = [
    "DependencyIndexerError",
    "GraphContractViolation",
    "GraphStoreError",
    "IndexStats",
    "IndexingCancelledError",
    "IndexingInProgressError",
    "RepositoryLocks",
    "RepositoryNotFoundError",
    "index_repository",
]
