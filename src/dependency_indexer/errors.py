"""Exception hierarchy raised across the indexing pipeline."""

from __future__ import annotations


class DependencyIndexerError(Exception):
    """Base class for errors surfaced to callers of the indexer."""


class GraphStoreError(DependencyIndexerError):
    """The graph database rejected a query or could not be reached."""

    def __init__(self, message: str, *, query: str | None = None) -> None:
        super().__init__(message)
        self.query = query


class IndexingInProgressError(DependencyIndexerError):
    """Another indexing run for the same repository is still in flight."""

    def __init__(self, repo_id: str) -> None:
        super().__init__(f"Indexing already in progress for repository {repo_id}")
        self.repo_id = repo_id


class IndexingCancelledError(DependencyIndexerError):
    """The caller signalled cancellation before the graph was written."""


class RepositoryNotFoundError(DependencyIndexerError):
    """The repository root is missing or is not a directory."""

    def __init__(self, repo_root: str) -> None:
        super().__init__(f"Repository root is not a directory: {repo_root}")
        self.repo_root = repo_root


class GraphContractViolation(DependencyIndexerError):
    """An index result breaks a graph invariant and must not be persisted."""
