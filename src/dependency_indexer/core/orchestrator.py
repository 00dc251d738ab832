"""Indexing orchestrator.

Pipeline:
lock repo -> index filesystem -> validate contract -> ensure schema -> replace graph -> unlock

The filesystem pass finishes before the graph is touched, so a cancelled or
crashed run leaves the previously stored graph intact.
"""

from __future__ import annotations

import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Optional, Protocol

import structlog

from dependency_indexer.config import DependencyIndexerSettings, get_dependency_indexer_settings
from dependency_indexer.core.graph_contract import validate_graph_contract
from dependency_indexer.core.indexer import FileIndexer
from dependency_indexer.core.records import IndexResult, IndexStats
from dependency_indexer.errors import IndexingCancelledError, IndexingInProgressError
from dependency_indexer.observability.tracing import get_tracer


logger = structlog.get_logger(__name__)
tracer = get_tracer(__name__)


class GraphWriter(Protocol):
    def initialize_schema(self) -> None: ...

    def replace_repository_graph(self, repo_id: str, result: IndexResult) -> None: ...


class RepositoryLocks:
    """Process-wide registry allowing one in-flight indexing run per repository."""

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._active: set[str] = set()

    @contextmanager
    def hold(self, repo_id: str) -> Iterator[None]:
        with self._guard:
            if repo_id in self._active:
                raise IndexingInProgressError(repo_id)
            self._active.add(repo_id)
        try:
            yield
        finally:
            with self._guard:
                self._active.discard(repo_id)

    def is_active(self, repo_id: str) -> bool:
        with self._guard:
            return repo_id in self._active


_repository_locks = RepositoryLocks()


def index_repository(
    repo_id: str,
    repo_root: str | Path,
    *,
    graph_store: GraphWriter,
    settings: Optional[DependencyIndexerSettings] = None,
    cancel_event: Optional[threading.Event] = None,
    locks: Optional[RepositoryLocks] = None,
) -> IndexStats:
    """Fully re-index one repository and replace its stored graph.

    Per-file problems end up in the returned stats; graph store failures,
    cancellation and a concurrent run of the same repository raise.
    """

    settings = settings or get_dependency_indexer_settings()
    locks = locks or _repository_locks

    with locks.hold(repo_id), tracer.start_as_current_span("index_repository") as span:
        span.set_attribute("repo_id", repo_id)
        logger.info("index_repository.start", repo_id=repo_id, repo_root=str(repo_root))

        with tracer.start_as_current_span("index"):
            indexer = FileIndexer.create(repo_id, repo_root, settings=settings)
            result = indexer.index_repository(cancel_event=cancel_event)

        if cancel_event is not None and cancel_event.is_set():
            raise IndexingCancelledError(f"Indexing of {repo_id} cancelled before storing")

        validate_graph_contract(repo_id=repo_id, result=result)

        with tracer.start_as_current_span("schema"):
            graph_store.initialize_schema()

        with tracer.start_as_current_span("store"):
            graph_store.replace_repository_graph(repo_id, result)

        span.set_attribute("files_processed", result.stats.files_processed)
        span.set_attribute("dependencies_found", result.stats.dependencies_found)
        logger.info(
            "index_repository.done",
            repo_id=repo_id,
            files_processed=result.stats.files_processed,
            dependencies_found=result.stats.dependencies_found,
            error_count=len(result.stats.errors),
        )
        return result.stats
