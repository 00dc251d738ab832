"""Neo4j-backed store for the file dependency graph.

Writes are full replacements per repository (clear, then nodes, then edges);
every read is scoped to a single `repo_id` and returns plain dict rows.
"""

from __future__ import annotations

from typing import Any, Callable, Optional, Sequence

import structlog
from neo4j import ManagedTransaction

from dependency_indexer.config import TRANSITIVE_DEPTH_CEILING, DependencyIndexerSettings
from dependency_indexer.core.records import IndexResult
from dependency_indexer.errors import GraphStoreError
from dependency_indexer.persistence.constants import LABEL_FILE, REL_DEPENDS_ON
from dependency_indexer.persistence.neo4j_writer import (
    CLEAR_REPOSITORY_QUERY,
    MERGE_DEPENDENCIES_QUERY,
    MERGE_FILES_QUERY,
    batched,
    dependency_rows,
    file_rows,
)
from dependency_indexer.persistence.schema_query_builder import SchemaQueryBuilder
from dependency_indexer.utils.neo4j_client import Neo4jClient


logger = structlog.get_logger(__name__)


REPOSITORY_FILE_COUNT_QUERY = f"""
MATCH (f:`{LABEL_FILE}` {{repo_id: $repo_id}})
RETURN count(f) AS count
"""

REPOSITORY_DEPENDENCY_COUNT_QUERY = f"""
MATCH (:`{LABEL_FILE}` {{repo_id: $repo_id}})-[r:`{REL_DEPENDS_ON}`]->(:`{LABEL_FILE}` {{repo_id: $repo_id}})
RETURN count(r) AS count
"""

REPOSITORY_LANGUAGE_QUERY = f"""
MATCH (f:`{LABEL_FILE}` {{repo_id: $repo_id}})
RETURN f.language AS language, count(f) AS count
ORDER BY count DESC, language ASC
"""

MOST_IMPORTED_QUERY = f"""
MATCH (f:`{LABEL_FILE}` {{repo_id: $repo_id}})<-[r:`{REL_DEPENDS_ON}`]-(:`{LABEL_FILE}` {{repo_id: $repo_id}})
RETURN f.file_path AS file_path, f.relative_path AS relative_path, count(r) AS count
ORDER BY count DESC, relative_path ASC
LIMIT $limit
"""

MOST_DEPENDENT_QUERY = f"""
MATCH (f:`{LABEL_FILE}` {{repo_id: $repo_id}})-[r:`{REL_DEPENDS_ON}`]->(:`{LABEL_FILE}` {{repo_id: $repo_id}})
RETURN f.file_path AS file_path, f.relative_path AS relative_path, count(r) AS count
ORDER BY count DESC, relative_path ASC
LIMIT $limit
"""

ORPHANED_FILES_QUERY = f"""
MATCH (f:`{LABEL_FILE}` {{repo_id: $repo_id}})
WHERE NOT EXISTS {{ (f)-[:`{REL_DEPENDS_ON}`]-() }}
RETURN f.file_path AS file_path, f.relative_path AS relative_path
ORDER BY relative_path ASC
"""

FILE_DEPENDENCIES_QUERY = f"""
MATCH (f:`{LABEL_FILE}` {{repo_id: $repo_id, file_path: $file_path}})-[r:`{REL_DEPENDS_ON}`]->(dst:`{LABEL_FILE}`)
RETURN dst.file_path AS file_path, dst.relative_path AS relative_path,
       r.import_type AS import_type, r.line_number AS line_number
ORDER BY relative_path ASC
"""

FILE_DEPENDENTS_QUERY = f"""
MATCH (src:`{LABEL_FILE}`)-[r:`{REL_DEPENDS_ON}`]->(f:`{LABEL_FILE}` {{repo_id: $repo_id, file_path: $file_path}})
RETURN src.file_path AS file_path, src.relative_path AS relative_path,
       r.import_type AS import_type, r.line_number AS line_number
ORDER BY relative_path ASC
"""

GRAPH_NODES_QUERY = f"""
MATCH (f:`{LABEL_FILE}` {{repo_id: $repo_id}})
RETURN f.file_path AS file_path, f.relative_path AS relative_path,
       f.language AS language, f.extension AS extension
ORDER BY relative_path ASC
LIMIT $limit
"""

GRAPH_EDGES_QUERY = f"""
MATCH (src:`{LABEL_FILE}` {{repo_id: $repo_id}})-[r:`{REL_DEPENDS_ON}`]->(dst:`{LABEL_FILE}` {{repo_id: $repo_id}})
RETURN src.file_path AS from_path, dst.file_path AS to_path, r.import_type AS import_type
ORDER BY from_path ASC, to_path ASC
LIMIT $limit
"""


def _validate_bounds(name: str, value: int, lower: int, upper: int) -> int:
    # Variable-length bounds cannot be query parameters in Cypher, so they are inlined after validation.
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"{name} must be an integer, got {value!r}")
    if not lower <= value <= upper:
        raise ValueError(f"{name} must be between {lower} and {upper}, got {value}")
    return value


def circular_dependencies_query(min_length: int, max_length: int) -> str:
    """Simple directed cycles, each returned once starting at its smallest relative path.

    The ring excludes the closing node: A->B->C->A is returned as [A, B, C].
    """

    lo = _validate_bounds("min_length", min_length, 2, TRANSITIVE_DEPTH_CEILING)
    hi = _validate_bounds("max_length", max_length, lo, TRANSITIVE_DEPTH_CEILING)
    return f"""
MATCH path = (start:`{LABEL_FILE}` {{repo_id: $repo_id}})-[:`{REL_DEPENDS_ON}`*{lo}..{hi}]->(start)
WHERE ALL(n IN nodes(path) WHERE n.repo_id = $repo_id)
WITH start, [n IN nodes(path) | n.relative_path] AS names
WITH start, names[0..size(names) - 1] AS ring
WHERE ALL(x IN ring WHERE size([y IN ring WHERE y = x]) = 1)
  AND ALL(x IN ring WHERE start.relative_path <= x)
RETURN DISTINCT ring AS cycle
ORDER BY size(cycle) ASC, cycle ASC
LIMIT $limit
"""


def transitive_dependencies_query(max_depth: int) -> str:
    depth = _validate_bounds("max_depth", max_depth, 1, TRANSITIVE_DEPTH_CEILING)
    return f"""
MATCH path = (f:`{LABEL_FILE}` {{repo_id: $repo_id, file_path: $file_path}})-[:`{REL_DEPENDS_ON}`*1..{depth}]->(dep:`{LABEL_FILE}`)
WHERE ALL(n IN nodes(path) WHERE n.repo_id = $repo_id)
RETURN [n IN nodes(path) | n.relative_path] AS path, length(path) AS depth
ORDER BY depth ASC, path ASC
LIMIT $limit
"""


def canonical_cycle(ring: Sequence[str]) -> tuple[str, ...]:
    """Rotate a ring so it starts at its smallest element, keeping edge direction."""

    items = list(ring)
    if len(items) > 1 and items[0] == items[-1]:
        items = items[:-1]
    if not items:
        return ()
    pivot = items.index(min(items))
    return tuple(items[pivot:] + items[:pivot])


class Neo4jGraphStore:
    """Schema setup, full-replace writes and analytics over `File`/`DEPENDS_ON`."""

    def __init__(
        self,
        client: Neo4jClient,
        settings: Optional[DependencyIndexerSettings] = None,
        query_builder: Optional[SchemaQueryBuilder] = None,
    ) -> None:
        self.client = client
        self.settings = settings or DependencyIndexerSettings()
        self.query_builder = query_builder or SchemaQueryBuilder()

    # Execution helpers

    def _read(self, query: str, params: dict[str, Any]) -> list[dict]:
        try:
            return self.client.execute_read(query, params)
        except Exception as e:
            logger.error("graph_store.read_failed", error=str(e), params=_loggable(params))
            raise GraphStoreError(f"Graph read failed: {e}", query=query) from e

    def _write(self, query: str, params: dict[str, Any]) -> list[dict]:
        try:
            return self.client.execute_write(query, params)
        except Exception as e:
            logger.error("graph_store.write_failed", error=str(e), params=_loggable(params))
            raise GraphStoreError(f"Graph write failed: {e}", query=query) from e

    def _transaction(self, work: Callable[[ManagedTransaction], Any], what: str) -> Any:
        try:
            return self.client.execute_write_transaction(work)
        except Exception as e:
            logger.error("graph_store.transaction_failed", operation=what, error=str(e))
            raise GraphStoreError(f"Graph transaction '{what}' failed: {e}") from e

    # Schema and writes

    def initialize_schema(self) -> None:
        queries = self.query_builder.get_schema_queries()
        for q in queries:
            self._write(q, {})
        logger.info("graph_store.schema_initialized", query_count=len(queries))

    def clear_repository_graph(self, repo_id: str) -> None:
        self._write(CLEAR_REPOSITORY_QUERY, {"repo_id": repo_id})
        logger.info("graph_store.repository_cleared", repo_id=repo_id)

    def _batches(self, result: IndexResult) -> tuple[list[list[dict]], list[list[dict]]]:
        size = self.settings.GRAPH_WRITE_BATCH_SIZE
        nodes = file_rows(result.files)
        repo_id = nodes[0]["repo_id"] if nodes else ""
        edges = dependency_rows(repo_id, result.dependencies) if nodes else []
        return [list(b) for b in batched(nodes, size)], [list(b) for b in batched(edges, size)]

    def store_index_result(self, result: IndexResult) -> None:
        """Write nodes then edges, one transaction per batch."""

        node_batches, edge_batches = self._batches(result)
        for rows in node_batches:
            self._write(MERGE_FILES_QUERY, {"rows": rows})
        # Edge batches start only once every node batch has committed.
        for rows in edge_batches:
            self._write(MERGE_DEPENDENCIES_QUERY, {"rows": rows})
        logger.info(
            "graph_store.index_result_stored",
            node_batches=len(node_batches),
            edge_batches=len(edge_batches),
            files=len(result.files),
        )

    def replace_repository_graph(self, repo_id: str, result: IndexResult) -> None:
        """Clear and rewrite one repository.

        With `GRAPH_ATOMIC_REPLACE` the clear and every batch share one write
        transaction, so a failure leaves the previous graph in place.
        """

        if not self.settings.GRAPH_ATOMIC_REPLACE:
            self.clear_repository_graph(repo_id)
            self.store_index_result(result)
            return

        node_batches, edge_batches = self._batches(result)

        def work(tx: ManagedTransaction) -> None:
            tx.run(CLEAR_REPOSITORY_QUERY, {"repo_id": repo_id}).consume()
            for rows in node_batches:
                tx.run(MERGE_FILES_QUERY, {"rows": rows}).consume()
            for rows in edge_batches:
                tx.run(MERGE_DEPENDENCIES_QUERY, {"rows": rows}).consume()

        self._transaction(work, "replace_repository_graph")
        logger.info(
            "graph_store.repository_replaced",
            repo_id=repo_id,
            node_batches=len(node_batches),
            edge_batches=len(edge_batches),
        )

    # Analytics

    def get_repository_stats(self, repo_id: str) -> dict:
        params = {"repo_id": repo_id}
        files = self._read(REPOSITORY_FILE_COUNT_QUERY, params)
        deps = self._read(REPOSITORY_DEPENDENCY_COUNT_QUERY, params)
        languages = self._read(REPOSITORY_LANGUAGE_QUERY, params)
        return {
            "file_count": int(files[0]["count"]) if files else 0,
            "dependency_count": int(deps[0]["count"]) if deps else 0,
            "language_breakdown": {str(r["language"]): int(r["count"]) for r in languages},
        }

    def get_most_imported_files(self, repo_id: str, limit: int = 10) -> list[dict]:
        return self._read(MOST_IMPORTED_QUERY, {"repo_id": repo_id, "limit": int(limit)})

    def get_most_dependent_files(self, repo_id: str, limit: int = 10) -> list[dict]:
        return self._read(MOST_DEPENDENT_QUERY, {"repo_id": repo_id, "limit": int(limit)})

    def find_circular_dependencies(
        self,
        repo_id: str,
        *,
        min_length: Optional[int] = None,
        max_length: Optional[int] = None,
        limit: Optional[int] = None,
    ) -> list[list[str]]:
        lo = self.settings.CYCLE_MIN_LENGTH if min_length is None else min_length
        hi = self.settings.CYCLE_MAX_LENGTH if max_length is None else max_length
        cap = self.settings.CYCLE_RESULT_LIMIT if limit is None else limit
        query = circular_dependencies_query(lo, hi)
        rows = self._read(query, {"repo_id": repo_id, "limit": int(cap)})

        cycles: list[list[str]] = []
        seen: set[tuple[str, ...]] = set()
        for r in rows:
            ring = canonical_cycle(r["cycle"])
            if ring and ring not in seen:
                seen.add(ring)
                cycles.append(list(ring))
        return cycles

    def find_orphaned_files(self, repo_id: str) -> list[dict]:
        return self._read(ORPHANED_FILES_QUERY, {"repo_id": repo_id})

    def get_file_dependencies(self, repo_id: str, file_path: str) -> list[dict]:
        return self._read(FILE_DEPENDENCIES_QUERY, {"repo_id": repo_id, "file_path": file_path})

    def get_file_dependents(self, repo_id: str, file_path: str) -> list[dict]:
        return self._read(FILE_DEPENDENTS_QUERY, {"repo_id": repo_id, "file_path": file_path})

    def get_transitive_dependencies(
        self,
        repo_id: str,
        file_path: str,
        max_depth: Optional[int] = None,
        limit: int = 500,
    ) -> list[dict]:
        depth = self.settings.TRANSITIVE_MAX_DEPTH if max_depth is None else max_depth
        query = transitive_dependencies_query(depth)
        rows = self._read(query, {"repo_id": repo_id, "file_path": file_path, "limit": int(limit)})
        return [{"path": list(r["path"]), "depth": int(r["depth"])} for r in rows]

    def get_repository_graph(self, repo_id: str, node_limit: int = 500, edge_limit: int = 1000) -> dict:
        nodes = self._read(GRAPH_NODES_QUERY, {"repo_id": repo_id, "limit": int(node_limit)})
        edges = self._read(GRAPH_EDGES_QUERY, {"repo_id": repo_id, "limit": int(edge_limit)})
        return {"nodes": nodes, "edges": edges}


def _loggable(params: dict[str, Any]) -> dict[str, Any]:
    # Row batches can be large; log their size instead of their content.
    return {k: (f"<{len(v)} rows>" if k == "rows" else v) for k, v in params.items()}
