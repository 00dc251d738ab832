"""Row builders and write queries for dependency-graph persistence.

Rows are plain dicts fed to `UNWIND $rows AS row` statements, one batch at a time.
"""

from __future__ import annotations

from typing import Iterable, Iterator, Sequence, TypeVar

from dependency_indexer.core.records import DependencyEdge, FileNode
from dependency_indexer.persistence.constants import LABEL_FILE, REL_DEPENDS_ON

T = TypeVar("T")


MERGE_FILES_QUERY = f"""
UNWIND $rows AS row
MERGE (f:`{LABEL_FILE}` {{repo_id: row.repo_id, file_path: row.file_path}})
SET f.relative_path = row.relative_path,
    f.language = row.language,
    f.extension = row.extension,
    f.updated_at = datetime()
"""

# Endpoints are MATCHed, never created: an edge to an unwritten file is dropped by Neo4j.
MERGE_DEPENDENCIES_QUERY = f"""
UNWIND $rows AS row
MATCH (src:`{LABEL_FILE}` {{repo_id: row.repo_id, file_path: row.from_path}})
MATCH (dst:`{LABEL_FILE}` {{repo_id: row.repo_id, file_path: row.to_path}})
MERGE (src)-[d:`{REL_DEPENDS_ON}`]->(dst)
SET d.import_type = row.import_type,
    d.line_number = row.line_number
"""

CLEAR_REPOSITORY_QUERY = f"""
MATCH (f:`{LABEL_FILE}` {{repo_id: $repo_id}})
DETACH DELETE f
"""


def file_rows(files: Iterable[FileNode]) -> list[dict]:
    return [
        {
            "repo_id": f.repo_id,
            "file_path": f.file_path,
            "relative_path": f.relative_path,
            "language": f.language,
            "extension": f.extension,
        }
        for f in files
    ]


def dependency_rows(repo_id: str, edges: Iterable[DependencyEdge]) -> list[dict]:
    """One row per (importer, target) pair; the first import of a pair wins."""

    seen: set[tuple[str, str]] = set()
    rows: list[dict] = []
    for e in edges:
        key = (e.from_path, e.to_path)
        if key in seen:
            continue
        seen.add(key)
        rows.append(
            {
                "repo_id": repo_id,
                "from_path": e.from_path,
                "to_path": e.to_path,
                "import_type": e.import_type,
                "line_number": int(e.line_number),
            }
        )
    return rows


def batched(items: Sequence[T], size: int) -> Iterator[Sequence[T]]:
    if size <= 0:
        raise ValueError(f"Batch size must be positive, got {size}")
    for i in range(0, len(items), size):
        yield items[i : i + size]
