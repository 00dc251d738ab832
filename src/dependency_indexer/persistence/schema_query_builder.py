"""
Schema Query Builder

Generates Neo4j constraint and index queries for the dependency graph.
"""

from typing import List

import structlog

from .constants import (
    CONSTRAINT_FILE_IDENTITY,
    INDEX_DEPENDS_ON_IMPORT_TYPE,
    INDEX_FILE_LANGUAGE,
    INDEX_FILE_RELATIVE_PATH,
    INDEX_FILE_REPO,
    LABEL_FILE,
    REL_DEPENDS_ON,
)

logger = structlog.get_logger(__name__)


class SchemaQueryBuilder:
    """Builds Neo4j schema queries."""

    def get_constraint_queries(self) -> List[str]:
        """
        Generate Neo4j constraint queries for the dependency graph.

        Returns:
            List[str]: List of Cypher constraint queries
        """
        constraints = [
            # File identity is scoped by repository
            (f"CREATE CONSTRAINT {CONSTRAINT_FILE_IDENTITY} IF NOT EXISTS FOR (f:`{LABEL_FILE}`) "
             f"REQUIRE (f.repo_id, f.file_path) IS UNIQUE"),
        ]

        logger.debug("Generated constraint queries", count=len(constraints))
        return constraints

    def get_index_queries(self) -> List[str]:
        """
        Generate Neo4j index queries for the dependency graph.

        `repo_id` backs every repository-scoped read and the clear step,
        `relative_path` the ranking tie-breaks and cycle canonicalization.

        Returns:
            List[str]: List of Cypher index creation queries
        """
        indexes = [
            f"CREATE INDEX {INDEX_FILE_REPO} IF NOT EXISTS FOR (f:`{LABEL_FILE}`) ON (f.repo_id)",
            f"CREATE INDEX {INDEX_FILE_LANGUAGE} IF NOT EXISTS FOR (f:`{LABEL_FILE}`) ON (f.language)",
            f"CREATE INDEX {INDEX_FILE_RELATIVE_PATH} IF NOT EXISTS FOR (f:`{LABEL_FILE}`) ON (f.relative_path)",
            (f"CREATE INDEX {INDEX_DEPENDS_ON_IMPORT_TYPE} IF NOT EXISTS "
             f"FOR ()-[r:`{REL_DEPENDS_ON}`]-() ON (r.import_type)"),
        ]

        logger.debug("Generated index queries", count=len(indexes))
        return indexes

    def get_schema_queries(self) -> List[str]:
        """Constraints first; the composite constraint also backs identity lookups."""
        return self.get_constraint_queries() + self.get_index_queries()
