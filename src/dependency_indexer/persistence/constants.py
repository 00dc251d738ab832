"""
Labels, relationship types and schema object names of the dependency graph.

Shared by the schema builder and the graph store so queries and schema never drift apart.
"""

# Node labels
LABEL_FILE = "File"

# Relationship types
REL_DEPENDS_ON = "DEPENDS_ON"

# Schema object names
CONSTRAINT_FILE_IDENTITY = "file_repo_path_unique"
INDEX_FILE_REPO = "file_repo_id"
INDEX_FILE_LANGUAGE = "file_language"
INDEX_FILE_RELATIVE_PATH = "file_relative_path"
INDEX_DEPENDS_ON_IMPORT_TYPE = "depends_on_import_type"
