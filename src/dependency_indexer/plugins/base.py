"""Parser plugin contract."""

from __future__ import annotations

from typing import Protocol

from dependency_indexer.core.records import ExportStatement, ImportStatement, ParsedFile


class LanguageParser(Protocol):
    language: str
    supported_extensions: tuple[str, ...]

    def parse_file(self, file_path: str, content: str) -> ParsedFile:
        """Extract imports and exports; must not raise on broken input."""

    def extract_imports(self, file_path: str, content: str) -> list[ImportStatement]:
        """Imports only (empty on parse failure)."""

    def extract_exports(self, file_path: str, content: str) -> list[ExportStatement]:
        """Exports only (empty on parse failure)."""
