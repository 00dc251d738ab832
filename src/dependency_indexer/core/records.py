"""Record contracts shared by the parser, resolver, indexer and graph store."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Literal, Optional


ImportKind = Literal["default", "named", "namespace", "side-effect", "dynamic", "require"]
Language = str  # "typescript" | "javascript" | "unknown"


@dataclass(frozen=True)
class ImportStatement:
    source: str
    kind: ImportKind
    identifiers: tuple[str, ...] = ()
    line_number: int = 0


@dataclass(frozen=True)
class ExportStatement:
    identifiers: tuple[str, ...]
    source: Optional[str] = None
    is_default: bool = False
    line_number: int = 0

    @property
    def is_reexport(self) -> bool:
        return self.source is not None


@dataclass(frozen=True)
class ParsedFile:
    file_path: str
    language: Language
    imports: tuple[ImportStatement, ...] = ()
    exports: tuple[ExportStatement, ...] = ()
    errors: tuple[str, ...] = ()

    @property
    def ok(self) -> bool:
        return not self.errors


@dataclass(frozen=True)
class FileNode:
    file_path: str
    repo_id: str
    language: Language
    extension: str
    relative_path: str


@dataclass(frozen=True)
class DependencyEdge:
    from_path: str
    to_path: str
    import_type: ImportKind
    line_number: int = 0


@dataclass
class IndexStats:
    files_processed: int = 0
    dependencies_found: int = 0
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    def as_dict(self) -> dict:
        return {
            "files_processed": self.files_processed,
            "dependencies_found": self.dependencies_found,
            "errors": list(self.errors),
            "warnings": list(self.warnings),
        }


@dataclass
class IndexResult:
    files: list[FileNode]
    dependencies: list[DependencyEdge]
    stats: IndexStats
