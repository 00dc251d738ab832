"""Indexer-specific configuration for the dependency indexer."""

from __future__ import annotations

from functools import lru_cache

from pydantic import Field, field_validator, model_validator

from dependency_indexer.configuration.base_config import BaseConfig


DEFAULT_IGNORE_DIRS: tuple[str, ...] = (
    "node_modules",
    ".git",
    "dist",
    "build",
    ".next",
    "coverage",
    ".turbo",
)

DEFAULT_IGNORE_PATTERNS: tuple[str, ...] = (
    "*.test.ts",
    "*.test.tsx",
    "*.test.js",
    "*.test.jsx",
    "*.spec.ts",
    "*.spec.tsx",
    "*.spec.js",
    "*.spec.jsx",
    "*.d.ts",
)

DEFAULT_EXTENSIONS: tuple[str, ...] = (".ts", ".tsx", ".js", ".jsx", ".mjs", ".cjs")

# Hard ceiling for transitive traversals; callers may only ask for less.
TRANSITIVE_DEPTH_CEILING = 10


class DependencyIndexerSettings(BaseConfig):
    """Settings for discovery, parsing, resolution and graph persistence."""

    INDEX_IGNORE_DIRS: list[str] = Field(
        default_factory=lambda: list(DEFAULT_IGNORE_DIRS),
        description="Directory names skipped at any depth during discovery.",
    )
    INDEX_IGNORE_PATTERNS: list[str] = Field(
        default_factory=lambda: list(DEFAULT_IGNORE_PATTERNS),
        description="gitwildmatch patterns for files excluded from indexing.",
    )
    INDEX_RESPECT_GITIGNORE: bool = Field(
        default=False,
        description="Also exclude paths matched by the repository root .gitignore.",
    )
    INDEX_MAX_WORKERS: int = Field(
        default=4,
        description="Thread pool size for per-file parse/resolve work.",
        ge=1,
        le=64,
    )
    RESOLVE_EXTENSIONS: list[str] = Field(
        default_factory=lambda: list(DEFAULT_EXTENSIONS),
        description="Ordered extensions probed when resolving an import.",
    )
    TSCONFIG_FILENAME: str = Field(
        default="tsconfig.json",
        description="Repo-root JSON file carrying compilerOptions.paths aliases.",
    )
    PARSE_MAX_ERROR_RATIO: float = Field(
        default=0.0,
        description="Max tree-sitter (ERROR + MISSING) node ratio tolerated before a file counts as unparseable.",
        ge=0.0,
        le=1.0,
    )
    GRAPH_WRITE_BATCH_SIZE: int = Field(default=100, description="Rows per UNWIND write.", ge=1)
    GRAPH_ATOMIC_REPLACE: bool = Field(
        default=True,
        description="Clear and rewrite a repository graph inside a single write transaction.",
    )
    CYCLE_MIN_LENGTH: int = Field(default=2, ge=2, description="Shortest cycle reported.")
    CYCLE_MAX_LENGTH: int = Field(default=5, ge=2, le=10, description="Longest cycle searched.")
    CYCLE_RESULT_LIMIT: int = Field(default=20, ge=1, description="Max cycles returned per query.")
    TRANSITIVE_MAX_DEPTH: int = Field(
        default=5,
        ge=1,
        le=TRANSITIVE_DEPTH_CEILING,
        description="Default depth of transitive dependency traversals.",
    )

    @field_validator("RESOLVE_EXTENSIONS")
    @classmethod
    def validate_extensions(cls, v: list[str]) -> list[str]:
        if not v:
            raise ValueError("RESOLVE_EXTENSIONS must not be empty")
        bad = [e for e in v if not e.startswith(".")]
        if bad:
            raise ValueError(f"Extensions must start with '.', got {bad}")
        return v

    @model_validator(mode="after")
    def validate_cycle_bounds(self) -> "DependencyIndexerSettings":
        if self.CYCLE_MIN_LENGTH > self.CYCLE_MAX_LENGTH:
            raise ValueError("CYCLE_MIN_LENGTH must not exceed CYCLE_MAX_LENGTH")
        return self


@lru_cache()
def get_dependency_indexer_settings() -> DependencyIndexerSettings:
    """Return cached indexer settings instance."""

    return DependencyIndexerSettings()
