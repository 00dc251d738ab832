"""Repository indexer.

Pipeline per repository:
discover -> (read -> parse -> resolve) per file on a bounded thread pool -> merge

Per-file failures never abort the run; they are collected in `stats.errors`
and the file is left out of the result.
"""

from __future__ import annotations

import threading
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, Optional

import structlog

from dependency_indexer.config import (
    DEFAULT_EXTENSIONS,
    DEFAULT_IGNORE_DIRS,
    DEFAULT_IGNORE_PATTERNS,
    DependencyIndexerSettings,
)
from dependency_indexer.core.ignore_rules import build_ignore_rules
from dependency_indexer.core.inventory import discover_source_files, infer_language
from dependency_indexer.core.records import (
    DependencyEdge,
    FileNode,
    ImportStatement,
    IndexResult,
    IndexStats,
)
from dependency_indexer.core.resolver import DependencyResolver, ResolverConfig, load_resolver_config
from dependency_indexer.errors import IndexingCancelledError, RepositoryNotFoundError
from dependency_indexer.plugins.base import LanguageParser
from dependency_indexer.plugins.registry import default_parsers, select_parser, supported_extensions


logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class IndexerConfig:
    repo_id: str
    repo_root: Path
    ignore_dirs: tuple[str, ...] = DEFAULT_IGNORE_DIRS
    ignore_patterns: tuple[str, ...] = DEFAULT_IGNORE_PATTERNS
    respect_gitignore: bool = False
    max_workers: int = 4


@dataclass
class FileOutcome:
    """Partial result produced by one worker for one file."""

    file_path: str
    file_node: Optional[FileNode] = None
    dependencies: list[DependencyEdge] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    error: Optional[str] = None


class FileIndexer:
    """Index one repository into file nodes and resolved dependency edges."""

    def __init__(
        self,
        config: IndexerConfig,
        resolver: DependencyResolver | None = None,
        parsers: Iterable[LanguageParser] | None = None,
    ) -> None:
        self.config = IndexerConfig(
            repo_id=config.repo_id,
            repo_root=Path(config.repo_root).resolve(),
            ignore_dirs=tuple(config.ignore_dirs),
            ignore_patterns=tuple(config.ignore_patterns),
            respect_gitignore=config.respect_gitignore,
            max_workers=max(1, int(config.max_workers)),
        )
        self.parsers = list(parsers) if parsers is not None else default_parsers()
        self.resolver = resolver or DependencyResolver(
            ResolverConfig(repo_root=str(self.config.repo_root), extensions=DEFAULT_EXTENSIONS)
        )

    @classmethod
    def create(
        cls,
        repo_id: str,
        repo_root: str | Path,
        settings: DependencyIndexerSettings | None = None,
    ) -> "FileIndexer":
        """Build an indexer from settings, loading path aliases from the repo's tsconfig."""

        settings = settings or DependencyIndexerSettings()
        root = Path(repo_root).resolve()
        resolver_config = load_resolver_config(
            root,
            config_filename=settings.TSCONFIG_FILENAME,
            extensions=settings.RESOLVE_EXTENSIONS,
        )
        config = IndexerConfig(
            repo_id=repo_id,
            repo_root=root,
            ignore_dirs=tuple(settings.INDEX_IGNORE_DIRS),
            ignore_patterns=tuple(settings.INDEX_IGNORE_PATTERNS),
            respect_gitignore=settings.INDEX_RESPECT_GITIGNORE,
            max_workers=settings.INDEX_MAX_WORKERS,
        )
        parsers = default_parsers(max_error_ratio=settings.PARSE_MAX_ERROR_RATIO)
        return cls(config, resolver=DependencyResolver(resolver_config), parsers=parsers)

    def index_repository(self, cancel_event: Optional[threading.Event] = None) -> IndexResult:
        root = self.config.repo_root
        # An empty result would clear the stored graph, so a vanished root is a hard failure.
        if not root.is_dir():
            logger.error("index.repo_root_missing", repo_id=self.config.repo_id, repo_root=str(root))
            raise RepositoryNotFoundError(str(root))
        logger.info("index.start", repo_id=self.config.repo_id, repo_root=str(root))

        ignore = build_ignore_rules(
            root,
            ignore_dirs=self.config.ignore_dirs,
            ignore_patterns=self.config.ignore_patterns,
            respect_gitignore=self.config.respect_gitignore,
        )
        discovery = discover_source_files(
            root,
            extensions=supported_extensions(self.parsers),
            ignore=ignore,
            cancel_event=cancel_event,
        )
        logger.info("index.discovered", repo_id=self.config.repo_id, file_count=len(discovery.files))

        outcomes = self._process_all(discovery.files, cancel_event)
        result = self._merge(outcomes, discovery.errors)

        logger.info(
            "index.done",
            repo_id=self.config.repo_id,
            files_processed=result.stats.files_processed,
            dependencies_found=result.stats.dependencies_found,
            error_count=len(result.stats.errors),
            warning_count=len(result.stats.warnings),
        )
        return result

    def _process_all(self, files: list[Path], cancel_event: Optional[threading.Event]) -> list[FileOutcome]:
        if self.config.max_workers == 1 or len(files) <= 1:
            return [self._process_checked(p, cancel_event) for p in files]

        with ThreadPoolExecutor(max_workers=self.config.max_workers) as executor:
            futures: list[Future] = [executor.submit(self._process_checked, p, cancel_event) for p in files]
            outcomes: list[FileOutcome] = []
            try:
                # Collect in submission order so the merged result follows discovery order.
                for fut in futures:
                    outcomes.append(fut.result())
            except IndexingCancelledError:
                for fut in futures:
                    fut.cancel()
                raise
        return outcomes

    def _process_checked(self, path: Path, cancel_event: Optional[threading.Event]) -> FileOutcome:
        if cancel_event is not None and cancel_event.is_set():
            raise IndexingCancelledError(f"Indexing cancelled before {path}")
        return self.process_file(path)

    def process_file(self, path: Path) -> FileOutcome:
        file_path = str(path)
        outcome = FileOutcome(file_path=file_path)
        try:
            content = path.read_text(encoding="utf-8", errors="replace")
            parser = select_parser(file_path, self.parsers)
            parsed = parser.parse_file(file_path, content)
            if parsed.errors:
                outcome.error = f"Failed to process {file_path}: {'; '.join(parsed.errors)}"
                return outcome

            outcome.file_node = FileNode(
                file_path=file_path,
                repo_id=self.config.repo_id,
                language=infer_language(path.suffix),
                extension=path.suffix,
                relative_path=path.relative_to(self.config.repo_root).as_posix(),
            )
            for imp in parsed.imports:
                self._resolve_into(outcome, imp)
        except Exception as e:
            logger.error("index.file_failed", file_path=file_path, error=str(e))
            outcome.file_node = None
            outcome.dependencies = []
            outcome.error = f"Failed to process {file_path}: {e}"
        return outcome

    def _resolve_into(self, outcome: FileOutcome, imp: ImportStatement) -> None:
        resolved = self.resolver.resolve_import(imp.source, outcome.file_path)
        if resolved is None:
            if not self.resolver.is_external(imp.source):
                msg = f"Could not resolve import '{imp.source}' in {outcome.file_path}:{imp.line_number}"
                logger.warning("index.unresolved_import", file_path=outcome.file_path, source=imp.source, line=imp.line_number)
                outcome.warnings.append(msg)
            return
        if not self.resolver.is_within_repo(resolved):
            logger.debug("index.external_target_dropped", file_path=outcome.file_path, target=resolved)
            return
        outcome.dependencies.append(
            DependencyEdge(
                from_path=outcome.file_path,
                to_path=resolved,
                import_type=imp.kind,
                line_number=imp.line_number,
            )
        )

    def _merge(self, outcomes: list[FileOutcome], discovery_errors: list[str]) -> IndexResult:
        files: list[FileNode] = []
        candidate_edges: list[DependencyEdge] = []
        stats = IndexStats(errors=list(discovery_errors))

        for o in outcomes:
            if o.error is not None:
                stats.errors.append(o.error)
                continue
            if o.file_node is not None:
                files.append(o.file_node)
            candidate_edges.extend(o.dependencies)
            stats.warnings.extend(o.warnings)

        # Targets that were resolved but not indexed (ignored, non-source or unparseable) have no node to attach to.
        indexed = {f.file_path for f in files}
        dependencies = [e for e in candidate_edges if e.to_path in indexed]
        dropped = len(candidate_edges) - len(dependencies)
        if dropped:
            logger.info("index.edges_to_unindexed_targets_dropped", repo_id=self.config.repo_id, dropped=dropped)

        stats.files_processed = len(files)
        stats.dependencies_found = len(dependencies)
        return IndexResult(files=files, dependencies=dependencies, stats=stats)
