"""Deterministic source file discovery.

Walks the repository once, pruning ignored directories before descending,
and returns repo files sorted by repo-relative POSIX path. Symlinked files
are skipped.
"""

from __future__ import annotations

import os
import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, Optional

import structlog

from dependency_indexer.core.ignore_rules import IgnoreRules, build_ignore_rules
from dependency_indexer.core.records import Language
from dependency_indexer.errors import IndexingCancelledError


logger = structlog.get_logger(__name__)

_LANGUAGE_BY_EXTENSION: dict[str, Language] = {
    ".ts": "typescript",
    ".tsx": "typescript",
    ".js": "javascript",
    ".jsx": "javascript",
    ".mjs": "javascript",
    ".cjs": "javascript",
}


def infer_language(extension: str) -> Language:
    return _LANGUAGE_BY_EXTENSION.get(extension.lower(), "unknown")


@dataclass
class DiscoveryResult:
    files: list[Path] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)


def _check_cancelled(cancel_event: Optional[threading.Event]) -> None:
    if cancel_event is not None and cancel_event.is_set():
        raise IndexingCancelledError("Indexing cancelled during file discovery")


def discover_source_files(
    repo_root: Path,
    *,
    extensions: Iterable[str],
    ignore: IgnoreRules | None = None,
    cancel_event: Optional[threading.Event] = None,
) -> DiscoveryResult:
    """Return in-scope source files under `repo_root` plus unreadable-directory errors."""

    ignore = ignore or build_ignore_rules(repo_root)
    wanted = frozenset(e.lower() for e in extensions)
    result = DiscoveryResult()

    def _on_error(err: OSError) -> None:
        msg = f"Failed to read directory {err.filename}: {err.strerror or err}"
        logger.warning("discovery.unreadable_directory", path=str(err.filename), error=str(err))
        result.errors.append(msg)

    for dirpath, dirnames, filenames in os.walk(repo_root, onerror=_on_error, followlinks=False):
        _check_cancelled(cancel_event)
        current = Path(dirpath)
        rel_dir = current.relative_to(repo_root).as_posix()

        kept = []
        for name in dirnames:
            rel = name if rel_dir == "." else f"{rel_dir}/{name}"
            if not ignore.is_ignored_dir(name, rel):
                kept.append(name)
        # Prune in place so os.walk never enters ignored trees.
        dirnames[:] = sorted(kept)

        for name in filenames:
            if os.path.splitext(name)[1].lower() not in wanted:
                continue
            p = current / name
            if p.is_symlink() or not p.is_file():
                continue
            rel = p.relative_to(repo_root).as_posix()
            if ignore.is_ignored(rel):
                continue
            result.files.append(p)

    result.files.sort(key=lambda x: x.relative_to(repo_root).as_posix())
    return result
