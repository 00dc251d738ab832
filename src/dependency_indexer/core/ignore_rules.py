"""Ignore rules for source discovery.

Directory names and file patterns are compiled into gitignore-compatible
matchers via `pathspec`.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Iterable

import pathspec

from dependency_indexer.config import DEFAULT_IGNORE_DIRS, DEFAULT_IGNORE_PATTERNS


@dataclass(frozen=True)
class IgnoreRules:
    dir_names: frozenset[str]
    spec: pathspec.PathSpec

    def is_ignored_dir(self, name: str, repo_rel_posix_path: str) -> bool:
        if name in self.dir_names:
            return True
        # Trailing slash lets directory-only patterns ("build/") match.
        return self.spec.match_file(repo_rel_posix_path.rstrip("/") + "/")

    def is_ignored(self, repo_rel_posix_path: str) -> bool:
        # PathSpec expects POSIX-style paths.
        return self.spec.match_file(repo_rel_posix_path)


def build_ignore_rules(
    repo_root: Path,
    *,
    ignore_dirs: Iterable[str] | None = None,
    ignore_patterns: Iterable[str] | None = None,
    respect_gitignore: bool = False,
) -> IgnoreRules:
    """Build ignore rules from directory names, file patterns and optionally `.gitignore`."""

    dir_names = frozenset(DEFAULT_IGNORE_DIRS if ignore_dirs is None else ignore_dirs)
    patterns: list[str] = list(DEFAULT_IGNORE_PATTERNS if ignore_patterns is None else ignore_patterns)

    if respect_gitignore:
        gitignore = repo_root / ".gitignore"
        if gitignore.is_file():
            patterns.extend(gitignore.read_text(encoding="utf-8", errors="replace").splitlines())

    spec = pathspec.PathSpec.from_lines("gitwildmatch", patterns)
    return IgnoreRules(dir_names=dir_names, spec=spec)
