"""Import specifier -> on-disk file resolution.

Resolution order for `resolve_import(source, from_file)`:
1. bare specifiers matching no alias are external packages (no filesystem access)
2. alias match: each target in declaration order; a miss falls through
3. `./` and `../` relative to the importing file's directory
4. anything else rooted at the repository root

Each candidate base path is probed as an exact file, then with every
configured extension appended, then as a directory holding `index<ext>`.
"""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, Mapping, Optional

import structlog

from dependency_indexer.config import DEFAULT_EXTENSIONS


logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class ResolverConfig:
    repo_root: str
    path_aliases: Mapping[str, tuple[str, ...]] = field(default_factory=dict)
    extensions: tuple[str, ...] = DEFAULT_EXTENSIONS
    base_url: Optional[str] = None

    @property
    def alias_root(self) -> str:
        return self.base_url or self.repo_root


def _alias_prefix(alias: str) -> tuple[str, bool]:
    """Return (prefix, is_wildcard) for a `paths` key such as `@/*` or `~utils`."""

    if alias.endswith("*"):
        return alias[:-1], True
    return alias, False


def _alias_remainder(source: str, alias: str) -> Optional[str]:
    prefix, wildcard = _alias_prefix(alias)
    if wildcard:
        return source[len(prefix):] if source.startswith(prefix) else None
    if source == prefix:
        return ""
    if source.startswith(prefix + "/"):
        return source[len(prefix):]
    return None


def _substitute(target: str, remainder: str) -> str:
    if "*" in target:
        return target.replace("*", remainder, 1)
    return target + remainder


class DependencyResolver:
    """Resolve import sources against one repository's filesystem and aliases."""

    def __init__(self, config: ResolverConfig) -> None:
        self.config = config
        self._repo_root = os.path.abspath(config.repo_root)
        self._alias_root = os.path.abspath(config.alias_root)

    def is_external(self, source: str) -> bool:
        if source.startswith(".") or source.startswith("/"):
            return False
        return not any(_alias_remainder(source, alias) is not None for alias in self.config.path_aliases)

    @staticmethod
    def is_relative(source: str) -> bool:
        return source in (".", "..") or source.startswith("./") or source.startswith("../")

    def resolve_import(self, source: str, from_file: str) -> Optional[str]:
        """Return the absolute path `source` refers to, or None if external/unresolvable."""

        try:
            if self.is_external(source):
                return None

            aliased = self._resolve_alias(source)
            if aliased is not None:
                return aliased

            if self.is_relative(source):
                base = os.path.join(os.path.dirname(os.path.abspath(from_file)), source)
            else:
                base = os.path.join(self._repo_root, source)
            return self.resolve_file_path(os.path.normpath(base))
        except (OSError, ValueError) as e:
            logger.debug("resolve.failed", source=source, from_file=from_file, error=str(e))
            return None

    def _resolve_alias(self, source: str) -> Optional[str]:
        for alias, targets in self.config.path_aliases.items():
            remainder = _alias_remainder(source, alias)
            if remainder is None:
                continue
            for target in targets:
                candidate = os.path.normpath(os.path.join(self._alias_root, _substitute(target, remainder)))
                resolved = self.resolve_file_path(candidate)
                if resolved is not None:
                    return resolved
        return None

    def resolve_file_path(self, base_path: str) -> Optional[str]:
        if _is_file(base_path):
            return base_path
        for ext in self.config.extensions:
            candidate = base_path + ext
            if _is_file(candidate):
                return candidate
        for ext in self.config.extensions:
            candidate = os.path.join(base_path, f"index{ext}")
            if _is_file(candidate):
                return candidate
        return None

    def is_within_repo(self, path: str) -> bool:
        try:
            return os.path.commonpath([self._repo_root, os.path.abspath(path)]) == self._repo_root
        except ValueError:
            return False


def _is_file(path: str) -> bool:
    # os.path.isfile already maps permission and missing-path errors to False.
    return os.path.isfile(path)


def load_resolver_config(
    repo_root: str | Path,
    *,
    config_filename: str = "tsconfig.json",
    extensions: Iterable[str] = DEFAULT_EXTENSIONS,
) -> ResolverConfig:
    """Read `compilerOptions.paths` / `baseUrl` from the repo-root JSON config.

    A missing, unreadable or malformed file yields a config without aliases.
    """

    root = os.path.abspath(str(repo_root))
    exts = tuple(extensions)
    config_path = os.path.join(root, config_filename)

    try:
        with open(config_path, encoding="utf-8") as fh:
            data = json.load(fh)
    except FileNotFoundError:
        logger.info("resolver.config_missing", config_path=config_path)
        return ResolverConfig(repo_root=root, extensions=exts)
    except (OSError, ValueError) as e:
        logger.warning("resolver.config_unreadable", config_path=config_path, error=str(e))
        return ResolverConfig(repo_root=root, extensions=exts)

    options = data.get("compilerOptions") if isinstance(data, dict) else None
    if not isinstance(options, dict):
        return ResolverConfig(repo_root=root, extensions=exts)

    aliases: dict[str, tuple[str, ...]] = {}
    paths = options.get("paths")
    if isinstance(paths, dict):
        for alias, targets in paths.items():
            if isinstance(targets, str):
                targets = [targets]
            if not isinstance(targets, list):
                logger.warning("resolver.alias_ignored", alias=alias)
                continue
            aliases[str(alias)] = tuple(str(t) for t in targets if isinstance(t, str))

    base_url = options.get("baseUrl")
    resolved_base = os.path.normpath(os.path.join(root, base_url)) if isinstance(base_url, str) else None

    logger.info("resolver.config_loaded", config_path=config_path, alias_count=len(aliases))
    return ResolverConfig(repo_root=root, path_aliases=aliases, extensions=exts, base_url=resolved_base)
