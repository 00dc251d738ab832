"""Parser registry and selection by file extension."""

from __future__ import annotations

import os
from typing import Iterable

from dependency_indexer.plugins.base import LanguageParser


def default_parsers(*, max_error_ratio: float = 0.0) -> list[LanguageParser]:
    # Local import keeps tree-sitter off the import path of modules that only need the registry.
    from dependency_indexer.plugins.typescript.parser import TypeScriptParser

    return [TypeScriptParser(max_error_ratio=max_error_ratio)]


def supported_extensions(parsers: Iterable[LanguageParser]) -> frozenset[str]:
    return frozenset(ext for p in parsers for ext in p.supported_extensions)


def select_parser(file_path: str, parsers: Iterable[LanguageParser]) -> LanguageParser:
    ext = os.path.splitext(file_path)[1].lower()
    by_ext: dict[str, LanguageParser] = {}
    for p in parsers:
        for e in p.supported_extensions:
            by_ext.setdefault(e, p)
    try:
        return by_ext[ext]
    except KeyError as e:
        raise ValueError(f"Unsupported extension={ext!r} for {file_path}. Supported={sorted(by_ext)}") from e
