import json
import os
from pathlib import Path
from unittest.mock import patch

from dependency_indexer.core.resolver import DependencyResolver, ResolverConfig, load_resolver_config


def _repo(tmp_path: Path) -> Path:
    repo = tmp_path / "repo"
    (repo / "src" / "components").mkdir(parents=True)
    (repo / "src" / "utils.ts").write_text("export const u = 1;\n", encoding="utf-8")
    (repo / "src" / "components" / "index.tsx").write_text("export {};\n", encoding="utf-8")
    (repo / "src" / "a.ts").write_text("", encoding="utf-8")
    return repo


def _resolver(repo: Path, **kwargs) -> DependencyResolver:
    config = ResolverConfig(
        repo_root=str(repo),
        path_aliases=kwargs.pop("path_aliases", {"@/*": ("src/*",)}),
        extensions=kwargs.pop("extensions", (".ts", ".tsx")),
        **kwargs,
    )
    return DependencyResolver(config)


def test_alias_resolves_with_extension_probe(tmp_path: Path) -> None:
    repo = _repo(tmp_path)
    resolver = _resolver(repo)
    assert resolver.resolve_import("@/utils", str(repo / "src" / "a.ts")) == str(repo / "src" / "utils.ts")


def test_external_package_never_touches_filesystem(tmp_path: Path) -> None:
    repo = _repo(tmp_path)
    resolver = _resolver(repo)
    with patch("dependency_indexer.core.resolver._is_file") as is_file:
        assert resolver.resolve_import("react", str(repo / "src" / "a.ts")) is None
        assert resolver.resolve_import("@babel/core", str(repo / "src" / "a.ts")) is None
    is_file.assert_not_called()


def test_relative_miss_returns_none(tmp_path: Path) -> None:
    repo = _repo(tmp_path)
    resolver = _resolver(repo)
    assert resolver.resolve_import("./missing", str(repo / "src" / "a.ts")) is None


def test_relative_directory_resolves_index_file(tmp_path: Path) -> None:
    repo = _repo(tmp_path)
    resolver = _resolver(repo)
    got = resolver.resolve_import("./components", str(repo / "src" / "a.ts"))
    assert got == str(repo / "src" / "components" / "index.tsx")


def test_exact_file_wins_over_extension_probe(tmp_path: Path) -> None:
    repo = _repo(tmp_path)
    (repo / "src" / "styles.css").write_text("", encoding="utf-8")
    resolver = _resolver(repo)
    assert resolver.resolve_import("./styles.css", str(repo / "src" / "a.ts")) == str(repo / "src" / "styles.css")


def test_alias_targets_tried_in_order_then_fall_through(tmp_path: Path) -> None:
    repo = _repo(tmp_path)
    (repo / "lib").mkdir()
    (repo / "lib" / "only_in_lib.ts").write_text("", encoding="utf-8")
    resolver = _resolver(repo, path_aliases={"~/*": ("src/*", "lib/*")})
    assert resolver.resolve_import("~/only_in_lib", str(repo / "src" / "a.ts")) == str(repo / "lib" / "only_in_lib.ts")
    assert resolver.resolve_import("~/nowhere", str(repo / "src" / "a.ts")) is None


def test_alias_prefix_is_not_external(tmp_path: Path) -> None:
    repo = _repo(tmp_path)
    resolver = _resolver(repo)
    assert not resolver.is_external("@/utils")
    assert not resolver.is_external("./x")
    assert resolver.is_external("lodash/fp")


def test_within_repo_check(tmp_path: Path) -> None:
    repo = _repo(tmp_path)
    outside = tmp_path / "shared.ts"
    outside.write_text("", encoding="utf-8")
    resolver = _resolver(repo)

    resolved = resolver.resolve_import("../../shared", str(repo / "src" / "a.ts"))
    assert resolved == str(outside)
    assert not resolver.is_within_repo(resolved)
    assert resolver.is_within_repo(str(repo / "src" / "utils.ts"))


def test_load_resolver_config_reads_paths_and_base_url(tmp_path: Path) -> None:
    repo = _repo(tmp_path)
    (repo / "tsconfig.json").write_text(
        json.dumps({"compilerOptions": {"baseUrl": ".", "paths": {"@/*": ["src/*"], "~lib": "lib/index"}}}),
        encoding="utf-8",
    )
    config = load_resolver_config(repo, extensions=[".ts"])
    assert config.path_aliases == {"@/*": ("src/*",), "~lib": ("lib/index",)}
    assert config.base_url == os.path.abspath(repo)
    assert config.extensions == (".ts",)


def test_load_resolver_config_falls_back_on_missing_or_invalid(tmp_path: Path) -> None:
    repo = _repo(tmp_path)
    assert load_resolver_config(repo).path_aliases == {}

    (repo / "tsconfig.json").write_text("{ not json", encoding="utf-8")
    config = load_resolver_config(repo)
    assert config.path_aliases == {}
    assert config.base_url is None
