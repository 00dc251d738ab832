import pytest

from dependency_indexer.plugins.typescript.parser import TypeScriptParser, grammar_for


@pytest.fixture
def parser() -> TypeScriptParser:
    return TypeScriptParser()


def _only_import(parser: TypeScriptParser, code: str, path: str = "/repo/src/a.ts"):
    imports = parser.extract_imports(path, code)
    assert len(imports) == 1
    return imports[0]


def test_default_import(parser: TypeScriptParser) -> None:
    imp = _only_import(parser, "import Foo from './foo';\n")
    assert imp.kind == "default"
    assert imp.identifiers == ("Foo",)
    assert imp.source == "./foo"
    assert imp.line_number == 1


def test_named_imports_keep_local_names(parser: TypeScriptParser) -> None:
    imp = _only_import(parser, "import { A, B as C } from './bar';\n")
    assert imp.kind == "named"
    assert imp.identifiers == ("A", "C")
    assert imp.source == "./bar"


def test_namespace_import(parser: TypeScriptParser) -> None:
    imp = _only_import(parser, "import * as NS from './baz';\n")
    assert imp.kind == "namespace"
    assert imp.identifiers == ("NS",)


def test_side_effect_import(parser: TypeScriptParser) -> None:
    imp = _only_import(parser, "import './styles.css';\n")
    assert imp.kind == "side-effect"
    assert imp.identifiers == ()
    assert imp.source == "./styles.css"


def test_default_wins_over_named_and_keeps_both_identifiers(parser: TypeScriptParser) -> None:
    imp = _only_import(parser, "import React, { useState } from 'react';\n", path="/repo/src/a.tsx")
    assert imp.kind == "default"
    assert imp.identifiers == ("React", "useState")


def test_dynamic_import(parser: TypeScriptParser) -> None:
    imp = _only_import(parser, "async function load() {\n  return import('./lazy');\n}\n")
    assert imp.kind == "dynamic"
    assert imp.source == "./lazy"
    assert imp.line_number == 2


def test_require_call(parser: TypeScriptParser) -> None:
    imp = _only_import(parser, "const x = require('./legacy');\n", path="/repo/src/a.js")
    assert imp.kind == "require"
    assert imp.source == "./legacy"
    assert imp.identifiers == ("x",)


def test_destructured_require_binds_each_name(parser: TypeScriptParser) -> None:
    imp = _only_import(parser, "const { a, b } = require(\"./pair\");\n", path="/repo/src/a.cjs")
    assert imp.kind == "require"
    assert imp.identifiers == ("a", "b")
    assert imp.source == "./pair"


def test_import_equals_require(parser: TypeScriptParser) -> None:
    imp = _only_import(parser, "import fs = require('fs');\n")
    assert imp.kind == "require"
    assert imp.source == "fs"
    assert imp.identifiers == ("fs",)


def test_backtick_literal_without_substitution_is_static(parser: TypeScriptParser) -> None:
    imp = _only_import(parser, "const t = require(`./tpl`);\n", path="/repo/src/a.js")
    assert imp.source == "./tpl"


def test_non_literal_specifiers_are_skipped(parser: TypeScriptParser) -> None:
    code = (
        "const name = './x';\n"
        "const a = require(name);\n"
        "const b = import(`./pages/${name}`);\n"
        "const c = require('./kept');\n"
    )
    imports = parser.extract_imports("/repo/src/a.js", code)
    assert [i.source for i in imports] == ["./kept"]
    assert imports[0].line_number == 4


def test_line_numbers_are_one_based_per_statement(parser: TypeScriptParser) -> None:
    code = "// header\n\nimport a from './a';\nimport b from './b';\n"
    imports = parser.extract_imports("/repo/src/a.ts", code)
    assert [(i.source, i.line_number) for i in imports] == [("./a", 3), ("./b", 4)]


def test_exports(parser: TypeScriptParser) -> None:
    code = (
        "export function foo() {}\n"
        "export const a = 1, b = 2;\n"
        "export class Widget {}\n"
        "export interface Shape {}\n"
        "const x = 1, y = 2;\n"
        "export { x, y };\n"
        "export { z } from './z';\n"
        "export * as ns from './ns';\n"
        "export default x;\n"
    )
    exports = parser.extract_exports("/repo/src/a.ts", code)
    by_line = {e.line_number: e for e in exports}

    assert by_line[1].identifiers == ("foo",)
    assert by_line[2].identifiers == ("a", "b")
    assert by_line[3].identifiers == ("Widget",)
    assert by_line[4].identifiers == ("Shape",)
    assert by_line[6].identifiers == ("x", "y")
    assert by_line[6].source is None
    assert by_line[7].identifiers == ("z",)
    assert by_line[7].source == "./z"
    assert by_line[7].is_reexport
    assert by_line[8].identifiers == ("ns",)
    assert by_line[9].identifiers == ("default",)
    assert by_line[9].is_default


def test_broken_syntax_yields_errors_and_no_statements(parser: TypeScriptParser) -> None:
    parsed = parser.parse_file("/repo/src/broken.ts", "import { from ;;; const = (\n")
    assert not parsed.ok
    assert parsed.imports == ()
    assert parsed.exports == ()
    assert parsed.errors[0].startswith("Parse error in /repo/src/broken.ts")


def test_jsx_file_parses_with_tsx_grammar(parser: TypeScriptParser) -> None:
    code = "import Button from './Button';\nexport const App = () => <Button label=\"x\" />;\n"
    parsed = parser.parse_file("/repo/src/App.jsx", code)
    assert parsed.ok
    assert parsed.language == "javascript"
    assert [i.source for i in parsed.imports] == ["./Button"]
    assert parsed.exports[0].identifiers == ("App",)


def test_grammar_selection() -> None:
    assert grammar_for("a.ts") == "typescript"
    assert grammar_for("a.tsx") == "tsx"
    assert grammar_for("a.js") == "tsx"
