"""Tests for the local definition scanner."""

from xqls.features.symbol_table import Span, SymbolKind
from xqls.parser.scan import (
    build_snippet,
    find_definition,
    find_matching_paren,
    scan,
    split_parameters,
)

MODULE = """xquery version "3.1";

module namespace app="http://exist-db.org/apps/demo";

import module namespace config="http://exist-db.org/apps/demo/config" at "config.xqm";
import module namespace templates="http://exist-db.org/xquery/html-templating";
import module namespace file='http://exist-db.org/xquery/file' at 'java:org.exist.xquery.modules.file.FileModule';

declare variable $app:title := "Demo";

(:~
 : Greet someone.
 :)
declare
    %templates:wrap
    %rest:path("/hello/{$name}")
function app:hello($node as node(), $model as map(*), $name as xs:string) {
    "Hello " || $name
};

declare function app:hello($node as node(), $model as map(*)) {
    app:hello($node, $model, "World")
};

declare %private function app:now() as xs:dateTime {
    current-dateTime()
};
"""


class TestFunctions:
    def test_single_definition(self):
        symbols, _ = scan("declare function local:add($a, $b) { $a + $b };")
        assert len(symbols) == 1
        symbol = symbols.get("local:add#2")
        assert symbol is not None
        assert symbol.signature == "local:add($a, $b)"
        assert symbol.snippet == "local:add(${1:$a}, ${2:$b})"
        assert symbol.kind is SymbolKind.FUNCTION
        assert symbol.arity == 2

    def test_one_entry_per_definition(self):
        symbols, _ = scan(MODULE)
        keys = {symbol.key for symbol in symbols}
        assert keys == {"$app:title", "app:hello#3", "app:hello#2", "app:now#0"}

    def test_overloads_by_arity(self):
        symbols, _ = scan(MODULE)
        assert symbols.lookup("app:hello", 3) is not symbols.lookup("app:hello", 2)
        assert symbols.lookup("app:hello", 1) is None

    def test_three_parameters(self):
        symbols, _ = scan("declare function local:f($a, $b, $c) { () };")
        symbol = symbols.get("local:f#3")
        assert symbol.snippet == "local:f(${1:$a}, ${2:$b}, ${3:$c})"

    def test_empty_parameters(self):
        symbols, _ = scan("declare function local:f() { () };")
        symbol = symbols.get("local:f#0")
        assert symbol.arity == 0
        assert symbol.snippet == "local:f()"
        assert symbol.signature == "local:f()"

    def test_annotations_and_doc_comment(self):
        symbols, _ = scan(MODULE)
        hello = symbols.get("app:hello#3")
        assert hello.documentation == ": Greet someone."
        assert hello.signature == (
            "app:hello($node as node(), $model as map(*), $name as xs:string)"
        )
        assert symbols.get("app:hello#2").documentation is None

    def test_private_annotation(self):
        symbols, _ = scan(MODULE)
        assert symbols.get("app:now#0") is not None

    def test_doc_comment_trims_unicode_spaces(self):
        text = "(:~　 Adds.  :)\ndeclare function local:add($a) { $a };"
        symbols, _ = scan(text)
        assert symbols.get("local:add#1").documentation == "Adds."

    def test_doc_comment_does_not_span_other_comments(self):
        text = (
            "(:~ Title :) declare variable $local:t := 1;\n"
            "(:~ Adds :) declare function local:add($a) { $a };"
        )
        symbols, _ = scan(text)
        assert symbols.get("local:add#1").documentation == "Adds"
        assert symbols.get("$local:t").documentation == "Title"

    def test_nested_types_do_not_split_parameters(self):
        text = (
            "declare function local:apply($f as function(xs:string, xs:int) "
            "as item()*, $x) { $f($x, 1) };"
        )
        symbols, _ = scan(text)
        symbol = symbols.get("local:apply#2")
        assert symbol is not None
        assert symbol.snippet == "local:apply(${1:$f}, ${2:$x})"

    def test_parameter_without_name_gets_no_placeholder(self):
        assert build_snippet("f", ["xs:string", "$b"]) == "f(${1:$b})"

    def test_span_covers_name_and_parameters(self):
        text = "declare function local:add($a, $b) { $a + $b };"
        symbols, _ = scan(text)
        span = symbols.get("local:add#2").span
        assert text[span.start : span.end] == "local:add($a, $b)"

    def test_unterminated_parameter_list_is_skipped(self):
        text = "declare function local:ok() { 1 };\ndeclare function local:broken($a, "
        symbols, _ = scan(text)
        assert "local:ok#0" in symbols
        assert len(symbols) == 1

    def test_half_typed_declaration_is_skipped(self):
        text = (
            "declare function local:new\n\n"
            "declare function local:add($a, $b) { $a + $b };\n"
        )
        symbols, _ = scan(text)
        assert [symbol.key for symbol in symbols] == ["local:add#2"]
        assert symbols.get("local:add#2").signature == "local:add($a, $b)"

    def test_space_before_parameter_list(self):
        symbols, _ = scan("declare function local:f ($a) { $a };")
        assert symbols.get("local:f#1").signature == "local:f($a)"

    def test_malformed_input_does_not_raise(self):
        for text in ["", "declare", "declare function", "declare function (", "(:~"]:
            symbols, imports = scan(text)
            assert len(symbols) == 0
            assert len(imports) == 0


class TestVariables:
    def test_variable_declaration(self):
        symbols, _ = scan(MODULE)
        title = symbols.get("$app:title")
        assert title.kind is SymbolKind.VARIABLE
        assert title.signature == "$app:title"
        assert title.arity == 0

    def test_external_variable(self):
        symbols, _ = scan("declare variable $user external;")
        assert "$user" in symbols


class TestRescanning:
    def test_idempotent(self):
        first, first_imports = scan(MODULE)
        second, second_imports = scan(MODULE)
        assert list(first) == list(second)
        assert list(first_imports) == list(second_imports)

    def test_previous_text_does_not_leak(self):
        scan("declare function local:old() { () };")
        symbols, _ = scan("declare function local:new() { () };")
        assert "local:old#0" not in symbols
        assert "local:new#0" in symbols


class TestImports:
    def test_imports_with_location(self):
        _, imports = scan(MODULE)
        config = imports.get("config")
        assert config.namespace_uri == "http://exist-db.org/apps/demo/config"
        assert config.source_path == "config.xqm"
        assert not config.is_host_binding

    def test_import_without_location_is_ignored(self):
        _, imports = scan(MODULE)
        assert "templates" not in imports

    def test_java_binding(self):
        _, imports = scan(MODULE)
        assert imports.get("file").is_host_binding

    def test_duplicate_prefix_last_wins(self):
        text = (
            'import module namespace x = "uri1" at "a.xqm";\n'
            'import module namespace x = "uri2" at "b.xqm";\n'
        )
        _, imports = scan(text)
        assert len(imports) == 1
        assert imports.get("x").namespace_uri == "uri2"
        assert imports.get("x").source_path == "b.xqm"


class TestFindDefinition:
    def test_reports_line(self):
        symbol = find_definition(MODULE, "app:hello", 2)
        assert symbol is not None
        line = MODULE.splitlines().index(
            "declare function app:hello($node as node(), $model as map(*)) {"
        )
        assert symbol.span == Span(line, line)

    def test_filters_by_arity(self):
        assert find_definition(MODULE, "app:hello", 3).key == "app:hello#3"
        assert find_definition(MODULE, "app:hello", 5) is None

    def test_unknown_name(self):
        assert find_definition(MODULE, "app:missing", 0) is None


class TestHelpers:
    def test_find_matching_paren(self):
        text = "f($a as map(*), $b)"
        assert find_matching_paren(text, 2) == len(text) - 1
        assert find_matching_paren("f($a", 2) == -1

    def test_split_parameters(self):
        assert split_parameters("") == []
        assert split_parameters("  ") == []
        assert split_parameters("$a") == ["$a"]
        assert split_parameters("$a , $b") == ["$a", "$b"]
        assert split_parameters("$m as map(xs:string, item()), $b") == [
            "$m as map(xs:string, item())",
            "$b",
        ]
