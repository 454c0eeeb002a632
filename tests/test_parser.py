from __future__ import annotations

from lsprotocol.types import PositionEncodingKind, SymbolKind

from inkline.core.edits import InsertChar, InsertText
from inkline.core.errors import ParseFailure
from inkline.core.location import Location
from inkline.lang.capabilities import SessionCapabilities
from inkline.lang.documents import DocumentManager
from inkline.lang.parser import DocumentParser

URI = "file:///tmp/example.js"


def summary(symbols):
    return [(symbol.name, symbol.kind) for symbol in symbols]


def span(symbol):
    start, end = symbol.location.range.start, symbol.location.range.end
    return (start.line, start.character, end.line, end.character)


def test_declaration_symbols_follow_edits() -> None:
    manager = DocumentManager(SessionCapabilities())
    manager.open_document(URI, "let i = 0;")

    symbols = manager.document_symbols(URI)
    assert summary(symbols) == [("i", SymbolKind.Variable)]
    assert span(symbols[0]) == (0, 0, 0, 10)
    assert symbols[0].location.uri == URI

    change = manager.apply_edit(URI, InsertText("\nfunction f(){}", Location(0, 10)))
    assert change.version == 1

    symbols = manager.document_symbols(URI)
    assert summary(symbols) == [("i", SymbolKind.Variable), ("f", SymbolKind.Function)]
    assert span(symbols[1]) == (1, 0, 1, 14)


def test_class_declarations_are_reported_as_variables() -> None:
    manager = DocumentManager(SessionCapabilities())
    manager.open_document(URI, "class Shape {}\nvar count = 1;")
    assert summary(manager.document_symbols(URI)) == [
        ("Shape", SymbolKind.Variable),
        ("count", SymbolKind.Variable),
    ]


def test_symbol_ranges_use_negotiated_encoding() -> None:
    for encoding, end in [(PositionEncodingKind.Utf16, 10), (PositionEncodingKind.Utf8, 11)]:
        manager = DocumentManager(SessionCapabilities(encoding=encoding))
        manager.open_document(URI, "let é = 1;")
        assert span(manager.document_symbols(URI)[0]) == (0, 0, 0, end)


def test_incremental_reparse_matches_fresh_parse() -> None:
    manager = DocumentManager(SessionCapabilities())
    manager.open_document(URI, "function add(a, b) {\n  return a + b;\n}")
    manager.apply_edit(URI, InsertChar("x", Location(0, 12)))
    manager.apply_edit(URI, InsertText("\nconst total = add(1, 2);", Location(2, 1)))

    tree = manager.store.get_tree(URI)
    fresh = DocumentParser().parse(manager.text(URI))
    assert str(tree.root_node) == str(fresh.root_node)
    assert summary(manager.document_symbols(URI)) == [
        ("addx", SymbolKind.Function),
        ("total", SymbolKind.Variable),
    ]


class FailingParser:
    def parse(self, text, old_tree=None):
        raise ParseFailure("grammar unavailable")

    def reparse(self, tree, before, after, span):
        raise ParseFailure("grammar unavailable")


def test_missing_tree_degrades_to_no_symbols() -> None:
    manager = DocumentManager(SessionCapabilities(), parser_factory=FailingParser)
    manager.open_document(URI, "let i = 0;")
    assert manager.document_symbols(URI) == []

    manager.apply_edit(URI, InsertChar(" ", Location(0, 10)))
    assert manager.version(URI) == 1
    assert manager.document_symbols(URI) == []


def test_unknown_document_has_no_symbols() -> None:
    manager = DocumentManager(SessionCapabilities())
    assert manager.document_symbols("file:///missing.js") == []


def test_reparse_leaves_held_tree_unchanged() -> None:
    manager = DocumentManager(SessionCapabilities())
    manager.open_document(URI, "let i = 0;")
    held = manager.store.get_tree(URI)
    before = str(held.root_node)
    assert held.root_node.end_byte == 10

    manager.apply_edit(URI, InsertChar("x", Location(0, 0)))

    assert held.root_node.end_byte == 10
    assert str(held.root_node) == before
    current = manager.store.get_tree(URI)
    assert current is not held
    assert current.root_node.end_byte == 11
