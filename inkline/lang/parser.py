"""Incremental parsing and symbol extraction for open documents."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from functools import lru_cache
from typing import Mapping

from lsprotocol.types import PositionEncodingKind, Range, SymbolKind
from tree_sitter import Language, Node, Parser, QueryCursor, Tree

from inkline.core.errors import ParseFailure
from inkline.core.location import TextSpan
from inkline.core.text import Text
from inkline.lang.queries import (
    DECLARATION_CAPTURE,
    DECLARATION_KINDS,
    JAVASCRIPT,
    NAME_CAPTURE,
    compile_symbol_query,
)

logger = logging.getLogger(__name__)


class DocumentParser:
    """One parser instance per open document."""

    def __init__(self, language: Language = JAVASCRIPT) -> None:
        self.language = language
        self._parser = Parser(language)

    def parse(self, text: Text, old_tree: Tree | None = None) -> Tree:
        """Parse ``text``; ``old_tree`` must already describe the edit, if given."""

        source = text.to_bytes()
        try:
            tree = self._parser.parse(source, old_tree) if old_tree is not None else self._parser.parse(source)
        except ValueError as exc:
            raise ParseFailure(str(exc)) from exc
        if tree is None:
            raise ParseFailure("parser produced no tree")
        return tree

    def reparse(self, tree: Tree | None, before: Text, after: Text, span: TextSpan) -> Tree:
        """Reparse ``after`` reusing ``tree`` (the tree of ``before``) as a hint."""

        if tree is None:
            return self.parse(after)
        # Trees handed out earlier stay as they were; only the copy is edited.
        tree = tree.copy()
        tree.edit(
            start_byte=before.byte_offset(span.start),
            old_end_byte=before.byte_offset(span.old_end),
            new_end_byte=after.byte_offset(span.new_end),
            start_point=before.point(span.start),
            old_end_point=before.point(span.old_end),
            new_end_point=after.point(span.new_end),
        )
        return self.parse(after, tree)


@dataclass(frozen=True)
class Symbol:
    name: str
    kind: SymbolKind
    range: Range


def node_range(node: Node, text: Text, encoding: PositionEncodingKind) -> Range:
    """Protocol range covering ``node``."""

    start = text.location_from_point(tuple(node.start_point))
    end = text.location_from_point(tuple(node.end_point))
    return Range(
        start=text.to_protocol_position(start.row, start.col, encoding),
        end=text.to_protocol_position(end.row, end.col, encoding),
    )


class SymbolExtractor:
    """Runs the declaration query and maps declarations to symbol kinds."""

    def __init__(self, language: Language = JAVASCRIPT, kinds: Mapping[str, SymbolKind] = DECLARATION_KINDS) -> None:
        self._query = compile_symbol_query(language)
        self._kinds = kinds

    def extract(self, tree: Tree, text: Text, encoding: PositionEncodingKind = PositionEncodingKind.Utf16) -> list[Symbol]:
        source = text.to_bytes()
        found: list[tuple[int, Symbol]] = []
        for _pattern, captures in QueryCursor(self._query).matches(tree.root_node):
            declarations = captures.get(DECLARATION_CAPTURE) or []
            names = captures.get(NAME_CAPTURE) or []
            if len(declarations) != 1 or len(names) != 1:
                continue
            declaration, identifier = declarations[0], names[0]
            kind = self._kinds.get(declaration.type)
            if kind is None:
                continue
            name = source[identifier.start_byte : identifier.end_byte].decode("utf-8", errors="replace")
            found.append((declaration.start_byte, Symbol(name, kind, node_range(declaration, text, encoding))))
        found.sort(key=lambda entry: entry[0])
        return [symbol for _, symbol in found]


@lru_cache(maxsize=None)
def _default_extractor() -> SymbolExtractor:
    return SymbolExtractor()


def extract_symbols(tree: Tree, text: Text, encoding: PositionEncodingKind = PositionEncodingKind.Utf16) -> list[Symbol]:
    """Flat list of declarations in document order."""

    return _default_extractor().extract(tree, text, encoding)
