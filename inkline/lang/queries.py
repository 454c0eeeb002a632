"""Structural queries used to extract document symbols."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Mapping

import tree_sitter_javascript
from lsprotocol.types import SymbolKind
from tree_sitter import Language, Query

JAVASCRIPT = Language(tree_sitter_javascript.language())

DECLARATION_CAPTURE = "declaration"
NAME_CAPTURE = "name"


@dataclass(frozen=True)
class SymbolQuery:
    """One declaration pattern capturing ``@declaration`` and its ``@name``."""

    declaration: str
    source: str


SYMBOL_QUERIES: tuple[SymbolQuery, ...] = (
    SymbolQuery(
        declaration="function_declaration",
        source="(function_declaration name: (identifier) @name) @declaration",
    ),
    SymbolQuery(
        declaration="lexical_declaration",
        source="(lexical_declaration (variable_declarator name: (identifier) @name)) @declaration",
    ),
    SymbolQuery(
        declaration="variable_declaration",
        source="(variable_declaration (variable_declarator name: (identifier) @name)) @declaration",
    ),
    SymbolQuery(
        declaration="class_declaration",
        source="(class_declaration name: (identifier) @name) @declaration",
    ),
)

# Class declarations are reported as Variable, matching the server this
# client was first paired with; Class would be the natural kind.
DECLARATION_KINDS: Mapping[str, SymbolKind] = {
    "function_declaration": SymbolKind.Function,
    "lexical_declaration": SymbolKind.Variable,
    "variable_declaration": SymbolKind.Variable,
    "class_declaration": SymbolKind.Variable,
}


def compile_symbol_query(language: Language = JAVASCRIPT, queries: tuple[SymbolQuery, ...] = SYMBOL_QUERIES) -> Query:
    """Compile all declaration patterns into a single query."""

    query = Query(language, "\n".join(entry.source for entry in queries))
    if query.pattern_count != len(queries):
        raise ValueError(f"expected {len(queries)} symbol patterns, compiled {query.pattern_count}")
    return query
