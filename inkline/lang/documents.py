"""Open, edit and close documents, keeping text, tree and version in step."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable

from lsprotocol.types import Location as ProtocolLocation, SymbolInformation

from inkline.core.edits import Edit
from inkline.core.errors import InklineError, ParseFailure, SessionResourceNotFound
from inkline.core.session import SessionStore
from inkline.core.text import Text
from inkline.lang.capabilities import SessionCapabilities
from inkline.lang.parser import DocumentParser, extract_symbols
from inkline.lang.translator import ChangeEvent, full_document_change, translate

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DocumentSnapshot:
    uri: str
    version: int
    text: Text


@dataclass(frozen=True)
class DocumentChange:
    uri: str
    version: int
    events: tuple[ChangeEvent, ...]
    text: Text


class DocumentManager:
    """Applies local edits to the session store and produces protocol changes."""

    def __init__(
        self,
        capabilities: SessionCapabilities,
        store: SessionStore | None = None,
        parser_factory: Callable[[], DocumentParser] = DocumentParser,
    ) -> None:
        self.capabilities = capabilities
        self.store = store or SessionStore()
        self._parser_factory = parser_factory

    def open_document(self, uri: str, content: str | Text) -> DocumentSnapshot:
        text = content if isinstance(content, Text) else Text(content)
        parser = self._parser_factory()
        try:
            tree = parser.parse(text)
        except ParseFailure:
            logger.warning("Could not parse %s; symbols will be unavailable", uri, exc_info=True)
            tree = None
        record = self.store.open(uri, text, parser, tree)
        return DocumentSnapshot(uri, record.version, text)

    def close_document(self, uri: str) -> Text:
        return self.store.close(uri)

    def apply_edit(self, uri: str, edit: Edit) -> DocumentChange:
        """Apply one edit and return the change stamped with the next version.

        Raises :class:`MalformedEdit` before touching any state if the edit does
        not fit the current text.
        """

        with self.store.get_mut_text(uri) as record:
            before = record.text
            before.check(edit)
            after, span = before.apply(edit)
            if self.capabilities.incremental_sync:
                event = translate(edit, before, after, self.capabilities.encoding)
            else:
                event = full_document_change(after)
            version = self.store.next_version(uri)
            record.text = after
            record.tree = self._reparse(uri, record.parser, record.tree, before, after, span)
        logger.debug("%s %s -> version %s", uri, edit.kind, version)
        return DocumentChange(uri, version, (event,), after)

    def _reparse(self, uri, parser, tree, before, after, span):
        if parser is None:
            return None
        try:
            return parser.reparse(tree, before, after, span)
        except ParseFailure:
            logger.warning("Reparse of %s failed; dropping its syntax tree", uri, exc_info=True)
            return None

    def reparse(self, uri: str, content: str | Text) -> None:
        """Replace the document text wholesale and parse it from scratch."""

        text = content if isinstance(content, Text) else Text(content)
        with self.store.get_mut_text(uri) as record:
            record.text = text
            try:
                with self.store.get_mut_parser(uri) as parser:
                    record.tree = parser.parse(text)
            except ParseFailure:
                logger.warning("Reparse of %s failed; dropping its syntax tree", uri, exc_info=True)
                record.tree = None

    def resync(self, uri: str) -> DocumentSnapshot:
        """Full-document snapshot under a fresh version, for a close/open resync."""

        with self.store.get_mut_text(uri) as record:
            version = self.store.next_version(uri)
            return DocumentSnapshot(uri, version, record.text)

    def text(self, uri: str) -> Text:
        return self.store.get_text(uri)

    def version(self, uri: str) -> int:
        return self.store.version(uri)

    def document_symbols(self, uri: str) -> list[SymbolInformation]:
        """Declarations in ``uri``; empty if the document or its tree is missing."""

        try:
            with self.store.get_mut_text(uri) as record:
                tree = self.store.get_tree(uri)
                symbols = extract_symbols(tree, record.text, self.capabilities.encoding)
        except SessionResourceNotFound as exc:
            logger.info("No symbols for %s: %s", uri, exc)
            return []
        except InklineError:
            logger.warning("Symbol extraction failed for %s", uri, exc_info=True)
            return []
        return [
            SymbolInformation(name=symbol.name, kind=symbol.kind, location=ProtocolLocation(uri=uri, range=symbol.range))
            for symbol in symbols
        ]
