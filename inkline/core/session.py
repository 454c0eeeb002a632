"""Process-wide store of open documents.

Each open document is one :class:`DocumentRecord` holding its text, parser,
syntax tree and version counter behind the record's own lock.  Opening
publishes the complete record in a single step and closing removes it in a
single step, so a document can never be observed with only part of its
state present.  The store's own lock only guards the mapping; operations on
different documents never contend for the same record lock.
"""
from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Iterator

from inkline.core.errors import DocumentAlreadyOpen, ResourceKind, SessionResourceNotFound
from inkline.core.text import Text

if TYPE_CHECKING:
    from inkline.lang.parser import DocumentParser

logger = logging.getLogger(__name__)


@dataclass
class DocumentRecord:
    uri: str
    text: Text
    parser: "DocumentParser | None"
    tree: Any | None
    version: int = 0
    closed: bool = False
    lock: threading.RLock = field(default_factory=threading.RLock, repr=False, compare=False)


class SessionStore:
    """Concurrent mapping from document URI to its record."""

    def __init__(self) -> None:
        self._documents: dict[str, DocumentRecord] = {}
        self._lock = threading.Lock()

    def open(self, uri: str, text: Text, parser: "DocumentParser | None", tree: Any | None, version: int = 0) -> DocumentRecord:
        record = DocumentRecord(uri=uri, text=text, parser=parser, tree=tree, version=version)
        with self._lock:
            if uri in self._documents:
                raise DocumentAlreadyOpen(uri)
            self._documents[uri] = record
        logger.debug("Opened %s at version %s", uri, version)
        return record

    def close(self, uri: str) -> Text:
        """Remove the document and hand back its final text."""

        with self._lock:
            record = self._documents.pop(uri, None)
        if record is None:
            raise SessionResourceNotFound(ResourceKind.DOCUMENT, uri)
        with record.lock:
            record.closed = True
            logger.debug("Closed %s at version %s", uri, record.version)
            return record.text

    def __contains__(self, uri: object) -> bool:
        with self._lock:
            return uri in self._documents

    def __len__(self) -> int:
        with self._lock:
            return len(self._documents)

    @contextmanager
    def document(self, uri: str, kind: ResourceKind = ResourceKind.DOCUMENT) -> Iterator[DocumentRecord]:
        """Hold the document's lock for the duration of the ``with`` block."""

        with self._lock:
            record = self._documents.get(uri)
        if record is None:
            raise SessionResourceNotFound(kind, uri)
        with record.lock:
            # A concurrent close may have won the race for the record.
            if record.closed:
                raise SessionResourceNotFound(kind, uri)
            yield record

    def get_text(self, uri: str) -> Text:
        with self.document(uri) as record:
            return record.text

    @contextmanager
    def get_mut_text(self, uri: str) -> Iterator[DocumentRecord]:
        """Yield the locked record; assign ``record.text`` to replace the text."""

        with self.document(uri) as record:
            yield record

    def get_tree(self, uri: str) -> Any:
        with self.document(uri, ResourceKind.TREE) as record:
            if record.tree is None:
                raise SessionResourceNotFound(ResourceKind.TREE, uri)
            return record.tree

    @contextmanager
    def get_mut_parser(self, uri: str) -> Iterator["DocumentParser"]:
        with self.document(uri, ResourceKind.PARSER) as record:
            if record.parser is None:
                raise SessionResourceNotFound(ResourceKind.PARSER, uri)
            yield record.parser

    def version(self, uri: str) -> int:
        with self.document(uri) as record:
            return record.version

    def next_version(self, uri: str) -> int:
        """Atomically bump and return the document's version."""

        with self.document(uri) as record:
            record.version += 1
            return record.version
