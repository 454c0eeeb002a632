"""Exception types shared across the synchronization engine."""
from __future__ import annotations

from enum import Enum


class InklineError(Exception):
    """Base class for errors raised by Inkline."""


class ResourceKind(str, Enum):
    DOCUMENT = "Document"
    PARSER = "Parser"
    TREE = "Tree"


class SessionResourceNotFound(InklineError):
    """Raised when a document, parser or tree is missing for a URI."""

    def __init__(self, kind: ResourceKind, uri: str) -> None:
        super().__init__(f"session resource not found: kind={kind.value}, uri={uri}")
        self.kind = kind
        self.uri = uri


class DocumentAlreadyOpen(InklineError):
    def __init__(self, uri: str) -> None:
        super().__init__(f"document already open: {uri}")
        self.uri = uri


class ClientNotInitialized(InklineError):
    """No active channel to the language server (before the handshake or after shutdown)."""


class MalformedEdit(InklineError, ValueError):
    """An edit references a location outside the document or disagrees with its content."""


class ParseFailure(InklineError):
    """The grammar could not produce a syntax tree for a document."""


class SyncError(InklineError):
    """Change notifications for a document would reach the server out of order."""

    def __init__(self, uri: str, version: int, last_sent: int) -> None:
        super().__init__(f"version {version} for {uri} is not newer than {last_sent}")
        self.uri = uri
        self.version = version
        self.last_sent = last_sent
