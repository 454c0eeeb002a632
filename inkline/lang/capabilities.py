"""Capability negotiation with the language server."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Iterable, Mapping, Sequence

from lsprotocol.types import PositionEncodingKind, SymbolKind, TextDocumentSyncKind

logger = logging.getLogger(__name__)

DEFAULT_POSITION_ENCODINGS: tuple[str, ...] = ("utf-8", "utf-16", "utf-32")


@dataclass(frozen=True)
class SessionCapabilities:
    """Values fixed by the initialize handshake for the rest of the session."""

    encoding: PositionEncodingKind = PositionEncodingKind.Utf16
    trigger_characters: frozenset[str] = field(default_factory=frozenset)
    incremental_sync: bool = True
    document_symbols: bool = False

    @classmethod
    def from_server(cls, capabilities: Mapping[str, Any] | None, extra_triggers: Iterable[str] = ()) -> "SessionCapabilities":
        capabilities = capabilities if isinstance(capabilities, Mapping) else {}
        return cls(
            encoding=negotiated_encoding(capabilities.get("positionEncoding")),
            trigger_characters=frozenset(_trigger_characters(capabilities)) | frozenset(extra_triggers),
            incremental_sync=_sync_kind(capabilities.get("textDocumentSync")) == TextDocumentSyncKind.Incremental,
            document_symbols=bool(capabilities.get("documentSymbolProvider")),
        )


def negotiated_encoding(value: Any) -> PositionEncodingKind:
    """Map the server's ``positionEncoding`` to an encoding; UTF-16 when absent."""

    if value == PositionEncodingKind.Utf8.value:
        return PositionEncodingKind.Utf8
    if value == PositionEncodingKind.Utf32.value:
        return PositionEncodingKind.Utf32
    if value not in (None, PositionEncodingKind.Utf16.value):
        logger.warning("Server chose unknown position encoding %r; using utf-16", value)
    return PositionEncodingKind.Utf16


def _trigger_characters(capabilities: Mapping[str, Any]) -> list[str]:
    provider = capabilities.get("completionProvider")
    if not isinstance(provider, Mapping):
        return []
    return [str(char) for char in provider.get("triggerCharacters") or [] if char]


def _sync_kind(value: Any) -> TextDocumentSyncKind:
    if isinstance(value, Mapping):
        value = value.get("change", TextDocumentSyncKind.None_)
    try:
        return TextDocumentSyncKind(value)
    except ValueError:
        return TextDocumentSyncKind.None_


def client_capabilities(position_encodings: Sequence[str] = DEFAULT_POSITION_ENCODINGS) -> dict[str, Any]:
    """Capabilities advertised in the ``initialize`` request."""

    offered = [enc for enc in position_encodings if enc in {kind.value for kind in PositionEncodingKind}]
    return {
        "general": {"positionEncodings": offered or list(DEFAULT_POSITION_ENCODINGS)},
        "textDocument": {
            "synchronization": {
                "dynamicRegistration": True,
                "willSave": False,
                "willSaveWaitUntil": False,
                "didSave": False,
            },
            "completion": {
                "completionItem": {"snippetSupport": False},
                "contextSupport": True,
            },
            "documentSymbol": {
                "dynamicRegistration": True,
                "hierarchicalDocumentSymbolSupport": False,
                "tagSupport": {"valueSet": [1]},
                "symbolKind": {"valueSet": [kind.value for kind in SymbolKind]},
            },
            "publishDiagnostics": {"relatedInformation": False},
        },
    }
