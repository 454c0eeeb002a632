"""Diagnostics published by the language server."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Iterable, Mapping

logger = logging.getLogger(__name__)

_SEVERITIES = {1: "Error", 2: "Warning", 3: "Information", 4: "Hint"}


@dataclass(frozen=True)
class Diagnostic:
    uri: str
    line: int
    col: int
    severity: str
    message: str

    @classmethod
    def from_lsp(cls, uri: str, payload: Mapping[str, Any]) -> "Diagnostic":
        start = payload.get("range", {}).get("start", {})
        return cls(
            uri=uri,
            line=int(start.get("line", 0)),
            col=int(start.get("character", 0)),
            severity=_SEVERITIES.get(payload.get("severity"), "Information"),
            message=str(payload.get("message", "")),
        )


class DiagnosticsStore:
    """Latest diagnostics per document; subscribers hear every update."""

    def __init__(self) -> None:
        self._by_uri: dict[str, list[Diagnostic]] = {}
        self._callbacks: list[Callable[[str, list[Diagnostic]], None]] = []

    def subscribe(self, callback: Callable[[str, list[Diagnostic]], None]) -> None:
        self._callbacks.append(callback)

    def get(self, uri: str) -> list[Diagnostic]:
        return list(self._by_uri.get(uri, []))

    def publish(self, uri: str, diagnostics: Iterable[Diagnostic]) -> None:
        items = list(diagnostics)
        if items:
            self._by_uri[uri] = items
        else:
            self._by_uri.pop(uri, None)
        logger.debug("%d diagnostics for %s", len(items), uri)
        for callback in self._callbacks:
            callback(uri, list(items))

    def handle_publish(self, params: Mapping[str, Any]) -> None:
        """Handle ``textDocument/publishDiagnostics`` parameters."""

        uri = str(params.get("uri", ""))
        self.publish(uri, (Diagnostic.from_lsp(uri, diag) for diag in params.get("diagnostics", [])))

    def reset(self, uri: str) -> None:
        """Clear a closed document's diagnostics."""

        self.publish(uri, [])
