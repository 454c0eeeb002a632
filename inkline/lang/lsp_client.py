"""JSON-RPC transport to a language server subprocess."""
from __future__ import annotations

import json
import logging
from typing import Any

from PySide6.QtCore import QByteArray, QObject, QProcess, Signal
from shiboken6 import isValid

logger = logging.getLogger(__name__)


def frame_message(payload: dict[str, Any]) -> bytes:
    data = json.dumps(payload).encode("utf-8")
    return f"Content-Length: {len(data)}\r\n\r\n".encode("ascii") + data


def extract_message(data: bytes) -> tuple[dict[str, Any] | None, bytes, bool]:
    """Split one framed message off the front of ``data``.

    Returns ``(message, rest, consumed)``; ``consumed`` is False while the
    buffer does not yet hold a complete message.
    """

    header_end = data.find(b"\r\n\r\n")
    if header_end == -1:
        return None, data, False
    headers = data[:header_end].decode("ascii", errors="ignore")
    content_length = 0
    for line in headers.split("\r\n"):
        if line.lower().startswith("content-length"):
            try:
                content_length = int(line.split(":")[1].strip())
            except (ValueError, IndexError):
                logger.warning("Malformed LSP header: %r", line)
    body_start = header_end + 4
    if len(data) < body_start + content_length:
        return None, data, False
    body = data[body_start : body_start + content_length]
    rest = data[body_start + content_length :]
    try:
        return json.loads(body.decode("utf-8")), rest, True
    except (json.JSONDecodeError, UnicodeDecodeError):
        logger.warning("Failed to decode LSP message: %r", body)
        return None, rest, True


class LSPClient(QObject):
    """Starts a language server process and exchanges JSON-RPC messages with it.

    Messages are written in call order on the process's stdin, which keeps
    change notifications in the order the editor produced them.
    """

    response_received = Signal(dict)
    notification_received = Signal(dict)
    request_received = Signal(dict)
    started = Signal()
    exited = Signal(int)

    def __init__(self, command: list[str], workdir: str | None = None, parent=None) -> None:
        super().__init__(parent)
        self.command = command
        self.workdir = workdir
        self.process = QProcess(self)
        self._id_counter = 0
        self._buffer = b""

        self.process.readyReadStandardOutput.connect(self._on_ready_read)
        self.process.started.connect(self._on_started)
        self.process.errorOccurred.connect(self._on_error)
        self.process.finished.connect(self._on_finished)

    def start(self) -> None:
        if not self.command:
            raise RuntimeError("No command configured for language server")
        program, *args = self.command
        self.process.setWorkingDirectory(self.workdir or "")
        logger.info("Starting language server: %r %r", program, args)
        self.process.start(program, args)

    def is_running(self) -> bool:
        return isValid(self.process) and self.process.state() == QProcess.ProcessState.Running

    def stop(self) -> None:
        if not self.is_running():
            return
        try:
            self.send_request("shutdown", None)
            self.send_notification("exit", None)
        except RuntimeError:
            logger.debug("Failed to send shutdown sequence", exc_info=True)
        self.process.closeWriteChannel()
        if not self.process.waitForFinished(2000):
            logger.warning("Language server did not exit; killing process")
            self.process.kill()
            self.process.waitForFinished(1000)

    def send_request(self, method: str, params: Any = None) -> int:
        self._id_counter += 1
        payload: dict[str, Any] = {"jsonrpc": "2.0", "id": self._id_counter, "method": method}
        if params is not None:
            payload["params"] = params
        self._send_payload(payload)
        return self._id_counter

    def send_notification(self, method: str, params: Any = None) -> None:
        payload: dict[str, Any] = {"jsonrpc": "2.0", "method": method}
        if params is not None:
            payload["params"] = params
        self._send_payload(payload)

    def send_response(self, request_id: int | str, result: Any = None) -> None:
        self._send_payload({"jsonrpc": "2.0", "id": request_id, "result": result})

    # JSON-RPC plumbing
    def _send_payload(self, payload: dict[str, Any]) -> None:
        self.process.write(QByteArray(frame_message(payload)))
        logger.debug("LSP -> %s", payload)

    def feed(self, data: bytes) -> None:
        """Consume raw server output and dispatch every complete message."""

        self._buffer += data
        while True:
            message, self._buffer, consumed = extract_message(self._buffer)
            if not consumed:
                break
            if message is not None:
                self._handle_message(message)

    def _on_started(self) -> None:  # pragma: no cover - Qt started callback
        logger.info("Language server started: %r", self.command)
        self.started.emit()

    def _on_ready_read(self) -> None:
        if not isValid(self.process):
            logger.warning("Received data from invalid language server process")
            return
        self.feed(bytes(self.process.readAllStandardOutput()))

    def _handle_message(self, message: dict[str, Any]) -> None:
        logger.debug("LSP <- %s", message)
        if "method" in message and "id" in message:
            self.request_received.emit(message)
        elif "id" in message:
            self.response_received.emit(message)
        elif "method" in message:
            self.notification_received.emit(message)

    def _on_finished(self, code: int, _status=None) -> None:  # pragma: no cover - Qt finished callback
        logger.info("Language server exited with code %s", code)
        self.exited.emit(int(code))

    def _on_error(self, error) -> None:  # pragma: no cover - Qt error callback
        if error == QProcess.ProcessError.FailedToStart:
            logger.error(
                "Language server failed to start for %r. Check that the configured command exists and is executable.",
                self.command,
            )
        else:
            logger.error("Language server process error: %s", error)
