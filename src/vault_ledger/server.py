"""Threaded JSON-over-HTTP server for VaultService."""

from __future__ import annotations

import json
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer

from .errors import InvalidArgumentError, VaultLedgerError
from .logger import get_logger
from .service import Response, VaultService, error_response

logger = get_logger(__name__)

_INTERNAL_ERROR = Response(500, {"error": "Internal server error", "kind": "internal"})


def _make_handler(service: VaultService) -> type[BaseHTTPRequestHandler]:
    class VaultRequestHandler(BaseHTTPRequestHandler):
        server_version = "vault-ledger"

        def log_message(self, format, *args):
            logger.debug("%s - %s", self.address_string(), format % args)

        def _read_body(self) -> bytes | None:
            raw_length = self.headers.get("Content-Length")
            if not raw_length:
                return None
            try:
                length = int(raw_length)
            except ValueError as e:
                raise InvalidArgumentError(
                    f"Invalid Content-Length header: {raw_length!r}"
                ) from e
            if length < 0:
                raise InvalidArgumentError(
                    f"Invalid Content-Length header: {raw_length!r}"
                )
            return self.rfile.read(length) if length else None

        def _send(self, response: Response) -> None:
            try:
                payload = json.dumps(response.body, allow_nan=False).encode()
            except ValueError:
                logger.exception(
                    "Response for %s %s is not valid JSON", self.command, self.path
                )
                response = _INTERNAL_ERROR
                payload = json.dumps(response.body).encode()
            self.send_response(response.status)
            self.send_header("Content-Type", "application/json")
            self.send_header("Content-Length", str(len(payload)))
            self.end_headers()
            self.wfile.write(payload)

        def _serve(self) -> None:
            try:
                body = self._read_body()
            except VaultLedgerError as exc:
                logger.debug("%s %s rejected: %s", self.command, self.path, exc)
                # the unread body makes the connection unusable
                self.close_connection = True
                self._send(error_response(exc))
                return
            self._send(service.handle(self.command, self.path, body))

        do_GET = _serve
        do_POST = _serve
        do_PUT = _serve

    return VaultRequestHandler


def create_server(service: VaultService, host: str, port: int) -> ThreadingHTTPServer:
    """Bind a server; pass ``port=0`` to pick a free port."""
    server = ThreadingHTTPServer((host, port), _make_handler(service))
    server.daemon_threads = True
    return server
