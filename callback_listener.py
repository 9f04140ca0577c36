"""
One-shot local HTTP listener for the OAuth callback.

The provider redirects the browser to http://localhost:<port>/callback with an
``oauth_verifier`` query parameter. The first GET decides the outcome: with a
verifier the wait succeeds, without one it fails, and either way the server is
closed so a second callback is never accepted. Idle connections are dropped
after a short read timeout and do not count as the callback.
"""

import logging
import threading
import time
import urllib.parse
from http.server import BaseHTTPRequestHandler, HTTPServer
from typing import Optional

from evernote_errors import CallbackError

logger = logging.getLogger(__name__)

CLOSE_TAB_HTML = b"<script>window.close();</script>"

# seconds a connection may take to send its request line
REQUEST_TIMEOUT = 10
# seconds between checks for the deadline or a close()
POLL_INTERVAL = 0.5


class VerifierSignal:
    """Single-fire rendezvous between the server thread and the waiting flow."""

    def __init__(self):
        self._event = threading.Event()
        self._lock = threading.Lock()
        self._verifier: Optional[str] = None
        self._error: Optional[CallbackError] = None

    def resolve(self, verifier: str) -> bool:
        return self._fire(verifier, None)

    def reject(self, reason: str) -> bool:
        return self._fire(None, CallbackError(reason))

    def _fire(self, verifier, error) -> bool:
        with self._lock:
            if self._event.is_set():
                return False
            self._verifier = verifier
            self._error = error
            self._event.set()
            return True

    @property
    def fired(self) -> bool:
        return self._event.is_set()

    def wait(self) -> str:
        self._event.wait()
        if self._error is not None:
            raise self._error
        return self._verifier


class CallbackHandler(BaseHTTPRequestHandler):
    """Extracts oauth_verifier from the redirect and reports it to the server's signal."""

    def do_GET(self):
        signal = self.server.signal
        params = urllib.parse.parse_qs(urllib.parse.urlparse(self.path).query)
        verifier = params.get("oauth_verifier", [""])[0]
        if not verifier:
            self._respond(400, b"no oauth_verifier provided")
            signal.reject("no oauth_verifier provided")
            return

        self._respond(200, CLOSE_TAB_HTML)
        signal.resolve(verifier)

    def _respond(self, status: int, body: bytes) -> None:
        self.send_response(status)
        self.send_header('Content-Type', 'text/html')
        self.send_header('Content-Length', str(len(body)))
        self.end_headers()
        self.wfile.write(body)

    def log_message(self, format, *args):
        logger.debug("callback: " + format % args)


class CallbackServer(HTTPServer):
    """HTTPServer carrying the signal its single callback resolves."""

    # handle_request() returns after this long without a connection
    timeout = POLL_INTERVAL

    def __init__(self, server_address, signal: VerifierSignal, deadline: Optional[float] = None,
                 request_timeout: float = REQUEST_TIMEOUT):
        super().__init__(server_address, CallbackHandler)
        self.signal = signal
        self.deadline = deadline
        self.request_timeout = request_timeout

    def get_request(self):
        # a connection that never sends a request line (browser preconnect) must not block the listener
        conn, addr = super().get_request()
        timeout = self.request_timeout
        if self.deadline is not None:
            timeout = max(min(timeout, self.deadline - time.monotonic()), 0.01)
        conn.settimeout(timeout)
        return conn, addr

    def handle_error(self, request, client_address):
        logger.exception(f"Error while handling callback from {client_address}")
        self.signal.reject("callback request could not be handled")


class CallbackListener:
    """Binds the callback port, serves until one callback arrives, hands back the verifier."""

    def __init__(self, port: int, host: str = "localhost", timeout: Optional[float] = None,
                 request_timeout: float = REQUEST_TIMEOUT):
        self.host = host
        self.port = port
        self.timeout = timeout
        self.request_timeout = request_timeout
        self.signal = VerifierSignal()
        self._server: Optional[CallbackServer] = None
        self._thread: Optional[threading.Thread] = None

    def start(self) -> None:
        """Bind the port and start waiting for the redirect."""
        deadline = None if self.timeout is None else time.monotonic() + self.timeout
        try:
            self._server = CallbackServer((self.host, self.port), self.signal, deadline, self.request_timeout)
        except OSError as e:
            raise CallbackError(f"could not listen on {self.host}:{self.port}: {e}") from e

        # port 0 binds an ephemeral port
        self.port = self._server.server_address[1]
        self._thread = threading.Thread(target=self._serve_until_callback, daemon=True)
        self._thread.start()
        logger.info(f"Server running at http://{self.host}:{self.port}/")

    def _serve_until_callback(self) -> None:
        server = self._server
        while not self.signal.fired:
            if server.deadline is not None and time.monotonic() >= server.deadline:
                self.signal.reject(f"no callback received within {self.timeout} seconds")
                break
            server.handle_request()

    def wait(self) -> str:
        """Block until the callback arrives; always closes the server."""
        if self._server is None:
            raise CallbackError("listener was not started")
        try:
            return self.signal.wait()
        finally:
            self.close()

    def close(self) -> None:
        """Stop serving and release the port; a pending wait() fails."""
        self.signal.reject("callback listener closed")
        if self._thread is not None:
            self._thread.join()
            self._thread = None
        if self._server is not None:
            self._server.server_close()
            self._server = None
