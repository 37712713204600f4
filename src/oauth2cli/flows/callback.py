"""Local HTTP listener that catches the authorization redirect.

A :class:`CallbackListener` owns one dedicated :class:`ThreadingHTTPServer`
with its own handler class, so repeated or concurrent flows never share
routing state. The server runs on a daemon thread while the caller blocks in
:meth:`CallbackListener.wait` until the first request on the callback path
resolves the flow::

    with CallbackListener(expected_state="xyz", port=9876) as listener:
        webbrowser.open(authorize_url)
        outcome = listener.wait(timeout=300)

Leaving the ``with`` block always shuts the server down and releases the
port, whatever the outcome.
"""

from __future__ import annotations

import enum
import logging
import threading
from dataclasses import dataclass
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from typing import Any, Optional, Union
from urllib.parse import parse_qs, urlsplit

from oauth2cli.exceptions import (
    AuthServerError,
    FlowCancelledError,
    FlowError,
    FlowTimeoutError,
    MissingCodeError,
    ServerBindError,
    StateMismatchError,
)
from oauth2cli.models import DEFAULT_CALLBACK_PATH, DEFAULT_CALLBACK_PORT

logger = logging.getLogger(__name__)

CLOSE_WINDOW_PAGE = (
    b'<html><body><script type="text/javascript">window.close()</script></body></html>'
)
"""Body served to the browser on the callback path."""


@dataclass(frozen=True)
class CodeOutcome:
    """The callback carried a valid authorization code."""

    code: str


@dataclass(frozen=True)
class FailureOutcome:
    """The callback (or the wait for it) failed."""

    error: FlowError


CallbackOutcome = Union[CodeOutcome, FailureOutcome]


def _first(params: dict[str, list[str]], name: str) -> str:
    values = params.get(name)
    return values[0] if values else ""


def evaluate_callback(query: str, expected_state: str, url: str) -> CallbackOutcome:
    """Turn the query string of a redirect into a :data:`CallbackOutcome`.

    Checks are applied in order and the first one that fails wins:

    1. ``state`` must equal *expected_state* exactly (case-sensitive).
    2. A non-empty ``error`` or ``error_description`` is an
       authorization server error, even when a ``code`` is also present.
    3. ``code`` must be present and non-empty.

    Args:
        query: Raw query string of the callback request.
        expected_state: The state sent on the authorize URL.
        url: The callback URL, used in error messages.
    """
    params = parse_qs(query, keep_blank_values=True)

    actual_state = _first(params, "state")
    if actual_state != expected_state:
        return FailureOutcome(StateMismatchError(expected_state, actual_state))

    error = _first(params, "error")
    description = _first(params, "error_description")
    if error or description:
        return FailureOutcome(AuthServerError(error, description))

    code = _first(params, "code")
    if not code:
        return FailureOutcome(MissingCodeError(url))

    return CodeOutcome(code)


class ListenerState(str, enum.Enum):
    """Lifecycle of a :class:`CallbackListener`."""

    IDLE = "idle"
    LISTENING = "listening"
    RESOLVED = "resolved"
    CLOSED = "closed"


class _CallbackHandler(BaseHTTPRequestHandler):
    """Request handler bound to a single listener through a subclass attribute."""

    listener: CallbackListener
    # Idle browser connections (pre-connects) must not pin a thread forever.
    timeout = 10

    def do_GET(self) -> None:
        parsed = urlsplit(self.path)
        if parsed.path != self.listener.callback_path:
            self.send_error(404)
            return

        if self.listener.resolved:
            logger.debug("Ignoring extra callback request: %s", self.path)
            self._write_close_page()
            return

        host = self.headers.get("Host") or "%s:%d" % self.server.server_address[:2]
        outcome = evaluate_callback(
            parsed.query, self.listener.expected_state, f"http://{host}{self.path}"
        )
        self.listener._resolve(outcome)
        self._write_close_page()

    def _write_close_page(self) -> None:
        try:
            self.send_response(200)
            self.send_header("Content-Type", "text/html; charset=utf-8")
            self.send_header("Content-Length", str(len(CLOSE_WINDOW_PAGE)))
            self.end_headers()
            self.wfile.write(CLOSE_WINDOW_PAGE)
        except (BrokenPipeError, ConnectionResetError) as exc:
            logger.debug("Browser went away before the page was sent: %s", exc)

    def log_message(self, format: str, *args: Any) -> None:
        logger.debug("callback server: " + format, *args)


class CallbackListener:
    """One-shot HTTP listener resolving to exactly one :data:`CallbackOutcome`.

    The first outcome to arrive wins: a request on the callback path, a
    timeout in :meth:`wait`, or :meth:`cancel` from any thread. Later
    requests are answered with the same page but never change the outcome.

    Args:
        expected_state: The ``state`` sent on the authorize URL.
        callback_path: Path of the redirect URI; other paths get a 404.
        host: Interface to bind.
        port: TCP port to bind. ``0`` picks a free port (see :attr:`port`).
    """

    def __init__(
        self,
        expected_state: str,
        callback_path: str = DEFAULT_CALLBACK_PATH,
        host: str = "0.0.0.0",
        port: int = DEFAULT_CALLBACK_PORT,
    ) -> None:
        self.expected_state = expected_state
        self.callback_path = callback_path or "/"
        self.host = host
        self._requested_port = port
        self._server: Optional[ThreadingHTTPServer] = None
        self._thread: Optional[threading.Thread] = None
        self._lock = threading.Lock()
        self._resolved = threading.Event()
        self._outcome: Optional[CallbackOutcome] = None
        self._state = ListenerState.IDLE

    @property
    def state(self) -> ListenerState:
        return self._state

    @property
    def resolved(self) -> bool:
        return self._resolved.is_set()

    @property
    def outcome(self) -> Optional[CallbackOutcome]:
        return self._outcome

    @property
    def port(self) -> int:
        """The bound port once listening, the requested one before."""
        if self._server is not None:
            return self._server.server_address[1]
        return self._requested_port

    def start(self) -> None:
        """Bind the server and start serving on a daemon thread.

        Raises:
            ServerBindError: If the address cannot be bound (port in use,
                permission denied...).
            RuntimeError: If the listener was already started.
        """
        if self._state is not ListenerState.IDLE:
            raise RuntimeError(f"listener already {self._state.value}")

        handler = type("CallbackHandler", (_CallbackHandler,), {"listener": self})
        try:
            server = ThreadingHTTPServer((self.host, self._requested_port), handler)
        except OSError as exc:
            raise ServerBindError(self.host, self._requested_port, str(exc)) from exc
        server.daemon_threads = True
        self._server = server

        self._thread = threading.Thread(
            target=server.serve_forever,
            kwargs={"poll_interval": 0.1},
            name=f"oauth2-callback-{self.port}",
            daemon=True,
        )
        self._thread.start()
        with self._lock:
            if self._state is ListenerState.IDLE:
                self._state = ListenerState.LISTENING
        logger.debug(
            "Callback server listening on %s:%d%s", self.host, self.port, self.callback_path
        )

    def wait(self, timeout: Optional[float] = None) -> CallbackOutcome:
        """Block until the listener resolves.

        Args:
            timeout: Seconds to wait, or ``None`` to wait indefinitely.

        Returns:
            The first outcome produced. When the deadline passes first, a
            :class:`FailureOutcome` wrapping :class:`FlowTimeoutError`.
        """
        if not self._resolved.wait(timeout) and timeout is not None:
            self._resolve(FailureOutcome(FlowTimeoutError(timeout)))
        outcome = self._outcome
        if outcome is None:
            raise RuntimeError("callback listener resolved without an outcome")
        return outcome

    def cancel(self, reason: str = "cancelled") -> bool:
        """Resolve the listener with :class:`FlowCancelledError`.

        Safe to call from any thread or a signal handler.

        Returns:
            ``True`` if this call resolved the listener, ``False`` if an
            outcome already existed.
        """
        return self._resolve(FailureOutcome(FlowCancelledError(reason)))

    def close(self) -> None:
        """Stop serving and release the port. Idempotent."""
        server, thread = self._server, self._thread
        self._server = None
        self._thread = None
        if server is not None:
            if thread is not None:
                server.shutdown()
                thread.join()
            server.server_close()
            logger.debug("Callback server closed")
        self._state = ListenerState.CLOSED

    def _resolve(self, outcome: CallbackOutcome) -> bool:
        with self._lock:
            if self._outcome is not None:
                return False
            self._outcome = outcome
            if self._state is not ListenerState.CLOSED:
                self._state = ListenerState.RESOLVED
        # Set only once the outcome is stored so waiters never see a partial value.
        self._resolved.set()
        return True

    def __enter__(self) -> CallbackListener:
        self.start()
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()
