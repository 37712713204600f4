"""Authorization code flow orchestration.

:func:`run_authorization_code` drives one complete flow:

1. build the authorize URL,
2. bind the callback listener on the redirect URI's path,
3. open the browser on the authorize URL,
4. wait (bounded by ``FlowOptions.timeout``) for the redirect,
5. shut the listener down,
6. exchange the code for tokens,
7. return the parsed :class:`~oauth2cli.models.TokenResponse`.

Nothing is retried: OAuth flows have a user in the loop, so a new attempt
is a new invocation.
"""

from __future__ import annotations

import logging
import threading
import webbrowser
from typing import Callable, Optional
from urllib.parse import urlsplit

from oauth2cli.flows.authorize import build_authorize_url
from oauth2cli.flows.callback import CallbackListener, FailureOutcome
from oauth2cli.flows.token import exchange_code
from oauth2cli.models import FlowInput, FlowOptions, TokenResponse

logger = logging.getLogger(__name__)


def open_system_browser(url: str) -> None:
    """Open *url* in the system browser without blocking the flow."""

    def _open() -> None:
        if not webbrowser.open(url):
            logger.warning("No browser could be opened for %s", url)

    threading.Thread(target=_open, name="oauth2-browser", daemon=True).start()


def _launch_browser(open_browser: Callable[[str], None], url: str) -> None:
    try:
        open_browser(url)
    except Exception as exc:  # noqa: BLE001
        # The user can still open the URL by hand; the listener keeps waiting.
        logger.warning("Failed to open the browser: %s", exc)


def run_authorization_code(
    flow_input: FlowInput,
    options: Optional[FlowOptions] = None,
    listener: Optional[CallbackListener] = None,
) -> TokenResponse:
    """Run a full authorization code flow and return the token response.

    Args:
        flow_input: Endpoints, client credentials, scope and state.
        options: Callback port, browser launcher and timeout. Defaults to
            :class:`~oauth2cli.models.FlowOptions()`.
        listener: A not yet started listener to use instead of building one
            from *options*. Lets callers keep a handle for
            :meth:`~oauth2cli.flows.callback.CallbackListener.cancel`.

    Returns:
        The token response. Either this is returned or an exception is
        raised; there is no partial result.

    Raises:
        InvalidURIError: If the authorize URI is unusable.
        ServerBindError: If the callback port cannot be bound. Raised
            before the browser is opened.
        StateMismatchError, AuthServerError, MissingCodeError: If the
            callback is rejected. No token request is made.
        FlowTimeoutError, FlowCancelledError: If the wait ends without a
            callback.
        RequestBuildError, NetworkError, UnexpectedStatusError,
        DecodeError, MissingFieldError: If the code exchange fails.
    """
    options = options or FlowOptions()
    authorize_url = build_authorize_url(flow_input)

    if listener is None:
        listener = CallbackListener(
            expected_state=flow_input.state,
            callback_path=urlsplit(flow_input.redirect_uri).path,
            host=options.callback_host,
            port=options.callback_port,
        )

    with listener:
        logger.debug("Opening browser on %s", authorize_url)
        _launch_browser(options.open_browser or open_system_browser, authorize_url)
        outcome = listener.wait(options.timeout)

    if isinstance(outcome, FailureOutcome):
        raise outcome.error

    logger.debug("Received authorization code, exchanging it for tokens")
    return exchange_code(flow_input, outcome.code)
