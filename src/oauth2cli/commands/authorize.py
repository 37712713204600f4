"""The ``authorize`` command -- a full authorization code flow from the terminal.

Steps:

- read the client settings from the terminal, keeping a cache of the
  non-sensitive values so they do not have to be typed every time,
- open the browser on the authorize URL,
- catch the redirect on a local HTTP listener,
- exchange the authorization code for tokens,
- print either the full token response as JSON, the access token, or the
  ID token on stdout.

The callback URL must be allow-listed on the OAuth application for the
redirect to reach the listener.
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import Callable, Optional, TextIO

import typer

from oauth2cli.config import get_config_dir, load_authorize_cache, save_authorize_cache
from oauth2cli.console import ConsoleReader
from oauth2cli.exceptions import (
    ConfigError,
    InvalidUsageError,
    MissingFieldError,
    Oauth2CliError,
    PromptError,
)
from oauth2cli.flows import open_system_browser, run_authorization_code
from oauth2cli.models import (
    DEFAULT_CALLBACK_PATH,
    DEFAULT_CALLBACK_PORT,
    DEFAULT_TIMEOUT,
    AuthorizeCache,
    FlowInput,
    FlowOptions,
    TokenResponse,
)
from oauth2cli.output import (
    error,
    get_output,
    info,
    notice,
    print_data,
    print_json,
    warning,
)
from oauth2cli.security import generate_random_string

logger = logging.getLogger(__name__)

STATE_SIZE = 10
"""Random bytes in a generated state (hex-encoded to twice as many characters)."""


def _open_tty() -> TextIO:
    """Open the controlling terminal for reading answers."""
    try:
        return open("/dev/tty", "r", encoding="utf-8")
    except OSError as exc:
        raise PromptError(f"can't open /dev/tty: {exc}") from exc


def _read_secret_from_stdin() -> str:
    try:
        return sys.stdin.read().strip()
    except OSError as exc:
        raise PromptError(f"can't read client secret from STDIN: {exc}") from exc


def collect_flow_input(
    reader: ConsoleReader,
    config_dir: Path,
    http_port: int,
    client_secret: Optional[str] = None,
) -> FlowInput:
    """Prompt for every value of the flow, using the cache as defaults.

    The cache is saved after each cached answer so an interrupted session
    still remembers what was typed. An unreadable cache is reported and
    replaced by the new answers.

    Args:
        reader: Where answers are read from.
        config_dir: Folder holding ``authorize.json``.
        http_port: Port of the callback listener, used in the default
            redirect URI.
        client_secret: Secret already read from stdin. Prompted for when
            ``None``.
    """
    try:
        cache = load_authorize_cache(config_dir)
    except ConfigError as exc:
        warning(str(exc))
        cache = AuthorizeCache()

    def ask_cached(prompt: str, field: str) -> str:
        value = reader.read(prompt, default=getattr(cache, field), required=True)
        setattr(cache, field, value)
        try:
            save_authorize_cache(config_dir, cache)
        except Oauth2CliError as exc:
            warning(str(exc))
        return value

    authorize_uri = ask_cached("Authorize URI", "authorize_uri")
    token_uri = ask_cached("Token URI", "token_uri")
    redirect_uri = reader.read(
        "Redirect URI",
        default=f"http://localhost:{http_port}{DEFAULT_CALLBACK_PATH}",
        required=True,
    )
    client_id = ask_cached("Client ID", "client_id")
    if client_secret is None:
        client_secret = reader.read("Client Secret", password=True)
    scope = ask_cached("Scope", "scope")

    state = reader.read("State")
    if not state:
        state = generate_random_string(STATE_SIZE)
        logger.debug("Generated state %s", state)

    return FlowInput(
        authorize_uri=authorize_uri,
        token_uri=token_uri,
        redirect_uri=redirect_uri,
        client_id=client_id,
        client_secret=client_secret,
        scope=scope,
        state=state,
    )


def _print_url(url: str) -> None:
    # Shown even with --quiet: the flow cannot complete without it.
    notice("Open the following URL in your browser:")
    notice(url)


def _browser_launcher(no_browser: bool) -> Callable[[str], None]:
    if no_browser:
        return _print_url

    def _open(url: str) -> None:
        info("Opening the browser to authorize the application...")
        open_system_browser(url)

    return _open


def render_token_response(
    response: TokenResponse, only_access_token: bool, only_id_token: bool
) -> None:
    """Print the requested part of *response* on stdout.

    Raises:
        MissingFieldError: If only the ID token is requested and the server
            did not return one.
    """
    if only_access_token:
        print_data(response.access_token)
        return

    if only_id_token:
        if response.id_token is None:
            raise MissingFieldError("id_token", str(response.raw_response))
        print_data(response.id_token)
        return

    print_json(response.raw_response)


def authorize_command(
    ctx: typer.Context,
    http_port: int = typer.Option(
        DEFAULT_CALLBACK_PORT,
        "--http-port",
        min=1,
        max=65535,
        help="Port used to bind the callback HTTP server.",
    ),
    client_secret_stdin: bool = typer.Option(
        False,
        "--client-secret-stdin",
        help="Read the client secret from STDIN instead of prompting for it.",
    ),
    only_access_token: bool = typer.Option(
        False,
        "--only-accesstoken",
        help="Print only the access token. Can't be combined with --only-idtoken.",
    ),
    only_id_token: bool = typer.Option(
        False,
        "--only-idtoken",
        help="Print only the ID token. Can't be combined with --only-accesstoken.",
    ),
    timeout: float = typer.Option(
        DEFAULT_TIMEOUT,
        "--timeout",
        min=1,
        help="Seconds to wait for the browser redirect.",
    ),
    no_browser: bool = typer.Option(
        False,
        "--no-browser",
        help="Print the authorize URL instead of opening a browser.",
    ),
) -> None:
    """Handle a full authorization code flow.

    Prompts for the authorize/token URIs, client credentials, scope and
    state on the terminal, opens the browser, waits for the redirect on
    ``--http-port``, exchanges the code and prints the token response.

    Don't forget to add the redirect URI to the allowed callback URLs of
    your application.
    """
    obj = ctx.obj or {}
    try:
        if only_access_token and only_id_token:
            raise InvalidUsageError(
                "you can't ask for only accesstoken and only idtoken simultaneously"
            )

        config_dir = get_config_dir(obj.get("config_dir"))

        client_secret: Optional[str] = None
        if client_secret_stdin:
            client_secret = _read_secret_from_stdin()

        tty = _open_tty()
        try:
            reader = ConsoleReader(tty, console=get_output().stderr_console)
            flow_input = collect_flow_input(reader, config_dir, http_port, client_secret)
        finally:
            tty.close()

        options = FlowOptions(
            callback_port=http_port,
            open_browser=_browser_launcher(no_browser),
            timeout=timeout,
        )
        response = run_authorization_code(flow_input, options)
        render_token_response(response, only_access_token, only_id_token)
    except Oauth2CliError as exc:
        error(str(exc))
        raise typer.Exit(code=exc.exit_code) from None
