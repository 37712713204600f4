"""Exception hierarchy for oauth2cli.

All exceptions inherit from :class:`Oauth2CliError`, which carries an
``exit_code`` attribute mapped to a constant from :mod:`oauth2cli.exit_codes`.
The top-level error handler in :func:`oauth2cli.app.main` catches
``Oauth2CliError`` and exits with the appropriate code, while unexpected
exceptions produce a crash log and exit with :data:`EXIT_GENERIC_FAILURE`.

Errors raised by the authorization code flow derive from :class:`FlowError`
and keep their diagnostic context as attributes so callers never need to
re-run with extra logging to understand a failure.

Subclass hierarchy::

    Oauth2CliError (exit 1)
    +-- InvalidUsageError           (exit 2)
    +-- ConfigError                 (exit 1)
    +-- PromptError                 (exit 1)
    +-- FlowError                   (exit 3)
        +-- InvalidURIError         (exit 2)
        +-- ServerBindError         (exit 6)
        +-- StateMismatchError      (exit 3)
        +-- AuthServerError         (exit 3)
        +-- MissingCodeError        (exit 3)
        +-- FlowTimeoutError        (exit 8)
        +-- FlowCancelledError      (exit 130)
        +-- RequestBuildError       (exit 2)
        +-- NetworkError            (exit 6)
        +-- UnexpectedStatusError   (exit 5)
        +-- DecodeError             (exit 5)
        +-- MissingFieldError       (exit 5)
"""

from __future__ import annotations

from typing import Optional

from oauth2cli.exit_codes import (
    EXIT_AUTH_FAILURE,
    EXIT_CANCELLED,
    EXIT_CONNECTION_ERROR,
    EXIT_GENERIC_FAILURE,
    EXIT_INVALID_USAGE,
    EXIT_TIMEOUT,
    EXIT_TOKEN_ENDPOINT_ERROR,
)


class Oauth2CliError(Exception):
    """Base exception for all oauth2cli errors.

    Every subclass sets a class-level ``exit_code`` corresponding to one of
    the constants in :mod:`oauth2cli.exit_codes`. The entry point catches
    this exception type and calls ``sys.exit(exc.exit_code)``.

    Args:
        message: Human-readable error description printed to stderr.
        exit_code: Optional override for the class-level exit code.
    """

    exit_code: int = EXIT_GENERIC_FAILURE

    def __init__(self, message: str, exit_code: int | None = None):
        super().__init__(message)
        if exit_code is not None:
            self.exit_code = exit_code


class InvalidUsageError(Oauth2CliError):
    """Raised for invalid CLI arguments or conflicting flags."""

    exit_code = EXIT_INVALID_USAGE


class ConfigError(Oauth2CliError):
    """Raised for configuration problems (unreadable cache, invalid JSON)."""

    exit_code = EXIT_GENERIC_FAILURE


class PromptError(Oauth2CliError):
    """Raised when a value cannot be read from the terminal."""

    exit_code = EXIT_GENERIC_FAILURE


# --- Authorization code flow ---


class FlowError(Oauth2CliError):
    """Base class for every failure of the authorization code flow."""

    exit_code = EXIT_AUTH_FAILURE


class InvalidURIError(FlowError):
    """Raised when the authorize URI cannot be parsed as an absolute URL."""

    exit_code = EXIT_INVALID_USAGE

    def __init__(self, uri: str, reason: str):
        super().__init__(f"can't parse authorize uri '{uri}': {reason}")
        self.uri = uri
        self.reason = reason


class ServerBindError(FlowError):
    """Raised when the callback listener cannot bind its port."""

    exit_code = EXIT_CONNECTION_ERROR

    def __init__(self, host: str, port: int, reason: str):
        super().__init__(f"can't start callback server on {host}:{port}: {reason}")
        self.host = host
        self.port = port
        self.reason = reason


class StateMismatchError(FlowError):
    """Raised when the callback ``state`` differs from the one sent."""

    def __init__(self, expected: str, actual: str):
        super().__init__(f"invalid state. expected:{expected}; got:{actual}")
        self.expected = expected
        self.actual = actual


class AuthServerError(FlowError):
    """Raised when the callback carries ``error`` or ``error_description``."""

    def __init__(self, error: str, description: str):
        super().__init__(
            f"oauth server returned an error. code:{error}; description: {description}"
        )
        self.error = error
        self.description = description


class MissingCodeError(FlowError):
    """Raised when the callback has neither an error nor a ``code``."""

    def __init__(self, url: str):
        super().__init__(f"code is not part of the parameters. url:{url}")
        self.url = url


class FlowTimeoutError(FlowError):
    """Raised when no callback arrives before the deadline."""

    exit_code = EXIT_TIMEOUT

    def __init__(self, timeout: float):
        super().__init__(
            f"no authorization callback received within {timeout:g} seconds"
        )
        self.timeout = timeout


class FlowCancelledError(FlowError):
    """Raised when the wait for the callback is cancelled."""

    exit_code = EXIT_CANCELLED

    def __init__(self, reason: str = "cancelled"):
        super().__init__(f"authorization flow cancelled: {reason}")
        self.reason = reason


class RequestBuildError(FlowError):
    """Raised when the token request cannot be constructed."""

    exit_code = EXIT_INVALID_USAGE

    def __init__(self, token_uri: str, reason: str):
        super().__init__(
            f"can't build request to the '{token_uri}' endpoint: {reason}"
        )
        self.token_uri = token_uri
        self.reason = reason


class NetworkError(FlowError):
    """Raised when the token request cannot be sent or its body read."""

    exit_code = EXIT_CONNECTION_ERROR

    def __init__(self, token_uri: str, code: str, reason: str):
        super().__init__(
            f"can't send request to the '{token_uri}' endpoint with code '{code}': {reason}"
        )
        self.token_uri = token_uri
        self.code = code
        self.reason = reason


class UnexpectedStatusError(FlowError):
    """Raised when the token endpoint does not answer with HTTP 200."""

    exit_code = EXIT_TOKEN_ENDPOINT_ERROR

    def __init__(self, token_uri: str, code: str, status_code: int, body: str):
        super().__init__(
            f"unexpected http status from the '{token_uri}' endpoint with code "
            f"'{code}'. expected:200; got:{status_code}; body: {body}"
        )
        self.token_uri = token_uri
        self.code = code
        self.status_code = status_code
        self.body = body


class DecodeError(FlowError):
    """Raised when the token endpoint body is not a JSON object."""

    exit_code = EXIT_TOKEN_ENDPOINT_ERROR

    def __init__(self, token_uri: str, code: str, body: str, reason: str):
        super().__init__(
            f"can't decode successful response from the '{token_uri}' endpoint "
            f"with code '{code}'. body: {body}; err: {reason}"
        )
        self.token_uri = token_uri
        self.code = code
        self.body = body
        self.reason = reason


class MissingFieldError(FlowError):
    """Raised when a required string field is absent from the token response."""

    exit_code = EXIT_TOKEN_ENDPOINT_ERROR

    def __init__(self, field: str, body: Optional[str] = None):
        message = f"missing '{field}' from json response"
        if body is not None:
            message += f". body: {body}"
        super().__init__(message)
        self.field = field
        self.body = body
