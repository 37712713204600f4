"""Numeric process exit codes following `clig.dev <https://clig.dev/>`_ conventions.

Each constant maps to a specific error category and is referenced by the
corresponding :class:`~oauth2cli.exceptions.Oauth2CliError` subclass.
Shell wrappers can inspect the exit code to tell a rejected authorization
apart from a network failure without parsing stderr.

Example::

    $ oauth2 authorize --only-accesstoken
    $ echo $?
    3   # EXIT_AUTH_FAILURE -- the authorization server denied the request
"""

EXIT_SUCCESS = 0
"""The command completed successfully."""

EXIT_GENERIC_FAILURE = 1
"""An unclassified error occurred."""

EXIT_INVALID_USAGE = 2
"""The command was invoked with invalid arguments or unusable URIs."""

EXIT_AUTH_FAILURE = 3
"""The authorization step failed (denied, state mismatch, missing code)."""

EXIT_TOKEN_ENDPOINT_ERROR = 5
"""The token endpoint answered with an unexpected status or payload."""

EXIT_CONNECTION_ERROR = 6
"""A network-level error occurred (bind failure, DNS, connection refused)."""

EXIT_TIMEOUT = 8
"""The browser flow was not completed before the deadline."""

EXIT_CANCELLED = 130
"""The flow was interrupted by the user."""
