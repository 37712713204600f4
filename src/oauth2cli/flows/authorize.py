"""Authorize URL construction.

:func:`build_authorize_url` merges the authorization request parameters into
the caller's authorize URI. No network I/O happens here: the resulting URL
is only handed to the browser.
"""

from __future__ import annotations

from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

from oauth2cli.exceptions import InvalidURIError
from oauth2cli.models import FlowInput


def authorize_params(flow_input: FlowInput) -> dict[str, str]:
    """Return the query parameters of an authorization code request."""
    return {
        "client_id": flow_input.client_id,
        "redirect_uri": flow_input.redirect_uri,
        "scope": flow_input.scope,
        "response_type": "code",
        "state": flow_input.state,
    }


def build_authorize_url(flow_input: FlowInput) -> str:
    """Build the URL the user is sent to in order to grant access.

    Scheme, host, path and fragment of ``authorize_uri`` are kept, as are
    any extra query parameters it already carries (``audience``,
    ``prompt``...). ``client_id``, ``redirect_uri``, ``scope``,
    ``response_type`` and ``state`` are always overwritten so each appears
    exactly once.

    Args:
        flow_input: The flow being started.

    Returns:
        The fully-qualified authorize URL.

    Raises:
        InvalidURIError: If ``authorize_uri`` cannot be parsed or is not an
            absolute URL.
    """
    uri = flow_input.authorize_uri
    try:
        parts = urlsplit(uri)
        # Accessing .port validates the port component.
        parts.port
    except ValueError as exc:
        raise InvalidURIError(uri, str(exc)) from exc

    if not parts.scheme or not parts.netloc:
        raise InvalidURIError(uri, "expected an absolute URL with scheme and host")

    params = authorize_params(flow_input)
    query = [
        (key, value)
        for key, value in parse_qsl(parts.query, keep_blank_values=True)
        if key not in params
    ]
    query.extend(params.items())

    return urlunsplit(
        (parts.scheme, parts.netloc, parts.path, urlencode(query), parts.fragment)
    )
