"""Back-channel exchange of an authorization code for tokens.

The request authenticates the client twice: HTTP Basic credentials *and*
``client_id``/``client_secret`` in the form body.
"""

from __future__ import annotations

import json
import logging
from typing import Any

import httpx

from oauth2cli.exceptions import (
    DecodeError,
    NetworkError,
    RequestBuildError,
    UnexpectedStatusError,
)
from oauth2cli.models import FlowInput, TokenResponse

logger = logging.getLogger(__name__)

DEFAULT_REQUEST_TIMEOUT = 30.0


def token_request_body(flow_input: FlowInput, code: str) -> dict[str, str]:
    """Return the form fields of an ``authorization_code`` grant."""
    return {
        "grant_type": "authorization_code",
        "code": code,
        "redirect_uri": flow_input.redirect_uri,
        "client_id": flow_input.client_id,
        "client_secret": flow_input.client_secret,
    }


def exchange_code(
    flow_input: FlowInput,
    code: str,
    timeout: float = DEFAULT_REQUEST_TIMEOUT,
) -> TokenResponse:
    """POST the authorization code to the token endpoint and parse the answer.

    Args:
        flow_input: The flow the code was issued for.
        code: Authorization code received on the callback.
        timeout: Request timeout in seconds.

    Returns:
        The parsed :class:`~oauth2cli.models.TokenResponse`.

    Raises:
        RequestBuildError: If ``token_uri`` is not a usable URL.
        NetworkError: If the request cannot be sent or the body read.
        UnexpectedStatusError: If the status is anything but 200.
        DecodeError: If the body is not a JSON object.
        MissingFieldError: If ``access_token`` is missing or not a string.
    """
    token_uri = flow_input.token_uri
    logger.debug("Exchanging authorization code at %s", token_uri)

    try:
        response = httpx.post(
            token_uri,
            data=token_request_body(flow_input, code),
            auth=(flow_input.client_id, flow_input.client_secret),
            headers={
                "Content-Type": "application/x-www-form-urlencoded",
                "Accept": "application/json",
            },
            timeout=timeout,
        )
    except (httpx.InvalidURL, httpx.UnsupportedProtocol) as exc:
        raise RequestBuildError(token_uri, str(exc)) from exc
    except httpx.HTTPError as exc:
        raise NetworkError(token_uri, code, str(exc)) from exc

    body = response.text
    logger.debug("Token endpoint answered HTTP %d", response.status_code)

    if response.status_code != 200:
        raise UnexpectedStatusError(token_uri, code, response.status_code, body)

    try:
        payload: Any = json.loads(body)
    except ValueError as exc:
        raise DecodeError(token_uri, code, body, str(exc)) from exc

    if not isinstance(payload, dict):
        raise DecodeError(
            token_uri, code, body, f"expected a JSON object, got {type(payload).__name__}"
        )

    return TokenResponse.from_payload(payload, body)
