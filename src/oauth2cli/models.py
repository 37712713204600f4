"""Canonical Pydantic models shared across all oauth2cli modules.

The models fall into two groups:

**Flow models** -- created fresh for every authorization code flow and
discarded at the end of it:
    :class:`FlowInput`, :class:`FlowOptions`, and :class:`TokenResponse`.

**Configuration models** -- serialised as JSON in the user's config folder:
    :class:`AuthorizeCache`.

All models use Pydantic v2. Secrets are declared with ``repr=False`` so they
never leak through logging or tracebacks.
"""

from __future__ import annotations

from typing import Any, Callable, Optional

from pydantic import BaseModel, ConfigDict, Field

from oauth2cli.exceptions import MissingFieldError

DEFAULT_CALLBACK_PORT = 9876
"""Port used by the callback listener when none is given."""

DEFAULT_CALLBACK_PATH = "/oauth/callback"
"""Path of the default redirect URI served by the callback listener."""

DEFAULT_TIMEOUT = 300.0
"""Seconds to wait for the browser redirect before giving up."""


# --- Flow models ---


class FlowInput(BaseModel):
    """Everything the authorization server needs to know about this flow.

    Values are supplied already validated by the caller (prompts, cache,
    flags). ``state`` is a nonce for this single flow instance and is
    compared byte-for-byte with the value echoed on the callback.

    Example::

        FlowInput(
            authorize_uri="https://auth.example.com/authorize",
            token_uri="https://auth.example.com/oauth/token",
            redirect_uri="http://localhost:9876/oauth/callback",
            client_id="my-client",
            client_secret="s3cr3t",
            scope="openid profile",
            state="4f1c2a9b7e",
        )
    """

    model_config = ConfigDict(frozen=True)

    authorize_uri: str = Field(description="Absolute URL of the authorize endpoint")
    token_uri: str = Field(description="Absolute URL of the token endpoint")
    redirect_uri: str = Field(
        description="Absolute callback URL allow-listed on the authorization server"
    )
    client_id: str
    client_secret: str = Field(repr=False)
    scope: str = Field(default="", description="Space-delimited scopes")
    state: str = Field(description="Per-flow nonce echoed back on the callback")


class FlowOptions(BaseModel):
    """Customisation of how a flow is run locally.

    ``open_browser`` receives the authorize URL. It has no error channel:
    when it is ``None`` the system browser is used, and a failing callable
    only produces a warning because the user can still open the URL by hand.
    ``timeout`` bounds the wait for the redirect; ``None`` waits forever.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    callback_port: int = Field(default=DEFAULT_CALLBACK_PORT, ge=1, le=65535)
    callback_host: str = Field(default="0.0.0.0")
    open_browser: Optional[Callable[[str], None]] = None
    timeout: Optional[float] = Field(default=DEFAULT_TIMEOUT, gt=0)


class TokenResponse(BaseModel):
    """Result of a successful code exchange.

    ``raw_response`` is the full decoded JSON object. ``access_token`` and
    ``id_token`` are projections of it: the former is required, the latter
    is only set when the server returned it as a string.
    """

    access_token: str = Field(repr=False)
    id_token: Optional[str] = Field(default=None, repr=False)
    raw_response: dict[str, Any] = Field(default_factory=dict, repr=False)

    @classmethod
    def from_payload(
        cls, payload: dict[str, Any], body: Optional[str] = None
    ) -> TokenResponse:
        """Build a :class:`TokenResponse` from a decoded token endpoint body.

        Args:
            payload: The decoded JSON object.
            body: The raw body, attached to errors for diagnostics.

        Raises:
            MissingFieldError: If ``access_token`` is absent or not a string.
        """
        access_token = payload.get("access_token")
        if not isinstance(access_token, str):
            raise MissingFieldError("access_token", body)

        id_token = payload.get("id_token")
        if not isinstance(id_token, str):
            id_token = None

        return cls(access_token=access_token, id_token=id_token, raw_response=payload)


# --- Configuration models ---


class AuthorizeCache(BaseModel):
    """Non-secret answers remembered between ``authorize`` runs.

    Stored as ``authorize.json`` in the config folder and used as prompt
    defaults. The client secret, redirect URI and state are never cached.
    Unknown keys are ignored so older or newer files still load.
    """

    model_config = ConfigDict(extra="ignore")

    authorize_uri: str = ""
    token_uri: str = ""
    client_id: str = ""
    scope: str = ""
