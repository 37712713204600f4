"""OAuth2 flows run by the CLI.

Only the authorization code grant is implemented. The package splits it
into its two responsibilities plus the glue between them:

* :mod:`~oauth2cli.flows.authorize` -- build the authorize URL.
* :mod:`~oauth2cli.flows.callback` -- catch the browser redirect on a
  local listener.
* :mod:`~oauth2cli.flows.token` -- exchange the code for tokens.
* :mod:`~oauth2cli.flows.code` -- orchestrate one complete flow.
"""

from oauth2cli.flows.authorize import build_authorize_url
from oauth2cli.flows.callback import (
    CallbackListener,
    CallbackOutcome,
    CodeOutcome,
    FailureOutcome,
    evaluate_callback,
)
from oauth2cli.flows.code import open_system_browser, run_authorization_code
from oauth2cli.flows.token import exchange_code

__all__ = [
    "CallbackListener",
    "CallbackOutcome",
    "CodeOutcome",
    "FailureOutcome",
    "build_authorize_url",
    "evaluate_callback",
    "exchange_code",
    "open_system_browser",
    "run_authorization_code",
]
