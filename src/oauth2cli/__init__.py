"""oauth2cli -- run OAuth 2 flows from the command line.

The ``oauth2 authorize`` command performs a complete authorization code
flow: it prompts for the client settings, opens the browser on the
authorize URL, catches the redirect on a local HTTP listener, exchanges the
code for tokens and prints the token response::

    oauth2 authorize                      # full JSON token response
    oauth2 authorize --only-accesstoken   # just the access token

Modules:
    app: Typer application and CLI entry point.
    flows: The authorization code flow (URL, callback listener, exchange).
    models: Pydantic models shared across the package.
    config: Config folder resolution and the prompt cache.
    exceptions: Exception hierarchy with exit-code mapping.
    output: stdout/stderr formatting and logging setup.
"""

__version__ = "0.3.0"
