"""Built-in CLI sub-commands for oauth2cli.

* :mod:`~oauth2cli.commands.authorize` -- run an authorization code flow.
* :mod:`~oauth2cli.commands.version` -- print version information.

Each module exports a plain callback function registered directly on the
root app.
"""
