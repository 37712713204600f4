"""The ``version`` command."""

from __future__ import annotations

import platform

from oauth2cli import __version__
from oauth2cli.output import print_data


def get_version_info() -> str:
    """Return a one-line description of this build."""
    return (
        f"oauth2 {__version__} "
        f"(python {platform.python_version()}; {platform.system().lower()}/{platform.machine()})"
    )


def version_command() -> None:
    """Display the current command line version."""
    print_data(get_version_info())
