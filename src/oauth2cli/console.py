"""Line-oriented prompts on the controlling terminal.

The ``authorize`` command may receive the client secret on stdin, so prompts
read from ``/dev/tty`` instead and are rendered on stderr, keeping stdout
free for the token output.
"""

from __future__ import annotations

import getpass
from typing import Optional, TextIO

from rich.console import Console
from rich.text import Text

from oauth2cli.exceptions import PromptError


class ConsoleReader:
    """Read answers line by line from *stream*, rendering prompts on *console*.

    Args:
        stream: Where answers are read from (usually ``/dev/tty``).
        console: Where prompts are written (usually stderr).
        hide_secrets: Read ``password`` prompts without echo. Defaults to
            ``True`` when *stream* is a terminal.
    """

    def __init__(
        self,
        stream: TextIO,
        console: Optional[Console] = None,
        hide_secrets: Optional[bool] = None,
    ) -> None:
        self._stream = stream
        self._console = console or Console(stderr=True)
        if hide_secrets is None:
            hide_secrets = hasattr(stream, "isatty") and stream.isatty()
        self._hide_secrets = hide_secrets

    def read(
        self,
        prompt: str,
        default: str = "",
        required: bool = False,
        password: bool = False,
    ) -> str:
        """Ask for a value.

        Renders ``Prompt: `` or ``Prompt (default): ``. Surrounding
        whitespace is stripped from the answer; an empty answer returns
        *default*. A *required* prompt without default asks again until a
        value is given.

        Raises:
            PromptError: If the stream is closed before a line is read.
        """
        while True:
            label = Text.assemble((prompt, "bold"))
            if default and not password:
                label.append(f" ({default})", style="dim")
            label.append(": ")
            self._console.print(label, end="")

            value = self._read_line(prompt, password)
            if value:
                return value
            if default or not required:
                return default

    def _read_line(self, prompt: str, password: bool) -> str:
        if password and self._hide_secrets:
            try:
                return getpass.getpass("").strip()
            except EOFError as exc:
                raise PromptError(f"can't read {prompt}: end of input") from exc

        try:
            line = self._stream.readline()
        except OSError as exc:
            raise PromptError(f"can't read {prompt}: {exc}") from exc
        if not line:
            raise PromptError(f"can't read {prompt}: end of input")
        return line.strip()
