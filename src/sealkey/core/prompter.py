# src/sealkey/core/prompter.py
from __future__ import annotations
import sys
from getpass import getpass
from typing import Protocol, TextIO

from sealkey.core.errors import NoTTYError

PASSWORD_PROMPT = "Enter password: "

class Prompter(Protocol):
    def is_interactive(self) -> bool: ...

    def ask(self, prompt: str) -> str: ...

class TerminalPrompter:
    """
    Pyta o hasło na terminalu (bez echa). Jedno pytanie na wywołanie,
    ponawianie to decyzja wołającego.
    """

    def __init__(self, stdin: TextIO | None = None):
        self._stdin = stdin

    @property
    def stdin(self) -> TextIO:
        return self._stdin if self._stdin is not None else sys.stdin

    def is_interactive(self) -> bool:
        stream = self.stdin
        try:
            return stream is not None and stream.isatty()
        except (AttributeError, ValueError):
            return False

    def ask(self, prompt: str = PASSWORD_PROMPT) -> str:
        if not self.is_interactive():
            raise NoTTYError()
        try:
            return getpass(prompt)
        except EOFError as e:
            raise NoTTYError("Terminal closed while reading the password") from e
