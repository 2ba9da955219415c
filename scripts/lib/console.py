"""Operator console used by the interactive parts of listtools.

Input and output are injected so the same code runs against a terminal or
against a scripted list of answers in tests.
"""
from __future__ import annotations

import sys
from typing import Callable, Iterable, Iterator, Optional, TextIO

LEVEL_TAGS = {"info": "[info]", "warning": "[warn]", "error": "[error]"}

_CLEAR_SCREEN = "\033[2J\033[H"


class Console:
    def __init__(
        self,
        read: Optional[Callable[[str], str]] = None,
        out: Optional[TextIO] = None,
        verbose: bool = False,
        clear_screen: bool = False,
    ) -> None:
        self.out = out or sys.stdout
        self._read = read or self._stdin_read
        self.verbose = verbose
        self.clear_screen = clear_screen

    def _stdin_read(self, prompt: str) -> str:
        self.out.write(prompt)
        self.out.flush()
        line = sys.stdin.readline()
        if not line:
            raise EOFError
        return line.rstrip("\r\n")

    def read_line(self, prompt: str = "") -> str:
        return self._read(prompt)

    def write(self, text: str = "") -> None:
        print(text, file=self.out)

    def clear(self) -> None:
        if self.clear_screen:
            self.out.write(_CLEAR_SCREEN)
            self.out.flush()

    def log(self, message: str, level: str = "info", important: bool = False) -> None:
        """Status line; info is shown only when verbose or important."""
        if self.verbose or important or level != "info":
            print(f"{LEVEL_TAGS.get(level, '[info]')} {message}", file=self.out)

    def list_items(self, items: Iterable[str]) -> None:
        for item in items:
            print(f"\t* {item}", file=self.out)


def scripted(answers: Iterable[str], out: Optional[TextIO] = None) -> Console:
    """Console answering prompts from `answers`; EOFError once they run out."""
    it: Iterator[str] = iter(answers)

    def _read(prompt: str) -> str:
        try:
            return next(it)
        except StopIteration:
            raise EOFError from None

    return Console(read=_read, out=out)
