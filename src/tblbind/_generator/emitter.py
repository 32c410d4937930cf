"""
A general-purpose, indentation-aware code emission helper.
"""

from __future__ import annotations

import io
from collections.abc import Iterator, Sequence
from contextlib import contextmanager


class CodeEmitter:
    """
    A helper class for emitting Python code with support for indentation.

    This class is designed to make generating structured, readable code easier.
    It tracks the indentation level, writes blocks opened by a header line
    ending in a colon, and renders docstrings.
    """

    def __init__(self, indent_str: str = "    "):
        self._buffer = io.StringIO()
        self._indent_level = 0
        self._indent_str = indent_str
        self._line_buffer: list[str] = []
        self._just_newlined = True

    def get(self) -> str:
        """Returns the entire emitted string."""
        self._flush_line()
        return self._buffer.getvalue()

    def _write_indent(self) -> None:
        if self._just_newlined:
            self._buffer.write(self._indent_str * self._indent_level)
            self._just_newlined = False

    def write(self, *parts: str) -> None:
        """Writes one or more strings to the current line."""
        self._write_indent()
        for part in parts:
            self._line_buffer.append(part)

    def _flush_line(self) -> None:
        if self._line_buffer:
            self._buffer.write("".join(self._line_buffer))
            self._line_buffer = []

    def nl(self, count: int = 1) -> None:
        """Writes one or more newlines."""
        for _ in range(count):
            self._flush_line()
            self._buffer.write("\n")
            self._just_newlined = True

    @contextmanager
    def indent(self, levels: int = 1) -> Iterator[None]:
        """A context manager for temporarily increasing the indent level."""
        self._indent_level += levels
        yield
        self._indent_level -= levels

    @contextmanager
    def block(self, header: str, trailing_nl: bool = False) -> Iterator[None]:
        """
        A context manager for an indented block opened by `header`.

        Example:
            with emitter.block("if x:"):
                emitter.line("return 1")
        """
        self.line(header)
        with self.indent():
            yield
        if trailing_nl:
            self.nl()

    def line(self, *parts: str) -> None:
        """Writes a single line, followed by a newline."""
        if parts and any(parts):
            self.write(*parts)
        self.nl()

    def blank_line(self, count: int = 1) -> None:
        """Writes one or more blank lines."""
        self.nl(count)

    def docstring(self, text: str) -> None:
        """
        Writes a docstring at the current indentation.

        `text` must already be escaped for triple quotes. A single line is
        written inline; longer text gets its closing quotes on its own line.
        """
        lines = text.strip("\n").splitlines() or [""]
        if len(lines) == 1:
            self.line(f'"""{lines[0]}"""')
            return
        self.line(f'"""{lines[0]}')
        for line in lines[1:]:
            self.line(line.rstrip())
        self.line('"""')

    def call(self, prefix: str, args: Sequence[str], suffix: str = ")") -> None:
        """
        Writes `prefix` followed by one argument per line and `suffix`.

        Example:
            emitter.call("return f(", ["a", "b"])
        """
        if not args:
            self.line(prefix, suffix)
            return
        self.line(prefix)
        with self.indent():
            for arg in args:
                self.line(arg, ",")
        self.line(suffix)
