"""Line-oriented nginx config scanner.

Purpose
-------
Implement the :class:`dokku_forward_auth.application.ports.ConfigParser`
protocol with a brace-depth scanner rather than a full nginx grammar. Dokku
always generates the same constrained template shape, so tracking statements
and braces line by line is enough to locate ``server`` and ``location`` blocks.

Key behaviours
--------------
* Braces inside quoted strings, ``${var}`` references, escapes and ``#``
  comments are ignored. Quoted strings may span lines; quotes only open a
  string at the start of a token, as in nginx.
* Whitespace between tokens is irrelevant (``location    / {`` matches) and
  ``{`` may sit on the line after the block name.
* One-line blocks are recorded with identical open and close lines.
* Lines are never altered; :meth:`ParsedConfig.render` returns the input.
* Unbalanced braces raise :class:`MalformedConfigError` with a 1-based line.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterator

from ...domain.errors import MalformedConfigError
from ...domain.nginx import Block, Directive, ParsedConfig
from ...observability import log_debug

_SPECIALS = frozenset("{};")
_QUOTES = frozenset("\"'")


class DefaultConfigParser:
    """Parse proxy-config text with the line scanner."""

    def parse(self, text: str) -> ParsedConfig:
        """Return the structural model of *text*.

        Examples
        --------
        >>> parsed = DefaultConfigParser().parse("server {\\n  location    / {\\n  }\\n}\\n")
        >>> [(loc.path, loc.depth) for loc in parsed.locations()]
        [('/', 1)]
        """

        return parse_config(text)


@dataclass
class _Frame:
    name: str
    args: tuple[str, ...]
    start: int
    open_line: int
    open_col: int
    depth: int
    directives: list[Directive] = field(default_factory=list)
    children: list[Block] = field(default_factory=list)

    def close(self, line: int, col: int) -> Block:
        return Block(
            name=self.name,
            args=self.args,
            start=self.start,
            open_line=self.open_line,
            open_col=self.open_col,
            close_line=line,
            close_col=col,
            depth=self.depth,
            directives=tuple(self.directives),
            children=tuple(self.children),
        )


def parse_config(text: str) -> ParsedConfig:
    """Scan *text* and return a :class:`ParsedConfig`.

    Raises
    ------
    MalformedConfigError
        When a ``}`` has no matching ``{``, a block is never closed or a quoted
        string is never terminated.

    Examples
    --------
    >>> parse_config("location / {\\n}\\n}\\n")
    Traceback (most recent call last):
    ...
    dokku_forward_auth.domain.errors.MalformedConfigError: Unexpected '}' on line 3
    """

    lines = tuple(text.splitlines(keepends=True))
    root = _Frame(name="", args=(), start=-1, open_line=-1, open_col=-1, depth=-1)
    stack: list[_Frame] = [root]
    scanner = _Scanner()
    words: list[str] = []
    statement_line = 0

    for index, line in enumerate(lines):
        for kind, origin, column, token in scanner.tokens(line, index):
            if kind == "word":
                if not words:
                    statement_line = origin
                words.append(token)
            elif kind == ";":
                if words:
                    stack[-1].directives.append(Directive(words[0], tuple(words[1:]), statement_line))
                words = []
            elif kind == "{":
                stack.append(
                    _Frame(
                        name=words[0] if words else "",
                        args=tuple(words[1:]),
                        start=statement_line if words else index,
                        open_line=index,
                        open_col=column,
                        depth=len(stack) - 1,
                    )
                )
                words = []
            else:
                if len(stack) == 1:
                    raise MalformedConfigError(f"Unexpected '}}' on line {index + 1}", line=index + 1)
                if words:
                    stack[-1].directives.append(Directive(words[0], tuple(words[1:]), statement_line))
                    words = []
                block = stack.pop().close(index, column)
                stack[-1].children.append(block)

    if scanner.pending is not None:
        opened = scanner.pending.line + 1
        raise MalformedConfigError(f"Unterminated string opened on line {opened}", line=opened)
    if len(stack) > 1:
        unclosed = stack[-1]
        label = unclosed.name or "anonymous"
        raise MalformedConfigError(
            f"Unclosed {label} block opened on line {unclosed.open_line + 1}",
            line=unclosed.open_line + 1,
        )
    if words:
        root.directives.append(Directive(words[0], tuple(words[1:]), statement_line))

    log_debug("config_parsed", stage="parse", path=None, lines=len(lines), blocks=len(root.children))
    return ParsedConfig(lines=lines, blocks=tuple(root.children), directives=tuple(root.directives))


@dataclass
class _OpenString:
    quote: str
    line: int
    column: int
    text: str


class _Scanner:
    """Split physical lines into tokens, carrying open quoted strings across lines."""

    def __init__(self) -> None:
        self.pending: _OpenString | None = None

    def tokens(self, line: str, number: int) -> Iterator[tuple[str, int, int, str]]:
        """Yield ``(kind, line, column, text)`` tokens for the physical line *number*.

        ``kind`` is ``"word"`` or one of ``{``, ``}``, ``;``. A word that
        started on an earlier line reports that line and column.

        Examples
        --------
        >>> [kind for kind, _, _, _ in _Scanner().tokens('add_header X "a{b}"; # }', 0)]
        ['word', 'word', 'word', ';']
        >>> scanner = _Scanner()
        >>> list(scanner.tokens('return 200 "a\\n', 0))
        [('word', 0, 0, 'return'), ('word', 0, 7, '200')]
        >>> list(scanner.tokens('}";\\n', 1))
        [('word', 0, 11, '"a\\\\n}"'), (';', 1, 2, ';')]
        """

        index = 0
        length = len(line)
        if self.pending is not None:
            open_string = self.pending
            end = _close_quote(line, 0, open_string.quote)
            if end is None:
                open_string.text += line
                return
            self.pending = None
            yield "word", open_string.line, open_string.column, open_string.text + line[:end]
            index = end
        while index < length:
            char = line[index]
            if char.isspace():
                index += 1
                continue
            if char == "#":
                return
            if char in _SPECIALS:
                yield char, number, index, char
                index += 1
                continue
            start = index
            if char in _QUOTES:
                end = _close_quote(line, index + 1, char)
                if end is None:
                    self.pending = _OpenString(quote=char, line=number, column=start, text=line[start:])
                    return
                index = end
            else:
                index = _skip_bare(line, index)
            yield "word", number, start, line[start:index].rstrip("\r\n")


def _close_quote(line: str, index: int, quote: str) -> int | None:
    """Return the index just past the closing *quote*, ``None`` when the line ends first."""

    length = len(line)
    while index < length:
        char = line[index]
        if char == "\\":
            index += 2
            continue
        if char == quote:
            return index + 1
        index += 1
    return None


def _skip_bare(line: str, index: int) -> int:
    length = len(line)
    while index < length:
        char = line[index]
        if char.isspace() or char in _SPECIALS:
            break
        if char == "\\":
            index += 2
            continue
        if char == "$" and index + 1 < length and line[index + 1] == "{":
            closing = line.find("}", index + 2)
            index = length if closing == -1 else closing + 1
            continue
        index += 1
    return min(index, length)
