"""Structural model of a generated nginx configuration.

Purpose
-------
Describe the result of parsing proxy-config text without losing a single byte
of it. The parser adapter produces these value objects; the injector reads
them to decide where lines go. Nothing in here performs I/O or parsing.

Contents
--------
* :class:`Directive` – one ``name args;`` statement and where it starts.
* :class:`Block` – one ``name args { … }`` block with line/column anchors of
  its header, opening and closing braces.
* :class:`LocationKind` / :func:`classify_location` – serving root, error page
  or other.
* :class:`Location` – view of a ``location`` block inside (or outside) a server
  block, with its depth relative to that server.
* :class:`ParsedConfig` – raw lines plus the block tree.
* :class:`InjectionResult` – output of the directive injector.

System Role
-----------
``ParsedConfig.render()`` is byte-identical to the parsed input; every rewrite
starts from :attr:`ParsedConfig.lines` and inserts text at block anchors.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Iterator

ERROR_PAGE_SUFFIX = "-error.html"
SERVING_ROOT_PATH = "/"
LOCATION_MODIFIERS = ("=", "~", "~*", "^~")


@dataclass(frozen=True, slots=True)
class Directive:
    """A single ``;``-terminated statement.

    Attributes
    ----------
    name:
        First token (``auth_request``, ``include`` …).
    args:
        Remaining tokens, quotes preserved.
    line:
        0-based index of the line where the statement starts.
    """

    name: str
    args: tuple[str, ...]
    line: int

    @property
    def text(self) -> str:
        """Return the normalised statement text including the trailing ``;``.

        Examples
        --------
        >>> Directive("auth_request", ("/authelia-auth",), 0).text
        'auth_request /authelia-auth;'
        """

        return " ".join((self.name, *self.args)) + ";"


@dataclass(frozen=True, slots=True)
class Block:
    """A brace-delimited block.

    ``start`` is the line holding the block name, ``open_line``/``open_col``
    locate ``{`` and ``close_line``/``close_col`` locate the matching ``}``.
    ``depth`` is the number of blocks enclosing this one (0 = top level).
    """

    name: str
    args: tuple[str, ...]
    start: int
    open_line: int
    open_col: int
    close_line: int
    close_col: int
    depth: int
    directives: tuple[Directive, ...] = ()
    children: tuple[Block, ...] = ()

    @property
    def inline(self) -> bool:
        return self.open_line == self.close_line


class LocationKind(str, Enum):
    """Role of a ``location`` block from the injector's point of view."""

    SERVING_ROOT = "serving-root"
    ERROR_PAGE = "error-page"
    OTHER = "other"


def classify_location(path: str) -> LocationKind:
    """Return the :class:`LocationKind` for a location *path*.

    Examples
    --------
    >>> classify_location("/").value, classify_location("/502-error.html").value
    ('serving-root', 'error-page')
    >>> classify_location("/static").value
    'other'
    """

    if path == SERVING_ROOT_PATH:
        return LocationKind.SERVING_ROOT
    if path.endswith(ERROR_PAGE_SUFFIX):
        return LocationKind.ERROR_PAGE
    return LocationKind.OTHER


def split_location_args(args: tuple[str, ...]) -> tuple[str, str]:
    """Split ``location`` arguments into ``(modifier, path)``.

    Examples
    --------
    >>> split_location_args(("=", "/"))
    ('=', '/')
    >>> split_location_args(("^~/static/",))
    ('^~', '/static/')
    >>> split_location_args(("/",))
    ('', '/')
    """

    if not args:
        return "", ""
    if len(args) >= 2 and args[0] in LOCATION_MODIFIERS:
        return args[0], _unquote(args[1])
    head = args[0]
    for modifier in sorted(LOCATION_MODIFIERS, key=len, reverse=True):
        if head.startswith(modifier) and len(head) > len(modifier):
            return modifier, _unquote(head[len(modifier) :])
    return "", _unquote(head)


def _unquote(token: str) -> str:
    if len(token) >= 2 and token[0] == token[-1] and token[0] in {"'", '"'}:
        return token[1:-1]
    return token


@dataclass(frozen=True, slots=True)
class Location:
    """A ``location`` block seen from its enclosing server.

    Attributes
    ----------
    block:
        Underlying :class:`Block`.
    modifier / path:
        Match modifier (may be empty) and path pattern.
    depth:
        Nesting depth relative to the enclosing server block (1 = direct child).
        Locations outside any server count from the top of the file.
    server:
        Enclosing server block or ``None``.
    body:
        Raw lines strictly between the opening and closing brace lines.
    """

    block: Block
    modifier: str
    path: str
    depth: int
    server: Block | None
    body: tuple[str, ...]

    @property
    def kind(self) -> LocationKind:
        return classify_location(self.path)

    @property
    def pattern(self) -> str:
        return f"{self.modifier} {self.path}".strip()


@dataclass(frozen=True, slots=True)
class ParsedConfig:
    """Parsed proxy configuration.

    Attributes
    ----------
    lines:
        Raw input lines, line endings included.
    blocks:
        Top-level blocks in document order.
    directives:
        Top-level statements (outside every block).
    """

    lines: tuple[str, ...]
    blocks: tuple[Block, ...] = ()
    directives: tuple[Directive, ...] = ()

    def render(self) -> str:
        """Return the original text, byte for byte."""

        return "".join(self.lines)

    @property
    def newline(self) -> str:
        """Return the line terminator used by the input (``\\n`` by default)."""

        for line in self.lines:
            if line.endswith("\r\n"):
                return "\r\n"
            if line.endswith("\n"):
                return "\n"
        return "\n"

    def servers(self) -> tuple[Block, ...]:
        """Return every ``server`` block that is not nested in another server."""

        found: list[Block] = []
        stack = list(reversed(self.blocks))
        while stack:
            block = stack.pop()
            if block.name == "server":
                found.append(block)
                continue
            stack.extend(reversed(block.children))
        return tuple(found)

    def locations(self, server: Block | None = None) -> tuple[Location, ...]:
        """Return location views for *server*, or every location when omitted."""

        if server is not None:
            return tuple(self._collect(server.children, server, 1))
        return tuple(self._collect(self.blocks, None, 1))

    def body(self, block: Block) -> tuple[str, ...]:
        """Return the raw lines strictly between *block*'s brace lines."""

        if block.inline:
            return ()
        return self.lines[block.open_line + 1 : block.close_line]

    def text_of(self, block: Block) -> str:
        """Return the raw text spanning *block*, header through closing brace."""

        return "".join(self.lines[block.start : block.close_line + 1])

    def _collect(self, blocks: tuple[Block, ...], server: Block | None, depth: int) -> Iterator[Location]:
        for block in blocks:
            if block.name == "server":
                yield from self._collect(block.children, block, 1)
                continue
            if block.name == "location":
                modifier, path = split_location_args(block.args)
                yield Location(
                    block=block,
                    modifier=modifier,
                    path=path,
                    depth=depth,
                    server=server,
                    body=self.body(block),
                )
            yield from self._collect(block.children, server, depth + 1)


@dataclass(frozen=True, slots=True)
class InjectionResult:
    """Outcome of :func:`dokku_forward_auth.application.injector.inject`.

    Attributes
    ----------
    text:
        Rewritten config, or the untouched original when nothing changed.
    changed:
        ``True`` when at least one line was inserted.
    roots / error_pages / definitions:
        Number of serving roots injected, error pages bypassed and servers that
        received the fragment's location definitions.
    """

    text: str
    changed: bool
    roots: int = 0
    error_pages: int = 0
    definitions: int = 0
