"""Directive injector: splice forward-auth directives into a parsed config.

Purpose
-------
Turn a :class:`ParsedConfig` and a provider's :class:`DirectiveFragment` into
new config text. The function is pure: no I/O, no parsing, no settings.

Contents
    - ``inject``: public entry point returning an :class:`InjectionResult`.
    - ``_append`` / ``_prepend``: compute the insertion for one block.
    - ``_needs_definitions`` / ``_includes_fragment``: decide whether a server
      must receive the fragment's location definitions.
    - ``_apply``: materialise insertions on the original lines.

Rules
-----
* Serving-root locations (``location /``) get the fragment's injectable lines
  appended before their closing brace.
* Error-page locations (``*-error.html``) get ``auth_request off;`` as their
  first body line.
* Every other location is left alone.
* Blocks already carrying the fragment marker (or any ``auth_request``) are
  skipped, so re-running on the output changes nothing.
* A server that received serving-root directives also receives the fragment's
  location definitions, unless it defines the check location already or
  ``include``s the fragment file.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from fnmatch import fnmatchcase
from itertools import count
from pathlib import PurePosixPath
from typing import Iterable, Iterator

from ..domain.fragment import AUTH_REQUEST_OFF, DirectiveFragment
from ..domain.nginx import Block, Directive, InjectionResult, LocationKind, ParsedConfig
from ..observability import log_debug, log_warning
from .guard import already_injected

INDENT_UNIT = "    "


@dataclass(frozen=True, order=True)
class _Insertion:
    """Insert ``text`` at ``(line, column)`` after removing ``drop`` characters."""

    line: int
    column: int
    sequence: int
    text: str = field(compare=False)
    drop: int = field(default=0, compare=False)


def inject(parsed: ParsedConfig, fragment: DirectiveFragment) -> InjectionResult:
    """Return *parsed* rewritten with *fragment*'s forward-auth directives.

    Examples
    --------
    >>> from dokku_forward_auth.adapters.nginx.default import parse_config
    >>> from dokku_forward_auth.domain.provider import ProviderKind
    >>> fragment = DirectiveFragment(ProviderKind.AUTHELIA, "/authelia-auth", "auth_request /authelia-auth;")
    >>> config = "server {\\n  location / {\\n    proxy_pass http://app;\\n  }\\n}\\n"
    >>> result = inject(parse_config(config), fragment)
    >>> print(result.text, end="")
    server {
      location / {
        proxy_pass http://app;
        auth_request /authelia-auth;
      }
    }
    >>> inject(parse_config(result.text), fragment).changed
    False
    """

    newline = parsed.newline
    sequence = count()
    insertions: list[_Insertion] = []
    roots = error_pages = definitions = 0

    for server in parsed.servers():
        protected_here = False
        for location in parsed.locations(server):
            block = location.block
            if location.kind is LocationKind.SERVING_ROOT:
                if already_injected(parsed.text_of(block), fragment):
                    log_debug("location_already_injected", stage="inject", path=None, line=block.start + 1)
                    continue
                if _has_auth_request(block):
                    log_warning("location_has_foreign_auth_request", stage="inject", path=None, line=block.start + 1)
                    continue
                insertions.append(_append(parsed, block, fragment.injectable_lines(), newline, next(sequence)))
                roots += 1
                protected_here = True
            elif location.kind is LocationKind.ERROR_PAGE:
                if _has_auth_request(block):
                    continue
                insertions.append(_prepend(parsed, block, (AUTH_REQUEST_OFF,), newline, next(sequence)))
                error_pages += 1
        if protected_here and fragment.definitions and _needs_definitions(parsed, server, fragment):
            insertions.append(_prepend(parsed, server, fragment.definitions, newline, next(sequence)))
            definitions += 1

    if not insertions:
        return InjectionResult(text=parsed.render(), changed=False)

    log_debug(
        "directives_injected",
        stage="inject",
        path=None,
        roots=roots,
        error_pages=error_pages,
        definitions=definitions,
    )
    return InjectionResult(
        text=_apply(parsed.lines, insertions),
        changed=True,
        roots=roots,
        error_pages=error_pages,
        definitions=definitions,
    )


def _has_auth_request(block: Block) -> bool:
    return any(directive.name == "auth_request" for directive in block.directives)


def _append(
    parsed: ParsedConfig,
    block: Block,
    entries: Iterable[str],
    newline: str,
    sequence: int,
) -> _Insertion:
    """Insert *entries* as the last body lines of *block*."""

    header_indent = _indent_of(parsed.lines[block.start])
    rendered = _render(entries, _body_indent(parsed, block, header_indent), newline)
    closing = parsed.lines[block.close_line]
    before = closing[: block.close_col]
    if not before.strip():
        return _Insertion(block.close_line, 0, sequence, rendered)
    # "}" shares its line with body text: break the line before the brace.
    trailing = len(before) - len(before.rstrip(" \t"))
    return _Insertion(
        block.close_line,
        block.close_col - trailing,
        sequence,
        newline + rendered + header_indent,
        drop=trailing,
    )


def _prepend(
    parsed: ParsedConfig,
    block: Block,
    entries: Iterable[str],
    newline: str,
    sequence: int,
) -> _Insertion:
    """Insert *entries* as the first body lines of *block*."""

    header_indent = _indent_of(parsed.lines[block.start])
    body_indent = _body_indent(parsed, block, header_indent)
    rendered = _render(entries, body_indent, newline)
    opening = parsed.lines[block.open_line]
    rest = opening[block.open_col + 1 :]
    stripped = rest.strip()
    if not stripped or stripped.startswith("#"):
        return _Insertion(block.open_line + 1, 0, sequence, rendered)
    # Body text follows "{" on the same line: move it below the new lines.
    leading = len(rest) - len(rest.lstrip(" \t"))
    return _Insertion(
        block.open_line,
        block.open_col + 1,
        sequence,
        newline + rendered + body_indent,
        drop=leading,
    )


def _needs_definitions(parsed: ParsedConfig, server: Block, fragment: DirectiveFragment) -> bool:
    """Return ``True`` when *server* lacks the fragment's location definitions."""

    if any(location.path == fragment.check_location for location in parsed.locations(server)):
        return False
    for directive in _directives(server):
        if directive.name == "include" and any(_includes_fragment(arg, fragment) for arg in directive.args):
            return False
    return True


def _directives(block: Block) -> Iterator[Directive]:
    yield from block.directives
    for child in block.children:
        if child.name not in {"server", "location"}:
            yield from _directives(child)


def _includes_fragment(pattern: str, fragment: DirectiveFragment) -> bool:
    """Return ``True`` when an ``include`` *pattern* pulls in the fragment file.

    Examples
    --------
    >>> from dokku_forward_auth.domain.provider import ProviderKind
    >>> fragment = DirectiveFragment(ProviderKind.AUTHELIA, "/authelia-auth", "auth_request /authelia-auth;")
    >>> _includes_fragment("/home/dokku/myapp/nginx.conf.d/*.conf", fragment)
    True
    >>> _includes_fragment("/etc/nginx/mime.types", fragment)
    False
    """

    path = PurePosixPath(pattern.strip("'\""))
    return path.parent.name == fragment.directory and fnmatchcase(fragment.filename, path.name)


def _render(entries: Iterable[str], indent: str, newline: str) -> str:
    rendered: list[str] = []
    for entry in entries:
        for line in entry.split("\n"):
            rendered.append(f"{indent}{line}{newline}" if line.strip() else newline)
    return "".join(rendered)


def _indent_of(line: str) -> str:
    return line[: len(line) - len(line.lstrip(" \t"))]


def _body_indent(parsed: ParsedConfig, block: Block, header_indent: str) -> str:
    """Return the indentation of *block*'s first non-blank body line."""

    for line in parsed.body(block):
        if line.strip():
            return _indent_of(line)
    return header_indent + INDENT_UNIT


def _apply(lines: tuple[str, ...], insertions: list[_Insertion]) -> str:
    """Apply *insertions* from the bottom up so earlier anchors stay valid."""

    edited = list(lines)
    for insertion in sorted(insertions, reverse=True):
        current = edited[insertion.line]
        edited[insertion.line] = (
            current[: insertion.column] + insertion.text + current[insertion.column + insertion.drop :]
        )
    return "".join(edited)
