"""Build a :class:`DirectiveFragment` from a provider's ``forward-auth.conf``.

Purpose
-------
Extract the injectable subset of a fragment: only top-level statements count.
Lines inside the fragment's own ``location`` blocks (for example the login
location's ``auth_request off;``) are definitions, never injected directives.

Contents
--------
* :func:`load_fragment` – parse fragment text into a :class:`DirectiveFragment`.
"""

from __future__ import annotations

import textwrap

from ..domain.errors import InvalidFragmentError, MalformedConfigError
from ..domain.fragment import DEFAULT_FRAGMENT_DIR, DEFAULT_FRAGMENT_NAME, DirectiveFragment
from ..domain.nginx import Block, Directive, ParsedConfig
from ..domain.provider import ProviderKind
from ..observability import log_debug, log_warning
from .ports import ConfigParser


def load_fragment(
    text: str,
    provider: ProviderKind,
    *,
    parser: ConfigParser,
    filename: str = DEFAULT_FRAGMENT_NAME,
    directory: str = DEFAULT_FRAGMENT_DIR,
) -> DirectiveFragment:
    """Return the :class:`DirectiveFragment` described by *text*.

    Parameters
    ----------
    text:
        Raw fragment content.
    provider:
        Provider kind of the protecting service.
    parser:
        Parser used for the fragment; the same scanner as for ``nginx.conf``.
    filename / directory:
        Where the fragment lives, so servers that include it can be recognised.

    Raises
    ------
    InvalidFragmentError
        When the fragment's braces are unbalanced or it declares no
        ``auth_request`` directive.
    """

    try:
        parsed = parser.parse(text)
    except MalformedConfigError as exc:
        raise InvalidFragmentError(f"Fragment {filename} is malformed: {exc}") from exc

    auth_request: Directive | None = None
    captures: list[Directive] = []
    error_page: Directive | None = None
    for directive in parsed.directives:
        if directive.name == "auth_request" and directive.args and directive.args[0] != "off":
            if auth_request is None:
                auth_request = directive
        elif directive.name == "auth_request_set":
            captures.append(directive)
        elif directive.name == "error_page" and "401" in directive.args and error_page is None:
            error_page = directive
        else:
            log_debug("fragment_directive_ignored", stage="fragment", path=filename, directive=directive.name)

    if auth_request is None:
        raise InvalidFragmentError(f"Fragment {filename} declares no auth_request directive")

    check_location = auth_request.args[0]
    expected = provider.traits.check_location
    if check_location != expected:
        log_warning(
            "fragment_provider_mismatch",
            stage="fragment",
            path=filename,
            provider=provider.value,
            expected=expected,
            found=check_location,
        )

    prefix = f"${provider.traits.variable_prefix}_"
    foreign = [capture.args[0] for capture in captures if capture.args and not capture.args[0].startswith(prefix)]
    if foreign:
        log_warning(
            "fragment_variable_prefix_mismatch",
            stage="fragment",
            path=filename,
            provider=provider.traits.display_name,
            expected=prefix,
            found=",".join(foreign),
        )

    return DirectiveFragment(
        provider=provider,
        check_location=check_location,
        auth_request=auth_request.text,
        captures=tuple(capture.text for capture in captures),
        error_page=error_page.text if error_page else None,
        login_location=error_page.args[-1] if error_page else None,
        definitions=tuple(_definition_text(parsed, block) for block in parsed.blocks if block.name == "location"),
        filename=filename,
        directory=directory,
    )


def _definition_text(parsed: ParsedConfig, block: Block) -> str:
    """Return *block*'s source lines dedented and joined with ``\\n``."""

    raw = "".join(line.rstrip("\r\n") + "\n" for line in parsed.lines[block.start : block.close_line + 1])
    return textwrap.dedent(raw).rstrip()
