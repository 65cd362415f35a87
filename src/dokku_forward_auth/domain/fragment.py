"""Provider directive fragment value object.

Purpose
-------
Hold the parts of a provider's ``forward-auth.conf`` the injector needs: the
injectable top-level directives and the raw location definitions. The fragment
file itself is generated by the frontend provider; this module never reads it.

Contents
--------
* :data:`DEFAULT_FRAGMENT_NAME` / :data:`DEFAULT_FRAGMENT_DIR` – where Dokku
  apps keep the fragment.
* :class:`DirectiveFragment` – immutable fragment description.
"""

from __future__ import annotations

from dataclasses import dataclass

from .provider import ProviderKind

DEFAULT_FRAGMENT_NAME = "forward-auth.conf"
DEFAULT_FRAGMENT_DIR = "nginx.conf.d"
AUTH_REQUEST_OFF = "auth_request off;"


@dataclass(frozen=True, slots=True)
class DirectiveFragment:
    """Directives and definitions contributed by one frontend provider.

    Attributes
    ----------
    provider:
        Provider kind the fragment belongs to.
    check_location:
        Target of the fragment's ``auth_request`` (``/authelia-auth``).
    auth_request:
        The ``auth_request …;`` line to inject.
    captures:
        ``auth_request_set …;`` lines in fragment order.
    error_page:
        The ``error_page 401 = …;`` line, or ``None`` when the fragment has no
        login redirect.
    login_location:
        Target of the ``error_page 401`` redirect (``@forward_auth_login``).
    definitions:
        Raw text of each top-level ``location`` block, one string per block,
        lines joined with ``\\n`` and without a trailing newline.
    filename / directory:
        Name of the fragment file and of its directory. Used to recognise
        server blocks that already ``include`` the fragment.

    Examples
    --------
    >>> fragment = DirectiveFragment(
    ...     provider=ProviderKind.AUTHELIA,
    ...     check_location="/authelia-auth",
    ...     auth_request="auth_request /authelia-auth;",
    ...     captures=("auth_request_set $authelia_user $upstream_http_remote_user;",),
    ...     error_page="error_page 401 = @forward_auth_login;",
    ...     login_location="@forward_auth_login",
    ... )
    >>> fragment.marker
    '/authelia-auth'
    >>> len(fragment.injectable_lines())
    3
    """

    provider: ProviderKind
    check_location: str
    auth_request: str
    captures: tuple[str, ...] = ()
    error_page: str | None = None
    login_location: str | None = None
    definitions: tuple[str, ...] = ()
    filename: str = DEFAULT_FRAGMENT_NAME
    directory: str = DEFAULT_FRAGMENT_DIR

    @property
    def marker(self) -> str:
        """Return the text whose presence proves the fragment was injected."""

        return self.check_location

    def injectable_lines(self) -> tuple[str, ...]:
        """Return the lines appended to serving-root locations, in order."""

        lines = [self.auth_request, *self.captures]
        if self.error_page is not None:
            lines.append(self.error_page)
        return tuple(lines)
