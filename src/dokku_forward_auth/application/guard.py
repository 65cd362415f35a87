"""Idempotency guard for forward-auth injection."""

from __future__ import annotations

from ..domain.fragment import DirectiveFragment


def already_injected(text: str, fragment: DirectiveFragment) -> bool:
    """Return ``True`` when *text* already references the fragment's check location.

    The trigger calls this on the whole file to skip parsing entirely; the
    injector calls it on each serving-root block.

    Examples
    --------
    >>> from dokku_forward_auth.domain.provider import ProviderKind
    >>> fragment = DirectiveFragment(ProviderKind.AUTHELIA, "/authelia-auth", "auth_request /authelia-auth;")
    >>> already_injected("location / {\\n    auth_request /authelia-auth;\\n}", fragment)
    True
    >>> already_injected("location / {\\n}", fragment)
    False
    """

    return fragment.marker in text
