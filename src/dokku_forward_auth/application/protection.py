"""Resolve an application against the protected sets of all frontend services.

Purpose
-------
Keep the "first match wins" policy free of I/O so it can be tested without a
filesystem. :class:`dokku_forward_auth.adapters.registry.default.DefaultProtectionRegistry`
loads the sets and delegates here.
"""

from __future__ import annotations

from pathlib import Path
from typing import Iterable

from ..domain.protection import UNPROTECTED, ProtectedAppSet, Protection
from ..observability import log_warning


def resolve_protection(
    app: str,
    sets: Iterable[ProtectedAppSet],
    *,
    fragment_path: Path | None = None,
) -> Protection:
    """Return the :class:`Protection` of *app* given every service's set.

    The first set (in iteration order) listing *app* wins. When several
    services claim the same app a ``duplicate_protection_claims`` warning is
    logged and all claimants are reported.

    Examples
    --------
    >>> from dokku_forward_auth.domain.provider import ProviderKind
    >>> sets = [
    ...     ProtectedAppSet("service-a", ProviderKind.AUTHELIA, ("other-app",)),
    ...     ProtectedAppSet("service-b", ProviderKind.AUTHENTIK, ("myapp",)),
    ... ]
    >>> result = resolve_protection("myapp", sets)
    >>> result.protected, result.service, result.provider.value
    (True, 'service-b', 'authentik')
    >>> resolve_protection("missing", sets).protected
    False
    """

    claimants = [candidate for candidate in sets if app in candidate]
    if not claimants:
        return UNPROTECTED
    winner = claimants[0]
    claims = tuple(candidate.service for candidate in claimants)
    if len(claims) > 1:
        log_warning(
            "duplicate_protection_claims",
            stage="resolve",
            path=None,
            services=",".join(claims),
            winner=winner.service,
        )
    return Protection(
        protected=True,
        provider=winner.provider,
        fragment_path=fragment_path,
        service=winner.service,
        claims=claims,
    )
