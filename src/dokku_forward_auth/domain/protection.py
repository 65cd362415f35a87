"""Protected-application value objects.

Purpose
-------
Describe which applications a frontend service protects and the outcome of
resolving one application against every service.

Contents
--------
* :class:`ProtectedAppSet` – apps listed in one service's ``PROTECTED`` file.
* :class:`Protection` – resolution result for one application.
* :data:`UNPROTECTED` – canonical negative result.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Iterable

from .provider import ProviderKind


@dataclass(frozen=True, slots=True)
class ProtectedAppSet:
    """Applications protected by one frontend service.

    ``provider`` stays ``None`` until the service's ``PROVIDER`` file is read.

    Examples
    --------
    >>> apps = ProtectedAppSet.from_names("auth", ProviderKind.AUTHELIA, ["b", " a ", "", "b"])
    >>> apps.apps
    ('b', 'a')
    >>> "a" in apps, "c" in apps
    (True, False)
    """

    service: str
    provider: ProviderKind | None
    apps: tuple[str, ...] = ()

    @classmethod
    def from_names(cls, service: str, provider: ProviderKind | None, names: Iterable[str]) -> ProtectedAppSet:
        """Build a set from raw names, dropping blanks and later duplicates."""

        ordered: dict[str, None] = {}
        for raw in names:
            name = raw.strip()
            if name:
                ordered.setdefault(name, None)
        return cls(service=service, provider=provider, apps=tuple(ordered))

    def __contains__(self, app: object) -> bool:
        return app in self.apps


@dataclass(frozen=True, slots=True)
class Protection:
    """Result of resolving an application against all frontend services.

    Attributes
    ----------
    protected:
        ``True`` when at least one service lists the application.
    provider:
        Provider kind of the winning service.
    fragment_path:
        Where the provider's directive fragment is expected for this app.
    service:
        Name of the winning service.
    claims:
        Every service listing the application, winner first.
    """

    protected: bool
    provider: ProviderKind | None = None
    fragment_path: Path | None = None
    service: str | None = None
    claims: tuple[str, ...] = ()

    def as_dict(self) -> dict[str, object]:
        return {
            "protected": self.protected,
            "provider": self.provider.value if self.provider else None,
            "provider_name": self.provider.traits.display_name if self.provider else None,
            "fragment_path": str(self.fragment_path) if self.fragment_path else None,
            "service": self.service,
            "claims": list(self.claims),
        }


UNPROTECTED = Protection(protected=False)
