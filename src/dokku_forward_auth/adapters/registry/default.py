"""Filesystem-backed protection registry.

Purpose
-------
Implement the :class:`dokku_forward_auth.application.ports.ProtectionRegistry`
protocol on top of the frontend service directories Dokku plugins maintain::

    <frontend_root>/<service>/PROTECTED   newline-separated app names
    <frontend_root>/<service>/PROVIDER    provider kind (optional)

Key behaviours
--------------
* Services are scanned in sorted name order so "first match wins" is stable.
* A missing frontend root, service without ``PROTECTED`` file, or empty file
  simply contributes nothing.
* A service without ``PROVIDER`` file uses the configured default provider.
* Unknown provider names raise :class:`UnknownProviderError`, but only the
  ``PROVIDER`` file of the service protecting the resolved app is read.
* Permission and I/O errors propagate unchanged.
"""

from __future__ import annotations

from dataclasses import replace
from pathlib import Path

from ...application.protection import resolve_protection
from ...domain.protection import ProtectedAppSet, Protection
from ...domain.provider import ProviderKind
from ...domain.settings import Settings
from ...observability import log_debug

PROTECTED_FILE = "PROTECTED"
PROVIDER_FILE = "PROVIDER"


class DefaultProtectionRegistry:
    """Read protected-app sets from ``<frontend_root>/<service>/`` directories."""

    def __init__(self, settings: Settings) -> None:
        self.settings = settings
        self.root = settings.frontend_root

    def services(self) -> tuple[ProtectedAppSet, ...]:
        """Return the protected set of every frontend service, sorted by name.

        Every service's ``PROVIDER`` file is read, so an unknown provider
        anywhere raises :class:`UnknownProviderError`.

        Examples
        --------
        >>> from tempfile import TemporaryDirectory
        >>> tmp = TemporaryDirectory()
        >>> service = Path(tmp.name) / "auth"
        >>> service.mkdir()
        >>> _ = (service / "PROTECTED").write_text("myapp\\n", encoding="utf-8")
        >>> registry = DefaultProtectionRegistry(Settings(frontend_root=Path(tmp.name)))
        >>> [(item.service, item.apps, item.provider.value) for item in registry.services()]
        [('auth', ('myapp',), 'authelia')]
        >>> tmp.cleanup()
        """

        return tuple(replace(item, provider=self._provider_of(item.service)) for item in self._listings())

    def resolve(self, app: str) -> Protection:
        """Return the protection status of *app*.

        Only the winning service's ``PROVIDER`` file is read; other services
        cannot fail the resolution.
        """

        protection = resolve_protection(app, self._listings(), fragment_path=self.settings.fragment_path(app))
        if not protection.protected or protection.service is None:
            return protection
        return replace(protection, provider=self._provider_of(protection.service))

    def _listings(self) -> tuple[ProtectedAppSet, ...]:
        """Return every service's ``PROTECTED`` list without reading providers."""

        if not self.root.is_dir():
            log_debug("frontend_root_missing", stage="resolve", path=str(self.root))
            return ()
        collected: list[ProtectedAppSet] = []
        for service_dir in sorted(self.root.iterdir(), key=lambda entry: entry.name):
            if not service_dir.is_dir():
                continue
            protected_file = service_dir / PROTECTED_FILE
            if not protected_file.is_file():
                continue
            names = protected_file.read_text(encoding="utf-8").splitlines()
            collected.append(ProtectedAppSet.from_names(service_dir.name, None, names))
        log_debug("frontend_services_loaded", stage="resolve", path=str(self.root), services=len(collected))
        return tuple(collected)

    def _provider_of(self, service: str) -> ProviderKind:
        provider_file = self.root / service / PROVIDER_FILE
        if not provider_file.is_file():
            return self.settings.default_provider
        name = provider_file.read_text(encoding="utf-8").strip()
        if not name:
            return self.settings.default_provider
        return ProviderKind.from_name(name)
