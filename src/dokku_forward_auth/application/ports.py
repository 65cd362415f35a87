"""Application-layer ports describing adapter responsibilities.

Purpose
-------
Define the structural contracts adapters must satisfy so the trigger
entrypoint can orchestrate behaviour without depending on concrete
implementations.

Contents
--------
* :class:`ConfigParser` – turns proxy-config text into a :class:`ParsedConfig`.
* :class:`ProtectionRegistry` – answers "is this app protected, and by whom?".
* :class:`ConfigStore` – reads and atomically replaces text files.
* :class:`SettingsLoader` – materialises one settings layer.

System Role
-----------
These protocols keep the injector pure: it only sees a parsed model and a
fragment. A stricter nginx grammar could replace the line scanner by
implementing :class:`ConfigParser` alone.
"""

from __future__ import annotations

from pathlib import Path
from typing import Mapping, Protocol, runtime_checkable

from ..domain.nginx import ParsedConfig
from ..domain.protection import ProtectedAppSet, Protection


@runtime_checkable
class ConfigParser(Protocol):
    """Parse proxy-config text into the structural model.

    Implementations raise :class:`~dokku_forward_auth.domain.errors.MalformedConfigError`
    when brace depth is unbalanced.
    """

    def parse(self, text: str) -> ParsedConfig:
        """Return the parsed model of *text*."""


@runtime_checkable
class ProtectionRegistry(Protocol):
    """Discover which frontend services protect which applications."""

    def services(self) -> tuple[ProtectedAppSet, ...]:
        """Return every known service's protected set in resolution order."""

    def resolve(self, app: str) -> Protection:
        """Return the protection status of *app*."""


@runtime_checkable
class ConfigStore(Protocol):
    """Read text files and replace them atomically."""

    def read(self, path: Path) -> str:
        """Return the content of *path* or raise ``NotFound``."""

    def replace(self, path: Path, text: str) -> None:
        """Atomically replace *path* with *text*."""


@runtime_checkable
class SettingsLoader(Protocol):
    """Load one settings layer as a flat mapping."""

    def load(self, path: str) -> Mapping[str, object]:
        """Read *path* and return its settings or raise ``SettingsError``."""
