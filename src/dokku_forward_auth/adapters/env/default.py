"""Environment variable adapter.

Purpose
-------
Translate process environment variables into flat settings mappings. It forms
the two highest-precedence layers of :func:`dokku_forward_auth.core.load_settings`.

Key behaviours
--------------
* ``DOKKU_ROOT`` (exported by Dokku into every plugin trigger) maps onto the
  ``dokku_root`` setting.
* Variables carrying the ``DOKKU_FORWARD_AUTH_`` prefix map onto settings keys
  by stripping the prefix and lower-casing the remainder.
* Values are kept as strings; :class:`~dokku_forward_auth.domain.settings.Settings`
  performs validation.
* Emits structured logging via :mod:`dokku_forward_auth.observability` to aid
  troubleshooting.
"""

from __future__ import annotations

import os
from typing import Mapping

from ...observability import log_debug

HOST_VARIABLES: Mapping[str, str] = {"DOKKU_ROOT": "dokku_root"}
"""Host environment variables understood without prefix."""

RESERVED_SUFFIXES = frozenset({"ETC"})
"""Prefixed variables that steer file discovery rather than name a setting."""


def default_env_prefix(slug: str) -> str:
    """Return the canonical environment prefix for *slug*.

    Examples
    --------
    >>> default_env_prefix('dokku-forward-auth')
    'DOKKU_FORWARD_AUTH'
    """

    return slug.replace("-", "_").upper()


class DefaultEnvLoader:
    """Load environment variables that belong to the settings namespace."""

    def __init__(self, *, environ: Mapping[str, str] | None = None) -> None:
        """Initialise the loader with a specific ``environ`` mapping for testability.

        Parameters
        ----------
        environ:
            Mapping to read from. Defaults to :data:`os.environ`.
        """

        self._environ = os.environ if environ is None else environ

    def load_host(self) -> dict[str, object]:
        """Return settings derived from Dokku's own environment variables.

        Empty values are ignored so an exported-but-blank ``DOKKU_ROOT`` keeps
        the lower layers in effect.

        Examples
        --------
        >>> DefaultEnvLoader(environ={'DOKKU_ROOT': '/srv/dokku'}).load_host()
        {'dokku_root': '/srv/dokku'}
        >>> DefaultEnvLoader(environ={'DOKKU_ROOT': ''}).load_host()
        {}
        """

        collected: dict[str, object] = {}
        for variable, key in HOST_VARIABLES.items():
            value = self._environ.get(variable, "")
            if value.strip():
                collected[key] = value
        log_debug("env_host_variables_loaded", layer="host_env", path=None, keys=sorted(collected))
        return collected

    def load(self, prefix: str) -> dict[str, object]:
        """Return a flat mapping containing variables with the supplied *prefix*.

        Parameters
        ----------
        prefix:
            Prefix filter (upper-case). The loader appends ``_`` if missing.

        Returns
        -------
        dict[str, object]
            Keys are stored in lowercase to align with file-based layers.

        Examples
        --------
        >>> env = {
        ...     'DOKKU_FORWARD_AUTH_MISSING_FRAGMENT': 'fail',
        ...     'DOKKU_FORWARD_AUTH_FRONTEND_ROOT': '/srv/frontend',
        ...     'UNRELATED': 'x',
        ... }
        >>> payload = DefaultEnvLoader(environ=env).load('DOKKU_FORWARD_AUTH')
        >>> sorted(payload.items())
        [('frontend_root', '/srv/frontend'), ('missing_fragment', 'fail')]
        """

        prefix = f"{prefix}_" if prefix and not prefix.endswith("_") else prefix
        collected: dict[str, object] = {}
        for key, value in self._environ.items():
            if not key.startswith(prefix):
                continue
            stripped = key[len(prefix) :]
            if not stripped or stripped in RESERVED_SUFFIXES:
                continue
            collected[stripped.lower()] = value
        log_debug("env_variables_loaded", layer="env", path=None, keys=sorted(collected))
        return collected
