"""Filesystem path resolution for the system settings layer.

Purpose
-------
Encapsulate where host-wide settings files live. Dokku only runs on Linux, so
the search follows the ``/etc`` convention alone.

Contents
--------
* :class:`DefaultPathResolver` – resolves system settings candidates.
* :func:`_collect_layer` – helper that yields canonical files within a base
  directory.

System Role
-----------
Feeds deterministic path lists into :func:`dokku_forward_auth.core.load_settings`.
It respects the ``DOKKU_FORWARD_AUTH_ETC`` override (for tests and custom
deployments) while emitting observability events about discovered paths.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Iterable, Mapping

from ...observability import log_debug

#: Supported structured settings file extensions used when expanding
#: ``config.d`` directories.
_ALLOWED_EXTENSIONS = (".toml", ".yaml", ".yml", ".json")

ETC_OVERRIDE_VARIABLE = "DOKKU_FORWARD_AUTH_ETC"


class DefaultPathResolver:
    """Resolve candidate paths for the system settings layer."""

    def __init__(self, *, slug: str, env: Mapping[str, str] | None = None) -> None:
        """Store context required to resolve filesystem locations.

        Parameters
        ----------
        slug:
            Directory name below ``/etc``.
        env:
            Environment mapping to read instead of ``os.environ``; the
            process environment is only consulted when omitted.
        """

        self.slug = slug
        self.env = dict(os.environ if env is None else env)

    @property
    def etc_root(self) -> Path:
        return Path(self.env.get(ETC_OVERRIDE_VARIABLE) or "/etc")

    def system(self) -> list[str]:
        """Return candidate host-wide settings paths.

        Examples
        --------
        >>> from tempfile import TemporaryDirectory
        >>> tmp = TemporaryDirectory()
        >>> root = Path(tmp.name)
        >>> target = root / "dokku-forward-auth"
        >>> target.mkdir()
        >>> _ = (target / "config.toml").write_text('missing_fragment = "fail"', encoding="utf-8")
        >>> resolver = DefaultPathResolver(slug="dokku-forward-auth", env={"DOKKU_FORWARD_AUTH_ETC": str(root)})
        >>> [Path(p).name for p in resolver.system()]
        ['config.toml']
        >>> tmp.cleanup()
        """

        paths = list(_collect_layer(self.etc_root / self.slug))
        if paths:
            log_debug("path_candidates", layer="system", path=None, count=len(paths))
        return paths


def _collect_layer(base: Path) -> Iterable[str]:
    """Yield canonical settings files and ``config.d`` entries under *base*.

    Examples
    --------
    >>> from tempfile import TemporaryDirectory
    >>> tmp = TemporaryDirectory()
    >>> root = Path(tmp.name)
    >>> file_a = root / 'config.toml'
    >>> file_b = root / 'config.d' / '10-extra.json'
    >>> file_b.parent.mkdir(parents=True, exist_ok=True)
    >>> _ = file_a.write_text('missing_fragment = "warn"', encoding='utf-8')
    >>> _ = file_b.write_text('{"missing_fragment": "fail"}', encoding='utf-8')
    >>> sorted(Path(p).name for p in _collect_layer(root))
    ['10-extra.json', 'config.toml']
    >>> tmp.cleanup()
    """

    config_file = base / "config.toml"
    if config_file.is_file():
        yield str(config_file)
    config_dir = base / "config.d"
    if config_dir.is_dir():
        for path in sorted(config_dir.iterdir()):
            if path.is_file() and path.suffix.lower() in _ALLOWED_EXTENSIONS:
                yield str(path)
