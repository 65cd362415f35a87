"""Structured settings file loaders.

Purpose
-------
Convert on-disk settings files into flat Python mappings that the merge layer
understands. Adapters are small wrappers around ``tomllib``/``json``/
``yaml.safe_load`` so error handling and observability live in one place.

Contents
--------
* :class:`BaseFileLoader` – shared helpers for reading files and validating
  mapping outputs.
* :class:`TOMLFileLoader` – loader for the canonical TOML format.
* :class:`JSONFileLoader` – minimal JSON loader.
* :class:`YAMLFileLoader` – optional YAML loader (only available when PyYAML is
  installed).
* :func:`loader_for` – pick a loader by file suffix.

System Role
-----------
Invoked by :func:`dokku_forward_auth.core.load_settings` for the system file
and the ``--config`` file.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Mapping

try:  # Python >= 3.11
    import tomllib
except ModuleNotFoundError:  # pragma: no cover - fallback for <3.11
    import tomli as tomllib  # type: ignore[assignment]

from ...domain.errors import NotFound, SettingsError
from ...observability import log_debug, log_error

try:
    import yaml  # type: ignore[import-not-found]
except ModuleNotFoundError:  # pragma: no cover - optional dependency
    yaml = None  # type: ignore[assignment]


class BaseFileLoader:
    """Common utilities shared by the structured file loaders."""

    def _read(self, path: str) -> bytes:
        """Read *path* as bytes, raising :class:`NotFound` when the file is missing.

        Examples
        --------
        >>> from tempfile import NamedTemporaryFile
        >>> tmp = NamedTemporaryFile(delete=False)
        >>> _ = tmp.write(b"missing_fragment = 'fail'")
        >>> tmp.close()
        >>> BaseFileLoader()._read(tmp.name)[:7]
        b'missing'
        >>> Path(tmp.name).unlink()
        """

        file_path = Path(path)
        if not file_path.is_file():
            raise NotFound(f"Settings file not found: {path}")
        payload = file_path.read_bytes()
        log_debug("settings_file_read", path=path, layer="file", size=len(payload))
        return payload

    @staticmethod
    def _ensure_mapping(data: object, *, path: str) -> Mapping[str, object]:
        """Ensure *data* is a flat mapping of scalar settings.

        Nested tables are rejected: every setting lives at the top level.

        Examples
        --------
        >>> BaseFileLoader._ensure_mapping({"dokku_root": "/srv"}, path="demo")
        {'dokku_root': '/srv'}
        >>> BaseFileLoader._ensure_mapping(42, path="demo")
        Traceback (most recent call last):
        ...
        dokku_forward_auth.domain.errors.SettingsError: File demo did not produce a mapping
        """

        if not isinstance(data, Mapping):
            raise SettingsError(f"File {path} did not produce a mapping")
        nested = sorted(str(key) for key, value in data.items() if isinstance(value, (Mapping, list)))
        if nested:
            raise SettingsError(f"File {path} must hold flat settings, found nested key(s): {', '.join(nested)}")
        return data  # type: ignore[return-value]


class TOMLFileLoader(BaseFileLoader):
    """Load TOML documents using the standard library parser."""

    def load(self, path: str) -> Mapping[str, object]:
        """Return mapping extracted from TOML file at *path*.

        Examples
        --------
        >>> from tempfile import NamedTemporaryFile
        >>> tmp = NamedTemporaryFile('w', delete=False, encoding='utf-8')
        >>> _ = tmp.write('missing_fragment = "fail"')
        >>> tmp.close()
        >>> TOMLFileLoader().load(tmp.name)["missing_fragment"]
        'fail'
        >>> Path(tmp.name).unlink()
        """

        try:
            text = self._read(path).decode("utf-8")
            data = tomllib.loads(text)
        except (tomllib.TOMLDecodeError, UnicodeDecodeError) as exc:  # type: ignore[attr-defined]
            log_error("settings_file_invalid", layer="file", path=path, format="toml", error=str(exc))
            raise SettingsError(f"Invalid TOML in {path}: {exc}") from exc
        result = self._ensure_mapping(data, path=path)
        log_debug("settings_file_loaded", layer="file", path=path, format="toml")
        return result


class JSONFileLoader(BaseFileLoader):
    """Load JSON documents."""

    def load(self, path: str) -> Mapping[str, object]:
        """Return mapping extracted from JSON file at *path*."""

        try:
            data = json.loads(self._read(path))
        except (json.JSONDecodeError, UnicodeDecodeError) as exc:
            log_error("settings_file_invalid", layer="file", path=path, format="json", error=str(exc))
            raise SettingsError(f"Invalid JSON in {path}: {exc}") from exc
        result = self._ensure_mapping(data, path=path)
        log_debug("settings_file_loaded", layer="file", path=path, format="json")
        return result


class YAMLFileLoader(BaseFileLoader):
    """Load YAML documents when PyYAML is available."""

    def load(self, path: str) -> Mapping[str, object]:
        """Return mapping extracted from YAML file at *path*.

        Raises
        ------
        SettingsError
            When PyYAML is not installed or the document is invalid.
        """

        if yaml is None:
            raise SettingsError("PyYAML is required for YAML settings support")
        try:
            data = yaml.safe_load(self._read(path))  # type: ignore[operator]
        except yaml.YAMLError as exc:  # type: ignore[attr-defined]
            log_error("settings_file_invalid", layer="file", path=path, format="yaml", error=str(exc))
            raise SettingsError(f"Invalid YAML in {path}: {exc}") from exc
        if data is None:
            data = {}
        result = self._ensure_mapping(data, path=path)
        log_debug("settings_file_loaded", layer="file", path=path, format="yaml")
        return result


_LOADERS: Mapping[str, type[BaseFileLoader]] = {
    ".toml": TOMLFileLoader,
    ".json": JSONFileLoader,
    ".yaml": YAMLFileLoader,
    ".yml": YAMLFileLoader,
}


def loader_for(path: str) -> TOMLFileLoader | JSONFileLoader | YAMLFileLoader:
    """Return the loader matching *path*'s suffix.

    Examples
    --------
    >>> type(loader_for('/etc/dokku-forward-auth/config.toml')).__name__
    'TOMLFileLoader'
    >>> loader_for('settings.ini')
    Traceback (most recent call last):
    ...
    dokku_forward_auth.domain.errors.SettingsError: Unsupported settings file format: settings.ini
    """

    loader_cls = _LOADERS.get(Path(path).suffix.lower())
    if loader_cls is None:
        raise SettingsError(f"Unsupported settings file format: {path}")
    return loader_cls()  # type: ignore[return-value]
