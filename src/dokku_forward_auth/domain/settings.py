"""Settings value object passed into the trigger entrypoint.

Purpose
-------
Replace filesystem roots baked into the hook with an explicit, immutable
settings object. The core receives a :class:`Settings` instance; nothing below
the CLI reads environment variables.

Contents
--------
* :class:`MissingFragmentPolicy` – what to do when a protected app has no
  fragment.
* :data:`DEFAULTS` – built-in values, the lowest settings layer.
* :class:`Settings` – validated settings plus path helpers.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from types import MappingProxyType
from typing import Any, Mapping

from .errors import SettingsError, UnknownProviderError
from .fragment import DEFAULT_FRAGMENT_DIR, DEFAULT_FRAGMENT_NAME
from .provider import ProviderKind


class MissingFragmentPolicy(str, Enum):
    """Behaviour when a protected app's fragment is missing or unusable.

    ``warn`` logs a warning and leaves the config untouched (fail-open);
    ``fail`` aborts with a non-zero exit code (fail-closed).
    """

    WARN = "warn"
    FAIL = "fail"


DEFAULTS: Mapping[str, object] = MappingProxyType(
    {
        "dokku_root": "/home/dokku",
        "frontend_root": "/var/lib/dokku/services/sso/frontend",
        "nginx_conf_name": "nginx.conf",
        "fragment_dir_name": DEFAULT_FRAGMENT_DIR,
        "fragment_name": DEFAULT_FRAGMENT_NAME,
        "default_provider": ProviderKind.AUTHELIA.value,
        "missing_fragment": MissingFragmentPolicy.WARN.value,
    }
)


@dataclass(frozen=True, slots=True)
class Settings:
    """Filesystem roots and policies for one trigger invocation.

    Examples
    --------
    >>> settings = Settings(dokku_root=Path("/home/dokku"))
    >>> settings.nginx_conf_path("myapp").as_posix()
    '/home/dokku/myapp/nginx.conf'
    >>> settings.fragment_path("myapp").as_posix()
    '/home/dokku/myapp/nginx.conf.d/forward-auth.conf'
    """

    dokku_root: Path = Path("/home/dokku")
    frontend_root: Path = Path("/var/lib/dokku/services/sso/frontend")
    nginx_conf_name: str = "nginx.conf"
    fragment_dir_name: str = DEFAULT_FRAGMENT_DIR
    fragment_name: str = DEFAULT_FRAGMENT_NAME
    default_provider: ProviderKind = ProviderKind.AUTHELIA
    missing_fragment: MissingFragmentPolicy = MissingFragmentPolicy.WARN

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> Settings:
        """Validate *data* and build a :class:`Settings` instance.

        Missing keys fall back to :data:`DEFAULTS`; unknown keys and invalid
        values raise :class:`SettingsError`.

        Examples
        --------
        >>> Settings.from_mapping({"missing_fragment": "fail"}).missing_fragment.value
        'fail'
        >>> Settings.from_mapping({"colour": "blue"})
        Traceback (most recent call last):
        ...
        dokku_forward_auth.domain.errors.SettingsError: Unknown setting(s): colour
        """

        unknown = sorted(set(data) - set(DEFAULTS))
        if unknown:
            raise SettingsError(f"Unknown setting(s): {', '.join(unknown)}")
        merged = {**DEFAULTS, **data}
        return cls(
            dokku_root=_path(merged, "dokku_root"),
            frontend_root=_path(merged, "frontend_root"),
            nginx_conf_name=_name(merged, "nginx_conf_name"),
            fragment_dir_name=_name(merged, "fragment_dir_name"),
            fragment_name=_name(merged, "fragment_name"),
            default_provider=_provider(merged["default_provider"]),
            missing_fragment=_policy(merged["missing_fragment"]),
        )

    def as_dict(self) -> dict[str, str]:
        """Return a JSON-friendly representation."""

        return {
            "dokku_root": str(self.dokku_root),
            "frontend_root": str(self.frontend_root),
            "nginx_conf_name": self.nginx_conf_name,
            "fragment_dir_name": self.fragment_dir_name,
            "fragment_name": self.fragment_name,
            "default_provider": self.default_provider.value,
            "missing_fragment": self.missing_fragment.value,
        }

    def app_dir(self, app: str) -> Path:
        """Return the Dokku directory of *app*, rejecting path-like names."""

        if not app or app in {".", ".."} or "/" in app or "\\" in app:
            raise ValueError(f"Invalid application name: {app!r}")
        return self.dokku_root / app

    def nginx_conf_path(self, app: str) -> Path:
        return self.app_dir(app) / self.nginx_conf_name

    def fragment_path(self, app: str) -> Path:
        return self.app_dir(app) / self.fragment_dir_name / self.fragment_name


def _path(data: Mapping[str, Any], key: str) -> Path:
    value = data[key]
    if isinstance(value, Path):
        return value
    if not isinstance(value, str) or not value.strip():
        raise SettingsError(f"Setting {key} must be a non-empty path, got {value!r}")
    return Path(value.strip())


def _name(data: Mapping[str, Any], key: str) -> str:
    value = data[key]
    if not isinstance(value, str) or not value.strip() or "/" in value:
        raise SettingsError(f"Setting {key} must be a plain file name, got {value!r}")
    return value.strip()


def _provider(value: object) -> ProviderKind:
    if isinstance(value, ProviderKind):
        return value
    try:
        return ProviderKind.from_name(str(value))
    except UnknownProviderError as exc:
        raise SettingsError(f"Setting default_provider is invalid: {exc}") from exc


def _policy(value: object) -> MissingFragmentPolicy:
    if isinstance(value, MissingFragmentPolicy):
        return value
    try:
        return MissingFragmentPolicy(str(value).strip().lower())
    except ValueError as exc:
        allowed = ", ".join(policy.value for policy in MissingFragmentPolicy)
        raise SettingsError(f"Setting missing_fragment must be one of: {allowed}") from exc
