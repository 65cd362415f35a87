"""Domain-level exception hierarchy.

Purpose
-------
Expose the error taxonomy shared by the parser, the injector, the adapters and
the trigger entrypoint. The hierarchy lives in the domain layer so outer layers
may depend on it without the domain importing anything from them.

Contents
--------
* :class:`ForwardAuthError` – umbrella base class for every failure raised by
  ``dokku_forward_auth``.
* :class:`NotFound` – an optional input (config file, fragment, registry
  directory) is absent. Treated as a no-op by the trigger.
* :class:`MissingFragmentError` – an app is protected but its directive
  fragment cannot be read.
* :class:`InvalidFragmentError` – the fragment exists but carries no usable
  ``auth_request`` directive.
* :class:`MalformedConfigError` – unbalanced braces in a proxy config; the
  trigger aborts without writing.
* :class:`UnknownProviderError` – a frontend service names a provider kind we
  do not know.
* :class:`SettingsError` – invalid settings values or keys.

System Role
-----------
The trigger entrypoint (:mod:`dokku_forward_auth.core`) decides which of these
are silent no-ops and which become a non-zero exit code. Filesystem errors are
not wrapped; they propagate as plain :class:`OSError`.
"""

from __future__ import annotations


class ForwardAuthError(Exception):
    """Base type for all exceptions emitted by ``dokku_forward_auth``."""


class NotFound(ForwardAuthError):
    """Represents missing-but-optional resources (files, directories, etc.).

    Why
    ----
    A Dokku host triggers ``nginx-pre-reload`` for every app, most of which
    have no frontend service at all. Absence is the common case and must never
    abort a deploy.
    """


class MissingFragmentError(NotFound):
    """Raised when a protected app has no readable directive fragment.

    Whether this is fatal depends on the ``missing_fragment`` setting; the
    default policy logs a warning and leaves the config untouched.
    """


class InvalidFragmentError(ForwardAuthError):
    """Raised when a directive fragment cannot be used for injection."""


class MalformedConfigError(ForwardAuthError):
    """Raised when brace depth goes negative or does not return to zero.

    Attributes
    ----------
    line:
        1-based line number where the imbalance was detected, or ``None`` when
        the problem is only visible at end of input.
    """

    def __init__(self, message: str, *, line: int | None = None) -> None:
        super().__init__(message)
        self.line = line


class UnknownProviderError(ForwardAuthError):
    """Raised when a provider name does not map onto a known provider kind."""


class SettingsError(ForwardAuthError):
    """Raised when a settings layer carries unknown keys or invalid values."""
