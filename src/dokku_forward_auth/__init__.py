"""Public package surface of ``dokku_forward_auth``.

Exports the trigger entry points, the settings loader and the error taxonomy
so Dokku plugins and tests can drive the trigger from Python, mirroring the
``nginx-pre-reload`` console script documented in :mod:`dokku_forward_auth.cli`.
"""

from __future__ import annotations

from .core import TriggerOutcome, TriggerPlan, apply_forward_auth, load_settings, plan_forward_auth, run
from .domain.errors import (
    ForwardAuthError,
    InvalidFragmentError,
    MalformedConfigError,
    MissingFragmentError,
    NotFound,
    SettingsError,
    UnknownProviderError,
)
from .domain.provider import ProviderKind
from .domain.settings import MissingFragmentPolicy, Settings
from .observability import bind_app, get_logger

__all__ = [
    "ForwardAuthError",
    "InvalidFragmentError",
    "MalformedConfigError",
    "MissingFragmentError",
    "MissingFragmentPolicy",
    "NotFound",
    "ProviderKind",
    "Settings",
    "SettingsError",
    "TriggerOutcome",
    "TriggerPlan",
    "UnknownProviderError",
    "apply_forward_auth",
    "bind_app",
    "get_logger",
    "load_settings",
    "plan_forward_auth",
    "run",
]
