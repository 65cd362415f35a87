"""Composition root for ``dokku_forward_auth``.

Purpose
-------
Provide the entry points that wire settings layers, the protection registry,
the config parser, the injector and the config store into the
``nginx-pre-reload`` trigger. Everything below this module is I/O-free or an
adapter behind a port; this is the canonical location for adjusting the
trigger's decision sequence or wiring new adapters.

Contents
--------
* :func:`load_settings` – merge settings layers into a :class:`Settings`.
* :class:`TriggerOutcome` – every way one trigger invocation can end.
* :class:`TriggerPlan` – what the trigger decided, before anything is written.
* :func:`plan_forward_auth` – run the decision sequence without writing.
* :func:`apply_forward_auth` – plan and, when needed, write atomically.
* :func:`run` – hook-facing wrapper mapping fatal errors to exit code ``1``.

System Role
-----------
The CLI calls into this module; adapters are created here when the caller does
not inject its own. Structured logging events narrate each decision.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Mapping

from .adapters.env.default import DefaultEnvLoader, default_env_prefix
from .adapters.file_loaders.structured import loader_for
from .adapters.nginx.default import DefaultConfigParser
from .adapters.path_resolvers.default import DefaultPathResolver
from .adapters.registry.default import DefaultProtectionRegistry
from .adapters.storage.default import DefaultConfigStore
from .application.fragments import load_fragment
from .application.guard import already_injected
from .application.injector import inject
from .application.merge import merge_layers
from .application.ports import ConfigParser, ConfigStore, ProtectionRegistry
from .domain.errors import (
    ForwardAuthError,
    InvalidFragmentError,
    MissingFragmentError,
    NotFound,
    SettingsError,
)
from .domain.fragment import DirectiveFragment
from .domain.nginx import InjectionResult
from .domain.protection import UNPROTECTED, Protection
from .domain.settings import DEFAULTS, MissingFragmentPolicy, Settings
from .observability import bind_app, log_debug, log_error, log_info, log_warning, make_event

SLUG = "dokku-forward-auth"

Provenance = dict[str, dict[str, object]]


def load_settings(
    config_file: str | Path | None = None,
    *,
    environ: Mapping[str, str] | None = None,
) -> tuple[Settings, Provenance]:
    """Return the effective :class:`Settings` and per-key provenance.

    Layers, lowest to highest precedence: built-in defaults, the system files
    under ``/etc/dokku-forward-auth/``, *config_file*, ``DOKKU_ROOT`` and
    ``DOKKU_FORWARD_AUTH_<KEY>`` environment variables.

    Raises
    ------
    SettingsError
        When a layer is unreadable as settings, names an unknown key or carries
        an invalid value, or when *config_file* does not exist.

    Examples
    --------
    >>> settings, provenance = load_settings(environ={"DOKKU_ROOT": "/srv/dokku", "DOKKU_FORWARD_AUTH_ETC": "/nonexistent"})
    >>> settings.dokku_root.as_posix(), provenance["dokku_root"]["layer"]
    ('/srv/dokku', 'host_env')
    >>> provenance["missing_fragment"]["layer"]
    'defaults'
    """

    resolver = DefaultPathResolver(slug=SLUG, env=environ)
    env_loader = DefaultEnvLoader(environ=environ)

    layers: list[tuple[str, Mapping[str, object], str | None]] = [("defaults", DEFAULTS, None)]
    for path in resolver.system():
        layers.append(("system", _load_file(path), path))
    if config_file is not None:
        path = str(config_file)
        try:
            layers.append(("file", _load_file(path), path))
        except NotFound as exc:
            raise SettingsError(f"Settings file not found: {path}") from exc

    host_data = env_loader.load_host()
    if host_data:
        layers.append(("host_env", host_data, None))
    env_data = env_loader.load(default_env_prefix(SLUG))
    if env_data:
        layers.append(("env", env_data, None))

    for layer_name, data, path in layers[1:]:
        log_debug("layer_loaded", **make_event(layer_name, path, {"keys": len(data)}))

    merged, provenance = merge_layers(layers)
    settings = Settings.from_mapping(merged)
    log_debug("settings_merged", layer="final", path=None, total_layers=len(layers))
    return settings, provenance


def _load_file(path: str) -> Mapping[str, object]:
    return loader_for(path).load(path)


class TriggerOutcome(str, Enum):
    """How one ``nginx-pre-reload`` invocation ended."""

    NO_APP = "no-app"
    NO_CONFIG = "no-config"
    NOT_PROTECTED = "not-protected"
    MISSING_FRAGMENT = "missing-fragment"
    ALREADY_INJECTED = "already-injected"
    UNCHANGED = "unchanged"
    APPLIED = "applied"


@dataclass(frozen=True)
class TriggerPlan:
    """Decision reached for one application, before any write.

    ``result`` is only set once the config was parsed and injected; for
    :attr:`TriggerOutcome.APPLIED` it carries the text to write.
    """

    app: str
    outcome: TriggerOutcome
    config_path: Path | None = None
    protection: Protection = UNPROTECTED
    fragment: DirectiveFragment | None = None
    result: InjectionResult | None = None

    def as_dict(self) -> dict[str, object]:
        payload: dict[str, object] = {
            "app": self.app,
            "outcome": self.outcome.value,
            "config_path": str(self.config_path) if self.config_path else None,
            "protection": self.protection.as_dict(),
            "check_location": self.fragment.check_location if self.fragment else None,
        }
        if self.result is not None:
            payload["injection"] = {
                "changed": self.result.changed,
                "roots": self.result.roots,
                "error_pages": self.result.error_pages,
                "definitions": self.result.definitions,
            }
        return payload


def plan_forward_auth(
    app: str,
    settings: Settings,
    *,
    registry: ProtectionRegistry | None = None,
    parser: ConfigParser | None = None,
    store: ConfigStore | None = None,
) -> TriggerPlan:
    """Run the trigger's decision sequence for *app* without writing anything.

    Raises
    ------
    MissingFragmentError
        When the fragment is absent or unusable and the policy is ``fail``.
    MalformedConfigError
        When ``nginx.conf`` has unbalanced braces.
    UnknownProviderError
        When the frontend service protecting *app* names an unknown provider.
    """

    app = app.strip()
    if not app:
        log_debug("trigger_skipped", stage="trigger", path=None, reason=TriggerOutcome.NO_APP.value)
        return TriggerPlan(app=app, outcome=TriggerOutcome.NO_APP)

    registry = registry or DefaultProtectionRegistry(settings)
    parser = parser or DefaultConfigParser()
    store = store or DefaultConfigStore()

    config_path = settings.nginx_conf_path(app)
    try:
        text = store.read(config_path)
    except NotFound:
        log_debug("trigger_skipped", stage="trigger", path=str(config_path), reason=TriggerOutcome.NO_CONFIG.value)
        return TriggerPlan(app=app, outcome=TriggerOutcome.NO_CONFIG, config_path=config_path)

    protection = registry.resolve(app)
    if not protection.protected or protection.provider is None:
        log_debug("trigger_skipped", stage="trigger", path=str(config_path), reason=TriggerOutcome.NOT_PROTECTED.value)
        return TriggerPlan(app=app, outcome=TriggerOutcome.NOT_PROTECTED, config_path=config_path)

    fragment_path = protection.fragment_path or settings.fragment_path(app)
    try:
        fragment = load_fragment(
            store.read(fragment_path),
            protection.provider,
            parser=parser,
            filename=fragment_path.name,
            directory=fragment_path.parent.name,
        )
    except (NotFound, InvalidFragmentError, OSError, UnicodeDecodeError) as exc:
        return _missing_fragment(app, settings, config_path, protection, fragment_path, exc)

    plan = dict(app=app, config_path=config_path, protection=protection, fragment=fragment)
    if already_injected(text, fragment):
        log_info("trigger_skipped", stage="trigger", path=str(config_path), reason=TriggerOutcome.ALREADY_INJECTED.value)
        return TriggerPlan(outcome=TriggerOutcome.ALREADY_INJECTED, **plan)

    result = inject(parser.parse(text), fragment)
    if not result.changed:
        log_info("trigger_skipped", stage="trigger", path=str(config_path), reason=TriggerOutcome.UNCHANGED.value)
        return TriggerPlan(outcome=TriggerOutcome.UNCHANGED, result=result, **plan)
    return TriggerPlan(outcome=TriggerOutcome.APPLIED, result=result, **plan)


def _missing_fragment(
    app: str,
    settings: Settings,
    config_path: Path,
    protection: Protection,
    fragment_path: Path,
    cause: Exception,
) -> TriggerPlan:
    """Apply the ``missing_fragment`` policy to an unusable fragment."""

    if settings.missing_fragment is MissingFragmentPolicy.FAIL:
        log_error("fragment_missing", stage="fragment", path=str(fragment_path), error=str(cause))
        raise MissingFragmentError(f"Forward-auth fragment unusable for {app}: {fragment_path}: {cause}") from cause
    log_warning(
        "fragment_missing",
        stage="fragment",
        path=str(fragment_path),
        service=protection.service,
        error=str(cause),
    )
    return TriggerPlan(
        app=app,
        outcome=TriggerOutcome.MISSING_FRAGMENT,
        config_path=config_path,
        protection=protection,
    )


def apply_forward_auth(
    app: str,
    settings: Settings,
    *,
    registry: ProtectionRegistry | None = None,
    parser: ConfigParser | None = None,
    store: ConfigStore | None = None,
    dry_run: bool = False,
) -> TriggerOutcome:
    """Inject forward-auth directives into *app*'s ``nginx.conf`` when protected.

    The file is only written for :attr:`TriggerOutcome.APPLIED`, and never when
    *dry_run* is set. Filesystem errors propagate unchanged.

    Examples
    --------
    >>> from tempfile import TemporaryDirectory
    >>> tmp = TemporaryDirectory()
    >>> settings = Settings(dokku_root=Path(tmp.name), frontend_root=Path(tmp.name) / "frontend")
    >>> apply_forward_auth("myapp", settings).value
    'no-config'
    >>> tmp.cleanup()
    """

    store = store or DefaultConfigStore()
    bind_app(app.strip() or None)
    try:
        plan = plan_forward_auth(app, settings, registry=registry, parser=parser, store=store)
        if plan.outcome is TriggerOutcome.APPLIED and plan.result is not None and plan.config_path is not None:
            if dry_run:
                log_info("trigger_dry_run", stage="write", path=str(plan.config_path))
            else:
                store.replace(plan.config_path, plan.result.text)
                log_info(
                    "forward_auth_applied",
                    stage="write",
                    path=str(plan.config_path),
                    provider=plan.protection.provider.value if plan.protection.provider else None,
                    roots=plan.result.roots,
                    error_pages=plan.result.error_pages,
                )
        return plan.outcome
    finally:
        bind_app(None)


def run(app: str, settings: Settings) -> int:
    """Run the trigger for *app* and return the hook's exit code.

    ``0`` for every no-op and for a successful rewrite; ``1`` when the config
    is malformed, the fragment policy fails, or a provider is unknown.
    Filesystem errors propagate.
    """

    try:
        apply_forward_auth(app, settings)
    except ForwardAuthError as exc:
        log_error("trigger_failed", stage="trigger", path=None, app=app, error=str(exc))
        return 1
    return 0


__all__ = [
    "Provenance",
    "SLUG",
    "TriggerOutcome",
    "TriggerPlan",
    "apply_forward_auth",
    "load_settings",
    "plan_forward_auth",
    "run",
]
