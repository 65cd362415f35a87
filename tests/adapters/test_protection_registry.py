"""Filesystem protection registry over ``<frontend_root>/<service>/`` directories."""

from __future__ import annotations

import pytest

from dokku_forward_auth.adapters.registry.default import DefaultProtectionRegistry
from dokku_forward_auth.domain.errors import UnknownProviderError
from dokku_forward_auth.domain.provider import ProviderKind
from tests.support import DokkuSandbox, write_exact


def test_services_sorted_by_name(sandbox: DokkuSandbox) -> None:
    sandbox.create_frontend_service("zeta", ["a"])
    sandbox.create_frontend_service("alpha", ["b", "c"])
    registry = DefaultProtectionRegistry(sandbox.settings())
    assert [(item.service, item.apps) for item in registry.services()] == [("alpha", ("b", "c")), ("zeta", ("a",))]


def test_missing_frontend_root_means_no_services(sandbox: DokkuSandbox) -> None:
    registry = DefaultProtectionRegistry(sandbox.settings(frontend_root=str(sandbox.root / "absent")))
    assert registry.services() == ()
    assert not registry.resolve("myapp").protected


def test_services_without_protected_file_are_ignored(sandbox: DokkuSandbox) -> None:
    sandbox.create_frontend_service("empty", [])
    write_exact(sandbox.frontend_root / "stray-file", "myapp\n")
    assert DefaultProtectionRegistry(sandbox.settings()).services() == ()


def test_provider_file_and_default(sandbox: DokkuSandbox) -> None:
    sandbox.create_frontend_service("a-default", ["one"])
    sandbox.create_frontend_service("b-explicit", ["two"], provider="Authentik")
    sandbox.create_frontend_service("c-blank", ["three"], provider="  ")
    registry = DefaultProtectionRegistry(sandbox.settings(default_provider="authelia"))
    providers = {item.service: item.provider for item in registry.services()}
    assert providers == {
        "a-default": ProviderKind.AUTHELIA,
        "b-explicit": ProviderKind.AUTHENTIK,
        "c-blank": ProviderKind.AUTHELIA,
    }


def test_configured_default_provider(sandbox: DokkuSandbox) -> None:
    sandbox.create_frontend_service("auth", ["myapp"])
    registry = DefaultProtectionRegistry(sandbox.settings(default_provider="authentik"))
    assert registry.resolve("myapp").provider is ProviderKind.AUTHENTIK


def test_unknown_provider_is_fatal(sandbox: DokkuSandbox) -> None:
    sandbox.create_frontend_service("auth", ["myapp"], provider="keycloak")
    with pytest.raises(UnknownProviderError):
        DefaultProtectionRegistry(sandbox.settings()).resolve("myapp")


def test_resolve_reports_fragment_path_and_claims(sandbox: DokkuSandbox) -> None:
    sandbox.create_frontend_service("service-a", ["other-app"])
    sandbox.create_frontend_service("service-b", ["myapp"])
    sandbox.create_frontend_service("service-c", ["myapp"])
    settings = sandbox.settings()
    protection = DefaultProtectionRegistry(settings).resolve("myapp")
    assert protection.protected
    assert protection.service == "service-b"
    assert protection.claims == ("service-b", "service-c")
    assert protection.fragment_path == settings.fragment_path("myapp")


def test_crlf_protected_file(sandbox: DokkuSandbox) -> None:
    service = sandbox.create_frontend_service("auth", [])
    write_exact(service / "PROTECTED", "first\r\nmyapp\r\n")
    assert DefaultProtectionRegistry(sandbox.settings()).resolve("myapp").protected


def test_unrelated_bad_provider_does_not_affect_resolution(sandbox: DokkuSandbox) -> None:
    sandbox.create_frontend_service("broken", ["other-app"], provider="keycloak")
    sandbox.create_frontend_service("good", ["myapp"], provider="authentik")
    registry = DefaultProtectionRegistry(sandbox.settings())
    assert not registry.resolve("unlisted").protected
    protection = registry.resolve("myapp")
    assert (protection.service, protection.provider) == ("good", ProviderKind.AUTHENTIK)


def test_only_the_winning_claimant_provider_is_read(sandbox: DokkuSandbox) -> None:
    sandbox.create_frontend_service("a-winner", ["myapp"])
    sandbox.create_frontend_service("b-broken", ["myapp"], provider="keycloak")
    protection = DefaultProtectionRegistry(sandbox.settings()).resolve("myapp")
    assert protection.provider is ProviderKind.AUTHELIA
    assert protection.claims == ("a-winner", "b-broken")


def test_listing_every_service_validates_every_provider(sandbox: DokkuSandbox) -> None:
    sandbox.create_frontend_service("broken", ["other-app"], provider="keycloak")
    with pytest.raises(UnknownProviderError):
        DefaultProtectionRegistry(sandbox.settings()).services()
