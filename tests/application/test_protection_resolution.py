"""Pure resolution of an app against every frontend service's protected set."""

from __future__ import annotations

import logging
from pathlib import Path

import pytest
from hypothesis import given
from hypothesis import strategies as st

from dokku_forward_auth.application.protection import resolve_protection
from dokku_forward_auth.domain.protection import UNPROTECTED, ProtectedAppSet
from dokku_forward_auth.domain.provider import ProviderKind

APP_NAMES = st.text(alphabet="abcdefghij-", min_size=1, max_size=6)


def _set(service: str, *apps: str, provider: ProviderKind = ProviderKind.AUTHELIA) -> ProtectedAppSet:
    return ProtectedAppSet(service=service, provider=provider, apps=apps)


def test_no_sets_means_unprotected() -> None:
    assert resolve_protection("myapp", []) == UNPROTECTED


def test_app_protected_by_any_service() -> None:
    sets = [_set("service-a", "other-app"), _set("service-b", "myapp", provider=ProviderKind.AUTHENTIK)]
    fragment_path = Path("/home/dokku/myapp/nginx.conf.d/forward-auth.conf")
    result = resolve_protection("myapp", sets, fragment_path=fragment_path)
    assert result.protected
    assert result.service == "service-b"
    assert result.provider is ProviderKind.AUTHENTIK
    assert result.fragment_path == fragment_path
    assert result.claims == ("service-b",)


def test_app_not_in_any_set() -> None:
    sets = [_set("service-a", "other-app"), _set("service-b", "another-app")]
    assert not resolve_protection("myapp", sets).protected


def test_duplicate_claims_first_wins_with_warning(caplog: pytest.LogCaptureFixture) -> None:
    caplog.set_level(logging.WARNING, logger="dokku_forward_auth")
    sets = [_set("service-a", "myapp"), _set("service-b", "myapp", provider=ProviderKind.AUTHENTIK)]
    result = resolve_protection("myapp", sets)
    assert result.service == "service-a"
    assert result.provider is ProviderKind.AUTHELIA
    assert result.claims == ("service-a", "service-b")
    record = caplog.records[-1]
    assert record.getMessage() == "duplicate_protection_claims"
    assert record.context["winner"] == "service-a"


@given(st.lists(st.lists(APP_NAMES, max_size=4), max_size=4), APP_NAMES)
def test_protected_iff_listed(groups: list[list[str]], app: str) -> None:
    sets = [_set(f"service-{index}", *apps) for index, apps in enumerate(groups)]
    result = resolve_protection(app, sets)
    assert result.protected == any(app in apps for apps in groups)
