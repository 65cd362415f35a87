"""Adapter contract tests for the default ports implementation.

Verify the default adapters continue to satisfy the application-layer ports
defined in ``dokku_forward_auth.application.ports`` so dependency inversion
remains enforceable through automated tests.
"""

from __future__ import annotations

from pathlib import Path

import pytest

from dokku_forward_auth.adapters.file_loaders import structured as structured_module
from dokku_forward_auth.adapters.file_loaders.structured import JSONFileLoader, TOMLFileLoader, YAMLFileLoader
from dokku_forward_auth.adapters.nginx.default import DefaultConfigParser
from dokku_forward_auth.adapters.registry.default import DefaultProtectionRegistry
from dokku_forward_auth.adapters.storage.default import DefaultConfigStore
from dokku_forward_auth.application import ports
from tests.support import SAMPLE_NGINX_CONF, DokkuSandbox


def test_default_config_parser_contract() -> None:
    parser = DefaultConfigParser()
    assert isinstance(parser, ports.ConfigParser)
    assert parser.parse(SAMPLE_NGINX_CONF).render() == SAMPLE_NGINX_CONF


def test_default_protection_registry_contract(sandbox: DokkuSandbox) -> None:
    sandbox.create_frontend_service("auth", ["myapp"])
    registry = DefaultProtectionRegistry(sandbox.settings())
    assert isinstance(registry, ports.ProtectionRegistry)
    assert registry.resolve("myapp").protected


def test_default_config_store_contract(tmp_path: Path) -> None:
    store = DefaultConfigStore()
    assert isinstance(store, ports.ConfigStore)
    path = tmp_path / "nginx.conf"
    store.replace(path, "server {}\n")
    assert store.read(path) == "server {}\n"


loaders = [TOMLFileLoader, JSONFileLoader]
if structured_module.yaml is not None:
    loaders.append(YAMLFileLoader)


@pytest.mark.parametrize("loader_cls", loaders)
def test_structured_loader_contract(tmp_path: Path, loader_cls) -> None:
    """Each structured loader should satisfy SettingsLoader and decode its target format."""

    loader = loader_cls()
    assert isinstance(loader, ports.SettingsLoader)

    if isinstance(loader, TOMLFileLoader):
        path = tmp_path / "config.toml"
        path.write_text('missing_fragment = "fail"\n', encoding="utf-8")
    elif isinstance(loader, JSONFileLoader):
        path = tmp_path / "config.json"
        path.write_text('{"missing_fragment": "fail"}', encoding="utf-8")
    else:
        path = tmp_path / "config.yaml"
        path.write_text("missing_fragment: fail\n", encoding="utf-8")

    assert loader.load(str(path))["missing_fragment"] == "fail"
