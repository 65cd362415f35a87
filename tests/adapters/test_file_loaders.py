from __future__ import annotations

import json
from pathlib import Path

import pytest

from dokku_forward_auth.adapters.file_loaders import structured as structured_module
from dokku_forward_auth.adapters.file_loaders.structured import (
    JSONFileLoader,
    TOMLFileLoader,
    YAMLFileLoader,
    loader_for,
)
from dokku_forward_auth.domain.errors import NotFound, SettingsError


def test_toml_loader(tmp_path: Path) -> None:
    path = tmp_path / "config.toml"
    path.write_text('dokku_root = "/srv/dokku"\nmissing_fragment = "fail"\n')
    data = TOMLFileLoader().load(str(path))
    assert data == {"dokku_root": "/srv/dokku", "missing_fragment": "fail"}


def test_toml_loader_missing_file(tmp_path: Path) -> None:
    with pytest.raises(NotFound):
        TOMLFileLoader().load(str(tmp_path / "missing.toml"))


def test_toml_loader_invalid(tmp_path: Path) -> None:
    path = tmp_path / "config.toml"
    path.write_text("dokku_root = \n")
    with pytest.raises(SettingsError, match="Invalid TOML"):
        TOMLFileLoader().load(str(path))


def test_nested_tables_are_rejected(tmp_path: Path) -> None:
    path = tmp_path / "config.toml"
    path.write_text('[paths]\ndokku_root = "/srv/dokku"\n')
    with pytest.raises(SettingsError, match="flat settings"):
        TOMLFileLoader().load(str(path))


def test_json_loader_invalid(tmp_path: Path) -> None:
    path = tmp_path / "config.json"
    path.write_text("{invalid}")
    with pytest.raises(SettingsError):
        JSONFileLoader().load(str(path))


def test_json_loader_must_produce_mapping(tmp_path: Path) -> None:
    path = tmp_path / "config.json"
    path.write_text("[1, 2]")
    with pytest.raises(SettingsError, match="did not produce a mapping"):
        JSONFileLoader().load(str(path))


def test_json_loader_valid(tmp_path: Path) -> None:
    path = tmp_path / "config.json"
    path.write_text(json.dumps({"default_provider": "authentik"}), encoding="utf-8")
    assert JSONFileLoader().load(str(path))["default_provider"] == "authentik"


@pytest.mark.skipif(structured_module.yaml is None, reason="PyYAML not available")
def test_yaml_loader_handles_empty_file(tmp_path: Path) -> None:
    path = tmp_path / "config.yaml"
    path.write_text("# empty file\n")
    assert YAMLFileLoader().load(str(path)) == {}


@pytest.mark.skipif(structured_module.yaml is None, reason="PyYAML not available")
def test_yaml_loader_valid(tmp_path: Path) -> None:
    path = tmp_path / "config.yml"
    path.write_text("missing_fragment: fail\n")
    assert loader_for(str(path)).load(str(path)) == {"missing_fragment": "fail"}


def test_yaml_loader_without_pyyaml(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(structured_module, "yaml", None)
    path = tmp_path / "config.yaml"
    path.write_text("missing_fragment: fail\n")
    with pytest.raises(SettingsError, match="PyYAML"):
        YAMLFileLoader().load(str(path))


@pytest.mark.parametrize(
    ("name", "loader_cls"),
    [("a.toml", TOMLFileLoader), ("a.JSON", JSONFileLoader), ("a.yaml", YAMLFileLoader), ("a.yml", YAMLFileLoader)],
)
def test_loader_for_suffix(name: str, loader_cls: type) -> None:
    assert isinstance(loader_for(name), loader_cls)


def test_loader_for_unknown_suffix() -> None:
    with pytest.raises(SettingsError):
        loader_for("/etc/dokku-forward-auth/config.ini")
