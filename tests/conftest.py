from __future__ import annotations

from pathlib import Path

import pytest

from dokku_forward_auth.adapters.nginx.default import DefaultConfigParser
from dokku_forward_auth.application.fragments import load_fragment
from dokku_forward_auth.domain.fragment import DirectiveFragment
from dokku_forward_auth.domain.provider import ProviderKind
from dokku_forward_auth.observability import bind_app, get_logger
from tests.support import (
    AUTHELIA_FORWARD_AUTH_CONF,
    AUTHENTIK_FORWARD_AUTH_CONF,
    DokkuSandbox,
    create_dokku_sandbox,
)


@pytest.fixture()
def sandbox(tmp_path: Path) -> DokkuSandbox:
    return create_dokku_sandbox(tmp_path)


@pytest.fixture()
def parser() -> DefaultConfigParser:
    return DefaultConfigParser()


@pytest.fixture()
def authelia_fragment(parser: DefaultConfigParser) -> DirectiveFragment:
    return load_fragment(AUTHELIA_FORWARD_AUTH_CONF, ProviderKind.AUTHELIA, parser=parser)


@pytest.fixture()
def authentik_fragment(parser: DefaultConfigParser) -> DirectiveFragment:
    return load_fragment(AUTHENTIK_FORWARD_AUTH_CONF, ProviderKind.AUTHENTIK, parser=parser)


@pytest.fixture(autouse=True)
def _reset_package_logging():
    """Drop handlers the CLI attaches and clear the bound app between tests."""

    logger = get_logger()
    handlers = list(logger.handlers)
    level = logger.level
    yield
    for handler in list(logger.handlers):
        if handler not in handlers:
            logger.removeHandler(handler)
    logger.setLevel(level)
    bind_app(None)
