from __future__ import annotations

from dokku_forward_auth.domain.errors import (
    ForwardAuthError,
    InvalidFragmentError,
    MalformedConfigError,
    MissingFragmentError,
    NotFound,
    SettingsError,
    UnknownProviderError,
)


def test_error_hierarchy() -> None:
    for error_cls in (NotFound, InvalidFragmentError, MalformedConfigError, UnknownProviderError, SettingsError):
        assert issubclass(error_cls, ForwardAuthError)
    for exception in (NotFound(""), MissingFragmentError(""), SettingsError("")):
        assert isinstance(exception, ForwardAuthError)


def test_missing_fragment_is_a_not_found() -> None:
    assert issubclass(MissingFragmentError, NotFound)


def test_malformed_config_carries_line() -> None:
    error = MalformedConfigError("Unexpected '}' on line 3", line=3)
    assert error.line == 3
    assert str(error) == "Unexpected '}' on line 3"
    assert MalformedConfigError("unclosed").line is None


def test_filesystem_errors_are_not_part_of_the_taxonomy() -> None:
    assert not issubclass(OSError, ForwardAuthError)
    assert not issubclass(ForwardAuthError, OSError)
