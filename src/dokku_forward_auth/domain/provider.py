"""Identity-frontend provider kinds.

Purpose
-------
Model the closed set of frontend providers that can protect an application.
Each kind carries a row in :data:`PROVIDER_TRAITS` describing the canonical
internal check location and the nginx variable prefix its fragment uses.

Contents
--------
* :class:`ProviderKind` – closed enumeration of providers.
* :class:`ProviderTraits` – static facts about one provider.
* :data:`PROVIDER_TRAITS` – exhaustive traits table keyed by kind.

System Role
-----------
The registry adapter maps a service's ``PROVIDER`` file onto a kind; the
fragment loader compares the fragment's check location with the kind's
canonical one. The config parser never sees provider kinds.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType
from typing import Mapping

from .errors import UnknownProviderError


class ProviderKind(str, Enum):
    """Frontend providers able to protect an application.

    Examples
    --------
    >>> ProviderKind.from_name(" Authentik ")
    <ProviderKind.AUTHENTIK: 'authentik'>
    >>> ProviderKind.AUTHELIA.traits.check_location
    '/authelia-auth'
    """

    AUTHELIA = "authelia"
    AUTHENTIK = "authentik"

    @classmethod
    def from_name(cls, name: str) -> ProviderKind:
        """Return the kind matching *name* (case-insensitive, whitespace trimmed)."""

        normalized = name.strip().lower()
        for member in cls:
            if member.value == normalized:
                return member
        known = ", ".join(member.value for member in cls)
        raise UnknownProviderError(f"Unknown frontend provider {name!r} (known: {known})")

    @property
    def traits(self) -> ProviderTraits:
        return PROVIDER_TRAITS[self]


@dataclass(frozen=True, slots=True)
class ProviderTraits:
    """Static facts about a provider's forward-auth fragment.

    Attributes
    ----------
    display_name:
        Human readable provider name.
    check_location:
        Internal location the fragment defines as ``auth_request`` target.
    variable_prefix:
        Prefix of the nginx variables filled by ``auth_request_set``.
    """

    display_name: str
    check_location: str
    variable_prefix: str


PROVIDER_TRAITS: Mapping[ProviderKind, ProviderTraits] = MappingProxyType(
    {
        ProviderKind.AUTHELIA: ProviderTraits(
            display_name="Authelia",
            check_location="/authelia-auth",
            variable_prefix="authelia",
        ),
        ProviderKind.AUTHENTIK: ProviderTraits(
            display_name="Authentik",
            check_location="/outpost.goauthentik.io",
            variable_prefix="authentik",
        ),
    }
)
