"""Application-layer merge policy for settings layers.

Purpose
-------
Convert a sequence of flat layer payloads into a single settings mapping while
tracking provenance. Free of I/O so it can be reused in alternative
composition roots.

Contents
    - ``merge_layers``: public entry point driven by a simple loop.
    - ``_set_scalar``: records which layer last supplied a key.

System Role
-----------
Receives layer payloads from :func:`dokku_forward_auth.core.load_settings`,
applies precedence (``defaults → system → file → host_env → env``), and
returns data consumed by
:meth:`dokku_forward_auth.domain.settings.Settings.from_mapping`.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Iterable


def merge_layers(
    layers: Iterable[tuple[str, Mapping[str, object], str | None]],
) -> tuple[dict[str, object], dict[str, dict[str, object]]]:
    """Merge settings *layers* honouring precedence and provenance.

    Parameters
    ----------
    layers:
        Iterable of ``(layer_name, mapping, source_path)`` tuples ordered from
        lowest to highest precedence.

    Returns
    -------
    tuple[dict[str, object], dict[str, dict[str, object]]]
        ``(merged_data, provenance)`` where ``provenance`` maps each key to
        ``{"layer", "path", "key"}``.

    Examples
    --------
    >>> merged, meta = merge_layers([
    ...     ("defaults", {"missing_fragment": "warn"}, None),
    ...     ("env", {"missing_fragment": "fail"}, None),
    ... ])
    >>> merged["missing_fragment"], meta["missing_fragment"]["layer"]
    ('fail', 'env')
    """

    merged: dict[str, object] = {}
    meta: dict[str, dict[str, object]] = {}

    for layer_name, data, path in layers:
        for key, value in data.items():
            _set_scalar(merged, meta, key, value, layer_name, path)
    return merged, meta


def _set_scalar(
    target: dict[str, object],
    meta: dict[str, dict[str, object]],
    key: str,
    value: object,
    layer: str,
    path: str | None,
) -> None:
    """Assign a scalar value and update provenance for ``key``."""

    target[key] = value
    meta[key] = {"layer": layer, "path": path, "key": key}
