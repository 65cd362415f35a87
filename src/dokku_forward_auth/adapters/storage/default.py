"""Filesystem config store.

Purpose
-------
Implement the :class:`dokku_forward_auth.application.ports.ConfigStore`
protocol. Reads keep line endings verbatim; writes replace the target
atomically so nginx never observes a half-written config.

Key behaviours
--------------
* ``read`` raises :class:`NotFound` for absent files; other I/O errors
  propagate unchanged.
* ``replace`` writes a temporary file in the target's directory, flushes and
  fsyncs it, copies the original permission bits, then ``os.replace``\\ s it
  over the target. The temporary file is removed on any failure.
"""

from __future__ import annotations

import os
import shutil
import tempfile
from pathlib import Path

from ...domain.errors import NotFound
from ...observability import log_debug, log_info

ENCODING = "utf-8"


class DefaultConfigStore:
    """Read and atomically replace UTF-8 text files."""

    def read(self, path: Path) -> str:
        """Return the content of *path* with line endings untouched.

        Examples
        --------
        >>> from tempfile import TemporaryDirectory
        >>> tmp = TemporaryDirectory()
        >>> target = Path(tmp.name) / "nginx.conf"
        >>> _ = target.write_bytes(b"server {\\r\\n}\\r\\n")
        >>> DefaultConfigStore().read(target)
        'server {\\r\\n}\\r\\n'
        >>> tmp.cleanup()
        """

        if not path.is_file():
            raise NotFound(f"File not found: {path}")
        with path.open("r", encoding=ENCODING, newline="") as handle:
            text = handle.read()
        log_debug("file_read", stage="read", path=str(path), size=len(text))
        return text

    def replace(self, path: Path, text: str) -> None:
        """Atomically replace *path* with *text*, keeping its permission bits."""

        handle = tempfile.NamedTemporaryFile(
            "w",
            encoding=ENCODING,
            newline="",
            dir=path.parent,
            prefix=f".{path.name}.",
            suffix=".tmp",
            delete=False,
        )
        temp_path = Path(handle.name)
        try:
            with handle:
                handle.write(text)
                handle.flush()
                os.fsync(handle.fileno())
            if path.exists():
                shutil.copymode(path, temp_path)
            os.replace(temp_path, path)
        except BaseException:
            temp_path.unlink(missing_ok=True)
            raise
        log_info("file_replaced", stage="write", path=str(path), size=len(text))
