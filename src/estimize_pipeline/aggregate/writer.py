"""Append release lines to one flat file per resolved symbol.

Each append rewrites the destination through a temporary file in the same
directory and swaps it into place with `os.replace`, so a reader sees either
the old file or the old file plus the whole appended block. Appends to the
same destination are serialized by a lock held per destination.
"""

from __future__ import annotations

import logging
import os
import re
import stat
import tempfile
import threading
from pathlib import Path
from typing import Iterable

log = logging.getLogger(__name__)

_UNSAFE = re.compile(r"[^a-z0-9._-]")


def destination_name(symbol: str) -> str:
    """Return the lower-cased, filesystem-safe file stem for `symbol`."""
    stem = _UNSAFE.sub("_", symbol.strip().lower())
    if stem in ("", ".", ".."):
        raise ValueError(f"Symbol {symbol!r} cannot be used as a file name")
    return stem


class GroupWriter:
    """Atomic, per-destination appends under a single output folder."""

    def __init__(self, folder: Path, suffix: str = ".csv") -> None:
        self.folder = folder
        self.suffix = suffix
        self.folder.mkdir(parents=True, exist_ok=True)
        self._new_file_mode = _default_file_mode()
        self._locks: dict[str, threading.Lock] = {}
        self._locks_guard = threading.Lock()

    def path_for(self, symbol: str) -> Path:
        return self.folder / f"{destination_name(symbol)}{self.suffix}"

    def _lock_for(self, path: Path) -> threading.Lock:
        with self._locks_guard:
            lock = self._locks.get(path.name)
            if lock is None:
                lock = self._locks[path.name] = threading.Lock()
            return lock

    def append(self, symbol: str, lines: Iterable[str]) -> int:
        """Append `lines` to the destination of `symbol` as one block.

        Args:
            symbol: Resolved symbol; selects the destination file.
            lines: Serialized lines, written in the given order.

        Returns:
            Number of lines appended.
        """
        block = list(lines)
        if not block:
            return 0

        path = self.path_for(symbol)
        with self._lock_for(path):
            mode = self._new_file_mode
            existing = b""
            if path.exists():
                mode = stat.S_IMODE(path.stat().st_mode)
                existing = path.read_bytes()
            if existing and not existing.endswith(b"\n"):
                existing += b"\n"
            payload = existing + ("\n".join(block) + "\n").encode("utf-8")

            fd, tmp_name = tempfile.mkstemp(dir=self.folder, prefix=f".{path.stem}.", suffix=".tmp")
            try:
                with os.fdopen(fd, "wb") as fh:
                    fh.write(payload)
                    fh.flush()
                    os.fsync(fh.fileno())
                # mkstemp creates 0600; keep the destination readable as before
                os.chmod(tmp_name, mode)
                os.replace(tmp_name, path)
            except BaseException:
                if os.path.exists(tmp_name):
                    os.unlink(tmp_name)
                raise

        log.debug("Appended %d lines to %s", len(block), path)
        return len(block)


def _default_file_mode() -> int:
    """Mode a plain `open(path, "w")` would give a new file under the current umask."""
    umask = os.umask(0)
    os.umask(umask)
    return 0o666 & ~umask
