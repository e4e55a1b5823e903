"""Two-tier cache of parsed PHP files.

Tier one is an in-process map keyed by absolute path.  Tier two is an
optional directory of pickles keyed by ``md5(path:mtime)`` with a TTL.
Invalidation follows the file's modification time, never its content.
"""

from __future__ import annotations

import hashlib
import logging
import os
from pathlib import Path
import pickle
import time
from typing import Any

from laradoc.commands.generate.php.classes import ParsedFile, build_parsed_file
from laradoc.commands.generate.php.parser import PhpSyntaxError, parse_source

logger = logging.getLogger("laradoc.cache")

DEFAULT_TTL = 3600


def cache_key(path: str | Path, mtime: float) -> str:
    return hashlib.md5(f"{Path(path).resolve()}:{mtime}".encode()).hexdigest()


class AstCache:
    """Parse-once access to PHP source files.

    Usage:
        cache = AstCache(cache_dir=".laradoc/cache", ttl=3600)
        parsed = cache.parse("app/Http/Controllers/UserController.php")
        if parsed is None:
            ...  # no static information for this file

    A ``ttl`` of 0 or a missing ``cache_dir`` disables the disk tier.
    """

    def __init__(self, cache_dir: str | Path | None = None, ttl: int = DEFAULT_TTL):
        self.cache_dir = Path(cache_dir) if cache_dir else None
        self.ttl = ttl
        self._memory: dict[str, tuple[float, ParsedFile]] = {}
        self.counters = {"memory_hits": 0, "disk_hits": 0, "misses": 0, "failures": 0}

    @property
    def disk_enabled(self) -> bool:
        return self.cache_dir is not None and self.ttl > 0

    def parse(self, path: str | Path) -> ParsedFile | None:
        """Return the parsed file, or None when it cannot be read or parsed."""
        resolved = Path(path).resolve()
        key = str(resolved)
        try:
            mtime = os.path.getmtime(resolved)
        except OSError:
            logger.debug(f"Source file not readable: {resolved}")
            self.counters["failures"] += 1
            return None

        cached = self._memory.get(key)
        if cached is not None and cached[0] == mtime:
            self.counters["memory_hits"] += 1
            return cached[1]

        parsed = self._read_disk(resolved, mtime)
        if parsed is not None:
            self.counters["disk_hits"] += 1
        else:
            self.counters["misses"] += 1
            parsed = self._parse_file(resolved)
            if parsed is None:
                self.counters["failures"] += 1
                return None
            self._write_disk(resolved, mtime, parsed)

        self._memory[key] = (mtime, parsed)
        return parsed

    def clear(self) -> int:
        """Empty both tiers.  Returns the number of disk entries removed."""
        self._memory.clear()
        removed = 0
        if self.cache_dir is not None and self.cache_dir.is_dir():
            for entry in self.cache_dir.glob("*.cache"):
                try:
                    entry.unlink()
                    removed += 1
                except OSError as e:
                    logger.debug(f"Could not remove cache entry {entry}: {e}")
        logger.info(f"AST cache cleared ({removed} disk entries)")
        return removed

    def stats(self) -> dict[str, int]:
        """Tier sizes plus hit and miss counters."""
        return {"memory": self.memory_size(), "disk": self.disk_size(), **self.counters}

    def memory_size(self) -> int:
        return len(self._memory)

    def disk_size(self) -> int:
        if self.cache_dir is None or not self.cache_dir.is_dir():
            return 0
        return sum(1 for _ in self.cache_dir.glob("*.cache"))

    # -- internals --

    def _parse_file(self, path: Path) -> ParsedFile | None:
        try:
            source = path.read_bytes()
        except OSError as e:
            logger.debug(f"Could not read {path}: {e}")
            return None
        try:
            return build_parsed_file(path, parse_source(source))
        except PhpSyntaxError as e:
            logger.debug(f"Could not parse {path}: {e}")
        except RecursionError:
            logger.debug(f"Could not parse {path}: nesting too deep")
        return None

    def _entry_path(self, path: Path, mtime: float) -> Path | None:
        if not self.disk_enabled or self.cache_dir is None:
            return None
        return self.cache_dir / f"{cache_key(path, mtime)}.cache"

    def _read_disk(self, path: Path, mtime: float) -> ParsedFile | None:
        entry = self._entry_path(path, mtime)
        if entry is None or not entry.is_file():
            return None
        try:
            with open(entry, "rb") as f:
                payload: dict[str, Any] = pickle.load(f)
            created_at = float(payload["created_at"])
            parsed = payload["parsed"]
            if not isinstance(parsed, ParsedFile):
                raise TypeError(f"unexpected payload {type(parsed).__name__}")
        except Exception as e:
            logger.debug(f"Corrupt cache entry {entry.name}, discarding: {e}")
            _remove(entry)
            return None
        if time.time() - created_at > self.ttl:
            logger.debug(f"Cache entry expired: {entry.name}")
            _remove(entry)
            return None
        return parsed

    def _write_disk(self, path: Path, mtime: float, parsed: ParsedFile) -> None:
        entry = self._entry_path(path, mtime)
        if entry is None:
            return
        try:
            entry.parent.mkdir(parents=True, exist_ok=True)
            with open(entry, "wb") as f:
                pickle.dump({"created_at": time.time(), "parsed": parsed}, f)
        except (OSError, pickle.PicklingError, RecursionError) as e:
            logger.debug(f"Could not write cache entry for {path}: {e}")
            _remove(entry)


def _remove(entry: Path) -> None:
    try:
        entry.unlink()
    except OSError:
        pass
