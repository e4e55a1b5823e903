"""Watch mode: poll PHP sources and rebuild the documents when they change."""

from __future__ import annotations

from collections.abc import Callable
import hashlib
import logging
from pathlib import Path
import signal
import time

logger = logging.getLogger("laradoc.watch")

DEFAULT_WATCH_PATHS = ("app/Http/Controllers", "app/Http/Requests", "app/Http/Resources")
FALLBACK_WATCH_PATH = "app"
DEFAULT_INTERVAL = 2.0


def watch_paths(root: Path) -> list[Path]:
    """The standard HTTP directories that exist, else ``app/``."""
    paths = [root / p for p in DEFAULT_WATCH_PATHS if (root / p).is_dir()]
    if not paths and (root / FALLBACK_WATCH_PATH).is_dir():
        paths = [root / FALLBACK_WATCH_PATH]
    return paths


def snapshot(paths: list[Path]) -> dict[str, str]:
    """md5 of every ``.php`` file below *paths*, keyed by path."""
    hashes: dict[str, str] = {}
    for base in paths:
        for php in sorted(base.rglob("*.php")):
            try:
                hashes[str(php)] = hashlib.md5(php.read_bytes()).hexdigest()
            except OSError:
                continue
    return hashes


def changed_files(before: dict[str, str], after: dict[str, str]) -> list[str]:
    """Files added, removed or modified between two snapshots."""
    return sorted(
        path for path in set(before) | set(after) if before.get(path) != after.get(path)
    )


class Watcher:
    """Poll loop.  SIGINT/SIGTERM only set a flag, checked once per poll,
    so a rebuild in progress always runs to completion.
    """

    def __init__(
        self,
        paths: list[Path],
        rebuild: Callable[[list[str]], None],
        interval: float = DEFAULT_INTERVAL,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.paths = paths
        self.rebuild = rebuild
        self.interval = interval
        self.sleep = sleep
        self.stopped = False

    def stop(self, *_: object) -> None:
        self.stopped = True

    def install_signal_handlers(self) -> None:
        signal.signal(signal.SIGINT, self.stop)
        signal.signal(signal.SIGTERM, self.stop)

    def poll(self, previous: dict[str, str]) -> dict[str, str]:
        """One iteration: rebuild when the snapshot differs.  Returns the new snapshot."""
        current = snapshot(self.paths)
        changes = changed_files(previous, current)
        if changes:
            logger.info(f"{len(changes)} file(s) changed, rebuilding")
            self.rebuild(changes)
        return current

    def run(self) -> None:
        state = snapshot(self.paths)
        logger.info(f"Watching {len(state)} PHP file(s) every {self.interval}s")
        while not self.stopped:
            self.sleep(self.interval)
            if self.stopped:
                break
            state = self.poll(state)
