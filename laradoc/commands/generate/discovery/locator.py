"""Class lookup and the type-kind registry.

Handlers are never loaded or reflected at runtime.  Instead a class name is
mapped to a file through PSR-4 prefixes, the file goes through the source
cache, and "is this a FormRequest?" becomes a walk up the parent chain
against an enumerable list of known base classes per kind.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path

from laradoc.commands.generate.php.classes import ClassInfo, MethodInfo
from laradoc.commands.generate.source_cache import AstCache

logger = logging.getLogger("laradoc.discovery")

_MAX_PARENT_DEPTH = 10

KNOWN_KINDS: dict[str, tuple[str, ...]] = {
    "form_request": (
        "Illuminate\\Foundation\\Http\\FormRequest",
    ),
    "json_resource": (
        "Illuminate\\Http\\Resources\\Json\\JsonResource",
    ),
    "resource_collection": (
        "Illuminate\\Http\\Resources\\Json\\ResourceCollection",
        "Illuminate\\Http\\Resources\\Json\\AnonymousResourceCollection",
    ),
    "data_object": (
        "Spatie\\LaravelData\\Data",
    ),
    "json_response": (
        "Illuminate\\Http\\JsonResponse",
        "Symfony\\Component\\HttpFoundation\\JsonResponse",
    ),
    "request": (
        "Illuminate\\Http\\Request",
        "Illuminate\\Foundation\\Http\\FormRequest",
    ),
    "model": (
        "Illuminate\\Database\\Eloquent\\Model",
        "Illuminate\\Foundation\\Auth\\User",
    ),
}


def read_composer_psr4(root: Path) -> dict[str, str]:
    """PSR-4 prefixes from ``composer.json`` (autoload and autoload-dev)."""
    composer = root / "composer.json"
    if not composer.is_file():
        return {}
    try:
        data = json.loads(composer.read_text())
    except (OSError, json.JSONDecodeError) as e:
        logger.debug(f"Ignoring unreadable composer.json: {e}")
        return {}
    prefixes: dict[str, str] = {}
    for section in ("autoload", "autoload-dev"):
        psr4 = data.get(section, {}).get("psr-4", {})
        for prefix, dirs in psr4.items():
            first = dirs[0] if isinstance(dirs, list) and dirs else dirs
            if isinstance(first, str):
                prefixes.setdefault(prefix, first)
    return prefixes


class ClassLocator:
    """Resolve fully-qualified class names to parsed class metadata."""

    def __init__(
        self,
        root: str | Path,
        cache: AstCache,
        namespaces: dict[str, str] | None = None,
        extra_kinds: dict[str, list[str]] | None = None,
    ):
        self.root = Path(root)
        self.cache = cache
        prefixes = read_composer_psr4(self.root)
        if not prefixes:
            prefixes = {"App\\": "app/"}
        prefixes.update(namespaces or {})
        # Longest prefix first so nested namespaces win
        self.prefixes = sorted(
            ((p.rstrip("\\") + "\\", d) for p, d in prefixes.items()),
            key=lambda item: len(item[0]),
            reverse=True,
        )
        self.kinds: dict[str, set[str]] = {k: set(v) for k, v in KNOWN_KINDS.items()}
        for kind, bases in (extra_kinds or {}).items():
            self.kinds.setdefault(kind, set()).update(b.lstrip("\\") for b in bases)

    def locate(self, fqcn: str) -> Path | None:
        fqcn = fqcn.lstrip("\\")
        for prefix, directory in self.prefixes:
            if fqcn.startswith(prefix):
                relative = fqcn[len(prefix):].replace("\\", "/") + ".php"
                candidate = self.root / directory / relative
                if candidate.is_file():
                    return candidate
        return None

    def load(self, fqcn: str) -> ClassInfo | None:
        """Parsed class for *fqcn*, or None when it cannot be found or parsed."""
        path = self.locate(fqcn)
        if path is None:
            logger.debug(f"No source file for class {fqcn}")
            return None
        parsed = self.cache.parse(path)
        if parsed is None:
            return None
        return parsed.find_class(fqcn)

    def ancestors(self, fqcn: str) -> list[str]:
        """Parent class names, nearest first.  Stops at the first unlocatable class."""
        chain: list[str] = []
        current: str | None = fqcn.lstrip("\\")
        for _ in range(_MAX_PARENT_DEPTH):
            info = self.load(current) if current else None
            if info is None or not info.parent:
                break
            chain.append(info.parent)
            current = info.parent
        return chain

    def is_a(self, fqcn: str | None, kind: str) -> bool:
        """True when *fqcn* is, or extends, one of the known bases of *kind*."""
        if not fqcn:
            return False
        bases = self.kinds.get(kind, set())
        name = fqcn.lstrip("\\")
        if name in bases:
            return True
        return any(parent in bases for parent in self.ancestors(name))

    def find_method(self, fqcn: str, method: str) -> tuple[ClassInfo, MethodInfo] | None:
        """Find *method* on the class or its locatable ancestors."""
        current: str | None = fqcn
        for _ in range(_MAX_PARENT_DEPTH):
            if not current:
                return None
            info = self.load(current)
            if info is None:
                return None
            found = info.method(method)
            if found is not None:
                return info, found
            current = info.parent
        return None
