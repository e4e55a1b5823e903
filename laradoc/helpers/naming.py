"""Naming utilities shared by extractors, assembly and capture storage."""

from __future__ import annotations

import re

_CRUD_SUMMARIES = {
    "index": "List {plural}",
    "store": "Create {singular}",
    "show": "Get {singular}",
    "update": "Update {singular}",
    "destroy": "Delete {singular}",
}


def to_identifier(name: str, *, fallback: str = "unknown") -> str:
    """Clean a name into a snake_case identifier.

    Strips non-alphanumeric chars, collapses underscores, strips leading/trailing.
    Returns *fallback* if the result is empty.
    """
    name = re.sub(r"[^a-zA-Z0-9_]", "_", name)
    name = re.sub(r"_+", "_", name).strip("_")
    return name or fallback


def to_class_name(name: str, *, suffix: str = "") -> str:
    """Convert a free-form name to PascalCase.

    Words that are already mixed-case keep their inner capitals, so
    ``UserResource`` stays as is.  Returns ``"Schema" + suffix`` as a last resort.
    """
    words = re.split(r"[^a-zA-Z0-9]+", name)
    class_name = "".join(w[0].upper() + w[1:] for w in words if w)
    if not class_name:
        return f"Schema{suffix}"
    if suffix and not class_name.endswith(suffix):
        class_name += suffix
    return class_name


def short_class_name(fqcn: str) -> str:
    return fqcn.rstrip("\\").rsplit("\\", 1)[-1]


def schema_name_for_class(fqcn: str, strip: tuple[str, ...] = ()) -> str:
    """Component name for a PHP class: short name minus any of the *strip* suffixes."""
    short = short_class_name(fqcn)
    for suffix in strip:
        if short.endswith(suffix) and len(short) > len(suffix):
            return short[: -len(suffix)]
    return short


def split_words(name: str) -> list[str]:
    """``storeUserAvatar`` / ``store_user-avatar`` → ``["store", "user", "avatar"]``."""
    spaced = re.sub(r"([a-z0-9])([A-Z])", r"\1 \2", name)
    return [w.lower() for w in re.split(r"[^a-zA-Z0-9]+", spaced) if w]


def singular(word: str) -> str:
    if word.endswith("ies") and len(word) > 3:
        return word[:-3] + "y"
    if word.endswith(("ses", "xes", "zes", "ches", "shes")):
        return word[:-2]
    if word.endswith("s") and not word.endswith("ss"):
        return word[:-1]
    return word


def static_segments(uri: str) -> list[str]:
    """Path segments that are not ``{parameters}``."""
    return [s for s in uri.strip("/").split("/") if s and not s.startswith("{")]


def tag_from_uri(uri: str, skip: tuple[str, ...] = ("api",)) -> str:
    """First meaningful static segment, title-cased: ``api/v1/users/{id}`` → ``Users``."""
    for segment in static_segments(uri):
        if segment in skip or re.fullmatch(r"v\d+", segment):
            continue
        return " ".join(w.capitalize() for w in split_words(segment)) or "Default"
    return "Default"


def resource_name(uri: str) -> str:
    """Last static segment of a URI, as words."""
    segments = static_segments(uri)
    return " ".join(split_words(segments[-1])) if segments else "resource"


def summary_for(action: str, uri: str) -> str:
    """Human summary from a controller action and URI."""
    resource = resource_name(uri)
    template = _CRUD_SUMMARIES.get(action)
    if template is not None:
        words = resource.split()
        if words:
            words[-1] = singular(words[-1])
        return template.format(plural=resource, singular=" ".join(words))
    words = split_words(action) or ["handle"]
    return " ".join(words).capitalize()


def operation_id(method: str, uri: str, route_name: str | None = None) -> str:
    """Stable operationId: the route name in camelCase, else method + path."""
    if route_name:
        words = split_words(route_name)
    else:
        parts = [method.lower()]
        for segment in uri.strip("/").split("/"):
            if not segment:
                continue
            if segment.startswith("{"):
                parts.extend(["by", segment.strip("{}?")])
            else:
                parts.append(segment)
        words = split_words(" ".join(parts))
    if not words:
        return method.lower()
    return words[0] + "".join(w.capitalize() for w in words[1:])


def capture_file_stem(method: str, uri: str) -> str:
    """``GET`` + ``/api/users/{id}`` → ``GET_api_users_id``."""
    path = re.sub(r"\{(\w+)\??\}", r"\1", uri.strip("/"))
    path = re.sub(r"[/.:\-]", "_", path)
    return f"{method.upper()}_{path}"
