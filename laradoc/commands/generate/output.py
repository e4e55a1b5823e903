"""Serialise OpenAPI documents to YAML or JSON."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import yaml


def dump_document(document: dict[str, Any], fmt: str = "yaml") -> str:
    if fmt == "json":
        return json.dumps(document, indent=2, ensure_ascii=False) + "\n"
    return yaml.dump(document, default_flow_style=False, sort_keys=False, allow_unicode=True)


def write_document(document: dict[str, Any], output_path: str | Path, fmt: str = "yaml") -> Path:
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    with open(output_path, "w") as f:
        f.write(dump_document(document, fmt))
    return output_path
