"""Reading authored YAML and front-matter documents."""

from __future__ import annotations

import re
from pathlib import Path
from typing import Any

import yaml  # type: ignore[import-untyped]

FRONT_MATTER_RE = re.compile(r"\A---[ \t]*\r?\n(.*?)\r?\n---[ \t]*(?:\r?\n|\Z)(.*)\Z", re.DOTALL)


def split_front_matter(text: str) -> tuple[str | None, str]:
    """Return (front matter, body); front matter is None when absent."""
    match = FRONT_MATTER_RE.match(text)
    if not match:
        return None, text
    return match.group(1), match.group(2)


def load_yaml_document(path: Path) -> tuple[dict[str, Any], str]:
    """Load a mapping from a pure YAML file or a markdown file with front matter.

    Returns (mapping, markdown body). The body is empty for pure YAML files.

    Raises:
        ValueError: if the YAML does not describe a mapping.
        yaml.YAMLError: if the YAML cannot be parsed.
    """
    text = path.read_text(encoding="utf-8")
    front_matter, body = split_front_matter(text)
    if front_matter is None:
        data = yaml.safe_load(text)
        body = ""
    else:
        data = yaml.safe_load(front_matter)
    if data is None:
        return {}, body
    if not isinstance(data, dict):
        raise ValueError(f"{path.name} must contain a top-level mapping")
    return data, body
