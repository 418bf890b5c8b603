"""Project list and per-project metadata loading."""

from __future__ import annotations

import re
from pathlib import Path
from typing import Any, Literal

import structlog
import yaml  # type: ignore[import-untyped]
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from labstate.documents import split_front_matter

logger = structlog.get_logger()

METADATA_FILENAME = "project.md"
DESCRIPTION_MAX_CHARS = 500
GITHUB_URL_RE = re.compile(r"github:\s*[\"']?(https://github\.com/[^\"'\s]+)[\"']?", re.IGNORECASE)


class ProjectSource(BaseModel):
    """One configured project: a local checkout plus an optional content directory."""

    id: str
    path: str
    admin_path: str | None = None

    @property
    def repository_root(self) -> Path:
        return Path(self.path).expanduser()

    @property
    def content_root(self) -> Path:
        return Path(self.admin_path or self.path).expanduser()


class IngestionConfig(BaseModel):
    projects: list[ProjectSource] = Field(default_factory=list)


class ProjectLinks(BaseModel):
    github: str | None = None
    demo: str | None = None
    docs: str | None = None


class ProjectMetadata(BaseModel):
    """Authored project metadata (front matter of project.md)."""

    model_config = ConfigDict(extra="allow")

    name: str | None = None
    description: str = ""
    status: Literal["idea", "build", "shipped", "paused"] | None = None
    tags: list[str] = Field(default_factory=list)
    repository_url: str | None = None
    github: str | None = None
    links: ProjectLinks = Field(default_factory=ProjectLinks)
    published: bool = True

    def resolved_repository_url(self) -> str | None:
        return self.repository_url or self.github or self.links.github

    def authored_fields(self) -> dict[str, Any]:
        """Extra front matter keys (case-study fields) to carry into the snapshot."""
        fields = dict(self.model_extra or {})
        links = self.links.model_dump(exclude_none=True)
        if links:
            fields["links"] = links
        return fields


def load_ingestion_config(path: str) -> IngestionConfig:
    p = Path(path).expanduser()
    if not p.exists():
        logger.warning("Projects file not found, no projects configured", path=str(p))
        return IngestionConfig()
    data = yaml.safe_load(p.read_text(encoding="utf-8")) or {}
    if not isinstance(data, dict):
        raise ValueError(f"{p.name} must contain a top-level mapping")
    return IngestionConfig.model_validate(data)


def load_project_metadata(content_root: Path) -> ProjectMetadata:
    """Read project.md; missing or malformed metadata yields defaults.

    A malformed document stays unpublished unless its front matter still
    reads as a mapping without ``published: false``.
    """
    path = content_root / METADATA_FILENAME
    if not path.exists():
        return ProjectMetadata()

    data: Any = None
    try:
        text = path.read_text(encoding="utf-8")
        front_matter, body = split_front_matter(text)
        data = yaml.safe_load(front_matter) if front_matter else None
        if data is not None and not isinstance(data, dict):
            raise ValueError("front matter must be a mapping")
        metadata = ProjectMetadata.model_validate(data or {})
    except (OSError, ValueError, ValidationError, yaml.YAMLError) as exc:
        # Unreadable documents are hidden; readable ones keep their own published flag
        published = isinstance(data, dict) and data.get("published", True) is True
        logger.warning(
            "Invalid project metadata, using defaults",
            path=str(path),
            published=published,
            error=str(exc),
        )
        return ProjectMetadata(published=published)

    if not metadata.description and body.strip():
        metadata.description = body.strip()[:DESCRIPTION_MAX_CHARS]
    if not metadata.resolved_repository_url():
        # Older documents carry the URL as a loose "github: ..." line
        match = GITHUB_URL_RE.search(text)
        if match:
            metadata.github = match.group(1)
    return metadata


def parse_repository_url(url: str) -> tuple[str, str] | None:
    """Split a GitHub URL into (owner, repo)."""
    if "github.com/" not in url:
        return None
    parts = [part for part in url.split("github.com/", 1)[1].split("/") if part]
    if len(parts) < 2:
        return None
    owner, repo = parts[0], parts[1]
    if repo.endswith(".git"):
        repo = repo[: -len(".git")]
    if not owner or not repo:
        return None
    return owner, repo
