"""Remote repository (GitHub) commit history adapter."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import httpx
import structlog

from labstate.config import settings
from labstate.dates import parse_timestamp
from labstate.ingest.adapters.base import AdapterError, ProjectRoot
from labstate.ingest.fetch import fetch_json
from labstate.ingest.noise import NoisePredicate, is_noise_commit
from labstate.ingest.signals import CommitPayload, RawSignal, SignalMetadata, SignalSource
from labstate.projects import load_project_metadata, parse_repository_url

logger = structlog.get_logger()


def _commit_to_signal(item: dict[str, Any], project_id: str, is_noise: NoisePredicate) -> RawSignal:
    try:
        sha = item["sha"]
        commit = item["commit"]
        author = commit.get("author") or {}
        timestamp = parse_timestamp(author["date"])
    except (KeyError, TypeError, ValueError) as exc:
        raise AdapterError(f"Unexpected commit shape: {exc}") from exc

    message = commit.get("message") or ""
    subject, _, body = message.partition("\n")
    return RawSignal(
        id=sha,
        project_id=project_id,
        source=SignalSource.GIT,
        timestamp=timestamp,
        data=CommitPayload(
            hash=sha,
            message=subject,
            body=body.strip(),
            author_name=author.get("name"),
            author_email=author.get("email"),
            url=item.get("html_url"),
        ),
        metadata=SignalMetadata(is_noise=is_noise(subject)),
    )


class RemoteRepositoryAdapter:
    """Fetches recent commits for the repository named in project.md.

    Commits come back as ``git`` signals so they share the local aggregation
    path. Missing URLs, auth failures, timeouts and non-2xx responses all
    produce an empty list.
    """

    def __init__(
        self,
        noise_predicate: NoisePredicate = is_noise_commit,
        api_url: str | None = None,
        token: str | None = None,
        timeout_seconds: float | None = None,
        per_page: int | None = None,
        max_pages: int | None = None,
        transport: httpx.BaseTransport | None = None,
    ):
        self._is_noise = noise_predicate
        self._api_url = (api_url or settings.github_api_url).rstrip("/")
        if token is None and settings.github_token is not None:
            token = settings.github_token.get_secret_value()
        self._token = token
        self._timeout_seconds = timeout_seconds if timeout_seconds is not None else settings.remote_timeout_seconds
        self._per_page = per_page or settings.remote_per_page
        self._max_pages = max_pages or settings.remote_max_pages
        self._transport = transport

    @property
    def name(self) -> str:
        return "remote"

    @property
    def root(self) -> ProjectRoot:
        return ProjectRoot.CONTENT

    def fetch_signals(self, project_root: Path, project_id: str) -> list[RawSignal]:
        try:
            repository_url = load_project_metadata(project_root).resolved_repository_url()
            if not repository_url:
                logger.debug("No repository URL", project=project_id)
                return []

            parsed = parse_repository_url(repository_url)
            if parsed is None:
                logger.warning("Could not parse repository URL", project=project_id, url=repository_url)
                return []

            owner, repo = parsed
            logger.info("Fetching remote commits", project=project_id, repository=f"{owner}/{repo}")
            items = self._fetch_commits(owner, repo)
            signals = [_commit_to_signal(item, project_id, self._is_noise) for item in items]
        except AdapterError as exc:
            logger.warning("Remote commits unavailable", project=project_id, error=str(exc))
            return []
        except Exception:
            logger.exception("Remote ingestion failed", project=project_id)
            return []

        logger.info("Remote commits ingested", project=project_id, commits=len(signals))
        return signals

    def _headers(self) -> dict[str, str]:
        headers = {"Accept": "application/vnd.github+json"}
        if self._token:
            headers["Authorization"] = f"Bearer {self._token}"
        return headers

    def _fetch_commits(self, owner: str, repo: str) -> list[dict[str, Any]]:
        url: str | None = f"{self._api_url}/repos/{owner}/{repo}/commits"
        params: dict[str, Any] | None = {"per_page": self._per_page}
        items: list[dict[str, Any]] = []

        for _page in range(self._max_pages):
            if url is None:
                break
            result = fetch_json(
                url,
                params=params,
                headers=self._headers(),
                timeout_seconds=self._timeout_seconds,
                transport=self._transport,
            )
            if not result.ok:
                raise AdapterError(f"Commit history request failed: {result.error}")
            if not isinstance(result.data, list):
                raise AdapterError("Commit history response is not a list")
            items.extend(item for item in result.data if isinstance(item, dict))
            # The next link already carries the query string
            url, params = result.next_url, None

        return items
