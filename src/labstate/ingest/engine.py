"""Fan adapters out across configured projects."""

from __future__ import annotations

import asyncio
from collections.abc import Sequence
from dataclasses import dataclass

import structlog

from labstate.ingest.adapters.base import ProjectRoot, SignalAdapter
from labstate.ingest.adapters.git_log import GitLogAdapter
from labstate.ingest.adapters.remote import RemoteRepositoryAdapter
from labstate.ingest.adapters.timeline import ADMIN_ENTRY_TYPE, TimelineAdapter
from labstate.ingest.signals import RawSignal
from labstate.projects import ProjectSource

logger = structlog.get_logger()


@dataclass(frozen=True)
class AdapterFailure:
    project_id: str
    adapter: str
    error: str


def default_adapters() -> list[SignalAdapter]:
    return [
        GitLogAdapter(),
        TimelineAdapter("timeline.yaml", ProjectRoot.REPOSITORY),
        TimelineAdapter("timeline.md", ProjectRoot.CONTENT, default_type=ADMIN_ENTRY_TYPE),
        RemoteRepositoryAdapter(),
    ]


class IngestionEngine:
    """Runs every adapter for every project concurrently.

    One adapter failing never blocks the other adapters of the same project,
    and one project failing never blocks the others. Failures are logged and
    recorded on ``failures``; the result is the union of whatever succeeded.
    """

    def __init__(self, projects: Sequence[ProjectSource], adapters: Sequence[SignalAdapter] | None = None):
        self._projects = list(projects)
        self._adapters = list(adapters) if adapters is not None else default_adapters()
        self.failures: list[AdapterFailure] = []

    async def fetch_all_signals(self) -> list[RawSignal]:
        self.failures = []
        results = await asyncio.gather(
            *(self._fetch_project(project) for project in self._projects),
            return_exceptions=True,
        )

        signals: list[RawSignal] = []
        for project, result in zip(self._projects, results, strict=True):
            if isinstance(result, BaseException):
                logger.error("Project ingestion failed", project=project.id, error=str(result))
                self.failures.append(AdapterFailure(project.id, "*", str(result)))
                continue
            signals.extend(result)

        logger.info("Signals ingested", projects=len(self._projects), signals=len(signals), failures=len(self.failures))
        return signals

    async def _fetch_project(self, project: ProjectSource) -> list[RawSignal]:
        results = await asyncio.gather(
            *(self._run_adapter(adapter, project) for adapter in self._adapters),
            return_exceptions=True,
        )

        signals: list[RawSignal] = []
        for adapter, result in zip(self._adapters, results, strict=True):
            if isinstance(result, BaseException):
                logger.error("Adapter failed", adapter=adapter.name, project=project.id, error=str(result))
                self.failures.append(AdapterFailure(project.id, adapter.name, str(result)))
                continue
            signals.extend(result)
        return signals

    async def _run_adapter(self, adapter: SignalAdapter, project: ProjectSource) -> list[RawSignal]:
        root = project.content_root if adapter.root is ProjectRoot.CONTENT else project.repository_root
        # Adapters do blocking I/O (subprocess, HTTP, files)
        return await asyncio.to_thread(adapter.fetch_signals, root, project.id)
