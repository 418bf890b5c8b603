"""Tests for the ingestion engine fan-out."""

import asyncio
from datetime import UTC, datetime
from pathlib import Path

from labstate.ingest.adapters.base import ProjectRoot
from labstate.ingest.engine import IngestionEngine
from labstate.ingest.signals import CommitPayload, RawSignal, SignalSource
from labstate.projects import ProjectSource


class StaticAdapter:
    """Adapter returning one commit per project and recording the roots it saw."""

    def __init__(self, name: str = "static", root: ProjectRoot = ProjectRoot.REPOSITORY):
        self._name = name
        self._root = root
        self.roots: list[Path] = []

    @property
    def name(self) -> str:
        return self._name

    @property
    def root(self) -> ProjectRoot:
        return self._root

    def fetch_signals(self, project_root: Path, project_id: str) -> list[RawSignal]:
        self.roots.append(project_root)
        return [
            RawSignal(
                id=f"{self._name}-{project_id}",
                project_id=project_id,
                source=SignalSource.GIT,
                timestamp=datetime(2026, 10, 18, tzinfo=UTC),
                data=CommitPayload(hash=f"{self._name}-{project_id}", message="work"),
            )
        ]


class ExplodingAdapter(StaticAdapter):
    """Adapter that breaks its contract by raising."""

    def __init__(self, fail_for: set[str] | None = None):
        super().__init__(name="exploding")
        self._fail_for = fail_for

    def fetch_signals(self, project_root: Path, project_id: str) -> list[RawSignal]:
        if self._fail_for is None or project_id in self._fail_for:
            raise RuntimeError(f"boom for {project_id}")
        return super().fetch_signals(project_root, project_id)


def _projects(tmp_path: Path) -> list[ProjectSource]:
    return [
        ProjectSource(id="alpha", path=str(tmp_path / "alpha")),
        ProjectSource(id="beta", path=str(tmp_path / "beta"), admin_path=str(tmp_path / "content" / "beta")),
    ]


class TestIngestionEngine:
    def test_unions_all_projects_and_adapters(self, tmp_path):
        engine = IngestionEngine(_projects(tmp_path), adapters=[StaticAdapter("one"), StaticAdapter("two")])

        signals = asyncio.run(engine.fetch_all_signals())

        assert sorted(signal.id for signal in signals) == ["one-alpha", "one-beta", "two-alpha", "two-beta"]
        assert engine.failures == []

    def test_adapter_failure_does_not_block_siblings(self, tmp_path):
        """Partial data beats no data."""
        engine = IngestionEngine(_projects(tmp_path), adapters=[ExplodingAdapter(), StaticAdapter("ok")])

        signals = asyncio.run(engine.fetch_all_signals())

        assert sorted(signal.id for signal in signals) == ["ok-alpha", "ok-beta"]
        assert {(failure.project_id, failure.adapter) for failure in engine.failures} == {
            ("alpha", "exploding"),
            ("beta", "exploding"),
        }

    def test_failure_isolated_per_project(self, tmp_path):
        engine = IngestionEngine(_projects(tmp_path), adapters=[ExplodingAdapter(fail_for={"alpha"})])

        signals = asyncio.run(engine.fetch_all_signals())

        assert [signal.id for signal in signals] == ["exploding-beta"]
        assert [failure.project_id for failure in engine.failures] == ["alpha"]

    def test_routes_content_adapters_to_admin_path(self, tmp_path):
        repository = StaticAdapter("repo", ProjectRoot.REPOSITORY)
        content = StaticAdapter("content", ProjectRoot.CONTENT)
        engine = IngestionEngine(_projects(tmp_path)[1:], adapters=[repository, content])

        asyncio.run(engine.fetch_all_signals())

        assert repository.roots == [tmp_path / "beta"]
        assert content.roots == [tmp_path / "content" / "beta"]

    def test_content_root_defaults_to_repository(self, tmp_path):
        content = StaticAdapter("content", ProjectRoot.CONTENT)
        engine = IngestionEngine(_projects(tmp_path)[:1], adapters=[content])

        asyncio.run(engine.fetch_all_signals())

        assert content.roots == [tmp_path / "alpha"]

    def test_no_projects(self):
        engine = IngestionEngine([], adapters=[StaticAdapter()])

        assert asyncio.run(engine.fetch_all_signals()) == []

    def test_failures_reset_between_runs(self, tmp_path):
        adapter = ExplodingAdapter(fail_for={"alpha"})
        engine = IngestionEngine(_projects(tmp_path), adapters=[adapter])

        asyncio.run(engine.fetch_all_signals())
        adapter._fail_for = set()
        asyncio.run(engine.fetch_all_signals())

        assert engine.failures == []
