"""Pytest fixtures for Lab State tests."""

import os
import shutil
import subprocess
from collections.abc import Callable
from datetime import UTC, datetime, timedelta
from pathlib import Path

import pytest

from labstate.ingest.keys import pulse_id
from labstate.ingest.pulses import PulseSummary
from labstate.ingest.signals import CommitPayload, RawSignal, SignalMetadata, SignalSource

NOW = datetime(2026, 10, 19, 12, 0, tzinfo=UTC)


@pytest.fixture
def now() -> datetime:
    """Fixed run timestamp."""
    return NOW


@pytest.fixture
def make_commit() -> Callable[..., RawSignal]:
    """Factory for git commit signals."""

    def _make(
        sha: str,
        timestamp: datetime,
        project_id: str = "alpha",
        message: str = "Add feature",
        is_noise: bool = False,
        lines_changed: int = 0,
        file_count: int = 0,
    ) -> RawSignal:
        return RawSignal(
            id=sha,
            project_id=project_id,
            source=SignalSource.GIT,
            timestamp=timestamp,
            data=CommitPayload(
                hash=sha,
                message=message,
                lines_changed=lines_changed,
                file_count=file_count,
            ),
            metadata=SignalMetadata(is_noise=is_noise),
        )

    return _make


@pytest.fixture
def make_pulse(now: datetime) -> Callable[..., PulseSummary]:
    """Factory for pulses ``days_ago`` days before the run."""

    def _make(days_ago: int, commit_count: int, project_id: str = "alpha") -> PulseSummary:
        day = (now - timedelta(days=days_ago)).strftime("%Y-%m-%d")
        return PulseSummary(
            id=pulse_id(project_id, day),
            project_id=project_id,
            date=day,
            commit_count=commit_count,
        )

    return _make


def _git(repo: Path, *args: str, env: dict[str, str] | None = None) -> None:
    subprocess.run(
        [
            "git",
            "-c",
            "user.name=Lab Tester",
            "-c",
            "user.email=lab@example.com",
            "-c",
            "commit.gpgsign=false",
            "-C",
            str(repo),
            *args,
        ],
        check=True,
        capture_output=True,
        env={**os.environ, **(env or {})},
    )


@pytest.fixture
def git_repo(tmp_path: Path) -> Path:
    """A small repository with dated commits (two real, one chore)."""
    if shutil.which("git") is None:
        pytest.skip("git binary not available")

    repo = tmp_path / "repo"
    repo.mkdir()
    _git(repo, "init", "-q")

    commits = [
        ("app.py", "print('hi')\n", "Initial commit", "2026-10-17T09:00:00+00:00"),
        ("app.py", "print('hi')\nprint('there')\n", "Add greeting", "2026-10-17T15:30:00+00:00"),
        ("README.md", "# repo\n", "chore: add readme", "2026-10-18T10:00:00+00:00"),
    ]
    for filename, content, message, date in commits:
        (repo / filename).write_text(content)
        _git(repo, "add", filename)
        _git(
            repo,
            "commit",
            "-q",
            "-m",
            message,
            env={"GIT_AUTHOR_DATE": date, "GIT_COMMITTER_DATE": date},
        )

    return repo
