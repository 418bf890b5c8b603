"""Local git history adapter."""

from __future__ import annotations

import subprocess
from pathlib import Path

import structlog

from labstate.config import settings
from labstate.dates import parse_timestamp
from labstate.ingest.adapters.base import AdapterError, ProjectRoot
from labstate.ingest.noise import NoisePredicate, is_noise_commit
from labstate.ingest.signals import CommitPayload, RawSignal, SignalMetadata, SignalSource

logger = structlog.get_logger()

RECORD_SEP = "\x1e"
FIELD_SEP = "\x1f"
# hash, author date, author name, author email, refs, subject, body; numstat lines follow the last separator
LOG_FORMAT = "%x1e%H%x1f%aI%x1f%an%x1f%ae%x1f%D%x1f%s%x1f%b%x1f"
LOG_FIELDS = 7


def _parse_numstat(block: str) -> tuple[int, int]:
    lines_changed = 0
    file_count = 0
    for line in block.splitlines():
        parts = line.split("\t", 2)
        if len(parts) != 3:
            continue
        file_count += 1
        for count in parts[:2]:
            # Binary files report "-"
            if count.isdigit():
                lines_changed += int(count)
    return lines_changed, file_count


def parse_git_log(output: str) -> list[dict]:
    """Split ``git log`` output produced with LOG_FORMAT into commit dicts."""
    commits: list[dict] = []
    for record in output.split(RECORD_SEP)[1:]:
        parts = record.split(FIELD_SEP)
        if len(parts) < LOG_FIELDS + 1:
            logger.warning("Skipping malformed git log record", record=record[:80])
            continue
        commit_hash, authored_at, author_name, author_email, refs, subject, body = parts[:LOG_FIELDS]
        lines_changed, file_count = _parse_numstat(parts[LOG_FIELDS])
        commits.append(
            {
                "hash": commit_hash.strip(),
                "date": authored_at.strip(),
                "author_name": author_name,
                "author_email": author_email,
                "refs": refs,
                "message": subject,
                "body": body.strip(),
                "lines_changed": lines_changed,
                "file_count": file_count,
            }
        )
    return commits


class GitLogAdapter:
    def __init__(
        self,
        noise_predicate: NoisePredicate = is_noise_commit,
        timeout_seconds: float | None = None,
    ):
        self._is_noise = noise_predicate
        self._timeout_seconds = timeout_seconds if timeout_seconds is not None else settings.git_timeout_seconds

    @property
    def name(self) -> str:
        return "git"

    @property
    def root(self) -> ProjectRoot:
        return ProjectRoot.REPOSITORY

    def fetch_signals(self, project_root: Path, project_id: str) -> list[RawSignal]:
        try:
            if not self._is_repository(project_root):
                logger.warning("Not a git repository, skipping git ingestion", path=str(project_root))
                return []
            output = self._run_git(project_root, "log", "--no-color", "--numstat", f"--pretty=format:{LOG_FORMAT}")
            commits = parse_git_log(output)
        except AdapterError as exc:
            logger.warning("Git log unavailable", project=project_id, path=str(project_root), error=str(exc))
            return []
        except Exception:
            logger.exception("Git ingestion failed", project=project_id, path=str(project_root))
            return []

        signals: list[RawSignal] = []
        for commit in commits:
            try:
                timestamp = parse_timestamp(commit["date"])
            except ValueError:
                logger.warning("Skipping commit with bad date", project=project_id, commit=commit["hash"])
                continue
            signals.append(
                RawSignal(
                    id=commit["hash"],
                    project_id=project_id,
                    source=SignalSource.GIT,
                    timestamp=timestamp,
                    data=CommitPayload(
                        hash=commit["hash"],
                        message=commit["message"],
                        body=commit["body"],
                        refs=commit["refs"],
                        author_name=commit["author_name"],
                        author_email=commit["author_email"],
                        lines_changed=commit["lines_changed"],
                        file_count=commit["file_count"],
                    ),
                    metadata=SignalMetadata(is_noise=self._is_noise(commit["message"])),
                )
            )

        logger.info("Git history ingested", project=project_id, commits=len(signals))
        return signals

    def _is_repository(self, project_root: Path) -> bool:
        if not project_root.is_dir():
            return False
        try:
            return self._run_git(project_root, "rev-parse", "--is-inside-work-tree").strip() == "true"
        except AdapterError:
            return False

    def _run_git(self, project_root: Path, *args: str) -> str:
        try:
            result = subprocess.run(
                ["git", "-C", str(project_root), *args],
                check=False,
                capture_output=True,
                text=True,
                encoding="utf-8",
                errors="replace",
                timeout=self._timeout_seconds,
            )
        except (OSError, subprocess.SubprocessError) as exc:
            raise AdapterError(f"git {args[0]} failed: {exc}") from exc
        if result.returncode != 0:
            raise AdapterError(f"git {args[0]} exited {result.returncode}: {result.stderr.strip()}")
        return result.stdout
