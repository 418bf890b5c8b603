"""Tests for the remote repository adapter (no network calls)."""

from datetime import UTC, datetime

import httpx

from labstate.ingest.adapters.remote import RemoteRepositoryAdapter
from labstate.ingest.signals import SignalSource
from labstate.projects import parse_repository_url

PROJECT_MD = """---
name: Lab
repository_url: https://github.com/octo/lab.git
---

A lab project.
"""


def _commit(sha: str, message: str, date: str = "2026-10-18T09:00:00Z") -> dict:
    return {
        "sha": sha,
        "html_url": f"https://github.com/octo/lab/commit/{sha}",
        "commit": {
            "message": message,
            "author": {"name": "Octo", "email": "octo@example.com", "date": date},
        },
    }


def _adapter(handler, **kwargs) -> RemoteRepositoryAdapter:
    return RemoteRepositoryAdapter(
        api_url="https://api.test",
        token=kwargs.pop("token", ""),
        transport=httpx.MockTransport(handler),
        **kwargs,
    )


class TestRemoteRepositoryAdapter:
    def test_no_metadata_makes_no_request(self, tmp_path):
        calls: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            return httpx.Response(200, json=[])

        assert _adapter(handler).fetch_signals(tmp_path, "alpha") == []
        assert calls == []

    def test_maps_commits_to_git_signals(self, tmp_path):
        (tmp_path / "project.md").write_text(PROJECT_MD)
        requests: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            return httpx.Response(
                200,
                json=[
                    _commit("a1", "Add parser\n\nLonger body"),
                    _commit("b2", "Merge pull request #4 from octo/topic"),
                ],
            )

        signals = _adapter(handler, per_page=50).fetch_signals(tmp_path, "alpha")

        assert requests[0].url.path == "/repos/octo/lab/commits"
        assert requests[0].url.params["per_page"] == "50"
        assert [signal.id for signal in signals] == ["a1", "b2"]
        first = signals[0]
        assert first.source is SignalSource.GIT
        assert first.timestamp == datetime(2026, 10, 18, 9, 0, tzinfo=UTC)
        assert first.data.message == "Add parser"
        assert first.data.body == "Longer body"
        assert first.metadata.is_noise is False
        assert signals[1].metadata.is_noise is True

    def test_auth_failure_is_soft(self, tmp_path):
        (tmp_path / "project.md").write_text(PROJECT_MD)

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(401, json={"message": "Bad credentials"})

        assert _adapter(handler).fetch_signals(tmp_path, "alpha") == []

    def test_timeout_is_soft(self, tmp_path):
        (tmp_path / "project.md").write_text(PROJECT_MD)

        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectTimeout("timed out", request=request)

        assert _adapter(handler).fetch_signals(tmp_path, "alpha") == []

    def test_unexpected_payload_is_soft(self, tmp_path):
        (tmp_path / "project.md").write_text(PROJECT_MD)

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"message": "not a list"})

        assert _adapter(handler).fetch_signals(tmp_path, "alpha") == []

    def test_follows_pagination(self, tmp_path):
        (tmp_path / "project.md").write_text(PROJECT_MD)

        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.params.get("page") == "2":
                return httpx.Response(200, json=[_commit("c3", "Second page")])
            return httpx.Response(
                200,
                json=[_commit("a1", "First page")],
                headers={"Link": '<https://api.test/repos/octo/lab/commits?per_page=1&page=2>; rel="next"'},
            )

        signals = _adapter(handler, max_pages=5).fetch_signals(tmp_path, "alpha")

        assert [signal.id for signal in signals] == ["a1", "c3"]

    def test_stops_at_page_cap(self, tmp_path):
        (tmp_path / "project.md").write_text(PROJECT_MD)

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(
                200,
                json=[_commit(f"sha-{request.url.params.get('page', '1')}", "Work")],
                headers={"Link": '<https://api.test/repos/octo/lab/commits?page=2>; rel="next"'},
            )

        signals = _adapter(handler, max_pages=1).fetch_signals(tmp_path, "alpha")

        assert [signal.id for signal in signals] == ["sha-1"]

    def test_sends_bearer_token(self, tmp_path):
        (tmp_path / "project.md").write_text(PROJECT_MD)
        seen: list[str | None] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request.headers.get("Authorization"))
            return httpx.Response(200, json=[])

        _adapter(handler, token="secret").fetch_signals(tmp_path, "alpha")

        assert seen == ["Bearer secret"]

    def test_legacy_github_line(self, tmp_path):
        (tmp_path / "project.md").write_text("# Lab\n\ngithub: https://github.com/octo/legacy\n")
        paths: list[str] = []

        def handler(request: httpx.Request) -> httpx.Response:
            paths.append(request.url.path)
            return httpx.Response(200, json=[])

        _adapter(handler).fetch_signals(tmp_path, "alpha")

        assert paths == ["/repos/octo/legacy/commits"]


class TestParseRepositoryUrl:
    def test_owner_and_repo(self):
        assert parse_repository_url("https://github.com/octo/lab") == ("octo", "lab")

    def test_strips_git_suffix_and_slash(self):
        assert parse_repository_url("https://github.com/octo/lab.git/") == ("octo", "lab")

    def test_rejects_other_hosts(self):
        assert parse_repository_url("https://gitlab.com/octo/lab") is None

    def test_rejects_missing_repo(self):
        assert parse_repository_url("https://github.com/octo") is None
