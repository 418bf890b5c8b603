"""Smoke tests for the labstate CLI."""

from typer.testing import CliRunner

from labstate.cli import app

runner = CliRunner()


def test_status_without_snapshot(tmp_path):
    result = runner.invoke(app, ["status", "--state-path", str(tmp_path / "lab.json")])

    assert result.exit_code == 1
    assert "No snapshot yet" in result.output


def test_run_then_status(tmp_path):
    state_path = str(tmp_path / "lab.json")

    result = runner.invoke(
        app,
        ["run", "--projects-path", str(tmp_path / "projects.yaml"), "--state-path", state_path],
    )

    assert result.exit_code == 0, result.output
    assert "Snapshot written" in result.output

    result = runner.invoke(app, ["status", "--state-path", state_path])

    assert result.exit_code == 0, result.output
    assert "No project currently has focus" in result.output


def test_dry_run(tmp_path):
    result = runner.invoke(
        app,
        [
            "run",
            "--dry-run",
            "--projects-path",
            str(tmp_path / "projects.yaml"),
            "--state-path",
            str(tmp_path / "x.json"),
        ],
    )

    assert result.exit_code == 0, result.output
    assert not (tmp_path / "x.json").exists()
