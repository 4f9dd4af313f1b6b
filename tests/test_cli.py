"""End-to-end tests for the foldmerge CLI.

This module tests the CLI interface using Typer's CliRunner.
"""

from pathlib import Path
from unittest.mock import patch

import pytest
from typer.testing import CliRunner

from foldmerge import __version__
from foldmerge.cli import app
from foldmerge.models import ProcessComplete
from foldmerge.orchestration import RunScheduler


@pytest.fixture
def cli_runner() -> CliRunner:
    """Return a CliRunner instance for testing."""
    return CliRunner()


@pytest.fixture
def cluttered_destination(temp_dir: Path, tree) -> Path:
    return tree(
        temp_dir / "dest",
        {"Photos/a.jpg": b"A", "Photos_bak/a.jpg": b"A", "Photos_bak/c.jpg": b"C"},
    )


class TestVersionAndHelp:
    def test_version(self, cli_runner: CliRunner):
        result = cli_runner.invoke(app, ["--version"])

        assert result.exit_code == 0
        assert __version__ in result.stdout

    def test_no_args_shows_help(self, cli_runner: CliRunner):
        result = cli_runner.invoke(app, [])

        assert "run" in result.stdout
        assert "consolidate" in result.stdout

    def test_run_help(self, cli_runner: CliRunner):
        result = cli_runner.invoke(app, ["run", "--help"])

        assert result.exit_code == 0
        assert "--on-conflict" in result.stdout
        assert "--ext" in result.stdout


class TestRunCommand:
    def test_run_merges_sources(
        self, cli_runner: CliRunner, two_sources, temp_dir: Path, tree_files
    ):
        dest = temp_dir / "out"

        result = cli_runner.invoke(
            app, ["run", str(two_sources[0]), str(two_sources[1]), "--dest", str(dest)]
        )

        assert result.exit_code == 0, result.stdout
        assert "Run Complete" in result.stdout
        assert tree_files(dest) == [
            "Docs/notes.txt",
            "Trip/a.jpg",
            "Trip/b.jpg",
            "Trip/c.jpg",
            "loose.txt",
        ]

    def test_run_with_extension_filter(
        self, cli_runner: CliRunner, two_sources, temp_dir: Path, tree_files
    ):
        dest = temp_dir / "out"

        result = cli_runner.invoke(
            app, ["run", str(two_sources[0]), "--dest", str(dest), "-e", "txt"]
        )

        assert result.exit_code == 0, result.stdout
        assert tree_files(dest) == ["loose.txt"]

    def test_run_rename_policy(
        self, cli_runner: CliRunner, temp_dir: Path, tree, tree_files
    ):
        dest = tree(temp_dir / "out", {"Docs/notes.txt": b"OLD"})
        source = tree(temp_dir / "src", {"Docs/Inner/x.txt": b"X", "Docs/notes.txt": b"NEW"})

        result = cli_runner.invoke(
            app, ["run", str(source), "--dest", str(dest), "--on-conflict", "rename"]
        )

        assert result.exit_code == 0, result.stdout
        assert "Docs/notes_1.txt" in tree_files(dest)

    def test_missing_source(self, cli_runner: CliRunner, temp_dir: Path):
        result = cli_runner.invoke(
            app, ["run", str(temp_dir / "missing"), "--dest", str(temp_dir / "out")]
        )

        assert result.exit_code == 1
        assert "does not exist" in result.stdout

    def test_destination_is_file(self, cli_runner: CliRunner, two_sources, temp_dir: Path):
        blocker = temp_dir / "file.txt"
        blocker.write_text("x")

        result = cli_runner.invoke(app, ["run", str(two_sources[0]), "--dest", str(blocker)])

        assert result.exit_code == 1
        assert "not a directory" in result.stdout

    def test_invalid_conflict_policy(self, cli_runner: CliRunner, two_sources, temp_dir: Path):
        result = cli_runner.invoke(
            app,
            ["run", str(two_sources[0]), "--dest", str(temp_dir / "o"), "--on-conflict", "x"],
        )

        assert result.exit_code != 0

    def test_log_file_written(self, cli_runner: CliRunner, two_sources, temp_dir: Path):
        log_file = temp_dir / "run.log"

        result = cli_runner.invoke(
            app,
            ["run", str(two_sources[0]), "--dest", str(temp_dir / "out"), "-l", str(log_file)],
        )

        assert result.exit_code == 0, result.stdout
        assert "Log written to" in result.stdout
        assert "SUMMARY" in log_file.read_text(encoding="utf-8")

    def test_bad_log_location_is_a_warning(
        self, cli_runner: CliRunner, two_sources, temp_dir: Path
    ):
        result = cli_runner.invoke(
            app,
            [
                "run",
                str(two_sources[0]),
                "--dest",
                str(temp_dir / "out"),
                "--log-file",
                str(temp_dir / "missing" / "run.log"),
            ],
        )

        assert result.exit_code == 0
        assert "Warning" in result.stdout

    def test_declining_resume_exits_130(
        self, cli_runner: CliRunner, two_sources, temp_dir: Path
    ):
        def paused_run(self, *args, **kwargs):
            self._emit(ProcessComplete(stats={}, paused=True))

        with patch("foldmerge.cli.RunScheduler.start_process", paused_run):
            result = cli_runner.invoke(
                app,
                ["run", str(two_sources[0]), "--dest", str(temp_dir / "out")],
                input="n\n",
            )

        assert result.exit_code == 130
        assert "Run Paused" in result.stdout

    def test_accepting_resume_finishes_run(
        self, cli_runner: CliRunner, two_sources, temp_dir: Path, tree_files
    ):
        dest = temp_dir / "out"
        real_start = RunScheduler.start_process
        calls = []

        def paused_then_real(self, *args, **kwargs):
            calls.append(args)
            if len(calls) == 1:
                self._emit(ProcessComplete(stats={}, paused=True))
                return None
            return real_start(self, *args, **kwargs)

        with patch("foldmerge.cli.RunScheduler.start_process", paused_then_real):
            result = cli_runner.invoke(
                app, ["run", str(two_sources[0]), "--dest", str(dest)], input="y\n"
            )

        # No paused state exists, so resume starts a fresh run
        assert result.exit_code == 0, result.stdout
        assert "Run Complete" in result.stdout
        assert "loose.txt" in tree_files(dest)

    def test_run_failure_exits_1(self, cli_runner: CliRunner, two_sources, temp_dir: Path):
        def failed_run(self, *args, **kwargs):
            self._emit(ProcessComplete(stats={}, error="kaput"))

        with patch("foldmerge.cli.RunScheduler.start_process", failed_run):
            result = cli_runner.invoke(
                app, ["run", str(two_sources[0]), "--dest", str(temp_dir / "out")]
            )

        assert result.exit_code == 1
        assert "kaput" in result.stdout


class TestConsolidateCommand:
    def test_consolidate_with_yes(
        self, cli_runner: CliRunner, cluttered_destination: Path, tree_files
    ):
        result = cli_runner.invoke(app, ["consolidate", str(cluttered_destination), "--yes"])

        assert result.exit_code == 0, result.stdout
        assert "Consolidation Summary" in result.stdout
        assert tree_files(cluttered_destination) == ["Photos/a.jpg", "Photos/c.jpg"]

    def test_consolidate_declined(
        self, cli_runner: CliRunner, cluttered_destination: Path
    ):
        result = cli_runner.invoke(
            app, ["consolidate", str(cluttered_destination)], input="n\n"
        )

        assert result.exit_code == 0
        assert "No groups selected" in result.stdout
        assert (cluttered_destination / "Photos_bak").is_dir()

    def test_consolidate_confirmed(
        self, cli_runner: CliRunner, cluttered_destination: Path
    ):
        result = cli_runner.invoke(
            app, ["consolidate", str(cluttered_destination)], input="y\n"
        )

        assert result.exit_code == 0, result.stdout
        assert not (cluttered_destination / "Photos_bak").exists()

    def test_nothing_to_consolidate(self, cli_runner: CliRunner, temp_dir: Path, tree):
        dest = tree(temp_dir / "dest", {"A/a.txt": b"a"})

        result = cli_runner.invoke(app, ["consolidate", str(dest)])

        assert result.exit_code == 0
        assert "No duplicate folders found to merge." in result.stdout

    def test_missing_destination(self, cli_runner: CliRunner, temp_dir: Path):
        result = cli_runner.invoke(app, ["consolidate", str(temp_dir / "missing")])

        assert result.exit_code == 1
        assert "does not exist" in result.stdout
