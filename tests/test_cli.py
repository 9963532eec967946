"""Tests for podseeder CLI helpers."""
import io
import json
import logging
import os
from types import SimpleNamespace

import pytest

from podseeder.cli import CLIError, _load_env_file, _resolve_max_parallel, _setup_logging, run_cli


@pytest.fixture(autouse=True)
def reset_logging():
    yield
    logging.disable(logging.NOTSET)
    root = logging.getLogger()
    for handler in list(root.handlers):
        root.removeHandler(handler)
    root.setLevel(logging.WARNING)


@pytest.fixture
def clean_env(monkeypatch, tmp_path):
    for key in ("PODSEEDER_SERVER_URL", "PODSEEDER_TOKEN", "PODSEEDER_MAX_PARALLEL", "PODSEEDER_CHECKPOINT"):
        monkeypatch.delenv(key, raising=False)
    monkeypatch.chdir(tmp_path)


def test_load_env_file(tmp_path, monkeypatch):
    env_path = tmp_path / ".env"
    env_path.write_text(
        "\n".join(
            [
                "# comment",
                "PODSEEDER_SERVER_URL=https://pods.example",
                "PODSEEDER_TOKEN='abc'",
                "export PODSEEDER_MAX_PARALLEL=4",
            ]
        ),
        encoding="utf-8",
    )
    for key in ("PODSEEDER_SERVER_URL", "PODSEEDER_TOKEN", "PODSEEDER_MAX_PARALLEL"):
        monkeypatch.delenv(key, raising=False)

    _load_env_file(env_path)

    assert os.environ["PODSEEDER_SERVER_URL"] == "https://pods.example"
    assert os.environ["PODSEEDER_TOKEN"] == "abc"
    assert os.environ["PODSEEDER_MAX_PARALLEL"] == "4"


def test_load_env_file_missing(tmp_path):
    with pytest.raises(CLIError, match="not found"):
        _load_env_file(tmp_path / "missing.env")


def test_resolve_max_parallel(monkeypatch):
    monkeypatch.delenv("PODSEEDER_MAX_PARALLEL", raising=False)
    assert _resolve_max_parallel(None) == 1
    assert _resolve_max_parallel(5) == 5
    monkeypatch.setenv("PODSEEDER_MAX_PARALLEL", "3")
    assert _resolve_max_parallel(None) == 3
    monkeypatch.setenv("PODSEEDER_MAX_PARALLEL", "many")
    with pytest.raises(CLIError):
        _resolve_max_parallel(None)


def test_setup_logging_defaults_to_silent():
    mode = _setup_logging(debug=False, silent=False, log_level=None)
    assert mode == "silent"
    assert logging.getLogger().isEnabledFor(logging.ERROR) is False


def test_setup_logging_debug_mode():
    mode = _setup_logging(debug=True, silent=False, log_level=None)
    assert mode == "DEBUG"
    assert logging.getLogger().isEnabledFor(logging.DEBUG) is True


def test_setup_logging_level():
    assert _setup_logging(debug=False, silent=False, log_level="warning") == "WARNING"


def test_requires_server_url(tmp_path, clean_env):
    (tmp_path / "alice").mkdir()
    assert run_cli([str(tmp_path)]) == 1


def test_rejects_missing_source(tmp_path, clean_env):
    assert run_cli([str(tmp_path / "nope"), "--server-url", "https://pods.example"]) == 1


def test_dry_run_does_not_upload(tmp_path, clean_env):
    root = tmp_path / "generated"
    (root / "alice").mkdir(parents=True)
    (root / "alice" / "a.txt").write_text("a", encoding="utf-8")
    checkpoint = tmp_path / "uploads.json"

    code = run_cli([str(root), "--server-url", "https://pods.example", "--checkpoint", str(checkpoint), "--dry-run"])

    assert code == 0
    assert not checkpoint.exists()


def test_malformed_checkpoint_fails(tmp_path, clean_env):
    root = tmp_path / "generated"
    (root / "alice").mkdir(parents=True)
    checkpoint = tmp_path / "uploads.json"
    checkpoint.write_text(json.dumps({"not": "a list"}), encoding="utf-8")

    assert run_cli([str(root), "-s", "https://pods.example", "-c", str(checkpoint), "--dry-run"]) == 1


def test_progress_timeline_lines(monkeypatch):
    from rich.console import Console

    from podseeder import cli_progress

    buffer = io.StringIO()
    monkeypatch.setattr(cli_progress, "console", Console(file=buffer, width=120, color_system=None))
    display = cli_progress.PopulateProgressDisplay()
    identity = SimpleNamespace(username="alice")

    display.on_task_complete(SimpleNamespace(task=SimpleNamespace(identity=identity, path_in_pod="a.txt")))
    display.on_task_fail(
        SimpleNamespace(task=SimpleNamespace(identity=identity, path_in_pod="b.txt"), error=RuntimeError("503"))
    )
    display.on_checkpoint_saved(100)

    lines = buffer.getvalue().splitlines()
    assert "DONE alice/a.txt" in lines[0]
    assert "FAIL alice/b.txt cause=503" in lines[1]
    assert "SAVE checkpoint (100 entries)" in lines[2]
