from __future__ import annotations

import json
from pathlib import Path

import pytest

from meshwire_engine.cli import main


def _run(argv: list[str]) -> int:
    with pytest.raises(SystemExit) as excinfo:
        main(argv)
    return excinfo.value.code


def test_generate_then_list_history(tmp_path: Path, capsys) -> None:
    out = tmp_path / "run"

    assert _run(["generate", "a rotary telephone", "--dry-run", "--out", str(out)]) == 0
    saved = capsys.readouterr().out
    assert "Saved " in saved
    assert "Finished in" in saved

    history = json.loads((out / "history.json").read_text(encoding="utf-8"))
    assert history[0]["prompt"] == "a rotary telephone"

    assert _run(["history", "--out", str(out)]) == 0
    listing = capsys.readouterr().out
    assert history[0]["id"] in listing
    assert "generation" in listing


def test_animate_and_download_in_dry_run(tmp_path: Path, capsys) -> None:
    out = tmp_path / "run"
    _run(["generate", "a lamp", "--dry-run", "--out", str(out)])
    entry_id = json.loads((out / "history.json").read_text(encoding="utf-8"))[0]["id"]
    capsys.readouterr()

    assert _run(["animate", entry_id, "--dry-run", "--out", str(out), "--poll-interval", "0.01"]) == 0
    assert f"Video attached to {entry_id}" in capsys.readouterr().out

    dest = tmp_path / "downloads"
    assert _run(["download", entry_id, "--out", str(out), "--dest", str(dest)]) == 0
    assert (dest / f"wireframe-{entry_id}.gif").exists()


def test_delete_with_confirmation_skipped(tmp_path: Path, capsys) -> None:
    out = tmp_path / "run"
    _run(["generate", "a lamp", "--dry-run", "--out", str(out)])
    entry_id = json.loads((out / "history.json").read_text(encoding="utf-8"))[0]["id"]

    assert _run(["delete", entry_id, "--yes", "--out", str(out)]) == 0
    assert json.loads((out / "history.json").read_text(encoding="utf-8")) == []
    assert _run(["delete", entry_id, "--yes", "--out", str(out)]) == 1


def test_unknown_entry_download_fails(tmp_path: Path, capsys) -> None:
    assert _run(["download", "missing", "--out", str(tmp_path / "run")]) == 1
    assert "Download failed" in capsys.readouterr().out


def test_missing_command_prints_help(capsys) -> None:
    assert _run([]) == 1
    assert "usage:" in capsys.readouterr().out
