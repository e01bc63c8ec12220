from __future__ import annotations

import json
from pathlib import Path

import pytest

from azbuka.cli.index_texts import main as index_texts_main


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in ("AZBUKA_DB_PATH", "AZBUKA_FOLD_DIACRITICS", "AZBUKA_UNMAPPED_CYRILLIC", "AZBUKA_RESULT_LIMIT"):
        monkeypatch.delenv(name, raising=False)


def test_cli_prints_run_stats(tmp_path: Path, capsys: object) -> None:
    texts_dir = tmp_path / "texts"
    texts_dir.mkdir()
    (texts_dir / "a.txt").write_text("Београд је главни град Србије.", encoding="utf-8")

    db_path = tmp_path / "search.db"
    exit_code = index_texts_main(["--folder", str(texts_dir), "--db-path", str(db_path)])
    payload = json.loads(capsys.readouterr().out)

    assert exit_code == 0
    assert payload["scanned"] == 1
    assert payload["indexed"] == 1
    assert payload["errors"] == 0

    assert index_texts_main(["--folder", str(texts_dir), "--db-path", str(db_path)]) == 0
    assert json.loads(capsys.readouterr().out)["skipped_unchanged"] == 1


def test_cli_refuses_changed_settings_without_rebuild(
    tmp_path: Path, capsys: object, monkeypatch: pytest.MonkeyPatch
) -> None:
    texts_dir = tmp_path / "texts"
    texts_dir.mkdir()
    (texts_dir / "a.txt").write_text("Кућа", encoding="utf-8")
    db_path = tmp_path / "search.db"

    assert index_texts_main(["--folder", str(texts_dir), "--db-path", str(db_path)]) == 0
    capsys.readouterr()

    monkeypatch.setenv("AZBUKA_FOLD_DIACRITICS", "1")
    assert index_texts_main(["--folder", str(texts_dir), "--db-path", str(db_path)]) == 2
    assert "rebuild" in capsys.readouterr().err

    exit_code = index_texts_main(
        ["--folder", str(texts_dir), "--db-path", str(db_path), "--rebuild-on-mismatch"]
    )
    assert exit_code == 0


def test_cli_reports_configuration_errors(
    tmp_path: Path, capsys: object, monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.setenv("AZBUKA_RESULT_LIMIT", "500")
    assert index_texts_main(["--folder", str(tmp_path), "--db-path", str(tmp_path / "search.db")]) == 2

    captured = capsys.readouterr()
    assert captured.out == ""
    assert "Configuration error: AZBUKA_RESULT_LIMIT" in captured.err
