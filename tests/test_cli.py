"""Tests for the command line interface."""

from __future__ import annotations

import json
from pathlib import Path

import pytest
from conftest import read_json, write_json

from i18n_keyguard import cli
from i18n_keyguard.config import CONFIG_FILENAME


@pytest.fixture
def config_path(project: Path) -> Path:
    return write_json(
        project / CONFIG_FILENAME,
        {"src_dirs": ["app"], "output_dir": "locales", "languages": ["en", "de"]},
    )


def _run(config_path: Path, *args: str) -> int:
    return cli.main(["--config", str(config_path), "--log-level", "WARNING", *args])


def test_merge_writes_dictionaries(project, config_path):
    assert _run(config_path, "merge") == 0
    assert read_json(project / "locales" / "en.json") == {
        "common": {"cancel": "Cancel", "save": "Save"},
        "pages": {"home": {"intro": "Welcome", "title": "Home"}},
    }
    assert read_json(project / "locales" / "de.json") == {
        "common": {"save": "Speichern"},
        "pages": {"home": {"title": "Startseite"}},
    }


def test_merge_with_align_fills_placeholders(project, config_path):
    assert _run(config_path, "merge", "--align") == 0
    german = read_json(project / "locales" / "de.json")
    assert german["common"]["cancel"] == "TODO: `Cancel`"
    assert german["pages"]["home"]["intro"] == "TODO: `Welcome`"


def test_merge_language_override(project, config_path):
    assert _run(config_path, "merge", "--language", "en") == 0
    assert (project / "locales" / "en.json").exists()
    assert not (project / "locales" / "de.json").exists()


def test_align_reports_and_fixes(project, config_path, capsys):
    _run(config_path, "merge")
    capsys.readouterr()

    assert _run(config_path, "align") == 1
    out = capsys.readouterr().out
    assert '- "common.cancel"' in out
    assert "Summary: 2 alignment issues found across 1 files" in out

    assert _run(config_path, "align", "--fix") == 0
    assert "Fixed 1 language files" in capsys.readouterr().out
    assert _run(config_path, "align") == 0
    assert "All language files are aligned" in capsys.readouterr().out


def test_undefined_without_findings(project, config_path, capsys):
    _run(config_path, "merge")
    assert _run(config_path, "undefined") == 0
    assert "No undefined keys (2 used keys" in capsys.readouterr().out


def test_undefined_reports_missing_key(project, config_path, capsys):
    _run(config_path, "merge")
    (project / "app" / "extra.ts").write_text("$t('common.delete')\n", encoding="utf-8")
    assert _run(config_path, "undefined") == 1
    err = capsys.readouterr().err
    assert "Total: 1 undefined keys" in err
    assert "$t('common.delete') -> \"common.delete\"" in err


def test_unused_report_and_fix(project, config_path, capsys):
    _run(config_path, "merge")
    capsys.readouterr()

    assert _run(config_path, "unused") == 1
    err = capsys.readouterr().err
    assert '"common.cancel" -> "common.cancel"' in err
    assert '"intro" -> "pages.home.intro"' in err

    assert _run(config_path, "unused", "--fix") == 0
    assert "Removed 2 unused keys" in capsys.readouterr().out
    assert read_json(project / "app" / "en.json") == {"common": {"save": "Save"}}
    assert read_json(project / "app" / "pages" / "home" / "en.json") == {"title": "Home"}


def test_unused_whitelist_flag(project, config_path, capsys):
    _run(config_path, "merge")
    code = _run(
        config_path, "unused", "--whitelist", "common.cancel", "--whitelist", "pages.home"
    )
    assert code == 0
    assert "No unused keys" in capsys.readouterr().out


def test_missing_dictionary_is_an_error(project, config_path, capsys):
    assert _run(config_path, "undefined") == 1
    assert "Error: Translation file not found" in capsys.readouterr().err


def test_invalid_interval(project, config_path, capsys):
    assert _run(config_path, "watch", "--interval", "0") == 2
    assert "polling interval must be positive" in capsys.readouterr().err


def test_invalid_config_file(tmp_path, capsys):
    path = write_json(tmp_path / CONFIG_FILENAME, {"languages": "en"})
    assert cli.main(["--config", str(path), "merge"]) == 1
    assert "must be a list of strings" in capsys.readouterr().err


def test_missing_source_dir(tmp_path, capsys):
    path = write_json(tmp_path / CONFIG_FILENAME, {"src_dirs": ["nowhere"]})
    assert cli.main(["--config", str(path), "merge"]) == 1
    assert "path does not exist" in capsys.readouterr().err


def test_empty_source_dirs(tmp_path, capsys):
    path = write_json(tmp_path / CONFIG_FILENAME, {"src_dirs": []})
    assert cli.main(["--config", str(path), "unused"]) == 2
    assert "no source directories configured" in capsys.readouterr().err


def test_init_writes_default_config(tmp_path, capsys):
    assert cli.main(["init", str(tmp_path)]) == 0
    target = tmp_path / CONFIG_FILENAME
    assert capsys.readouterr().out.strip() == str(target.resolve())
    assert json.loads(target.read_text())["i18n_library"] == "vue-i18n"

    assert cli.main(["init", str(tmp_path)]) == 2
    assert "config file already exists" in capsys.readouterr().err


def test_unknown_subcommand(capsys):
    assert cli.main(["translate"]) == 2
    assert "invalid choice" in capsys.readouterr().err
