import json

import pytest

from keysmith import __version__
from keysmith.__main__ import main, parse_args

CONFIG = """
include: ["src/**/*.py"]
targetLanguages: [fi]
"""


@pytest.fixture
def project(tmp_path, write_file):
    write_file("keysmith.yaml", CONFIG)
    write_file("src/app.py", 't("home.title")\n')
    return tmp_path


def test_parse_args_defaults():
    args = parse_args([])
    assert args.write is False
    assert args.target is None
    assert args.assume == []
    assert args.validate_interpolations is None
    assert args.empty_values is None


def test_version(capsys):
    with pytest.raises(SystemExit) as exc:
        parse_args(["--version"])
    assert exc.value.code == 0
    assert __version__ in capsys.readouterr().out


def test_dry_run_json(project, capsys):
    assert main(["--root", str(project), "--json"]) == 0
    data = json.loads(capsys.readouterr().out)
    assert [record["key"] for record in data["missing_keys"]] == ["home.title"]
    assert data["write"] is False
    assert not (project / "locales" / "en.json").exists()


def test_write(project, capsys, read_locale):
    assert main(["--root", str(project), "--write"]) == 0
    assert "Sync summary (write)" in capsys.readouterr().out
    assert read_locale("en") == {"home.title": "home.title"}


def test_assume_and_empty_value_override(project, write_locale, capsys):
    write_locale("en", {"home.title": "Home", "legacy.key": "Legacy"})
    write_locale("fi", {"home.title": "", "legacy.key": "Vanha"})
    code = main(
        ["--root", str(project), "--json", "--assume", "legacy.key", "--empty-values", "fail"]
    )
    data = json.loads(capsys.readouterr().out)
    assert code == 1
    assert data["unused_keys"] == []
    assert data["empty_value_violations"][0]["key"] == "home.title"


def test_policy_failure_exit_code(project, write_file):
    write_file("keysmith.yaml", CONFIG + "sync:\n  suspiciousKeyPolicy: error\n")
    write_file("src/app.py", 't("Save changes")\n')
    assert main(["--root", str(project), "--json"]) == 1


def test_missing_config_file(tmp_path):
    assert main(["--root", str(tmp_path), "--config", str(tmp_path / "nope.yaml")]) == 1


def test_invalid_config_exit_code(project, write_file):
    write_file("keysmith.yaml", CONFIG + "sync:\n  emptyValuePolicy: explode\n")
    assert main(["--root", str(project)]) == 2


def test_no_sources_exit_code(tmp_path, write_file):
    write_file("keysmith.yaml", CONFIG)
    assert main(["--root", str(tmp_path)]) == 2


def test_cache_status_and_clear(project, capsys):
    main(["--root", str(project), "--json"])
    capsys.readouterr()

    assert main(["--root", str(project), "--cache-status"]) == 0
    out = capsys.readouterr().out
    assert "extractor: missing" in out
    assert "sync: fresh (1 files)" in out

    assert main(["--root", str(project), "--clear-cache"]) == 0
    assert "Removed 1 cache file" in capsys.readouterr().out
