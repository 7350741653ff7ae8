import json

import pytest

from keysmith.cache import CACHE_DIRNAME, SYNC_CACHE_FILENAME
from keysmith.errors import SourceResolutionError
from keysmith.models import (
    EmptyValuePolicy,
    EmptyValueReason,
    Position,
    SuspiciousKeyPolicy,
    SuspiciousKeyReason,
    SyncConfig,
    SyncPhase,
)
from keysmith.syncer import GeneratedKey, Syncer, SyncOptions, empty_value_reason


def run(tmp_path, config, **options):
    return Syncer(config, tmp_path).run(SyncOptions(**options))


@pytest.fixture
def greeting_app(write_file):
    write_file(
        "src/app.py",
        'title = t("home.title")\n'
        'greeting = t("home.greeting") or "Hello"\n',
    )


def test_missing_and_unused_keys(tmp_path, write_file, write_locale, make_config):
    write_file("src/app.py", 't("a.one")\nt("a.two")\n')
    en = write_locale("en", {"a.one": "One", "z.old": "Old"})
    before = en.read_bytes()

    syncer = Syncer(make_config(), tmp_path)
    summary = syncer.run()

    assert [r.key for r in summary.missing_keys] == ["a.two"]
    assert [(r.key, r.locales) for r in summary.unused_keys] == [("z.old", ["en"])]
    assert summary.write is False
    assert summary.locale_stats == []
    assert syncer.phase is SyncPhase.REPORT
    assert en.read_bytes() == before
    assert not (tmp_path / "locales" / "fi.json").exists()


def test_dry_run_preview_matches_write(tmp_path, write_locale, make_config, greeting_app):
    write_locale("en", {"old.key": "Old"})
    summary = run(tmp_path, make_config(), prune=True)
    preview = {p.locale: (p.added, p.removed) for p in summary.locale_preview}
    assert preview["en"] == (["home.greeting", "home.title"], ["old.key"])
    assert preview["fi"] == (["home.greeting", "home.title"], [])


def test_write_uses_fallback_literal_and_seeds_targets(
    tmp_path, write_locale, read_locale, make_config, greeting_app
):
    write_locale("en", {})
    syncer = Syncer(make_config(), tmp_path)
    summary = syncer.run(SyncOptions(write=True))

    assert syncer.phase is SyncPhase.WRITE
    assert read_locale("en") == {"home.greeting": "Hello", "home.title": "home.title"}
    assert read_locale("fi") == {"home.greeting": "", "home.title": ""}
    stats = {s.locale: s for s in summary.locale_stats}
    assert stats["en"].added == ["home.greeting", "home.title"]
    assert stats["fi"].total_keys == 2


def test_seed_value_is_configurable(tmp_path, read_locale, make_config, greeting_app):
    run(tmp_path, make_config(sync=SyncConfig(seed_value="TODO")), write=True)
    assert read_locale("fi")["home.title"] == "TODO"


def test_seed_never_overwrites_existing_translation(
    tmp_path, write_locale, read_locale, make_config, greeting_app
):
    write_locale("fi", {"home.greeting": "Hei"})
    run(tmp_path, make_config(), write=True)
    assert read_locale("fi") == {"home.greeting": "Hei", "home.title": ""}
    assert read_locale("en")["home.greeting"] == "Hello"


def test_seeding_can_be_disabled(tmp_path, make_config, greeting_app):
    run(tmp_path, make_config(seed_target_locales=False), write=True)
    assert (tmp_path / "locales" / "en.json").exists()
    assert not (tmp_path / "locales" / "fi.json").exists()


def test_unnamespaced_fallback_key_is_reported_but_not_written_under_skip(
    tmp_path, write_file, write_locale, read_locale, make_config
):
    write_file("src/app.py", 'greeting = t("greeting") or "Hello"\n')
    write_locale("en", {})
    summary = run(tmp_path, make_config(), write=True)

    [record] = summary.missing_keys
    assert record.key == "greeting"
    assert record.suspicious is True
    assert record.fallback_literal == "Hello"
    assert [w.reason for w in summary.suspicious_keys] == [
        SuspiciousKeyReason.SINGLE_WORD_NO_NAMESPACE
    ]
    assert read_locale("en") == {}


def test_unnamespaced_fallback_key_is_written_under_allow(
    tmp_path, write_file, read_locale, make_config
):
    write_file("src/app.py", 'greeting = t("greeting") or "Hello"\n')
    config = make_config(sync=SyncConfig(suspicious_key_policy=SuspiciousKeyPolicy.ALLOW))
    run(tmp_path, config, write=True)

    assert read_locale("en") == {"greeting": "Hello"}
    assert read_locale("fi") == {"greeting": ""}


def test_unused_keys_need_prune(tmp_path, write_file, write_locale, read_locale, make_config):
    write_file("src/app.py", 't("used.key")\n')
    write_locale("en", {"used.key": "Used", "old.key": "Old"})
    write_locale("fi", {"used.key": "Käytetty", "old.key": "Vanha"})

    summary = run(tmp_path, make_config(), write=True)
    assert [(r.key, r.locales) for r in summary.unused_keys] == [("old.key", ["en", "fi"])]
    assert "old.key" in read_locale("en")

    run(tmp_path, make_config(), write=True, prune=True, selected_unused_keys=["other.key"])
    assert "old.key" in read_locale("fi")

    run(tmp_path, make_config(), write=True, prune=True)
    assert read_locale("en") == {"used.key": "Used"}
    assert read_locale("fi") == {"used.key": "Käytetty"}


def test_suspicious_keys_are_skipped_by_default(tmp_path, write_file, read_locale, make_config):
    write_file("src/app.py", 't("Save changes")\nt("form.ok")\n')
    summary = run(tmp_path, make_config(), write=True)

    records = {r.key: r for r in summary.missing_keys}
    assert records["Save changes"].suspicious
    assert not records["form.ok"].suspicious
    assert read_locale("en") == {"form.ok": "form.ok"}

    [warning] = summary.suspicious_keys
    assert warning.reason is SuspiciousKeyReason.CONTAINS_SPACES
    assert warning.file_path == "src/app.py"
    assert warning.position == Position(1, 1)
    assert warning.suggestion == "common.save-changes"
    assert not summary.failed


def test_selected_suspicious_key_is_added(tmp_path, write_file, read_locale, make_config):
    write_file("src/app.py", 't("Save changes")\nt("form.ok")\n')
    run(tmp_path, make_config(), write=True, selected_missing_keys=["Save changes"])
    assert read_locale("en") == {"Save changes": "Save changes"}


def test_allow_policy_adds_suspicious_keys(tmp_path, write_file, read_locale, make_config):
    write_file("src/app.py", 't("Save changes")\n')
    config = make_config(sync=SyncConfig(suspicious_key_policy=SuspiciousKeyPolicy.ALLOW))
    run(tmp_path, config, write=True)
    assert "Save changes" in read_locale("en")


def test_error_policy_fails_the_run(tmp_path, write_file, make_config):
    write_file("src/app.py", 't("Save changes")\n')
    config = make_config(sync=SyncConfig(suspicious_key_policy=SuspiciousKeyPolicy.ERROR))
    assert run(tmp_path, config).failed


def test_key_generator_supplies_suggestions(tmp_path, write_file, make_config):
    class Prefixer:
        def generate(self, text, metadata):
            return GeneratedKey(key=f"generated.{metadata['reason']}")

    write_file("src/app.py", 't("Found")\n')
    summary = Syncer(make_config(), tmp_path, key_generator=Prefixer()).run()
    assert summary.suspicious_keys[0].suggestion == "generated.single-word-no-namespace"


def test_source_value_equal_to_key_is_reported(tmp_path, write_file, write_locale, make_config):
    write_file("src/app.py", 't("common.title")\n')
    write_locale("en", {"Submit": "Submit", "common.title": "Title"})
    summary = run(tmp_path, make_config())

    [warning] = summary.suspicious_keys
    assert warning.key == "Submit"
    assert warning.reason is SuspiciousKeyReason.KEY_EQUALS_VALUE
    assert warning.file_path == "locales/en.json"
    assert warning.position == Position(0, 0)


def test_empty_values(tmp_path, write_file, write_locale, make_config):
    write_file("src/app.py", 't("a.todo")\nt("a.blank")\nt("a.done") or "Done"\n')
    write_locale("en", {"a.todo": "Todo", "a.blank": "Blank", "a.done": "Done"})
    write_locale("fi", {"a.todo": "TODO", "a.blank": "  ", "a.done": ""})

    summary = run(tmp_path, make_config())
    reasons = {v.key: v.reason for v in summary.empty_value_violations}
    assert reasons == {
        "a.todo": EmptyValueReason.PLACEHOLDER,
        "a.blank": EmptyValueReason.WHITESPACE,
        "a.done": EmptyValueReason.EMPTY,
    }
    done = next(v for v in summary.empty_value_violations if v.key == "a.done")
    assert done.fallback_literal == "Done"
    assert not summary.failed

    failing = run(tmp_path, make_config(sync=SyncConfig(empty_value_policy=EmptyValuePolicy.FAIL)))
    assert failing.failed

    ignored = run(tmp_path, make_config(), empty_value_policy=EmptyValuePolicy.IGNORE)
    assert ignored.empty_value_violations == []
    assert ignored.validation.empty_value_policy is EmptyValuePolicy.IGNORE


def test_empty_value_reason():
    assert empty_value_reason(None, []) is EmptyValueReason.NULL
    assert empty_value_reason("", []) is EmptyValueReason.EMPTY
    assert empty_value_reason(" \t", []) is EmptyValueReason.WHITESPACE
    assert empty_value_reason(" Fixme ", ["fixme"]) is EmptyValueReason.PLACEHOLDER
    assert empty_value_reason("Valmis", ["fixme"]) is None


def test_placeholder_validation_is_opt_in(tmp_path, write_file, write_locale, make_config):
    write_file("src/app.py", 't("greet.user")\n')
    write_locale("en", {"greet.user": "Hi {{name}}"})
    write_locale("fi", {"greet.user": "Hei {{nimi}}"})

    assert run(tmp_path, make_config()).placeholder_issues == []

    summary = run(tmp_path, make_config(), validate_interpolations=True)
    [issue] = summary.placeholder_issues
    assert issue.locale == "fi"
    assert issue.missing == ["name"]
    assert issue.extra == ["nimi"]
    assert issue.references[0].file_path == "src/app.py"
    assert summary.validation.interpolations is True


def test_dynamic_key_expansion(tmp_path, write_file, write_locale, make_config):
    write_file("src/app.py", 't(f"item.{kind}.label")\n')
    write_locale("en", {"item.a.label": "A"})
    config = make_config(dynamic_keys={"item.*.label": ["a", "b"]})

    summary = run(tmp_path, config)
    assert summary.assumed_keys == ["item.a.label", "item.b.label"]
    assert [r.key for r in summary.missing_keys] == ["item.b.label"]
    assert summary.unused_keys == []
    assert len(summary.dynamic_key_warnings) == 1

    [coverage] = summary.dynamic_key_coverage
    assert coverage.missing_by_locale == {
        "en": ["item.b.label"],
        "fi": ["item.a.label", "item.b.label"],
    }


def test_glob_and_assumed_keys_are_never_unused(tmp_path, write_file, write_locale, make_config):
    write_file("src/app.py", 't("app.title")\n')
    write_locale(
        "en",
        {"app.title": "Title", "status.active": "Active", "legacy.key": "Legacy", "old.key": "Old"},
    )
    config = make_config(sync=SyncConfig(dynamic_key_globs=["status.*"]))

    summary = run(tmp_path, config, assumed_keys=["legacy.key"])
    assert [r.key for r in summary.unused_keys] == ["old.key"]
    assert "status.active" in summary.assumed_keys
    assert "legacy.key" in summary.assumed_keys


def test_targets_scope_the_scan(tmp_path, write_file, write_locale, make_config):
    write_file("src/a.py", 't("a.key")\n')
    write_file("src/b.py", 't("b.key")\n')
    write_locale("en", {"a.key": "A", "b.key": "B", "z.key": "Z"})

    full = run(tmp_path, make_config())
    assert [r.key for r in full.unused_keys] == ["z.key"]

    scoped = run(tmp_path, make_config(), targets=["src/a.py"])
    assert scoped.files_scanned == 1
    assert [r.key for r in scoped.references] == ["a.key"]
    assert scoped.unused_keys == []

    cache = json.loads((tmp_path / CACHE_DIRNAME / SYNC_CACHE_FILENAME).read_text(encoding="utf-8"))
    assert sorted(cache["files"]) == ["src/a.py", "src/b.py"]


def test_targets_matching_nothing_is_an_error(tmp_path, write_file, make_config):
    write_file("src/a.py", 't("a.key")\n')
    with pytest.raises(SourceResolutionError):
        run(tmp_path, make_config(), targets=["lib/*.py"])


def test_no_sources_is_an_error(tmp_path, make_config):
    with pytest.raises(SourceResolutionError):
        run(tmp_path, make_config())


def test_repeated_runs_are_idempotent(tmp_path, write_locale, read_locale, make_config, greeting_app):
    write_locale("en", {})
    run(tmp_path, make_config(), write=True)
    locales_after_first = (read_locale("en"), read_locale("fi"))
    cache_path = tmp_path / CACHE_DIRNAME / SYNC_CACHE_FILENAME
    cache_after_first = cache_path.read_bytes()

    second = run(tmp_path, make_config(), write=True)
    assert second.missing_keys == []
    assert second.locale_stats == []
    assert (read_locale("en"), read_locale("fi")) == locales_after_first
    assert cache_path.read_bytes() == cache_after_first
    assert second.cache_stats["hits"] == 1


def test_phases_only_move_forward(tmp_path, make_config):
    syncer = Syncer(make_config(), tmp_path)
    syncer._advance(SyncPhase.RECONCILE)
    with pytest.raises(RuntimeError):
        syncer._advance(SyncPhase.EXTRACT)


def test_summary_serializes_to_plain_data(tmp_path, make_config, greeting_app):
    data = run(tmp_path, make_config()).to_dict()
    json.dumps(data)
    assert data["validation"]["empty_value_policy"] == "warn"
    assert data["missing_keys"][0]["references"][0]["position"] == {"line": 2, "column": 12}
