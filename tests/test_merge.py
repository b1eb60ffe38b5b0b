from __future__ import annotations

import json
import os
import threading

import pytest
from conftest import read_json, write_json

from i18n_keyguard.merge import (
    I18nMergePlugin,
    I18nMerger,
    MergeOptions,
    deep_merge,
    poll_changes,
)


def _options(tmp_path, **kwargs) -> MergeOptions:
    kwargs.setdefault("languages", ["en", "de"])
    return MergeOptions(src_dirs=[tmp_path / "app"], output_dir=tmp_path / "out", **kwargs)


def test_deep_merge_recurses_and_overrides():
    target = {"a": {"b": 1, "c": 2}, "x": 1}
    deep_merge(target, {"a": {"c": 3, "d": 4}, "x": {"y": 1}})
    assert target == {"a": {"b": 1, "c": 3, "d": 4}, "x": {"y": 1}}


def test_merge_builds_namespaced_dictionary(tmp_path):
    app = tmp_path / "app"
    write_json(app / "en.json", {"common": {"save": "Save"}})
    write_json(app / "pages" / "users" / "[id]" / "en.json", {"title": "User"})
    write_json(app / "[locale]" / "about" / "en.json", {"title": "About"})
    write_json(app / "de.json", {"common": {"save": "Speichern"}})

    written = I18nMerger(_options(tmp_path)).merge_i18n_files()

    assert written == [tmp_path / "out" / "en.json", tmp_path / "out" / "de.json"]
    assert read_json(tmp_path / "out" / "en.json") == {
        "about": {"title": "About"},
        "common": {"save": "Save"},
        "pages": {"users": {"_id_": {"title": "User"}}},
    }
    assert read_json(tmp_path / "out" / "de.json") == {"common": {"save": "Speichern"}}


def test_merge_output_is_sorted_and_indented(tmp_path):
    write_json(tmp_path / "app" / "en.json", {"b": "B", "a": {"d": "D", "c": "C"}})
    I18nMerger(_options(tmp_path, languages=["en"])).merge_i18n_files()
    text = (tmp_path / "out" / "en.json").read_text(encoding="utf-8")
    assert text == json.dumps({"a": {"c": "C", "d": "D"}, "b": "B"}, indent=2) + "\n"


def test_merge_is_idempotent(tmp_path):
    write_json(tmp_path / "app" / "en.json", {"a": "A"})
    merger = I18nMerger(_options(tmp_path, languages=["en"]))
    merger.merge_i18n_files()
    output = tmp_path / "out" / "en.json"
    first = output.read_text(encoding="utf-8")
    stamp = output.stat().st_mtime_ns
    merger.merge_i18n_files()
    assert output.read_text(encoding="utf-8") == first
    assert output.stat().st_mtime_ns == stamp


def test_merge_namespace_overlay_is_shallow():
    target = {"pages": {"home": {"form": {"a": "A", "b": "B"}, "title": "T"}}}
    I18nMerger.merge_into_namespace(target, "pages.home", {"form": {"c": "C"}})
    assert target == {"pages": {"home": {"form": {"c": "C"}, "title": "T"}}}


def test_merge_root_fragments_deep_merge():
    target = {"common": {"a": "A"}}
    I18nMerger.merge_into_namespace(target, "", {"common": {"b": "B"}})
    assert target == {"common": {"a": "A", "b": "B"}}


def test_merge_applies_src_dir_prefix(tmp_path):
    write_json(tmp_path / "app" / "en.json", {"a": "A"})
    write_json(tmp_path / "app" / "forms" / "en.json", {"b": "B"})
    options = _options(
        tmp_path, languages=["en"], src_dir_namespaces={str(tmp_path / "app"): "layer"}
    )
    I18nMerger(options).merge_i18n_files()
    assert read_json(tmp_path / "out" / "en.json") == {
        "layer": {"a": "A", "forms": {"b": "B"}}
    }


def test_merge_invalid_fragment_raises(tmp_path):
    (tmp_path / "app").mkdir()
    (tmp_path / "app" / "en.json").write_text("{not json", encoding="utf-8")
    with pytest.raises(json.JSONDecodeError):
        I18nMerger(_options(tmp_path, languages=["en"])).merge_i18n_files()


def test_sort_pre_pass_skips_merge_until_next_run(tmp_path):
    fragment = tmp_path / "app" / "en.json"
    fragment.parent.mkdir(parents=True)
    fragment.write_text('{"b": "B", "a": "A"}', encoding="utf-8")
    merger = I18nMerger(_options(tmp_path, languages=["en"], sort_original_files=True))

    assert merger.merge_i18n_files() == []
    assert not (tmp_path / "out" / "en.json").exists()
    assert list(read_json(fragment)) == ["a", "b"]

    assert merger.merge_i18n_files() == [tmp_path / "out" / "en.json"]


def test_sort_file_reports_unparseable_file(tmp_path):
    path = tmp_path / "en.json"
    path.write_text("[oops", encoding="utf-8")
    assert I18nMerger.sort_file(path) is False


def test_is_i18n_file(tmp_path):
    merger = I18nMerger(_options(tmp_path))
    assert merger.is_i18n_file("app/pages/en.json")
    assert merger.is_i18n_file(r"app\pages\de.json")
    assert not merger.is_i18n_file("app/pages/fr.json")
    assert not merger.is_i18n_file("app/pages/index.vue")


def test_plugin_build_start_runs_once(tmp_path):
    write_json(tmp_path / "app" / "en.json", {"a": "A"})
    calls = []
    plugin = I18nMergePlugin(
        _options(tmp_path, languages=["en"], on_merge_complete=lambda: calls.append(1))
    )
    watched = []

    files = plugin.build_start(watched.append)

    assert plugin.initialized
    assert files == [(tmp_path / "app" / "en.json").resolve()]
    assert watched == files
    assert calls == [1]
    assert plugin.build_start() == []
    assert calls == [1]


def test_plugin_watch_change_filters_and_merges(tmp_path):
    fragment = write_json(tmp_path / "app" / "en.json", {"a": "A"})
    plugin = I18nMergePlugin(_options(tmp_path, languages=["en"]))
    plugin.build_start()

    assert not plugin.watch_change(tmp_path / "app" / "index.vue")
    write_json(fragment, {"a": "A", "b": "B"})
    assert plugin.watch_change(fragment)
    assert read_json(tmp_path / "out" / "en.json") == {"a": "A", "b": "B"}
    assert not plugin.is_processing


def test_plugin_drops_change_during_merge(tmp_path):
    fragment = write_json(tmp_path / "app" / "en.json", {"a": "A"})
    results = []

    def on_complete() -> None:
        # a second change arriving while the first merge is still running
        results.append(plugin.watch_change(fragment))

    plugin = I18nMergePlugin(_options(tmp_path, languages=["en"], on_merge_complete=on_complete))
    plugin.initialized = True
    assert plugin.watch_change(fragment)
    assert results == [False]
    assert not plugin.is_processing


def test_plugin_resets_flag_after_failure(tmp_path):
    fragment = tmp_path / "app" / "en.json"
    fragment.parent.mkdir(parents=True)
    fragment.write_text("{broken", encoding="utf-8")
    plugin = I18nMergePlugin(_options(tmp_path, languages=["en"]))
    with pytest.raises(json.JSONDecodeError):
        plugin.watch_change(fragment)
    assert not plugin.is_processing


class _TouchOnFirstWait(threading.Event):
    """Stop event that bumps a file's mtime during the first poll interval."""

    def __init__(self, path) -> None:
        super().__init__()
        self.path = path
        self.calls = 0

    def wait(self, timeout=None) -> bool:
        self.calls += 1
        if self.calls == 1:
            stat = self.path.stat()
            os.utime(self.path, ns=(stat.st_atime_ns, stat.st_mtime_ns + 1_000_000_000))
            return False
        return self.is_set() or self.calls > 5


def test_poll_changes_triggers_merge(tmp_path, monkeypatch):
    fragment = write_json(tmp_path / "app" / "en.json", {"a": "A"})
    plugin = I18nMergePlugin(_options(tmp_path, languages=["en"]))
    plugin.build_start()
    stop = _TouchOnFirstWait(fragment)
    seen = []

    def fake_watch_change(path):
        seen.append(path)
        stop.set()
        return True

    monkeypatch.setattr(plugin, "watch_change", fake_watch_change)

    poll_changes(plugin, interval=0.01, stop=stop)

    assert seen == [fragment.resolve()]


class _EditBetweenPolls(threading.Event):
    """Stop event that writes one scripted fragment content per poll interval."""

    def __init__(self, path, contents) -> None:
        super().__init__()
        self.path = path
        self.contents = list(contents)
        self.calls = 0

    def wait(self, timeout=None) -> bool:
        self.calls += 1
        if not self.contents:
            return True
        stamp = self.path.stat().st_mtime_ns
        self.path.write_text(self.contents.pop(0), encoding="utf-8")
        os.utime(self.path, ns=(stamp, stamp + self.calls * 1_000_000_000))
        return False


def test_poll_changes_survives_malformed_fragment(tmp_path):
    fragment = write_json(tmp_path / "app" / "en.json", {"a": "A"})
    plugin = I18nMergePlugin(_options(tmp_path, languages=["en"]))
    plugin.build_start()
    stop = _EditBetweenPolls(fragment, ["{half written", '{"a": "A", "b": "B"}'])

    poll_changes(plugin, interval=0.01, stop=stop)

    assert stop.calls == 3
    assert not plugin.is_processing
    assert read_json(tmp_path / "out" / "en.json") == {"a": "A", "b": "B"}
