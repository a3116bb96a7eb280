import logging
import threading

import pytest

from scriptcomplete.completion import LoadPath, ModuleCache, ModuleIndex
from scriptcomplete.completion import module_cache as module_cache_module
from scriptcomplete.services.library_scan import (
    library_module_names,
    modules_under,
    resolve_library_location,
)


def test_archive_scan_reads_lib_entries_and_folds_packages(library_zip):
    assert sorted(library_module_names(str(library_zip))) == [
        "ij",
        "ij.gui",
        "ij.process",
        "json",
        "json.decoder",
        "os",
    ]


def test_directory_scan(scripts_dir):
    (scripts_dir / "__pycache__").mkdir()
    (scripts_dir / "__pycache__" / "cached.py").write_text("")
    (scripts_dir / "not-a-package").mkdir()
    (scripts_dir / "not-a-package" / "mod.py").write_text("")
    assert library_module_names(str(scripts_dir)) == [
        "helpers",
        "mytools",
        "mytools.io",
        "mytools.plot",
        "mytools.stats",
    ]


def test_unreadable_library_location_logs_a_warning(tmp_path, caplog):
    bogus = tmp_path / "broken.jar"
    bogus.write_text("not a zip")
    with caplog.at_level(logging.WARNING):
        assert library_module_names(str(bogus)) == []
        assert library_module_names(str(tmp_path / "missing")) == []
    assert len(caplog.records) == 2


def test_library_location_glob(tmp_path):
    jars = tmp_path / "jars"
    jars.mkdir()
    (jars / "jython-slim-2.7.3.jar").write_bytes(b"")
    assert resolve_library_location(str(jars / "jython-slim-*.jar")) == str(jars / "jython-slim-2.7.3.jar")
    assert resolve_library_location(str(jars / "nothing-*.jar")) == ""
    assert resolve_library_location("") != ""


def test_modules_under_prefix(scripts_dir):
    assert modules_under(str(scripts_dir), "mytools.") == ["mytools.io", "mytools.plot", "mytools.stats"]
    assert modules_under(str(scripts_dir), "he") == ["helpers"]
    assert modules_under(str(scripts_dir), "missing.x") == []


def test_module_index_prefix_lookup():
    index = ModuleIndex.from_names(["os.path", "os", "json", "os", "osx"])
    assert index.names == ("json", "os", "os.path", "osx")
    assert index.starting_with("os.") == ["os.path"]
    assert index.starting_with("os") == ["os", "os.path", "osx"]
    assert index.starting_with("zzz") == []
    assert "json" in index
    assert "js" not in index


def test_load_path_dedups_by_resolved_path(tmp_path):
    target = tmp_path / "lib"
    target.mkdir()
    link = tmp_path / "alias"
    link.symlink_to(target, target_is_directory=True)

    load_path = LoadPath()
    assert load_path.add(str(target))
    assert not load_path.add(str(tmp_path / "lib" / ".." / "lib"))
    assert not load_path.add(str(link))
    assert not load_path.add(str(tmp_path / "missing"))
    assert not load_path.add("")
    assert load_path.directories() == [str(target)]
    assert str(link) in load_path
    assert len(load_path) == 1


def test_load_path_keeps_insertion_order(tmp_path):
    dirs = []
    for name in ("b", "a", "c"):
        (tmp_path / name).mkdir()
        dirs.append(str(tmp_path / name))
    assert list(LoadPath(dirs)) == dirs


def test_load_path_module_lookup(load_path, scripts_dir):
    assert load_path.find_modules("mytools.p") == ["mytools.plot"]
    assert load_path.module_directories("mytools.stats") == [str(scripts_dir / "mytools" / "stats")]
    assert load_path.module_directories("helpers") == []


def test_cache_builds_the_index_in_the_background(library_zip, load_path):
    cache = ModuleCache(str(library_zip), load_path)
    try:
        index = cache.wait(timeout=10)
        assert cache.is_ready()
        assert cache.try_get() is index
        assert cache.library_modules("ij.") == ["ij.gui", "ij.process"]
        classes = cache.classes.wait(timeout=10)
        # Library and load-path classes are both discovered.
        assert "ij.gui.RoiManager" in classes.names
        assert "helpers.Helper" in classes.names
    finally:
        cache.shutdown(wait=True)


def test_cache_is_not_ready_while_building(library_zip, load_path, monkeypatch):
    release = threading.Event()

    def slow_index(location):
        release.wait(10)
        return ModuleIndex.from_names(["os"])

    monkeypatch.setattr(module_cache_module, "build_module_index", slow_index)
    cache = ModuleCache(str(library_zip), load_path, class_discovery=False)
    try:
        assert not cache.is_ready()
        assert cache.try_get() is None
        assert cache.library_modules("o") == []
    finally:
        release.set()
        cache.shutdown(wait=True)
    assert cache.library_modules("o") == ["os"]


def test_cache_without_class_discovery(library_zip):
    cache = ModuleCache(str(library_zip), class_discovery=False)
    try:
        assert cache.classes is None
        assert len(cache.load_path) == 0
    finally:
        cache.shutdown(wait=True)


@pytest.mark.parametrize("name", ["missing.jar", "missing-dir"])
def test_cache_with_missing_library_is_empty(tmp_path, name):
    cache = ModuleCache(str(tmp_path / name), class_discovery=False)
    try:
        assert len(cache.wait(timeout=10)) == 0
    finally:
        cache.shutdown(wait=True)
