import concurrent.futures

import pytest
from conftest import PendingDiscovery

from scriptcomplete.completion import ClassCompletionSource
from scriptcomplete.services.class_index_service import (
    ClassDiscoveryCache,
    ClassIndex,
    build_class_index,
    class_names_in_source,
)


@pytest.fixture
def source(class_discovery):
    return ClassCompletionSource(class_discovery)


def texts(candidates):
    return [c.replacement_text for c in candidates]


def test_no_candidates_before_the_index_is_ready():
    assert ClassCompletionSource(PendingDiscovery()).completions_for("Roi", "Roi") == []
    assert ClassCompletionSource(None).completions_for("Roi", "Roi") == []


def test_from_package_offers_import_statements(source):
    out = source.completions_for("from ij.pro", "pro")
    assert texts(out) == ["process import ImageProcessor"]
    assert out[0].display_text == "from ij.process import ImageProcessor"


def test_from_import_completes_the_last_name(source):
    out = source.completions_for("from ij.gui import GenericDialog,Ro", "Ro")
    assert texts(out) == ["Roi", "RoiManager"]
    assert all(c.import_statement == "" for c in out)


def test_from_import_with_empty_name_lists_the_package(source):
    out = source.completions_for("    from ij.gui import Roi,\t", "")
    assert texts(out) == ["GenericDialog", "Roi", "RoiManager"]


def test_simple_class_name_carries_an_import_statement(source):
    out = source.completions_for("    rm = RoiM", "RoiM")
    assert texts(out) == ["RoiManager", "RoiManager"]
    assert [c.import_statement for c in out] == [
        "from ij.gui import RoiManager",
        "from ij.plugin.frame import RoiManager",
    ]
    assert out[0].description == "ij.gui.RoiManager"
    assert all(c.prefix_match for c in out)


def test_simple_class_name_inside_a_call(source):
    out = source.completions_for("show(Generic", "Generic")
    assert texts(out) == ["GenericDialog"]


@pytest.mark.parametrize("line, seed", [("roi", "roi"), ("import Ro", "Ro"), ("x = a.Ro", "Ro"), ("from ij.gui ", "")])
def test_lines_without_class_context(source, line, seed):
    assert source.completions_for(line, seed) == []


def test_class_names_in_source():
    text = "class A(object):\n    class Inner:\n        pass\n\nclass B:\n    pass\n"
    assert class_names_in_source(text) == ["A", "B"]
    assert class_names_in_source("class (:") == []


def test_class_index_queries(class_discovery):
    index = class_discovery.wait()
    assert index.find_by_prefix("ij.gui.R") == ["ij.gui.Roi", "ij.gui.RoiManager"]
    assert index.find_for_package("ij") == []
    assert index.find_for_package("ij.process") == ["ij.process.ImageProcessor"]
    assert index.find_by_simple_name("RoiManager") == ["ij.gui.RoiManager", "ij.plugin.frame.RoiManager"]
    assert index.find_containing("Processor") == ["ij.process.ImageProcessor"]


def test_build_class_index_skips_broken_sources(tmp_path):
    (tmp_path / "good.py").write_text("class Good:\n    pass\n")
    (tmp_path / "bad.py").write_text("class Broken(:\n")
    index = build_class_index([str(tmp_path), str(tmp_path / "missing")])
    assert index.names == ("good.Good",)


def test_failed_build_reads_as_empty():
    future = concurrent.futures.Future()
    future.set_exception(RuntimeError("boom"))
    cache = ClassDiscoveryCache(future)
    assert cache.is_ready()
    assert cache.find_by_prefix("") == []
    assert cache.wait().names == ()


def test_of_publishes_a_finished_index():
    cache = ClassDiscoveryCache.of(ClassIndex.from_names(["a.B"]))
    assert cache.is_ready()
    assert cache.find_by_simple_name("B") == ["a.B"]
