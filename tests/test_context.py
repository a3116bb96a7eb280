import logging

import pytest

from scriptcomplete.completion import ContextKind, LineContextClassifier, LoadPath
from scriptcomplete.completion.context import (
    NO_CONTEXT,
    block_indent_for,
    expression_before,
    find_block_header,
    sys_path_additions,
)


@pytest.fixture
def classifier():
    return LineContextClassifier()


@pytest.mark.parametrize(
    "line",
    ["", "foo(", "foo()", "x[", "x[0]", "{", "d}", "a,", "a;", "import "],
)
def test_uncompletable_positions_have_no_context(classifier, line):
    assert classifier.classify("", line, "") is NO_CONTEXT


def test_seed_must_be_a_suffix_of_the_line(classifier):
    assert classifier.classify("", "from ij", "gui") is NO_CONTEXT


def test_package_import_from(classifier):
    ctx = classifier.classify("", "from ij", "ij")
    assert ctx.kind is ContextKind.PACKAGE_IMPORT
    assert ctx.keyword == "from"
    assert ctx.path == "ij"
    assert ctx.path_start == 5
    assert ctx.replace_start == 5


def test_package_import_dotted_path(classifier):
    ctx = classifier.classify("", "import ij.gu", "gu")
    assert ctx.kind is ContextKind.PACKAGE_IMPORT
    assert ctx.keyword == "import"
    assert ctx.path == "ij.gu"
    assert ctx.replace_start == len("import ij.")


def test_member_import(classifier):
    ctx = classifier.classify("", "from ij.gui import Ro", "Ro")
    assert ctx.kind is ContextKind.MEMBER_IMPORT
    assert ctx.module == "ij.gui"
    assert ctx.member == "Ro"


def test_member_import_with_empty_member(classifier):
    ctx = classifier.classify("", "from ij.gui import", "import")
    assert ctx.kind is ContextKind.MEMBER_IMPORT
    assert ctx.module == "ij.gui"
    assert ctx.member == ""


def test_bare_name(classifier):
    ctx = classifier.classify("x = 1\n", "    result = pri", "pri")
    assert ctx.kind is ContextKind.BARE_NAME
    assert ctx.name == "pri"


def test_single_character_bare_name(classifier):
    ctx = classifier.classify("", "x", "x")
    assert ctx.kind is ContextKind.BARE_NAME
    assert ctx.name == "x"


def test_dotted_access_with_call_chain(classifier):
    ctx = classifier.classify("", "imp.getProcessor().", "")
    assert ctx.kind is ContextKind.DOTTED_ACCESS
    assert ctx.expression == "imp.getProcessor()"
    assert ctx.member == ""


def test_dotted_access_with_partial_member(classifier):
    ctx = classifier.classify("", "value = rm.getRoi(idx[0]).getBo", "getBo")
    assert ctx.kind is ContextKind.DOTTED_ACCESS
    assert ctx.expression == "rm.getRoi(idx[0])"
    assert ctx.member == "getBo"
    assert ctx.replace_start == len("value = rm.getRoi(idx[0]).")


def test_import_matchers_win_over_generic_ones(classifier):
    # "import os.pa" also ends with a dotted access; the import pattern is more specific.
    assert classifier.classify("", "import os.pa", "pa").kind is ContextKind.PACKAGE_IMPORT
    # "from os" also ends with a bare name.
    assert classifier.classify("", "from os", "os").kind is ContextKind.PACKAGE_IMPORT


@pytest.mark.parametrize("line", ["x = 1.", "value = .", "s = 'abc'."])
def test_lines_without_a_receiver_have_no_context(classifier, line):
    assert classifier.classify("", line, "") is NO_CONTEXT


def test_classification_is_deterministic(classifier):
    args = ("if x > 0:\n", "    y = imp.getPro", "getPro")
    assert classifier.classify(*args) == classifier.classify(*args)


def test_block_header_is_repaired(classifier):
    ctx = classifier.classify("x = 5\nif x > 0:\n", "y.", "")
    assert ctx.kind is ContextKind.DOTTED_ACCESS
    assert ctx.repaired
    assert ctx.block_indent == "    "
    assert ctx.raw_prior_text == "x = 5\nif x > 0:\n"
    assert ctx.prior_text == "x = 5\nif x > 0:\n    pass\n"


def test_repair_uses_the_indentation_of_the_current_line(classifier):
    prepared, indent = classifier.repair("def f():\n  for i in r:  # loop\n", "      i.")
    assert indent == "      "
    assert prepared.endswith("  for i in r:  # loop\n      pass\n")


def test_text_without_trailing_header_is_left_alone(classifier):
    prior = "if x:\n    y = 1\n"
    assert classifier.repair(prior, "y.") == (prior, "")


def test_find_block_header_skips_blank_lines():
    assert find_block_header("a = 1\nwhile True:\n\n   \n") == (6, "")


@pytest.mark.parametrize(
    "prior",
    ["", "x = 1", "x = 1\n", "# note:\n", "d = {'a': 1}\n", "x = 1  # see:\n"],
)
def test_find_block_header_rejects_non_headers(prior):
    assert find_block_header(prior) is None


def test_block_indent_for():
    assert block_indent_for("    ", "") == "        "
    assert block_indent_for("", "\tx") == "\t"


@pytest.mark.parametrize(
    "line, end, expected",
    [
        ("imp.", 3, "imp"),
        ("x = a.b.c.", 9, "a.b.c"),
        ("f(g(1, 2)).", 10, "f(g(1, 2))"),
        ("print(d['a)'].", 13, "d['a)']"),
        ("x = (1 + 2).", 11, "(1 + 2)"),
        ("x = 12.", 6, ""),
        ("x = foo)].", 9, ""),
    ],
)
def test_expression_before(line, end, expected):
    assert expression_before(line, end) == expected


def test_sys_path_additions():
    text = (
        "import sys\n"
        "sys.path.append('/opt/fiji/scripts')\n"
        'sys.path.insert(0, r"C:\\scripts")\n'
        "sys.path.extend(['/ignored'])\n"
    )
    assert sys_path_additions(text) == ["/opt/fiji/scripts", "C:\\scripts"]


def test_classification_registers_declared_directories(tmp_path, caplog):
    extra = tmp_path / "extra"
    extra.mkdir()
    load_path = LoadPath()
    classifier = LineContextClassifier(load_path)
    prior = (
        "import sys\n"
        f"sys.path.append('{extra}')\n"
        f"sys.path.append('{tmp_path / 'extra' / '..' / 'extra'}')\n"
        f"sys.path.append('{tmp_path / 'missing'}')\n"
    )

    with caplog.at_level(logging.INFO, logger="scriptcomplete.completion.context"):
        classifier.classify(prior, "x = 1 + y", "y")
        classifier.classify(prior, "x = 1 + y", "y")

    assert load_path.directories() == [str(extra)]
    assert sum("Added" in r.getMessage() for r in caplog.records) == 1
