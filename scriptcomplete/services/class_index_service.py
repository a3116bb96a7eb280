"""Class-name discovery index over library and load-path modules."""

from __future__ import annotations

import ast
import concurrent.futures
import logging
from bisect import bisect_left
from dataclasses import dataclass, field
from typing import Iterable

from scriptcomplete.services.ast_query import is_valid_python_identifier
from scriptcomplete.services.library_scan import iter_library_sources

logger = logging.getLogger(__name__)


def class_names_in_source(source_text: str) -> list[str]:
    try:
        tree = ast.parse(source_text)
    except (SyntaxError, ValueError):
        return []
    return [
        node.name
        for node in tree.body
        if isinstance(node, ast.ClassDef) and is_valid_python_identifier(node.name)
    ]


@dataclass(frozen=True)
class ClassIndex:
    """Sorted, immutable set of fully qualified class names."""

    names: tuple[str, ...] = ()
    _by_simple_name: dict[str, tuple[str, ...]] = field(default_factory=dict, repr=False, compare=False)

    @classmethod
    def from_names(cls, names: Iterable[str]) -> "ClassIndex":
        ordered = tuple(sorted(set(names)))
        by_simple: dict[str, list[str]] = {}
        for fq_name in ordered:
            by_simple.setdefault(fq_name.rsplit(".", 1)[-1], []).append(fq_name)
        return cls(ordered, {k: tuple(v) for k, v in by_simple.items()})

    def find_by_prefix(self, prefix: str) -> list[str]:
        pfx = str(prefix or "")
        start = bisect_left(self.names, pfx)
        out: list[str] = []
        for fq_name in self.names[start:]:
            if not fq_name.startswith(pfx):
                break
            out.append(fq_name)
        return out

    def find_containing(self, text: str) -> list[str]:
        needle = str(text or "")
        return [fq_name for fq_name in self.names if needle in fq_name]

    def find_for_package(self, package: str) -> list[str]:
        pkg = str(package or "").strip().rstrip(".")
        if not pkg:
            return []
        return [fq_name for fq_name in self.find_by_prefix(pkg + ".") if fq_name.rsplit(".", 1)[0] == pkg]

    def find_by_simple_name(self, name: str) -> list[str]:
        return list(self._by_simple_name.get(str(name or ""), ()))

    def find_by_simple_name_prefix(self, prefix: str) -> list[str]:
        pfx = str(prefix or "")
        out: list[str] = []
        for simple in sorted(self._by_simple_name):
            if simple.startswith(pfx):
                out.extend(self._by_simple_name[simple])
        return out


EMPTY_CLASS_INDEX = ClassIndex()


def build_class_index(locations: Iterable[str]) -> ClassIndex:
    names: list[str] = []
    for location in locations:
        try:
            for module, source in iter_library_sources(location):
                names.extend(f"{module}.{cls_name}" for cls_name in class_names_in_source(source))
        except Exception:
            logger.warning("Failed to index classes in %s", location, exc_info=True)
    logger.debug("Indexed %d classes", len(names))
    return ClassIndex.from_names(names)


class ClassDiscoveryCache:
    """Non-blocking view over a class index built once in the background."""

    def __init__(self, future: concurrent.futures.Future[ClassIndex]) -> None:
        self._future = future

    @classmethod
    def submit(cls, executor: concurrent.futures.Executor, locations: Iterable[str]) -> "ClassDiscoveryCache":
        return cls(executor.submit(build_class_index, list(locations)))

    @classmethod
    def of(cls, index: ClassIndex) -> "ClassDiscoveryCache":
        future: concurrent.futures.Future[ClassIndex] = concurrent.futures.Future()
        future.set_result(index)
        return cls(future)

    def is_ready(self) -> bool:
        return self._future.done()

    def try_get(self) -> ClassIndex | None:
        if not self._future.done():
            return None
        if self._future.exception() is not None:
            return EMPTY_CLASS_INDEX
        return self._future.result()

    def wait(self, timeout: float | None = None) -> ClassIndex:
        try:
            return self._future.result(timeout=timeout)
        except concurrent.futures.TimeoutError:
            raise
        except Exception:
            return EMPTY_CLASS_INDEX

    def _index(self) -> ClassIndex:
        return self.try_get() or EMPTY_CLASS_INDEX

    def find_containing(self, text: str) -> list[str]:
        return self._index().find_containing(text)

    def find_for_package(self, package: str) -> list[str]:
        return self._index().find_for_package(package)

    def find_by_prefix(self, prefix: str) -> list[str]:
        return self._index().find_by_prefix(prefix)

    def find_by_simple_name(self, name: str) -> list[str]:
        return self._index().find_by_simple_name(name)

    def find_by_simple_name_prefix(self, prefix: str) -> list[str]:
        return self._index().find_by_simple_name_prefix(prefix)
