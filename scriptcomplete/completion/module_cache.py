"""Background-built module index and the user module load path."""

from __future__ import annotations

import concurrent.futures
import logging
import os
from bisect import bisect_left
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Iterator

from scriptcomplete.services.class_index_service import ClassDiscoveryCache
from scriptcomplete.services.library_scan import library_module_names, modules_under, resolve_library_location

logger = logging.getLogger(__name__)


class LoadPath:
    """Ordered, append-only list of directories searched for user modules.

    Entries are deduplicated by resolved filesystem path, so ``/a/b`` and
    ``/a/./c/../b`` count as the same directory.
    """

    def __init__(self, directories: Iterable[str] = ()) -> None:
        self._entries: list[str] = []
        self._resolved: set[Path] = set()
        for directory in directories:
            self.add(directory)

    def add(self, directory: str) -> bool:
        path = Path(os.path.expanduser(str(directory or ""))).absolute()
        if not str(directory or "").strip() or not path.is_dir():
            return False
        resolved = path.resolve()
        if resolved in self._resolved:
            return False
        self._resolved.add(resolved)
        self._entries.append(str(path))
        return True

    def directories(self) -> list[str]:
        return list(self._entries)

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._entries))

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, directory: object) -> bool:
        try:
            return Path(str(directory)).resolve() in self._resolved
        except OSError:
            return False

    def find_modules(self, prefix: str) -> list[str]:
        """Dotted names of ``.py`` modules and packages on the path starting with ``prefix``."""
        out: list[str] = []
        seen: set[str] = set()
        for directory in self._entries:
            for name in modules_under(directory, prefix):
                if name not in seen:
                    seen.add(name)
                    out.append(name)
        return out

    def module_directories(self, dotted_path: str) -> list[str]:
        """Existing directories backing package ``dotted_path`` on the path."""
        parts = [p for p in str(dotted_path or "").split(".") if p]
        if not parts:
            return []
        return [
            candidate
            for candidate in (os.path.join(directory, *parts) for directory in self._entries)
            if os.path.isdir(candidate)
        ]


@dataclass(frozen=True)
class ModuleIndex:
    names: tuple[str, ...] = ()

    @classmethod
    def from_names(cls, names: Iterable[str]) -> "ModuleIndex":
        return cls(tuple(sorted(set(names))))

    def starting_with(self, prefix: str) -> list[str]:
        pfx = str(prefix or "")
        start = bisect_left(self.names, pfx)
        out: list[str] = []
        for name in self.names[start:]:
            if not name.startswith(pfx):
                break
            out.append(name)
        return out

    def __contains__(self, name: object) -> bool:
        idx = bisect_left(self.names, name)
        return idx < len(self.names) and self.names[idx] == name

    def __len__(self) -> int:
        return len(self.names)


EMPTY_MODULE_INDEX = ModuleIndex()


def build_module_index(location: str) -> ModuleIndex:
    try:
        index = ModuleIndex.from_names(library_module_names(location))
    except Exception:
        logger.warning("Failed to load library modules from %s", location, exc_info=True)
        return EMPTY_MODULE_INDEX
    logger.debug("Indexed %d library modules from %s", len(index), location)
    return index


class ModuleCache:
    """Owns the one-shot background builds of the module and class indexes.

    Each index is published through a ``Future``: readers see either "not
    ready" or the complete, immutable index, never a partial one.
    """

    def __init__(
        self,
        library_archive: str | None = None,
        load_path: LoadPath | None = None,
        *,
        class_discovery: bool = True,
    ) -> None:
        self.load_path = load_path if load_path is not None else LoadPath()
        self.library_location = resolve_library_location(library_archive)
        self._executor = concurrent.futures.ThreadPoolExecutor(
            max_workers=2, thread_name_prefix="scriptcomplete-index"
        )
        self._modules = self._executor.submit(build_module_index, self.library_location)
        self.classes: ClassDiscoveryCache | None = None
        if class_discovery:
            locations = [self.library_location, *self.load_path.directories()]
            self.classes = ClassDiscoveryCache.submit(self._executor, locations)

    def is_ready(self) -> bool:
        return self._modules.done()

    def try_get(self) -> ModuleIndex | None:
        if not self._modules.done():
            return None
        return self._modules.result()

    def wait(self, timeout: float | None = None) -> ModuleIndex:
        return self._modules.result(timeout=timeout)

    def library_modules(self, prefix: str) -> list[str]:
        index = self.try_get()
        if index is None:
            logger.debug("Module index not ready; skipping library modules")
            return []
        return index.starting_with(prefix)

    def shutdown(self, wait: bool = False) -> None:
        self._executor.shutdown(wait=wait)
