"""Discovery of importable modules in library archives and directories."""

from __future__ import annotations

import glob
import logging
import os
import sysconfig
import zipfile
from pathlib import Path
from typing import Iterator

from scriptcomplete.services.ast_query import dotted_name_for_relative_path, is_valid_python_identifier

logger = logging.getLogger(__name__)

ARCHIVE_LIB_PREFIX = "Lib/"
EXCLUDED_DIRS = {".git", ".venv", "__pycache__", ".idea", ".cache", ".ruff_cache", ".tox"}


def default_library_location() -> str:
    return str(sysconfig.get_paths().get("stdlib") or "")


def resolve_library_location(location: str | None) -> str:
    """Expand ``location`` (a path or a glob such as ``jars/jython-slim-*.jar``)."""
    text = str(location or "").strip()
    if not text:
        return default_library_location()
    expanded = os.path.expanduser(text)
    if glob.has_magic(expanded):
        matches = sorted(glob.glob(expanded))
        return matches[0] if matches else ""
    return expanded


def _archive_root(names: list[str]) -> str:
    return ARCHIVE_LIB_PREFIX if any(name.startswith(ARCHIVE_LIB_PREFIX) for name in names) else ""


def _archive_entries(archive: zipfile.ZipFile) -> Iterator[tuple[str, str]]:
    names = archive.namelist()
    root = _archive_root(names)
    for entry in names:
        if not entry.startswith(root) or not entry.endswith(".py"):
            continue
        module = dotted_name_for_relative_path(entry[len(root):])
        if module:
            yield module, entry


def _directory_entries(root_dir: str, *, follow_symlinks: bool = True) -> Iterator[tuple[str, str]]:
    root = os.path.abspath(root_dir)
    for walk_root, dirnames, filenames in os.walk(root, topdown=True, followlinks=follow_symlinks):
        dirnames[:] = sorted(
            d for d in dirnames if d not in EXCLUDED_DIRS and is_valid_python_identifier(d)
        )
        for filename in sorted(filenames):
            if not filename.endswith(".py"):
                continue
            fpath = os.path.join(walk_root, filename)
            module = dotted_name_for_relative_path(os.path.relpath(fpath, root))
            if module:
                yield module, fpath


def library_module_names(location: str) -> list[str]:
    """Dotted names of all modules packaged in ``location``.

    ``location`` is a zip/jar archive (entries below ``Lib/`` when present) or
    a directory. A package's ``__init__.py`` folds into the package name.
    """
    path = str(location or "")
    if not path:
        return []
    if os.path.isfile(path):
        if not zipfile.is_zipfile(path):
            logger.warning("Library archive %s is not a zip archive", path)
            return []
        with zipfile.ZipFile(path) as archive:
            return [module for module, _entry in _archive_entries(archive)]
    if os.path.isdir(path):
        return [module for module, _fpath in _directory_entries(path)]
    logger.warning("Cannot find library location %s", path)
    return []


def iter_library_sources(location: str) -> Iterator[tuple[str, str]]:
    """Yield ``(module_name, source_text)`` for every module in ``location``."""
    path = str(location or "")
    if os.path.isfile(path) and zipfile.is_zipfile(path):
        with zipfile.ZipFile(path) as archive:
            for module, entry in _archive_entries(archive):
                try:
                    raw = archive.read(entry)
                except (KeyError, OSError, zipfile.BadZipFile):
                    logger.debug("Failed to read %s from %s", entry, path)
                    continue
                yield module, raw.decode("utf-8", errors="replace")
        return
    if os.path.isdir(path):
        for module, fpath in _directory_entries(path):
            try:
                yield module, Path(fpath).read_text(encoding="utf-8", errors="replace")
            except OSError:
                logger.debug("Failed to read %s", fpath)


def modules_under(directory: str, prefix: str) -> list[str]:
    """Dotted names of modules below ``directory`` that start with ``prefix``."""
    head = str(prefix or "").rsplit(".", 1)[0] if "." in str(prefix or "") else ""
    start_dir = os.path.join(directory, *head.split(".")) if head else directory
    if not os.path.isdir(start_dir):
        return []
    out: list[str] = []
    root = os.path.abspath(directory)
    for _module, fpath in _directory_entries(start_dir):
        full = dotted_name_for_relative_path(os.path.relpath(fpath, root))
        if full and full.startswith(prefix):
            out.append(full)
    return out
