"""Jedi-backed script parser, type inferencer and module resolver."""

from __future__ import annotations

import logging
import os

import jedi

from scriptcomplete.completion.module_cache import LoadPath
from scriptcomplete.services.language_provider import ResolvedModule, Symbol

logger = logging.getLogger(__name__)


def _end_position(source_text: str) -> tuple[int, int]:
    lines = source_text.split("\n")
    return len(lines), len(lines[-1])


def _leading_indent(line_text: str) -> str:
    return line_text[: len(line_text) - len(line_text.lstrip(" \t"))]


def _symbol_for(completion) -> Symbol:
    return Symbol(
        name=str(getattr(completion, "name", "") or ""),
        kind=str(getattr(completion, "type", "") or ""),
        detail=str(getattr(completion, "description", "") or ""),
    )


class _ProjectFactory:
    """Builds (and reuses) a jedi project whose sys.path includes the load path."""

    def __init__(self, load_path: LoadPath | None) -> None:
        self._load_path = load_path
        self._key: tuple[str, ...] | None = None
        self._project: jedi.Project | None = None

    def project(self) -> jedi.Project:
        dirs = tuple(self._load_path.directories()) if self._load_path is not None else ()
        if self._project is None or dirs != self._key:
            root = dirs[0] if dirs else os.getcwd()
            self._project = jedi.Project(path=root, added_sys_path=list(dirs))
            self._key = dirs
        return self._project


class JediType:
    def __init__(self, scope: "JediScope", binding_name: str, binding_line: int) -> None:
        self._scope = scope
        self._name = binding_name
        self._line = binding_line

    def members(self) -> list[Symbol]:
        lines = self._scope.source_text.split("\n")
        line_text = lines[self._line - 1] if 0 < self._line <= len(lines) else ""
        probe = f"{_leading_indent(line_text)}{self._name}."
        code = f"{self._scope.source_text.rstrip()}\n{probe}"
        try:
            script = jedi.Script(code=code, project=self._scope.project)
            line, column = _end_position(code)
            return [_symbol_for(c) for c in script.complete(line, column)]
        except Exception:
            logger.debug("Failed to list members of %s", self._name, exc_info=True)
            return []


class JediScope:
    def __init__(self, source_text: str, project: jedi.Project) -> None:
        self.source_text = source_text
        self.project = project
        self._script = jedi.Script(code=source_text, project=project)

    def symbols_at(self, prefix: str) -> list[Symbol]:
        pfx = str(prefix or "")
        try:
            line, column = _end_position(self.source_text)
            completions = self._script.complete(line, column)
        except Exception:
            logger.debug("Name completion failed", exc_info=True)
            return []
        return [_symbol_for(c) for c in completions if str(c.name).startswith(pfx)]

    def type_of_binding(self, name: str) -> JediType | None:
        try:
            bindings = [
                n
                for n in self._script.get_names(all_scopes=True, definitions=True, references=False)
                if n.name == name
            ]
            if not bindings:
                return None
            binding = max(bindings, key=lambda n: (n.line or 0, n.column or 0))
            if not binding.infer():
                return None
        except Exception:
            logger.debug("Failed to infer the type of %s", name, exc_info=True)
            return None
        return JediType(self, name, int(binding.line or 0))


class JediIndexer:
    def __init__(self, load_path: LoadPath | None = None) -> None:
        self._projects = _ProjectFactory(load_path)

    def parse(self, source_text: str) -> JediScope | None:
        try:
            return JediScope(str(source_text or ""), self._projects.project())
        except Exception:
            logger.debug("Failed to parse script", exc_info=True)
            return None


class JediModuleResolver:
    def __init__(self, load_path: LoadPath | None = None) -> None:
        self._projects = _ProjectFactory(load_path)

    def resolve(self, dotted_path: str) -> ResolvedModule | None:
        module = str(dotted_path or "").strip()
        if not module:
            return None
        try:
            project = self._projects.project()
            probe = f"import {module}"
            targets = jedi.Script(code=probe, project=project).goto(1, len(probe) - 1, follow_imports=True)
            targets = [t for t in targets if t.type == "module"]
            if not targets:
                return None
            listing = f"from {module} import "
            completions = jedi.Script(code=listing, project=project).complete(1, len(listing))
        except Exception:
            logger.debug("Failed to resolve module %s", module, exc_info=True)
            return None
        exports = {str(c.name): _symbol_for(c) for c in completions}
        return ResolvedModule(name=module, exports=exports, path=str(targets[0].module_path or ""))
