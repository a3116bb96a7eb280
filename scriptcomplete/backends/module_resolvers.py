"""Module resolvers for load-path modules and resolver chaining."""

from __future__ import annotations

import logging
import os

from scriptcomplete.completion.module_cache import LoadPath
from scriptcomplete.services.ast_query import module_symbols
from scriptcomplete.services.language_provider import ModuleResolver, ResolvedModule, Symbol

logger = logging.getLogger(__name__)


class LoadPathModuleResolver:
    """Resolve modules found as files on the load path by reading their AST."""

    def __init__(self, load_path: LoadPath) -> None:
        self._load_path = load_path

    def module_file(self, dotted_path: str) -> str:
        parts = [p for p in str(dotted_path or "").split(".") if p]
        if not parts:
            return ""
        for directory in self._load_path:
            base = os.path.join(directory, *parts)
            for candidate in (base + ".py", os.path.join(base, "__init__.py")):
                if os.path.isfile(candidate):
                    return candidate
        return ""

    def resolve(self, dotted_path: str) -> ResolvedModule | None:
        path = self.module_file(dotted_path)
        if not path:
            return None
        symbols = module_symbols(path)
        return ResolvedModule(
            name=dotted_path,
            exports={name: Symbol(name, kind) for name, kind in sorted(symbols.items())},
            path=path,
        )


class ChainModuleResolver:
    """Ask each resolver in turn; the first one that finds the module wins."""

    def __init__(self, *resolvers: ModuleResolver) -> None:
        self._resolvers = tuple(resolvers)

    def resolve(self, dotted_path: str) -> ResolvedModule | None:
        for resolver in self._resolvers:
            try:
                module = resolver.resolve(dotted_path)
            except Exception:
                logger.exception("Module resolver %r failed for %s", resolver, dotted_path)
                continue
            if module is not None:
                return module
        return None
