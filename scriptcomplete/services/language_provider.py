"""Language intelligence collaborator contracts (pure Python).

These contracts keep the completion pipeline independent of the engine that
parses scripts, infers types, resolves modules and discovers classes, so any
of them can be replaced (or faked in tests) without touching the pipeline.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Mapping, Protocol


@dataclass(frozen=True)
class Symbol:
    name: str
    kind: str = ""
    detail: str = ""


@dataclass(frozen=True)
class ResolvedModule:
    name: str
    exports: Mapping[str, Symbol] = field(default_factory=dict)
    path: str = ""


class InferredType(Protocol):
    def members(self) -> list[Symbol]:
        ...


class Scope(Protocol):
    def symbols_at(self, prefix: str) -> list[Symbol]:
        """Symbols visible at the end of the parsed source starting with ``prefix``."""
        ...

    def type_of_binding(self, name: str) -> InferredType | None:
        ...


class LanguageIndexer(Protocol):
    def parse(self, source_text: str) -> Scope | None:
        """Parse ``source_text``; ``None`` signals a parse failure."""
        ...


class ModuleResolver(Protocol):
    def resolve(self, dotted_path: str) -> ResolvedModule | None:
        ...


class ClassDiscovery(Protocol):
    def is_ready(self) -> bool:
        ...

    def find_containing(self, text: str) -> list[str]:
        ...

    def find_for_package(self, package: str) -> list[str]:
        ...

    def find_by_prefix(self, prefix: str) -> list[str]:
        ...

    def find_by_simple_name_prefix(self, name: str) -> list[str]:
        ...
