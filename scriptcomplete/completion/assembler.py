"""Per-context candidate assembly.

Each context kind has its own resolver. Resolvers build the full text the
caret line would have after completion and then slice it at the seed's start
column, so every replacement lines up with the caret offset reported by the
editor.
"""

from __future__ import annotations

import logging
import os
import re
from typing import Callable, Iterable

from scriptcomplete.completion.candidates import Candidate
from scriptcomplete.completion.context import (
    BareNameContext,
    CompletionContext,
    ContextKind,
    DottedAccessContext,
    MemberImportContext,
    PackageImportContext,
)
from scriptcomplete.completion.module_cache import ModuleCache
from scriptcomplete.services.ast_query import identifiers_in_text, is_valid_python_identifier
from scriptcomplete.services.language_provider import LanguageIndexer, ModuleResolver

logger = logging.getLogger(__name__)

STDLIB_MODULE_DESCRIPTION = "Python standard library module"
CUSTOM_MODULE_DESCRIPTION = "Custom python module"

_ASSIGN_RE = re.compile(r"^([ \t]*)([a-zA-Z_][\w \t,]*?)[ \t]*=(?!=)[ \t]*(.*)$")
_PAIRS = {"(": ")", "[": "]", "{": "}"}


def fresh_name(taken: Iterable[str], base: str = "__completion_target__") -> str:
    """Return an identifier starting with ``base`` that is not in ``taken``."""
    used = set(taken)
    candidate = base
    n = 0
    while candidate in used:
        n += 1
        candidate = f"{base}{n}"
    return candidate


def split_top_level(text: str) -> list[str] | None:
    """Split ``text`` on commas outside brackets and strings.

    Returns None when the brackets are unbalanced.
    """
    parts: list[str] = []
    stack: list[str] = []
    quote = ""
    start = 0
    for i, ch in enumerate(text):
        if quote:
            if ch == quote:
                quote = ""
            continue
        if ch in ("'", '"'):
            quote = ch
        elif ch in _PAIRS:
            stack.append(_PAIRS[ch])
        elif ch in ")]}":
            if not stack or stack.pop() != ch:
                return None
        elif ch == "," and not stack:
            parts.append(text[start:i])
            start = i + 1
    if stack or quote:
        return None
    parts.append(text[start:])
    return parts


def _leading_indent(line_text: str) -> str:
    return line_text[: len(line_text) - len(line_text.lstrip(" \t"))]


class CompletionAssembler:
    """Dispatch a classified context to the resolver that produces its candidates."""

    def __init__(
        self,
        module_cache: ModuleCache,
        indexer: LanguageIndexer,
        resolver: ModuleResolver,
        *,
        case_sensitive_members: bool = False,
    ) -> None:
        self._modules = module_cache
        self._case_sensitive_members = case_sensitive_members
        self._indexer = indexer
        self._resolver = resolver
        self._handlers: dict[ContextKind, Callable[[CompletionContext], list[Candidate]]] = {
            ContextKind.PACKAGE_IMPORT: self._package_import,
            ContextKind.MEMBER_IMPORT: self._member_import,
            ContextKind.BARE_NAME: self._bare_name,
            ContextKind.DOTTED_ACCESS: self._dotted_access,
        }

    @property
    def load_path(self):
        return self._modules.load_path

    def assemble(self, context: CompletionContext) -> list[Candidate]:
        handler = self._handlers.get(context.kind)
        if handler is None:
            return []
        return handler(context)

    def _candidate(
        self,
        context: CompletionContext,
        full_line: str,
        *,
        display_text: str = "",
        description: str = "",
        prefix_match: bool | None = None,
        import_statement: str = "",
    ) -> Candidate:
        replacement = full_line[context.replace_start:]
        if prefix_match is None:
            prefix_match = replacement.startswith(context.seed)
        return Candidate(
            replacement_text=replacement,
            display_text=display_text or full_line.strip(),
            import_statement=import_statement,
            prefix_match=prefix_match,
            description=description,
        )

    # ---------- import contexts ----------

    def _package_import(self, context: CompletionContext) -> list[Candidate]:
        assert isinstance(context, PackageImportContext)
        head = context.current_line[: context.path_start]
        suffix = " import " if context.keyword == "from" else ""
        out: list[Candidate] = []
        seen: set[str] = set()

        sources = (
            (self._modules.library_modules(context.path), STDLIB_MODULE_DESCRIPTION),
            (self.load_path.find_modules(context.path), CUSTOM_MODULE_DESCRIPTION),
        )
        for modules, description in sources:
            for module in modules:
                if module in seen:
                    continue
                seen.add(module)
                out.append(
                    self._candidate(
                        context,
                        f"{head}{module}{suffix}",
                        display_text=f"{context.keyword} {module}{suffix}",
                        description=description,
                    )
                )
        return out

    def _member_import(self, context: CompletionContext) -> list[Candidate]:
        assert isinstance(context, MemberImportContext)
        module = self._resolver.resolve(context.module)
        if module is None:
            logger.debug("Module %s not found", context.module)
            return []

        head = context.current_line[: len(context.current_line) - len(context.member)]
        if not head[-1].isspace():
            head += " "
        if module.exports:
            names = [name for name in module.exports if name.startswith(context.member)]
        else:
            # Resolved without symbols, e.g. an empty __init__.py: offer the package contents.
            names = self._package_contents(context.module, module.path, context.member)

        return [
            self._candidate(
                context,
                f"{head}{name}",
                display_text=f"from {context.module} import {name}",
                description=getattr(module.exports.get(name), "detail", "") if module.exports else "",
            )
            for name in names
        ]

    def _package_contents(self, dotted_path: str, module_path: str, prefix: str) -> list[str]:
        directories = self.load_path.module_directories(dotted_path)
        if module_path and os.path.basename(module_path) == "__init__.py":
            package_dir = os.path.dirname(module_path)
            if package_dir not in directories:
                directories.append(package_dir)

        names: list[str] = []
        for directory in directories:
            try:
                entries = sorted(os.listdir(directory))
            except OSError:
                logger.debug("Cannot list package directory %s", directory)
                continue
            for entry in entries:
                full = os.path.join(directory, entry)
                if os.path.isdir(full):
                    name = entry
                elif entry.endswith(".py"):
                    name = entry[:-3]
                else:
                    continue
                if name == "__init__" or not is_valid_python_identifier(name):
                    continue
                if name.startswith(prefix) and name not in names:
                    names.append(name)
        return names

    # ---------- scope contexts ----------

    def _bare_name(self, context: CompletionContext) -> list[Candidate]:
        assert isinstance(context, BareNameContext)
        scope = self._indexer.parse(context.prior_text + context.current_line)
        if scope is None:
            logger.debug("Parse failure; no name completions")
            return []

        out: list[Candidate] = []
        seen: set[str] = set()
        for symbol in scope.symbols_at(context.name):
            if not symbol.name.startswith(context.name) or symbol.name in seen:
                continue
            seen.add(symbol.name)
            out.append(
                self._candidate(
                    context,
                    context.current_line + symbol.name[len(context.name):],
                    display_text=symbol.name,
                    description=symbol.detail,
                )
            )
        return out

    def _dotted_access(self, context: CompletionContext) -> list[Candidate]:
        assert isinstance(context, DottedAccessContext)
        code, var_name = self.binding_source(context)
        scope = self._indexer.parse(code)
        if scope is None:
            logger.debug("Parse failure; no member completions")
            return []
        inferred = scope.type_of_binding(var_name)
        if inferred is None:
            logger.debug("Unknown type for %r", context.expression)
            return []

        member = context.member
        needle = member if self._case_sensitive_members else member.lower()
        head = context.current_line[: len(context.current_line) - len(member)]
        out: list[Candidate] = []
        seen: set[str] = set()
        for symbol in inferred.members():
            haystack = symbol.name if self._case_sensitive_members else symbol.name.lower()
            if needle not in haystack or symbol.name in seen:
                continue
            seen.add(symbol.name)
            out.append(
                self._candidate(
                    context,
                    head + symbol.name,
                    display_text=symbol.name,
                    description=symbol.detail,
                    prefix_match=symbol.name.startswith(member),
                )
            )
        return out

    def binding_source(self, context: DottedAccessContext) -> tuple[str, str]:
        """Build the source submitted for type resolution and the name to resolve.

        An assignment line whose last target lines up with the expression
        before the dot is resolved through that target. Anything else gets a
        synthetic binding: a fresh name assigned the expression.
        """
        line = context.current_line
        indent = _leading_indent(line)
        body_end = len(line) - 1 - len(context.member)
        if context.repaired:
            base, indent = context.raw_prior_text, context.block_indent
        else:
            base = context.prior_text

        target = self._assignment_target(line[:body_end], context.expression)
        if target:
            body = line[len(_leading_indent(line)):body_end]
            return f"{base}{indent}{body}", target

        name = fresh_name(identifiers_in_text(context.raw_prior_text + line))
        return f"{base}{indent}{name} = {context.expression}", name

    @staticmethod
    def _assignment_target(statement: str, expression: str) -> str:
        m = _ASSIGN_RE.match(statement)
        if not m:
            return ""
        targets = [t.strip() for t in m.group(2).split(",")]
        values = split_top_level(m.group(3))
        if not values or len(values) != len(targets):
            return ""
        if values[-1].strip() != expression or not all(is_valid_python_identifier(t) for t in targets):
            return ""
        return targets[-1]
