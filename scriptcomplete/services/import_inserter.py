"""Import statement formatting and insertion for auto-import completions."""

from __future__ import annotations

import ast
import logging
import re
from dataclasses import dataclass

logger = logging.getLogger(__name__)

_FROM_IMPORT_RE = re.compile(r"^\s*from\s+([\w.]+)\s+import\s+(\w+)(?:\s+as\s+(\w+))?\s*$")
_IMPORT_RE = re.compile(r"^\s*import\s+([\w.]+)(?:\s+as\s+(\w+))?\s*$")
_ENCODING_RE = re.compile(r"coding[:=]\s*[-\w.]+")


@dataclass(frozen=True)
class SourceEditResult:
    source_text: str
    status: str  # updated | already | error


def import_statement_for(qualified_name: str) -> str:
    """``pkg.mod.Class`` -> ``from pkg.mod import Class``."""
    name = str(qualified_name or "").strip()
    if "." not in name:
        return f"import {name}" if name else ""
    module, _, simple = name.rpartition(".")
    return f"from {module} import {simple}"


def _parse_or_none(text: str) -> ast.Module | None:
    try:
        return ast.parse(text)
    except (SyntaxError, ValueError):
        return None


def _line_after_statement(lines: list[str], start_idx: int) -> int:
    i = max(0, int(start_idx))
    depth = 0
    while i < len(lines):
        stripped = lines[i].split("#", 1)[0].rstrip()
        depth = max(0, depth + stripped.count("(") - stripped.count(")"))
        i += 1
        if depth == 0 and not stripped.endswith("\\"):
            break
    return i


def _insertion_line(text: str, tree: ast.Module | None) -> int:
    """Line index after the shebang, encoding cookie, docstring and leading imports."""
    lines = text.splitlines(keepends=True)
    if not lines:
        return 0

    line_idx = 1 if lines[0].startswith("#!") else 0
    for i in range(min(2, len(lines))):
        if _ENCODING_RE.search(lines[i]):
            line_idx = max(line_idx, i + 1)

    if tree is not None and tree.body:
        first = tree.body[0]
        if isinstance(first, ast.Expr) and isinstance(first.value, ast.Constant) and isinstance(first.value.value, str):
            line_idx = max(line_idx, int(getattr(first, "end_lineno", first.lineno)))

    found_import = False
    i = line_idx
    while i < len(lines):
        stripped = lines[i].strip()
        if stripped.startswith(("import ", "from ")):
            found_import = True
            i = _line_after_statement(lines, i)
            continue
        if found_import and (not stripped or stripped.startswith("#")):
            i += 1
            continue
        break
    return i if found_import else line_idx


def _insert_line_at(text: str, line_idx: int, line_text: str) -> str:
    lines = text.splitlines(keepends=True)
    if lines and not lines[-1].endswith(("\n", "\r")) and line_idx >= len(lines):
        lines[-1] += "\n"
    idx = max(0, min(int(line_idx), len(lines)))
    lines.insert(idx, line_text)
    return "".join(lines)


def _append_to_from_import(text: str, node: ast.ImportFrom, token: str) -> str | None:
    if node.lineno != getattr(node, "end_lineno", node.lineno):
        return None
    lines = text.splitlines(keepends=True)
    idx = node.lineno - 1
    if not 0 <= idx < len(lines):
        return None
    raw = lines[idx]
    body = raw.rstrip("\r\n")
    newline = raw[len(body):] or "\n"
    if any(ch in body for ch in "()\\"):
        return None
    code, hash_, comment = body.partition("#")
    suffix = f" {hash_}{comment}" if hash_ else ""
    lines[idx] = f"{code.rstrip()}, {token}{suffix}{newline}"
    return "".join(lines)


def insert_module_import(source_text: str, module_name: str, bind_name: str = "") -> SourceEditResult:
    module = str(module_name or "").strip()
    bind = str(bind_name or "").strip() or module.split(".", 1)[0]
    original = str(source_text or "")
    if not module:
        return SourceEditResult(original, "error")

    tree = _parse_or_none(original)
    if tree is not None:
        for node in tree.body:
            if not isinstance(node, ast.Import):
                continue
            for alias in node.names:
                visible = alias.asname or alias.name.split(".", 1)[0]
                if alias.name == module and visible == bind:
                    return SourceEditResult(original, "already")

    line = f"import {module}\n" if bind == module.split(".", 1)[0] else f"import {module} as {bind}\n"
    updated = _insert_line_at(original, _insertion_line(original, tree), line)
    return SourceEditResult(updated, "updated")


def insert_from_import(source_text: str, module_name: str, export_name: str, bind_name: str = "") -> SourceEditResult:
    module = str(module_name or "").strip()
    export = str(export_name or "").strip()
    bind = str(bind_name or "").strip() or export
    original = str(source_text or "")
    if not module or not export:
        return SourceEditResult(original, "error")

    token = export if bind == export else f"{export} as {bind}"
    tree = _parse_or_none(original)
    if tree is not None:
        same_module = [
            node
            for node in tree.body
            if isinstance(node, ast.ImportFrom) and node.level == 0 and node.module == module
        ]
        for node in same_module:
            bound = {alias.asname or alias.name for alias in node.names}
            if "*" in bound or bind in bound:
                return SourceEditResult(original, "already")
        for node in same_module:
            updated = _append_to_from_import(original, node, token)
            if updated is not None:
                return SourceEditResult(updated, "updated")

    updated = _insert_line_at(original, _insertion_line(original, tree), f"from {module} import {token}\n")
    return SourceEditResult(updated, "updated")


def insert_import_statement(source_text: str, statement: str) -> SourceEditResult:
    """Insert a single ``import x`` / ``from x import y`` statement at the top of the source."""
    text = str(statement or "")
    m = _FROM_IMPORT_RE.match(text)
    if m:
        return insert_from_import(source_text, m.group(1), m.group(2), m.group(3) or "")
    m = _IMPORT_RE.match(text)
    if m:
        return insert_module_import(source_text, m.group(1), m.group(2) or "")
    logger.debug("Unsupported import statement %r", text)
    return SourceEditResult(str(source_text or ""), "error")
