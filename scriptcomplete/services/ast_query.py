"""Read-only AST and source-text query helpers used by the completion pipeline."""

from __future__ import annotations

import ast
import keyword
import re
from pathlib import Path

_IDENTIFIER_RE = re.compile(r"[A-Za-z_]\w*")


def is_valid_python_identifier(name: str) -> bool:
    text = str(name or "").strip()
    return bool(text) and text.isidentifier() and not keyword.iskeyword(text)


def identifiers_in_text(source_text: str) -> set[str]:
    return set(_IDENTIFIER_RE.findall(str(source_text or "")))


def dotted_name_for_relative_path(rel_path: str) -> str:
    """Dotted module name for a ``/``-separated path ending in ``.py``.

    ``pkg/__init__.py`` folds into ``pkg``. Returns "" for non-Python files
    and paths with non-identifier parts.
    """
    rel_norm = str(rel_path or "").replace("\\", "/").strip("/")
    if not rel_norm.endswith(".py"):
        return ""
    stem = rel_norm[:-3]
    parts = [part for part in stem.split("/") if part]
    if not parts:
        return ""
    if parts[-1] == "__init__":
        parts = parts[:-1]
    if not parts:
        return ""
    if any(not is_valid_python_identifier(part) for part in parts):
        return ""
    return ".".join(parts)


def _bound_names(target: ast.AST) -> list[str]:
    if isinstance(target, ast.Name):
        return [target.id] if is_valid_python_identifier(target.id) else []
    if isinstance(target, (ast.Tuple, ast.List)):
        return [name for item in target.elts for name in _bound_names(item)]
    return []


def _declared_all(tree: ast.Module) -> list[str] | None:
    for node in tree.body:
        if not isinstance(node, ast.Assign):
            continue
        if not any(isinstance(t, ast.Name) and t.id == "__all__" for t in node.targets):
            continue
        try:
            value = ast.literal_eval(node.value)
        except (ValueError, TypeError, SyntaxError):
            return None
        if isinstance(value, (list, tuple)):
            return [str(v) for v in value]
    return None


def module_symbols(file_path: str) -> dict[str, str]:
    """Top-level names a module file exports, mapped to their kind.

    Kinds are ``class``, ``function``, ``statement`` and ``import``. A literal
    ``__all__`` restricts the result. Unreadable or unparsable files export
    nothing.
    """
    try:
        tree = ast.parse(Path(file_path).read_text(encoding="utf-8", errors="replace"), filename=file_path)
    except (OSError, SyntaxError, ValueError):
        return {}

    symbols: dict[str, str] = {}
    for node in tree.body:
        if isinstance(node, ast.ClassDef):
            symbols[node.name] = "class"
        elif isinstance(node, (ast.FunctionDef, ast.AsyncFunctionDef)):
            symbols[node.name] = "function"
        elif isinstance(node, ast.Assign):
            for target in node.targets:
                symbols.update(dict.fromkeys(_bound_names(target), "statement"))
        elif isinstance(node, ast.AnnAssign):
            symbols.update(dict.fromkeys(_bound_names(node.target), "statement"))
        elif isinstance(node, ast.ImportFrom):
            for alias in node.names:
                bind = alias.asname or alias.name
                if is_valid_python_identifier(bind):
                    symbols[bind] = "import"

    public = _declared_all(tree)
    symbols.pop("__all__", None)
    if public is not None:
        symbols = {name: kind for name, kind in symbols.items() if name in public}
    return symbols
