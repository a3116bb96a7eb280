from __future__ import annotations

from copy import deepcopy
from typing import Any, TypedDict


class CompletionSettings(TypedDict, total=False):
    enabled: bool
    max_items: int
    case_sensitive_members: bool
    library_archive: str
    load_path: list[str]
    class_discovery: bool
    debug: int


class ScriptCompleteSettings(TypedDict, total=False):
    completion: CompletionSettings


def default_completion_settings() -> CompletionSettings:
    defaults: CompletionSettings = {
        "enabled": True,
        "max_items": 500,
        "case_sensitive_members": False,
        # Path or glob of the runtime library (zip/jar or directory). Empty means
        # the interpreter's standard library directory.
        "library_archive": "",
        "load_path": [],
        "class_discovery": True,
        "debug": 0,
    }
    return deepcopy(defaults)


def default_settings() -> ScriptCompleteSettings:
    return {"completion": default_completion_settings()}


def normalize_completion_settings(cfg: dict[str, Any] | None) -> CompletionSettings:
    out: dict[str, Any] = default_completion_settings()
    if isinstance(cfg, dict):
        out.update(cfg)
    out["enabled"] = bool(out.get("enabled", True))
    try:
        out["max_items"] = max(5, min(5000, int(out.get("max_items", 500))))
    except (TypeError, ValueError):
        out["max_items"] = 500
    out["case_sensitive_members"] = bool(out.get("case_sensitive_members", False))
    out["library_archive"] = str(out.get("library_archive") or "").strip()
    raw_paths = out.get("load_path") or []
    if isinstance(raw_paths, str):
        raw_paths = [raw_paths]
    out["load_path"] = [str(p).strip() for p in raw_paths if str(p or "").strip()]
    out["class_discovery"] = bool(out.get("class_discovery", True))
    try:
        out["debug"] = max(0, min(3, int(out.get("debug", 0))))
    except (TypeError, ValueError):
        out["debug"] = 0
    return out  # type: ignore[return-value]
